"""Projection — прогноз запаса, правило регулирования промысла и ABC."""

from .forward import (
    ForwardProjector,
    ProjectionResult,
    baranov_catch,
    selectivity,
)
from .harvest_rule import AbcResult, HarvestControlRule, calculate_abc, validate_beta

__all__ = [
    "AbcResult",
    "ForwardProjector",
    "HarvestControlRule",
    "ProjectionResult",
    "baranov_catch",
    "calculate_abc",
    "selectivity",
    "validate_beta",
]
