"""Retrospective — ретроспективный анализ, Mohn's ρ и подбор λ."""

from .analysis import (
    DEFAULT_LAMBDA_GRID,
    LambdaCandidate,
    LambdaOptimizationResult,
    RetrospectiveConfig,
    calculate_mohns_rho,
    optimize_lambda,
    run_retrospective,
)

__all__ = [
    "DEFAULT_LAMBDA_GRID",
    "LambdaCandidate",
    "LambdaOptimizationResult",
    "RetrospectiveConfig",
    "calculate_mohns_rho",
    "optimize_lambda",
    "run_retrospective",
]
