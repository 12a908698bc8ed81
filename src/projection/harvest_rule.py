"""
Harvest Control Rule — Правило регулирования промысла и ABC

Кусочно-линейное правило по прогнозной нерестовой биомассе:
    SSB < closure_threshold                  → F = 0 (запрет промысла)
    closure_threshold <= SSB < limit_ref     → F = target_f · (SSB − closure) / (limit − closure)
    SSB >= limit_reference_point             → F = target_f

ABC (допустимый биологический улов):
    ABC = β · Σ_a C_a · W_a / 1000   (t), 0 < β <= 1

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. closure_threshold <= limit_reference_point <= target_reference_point
2. 0 <= F(SSB) <= target_f, F неубывает по SSB
3. ABC >= 0
"""

import logging
from dataclasses import dataclass
from typing import Sequence

from pydantic import BaseModel, Field, model_validator

from src.core.domain.units import Unit, format_value
from src.core.math.numerical_safeguards import (
    clamp,
    safe_divide,
    validate_in_range,
    validate_positive,
)
from src.projection.forward import ForwardProjector, ProjectionResult

logger = logging.getLogger(__name__)


# =============================================================================
# RULE
# =============================================================================


class HarvestControlRule(BaseModel):
    """
    Правило регулирования промысла.

    Опорные точки задаются в тоннах нерестовой биомассы.
    """

    target_f: float = Field(..., gt=0, description="F при SSB >= limit_reference_point")
    closure_threshold: float = Field(..., ge=0, description="SSB запрета промысла (t)")
    limit_reference_point: float = Field(..., ge=0, description="Граничный ориентир SSB (t)")
    target_reference_point: float = Field(..., ge=0, description="Целевой ориентир SSB (t)")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_reference_points(self) -> "HarvestControlRule":
        if not (
            self.closure_threshold <= self.limit_reference_point <= self.target_reference_point
        ):
            raise ValueError(
                "Reference points must satisfy closure_threshold <= limit_reference_point "
                f"<= target_reference_point, got {self.closure_threshold}, "
                f"{self.limit_reference_point}, {self.target_reference_point}"
            )
        return self

    def target_f_for(self, ssb: float) -> float:
        """
        F по правилу для заданной SSB.

        Examples:
            >>> rule = HarvestControlRule(target_f=0.5, closure_threshold=100,
            ...     limit_reference_point=200, target_reference_point=300)
            >>> rule.target_f_for(150)
            0.25
        """
        if ssb < self.closure_threshold:
            return 0.0
        if ssb >= self.limit_reference_point:
            return self.target_f
        scale = safe_divide(
            ssb - self.closure_threshold,
            self.limit_reference_point - self.closure_threshold,
            fallback=1.0,
        )
        return self.target_f * clamp(scale, 0.0, 1.0)


# =============================================================================
# ABC
# =============================================================================


def validate_beta(beta: float) -> None:
    """Raises ValueError, если β вне (0, 1]."""
    validate_positive(beta, "beta")
    validate_in_range(beta, "beta", max_value=1.0)


@dataclass(frozen=True)
class AbcResult:
    """Рекомендованный улов и обосновывающие величины."""

    abc: float
    unit: Unit
    year: int
    ssb: float
    fishing_mortality: float
    beta: float
    projection: ProjectionResult

    def formatted(self) -> str:
        return format_value(self.abc, self.unit)


def calculate_abc(
    projector: ForwardProjector,
    rule: HarvestControlRule,
    beta: float,
    horizon: int = 1,
    recruitment_residuals: Sequence[float] = (),
) -> AbcResult:
    """
    ABC на первый прогнозный год.

    1. SSB первого прогнозного года (зависит только от F терминального года)
    2. F по правилу для этой SSB
    3. Прогноз с этой F; ABC = β · улов первого года (t)

    Args:
        projector: Прогноз от результата VPA
        rule: Правило регулирования
        beta: Коэффициент осторожности β ∈ (0, 1]
        horizon: Длина прогноза для выдачи траектории SSB
        recruitment_residuals: Логарифмические остатки пополнения

    Raises:
        ValueError: β вне (0, 1] или horizon < 1
    """
    validate_beta(beta)

    baseline = projector.project(0.0, 1, recruitment_residuals)
    ssb = baseline.ssb(baseline.first_year)
    f = rule.target_f_for(ssb)

    if ssb < rule.closure_threshold:
        logger.warning(
            "Projected SSB %.6g t is below closure threshold %.6g t; fishing closed",
            ssb,
            rule.closure_threshold,
        )

    projection = projector.project(f, horizon, recruitment_residuals)
    year = projection.first_year
    abc = beta * projection.total_catch_tonnes(year)

    logger.info(
        "ABC calculated (year=%d, ssb=%.6g t, F=%.4f, beta=%.3f, abc=%.6g t)",
        year,
        ssb,
        f,
        beta,
        abc,
    )

    return AbcResult(
        abc=abc,
        unit=Unit.TONNES,
        year=year,
        ssb=ssb,
        fishing_mortality=f,
        beta=beta,
        projection=projection,
    )
