"""
Assessment Pipeline — Единая точка входа оценки запаса

Стадии:
1. Входы VPA из запроса (единицы нормализуются: thousand fish, g)
2. λ: заданный или подобранный по Mohn's ρ (optimize_lambda)
3. Ridge VPA с выбранным λ
4. Диагностика ретроспективного смещения (если λ задан явно)
5. Прогноз и ABC по правилу регулирования

Ошибка диагностики (InsufficientDataError) не прерывает оценку:
mohns_rho = None, warning в логе.
"""

import logging
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from src.assessment.config import SCHEMA_VERSION, AssessmentRequest
from src.core.contracts import validate_assessment_result
from src.core.domain.errors import InsufficientDataError
from src.core.domain.results import MohnsRho
from src.core.domain.units import Unit, format_value
from src.projection.forward import ForwardProjector
from src.projection.harvest_rule import calculate_abc
from src.retrospective.analysis import (
    calculate_mohns_rho,
    optimize_lambda,
    run_retrospective,
)
from src.tuning.tuning_vpa import TuningInputs, run_tuning_vpa

logger = logging.getLogger(__name__)


# =============================================================================
# RESULT
# =============================================================================


class MohnsRhoSummary(BaseModel):
    spawning_biomass: float
    recruitment: float
    mean_f: float
    overall: float = Field(..., ge=0)

    model_config = {"frozen": True}

    @classmethod
    def from_rho(cls, rho: MohnsRho) -> "MohnsRhoSummary":
        return cls(
            spawning_biomass=rho.spawning_biomass,
            recruitment=rho.recruitment,
            mean_f=rho.mean_f,
            overall=rho.overall,
        )


class IndexParameterSummary(BaseModel):
    q: float = Field(..., gt=0)
    b: float

    model_config = {"frozen": True}


class AssessmentResult(BaseModel):
    """
    Рекомендованный улов и величины, которыми он обоснован.

    ssb_current / f_current — терминальный год ridge VPA;
    ssb_projected / f_recommended — первый прогнозный год и F по правилу.
    """

    abc: float = Field(..., ge=0, description="Рекомендованный улов")
    unit: Unit = Field(default=Unit.TONNES, description="Единица ABC")
    abc_year: int
    terminal_year: int
    ssb_current: float = Field(..., ge=0)
    f_current: float = Field(..., ge=0, description="Средняя терминальная F")
    terminal_f: tuple[float, ...]
    lambda_used: float = Field(..., ge=0, le=1)
    mohns_rho: Optional[MohnsRhoSummary] = None
    ssb_projected: float = Field(..., ge=0)
    f_recommended: float = Field(..., ge=0)
    projected_ssb: tuple[float, ...]
    index_parameters: Dict[str, IndexParameterSummary] = Field(default_factory=dict)
    converged: bool
    iterations: int = Field(..., ge=0)

    model_config = {"frozen": True}

    def to_dict(self) -> Dict[str, Any]:
        """Словарь по контракту assessment_result.json."""
        data = self.model_dump(mode="json")
        data["schema_version"] = SCHEMA_VERSION
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AssessmentResult":
        validate_assessment_result(data)
        payload = {k: v for k, v in data.items() if k != "schema_version"}
        return cls.model_validate(payload)

    def formatted_abc(self) -> str:
        return format_value(self.abc, self.unit)


# =============================================================================
# PIPELINE
# =============================================================================


def diagnose_retrospective(
    tuning_inputs: TuningInputs, request: AssessmentRequest, ridge_lambda: float
) -> MohnsRho | None:
    """Mohn's ρ для заданного λ или None, если данных недостаточно."""
    try:
        results = run_retrospective(
            tuning_inputs, ridge_lambda, request.tuning.retrospective_config()
        )
        return calculate_mohns_rho(results)
    except InsufficientDataError as e:
        logger.warning("Retrospective diagnostics unavailable: %s", e)
        return None


def run_assessment(request: AssessmentRequest) -> AssessmentResult:
    """
    Полный прогон оценки запаса.

    Raises:
        ShapeError: несогласованные размеры входов
        InsufficientDataError: оценка q/b в оптимуме или подбор λ невозможны
    """
    logger.info(
        "Assessment started (years=%d..%d, ages=%d..%d, indices=%d)",
        request.catch_at_age.start_year,
        request.catch_at_age.end_year,
        request.catch_at_age.min_age,
        request.catch_at_age.max_age,
        len(request.indices),
    )

    vpa_inputs = request.vpa_inputs()
    tuning_inputs = request.tuning_inputs(vpa_inputs)

    if request.tuning.auto_lambda:
        optimization = optimize_lambda(tuning_inputs, request.tuning.retrospective_config())
        ridge_lambda = optimization.best_lambda
        rho: MohnsRho | None = optimization.mohns_rho
    else:
        ridge_lambda = float(request.tuning.ridge_lambda)
        rho = diagnose_retrospective(tuning_inputs, request, ridge_lambda)

    tuned = run_tuning_vpa(tuning_inputs, request.tuning.tuning_config(ridge_lambda))

    projector = ForwardProjector(
        vpa_inputs, tuned.vpa, mean_recruitment=request.projection.mean_recruitment
    )
    abc = calculate_abc(
        projector,
        request.harvest_rule,
        request.beta,
        horizon=request.projection.horizon,
        recruitment_residuals=request.projection.recruitment_residuals,
    )

    result = AssessmentResult(
        abc=abc.abc,
        unit=abc.unit,
        abc_year=abc.year,
        terminal_year=tuned.vpa.terminal_year,
        ssb_current=tuned.vpa.ssb(tuned.vpa.terminal_year),
        f_current=tuned.terminal_f.mean,
        terminal_f=tuned.terminal_f.values,
        lambda_used=ridge_lambda,
        mohns_rho=MohnsRhoSummary.from_rho(rho) if rho is not None else None,
        ssb_projected=abc.ssb,
        f_recommended=abc.fishing_mortality,
        projected_ssb=abc.projection.ssb_series(),
        index_parameters={
            name: IndexParameterSummary(q=p.q, b=p.b)
            for name, p in tuned.index_parameters.items()
        },
        converged=tuned.converged,
        iterations=tuned.iterations,
    )

    logger.info(
        "Assessment finished (abc=%s, lambda=%.3f, ssb_current=%.6g t)",
        result.formatted_abc(),
        ridge_lambda,
        result.ssb_current,
    )
    return result
