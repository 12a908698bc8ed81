"""
Retrospective Analysis — Ретроспективный анализ и Mohn's ρ

Ridge VPA повторяется на данных, последовательно укороченных на 0..max_peel
лет ("peels"). Сравнение оценок последнего года каждого peel с оценкой
полного ряда за тот же год даёт ретроспективное смещение.

ФОРМУЛЫ:
    ρ_X = 1/n · Σ_peel (X_peel,last − X_full,same_year) / X_full,same_year
    overall = (|ρ_SSB| + |ρ_R| + |ρ_F̄|) / 3

Интерпретация:
    |ρ| ≈ 0      — смещения нет
    |ρ| > 0.15   — проблема
    |ρ| > 0.20   — серьёзная проблема

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Peel, оставляющий < MIN_RETROSPECTIVE_YEARS лет, прекращает цикл
2. Ошибка отдельного peel логируется и пропускается
3. Mohn's ρ требует >= 2 результатов, включая peel = 0
"""

import logging
from dataclasses import dataclass, field
from typing import Final, Sequence

from joblib import Parallel, delayed

from src.core.domain.errors import AssessmentError, InsufficientDataError
from src.core.domain.results import MohnsRho, RetrospectiveResult
from src.core.math.numerical_safeguards import mean, validate_in_range
from src.tuning.tuning_vpa import TuningConfig, TuningInputs, run_tuning_vpa

logger = logging.getLogger(__name__)

DEFAULT_MAX_PEEL: Final[int] = 5

# Минимальное число лет данных после peel
MIN_RETROSPECTIVE_YEARS: Final[int] = 5

DEFAULT_LAMBDA_GRID: Final[tuple[float, ...]] = (0.0, 0.15, 0.30, 0.45, 0.60, 0.75, 0.90)


# =============================================================================
# CONFIG / RESULT
# =============================================================================


@dataclass(frozen=True)
class RetrospectiveConfig:
    """Конфигурация ретроспективного анализа и подбора λ."""

    max_peel: int = DEFAULT_MAX_PEEL
    min_years: int = MIN_RETROSPECTIVE_YEARS
    lambda_grid: tuple[float, ...] = DEFAULT_LAMBDA_GRID
    n_jobs: int = 1
    tuning: TuningConfig = field(default_factory=TuningConfig)

    def __post_init__(self) -> None:
        if self.max_peel < 1:
            raise ValueError(f"max_peel must be >= 1, got {self.max_peel}")
        if self.min_years < 1:
            raise ValueError(f"min_years must be >= 1, got {self.min_years}")
        if not self.lambda_grid:
            raise ValueError("lambda_grid must not be empty")
        for value in self.lambda_grid:
            validate_in_range(value, "lambda", 0.0, 1.0)
        if self.n_jobs == 0:
            raise ValueError("n_jobs must not be 0")


@dataclass(frozen=True)
class LambdaCandidate:
    """Mohn's ρ для одного значения λ."""

    ridge_lambda: float
    mohns_rho: MohnsRho


@dataclass(frozen=True)
class LambdaOptimizationResult:
    """
    Результат подбора λ.

    candidates отсортированы по возрастанию overall ρ; первый — лучший.
    """

    best_lambda: float
    mohns_rho: MohnsRho
    candidates: tuple[LambdaCandidate, ...]


# =============================================================================
# RETROSPECTIVE
# =============================================================================


def run_peel(
    inputs: TuningInputs, peel: int, ridge_lambda: float, config: TuningConfig
) -> RetrospectiveResult:
    """Один peel: обрезка данных на peel лет и ridge VPA."""
    end_year = inputs.vpa_inputs.terminal_year - peel
    peeled = inputs if peel == 0 else inputs.truncated(end_year, peel)
    tuned = run_tuning_vpa(peeled, config.with_lambda(ridge_lambda))
    vpa = tuned.vpa
    return RetrospectiveResult(
        peel=peel,
        end_year=end_year,
        spawning_biomass=vpa.ssb_series(),
        recruitment=vpa.recruitment_series(),
        f_by_age=vpa.f_rows(),
    )


def run_retrospective(
    inputs: TuningInputs,
    ridge_lambda: float,
    config: RetrospectiveConfig | None = None,
) -> list[RetrospectiveResult]:
    """
    Ретроспективный анализ для фиксированного λ.

    Args:
        inputs: Полные входы ridge VPA
        ridge_lambda: λ ∈ [0, 1]
        config: Конфигурация (default: RetrospectiveConfig())

    Returns:
        Результаты успешных peel в порядке возрастания peel
    """
    cfg = config or RetrospectiveConfig()
    validate_in_range(ridge_lambda, "ridge_lambda", 0.0, 1.0)
    total_years = inputs.vpa_inputs.catch_at_age.year_count

    logger.info(
        "Retrospective analysis started (lambda=%.3f, max_peel=%d)", ridge_lambda, cfg.max_peel
    )

    results: list[RetrospectiveResult] = []
    for peel in range(cfg.max_peel + 1):
        remaining = total_years - peel
        if remaining < cfg.min_years:
            logger.warning(
                "Stopping retrospective at peel %d: %d years remain (< %d)",
                peel,
                remaining,
                cfg.min_years,
            )
            break

        try:
            results.append(run_peel(inputs, peel, ridge_lambda, cfg.tuning))
        except (AssessmentError, ValueError, ArithmeticError) as e:
            logger.warning("Retrospective peel %d failed: %s", peel, e)

    logger.info("Retrospective analysis finished (peels=%d)", len(results))
    return results


# =============================================================================
# MOHN'S RHO
# =============================================================================


def _relative_bias(peeled: float, reference: float) -> float:
    return (peeled - reference) / reference if reference > 0 else 0.0


def calculate_mohns_rho(results: Sequence[RetrospectiveResult]) -> MohnsRho:
    """
    Mohn's ρ по результатам ретроспективного анализа.

    Для каждого peel >= 1 сравнивается последний год peel с тем же годом
    полного ряда (peel = 0). Сравнения с годом вне полного ряда пропускаются;
    слагаемое с неположительным эталоном равно 0.

    Raises:
        InsufficientDataError: < 2 результатов, нет peel = 0 или ни одного
            допустимого сравнения
    """
    if len(results) < 2:
        raise InsufficientDataError(
            f"Mohn's rho requires at least 2 retrospective results, got {len(results)}"
        )

    reference = next((r for r in results if r.peel == 0), None)
    if reference is None:
        raise InsufficientDataError("Mohn's rho requires the full-data result (peel = 0)")

    ref_start = reference.start_year
    ref_length = len(reference.spawning_biomass)

    ssb_sum = recruitment_sum = f_sum = 0.0
    count = 0

    for peeled in (r for r in results if r.peel > 0):
        ref_index = peeled.end_year - ref_start
        if not 0 <= ref_index < ref_length:
            logger.warning(
                "Peel %d end year %d is outside the reference range; skipped",
                peeled.peel,
                peeled.end_year,
            )
            continue

        ssb_sum += _relative_bias(
            peeled.spawning_biomass[-1], reference.spawning_biomass[ref_index]
        )
        recruitment_sum += _relative_bias(
            peeled.recruitment[-1], reference.recruitment[ref_index]
        )
        f_sum += _relative_bias(
            mean(peeled.f_by_age[-1]), mean(reference.f_by_age[ref_index])
        )
        count += 1

    if count == 0:
        raise InsufficientDataError("No valid retrospective comparisons for Mohn's rho")

    ssb_rho = ssb_sum / count
    recruitment_rho = recruitment_sum / count
    f_rho = f_sum / count
    overall = (abs(ssb_rho) + abs(recruitment_rho) + abs(f_rho)) / 3

    logger.info(
        "Mohn's rho: ssb=%.4f recruitment=%.4f mean_f=%.4f overall=%.4f (comparisons=%d)",
        ssb_rho,
        recruitment_rho,
        f_rho,
        overall,
        count,
    )

    return MohnsRho(
        spawning_biomass=ssb_rho,
        recruitment=recruitment_rho,
        mean_f=f_rho,
        overall=overall,
    )


# =============================================================================
# ПОДБОР λ
# =============================================================================


def evaluate_lambda(
    inputs: TuningInputs, ridge_lambda: float, config: RetrospectiveConfig
) -> LambdaCandidate | None:
    """Mohn's ρ для одного λ или None, если анализ не удался."""
    logger.info("Evaluating lambda=%.3f", ridge_lambda)
    try:
        results = run_retrospective(inputs, ridge_lambda, config)
        if len(results) < 2:
            logger.warning(
                "Not enough retrospective results for lambda=%.3f (%d)", ridge_lambda, len(results)
            )
            return None
        rho = calculate_mohns_rho(results)
    except (AssessmentError, ValueError, ArithmeticError) as e:
        logger.warning("Lambda %.3f failed: %s", ridge_lambda, e)
        return None
    return LambdaCandidate(ridge_lambda=ridge_lambda, mohns_rho=rho)


def optimize_lambda(
    inputs: TuningInputs,
    config: RetrospectiveConfig | None = None,
) -> LambdaOptimizationResult:
    """
    Подбор λ, минимизирующего overall Mohn's ρ.

    Кандидаты независимы и при config.n_jobs != 1 считаются параллельно
    (joblib).

    Raises:
        InsufficientDataError: ни один кандидат λ не дал Mohn's ρ
    """
    cfg = config or RetrospectiveConfig()
    logger.info(
        "Lambda optimization started (grid=%s, max_peel=%d, n_jobs=%d)",
        list(cfg.lambda_grid),
        cfg.max_peel,
        cfg.n_jobs,
    )

    evaluated = Parallel(n_jobs=cfg.n_jobs)(
        delayed(evaluate_lambda)(inputs, value, cfg) for value in cfg.lambda_grid
    )
    candidates = sorted(
        (c for c in evaluated if c is not None), key=lambda c: c.mohns_rho.overall
    )

    if not candidates:
        raise InsufficientDataError("No lambda candidate produced a valid Mohn's rho")

    best = candidates[0]
    logger.info(
        "Lambda optimization finished (best_lambda=%.3f, overall_rho=%.4f, tested=%d)",
        best.ridge_lambda,
        best.mohns_rho.overall,
        len(candidates),
    )
    return LambdaOptimizationResult(
        best_lambda=best.ridge_lambda,
        mohns_rho=best.mohns_rho,
        candidates=tuple(candidates),
    )
