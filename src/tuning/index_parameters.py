"""
Index Parameters — Оценка q и b связи индекса обилия с величиной VPA

ФОРМУЛЫ:
    I = q · X^b
    b = Cov[ln X, ln I] / Var[ln X]           (b = 1 для индекса SSB)
    q = exp(mean(ln I − b · ln X))

Пары (I, X) с I <= 0 или X <= 0 пропускаются (warning в логе).
Менее 2 валидных пар → InsufficientDataError.
"""

import logging
import math
from typing import Final, NamedTuple, Sequence

from src.core.domain.age_year_matrix import YearRange
from src.core.domain.errors import InsufficientDataError, ShapeError
from src.core.domain.indices import AbundanceIndex, IndexKind, IndexParameters
from src.core.domain.results import VPAResult
from src.core.math.numerical_safeguards import EPS_CALC, mean, safe_log

logger = logging.getLogger(__name__)

MIN_VALID_PAIRS: Final[int] = 2


class VPASeries(NamedTuple):
    """Величина VPA, соответствующая индексу, по годам."""

    years: tuple[int, ...]
    values: tuple[float, ...]


# =============================================================================
# LOG-ПАРЫ
# =============================================================================


def _log_pairs(
    observed: Sequence[float], estimated: Sequence[float]
) -> tuple[list[float], list[float]]:
    """(ln I, ln X) для валидных пар; невалидные пропускаются с warning."""
    if len(observed) != len(estimated):
        raise ShapeError(
            f"Observed length {len(observed)} does not match "
            f"VPA estimate length {len(estimated)}"
        )

    ln_i: list[float] = []
    ln_x: list[float] = []
    for i, (obs, est) in enumerate(zip(observed, estimated)):
        li = safe_log(obs)
        lx = safe_log(est)
        if li is None or lx is None:
            logger.warning(
                "Skipping non-positive index pair at position %d (I=%r, X=%r)", i, obs, est
            )
            continue
        ln_i.append(li)
        ln_x.append(lx)

    if len(ln_i) < MIN_VALID_PAIRS:
        raise InsufficientDataError(
            f"At least {MIN_VALID_PAIRS} valid (positive) index pairs required, "
            f"got {len(ln_i)} of {len(observed)}"
        )
    return ln_i, ln_x


# =============================================================================
# ОЦЕНКА
# =============================================================================


def estimate_nonlinearity_b(observed: Sequence[float], estimated: Sequence[float]) -> float:
    """
    Показатель нелинейности b = Cov[ln X, ln I] / Var[ln X].

    Raises:
        ShapeError: длины рядов различаются
        InsufficientDataError: < 2 валидных пар или нулевая дисперсия ln X
    """
    ln_i, ln_x = _log_pairs(observed, estimated)

    mean_i = mean(ln_i)
    mean_x = mean(ln_x)
    n = len(ln_x)

    cov = math.fsum((x - mean_x) * (i - mean_i) for x, i in zip(ln_x, ln_i)) / n
    var = math.fsum((x - mean_x) ** 2 for x in ln_x) / n

    if var < EPS_CALC:
        raise InsufficientDataError("Variance of ln(VPA estimate) is zero; b is not identifiable")

    b = cov / var
    logger.debug("Estimated b=%.6g (cov=%.6g, var=%.6g, n=%d)", b, cov, var, n)
    return b


def estimate_catchability_q(
    observed: Sequence[float], estimated: Sequence[float], b: float
) -> float:
    """
    Коэффициент уловистости q = exp(mean(ln I − b · ln X)).

    Raises:
        ShapeError: длины рядов различаются
        InsufficientDataError: < 2 валидных пар
    """
    ln_i, ln_x = _log_pairs(observed, estimated)
    q = math.exp(mean([i - b * x for i, x in zip(ln_i, ln_x)]))
    logger.debug("Estimated q=%.6g (b=%.6g, n=%d)", q, b, len(ln_i))
    return q


def estimate_index_parameters(
    observed: Sequence[float],
    estimated: Sequence[float],
    fixed_b: bool = False,
) -> IndexParameters:
    """
    Совместная оценка: сначала b (или b = 1), затем q при этом b.

    Args:
        observed: Наблюдения индекса I
        estimated: Величина VPA X за те же годы
        fixed_b: b = 1 (индекс нерестовой биомассы)
    """
    b = 1.0 if fixed_b else estimate_nonlinearity_b(observed, estimated)
    q = estimate_catchability_q(observed, estimated, b)
    return IndexParameters(q=q, b=b)


# =============================================================================
# ИЗВЛЕЧЕНИЕ ВЕЛИЧИНЫ VPA
# =============================================================================


def vpa_quantity(result: VPAResult, kind: IndexKind, year: int) -> float:
    """Величина VPA для вида индекса за год."""
    if kind is IndexKind.SPAWNING_BIOMASS:
        return result.ssb(year)
    return result.stock_numbers.get(year, kind.target_age)


def extract_vpa_series(
    result: VPAResult,
    index: AbundanceIndex,
    window: YearRange,
) -> VPASeries:
    """
    Ряд величины VPA для лет пересечения индекса и окна настройки.

    Годы, отсутствующие в результате VPA, пропускаются (warning).
    """
    start = max(index.start_year, window.start_year)
    end = min(index.end_year, window.end_year)
    vpa_years = result.stock_numbers.year_range

    years: list[int] = []
    values: list[float] = []
    for year in range(start, end + 1):
        if not vpa_years.includes(year):
            logger.warning("VPA result has no year %d for index %s", year, index.name)
            continue
        years.append(year)
        values.append(vpa_quantity(result, index.kind, year))

    return VPASeries(years=tuple(years), values=tuple(values))


def observed_for(index: AbundanceIndex, series: VPASeries) -> tuple[float, ...]:
    """Наблюдения индекса, выровненные по годам ряда VPA."""
    return tuple(index.observation(year) for year in series.years)
