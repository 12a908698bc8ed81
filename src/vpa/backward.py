"""
Backward VPA — Обратный расчёт численности и F по улову (приближение Поупа)

Годы обрабатываются от последнего к первому, возрасты внутри года — от
старшего к младшему. Каждый год строится как неизменяемая строка только
из строки следующего года; матрицы результата собираются один раз после
завершения рекурсии.

ФОРМУЛЫ (p — plus group, p−1 — предпоследний возраст):
    Терминальный год: N задан, F_{a,Y} = −ln(1 − (C/N)·e^{M/2})
    Прочие возрасты:  N_{a,y} = N_{a+1,y+1}·e^{M} + C_{a,y}·e^{M/2}
    Plus group:       N_{p,y}   = C_p/(C_p + C_{p−1}) · (N_{p,y+1}·e^{M} + C_p·e^{M/2})
                      N_{p−1,y} = C_{p−1}/(C_p + C_{p−1}) · (N_{p,y+1}·e^{M} + C_{p−1}·e^{M/2})
                      F_{p,y}   = F_{p−1,y}   (конвенция модели, не оценивается)
    SSB_{a,y} = N_{a,y} · W_{a,y} · mat_{a,y} / 1000  (thousand fish × g → t)

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Без вектора терминальной численности расчёт невозможен → ShapeError
2. Все матрицы входа имеют одинаковый домен (год × возраст) → иначе ShapeError
3. Улов > доступного запаса → F клэмпится (warning), расчёт продолжается
"""

import logging
from dataclasses import dataclass, field
from typing import Final, NamedTuple, Sequence

from src.core.domain.age_year_matrix import AgeYearMatrix
from src.core.domain.errors import ShapeError, UnitConversionError
from src.core.domain.mortality import MortalityLike, mean_mortality
from src.core.domain.results import VPAResult
from src.core.domain.units import Unit, biomass_tonnes
from src.core.math.numerical_safeguards import all_finite, safe_divide, validate_positive
from src.core.math.pope import F_CLAMP_DEFAULT, cohort_back_step, estimate_f_from_catch

logger = logging.getLogger(__name__)

# Доля plus group при нулевом суммарном улове двух старших возрастов
PLUS_GROUP_SHARE_FALLBACK: Final[float] = 0.5

# Минимальное число возрастов (plus group + предпоследний возраст)
MIN_AGE_CLASSES: Final[int] = 2


# =============================================================================
# CONFIG / INPUT
# =============================================================================


@dataclass(frozen=True)
class VPAConfig:
    """Конфигурация обратного расчёта.

    f_clamp — F, присваиваемая при улове, превышающем доступный запас.
    """

    f_clamp: float = F_CLAMP_DEFAULT

    def __post_init__(self) -> None:
        validate_positive(self.f_clamp, "f_clamp")


@dataclass(frozen=True)
class VPAInputs:
    """Статические входы VPA (без терминального вектора)."""

    catch_at_age: AgeYearMatrix
    weight_at_age: AgeYearMatrix
    maturity_at_age: AgeYearMatrix
    mortality: MortalityLike = field(compare=False)

    def __post_init__(self) -> None:
        # расчёт ведётся в thousand fish и g
        if self.catch_at_age.unit is not Unit.THOUSAND_FISH:
            object.__setattr__(
                self, "catch_at_age", self.catch_at_age.with_unit(Unit.THOUSAND_FISH)
            )
        if self.weight_at_age.unit is not Unit.GRAMS:
            object.__setattr__(self, "weight_at_age", self.weight_at_age.with_unit(Unit.GRAMS))
        if self.maturity_at_age.unit is not Unit.DIMENSIONLESS:
            raise UnitConversionError(
                f"maturity_at_age must be dimensionless, got {self.maturity_at_age.unit.value}"
            )

        for name, matrix in (
            ("weight_at_age", self.weight_at_age),
            ("maturity_at_age", self.maturity_at_age),
        ):
            if not matrix.has_same_domain(self.catch_at_age):
                raise ShapeError(
                    f"{name} domain {tuple(matrix.year_range)}x{tuple(matrix.age_range)} "
                    f"does not match catch_at_age domain "
                    f"{tuple(self.catch_at_age.year_range)}x{tuple(self.catch_at_age.age_range)}"
                )
        if self.catch_at_age.age_count < MIN_AGE_CLASSES:
            raise ShapeError(
                f"VPA requires at least {MIN_AGE_CLASSES} age classes, "
                f"got {self.catch_at_age.age_count}"
            )

    @property
    def terminal_year(self) -> int:
        return self.catch_at_age.year_range.end_year

    def mortality_row(self) -> tuple[float, ...]:
        return tuple(mean_mortality(self.mortality, age) for age in self.catch_at_age.ages())

    def truncated(self, end_year: int) -> "VPAInputs":
        """Новые входы, обрезанные до end_year."""
        return VPAInputs(
            catch_at_age=self.catch_at_age.truncate_years(end_year),
            weight_at_age=self.weight_at_age.truncate_years(end_year),
            maturity_at_age=self.maturity_at_age.truncate_years(end_year),
            mortality=self.mortality,
        )


# =============================================================================
# PLUS GROUP
# =============================================================================


class PlusGroupSplit(NamedTuple):
    """Численность двух старших возрастов после распределения plus group."""

    plus_group: float
    second_oldest: float


def resolve_plus_group(
    next_year_plus_group: float,
    catch_plus_group: float,
    catch_second_oldest: float,
    m_plus_group: float,
    m_second_oldest: float,
) -> PlusGroupSplit:
    """
    Распределение численности между plus group и предпоследним возрастом.

    Численность plus group следующего года, пересчитанная назад через
    естественное выживание, делится пропорционально уловам двух старших
    возрастов. При нулевом суммарном улове доля = 0.5.

    Args:
        next_year_plus_group: N_{p,y+1}
        catch_plus_group: C_{p,y}
        catch_second_oldest: C_{p−1,y}
        m_plus_group: M для plus group
        m_second_oldest: M для предпоследнего возраста

    Returns:
        PlusGroupSplit(N_{p,y}, N_{p−1,y})
    """
    total_catch = catch_plus_group + catch_second_oldest
    plus_share = safe_divide(
        catch_plus_group, total_catch, fallback=PLUS_GROUP_SHARE_FALLBACK
    )
    second_share = safe_divide(
        catch_second_oldest, total_catch, fallback=PLUS_GROUP_SHARE_FALLBACK
    )

    plus_n = plus_share * cohort_back_step(
        next_year_plus_group, catch_plus_group, m_plus_group
    )
    second_n = second_share * cohort_back_step(
        next_year_plus_group, catch_second_oldest, m_second_oldest
    )
    return PlusGroupSplit(plus_group=plus_n, second_oldest=second_n)


def apply_plus_group_f(f_row: Sequence[float]) -> tuple[float, ...]:
    """Конвенция модели: F plus group = F предпоследнего возраста."""
    if len(f_row) < MIN_AGE_CLASSES:
        raise ShapeError(
            f"F row needs at least {MIN_AGE_CLASSES} ages, got {len(f_row)}"
        )
    return tuple(f_row[:-1]) + (f_row[-2],)


# =============================================================================
# ГОДОВЫЕ ШАГИ
# =============================================================================


def reconstruct_terminal_year(
    terminal_numbers: Sequence[float],
    catch_row: Sequence[float],
    m_row: Sequence[float],
    config: VPAConfig,
) -> tuple[tuple[float, ...], tuple[float, ...]]:
    """Терминальный год: N задан, F по инверсии Поупа."""
    n_row = tuple(float(n) for n in terminal_numbers)
    f_row = [
        estimate_f_from_catch(c, n, m, config.f_clamp)
        for c, n, m in zip(catch_row, n_row, m_row)
    ]
    return n_row, apply_plus_group_f(f_row)


def reconstruct_year(
    next_year_numbers: Sequence[float],
    catch_row: Sequence[float],
    m_row: Sequence[float],
    config: VPAConfig,
) -> tuple[tuple[float, ...], tuple[float, ...]]:
    """
    Не-терминальный год по строке численности следующего года.

    Returns:
        (N_row, F_row) для года y
    """
    ages = len(catch_row)
    p = ages - 1

    n_row = [0.0] * ages
    for a in range(p - 1):
        n_row[a] = cohort_back_step(next_year_numbers[a + 1], catch_row[a], m_row[a])

    split = resolve_plus_group(
        next_year_plus_group=next_year_numbers[p],
        catch_plus_group=catch_row[p],
        catch_second_oldest=catch_row[p - 1],
        m_plus_group=m_row[p],
        m_second_oldest=m_row[p - 1],
    )
    n_row[p] = split.plus_group
    n_row[p - 1] = split.second_oldest

    f_row = [
        estimate_f_from_catch(c, n, m, config.f_clamp)
        for c, n, m in zip(catch_row, n_row, m_row)
    ]
    return tuple(n_row), apply_plus_group_f(f_row)


# =============================================================================
# VPA
# =============================================================================


def run_vpa(
    inputs: VPAInputs,
    terminal_numbers: Sequence[float] | None,
    config: VPAConfig | None = None,
) -> VPAResult:
    """
    Обратный расчёт VPA.

    Args:
        inputs: Уловы, массы, доли зрелых, M
        terminal_numbers: Численность терминального года по возрастам
        config: Конфигурация (default: VPAConfig())

    Returns:
        VPAResult (численность, F, SSB, пополнение)

    Raises:
        ShapeError: вектор терминальной численности отсутствует или неверной длины
        ValueError: вектор содержит NaN/Inf
    """
    cfg = config or VPAConfig()
    catch = inputs.catch_at_age
    ages = catch.age_count

    if terminal_numbers is None:
        raise ShapeError(
            "Terminal-year stock numbers are required to run VPA "
            f"(expected {ages} values for ages {catch.age_range.min_age}..{catch.age_range.max_age})"
        )
    if len(terminal_numbers) != ages:
        raise ShapeError(
            f"Terminal-year stock numbers length {len(terminal_numbers)} "
            f"does not match age count {ages}"
        )
    if not all_finite(terminal_numbers):
        raise ValueError(f"Terminal-year stock numbers contain NaN/Inf: {list(terminal_numbers)}")

    logger.debug(
        "VPA backward calculation (years=%s, ages=%s)",
        tuple(catch.year_range),
        tuple(catch.age_range),
    )

    m_row = inputs.mortality_row()
    years = list(catch.years())

    n_rows: dict[int, tuple[float, ...]] = {}
    f_rows: dict[int, tuple[float, ...]] = {}

    terminal = years[-1]
    n_rows[terminal], f_rows[terminal] = reconstruct_terminal_year(
        terminal_numbers, catch.row(terminal), m_row, cfg
    )

    for year in reversed(years[:-1]):
        n_rows[year], f_rows[year] = reconstruct_year(
            n_rows[year + 1], catch.row(year), m_row, cfg
        )

    numbers_data = [n_rows[y] for y in years]
    f_data = [f_rows[y] for y in years]

    ssb_data = [
        [
            biomass_tonnes(n, w) * mat
            for n, w, mat in zip(
                n_rows[y], inputs.weight_at_age.row(y), inputs.maturity_at_age.row(y)
            )
        ]
        for y in years
    ]
    recruitment_data = [[n_rows[y][0]] + [0.0] * (ages - 1) for y in years]

    domain = dict(year_range=catch.year_range, age_range=catch.age_range)
    return VPAResult(
        stock_numbers=AgeYearMatrix.create(Unit.THOUSAND_FISH, data=numbers_data, **domain),
        fishing_mortality=AgeYearMatrix.create(Unit.DIMENSIONLESS, data=f_data, **domain),
        spawning_biomass=AgeYearMatrix.create(Unit.TONNES, data=ssb_data, **domain),
        recruitment=AgeYearMatrix.create(Unit.THOUSAND_FISH, data=recruitment_data, **domain),
    )
