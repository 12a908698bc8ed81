"""
Value objects результатов расчёта

Все объекты неизменяемы и не содержат обратных ссылок на своего производителя.
"""

from dataclasses import dataclass

from src.core.domain.age_year_matrix import AgeYearMatrix
from src.core.math.numerical_safeguards import mean


# =============================================================================
# VPA
# =============================================================================


@dataclass(frozen=True)
class VPAResult:
    """
    Результат одного обратного расчёта VPA.

    stock_numbers      — численность (thousand_fish)
    fishing_mortality  — F (dimensionless)
    spawning_biomass   — SSB по возрастам (t)
    recruitment        — численность младшего возраста; остальные ячейки 0 (thousand_fish)
    """

    stock_numbers: AgeYearMatrix
    fishing_mortality: AgeYearMatrix
    spawning_biomass: AgeYearMatrix
    recruitment: AgeYearMatrix

    @property
    def terminal_year(self) -> int:
        return self.stock_numbers.year_range.end_year

    def ssb_series(self) -> tuple[float, ...]:
        """Суммарная SSB по годам (t)."""
        return self.spawning_biomass.row_sums()

    def ssb(self, year: int) -> float:
        return self.spawning_biomass.row_sum(year)

    def recruitment_series(self) -> tuple[float, ...]:
        return self.recruitment.column(self.recruitment.age_range.min_age)

    def f_rows(self) -> tuple[tuple[float, ...], ...]:
        return self.fishing_mortality.data

    def mean_f(self, year: int) -> float:
        """Средняя по возрастам F за год."""
        return mean(self.fishing_mortality.row(year))


# =============================================================================
# TUNING
# =============================================================================


@dataclass(frozen=True)
class TerminalF:
    """
    F по возрастам в терминальном году — свободный вектор оптимизации.

    Возрасты старше len(values) используют последнее значение (plus group).
    """

    year: int
    values: tuple[float, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", tuple(float(v) for v in self.values))
        if len(self.values) == 0:
            raise ValueError("TerminalF requires at least one value")

    def for_age_index(self, index: int) -> float:
        if index < len(self.values):
            return self.values[index]
        return self.values[-1]

    @property
    def mean(self) -> float:
        return mean(self.values)


@dataclass(frozen=True)
class ObjectiveValue:
    """
    Значение целевой функции ridge VPA и её компоненты.

    total = (1 − λ) · residual_sum_of_squares + λ · penalty
    """

    residual_sum_of_squares: float
    penalty: float
    total: float
    ridge_lambda: float


# =============================================================================
# RETROSPECTIVE
# =============================================================================


@dataclass(frozen=True)
class RetrospectiveResult:
    """Результат одного peel ретроспективного анализа."""

    peel: int
    end_year: int
    spawning_biomass: tuple[float, ...]
    recruitment: tuple[float, ...]
    f_by_age: tuple[tuple[float, ...], ...]

    @property
    def start_year(self) -> int:
        return self.end_year - len(self.spawning_biomass) + 1


@dataclass(frozen=True)
class MohnsRho:
    """
    Mohn's ρ — сводка ретроспективного смещения.

    overall = (|spawning_biomass| + |recruitment| + |mean_f|) / 3
    """

    spawning_biomass: float
    recruitment: float
    mean_f: float
    overall: float
