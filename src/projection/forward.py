"""
Forward Projection — Прогноз численности и улова при заданной будущей F

Прогноз начинается с численности и F терминального года VPA. Масса и доля
зрелых в будущих годах — среднее последних REFERENCE_YEARS исторических лет.

ФОРМУЛЫ (Z = F + M, p — plus group):
    N_{0,y+1}   = R̄ · exp(ε_y)                      (ε — остатки связи запас-пополнение)
    N_{a,y+1}   = N_{a−1,y} · e^{−Z_{a−1,y}}          (1 <= a < p)
    N_{p,y+1}   = N_{p−1,y} · e^{−Z_{p−1,y}} + N_{p,y} · e^{−Z_{p,y}}
    C_{a,y}     = F/Z · (1 − e^{−Z}) · N_{a,y}         (уравнение Баранова)
    SSB_y       = Σ_a N · W · mat / 1000               (t)

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Z = 0 → улов = 0
2. Численность, улов и SSB неотрицательны
3. Остатки ε циклически повторяются, если их меньше горизонта
"""

import logging
import math
from dataclasses import dataclass
from typing import Final, Sequence

from src.core.domain.age_year_matrix import AgeYearMatrix, YearRange
from src.core.domain.errors import ShapeError
from src.core.domain.results import VPAResult
from src.core.domain.units import Unit, biomass_tonnes
from src.core.math.numerical_safeguards import (
    all_finite,
    column_means,
    mean,
    safe_divide,
    validate_non_negative,
)
from src.vpa.backward import VPAInputs

logger = logging.getLogger(__name__)

# Число последних исторических лет для будущих массы и доли зрелых
REFERENCE_YEARS: Final[int] = 3


# =============================================================================
# BARANOV / SELECTIVITY
# =============================================================================


def baranov_catch(n: float, f: float, m: float) -> float:
    """
    Улов по уравнению Баранова: C = F/(F+M) · (1 − e^{−(F+M)}) · N

    Examples:
        >>> baranov_catch(1000.0, 0.0, 0.4)
        0.0
    """
    validate_non_negative(n, "N")
    validate_non_negative(f, "F")
    validate_non_negative(m, "M")
    z = f + m
    if z == 0:
        return 0.0
    return safe_divide(f, z) * -math.expm1(-z) * n


def selectivity(f_row: Sequence[float]) -> tuple[float, ...]:
    """
    Селективность по возрастам: F_a / max(F).

    Нулевая F во всех возрастах → равномерная селективность 1.0.
    """
    if not f_row:
        raise ShapeError("selectivity requires at least one age")
    peak = max(f_row)
    if peak <= 0:
        return tuple(1.0 for _ in f_row)
    return tuple(f / peak for f in f_row)


# =============================================================================
# RESULT
# =============================================================================


@dataclass(frozen=True)
class ProjectionResult:
    """
    Результат прогноза за годы terminal_year+1 .. terminal_year+horizon.

    stock_numbers   — численность на начало года (thousand_fish)
    fishing_mortality — применённая F (dimensionless)
    catch_numbers   — улов по Баранову (thousand_fish)
    catch_biomass   — улов (t)
    spawning_biomass — SSB по возрастам (t)
    """

    stock_numbers: AgeYearMatrix
    fishing_mortality: AgeYearMatrix
    catch_numbers: AgeYearMatrix
    catch_biomass: AgeYearMatrix
    spawning_biomass: AgeYearMatrix

    @property
    def years(self) -> range:
        return self.stock_numbers.years()

    @property
    def first_year(self) -> int:
        return self.stock_numbers.year_range.start_year

    def ssb(self, year: int) -> float:
        return self.spawning_biomass.row_sum(year)

    def ssb_series(self) -> tuple[float, ...]:
        return self.spawning_biomass.row_sums()

    def total_catch_tonnes(self, year: int) -> float:
        return self.catch_biomass.row_sum(year)


# =============================================================================
# PROJECTOR
# =============================================================================


class ForwardProjector:
    """
    Прогноз от терминального года результата VPA.

    Args:
        inputs: Входы VPA (масса, доля зрелых, M)
        vpa: Результат VPA (обычно из ridge VPA)
        mean_recruitment: R̄ (default: среднее историческое пополнение)
        reference_years: Число лет для средних массы и доли зрелых
    """

    def __init__(
        self,
        inputs: VPAInputs,
        vpa: VPAResult,
        mean_recruitment: float | None = None,
        reference_years: int = REFERENCE_YEARS,
    ):
        if not vpa.stock_numbers.has_same_domain(inputs.catch_at_age):
            raise ShapeError("VPA result domain does not match VPA inputs domain")
        if reference_years < 1:
            raise ValueError(f"reference_years must be >= 1, got {reference_years}")

        self.inputs = inputs
        self.vpa = vpa
        self.terminal_year = vpa.terminal_year
        self.age_range = vpa.stock_numbers.age_range
        self.m_row = inputs.mortality_row()

        if mean_recruitment is None:
            mean_recruitment = mean(vpa.recruitment_series())
        validate_non_negative(mean_recruitment, "mean_recruitment")
        self.mean_recruitment = mean_recruitment

        self.weight_row = column_means(inputs.weight_at_age.to_rows()[-reference_years:])
        self.maturity_row = column_means(inputs.maturity_at_age.to_rows()[-reference_years:])
        self.selectivity = selectivity(vpa.fishing_mortality.row(self.terminal_year))

    def f_by_age(self, future_f: float | Sequence[float]) -> tuple[float, ...]:
        """Скалярная F масштабирует селективность терминального года."""
        if isinstance(future_f, (int, float)):
            validate_non_negative(future_f, "future F")
            return tuple(future_f * s for s in self.selectivity)

        row = tuple(float(f) for f in future_f)
        if len(row) != self.age_range.count:
            raise ShapeError(
                f"Future F length {len(row)} does not match age count {self.age_range.count}"
            )
        for f in row:
            validate_non_negative(f, "future F")
        return row

    def survive(
        self, n_row: Sequence[float], f_row: Sequence[float], recruitment: float
    ) -> tuple[float, ...]:
        """Численность следующего года по численности и F текущего."""
        survivors = [n * math.exp(-(f + m)) for n, f, m in zip(n_row, f_row, self.m_row)]
        p = len(n_row) - 1
        next_row = [recruitment] + survivors[: p - 1] + [survivors[p - 1] + survivors[p]]
        return tuple(next_row)

    def project(
        self,
        future_f: float | Sequence[float],
        horizon: int,
        recruitment_residuals: Sequence[float] = (),
    ) -> ProjectionResult:
        """
        Прогноз на horizon лет.

        Args:
            future_f: F (скаляр × селективность) или F по возрастам
            horizon: Число прогнозных лет, >= 1
            recruitment_residuals: Логарифмические остатки пополнения

        Returns:
            ProjectionResult
        """
        if horizon < 1:
            raise ValueError(f"horizon must be >= 1, got {horizon}")
        if not all_finite(recruitment_residuals):
            raise ValueError("recruitment_residuals contain NaN/Inf")

        f_row = self.f_by_age(future_f)
        residuals = tuple(recruitment_residuals)

        logger.info(
            "Forward projection started (from=%d, horizon=%d, F=%s)",
            self.terminal_year,
            horizon,
            [round(f, 4) for f in f_row],
        )

        n_prev = self.vpa.stock_numbers.row(self.terminal_year)
        f_prev = self.vpa.fishing_mortality.row(self.terminal_year)

        numbers: list[tuple[float, ...]] = []
        catches: list[tuple[float, ...]] = []
        for step in range(horizon):
            residual = residuals[step % len(residuals)] if residuals else 0.0
            recruitment = self.mean_recruitment * math.exp(residual)
            n_row = self.survive(n_prev, f_prev, recruitment)
            numbers.append(n_row)
            catches.append(
                tuple(baranov_catch(n, f, m) for n, f, m in zip(n_row, f_row, self.m_row))
            )
            n_prev, f_prev = n_row, f_row

        catch_biomass = [
            [biomass_tonnes(c, w) for c, w in zip(row, self.weight_row)] for row in catches
        ]
        ssb = [
            [biomass_tonnes(n, w) * mat for n, w, mat in zip(row, self.weight_row, self.maturity_row)]
            for row in numbers
        ]

        domain = dict(
            year_range=YearRange(self.terminal_year + 1, self.terminal_year + horizon),
            age_range=self.age_range,
        )
        result = ProjectionResult(
            stock_numbers=AgeYearMatrix.create(Unit.THOUSAND_FISH, data=numbers, **domain),
            fishing_mortality=AgeYearMatrix.create(
                Unit.DIMENSIONLESS, data=[f_row] * horizon, **domain
            ),
            catch_numbers=AgeYearMatrix.create(Unit.THOUSAND_FISH, data=catches, **domain),
            catch_biomass=AgeYearMatrix.create(Unit.TONNES, data=catch_biomass, **domain),
            spawning_biomass=AgeYearMatrix.create(Unit.TONNES, data=ssb, **domain),
        )

        logger.info(
            "Forward projection finished (ssb_first=%.6g, ssb_last=%.6g)",
            result.ssb_series()[0],
            result.ssb_series()[-1],
        )
        return result
