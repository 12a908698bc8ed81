"""
Общие фикстуры: синтетический запас с известной "истинной" динамикой.

Популяция моделируется вперёд по тем же допущениям, что и VPA
(улов в середине года, plus group), индексы строятся как I = q · X^b
от истинных величин.
"""

import math
from dataclasses import dataclass

import pytest

from src.core.domain.age_year_matrix import AgeRange, AgeYearMatrix, YearRange
from src.core.domain.indices import AbundanceIndex, IndexKind
from src.core.domain.mortality import constant_mortality
from src.core.domain.units import Unit
from src.tuning.tuning_vpa import TuningInputs
from src.vpa.backward import VPAInputs

START_YEAR = 2010
YEARS = 8
AGES = 5
M = 0.4

TRUE_F = (0.1, 0.3, 0.5, 0.5, 0.5)
RECRUITMENT = (1000.0, 1200.0, 900.0, 1100.0, 1300.0, 1000.0, 950.0, 1150.0)
INITIAL_NUMBERS = (1000.0, 600.0, 350.0, 200.0, 150.0)
WEIGHT = (10.0, 50.0, 120.0, 200.0, 300.0)
MATURITY = (0.0, 0.0, 0.5, 1.0, 1.0)


@dataclass(frozen=True)
class SyntheticStock:
    numbers: tuple[tuple[float, ...], ...]
    catch: AgeYearMatrix
    weight: AgeYearMatrix
    maturity: AgeYearMatrix
    indices: tuple[AbundanceIndex, ...]

    @property
    def years(self) -> YearRange:
        return self.catch.year_range

    @property
    def true_f(self) -> tuple[float, ...]:
        return TRUE_F

    @property
    def terminal_numbers(self) -> tuple[float, ...]:
        return self.numbers[-1]

    def vpa_inputs(self) -> VPAInputs:
        return VPAInputs(
            catch_at_age=self.catch,
            weight_at_age=self.weight,
            maturity_at_age=self.maturity,
            mortality=constant_mortality(M),
        )

    def recent_f_rows(self) -> tuple[tuple[float, ...], ...]:
        return (TRUE_F, TRUE_F, TRUE_F)

    def tuning_inputs(self) -> TuningInputs:
        return TuningInputs(
            vpa_inputs=self.vpa_inputs(),
            indices=self.indices,
            recent_f_rows=self.recent_f_rows(),
        )

    def request_payload(self, **tuning) -> dict:
        """Словарь запроса по контракту assessment_request.json."""
        settings = {"ridge_lambda": 0.45, "max_peel": 1, "max_iterations": 60, "tolerance": 1e-4}
        settings.update(tuning)
        return {
            "schema_version": "1",
            "catch_at_age": matrix_payload(self.catch),
            "weight_at_age": matrix_payload(self.weight),
            "maturity_at_age": matrix_payload(self.maturity),
            "natural_mortality": M,
            "indices": [index.model_dump(mode="json") for index in self.indices],
            "recent_f": [list(row) for row in self.recent_f_rows()],
            "tuning": settings,
            "projection": {"horizon": 5},
            "harvest_rule": {
                "target_f": 0.4,
                "closure_threshold": 1.0,
                "limit_reference_point": 5.0,
                "target_reference_point": 10.0,
            },
            "beta": 0.8,
        }


def matrix_payload(matrix: AgeYearMatrix) -> dict:
    return {
        "unit": matrix.unit.value,
        "start_year": matrix.year_range.start_year,
        "end_year": matrix.year_range.end_year,
        "min_age": matrix.age_range.min_age,
        "max_age": matrix.age_range.max_age,
        "data": matrix.to_rows(),
    }


def simulate_numbers(years: int = YEARS) -> list[tuple[float, ...]]:
    rows = [INITIAL_NUMBERS]
    for y in range(1, years):
        prev = rows[-1]
        survivors = [n * math.exp(-(f + M)) for n, f in zip(prev, TRUE_F)]
        rows.append(
            (RECRUITMENT[y],) + tuple(survivors[: AGES - 2]) + (survivors[-2] + survivors[-1],)
        )
    return rows


def build_stock(years: int = YEARS) -> SyntheticStock:
    numbers = simulate_numbers(years)
    year_range = YearRange(START_YEAR, START_YEAR + years - 1)
    age_range = AgeRange(0, AGES - 1)

    catch = [
        [n * -math.expm1(-f) * math.exp(-M / 2) for n, f in zip(row, TRUE_F)] for row in numbers
    ]
    ssb = [
        sum(n * w * mat / 1000 for n, w, mat in zip(row, WEIGHT, MATURITY)) for row in numbers
    ]

    indices = (
        AbundanceIndex(
            name="recruit_survey",
            kind=IndexKind.AGE0_ABUNDANCE,
            start_year=year_range.start_year,
            end_year=year_range.end_year,
            observations=tuple(0.002 * row[0] ** 0.8 for row in numbers),
        ),
        AbundanceIndex(
            name="spawner_survey",
            kind=IndexKind.SPAWNING_BIOMASS,
            start_year=year_range.start_year,
            end_year=year_range.end_year,
            observations=tuple(0.01 * s for s in ssb),
        ),
    )

    return SyntheticStock(
        numbers=tuple(numbers),
        catch=AgeYearMatrix.create(Unit.THOUSAND_FISH, year_range, age_range, catch),
        weight=AgeYearMatrix.create(Unit.GRAMS, year_range, age_range, [WEIGHT] * years),
        maturity=AgeYearMatrix.create(
            Unit.DIMENSIONLESS, year_range, age_range, [MATURITY] * years
        ),
        indices=indices,
    )


@pytest.fixture
def synthetic_stock() -> SyntheticStock:
    """Синтетический запас: 8 лет (2010-2017), возрасты 0-4, M = 0.4."""
    return build_stock()


@pytest.fixture
def short_stock() -> SyntheticStock:
    """Тот же запас, но только 5 лет (ретроспектива без peel)."""
    return build_stock(years=5)
