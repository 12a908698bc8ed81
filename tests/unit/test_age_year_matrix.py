"""
Тесты для AgeYearMatrix

Проверяемые инварианты:
1. Форма data совпадает с доменом, иначе ShapeError
2. get(year, age) == data[year − start][age − min_age]
3. Обращение вне домена → OutOfRangeError с ошибочным значением и границами
4. Конверсия единиц на лету и неизменяемость
"""

import math

import pytest

from src.core.domain.age_year_matrix import AgeRange, AgeYearMatrix, YearRange
from src.core.domain.errors import OutOfRangeError, ShapeError, UnitConversionError
from src.core.domain.units import Unit


@pytest.fixture
def catch_matrix() -> AgeYearMatrix:
    """2 года × 3 возраста, thousand fish."""
    return AgeYearMatrix.create(
        Unit.THOUSAND_FISH,
        (2020, 2021),
        (0, 2),
        [[50.0, 80.0, 60.0], [60.0, 90.0, 70.0]],
    )


# =============================================================================
# ТЕСТЫ: Создание
# =============================================================================


class TestCreate:
    """Проверка формы при создании."""

    def test_valid_create(self, catch_matrix):
        assert catch_matrix.year_count == 2
        assert catch_matrix.age_count == 3
        assert catch_matrix.year_range == YearRange(2020, 2021)
        assert catch_matrix.age_range == AgeRange(0, 2)

    def test_wrong_row_count(self):
        """Число строк не совпадает с числом лет."""
        with pytest.raises(ShapeError):
            AgeYearMatrix.create(Unit.TONNES, (2020, 2022), (0, 1), [[1.0, 2.0], [3.0, 4.0]])

    def test_wrong_row_length(self):
        """Длина строки не совпадает с числом возрастов."""
        with pytest.raises(ShapeError):
            AgeYearMatrix.create(Unit.TONNES, (2020, 2021), (0, 1), [[1.0, 2.0], [3.0]])

    def test_inverted_range(self):
        with pytest.raises(ShapeError):
            AgeYearMatrix.create(Unit.TONNES, (2021, 2020), (0, 1), [])

    def test_nan_rejected(self):
        with pytest.raises(ValueError):
            AgeYearMatrix.create(Unit.TONNES, (2020, 2020), (0, 1), [[1.0, math.nan]])

    def test_unknown_unit_rejected(self):
        with pytest.raises(UnitConversionError):
            AgeYearMatrix.create("tons", (2020, 2020), (0, 0), [[1.0]])

    def test_from_function(self):
        m = AgeYearMatrix.from_function(
            Unit.DIMENSIONLESS, (2000, 2002), (1, 3), lambda year, age: year - 2000 + age / 10
        )
        assert m.get(2001, 3) == pytest.approx(1.3)
        assert m.year_count == 3


# =============================================================================
# ТЕСТЫ: Доступ
# =============================================================================


class TestAccess:
    """get / row / column"""

    def test_get_matches_data(self, catch_matrix):
        """get(year, age) == data[year − start][age − min_age] для всех ячеек."""
        for i, year in enumerate(catch_matrix.years()):
            for j, age in enumerate(catch_matrix.ages()):
                assert catch_matrix.get(year, age) == catch_matrix.data[i][j]

    def test_get_with_unit_conversion(self, catch_matrix):
        """80 thousand fish = 0.08 million fish."""
        assert catch_matrix.get(2020, 1, Unit.MILLION_FISH) == pytest.approx(0.08)

    def test_get_incompatible_unit(self, catch_matrix):
        with pytest.raises(UnitConversionError):
            catch_matrix.get(2020, 1, Unit.TONNES)

    def test_year_out_of_range(self, catch_matrix):
        """Ошибка содержит значение и допустимый интервал."""
        with pytest.raises(OutOfRangeError, match=r"year 2019 .*2020\.\.2021") as exc_info:
            catch_matrix.get(2019, 0)
        assert exc_info.value.value == 2019
        assert exc_info.value.lower == 2020
        assert exc_info.value.upper == 2021

    def test_age_out_of_range(self, catch_matrix):
        with pytest.raises(OutOfRangeError, match=r"age 3 .*0\.\.2"):
            catch_matrix.get(2020, 3)

    def test_out_of_range_is_index_error(self, catch_matrix):
        with pytest.raises(IndexError):
            catch_matrix.get(2030, 0)

    def test_row_and_column(self, catch_matrix):
        assert catch_matrix.row(2021) == (60.0, 90.0, 70.0)
        assert catch_matrix.column(2) == (60.0, 70.0)

    def test_row_sums(self, catch_matrix):
        assert catch_matrix.row_sum(2020) == pytest.approx(190.0)
        assert catch_matrix.row_sums() == pytest.approx((190.0, 220.0))

    def test_get_formatted(self, catch_matrix):
        assert catch_matrix.get_formatted(2020, 1) == "80.0 thousand fish"


# =============================================================================
# ТЕСТЫ: Производные матрицы
# =============================================================================


class TestDerived:
    """Производные матрицы создаются заново, исходная не меняется."""

    def test_truncate_years(self, catch_matrix):
        truncated = catch_matrix.truncate_years(2020)
        assert truncated.year_range == YearRange(2020, 2020)
        assert truncated.data == ((50.0, 80.0, 60.0),)
        assert catch_matrix.year_count == 2

    def test_truncate_out_of_range(self, catch_matrix):
        with pytest.raises(OutOfRangeError):
            catch_matrix.truncate_years(2025)

    def test_with_unit(self, catch_matrix):
        fish = catch_matrix.with_unit(Unit.FISH)
        assert fish.unit is Unit.FISH
        assert fish.get(2020, 0) == pytest.approx(50_000.0)
        assert catch_matrix.unit is Unit.THOUSAND_FISH

    def test_immutable(self, catch_matrix):
        with pytest.raises(AttributeError):
            catch_matrix.unit = Unit.FISH

    def test_to_rows_is_copy(self, catch_matrix):
        rows = catch_matrix.to_rows()
        rows[0][0] = -1.0
        assert catch_matrix.get(2020, 0) == 50.0

    def test_same_domain(self, catch_matrix):
        other = catch_matrix.with_unit(Unit.MILLION_FISH)
        assert catch_matrix.has_same_domain(other)
        assert not catch_matrix.has_same_domain(catch_matrix.truncate_years(2020))
