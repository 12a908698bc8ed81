"""
AgeYearMatrix — Неизменяемая матрица (год × возраст) с единицей измерения

Фундамент всех расчётов: уловы, массы, доли зрелых, численность, F, SSB.

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. len(data) == year_count и len(data[i]) == age_count для всех строк
2. Обращение вне [start_year, end_year] × [min_age, max_age] → OutOfRangeError
   с указанием ошибочного значения и допустимого интервала
3. Матрица не мутирует: производные матрицы создаются заново
4. NaN/Inf в данных отвергаются при создании
"""

from dataclasses import dataclass
from typing import Callable, NamedTuple, Sequence

from src.core.domain.errors import OutOfRangeError, ShapeError
from src.core.domain.units import Unit, convert, conversion_factor, format_value
from src.core.math.numerical_safeguards import is_valid_float


class YearRange(NamedTuple):
    """Непрерывный диапазон лет (включительно)"""

    start_year: int
    end_year: int

    @property
    def count(self) -> int:
        return self.end_year - self.start_year + 1

    def includes(self, year: int) -> bool:
        return self.start_year <= year <= self.end_year


class AgeRange(NamedTuple):
    """Непрерывный диапазон возрастов (включительно); max_age — plus group"""

    min_age: int
    max_age: int

    @property
    def count(self) -> int:
        return self.max_age - self.min_age + 1


@dataclass(frozen=True)
class AgeYearMatrix:
    """
    Прямоугольный массив float над доменом (год × возраст) с единицей.

    Создаётся через AgeYearMatrix.create(...) либо напрямую; в обоих случаях
    форма данных проверяется в __post_init__.
    """

    unit: Unit
    year_range: YearRange
    age_range: AgeRange
    data: tuple[tuple[float, ...], ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "unit", Unit.parse(self.unit))
        object.__setattr__(self, "year_range", YearRange(*self.year_range))
        object.__setattr__(self, "age_range", AgeRange(*self.age_range))

        if self.year_range.count < 1:
            raise ShapeError(
                f"Empty year range {self.year_range.start_year}..{self.year_range.end_year}"
            )
        if self.age_range.count < 1:
            raise ShapeError(
                f"Empty age range {self.age_range.min_age}..{self.age_range.max_age}"
            )

        if len(self.data) != self.year_range.count:
            raise ShapeError(
                f"Row count {len(self.data)} does not match year count "
                f"{self.year_range.count} ({self.year_range.start_year}..{self.year_range.end_year})"
            )

        rows = []
        for i, row in enumerate(self.data):
            if len(row) != self.age_range.count:
                raise ShapeError(
                    f"Row {i} (year {self.year_range.start_year + i}) has length {len(row)}, "
                    f"expected age count {self.age_range.count} "
                    f"({self.age_range.min_age}..{self.age_range.max_age})"
                )
            values = tuple(float(v) for v in row)
            for v in values:
                if not is_valid_float(v):
                    raise ValueError(
                        f"Matrix contains NaN/Inf in year {self.year_range.start_year + i}: {v}"
                    )
            rows.append(values)

        object.__setattr__(self, "data", tuple(rows))

    # -------------------------------------------------------------------------
    # Конструкторы
    # -------------------------------------------------------------------------

    @classmethod
    def create(
        cls,
        unit: Unit | str,
        year_range: tuple[int, int],
        age_range: tuple[int, int],
        data: Sequence[Sequence[float]],
    ) -> "AgeYearMatrix":
        """
        Создание матрицы с проверкой формы.

        Raises:
            ShapeError: если размеры data не совпадают с диапазонами
            UnitConversionError: если единица неизвестна
        """
        return cls(
            unit=Unit.parse(unit),
            year_range=YearRange(*year_range),
            age_range=AgeRange(*age_range),
            data=tuple(tuple(row) for row in data),
        )

    @classmethod
    def from_function(
        cls,
        unit: Unit | str,
        year_range: tuple[int, int],
        age_range: tuple[int, int],
        func: Callable[[int, int], float],
    ) -> "AgeYearMatrix":
        """Построение матрицы по функции func(year, age)."""
        years = YearRange(*year_range)
        ages = AgeRange(*age_range)
        data = [
            [func(year, age) for age in range(ages.min_age, ages.max_age + 1)]
            for year in range(years.start_year, years.end_year + 1)
        ]
        return cls.create(unit, years, ages, data)

    # -------------------------------------------------------------------------
    # Доступ
    # -------------------------------------------------------------------------

    @property
    def year_count(self) -> int:
        return self.year_range.count

    @property
    def age_count(self) -> int:
        return self.age_range.count

    def years(self) -> range:
        return range(self.year_range.start_year, self.year_range.end_year + 1)

    def ages(self) -> range:
        return range(self.age_range.min_age, self.age_range.max_age + 1)

    def _year_index(self, year: int) -> int:
        start, end = self.year_range
        if not start <= year <= end:
            raise OutOfRangeError("year", year, start, end)
        return year - start

    def _age_index(self, age: int) -> int:
        lo, hi = self.age_range
        if not lo <= age <= hi:
            raise OutOfRangeError("age", age, lo, hi)
        return age - lo

    def get(self, year: int, age: int, unit: Unit | str | None = None) -> float:
        """
        Значение в ячейке (year, age), опционально в другой совместимой единице.

        Raises:
            OutOfRangeError: год или возраст вне домена
            UnitConversionError: несовместимая единица
        """
        value = self.data[self._year_index(year)][self._age_index(age)]
        if unit is None:
            return value
        return convert(value, self.unit, unit)

    def get_formatted(self, year: int, age: int) -> str:
        """Человекочитаемое значение ячейки (пороги см. units.format_value)."""
        return format_value(self.get(year, age), self.unit)

    def row(self, year: int) -> tuple[float, ...]:
        """Все возрасты за год."""
        return self.data[self._year_index(year)]

    def column(self, age: int) -> tuple[float, ...]:
        """Все годы для возраста."""
        j = self._age_index(age)
        return tuple(row[j] for row in self.data)

    def row_sum(self, year: int) -> float:
        return sum(self.row(year))

    def row_sums(self) -> tuple[float, ...]:
        return tuple(sum(row) for row in self.data)

    def to_rows(self) -> list[list[float]]:
        """Копия данных как изменяемый list[list] (для сериализации)."""
        return [list(row) for row in self.data]

    # -------------------------------------------------------------------------
    # Производные матрицы
    # -------------------------------------------------------------------------

    def truncate_years(self, end_year: int) -> "AgeYearMatrix":
        """
        Новая матрица с годами start_year..end_year.

        Raises:
            OutOfRangeError: если end_year вне текущего диапазона
        """
        n = self._year_index(end_year) + 1
        return AgeYearMatrix(
            unit=self.unit,
            year_range=YearRange(self.year_range.start_year, end_year),
            age_range=self.age_range,
            data=self.data[:n],
        )

    def with_unit(self, unit: Unit | str) -> "AgeYearMatrix":
        """Новая матрица в другой совместимой единице."""
        k = conversion_factor(self.unit, unit)
        return AgeYearMatrix(
            unit=Unit.parse(unit),
            year_range=self.year_range,
            age_range=self.age_range,
            data=tuple(tuple(v * k for v in row) for row in self.data),
        )

    def has_same_domain(self, other: "AgeYearMatrix") -> bool:
        return self.year_range == other.year_range and self.age_range == other.age_range
