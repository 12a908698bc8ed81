"""
NaturalMortality — Естественная смертность M по возрастам

M задаётся конфигурацией (не оценивается движком) как функция
age -> Distribution. Расчёты VPA используют среднее распределения.
"""

import random
from dataclasses import dataclass
from typing import Callable, Mapping, Sequence, Union

from src.core.math.numerical_safeguards import validate_non_negative


@dataclass(frozen=True)
class FixedValue:
    """Детерминированное значение (дисперсия 0)."""

    mean: float

    def __post_init__(self) -> None:
        validate_non_negative(self.mean, "mean")

    @property
    def name(self) -> str:
        return "fixed"

    @property
    def variance(self) -> float:
        return 0.0

    def sample(self, rng: random.Random | None = None) -> float:
        return self.mean


@dataclass(frozen=True)
class NormalDistribution:
    """Нормальное распределение N(mean, sd²)."""

    mean: float
    sd: float

    def __post_init__(self) -> None:
        validate_non_negative(self.mean, "mean")
        validate_non_negative(self.sd, "sd")

    @property
    def name(self) -> str:
        return "normal"

    @property
    def variance(self) -> float:
        return self.sd**2

    def sample(self, rng: random.Random | None = None) -> float:
        generator = rng or random
        return generator.gauss(self.mean, self.sd)


Distribution = Union[FixedValue, NormalDistribution]

NaturalMortality = Callable[[int], Distribution]


def constant_mortality(m: float) -> NaturalMortality:
    """Одинаковая M для всех возрастов."""
    dist = FixedValue(m)

    def mortality(age: int) -> Distribution:
        return dist

    return mortality


def age_specific_mortality(
    values: Mapping[int, float] | Sequence[float], min_age: int = 0
) -> NaturalMortality:
    """
    M по возрастам.

    Args:
        values: {age: M} либо список M начиная с min_age;
            возрасты старше последнего заданного используют последнее значение
        min_age: Возраст первого элемента списка

    Raises:
        ValueError: если значений нет
    """
    if isinstance(values, Mapping):
        table = {int(a): FixedValue(float(m)) for a, m in values.items()}
    else:
        table = {min_age + i: FixedValue(float(m)) for i, m in enumerate(values)}

    if not table:
        raise ValueError("age_specific_mortality requires at least one value")

    oldest = max(table)
    youngest = min(table)

    def mortality(age: int) -> Distribution:
        if age in table:
            return table[age]
        if age > oldest:
            return table[oldest]
        if age < youngest:
            return table[youngest]
        # пропуск внутри таблицы: ближайший младший возраст
        return table[max(a for a in table if a < age)]

    return mortality


MortalityLike = Union[NaturalMortality, Callable[[int], float], float]


def as_mortality(value: MortalityLike) -> Callable[[int], Distribution | float]:
    """Константа → constant_mortality, функция возвращается как есть."""
    if isinstance(value, (int, float)):
        return constant_mortality(float(value))
    return value


def mean_mortality(mortality: MortalityLike, age: int) -> float:
    """
    Средняя M для возраста.

    Допускает функции, возвращающие Distribution или просто float.
    """
    result = as_mortality(mortality)(age)
    m = getattr(result, "mean", result)
    validate_non_negative(float(m), f"M(age={age})")
    return float(m)
