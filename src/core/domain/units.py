"""
Units — Централизованный модуль единиц измерения и их конверсии

Единственный допустимый способ преобразований между:
- численностью (fish, thousand fish, million fish)
- массой (g, kg, t, thousand t)
- безразмерными величинами (F, M, доля зрелых)

ЗАПРЕЩЕНО смешивать единицы без явного конвертера из этого модуля.
Неизвестная единица отвергается при создании (Unit.parse), а не при
первом использовании.
"""

from enum import Enum
from typing import Final

from src.core.domain.errors import UnitConversionError


# =============================================================================
# ENUMS
# =============================================================================


class Dimension(str, Enum):
    """Физическая размерность единицы"""

    COUNT = "count"
    MASS = "mass"
    DIMENSIONLESS = "dimensionless"


class Unit(str, Enum):
    """Закрытое перечисление единиц измерения"""

    FISH = "fish"
    THOUSAND_FISH = "thousand_fish"
    MILLION_FISH = "million_fish"
    GRAMS = "g"
    KILOGRAMS = "kg"
    TONNES = "t"
    THOUSAND_TONNES = "thousand_t"
    DIMENSIONLESS = "dimensionless"

    @classmethod
    def parse(cls, value: "Unit | str") -> "Unit":
        """
        Разбор единицы из строки.

        Raises:
            UnitConversionError: если единица неизвестна
        """
        if isinstance(value, Unit):
            return value
        try:
            return cls(value)
        except ValueError:
            allowed = ", ".join(u.value for u in cls)
            raise UnitConversionError(
                f"Unknown unit {value!r} (allowed: {allowed})"
            ) from None

    @property
    def dimension(self) -> Dimension:
        return _UNIT_TABLE[self][0]

    @property
    def factor(self) -> float:
        """Множитель к базовой единице размерности (fish, g, 1)."""
        return _UNIT_TABLE[self][1]

    @property
    def symbol(self) -> str:
        return _UNIT_TABLE[self][2]


# (размерность, множитель к базовой единице, символ для отображения)
_UNIT_TABLE: Final[dict[Unit, tuple[Dimension, float, str]]] = {
    Unit.FISH: (Dimension.COUNT, 1.0, "fish"),
    Unit.THOUSAND_FISH: (Dimension.COUNT, 1.0e3, "thousand fish"),
    Unit.MILLION_FISH: (Dimension.COUNT, 1.0e6, "million fish"),
    Unit.GRAMS: (Dimension.MASS, 1.0, "g"),
    Unit.KILOGRAMS: (Dimension.MASS, 1.0e3, "kg"),
    Unit.TONNES: (Dimension.MASS, 1.0e6, "t"),
    Unit.THOUSAND_TONNES: (Dimension.MASS, 1.0e9, "thousand t"),
    Unit.DIMENSIONLESS: (Dimension.DIMENSIONLESS, 1.0, ""),
}


# =============================================================================
# ПОРОГИ ФОРМАТИРОВАНИЯ
# =============================================================================

# Переключение "t" → "thousand t"
TONNES_DISPLAY_THRESHOLD: Final[float] = 1000.0

# Переключение "thousand fish" → "million fish"
THOUSAND_FISH_DISPLAY_THRESHOLD: Final[float] = 1000.0

# Переключение "fish" → "million fish"
FISH_DISPLAY_THRESHOLD: Final[float] = 1_000_000.0

# Масса (g) тысячи рыб в тоннах: thousand fish × g / 1000 = t
THOUSAND_FISH_GRAMS_TO_TONNES: Final[float] = 1.0e-3


# =============================================================================
# КОНВЕРТЕРЫ
# =============================================================================


def conversion_factor(source: Unit | str, target: Unit | str) -> float:
    """
    Множитель конверсии source → target.

    Args:
        source: Исходная единица
        target: Целевая единица

    Returns:
        k такой, что value_target = value_source * k

    Raises:
        UnitConversionError: если размерности не совпадают
    """
    src = Unit.parse(source)
    dst = Unit.parse(target)

    if src is dst:
        return 1.0

    if src.dimension is not dst.dimension:
        raise UnitConversionError(
            f"Cannot convert {src.value} ({src.dimension.value}) "
            f"to {dst.value} ({dst.dimension.value})"
        )

    return src.factor / dst.factor


def convert(value: float, source: Unit | str, target: Unit | str) -> float:
    """Конверсия значения между совместимыми единицами."""
    return value * conversion_factor(source, target)


def biomass_tonnes(numbers_thousand: float, weight_grams: float) -> float:
    """
    Биомасса в тоннах по численности (тыс. шт.) и массе особи (g).

    thousand fish × g = kg → / 1000 = t
    """
    return numbers_thousand * weight_grams * THOUSAND_FISH_GRAMS_TO_TONNES


# =============================================================================
# ФОРМАТИРОВАНИЕ
# =============================================================================


def format_value(value: float, unit: Unit | str) -> str:
    """
    Человекочитаемое представление значения с учётом единицы.

    Examples:
        >>> format_value(500, Unit.TONNES)
        '500.0 t'
        >>> format_value(15000, Unit.TONNES)
        '15.0 thousand t'
        >>> format_value(1500, Unit.THOUSAND_FISH)
        '1.50 million fish'
        >>> format_value(999999, Unit.FISH)
        '999,999 fish'
        >>> format_value(0.123456, Unit.DIMENSIONLESS)
        '0.123'
    """
    u = Unit.parse(unit)

    if u is Unit.TONNES:
        if value >= TONNES_DISPLAY_THRESHOLD:
            return f"{value / 1000:.1f} thousand t"
        return f"{value:.1f} t"

    if u is Unit.THOUSAND_FISH:
        if value >= THOUSAND_FISH_DISPLAY_THRESHOLD:
            return f"{value / 1000:.2f} million fish"
        return f"{value:.1f} thousand fish"

    if u is Unit.FISH:
        if value >= FISH_DISPLAY_THRESHOLD:
            return f"{value / 1_000_000:.2f} million fish"
        return f"{round(value):,} fish"

    if u is Unit.DIMENSIONLESS:
        return f"{value:.3f}"

    return f"{value:.1f} {u.symbol}"
