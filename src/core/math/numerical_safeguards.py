"""
Numerical Safeguards — Примитивы устойчивой арифметики оценки запаса

Используются формулами Поупа, оценкой q/b, целевой функцией и прогнозом:
- деление с fallback при вырожденном знаменателе
- проверка конечности значений (NaN/Inf)
- логарифм индексов и численностей (неположительные → None, пара пропускается)
- средние по годам (recent F, веса и зрелость для прогноза)
- проверка скалярных параметров F, M, λ, β

ИНВАРИАНТЫ:
1. Знаменатель с |x| < eps не используется, возвращается fallback
2. math.log вызывается только для конечных x > 0
3. Ошибки параметров — ValueError с именем параметра и значением
"""

import math
from typing import Final, Iterable, Sequence

# =============================================================================
# EPSILON
# =============================================================================

# Порог вырожденного знаменателя (численность, сумма уловов, Var[ln X])
EPS_CALC: Final[float] = 1e-12


# =============================================================================
# ДЕЛЕНИЕ
# =============================================================================


def safe_divide(
    numerator: float,
    denominator: float,
    fallback: float = 0.0,
    eps: float = EPS_CALC,
) -> float:
    """
    numerator / denominator или fallback.

    fallback возвращается, если |denominator| < eps, один из аргументов
    не конечен или частное переполнилось.

    Examples:
        >>> safe_divide(30.0, 60.0)
        0.5
        >>> safe_divide(30.0, 0.0, fallback=1.0)
        1.0
    """
    if eps <= 0:
        raise ValueError(f"eps must be positive, got {eps}")

    if not (is_valid_float(numerator) and is_valid_float(denominator)):
        return fallback
    if abs(denominator) < eps:
        return fallback

    return sanitize_float(numerator / denominator, fallback=fallback)


# =============================================================================
# NaN / Inf
# =============================================================================


def is_valid_float(value: float) -> bool:
    return math.isfinite(value)


def sanitize_float(value: float, fallback: float = 0.0) -> float:
    """NaN/Inf → fallback, конечные значения без изменений."""
    return value if is_valid_float(value) else fallback


def all_finite(values: Iterable[float]) -> bool:
    return all(is_valid_float(v) for v in values)


# =============================================================================
# LOG-ПРОСТРАНСТВО
# =============================================================================


def safe_log(value: float) -> float | None:
    """
    ln(value) для конечного value > 0, иначе None.

    Наблюдения индекса и оценки VPA с None в log-пространстве
    исключаются вызывающим кодом из сумм и средних.

    Examples:
        >>> safe_log(1.0)
        0.0
        >>> safe_log(0.0) is None
        True
    """
    if not is_valid_float(value) or value <= 0:
        return None
    return math.log(value)


# =============================================================================
# СРЕДНИЕ
# =============================================================================


def mean(values: Sequence[float]) -> float:
    """Среднее (math.fsum); пустая последовательность → ValueError."""
    if len(values) == 0:
        raise ValueError("mean of empty sequence")
    return math.fsum(values) / len(values)


def column_means(rows: Sequence[Sequence[float]]) -> tuple[float, ...]:
    """
    Среднее по годам для каждого возраста.

    rows — строки годов одинаковой длины (например, F последних лет).

    Raises:
        ValueError: строк нет или длины строк различаются
    """
    if len(rows) == 0:
        raise ValueError("column_means requires at least one row")

    width = len(rows[0])
    ragged = [len(row) for row in rows if len(row) != width]
    if ragged:
        raise ValueError(f"All rows must have equal length {width}, got {ragged[0]}")

    return tuple(mean([row[age] for row in rows]) for age in range(width))


def clamp(
    value: float,
    min_value: float | None = None,
    max_value: float | None = None,
) -> float:
    """value, ограниченное [min_value, max_value]; None — граница отсутствует."""
    if min_value is not None and value < min_value:
        return min_value
    if max_value is not None and value > max_value:
        return max_value
    return value


# =============================================================================
# ПРОВЕРКА ПАРАМЕТРОВ
# =============================================================================


def _require_finite(value: float, name: str) -> None:
    if not is_valid_float(value):
        raise ValueError(f"{name} must be a valid float (not NaN/Inf), got {value}")


def validate_positive(value: float, name: str, eps: float = 0.0) -> None:
    """Raises ValueError, если value <= eps или не конечно."""
    _require_finite(value, name)
    if value <= eps:
        raise ValueError(f"{name} must be positive (> {eps}), got {value}")


def validate_non_negative(value: float, name: str) -> None:
    """Raises ValueError, если value < 0 или не конечно (F, M, улов)."""
    _require_finite(value, name)
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")


def validate_in_range(
    value: float,
    name: str,
    min_value: float | None = None,
    max_value: float | None = None,
) -> None:
    """Raises ValueError, если value вне [min_value, max_value] или не конечно (λ, β)."""
    _require_finite(value, name)
    if min_value is not None and value < min_value:
        raise ValueError(f"{name} must be >= {min_value}, got {value}")
    if max_value is not None and value > max_value:
        raise ValueError(f"{name} must be <= {max_value}, got {value}")
