"""
Pope — Приближение Поупа (1972) для уравнения улова

Дискретное замкнутое приближение связи улова C, естественной смертности M
и промысловой смертности F (улов берётся мгновенно в середине года).

ФОРМУЛЫ:
    C = N · (1 − e^{−F}) · e^{−M/2}                 (прямой расчёт)
    N = C · e^{M/2} / (1 − e^{−F})                  (численность по F)
    F = −ln(1 − (C / N) · e^{M/2})                  (F по численности)
    N_{a,y} = N_{a+1,y+1} · e^{M} + C_{a,y} · e^{M/2}  (когортная рекурсия)

ВЫРОЖДЕННЫЙ СЛУЧАЙ:
    (C / N) · e^{M/2} ≥ 1 означает, что улов превышает доступный запас.
    Это не фатальная ошибка: F клэмпится до F_CLAMP_DEFAULT (настраиваемо).
"""

import logging
import math
from typing import Final

from src.core.math.numerical_safeguards import is_valid_float, validate_non_negative

logger = logging.getLogger(__name__)

# F при невозможной инверсии (улов >= доступного запаса)
F_CLAMP_DEFAULT: Final[float] = 10.0


def calculate_abundance_from_catch(catch: float, f: float, m: float) -> float:
    """
    Численность по улову и F: N = C · e^{M/2} / (1 − e^{−F})

    Монотонно растёт по catch и по M, убывает по F.

    Args:
        catch: Улов (thousand fish), >= 0
        f: Промысловая смертность, > 0
        m: Естественная смертность

    Returns:
        Численность (thousand fish)

    Raises:
        ValueError: если F <= 0 или catch < 0

    Examples:
        >>> round(calculate_abundance_from_catch(100, 0.5, 0.4), 2)
        310.42
    """
    if not f > 0:
        raise ValueError(f"F must be positive, got {f}")
    if catch < 0:
        raise ValueError(f"Catch must be non-negative, got {catch}")

    denominator = -math.expm1(-f)
    if denominator <= 0:
        raise ValueError(f"Denominator 1 - exp(-F) is not positive for F={f}")

    return catch * math.exp(m / 2) / denominator


def estimate_f_from_catch(
    catch: float,
    n: float,
    m: float,
    f_clamp: float = F_CLAMP_DEFAULT,
) -> float:
    """
    Инверсия Поупа: F = −ln(1 − (C / N) · e^{M/2})

    Args:
        catch: Улов (thousand fish)
        n: Численность (thousand fish)
        m: Естественная смертность
        f_clamp: F при (C/N)·e^{M/2} >= 1

    Returns:
        F >= 0; 0 при N <= 0 или C <= 0; f_clamp при невозможной инверсии
    """
    if n <= 0 or catch <= 0:
        return 0.0

    term = (catch / n) * math.exp(m / 2)

    if term >= 1.0:
        logger.warning(
            "Catch exceeds available stock (C=%.6g, N=%.6g, M=%.4g); F clamped to %.4g",
            catch,
            n,
            m,
            f_clamp,
        )
        return f_clamp

    return max(0.0, -math.log1p(-term))


def pope_catch(n: float, f: float, m: float) -> float:
    """Прямой расчёт улова: C = N · (1 − e^{−F}) · e^{−M/2}"""
    validate_non_negative(n, "N")
    validate_non_negative(f, "F")
    return n * -math.expm1(-f) * math.exp(-m / 2)


def cohort_back_step(n_next_older: float, catch: float, m: float) -> float:
    """Когортная рекурсия: N_{a,y} = N_{a+1,y+1} · e^{M} + C_{a,y} · e^{M/2}"""
    return n_next_older * math.exp(m) + catch * math.exp(m / 2)


def terminal_abundance(catch: float, f: float, m: float) -> float:
    """
    Численность терминального года по предполагаемому F.

    В отличие от calculate_abundance_from_catch не бросает исключение:
    при неположительном знаменателе возвращает 0 с warning (используется
    внутри оптимизации).
    """
    if not is_valid_float(f):
        raise ValueError(f"F must be a valid float (not NaN/Inf), got {f}")
    denominator = -math.expm1(-f)
    if denominator <= 0:
        logger.warning("Non-positive denominator 1 - exp(-F) for F=%.6g, M=%.4g", f, m)
        return 0.0
    return max(catch, 0.0) * math.exp(m / 2) / denominator
