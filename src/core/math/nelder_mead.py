"""
Nelder-Mead — безградиентная симплексная минимизация в R^n

Классический алгоритм: reflection / expansion / contraction / shrink.
Начальный симплекс из n+1 точек: x0 и x0 + step·e_i для каждой координаты.

Критерий остановки:
    values[worst] − values[best] < tolerance  → сходимость
    iterations == max_iterations              → warning, возвращается лучшая точка

Несходимость — не ошибка: вызывающий код обязан принимать приближённый ответ.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Final, Sequence

from src.core.math.numerical_safeguards import validate_positive

logger = logging.getLogger(__name__)

# Шаг возмущения координат при построении начального симплекса
INITIAL_SIMPLEX_STEP: Final[float] = 0.1

DEFAULT_MAX_ITERATIONS: Final[int] = 1000
DEFAULT_TOLERANCE: Final[float] = 1e-6


@dataclass(frozen=True)
class NelderMeadOptions:
    """Параметры оптимизатора.

    alpha — reflection, beta — expansion, gamma — contraction, delta — shrink.
    """

    max_iterations: int = DEFAULT_MAX_ITERATIONS
    tolerance: float = DEFAULT_TOLERANCE
    alpha: float = 1.0
    beta: float = 2.0
    gamma: float = 0.5
    delta: float = 0.5
    initial_step: float = INITIAL_SIMPLEX_STEP

    def __post_init__(self) -> None:
        if self.max_iterations < 0:
            raise ValueError(f"max_iterations must be >= 0, got {self.max_iterations}")
        validate_positive(self.tolerance, "tolerance")
        validate_positive(self.alpha, "alpha")
        validate_positive(self.beta, "beta")
        validate_positive(self.gamma, "gamma")
        validate_positive(self.delta, "delta")
        validate_positive(self.initial_step, "initial_step")


@dataclass(frozen=True)
class NelderMeadResult:
    """Результат оптимизации."""

    optimum: tuple[float, ...]
    value: float
    iterations: int
    converged: bool


def minimize(
    objective: Callable[[Sequence[float]], float],
    x0: Sequence[float],
    options: NelderMeadOptions | None = None,
) -> NelderMeadResult:
    """
    Минимизация objective методом Нелдера-Мида.

    Args:
        objective: f: R^n → R
        x0: Начальная точка
        options: Параметры (default: NelderMeadOptions())

    Returns:
        NelderMeadResult с лучшей найденной точкой

    Raises:
        ValueError: если x0 пуст
    """
    opts = options or NelderMeadOptions()
    n = len(x0)
    if n == 0:
        raise ValueError("x0 must have at least one dimension")

    logger.info(
        "Nelder-Mead started (dimensions=%d, max_iterations=%d)", n, opts.max_iterations
    )

    simplex: list[list[float]] = [list(map(float, x0))]
    for i in range(n):
        point = list(map(float, x0))
        point[i] += opts.initial_step
        simplex.append(point)

    values = [objective(point) for point in simplex]

    for iteration in range(opts.max_iterations):
        order = sorted(range(n + 1), key=lambda k: values[k])
        best, second_worst, worst = order[0], order[n - 1], order[n]

        if values[worst] - values[best] < opts.tolerance:
            logger.info(
                "Nelder-Mead converged (iterations=%d, value=%.6g)", iteration, values[best]
            )
            return NelderMeadResult(
                optimum=tuple(simplex[best]),
                value=values[best],
                iterations=iteration,
                converged=True,
            )

        # центроид всех точек кроме худшей
        centroid = [0.0] * n
        for k in range(n + 1):
            if k != worst:
                for j in range(n):
                    centroid[j] += simplex[k][j] / n

        # 1. Reflection
        reflected = [c + opts.alpha * (c - w) for c, w in zip(centroid, simplex[worst])]
        reflected_value = objective(reflected)

        if values[best] <= reflected_value < values[second_worst]:
            simplex[worst], values[worst] = reflected, reflected_value
            continue

        # 2. Expansion
        if reflected_value < values[best]:
            expanded = [c + opts.beta * (r - c) for c, r in zip(centroid, reflected)]
            expanded_value = objective(expanded)
            if expanded_value < reflected_value:
                simplex[worst], values[worst] = expanded, expanded_value
            else:
                simplex[worst], values[worst] = reflected, reflected_value
            continue

        # 3. Contraction (к худшей точке)
        contracted = [c + opts.gamma * (w - c) for c, w in zip(centroid, simplex[worst])]
        contracted_value = objective(contracted)
        if contracted_value < values[worst]:
            simplex[worst], values[worst] = contracted, contracted_value
            continue

        # 4. Shrink к лучшей точке
        for k in range(n + 1):
            if k != best:
                simplex[k] = [
                    b + opts.delta * (x - b) for b, x in zip(simplex[best], simplex[k])
                ]
                values[k] = objective(simplex[k])

    logger.warning(
        "Nelder-Mead reached max_iterations=%d without convergence", opts.max_iterations
    )

    best = min(range(n + 1), key=lambda k: values[k])
    return NelderMeadResult(
        optimum=tuple(simplex[best]),
        value=values[best],
        iterations=opts.max_iterations,
        converged=False,
    )
