"""
Tuning VPA — Оценка терминальной F по индексам обилия (ridge VPA)

Процедура:
1. Начальная точка — средняя F последних лет (recent_f_rows) по возрастам
2. Nelder-Mead по вектору терминальной F; целевая функция — objective_total
   с явным TuningContext (functools.partial, без замыканий)
3. Финальный прогон VPA в оптимуме: VPAResult, q/b индексов, ObjectiveValue

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Ошибка VPA внутри оптимизации не прерывает поиск (sentinel 1e10)
2. Несходимость оптимизатора — warning, результат возвращается
3. Финальная оценка q/b выполняется строго: ошибка пробрасывается
"""

import logging
from dataclasses import dataclass, field
from functools import partial
from typing import Final, Sequence

from src.core.domain.age_year_matrix import YearRange
from src.core.domain.errors import ShapeError
from src.core.domain.indices import AbundanceIndex, IndexParameters
from src.core.domain.results import ObjectiveValue, TerminalF, VPAResult
from src.core.math.nelder_mead import INITIAL_SIMPLEX_STEP, NelderMeadOptions, minimize
from src.core.math.numerical_safeguards import column_means, validate_in_range
from src.tuning.objective import (
    TuningContext,
    evaluate_terminal_f,
    objective_total,
)
from src.vpa.backward import VPAConfig, VPAInputs

logger = logging.getLogger(__name__)

DEFAULT_RIDGE_LAMBDA: Final[float] = 0.45
DEFAULT_TUNING_MAX_ITERATIONS: Final[int] = 500
DEFAULT_TUNING_TOLERANCE: Final[float] = 1e-5

# Число последних завершённых лет для средней F
DEFAULT_RECENT_F_YEARS: Final[int] = 3


# =============================================================================
# CONFIG / INPUT / RESULT
# =============================================================================


@dataclass(frozen=True)
class TuningConfig:
    """Конфигурация ridge VPA."""

    ridge_lambda: float = DEFAULT_RIDGE_LAMBDA
    max_iterations: int = DEFAULT_TUNING_MAX_ITERATIONS
    tolerance: float = DEFAULT_TUNING_TOLERANCE
    initial_step: float = INITIAL_SIMPLEX_STEP
    vpa: VPAConfig = field(default_factory=VPAConfig)

    def __post_init__(self) -> None:
        validate_in_range(self.ridge_lambda, "ridge_lambda", 0.0, 1.0)

    def optimizer_options(self) -> NelderMeadOptions:
        return NelderMeadOptions(
            max_iterations=self.max_iterations,
            tolerance=self.tolerance,
            initial_step=self.initial_step,
        )

    def with_lambda(self, ridge_lambda: float) -> "TuningConfig":
        return TuningConfig(
            ridge_lambda=ridge_lambda,
            max_iterations=self.max_iterations,
            tolerance=self.tolerance,
            initial_step=self.initial_step,
            vpa=self.vpa,
        )


@dataclass(frozen=True)
class TuningInputs:
    """
    Входы ridge VPA.

    recent_f_rows — F по возрастам за последние завершённые годы (до
    терминального); их среднее служит начальной точкой и центром штрафа.
    window — годы, по которым индексы сопоставляются с VPA
    (default: весь диапазон уловов).
    """

    vpa_inputs: VPAInputs
    indices: tuple[AbundanceIndex, ...]
    recent_f_rows: tuple[tuple[float, ...], ...]
    window: YearRange | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "indices", tuple(self.indices))
        object.__setattr__(
            self, "recent_f_rows", tuple(tuple(float(f) for f in row) for row in self.recent_f_rows)
        )
        if not self.recent_f_rows:
            raise ShapeError("recent_f_rows must contain at least one row")

        ages = self.vpa_inputs.catch_at_age.age_count
        for row in self.recent_f_rows:
            if len(row) != ages:
                raise ShapeError(
                    f"recent_f_rows row length {len(row)} does not match age count {ages}"
                )

        names = [index.name for index in self.indices]
        if len(set(names)) != len(names):
            raise ValueError(f"Index names must be unique, got {names}")

    @property
    def tuning_window(self) -> YearRange:
        return self.window or self.vpa_inputs.catch_at_age.year_range

    @property
    def recent_f_mean(self) -> tuple[float, ...]:
        return column_means(self.recent_f_rows)

    def truncated(self, end_year: int, peel: int) -> "TuningInputs":
        """
        Входы, обрезанные до end_year.

        Индексы, начинающиеся после end_year, отбрасываются; из
        recent_f_rows остаётся не менее одной строки.
        """
        indices = tuple(
            t for t in (index.truncated(end_year) for index in self.indices) if t is not None
        )
        keep = max(1, len(self.recent_f_rows) - peel)
        window = None
        if self.window is not None:
            window = YearRange(self.window.start_year, min(self.window.end_year, end_year))
        return TuningInputs(
            vpa_inputs=self.vpa_inputs.truncated(end_year),
            indices=indices,
            recent_f_rows=self.recent_f_rows[:keep],
            window=window,
        )


def recent_f_rows_from(vpa: VPAResult, years: int = DEFAULT_RECENT_F_YEARS) -> tuple[tuple[float, ...], ...]:
    """
    Строки F последних завершённых лет (без терминального) из результата VPA.

    Raises:
        ShapeError: если завершённых лет нет
    """
    rows = vpa.f_rows()[:-1]
    if not rows:
        raise ShapeError("At least two years are required to derive recent F")
    return tuple(rows[-years:])


@dataclass(frozen=True)
class TuningVPAResult:
    """Результат ridge VPA."""

    terminal_f: TerminalF
    index_parameters: dict[str, IndexParameters]
    objective: ObjectiveValue
    ridge_lambda: float
    vpa: VPAResult
    iterations: int
    converged: bool


# =============================================================================
# TUNING
# =============================================================================


def build_context(inputs: TuningInputs, config: TuningConfig) -> TuningContext:
    return TuningContext(
        vpa_inputs=inputs.vpa_inputs,
        indices=inputs.indices,
        window=inputs.tuning_window,
        recent_f_mean=inputs.recent_f_mean,
        ridge_lambda=config.ridge_lambda,
        vpa_config=config.vpa,
    )


def run_tuning_vpa(
    inputs: TuningInputs,
    config: TuningConfig | None = None,
    initial_f: Sequence[float] | None = None,
) -> TuningVPAResult:
    """
    Ridge VPA: поиск терминальной F, минимизирующей ridge objective.

    Args:
        inputs: VPA-входы, индексы, строки recent F, окно
        config: Конфигурация (default: TuningConfig())
        initial_f: Начальная точка (default: средняя recent F)

    Returns:
        TuningVPAResult

    Raises:
        ShapeError: некорректная длина initial_f
        InsufficientDataError: оценка q/b в оптимуме невозможна
    """
    cfg = config or TuningConfig()
    context = build_context(inputs, cfg)

    x0 = tuple(initial_f) if initial_f is not None else context.recent_f_mean
    if len(x0) != len(context.recent_f_mean):
        raise ShapeError(
            f"initial_f length {len(x0)} does not match age count {len(context.recent_f_mean)}"
        )

    logger.info(
        "Tuning VPA started (terminal_year=%d, indices=%d, lambda=%.3f)",
        context.terminal_year,
        len(context.indices),
        cfg.ridge_lambda,
    )

    optimum = minimize(partial(objective_total, context), x0, cfg.optimizer_options())
    final = evaluate_terminal_f(context, optimum.optimum, strict=True)

    logger.info(
        "Tuning VPA finished (objective=%.6g, iterations=%d, converged=%s)",
        final.objective.total,
        optimum.iterations,
        optimum.converged,
    )

    return TuningVPAResult(
        terminal_f=final.terminal_f,
        index_parameters=final.parameters,
        objective=final.objective,
        ridge_lambda=cfg.ridge_lambda,
        vpa=final.vpa,
        iterations=optimum.iterations,
        converged=optimum.converged,
    )
