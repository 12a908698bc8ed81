"""
Ridge Objective — Целевая функция ridge (tuning) VPA

ФОРМУЛА:
    total = (1 − λ) · Σ_index Σ_year (ln I − ln q − b · ln X)²
          + λ · Σ_age (F_terminal,age − F̄_recent,age)²

Первое слагаемое — невязка индексов, второе — штраф стабильности
терминальной F относительно средней F последних лет.

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Оба слагаемых >= 0
2. λ = 0 → штраф не влияет на total; λ = 1 → невязка не влияет на total
3. Пары с неположительным I или X пропускаются в первой сумме

Контекст оценки (матрицы, индексы, окно, λ) передаётся явным объектом
TuningContext в чистую функцию evaluate_terminal_f: у целевой функции
оптимизатора нет скрытого состояния.
"""

import logging
import math
from dataclasses import dataclass
from typing import Final, Mapping, Sequence

from src.core.domain.age_year_matrix import YearRange
from src.core.domain.errors import AssessmentError, InsufficientDataError, ShapeError
from src.core.domain.indices import AbundanceIndex, IndexParameters
from src.core.domain.results import ObjectiveValue, TerminalF, VPAResult
from src.core.math.numerical_safeguards import (
    clamp,
    is_valid_float,
    safe_log,
    validate_in_range,
)
from src.core.math.pope import terminal_abundance
from src.tuning.index_parameters import (
    VPASeries,
    estimate_index_parameters,
    extract_vpa_series,
    observed_for,
)
from src.vpa.backward import VPAConfig, VPAInputs, run_vpa

logger = logging.getLogger(__name__)

# Значение целевой функции при невозможности выполнить VPA
SENTINEL_OBJECTIVE: Final[float] = 1e10

# Нижняя граница кандидата F перед пересчётом в численность
MIN_TERMINAL_F: Final[float] = 0.01

# Параметры индекса при неудачной оценке внутри оптимизации
FALLBACK_INDEX_PARAMETERS: Final[IndexParameters] = IndexParameters(q=1.0, b=1.0)


# =============================================================================
# RIDGE OBJECTIVE
# =============================================================================


def ridge_objective(
    terminal_f: TerminalF,
    parameters: Mapping[str, IndexParameters],
    indices: Sequence[AbundanceIndex],
    vpa_series: Mapping[str, VPASeries],
    recent_f_mean: Sequence[float],
    ridge_lambda: float,
) -> ObjectiveValue:
    """
    Значение целевой функции ridge VPA.

    Args:
        terminal_f: Кандидат терминальной F
        parameters: {имя индекса: IndexParameters}
        indices: Наблюдаемые индексы
        vpa_series: {имя индекса: ряд величины VPA}
        recent_f_mean: Средняя F последних лет по возрастам
        ridge_lambda: λ ∈ [0, 1]

    Returns:
        ObjectiveValue(residual_sum_of_squares, penalty, total, λ)

    Raises:
        ValueError: λ вне [0, 1]
        ShapeError: длина recent_f_mean не совпадает с terminal_f
    """
    validate_in_range(ridge_lambda, "ridge_lambda", 0.0, 1.0)
    if len(recent_f_mean) != len(terminal_f.values):
        raise ShapeError(
            f"recent_f_mean length {len(recent_f_mean)} does not match "
            f"terminal F length {len(terminal_f.values)}"
        )

    rss = 0.0
    for index in indices:
        params = parameters.get(index.name)
        series = vpa_series.get(index.name)
        if params is None or series is None:
            logger.warning("No parameters or VPA series for index %s; skipped", index.name)
            continue

        ln_q = safe_log(params.q)
        if ln_q is None:
            logger.warning("Non-positive q=%r for index %s; skipped", params.q, index.name)
            continue

        for obs, est in zip(observed_for(index, series), series.values):
            ln_i = safe_log(obs) if obs is not None else None
            ln_x = safe_log(est)
            if ln_i is None or ln_x is None:
                continue
            rss += (ln_i - ln_q - params.b * ln_x) ** 2

    penalty = math.fsum(
        (f - f_bar) ** 2 for f, f_bar in zip(terminal_f.values, recent_f_mean)
    )

    # λ = 0 / λ = 1 исключают соответствующее слагаемое целиком (в т.ч. inf)
    rss_term = 0.0 if ridge_lambda == 1.0 else (1.0 - ridge_lambda) * rss
    penalty_term = 0.0 if ridge_lambda == 0.0 else ridge_lambda * penalty

    return ObjectiveValue(
        residual_sum_of_squares=rss,
        penalty=penalty,
        total=rss_term + penalty_term,
        ridge_lambda=ridge_lambda,
    )


# =============================================================================
# КОНТЕКСТ ОЦЕНКИ
# =============================================================================


@dataclass(frozen=True)
class TuningContext:
    """Всё, от чего зависит значение целевой функции, кроме кандидата F."""

    vpa_inputs: VPAInputs
    indices: tuple[AbundanceIndex, ...]
    window: YearRange
    recent_f_mean: tuple[float, ...]
    ridge_lambda: float
    vpa_config: VPAConfig = VPAConfig()

    @property
    def terminal_year(self) -> int:
        return self.vpa_inputs.terminal_year


@dataclass(frozen=True)
class Evaluation:
    """Полный результат оценки одного кандидата."""

    terminal_f: TerminalF
    vpa: VPAResult
    parameters: dict[str, IndexParameters]
    series: dict[str, VPASeries]
    objective: ObjectiveValue


def terminal_f_from_vector(context: TuningContext, f_values: Sequence[float]) -> TerminalF:
    """Кандидат оптимизатора → TerminalF (F ограничена снизу MIN_TERMINAL_F)."""
    return TerminalF(
        year=context.terminal_year,
        values=tuple(clamp(f, min_value=MIN_TERMINAL_F) for f in f_values),
    )


def terminal_numbers_from_f(context: TuningContext, terminal_f: TerminalF) -> tuple[float, ...]:
    """
    Численность терминального года по F (обратная инверсия Поупа).

    N_a = C_a · e^{M_a/2} / (1 − e^{−F_a}); возрасты старше вектора F
    используют последнее значение.
    """
    inputs = context.vpa_inputs
    catch_row = inputs.catch_at_age.row(context.terminal_year)
    m_row = inputs.mortality_row()
    return tuple(
        terminal_abundance(c, terminal_f.for_age_index(i), m)
        for i, (c, m) in enumerate(zip(catch_row, m_row))
    )


def estimate_all_parameters(
    context: TuningContext, vpa: VPAResult, strict: bool = False
) -> tuple[dict[str, IndexParameters], dict[str, VPASeries]]:
    """
    q, b и ряды VPA для всех индексов.

    При strict=False неудачная оценка индекса заменяется на {q: 1, b: 1}
    с warning; при strict=True ошибка пробрасывается.
    """
    parameters: dict[str, IndexParameters] = {}
    series: dict[str, VPASeries] = {}

    for index in context.indices:
        s = extract_vpa_series(vpa, index, context.window)
        series[index.name] = s
        try:
            parameters[index.name] = estimate_index_parameters(
                observed_for(index, s), s.values, fixed_b=index.kind.fixed_b
            )
        except InsufficientDataError as e:
            if strict:
                raise
            logger.warning(
                "Index parameter estimation failed for %s (%s); using q=1, b=1", index.name, e
            )
            parameters[index.name] = FALLBACK_INDEX_PARAMETERS

    return parameters, series


def evaluate_terminal_f(
    context: TuningContext, f_values: Sequence[float], strict: bool = False
) -> Evaluation:
    """
    Полная оценка кандидата: F → N терминального года → VPA → q, b → целевая функция.
    """
    terminal_f = terminal_f_from_vector(context, f_values)
    numbers = terminal_numbers_from_f(context, terminal_f)
    vpa = run_vpa(context.vpa_inputs, numbers, context.vpa_config)
    parameters, series = estimate_all_parameters(context, vpa, strict=strict)
    objective = ridge_objective(
        terminal_f,
        parameters,
        context.indices,
        series,
        context.recent_f_mean,
        context.ridge_lambda,
    )
    return Evaluation(
        terminal_f=terminal_f,
        vpa=vpa,
        parameters=parameters,
        series=series,
        objective=objective,
    )


def objective_total(context: TuningContext, f_values: Sequence[float]) -> float:
    """
    Скалярная целевая функция для оптимизатора.

    Ошибка VPA (вырожденный терминальный вектор) не пробрасывается:
    возвращается SENTINEL_OBJECTIVE, чтобы оптимизатор обходил такие области.
    """
    try:
        total = evaluate_terminal_f(context, f_values).objective.total
    except (AssessmentError, ValueError, ArithmeticError) as e:
        logger.warning("Objective evaluation failed for F=%s (%s)", list(f_values), e)
        return SENTINEL_OBJECTIVE

    if not is_valid_float(total):
        return SENTINEL_OBJECTIVE
    return total
