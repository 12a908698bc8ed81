"""Tuning VPA — оценка терминальной F по индексам обилия.

- index_parameters: q и b связи I = q · X^b
- objective: ridge objective и чистая оценка кандидата F
- tuning_vpa: оркестратор Nelder-Mead + VPA
"""

from .index_parameters import (
    VPASeries,
    estimate_catchability_q,
    estimate_index_parameters,
    estimate_nonlinearity_b,
    extract_vpa_series,
)
from .objective import (
    SENTINEL_OBJECTIVE,
    TuningContext,
    evaluate_terminal_f,
    objective_total,
    ridge_objective,
)
from .tuning_vpa import (
    TuningConfig,
    TuningInputs,
    TuningVPAResult,
    recent_f_rows_from,
    run_tuning_vpa,
)

__all__ = [
    "SENTINEL_OBJECTIVE",
    "TuningConfig",
    "TuningContext",
    "TuningInputs",
    "TuningVPAResult",
    "VPASeries",
    "estimate_catchability_q",
    "estimate_index_parameters",
    "estimate_nonlinearity_b",
    "evaluate_terminal_f",
    "extract_vpa_series",
    "objective_total",
    "recent_f_rows_from",
    "ridge_objective",
    "run_tuning_vpa",
]
