"""
Core math modules

Математические примитивы и численные алгоритмы с гарантией стабильности.
"""

# Numerical Safeguards
from src.core.math.numerical_safeguards import (
    # Epsilon constants
    EPS_CALC,
    # Safe division
    safe_divide,
    # NaN/Inf sanitization
    all_finite,
    is_valid_float,
    sanitize_float,
    # Log-space
    safe_log,
    # Aggregates
    column_means,
    mean,
    # Utilities
    clamp,
    # Validation
    validate_in_range,
    validate_non_negative,
    validate_positive,
)

# Pope approximation
from src.core.math.pope import (
    F_CLAMP_DEFAULT,
    calculate_abundance_from_catch,
    cohort_back_step,
    estimate_f_from_catch,
    pope_catch,
    terminal_abundance,
)

# Nelder-Mead
from src.core.math.nelder_mead import (
    INITIAL_SIMPLEX_STEP,
    NelderMeadOptions,
    NelderMeadResult,
    minimize,
)

__all__ = [
    # Numerical Safeguards — Epsilon constants
    "EPS_CALC",
    # Numerical Safeguards — Safe division
    "safe_divide",
    # Numerical Safeguards — NaN/Inf sanitization
    "all_finite",
    "is_valid_float",
    "sanitize_float",
    # Numerical Safeguards — Log-space
    "safe_log",
    # Numerical Safeguards — Aggregates
    "column_means",
    "mean",
    # Numerical Safeguards — Utilities
    "clamp",
    # Numerical Safeguards — Validation
    "validate_in_range",
    "validate_non_negative",
    "validate_positive",
    # Pope — Constants
    "F_CLAMP_DEFAULT",
    # Pope — Functions
    "calculate_abundance_from_catch",
    "cohort_back_step",
    "estimate_f_from_catch",
    "pope_catch",
    "terminal_abundance",
    # Nelder-Mead
    "INITIAL_SIMPLEX_STEP",
    "NelderMeadOptions",
    "NelderMeadResult",
    "minimize",
]
