"""
Domain models and value objects.

Contains fundamental domain entities: units, AgeYearMatrix, natural mortality,
abundance indices and calculation results.
"""

from src.core.domain.age_year_matrix import AgeRange, AgeYearMatrix, YearRange
from src.core.domain.errors import (
    AssessmentError,
    InsufficientDataError,
    OutOfRangeError,
    ShapeError,
    UnitConversionError,
)
from src.core.domain.indices import AbundanceIndex, IndexKind, IndexParameters
from src.core.domain.mortality import (
    FixedValue,
    NaturalMortality,
    NormalDistribution,
    age_specific_mortality,
    constant_mortality,
    mean_mortality,
)
from src.core.domain.results import (
    MohnsRho,
    ObjectiveValue,
    RetrospectiveResult,
    TerminalF,
    VPAResult,
)
from src.core.domain.units import (
    Dimension,
    Unit,
    biomass_tonnes,
    conversion_factor,
    convert,
    format_value,
)

__all__ = [
    # Units module
    "Dimension",
    "Unit",
    "biomass_tonnes",
    "conversion_factor",
    "convert",
    "format_value",
    # Errors
    "AssessmentError",
    "InsufficientDataError",
    "OutOfRangeError",
    "ShapeError",
    "UnitConversionError",
    # Age-year matrix
    "AgeRange",
    "AgeYearMatrix",
    "YearRange",
    # Natural mortality
    "FixedValue",
    "NaturalMortality",
    "NormalDistribution",
    "age_specific_mortality",
    "constant_mortality",
    "mean_mortality",
    # Abundance indices
    "AbundanceIndex",
    "IndexKind",
    "IndexParameters",
    # Results
    "MohnsRho",
    "ObjectiveValue",
    "RetrospectiveResult",
    "TerminalF",
    "VPAResult",
]
