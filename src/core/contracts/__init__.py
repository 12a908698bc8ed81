"""
Contract Validation Module

Модуль для валидации JSON контрактов оценки запаса.
"""

from .validators import (
    AssessmentRequestValidator,
    AssessmentResultValidator,
    ContractValidator,
    SchemaLoader,
    validate_assessment_request,
    validate_assessment_result,
)

__all__ = [
    # Classes
    "SchemaLoader",
    "ContractValidator",
    "AssessmentRequestValidator",
    "AssessmentResultValidator",
    # Functions
    "validate_assessment_request",
    "validate_assessment_result",
]
