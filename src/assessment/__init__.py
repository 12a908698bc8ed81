"""Assessment — единая точка входа оценки запаса и её конфигурация."""

from .config import (
    AssessmentRequest,
    MatrixPayload,
    ProjectionSettings,
    TuningSettings,
    YearWindow,
)
from .pipeline import AssessmentResult, run_assessment

__all__ = [
    "AssessmentRequest",
    "AssessmentResult",
    "MatrixPayload",
    "ProjectionSettings",
    "TuningSettings",
    "YearWindow",
    "run_assessment",
]
