"""
Assessment Request — Конфигурация одного прогона оценки запаса

Immutable Pydantic модели внешнего запроса. Словарь запроса сначала
проверяется JSON Schema контрактом (assessment_request.json), затем
разбирается в модели; модели строят входы расчётных стадий.
"""

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from src.core.contracts import validate_assessment_request
from src.core.domain.age_year_matrix import AgeRange, AgeYearMatrix, YearRange
from src.core.domain.indices import AbundanceIndex
from src.core.domain.mortality import (
    NaturalMortality,
    age_specific_mortality,
    constant_mortality,
)
from src.core.domain.units import Unit
from src.core.math.pope import F_CLAMP_DEFAULT
from src.projection.harvest_rule import HarvestControlRule
from src.retrospective.analysis import (
    DEFAULT_LAMBDA_GRID,
    DEFAULT_MAX_PEEL,
    RetrospectiveConfig,
)
from src.tuning.tuning_vpa import (
    DEFAULT_RECENT_F_YEARS,
    DEFAULT_RIDGE_LAMBDA,
    DEFAULT_TUNING_MAX_ITERATIONS,
    DEFAULT_TUNING_TOLERANCE,
    TuningConfig,
    TuningInputs,
)
from src.vpa.backward import VPAConfig, VPAInputs

SCHEMA_VERSION = "1"

DEFAULT_PROJECTION_HORIZON = 10


# =============================================================================
# MATRIX PAYLOAD
# =============================================================================


class MatrixPayload(BaseModel):
    """AgeYearMatrix в виде JSON-совместимого словаря."""

    unit: Unit = Field(..., description="Единица измерения")
    start_year: int = Field(..., description="Первый год")
    end_year: int = Field(..., description="Последний год")
    min_age: int = Field(..., ge=0, description="Младший возраст")
    max_age: int = Field(..., ge=0, description="Старший возраст (plus group)")
    data: tuple[tuple[float, ...], ...] = Field(..., description="Строки по годам")

    model_config = {"frozen": True}

    def to_matrix(self) -> AgeYearMatrix:
        """
        Raises:
            ShapeError: размеры data не совпадают с диапазонами
        """
        return AgeYearMatrix.create(
            self.unit,
            YearRange(self.start_year, self.end_year),
            AgeRange(self.min_age, self.max_age),
            self.data,
        )

    @classmethod
    def from_matrix(cls, matrix: AgeYearMatrix) -> "MatrixPayload":
        return cls(
            unit=matrix.unit,
            start_year=matrix.year_range.start_year,
            end_year=matrix.year_range.end_year,
            min_age=matrix.age_range.min_age,
            max_age=matrix.age_range.max_age,
            data=matrix.data,
        )


# =============================================================================
# SETTINGS
# =============================================================================


class YearWindow(BaseModel):
    start_year: int
    end_year: int

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_order(self) -> "YearWindow":
        if self.end_year < self.start_year:
            raise ValueError(
                f"window end_year {self.end_year} must be >= start_year {self.start_year}"
            )
        return self


class TuningSettings(BaseModel):
    """Настройки ridge VPA, ретроспективы и подбора λ."""

    ridge_lambda: float | Literal["auto"] = Field(
        default=DEFAULT_RIDGE_LAMBDA, description="λ ∈ [0, 1] или 'auto' (подбор по Mohn's ρ)"
    )
    lambda_grid: tuple[float, ...] = Field(default=DEFAULT_LAMBDA_GRID, min_length=1)
    max_peel: int = Field(default=DEFAULT_MAX_PEEL, ge=1)
    max_iterations: int = Field(default=DEFAULT_TUNING_MAX_ITERATIONS, ge=1)
    tolerance: float = Field(default=DEFAULT_TUNING_TOLERANCE, gt=0)
    f_clamp: float = Field(default=F_CLAMP_DEFAULT, gt=0)
    n_jobs: int = Field(default=1, description="Параллельность подбора λ (joblib)")
    recent_f_years: int = Field(default=DEFAULT_RECENT_F_YEARS, ge=1)
    window: Optional[YearWindow] = Field(default=None, description="Окно сопоставления индексов")

    model_config = {"frozen": True}

    @field_validator("ridge_lambda")
    @classmethod
    def validate_lambda(cls, value: float | str) -> float | str:
        if value != "auto" and not 0.0 <= value <= 1.0:
            raise ValueError(f"ridge_lambda must be in [0, 1] or 'auto', got {value}")
        return value

    @field_validator("lambda_grid")
    @classmethod
    def validate_grid(cls, value: tuple[float, ...]) -> tuple[float, ...]:
        for v in value:
            if not 0.0 <= v <= 1.0:
                raise ValueError(f"lambda_grid values must be in [0, 1], got {v}")
        return value

    @property
    def auto_lambda(self) -> bool:
        return self.ridge_lambda == "auto"

    def tuning_config(self, ridge_lambda: float | None = None) -> TuningConfig:
        if ridge_lambda is None:
            ridge_lambda = DEFAULT_RIDGE_LAMBDA if self.auto_lambda else self.ridge_lambda
        return TuningConfig(
            ridge_lambda=ridge_lambda,
            max_iterations=self.max_iterations,
            tolerance=self.tolerance,
            vpa=VPAConfig(f_clamp=self.f_clamp),
        )

    def retrospective_config(self) -> RetrospectiveConfig:
        return RetrospectiveConfig(
            max_peel=self.max_peel,
            lambda_grid=self.lambda_grid,
            n_jobs=self.n_jobs,
            tuning=self.tuning_config(),
        )


class ProjectionSettings(BaseModel):
    """Настройки прогноза."""

    horizon: int = Field(default=DEFAULT_PROJECTION_HORIZON, ge=1)
    mean_recruitment: Optional[float] = Field(
        default=None, ge=0, description="R̄ (default: среднее историческое пополнение VPA)"
    )
    recruitment_residuals: tuple[float, ...] = Field(default=())

    model_config = {"frozen": True}


# =============================================================================
# REQUEST
# =============================================================================


class AssessmentRequest(BaseModel):
    """
    Полный запрос оценки запаса.

    recent_f — строки F по возрастам за последние завершённые годы
    (от старых к новым); используются последние tuning.recent_f_years строк.
    """

    schema_version: Literal["1"] = SCHEMA_VERSION
    catch_at_age: MatrixPayload
    weight_at_age: MatrixPayload
    maturity_at_age: MatrixPayload
    natural_mortality: float | tuple[float, ...] = Field(
        ..., description="M (константа или по возрастам начиная с min_age)"
    )
    indices: tuple[AbundanceIndex, ...] = Field(default=())
    recent_f: tuple[tuple[float, ...], ...] = Field(..., min_length=1)
    tuning: TuningSettings = Field(default_factory=TuningSettings)
    projection: ProjectionSettings = Field(default_factory=ProjectionSettings)
    harvest_rule: HarvestControlRule
    beta: float = Field(..., gt=0, le=1, description="Коэффициент осторожности β")

    model_config = {"frozen": True}

    @field_validator("natural_mortality")
    @classmethod
    def validate_mortality(cls, value: float | tuple[float, ...]) -> float | tuple[float, ...]:
        values = value if isinstance(value, tuple) else (value,)
        if not values:
            raise ValueError("natural_mortality must not be empty")
        for m in values:
            if m < 0:
                raise ValueError(f"natural_mortality must be non-negative, got {m}")
        return value

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AssessmentRequest":
        """
        Raises:
            jsonschema.ValidationError: словарь не соответствует контракту
            pydantic.ValidationError: нарушены ограничения моделей
        """
        validate_assessment_request(data)
        return cls.model_validate(data)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)

    # -------------------------------------------------------------------------
    # Входы стадий
    # -------------------------------------------------------------------------

    def mortality(self) -> NaturalMortality:
        if isinstance(self.natural_mortality, tuple):
            return age_specific_mortality(self.natural_mortality, self.catch_at_age.min_age)
        return constant_mortality(self.natural_mortality)

    def vpa_inputs(self) -> VPAInputs:
        return VPAInputs(
            catch_at_age=self.catch_at_age.to_matrix(),
            weight_at_age=self.weight_at_age.to_matrix(),
            maturity_at_age=self.maturity_at_age.to_matrix(),
            mortality=self.mortality(),
        )

    def tuning_inputs(self, vpa_inputs: VPAInputs | None = None) -> TuningInputs:
        window = None
        if self.tuning.window is not None:
            window = YearRange(self.tuning.window.start_year, self.tuning.window.end_year)
        return TuningInputs(
            vpa_inputs=vpa_inputs or self.vpa_inputs(),
            indices=self.indices,
            recent_f_rows=self.recent_f[-self.tuning.recent_f_years:],
            window=window,
        )
