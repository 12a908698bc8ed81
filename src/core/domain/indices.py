"""
AbundanceIndex — Модель индекса обилия (съёмка / CPUE / продукция икры)

Immutable Pydantic модель наблюдаемого временного ряда. Вид индекса (kind)
определяет, какую величину VPA он отслеживает:
- AGE0_ABUNDANCE   → численность возраста 0
- AGE1_ABUNDANCE   → численность возраста 1
- SPAWNING_BIOMASS → нерестовая биомасса (SSB), b фиксирован = 1
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator


# =============================================================================
# ENUMS
# =============================================================================


class IndexKind(str, Enum):
    """Величина VPA, которую отслеживает индекс"""

    AGE0_ABUNDANCE = "age0_abundance"
    AGE1_ABUNDANCE = "age1_abundance"
    SPAWNING_BIOMASS = "spawning_biomass"

    @property
    def target_age(self) -> int | None:
        """Возраст, численность которого отслеживается (None для SSB)."""
        if self is IndexKind.AGE0_ABUNDANCE:
            return 0
        if self is IndexKind.AGE1_ABUNDANCE:
            return 1
        return None

    @property
    def fixed_b(self) -> bool:
        """SSB считается линейно пропорциональной индексу (b = 1)."""
        return self is IndexKind.SPAWNING_BIOMASS


# =============================================================================
# MODELS
# =============================================================================


class AbundanceIndex(BaseModel):
    """
    Наблюдаемый индекс обилия за непрерывный диапазон лет.

    observations[i] относится к году start_year + i.
    """

    name: str = Field(..., min_length=1, description="Уникальное имя индекса")
    kind: IndexKind = Field(..., description="Отслеживаемая величина VPA")
    start_year: int = Field(..., description="Первый год наблюдений")
    end_year: int = Field(..., description="Последний год наблюдений")
    observations: tuple[float, ...] = Field(
        ..., min_length=1, description="Значения индекса по годам"
    )

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_years(self) -> "AbundanceIndex":
        if self.end_year < self.start_year:
            raise ValueError(
                f"end_year {self.end_year} must be >= start_year {self.start_year}"
            )
        expected = self.end_year - self.start_year + 1
        if len(self.observations) != expected:
            raise ValueError(
                f"observations length {len(self.observations)} does not match "
                f"year count {expected} ({self.start_year}..{self.end_year})"
            )
        return self

    def years(self) -> range:
        return range(self.start_year, self.end_year + 1)

    def observation(self, year: int) -> float | None:
        """Наблюдение за год или None, если год вне ряда."""
        if not self.start_year <= year <= self.end_year:
            return None
        return self.observations[year - self.start_year]

    def truncated(self, end_year: int) -> Optional["AbundanceIndex"]:
        """
        Новый индекс, обрезанный до end_year.

        Returns:
            None если после обрезки наблюдений не остаётся
        """
        if end_year < self.start_year:
            return None
        if end_year >= self.end_year:
            return self
        n = end_year - self.start_year + 1
        return self.model_copy(
            update={"end_year": end_year, "observations": self.observations[:n]}
        )


@dataclass(frozen=True)
class IndexParameters:
    """
    Параметры связи индекса с величиной VPA: I = q · X^b

    q — коэффициент уловистости (catchability)
    b — показатель нелинейности (1 = пропорциональность)
    """

    q: float
    b: float
