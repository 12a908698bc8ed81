"""
Errors — Иерархия исключений движка оценки запаса

Классификация ошибок:
- ShapeError: несовпадение размерностей матрицы/вектора (всегда фатально)
- OutOfRangeError: обращение за пределами объявленного домена (год/возраст)
- InsufficientDataError: слишком мало валидных наблюдений / ретроспективных peel
- UnitConversionError: конверсия между несовместимыми единицами

Вырожденные численные условия (улов больше запаса, неположительные
значения в log-пространстве) исключениями НЕ являются: они клэмпятся или
пропускаются с warning в логе.
"""


class AssessmentError(Exception):
    """Базовое исключение движка оценки запаса."""


class ShapeError(AssessmentError):
    """Размерность данных не соответствует объявленным диапазонам."""


class OutOfRangeError(AssessmentError, IndexError):
    """
    Обращение к матрице за пределами объявленного домена.

    Сообщение всегда содержит ошибочное значение и допустимый интервал.
    """

    def __init__(self, coordinate: str, value: int, lower: int, upper: int):
        self.coordinate = coordinate
        self.value = value
        self.lower = lower
        self.upper = upper
        super().__init__(
            f"{coordinate} {value} is out of range (valid: {lower}..{upper})"
        )


class InsufficientDataError(AssessmentError):
    """Недостаточно валидных данных для расчёта (диагностика не выполнима)."""


class UnitConversionError(AssessmentError, ValueError):
    """Конверсия между единицами разной размерности или неизвестная единица."""
