"""
Тесты для оптимизатора Nelder-Mead

Проверяемые свойства:
1. Квадратичная функция: минимум (3, 2) с точностью 0.1 за <= 200 итераций
2. Rosenbrock: значение < 0.1 за <= 1000 итераций
3. Несходимость — warning и лучшая найденная точка, не исключение
"""

import logging

import pytest

from src.core.math.nelder_mead import NelderMeadOptions, NelderMeadResult, minimize


def quadratic(x):
    return (x[0] - 3) ** 2 + (x[1] - 2) ** 2


def rosenbrock(x):
    return (1 - x[0]) ** 2 + 100 * (x[1] - x[0] ** 2) ** 2


class TestMinimize:
    """Сходимость на эталонных функциях."""

    def test_quadratic(self):
        result = minimize(quadratic, [0.0, 0.0], NelderMeadOptions(max_iterations=200))
        assert result.optimum[0] == pytest.approx(3.0, abs=0.1)
        assert result.optimum[1] == pytest.approx(2.0, abs=0.1)
        assert result.iterations <= 200

    def test_rosenbrock(self):
        result = minimize(rosenbrock, [-1.2, 1.0], NelderMeadOptions(max_iterations=1000))
        assert result.value < 0.1
        assert result.iterations <= 1000

    def test_five_dimensions(self):
        """Пятимерная задача (размерность вектора терминальной F)."""
        target = (0.2, 0.4, 0.6, 0.5, 0.5)

        def f(x):
            return sum((a - b) ** 2 for a, b in zip(x, target))

        result = minimize(f, [0.3] * 5, NelderMeadOptions(max_iterations=2000, tolerance=1e-10))
        for value, expected in zip(result.optimum, target):
            assert value == pytest.approx(expected, abs=0.01)

    def test_value_not_worse_than_start(self):
        x0 = [5.0, -4.0]
        result = minimize(quadratic, x0)
        assert result.value <= quadratic(x0)

    def test_start_at_optimum(self):
        result = minimize(quadratic, [3.0, 2.0], NelderMeadOptions(max_iterations=500))
        assert result.value == pytest.approx(0.0, abs=1e-4)

    def test_one_dimension(self):
        result = minimize(lambda x: (x[0] + 1.5) ** 2, [0.0])
        assert result.optimum[0] == pytest.approx(-1.5, abs=0.01)

    def test_empty_start_rejected(self):
        with pytest.raises(ValueError, match="at least one dimension"):
            minimize(quadratic, [])


class TestNonConvergence:
    """Исчерпание итераций — warning, результат возвращается."""

    def test_max_iterations_reached(self, caplog):
        with caplog.at_level(logging.WARNING, logger="src.core.math.nelder_mead"):
            result = minimize(rosenbrock, [-1.2, 1.0], NelderMeadOptions(max_iterations=3))
        assert isinstance(result, NelderMeadResult)
        assert not result.converged
        assert result.iterations == 3
        assert "without convergence" in caplog.text

    def test_converged_flag(self):
        result = minimize(quadratic, [0.0, 0.0], NelderMeadOptions(max_iterations=500))
        assert result.converged


class TestOptions:
    """Валидация параметров."""

    def test_defaults(self):
        opts = NelderMeadOptions()
        assert (opts.alpha, opts.beta, opts.gamma, opts.delta) == (1.0, 2.0, 0.5, 0.5)
        assert opts.initial_step == 0.1

    def test_invalid_tolerance(self):
        with pytest.raises(ValueError, match="tolerance"):
            NelderMeadOptions(tolerance=0.0)

    def test_negative_iterations(self):
        with pytest.raises(ValueError, match="max_iterations"):
            NelderMeadOptions(max_iterations=-1)
