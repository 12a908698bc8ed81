"""
Тесты для ретроспективного анализа и Mohn's ρ

Проверяемые свойства:
1. Mohn's ρ по ручному расчёту (SSB +10%, R −10%, F̄ +10% → overall 0.1)
2. < 2 результатов / нет peel = 0 → InsufficientDataError
3. Peel, оставляющий < 5 лет, прекращает цикл
4. Ошибка отдельного peel пропускается с warning
5. Подбор λ: кандидаты отсортированы по overall ρ
"""

import logging

import pytest

from src.core.domain.errors import InsufficientDataError
from src.core.domain.indices import AbundanceIndex, IndexKind
from src.core.domain.results import MohnsRho, RetrospectiveResult
from src.retrospective.analysis import (
    DEFAULT_LAMBDA_GRID,
    LambdaOptimizationResult,
    RetrospectiveConfig,
    calculate_mohns_rho,
    evaluate_lambda,
    optimize_lambda,
    run_retrospective,
)
from src.tuning.tuning_vpa import TuningConfig, TuningInputs

FAST_TUNING = TuningConfig(max_iterations=60, tolerance=1e-4)


def reference_result() -> RetrospectiveResult:
    """Полный ряд 2016-2020."""
    return RetrospectiveResult(
        peel=0,
        end_year=2020,
        spawning_biomass=(100.0, 110.0, 120.0, 130.0, 140.0),
        recruitment=(50.0, 60.0, 70.0, 80.0, 90.0),
        f_by_age=((0.2, 0.4),) * 5,
    )


def peeled_result(peel: int) -> RetrospectiveResult:
    """Последний год peel: SSB +10%, R −10%, F̄ +10% относительно полного ряда."""
    reference = reference_result()
    n = len(reference.spawning_biomass) - peel
    ssb = reference.spawning_biomass[:n]
    recruitment = reference.recruitment[:n]
    return RetrospectiveResult(
        peel=peel,
        end_year=2020 - peel,
        spawning_biomass=ssb[:-1] + (ssb[-1] * 1.1,),
        recruitment=recruitment[:-1] + (recruitment[-1] * 0.9,),
        f_by_age=((0.2, 0.4),) * (n - 1) + ((0.22, 0.44),),
    )


# =============================================================================
# ТЕСТЫ: Mohn's ρ
# =============================================================================


class TestMohnsRho:
    """calculate_mohns_rho"""

    def test_hand_computed(self):
        rho = calculate_mohns_rho([reference_result(), peeled_result(1), peeled_result(2)])
        assert isinstance(rho, MohnsRho)
        assert rho.spawning_biomass == pytest.approx(0.1)
        assert rho.recruitment == pytest.approx(-0.1)
        assert rho.mean_f == pytest.approx(0.1)
        assert rho.overall == pytest.approx(0.1)

    def test_order_independent(self):
        results = [peeled_result(2), reference_result(), peeled_result(1)]
        assert calculate_mohns_rho(results).overall == pytest.approx(0.1)

    def test_start_year(self):
        assert reference_result().start_year == 2016
        assert peeled_result(2).start_year == 2016

    def test_zero_reference_counts_as_zero_bias(self):
        """Неположительный эталон: слагаемое 0, сравнение учитывается."""
        reference = reference_result()
        zeroed = RetrospectiveResult(
            peel=0,
            end_year=2020,
            spawning_biomass=(100.0, 110.0, 120.0, 0.0, 140.0),
            recruitment=reference.recruitment,
            f_by_age=reference.f_by_age,
        )
        rho = calculate_mohns_rho([zeroed, peeled_result(1), peeled_result(2)])
        assert rho.spawning_biomass == pytest.approx(0.05)

    def test_single_result(self):
        with pytest.raises(InsufficientDataError, match="at least 2"):
            calculate_mohns_rho([reference_result()])

    def test_missing_full_data_result(self):
        with pytest.raises(InsufficientDataError, match="peel = 0"):
            calculate_mohns_rho([peeled_result(1), peeled_result(2)])

    def test_comparison_outside_reference(self, caplog):
        outside = RetrospectiveResult(
            peel=1,
            end_year=2025,
            spawning_biomass=(1.0,),
            recruitment=(1.0,),
            f_by_age=((0.1, 0.1),),
        )
        with caplog.at_level(logging.WARNING):
            with pytest.raises(InsufficientDataError, match="No valid retrospective comparisons"):
                calculate_mohns_rho([reference_result(), outside])
        assert "outside the reference range" in caplog.text


# =============================================================================
# ТЕСТЫ: Ретроспективный анализ
# =============================================================================


class TestRetrospectiveConfig:
    """Валидация конфигурации."""

    def test_defaults(self):
        config = RetrospectiveConfig()
        assert config.max_peel == 5
        assert config.min_years == 5
        assert config.lambda_grid == DEFAULT_LAMBDA_GRID

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_peel": 0},
            {"min_years": 0},
            {"lambda_grid": ()},
            {"lambda_grid": (0.5, 1.5)},
            {"n_jobs": 0},
        ],
    )
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            RetrospectiveConfig(**kwargs)


class TestRunRetrospective:
    """Peels на синтетическом запасе (8 лет)."""

    def test_stops_before_five_years(self, synthetic_stock, caplog):
        """8 лет, max_peel = 5: peels 0..3, peel 4 оставил бы 4 года."""
        config = RetrospectiveConfig(max_peel=5, tuning=FAST_TUNING)
        with caplog.at_level(logging.WARNING):
            results = run_retrospective(synthetic_stock.tuning_inputs(), 0.45, config)
        assert [r.peel for r in results] == [0, 1, 2, 3]
        assert [r.end_year for r in results] == [2017, 2016, 2015, 2014]
        assert len(results[3].spawning_biomass) == 5
        assert "Stopping retrospective at peel 4" in caplog.text

    def test_rho_from_synthetic_peels(self, synthetic_stock):
        config = RetrospectiveConfig(max_peel=2, tuning=FAST_TUNING)
        results = run_retrospective(synthetic_stock.tuning_inputs(), 0.45, config)
        rho = calculate_mohns_rho(results)
        assert rho.overall >= 0
        assert rho.overall == pytest.approx(
            (abs(rho.spawning_biomass) + abs(rho.recruitment) + abs(rho.mean_f)) / 3
        )

    def test_failed_peel_skipped(self, synthetic_stock, caplog):
        """Индекс из одного года ломает только peel 0 (в peel 1 он отбрасывается)."""
        late = AbundanceIndex(
            name="late_survey",
            kind=IndexKind.AGE1_ABUNDANCE,
            start_year=2017,
            end_year=2017,
            observations=(5.0,),
        )
        inputs = TuningInputs(
            synthetic_stock.vpa_inputs(),
            synthetic_stock.indices + (late,),
            synthetic_stock.recent_f_rows(),
        )
        config = RetrospectiveConfig(max_peel=2, tuning=FAST_TUNING)
        with caplog.at_level(logging.WARNING):
            results = run_retrospective(inputs, 0.45, config)
        assert [r.peel for r in results] == [1, 2]
        assert "Retrospective peel 0 failed" in caplog.text

    def test_short_series_has_no_peels(self, short_stock):
        config = RetrospectiveConfig(max_peel=3, tuning=FAST_TUNING)
        results = run_retrospective(short_stock.tuning_inputs(), 0.45, config)
        assert [r.peel for r in results] == [0]

    def test_invalid_lambda(self, synthetic_stock):
        with pytest.raises(ValueError):
            run_retrospective(synthetic_stock.tuning_inputs(), 1.5)


# =============================================================================
# ТЕСТЫ: Подбор λ
# =============================================================================


class TestOptimizeLambda:
    """optimize_lambda / evaluate_lambda"""

    def test_two_candidates(self, synthetic_stock):
        config = RetrospectiveConfig(max_peel=1, lambda_grid=(0.0, 1.0), tuning=FAST_TUNING)
        result = optimize_lambda(synthetic_stock.tuning_inputs(), config)
        assert isinstance(result, LambdaOptimizationResult)
        assert result.best_lambda in (0.0, 1.0)
        assert result.candidates[0].ridge_lambda == result.best_lambda
        assert result.mohns_rho == result.candidates[0].mohns_rho
        overall = [c.mohns_rho.overall for c in result.candidates]
        assert overall == sorted(overall)

    def test_parallel_matches_sequential(self, synthetic_stock):
        """n_jobs=2 (joblib workers) даёт тот же результат, что и n_jobs=1."""
        grid = (0.0, 0.45, 0.9)
        sequential = optimize_lambda(
            synthetic_stock.tuning_inputs(),
            RetrospectiveConfig(max_peel=2, lambda_grid=grid, n_jobs=1, tuning=FAST_TUNING),
        )
        parallel = optimize_lambda(
            synthetic_stock.tuning_inputs(),
            RetrospectiveConfig(max_peel=2, lambda_grid=grid, n_jobs=2, tuning=FAST_TUNING),
        )
        assert parallel.best_lambda == sequential.best_lambda
        assert parallel.mohns_rho == sequential.mohns_rho
        assert [c.ridge_lambda for c in parallel.candidates] == [
            c.ridge_lambda for c in sequential.candidates
        ]
        assert parallel.candidates == sequential.candidates

    def test_evaluate_lambda_short_series(self, short_stock):
        config = RetrospectiveConfig(max_peel=1, lambda_grid=(0.5,), tuning=FAST_TUNING)
        assert evaluate_lambda(short_stock.tuning_inputs(), 0.5, config) is None

    def test_no_valid_candidate(self, short_stock):
        config = RetrospectiveConfig(max_peel=1, lambda_grid=(0.0, 0.5), tuning=FAST_TUNING)
        with pytest.raises(InsufficientDataError, match="No lambda candidate"):
            optimize_lambda(short_stock.tuning_inputs(), config)
