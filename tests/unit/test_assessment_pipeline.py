"""
Тесты для единой точки входа оценки (run_assessment) и CLI

Проверяемые свойства:
1. Запрос: JSON Schema → Pydantic → входы стадий
2. Фиксированный λ: ridge VPA + диагностика Mohn's ρ
3. λ = "auto": подбор по сетке
4. Недостаточно лет для ретроспективы → mohns_rho = None, оценка продолжается
5. Результат соответствует контракту assessment_result.json
6. CLI: коды возврата 0 / 1 / 2
"""

import json

import pytest
from jsonschema import ValidationError as SchemaValidationError
from pydantic import ValidationError

from src.assessment.__main__ import main
from src.assessment.config import (
    DEFAULT_PROJECTION_HORIZON,
    AssessmentRequest,
    ProjectionSettings,
    TuningSettings,
)
from src.assessment.pipeline import AssessmentResult, run_assessment
from src.core.contracts import validate_assessment_request, validate_assessment_result
from src.core.domain.units import Unit


# =============================================================================
# ТЕСТЫ: Запрос
# =============================================================================


class TestAssessmentRequest:
    """AssessmentRequest / TuningSettings"""

    def test_from_dict(self, synthetic_stock):
        request = AssessmentRequest.from_dict(synthetic_stock.request_payload())
        inputs = request.vpa_inputs()
        assert inputs.catch_at_age == synthetic_stock.catch
        assert inputs.mortality_row() == (0.4,) * 5
        assert request.harvest_rule.target_f == 0.4
        assert request.projection.horizon == 5

    def test_to_dict_matches_contract(self, synthetic_stock):
        request = AssessmentRequest.from_dict(synthetic_stock.request_payload())
        payload = request.to_dict()
        validate_assessment_request(payload)
        assert AssessmentRequest.from_dict(payload) == request

    def test_per_age_mortality(self, synthetic_stock):
        payload = synthetic_stock.request_payload()
        payload["natural_mortality"] = [0.6, 0.5, 0.4]
        request = AssessmentRequest.from_dict(payload)
        assert request.vpa_inputs().mortality_row() == (0.6, 0.5, 0.4, 0.4, 0.4)

    def test_recent_f_years(self, synthetic_stock):
        payload = synthetic_stock.request_payload(recent_f_years=2)
        payload["recent_f"] = [[0.1] * 5, [0.2] * 5, [0.3] * 5]
        inputs = AssessmentRequest.from_dict(payload).tuning_inputs()
        assert inputs.recent_f_rows == ((0.2,) * 5, (0.3,) * 5)

    def test_window(self, synthetic_stock):
        payload = synthetic_stock.request_payload(window={"start_year": 2012, "end_year": 2017})
        inputs = AssessmentRequest.from_dict(payload).tuning_inputs()
        assert tuple(inputs.tuning_window) == (2012, 2017)

    def test_schema_violation(self, synthetic_stock):
        payload = synthetic_stock.request_payload()
        payload["beta"] = 1.5
        with pytest.raises(SchemaValidationError):
            AssessmentRequest.from_dict(payload)

    def test_model_violation(self, synthetic_stock):
        """Порядок опорных точек проверяется моделью, а не схемой."""
        payload = synthetic_stock.request_payload()
        payload["harvest_rule"]["closure_threshold"] = 50.0
        with pytest.raises(ValidationError):
            AssessmentRequest.from_dict(payload)

    def test_inverted_window(self, synthetic_stock):
        payload = synthetic_stock.request_payload(window={"start_year": 2017, "end_year": 2012})
        with pytest.raises(ValidationError):
            AssessmentRequest.from_dict(payload)

    def test_tuning_settings(self):
        settings = TuningSettings(ridge_lambda="auto", max_peel=2, f_clamp=5.0)
        assert settings.auto_lambda
        assert settings.tuning_config().ridge_lambda == 0.45
        assert settings.tuning_config(0.3).ridge_lambda == 0.3
        assert settings.tuning_config().vpa.f_clamp == 5.0
        assert settings.retrospective_config().max_peel == 2

    def test_tuning_settings_invalid_lambda(self):
        with pytest.raises(ValidationError):
            TuningSettings(ridge_lambda=1.5)

    def test_projection_defaults(self):
        settings = ProjectionSettings()
        assert settings.horizon == DEFAULT_PROJECTION_HORIZON == 10
        assert settings.mean_recruitment is None


# =============================================================================
# ТЕСТЫ: run_assessment
# =============================================================================


class TestRunAssessment:
    """Полный прогон на синтетическом запасе."""

    def test_fixed_lambda(self, synthetic_stock):
        request = AssessmentRequest.from_dict(synthetic_stock.request_payload())
        result = run_assessment(request)

        assert isinstance(result, AssessmentResult)
        assert result.terminal_year == 2017
        assert result.abc_year == 2018
        assert result.lambda_used == 0.45
        assert result.unit is Unit.TONNES
        assert result.abc > 0
        assert result.f_recommended == 0.4
        assert len(result.projected_ssb) == 5
        assert result.projected_ssb[0] == pytest.approx(result.ssb_projected)
        assert result.mohns_rho is not None
        assert set(result.index_parameters) == {"recruit_survey", "spawner_survey"}
        assert result.f_current == pytest.approx(sum(result.terminal_f) / 5)

    def test_abc_bounded_by_beta(self, synthetic_stock):
        """ABC при β = 0.8 не превышает ABC при β = 1."""
        payload = synthetic_stock.request_payload()
        reduced = run_assessment(AssessmentRequest.from_dict(payload))
        payload["beta"] = 1.0
        full = run_assessment(AssessmentRequest.from_dict(payload))
        assert reduced.abc == pytest.approx(0.8 * full.abc)

    def test_auto_lambda(self, synthetic_stock):
        payload = synthetic_stock.request_payload(ridge_lambda="auto", lambda_grid=[0.0, 1.0])
        result = run_assessment(AssessmentRequest.from_dict(payload))
        assert result.lambda_used in (0.0, 1.0)
        assert result.mohns_rho is not None

    def test_short_series_without_diagnostics(self, short_stock):
        request = AssessmentRequest.from_dict(short_stock.request_payload())
        result = run_assessment(request)
        assert result.mohns_rho is None
        assert result.abc >= 0

    def test_result_contract(self, synthetic_stock):
        result = run_assessment(AssessmentRequest.from_dict(synthetic_stock.request_payload()))
        data = result.to_dict()
        validate_assessment_result(data)
        assert data["schema_version"] == "1"
        assert data["unit"] == "t"
        assert AssessmentResult.from_dict(data) == result
        assert result.formatted_abc().endswith(" t")


# =============================================================================
# ТЕСТЫ: CLI
# =============================================================================


class TestCommandLine:
    """python -m src.assessment"""

    def write_request(self, tmp_path, payload) -> str:
        path = tmp_path / "request.json"
        path.write_text(json.dumps(payload), encoding="utf-8")
        return str(path)

    def test_output_file(self, synthetic_stock, tmp_path):
        request = self.write_request(tmp_path, synthetic_stock.request_payload())
        output = tmp_path / "result.json"
        assert main([request, "--output", str(output), "--log-level", "WARNING"]) == 0
        data = json.loads(output.read_text(encoding="utf-8"))
        validate_assessment_result(data)

    def test_stdout(self, synthetic_stock, tmp_path, capsys):
        request = self.write_request(tmp_path, synthetic_stock.request_payload())
        assert main([request, "--log-level", "ERROR"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["terminal_year"] == 2017

    def test_invalid_request(self, synthetic_stock, tmp_path):
        payload = synthetic_stock.request_payload()
        del payload["beta"]
        assert main([self.write_request(tmp_path, payload)]) == 2

    def test_duplicate_index_names(self, synthetic_stock, tmp_path):
        """ValueError из проверки входов tuning → код 2, без traceback."""
        payload = synthetic_stock.request_payload()
        payload["indices"][1]["name"] = payload["indices"][0]["name"]
        assert main([self.write_request(tmp_path, payload)]) == 2

    def test_assessment_error(self, synthetic_stock, tmp_path):
        """recent_f неверной длины → ShapeError → код 1."""
        payload = synthetic_stock.request_payload()
        payload["recent_f"] = [[0.1, 0.2]]
        assert main([self.write_request(tmp_path, payload)]) == 1
