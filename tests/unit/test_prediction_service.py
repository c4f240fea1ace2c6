"""
Unit Tests for the Prediction Service

Tests that predictions are computed, labelled and audited, and that audit
failures never change what the caller receives.
"""
import time

import pytest

from cancercare.database.database import StorageUnavailableError
from cancercare.models.prediction_models import (
    DrugResponsePredictionRequest,
    SurvivalPredictionRequest,
)
from cancercare.services.prediction_service import PredictionService


class FailingRecorder:
    def __init__(self):
        self.calls = 0

    def record_prediction(self, *args, **kwargs):
        self.calls += 1
        raise StorageUnavailableError("Database not available")


class SlowRecorder:
    def __init__(self, delay: float):
        self.delay = delay

    def record_prediction(self, *args, **kwargs):
        time.sleep(self.delay)
        return {}


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def survival_request() -> SurvivalPredictionRequest:
    """Reference survival profile attached to a patient."""
    return SurvivalPredictionRequest(
        patient_id="42",
        age=72,
        gender="Male",
        cancer_type="Pancreatic",
        stage="IV",
        performance_status=3,
    )


@pytest.fixture
def drug_request() -> DrugResponsePredictionRequest:
    return DrugResponsePredictionRequest(
        patient_id="42",
        age=45,
        cancer_type="Lung",
        stage="I",
        drug_name="Cisplatin",
        prior_treatments=0,
    )


# ============================================================================
# Tests
# ============================================================================

class TestSurvivalPrediction:
    """Tests for PredictionService.predict_survival."""

    @pytest.mark.asyncio
    async def test_response_fields(self, repository, tables, fixed_rng, survival_request):
        service = PredictionService(recorder=repository, tables=tables, rng=fixed_rng)

        response = await service.predict_survival(survival_request)

        assert response.predicted_survival_rate == 5.0
        assert response.confidence == 0.9
        assert len(response.risk_factors) == 4
        assert response.model_used == "Survival Prediction Model v2.1"
        assert response.prediction_date.tzinfo is not None

    @pytest.mark.asyncio
    async def test_audit_record_written(self, repository, tables, fixed_rng, survival_request):
        service = PredictionService(recorder=repository, tables=tables, rng=fixed_rng)

        response = await service.predict_survival(survival_request)

        assert len(repository.recorded) == 1
        record = repository.recorded[0]
        assert record["patient_id"] == "42"
        assert record["model_name"] == "Survival Prediction Model v2.1"
        assert record["prediction_type"] == "5-Year Survival Rate"
        assert record["value"] == response.predicted_survival_rate
        assert record["confidence"] == response.confidence
        assert record["factors"] == response.risk_factors
        assert record["inputs"]["cancerType"] == "Pancreatic"
        assert record["inputs"]["performanceStatus"] == 3

    @pytest.mark.asyncio
    async def test_no_audit_without_patient(self, repository, tables, fixed_rng):
        service = PredictionService(recorder=repository, tables=tables, rng=fixed_rng)
        request = SurvivalPredictionRequest(
            age=55, gender="Female", cancer_type="Breast", stage="II", performance_status=0
        )

        response = await service.predict_survival(request)

        assert response.predicted_survival_rate == 70.0
        assert repository.recorded == []

    @pytest.mark.asyncio
    async def test_failing_audit_does_not_change_result(self, tables, fixed_rng, survival_request):
        recorder = FailingRecorder()
        audited = PredictionService(recorder=recorder, tables=tables, rng=fixed_rng)
        unaudited = PredictionService(recorder=None, tables=tables, rng=fixed_rng)

        response = await audited.predict_survival(survival_request)
        expected = await unaudited.predict_survival(survival_request)

        assert recorder.calls == 1
        assert response.predicted_survival_rate == expected.predicted_survival_rate
        assert response.confidence == expected.confidence
        assert response.risk_factors == expected.risk_factors

    @pytest.mark.asyncio
    async def test_slow_audit_is_bounded(self, tables, fixed_rng, survival_request):
        service = PredictionService(
            recorder=SlowRecorder(delay=1.0),
            tables=tables,
            audit_timeout_seconds=0.05,
            rng=fixed_rng,
        )

        start = time.perf_counter()
        response = await service.predict_survival(survival_request)
        elapsed = time.perf_counter() - start

        assert response.predicted_survival_rate == 5.0
        assert elapsed < 0.9


class TestDrugResponsePrediction:
    """Tests for PredictionService.predict_drug_response."""

    @pytest.mark.asyncio
    async def test_response_fields(self, repository, tables, fixed_rng, drug_request):
        service = PredictionService(recorder=repository, tables=tables, rng=fixed_rng)

        response = await service.predict_drug_response(drug_request)

        assert response.predicted_response_rate == 70.0
        assert response.confidence == 0.88
        assert response.recommendations == [
            "Moderate response expected",
            "Consider combination therapy",
        ]
        assert response.model_used == "Drug Response Model v1.8"

    @pytest.mark.asyncio
    async def test_audit_record_written(self, repository, tables, fixed_rng, drug_request):
        service = PredictionService(recorder=repository, tables=tables, rng=fixed_rng)

        response = await service.predict_drug_response(drug_request)

        record = repository.recorded[0]
        assert record["prediction_type"] == "Treatment Response Rate"
        assert record["factors"] == response.recommendations
        assert record["inputs"]["drugName"] == "Cisplatin"
        assert repository.list_predictions("42")[0]["model_name"] == "Drug Response Model v1.8"

    @pytest.mark.asyncio
    async def test_unavailable_storage_still_returns_prediction(
        self, repository, tables, fixed_rng, drug_request
    ):
        repository.available = False
        service = PredictionService(recorder=repository, tables=tables, rng=fixed_rng)

        response = await service.predict_drug_response(drug_request)

        assert response.predicted_response_rate == 70.0


class TestPredictionRequests:
    """Tests for prediction request validation."""

    def test_camel_case_input(self):
        request = SurvivalPredictionRequest.model_validate({
            "patientId": "7",
            "age": 55,
            "gender": "Female",
            "cancerType": " Breast ",
            "stage": "II",
            "performanceStatus": 0,
        })

        assert request.patient_id == "7"
        assert request.cancer_type == "Breast"

    @pytest.mark.parametrize(
        "field,value",
        [
            ("age", -1),
            ("age", 151),
            ("performance_status", 6),
            ("gender", "Unknown"),
            ("stage", "   "),
        ],
    )
    def test_invalid_survival_inputs(self, field, value):
        payload = {
            "age": 55,
            "gender": "Female",
            "cancer_type": "Breast",
            "stage": "II",
            "performance_status": 0,
            field: value,
        }

        with pytest.raises(ValueError):
            SurvivalPredictionRequest(**payload)

    def test_negative_prior_treatments_rejected(self):
        with pytest.raises(ValueError):
            DrugResponsePredictionRequest(
                age=45, cancer_type="Lung", stage="I", drug_name="Cisplatin", prior_treatments=-1
            )

    @pytest.mark.parametrize("count", [101, 10**400])
    def test_excessive_prior_treatments_rejected(self, count):
        with pytest.raises(ValueError):
            DrugResponsePredictionRequest(
                age=45, cancer_type="Lung", stage="I", drug_name="Cisplatin", prior_treatments=count
            )
