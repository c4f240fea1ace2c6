"""
Prediction orchestration.

Runs the pure scoring functions, stamps the model label and prediction
time, and writes an audit record when the request names a patient.

The audit write is a side effect only: it runs in a worker thread bounded
by ``audit_timeout_seconds`` and any failure is logged and dropped, so the
caller always receives the computed prediction.
"""

import asyncio
from typing import Any

from cancercare.config.config import get_settings
from cancercare.config.logging_config import get_logger
from cancercare.config.scoring_config import ScoringSettings, get_scoring_settings
from cancercare.database.repository import PredictionRecorder, get_clinical_repository
from cancercare.models.models import utc_now
from cancercare.models.prediction_models import (
    DrugResponsePredictionRequest,
    DrugResponsePredictionResponse,
    SurvivalPredictionRequest,
    SurvivalPredictionResponse,
)
from cancercare.services.risk_scoring import (
    RandomSource,
    estimate_drug_response,
    estimate_survival,
)

logger = get_logger(__name__)


class PredictionService:
    """
    Service behind the survival and drug-response prediction endpoints.

    Args:
        recorder: Audit-write collaborator; ``None`` disables auditing.
        tables: Scoring coefficients; defaults to the configured tables.
        audit_timeout_seconds: Upper bound on waiting for an audit write.
        rng: Random source for the confidence noise.
    """

    def __init__(
        self,
        recorder: PredictionRecorder | None = None,
        tables: ScoringSettings | None = None,
        audit_timeout_seconds: float | None = None,
        rng: RandomSource | None = None,
    ):
        self.recorder = recorder
        self.tables = tables or get_scoring_settings()
        self.audit_timeout_seconds = (
            audit_timeout_seconds
            if audit_timeout_seconds is not None
            else get_settings().audit_timeout_seconds
        )
        self.rng = rng

    async def predict_survival(
        self, request: SurvivalPredictionRequest
    ) -> SurvivalPredictionResponse:
        """Estimate the 5-year survival rate and audit it if a patient is given."""
        estimate = estimate_survival(
            age=request.age,
            gender=request.gender.value,
            cancer_type=request.cancer_type,
            stage=request.stage,
            performance_status=request.performance_status,
            treatment_type=request.treatment_type,
            tables=self.tables,
            rng=self.rng,
        )

        logger.info(
            "Survival prediction computed",
            cancer_type=request.cancer_type,
            stage=request.stage,
            predicted_rate=estimate.predicted_survival_rate,
            risk_factor_count=len(estimate.risk_factors),
        )

        if request.patient_id:
            await self._record(
                patient_id=request.patient_id,
                model_name=self.tables.survival_model_name,
                prediction_type=self.tables.survival_prediction_type,
                value=estimate.predicted_survival_rate,
                confidence=estimate.confidence,
                inputs=request.model_dump(mode="json", by_alias=True),
                factors=estimate.risk_factors,
            )

        return SurvivalPredictionResponse(
            predicted_survival_rate=estimate.predicted_survival_rate,
            confidence=estimate.confidence,
            risk_factors=estimate.risk_factors,
            model_used=self.tables.survival_model_name,
            prediction_date=utc_now(),
        )

    async def predict_drug_response(
        self, request: DrugResponsePredictionRequest
    ) -> DrugResponsePredictionResponse:
        """Estimate the treatment response rate and audit it if a patient is given."""
        estimate = estimate_drug_response(
            age=request.age,
            cancer_type=request.cancer_type,
            stage=request.stage,
            drug_name=request.drug_name,
            prior_treatments=request.prior_treatments,
            tables=self.tables,
            rng=self.rng,
        )

        logger.info(
            "Drug response prediction computed",
            drug_name=request.drug_name,
            stage=request.stage,
            predicted_rate=estimate.predicted_response_rate,
        )

        if request.patient_id:
            await self._record(
                patient_id=request.patient_id,
                model_name=self.tables.response_model_name,
                prediction_type=self.tables.response_prediction_type,
                value=estimate.predicted_response_rate,
                confidence=estimate.confidence,
                inputs=request.model_dump(mode="json", by_alias=True),
                factors=estimate.recommendations,
            )

        return DrugResponsePredictionResponse(
            predicted_response_rate=estimate.predicted_response_rate,
            confidence=estimate.confidence,
            recommendations=estimate.recommendations,
            model_used=self.tables.response_model_name,
            prediction_date=utc_now(),
        )

    async def _record(
        self,
        patient_id: str,
        model_name: str,
        prediction_type: str,
        value: float,
        confidence: float,
        inputs: dict[str, Any],
        factors: list[str],
    ) -> None:
        """Write the audit record within the timeout; never raises."""
        if self.recorder is None:
            return

        try:
            await asyncio.wait_for(
                asyncio.to_thread(
                    self.recorder.record_prediction,
                    patient_id,
                    model_name,
                    prediction_type,
                    value,
                    confidence,
                    inputs,
                    factors,
                ),
                timeout=self.audit_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Prediction audit write timed out",
                patient_id=patient_id,
                model_name=model_name,
                timeout_seconds=self.audit_timeout_seconds,
            )
        except Exception as e:
            logger.warning(
                "Prediction audit write failed",
                patient_id=patient_id,
                model_name=model_name,
                error=str(e),
            )


# Singleton instance for dependency injection
_prediction_service: PredictionService | None = None


def get_prediction_service() -> PredictionService:
    """
    Get the prediction service singleton.

    Returns:
        The shared PredictionService instance, auditing to ArangoDB.
    """
    global _prediction_service
    if _prediction_service is None:
        _prediction_service = PredictionService(recorder=get_clinical_repository())
    return _prediction_service
