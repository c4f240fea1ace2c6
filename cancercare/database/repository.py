"""
Clinical record repository over the ArangoDB collections.

Every read and write the API needs goes through ``ClinicalRepository``.
Records are returned as plain dicts with the document key exposed as
``id`` and timestamps as ISO-8601 strings; the API layer validates them
into response models.
"""

import json
from datetime import datetime, timezone
from typing import Any, Protocol

from cancercare.config.logging_config import get_logger
from cancercare.database.database import (
    AI_PREDICTIONS,
    CANCER_TYPES,
    MEDICAL_IMAGES,
    PATIENTS,
    STATISTICS,
    SURVIVAL_DATA,
    TREATMENT_OUTCOMES,
    TREATMENT_RECORDS,
    count_documents,
    get_document,
    insert_document,
    query_documents,
)

logger = get_logger(__name__)


class PredictionRecorder(Protocol):
    """Keyed audit-write operation for prediction results."""

    def record_prediction(
        self,
        patient_id: str,
        model_name: str,
        prediction_type: str,
        value: float,
        confidence: float,
        inputs: dict[str, Any],
        factors: list[str],
    ) -> dict[str, Any]: ...


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _to_record(document: dict[str, Any] | None) -> dict[str, Any] | None:
    """Strip ArangoDB system attributes and expose ``_key`` as ``id``."""
    if document is None:
        return None
    record = {k: v for k, v in document.items() if k not in ("_id", "_rev", "_key")}
    record["id"] = document["_key"]
    return record


def _jsonable(data: dict[str, Any]) -> dict[str, Any]:
    """Serialize datetimes so documents are plain JSON."""
    return {
        key: value.isoformat() if isinstance(value, datetime) else value
        for key, value in data.items()
    }


class ClinicalRepository:
    """
    Data access for cancer types, patients, treatments, outcomes,
    survival data, images, predictions and statistics.

    Raises ``StorageUnavailableError`` when ArangoDB cannot serve a request
    and ``DuplicateRecordError`` on unique index violations.
    """

    def _insert(self, collection: str, data: dict[str, Any], *, with_updated: bool = True) -> dict[str, Any]:
        now = _now_iso()
        document = _jsonable(data)
        document["created_at"] = now
        if with_updated:
            document["updated_at"] = now
        return _to_record(insert_document(collection, document))

    # ------------------------------------------------------------------
    # Cancer types
    # ------------------------------------------------------------------

    def list_cancer_types(self) -> list[dict[str, Any]]:
        """All cancer types, most cases first."""
        docs = query_documents(
            "FOR c IN @@col SORT c.total_cases DESC RETURN c",
            {"@col": CANCER_TYPES},
        )
        return [_to_record(d) for d in docs]

    def get_cancer_type(self, cancer_type_id: str) -> dict[str, Any] | None:
        return _to_record(get_document(CANCER_TYPES, cancer_type_id))

    def create_cancer_type(self, data: dict[str, Any]) -> dict[str, Any]:
        record = self._insert(CANCER_TYPES, data)
        logger.info("Cancer type created", cancer_type_id=record["id"], name=record["name"])
        return record

    # ------------------------------------------------------------------
    # Patients
    # ------------------------------------------------------------------

    _PATIENT_WITH_CANCER_TYPE = """
        LET ct = p.cancer_type_id ? DOCUMENT(@types, p.cancer_type_id) : null
        RETURN {patient: p, cancer_type: ct}
    """

    def list_patients(self, limit: int = 100) -> list[dict[str, Any]]:
        """Most recently created patients joined with their cancer type."""
        rows = query_documents(
            "FOR p IN @@patients SORT p.created_at DESC LIMIT @limit"
            + self._PATIENT_WITH_CANCER_TYPE,
            {"@patients": PATIENTS, "types": CANCER_TYPES, "limit": limit},
        )
        return [self._patient_row(row) for row in rows]

    def get_patient(self, patient_id: str) -> dict[str, Any] | None:
        rows = query_documents(
            "FOR p IN @@patients FILTER p._key == @key LIMIT 1"
            + self._PATIENT_WITH_CANCER_TYPE,
            {"@patients": PATIENTS, "types": CANCER_TYPES, "key": patient_id},
        )
        return self._patient_row(rows[0]) if rows else None

    def patient_exists(self, patient_id: str) -> bool:
        return get_document(PATIENTS, patient_id) is not None

    def create_patient(self, data: dict[str, Any]) -> dict[str, Any]:
        record = self._insert(PATIENTS, data)
        logger.info("Patient created", patient_id=record["id"], patient_code=record["patient_code"])
        return record

    @staticmethod
    def _patient_row(row: dict[str, Any]) -> dict[str, Any]:
        return {
            "patient": _to_record(row["patient"]),
            "cancer_type": _to_record(row.get("cancer_type")),
        }

    # ------------------------------------------------------------------
    # Treatments and outcomes
    # ------------------------------------------------------------------

    def list_treatments(self, patient_id: str) -> list[dict[str, Any]]:
        """Treatments for a patient, latest start date first."""
        docs = query_documents(
            "FOR t IN @@col FILTER t.patient_id == @patient_id "
            "SORT t.start_date DESC RETURN t",
            {"@col": TREATMENT_RECORDS, "patient_id": patient_id},
        )
        return [_to_record(d) for d in docs]

    def get_treatment(self, treatment_id: str) -> dict[str, Any] | None:
        return _to_record(get_document(TREATMENT_RECORDS, treatment_id))

    def create_treatment(self, patient_id: str, data: dict[str, Any]) -> dict[str, Any]:
        return self._insert(TREATMENT_RECORDS, {**data, "patient_id": patient_id})

    def list_outcomes(self, patient_id: str) -> list[dict[str, Any]]:
        """Outcomes for a patient joined with the evaluated treatment."""
        rows = query_documents(
            """
            FOR o IN @@outcomes
                FILTER o.patient_id == @patient_id
                SORT o.evaluation_date DESC
                LET t = DOCUMENT(@treatments, o.treatment_id)
                RETURN {outcome: o, treatment: t}
            """,
            {
                "@outcomes": TREATMENT_OUTCOMES,
                "treatments": TREATMENT_RECORDS,
                "patient_id": patient_id,
            },
        )
        return [
            {"outcome": _to_record(row["outcome"]), "treatment": _to_record(row.get("treatment"))}
            for row in rows
        ]

    def create_outcome(self, patient_id: str, data: dict[str, Any]) -> dict[str, Any]:
        return self._insert(TREATMENT_OUTCOMES, {**data, "patient_id": patient_id})

    def count_outcomes_by_type(self) -> list[dict[str, Any]]:
        return query_documents(
            """
            FOR o IN @@col
                COLLECT outcome_type = o.outcome_type WITH COUNT INTO total
                RETURN {outcome_type, count: total}
            """,
            {"@col": TREATMENT_OUTCOMES},
        )

    # ------------------------------------------------------------------
    # Survival data and images
    # ------------------------------------------------------------------

    def get_survival(self, patient_id: str) -> dict[str, Any] | None:
        docs = query_documents(
            "FOR s IN @@col FILTER s.patient_id == @patient_id LIMIT 1 RETURN s",
            {"@col": SURVIVAL_DATA, "patient_id": patient_id},
        )
        return _to_record(docs[0]) if docs else None

    def create_survival(self, patient_id: str, data: dict[str, Any]) -> dict[str, Any]:
        return self._insert(SURVIVAL_DATA, {**data, "patient_id": patient_id})

    def list_images(self, patient_id: str) -> list[dict[str, Any]]:
        docs = query_documents(
            "FOR i IN @@col FILTER i.patient_id == @patient_id "
            "SORT i.acquisition_date DESC RETURN i",
            {"@col": MEDICAL_IMAGES, "patient_id": patient_id},
        )
        return [_to_record(d) for d in docs]

    def create_image(self, patient_id: str, data: dict[str, Any]) -> dict[str, Any]:
        return self._insert(MEDICAL_IMAGES, {**data, "patient_id": patient_id})

    # ------------------------------------------------------------------
    # Predictions
    # ------------------------------------------------------------------

    def list_predictions(self, patient_id: str) -> list[dict[str, Any]]:
        docs = query_documents(
            "FOR a IN @@col FILTER a.patient_id == @patient_id "
            "SORT a.prediction_date DESC RETURN a",
            {"@col": AI_PREDICTIONS, "patient_id": patient_id},
        )
        return [_to_record(d) for d in docs]

    def record_prediction(
        self,
        patient_id: str,
        model_name: str,
        prediction_type: str,
        value: float,
        confidence: float,
        inputs: dict[str, Any],
        factors: list[str],
    ) -> dict[str, Any]:
        """Persist a prediction audit record."""
        now = _now_iso()
        record = self._insert(
            AI_PREDICTIONS,
            {
                "patient_id": patient_id,
                "model_name": model_name,
                "prediction_type": prediction_type,
                "predicted_value": value,
                "confidence_score": confidence,
                "input_features": json.dumps(inputs, default=str),
                "risk_factors": json.dumps(factors),
                "prediction_date": now,
            },
            with_updated=False,
        )
        logger.info(
            "Prediction recorded",
            patient_id=patient_id,
            model_name=model_name,
            prediction_id=record["id"],
        )
        return record

    # ------------------------------------------------------------------
    # Statistics and counts
    # ------------------------------------------------------------------

    def list_statistics(self, stat_type: str) -> list[dict[str, Any]]:
        """Data points of one statistic, most recent period first."""
        docs = query_documents(
            "FOR s IN @@col FILTER s.stat_type == @stat_type "
            "SORT s.year DESC, s.month DESC RETURN s",
            {"@col": STATISTICS, "stat_type": stat_type},
        )
        return [_to_record(d) for d in docs]

    def create_statistic(self, data: dict[str, Any]) -> dict[str, Any]:
        return self._insert(STATISTICS, data)

    def count_patients(self) -> int:
        return count_documents(PATIENTS)

    def count_cancer_types(self) -> int:
        return count_documents(CANCER_TYPES)


_clinical_repository: ClinicalRepository | None = None


def get_clinical_repository() -> ClinicalRepository:
    """
    Get the repository singleton.

    Returns:
        The shared ClinicalRepository instance.
    """
    global _clinical_repository
    if _clinical_repository is None:
        _clinical_repository = ClinicalRepository()
    return _clinical_repository
