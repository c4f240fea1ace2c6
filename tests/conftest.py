"""
Pytest Configuration and Fixtures

Shared fixtures for the CancerCare API tests. Storage is replaced with an
in-memory repository and cBioPortal with an httpx mock transport, so no
test needs ArangoDB or network access.
"""
import itertools
import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
import pytest

from cancercare.config.scoring_config import ScoringSettings
from cancercare.database.database import DuplicateRecordError, StorageUnavailableError


class FixedRandom:
    """Random source that always returns the same draw."""

    def __init__(self, value: float):
        self.value = value

    def random(self) -> float:
        return self.value


class InMemoryRepository:
    """Dict-backed stand-in for ClinicalRepository."""

    def __init__(self):
        self.available = True
        self._ids = itertools.count(1)
        self.collections: Dict[str, Dict[str, Dict[str, Any]]] = {
            name: {}
            for name in (
                "cancer_types",
                "patients",
                "treatment_records",
                "treatment_outcomes",
                "survival_data",
                "medical_images",
                "ai_predictions",
                "statistics",
            )
        }
        self.recorded: List[Dict[str, Any]] = []

    def _check(self) -> None:
        if not self.available:
            raise StorageUnavailableError("Database not available")

    def _insert(self, collection: str, data: Dict[str, Any], with_updated: bool = True) -> Dict[str, Any]:
        self._check()
        now = datetime.now(timezone.utc).isoformat()
        record = {**data, "id": str(next(self._ids)), "created_at": now}
        if with_updated:
            record["updated_at"] = now
        self.collections[collection][record["id"]] = record
        return dict(record)

    def _where(self, collection: str, **filters: Any) -> List[Dict[str, Any]]:
        self._check()
        return [
            dict(r) for r in self.collections[collection].values()
            if all(r.get(k) == v for k, v in filters.items())
        ]

    # Cancer types
    def list_cancer_types(self):
        return sorted(self._where("cancer_types"), key=lambda r: r["total_cases"], reverse=True)

    def get_cancer_type(self, cancer_type_id):
        self._check()
        return self.collections["cancer_types"].get(cancer_type_id)

    def create_cancer_type(self, data):
        return self._insert("cancer_types", data)

    # Patients
    def _patient_row(self, patient):
        cancer_type = self.collections["cancer_types"].get(patient.get("cancer_type_id") or "")
        return {"patient": patient, "cancer_type": cancer_type}

    def list_patients(self, limit=100):
        patients = sorted(self._where("patients"), key=lambda r: r["created_at"], reverse=True)
        return [self._patient_row(p) for p in patients[:limit]]

    def get_patient(self, patient_id):
        self._check()
        patient = self.collections["patients"].get(patient_id)
        return self._patient_row(patient) if patient else None

    def patient_exists(self, patient_id):
        self._check()
        return patient_id in self.collections["patients"]

    def create_patient(self, data):
        if self._where("patients", patient_code=data["patient_code"]):
            raise DuplicateRecordError("unique constraint violated")
        return self._insert("patients", data)

    # Treatments and outcomes
    def list_treatments(self, patient_id):
        return self._where("treatment_records", patient_id=patient_id)

    def get_treatment(self, treatment_id):
        self._check()
        return self.collections["treatment_records"].get(treatment_id)

    def create_treatment(self, patient_id, data):
        return self._insert("treatment_records", {**data, "patient_id": patient_id})

    def list_outcomes(self, patient_id):
        return [
            {"outcome": o, "treatment": self.collections["treatment_records"].get(o["treatment_id"])}
            for o in self._where("treatment_outcomes", patient_id=patient_id)
        ]

    def create_outcome(self, patient_id, data):
        return self._insert("treatment_outcomes", {**data, "patient_id": patient_id})

    def count_outcomes_by_type(self):
        counts: Dict[str, int] = {}
        for outcome in self._where("treatment_outcomes"):
            counts[outcome["outcome_type"]] = counts.get(outcome["outcome_type"], 0) + 1
        return [{"outcome_type": k, "count": v} for k, v in counts.items()]

    # Survival and images
    def get_survival(self, patient_id):
        rows = self._where("survival_data", patient_id=patient_id)
        return rows[0] if rows else None

    def create_survival(self, patient_id, data):
        if self._where("survival_data", patient_id=patient_id):
            raise DuplicateRecordError("unique constraint violated")
        return self._insert("survival_data", {**data, "patient_id": patient_id})

    def list_images(self, patient_id):
        return self._where("medical_images", patient_id=patient_id)

    def create_image(self, patient_id, data):
        return self._insert("medical_images", {**data, "patient_id": patient_id})

    # Predictions
    def list_predictions(self, patient_id):
        return self._where("ai_predictions", patient_id=patient_id)

    def record_prediction(self, patient_id, model_name, prediction_type, value, confidence, inputs, factors):
        self.recorded.append({
            "patient_id": patient_id,
            "model_name": model_name,
            "prediction_type": prediction_type,
            "value": value,
            "confidence": confidence,
            "inputs": inputs,
            "factors": factors,
        })
        return self._insert(
            "ai_predictions",
            {
                "patient_id": patient_id,
                "model_name": model_name,
                "prediction_type": prediction_type,
                "predicted_value": value,
                "confidence_score": confidence,
                "input_features": json.dumps(inputs),
                "risk_factors": json.dumps(factors),
                "prediction_date": datetime.now(timezone.utc).isoformat(),
            },
            with_updated=False,
        )

    # Statistics and counts
    def list_statistics(self, stat_type):
        return sorted(
            self._where("statistics", stat_type=stat_type),
            key=lambda r: (r.get("year") or 0, r.get("month") or 0),
            reverse=True,
        )

    def create_statistic(self, data):
        return self._insert("statistics", data)

    def count_patients(self):
        self._check()
        return len(self.collections["patients"])

    def count_cancer_types(self):
        self._check()
        return len(self.collections["cancer_types"])


# ----------------------------------------------------------------------------
# cBioPortal upstream stub
# ----------------------------------------------------------------------------

PORTAL_CANCER_TYPES = [
    {"cancerTypeId": "brca", "name": "Invasive Breast Carcinoma", "dedicatedColor": "HotPink", "shortName": "BRCA", "parent": "breast"},
    {"cancerTypeId": "luad", "name": "Lung Adenocarcinoma", "dedicatedColor": "Gainsboro", "shortName": "LUAD", "parent": "nsclc"},
    {"cancerTypeId": "paad", "name": "Pancreatic Adenocarcinoma", "dedicatedColor": "Purple", "shortName": "PAAD", "parent": "pancreas"},
]

PORTAL_STUDIES = [
    {"studyId": "brca_tcga", "name": "Breast TCGA", "description": "d", "cancerTypeId": "brca", "allSampleCount": 1100, "publicStudy": True, "citation": "TCGA, Nature 2012"},
    {"studyId": "brca_metabric", "name": "Breast METABRIC", "description": "d", "cancerTypeId": "brca", "allSampleCount": 2500, "publicStudy": True},
    {"studyId": "luad_tcga", "name": "Lung TCGA", "description": "d", "cancerTypeId": "luad", "allSampleCount": 600, "publicStudy": False},
    {"studyId": "paad_qcmg", "name": "Pancreas QCMG", "description": "d", "cancerTypeId": "paad", "allSampleCount": 450, "publicStudy": True},
]


def portal_handler(request: httpx.Request) -> httpx.Response:
    """Serve canned cBioPortal responses by path."""
    path = request.url.path
    if path == "/api/cancer-types":
        return httpx.Response(200, json=PORTAL_CANCER_TYPES)
    if path == "/api/studies":
        return httpx.Response(200, json=PORTAL_STUDIES)
    if path == "/api/studies/brca_tcga/clinical-data":
        return httpx.Response(200, json=[
            {
                "clinicalAttributeId": "AGE",
                "value": "57",
                "patientId": "TCGA-A1",
                "studyId": "brca_tcga",
                "uniquePatientKey": "abc",
            },
        ])
    if path == "/api/studies/brca_tcga/patients":
        return httpx.Response(200, json=[
            {"patientId": "TCGA-A1", "studyId": "brca_tcga", "uniquePatientKey": "abc"},
        ])
    return httpx.Response(404, json={"message": "not found"})


def failing_handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(503, text="Service Unavailable")


# ----------------------------------------------------------------------------
# Fixtures
# ----------------------------------------------------------------------------

@pytest.fixture
def tables() -> ScoringSettings:
    """Default scoring tables, independent of the environment cache."""
    return ScoringSettings()


@pytest.fixture
def fixed_rng() -> FixedRandom:
    return FixedRandom(0.5)


@pytest.fixture
def zero_rng() -> FixedRandom:
    return FixedRandom(0.0)


@pytest.fixture
def repository() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture
def portal_transport() -> httpx.MockTransport:
    return httpx.MockTransport(portal_handler)


@pytest.fixture
def failing_transport() -> httpx.MockTransport:
    return httpx.MockTransport(failing_handler)
