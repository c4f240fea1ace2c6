"""
Request/response models for the prediction endpoints.

Inputs are structurally validated here, before they reach the scoring
functions: age and ECOG ranges, gender membership, non-empty labels.
"""

from datetime import datetime

from pydantic import ConfigDict, Field, field_validator

from cancercare.models.clinical_models import Gender
from cancercare.models.models import CamelModel


class SurvivalPredictionRequest(CamelModel):
    """
    Inputs for the 5-year survival estimator.

    Attributes:
        patient_id: Patient to attach the audit record to, if any.
        stage: Free-text stage ("II", "Stage 3", "IIIA").
        performance_status: ECOG grade 0-5.
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "age": 55,
                "gender": "Female",
                "cancerType": "Breast",
                "stage": "II",
                "performanceStatus": 0,
            }
        }
    )

    patient_id: str | None = Field(default=None, description="Patient key for the audit record")
    age: int = Field(..., ge=0, le=150, description="Age in years")
    gender: Gender
    cancer_type: str = Field(..., min_length=1, max_length=100)
    stage: str = Field(..., min_length=1, max_length=20)
    performance_status: int = Field(..., ge=0, le=5, description="ECOG score")
    treatment_type: str | None = Field(default=None, max_length=100)

    @field_validator("cancer_type", "stage")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        """Ensure labels are not just whitespace."""
        cleaned = v.strip()
        if not cleaned:
            raise ValueError("Value cannot be empty or whitespace only")
        return cleaned


class SurvivalPredictionResponse(CamelModel):
    predicted_survival_rate: float
    confidence: float
    risk_factors: list[str]
    model_used: str
    prediction_date: datetime


class DrugResponsePredictionRequest(CamelModel):
    """Inputs for the drug response estimator."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "age": 45,
                "cancerType": "Lung",
                "stage": "I",
                "drugName": "Cisplatin",
                "priorTreatments": 0,
            }
        }
    )

    patient_id: str | None = Field(default=None, description="Patient key for the audit record")
    age: int = Field(..., ge=0, le=150)
    cancer_type: str = Field(..., min_length=1, max_length=100)
    stage: str = Field(..., min_length=1, max_length=20)
    drug_name: str = Field(..., min_length=1, max_length=200)
    prior_treatments: int | None = Field(default=None, ge=0, le=100)

    @field_validator("cancer_type", "stage", "drug_name")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        """Ensure labels are not just whitespace."""
        cleaned = v.strip()
        if not cleaned:
            raise ValueError("Value cannot be empty or whitespace only")
        return cleaned


class DrugResponsePredictionResponse(CamelModel):
    predicted_response_rate: float
    confidence: float
    recommendations: list[str]
    model_used: str
    prediction_date: datetime
