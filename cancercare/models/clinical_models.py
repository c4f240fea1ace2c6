"""
Pydantic models for the clinical record collections.

Each collection has a ``*Create`` payload accepted by the API and a stored
record model that adds the document key and timestamps.
"""

from datetime import datetime
from enum import Enum

from pydantic import Field, field_validator, model_validator

from cancercare.models.models import CamelModel


class Gender(str, Enum):
    """Patient gender as recorded in the registry."""
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"


class OutcomeType(str, Enum):
    """RECIST-style treatment response categories."""
    COMPLETE_RESPONSE = "Complete Response"
    PARTIAL_RESPONSE = "Partial Response"
    STABLE_DISEASE = "Stable Disease"
    PROGRESSIVE_DISEASE = "Progressive Disease"


class SurvivalStatus(str, Enum):
    """Vital status at last follow-up."""
    ALIVE = "Alive"
    DECEASED = "Deceased"


class ImageType(str, Enum):
    """Imaging modality."""
    CT = "CT"
    MRI = "MRI"
    PET = "PET"
    XRAY = "X-Ray"
    ULTRASOUND = "Ultrasound"


# ============================================================================
# Cancer types
# ============================================================================

class CancerTypeCreate(CamelModel):
    """A cancer type with its registry-level characteristics."""
    name: str = Field(..., min_length=1, max_length=100, description="Cancer type name")
    category: str | None = Field(default=None, max_length=50, description="Broad category, e.g. Carcinoma")
    description: str | None = Field(default=None, description="Short description")
    average_survival_rate: float | None = Field(
        default=None, ge=0, le=100, description="Average 5-year survival rate (%)"
    )
    total_cases: int = Field(default=0, ge=0, description="Number of recorded cases")


class CancerType(CancerTypeCreate):
    id: str
    created_at: datetime
    updated_at: datetime


# ============================================================================
# Patients
# ============================================================================

class PatientCreate(CamelModel):
    """
    Demographic and diagnosis information for a patient.

    Attributes:
        patient_code: Registry code, unique across patients.
        performance_status: ECOG score 0-5.
    """
    patient_code: str = Field(..., min_length=1, max_length=50, description="Unique patient code")
    age: int | None = Field(default=None, ge=0, le=150, description="Age in years")
    gender: Gender | None = Field(default=None, description="Patient gender")
    ethnicity: str | None = Field(default=None, max_length=50)
    diagnosis_date: datetime | None = Field(default=None, description="Date of diagnosis")
    cancer_type_id: str | None = Field(default=None, description="Key of the cancer type")
    stage: str | None = Field(default=None, max_length=10, description="Cancer stage, e.g. III")
    performance_status: int | None = Field(default=None, ge=0, le=5, description="ECOG score")

    @field_validator("patient_code")
    @classmethod
    def validate_patient_code(cls, v: str) -> str:
        """Ensure the code is not just whitespace."""
        cleaned = v.strip()
        if not cleaned:
            raise ValueError("Patient code cannot be empty")
        return cleaned


class Patient(PatientCreate):
    id: str
    created_at: datetime
    updated_at: datetime


class PatientWithCancerType(CamelModel):
    """A patient joined with its cancer type (if any)."""
    patient: Patient
    cancer_type: CancerType | None = None


# ============================================================================
# Treatments and outcomes
# ============================================================================

class TreatmentRecordCreate(CamelModel):
    """One line of treatment given to a patient."""
    treatment_type: str = Field(..., min_length=1, max_length=100, description="e.g. Chemotherapy")
    drug_name: str | None = Field(default=None, max_length=200)
    start_date: datetime | None = None
    end_date: datetime | None = None
    dosage: str | None = Field(default=None, max_length=100)
    protocol: str | None = None

    @model_validator(mode="after")
    def validate_dates(self) -> "TreatmentRecordCreate":
        """A treatment cannot end before it starts."""
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class TreatmentRecord(TreatmentRecordCreate):
    id: str
    patient_id: str
    created_at: datetime
    updated_at: datetime


class TreatmentOutcomeCreate(CamelModel):
    """Evaluated response to a treatment."""
    treatment_id: str = Field(..., description="Key of the evaluated treatment")
    outcome_type: OutcomeType
    response_rate: float | None = Field(default=None, ge=0, le=100)
    side_effects: str | None = None
    evaluation_date: datetime | None = None
    notes: str | None = None


class TreatmentOutcome(TreatmentOutcomeCreate):
    id: str
    patient_id: str
    created_at: datetime
    updated_at: datetime


class OutcomeWithTreatment(CamelModel):
    """A treatment outcome joined with the treatment it evaluates."""
    outcome: TreatmentOutcome
    treatment: TreatmentRecord | None = None


# ============================================================================
# Survival, imaging, predictions, statistics
# ============================================================================

class SurvivalDataCreate(CamelModel):
    """Follow-up information; at most one record per patient."""
    survival_months: int | None = Field(default=None, ge=0)
    status: SurvivalStatus
    last_followup_date: datetime | None = None
    cause_of_death: str | None = Field(default=None, max_length=100)
    quality_of_life: int | None = Field(default=None, ge=1, le=10, description="Score 1-10")


class SurvivalData(SurvivalDataCreate):
    id: str
    patient_id: str
    created_at: datetime
    updated_at: datetime


class MedicalImageCreate(CamelModel):
    """Metadata for an imaging study."""
    image_type: ImageType
    image_url: str | None = Field(default=None, max_length=500)
    thumbnail_url: str | None = Field(default=None, max_length=500)
    acquisition_date: datetime | None = None
    body_part: str | None = Field(default=None, max_length=100)
    findings: str | None = None
    ai_classification: str | None = Field(default=None, max_length=100)
    confidence_score: float | None = Field(default=None, ge=0, le=1)


class MedicalImage(MedicalImageCreate):
    id: str
    patient_id: str
    created_at: datetime
    updated_at: datetime


class AiPrediction(CamelModel):
    """Audit record of a prediction made for a patient."""
    id: str
    patient_id: str
    model_name: str
    prediction_type: str
    predicted_value: float | None = None
    confidence_score: float | None = None
    input_features: str | None = Field(default=None, description="JSON-encoded request inputs")
    risk_factors: str | None = Field(default=None, description="JSON-encoded annotations")
    prediction_date: datetime
    created_at: datetime


class StatisticCreate(CamelModel):
    """An aggregated statistic data point."""
    stat_type: str = Field(..., min_length=1, max_length=100)
    cancer_type_id: str | None = None
    year: int | None = None
    month: int | None = Field(default=None, ge=1, le=12)
    value: float
    metadata: str | None = Field(default=None, description="JSON-encoded extra data")


class Statistic(StatisticCreate):
    id: str
    created_at: datetime
    updated_at: datetime


# ============================================================================
# Dashboard aggregates
# ============================================================================

class DashboardStats(CamelModel):
    total_patients: int
    total_cancer_types: int
    active_models: int
    average_accuracy: float


class OutcomeCount(CamelModel):
    outcome_type: OutcomeType
    count: int
