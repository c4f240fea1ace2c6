"""
Clinical data service.

Typed queries and mutations over the clinical record collections, plus the
dashboard aggregates. Repository calls are blocking and run in the
threadpool; results are validated into response models here.
"""

from starlette.concurrency import run_in_threadpool

from cancercare.config.logging_config import get_logger
from cancercare.database.database import StorageUnavailableError
from cancercare.database.repository import ClinicalRepository, get_clinical_repository
from cancercare.models.clinical_models import (
    AiPrediction,
    CancerType,
    CancerTypeCreate,
    DashboardStats,
    MedicalImage,
    MedicalImageCreate,
    OutcomeCount,
    OutcomeWithTreatment,
    Patient,
    PatientCreate,
    PatientWithCancerType,
    Statistic,
    StatisticCreate,
    SurvivalData,
    SurvivalDataCreate,
    TreatmentOutcome,
    TreatmentOutcomeCreate,
    TreatmentRecord,
    TreatmentRecordCreate,
)

logger = get_logger(__name__)

# Number of scoring models exposed by the platform and their reported accuracy
ACTIVE_MODELS = 3
AVERAGE_ACCURACY = 91.5


class NotFoundError(LookupError):
    """Raised when a requested record does not exist."""

    def __init__(self, resource: str, key: str):
        super().__init__(f"{resource} {key} not found")
        self.resource = resource
        self.key = key


class ClinicalDataService:
    """Service for cancer type, patient and per-patient record operations."""

    def __init__(self, repository: ClinicalRepository):
        self.repository = repository

    # ------------------------------------------------------------------
    # Cancer types
    # ------------------------------------------------------------------

    async def list_cancer_types(self) -> list[CancerType]:
        rows = await run_in_threadpool(self.repository.list_cancer_types)
        return [CancerType.model_validate(row) for row in rows]

    async def get_cancer_type(self, cancer_type_id: str) -> CancerType:
        row = await run_in_threadpool(self.repository.get_cancer_type, cancer_type_id)
        if row is None:
            raise NotFoundError("Cancer type", cancer_type_id)
        return CancerType.model_validate(row)

    async def create_cancer_type(self, payload: CancerTypeCreate) -> CancerType:
        row = await run_in_threadpool(
            self.repository.create_cancer_type, payload.model_dump(mode="json")
        )
        return CancerType.model_validate(row)

    # ------------------------------------------------------------------
    # Patients
    # ------------------------------------------------------------------

    async def list_patients(self, limit: int = 100) -> list[PatientWithCancerType]:
        rows = await run_in_threadpool(self.repository.list_patients, limit)
        return [PatientWithCancerType.model_validate(row) for row in rows]

    async def get_patient(self, patient_id: str) -> PatientWithCancerType:
        row = await run_in_threadpool(self.repository.get_patient, patient_id)
        if row is None:
            raise NotFoundError("Patient", patient_id)
        return PatientWithCancerType.model_validate(row)

    async def create_patient(self, payload: PatientCreate) -> Patient:
        if payload.cancer_type_id:
            await self.get_cancer_type(payload.cancer_type_id)
        row = await run_in_threadpool(
            self.repository.create_patient, payload.model_dump(mode="json")
        )
        return Patient.model_validate(row)

    async def _require_patient(self, patient_id: str) -> None:
        if not await run_in_threadpool(self.repository.patient_exists, patient_id):
            raise NotFoundError("Patient", patient_id)

    # ------------------------------------------------------------------
    # Per-patient records
    # ------------------------------------------------------------------

    async def list_treatments(self, patient_id: str) -> list[TreatmentRecord]:
        rows = await run_in_threadpool(self.repository.list_treatments, patient_id)
        return [TreatmentRecord.model_validate(row) for row in rows]

    async def create_treatment(
        self, patient_id: str, payload: TreatmentRecordCreate
    ) -> TreatmentRecord:
        await self._require_patient(patient_id)
        row = await run_in_threadpool(
            self.repository.create_treatment, patient_id, payload.model_dump(mode="json")
        )
        return TreatmentRecord.model_validate(row)

    async def list_outcomes(self, patient_id: str) -> list[OutcomeWithTreatment]:
        rows = await run_in_threadpool(self.repository.list_outcomes, patient_id)
        return [OutcomeWithTreatment.model_validate(row) for row in rows]

    async def create_outcome(
        self, patient_id: str, payload: TreatmentOutcomeCreate
    ) -> TreatmentOutcome:
        await self._require_patient(patient_id)
        treatment = await run_in_threadpool(self.repository.get_treatment, payload.treatment_id)
        if treatment is None or treatment.get("patient_id") != patient_id:
            raise NotFoundError("Treatment", payload.treatment_id)
        row = await run_in_threadpool(
            self.repository.create_outcome, patient_id, payload.model_dump(mode="json")
        )
        return TreatmentOutcome.model_validate(row)

    async def get_survival(self, patient_id: str) -> SurvivalData:
        row = await run_in_threadpool(self.repository.get_survival, patient_id)
        if row is None:
            raise NotFoundError("Survival data for patient", patient_id)
        return SurvivalData.model_validate(row)

    async def create_survival(
        self, patient_id: str, payload: SurvivalDataCreate
    ) -> SurvivalData:
        await self._require_patient(patient_id)
        row = await run_in_threadpool(
            self.repository.create_survival, patient_id, payload.model_dump(mode="json")
        )
        return SurvivalData.model_validate(row)

    async def list_images(self, patient_id: str) -> list[MedicalImage]:
        rows = await run_in_threadpool(self.repository.list_images, patient_id)
        return [MedicalImage.model_validate(row) for row in rows]

    async def create_image(
        self, patient_id: str, payload: MedicalImageCreate
    ) -> MedicalImage:
        await self._require_patient(patient_id)
        row = await run_in_threadpool(
            self.repository.create_image, patient_id, payload.model_dump(mode="json")
        )
        return MedicalImage.model_validate(row)

    async def list_predictions(self, patient_id: str) -> list[AiPrediction]:
        rows = await run_in_threadpool(self.repository.list_predictions, patient_id)
        return [AiPrediction.model_validate(row) for row in rows]

    # ------------------------------------------------------------------
    # Statistics and dashboard
    # ------------------------------------------------------------------

    async def list_statistics(self, stat_type: str) -> list[Statistic]:
        rows = await run_in_threadpool(self.repository.list_statistics, stat_type)
        return [Statistic.model_validate(row) for row in rows]

    async def create_statistic(self, payload: StatisticCreate) -> Statistic:
        row = await run_in_threadpool(
            self.repository.create_statistic, payload.model_dump(mode="json")
        )
        return Statistic.model_validate(row)

    async def get_dashboard_stats(self) -> DashboardStats:
        """
        Headline numbers for the dashboard.

        Falls back to zero counts when storage is unavailable so the landing
        page still renders.
        """
        try:
            total_patients = await run_in_threadpool(self.repository.count_patients)
            total_cancer_types = await run_in_threadpool(self.repository.count_cancer_types)
        except StorageUnavailableError as e:
            logger.warning("Dashboard stats unavailable, returning empty counts", error=str(e))
            total_patients = 0
            total_cancer_types = 0

        return DashboardStats(
            total_patients=total_patients,
            total_cancer_types=total_cancer_types,
            active_models=ACTIVE_MODELS,
            average_accuracy=AVERAGE_ACCURACY,
        )

    async def get_treatment_outcome_stats(self) -> list[OutcomeCount]:
        rows = await run_in_threadpool(self.repository.count_outcomes_by_type)
        return [OutcomeCount.model_validate(row) for row in rows]


# Singleton instance for dependency injection
_clinical_data_service: ClinicalDataService | None = None


def get_clinical_data_service() -> ClinicalDataService:
    """
    Get the clinical data service singleton.

    Returns:
        The shared ClinicalDataService instance.
    """
    global _clinical_data_service
    if _clinical_data_service is None:
        _clinical_data_service = ClinicalDataService(get_clinical_repository())
    return _clinical_data_service
