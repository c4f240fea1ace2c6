"""
CancerCare AI - Clinical Cancer Analysis API

A clinical data dashboard API over synthetic and aggregated cancer patient
records.

This API provides:
- Cancer type, patient, treatment, outcome, survival and imaging records
- Dashboard aggregates and statistics
- Heuristic survival and drug-response predictions with audit records
- A read-only proxy of cBioPortal clinical data (no genomic data)
"""

import time
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from cancercare.config.config import Settings, get_settings
from cancercare.config.logging_config import configure_logging, get_logger, log_request_context
from cancercare.config.scoring_config import get_scoring_settings
from cancercare.database.database import (
    DuplicateRecordError,
    StorageUnavailableError,
    close_connection,
    is_database_available,
)
from cancercare.models.cbioportal_models import (
    ClinicalDataType,
    PortalAggregatedStats,
    PortalCancerType,
    PortalCancerTypeDetails,
    PortalClinicalData,
    PortalPatient,
    PortalStudy,
)
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
from cancercare.models.models import ErrorResponse, HealthResponse, HealthStatus
from cancercare.models.prediction_models import (
    DrugResponsePredictionRequest,
    DrugResponsePredictionResponse,
    SurvivalPredictionRequest,
    SurvivalPredictionResponse,
)
from cancercare.services.cbioportal_service import (
    CBioPortalService,
    close_cbioportal_service,
    get_cbioportal_service,
)
from cancercare.services.clinical_data_service import (
    ClinicalDataService,
    NotFoundError,
    get_clinical_data_service,
)
from cancercare.services.prediction_service import PredictionService, get_prediction_service

# Configure logging before anything else
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events with proper logging.
    """
    settings = get_settings()

    logger.info(
        "Application starting",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
        config=settings.get_safe_config_dict(),
        scoring=get_scoring_settings().get_safe_config_dict(),
    )

    yield

    await close_cbioportal_service()
    close_connection()
    logger.info("Application shutting down")


def _error_response(request: Request, status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=error,
            message=message,
            request_id=getattr(request.state, "request_id", None),
        ).model_dump(mode="json"),
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Optional settings override for testing.

    Returns:
        Configured FastAPI application.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        description=__doc__,
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all requests with timing and context."""
        request_id = str(uuid4())
        request.state.request_id = request_id
        start_time = time.perf_counter()

        log_request_context(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        response = await call_next(request)

        processing_time = int((time.perf_counter() - start_time) * 1000)
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Processing-Time-Ms"] = str(processing_time)

        logger.info(
            "Request completed",
            status_code=response.status_code,
            processing_time_ms=processing_time,
        )

        return response

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Handle HTTP exceptions with structured response."""
        return _error_response(request, exc.status_code, f"HTTP_{exc.status_code}", str(exc.detail))

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return _error_response(request, status.HTTP_404_NOT_FOUND, "NOT_FOUND", str(exc))

    @app.exception_handler(DuplicateRecordError)
    async def duplicate_handler(request: Request, exc: DuplicateRecordError):
        logger.info("Duplicate record rejected", error=str(exc))
        return _error_response(
            request, status.HTTP_409_CONFLICT, "DUPLICATE_RECORD", "Record already exists"
        )

    @app.exception_handler(StorageUnavailableError)
    async def storage_unavailable_handler(request: Request, exc: StorageUnavailableError):
        logger.error("Storage unavailable", error=str(exc))
        return _error_response(
            request,
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "STORAGE_UNAVAILABLE",
            "Database not available",
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions."""
        logger.exception("Unhandled exception", error=str(exc))
        return _error_response(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "INTERNAL_ERROR",
            "An unexpected error occurred",
        )

    register_routes(app)

    return app


def register_routes(app: FastAPI) -> None:
    """Register all API routes."""
    _register_system_routes(app)
    _register_clinical_routes(app)
    _register_prediction_routes(app)
    _register_cbioportal_routes(app)


def _register_system_routes(app: FastAPI) -> None:

    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint with API information."""
        settings = get_settings()
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "status": "operational",
            "docs": "/docs" if settings.debug else "disabled",
        }

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check(settings: Settings = Depends(get_settings)) -> HealthResponse:
        """
        Health check endpoint for monitoring.

        Predictions keep working without the database, so a missing
        database reports degraded rather than unhealthy.
        """
        checks = {
            "api": True,
            "database": await run_in_threadpool(is_database_available),
        }

        if all(checks.values()):
            health = HealthStatus.HEALTHY
        elif checks["api"]:
            health = HealthStatus.DEGRADED
        else:
            health = HealthStatus.UNHEALTHY

        return HealthResponse(
            status=health,
            version=settings.app_version,
            environment=settings.environment,
            checks=checks,
        )


def _register_clinical_routes(app: FastAPI) -> None:

    # ---- Cancer types ----

    @app.get("/api/v1/cancer-types", response_model=list[CancerType], tags=["Cancer Types"])
    async def list_cancer_types(
        service: ClinicalDataService = Depends(get_clinical_data_service),
    ) -> list[CancerType]:
        """List cancer types, most recorded cases first."""
        return await service.list_cancer_types()

    @app.get("/api/v1/cancer-types/{cancer_type_id}", response_model=CancerType, tags=["Cancer Types"])
    async def get_cancer_type(
        cancer_type_id: str,
        service: ClinicalDataService = Depends(get_clinical_data_service),
    ) -> CancerType:
        return await service.get_cancer_type(cancer_type_id)

    @app.post(
        "/api/v1/cancer-types",
        response_model=CancerType,
        status_code=status.HTTP_201_CREATED,
        tags=["Cancer Types"],
    )
    async def create_cancer_type(
        payload: CancerTypeCreate,
        service: ClinicalDataService = Depends(get_clinical_data_service),
    ) -> CancerType:
        return await service.create_cancer_type(payload)

    # ---- Patients ----

    @app.get("/api/v1/patients", response_model=list[PatientWithCancerType], tags=["Patients"])
    async def list_patients(
        limit: int = Query(default=100, ge=1, le=1000),
        service: ClinicalDataService = Depends(get_clinical_data_service),
    ) -> list[PatientWithCancerType]:
        """List the most recently added patients with their cancer type."""
        return await service.list_patients(limit)

    @app.get("/api/v1/patients/{patient_id}", response_model=PatientWithCancerType, tags=["Patients"])
    async def get_patient(
        patient_id: str,
        service: ClinicalDataService = Depends(get_clinical_data_service),
    ) -> PatientWithCancerType:
        return await service.get_patient(patient_id)

    @app.post(
        "/api/v1/patients",
        response_model=Patient,
        status_code=status.HTTP_201_CREATED,
        tags=["Patients"],
    )
    async def create_patient(
        payload: PatientCreate,
        service: ClinicalDataService = Depends(get_clinical_data_service),
    ) -> Patient:
        return await service.create_patient(payload)

    @app.get(
        "/api/v1/patients/{patient_id}/treatments",
        response_model=list[TreatmentRecord],
        tags=["Patients"],
    )
    async def list_treatments(
        patient_id: str,
        service: ClinicalDataService = Depends(get_clinical_data_service),
    ) -> list[TreatmentRecord]:
        return await service.list_treatments(patient_id)

    @app.post(
        "/api/v1/patients/{patient_id}/treatments",
        response_model=TreatmentRecord,
        status_code=status.HTTP_201_CREATED,
        tags=["Patients"],
    )
    async def create_treatment(
        patient_id: str,
        payload: TreatmentRecordCreate,
        service: ClinicalDataService = Depends(get_clinical_data_service),
    ) -> TreatmentRecord:
        return await service.create_treatment(patient_id, payload)

    @app.get(
        "/api/v1/patients/{patient_id}/outcomes",
        response_model=list[OutcomeWithTreatment],
        tags=["Patients"],
    )
    async def list_outcomes(
        patient_id: str,
        service: ClinicalDataService = Depends(get_clinical_data_service),
    ) -> list[OutcomeWithTreatment]:
        return await service.list_outcomes(patient_id)

    @app.post(
        "/api/v1/patients/{patient_id}/outcomes",
        response_model=TreatmentOutcome,
        status_code=status.HTTP_201_CREATED,
        tags=["Patients"],
    )
    async def create_outcome(
        patient_id: str,
        payload: TreatmentOutcomeCreate,
        service: ClinicalDataService = Depends(get_clinical_data_service),
    ) -> TreatmentOutcome:
        return await service.create_outcome(patient_id, payload)

    @app.get(
        "/api/v1/patients/{patient_id}/survival",
        response_model=SurvivalData,
        tags=["Patients"],
    )
    async def get_survival(
        patient_id: str,
        service: ClinicalDataService = Depends(get_clinical_data_service),
    ) -> SurvivalData:
        return await service.get_survival(patient_id)

    @app.post(
        "/api/v1/patients/{patient_id}/survival",
        response_model=SurvivalData,
        status_code=status.HTTP_201_CREATED,
        tags=["Patients"],
    )
    async def create_survival(
        patient_id: str,
        payload: SurvivalDataCreate,
        service: ClinicalDataService = Depends(get_clinical_data_service),
    ) -> SurvivalData:
        return await service.create_survival(patient_id, payload)

    @app.get(
        "/api/v1/patients/{patient_id}/images",
        response_model=list[MedicalImage],
        tags=["Patients"],
    )
    async def list_images(
        patient_id: str,
        service: ClinicalDataService = Depends(get_clinical_data_service),
    ) -> list[MedicalImage]:
        return await service.list_images(patient_id)

    @app.post(
        "/api/v1/patients/{patient_id}/images",
        response_model=MedicalImage,
        status_code=status.HTTP_201_CREATED,
        tags=["Patients"],
    )
    async def create_image(
        patient_id: str,
        payload: MedicalImageCreate,
        service: ClinicalDataService = Depends(get_clinical_data_service),
    ) -> MedicalImage:
        return await service.create_image(patient_id, payload)

    @app.get(
        "/api/v1/patients/{patient_id}/predictions",
        response_model=list[AiPrediction],
        tags=["Patients"],
    )
    async def list_predictions(
        patient_id: str,
        service: ClinicalDataService = Depends(get_clinical_data_service),
    ) -> list[AiPrediction]:
        """Audit trail of predictions made for a patient, newest first."""
        return await service.list_predictions(patient_id)

    # ---- Statistics and dashboard ----

    @app.get("/api/v1/statistics/{stat_type}", response_model=list[Statistic], tags=["Statistics"])
    async def list_statistics(
        stat_type: str,
        service: ClinicalDataService = Depends(get_clinical_data_service),
    ) -> list[Statistic]:
        return await service.list_statistics(stat_type)

    @app.post(
        "/api/v1/statistics",
        response_model=Statistic,
        status_code=status.HTTP_201_CREATED,
        tags=["Statistics"],
    )
    async def create_statistic(
        payload: StatisticCreate,
        service: ClinicalDataService = Depends(get_clinical_data_service),
    ) -> Statistic:
        return await service.create_statistic(payload)

    @app.get("/api/v1/dashboard/stats", response_model=DashboardStats, tags=["Dashboard"])
    async def dashboard_stats(
        service: ClinicalDataService = Depends(get_clinical_data_service),
    ) -> DashboardStats:
        return await service.get_dashboard_stats()

    @app.get(
        "/api/v1/dashboard/treatment-outcomes",
        response_model=list[OutcomeCount],
        tags=["Dashboard"],
    )
    async def treatment_outcomes(
        service: ClinicalDataService = Depends(get_clinical_data_service),
    ) -> list[OutcomeCount]:
        """Number of evaluated outcomes per response category."""
        return await service.get_treatment_outcome_stats()


def _register_prediction_routes(app: FastAPI) -> None:

    @app.post(
        "/api/v1/predictions/survival",
        response_model=SurvivalPredictionResponse,
        tags=["Predictions"],
    )
    async def predict_survival(
        request: SurvivalPredictionRequest,
        service: PredictionService = Depends(get_prediction_service),
    ) -> SurvivalPredictionResponse:
        """
        Estimate the 5-year survival rate from clinical covariates.

        Heuristic linear adjustments over cancer type, stage, age and ECOG
        performance status; not a trained model. When ``patientId`` is
        given the prediction is recorded in the patient's audit trail.
        """
        return await service.predict_survival(request)

    @app.post(
        "/api/v1/predictions/drug-response",
        response_model=DrugResponsePredictionResponse,
        tags=["Predictions"],
    )
    async def predict_drug_response(
        request: DrugResponsePredictionRequest,
        service: PredictionService = Depends(get_prediction_service),
    ) -> DrugResponsePredictionResponse:
        """Estimate the treatment response rate for a drug."""
        return await service.predict_drug_response(request)


def _register_cbioportal_routes(app: FastAPI) -> None:

    @app.get(
        "/api/v1/cbioportal/cancer-types",
        response_model=list[PortalCancerType],
        tags=["cBioPortal"],
    )
    async def portal_cancer_types(
        service: CBioPortalService = Depends(get_cbioportal_service),
    ) -> list[PortalCancerType]:
        return await service.get_cancer_types()

    @app.get(
        "/api/v1/cbioportal/cancer-types/{cancer_type_id}",
        response_model=PortalCancerTypeDetails,
        tags=["cBioPortal"],
    )
    async def portal_cancer_type_details(
        cancer_type_id: str,
        service: CBioPortalService = Depends(get_cbioportal_service),
    ) -> PortalCancerTypeDetails:
        details = await service.get_cancer_type_details(cancer_type_id)
        if details is None:
            raise HTTPException(status_code=404, detail="Cancer type not found")
        return details

    @app.get("/api/v1/cbioportal/studies", response_model=list[PortalStudy], tags=["cBioPortal"])
    async def portal_studies(
        page_size: int = Query(default=100, ge=1, le=1000, alias="pageSize"),
        service: CBioPortalService = Depends(get_cbioportal_service),
    ) -> list[PortalStudy]:
        return await service.get_studies(page_size)

    @app.get(
        "/api/v1/cbioportal/studies/{study_id}/clinical-data",
        response_model=list[PortalClinicalData],
        tags=["cBioPortal"],
    )
    async def portal_clinical_data(
        study_id: str,
        clinical_data_type: ClinicalDataType = Query(default="PATIENT", alias="clinicalDataType"),
        service: CBioPortalService = Depends(get_cbioportal_service),
    ) -> list[PortalClinicalData]:
        return await service.get_clinical_data_by_study(study_id, clinical_data_type)

    @app.get(
        "/api/v1/cbioportal/studies/{study_id}/patients",
        response_model=list[PortalPatient],
        tags=["cBioPortal"],
    )
    async def portal_patients(
        study_id: str,
        service: CBioPortalService = Depends(get_cbioportal_service),
    ) -> list[PortalPatient]:
        return await service.get_patients_by_study(study_id)

    @app.get("/api/v1/cbioportal/stats", response_model=PortalAggregatedStats, tags=["cBioPortal"])
    async def portal_stats(
        service: CBioPortalService = Depends(get_cbioportal_service),
    ) -> PortalAggregatedStats:
        """Aggregated sample counts by cancer type and recent public studies."""
        return await service.get_aggregated_stats()


# Create the application instance
app = create_app()


def run() -> None:
    """Run the API with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "cancercare.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
