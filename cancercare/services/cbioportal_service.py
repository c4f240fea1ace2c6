"""
cBioPortal proxy service.

Fetches and reshapes data from the public cBioPortal REST API for display.
Only clinical endpoints are used; genomic and mutation endpoints are never
called.

Upstream failures are logged and degrade to empty results so dashboard
panels render without data instead of failing.
"""

import asyncio
from collections import defaultdict
from typing import Any
from urllib.parse import quote

import httpx

from cancercare.config.config import get_settings
from cancercare.config.logging_config import get_logger
from cancercare.models.cbioportal_models import (
    CancerTypeSampleSummary,
    ClinicalDataType,
    PortalAggregatedStats,
    PortalCancerType,
    PortalCancerTypeDetails,
    PortalClinicalData,
    PortalPatient,
    PortalStudy,
    RecentStudy,
)

logger = get_logger(__name__)

TOP_CANCER_TYPES = 30
RECENT_STUDIES = 10
STATS_PAGE_SIZE = 1000


class CBioPortalService:
    """
    Thin async client for the cBioPortal clinical endpoints.

    Args:
        base_url: API base URL; defaults to the configured one.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport (used to stub the upstream).
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.cbioportal_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.cbioportal_timeout_seconds
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers={"Accept": "application/json"},
                transport=self._transport,
            )
            logger.debug("Created cBioPortal HTTP client", base_url=self.base_url)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        response = await self.client.get(path, params=params)
        response.raise_for_status()
        return response.json()

    async def get_cancer_types(self) -> list[PortalCancerType]:
        """Fetch all cancer types."""
        try:
            data = await self._get_json("/cancer-types")
            return [PortalCancerType.model_validate(item) for item in data]
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Error fetching cBioPortal cancer types", error=str(e))
            return []

    async def get_studies(self, page_size: int = 100) -> list[PortalStudy]:
        """Fetch public studies."""
        try:
            data = await self._get_json("/studies", params={"pageSize": page_size})
            return [PortalStudy.model_validate(item) for item in data]
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Error fetching cBioPortal studies", error=str(e))
            return []

    async def get_clinical_data_by_study(
        self,
        study_id: str,
        clinical_data_type: ClinicalDataType = "PATIENT",
    ) -> list[PortalClinicalData]:
        """Fetch clinical (never genomic) attributes for a study."""
        try:
            data = await self._get_json(
                f"/studies/{quote(study_id, safe='')}/clinical-data",
                params={"clinicalDataType": clinical_data_type},
            )
            return [PortalClinicalData.model_validate(item) for item in data]
        except (httpx.HTTPError, ValueError) as e:
            logger.error(
                "Error fetching cBioPortal clinical data", study_id=study_id, error=str(e)
            )
            return []

    async def get_patients_by_study(self, study_id: str) -> list[PortalPatient]:
        """Fetch the patients of a study."""
        try:
            data = await self._get_json(f"/studies/{quote(study_id, safe='')}/patients")
            return [PortalPatient.model_validate(item) for item in data]
        except (httpx.HTTPError, ValueError) as e:
            logger.error(
                "Error fetching cBioPortal patients", study_id=study_id, error=str(e)
            )
            return []

    async def get_aggregated_stats(self) -> PortalAggregatedStats:
        """
        Aggregate sample counts across studies.

        Groups studies by cancer type and keeps the top cancer types by
        sample count along with the first public studies.
        """
        cancer_types, studies = await asyncio.gather(
            self.get_cancer_types(),
            self.get_studies(STATS_PAGE_SIZE),
        )

        names = {ct.cancer_type_id: ct for ct in cancer_types}
        studies_by_type: dict[str, list[PortalStudy]] = defaultdict(list)
        for study in studies:
            studies_by_type[study.cancer_type_id or "unknown"].append(study)

        summaries = []
        for cancer_type_id, study_list in studies_by_type.items():
            cancer_type = names.get(cancer_type_id)
            summaries.append(
                CancerTypeSampleSummary(
                    cancer_type_id=cancer_type_id,
                    name=cancer_type.name if cancer_type else cancer_type_id,
                    short_name=(cancer_type.short_name if cancer_type else None) or cancer_type_id,
                    total_samples=sum(s.all_sample_count for s in study_list),
                    study_count=len(study_list),
                )
            )
        summaries.sort(key=lambda s: s.total_samples, reverse=True)

        recent = [
            RecentStudy(
                name=s.name,
                cancer_type=s.cancer_type_id,
                samples=s.all_sample_count,
                citation=s.citation,
            )
            for s in studies
            if s.public_study
        ][:RECENT_STUDIES]

        return PortalAggregatedStats(
            total_samples=sum(s.all_sample_count for s in studies),
            total_studies=len(studies),
            total_cancer_types=len(cancer_types),
            samples_by_cancer_type=summaries[:TOP_CANCER_TYPES],
            recent_studies=recent,
        )

    async def get_cancer_type_details(self, cancer_type_id: str) -> PortalCancerTypeDetails | None:
        """Cancer type with its studies; ``None`` if cBioPortal does not know it."""
        cancer_types, studies = await asyncio.gather(
            self.get_cancer_types(),
            self.get_studies(STATS_PAGE_SIZE),
        )

        cancer_type = next(
            (ct for ct in cancer_types if ct.cancer_type_id == cancer_type_id), None
        )
        related = [s for s in studies if s.cancer_type_id == cancer_type_id]
        if cancer_type is None and not related:
            return None

        return PortalCancerTypeDetails(
            cancer_type=cancer_type,
            studies=related,
            total_samples=sum(s.all_sample_count for s in related),
            study_count=len(related),
        )


# Singleton instance for dependency injection
_cbioportal_service: CBioPortalService | None = None


def get_cbioportal_service() -> CBioPortalService:
    """
    Get the cBioPortal service singleton.

    Returns:
        The shared CBioPortalService instance.
    """
    global _cbioportal_service
    if _cbioportal_service is None:
        _cbioportal_service = CBioPortalService()
    return _cbioportal_service


async def close_cbioportal_service() -> None:
    """Close the shared client, if one was created."""
    global _cbioportal_service
    if _cbioportal_service is not None:
        await _cbioportal_service.close()
        _cbioportal_service = None
