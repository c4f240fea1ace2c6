"""
Unit Tests for the cBioPortal Proxy Service

Upstream responses are served by an httpx mock transport.
"""
import httpx
import pytest

from cancercare.services.cbioportal_service import CBioPortalService

BASE_URL = "https://cbioportal.test/api"


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
async def portal(portal_transport):
    """Service backed by the canned upstream."""
    service = CBioPortalService(base_url=BASE_URL, timeout=5.0, transport=portal_transport)
    yield service
    await service.close()


@pytest.fixture
async def broken_portal(failing_transport):
    """Service whose upstream always fails."""
    service = CBioPortalService(base_url=BASE_URL, timeout=5.0, transport=failing_transport)
    yield service
    await service.close()


# ============================================================================
# Tests
# ============================================================================

class TestFetch:
    """Tests for the plain fetch operations."""

    @pytest.mark.asyncio
    async def test_cancer_types(self, portal):
        cancer_types = await portal.get_cancer_types()

        assert [ct.cancer_type_id for ct in cancer_types] == ["brca", "luad", "paad"]
        assert cancer_types[0].short_name == "BRCA"

    @pytest.mark.asyncio
    async def test_studies_send_page_size(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["page_size"] = request.url.params.get("pageSize")
            return httpx.Response(200, json=[])

        service = CBioPortalService(base_url=BASE_URL, transport=httpx.MockTransport(handler))
        try:
            studies = await service.get_studies(page_size=25)
        finally:
            await service.close()

        assert studies == []
        assert seen["page_size"] == "25"

    @pytest.mark.asyncio
    async def test_clinical_data(self, portal):
        rows = await portal.get_clinical_data_by_study("brca_tcga")

        assert len(rows) == 1
        assert rows[0].clinical_attribute_id == "AGE"
        assert rows[0].value == "57"

    @pytest.mark.asyncio
    async def test_clinical_data_type_param(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["type"] = request.url.params.get("clinicalDataType")
            return httpx.Response(200, json=[])

        service = CBioPortalService(base_url=BASE_URL, transport=httpx.MockTransport(handler))
        try:
            await service.get_clinical_data_by_study("brca_tcga", "SAMPLE")
        finally:
            await service.close()

        assert seen["type"] == "SAMPLE"

    @pytest.mark.asyncio
    async def test_patients(self, portal):
        patients = await portal.get_patients_by_study("brca_tcga")

        assert patients[0].patient_id == "TCGA-A1"

    @pytest.mark.asyncio
    async def test_unknown_study_degrades_to_empty(self, portal):
        assert await portal.get_patients_by_study("nope") == []

    @pytest.mark.asyncio
    async def test_upstream_failure_degrades_to_empty(self, broken_portal):
        assert await broken_portal.get_cancer_types() == []
        assert await broken_portal.get_studies() == []
        assert await broken_portal.get_clinical_data_by_study("brca_tcga") == []

    @pytest.mark.asyncio
    async def test_malformed_payload_degrades_to_empty(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[{"unexpected": True}])

        service = CBioPortalService(base_url=BASE_URL, transport=httpx.MockTransport(handler))
        try:
            assert await service.get_cancer_types() == []
        finally:
            await service.close()


class TestAggregatedStats:
    """Tests for the dashboard aggregation."""

    @pytest.mark.asyncio
    async def test_totals(self, portal):
        stats = await portal.get_aggregated_stats()

        assert stats.total_samples == 4650
        assert stats.total_studies == 4
        assert stats.total_cancer_types == 3

    @pytest.mark.asyncio
    async def test_grouped_by_cancer_type_descending(self, portal):
        stats = await portal.get_aggregated_stats()

        summary = stats.samples_by_cancer_type
        assert [s.cancer_type_id for s in summary] == ["brca", "luad", "paad"]
        assert summary[0].total_samples == 3600
        assert summary[0].study_count == 2
        assert summary[0].name == "Invasive Breast Carcinoma"
        assert summary[0].short_name == "BRCA"

    @pytest.mark.asyncio
    async def test_recent_studies_are_public_only(self, portal):
        stats = await portal.get_aggregated_stats()

        assert [s.name for s in stats.recent_studies] == [
            "Breast TCGA",
            "Breast METABRIC",
            "Pancreas QCMG",
        ]
        assert stats.recent_studies[0].citation == "TCGA, Nature 2012"

    @pytest.mark.asyncio
    async def test_limits_and_fallbacks(self):
        studies = [
            {
                "studyId": f"study_{i}",
                "name": f"Study {i}",
                "cancerTypeId": f"type_{i}",
                "allSampleCount": i,
                "publicStudy": True,
            }
            for i in range(40)
        ]
        studies.append({"studyId": "orphan", "name": "Orphan", "allSampleCount": 1000})

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/studies"):
                return httpx.Response(200, json=studies)
            return httpx.Response(200, json=[])

        service = CBioPortalService(base_url=BASE_URL, transport=httpx.MockTransport(handler))
        try:
            stats = await service.get_aggregated_stats()
        finally:
            await service.close()

        assert len(stats.samples_by_cancer_type) == 30
        assert len(stats.recent_studies) == 10
        top = stats.samples_by_cancer_type[0]
        assert top.cancer_type_id == "unknown"
        assert top.name == "unknown"
        assert top.short_name == "unknown"
        assert stats.samples_by_cancer_type[1].total_samples == 39

    @pytest.mark.asyncio
    async def test_upstream_failure_gives_zeroes(self, broken_portal):
        stats = await broken_portal.get_aggregated_stats()

        assert stats.total_samples == 0
        assert stats.total_studies == 0
        assert stats.total_cancer_types == 0
        assert stats.samples_by_cancer_type == []
        assert stats.recent_studies == []


class TestCancerTypeDetails:
    """Tests for a single cancer type with its studies."""

    @pytest.mark.asyncio
    async def test_known_type(self, portal):
        details = await portal.get_cancer_type_details("brca")

        assert details.cancer_type.name == "Invasive Breast Carcinoma"
        assert details.study_count == 2
        assert details.total_samples == 3600

    @pytest.mark.asyncio
    async def test_unknown_type(self, portal):
        assert await portal.get_cancer_type_details("xyz") is None
