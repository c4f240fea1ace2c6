"""
Pydantic models for the cBioPortal proxy.

Upstream payloads are camelCase already; these models keep only the
clinical fields the dashboard displays and ignore everything else.
"""

from typing import Literal

from pydantic import Field

from cancercare.models.models import CamelModel


ClinicalDataType = Literal["SAMPLE", "PATIENT"]


class PortalCancerType(CamelModel):
    cancer_type_id: str
    name: str
    dedicated_color: str | None = None
    short_name: str | None = None
    parent: str | None = None


class PortalStudy(CamelModel):
    study_id: str
    name: str
    description: str | None = None
    cancer_type_id: str | None = None
    all_sample_count: int = 0
    citation: str | None = None
    pmid: str | None = None
    public_study: bool = False


class PortalClinicalData(CamelModel):
    clinical_attribute_id: str
    value: str
    patient_id: str
    sample_id: str | None = None
    study_id: str


class PortalPatient(CamelModel):
    patient_id: str
    study_id: str
    unique_patient_key: str | None = None
    unique_sample_key: str | None = None


class CancerTypeSampleSummary(CamelModel):
    cancer_type_id: str
    name: str
    short_name: str
    total_samples: int
    study_count: int


class RecentStudy(CamelModel):
    name: str
    cancer_type: str | None = None
    samples: int
    citation: str | None = None


class PortalAggregatedStats(CamelModel):
    """Headline cBioPortal numbers for the dashboard."""
    total_samples: int = 0
    total_studies: int = 0
    total_cancer_types: int = 0
    samples_by_cancer_type: list[CancerTypeSampleSummary] = Field(default_factory=list)
    recent_studies: list[RecentStudy] = Field(default_factory=list)


class PortalCancerTypeDetails(CamelModel):
    cancer_type: PortalCancerType | None = None
    studies: list[PortalStudy] = Field(default_factory=list)
    total_samples: int = 0
    study_count: int = 0
