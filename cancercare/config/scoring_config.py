"""
Scoring tables for the survival and drug-response estimators.

The coefficients below are heuristic constants rather than fitted model
parameters, so they live in configuration and can be swapped per deployment
through ``SCORING_*`` environment variables (dict and list fields accept JSON).
"""

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_CANCER_TYPE_OFFSETS: dict[str, float] = {
    "Pancreatic": -55,
    "Lung": -45,
    "Liver": -40,
    "Esophageal": -35,
    "Brain": -30,
    "Stomach": -25,
    "Colorectal": -5,
    "Breast": 15,
    "Prostate": 25,
    "Thyroid": 28,
    "Melanoma": 20,
}


class ScoringSettings(BaseSettings):
    """
    Coefficients, thresholds and labels used by the risk scoring functions.

    All settings can be overridden via environment variables prefixed
    with ``SCORING_``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
        env_prefix="SCORING_",
    )

    # Survival estimator
    survival_base_score: float = Field(default=70.0, description="Starting survival score")
    survival_stage_penalty: float = Field(
        default=15.0, ge=0.0, description="Points removed per stage above I"
    )
    survival_performance_penalty: float = Field(
        default=8.0, ge=0.0, description="Points removed per ECOG grade"
    )
    survival_elderly_age: int = Field(default=70, description="Age above which the elderly penalty applies")
    survival_elderly_penalty: float = Field(default=10.0, ge=0.0)
    survival_senior_age: int = Field(default=60, description="Age above which the senior penalty applies")
    survival_senior_penalty: float = Field(default=5.0, ge=0.0)
    survival_young_age: int = Field(default=50, description="Age below which the young bonus applies")
    survival_young_bonus: float = Field(default=5.0, ge=0.0)
    survival_min_rate: float = Field(default=5.0, ge=0.0, le=100.0)
    survival_max_rate: float = Field(default=98.0, ge=0.0, le=100.0)
    survival_confidence_base: float = Field(default=0.85, ge=0.0, le=1.0)
    survival_confidence_spread: float = Field(default=0.1, ge=0.0, le=1.0)

    cancer_type_offsets: dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_CANCER_TYPE_OFFSETS),
        description="Survival score offset per cancer type label"
    )

    # Risk factor thresholds
    advanced_stage_threshold: int = Field(default=3, ge=1)
    advanced_age_threshold: int = Field(default=65, ge=0)
    reduced_performance_threshold: int = Field(default=2, ge=0, le=5)
    low_survival_cancer_types: list[str] = Field(
        default_factory=lambda: ["Pancreatic", "Lung", "Liver"],
        description="Cancer types flagged with a low-survival risk factor"
    )

    # Drug response estimator
    response_base_score: float = Field(default=65.0, description="Starting response score")
    response_stage_penalty: float = Field(default=10.0, ge=0.0)
    response_prior_treatment_penalty: float = Field(default=8.0, ge=0.0)
    response_elderly_age: int = Field(default=70)
    response_elderly_penalty: float = Field(default=8.0, ge=0.0)
    response_young_age: int = Field(default=50)
    response_young_bonus: float = Field(default=5.0, ge=0.0)
    response_min_rate: float = Field(default=10.0, ge=0.0, le=100.0)
    response_max_rate: float = Field(default=95.0, ge=0.0, le=100.0)
    response_confidence_base: float = Field(default=0.82, ge=0.0, le=1.0)
    response_confidence_spread: float = Field(default=0.12, ge=0.0, le=1.0)
    high_response_threshold: float = Field(
        default=70.0, description="Rates strictly above this get the high-response advice"
    )
    moderate_response_threshold: float = Field(
        default=50.0, description="Rates strictly above this get the moderate-response advice"
    )

    # Audit labels
    survival_model_name: str = Field(default="Survival Prediction Model v2.1")
    survival_prediction_type: str = Field(default="5-Year Survival Rate")
    response_model_name: str = Field(default="Drug Response Model v1.8")
    response_prediction_type: str = Field(default="Treatment Response Rate")

    @model_validator(mode="after")
    def validate_ranges(self) -> "ScoringSettings":
        """Reject clamp ranges and response bands that cannot be satisfied."""
        if self.survival_min_rate > self.survival_max_rate:
            raise ValueError("survival_min_rate must not exceed survival_max_rate")
        if self.response_min_rate > self.response_max_rate:
            raise ValueError("response_min_rate must not exceed response_max_rate")
        if self.moderate_response_threshold > self.high_response_threshold:
            raise ValueError(
                "moderate_response_threshold must not exceed high_response_threshold"
            )
        return self

    def get_safe_config_dict(self) -> dict:
        """Return configuration dict for startup logging."""
        return self.model_dump()


@lru_cache
def get_scoring_settings() -> ScoringSettings:
    """
    Get cached scoring settings.

    Settings are loaded once and cached for the application lifetime.
    """
    return ScoringSettings()
