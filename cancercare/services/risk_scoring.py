"""
Heuristic clinical risk scoring.

Two deterministic linear-adjustment estimators over a handful of clinical
covariates: a 5-year survival rate estimator and a drug response rate
estimator. Both return a bounded percentage, a confidence value and a list
of qualitative annotations.

The only non-deterministic part is the confidence noise term, drawn from an
injectable random source so callers (and tests) can pin it down.
"""

import random
import re
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol

from cancercare.config.scoring_config import ScoringSettings, get_scoring_settings


class RandomSource(Protocol):
    """Anything exposing ``random() -> float`` in [0, 1)."""

    def random(self) -> float: ...


_default_rng = random.Random()

_ROMAN_STAGES = {"I": 1, "II": 2, "III": 3, "IV": 4}
_ROMAN_TOKEN = re.compile(r"^(IV|III|II|I)[ABC]?$", re.IGNORECASE)

# Stage numbers and treatment counts above this already pin the score to its floor
_MAX_COUNT = 1000


@dataclass(frozen=True)
class SurvivalEstimate:
    """Result of the survival rate estimator."""

    predicted_survival_rate: float
    confidence: float
    risk_factors: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class DrugResponseEstimate:
    """Result of the drug response estimator."""

    predicted_response_rate: float
    confidence: float
    recommendations: list[str] = field(default_factory=list)


def parse_stage(stage: str | None) -> int:
    """
    Normalize a free-text stage label to an integer stage.

    Digits win: all non-digit characters are stripped and the remainder is
    read as an integer ("Stage 3B" -> 3). Without digits, a roman numeral
    token I-IV with an optional sub-stage letter is accepted ("Stage IIIA"
    -> 3). Anything else is stage 1.
    """
    if not stage:
        return 1

    digits = re.sub(r"[^0-9]", "", stage)
    if digits:
        return int(digits) or 1

    for token in re.split(r"[^A-Za-z]+", stage):
        match = _ROMAN_TOKEN.match(token)
        if match:
            return _ROMAN_STAGES[match.group(1).upper()]

    return 1


def normalize_cancer_type(cancer_type: str, tables: ScoringSettings | None = None) -> str:
    """
    Map a cancer type label onto the canonical key of the offset table.

    Matching ignores case and a trailing "cancer" ("breast cancer" ->
    "Breast"). Unknown labels come back trimmed and score with offset 0.
    """
    tables = tables or get_scoring_settings()
    label = cancer_type.strip()
    candidates = {label.lower()}
    if label.lower().endswith(" cancer"):
        candidates.add(label[: -len(" cancer")].strip().lower())

    for known in (*tables.cancer_type_offsets, *tables.low_survival_cancer_types):
        if known.lower() in candidates:
            return known
    return label


def _clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def _round_half_up(value: float, places: int) -> float:
    """Round halves away from zero (70.25 -> 70.3), unlike round()."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def estimate_survival(
    age: int,
    gender: str,
    cancer_type: str,
    stage: str,
    performance_status: int,
    treatment_type: str | None = None,
    *,
    tables: ScoringSettings | None = None,
    rng: RandomSource | None = None,
) -> SurvivalEstimate:
    """
    Estimate the 5-year survival rate for a patient profile.

    Gender and treatment type are accepted for audit completeness; they do
    not move the score.

    Args:
        age: Age in years.
        gender: Male, Female or Other.
        cancer_type: Cancer type label, e.g. "Breast".
        stage: Free-text stage, e.g. "II" or "Stage 3".
        performance_status: ECOG grade 0-5.
        treatment_type: Planned treatment, if any.
        tables: Scoring coefficients; defaults to the configured tables.
        rng: Random source for the confidence noise.

    Returns:
        SurvivalEstimate with a rate in [survival_min_rate, survival_max_rate].
    """
    tables = tables or get_scoring_settings()
    rng = rng or _default_rng

    cancer_label = normalize_cancer_type(cancer_type, tables)
    stage_number = min(parse_stage(stage), _MAX_COUNT)

    score = tables.survival_base_score
    score += tables.cancer_type_offsets.get(cancer_label, 0)
    score -= (stage_number - 1) * tables.survival_stage_penalty

    if age > tables.survival_elderly_age:
        score -= tables.survival_elderly_penalty
    elif age > tables.survival_senior_age:
        score -= tables.survival_senior_penalty
    elif age < tables.survival_young_age:
        score += tables.survival_young_bonus

    score -= performance_status * tables.survival_performance_penalty

    rate = _clamp(score, tables.survival_min_rate, tables.survival_max_rate)
    confidence = tables.survival_confidence_base + rng.random() * tables.survival_confidence_spread

    risk_factors = []
    if stage_number >= tables.advanced_stage_threshold:
        risk_factors.append("Advanced stage disease")
    if age > tables.advanced_age_threshold:
        risk_factors.append("Advanced age")
    if performance_status >= tables.reduced_performance_threshold:
        risk_factors.append("Reduced performance status")
    if cancer_label in tables.low_survival_cancer_types:
        risk_factors.append(f"{cancer_label} cancer has lower survival rates")

    return SurvivalEstimate(
        predicted_survival_rate=_round_half_up(rate, 1),
        confidence=_round_half_up(confidence, 3),
        risk_factors=risk_factors,
    )


def estimate_drug_response(
    age: int,
    cancer_type: str,
    stage: str,
    drug_name: str,
    prior_treatments: int | None = None,
    *,
    tables: ScoringSettings | None = None,
    rng: RandomSource | None = None,
) -> DrugResponseEstimate:
    """
    Estimate the treatment response rate for a drug.

    Cancer type and drug name are recorded with the prediction but do not
    move the score.
    """
    tables = tables or get_scoring_settings()
    rng = rng or _default_rng

    stage_number = min(parse_stage(stage), _MAX_COUNT)

    score = tables.response_base_score
    score -= (stage_number - 1) * tables.response_stage_penalty

    if prior_treatments and prior_treatments > 0:
        score -= min(prior_treatments, _MAX_COUNT) * tables.response_prior_treatment_penalty

    if age > tables.response_elderly_age:
        score -= tables.response_elderly_penalty
    elif age < tables.response_young_age:
        score += tables.response_young_bonus

    rate = _clamp(score, tables.response_min_rate, tables.response_max_rate)
    confidence = tables.response_confidence_base + rng.random() * tables.response_confidence_spread

    if rate > tables.high_response_threshold:
        recommendations = [
            "High likelihood of positive response",
            "Standard dosing recommended",
        ]
    elif rate > tables.moderate_response_threshold:
        recommendations = [
            "Moderate response expected",
            "Consider combination therapy",
        ]
    else:
        recommendations = [
            "Lower response probability",
            "Alternative treatment options should be considered",
        ]

    return DrugResponseEstimate(
        predicted_response_rate=_round_half_up(rate, 1),
        confidence=_round_half_up(confidence, 3),
        recommendations=recommendations,
    )
