#!/usr/bin/env python3
"""
CLI script to seed ArangoDB with synthetic clinical data.

Usage:
    python -m cancercare.scripts.seed_data [--patients 50] [--seed 42]

Or via the installed entry point:
    cancercare-seed --patients 50
"""

import argparse
import json
import random
import sys
from datetime import datetime, timedelta, timezone

from cancercare.config.logging_config import configure_logging
from cancercare.database.database import DuplicateRecordError, StorageUnavailableError
from cancercare.database.repository import ClinicalRepository, get_clinical_repository
from cancercare.models.clinical_models import (
    CancerTypeCreate,
    OutcomeType,
    PatientCreate,
    StatisticCreate,
    SurvivalDataCreate,
    SurvivalStatus,
    TreatmentOutcomeCreate,
    TreatmentRecordCreate,
)

CANCER_TYPES = [
    CancerTypeCreate(name="Breast Cancer", category="Carcinoma", description="Most common cancer in women", average_survival_rate=89.7, total_cases=2300),
    CancerTypeCreate(name="Lung Cancer", category="Carcinoma", description="Leading cause of cancer death", average_survival_rate=18.6, total_cases=2100),
    CancerTypeCreate(name="Prostate Cancer", category="Carcinoma", description="Most common cancer in men", average_survival_rate=98.2, total_cases=1900),
    CancerTypeCreate(name="Colorectal Cancer", category="Carcinoma", description="Cancer of colon or rectum", average_survival_rate=64.6, total_cases=1500),
    CancerTypeCreate(name="Melanoma", category="Skin Cancer", description="Most serious type of skin cancer", average_survival_rate=92.7, total_cases=900),
    CancerTypeCreate(name="Pancreatic Cancer", category="Carcinoma", description="Highly aggressive cancer", average_survival_rate=9.3, total_cases=600),
    CancerTypeCreate(name="Leukemia", category="Blood Cancer", description="Cancer of blood-forming tissues", average_survival_rate=63.7, total_cases=800),
    CancerTypeCreate(name="Lymphoma", category="Blood Cancer", description="Cancer of lymphatic system", average_survival_rate=73.2, total_cases=750),
]

GENDERS = ["Male", "Female"]
ETHNICITIES = ["Caucasian", "African American", "Hispanic", "Asian", "Other"]
STAGES = ["I", "II", "III", "IV"]
TREATMENT_TYPES = ["Chemotherapy", "Radiation", "Immunotherapy", "Targeted Therapy", "Hormone Therapy", "Surgery"]
DRUG_NAMES = ["Cisplatin", "Paclitaxel", "Doxorubicin", "Pembrolizumab", "Trastuzumab", "Tamoxifen"]
OUTCOME_WEIGHTS = [
    (OutcomeType.COMPLETE_RESPONSE, 0.3),
    (OutcomeType.PARTIAL_RESPONSE, 0.35),
    (OutcomeType.STABLE_DISEASE, 0.25),
    (OutcomeType.PROGRESSIVE_DISEASE, 0.1),
]
MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def add_months(value: datetime, months: int) -> datetime:
    """Shift a date by whole months, clamping the day to 28."""
    month_index = value.month - 1 + months
    return value.replace(
        year=value.year + month_index // 12,
        month=month_index % 12 + 1,
        day=min(value.day, 28),
    )


def pick_outcome(rng: random.Random) -> OutcomeType:
    """Draw an outcome category using the cumulative weights."""
    draw = rng.random()
    for outcome, weight in OUTCOME_WEIGHTS:
        draw -= weight
        if draw <= 0:
            return outcome
    return OUTCOME_WEIGHTS[0][0]


def seed(repository: ClinicalRepository, patient_count: int, rng: random.Random) -> dict[str, int]:
    """
    Insert synthetic cancer types, patients, treatments, outcomes, survival
    data and monthly statistics.

    Records that already exist are left alone, so re-running only fills gaps.

    Returns:
        Number of records inserted per collection.
    """
    counts = {"cancer_types": 0, "patients": 0, "treatments": 0, "outcomes": 0, "survival": 0, "statistics": 0}

    existing_types = {record["name"]: record for record in repository.list_cancer_types()}
    cancer_types = []
    for cancer_type in CANCER_TYPES:
        if cancer_type.name in existing_types:
            cancer_types.append(existing_types[cancer_type.name])
            continue
        cancer_types.append(repository.create_cancer_type(cancer_type.model_dump(mode="json")))
        counts["cancer_types"] += 1
    print("✓ Cancer types seeded")

    patients = []
    for i in range(patient_count):
        patient = PatientCreate(
            patient_code=f"PT{i + 1:05d}",
            age=35 + rng.randrange(50),
            gender=rng.choice(GENDERS),
            ethnicity=rng.choice(ETHNICITIES),
            diagnosis_date=datetime(2020 + rng.randrange(4), 1 + rng.randrange(12), 1 + rng.randrange(28), tzinfo=timezone.utc),
            cancer_type_id=rng.choice(cancer_types)["id"],
            stage=rng.choice(STAGES),
            performance_status=rng.randrange(3),
        )
        try:
            patients.append(repository.create_patient(patient.model_dump(mode="json")))
        except DuplicateRecordError:
            print(f"   Skipping existing patient {patient.patient_code}")
            continue
        counts["patients"] += 1
    print("✓ Patients seeded")

    for patient in patients:
        diagnosis_date = datetime.fromisoformat(patient["diagnosis_date"])
        for i in range(1 + rng.randrange(3)):
            start_date = add_months(diagnosis_date, i * 3)
            end_date = add_months(start_date, 2)
            treatment = TreatmentRecordCreate(
                treatment_type=rng.choice(TREATMENT_TYPES),
                drug_name=rng.choice(DRUG_NAMES),
                start_date=start_date,
                end_date=end_date,
                dosage=f"{50 + rng.randrange(150)}mg",
                protocol="Standard protocol",
            )
            record = repository.create_treatment(patient["id"], treatment.model_dump(mode="json"))
            counts["treatments"] += 1

            outcome = TreatmentOutcomeCreate(
                treatment_id=record["id"],
                outcome_type=pick_outcome(rng),
                response_rate=20 + rng.random() * 70,
                side_effects="Mild fatigue, nausea",
                evaluation_date=end_date,
                notes="Patient tolerated treatment well",
            )
            repository.create_outcome(patient["id"], outcome.model_dump(mode="json"))
            counts["outcomes"] += 1
    print("✓ Treatment records and outcomes seeded")

    for patient in patients:
        alive = rng.random() > 0.3
        survival = SurvivalDataCreate(
            survival_months=12 + rng.randrange(48) if alive else 6 + rng.randrange(36),
            status=SurvivalStatus.ALIVE if alive else SurvivalStatus.DECEASED,
            last_followup_date=datetime.now(timezone.utc) - timedelta(days=rng.randrange(90)),
            cause_of_death=None if alive else "Cancer progression",
            quality_of_life=6 + rng.randrange(4) if alive else None,
        )
        repository.create_survival(patient["id"], survival.model_dump(mode="json"))
        counts["survival"] += 1
    print("✓ Survival data seeded")

    seeded_months = {
        (record.get("year"), record.get("month"))
        for record in repository.list_statistics("treatment_success_rate")
    }
    for i, month_name in enumerate(MONTHS):
        if (2024, i + 1) in seeded_months:
            continue
        statistic = StatisticCreate(
            stat_type="treatment_success_rate",
            year=2024,
            month=i + 1,
            value=75 + rng.random() * 20,
            metadata=json.dumps({"monthName": month_name}),
        )
        repository.create_statistic(statistic.model_dump(mode="json"))
        counts["statistics"] += 1
    print("✓ Statistics seeded")

    return counts


def main(argv: list[str] | None = None) -> None:
    """Seed the configured database with synthetic records."""
    parser = argparse.ArgumentParser(description="Seed the CancerCare database with synthetic data")
    parser.add_argument("--patients", type=int, default=50, help="Number of synthetic patients")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducible data")
    args = parser.parse_args(argv)

    configure_logging()
    print("🌱 Seeding database...")

    try:
        counts = seed(get_clinical_repository(), args.patients, random.Random(args.seed))
    except StorageUnavailableError as e:
        print(f"❌ Seeding failed: {e}")
        sys.exit(1)

    print()
    print("✅ Database seeding completed!")
    for collection, count in counts.items():
        print(f"   {collection:<13} {count}")


if __name__ == "__main__":
    main()
