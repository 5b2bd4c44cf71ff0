import numpy as np
import pandas as pd
import pytest

from claims_fraud.cleaning import clean_claims


def _make_raw_claims(n: int = 240, seed: int = 7) -> pd.DataFrame:
    """Synthetic claims in the layout of the public insurance_claims.csv."""
    rng = np.random.default_rng(seed)

    def pick(options):
        return rng.choice(options, n)

    severity = pick(["Major Damage", "Minor Damage", "Total Loss", "Trivial Damage"])
    hobbies = pick(["chess", "reading", "golf"])
    risky = (severity == "Major Damage") | (hobbies == "chess")
    fraud = np.where(rng.random(n) < np.where(risky, 0.8, 0.1), "Y", "N")

    injury = rng.integers(0, 20000, n)
    prop = rng.integers(0, 20000, n)
    vehicle = rng.integers(1000, 60000, n)

    return pd.DataFrame(
        {
            "months_as_customer": rng.integers(0, 480, n),
            "age": rng.integers(19, 65, n),
            "policy_number": rng.integers(100000, 999999, n),
            "policy_bind_date": pd.Timestamp("2010-01-01")
            + pd.to_timedelta(rng.integers(0, 1800, n), unit="D"),
            "policy_state": pick(["OH", "IN", "IL"]),
            "policy_csl": pick(["250/500", "100/300", "500/1000"]),
            "policy_deductable": pick([500, 1000, 2000]),
            "policy_annual_premium": rng.normal(1250, 240, n).round(2),
            "umbrella_limit": pick([0, 0, 0, 5000000]),
            "insured_zip": rng.integers(430000, 620000, n),
            "insured_sex": pick(["MALE", "FEMALE"]),
            "insured_education_level": pick(["MD", "PhD", "Associate", "College"]),
            "insured_occupation": pick(["craft-repair", "sales", "tech-support", "exec-managerial"]),
            "insured_hobbies": hobbies,
            "insured_relationship": pick(["husband", "wife", "own-child", "unmarried"]),
            "capital-gains": rng.integers(0, 100000, n),
            "capital-loss": -rng.integers(0, 100000, n),
            "incident_date": pick(["2015-01-25", "2015-02-17", "2015-01-07"]),
            "incident_type": pick(["Single Vehicle Collision", "Vehicle Theft", "Parked Car"]),
            "collision_type": pick(["Side Collision", "Rear Collision", "?"]),
            "incident_severity": severity,
            "authorities_contacted": pick(["Police", "Fire", "Ambulance", "None"]),
            "incident_state": pick(["SC", "VA", "NY"]),
            "incident_city": pick(["Columbus", "Riverwood", "Arlington"]),
            "incident_location": [f"{i} Maple Ave" for i in rng.integers(1000, 9999, n)],
            "incident_hour_of_the_day": rng.integers(0, 24, n),
            "number_of_vehicles_involved": rng.integers(1, 5, n),
            "property_damage": pick(["YES", "NO", "?"]),
            "bodily_injuries": rng.integers(0, 3, n),
            "witnesses": rng.integers(0, 4, n),
            "police_report_available": pick(["YES", "NO", "?"]),
            "total_claim_amount": injury + prop + vehicle,
            "injury_claim": injury,
            "property_claim": prop,
            "vehicle_claim": vehicle,
            "auto_make": pick(["Saab", "Dodge", "Suburu"]),
            "auto_model": pick(["92x", "RAM", "Impreza"]),
            "auto_year": rng.integers(1995, 2016, n),
            "fraud_reported": fraud,
        }
    )


@pytest.fixture
def make_raw_claims():
    return _make_raw_claims


@pytest.fixture
def raw_claims() -> pd.DataFrame:
    return _make_raw_claims()


@pytest.fixture
def claims(raw_claims) -> pd.DataFrame:
    return clean_claims(raw_claims)
