import pandas as pd
import pytest
from sklearn.ensemble import RandomForestClassifier

from claims_fraud.errors import SchemaError
from claims_fraud.preprocessing import (
    build_full_pipeline,
    build_preprocessor,
    learn_category_levels,
    split_feature_types,
)


def _sample_features() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "age": [25, 40, 33],
            "total_claim_amount": [5070, 71610, 34650],
            "insured_sex": ["MALE", "FEMALE", "MALE"],
            "incident_severity": ["Major Damage", "Minor Damage", "Total Loss"],
        }
    )


def test_split_feature_types():
    cat_cols, num_cols = split_feature_types(_sample_features())

    assert cat_cols == ["insured_sex", "incident_severity"]
    assert num_cols == ["age", "total_claim_amount"]


def test_date_features_are_rejected():
    df = _sample_features().assign(incident_date=pd.to_datetime(["2015-01-25"] * 3))

    with pytest.raises(SchemaError, match="incident_date"):
        split_feature_types(df)


def test_preprocessor_keeps_one_column_per_feature():
    X = _sample_features()
    levels = learn_category_levels(X, ["insured_sex", "incident_severity"])

    preprocessor = build_preprocessor(levels, ["age", "total_claim_amount"])
    transformed = preprocessor.fit_transform(X)

    assert transformed.shape == (3, 4)
    assert levels["insured_sex"] == ("FEMALE", "MALE")
    assert transformed[:, 0].tolist() == [1.0, 0.0, 1.0]
    assert list(preprocessor.get_feature_names_out()) == [
        "insured_sex",
        "incident_severity",
        "age",
        "total_claim_amount",
    ]


def test_full_pipeline_ends_with_model():
    X = _sample_features()
    levels = learn_category_levels(X, ["insured_sex", "incident_severity"])
    pipeline = build_full_pipeline(
        build_preprocessor(levels, ["age", "total_claim_amount"]),
        RandomForestClassifier(n_estimators=5, random_state=0),
    )
    step_names = [name for name, _ in pipeline.steps]

    assert step_names == ["preprocessing", "model"]

    pipeline.fit(X, ["Y", "N", "N"])
    assert pipeline.predict_proba(X).shape == (3, 2)
