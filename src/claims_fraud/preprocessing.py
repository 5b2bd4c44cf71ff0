import logging
from typing import Dict, List, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator
from sklearn.compose import ColumnTransformer
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import OrdinalEncoder

from .errors import SchemaError, UnseenCategoryError

logger = logging.getLogger("claims-preprocessing")


def split_feature_types(X: pd.DataFrame) -> Tuple[List[str], List[str]]:
    """Return (categorical, numeric) column names; date columns are rejected."""
    date_cols = X.select_dtypes(include=["datetime", "datetimetz"]).columns.tolist()
    if date_cols:
        logger.error("Date columns cannot be predictors: %s", date_cols)
        raise SchemaError(
            f"Date columns cannot be used as predictors, drop them first: {date_cols}"
        )

    num_cols = X.select_dtypes(include=np.number).columns.tolist()
    cat_cols = [c for c in X.columns if c not in num_cols]

    logger.info("Numeric features (%d): %s", len(num_cols), num_cols)
    logger.info("Categorical features (%d): %s", len(cat_cols), cat_cols)
    return cat_cols, num_cols


def learn_category_levels(
    X: pd.DataFrame, cat_cols: Sequence[str]
) -> Dict[str, Tuple]:
    """Category levels actually observed in X, one sorted tuple per column."""
    return {col: tuple(sorted(X[col].dropna().unique().tolist())) for col in cat_cols}


def build_preprocessor(
    category_levels: Dict[str, Tuple], numeric_cols: Sequence[str]
) -> ColumnTransformer:
    """Ordinal-encode categoricals against fixed levels, pass numerics through.

    One output column per input feature, so ``max_features`` on the forest
    counts original columns.
    """
    cat_cols = list(category_levels)
    encoder = OrdinalEncoder(
        categories=[list(category_levels[c]) for c in cat_cols],
        handle_unknown="error",
    )
    return ColumnTransformer(
        transformers=[
            ("cat", encoder, cat_cols),
            ("num", "passthrough", list(numeric_cols)),
        ],
        verbose_feature_names_out=False,
    )


def build_full_pipeline(preprocessor: ColumnTransformer, model: BaseEstimator) -> Pipeline:
    return Pipeline(steps=[("preprocessing", preprocessor), ("model", model)])


def check_features(
    X: pd.DataFrame,
    category_levels: Dict[str, Tuple],
    numeric_cols: Sequence[str],
) -> None:
    """Validate a frame against the columns and levels a model was fit on."""
    expected = list(category_levels) + list(numeric_cols)
    missing = [c for c in expected if c not in X.columns]
    if missing:
        logger.error("Missing feature columns: %s", missing)
        raise SchemaError(f"Missing feature columns: {missing}")

    for col in numeric_cols:
        if not pd.api.types.is_numeric_dtype(X[col]):
            logger.error("Column %s should be numeric, got %s", col, X[col].dtype)
            raise SchemaError(f"Column '{col}' should be numeric, got {X[col].dtype}")

    for col, levels in category_levels.items():
        known = set(levels)
        unseen = [v for v in X[col].unique().tolist() if v not in known]
        if unseen:
            logger.error("Column %s has unseen categories: %s", col, unseen)
            raise UnseenCategoryError(col, unseen)
