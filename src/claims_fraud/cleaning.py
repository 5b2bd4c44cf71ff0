import logging
from typing import Dict, Iterable, List, Optional

import pandas as pd

from .config import DATE_COLUMNS, DROP_COLUMNS, ID_COLUMNS, TARGET_COL
from .errors import SchemaError

logger = logging.getLogger("claims-cleaner")

TEXT = "text"
DATE = "date"
CATEGORY = "category"


def build_type_map(
    df: pd.DataFrame,
    id_columns: Iterable[str] = ID_COLUMNS,
    date_columns: Iterable[str] = DATE_COLUMNS,
) -> Dict[str, str]:
    """Identifiers to text, listed dates to dates, any other text to categorical."""
    type_map = {col: TEXT for col in id_columns}
    type_map.update({col: DATE for col in date_columns})
    for col in df.select_dtypes(include=["object", "string"]).columns:
        type_map.setdefault(col, CATEGORY)
    return type_map


def _require_columns(df: pd.DataFrame, columns: Iterable[str], what: str) -> None:
    missing = [c for c in columns if c not in df.columns]
    if missing:
        logger.error("Missing %s columns: %s", what, missing)
        raise SchemaError(f"Missing {what} columns: {missing}")


def _cast(series: pd.Series, kind: str) -> pd.Series:
    if kind == TEXT:
        return series.astype(str).where(series.notna())
    if kind == DATE:
        return pd.to_datetime(series)
    if kind == CATEGORY:
        return series.astype("category")
    raise ValueError(f"Unknown column type '{kind}'")


def clean_claims(
    df: pd.DataFrame,
    type_map: Optional[Dict[str, str]] = None,
    drop_columns: Iterable[str] = DROP_COLUMNS,
) -> pd.DataFrame:
    """
    Cast column types and drop columns unsuitable as predictors.

    Returns a new frame; the input is never modified. Fully empty columns and
    rows with missing values are removed so the result has no missing data.
    """
    if type_map is None:
        type_map = build_type_map(df)
    drop_columns = list(drop_columns)

    _require_columns(df, type_map, "typed")
    _require_columns(df, drop_columns, "drop")

    logger.info("Cleaning frame of shape %s", df.shape)
    out = df.copy()
    for col, kind in type_map.items():
        out[col] = _cast(out[col], kind)

    out = out.drop(columns=drop_columns)
    logger.info("Dropped %d columns: %s", len(drop_columns), drop_columns)

    empty_cols = [c for c in out.columns if out[c].isna().all()]
    if empty_cols:
        logger.warning("Dropping empty columns: %s", empty_cols)
        out = out.drop(columns=empty_cols)

    incomplete = out.isna().any(axis=1)
    if incomplete.any():
        logger.warning("Dropping %d rows with missing values", int(incomplete.sum()))
        out = out.loc[~incomplete]

    logger.info("Cleaned shape: %s", out.shape)
    return out


def feature_columns(df: pd.DataFrame, target_col: str = TARGET_COL) -> List[str]:
    """Predictor columns: everything except the target."""
    _require_columns(df, [target_col], "target")
    return [c for c in df.columns if c != target_col]
