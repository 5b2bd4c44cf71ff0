import csv
import logging
from pathlib import Path
from typing import Optional, Union

import pandas as pd

from .config import RAW_DATA
from .errors import LoadError

logger = logging.getLogger("claims-loader")


def _check_field_counts(path: Path) -> None:
    # pandas pads short rows with NaN instead of complaining
    with open(path, "r", newline="", encoding="utf-8") as fh:
        reader = csv.reader(fh)
        header = next(reader, None)
        if not header:
            raise LoadError(f"{path} is empty")
        width = len(header)
        for line_no, row in enumerate(reader, start=2):
            if row and len(row) != width:
                raise LoadError(
                    f"{path}: line {line_no} has {len(row)} fields, expected {width}"
                )


def _infer_dates(df: pd.DataFrame) -> pd.DataFrame:
    """Convert text columns holding only ISO dates to datetimes."""
    for col in df.select_dtypes(include=["object", "string"]).columns:
        values = df[col].dropna()
        if values.empty:
            continue
        try:
            parsed = pd.to_datetime(values, format="%Y-%m-%d")
        except (ValueError, TypeError):
            continue
        df[col] = pd.to_datetime(df[col], format="%Y-%m-%d")
        logger.info("Column %s inferred as date (%d values)", col, len(parsed))
    return df


def load_claims_data(path: Optional[Union[str, Path]] = None) -> pd.DataFrame:
    """
    Load raw claims data from CSV.

    Column names come from the header row, numeric columns are inferred by
    pandas and ISO date columns are parsed to datetimes. Everything else is
    left as text.
    """
    path = Path(path) if path is not None else RAW_DATA
    logger.info("Loading claims from %s", path)

    if not path.exists():
        raise LoadError(f"Input file not found: {path}")

    try:
        # only empty fields are missing; "None" is a real category
        df = pd.read_csv(path, keep_default_na=False, na_values=[""])
        _check_field_counts(path)
    except pd.errors.EmptyDataError as e:
        raise LoadError(f"{path} is empty") from e
    except pd.errors.ParserError as e:
        raise LoadError(f"{path} is malformed: {e}") from e
    except UnicodeDecodeError as e:
        raise LoadError(f"{path} is not valid UTF-8: {e}") from e
    except OSError as e:
        raise LoadError(f"Cannot read {path}: {e}") from e

    if df.empty:
        raise LoadError(f"{path} has a header but no rows")

    df = _infer_dates(df)
    logger.info("Loaded shape: %s", df.shape)
    return df
