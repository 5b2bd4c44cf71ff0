from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import List, Optional, Union

import yaml

from .errors import InvalidProportionError, LoadError

# Paths
PROJECT_ROOT = Path(__file__).resolve().parents[2]
DATA_DIR = PROJECT_ROOT / "data"
RAW_DATA = DATA_DIR / "raw" / "insurance_claims.csv"
REPORTS_DIR = PROJECT_ROOT / "reports"

# Reproducibility
RANDOM_STATE = 52
TRAIN_PROPORTION = 0.7
VALIDATION_PROPORTION = 0.8  # share of the training rows kept for fitting

TARGET_COL = "fraud_reported"
POSITIVE_LABEL = "Y"

# Identifiers are read as numbers but mean nothing as magnitudes
ID_COLUMNS = ["policy_number", "insured_zip"]
DATE_COLUMNS = ["policy_bind_date"]

# Identifiers, raw dates, free-text locations and high-cardinality codes
DROP_COLUMNS = [
    "policy_number",
    "policy_bind_date",
    "policy_state",
    "policy_csl",
    "insured_zip",
    "insured_occupation",
    "insured_relationship",
    "incident_date",
    "incident_state",
    "incident_city",
    "incident_location",
    "auto_make",
    "auto_model",
    "auto_year",
    "capital-gains",
    "capital-loss",
]

# Forest and tuning
TREE_COUNT = 500
FEATURES_PER_SPLIT = 5
STEP_FACTOR = 1.5
IMPROVEMENT_THRESHOLD = 0.01
CLASSIFICATION_THRESHOLD = 0.3


@dataclass(frozen=True)
class PipelineConfig:
    split_seed: int = RANDOM_STATE
    train_proportion: float = TRAIN_PROPORTION
    validation_proportion: float = VALIDATION_PROPORTION
    tree_count: int = TREE_COUNT
    initial_features_per_split: int = FEATURES_PER_SPLIT
    step_factor: float = STEP_FACTOR
    improvement_threshold: float = IMPROVEMENT_THRESHOLD
    classification_threshold: float = CLASSIFICATION_THRESHOLD
    target_column: str = TARGET_COL
    positive_label: Optional[str] = POSITIVE_LABEL
    id_columns: List[str] = field(default_factory=lambda: list(ID_COLUMNS))
    date_columns: List[str] = field(default_factory=lambda: list(DATE_COLUMNS))
    drop_columns: List[str] = field(default_factory=lambda: list(DROP_COLUMNS))
    n_jobs: Optional[int] = 1

    def validate(self) -> "PipelineConfig":
        for name in ("train_proportion", "validation_proportion"):
            value = getattr(self, name)
            if not 0 < value < 1:
                raise InvalidProportionError(
                    f"{name} must be in (0, 1), got {value!r}"
                )
        if self.tree_count < 1:
            raise ValueError(f"tree_count must be positive, got {self.tree_count}")
        if self.initial_features_per_split < 1:
            raise ValueError(
                "initial_features_per_split must be positive, "
                f"got {self.initial_features_per_split}"
            )
        if self.step_factor <= 1:
            raise ValueError(f"step_factor must exceed 1, got {self.step_factor}")
        if self.improvement_threshold < 0:
            raise ValueError(
                "improvement_threshold must be non-negative, "
                f"got {self.improvement_threshold}"
            )
        if not 0 <= self.classification_threshold <= 1:
            raise ValueError(
                "classification_threshold must be in [0, 1], "
                f"got {self.classification_threshold}"
            )
        return self


def load_config(path: Optional[Union[str, Path]] = None) -> PipelineConfig:
    """Read a YAML file of overrides on top of the defaults above."""
    config = PipelineConfig()
    if path is None:
        return config.validate()

    path = Path(path)
    try:
        with open(path, "r") as fh:
            raw = yaml.safe_load(fh) or {}
    except FileNotFoundError as e:
        raise LoadError(f"Config file not found: {path}") from e
    except yaml.YAMLError as e:
        raise LoadError(f"Config file {path} is not valid YAML: {e}") from e

    if not isinstance(raw, dict):
        raise LoadError(f"Config file {path} must contain a mapping")

    known = {f.name for f in fields(PipelineConfig)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ValueError(f"Unknown config options: {unknown}")

    return replace(config, **raw).validate()
