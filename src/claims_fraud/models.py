from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.ensemble import RandomForestClassifier
from sklearn.pipeline import Pipeline

from .config import RANDOM_STATE
from .errors import InsufficientDataError, SchemaError
from .preprocessing import (
    build_full_pipeline,
    build_preprocessor,
    check_features,
    learn_category_levels,
    split_feature_types,
)

logger = logging.getLogger("claims-forest")


@dataclass(frozen=True)
class FraudForest:
    """
    A fitted random forest together with everything needed to score new
    claims and to explain how it was grown.

    ``oob_error[k]`` is the out-of-bag misclassification rate of the first
    ``k + 1`` trees; ``test_error`` is the same curve on the held-out rows
    passed at fit time, or None.
    """

    pipeline: Pipeline
    feature_columns: Tuple[str, ...]
    target_column: Optional[str]
    category_levels: Dict[str, Tuple]
    numeric_columns: Tuple[str, ...]
    classes: Tuple
    positive_label: object
    tree_count: int
    features_per_split: int
    oob_error: np.ndarray
    test_error: Optional[np.ndarray]
    feature_importances: pd.Series

    @property
    def forest(self) -> RandomForestClassifier:
        return self.pipeline.named_steps["model"]

    @property
    def oob_error_rate(self) -> float:
        return float(self.oob_error[-1])

    def error_curve(self) -> pd.DataFrame:
        curve = pd.DataFrame(
            {
                "n_trees": np.arange(1, self.tree_count + 1),
                "oob_error": self.oob_error,
            }
        )
        if self.test_error is not None:
            curve["test_error"] = self.test_error
        return curve


def _encode_labels(y, classes: Sequence) -> np.ndarray:
    index = {c: i for i, c in enumerate(classes)}
    unknown = sorted({v for v in y if v not in index}, key=str)
    if unknown:
        raise SchemaError(f"Target labels not seen during fit: {unknown}")
    return np.array([index[v] for v in y])


def _running_error(trees, X: np.ndarray, y_codes: np.ndarray, n_classes: int, in_bag=None) -> np.ndarray:
    """Misclassification rate after each cumulative tree.

    With ``in_bag`` every tree only votes on the rows it was not trained on
    (out-of-bag); rows that have no vote yet are not counted. Trees are
    accumulated in fixed order, so the curve does not depend on n_jobs.
    """
    n = X.shape[0]
    votes = np.zeros((n, n_classes))
    counted = np.zeros(n, dtype=bool)
    errors = np.full(len(trees), np.nan)

    for i, tree in enumerate(trees):
        rows = np.ones(n, dtype=bool)
        if in_bag is not None:
            rows[in_bag[i]] = False
        if rows.any():
            votes[rows] += tree.predict_proba(X[rows])
            counted |= rows
        if counted.any():
            predicted = votes[counted].argmax(axis=1)
            errors[i] = np.mean(predicted != y_codes[counted])

    return errors


def fit_xy(
    X: pd.DataFrame,
    y: pd.Series,
    tree_count: int,
    features_per_split: int,
    x_valid: Optional[pd.DataFrame] = None,
    y_valid: Optional[pd.Series] = None,
    positive_label=None,
    random_state: int = RANDOM_STATE,
    n_jobs: Optional[int] = 1,
) -> FraudForest:
    """Grow a forest on predictors X and labels y."""
    if (x_valid is None) != (y_valid is None):
        raise ValueError("x_valid and y_valid must be given together")
    n_rows, n_features = X.shape
    if tree_count < 1:
        raise ValueError(f"tree_count must be positive, got {tree_count}")
    if not 1 <= features_per_split <= n_features:
        raise ValueError(
            f"features_per_split must be in [1, {n_features}], got {features_per_split}"
        )
    if n_rows < features_per_split:
        raise InsufficientDataError(
            f"{n_rows} training rows is fewer than features_per_split={features_per_split}"
        )

    labels = np.asarray(y, dtype=object)
    classes = tuple(sorted(pd.unique(labels).tolist(), key=str))
    if len(classes) < 2:
        raise InsufficientDataError(
            f"Training target has a single class: {list(classes)}"
        )
    if positive_label is None:
        positive_label = classes[-1]
    elif positive_label not in classes:
        raise SchemaError(
            f"Positive label {positive_label!r} not among target classes {list(classes)}"
        )

    cat_cols, num_cols = split_feature_types(X)
    levels = learn_category_levels(X, cat_cols)

    forest = RandomForestClassifier(
        n_estimators=tree_count,
        max_features=features_per_split,
        criterion="gini",
        bootstrap=True,
        random_state=random_state,
        n_jobs=n_jobs,
    )
    pipeline = build_full_pipeline(build_preprocessor(levels, num_cols), forest)

    logger.info(
        "Growing %d trees on %d rows, %d features per split",
        tree_count,
        n_rows,
        features_per_split,
    )
    pipeline.fit(X, labels)

    preprocessor = pipeline.named_steps["preprocessing"]
    Xt = np.asarray(preprocessor.transform(X), dtype=np.float32)
    y_codes = _encode_labels(labels, forest.classes_)
    oob_error = _running_error(
        forest.estimators_, Xt, y_codes, len(classes), in_bag=forest.estimators_samples_
    )
    oob_error.setflags(write=False)
    logger.info("OOB error with %d trees: %.4f", tree_count, oob_error[-1])

    test_error = None
    if x_valid is not None:
        check_features(x_valid, levels, num_cols)
        Xv = np.asarray(preprocessor.transform(x_valid[list(X.columns)]), dtype=np.float32)
        yv_codes = _encode_labels(np.asarray(y_valid, dtype=object), forest.classes_)
        test_error = _running_error(forest.estimators_, Xv, yv_codes, len(classes))
        test_error.setflags(write=False)
        logger.info("Held-out error with %d trees: %.4f", tree_count, test_error[-1])

    importances = pd.Series(
        forest.feature_importances_,
        index=preprocessor.get_feature_names_out(),
        name="importance",
    ).sort_values(ascending=False)

    return FraudForest(
        pipeline=pipeline,
        feature_columns=tuple(X.columns),
        target_column=y.name if isinstance(y, pd.Series) else None,
        category_levels=levels,
        numeric_columns=tuple(num_cols),
        classes=classes,
        positive_label=positive_label,
        tree_count=tree_count,
        features_per_split=features_per_split,
        oob_error=oob_error,
        test_error=test_error,
        feature_importances=importances,
    )


def fit(
    train_set: pd.DataFrame,
    feature_columns: Sequence[str],
    target_column: str,
    tree_count: int,
    features_per_split: int,
    x_valid: Optional[pd.DataFrame] = None,
    y_valid: Optional[pd.Series] = None,
    positive_label=None,
    random_state: int = RANDOM_STATE,
    n_jobs: Optional[int] = 1,
) -> FraudForest:
    """
    Fit a forest on ``train_set[feature_columns]`` against ``target_column``.

    Raises SchemaError for unknown columns and InsufficientDataError when
    the partition has fewer rows than ``features_per_split`` or a single
    target class.
    """
    feature_columns = list(feature_columns)
    missing = [c for c in feature_columns + [target_column] if c not in train_set.columns]
    if missing:
        logger.error("Missing training columns: %s", missing)
        raise SchemaError(f"Missing training columns: {missing}")

    return fit_xy(
        train_set[feature_columns],
        train_set[target_column],
        tree_count,
        features_per_split,
        x_valid=x_valid,
        y_valid=y_valid,
        positive_label=positive_label,
        random_state=random_state,
        n_jobs=n_jobs,
    )


def _oob_error(X, y, tree_count, features_per_split, random_state, n_jobs) -> float:
    model = fit_xy(
        X, y, tree_count, features_per_split, random_state=random_state, n_jobs=n_jobs
    )
    return model.oob_error_rate


def tune(
    train_x: pd.DataFrame,
    train_y: pd.Series,
    initial_tree_count: int,
    initial_features_per_split: int,
    step_factor: float = 1.5,
    improvement_threshold: float = 0.01,
    random_state: int = RANDOM_STATE,
    n_jobs: Optional[int] = 1,
) -> int:
    """
    Greedy search over features per split, guided by OOB error.

    From the starting value, walk down (divide by ``step_factor``) and up
    (multiply) one direction at a time. A step is kept only if it lowers
    the OOB error by at least ``improvement_threshold`` relative to the
    previous accepted error; otherwise that direction stops. Bounds are 1
    and the number of columns in ``train_x``.

    This is a local search and can settle on a local optimum.
    """
    if step_factor <= 1:
        raise ValueError(f"step_factor must exceed 1, got {step_factor}")
    n_features = train_x.shape[1]
    start = initial_features_per_split
    if not 1 <= start <= n_features:
        raise ValueError(f"initial_features_per_split must be in [1, {n_features}], got {start}")

    start_error = _oob_error(train_x, train_y, initial_tree_count, start, random_state, n_jobs)
    logger.info("features_per_split=%d OOB error %.4f (start)", start, start_error)
    best, best_error = start, start_error

    for direction in ("down", "up"):
        current, error_old = start, start_error
        while True:
            if direction == "down":
                candidate = max(1, math.floor(current / step_factor))
            else:
                candidate = min(n_features, math.ceil(current * step_factor))
            if candidate == current:
                break

            error = _oob_error(
                train_x, train_y, initial_tree_count, candidate, random_state, n_jobs
            )
            comparable = np.isfinite(error) and np.isfinite(error_old) and error_old > 0
            improvement = 1 - error / error_old if comparable else 0.0
            logger.info(
                "features_per_split=%d OOB error %.4f (improvement %.4f)",
                candidate,
                error,
                improvement,
            )
            if not comparable or improvement < improvement_threshold:
                break

            current, error_old = candidate, error
            if error < best_error:
                best, best_error = candidate, error

    logger.info("Best features_per_split: %d (OOB error %.4f)", best, best_error)
    return best
