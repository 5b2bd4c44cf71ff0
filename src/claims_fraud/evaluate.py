import math
from dataclasses import asdict, dataclass
from typing import Dict, Sequence

import numpy as np
import pandas as pd
from sklearn.metrics import confusion_matrix as _sk_confusion_matrix

from .models import FraudForest
from .preprocessing import check_features


@dataclass(frozen=True)
class ConfusionCounts:
    true_positive: int
    false_positive: int
    true_negative: int
    false_negative: int

    @property
    def total(self) -> int:
        return self.true_positive + self.false_positive + self.true_negative + self.false_negative

    @property
    def accuracy(self) -> float:
        return (self.true_positive + self.true_negative) / self.total if self.total else float("nan")

    @property
    def precision(self) -> float:
        flagged = self.true_positive + self.false_positive
        return self.true_positive / flagged if flagged else float("nan")

    @property
    def recall(self) -> float:
        actual = self.true_positive + self.false_negative
        return self.true_positive / actual if actual else float("nan")

    def as_dict(self) -> Dict[str, float]:
        out = asdict(self)
        out["total"] = self.total
        for name in ("accuracy", "precision", "recall"):
            value = getattr(self, name)
            out[name] = None if math.isnan(value) else value
        return out


def predict(model: FraudForest, df: pd.DataFrame) -> pd.Series:
    """
    Probability of the positive class for every row of df, in row order.

    Raises SchemaError if a feature column is missing or mistyped, and
    UnseenCategoryError if a categorical value was not seen during fit.
    """
    check_features(df, model.category_levels, model.numeric_columns)
    X = df[list(model.feature_columns)]
    proba = model.pipeline.predict_proba(X)
    pos_index = list(model.forest.classes_).index(model.positive_label)
    return pd.Series(proba[:, pos_index], index=df.index, name="fraud_probability")


def threshold(predictions: Sequence[float], cutoff: float, positive_label=1, negative_label=0) -> pd.Series:
    """Label each prediction positive when its probability exceeds cutoff."""
    probs = pd.Series(predictions)
    labels = np.where(probs.to_numpy() > cutoff, positive_label, negative_label)
    return pd.Series(labels, index=probs.index, name="fraud_predicted")


def confusion_matrix(predicted_labels, true_labels, positive_label=1) -> ConfusionCounts:
    """Tabulate predicted against actual labels; any label other than
    positive_label counts as negative."""
    predicted = np.asarray(predicted_labels, dtype=object) == positive_label
    actual = np.asarray(true_labels, dtype=object) == positive_label
    if predicted.shape != actual.shape:
        raise ValueError(
            f"Got {predicted.shape[0]} predictions for {actual.shape[0]} true labels"
        )

    if predicted.size == 0:
        return ConfusionCounts(0, 0, 0, 0)

    tn, fp, fn, tp = _sk_confusion_matrix(actual, predicted, labels=[False, True]).ravel()
    return ConfusionCounts(
        true_positive=int(tp),
        false_positive=int(fp),
        true_negative=int(tn),
        false_negative=int(fn),
    )
