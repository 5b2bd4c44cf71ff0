import json
import logging
import math
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Dict, Optional, Union

import joblib
import matplotlib.pyplot as plt
import pandas as pd

from .cleaning import build_type_map, clean_claims, feature_columns
from .config import RAW_DATA, REPORTS_DIR, PipelineConfig, load_config
from .data_loader import load_claims_data
from .evaluate import ConfusionCounts, confusion_matrix, predict, threshold
from .models import FraudForest, fit, tune
from .splitting import split
from .viz import plot_error_curve, plot_feature_importance

logger = logging.getLogger("claims-pipeline")


def _finite_or_none(value) -> Optional[float]:
    value = float(value)
    return value if math.isfinite(value) else None


@dataclass(frozen=True)
class PipelineReport:
    config: PipelineConfig
    partition_sizes: Dict[str, int]
    baseline: FraudForest
    tuned_features_per_split: int
    model: FraudForest
    test_predictions: pd.DataFrame
    confusion: ConfusionCounts

    def summary(self) -> dict:
        return {
            "config": asdict(self.config),
            "partition_sizes": self.partition_sizes,
            "baseline": {
                "features_per_split": self.baseline.features_per_split,
                "oob_error": _finite_or_none(self.baseline.oob_error_rate),
            },
            "tuned_features_per_split": self.tuned_features_per_split,
            "model": {
                "tree_count": self.model.tree_count,
                "features_per_split": self.model.features_per_split,
                "oob_error": _finite_or_none(self.model.oob_error_rate),
                "validation_error": (
                    _finite_or_none(self.model.test_error[-1])
                    if self.model.test_error is not None
                    else None
                ),
                "feature_importance": self.model.feature_importances.to_dict(),
            },
            "confusion_matrix": self.confusion.as_dict(),
        }


def run_pipeline(
    data_path: Optional[Union[str, Path]] = None,
    config: Optional[PipelineConfig] = None,
) -> PipelineReport:
    """Load, clean, split, fit, tune, refit and score the test rows."""
    config = (config or PipelineConfig()).validate()
    target = config.target_column

    raw = load_claims_data(data_path)
    type_map = build_type_map(raw, config.id_columns, config.date_columns)
    data = clean_claims(raw, type_map, config.drop_columns)
    features = feature_columns(data, target)

    train, test = split(data, config.train_proportion, config.split_seed)
    logger.info("Train rows: %d | Test rows: %d", len(train), len(test))

    start = config.initial_features_per_split
    if start > len(features):
        logger.warning(
            "initial_features_per_split=%d exceeds %d features; using %d",
            start,
            len(features),
            len(features),
        )
        start = len(features)

    logger.info("=== Baseline forest ===")
    baseline = fit(
        train,
        features,
        target,
        config.tree_count,
        start,
        positive_label=config.positive_label,
        random_state=config.split_seed,
        n_jobs=config.n_jobs,
    )

    train_inner, validation = split(train, config.validation_proportion, config.split_seed)
    logger.info(
        "Inner train rows: %d | Validation rows: %d", len(train_inner), len(validation)
    )

    logger.info("=== Tuning features per split ===")
    best = tune(
        train_inner[features],
        train_inner[target],
        config.tree_count,
        start,
        step_factor=config.step_factor,
        improvement_threshold=config.improvement_threshold,
        random_state=config.split_seed,
        n_jobs=config.n_jobs,
    )

    logger.info("=== Final forest (features_per_split=%d) ===", best)
    model = fit(
        train_inner,
        features,
        target,
        config.tree_count,
        best,
        x_valid=validation[features],
        y_valid=validation[target],
        positive_label=config.positive_label,
        random_state=config.split_seed,
        n_jobs=config.n_jobs,
    )

    negative_label = next(c for c in model.classes if c != model.positive_label)
    probabilities = predict(model, test)
    labels = threshold(
        probabilities,
        config.classification_threshold,
        positive_label=model.positive_label,
        negative_label=negative_label,
    )

    scored = test.copy()
    scored[probabilities.name] = probabilities
    scored[labels.name] = labels
    confusion = confusion_matrix(labels, test[target], positive_label=model.positive_label)
    logger.info("Confusion matrix on test rows: %s", confusion.as_dict())

    return PipelineReport(
        config=config,
        partition_sizes={
            "train": len(train),
            "test": len(test),
            "train_inner": len(train_inner),
            "validation": len(validation),
        },
        baseline=baseline,
        tuned_features_per_split=best,
        model=model,
        test_predictions=scored,
        confusion=confusion,
    )


def write_report(report: PipelineReport, output_dir: Union[str, Path] = REPORTS_DIR) -> Path:
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    with open(output_dir / "summary.json", "w") as fh:
        json.dump(report.summary(), fh, indent=2, default=str, allow_nan=False)

    curve = report.model.error_curve()
    curve.to_csv(output_dir / "error_curve.csv", index=False)
    report.model.feature_importances.to_csv(
        output_dir / "feature_importance.csv", index_label="feature"
    )
    report.test_predictions.to_csv(output_dir / "test_predictions.csv", index=False)

    fig = plot_error_curve(curve)
    fig.savefig(output_dir / "error_curve.png", dpi=100)
    plt.close(fig)

    fig = plot_feature_importance(report.model.feature_importances)
    fig.savefig(output_dir / "feature_importance.png", dpi=100)
    plt.close(fig)

    logger.info("Wrote report to %s", output_dir.resolve())
    return output_dir


def main(argv=None) -> None:
    import argparse

    parser = argparse.ArgumentParser(
        description="Random forest fraud flagging for insurance claims."
    )
    parser.add_argument("--data", default=str(RAW_DATA))
    parser.add_argument("--config", default=None, help="YAML file of option overrides")
    parser.add_argument("--output", default=str(REPORTS_DIR))
    parser.add_argument("--model-out", default=None, help="Optional joblib path for the fitted model")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    )

    report = run_pipeline(args.data, load_config(args.config))
    write_report(report, args.output)

    if args.model_out:
        model_path = Path(args.model_out)
        model_path.parent.mkdir(parents=True, exist_ok=True)
        joblib.dump(report.model, model_path)
        logger.info("Saved model to %s", model_path.resolve())


if __name__ == "__main__":
    main()
