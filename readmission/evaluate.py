"""
Model Evaluation Script.

Loads the trained artifacts, evaluates every model on the held-out
split, and writes metrics, ROC points, model comparison and variable
importance tables as CSV.

Usage:
    python -m readmission.evaluate
    python -m readmission.evaluate --input data/test_split.csv --artifacts artifacts/ --output reports/
"""

import argparse
import sys
from pathlib import Path
from typing import Optional

import pandas as pd

from readmission.config import load_config
from readmission.data.cleaning import load_dataset
from readmission.evaluation.metrics import EvaluationResults, comparison_table
from readmission.features.records import OUTCOME_FIELD
from readmission.models import DISPLAY_NAMES, ModelRegistry
from readmission.scoring.batch import EvaluationService, frame_records
from readmission.utils.logging import PipelineLogger, get_logger


def write_reports(
    results: dict[str, EvaluationResults],
    registry: ModelRegistry,
    output_dir: str | Path,
) -> dict[str, Path]:
    """
    Write the evaluation tables.

    Files per model: metrics_<id>.csv, roc_<id>.csv, importance_<id>.csv
    and skipped_<id>.csv when records were skipped. Across models:
    model_comparison.csv.

    Returns:
        Written paths keyed by a short name.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    written: dict[str, Path] = {}

    for model_id, result in results.items():
        path = output_dir / f"metrics_{model_id}.csv"
        result.to_frame().to_csv(path, index=False)
        written[f"metrics_{model_id}"] = path

        path = output_dir / f"roc_{model_id}.csv"
        result.roc_frame().to_csv(path, index=False)
        written[f"roc_{model_id}"] = path

        path = output_dir / f"importance_{model_id}.csv"
        registry.get(model_id).importance().to_csv(path, index=False)
        written[f"importance_{model_id}"] = path

        if result.n_skipped:
            path = output_dir / f"skipped_{model_id}.csv"
            result.skipped_frame().to_csv(path, index=False)
            written[f"skipped_{model_id}"] = path

    path = output_dir / "model_comparison.csv"
    comparison_table(list(results.values()), names=DISPLAY_NAMES).to_csv(path, index=False)
    written["model_comparison"] = path
    return written


def evaluate_models(
    df: pd.DataFrame,
    registry: ModelRegistry,
    threshold: float = 0.5,
    n_jobs: int = 1,
    model_ids: Optional[list[str]] = None,
    logger: Optional[PipelineLogger] = None,
) -> dict[str, EvaluationResults]:
    """Evaluate the registered models on a labelled DataFrame."""
    service = EvaluationService(
        registry.store,
        registry,
        threshold=threshold,
        n_jobs=n_jobs,
        logger=logger,
    )
    records = frame_records(df, OUTCOME_FIELD)
    return service.evaluate_all(records, model_ids)


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for evaluation."""
    parser = argparse.ArgumentParser(
        description="Evaluate the trained readmission models on held-out data"
    )
    parser.add_argument(
        "-c", "--config",
        type=str,
        default=None,
        help="Path to YAML config file (default: config/default.yaml)",
    )
    parser.add_argument(
        "-i", "--input",
        type=str,
        default=None,
        help="Labelled encounter CSV (default: the test split written by training)",
    )
    parser.add_argument(
        "-a", "--artifacts",
        type=str,
        default=None,
        help="Artifact directory (default: paths.artifacts_dir from config)",
    )
    parser.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        help="Report directory (default: paths.reports_dir from config)",
    )
    parser.add_argument(
        "-m", "--models",
        nargs="+",
        default=None,
        help="Model ids to evaluate (default: all loaded)",
    )
    parser.add_argument(
        "-t", "--threshold",
        type=float,
        default=None,
        help="Decision threshold (default: scoring.threshold from config)",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress the printed reports",
    )
    args = parser.parse_args(argv)

    config = load_config(args.config)
    logger = get_logger(
        level=config.logging.level,
        format=config.logging.format,
        log_file=config.logging.log_file,
    )

    try:
        registry = ModelRegistry.from_directory(
            args.artifacts or config.paths.artifacts_dir,
            logger=logger,
        )
        df = load_dataset(args.input or config.paths.get_path("test_split"))
    except (FileNotFoundError, ValueError, RuntimeError) as e:
        print(f"ERROR: {e}")
        return 1

    threshold = args.threshold if args.threshold is not None else config.scoring.threshold
    with logger.timer("evaluation"):
        results = evaluate_models(
            df,
            registry,
            threshold=threshold,
            n_jobs=config.scoring.n_jobs,
            model_ids=args.models,
            logger=logger,
        )

    written = write_reports(results, registry, args.output or config.paths.reports_dir)

    if not args.quiet:
        for result in results.values():
            print(str(result))
            print()
        comparison = pd.read_csv(written["model_comparison"])
        print("MODEL COMPARISON")
        print("-" * 60)
        print(comparison.to_string(index=False))
        print(f"\nReports written to {Path(args.output or config.paths.reports_dir).absolute()}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
