"""Train the readmission models.

Cleans the encounter dataset, captures the feature store, fits the
logistic regression, CART and random forest models on a stratified
70/30 split, and saves every artifact the scoring paths load.

Usage:
    # Train on the real dataset
    python -m readmission.train --input data/hospital_readmissions.csv

    # Train on synthetic data
    python -m readmission.train --generate --num-records 5000

    # Custom artifact directory
    python -m readmission.train --input data/hospital_readmissions.csv --output artifacts/v2/
"""

import argparse
import sys
from pathlib import Path
from typing import Optional

import pandas as pd

from readmission.config import ReadmissionConfig, TrainingConfig, load_config
from readmission.data.cleaning import (
    LABEL_COLUMN,
    clean_dataset,
    load_dataset,
    quality_summary,
    split_dataset,
)
from readmission.features.encoders import LINEAR, TREE, encode, stack_encoded
from readmission.features.records import NEGATIVE_OUTCOME, POSITIVE_OUTCOME, RawInput
from readmission.features.store import FeatureStore
from readmission.models import (
    ARTIFACT_NAMES,
    BaseClassifier,
    CARTModel,
    LogisticModel,
    RandomForestModel,
)
from readmission.utils.logging import PipelineLogger, get_logger


def encode_training_frame(df: pd.DataFrame, store: FeatureStore, form: str) -> pd.DataFrame:
    """
    Encode a cleaned dataset with the shared encoders.

    Tree-form rows carry their true outcome level in the placeholder
    column; the models drop it before fitting.

    Raises:
        UnknownCategoryError, InvalidRecordError: If a row does not fit the
            store; training data is never silently skipped.
    """
    vectors = []
    for row, label in zip(df.to_dict(orient="records"), df[LABEL_COLUMN]):
        outcome = None
        if form == TREE:
            outcome = POSITIVE_OUTCOME if label == 1 else NEGATIVE_OUTCOME
        vectors.append(encode(RawInput.from_mapping(row), store, form, outcome=outcome))
    return stack_encoded(vectors)


def build_models(training: TrainingConfig) -> dict[str, BaseClassifier]:
    """Unfitted models keyed by registry id."""
    seed = training.random_state
    return {
        "linear": LogisticModel(
            C=training.logistic.C,
            max_iter=training.logistic.max_iter,
            random_state=seed,
        ),
        "tree": CARTModel(
            min_samples_split=training.cart.min_samples_split,
            min_samples_leaf=training.cart.min_samples_leaf,
            max_depth=training.cart.max_depth,
            prune=training.cart.prune,
            cv_folds=training.cart.cv_folds,
            max_alphas=training.cart.max_alphas,
            random_state=seed,
        ),
        "ensemble": RandomForestModel(
            n_estimators=training.forest.n_estimators,
            max_features=training.forest.max_features,
            min_samples_leaf=training.forest.min_samples_leaf,
            random_state=seed,
            n_jobs=training.forest.n_jobs,
        ),
    }


def fit_models(
    train_df: pd.DataFrame,
    store: FeatureStore,
    training: TrainingConfig,
    logger: Optional[PipelineLogger] = None,
) -> dict[str, BaseClassifier]:
    """
    Fit the three classifiers on a cleaned training set.

    Args:
        train_df: Cleaned rows carrying readmitted_binary.
        store: Feature store every model is tied to.
        training: Model hyperparameters.
        logger: Optional structured logger.

    Returns:
        Fitted models keyed by registry id.
    """
    frames = {form: encode_training_frame(train_df, store, form) for form in (LINEAR, TREE)}
    labels = train_df[LABEL_COLUMN].astype(int).to_numpy()

    models = build_models(training)
    for model_id, model in models.items():
        if logger:
            with logger.timer(f"fit_{model_id}"):
                model.fit(frames[model.form], labels, store_fingerprint=store.fingerprint)
        else:
            model.fit(frames[model.form], labels, store_fingerprint=store.fingerprint)

    if logger:
        cart = models["tree"]
        logger.log_metrics(
            cart_ccp_alpha=round(cart.ccp_alpha_, 6),
            cart_leaves=cart.n_leaves,
            forest_oob_error=round(models["ensemble"].oob_error, 4),
        )
    return models


def save_artifacts(
    models: dict[str, BaseClassifier],
    store: FeatureStore,
    directory: str | Path,
) -> dict[str, Path]:
    """Write the feature store and every model into one directory."""
    directory = Path(directory)
    paths = {"feature_store": store.save(directory)}
    for model_id, model in models.items():
        paths[model_id] = model.save(directory / ARTIFACT_NAMES[model_id])
    return paths


def run_training(
    config: ReadmissionConfig,
    df: pd.DataFrame,
    output_dir: Optional[str | Path] = None,
    logger: Optional[PipelineLogger] = None,
) -> dict[str, BaseClassifier]:
    """
    Clean, split, fit and save.

    The vocabulary is captured from the whole cleaned dataset so that
    held-out rows share the training levels; the models only see the
    training split.

    Returns:
        Fitted models keyed by registry id.
    """
    logger = logger or get_logger(
        level=config.logging.level,
        format=config.logging.format,
        log_file=config.logging.log_file,
    )
    output_dir = Path(output_dir or config.paths.artifacts_dir)

    clean = clean_dataset(df)
    summary = quality_summary(df, clean)
    logger.info(
        "Dataset cleaned",
        rows_before=summary["rows_before"],
        rows_after=summary["rows_after"],
        duplicate_rows=summary["duplicate_rows"],
        readmission_rate=round(summary["readmission_rate_after"], 4),
    )

    store = FeatureStore.from_corpus(clean)
    split = config.training.split
    train_df, test_df = split_dataset(
        clean,
        test_size=split.test_size,
        random_state=split.random_state,
        stratify=split.stratify,
    )
    logger.info("Dataset split", train_rows=len(train_df), test_rows=len(test_df))

    with logger.timer("training"):
        models = fit_models(train_df, store, config.training, logger=logger)

    for model in models.values():
        model.set_threshold(config.scoring.threshold)

    save_artifacts(models, store, output_dir)
    test_path = config.paths.get_path("test_split")
    test_path.parent.mkdir(parents=True, exist_ok=True)
    test_df.to_csv(test_path, index=False)

    logger.info(
        "Artifacts saved",
        directory=str(output_dir),
        fingerprint=store.fingerprint,
        test_split=str(test_path),
    )
    metrics_summary = logger.get_metrics_summary()
    logger.info(
        "Training summary",
        **{name: round(values["last"], 6) for name, values in metrics_summary.items()},
    )
    return models


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Train the readmission models.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python -m readmission.train --input data/hospital_readmissions.csv
    python -m readmission.train --generate --num-records 5000
    python -m readmission.train --input data/hospital_readmissions.csv --trees 200
        """,
    )

    input_group = parser.add_mutually_exclusive_group()
    input_group.add_argument(
        "-i", "--input",
        type=str,
        help="Encounter CSV (default: <data_dir>/<dataset> from config).",
    )
    input_group.add_argument(
        "--generate",
        action="store_true",
        help="Train on freshly generated synthetic data.",
    )
    parser.add_argument(
        "-n", "--num-records",
        type=int,
        default=None,
        help="Encounters to generate with --generate. Default: from config",
    )
    parser.add_argument(
        "-c", "--config",
        type=str,
        default=None,
        help="Path to YAML config file. Default: config/default.yaml",
    )
    parser.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        help="Artifact directory. Default: paths.artifacts_dir from config",
    )
    parser.add_argument(
        "--trees",
        type=int,
        default=None,
        help="Random forest size. Default: from config",
    )
    parser.add_argument(
        "-s", "--seed",
        type=int,
        default=None,
        help="Seed for the split and the models. Default: from config",
    )
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    try:
        config = load_config(args.config)
        if args.trees is not None:
            config.training.forest.n_estimators = args.trees
        if args.seed is not None:
            config.training.random_state = args.seed
            config.training.split.random_state = args.seed

        logger = get_logger(
            level=config.logging.level,
            format=config.logging.format,
            log_file=config.logging.log_file,
        )

        if args.generate:
            from readmission.generate_dataset import generate_dataset

            df = generate_dataset(
                num_records=args.num_records or config.data.num_records,
                seed=config.data.seed,
                output_path=None,
                locale=config.data.locale,
                verbose=False,
            )
        else:
            df = load_dataset(args.input or config.paths.get_path("dataset"))

        models = run_training(config, df, output_dir=args.output, logger=logger)

        print("\n" + "=" * 60)
        print("TRAINING COMPLETE")
        print("=" * 60)
        for model_id, model in models.items():
            print(f"  {model_id:<10} {model!r}")
        print(f"  Artifacts: {Path(args.output or config.paths.artifacts_dir).absolute()}")
        print("=" * 60)
        return 0

    except (FileNotFoundError, ValueError) as e:
        print(f"ERROR: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
