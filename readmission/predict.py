"""Score one encounter from the command line.

Every field defaults to the dashboard's starting values; override any
of them with --<field> <value>.

Usage:
    python -m readmission.predict
    python -m readmission.predict --age "[80-90)" --n_inpatient 3 --diag_1 Diabetes
    python -m readmission.predict --json
"""

import argparse
import json
import sys
from typing import Optional

from readmission.config import load_config
from readmission.exceptions import ModelNotLoadedError, SchemaMismatchError
from readmission.features.records import CATEGORICAL_FIELDS, NUMERIC_FIELDS
from readmission.models import ModelRegistry
from readmission.scoring.interactive import InteractivePredictor
from readmission.utils.logging import get_logger


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Predict 30-day readmission risk for one encounter.",
    )
    parser.add_argument(
        "-c", "--config",
        type=str,
        default=None,
        help="Path to YAML config file. Default: config/default.yaml",
    )
    parser.add_argument(
        "-a", "--artifacts",
        type=str,
        default=None,
        help="Artifact directory. Default: paths.artifacts_dir from config",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the result as JSON.",
    )

    fields = parser.add_argument_group("encounter fields")
    for name in NUMERIC_FIELDS:
        fields.add_argument(f"--{name}", type=float, default=None)
    for name in CATEGORICAL_FIELDS:
        fields.add_argument(f"--{name}", type=str, default=None)
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    config = load_config(args.config)
    # Keep --json stdout parseable
    logger = get_logger(level="ERROR" if args.json else "WARNING", format=config.logging.format)

    try:
        registry = ModelRegistry.from_directory(
            args.artifacts or config.paths.artifacts_dir,
            logger=logger,
        )
    except (FileNotFoundError, ValueError, ModelNotLoadedError, SchemaMismatchError) as e:
        print(f"ERROR: {e}")
        return 1

    predictor = InteractivePredictor(
        registry.store,
        registry,
        low=config.scoring.low_risk_below,
        high=config.scoring.high_risk_from,
        logger=logger,
    )

    record = predictor.default_record()
    for name in NUMERIC_FIELDS + CATEGORICAL_FIELDS:
        value = getattr(args, name)
        if value is not None:
            record[name] = value

    result = predictor.predict(record)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print("=" * 40)
        print("READMISSION RISK")
        print("=" * 40)
        print(predictor.describe(result))
        print("=" * 40)
    return 0 if result.ok else 2


if __name__ == "__main__":
    sys.exit(main())
