"""Dataset Generation Script.

Generates a synthetic encounter dataset in the hospital_readmissions.csv
layout and saves it to CSV.

Usage:
    python -m readmission.generate_dataset -n 25000 -o data/hospital_readmissions.csv
"""

import argparse
from pathlib import Path
from typing import Optional

import pandas as pd

from readmission.config import load_config
from readmission.data.generator import ReadmissionDataGenerator
from readmission.features.records import AFFIRMATIVE_TOKEN


def generate_dataset(
    num_records: int = 25000,
    seed: int = 42,
    output_path: Optional[str] = "data/hospital_readmissions.csv",
    locale: str = "en_US",
    verbose: bool = True,
) -> pd.DataFrame:
    """
    Generate a synthetic encounter dataset.

    Args:
        num_records: Number of encounters to generate.
        seed: Random seed for reproducibility.
        output_path: CSV path to write; None skips writing.
        locale: Faker locale.
        verbose: Print progress and a summary.

    Returns:
        DataFrame in the raw dataset layout.
    """
    if verbose:
        print("=" * 60)
        print("READMISSION SYNTHETIC DATASET GENERATOR")
        print("=" * 60)
        print(f"\n[1/2] Generating {num_records} encounters (seed={seed}, locale={locale})...")

    generator = ReadmissionDataGenerator(seed=seed, locale=locale)
    df = generator.generate_dataframe(num_records)

    if output_path:
        output_file = Path(output_path)
        if verbose:
            print(f"\n[2/2] Saving dataset to {output_file}...")
        output_file.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(output_file, index=False)

    if verbose:
        readmitted = int((df["readmitted"] == AFFIRMATIVE_TOKEN).sum())
        print(f"\n{'=' * 60}")
        print("DATASET SUMMARY")
        print(f"{'=' * 60}")
        print(f"Total encounters:   {len(df)}")
        print(f"Readmitted:         {readmitted} ({readmitted / max(len(df), 1):.1%})")
        print(f"Missing diag_1:     {int((df['diag_1'] == 'Missing').sum())}")
        if output_path:
            print(f"Output file:        {Path(output_path).absolute()}")
        print(f"{'=' * 60}\n")

    return df


def main():
    """Main entry point for dataset generation."""
    parser = argparse.ArgumentParser(
        description="Generate a synthetic hospital encounter dataset"
    )
    parser.add_argument(
        "-c", "--config",
        type=str,
        default=None,
        help="Path to YAML config file (default: config/default.yaml)"
    )
    parser.add_argument(
        "-n", "--num-records",
        type=int,
        default=None,
        help="Number of encounters to generate (default: from config)"
    )
    parser.add_argument(
        "-s", "--seed",
        type=int,
        default=None,
        help="Random seed for reproducibility (default: from config)"
    )
    parser.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        help="Output CSV file path (default: <data_dir>/<dataset> from config)"
    )
    parser.add_argument(
        "-l", "--locale",
        type=str,
        default=None,
        help="Faker locale for data generation (default: from config)"
    )

    args = parser.parse_args()
    config = load_config(args.config)

    generate_dataset(
        num_records=args.num_records or config.data.num_records,
        seed=args.seed if args.seed is not None else config.data.seed,
        output_path=args.output or str(config.paths.get_path("dataset")),
        locale=args.locale or config.data.locale,
    )


if __name__ == "__main__":
    main()
