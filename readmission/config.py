"""Configuration Management Module.

Provides typed configuration for the readmission pipeline with support
for YAML files, environment variable overrides, and validation.

Uses Pydantic v2 for configuration validation.
"""

import os
from pathlib import Path
from typing import Literal, Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator


class PathsConfig(BaseModel):
    """Configuration for file paths."""

    data_dir: str = Field(default="data", description="Base directory for data files")
    dataset: str = Field(
        default="hospital_readmissions.csv", description="Input encounter dataset"
    )
    test_split: str = Field(
        default="test_split.csv", description="Held-out records written by training"
    )
    artifacts_dir: str = Field(
        default="artifacts", description="Directory for the feature store and models"
    )
    reports_dir: str = Field(
        default="reports", description="Directory for metrics and comparison tables"
    )

    def get_path(self, file_key: str) -> Path:
        """Get full path for a data file.

        Args:
            file_key: One of 'dataset' or 'test_split'; any other value is
                     treated as a file name inside data_dir.

        Returns:
            Full path combining data_dir and the file name.
        """
        file_map = {
            "dataset": self.dataset,
            "test_split": self.test_split,
        }
        return Path(self.data_dir) / file_map.get(file_key, file_key)


class SplitConfig(BaseModel):
    """Configuration for the train/test split."""

    test_size: float = Field(
        default=0.3, gt=0.0, lt=1.0, description="Fraction of records held out"
    )
    random_state: int = Field(default=123, description="Random seed for the split")
    stratify: bool = Field(default=True, description="Preserve the readmission rate")


class LogisticConfig(BaseModel):
    """Configuration for the logistic regression model."""

    C: float = Field(
        default=float("inf"),
        gt=0.0,
        description="Inverse regularization strength; .inf fits without a penalty",
    )
    max_iter: int = Field(default=2000, ge=1, description="Maximum solver iterations")


class CARTConfig(BaseModel):
    """Configuration for the CART decision tree."""

    min_samples_split: int = Field(default=20, ge=2, description="Minimum node size to split")
    min_samples_leaf: int = Field(default=7, ge=1, description="Minimum leaf size")
    max_depth: int = Field(default=10, ge=1, description="Maximum tree depth")
    prune: bool = Field(default=True, description="Apply one-SE cost-complexity pruning")
    cv_folds: int = Field(default=10, ge=2, description="Cross-validation folds for pruning")
    max_alphas: int = Field(
        default=30, ge=1, description="Candidate pruning strengths evaluated"
    )


class ForestConfig(BaseModel):
    """Configuration for the random forest."""

    n_estimators: int = Field(default=500, ge=1, description="Number of trees")
    max_features: Union[Literal["sqrt", "log2"], float, int] = Field(
        default="sqrt", description="Features considered per split"
    )
    min_samples_leaf: int = Field(default=1, ge=1, description="Minimum leaf size")
    n_jobs: Optional[int] = Field(default=-1, description="Parallel jobs for fitting")


class TrainingConfig(BaseModel):
    """Configuration for model training."""

    random_state: int = Field(default=123, description="Random seed for the models")
    split: SplitConfig = Field(default_factory=SplitConfig)
    logistic: LogisticConfig = Field(default_factory=LogisticConfig)
    cart: CARTConfig = Field(default_factory=CARTConfig)
    forest: ForestConfig = Field(default_factory=ForestConfig)


class ScoringConfig(BaseModel):
    """Configuration for batch evaluation and interactive prediction."""

    threshold: float = Field(
        default=0.5, ge=0.0, le=1.0, description="Probability above which a record is positive"
    )
    low_risk_below: float = Field(
        default=0.30, ge=0.0, le=1.0, description="Average probability below which risk is low"
    )
    high_risk_from: float = Field(
        default=0.60, ge=0.0, le=1.0, description="Average probability from which risk is high"
    )
    n_jobs: int = Field(default=1, description="Threads used to encode batch records")

    @field_validator("n_jobs")
    @classmethod
    def validate_n_jobs(cls, v: int) -> int:
        """Validate n_jobs is positive or -1 (all cores)."""
        if v == 0 or v < -1:
            raise ValueError("n_jobs must be a positive integer or -1")
        return v

    @model_validator(mode="after")
    def check_tier_order(self) -> "ScoringConfig":
        """Ensure the low tier cut point lies below the high one."""
        if self.low_risk_below >= self.high_risk_from:
            raise ValueError("low_risk_below must be less than high_risk_from")
        return self


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Log level"
    )
    format: Literal["json", "text"] = Field(default="text", description="Log format")
    log_file: Optional[str] = Field(default=None, description="Log file path")


class DataConfig(BaseModel):
    """Configuration for synthetic data generation."""

    num_records: int = Field(
        default=25000, ge=1, description="Number of encounters to generate"
    )
    seed: int = Field(default=42, description="Random seed")
    locale: str = Field(default="en_US", description="Faker locale for data generation")


class ReadmissionConfig(BaseModel):
    """Main configuration for the readmission pipeline."""

    paths: PathsConfig = Field(default_factory=PathsConfig)
    training: TrainingConfig = Field(default_factory=TrainingConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    data: DataConfig = Field(default_factory=DataConfig)

    model_config = {"extra": "forbid"}


def _apply_env_overrides(config: ReadmissionConfig) -> ReadmissionConfig:
    """Apply environment variable overrides to configuration.

    Supports the following environment variables:
    - READMIT_DATA_DIR, READMIT_ARTIFACTS_DIR, READMIT_REPORTS_DIR
    - READMIT_SEED, READMIT_TEST_SIZE
    - READMIT_FOREST_TREES, READMIT_CART_FOLDS
    - READMIT_THRESHOLD, READMIT_N_JOBS
    - READMIT_LOG_LEVEL, READMIT_LOG_FORMAT, READMIT_LOG_FILE
    - READMIT_DATA_RECORDS, READMIT_DATA_SEED
    """
    config_dict = config.model_dump()

    # Path overrides
    if os.getenv("READMIT_DATA_DIR"):
        config_dict["paths"]["data_dir"] = os.environ["READMIT_DATA_DIR"]
    if os.getenv("READMIT_ARTIFACTS_DIR"):
        config_dict["paths"]["artifacts_dir"] = os.environ["READMIT_ARTIFACTS_DIR"]
    if os.getenv("READMIT_REPORTS_DIR"):
        config_dict["paths"]["reports_dir"] = os.environ["READMIT_REPORTS_DIR"]

    # Training overrides
    if os.getenv("READMIT_SEED"):
        seed = int(os.environ["READMIT_SEED"])
        config_dict["training"]["random_state"] = seed
        config_dict["training"]["split"]["random_state"] = seed
    if os.getenv("READMIT_TEST_SIZE"):
        config_dict["training"]["split"]["test_size"] = float(os.environ["READMIT_TEST_SIZE"])
    if os.getenv("READMIT_FOREST_TREES"):
        config_dict["training"]["forest"]["n_estimators"] = int(
            os.environ["READMIT_FOREST_TREES"]
        )
    if os.getenv("READMIT_CART_FOLDS"):
        config_dict["training"]["cart"]["cv_folds"] = int(os.environ["READMIT_CART_FOLDS"])

    # Scoring overrides
    if os.getenv("READMIT_THRESHOLD"):
        config_dict["scoring"]["threshold"] = float(os.environ["READMIT_THRESHOLD"])
    if os.getenv("READMIT_N_JOBS"):
        config_dict["scoring"]["n_jobs"] = int(os.environ["READMIT_N_JOBS"])

    # Logging overrides
    if os.getenv("READMIT_LOG_LEVEL"):
        config_dict["logging"]["level"] = os.environ["READMIT_LOG_LEVEL"].upper()
    if os.getenv("READMIT_LOG_FORMAT"):
        config_dict["logging"]["format"] = os.environ["READMIT_LOG_FORMAT"]
    if os.getenv("READMIT_LOG_FILE"):
        config_dict["logging"]["log_file"] = os.environ["READMIT_LOG_FILE"]

    # Data overrides
    if os.getenv("READMIT_DATA_RECORDS"):
        config_dict["data"]["num_records"] = int(os.environ["READMIT_DATA_RECORDS"])
    if os.getenv("READMIT_DATA_SEED"):
        config_dict["data"]["seed"] = int(os.environ["READMIT_DATA_SEED"])

    return ReadmissionConfig.model_validate(config_dict)


def load_config(config_path: Optional[str] = None) -> ReadmissionConfig:
    """Load configuration from YAML file with environment variable overrides.

    Args:
        config_path: Path to YAML config file. If None, config/default.yaml
                    is tried. A missing file leaves the defaults.

    Returns:
        Validated ReadmissionConfig object.

    Raises:
        ValueError: If configuration is invalid.
    """
    config_dict: dict = {}
    path = Path(config_path) if config_path else Path("config/default.yaml")

    if path.exists():
        with open(path, "r") as f:
            config_dict = yaml.safe_load(f) or {}

    try:
        config = ReadmissionConfig.model_validate(config_dict)
    except Exception as e:
        raise ValueError(f"Invalid configuration: {e}") from e

    return _apply_env_overrides(config)


def save_config(config: ReadmissionConfig, config_path: str) -> None:
    """Save configuration to YAML file.

    Args:
        config: Configuration to save.
        config_path: Path to save YAML file.
    """
    path = Path(config_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w") as f:
        yaml.safe_dump(config.model_dump(), f, default_flow_style=False, sort_keys=False)


def get_default_config() -> ReadmissionConfig:
    """Get default configuration.

    Returns:
        ReadmissionConfig with default values.
    """
    return ReadmissionConfig()
