"""Integration tests for the complete readmission pipeline."""

import json
from pathlib import Path

import pandas as pd
import pytest

from readmission import evaluate, predict, train
from readmission.config import CARTConfig, ForestConfig, get_default_config, save_config
from readmission.data.cleaning import load_dataset
from readmission.generate_dataset import generate_dataset
from readmission.models import ARTIFACT_NAMES, MODEL_IDS, ModelRegistry
from readmission.scoring import EvaluationService, InteractivePredictor, frame_records
from readmission.utils.logging import get_logger


@pytest.fixture(scope="module")
def pipeline_config(tmp_path_factory):
    """Small configuration writing everything under a temporary root."""
    root = tmp_path_factory.mktemp("pipeline")
    config = get_default_config()
    config.paths.data_dir = str(root / "data")
    config.paths.artifacts_dir = str(root / "artifacts")
    config.paths.reports_dir = str(root / "reports")
    config.training.cart = CARTConfig(cv_folds=3, max_alphas=6)
    config.training.forest = ForestConfig(n_estimators=20, n_jobs=1)
    config.scoring.threshold = 0.4
    config.logging.level = "WARNING"
    config_path = root / "config.yaml"
    save_config(config, str(config_path))
    return config, config_path


@pytest.fixture(scope="module")
def training_logger():
    return get_logger(name="readmission.test_pipeline", level="WARNING")


@pytest.fixture(scope="module")
def trained(pipeline_config, training_logger):
    """Train once on generated data and return the artifacts directory."""
    config, _ = pipeline_config
    df = generate_dataset(num_records=500, seed=21, output_path=None, verbose=False)
    models = train.run_training(config, df, logger=training_logger)
    return config, models


class TestTraining:
    """End-to-end training."""

    def test_artifacts_written(self, trained):
        """Test the store, every model and the test split are saved."""
        config, models = trained
        artifacts = Path(config.paths.artifacts_dir)
        assert set(models) == set(MODEL_IDS)
        assert (artifacts / "feature_store.json").exists()
        for model_id in MODEL_IDS:
            assert (artifacts / ARTIFACT_NAMES[model_id]).exists()
        assert config.paths.get_path("test_split").exists()

    def test_test_split_size(self, trained):
        """Test roughly 30 percent of the cleaned rows are held out."""
        config, _ = trained
        test_df = load_dataset(config.paths.get_path("test_split"))
        assert 120 <= len(test_df) <= 160

    def test_models_share_store(self, trained):
        """Test every saved model is tied to the saved feature store."""
        config, _ = trained
        registry = ModelRegistry.from_directory(config.paths.artifacts_dir)
        for model_id in MODEL_IDS:
            assert registry.get(model_id).store_fingerprint == registry.store.fingerprint

    def test_configured_threshold_applied(self, trained):
        """Test saved models carry the configured decision threshold."""
        config, models = trained
        registry = ModelRegistry.from_directory(config.paths.artifacts_dir)
        for model_id in MODEL_IDS:
            assert models[model_id].get_threshold() == 0.4
            assert registry.get(model_id).get_threshold() == config.scoring.threshold

    def test_training_metrics_recorded(self, trained, training_logger):
        """Test fit diagnostics and timings reach the metrics summary."""
        summary = training_logger.get_metrics_summary()
        for name in ("cart_ccp_alpha", "cart_leaves", "forest_oob_error", "training"):
            assert summary[name]["count"] == 1
        for model_id in MODEL_IDS:
            assert f"fit_{model_id}" in summary
        assert 0.0 <= summary["forest_oob_error"]["last"] <= 1.0


class TestBatchAndInteractive:
    """Both scoring paths over the same artifacts."""

    def test_same_probabilities_on_both_paths(self, trained):
        """Test batch and interactive scoring agree on each record."""
        config, _ = trained
        registry = ModelRegistry.from_directory(config.paths.artifacts_dir)
        test_df = load_dataset(config.paths.get_path("test_split")).head(5)
        records = frame_records(test_df)
        predictor = InteractivePredictor(registry.store, registry)
        service = EvaluationService(registry.store, registry)

        for model_id in MODEL_IDS:
            encoded = service.encode_records(records, registry.form(model_id))
            batch = registry.score_batch(model_id, [entry.vector for entry in encoded])
            for (record, _), probability in zip(records, batch):
                interactive = predictor.predict(record)
                assert interactive.probabilities[model_id] == pytest.approx(probability)


class TestCommandLine:
    """The evaluate and predict entry points."""

    def test_evaluate_main(self, trained, pipeline_config, capsys):
        """Test evaluation writes every report table."""
        config, _ = trained
        _, config_path = pipeline_config
        assert evaluate.main(["-c", str(config_path)]) == 0

        reports = Path(config.paths.reports_dir)
        for model_id in MODEL_IDS:
            assert (reports / f"metrics_{model_id}.csv").exists()
            assert (reports / f"roc_{model_id}.csv").exists()
            assert (reports / f"importance_{model_id}.csv").exists()
        comparison = pd.read_csv(reports / "model_comparison.csv")
        assert list(comparison["Metric"]) == ["Accuracy", "Precision", "Recall", "Specificity", "F1", "AUC"]
        assert "MODEL COMPARISON" in capsys.readouterr().out

    def test_evaluate_missing_artifacts(self, tmp_path, pipeline_config):
        """Test evaluation fails cleanly without artifacts."""
        _, config_path = pipeline_config
        assert evaluate.main(["-c", str(config_path), "-a", str(tmp_path / "none")]) == 1

    def test_predict_main(self, trained, pipeline_config, capsys):
        """Test predicting the default encounter as JSON."""
        _, config_path = pipeline_config
        assert predict.main(["-c", str(config_path), "--json"]) == 0

        result = json.loads(capsys.readouterr().out)
        assert result["ok"] is True
        assert set(result["probabilities"]) == set(MODEL_IDS)
        assert result["risk_tier"] in {"low", "moderate", "high"}

    def test_predict_unknown_category(self, trained, pipeline_config, capsys):
        """Test an unknown level exits with the error state code."""
        _, config_path = pipeline_config
        code = predict.main(["-c", str(config_path), "--json", "--medical_specialty", "Astrology"])
        assert code == 2
        result = json.loads(capsys.readouterr().out)
        assert result["error_field"] == "medical_specialty"

    def test_train_main_missing_input(self, tmp_path, pipeline_config):
        """Test training fails cleanly when the dataset is missing."""
        _, config_path = pipeline_config
        code = train.main(["-c", str(config_path), "--input", str(tmp_path / "absent.csv")])
        assert code == 1
