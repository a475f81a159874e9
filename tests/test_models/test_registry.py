"""Unit tests for the model registry."""

import numpy as np
import pytest

from readmission.exceptions import ModelNotLoadedError, SchemaMismatchError
from readmission.features.encoders import LINEAR, encode, encode_tree
from readmission.features.records import RawInput
from readmission.features.store import CategoryVocabulary, FeatureStore
from readmission.models import ARTIFACT_NAMES, MODEL_IDS, ModelRegistry
from readmission.train import save_artifacts


@pytest.fixture(scope="module")
def artifacts_dir(tmp_path_factory, fitted_models, feature_store):
    directory = tmp_path_factory.mktemp("artifacts")
    save_artifacts(fitted_models, feature_store, directory)
    return directory


@pytest.fixture
def other_store(feature_store) -> FeatureStore:
    """A store whose vocabulary has one extra diagnosis level."""
    levels = feature_store.vocabulary.to_dict()["levels"]
    levels["diag_1"] = levels["diag_1"] + ["Neoplasms"]
    return FeatureStore(CategoryVocabulary(levels))


class TestModelRegistry:
    """Tests for registering, loading and scoring models."""

    def test_unknown_id(self, registry, default_raw, feature_store):
        """Test scoring an id that was never loaded."""
        empty = ModelRegistry(feature_store)
        with pytest.raises(ModelNotLoadedError):
            empty.score("linear", encode(default_raw, feature_store, LINEAR))
        with pytest.raises(ModelNotLoadedError):
            registry.get("boosting")

    def test_loaded_ids(self, registry):
        """Test ids are reported in canonical order."""
        assert registry.loaded_ids == MODEL_IDS
        assert len(registry) == 3
        assert "tree" in registry

    def test_from_directory(self, artifacts_dir, feature_store):
        """Test a registry rebuilt from disk uses the saved store."""
        loaded = ModelRegistry.from_directory(artifacts_dir)
        assert loaded.store.fingerprint == feature_store.fingerprint
        assert loaded.loaded_ids == MODEL_IDS

    def test_idempotent_load(self, artifacts_dir, feature_store):
        """Test loading the same artifact twice is a no-op."""
        registry = ModelRegistry(feature_store)
        first = registry.load("tree", artifacts_dir / ARTIFACT_NAMES["tree"])
        second = registry.load("tree", artifacts_dir / ARTIFACT_NAMES["tree"])
        assert first is second
        assert len(registry) == 1

    def test_load_missing_artifact(self, tmp_path, feature_store):
        """Test a missing artifact raises ModelNotLoadedError."""
        registry = ModelRegistry(feature_store)
        with pytest.raises(ModelNotLoadedError):
            registry.load("linear", tmp_path / "model_linear.joblib")

    def test_register_different_model_under_taken_id(self, registry, fitted_models):
        """Test an id cannot be silently replaced."""
        registry.register("linear", fitted_models["linear"])
        with pytest.raises(ValueError):
            registry.register("linear", fitted_models["ensemble"])

    def test_register_unknown_id(self, feature_store, fitted_models):
        """Test only the known ids are accepted."""
        with pytest.raises(ValueError):
            ModelRegistry(feature_store).register("boosting", fitted_models["linear"])

    def test_wrong_form(self, feature_store, fitted_models):
        """Test a tree-form model cannot serve the linear id."""
        with pytest.raises(SchemaMismatchError):
            ModelRegistry(feature_store).register("linear", fitted_models["tree"])

    def test_fingerprint_mismatch_on_register(self, other_store, fitted_models):
        """Test models trained with another store are rejected."""
        with pytest.raises(SchemaMismatchError):
            ModelRegistry(other_store).register("ensemble", fitted_models["ensemble"])

    def test_fingerprint_mismatch_on_load(self, other_store, artifacts_dir):
        """Test loading an artifact trained with another store is rejected."""
        with pytest.raises(SchemaMismatchError):
            ModelRegistry(other_store).load("linear", artifacts_dir / ARTIFACT_NAMES["linear"])

    def test_wrong_vector_form(self, registry, feature_store, default_raw):
        """Test a linear vector cannot be scored by a tree model."""
        with pytest.raises(SchemaMismatchError):
            registry.score("tree", encode(default_raw, feature_store, LINEAR))

    def test_scores_are_probabilities(self, registry, feature_store, default_raw):
        """Test each model returns a probability for the default record."""
        for model_id in MODEL_IDS:
            vector = encode(default_raw, feature_store, registry.form(model_id))
            assert 0.0 <= registry.score(model_id, vector) <= 1.0

    def test_scoring_is_deterministic(self, registry, feature_store, default_raw):
        """Test repeated scoring gives identical results for every model."""
        for model_id in MODEL_IDS:
            form = registry.form(model_id)
            first = registry.score(model_id, encode(default_raw, feature_store, form))
            second = registry.score(model_id, encode(default_raw, feature_store, form))
            assert first == second

    def test_batch_matches_single(self, registry, feature_store, train_test):
        """Test scoring in a batch equals scoring one by one."""
        _, test_df = train_test
        raws = [RawInput.from_mapping(row) for row in test_df.head(15).to_dict(orient="records")]
        for model_id in MODEL_IDS:
            form = registry.form(model_id)
            vectors = [encode(raw, feature_store, form) for raw in raws]
            batch = registry.score_batch(model_id, vectors)
            single = [registry.score(model_id, vector) for vector in vectors]
            np.testing.assert_allclose(batch, single)

    def test_empty_batch(self, registry):
        """Test an empty batch returns an empty array."""
        assert registry.score_batch("linear", []).shape == (0,)

    def test_placeholder_outcome_is_inert(self, registry, feature_store, default_raw):
        """Test every outcome level in the placeholder gives the same score."""
        vocab = feature_store.vocabulary
        for model_id in ("tree", "ensemble"):
            scores = {
                registry.score(model_id, encode_tree(default_raw, vocab, outcome=level))
                for level in vocab.outcome_levels
            }
            assert len(scores) == 1
