"""Unit tests for batch evaluation."""

import math

import pytest

from readmission.exceptions import InvalidRecordError, ModelNotLoadedError, SchemaMismatchError
from readmission.features.store import CategoryVocabulary, FeatureStore
from readmission.models import MODEL_IDS, ModelRegistry
from readmission.scoring import batch
from readmission.scoring.batch import EvaluationService, frame_records, is_positive_label


@pytest.fixture
def service(feature_store, registry) -> EvaluationService:
    return EvaluationService(feature_store, registry)


@pytest.fixture
def test_records(train_test) -> list:
    _, test_df = train_test
    return frame_records(test_df)


class TestPositiveLabel:
    """Tests for outcome label parsing."""

    @pytest.mark.parametrize("label", [1, True, "yes", "Readmitted", "1", "TRUE"])
    def test_positive(self, label):
        assert is_positive_label(label) is True

    @pytest.mark.parametrize("label", [0, False, "no", "Not_Readmitted", "0", "false"])
    def test_negative(self, label):
        assert is_positive_label(label) is False

    @pytest.mark.parametrize("label", ["maybe", 2, None, 0.5])
    def test_invalid(self, label):
        with pytest.raises(InvalidRecordError):
            is_positive_label(label)


class TestEvaluationService:
    """Tests for scoring labelled batches."""

    def test_evaluate_test_split(self, service, test_records):
        """Test every held-out record is scored."""
        results = service.evaluate("linear", test_records)
        assert results.n_records == len(test_records)
        assert results.n_skipped == 0
        assert 0.0 <= results.accuracy <= 1.0
        assert results.model_id == "linear"

    def test_invalid_records_are_skipped(self, service, test_records):
        """Test unknown categories and bad counts are skipped and counted."""
        unknown = dict(test_records[0][0], medical_specialty="Astrology")
        malformed = dict(test_records[1][0], n_medications="lots")
        records = [(unknown, "yes"), (malformed, "no")] + test_records[2:12]

        results = service.evaluate("ensemble", records)

        assert results.n_records == 10
        assert results.n_skipped == 2
        assert [s.index for s in results.skipped] == [0, 1]
        assert results.skipped[0].error_type == "UnknownCategoryError"
        assert results.skipped[1].error_type == "InvalidRecordError"

    def test_binary_value_skipped_by_every_model(self, service, test_records):
        """Test a record outside the binary vocabulary is skipped for all models alike."""
        odd = dict(test_records[0][0], change="Yes")
        records = [(odd, "yes")] + test_records[1:8]
        for model_id in MODEL_IDS:
            results = service.evaluate(model_id, records)
            assert results.n_records == 7
            assert [s.index for s in results.skipped] == [0]
            assert results.skipped[0].error_type == "UnknownCategoryError"

    def test_bad_label_is_skipped(self, service, test_records):
        """Test an unreadable outcome label skips the record."""
        records = [(test_records[0][0], "perhaps")] + test_records[1:5]
        results = service.evaluate("tree", records)
        assert results.n_skipped == 1
        assert results.n_records == 4

    def test_all_records_skipped(self, service, test_records):
        """Test a batch with nothing scorable yields undefined metrics."""
        bad = dict(test_records[0][0], age="[10-20)")
        results = service.evaluate("linear", [(bad, "yes")])
        assert results.n_records == 0
        assert results.n_skipped == 1
        assert math.isnan(results.accuracy)

    def test_parallel_encoding_matches_serial(self, feature_store, registry, test_records):
        """Test n_jobs > 1 gives the same results as serial encoding."""
        serial = EvaluationService(feature_store, registry, n_jobs=1).evaluate("tree", test_records)
        parallel = EvaluationService(feature_store, registry, n_jobs=2).evaluate("tree", test_records)
        assert serial.confusion_matrix().tolist() == parallel.confusion_matrix().tolist()
        assert serial.auc == pytest.approx(parallel.auc)

    def test_threshold_applied(self, feature_store, registry, test_records):
        """Test the service threshold reaches the metrics."""
        service = EvaluationService(feature_store, registry, threshold=0.0)
        results = service.evaluate("linear", test_records)
        assert results.threshold == 0.0
        assert results.true_negatives + results.false_negatives == 0

    def test_schema_mismatch_propagates(self, service, test_records, monkeypatch):
        """Test a schema mismatch stops the batch instead of skipping."""
        def broken_encode(*args, **kwargs):
            raise SchemaMismatchError("layout drift")

        monkeypatch.setattr(batch, "encode", broken_encode)
        with pytest.raises(SchemaMismatchError):
            service.evaluate("linear", test_records[:3])

    def test_unknown_model(self, service, test_records):
        """Test evaluating an id that was never loaded."""
        with pytest.raises(ModelNotLoadedError):
            service.evaluate("boosting", test_records[:3])

    def test_store_must_match_registry(self, registry, feature_store):
        """Test a store from another training run is rejected."""
        levels = feature_store.vocabulary.to_dict()["levels"]
        levels["diag_1"] = levels["diag_1"] + ["Neoplasms"]
        with pytest.raises(ValueError):
            EvaluationService(FeatureStore(CategoryVocabulary(levels)), registry)

    def test_evaluate_frame(self, service, train_test):
        """Test evaluating directly from a labelled DataFrame."""
        _, test_df = train_test
        results = service.evaluate_frame("ensemble", test_df.head(40))
        assert results.n_records == 40

    def test_frame_records_missing_label(self, train_test):
        """Test the label column must be present."""
        _, test_df = train_test
        with pytest.raises(ValueError):
            frame_records(test_df, label_col="outcome")

    def test_compare(self, service, test_records):
        """Test the comparison table covers every model."""
        table = service.compare(MODEL_IDS, test_records)
        assert list(table.columns) == [
            "Metric", "Logistic Regression", "CART", "Random Forest", "Best_Model"
        ]
        assert len(table) == 6

    def test_evaluate_all_defaults_to_loaded(self, feature_store, fitted_models, test_records):
        """Test evaluate_all uses the loaded ids when none are given."""
        registry = ModelRegistry(feature_store)
        registry.register("linear", fitted_models["linear"])
        results = EvaluationService(feature_store, registry).evaluate_all(test_records[:20])
        assert list(results) == ["linear"]
