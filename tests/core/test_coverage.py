import numpy as np
import pytest

import rdnad.core._coverage as coverage_module
from rdnad.core._coverage import compute_coverage
from rdnad.exceptions import ValidationError


@pytest.mark.required
class TestComputeCoverageUnit:
    def test_counts_outliers_and_accuracy(self):
        result = compute_coverage([1, 0, 1], [[0.1], [0.45], [2.0]], [[0.0], [0.5]], [0.2, 0.1])
        np.testing.assert_array_equal(result["neighbor_counts"], [1, 1, 0])
        assert result["outlier_count"] == 1
        assert result["accuracy"] == 0.5

    def test_radius_boundary_is_covered(self):
        result = compute_coverage([1], [[0.5]], [[0.0]], [0.5])
        assert result["neighbor_counts"].tolist() == [1]
        assert result["outlier_count"] == 0

    def test_coverage_is_asymmetric(self):
        # only the training instance with the wide radius reaches the query
        result = compute_coverage([1], [[0.9]], [[0.0], [1.0]], [0.0, 2.0])
        assert result["neighbor_counts"].tolist() == [1]

    def test_counts_every_covering_neighbourhood(self):
        training = [[0.0, 0.0], [1.0, 0.0], [0.0, 1.0]]
        result = compute_coverage([1, 1], [[0.0, 0.0], [5.0, 5.0]], training, [1.0, 1.0, 1.0])
        assert result["neighbor_counts"].tolist() == [3, 0]

    def test_no_coverage_leaves_accuracy_undefined(self):
        result = compute_coverage([1, 1], [[3.0], [4.0]], [[0.0], [1.0]], [0.1, 0.1])
        assert result["outlier_count"] == 2
        assert result["accuracy"] is None

    def test_zero_accuracy_is_not_undefined(self):
        result = compute_coverage([0, 0], [[0.0], [4.0]], [[0.0], [1.0]], [0.1, 0.1])
        assert result["accuracy"] == 0.0

    def test_empty_query(self):
        result = compute_coverage([], np.empty((0, 1)), [[0.0], [1.0]], [0.1, 0.1])
        assert result["neighbor_counts"].shape == (0,)
        assert result["outlier_count"] == 0
        assert result["accuracy"] is None

    def test_empty_training_rejected(self):
        with pytest.raises(ValidationError, match="at least one instance"):
            compute_coverage([1], [[0.0]], np.empty((0, 1)), [])

    def test_boolean_correctness(self):
        result = compute_coverage(np.array([True, False]), [[0.0], [1.0]], [[0.0], [1.0]], [0.1, 0.1])
        assert result["accuracy"] == 0.5

    def test_threshold_length_mismatch(self):
        with pytest.raises(ValidationError, match="thresholds has 1 values"):
            compute_coverage([1], [[0.0]], [[0.0], [1.0]], [0.1])

    def test_correctness_length_mismatch(self):
        with pytest.raises(ValidationError, match="correctness has 2 values"):
            compute_coverage([1, 0], [[0.0]], [[0.0], [1.0]], [0.1, 0.1])

    def test_correctness_out_of_range(self):
        with pytest.raises(ValidationError, match="correctness values"):
            compute_coverage([2], [[0.0]], [[0.0]], [0.1])

    def test_feature_mismatch(self):
        with pytest.raises(ValidationError, match="feature sets must match"):
            compute_coverage([1], [[0.0, 1.0]], [[0.0]], [0.1])

    def test_missing_query_values(self):
        with pytest.raises(ValidationError, match="non-finite"):
            compute_coverage([1], [[np.nan]], [[0.0]], [0.1])


@pytest.mark.optional
class TestComputeCoverageFunctional:
    def test_accuracy_bounded(self, RNG):
        query, training = RNG.uniform(size=(50, 3)), RNG.uniform(size=(30, 3))
        correctness = RNG.integers(0, 2, size=50)
        for radius in (0.05, 0.2, 0.5, 2.0):
            result = compute_coverage(correctness, query, training, np.full(30, radius))
            assert result["accuracy"] is None or 0.0 <= result["accuracy"] <= 1.0
            assert result["outlier_count"] == np.count_nonzero(result["neighbor_counts"] == 0)

    def test_wider_radius_never_removes_coverage(self, RNG):
        query, training = RNG.uniform(size=(40, 2)), RNG.uniform(size=(25, 2))
        radii = RNG.uniform(0, 0.1, size=25)
        outliers = [
            compute_coverage(np.ones(40), query, training, radii * multiplier)["outlier_count"]
            for multiplier in (1.0, 1.5, 3.0)
        ]
        assert outliers == sorted(outliers, reverse=True)

    def test_chunked_counts_match(self, RNG, monkeypatch):
        query, training = RNG.uniform(size=(11, 2)), RNG.uniform(size=(7, 2))
        radii = RNG.uniform(0, 0.4, size=7)
        expected = compute_coverage(np.ones(11), query, training, radii)
        monkeypatch.setattr(coverage_module, "CHUNK_SIZE", 3)
        chunked = compute_coverage(np.ones(11), query, training, radii)
        np.testing.assert_array_equal(chunked["neighbor_counts"], expected["neighbor_counts"])
