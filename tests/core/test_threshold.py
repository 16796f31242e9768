import numpy as np
import pytest

from rdnad.core._distance import compute_distances
from rdnad.core._threshold import compute_thresholds
from rdnad.exceptions import DegenerateCaseError, ValidationError


@pytest.fixture
def line_distances(line_training):
    return compute_distances(line_training, line_training)["distances"]


@pytest.mark.required
class TestComputeThresholdsUnit:
    def test_k1_backfills_unresolved_instance(self, line_distances, reliable):
        # fence over k=1 averages [.25, .25, .25, .5] is .40625, leaving the last point unresolved
        thresholds = compute_thresholds(line_distances, *reliable, k=1)
        np.testing.assert_allclose(thresholds, np.full(4, 0.25 / 3))

    def test_k2_fenced_means(self, line_distances, reliable):
        # fence over k=2 averages [.375, .25, .375, .625] is .578125
        thresholds = compute_thresholds(line_distances, *reliable, k=2)
        np.testing.assert_allclose(thresholds, np.array([0.375, 0.25, 1.25 / 3, 0.5]) / 3)

    def test_reliability_correction(self, line_distances):
        agreement = np.array([1.0, 0.5, 1.0, 1.0])
        dispersion = np.array([0.0, 0.0, 0.5, 0.0])
        thresholds = compute_thresholds(line_distances, agreement, dispersion, k=1)
        np.testing.assert_allclose(thresholds, np.array([0.25, 0.125, 0.125, 0.25]) / 3)

    def test_zero_correction_replaced_by_smallest_positive(self, line_distances):
        agreement = np.array([0.0, 0.5, 1.0, 1.0])
        thresholds = compute_thresholds(line_distances, agreement, np.zeros(4), k=1)
        np.testing.assert_allclose(thresholds, np.array([0.125, 0.125, 0.25, 0.25]) / 3)

    def test_accepts_single_column_frames(self, line_distances):
        thresholds = compute_thresholds(line_distances, np.ones((4, 1)), np.zeros((4, 1)), k=1)
        assert thresholds.shape == (4,)

    def test_no_positive_correction_is_degenerate(self, line_distances):
        with pytest.raises(DegenerateCaseError, match="k=2") as e:
            compute_thresholds(line_distances, np.zeros(4), np.zeros(4), k=2)
        assert e.value.k == 2

    def test_full_dispersion_is_degenerate(self, line_distances):
        with pytest.raises(DegenerateCaseError):
            compute_thresholds(line_distances, np.ones(4), np.ones(4), k=1)

    @pytest.mark.parametrize("k", [0, 4, -1])
    def test_k_out_of_range(self, line_distances, reliable, k):
        with pytest.raises(ValidationError, match="k must be between 1 and 3"):
            compute_thresholds(line_distances, *reliable, k=k)

    def test_reliability_length_mismatch(self, line_distances):
        with pytest.raises(ValidationError, match="agreement has 3 values"):
            compute_thresholds(line_distances, np.ones(3), np.zeros(4), k=1)
        with pytest.raises(ValidationError, match="dispersion has 5 values"):
            compute_thresholds(line_distances, np.ones(4), np.zeros(5), k=1)

    @pytest.mark.parametrize(
        "agreement, dispersion, match",
        [
            ([1.0, 1.0, 1.5, 1.0], [0.0] * 4, "agreement values"),
            ([1.0] * 4, [0.0, -0.1, 0.0, 0.0], "dispersion values"),
            ([1.0, np.nan, 1.0, 1.0], [0.0] * 4, "non-finite"),
        ],
    )
    def test_reliability_out_of_range(self, line_distances, agreement, dispersion, match):
        with pytest.raises(ValidationError, match=match):
            compute_thresholds(line_distances, agreement, dispersion, k=1)

    def test_single_instance(self):
        with pytest.raises(ValidationError, match="At least 2 training instances"):
            compute_thresholds(np.zeros((1, 1)), [1.0], [0.0], k=1)


@pytest.mark.optional
class TestComputeThresholdsFunctional:
    def test_every_k_resolves_all_instances(self, RNG):
        train = RNG.normal(size=(20, 3))
        train[-1] += 25  # a density outlier far from everything
        distances = compute_distances(train, train)["distances"]
        agreement = RNG.uniform(0, 1, size=20)
        dispersion = RNG.uniform(0, 0.5, size=20)
        for k in range(1, 20):
            thresholds = compute_thresholds(distances, agreement, dispersion, k)
            assert thresholds.shape == (20,)
            assert np.isfinite(thresholds).all()
            assert (thresholds >= 0).all()

    def test_does_not_modify_inputs(self, line_distances, reliable):
        distances = line_distances.copy()
        agreement, dispersion = np.array([0.0, 1.0, 1.0, 1.0]), reliable[1].copy()
        compute_thresholds(distances, agreement, dispersion, k=1)
        np.testing.assert_array_equal(distances, line_distances)
        np.testing.assert_array_equal(agreement, [0.0, 1.0, 1.0, 1.0])

    def test_uses_linear_quantiles(self, RNG):
        train = RNG.uniform(size=(9, 2))
        distances = compute_distances(train, train)["distances"]
        k_avg = distances[:, 1:3].mean(axis=1)
        q1, q3 = np.percentile(k_avg, [25, 75])
        fence = q3 + 1.5 * (q3 - q1)
        neighbors = distances[:, 1:]
        expected = np.array([row[row <= fence].mean() if (row <= fence).any() else np.nan for row in neighbors])
        expected[np.isnan(expected)] = np.nanmin(expected)
        thresholds = compute_thresholds(distances, np.ones(9), np.zeros(9), k=2)
        np.testing.assert_allclose(thresholds, expected / 3)
