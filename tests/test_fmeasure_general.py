"""Tests for the general (sample-based) F-measure maximizer."""

import itertools

import numpy as np
import pytest

from pcc_inference.fmeasure.general import (
    DeltaMatrix,
    SampleBasedFMeasureMaximizer,
    probability_table_from_samples,
)


def _f1(h, y):
    h = np.asarray(h, dtype=bool)
    y = np.asarray(y, dtype=bool)
    denominator = h.sum() + y.sum()
    return 1.0 if denominator == 0 else 2.0 * np.sum(h & y) / denominator


def _empirical_expected_f(samples, frequencies, h):
    total = sum(frequencies)
    return sum(m * _f1(h, y) for y, m in zip(samples, frequencies)) / total


SAMPLES = [[1, 1, 0], [1, 0, 0], [0, 0, 0], [0, 1, 1]]
FREQUENCIES = [2, 1, 1, 3]


class TestDeltaMatrix:

    def test_add_matches_vectorized_fill(self):
        incremental = DeltaMatrix(3)
        for y, m in zip(SAMPLES, FREQUENCIES):
            incremental.add(y, m)
        vectorized = DeltaMatrix.from_samples(SAMPLES, FREQUENCIES)
        np.testing.assert_allclose(incremental.values, vectorized.values)
        assert incremental.num_instances == vectorized.num_instances == 7
        assert incremental.num_nulls == vectorized.num_nulls == 1

    def test_single_sample_entries(self):
        delta = DeltaMatrix.from_samples([[1, 0, 1]])
        # Two positives: row i adds 1 / (2 + i + 1) to the positive columns.
        np.testing.assert_allclose(delta.values[:, 0], [1 / 3, 1 / 4, 1 / 5])
        np.testing.assert_allclose(delta.values[:, 1], [0.0, 0.0, 0.0])

    def test_sample_and_table_fills_agree(self):
        sample_delta = DeltaMatrix.from_samples(SAMPLES, FREQUENCIES)
        table, p0 = probability_table_from_samples(SAMPLES, FREQUENCIES)
        table_delta = DeltaMatrix.from_probability_table(table, p0)
        np.testing.assert_allclose(table_delta.values, sample_delta.values / sample_delta.num_instances)
        assert table_delta.baseline == pytest.approx(sample_delta.baseline)
        assert sample_delta.baseline == pytest.approx(1 / 7)

    def test_baseline_without_nulls_uses_p0(self):
        delta = DeltaMatrix.from_probability_table(np.zeros((2, 2)), p0=0.4)
        assert delta.baseline == 0.4

    def test_invalid_inputs(self):
        with pytest.raises(ValueError):
            DeltaMatrix(0)
        with pytest.raises(ValueError):
            DeltaMatrix.from_samples([])
        with pytest.raises(ValueError):
            DeltaMatrix.from_samples([[1, 0]], [0])
        with pytest.raises(ValueError):
            DeltaMatrix.from_probability_table([[0.1, 0.2]], p0=1.5)
        with pytest.raises(ValueError):
            DeltaMatrix(2).add([1, 0, 1])


class TestMaximizer:

    def test_matches_brute_force_on_hand_samples(self):
        result = SampleBasedFMeasureMaximizer().maximize_samples(SAMPLES, FREQUENCIES)
        best = max(
            _empirical_expected_f(SAMPLES, FREQUENCIES, h)
            for h in itertools.product([0, 1], repeat=3)
        )
        assert result.f_measure == pytest.approx(best)
        assert _empirical_expected_f(SAMPLES, FREQUENCIES, result.bipartition) == pytest.approx(best)

    def test_matches_brute_force_on_random_samples(self):
        rng = np.random.default_rng(5)
        maximizer = SampleBasedFMeasureMaximizer()
        for _ in range(10):
            samples = rng.integers(0, 2, size=(int(rng.integers(1, 12)), 4)).tolist()
            frequencies = rng.integers(1, 5, size=len(samples)).tolist()
            result = maximizer.maximize_samples(samples, frequencies)
            best = max(
                _empirical_expected_f(samples, frequencies, h)
                for h in itertools.product([0, 1], repeat=4)
            )
            assert result.f_measure == pytest.approx(best)
            assert _empirical_expected_f(samples, frequencies, result.bipartition) == pytest.approx(best)

    def test_table_maximizer_matches_samples(self):
        maximizer = SampleBasedFMeasureMaximizer()
        table, p0 = probability_table_from_samples(SAMPLES, FREQUENCIES)
        from_table = maximizer.maximize_table(table, p0)
        from_samples = maximizer.maximize_samples(SAMPLES, FREQUENCIES)
        assert from_table.positives == from_samples.positives
        assert from_table.f_measure == pytest.approx(from_samples.f_measure)

    def test_identical_samples(self):
        result = SampleBasedFMeasureMaximizer().maximize_samples([[1, 0, 1]], [5])
        assert result.positives == (0, 2)
        assert result.f_measure == pytest.approx(1.0)

    def test_only_empty_samples(self):
        result = SampleBasedFMeasureMaximizer().maximize_samples([[0, 0], [0, 0]])
        assert result.positives == ()
        assert result.bipartition == (False, False)
        assert result.f_measure == pytest.approx(1.0)

    def test_to_output(self):
        result = SampleBasedFMeasureMaximizer().maximize_samples([[0, 1]], [1])
        output = SampleBasedFMeasureMaximizer.to_output(result)
        assert output.bipartition == (False, True)
        assert output.confidences == (0.0, 1.0)
        assert output.extras["expected_f"] == pytest.approx(1.0)

    def test_baseline_wins_tie(self):
        # Baseline 1/2 equals the size-1 row: 2 * (1/2) / 2
        result = SampleBasedFMeasureMaximizer().maximize_samples([[1, 0], [0, 0]], [1, 1])
        assert result.positives == ()
        assert result.f_measure == pytest.approx(0.5)
