"""Tests for Monte Carlo sampling and the sample decision rules."""

import numpy as np
import pytest

from pcc_inference.chain.model import ProbabilityChainModel
from pcc_inference.chain.providers import CallableProvider, chain_from_marginals, chain_from_tables
from pcc_inference.exceptions import ProviderFailure
from pcc_inference.inference import (
    JointModeRule,
    MarginalRule,
    MonteCarloSampler,
    SampleSet,
    StrategyRegistry,
)
from pcc_inference.data.schemas import LabelVector


TABLES = [{(): 0.4}, {(0,): 0.3, (1,): 0.8}, {(0, 0): 0.5, (0, 1): 0.1, (1, 0): 0.6, (1, 1): 0.9}]


class TestMonteCarloSampler:

    def test_fixed_seed_is_reproducible(self):
        model = chain_from_tables(TABLES)
        first = MonteCarloSampler(model, num_simulations=200, seed=3).sample(None)
        second = MonteCarloSampler(model, num_simulations=200, seed=3).sample(None)
        assert first == second

    def test_repeated_calls_are_independent(self):
        sampler = MonteCarloSampler(chain_from_tables(TABLES), num_simulations=50, seed=1)
        assert sampler.sample(None) == sampler.sample(None)

    def test_frequencies_sum_to_simulations(self):
        samples = MonteCarloSampler(chain_from_tables(TABLES), num_simulations=300).sample(None)
        assert samples.total_frequency == 300
        assert samples.frequencies().sum() == 300
        assert len({s.labels for s in samples.samples}) == len(samples)

    def test_queries_bounded_by_distinct_prefixes(self):
        samples = MonteCarloSampler(chain_from_tables(TABLES), num_simulations=500).sample(None)
        # At most one query per distinct prefix: 1 + 2 + 4
        assert samples.num_queries <= 7

    def test_sample_probabilities_are_joint_probabilities(self):
        samples = MonteCarloSampler(chain_from_tables(TABLES), num_simulations=300).sample(None)
        for sample in samples.samples:
            y = sample.labels
            expected = 1.0
            for i in range(3):
                p = TABLES[i][tuple(y[:i])]
                expected *= p if y[i] else 1.0 - p
            assert sample.probability == pytest.approx(expected)

    def test_deterministic_chain(self):
        samples = MonteCarloSampler(chain_from_marginals([1.0, 0.0, 1.0]), num_simulations=25).sample(None)
        assert len(samples) == 1
        assert samples.samples[0].labels == (1, 0, 1)
        assert samples.samples[0].frequency == 25
        assert samples.num_queries == 3

    def test_label_order(self):
        model = chain_from_marginals([1.0, 0.0], order=[1, 0])
        samples = MonteCarloSampler(model, num_simulations=5).sample(None)
        assert samples.samples[0].labels == (0, 1)

    def test_label_matrix(self):
        samples = MonteCarloSampler(chain_from_tables(TABLES), num_simulations=100).sample(None)
        matrix = samples.label_matrix()
        assert matrix.shape == (len(samples), 3)
        assert set(np.unique(matrix).tolist()) <= {0, 1}

    def test_one_row_of_uniforms_per_simulation(self):
        marginals = [0.3, 0.6, 0.5]
        samples = MonteCarloSampler(chain_from_marginals(marginals), num_simulations=50, seed=7).sample(None)

        rng = np.random.default_rng(7)
        expected = {}
        for _ in range(50):
            u = rng.random(3)
            labels = tuple(1 if p > v else 0 for p, v in zip(marginals, u))
            expected[labels] = expected.get(labels, 0) + 1
        assert {s.labels: s.frequency for s in samples.samples} == expected

    @pytest.mark.parametrize("num_simulations", [0, -5])
    def test_invalid_simulations(self, num_simulations):
        with pytest.raises(ValueError):
            MonteCarloSampler(chain_from_marginals([0.5]), num_simulations=num_simulations)

    def test_provider_failure_propagates(self):
        model = ProbabilityChainModel([CallableProvider(lambda x, p: 2.0)])
        with pytest.raises(ProviderFailure):
            MonteCarloSampler(model).sample(None)


class TestRules:

    def test_marginal_rule_consistency(self):
        samples = MonteCarloSampler(chain_from_tables(TABLES), num_simulations=400, seed=8).sample(None)
        output = MarginalRule(threshold=0.5).apply(samples)

        matrix = samples.label_matrix()
        freqs = samples.frequencies()
        expected = (freqs[:, None] * matrix).sum(axis=0) / freqs.sum()
        assert output.confidences == pytest.approx(tuple(expected))
        assert output.bipartition == tuple(bool(m >= 0.5) for m in expected)

    def test_marginals_converge(self):
        model = chain_from_marginals([0.2, 0.7, 0.9])
        samples = MonteCarloSampler(model, num_simulations=5000, seed=1).sample(None)
        output = MarginalRule().apply(samples)
        np.testing.assert_allclose(output.confidences, [0.2, 0.7, 0.9], atol=0.05)

    def test_joint_mode_rule(self):
        samples = SampleSet(
            samples=(
                LabelVector((1, 0), 0.3, 2),
                LabelVector((0, 1), 0.5, 5),
                LabelVector((1, 1), 0.2, 5),
            ),
            num_labels=2,
            num_simulations=12,
            num_queries=3,
        )
        output = JointModeRule().apply(samples)
        # Ties go to the first sample found
        assert output.bipartition == (False, True)
        assert output.extras["mode_frequency"] == 5
        assert output.confidences == pytest.approx((7 / 12, 10 / 12))

    def test_empty_sample_set(self):
        empty = SampleSet(samples=(), num_labels=2, num_simulations=0, num_queries=0)
        with pytest.raises(ValueError):
            MarginalRule().apply(empty)
        with pytest.raises(ValueError):
            JointModeRule().apply(empty)


class TestMonteCarloStrategies:

    @pytest.mark.parametrize("name", [
        "mc_joint_mode", "mc_marginal", "mc_fmeasure", "mc_independence_f", "mc_rank_loss",
    ])
    def test_deterministic_chain(self, name):
        strategy = StrategyRegistry.create(name, chain_from_marginals([1.0, 0.0, 1.0]), num_simulations=20)
        output = strategy.predict(None)
        assert output.bipartition == (True, False, True)
        assert output.strategy == name
        assert output.extras["num_distinct"] == 1
        assert output.extras["num_queries"] == 3

    def test_rank_loss_scores(self):
        strategy = StrategyRegistry.create("mc_rank_loss", chain_from_marginals([1.0, 0.0, 1.0]), num_simulations=10)
        assert strategy.predict(None).confidences == pytest.approx((0.5, 0.0, 0.5))

    def test_fixed_seed_predictions_repeat(self):
        model = chain_from_tables(TABLES)
        for name in ("mc_fmeasure", "mc_independence_f", "mc_rank_loss"):
            a = StrategyRegistry.create(name, model, num_simulations=100, seed=4).predict(None)
            b = StrategyRegistry.create(name, model, num_simulations=100, seed=4).predict(None)
            assert a == b
            assert a.confidences == b.confidences

    def test_fmeasure_strategy_on_known_distribution(self):
        model = chain_from_marginals([0.95, 0.9, 0.02])
        output = StrategyRegistry.create("mc_fmeasure", model, num_simulations=500).predict(None)
        assert output.bipartition == (True, True, False)
