"""Decision rules over Monte Carlo samples and the strategies built on them.

Rules:
- MarginalRule: frequency-weighted marginals thresholded at t (Hamming loss)
- JointModeRule: most frequent distinct sample (subset 0/1 loss)
- GeneralFMeasureRule: Delta matrix from the raw samples (F-measure, any dependence)
- IndependenceFRule: sample marginals plugged into the independence maximizer
- RankLossRule: 1 / (p * (n - p)) weighted positive counts (rank loss)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import numpy as np

from pcc_inference.chain.model import ProbabilityChainModel
from pcc_inference.constants import DEFAULT_NUM_SIMULATIONS, DEFAULT_SEED, DEFAULT_THRESHOLD
from pcc_inference.data.schemas import MultiLabelOutput, bipartition_from_scores
from pcc_inference.fmeasure.general import DeltaMatrix, SampleBasedFMeasureMaximizer
from pcc_inference.fmeasure.independence import AlgorithmComplexity, ExpectedFMeasureUnderIndependence
from pcc_inference.inference.base import InferenceStrategy, StrategyRegistry
from pcc_inference.inference.montecarlo import MonteCarloSampler, SampleSet
from pcc_inference.rankloss.maximizer import RankLossMaximizer


class SampleDecisionRule(ABC):
    """Turns a sample set into a prediction."""

    @abstractmethod
    def apply(self, samples: SampleSet) -> MultiLabelOutput:
        """Decide on a bipartition (and optional confidences)."""


def sample_marginals(samples: SampleSet) -> np.ndarray:
    """confidence_j = sum(freq * y_j) / sum(freq) over distinct samples."""
    total = samples.total_frequency
    if total <= 0:
        raise ValueError("Sample set is empty")
    return samples.frequencies() @ samples.label_matrix() / total


class MarginalRule(SampleDecisionRule):
    def __init__(self, threshold: float = DEFAULT_THRESHOLD):
        self.threshold = threshold

    def apply(self, samples: SampleSet) -> MultiLabelOutput:
        marginals = sample_marginals(samples)
        return MultiLabelOutput(
            bipartition=bipartition_from_scores(marginals, self.threshold),
            confidences=tuple(float(m) for m in marginals),
            strategy="marginal",
        )


class JointModeRule(SampleDecisionRule):
    """Highest-frequency sample; ties go to the first one found."""

    def apply(self, samples: SampleSet) -> MultiLabelOutput:
        if not samples.samples:
            raise ValueError("Sample set is empty")
        mode = samples.samples[int(np.argmax(samples.frequencies()))]
        return MultiLabelOutput(
            bipartition=mode.as_bools(),
            confidences=tuple(float(m) for m in sample_marginals(samples)),
            strategy="joint_mode",
            extras={"mode_frequency": mode.frequency},
        )


class GeneralFMeasureRule(SampleDecisionRule):
    def __init__(self):
        self.maximizer = SampleBasedFMeasureMaximizer()

    def apply(self, samples: SampleSet) -> MultiLabelOutput:
        delta = DeltaMatrix.from_samples(samples.label_matrix(), samples.frequencies())
        return self.maximizer.to_output(self.maximizer.maximize(delta), strategy="general_f")


class IndependenceFRule(SampleDecisionRule):
    def __init__(
        self,
        beta_q: int = 1,
        beta_r: int = 1,
        complexity: AlgorithmComplexity = AlgorithmComplexity.QUADRATIC,
    ):
        self.maximizer = ExpectedFMeasureUnderIndependence(complexity=complexity, beta_q=beta_q, beta_r=beta_r)

    def apply(self, samples: SampleSet) -> MultiLabelOutput:
        return self.maximizer.predict_output(sample_marginals(samples), strategy="independence_f")


class RankLossRule(SampleDecisionRule):
    def __init__(self, threshold: float = DEFAULT_THRESHOLD):
        self.threshold = threshold

    def apply(self, samples: SampleSet) -> MultiLabelOutput:
        maximizer = RankLossMaximizer(samples.num_labels, threshold=self.threshold)
        maximizer.add_samples(samples.label_matrix(), samples.frequencies())
        return maximizer.to_output()


class MonteCarloInference(InferenceStrategy):
    """Samples the chain, then hands the sample set to a decision rule."""

    def __init__(
        self,
        model: ProbabilityChainModel,
        rule: SampleDecisionRule,
        num_simulations: int = DEFAULT_NUM_SIMULATIONS,
        seed: int = DEFAULT_SEED,
    ):
        super().__init__(model)
        self.sampler = MonteCarloSampler(model, num_simulations=num_simulations, seed=seed)
        self.rule = rule

    def predict(self, instance: Any) -> MultiLabelOutput:
        samples = self.sampler.sample(instance)
        output = self.rule.apply(samples)
        extras = dict(output.extras)
        extras.update({"num_distinct": len(samples), "num_queries": samples.num_queries})
        return MultiLabelOutput(
            bipartition=output.bipartition,
            confidences=output.confidences,
            strategy=self.name,
            extras=extras,
        )

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(num_labels={self.num_labels}, "
            f"num_simulations={self.sampler.num_simulations}, seed={self.sampler.seed})"
        )


@StrategyRegistry.register("mc_joint_mode")
class MonteCarloJointModeInference(MonteCarloInference):
    def __init__(self, model: ProbabilityChainModel, num_simulations: int = DEFAULT_NUM_SIMULATIONS,
                 seed: int = DEFAULT_SEED):
        super().__init__(model, JointModeRule(), num_simulations=num_simulations, seed=seed)


@StrategyRegistry.register("mc_marginal")
class MonteCarloMarginalInference(MonteCarloInference):
    def __init__(self, model: ProbabilityChainModel, num_simulations: int = DEFAULT_NUM_SIMULATIONS,
                 seed: int = DEFAULT_SEED, threshold: float = DEFAULT_THRESHOLD):
        super().__init__(model, MarginalRule(threshold), num_simulations=num_simulations, seed=seed)


@StrategyRegistry.register("mc_fmeasure")
class MonteCarloFMeasureInference(MonteCarloInference):
    def __init__(self, model: ProbabilityChainModel, num_simulations: int = DEFAULT_NUM_SIMULATIONS,
                 seed: int = DEFAULT_SEED):
        super().__init__(model, GeneralFMeasureRule(), num_simulations=num_simulations, seed=seed)


@StrategyRegistry.register("mc_independence_f")
class MonteCarloIndependenceFInference(MonteCarloInference):
    def __init__(self, model: ProbabilityChainModel, num_simulations: int = DEFAULT_NUM_SIMULATIONS,
                 seed: int = DEFAULT_SEED, beta_q: int = 1, beta_r: int = 1,
                 complexity: AlgorithmComplexity = AlgorithmComplexity.QUADRATIC):
        rule = IndependenceFRule(beta_q=beta_q, beta_r=beta_r, complexity=complexity)
        super().__init__(model, rule, num_simulations=num_simulations, seed=seed)


@StrategyRegistry.register("mc_rank_loss")
class MonteCarloRankLossInference(MonteCarloInference):
    def __init__(self, model: ProbabilityChainModel, num_simulations: int = DEFAULT_NUM_SIMULATIONS,
                 seed: int = DEFAULT_SEED, threshold: float = DEFAULT_THRESHOLD):
        super().__init__(model, RankLossRule(threshold), num_simulations=num_simulations, seed=seed)
