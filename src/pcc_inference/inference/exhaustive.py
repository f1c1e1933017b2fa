"""Exhaustive enumeration of a probability chain.

Visits every completion with non-zero probability depth-first, accumulating
exact marginals and the joint mode. Cost is 2^n model queries in the worst
case, so chains longer than ``max_labels`` are refused.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Tuple

import numpy as np

from pcc_inference.chain.model import ProbabilityChainModel
from pcc_inference.constants import DEFAULT_THRESHOLD, MAX_EXHAUSTIVE_LABELS
from pcc_inference.data.schemas import LabelVector, MultiLabelOutput, bipartition_from_scores
from pcc_inference.fmeasure.independence import AlgorithmComplexity, ExpectedFMeasureUnderIndependence
from pcc_inference.inference.base import InferenceStrategy, StrategyRegistry
from pcc_inference.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class Enumeration:
    marginals: Tuple[float, ...]
    mode: LabelVector
    num_leaves: int
    num_queries: int


@StrategyRegistry.register("exhaustive")
class ExhaustiveInference(InferenceStrategy):
    """Exact marginals by full enumeration; bipartition = marginals >= threshold."""

    def __init__(
        self,
        model: ProbabilityChainModel,
        threshold: float = DEFAULT_THRESHOLD,
        max_labels: int = MAX_EXHAUSTIVE_LABELS,
    ):
        super().__init__(model)
        if model.num_labels > max_labels:
            raise ValueError(
                f"Exhaustive inference limited to {max_labels} labels, chain has {model.num_labels}"
            )
        self.threshold = threshold
        self.max_labels = max_labels

    def enumerate(self, instance: Any) -> Enumeration:
        n = self.model.num_labels
        marginals = np.zeros(n)
        best = LabelVector(probability=-1.0)
        num_leaves = 0
        num_queries = 0

        stack: List[LabelVector] = [LabelVector()]
        while stack:
            vector = stack.pop()
            if vector.depth == n:
                num_leaves += 1
                marginals += vector.probability * np.asarray(vector.labels, dtype=np.float64)
                if vector.probability > best.probability:
                    best = vector
                continue
            p = self.model.probability(instance, vector.labels)
            num_queries += 1
            # Push the 1-branch first so the 0-branch is explored first.
            for decision, conditional in ((1, p), (0, 1.0 - p)):
                if conditional > 0.0:
                    stack.append(vector.extend(decision, conditional))

        logger.debug("Enumerated %d leaves with %d queries", num_leaves, num_queries)
        return Enumeration(
            marginals=self.model.to_label_order([float(v) for v in marginals]),
            mode=LabelVector(self.model.to_label_order(best.labels), best.probability, 1),
            num_leaves=num_leaves,
            num_queries=num_queries,
        )

    def joint_mode(self, instance: Any) -> LabelVector:
        return self.enumerate(instance).mode

    def predict(self, instance: Any) -> MultiLabelOutput:
        enumeration = self.enumerate(instance)
        return MultiLabelOutput(
            bipartition=bipartition_from_scores(enumeration.marginals, self.threshold),
            confidences=enumeration.marginals,
            strategy=self.name,
            extras={"mode_probability": enumeration.mode.probability},
        )


@StrategyRegistry.register("independence_f")
class IndependenceFInference(ExhaustiveInference):
    """Expected-F plug-in rule applied to the exact chain marginals."""

    def __init__(
        self,
        model: ProbabilityChainModel,
        beta_q: int = 1,
        beta_r: int = 1,
        complexity: AlgorithmComplexity = AlgorithmComplexity.QUADRATIC,
        max_labels: int = MAX_EXHAUSTIVE_LABELS,
    ):
        super().__init__(model, max_labels=max_labels)
        self.maximizer = ExpectedFMeasureUnderIndependence(complexity=complexity, beta_q=beta_q, beta_r=beta_r)

    def predict(self, instance: Any) -> MultiLabelOutput:
        marginals = self.enumerate(instance).marginals
        return self.maximizer.predict_output(marginals, strategy=self.name)
