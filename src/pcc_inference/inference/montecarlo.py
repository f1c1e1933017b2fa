"""Forward Monte Carlo sampling of a probability chain with prefix caching.

The sampler walks an implicit binary trie rooted at the empty prefix. The first
visit to a node queries the model once and creates both children with their
conditional probabilities (1 - p, p); later visits reuse them, so the model is
queried at most once per distinct prefix. Every call builds its own trie and
its own ``numpy.random.Generator`` from the configured seed.

The generator is consumed in one fixed order: one row of n uniforms per
simulation, slot by slot. A fixed seed and number of simulations therefore
reproduce the same sample set bit for bit.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Tuple

import numpy as np

from pcc_inference.chain.model import ProbabilityChainModel
from pcc_inference.constants import DEFAULT_NUM_SIMULATIONS, DEFAULT_SEED
from pcc_inference.data.schemas import LabelVector
from pcc_inference.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class SampleTreeNode:
    """Arena entry of the cache trie."""

    probability: float
    left: int = -1
    right: int = -1
    frequency: int = 0


@dataclass(frozen=True)
class SampleSet:
    """Distinct sampled label vectors (label order) in first-found order."""

    samples: Tuple[LabelVector, ...]
    num_labels: int
    num_simulations: int
    num_queries: int

    def __len__(self) -> int:
        return len(self.samples)

    def label_matrix(self) -> np.ndarray:
        """(distinct samples x labels) 0/1 matrix."""
        if not self.samples:
            return np.zeros((0, self.num_labels), dtype=np.int64)
        return np.array([s.labels for s in self.samples], dtype=np.int64)

    def frequencies(self) -> np.ndarray:
        return np.array([s.frequency for s in self.samples], dtype=np.int64)

    @property
    def total_frequency(self) -> int:
        return int(sum(s.frequency for s in self.samples))


class MonteCarloSampler:
    """Draws ``num_simulations`` label vectors from the chain's joint distribution."""

    def __init__(
        self,
        model: ProbabilityChainModel,
        num_simulations: int = DEFAULT_NUM_SIMULATIONS,
        seed: int = DEFAULT_SEED,
    ):
        if num_simulations <= 0:
            raise ValueError(f"num_simulations must be positive, got {num_simulations}")
        self.model = model
        self.num_simulations = int(num_simulations)
        self.seed = seed

    def sample(self, instance: Any) -> SampleSet:
        n = self.model.num_labels
        rng = np.random.default_rng(self.seed)

        arena: List[SampleTreeNode] = [SampleTreeNode(probability=1.0)]
        distinct: List[Tuple[int, Tuple[int, ...], float]] = []
        num_queries = 0

        for _ in range(self.num_simulations):
            draws = rng.random(n)
            current = 0
            labels: List[int] = []
            joint = 1.0
            for i in range(n):
                node = arena[current]
                if node.left < 0:
                    p = self.model.probability(instance, tuple(labels))
                    num_queries += 1
                    arena.append(SampleTreeNode(probability=1.0 - p))
                    arena.append(SampleTreeNode(probability=p))
                    node.left = len(arena) - 2
                    node.right = len(arena) - 1

                decision = 1 if arena[node.right].probability > draws[i] else 0
                labels.append(decision)
                current = node.right if decision else node.left
                joint *= arena[current].probability
                arena[current].frequency += 1

            if arena[current].frequency == 1:
                distinct.append((current, tuple(labels), joint))

        samples = tuple(
            LabelVector(
                labels=self.model.to_label_order(labels),
                probability=joint,
                frequency=arena[leaf].frequency,
            )
            for leaf, labels, joint in distinct
        )
        logger.debug(
            "Sampled %d simulations: %d distinct, %d queries, trie size %d",
            self.num_simulations, len(samples), num_queries, len(arena),
        )
        return SampleSet(
            samples=samples,
            num_labels=n,
            num_simulations=self.num_simulations,
            num_queries=num_queries,
        )
