"""Rank-loss consistent label scores from a sample multiset.

A sample with p positive and n - p negative labels adds 1 / (p * (n - p)) to the
accumulator of each of its positive labels; samples with p = 0 or p = n carry no
ranking information and are skipped. Sorting labels by accumulator / used-count
minimizes the expected (normalized) rank loss.

Dembczynski, Kotlowski, Hullermeier. "Consistent Multilabel Ranking through
Univariate Losses", ICML 2012.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

from pcc_inference.constants import DEFAULT_THRESHOLD
from pcc_inference.data.schemas import MultiLabelOutput


@dataclass
class RankLossResult:
    scores: Tuple[float, ...]
    bipartition: Tuple[bool, ...]
    num_used: float
    num_added: float


class RankLossMaximizer:
    """Accumulates samples and returns rank-loss scores plus a Hamming bipartition."""

    def __init__(self, num_labels: int, threshold: float = DEFAULT_THRESHOLD):
        if num_labels <= 0:
            raise ValueError(f"num_labels must be positive, got {num_labels}")
        self.num_labels = num_labels
        self.threshold = threshold
        self.accumulator = np.zeros(num_labels)
        self.positive_counts = np.zeros(num_labels)
        self.num_used = 0.0
        self.num_added = 0.0

    def add(self, labels: Sequence[int], multiplicity: int = 1) -> bool:
        """Add a sample; returns False when it was skipped for the ranking scores."""
        y = np.asarray(labels) > 0
        if y.shape != (self.num_labels,):
            raise ValueError(f"Expected {self.num_labels} labels, got shape {y.shape}")
        if multiplicity <= 0:
            raise ValueError(f"multiplicity must be positive, got {multiplicity}")

        self.num_added += multiplicity
        self.positive_counts[y] += multiplicity

        positives = int(y.sum())
        negatives = self.num_labels - positives
        if positives == 0 or negatives == 0:
            return False
        self.accumulator[y] += multiplicity / (positives * negatives)
        self.num_used += multiplicity
        return True

    def add_samples(
        self,
        label_matrix: Sequence[Sequence[int]],
        frequencies: Optional[Sequence[int]] = None,
    ) -> "RankLossMaximizer":
        freqs = [1] * len(label_matrix) if frequencies is None else frequencies
        for labels, m in zip(label_matrix, freqs):
            self.add(labels, int(m))
        return self

    def compute(self) -> RankLossResult:
        """Scores = accumulator / used-count; bipartition = positive frequency >= threshold.

        Positive frequencies divide by every added sample, not by the used count
        as the ranking scores do: skipped samples (p = 0 or p = n) still carry
        Hamming information, and the used count could push a frequency above 1.
        Scores stay zero when every sample was skipped.
        """
        if self.num_added <= 0:
            raise ValueError("No samples added")
        if self.num_used > 0:
            scores = self.accumulator / self.num_used
        else:
            scores = np.zeros(self.num_labels)
        frequencies = self.positive_counts / self.num_added
        return RankLossResult(
            scores=tuple(float(s) for s in scores),
            bipartition=tuple(bool(f >= self.threshold) for f in frequencies),
            num_used=self.num_used,
            num_added=self.num_added,
        )

    def to_output(self, strategy: str = "rank_loss") -> MultiLabelOutput:
        result = self.compute()
        return MultiLabelOutput(
            bipartition=result.bipartition,
            confidences=result.scores,
            strategy=strategy,
            extras={"num_used": result.num_used, "num_added": result.num_added},
        )
