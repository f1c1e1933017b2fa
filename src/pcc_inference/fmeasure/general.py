"""General F-measure maximizer (no independence assumption).

Row i of the Delta matrix scores "predict exactly i + 1 positives":

    Delta[i][j] = E[ y_j / (|y| + i + 1) ]

so the best prediction with i + 1 positives takes the i + 1 largest entries of
row i, and its expected F1 is 2 * (sum of those entries). The all-negative
prediction scores P(y = 0). The matrix is filled either from an empirical
sample multiset (exact for the empirical distribution, whatever the label
dependence) or from a table P[k][j] = P(y_j = 1, |y| = k + 1).

Dembczynski, Waegeman, Cheng, Hullermeier. "An exact algorithm for F-measure
maximization", NIPS 2011.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple

import numpy as np

from pcc_inference.data.schemas import MultiLabelOutput
from pcc_inference.utils.logging import get_logger
from pcc_inference.utils.selection import select_top_k

logger = get_logger(__name__)


class DeltaMatrix:
    """n x n accumulator of weighted positive-label contributions."""

    def __init__(self, num_labels: int):
        if num_labels <= 0:
            raise ValueError(f"num_labels must be positive, got {num_labels}")
        self.num_labels = num_labels
        self.values = np.zeros((num_labels, num_labels))
        self.num_instances = 0.0
        self.num_nulls = 0.0
        self.p0 = 0.0

    def add(self, labels: Sequence[int], multiplicity: int = 1) -> None:
        """Add one sample label vector observed ``multiplicity`` times."""
        y = np.asarray(labels)
        if y.shape != (self.num_labels,):
            raise ValueError(f"Expected {self.num_labels} labels, got shape {y.shape}")
        if multiplicity <= 0:
            raise ValueError(f"multiplicity must be positive, got {multiplicity}")
        self.num_instances += multiplicity
        positives = np.flatnonzero(y > 0)
        if len(positives) == 0:
            self.num_nulls += multiplicity
            return
        weights = multiplicity / (len(positives) + np.arange(self.num_labels) + 1.0)
        self.values[:, positives] += weights[:, None]

    @classmethod
    def from_samples(
        cls,
        label_matrix: Sequence[Sequence[int]],
        frequencies: Optional[Sequence[int]] = None,
    ) -> "DeltaMatrix":
        """Fill from distinct samples (rows) and their multiplicities."""
        y = np.asarray(label_matrix, dtype=np.float64)
        if y.ndim != 2 or y.shape[0] == 0:
            raise ValueError("label_matrix must be a non-empty 2-D array")
        m = np.ones(y.shape[0]) if frequencies is None else np.asarray(frequencies, dtype=np.float64)
        if m.shape != (y.shape[0],) or np.any(m <= 0):
            raise ValueError("frequencies must be positive, one per sample")

        delta = cls(y.shape[1])
        y = (y > 0).astype(np.float64)
        counts = y.sum(axis=1)
        nonempty = counts > 0
        rows = np.arange(delta.num_labels)[:, None]
        # weights[i, s] = m_s / (c_s + i + 1); samples without positives contribute nothing.
        weights = np.where(nonempty[None, :], m[None, :] / (counts[None, :] + rows + 1.0), 0.0)
        delta.values = weights @ y
        delta.num_instances = float(m.sum())
        delta.num_nulls = float(m[~nonempty].sum())
        return delta

    @classmethod
    def from_probability_table(
        cls,
        probabilities: Sequence[Sequence[float]],
        p0: float,
        max_relevant_labels: Optional[int] = None,
    ) -> "DeltaMatrix":
        """Fill from P[k][j] = P(y_j = 1, |y| = k + 1) and p0 = P(y = 0).

        Args:
            probabilities: Table with one row per relevant-label count
            p0: Probability of the all-negative label vector
            max_relevant_labels: Only the first this many rows are used
        """
        table = np.asarray(probabilities, dtype=np.float64)
        if table.ndim != 2:
            raise ValueError("probabilities must be a 2-D table")
        if not 0.0 <= p0 <= 1.0:
            raise ValueError(f"p0 must be a probability, got {p0}")
        depth = table.shape[0] if max_relevant_labels is None else min(max_relevant_labels, table.shape[0])
        table = table[:depth]

        delta = cls(table.shape[1])
        rows = np.arange(delta.num_labels)[:, None]
        ks = np.arange(depth)[None, :]
        delta.values = (1.0 / (rows + ks + 2.0)) @ table
        delta.num_instances = 1.0
        delta.p0 = float(p0)
        return delta

    @property
    def baseline(self) -> float:
        """Expected F of the all-negative prediction."""
        if self.num_nulls > 0:
            return self.num_nulls / self.num_instances
        return self.p0


@dataclass
class FMeasureResult:
    """Outcome of the general F-measure maximization."""

    f_measure: float
    positives: Tuple[int, ...]
    num_labels: int

    @property
    def bipartition(self) -> Tuple[bool, ...]:
        chosen = set(self.positives)
        return tuple(j in chosen for j in range(self.num_labels))


class SampleBasedFMeasureMaximizer:
    """Exact expected-F1 maximizer over a Delta matrix."""

    def maximize(self, delta: DeltaMatrix) -> FMeasureResult:
        """Pick the best prediction size and its positive labels.

        Strictly better rows replace the incumbent, so the all-negative
        prediction and smaller sizes win ties.
        """
        if delta.num_instances <= 0:
            raise ValueError("Delta matrix holds no instances")

        best_f = delta.baseline
        best_positives: Tuple[int, ...] = ()
        for i in range(delta.num_labels):
            values, indices = select_top_k(delta.values[i], i + 1)
            f = 2.0 * float(values[: i + 1].sum()) / delta.num_instances
            if f > best_f:
                best_f = f
                best_positives = tuple(sorted(int(j) for j in indices[: i + 1]))

        logger.debug("General F maximizer: |h|=%d, E[F]=%.6f", len(best_positives), best_f)
        return FMeasureResult(f_measure=best_f, positives=best_positives, num_labels=delta.num_labels)

    def maximize_samples(
        self,
        label_matrix: Sequence[Sequence[int]],
        frequencies: Optional[Sequence[int]] = None,
    ) -> FMeasureResult:
        return self.maximize(DeltaMatrix.from_samples(label_matrix, frequencies))

    def maximize_table(
        self,
        probabilities: Sequence[Sequence[float]],
        p0: float,
        max_relevant_labels: Optional[int] = None,
    ) -> FMeasureResult:
        return self.maximize(DeltaMatrix.from_probability_table(probabilities, p0, max_relevant_labels))

    @staticmethod
    def to_output(result: FMeasureResult, strategy: str = "general_f") -> MultiLabelOutput:
        """Selected labels get confidence 1, the rest 0."""
        bipartition = result.bipartition
        return MultiLabelOutput(
            bipartition=bipartition,
            confidences=tuple(1.0 if b else 0.0 for b in bipartition),
            strategy=strategy,
            extras={"expected_f": result.f_measure},
        )


def probability_table_from_samples(
    label_matrix: Iterable[Sequence[int]],
    frequencies: Optional[Sequence[int]] = None,
) -> Tuple[np.ndarray, float]:
    """Empirical P[k][j] = P(y_j = 1, |y| = k + 1) and p0 from a sample multiset."""
    y = (np.asarray(list(label_matrix), dtype=np.float64) > 0).astype(np.float64)
    m = np.ones(y.shape[0]) if frequencies is None else np.asarray(frequencies, dtype=np.float64)
    total = m.sum()
    if total <= 0:
        raise ValueError("Sample multiset is empty")
    n = y.shape[1]
    counts = y.sum(axis=1).astype(int)
    table = np.zeros((n, n))
    for row, c, weight in zip(y, counts, m):
        if c > 0:
            table[c - 1] += weight * row
    p0 = float(m[counts == 0].sum() / total)
    return table / total, p0
