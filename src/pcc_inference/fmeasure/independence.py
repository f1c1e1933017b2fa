"""Expected F-measure maximization under label independence.

Given independent marginals p_1..p_n, find the bipartition maximizing
E[F_beta] with beta = q/r and

    F_beta = (1 + beta) * TP / (|h| + beta * |y|)

(F = 1 when both the prediction h and the truth y are empty). Under
independence the optimum is always a prefix of the labels sorted by
decreasing probability, so only the n + 1 prefix sizes are scored:

- QUADRATIC: one forward pass builds the true-positive count distributions of
  every prefix by incremental convolution; a backward pass folds the remaining
  labels into running sums of q / i. O(n^2), integer q and r.
- CUBIC: convolves prefix and suffix from scratch for every size and sums over
  (TP, FN) directly. O(n^3). Kept as the reference implementation.

Ye, Chai, Lee, Chieu. "Optimizing F-measures: A Tale of Two Approaches", ICML 2012.
"""

from __future__ import annotations

from enum import Enum
from fractions import Fraction
from typing import Optional, Sequence, Tuple

import numpy as np

from pcc_inference.data.schemas import MultiLabelOutput
from pcc_inference.utils.logging import get_logger

logger = get_logger(__name__)


class AlgorithmComplexity(str, Enum):
    """Expected-F algorithm variant."""
    QUADRATIC = "quadratic"
    CUBIC = "cubic"


def _validate_probabilities(probs: Sequence[float]) -> np.ndarray:
    p = np.asarray(probs, dtype=np.float64)
    if p.ndim != 1:
        raise ValueError("Marginals must be 1-D")
    if not np.all(np.isfinite(p)) or np.any(p < 0.0) or np.any(p > 1.0):
        raise ValueError("Marginals must be finite probabilities in [0, 1]")
    return p


def sort_descending(probs: Sequence[float]) -> Tuple[np.ndarray, np.ndarray]:
    """Stable descending sort. Returns (sorted probabilities, permutation)."""
    p = np.asarray(probs, dtype=np.float64)
    perm = np.argsort(-p, kind="stable")
    return p[perm], perm


def count_distribution(probs: Sequence[float]) -> np.ndarray:
    """Distribution of the number of positives among independent Bernoullis.

    Entry ``t`` is P(exactly t positives); length ``len(probs) + 1``.
    """
    dist = np.zeros(len(probs) + 1)
    dist[0] = 1.0
    for i, p in enumerate(probs):
        dist[1 : i + 2] = (1.0 - p) * dist[1 : i + 2] + p * dist[0 : i + 1]
        dist[0] *= 1.0 - p
    return dist


def expected_f_scores_quadratic(p_sorted: np.ndarray, q: int, r: int) -> np.ndarray:
    """E[F_{q/r}] of predicting the first m labels positive, for m = 0..n.

    Args:
        p_sorted: Marginals sorted in decreasing order
        q: Numerator of beta (positive integer)
        r: Denominator of beta (positive integer)

    Returns:
        Array of length n + 1
    """
    n = len(p_sorted)
    beta = q / r
    width = q + r
    fs = np.zeros(n + 1)

    # sums[i] holds E[q / (i + q * FN)], FN counted over the labels after the prefix.
    sums = np.zeros(width * n + q + 2)
    sums[1 : width * n + 1] = q / np.arange(1, width * n + 1)

    # poly[m][t + 1] = P(t positives among the first m labels); padded by one zero each side.
    poly = [np.array([0.0, 1.0, 0.0])]
    for i in range(n):
        prev = poly[i]
        nxt = np.zeros(i + 4)
        nxt[1 : i + 3] = (1.0 - p_sorted[i]) * prev[1 : i + 3] + p_sorted[i] * prev[0 : i + 2]
        poly.append(nxt)

    for m in range(n, 0, -1):
        tp = np.arange(0, m + 1)
        fs[m] = ((1.0 + beta) / beta) * float(np.sum(tp * poly[m][tp + 1] * sums[m * r + tp * q]))
        limit = width * (m - 1)
        if limit > 0:
            p = p_sorted[m - 1]
            sums[1 : limit + 1] = (1.0 - p) * sums[1 : limit + 1] + p * sums[1 + q : limit + 1 + q]

    fs[0] = float(np.prod(1.0 - p_sorted))
    return fs


def expected_f_score_cubic(p_sorted: np.ndarray, m: int, beta: float) -> float:
    """E[F_beta] of predicting the first m labels positive."""
    n = len(p_sorted)
    if m == 0:
        return float(np.prod(1.0 - p_sorted))

    tp_dist = count_distribution(p_sorted[:m])
    fn_dist = count_distribution(p_sorted[m:])
    tp = np.arange(m + 1)[:, None]
    fn = np.arange(n - m + 1)[None, :]
    f_values = (1.0 + beta) * tp / (m + beta * (tp + fn))
    return float(np.sum(np.outer(tp_dist, fn_dist) * f_values))


def expected_f_scores_cubic(p_sorted: np.ndarray, beta: float) -> np.ndarray:
    return np.array([expected_f_score_cubic(p_sorted, m, beta) for m in range(len(p_sorted) + 1)])


class ExpectedFMeasureUnderIndependence:
    """Bipartition maximizing expected F_{q/r} for independent marginals."""

    def __init__(
        self,
        complexity: AlgorithmComplexity = AlgorithmComplexity.QUADRATIC,
        beta_q: int = 1,
        beta_r: int = 1,
    ):
        """Initialize the maximizer.

        Args:
            complexity: QUADRATIC (default) or CUBIC
            beta_q: Numerator of beta
            beta_r: Denominator of beta
        """
        if int(beta_q) != beta_q or int(beta_r) != beta_r or beta_q <= 0 or beta_r <= 0:
            raise ValueError(f"beta = q/r needs positive integers, got q={beta_q}, r={beta_r}")
        self.complexity = AlgorithmComplexity(complexity)
        self.beta_q = int(beta_q)
        self.beta_r = int(beta_r)

    @classmethod
    def from_beta(
        cls,
        beta: float,
        complexity: AlgorithmComplexity = AlgorithmComplexity.QUADRATIC,
        max_denominator: int = 1000,
    ) -> "ExpectedFMeasureUnderIndependence":
        """Build from a real beta, approximated by a fraction q/r."""
        if beta <= 0:
            raise ValueError(f"beta must be positive, got {beta}")
        frac = Fraction(beta).limit_denominator(max_denominator)
        return cls(complexity=complexity, beta_q=frac.numerator, beta_r=frac.denominator)

    @property
    def beta(self) -> float:
        return self.beta_q / self.beta_r

    def expected_f_scores(self, probs: Sequence[float]) -> np.ndarray:
        """E[F] for every prefix size 0..n of the probability-sorted ranking."""
        p_sorted, _ = sort_descending(_validate_probabilities(probs))
        if self.complexity == AlgorithmComplexity.QUADRATIC:
            return expected_f_scores_quadratic(p_sorted, self.beta_q, self.beta_r)
        return expected_f_scores_cubic(p_sorted, self.beta)

    def max_expected_f(self, probs: Sequence[float]) -> float:
        return float(np.max(self.expected_f_scores(probs)))

    def optimal_size(self, probs: Sequence[float]) -> int:
        """Prefix size R* (first argmax, so smaller sizes win ties)."""
        return int(np.argmax(self.expected_f_scores(probs)))

    def predict(self, probs: Sequence[float]) -> Tuple[bool, ...]:
        """Bipartition in the input label order."""
        p = _validate_probabilities(probs)
        p_sorted, perm = sort_descending(p)
        if self.complexity == AlgorithmComplexity.QUADRATIC:
            scores = expected_f_scores_quadratic(p_sorted, self.beta_q, self.beta_r)
        else:
            scores = expected_f_scores_cubic(p_sorted, self.beta)
        size = int(np.argmax(scores))
        prediction = np.zeros(len(p), dtype=bool)
        prediction[perm[:size]] = True
        logger.debug("Independence F: R*=%d of %d, E[F]=%.6f", size, len(p), scores[size])
        return tuple(bool(b) for b in prediction)

    def predict_output(
        self,
        probs: Sequence[float],
        strategy: Optional[str] = None,
    ) -> MultiLabelOutput:
        """Plug-in prediction carrying the marginals as confidences."""
        p = _validate_probabilities(probs)
        return MultiLabelOutput(
            bipartition=self.predict(p),
            confidences=tuple(float(v) for v in p),
            strategy=strategy or f"independence_f_{self.complexity.value}",
            extras={"beta": self.beta},
        )
