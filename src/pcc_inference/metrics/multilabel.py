"""Instance-based multi-label evaluation measures."""

from __future__ import annotations

from typing import Dict, Iterable, List, Sequence

import numpy as np

from pcc_inference.data.schemas import MultiLabelOutput


def _as_bool_array(values: Sequence) -> np.ndarray:
    return np.asarray(values, dtype=bool)


def _check_lengths(truth: np.ndarray, pred: np.ndarray) -> None:
    if truth.shape != pred.shape:
        raise ValueError(f"Length mismatch: truth {truth.shape} vs prediction {pred.shape}")


def instance_f_measure(truth: Sequence[bool], pred: Sequence[bool], beta: float = 1.0) -> float:
    """F-beta between one true and one predicted label set (1.0 when both are empty)."""
    t = _as_bool_array(truth)
    p = _as_bool_array(pred)
    _check_lengths(t, p)
    tp = int(np.sum(t & p))
    denominator = beta * beta * int(t.sum()) + int(p.sum())
    if denominator == 0:
        return 1.0
    return (1.0 + beta * beta) * tp / denominator


def hamming_loss(truth: Sequence[bool], pred: Sequence[bool]) -> float:
    """Fraction of labels predicted wrongly."""
    t = _as_bool_array(truth)
    p = _as_bool_array(pred)
    _check_lengths(t, p)
    if t.size == 0:
        return 0.0
    return float(np.mean(t != p))


def zero_one_loss(truth: Sequence[bool], pred: Sequence[bool]) -> float:
    """1.0 unless the predicted set matches exactly."""
    t = _as_bool_array(truth)
    p = _as_bool_array(pred)
    _check_lengths(t, p)
    return 0.0 if np.array_equal(t, p) else 1.0


def subset_accuracy(truth: Sequence[bool], pred: Sequence[bool]) -> float:
    return 1.0 - zero_one_loss(truth, pred)


def rank_loss(truth: Sequence[bool], scores: Sequence[float]) -> float:
    """Fraction of (relevant, irrelevant) pairs ranked in the wrong order.

    Ties count as half an error. Returns 0.0 when the instance has no such pair
    (all labels relevant or none).
    """
    t = _as_bool_array(truth)
    s = np.asarray(scores, dtype=np.float64)
    _check_lengths(t, s)
    relevant = s[t]
    irrelevant = s[~t]
    if relevant.size == 0 or irrelevant.size == 0:
        return 0.0
    diff = relevant[:, None] - irrelevant[None, :]
    errors = np.sum(diff < 0) + 0.5 * np.sum(diff == 0)
    return float(errors) / (relevant.size * irrelevant.size)


def evaluate_outputs(
    truths: Iterable[Sequence[bool]],
    outputs: Iterable[MultiLabelOutput],
    beta: float = 1.0,
) -> Dict[str, float]:
    """Average the instance-based measures over a batch of predictions.

    Rank loss is averaged over the outputs that carry confidences only; it is
    left out when none do.

    Args:
        truths: True label sets, one per instance
        outputs: Predictions in the same order
        beta: F-measure beta

    Returns:
        Dict with f_measure, hamming_loss, zero_one_loss, subset_accuracy and
        (when available) rank_loss, plus num_instances
    """
    f_scores: List[float] = []
    hamming: List[float] = []
    zero_one: List[float] = []
    ranking: List[float] = []

    for truth, output in zip(truths, outputs):
        f_scores.append(instance_f_measure(truth, output.bipartition, beta=beta))
        hamming.append(hamming_loss(truth, output.bipartition))
        zero_one.append(zero_one_loss(truth, output.bipartition))
        if output.confidences is not None:
            ranking.append(rank_loss(truth, output.confidences))

    if not f_scores:
        raise ValueError("No instances to evaluate")

    results = {
        "f_measure": float(np.mean(f_scores)),
        "hamming_loss": float(np.mean(hamming)),
        "zero_one_loss": float(np.mean(zero_one)),
        "subset_accuracy": 1.0 - float(np.mean(zero_one)),
        "num_instances": len(f_scores),
    }
    if ranking:
        results["rank_loss"] = float(np.mean(ranking))
    return results
