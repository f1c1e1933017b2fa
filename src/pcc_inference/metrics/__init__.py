"""Metrics package for multi-label evaluation.

Exports:
- Instance-based losses: instance_f_measure, hamming_loss, zero_one_loss, subset_accuracy, rank_loss
- Evaluation: evaluate_outputs
"""

from pcc_inference.metrics.multilabel import (
    instance_f_measure,
    hamming_loss,
    zero_one_loss,
    subset_accuracy,
    rank_loss,
    evaluate_outputs,
)

__all__ = [
    # Instance-based losses
    "instance_f_measure",
    "hamming_loss",
    "zero_one_loss",
    "subset_accuracy",
    "rank_loss",
    # Evaluation
    "evaluate_outputs",
]
