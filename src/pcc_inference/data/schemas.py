"""Data schemas."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple


@dataclass(frozen=True)
class LabelVector:
    """Binary label assignment with its joint probability and observed frequency.

    ``labels`` may be shorter than the number of labels while a search is in
    progress; a complete vector has one entry per chain slot.
    """

    labels: Tuple[int, ...] = ()
    probability: float = 1.0
    frequency: int = 0

    def extend(self, value: int, conditional: float) -> "LabelVector":
        """Append one decision, multiplying in its conditional probability."""
        return LabelVector(
            labels=self.labels + (int(value),),
            probability=self.probability * conditional,
            frequency=0,
        )

    @property
    def depth(self) -> int:
        return len(self.labels)

    @property
    def num_positive(self) -> int:
        return sum(self.labels)

    def as_bools(self) -> Tuple[bool, ...]:
        return tuple(bool(v) for v in self.labels)


@dataclass(frozen=True)
class MultiLabelOutput:
    """Prediction for one instance, always in label order."""

    bipartition: Tuple[bool, ...]
    confidences: Optional[Tuple[float, ...]] = None
    strategy: str = ""
    extras: Dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def num_labels(self) -> int:
        return len(self.bipartition)

    @property
    def positive_labels(self) -> List[int]:
        return [j for j, on in enumerate(self.bipartition) if on]

    @property
    def ranking(self) -> Optional[List[int]]:
        """Label indices by descending confidence (stable), if confidences exist."""
        if self.confidences is None:
            return None
        return sorted(range(len(self.confidences)), key=lambda j: -self.confidences[j])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strategy": self.strategy,
            "bipartition": [int(b) for b in self.bipartition],
            "confidences": list(self.confidences) if self.confidences is not None else None,
            "extras": dict(self.extras),
        }


def bipartition_from_scores(scores: Sequence[float], threshold: float) -> Tuple[bool, ...]:
    """Threshold scores into a bipartition (score >= threshold is positive)."""
    return tuple(float(s) >= threshold for s in scores)
