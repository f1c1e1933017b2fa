"""Probability chain model: per-slot conditional-probability oracles plus a chain order.

The model is the only long-lived object in the package. It is read-only after
construction so a single instance can be shared by concurrent inference calls;
the providers themselves must tolerate concurrent read-only queries.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence, Tuple

from pcc_inference.exceptions import InvalidModelState, ProviderFailure


class ConditionalProbabilityProvider(ABC):
    """Oracle for P(slot i = 1 | instance, slots 0..i-1 fixed to ``prefix``)."""

    @abstractmethod
    def probability(self, instance: Any, prefix: Tuple[int, ...]) -> float:
        """Return the probability that the next slot is positive."""


class ChainOrder:
    """Immutable permutation of label indices fixing the factorization order.

    ``order[i]`` is the label decided at chain position ``i``.
    """

    __slots__ = ("_order", "_inverse")

    def __init__(self, order: Sequence[int]):
        order = tuple(int(j) for j in order)
        if sorted(order) != list(range(len(order))):
            raise InvalidModelState(f"Chain order is not a permutation of 0..{len(order) - 1}: {order}")
        inverse = [0] * len(order)
        for position, label in enumerate(order):
            inverse[label] = position
        self._order = order
        self._inverse = tuple(inverse)

    @classmethod
    def identity(cls, num_labels: int) -> "ChainOrder":
        return cls(range(num_labels))

    def __len__(self) -> int:
        return len(self._order)

    def __getitem__(self, position: int) -> int:
        return self._order[position]

    def __iter__(self):
        return iter(self._order)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, ChainOrder) and self._order == other._order

    def __hash__(self) -> int:
        return hash(self._order)

    def __repr__(self) -> str:
        return f"ChainOrder({list(self._order)})"

    def position_of(self, label: int) -> int:
        return self._inverse[label]

    def to_label_order(self, chain_values: Sequence) -> tuple:
        """Map values indexed by chain position onto label indices."""
        out = [None] * len(self._order)
        for position, value in enumerate(chain_values):
            out[self._order[position]] = value
        return tuple(out)

    def to_chain_order(self, label_values: Sequence) -> tuple:
        """Map values indexed by label onto chain positions."""
        return tuple(label_values[label] for label in self._order)


class ProbabilityChainModel:
    """A trained chain of conditional-probability providers and its order."""

    def __init__(
        self,
        providers: Sequence[ConditionalProbabilityProvider],
        order: Optional[Sequence[int]] = None,
    ):
        """Initialize the chain model.

        Args:
            providers: One provider per chain position (provider ``i`` predicts
                label ``order[i]``)
            order: Chain order; identity when omitted

        Raises:
            InvalidModelState: Empty chain, or chain length differs from the
                number of providers
        """
        providers = tuple(providers)
        if not providers:
            raise InvalidModelState("Probability chain needs at least one provider")
        chain_order = order if isinstance(order, ChainOrder) else (
            ChainOrder.identity(len(providers)) if order is None else ChainOrder(order)
        )
        if len(chain_order) != len(providers):
            raise InvalidModelState(
                f"Chain length {len(chain_order)} does not match {len(providers)} providers"
            )
        self._providers = providers
        self._order = chain_order

    @property
    def num_labels(self) -> int:
        return len(self._providers)

    @property
    def order(self) -> ChainOrder:
        return self._order

    def probability(self, instance: Any, prefix: Tuple[int, ...]) -> float:
        """P(slot ``len(prefix)`` = 1 | instance, prefix).

        Raises:
            ProviderFailure: The provider raised, or returned a value that is not
                a finite probability
        """
        slot = len(prefix)
        if slot >= len(self._providers):
            raise ValueError(f"Prefix of length {slot} leaves no slot to query (n={self.num_labels})")
        try:
            p = float(self._providers[slot].probability(instance, prefix))
        except ProviderFailure:
            raise
        except Exception as exc:
            raise ProviderFailure(f"Provider for slot {slot} failed: {exc}", slot=slot) from exc
        if not math.isfinite(p) or p < 0.0 or p > 1.0:
            raise ProviderFailure(f"Provider for slot {slot} returned invalid probability {p!r}", slot=slot)
        return p

    def to_label_order(self, chain_values: Sequence) -> tuple:
        return self._order.to_label_order(chain_values)

    def to_chain_order(self, label_values: Sequence) -> tuple:
        return self._order.to_chain_order(label_values)

    def __repr__(self) -> str:
        return f"ProbabilityChainModel(num_labels={self.num_labels}, order={list(self._order)})"
