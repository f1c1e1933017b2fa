"""Concrete conditional-probability providers.

- CallableProvider: wraps any ``fn(instance, prefix) -> float``
- TableProvider: explicit conditional table keyed by label prefix
- SklearnProvider: a fitted scikit-learn binary classifier whose input is the
  instance features followed by the already-decided chain labels (the layout
  produced by ``sklearn.multioutput.ClassifierChain``)
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple

import numpy as np

from pcc_inference.chain.model import ConditionalProbabilityProvider, ProbabilityChainModel


class CallableProvider(ConditionalProbabilityProvider):
    """Provider backed by a plain function."""

    def __init__(self, fn: Callable[[Any, Tuple[int, ...]], float]):
        self.fn = fn

    def probability(self, instance: Any, prefix: Tuple[int, ...]) -> float:
        return self.fn(instance, prefix)


class TableProvider(ConditionalProbabilityProvider):
    """Instance-independent conditional table: ``{prefix: P(next = 1)}``."""

    def __init__(self, table: Mapping[Tuple[int, ...], float], default: Optional[float] = None):
        self.table: Dict[Tuple[int, ...], float] = {tuple(k): float(v) for k, v in table.items()}
        self.default = default

    def probability(self, instance: Any, prefix: Tuple[int, ...]) -> float:
        key = tuple(prefix)
        if key in self.table:
            return self.table[key]
        if self.default is None:
            raise KeyError(f"No conditional probability for prefix {key}")
        return self.default


class SklearnProvider(ConditionalProbabilityProvider):
    """Fitted scikit-learn classifier queried with ``[features, prefix]``."""

    def __init__(self, estimator: Any, positive_class: Any = 1):
        self.estimator = estimator
        self.positive_class = positive_class
        classes = list(getattr(estimator, "classes_", []))
        # Chains trained on a constant label expose a single class.
        self._column = classes.index(positive_class) if positive_class in classes else None
        self._constant = None
        if self._column is None:
            self._constant = 0.0
        elif len(classes) == 1:
            self._constant = 1.0

    def probability(self, instance: Any, prefix: Tuple[int, ...]) -> float:
        if self._constant is not None:
            return self._constant
        features = np.asarray(instance, dtype=np.float64).ravel()
        row = np.concatenate([features, np.asarray(prefix, dtype=np.float64)]).reshape(1, -1)
        return float(self.estimator.predict_proba(row)[0, self._column])


def chain_from_tables(
    tables: Sequence[Mapping[Tuple[int, ...], float]],
    order: Optional[Sequence[int]] = None,
) -> ProbabilityChainModel:
    """Build a chain model from one conditional table per chain position."""
    return ProbabilityChainModel([TableProvider(t) for t in tables], order=order)


def chain_from_marginals(
    marginals: Sequence[float],
    order: Optional[Sequence[int]] = None,
) -> ProbabilityChainModel:
    """Build a chain of independent labels (each slot ignores the prefix).

    ``marginals`` is indexed by chain position.
    """
    providers = [CallableProvider(lambda instance, prefix, p=float(p): p) for p in marginals]
    return ProbabilityChainModel(providers, order=order)


def chain_from_sklearn(
    estimators: Sequence[Any],
    order: Optional[Sequence[int]] = None,
    positive_class: Any = 1,
) -> ProbabilityChainModel:
    """Wrap fitted per-position estimators into a chain model."""
    return ProbabilityChainModel(
        [SklearnProvider(est, positive_class=positive_class) for est in estimators],
        order=order,
    )


def chain_from_classifier_chain(chain: Any) -> ProbabilityChainModel:
    """Wrap a fitted ``sklearn.multioutput.ClassifierChain``."""
    if not hasattr(chain, "estimators_"):
        raise ValueError("ClassifierChain is not fitted")
    return chain_from_sklearn(chain.estimators_, order=list(chain.order_))
