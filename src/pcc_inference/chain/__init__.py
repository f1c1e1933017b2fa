"""Probability chain model and conditional-probability providers."""

from pcc_inference.chain.model import ChainOrder, ConditionalProbabilityProvider, ProbabilityChainModel
from pcc_inference.chain.providers import (
    CallableProvider,
    TableProvider,
    SklearnProvider,
    chain_from_tables,
    chain_from_marginals,
    chain_from_sklearn,
    chain_from_classifier_chain,
)

__all__ = [
    "ChainOrder",
    "ConditionalProbabilityProvider",
    "ProbabilityChainModel",
    "CallableProvider",
    "TableProvider",
    "SklearnProvider",
    "chain_from_tables",
    "chain_from_marginals",
    "chain_from_sklearn",
    "chain_from_classifier_chain",
]
