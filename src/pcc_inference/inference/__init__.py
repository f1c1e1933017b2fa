"""Inference strategies over probabilistic classifier chains.

Importing this package registers every strategy with StrategyRegistry:
- exact / greedy: best-first branch-and-bound for the joint mode
- exhaustive / independence_f: full enumeration (exact marginals)
- mc_*: Monte Carlo sampling followed by a decision rule
"""

from pcc_inference.inference.base import InferenceStrategy, StrategyRegistry
from pcc_inference.inference.exact import ExactSearchInference, GreedyInference, SearchResult
from pcc_inference.inference.exhaustive import Enumeration, ExhaustiveInference, IndependenceFInference
from pcc_inference.inference.montecarlo import MonteCarloSampler, SampleSet
from pcc_inference.inference.rules import (
    SampleDecisionRule,
    MarginalRule,
    JointModeRule,
    GeneralFMeasureRule,
    IndependenceFRule,
    RankLossRule,
    MonteCarloInference,
    MonteCarloJointModeInference,
    MonteCarloMarginalInference,
    MonteCarloFMeasureInference,
    MonteCarloIndependenceFInference,
    MonteCarloRankLossInference,
)

__all__ = [
    # Base
    "InferenceStrategy",
    "StrategyRegistry",
    # Search
    "ExactSearchInference",
    "GreedyInference",
    "SearchResult",
    # Enumeration
    "Enumeration",
    "ExhaustiveInference",
    "IndependenceFInference",
    # Monte Carlo
    "MonteCarloSampler",
    "SampleSet",
    "SampleDecisionRule",
    "MarginalRule",
    "JointModeRule",
    "GeneralFMeasureRule",
    "IndependenceFRule",
    "RankLossRule",
    "MonteCarloInference",
    "MonteCarloJointModeInference",
    "MonteCarloMarginalInference",
    "MonteCarloFMeasureInference",
    "MonteCarloIndependenceFInference",
    "MonteCarloRankLossInference",
]
