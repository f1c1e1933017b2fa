"""Best-first branch-and-bound search for the joint mode of a probability chain.

Frontier entries live in an arena (a list) and refer to their parent by index,
so a node stores only (parent, probability, depth, decision). The frontier is a
heap keyed on descending probability with an insertion counter: equal
probabilities pop in insertion order, and the 0-branch is always inserted
before the 1-branch.

A partial node's probability bounds every completion from above (each further
factor is <= 1), so the first complete node popped is the global optimum.
Children at or below the acceptance threshold tau are not pushed; a node with no
surviving child is kept aside. tau = 0 gives exact inference; tau = 0.5 keeps
only dominant branches and behaves like greedy decoding. When the frontier runs
dry before a complete node is reached (only possible for tau > 0) the set-aside
nodes are completed greedily, best first.
"""

from __future__ import annotations

import heapq
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from pcc_inference.chain.model import ProbabilityChainModel
from pcc_inference.constants import EXACT_THRESHOLD, GREEDY_THRESHOLD
from pcc_inference.data.schemas import LabelVector, MultiLabelOutput
from pcc_inference.exceptions import InferenceError
from pcc_inference.inference.base import InferenceStrategy, StrategyRegistry
from pcc_inference.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class SearchNode:
    """Arena entry of the search frontier."""

    parent: int
    probability: float
    depth: int
    decision: int


@dataclass
class SearchResult:
    """Best complete label vector found by the search."""

    best: LabelVector
    chain_labels: Tuple[int, ...]
    exact: bool
    nodes_expanded: int
    num_queries: int

    @property
    def probability(self) -> float:
        return self.best.probability


def _prefix(arena: List[SearchNode], index: int) -> Tuple[int, ...]:
    decisions = []
    while index > 0:
        node = arena[index]
        decisions.append(node.decision)
        index = node.parent
    return tuple(reversed(decisions))


@StrategyRegistry.register("exact")
class ExactSearchInference(InferenceStrategy):
    """Joint-mode inference by best-first search with a greedy fallback."""

    def __init__(self, model: ProbabilityChainModel, acceptance_threshold: float = EXACT_THRESHOLD):
        """Initialize the search.

        Args:
            model: Trained probability chain
            acceptance_threshold: tau in [0, 1); children with probability <= tau
                are not expanded further
        """
        super().__init__(model)
        if not 0.0 <= acceptance_threshold < 1.0:
            raise ValueError(f"acceptance_threshold must be in [0, 1), got {acceptance_threshold}")
        self.acceptance_threshold = acceptance_threshold

    def search(self, instance: Any) -> SearchResult:
        """Find the most probable complete label vector for ``instance``."""
        n = self.model.num_labels
        tau = self.acceptance_threshold

        arena: List[SearchNode] = [SearchNode(parent=-1, probability=1.0, depth=0, decision=-1)]
        frontier: List[Tuple[float, int, int]] = [(-1.0, 0, 0)]
        counter = 1
        unsurvived: List[int] = []
        nodes_expanded = 0
        num_queries = 0

        while frontier:
            _, _, index = heapq.heappop(frontier)
            node = arena[index]
            if node.depth == n:
                labels = _prefix(arena, index)
                logger.debug(
                    "Search finished: p=%.6g, expanded=%d, arena=%d",
                    node.probability, nodes_expanded, len(arena),
                )
                return self._result(labels, node.probability, True, nodes_expanded, num_queries)

            p = self.model.probability(instance, _prefix(arena, index))
            num_queries += 1
            nodes_expanded += 1

            survived = False
            for decision, conditional in ((0, 1.0 - p), (1, p)):
                child_probability = node.probability * conditional
                if child_probability > tau:
                    arena.append(SearchNode(index, child_probability, node.depth + 1, decision))
                    heapq.heappush(frontier, (-child_probability, counter, len(arena) - 1))
                    counter += 1
                    survived = True
            if not survived:
                unsurvived.append(index)

        logger.debug("Frontier exhausted after %d expansions; greedy completion of %d nodes",
                     nodes_expanded, len(unsurvived))
        return self._greedy_fallback(instance, arena, unsurvived, nodes_expanded, num_queries)

    def _greedy_fallback(
        self,
        instance: Any,
        arena: List[SearchNode],
        unsurvived: List[int],
        nodes_expanded: int,
        num_queries: int,
    ) -> SearchResult:
        n = self.model.num_labels
        best_probability = 0.0
        best_labels: Optional[Tuple[int, ...]] = None

        # The first (most probable) start is always completed, even once its
        # running product underflows to 0.0 on long chains.
        for index in sorted(unsurvived, key=lambda i: -arena[i].probability):
            start = arena[index]
            if best_labels is not None and start.probability <= best_probability:
                break
            labels = list(_prefix(arena, index))
            probability = start.probability
            while len(labels) < n and (best_labels is None or probability > best_probability):
                p = self.model.probability(instance, tuple(labels))
                num_queries += 1
                if p >= 0.5:
                    labels.append(1)
                    probability *= p
                else:
                    labels.append(0)
                    probability *= 1.0 - p
            if len(labels) == n and (best_labels is None or probability > best_probability):
                best_probability = probability
                best_labels = tuple(labels)

        if best_labels is None:
            raise InferenceError("Greedy completion found no start node")
        return self._result(best_labels, best_probability, False, nodes_expanded, num_queries)

    def _result(
        self,
        chain_labels: Tuple[int, ...],
        probability: float,
        exact: bool,
        nodes_expanded: int,
        num_queries: int,
    ) -> SearchResult:
        best = LabelVector(labels=self.model.to_label_order(chain_labels), probability=probability, frequency=1)
        return SearchResult(
            best=best,
            chain_labels=chain_labels,
            exact=exact,
            nodes_expanded=nodes_expanded,
            num_queries=num_queries,
        )

    def predict(self, instance: Any) -> MultiLabelOutput:
        result = self.search(instance)
        return MultiLabelOutput(
            bipartition=result.best.as_bools(),
            strategy=self.name,
            extras={
                "probability": result.probability,
                "exact": result.exact,
                "num_queries": result.num_queries,
            },
        )


@StrategyRegistry.register("greedy")
class GreedyInference(ExactSearchInference):
    """Best-first search with tau = 0.5."""

    def __init__(self, model: ProbabilityChainModel, acceptance_threshold: float = GREEDY_THRESHOLD):
        super().__init__(model, acceptance_threshold=acceptance_threshold)
