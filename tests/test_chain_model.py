"""Tests for the probability chain model and its providers."""

import math

import pytest

from pcc_inference.chain.model import ChainOrder, ProbabilityChainModel
from pcc_inference.chain.providers import (
    CallableProvider,
    TableProvider,
    chain_from_marginals,
    chain_from_tables,
)
from pcc_inference.exceptions import InferenceError, InvalidModelState, ProviderFailure


class TestChainOrder:

    def test_mapping(self):
        order = ChainOrder([2, 0, 1])
        assert order.to_label_order(("a", "b", "c")) == ("b", "c", "a")
        assert order.to_chain_order(("b", "c", "a")) == ("a", "b", "c")
        assert order.position_of(2) == 0
        assert order[1] == 0

    def test_identity(self):
        assert list(ChainOrder.identity(3)) == [0, 1, 2]
        assert ChainOrder.identity(2) == ChainOrder([0, 1])

    @pytest.mark.parametrize("order", [[0, 0], [1, 2], [0, 2, 3]])
    def test_not_a_permutation(self, order):
        with pytest.raises(InvalidModelState):
            ChainOrder(order)


class TestProbabilityChainModel:

    def test_empty_chain_rejected(self):
        with pytest.raises(InvalidModelState):
            ProbabilityChainModel([])

    def test_order_length_mismatch(self):
        with pytest.raises(InvalidModelState):
            chain_from_marginals([0.5, 0.5, 0.5], order=[1, 0])

    def test_invalid_state_is_value_error(self):
        with pytest.raises(ValueError):
            ProbabilityChainModel([])

    def test_query(self):
        model = chain_from_tables([{(): 0.7}, {(0,): 0.3, (1,): 0.9}])
        assert model.num_labels == 2
        assert model.probability(None, ()) == 0.7
        assert model.probability(None, (1,)) == 0.9

    def test_prefix_too_long(self):
        model = chain_from_marginals([0.5])
        with pytest.raises(ValueError):
            model.probability(None, (1,))

    def test_provider_exception_wrapped(self):
        def broken(instance, prefix):
            raise RuntimeError("model offline")

        model = ProbabilityChainModel([CallableProvider(lambda x, p: 0.5), CallableProvider(broken)])
        with pytest.raises(ProviderFailure) as exc_info:
            model.probability(None, (0,))
        assert exc_info.value.slot == 1
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert isinstance(exc_info.value, InferenceError)

    @pytest.mark.parametrize("value", [1.5, -0.1, math.nan, math.inf])
    def test_invalid_probability(self, value):
        model = ProbabilityChainModel([CallableProvider(lambda x, p: value)])
        with pytest.raises(ProviderFailure):
            model.probability(None, ())

    def test_missing_table_entry(self):
        model = ProbabilityChainModel([TableProvider({(): 0.5}), TableProvider({(0,): 0.5})])
        with pytest.raises(ProviderFailure):
            model.probability(None, (1,))

    def test_table_default(self):
        provider = TableProvider({}, default=0.25)
        assert provider.probability(None, (0, 1)) == 0.25
