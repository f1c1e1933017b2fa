"""Tests for scikit-learn backed providers."""

import numpy as np
import pytest
from sklearn.datasets import make_multilabel_classification
from sklearn.linear_model import LogisticRegression
from sklearn.multioutput import ClassifierChain

from pcc_inference.chain.providers import SklearnProvider, chain_from_classifier_chain
from pcc_inference.inference import ExactSearchInference, ExhaustiveInference, MonteCarloSampler


@pytest.fixture(scope="module")
def fitted_chain():
    X, Y = make_multilabel_classification(n_samples=200, n_features=8, n_classes=3, random_state=0)
    chain = ClassifierChain(LogisticRegression(max_iter=1000), order=[2, 0, 1])
    chain.fit(X, Y)
    return chain, X


def test_order_taken_from_classifier_chain(fitted_chain):
    chain, _ = fitted_chain
    model = chain_from_classifier_chain(chain)
    assert list(model.order) == [2, 0, 1]
    assert model.num_labels == 3


def test_provider_queries_estimator_with_prefix(fitted_chain):
    chain, X = fitted_chain
    model = chain_from_classifier_chain(chain)
    x = X[0]
    for prefix in [(), (1,), (0, 1)]:
        estimator = chain.estimators_[len(prefix)]
        row = np.concatenate([x, prefix]).reshape(1, -1)
        expected = estimator.predict_proba(row)[0, 1]
        assert model.probability(x, prefix) == pytest.approx(expected)


def test_exact_search_on_fitted_chain(fitted_chain):
    chain, X = fitted_chain
    model = chain_from_classifier_chain(chain)
    sampler = MonteCarloSampler(model, num_simulations=2000)
    for x in X[:5]:
        exact = ExactSearchInference(model).search(x)
        enumeration = ExhaustiveInference(model).enumerate(x)
        assert exact.probability == pytest.approx(enumeration.mode.probability)

        # Expected label count: exact marginals vs the sample average
        samples = sampler.sample(x)
        sampled_count = sum(s.frequency * s.num_positive for s in samples.samples) / samples.total_frequency
        assert sampled_count == pytest.approx(sum(enumeration.marginals), abs=0.2)


def test_single_class_estimator():
    estimator = LogisticRegression()
    estimator.classes_ = np.array([1])
    assert SklearnProvider(estimator).probability([0.0], ()) == 1.0
    estimator.classes_ = np.array([0])
    assert SklearnProvider(estimator).probability([0.0], ()) == 0.0


def test_unfitted_chain_rejected():
    with pytest.raises(ValueError):
        chain_from_classifier_chain(ClassifierChain(LogisticRegression()))
