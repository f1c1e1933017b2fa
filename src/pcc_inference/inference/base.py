"""Inference strategy interface and registry.

Every strategy is built once from an immutable ProbabilityChainModel and keeps no
per-call state on ``self``; all search/sampling buffers live inside ``predict``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Type

from pcc_inference.chain.model import ProbabilityChainModel
from pcc_inference.data.schemas import MultiLabelOutput


class InferenceStrategy(ABC):
    """Base class for all inference strategies."""

    name: str = "base"

    def __init__(self, model: ProbabilityChainModel):
        self.model = model

    @property
    def num_labels(self) -> int:
        return self.model.num_labels

    @abstractmethod
    def predict(self, instance: Any) -> MultiLabelOutput:
        """Run inference for one instance."""

    def __call__(self, instance: Any) -> MultiLabelOutput:
        return self.predict(instance)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(num_labels={self.num_labels})"


class StrategyRegistry:
    """Central registry of inference strategies by name."""

    _strategies: Dict[str, Type[InferenceStrategy]] = {}

    @classmethod
    def register(cls, name: str) -> Callable[[Type[InferenceStrategy]], Type[InferenceStrategy]]:
        """Decorator to register a strategy class."""
        def decorator(strategy_cls: Type[InferenceStrategy]) -> Type[InferenceStrategy]:
            cls._strategies[name] = strategy_cls
            strategy_cls.name = name
            return strategy_cls
        return decorator

    @classmethod
    def get(cls, name: str) -> Type[InferenceStrategy]:
        if name not in cls._strategies:
            raise ValueError(f"Unknown strategy: {name}. Available: {cls.list_all()}")
        return cls._strategies[name]

    @classmethod
    def create(cls, name: str, model: ProbabilityChainModel, **kwargs: Any) -> InferenceStrategy:
        return cls.get(name)(model, **kwargs)

    @classmethod
    def list_all(cls) -> List[str]:
        return sorted(cls._strategies.keys())
