"""Inference configuration and strategy construction.

A config names one registered strategy plus the knobs any strategy may use;
``build_strategy`` passes each strategy only the arguments it accepts.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from pcc_inference.chain.model import ProbabilityChainModel
from pcc_inference.constants import (
    DEFAULT_NUM_SIMULATIONS,
    DEFAULT_SEED,
    DEFAULT_THRESHOLD,
    MAX_EXHAUSTIVE_LABELS,
)
from pcc_inference.fmeasure.independence import AlgorithmComplexity
from pcc_inference.inference import StrategyRegistry
from pcc_inference.inference.base import InferenceStrategy
from pcc_inference.utils.logging import get_logger

logger = get_logger(__name__)

# Config fields each strategy accepts as constructor keywords
STRATEGY_PARAMETERS: Dict[str, tuple] = {
    "exact": ("acceptance_threshold",),
    "greedy": ("acceptance_threshold",),
    "exhaustive": ("threshold", "max_labels"),
    "independence_f": ("beta_q", "beta_r", "complexity", "max_labels"),
    "mc_joint_mode": ("num_simulations", "seed"),
    "mc_marginal": ("num_simulations", "seed", "threshold"),
    "mc_fmeasure": ("num_simulations", "seed"),
    "mc_independence_f": ("num_simulations", "seed", "beta_q", "beta_r", "complexity"),
    "mc_rank_loss": ("num_simulations", "seed", "threshold"),
}


@dataclass
class InferenceConfig:
    """Configuration for one inference run."""

    strategy: str = "exact"

    # Thresholding (marginal, exhaustive and rank-loss rules)
    threshold: float = DEFAULT_THRESHOLD

    # Monte Carlo
    num_simulations: int = DEFAULT_NUM_SIMULATIONS
    seed: int = DEFAULT_SEED

    # F-measure, beta = beta_q / beta_r
    beta_q: int = 1
    beta_r: int = 1
    complexity: AlgorithmComplexity = AlgorithmComplexity.QUADRATIC

    # Best-first search; None keeps the strategy default (exact 0.0, greedy 0.5)
    acceptance_threshold: Optional[float] = None

    max_labels: int = MAX_EXHAUSTIVE_LABELS

    # Batch prediction
    num_workers: int = 1

    def __post_init__(self):
        self.complexity = AlgorithmComplexity(self.complexity)
        if self.num_simulations <= 0:
            raise ValueError(f"num_simulations must be positive, got {self.num_simulations}")
        if self.beta_q <= 0 or self.beta_r <= 0:
            raise ValueError(f"beta_q and beta_r must be positive, got {self.beta_q}, {self.beta_r}")
        if self.num_workers <= 0:
            raise ValueError(f"num_workers must be positive, got {self.num_workers}")
        if self.strategy not in STRATEGY_PARAMETERS:
            raise ValueError(
                f"Unknown strategy: {self.strategy}. Available: {sorted(STRATEGY_PARAMETERS)}"
            )

    @property
    def beta(self) -> float:
        return self.beta_q / self.beta_r

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["complexity"] = self.complexity.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InferenceConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown config keys: {unknown}. Available: {sorted(known)}")
        return cls(**data)

    @classmethod
    def from_yaml(cls, path: Path) -> "InferenceConfig":
        """Load from a YAML file; settings may sit under an ``inference`` section."""
        with open(path, "r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}
        return cls.from_dict(cfg.get("inference", cfg))

    def to_yaml(self, path: Path) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump({"inference": self.to_dict()}, f, sort_keys=False)


def build_strategy(config: InferenceConfig, model: ProbabilityChainModel) -> InferenceStrategy:
    """Instantiate the configured strategy for ``model``."""
    kwargs = {}
    for name in STRATEGY_PARAMETERS[config.strategy]:
        value = getattr(config, name)
        if value is not None:
            kwargs[name] = value
    strategy = StrategyRegistry.create(config.strategy, model, **kwargs)
    logger.info("Built strategy %s with %s", config.strategy, kwargs)
    return strategy
