"""Pipeline runner API."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, List, Sequence

from tqdm import tqdm

from pcc_inference.chain.model import ProbabilityChainModel
from pcc_inference.data.schemas import MultiLabelOutput
from pcc_inference.inference.base import InferenceStrategy
from pcc_inference.pipeline.config import InferenceConfig, build_strategy
from pcc_inference.utils.logging import get_logger

logger = get_logger(__name__)


def load_strategy_from_config(config_path: Path, model: ProbabilityChainModel) -> InferenceStrategy:
    return build_strategy(InferenceConfig.from_yaml(config_path), model)


def predict(strategy: InferenceStrategy, instance: Any) -> MultiLabelOutput:
    return strategy.predict(instance)


def predict_batch(
    strategy: InferenceStrategy,
    instances: Sequence[Any],
    num_workers: int = 1,
    show_progress: bool = False,
) -> List[MultiLabelOutput]:
    """Predict every instance; results come back in input order.

    The strategy is shared read-only between workers. A provider failure on any
    instance propagates out of this call.

    Args:
        strategy: Built inference strategy
        instances: Feature vectors (whatever the chain's providers accept)
        num_workers: Thread count; 1 runs inline
        show_progress: Show a tqdm progress bar

    Returns:
        One MultiLabelOutput per instance
    """
    if num_workers <= 0:
        raise ValueError(f"num_workers must be positive, got {num_workers}")
    logger.info("Predicting %d instances with %s (%d workers)", len(instances), strategy.name, num_workers)

    if num_workers == 1:
        iterator = tqdm(instances, desc=f"Inference ({strategy.name})", disable=not show_progress)
        return [strategy.predict(x) for x in iterator]

    with ThreadPoolExecutor(max_workers=num_workers) as executor:
        results = executor.map(strategy.predict, instances)
        return list(tqdm(
            results,
            total=len(instances),
            desc=f"Inference ({strategy.name})",
            disable=not show_progress,
        ))


def run_config(
    config: InferenceConfig,
    model: ProbabilityChainModel,
    instances: Sequence[Any],
    show_progress: bool = False,
) -> List[MultiLabelOutput]:
    """Build the configured strategy and predict a batch."""
    strategy = build_strategy(config, model)
    return predict_batch(strategy, instances, num_workers=config.num_workers, show_progress=show_progress)
