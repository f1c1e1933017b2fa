"""Top-k partial selection (quickselect with a three-way partition).

Rearranges ``(value, index)`` pairs so the k largest values occupy positions
``[0, k)`` in no particular order and no value after position k exceeds any value
before it. Original indices travel with their values.

Each round picks the median of the first, middle and last element of the active
range and splits it into ``greater | equal | less`` blocks. The active range then
shrinks to the block that contains the k boundary; the loop stops as soon as the
boundary falls inside (or on the edge of) the equal block or outside the range.
Because the pivot is always an element of the range, the equal block is never
empty, so every round strictly shrinks the range and duplicate-heavy inputs end
in a single pass.

Tie policy: when several equal values straddle the boundary, the ones that come
first in the current range order stay in the prefix (boolean-mask partitioning is
stable within each block). The multiset of prefix values always equals the top-k
multiset.
"""

from __future__ import annotations

from typing import Optional, Sequence, Tuple

import numpy as np


def _median_of_three(a: float, b: float, c: float) -> float:
    return sorted((a, b, c))[1]


def partition_top_k(values: np.ndarray, indices: np.ndarray, k: int) -> int:
    """Partition ``values``/``indices`` in place around the k-th largest value.

    Args:
        values: 1-D float array, rearranged in place
        indices: 1-D int array of the same length, rearranged alongside
        k: Number of largest values to move to the front

    Returns:
        Number of partitioning rounds performed
    """
    n = len(values)
    if len(indices) != n:
        raise ValueError(f"Length mismatch: {n} values vs {len(indices)} indices")
    if k <= 0 or k >= n:
        return 0

    lo, hi = 0, n
    rounds = 0
    while lo < k < hi and hi - lo > 1:
        segment = values[lo:hi]
        pivot = _median_of_three(segment[0], segment[(hi - lo) // 2], segment[-1])

        greater = segment > pivot
        equal = segment == pivot
        less = ~(greater | equal)
        perm = np.concatenate([np.flatnonzero(greater), np.flatnonzero(equal), np.flatnonzero(less)])
        values[lo:hi] = segment[perm]
        indices[lo:hi] = indices[lo:hi][perm]
        rounds += 1

        first_equal = lo + int(greater.sum())
        first_less = first_equal + int(equal.sum())
        if k <= first_equal:
            hi = first_equal
        elif k >= first_less:
            lo = first_less
        else:
            break
    return rounds


def select_top_k(
    values: Sequence[float],
    k: int,
    indices: Optional[Sequence[int]] = None,
) -> Tuple[np.ndarray, np.ndarray]:
    """Return copies of ``values`` and ``indices`` partitioned around the top k.

    Args:
        values: Scores to partition
        k: Number of largest values to gather at the front
        indices: Original indices (defaults to ``0..n-1``)

    Returns:
        (values, indices) arrays; the first k entries are the k largest

    Raises:
        ValueError: NaN values, or indices of a different length
    """
    vals = np.array(values, dtype=np.float64)
    if vals.ndim != 1:
        raise ValueError("values must be 1-D")
    if np.isnan(vals).any():
        raise ValueError("values must not contain NaN")
    idx = np.arange(len(vals)) if indices is None else np.array(indices, dtype=np.int64)
    partition_top_k(vals, idx, int(k))
    return vals, idx


def top_k_indices(values: Sequence[float], k: int) -> np.ndarray:
    """Original indices of the k largest values (unordered)."""
    _, idx = select_top_k(values, k)
    return idx[: max(0, min(int(k), len(idx)))]
