"""Project-wide constants."""

DEFAULT_SEED = 1

DEFAULT_NUM_SIMULATIONS = 100

# Hamming threshold applied to marginals / confidences.
DEFAULT_THRESHOLD = 0.5

# Acceptance thresholds of the best-first search.
EXACT_THRESHOLD = 0.0
GREEDY_THRESHOLD = 0.5

# Exhaustive enumeration visits 2^n leaves.
MAX_EXHAUSTIVE_LABELS = 20
