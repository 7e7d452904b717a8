"""Random draws used by the update rules.

Every draw consumes exactly one uniform variate from the supplied
Generator, so the number of draws per tick (and therefore replay) depends
only on the sequence of decisions, never on the probability values.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from epiloc.errors import SamplingError

NO_OUTCOME = -1

# Tolerance for floating-point sums such as 0.7 + 0.3
_SUM_TOL = 1e-12


def bernoulli(p: float, rng: np.random.Generator) -> bool:
    """One Bernoulli(p) trial. p=1 always succeeds, p=0 never does."""
    return rng.random() < p


def validate_weights(weights: Sequence[float]) -> np.ndarray:
    """Check roulette weights and return them as a float array.

    Raises:
        SamplingError: If any weight is negative or not finite, or the
            weights sum to more than 1.
    """
    w = np.asarray(weights, dtype=np.float64)
    if w.ndim != 1:
        raise SamplingError(f"weights must be one-dimensional, got shape {w.shape}")
    if not np.all(np.isfinite(w)) or np.any(w < 0.0):
        raise SamplingError(f"weights must be finite and non-negative, got {w.tolist()}")
    total = float(w.sum())
    if total > 1.0 + _SUM_TOL:
        raise SamplingError(f"weights must sum to <= 1, got {total} ({w.tolist()})")
    return w


def roulette(weights: Sequence[float], rng: np.random.Generator) -> int:
    """Weighted categorical draw with an implicit "nothing happens" outcome.

    Outcome k is selected with probability exactly ``weights[k]``; the
    shortfall ``1 - sum(weights)`` is the probability of NO_OUTCOME.

    Args:
        weights: Per-outcome probabilities, summing to at most 1.
        rng: Random generator.

    Returns:
        Index of the selected outcome, or NO_OUTCOME (-1).

    Raises:
        SamplingError: If the weights are invalid (see validate_weights).
    """
    w = validate_weights(weights)
    u = rng.random()
    cumulative = 0.0
    for k, wk in enumerate(w):
        cumulative += wk
        if u < cumulative:
            return k
    return NO_OUTCOME
