"""Seeded RNG factory for reproducible simulations.

Uses NumPy's SeedSequence → PCG64 hierarchy to guarantee:
  - Statistical independence between streams
  - Bit-exact replay with the same master seed
  - Changing how the graph is built doesn't shift the dynamics stream
"""

from __future__ import annotations

from typing import Dict

import numpy as np

STREAMS = ('network', 'init', 'dynamics')


def create_rng_hierarchy(master_seed: int) -> Dict[str, np.random.Generator]:
    """Create independent RNG streams for each phase of a run.

    Streams created:
      - 'network':  Contact-graph rewiring
      - 'init':     Initial locations and pathogen seeding
      - 'dynamics': Every draw made by the update rules

    Args:
        master_seed: Master RNG seed (non-negative integer).

    Returns:
        Dictionary mapping stream names to numpy Generator instances.

    Example:
        >>> rngs = create_rng_hierarchy(1231)
        >>> rngs['dynamics'].random()  # reproducible
    """
    ss = np.random.SeedSequence(master_seed)
    child_seeds = ss.spawn(len(STREAMS))
    return {
        name: np.random.Generator(np.random.PCG64(seed))
        for name, seed in zip(STREAMS, child_seeds)
    }


def graph_seed(rng: np.random.Generator) -> int:
    """Derive an integer seed for networkx generators from a stream."""
    return int(rng.integers(0, 2**31 - 1))

