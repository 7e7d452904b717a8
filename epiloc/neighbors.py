"""Neighbor infection samplers.

Given a susceptible agent and its freshly drawn location, choose which
neighbor (if any) transmits the pathogen this tick. A neighbor qualifies
when, in the start-of-tick snapshot, it is INFECTED (hospitalized agents
do not transmit) and stands at the same location.

Two policies, with different infection-probability laws:

  sequential  Scan qualifying neighbors in graph order. Each one costs a
              single Bernoulli(p) trial; the first success is the infector
              and the scan stops. P(infection) = 1 - (1-p)^k for k
              qualifying neighbors, and earlier neighbors win ties.

  uniform     Collect every qualifying neighbor and pick one uniformly at
              random. Infection is certain whenever k >= 1.

The sequential policy is the default.
"""

from __future__ import annotations

from typing import Callable, Dict, Iterator, Optional

import numpy as np

from epiloc.population import TickSnapshot
from epiloc.sampling import bernoulli
from epiloc.types import DiseaseState

Sampler = Callable[
    [np.ndarray, int, TickSnapshot, float, np.random.Generator],
    Optional[int],
]


def qualifying_neighbors(
    neighbors: np.ndarray,
    location: int,
    snapshot: TickSnapshot,
) -> Iterator[int]:
    """Lazily yield neighbors that could transmit at ``location``.

    Order is the graph's neighbor order. Each call returns a fresh
    generator, so the scan can be restarted.
    """
    states = snapshot.states
    locations = snapshot.locations
    for nbr in neighbors:
        if states[nbr] == DiseaseState.INFECTED and locations[nbr] == location:
            yield int(nbr)


def sample_sequential(
    neighbors: np.ndarray,
    location: int,
    snapshot: TickSnapshot,
    prob_transmission: float,
    rng: np.random.Generator,
) -> Optional[int]:
    """First qualifying neighbor whose Bernoulli trial succeeds, or None."""
    for nbr in qualifying_neighbors(neighbors, location, snapshot):
        if bernoulli(prob_transmission, rng):
            return nbr
    return None


def sample_uniform(
    neighbors: np.ndarray,
    location: int,
    snapshot: TickSnapshot,
    prob_transmission: float,
    rng: np.random.Generator,
) -> Optional[int]:
    """One qualifying neighbor chosen uniformly, or None if there are none.

    ``prob_transmission`` is unused: the chosen neighbor always transmits.
    No draw is made when nobody qualifies.
    """
    candidates = list(qualifying_neighbors(neighbors, location, snapshot))
    if not candidates:
        return None
    idx = min(int(rng.random() * len(candidates)), len(candidates) - 1)
    return candidates[idx]


SAMPLERS: Dict[str, Sampler] = {
    'sequential': sample_sequential,
    'uniform': sample_uniform,
}


def get_sampler(name: str) -> Sampler:
    """Look up a sampler by name.

    Raises:
        KeyError: If no sampler has that name.
    """
    try:
        return SAMPLERS[name]
    except KeyError:
        raise KeyError(
            f"Unknown neighbor sampler '{name}'. Available: {sorted(SAMPLERS)}"
        ) from None
