"""Population container, location store, and per-tick snapshots.

The Population owns the agent array, the contact graph, and the pathogen
table (exactly one circulating pathogen). All state changes go through
three mutators that keep the invariant

    pathogen attached  ⇔  disease_state ≠ SUSCEPTIBLE

The location store is a separate int8 array owned by the driver.

Snapshot isolation: at the start of every tick the driver takes a
TickSnapshot (copies of states, pathogen attachments and locations). The
update rules read other agents only through the snapshot and write only to
the live arrays, so agents infected earlier in a tick never act as
infectors in that same tick.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from epiloc.errors import ConfigurationError, InvariantViolation
from epiloc.network import ContactGraph
from epiloc.types import (
    N_LOCATIONS,
    N_STATES,
    NO_PATHOGEN,
    DiseaseState,
    Location,
    Pathogen,
    allocate_agents,
)


# ═══════════════════════════════════════════════════════════════════════
# LOCATION STORE
# ═══════════════════════════════════════════════════════════════════════

def allocate_locations(n: int, fill: Location = Location.COMMUNITY) -> np.ndarray:
    """Location store of size n, every agent at ``fill``."""
    return np.full(n, fill, dtype=np.int8)


def random_locations(n: int, rng: np.random.Generator) -> np.ndarray:
    """Location store with each agent placed uniformly at random."""
    return rng.integers(0, N_LOCATIONS, size=n).astype(np.int8)


# ═══════════════════════════════════════════════════════════════════════
# TICK SNAPSHOT
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TickSnapshot:
    """Start-of-tick view of every agent. Arrays are read-only copies."""
    states: np.ndarray      # (n,) int8
    pathogens: np.ndarray   # (n,) int16
    locations: np.ndarray   # (n,) int8

    @classmethod
    def capture(cls, agents: np.ndarray, locations: np.ndarray) -> 'TickSnapshot':
        states = agents['disease_state'].copy()
        pathogens = agents['pathogen'].copy()
        locs = np.array(locations, dtype=np.int8, copy=True)
        for arr in (states, pathogens, locs):
            arr.setflags(write=False)
        return cls(states=states, pathogens=pathogens, locations=locs)


# ═══════════════════════════════════════════════════════════════════════
# POPULATION
# ═══════════════════════════════════════════════════════════════════════

class Population:
    """Agents on a fixed contact graph, carrying at most one pathogen."""

    def __init__(self, graph: ContactGraph):
        self.graph = graph
        self.agents = allocate_agents(graph.n_agents)
        self.pathogens: List[Pathogen] = []

    def __len__(self) -> int:
        return len(self.agents)

    @property
    def n_agents(self) -> int:
        return len(self.agents)

    # ── pathogen table ────────────────────────────────────────────────

    def add_pathogen(self, pathogen: Pathogen) -> int:
        """Register the circulating pathogen and return its index.

        Raises:
            ConfigurationError: If a pathogen is already registered.
        """
        if self.pathogens:
            raise ConfigurationError(
                f"Only one circulating pathogen is supported; "
                f"'{self.pathogens[0].name}' is already registered"
            )
        self.pathogens.append(pathogen)
        return len(self.pathogens) - 1

    # ── queries ───────────────────────────────────────────────────────

    def state(self, agent_id: int) -> DiseaseState:
        return DiseaseState(int(self.agents['disease_state'][agent_id]))

    def pathogen_index(self, agent_id: int) -> int:
        return int(self.agents['pathogen'][agent_id])

    def pathogen(self, agent_id: int) -> Optional[Pathogen]:
        idx = self.pathogen_index(agent_id)
        return None if idx == NO_PATHOGEN else self.pathogens[idx]

    def neighbors(self, agent_id: int) -> np.ndarray:
        return self.graph.neighbors(agent_id)

    def state_counts(self) -> np.ndarray:
        """(N_STATES,) count of agents per disease state."""
        return np.bincount(self.agents['disease_state'], minlength=N_STATES)

    # ── mutators ──────────────────────────────────────────────────────

    def set_pathogen(self, agent_id: int, pathogen_idx: int,
                     state: DiseaseState) -> None:
        """Attach a pathogen and move the agent to an infected state."""
        if state == DiseaseState.SUSCEPTIBLE:
            raise InvariantViolation(
                f"agent {agent_id}: cannot attach a pathogen and stay Susceptible"
            )
        if not 0 <= pathogen_idx < len(self.pathogens):
            raise InvariantViolation(
                f"agent {agent_id}: unknown pathogen index {pathogen_idx}"
            )
        self.agents['pathogen'][agent_id] = pathogen_idx
        self.agents['disease_state'][agent_id] = state

    def remove_pathogen(self, agent_id: int,
                        state: DiseaseState = DiseaseState.SUSCEPTIBLE) -> None:
        """Detach the pathogen; the agent becomes fully susceptible again."""
        if state != DiseaseState.SUSCEPTIBLE:
            raise InvariantViolation(
                f"agent {agent_id}: detaching the pathogen must leave it Susceptible"
            )
        self.agents['pathogen'][agent_id] = NO_PATHOGEN
        self.agents['disease_state'][agent_id] = state

    def change_state(self, agent_id: int, state: DiseaseState) -> None:
        """Move between infected states, keeping the attached pathogen."""
        if state == DiseaseState.SUSCEPTIBLE:
            raise InvariantViolation(
                f"agent {agent_id}: use remove_pathogen() to become Susceptible"
            )
        if self.pathogen_index(agent_id) == NO_PATHOGEN:
            raise InvariantViolation(
                f"agent {agent_id}: cannot become {state.name} without a pathogen"
            )
        self.agents['disease_state'][agent_id] = state

    # ── seeding ───────────────────────────────────────────────────────

    def seed_pathogen(
        self,
        pathogen_idx: int,
        prevalence: float,
        rng: np.random.Generator,
    ) -> np.ndarray:
        """Attach the pathogen to round(prevalence × n) random agents.

        Carriers are placed in the pathogen's ``init_state``.

        Returns:
            Sorted ids of the seeded agents.
        """
        n_seed = int(np.floor(prevalence * self.n_agents + 0.5))
        n_seed = min(n_seed, self.n_agents)
        ids = np.sort(rng.choice(self.n_agents, size=n_seed, replace=False))
        init_state = self.pathogens[pathogen_idx].init_state
        for i in ids:
            self.set_pathogen(int(i), pathogen_idx, init_state)
        return ids

    # ── invariants ────────────────────────────────────────────────────

    def check_invariants(self, locations: np.ndarray) -> None:
        """Verify the tick-boundary invariants.

        Raises:
            InvariantViolation: On the first violated invariant.
        """
        states = self.agents['disease_state']
        attached = self.agents['pathogen'] != NO_PATHOGEN
        infected = states != DiseaseState.SUSCEPTIBLE
        bad = np.flatnonzero(attached != infected)
        if bad.size:
            raise InvariantViolation(
                f"pathogen attachment disagrees with state for agents {bad[:10].tolist()}"
            )
        if len(locations) != self.n_agents:
            raise InvariantViolation(
                f"location store has {len(locations)} cells for "
                f"{self.n_agents} agents"
            )
        if np.any((locations < 0) | (locations >= N_LOCATIONS)):
            raise InvariantViolation("location store holds an unknown location")
        misplaced = np.flatnonzero(
            (states == DiseaseState.INFECTED_HOSPITALIZED)
            & (locations != Location.HOSPITAL)
        )
        if misplaced.size:
            raise InvariantViolation(
                f"hospitalized agents outside Hospital: {misplaced[:10].tolist()}"
            )

    def snapshot(self, locations: np.ndarray) -> TickSnapshot:
        return TickSnapshot.capture(self.agents, locations)
