"""Core data types for EpiLoc.

This module is the single source of truth for:
  - DiseaseState and Location enumerations (and their display names)
  - AGENT_DTYPE: NumPy structured array dtype for individual agents
  - Pathogen: immutable description of the circulating pathogen
  - InfectionEvent: one logged transmission

All modules import these types from here. No other module defines agent fields.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import NamedTuple

import numpy as np


# ═══════════════════════════════════════════════════════════════════════
# ENUMERATIONS
# ═══════════════════════════════════════════════════════════════════════

class DiseaseState(IntEnum):
    """Disease compartments.

    S  → I   (transmission from a co-located infected neighbor)
    S  → IH  (transmission followed by immediate hospitalization)
    I  → IH  (hospitalization)
    I  → S   (recovery; no immunity)
    IH → S   (recovery in hospital)
    IH → I   (discharged while still contagious)
    """
    SUSCEPTIBLE           = 0
    INFECTED              = 1
    INFECTED_HOSPITALIZED = 2


class Location(IntEnum):
    """Where an agent spends the current tick."""
    COMMUNITY = 0
    HOSPITAL  = 1
    HOME      = 2


N_STATES = len(DiseaseState)
N_LOCATIONS = len(Location)

STATE_NAMES = {
    DiseaseState.SUSCEPTIBLE:           "Susceptible",
    DiseaseState.INFECTED:              "Infected",
    DiseaseState.INFECTED_HOSPITALIZED: "Infected (hospitalized)",
}

LOCATION_NAMES = {
    Location.COMMUNITY: "Community",
    Location.HOSPITAL:  "Hospital",
    Location.HOME:      "Home",
}


def parse_state(name: str) -> DiseaseState:
    """Resolve a state from its display name or enum member name.

    Accepts "Infected", "INFECTED", "Infected (hospitalized)",
    "Infected_Hospitalized", etc.

    Raises:
        KeyError: If the name matches no state.
    """
    key = name.strip()
    for state, display in STATE_NAMES.items():
        if key == display or key.upper() == state.name:
            return state
    raise KeyError(f"Unknown disease state '{name}'")


# ═══════════════════════════════════════════════════════════════════════
# AGENT_DTYPE: structured array for individual agents
# ═══════════════════════════════════════════════════════════════════════

NO_PATHOGEN = -1

AGENT_DTYPE = np.dtype([
    ('agent_id',       np.int32),   # stable handle, equals array index
    ('disease_state',  np.int8),    # DiseaseState enum
    ('pathogen',       np.int16),   # index into the pathogen table; -1 when S
])


def allocate_agents(n: int) -> np.ndarray:
    """Allocate an all-susceptible agent array with ids 0..n-1.

    Args:
        n: Population size.

    Returns:
        Structured array of shape (n,) with AGENT_DTYPE.
    """
    agents = np.zeros(n, dtype=AGENT_DTYPE)
    agents['agent_id'] = np.arange(n, dtype=np.int32)
    agents['disease_state'] = DiseaseState.SUSCEPTIBLE
    agents['pathogen'] = NO_PATHOGEN
    return agents


# ═══════════════════════════════════════════════════════════════════════
# PATHOGEN & INFECTION EVENT
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Pathogen:
    """The circulating pathogen. Shared read-only by every carrier.

    ``prob_infecting`` and ``prob_recovery`` describe the pathogen but are
    not read by the update rules, which use ``prob_transmission`` and the
    named model parameters.
    """
    name: str
    init_state: DiseaseState = DiseaseState.INFECTED  # state of seeded carriers
    prob_infecting: float = 0.1    # descriptive only
    prob_recovery: float = 0.0     # descriptive only


class InfectionEvent(NamedTuple):
    """One successful transmission."""
    susceptible_id: int
    infector_id: int
    location: Location

    def describe(self) -> str:
        return (
            f"Susceptible Agent {self.susceptible_id} infected by "
            f"Agent {self.infector_id} in {LOCATION_NAMES[self.location]}"
        )
