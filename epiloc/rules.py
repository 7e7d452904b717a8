"""Per-tick state update rules.

One rule per disease state, selected through UPDATE_RULES by the agent's
state in the start-of-tick snapshot:

  SUSCEPTIBLE            update_susceptible
      random location; co-located INFECTED neighbor may transmit;
      infected agents are hospitalized w.p. "Prob hospitalization"
  INFECTED               update_infected
      Community or Home; roulette over
      ["Prob hospitalization", "Prob recovery"]
  INFECTED_HOSPITALIZED  update_hospitalized
      always at Hospital; recover w.p. "Prob recovery", otherwise
      discharged (still infected) w.p. "Discharge infected"

Rules read other agents only through ``ctx.snapshot`` and write only the
invoking agent's own cells (state, pathogen, location) plus log appends.
Any agent that enters INFECTED_HOSPITALIZED during a tick is placed at
Hospital in that same tick.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Optional

import numpy as np

from epiloc.config import (
    DISCHARGE_INFECTED,
    PROB_HOSPITALIZATION,
    PROB_RECOVERY,
    ModelParameters,
)
from epiloc.errors import InvariantViolation
from epiloc.infection_log import InfectionLog
from epiloc.neighbors import Sampler, sample_sequential
from epiloc.population import Population, TickSnapshot
from epiloc.sampling import bernoulli, roulette
from epiloc.types import N_LOCATIONS, DiseaseState, Location

# Outcomes of the infected-rule roulette, in weight order
OUTCOME_HOSPITALIZE = 0
OUTCOME_RECOVER = 1


@dataclass
class TickContext:
    """Everything a rule needs besides the agent and the location store."""
    params: ModelParameters
    rng: np.random.Generator
    snapshot: Optional[TickSnapshot]   # set per tick by the driver
    log: InfectionLog
    sampler: Sampler = sample_sequential
    prob_transmission: float = 0.3
    prob_community: float = 0.5


def _observe(agent_id: int, population: Population, ctx: TickContext,
             expected: DiseaseState) -> bool:
    """Check that the rule matches the agent.

    Returns False when the live state has already moved away from the
    snapshot (the agent was updated earlier this tick); the rule must then
    do nothing.

    Raises:
        InvariantViolation: If the snapshot state is not ``expected``.
    """
    observed = ctx.snapshot.states[agent_id]
    if observed != expected:
        raise InvariantViolation(
            f"agent {agent_id}: {expected.name} rule invoked but snapshot "
            f"state is {DiseaseState(int(observed)).name}"
        )
    return population.agents['disease_state'][agent_id] == observed


def update_susceptible(agent_id: int, population: Population,
                       locations: np.ndarray, ctx: TickContext) -> None:
    """Move a susceptible agent and try to infect it from its neighbors."""
    if not _observe(agent_id, population, ctx, DiseaseState.SUSCEPTIBLE):
        return

    location = int(ctx.rng.integers(0, N_LOCATIONS))
    locations[agent_id] = location

    infector = ctx.sampler(
        population.neighbors(agent_id), location, ctx.snapshot,
        ctx.prob_transmission, ctx.rng,
    )
    if infector is None:
        return

    ctx.log.append(agent_id, infector, Location(location))

    # Pathogen as carried by the infector at the start of the tick
    pathogen_idx = int(ctx.snapshot.pathogens[infector])
    if bernoulli(ctx.params[PROB_HOSPITALIZATION], ctx.rng):
        population.set_pathogen(agent_id, pathogen_idx,
                                DiseaseState.INFECTED_HOSPITALIZED)
        locations[agent_id] = Location.HOSPITAL
    else:
        population.set_pathogen(agent_id, pathogen_idx, DiseaseState.INFECTED)


def update_infected(agent_id: int, population: Population,
                    locations: np.ndarray, ctx: TickContext) -> None:
    """Move an infected agent between Community and Home; maybe hospitalize or recover."""
    if not _observe(agent_id, population, ctx, DiseaseState.INFECTED):
        return

    if bernoulli(ctx.prob_community, ctx.rng):
        locations[agent_id] = Location.COMMUNITY
    else:
        locations[agent_id] = Location.HOME

    outcome = roulette(
        [ctx.params[PROB_HOSPITALIZATION], ctx.params[PROB_RECOVERY]],
        ctx.rng,
    )
    if outcome == OUTCOME_HOSPITALIZE:
        population.change_state(agent_id, DiseaseState.INFECTED_HOSPITALIZED)
        locations[agent_id] = Location.HOSPITAL
    elif outcome == OUTCOME_RECOVER:
        population.remove_pathogen(agent_id, DiseaseState.SUSCEPTIBLE)


def update_hospitalized(agent_id: int, population: Population,
                        locations: np.ndarray, ctx: TickContext) -> None:
    """Keep a hospitalized agent at Hospital; recovery first, then discharge."""
    if not _observe(agent_id, population, ctx,
                    DiseaseState.INFECTED_HOSPITALIZED):
        return

    locations[agent_id] = Location.HOSPITAL

    if bernoulli(ctx.params[PROB_RECOVERY], ctx.rng):
        population.remove_pathogen(agent_id, DiseaseState.SUSCEPTIBLE)
    elif bernoulli(ctx.params[DISCHARGE_INFECTED], ctx.rng):
        population.change_state(agent_id, DiseaseState.INFECTED)


UpdateRule = Callable[[int, Population, np.ndarray, TickContext], None]

UPDATE_RULES: Dict[DiseaseState, UpdateRule] = {
    DiseaseState.SUSCEPTIBLE: update_susceptible,
    DiseaseState.INFECTED: update_infected,
    DiseaseState.INFECTED_HOSPITALIZED: update_hospitalized,
}


def rule_for(state: int) -> UpdateRule:
    """Update rule for a disease state value."""
    return UPDATE_RULES[DiseaseState(int(state))]
