"""Simulation driver: tick loop, initialization, results and summaries.

Per tick:
  1. Snapshot states, pathogen attachments and locations
  2. Visit agents in ascending id order; run the rule for each agent's
     snapshot state (rules read the snapshot, write the live arrays)
  3. Count state transitions and new infections
  4. Verify tick-boundary invariants

A full run (``run_network_simulation``):
  - Small-world contact graph from networkx
  - Uniformly random initial locations
  - One pathogen seeded on round(prevalence × n) agents
  - ``n_ticks`` ticks with a dedicated dynamics RNG stream
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np

from epiloc.config import (
    ModelParameters,
    SimulationConfig,
    default_config,
    validate_config,
)
from epiloc.errors import ConfigurationError
from epiloc.infection_log import InfectionLog
from epiloc.neighbors import get_sampler
from epiloc.network import small_world_graph
from epiloc.population import Population, random_locations
from epiloc.rng import create_rng_hierarchy, graph_seed
from epiloc.rules import TickContext, rule_for
from epiloc.types import (
    LOCATION_NAMES,
    N_LOCATIONS,
    N_STATES,
    STATE_NAMES,
    DiseaseState,
    Location,
    Pathogen,
)

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════
# RESULT
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class NetworkSimResult:
    """Results from a network simulation run."""
    n_ticks: int = 0
    n_agents: int = 0
    seed: Optional[int] = None
    pathogen: Optional[Pathogen] = None
    seeded_ids: Optional[np.ndarray] = None
    # (n_ticks+1, N_STATES): row 0 is the initial state
    tick_counts: Optional[np.ndarray] = None
    # (n_ticks,): transmissions per tick
    tick_new_infections: Optional[np.ndarray] = None
    # (N_STATES, N_STATES): cumulative from→to counts, diagonal = stayed
    transitions: Optional[np.ndarray] = None
    final_states: Optional[np.ndarray] = None
    final_locations: Optional[np.ndarray] = None
    infection_log: InfectionLog = field(default_factory=InfectionLog)

    @property
    def total_infections(self) -> int:
        return len(self.infection_log)

    @property
    def final_counts(self) -> np.ndarray:
        return np.bincount(self.final_states, minlength=N_STATES)

    def state_location_counts(self) -> np.ndarray:
        """(N_STATES, N_LOCATIONS) agents per final state and location."""
        counts = np.zeros((N_STATES, N_LOCATIONS), dtype=np.int64)
        np.add.at(counts, (self.final_states.astype(np.intp),
                           self.final_locations.astype(np.intp)), 1)
        return counts

    def transition_probabilities(self) -> np.ndarray:
        """Row-normalized transition counts (rows with no visits are 0)."""
        t = self.transitions.astype(np.float64)
        rows = t.sum(axis=1, keepdims=True)
        return np.divide(t, rows, out=np.zeros_like(t), where=rows > 0)


# ═══════════════════════════════════════════════════════════════════════
# TICK LOOP
# ═══════════════════════════════════════════════════════════════════════

def step(population: Population, locations: np.ndarray,
         ctx_template: TickContext) -> np.ndarray:
    """Advance every agent by one tick.

    ``ctx_template`` supplies parameters, RNG, log and sampler; its
    snapshot (usually None) is replaced by a fresh start-of-tick snapshot.

    Returns:
        (N_STATES, N_STATES) transition counts for this tick.
    """
    snapshot = population.snapshot(locations)
    ctx = dataclasses.replace(ctx_template, snapshot=snapshot)
    for agent_id in range(population.n_agents):
        rule = rule_for(snapshot.states[agent_id])
        rule(agent_id, population, locations, ctx)

    transitions = np.zeros((N_STATES, N_STATES), dtype=np.int64)
    np.add.at(transitions,
              (snapshot.states.astype(np.intp),
               population.agents['disease_state'].astype(np.intp)), 1)
    return transitions


def run_ticks(
    population: Population,
    locations: np.ndarray,
    params: ModelParameters,
    rng: np.random.Generator,
    n_ticks: int,
    sampler: str = 'sequential',
    prob_transmission: float = 0.3,
    prob_community: float = 0.5,
    log: Optional[InfectionLog] = None,
    check_invariants: bool = True,
) -> NetworkSimResult:
    """Run ``n_ticks`` ticks on an already initialized population.

    Args:
        population: Population with states and pathogens set.
        locations: Location store (mutated in place).
        params: Named model parameters.
        rng: Generator for every rule draw.
        n_ticks: Number of ticks.
        sampler: Neighbor sampler name ('sequential' or 'uniform').
        prob_transmission: Per-neighbor transmission probability.
        prob_community: Probability an infected agent goes to Community.
        log: Infection log to append to (a new one if None).
        check_invariants: Verify invariants after every tick.

    Returns:
        NetworkSimResult; final arrays are copies.
    """
    if n_ticks < 0:
        raise ConfigurationError(f"n_ticks must be >= 0, got {n_ticks}")
    if log is None:
        log = InfectionLog()
    if check_invariants:
        population.check_invariants(locations)

    ctx = TickContext(
        params=params,
        rng=rng,
        snapshot=None,
        log=log,
        sampler=get_sampler(sampler),
        prob_transmission=prob_transmission,
        prob_community=prob_community,
    )

    tick_counts = np.zeros((n_ticks + 1, N_STATES), dtype=np.int64)
    tick_counts[0] = population.state_counts()
    tick_new_infections = np.zeros(n_ticks, dtype=np.int64)
    transitions = np.zeros((N_STATES, N_STATES), dtype=np.int64)

    for tick in range(n_ticks):
        log.current_tick = tick
        n_before = len(log)
        transitions += step(population, locations, ctx)
        tick_new_infections[tick] = len(log) - n_before
        tick_counts[tick + 1] = population.state_counts()
        if check_invariants:
            population.check_invariants(locations)
        logger.debug(
            "tick %d: S=%d I=%d IH=%d new=%d", tick,
            *tick_counts[tick + 1], tick_new_infections[tick],
        )

    return NetworkSimResult(
        n_ticks=n_ticks,
        n_agents=population.n_agents,
        pathogen=population.pathogens[0] if population.pathogens else None,
        tick_counts=tick_counts,
        tick_new_infections=tick_new_infections,
        transitions=transitions,
        final_states=population.agents['disease_state'].copy(),
        final_locations=np.array(locations, dtype=np.int8, copy=True),
        infection_log=log,
    )


# ═══════════════════════════════════════════════════════════════════════
# FULL RUN
# ═══════════════════════════════════════════════════════════════════════

def initialize_population(
    config: SimulationConfig,
    rngs: Dict[str, np.random.Generator],
) -> Tuple[Population, np.ndarray, np.ndarray]:
    """Build graph, population and location store from a config.

    Returns:
        (population, locations, seeded_ids) tuple.
    """
    pop_cfg = config.population
    graph = small_world_graph(
        pop_cfg.n_agents, pop_cfg.mean_degree, pop_cfg.rewire_prob,
        seed=graph_seed(rngs['network']),
    )
    population = Population(graph)
    pathogen_idx = population.add_pathogen(config.pathogen.build())

    locations = random_locations(population.n_agents, rngs['init'])
    seeded = population.seed_pathogen(
        pathogen_idx, config.pathogen.prevalence, rngs['init'],
    )
    hospitalized = (population.agents['disease_state']
                    == DiseaseState.INFECTED_HOSPITALIZED)
    locations[hospitalized] = Location.HOSPITAL

    logger.info(
        "Initialized %d agents (%d edges, mean degree %.2f); "
        "seeded %s on %d agents",
        population.n_agents, graph.n_edges, graph.mean_degree,
        config.pathogen.name, len(seeded),
    )
    return population, locations, seeded


def run_network_simulation(
    config: Optional[SimulationConfig] = None,
) -> NetworkSimResult:
    """Run a full simulation from a configuration.

    Args:
        config: Simulation configuration (defaults if None). Validated
            before anything is built.

    Returns:
        NetworkSimResult.

    Raises:
        ConfigurationError: Invalid configuration.
        SamplingError: Infected-rule weights sum above 1.
    """
    if config is None:
        config = default_config()
    validate_config(config)

    seed = config.simulation.seed
    rngs = create_rng_hierarchy(seed)
    population, locations, seeded = initialize_population(config, rngs)

    logger.info("Running %d ticks (seed=%d, sampler=%s)",
                config.simulation.n_ticks, seed, config.transmission.sampler)
    result = run_ticks(
        population,
        locations,
        config.model_parameters(),
        rngs['dynamics'],
        config.simulation.n_ticks,
        sampler=config.transmission.sampler,
        prob_transmission=config.transmission.prob_transmission,
        prob_community=config.transmission.prob_community,
    )
    result.seed = seed
    result.seeded_ids = seeded

    counts = result.final_counts
    logger.info(
        "Finished: %d infection events; final S=%d I=%d IH=%d",
        result.total_infections, *counts,
    )
    return result


# ═══════════════════════════════════════════════════════════════════════
# SUMMARY
# ═══════════════════════════════════════════════════════════════════════

def format_summary(result: NetworkSimResult, show_events: bool = False) -> str:
    """Human-readable run summary.

    Sections: infection events (optional), totals by state, transition
    probabilities, and location-wise distribution of states.
    """
    lines: List[str] = []

    if show_events:
        lines.append("Infection Events:")
        for event in result.infection_log:
            lines.append(f"  {event.describe()}")
        lines.append("")

    name = result.pathogen.name if result.pathogen is not None else "(none)"
    lines.append(f"{'='*60}")
    lines.append(f" Pathogen: {name}   Agents: {result.n_agents}   "
                 f"Ticks: {result.n_ticks}")
    if result.seed is not None:
        lines.append(f" Seed: {result.seed}")
    lines.append(f"{'='*60}")

    lines.append(f"{'State':<26} {'Initial':>8} {'Final':>8}")
    initial = result.tick_counts[0]
    final = result.tick_counts[-1]
    for state in DiseaseState:
        lines.append(f"{STATE_NAMES[state]:<26} {initial[state]:>8d} "
                     f"{final[state]:>8d}")
    lines.append(f"Infection events: {result.total_infections}")

    lines.append("")
    lines.append("Transition probabilities:")
    probs = result.transition_probabilities()
    for src in DiseaseState:
        cells = "  ".join(
            f"{STATE_NAMES[dst][:12]:>12} {probs[src, dst]:.3f}"
            for dst in DiseaseState
        )
        lines.append(f"  {STATE_NAMES[src]:<26} {cells}")

    lines.append("")
    lines.append("Location-wise distribution of states:")
    counts = result.state_location_counts()
    for state in DiseaseState:
        lines.append(f"  {STATE_NAMES[state]}:")
        for loc in Location:
            lines.append(f"    {LOCATION_NAMES[loc]}: {counts[state, loc]}")

    return "\n".join(lines)
