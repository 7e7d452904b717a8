"""Configuration system for EpiLoc.

Hierarchical YAML configuration with deep-merge support:
  base.yaml → scenario override → sweep overrides

Named model parameters ("Prob hospitalization", "Prob recovery",
"Discharge infected") live in the ``parameters`` mapping and are looked up
by name through ``ModelParameters``.
"""

from __future__ import annotations

import dataclasses
import numbers
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, Mapping, Optional, Union

import yaml

from epiloc.errors import ConfigurationError, SamplingError
from epiloc.neighbors import SAMPLERS
from epiloc.types import DiseaseState, Pathogen, parse_state


# ═══════════════════════════════════════════════════════════════════════
# NAMED PARAMETERS
# ═══════════════════════════════════════════════════════════════════════

PROB_HOSPITALIZATION = "Prob hospitalization"
PROB_RECOVERY = "Prob recovery"
DISCHARGE_INFECTED = "Discharge infected"

REQUIRED_PARAMETERS = (PROB_HOSPITALIZATION, PROB_RECOVERY, DISCHARGE_INFECTED)


def _default_parameters() -> Dict[str, float]:
    return {
        PROB_HOSPITALIZATION: 0.1,
        PROB_RECOVERY: 0.0,
        DISCHARGE_INFECTED: 0.1,
    }


class ModelParameters(Mapping):
    """Read-only name → probability table consulted by the update rules.

    Values are validated on construction: every required name must be
    present and every value must lie in [0, 1].
    """

    def __init__(self, values: Mapping[str, float]):
        for name in REQUIRED_PARAMETERS:
            if name not in values:
                raise ConfigurationError(
                    f"parameters['{name}'] is required but missing"
                )
        self._values = {
            str(name): check_probability(f"parameters['{name}']", value)
            for name, value in values.items()
        }

    def __getitem__(self, name: str) -> float:
        try:
            return self._values[name]
        except KeyError:
            raise ConfigurationError(
                f"Unknown model parameter '{name}'. "
                f"Available: {sorted(self._values)}"
            ) from None

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"ModelParameters({self._values!r})"


def check_probability(key: str, value: Any) -> float:
    """Return value as a float, or raise ConfigurationError.

    Only real numbers in [0, 1] are accepted; strings and booleans are
    rejected rather than converted.
    """
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise ConfigurationError(f"{key} must be a number, got {value!r}")
    v = float(value)
    if not (0.0 <= v <= 1.0):
        raise ConfigurationError(f"{key} must be in [0, 1], got {v}")
    return v


def check_integer(key: str, value: Any) -> int:
    """Return value as an int, or raise ConfigurationError."""
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise ConfigurationError(f"{key} must be an integer, got {value!r}")
    return int(value)


# ═══════════════════════════════════════════════════════════════════════
# CONFIGURATION DATACLASSES
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class SimulationSection:
    """Run length and master seed."""
    n_ticks: int = 100
    seed: int = 1231


@dataclass
class PopulationSection:
    """Population size and small-world contact graph."""
    n_agents: int = 1000
    mean_degree: int = 4         # each agent linked to k nearest ring neighbors
    rewire_prob: float = 0.1     # small-world rewiring probability


@dataclass
class PathogenSection:
    """The single circulating pathogen."""
    name: str = "MRSA"
    init_state: str = "Infected"   # state given to seeded carriers
    prob_infecting: float = 0.1    # carried on Pathogen; rules do not read it
    prob_recovery: float = 0.0     # carried on Pathogen; rules do not read it
    prevalence: float = 0.01       # fraction of agents carrying it at t=0

    def build(self) -> Pathogen:
        return Pathogen(
            name=self.name,
            init_state=parse_state(self.init_state),
            prob_infecting=self.prob_infecting,
            prob_recovery=self.prob_recovery,
        )


@dataclass
class TransmissionSection:
    """Neighbor transmission and movement constants.

    sampler: "sequential" — scan co-located infected neighbors in graph
                            order, one Bernoulli(prob_transmission) each,
                            first success infects
             "uniform"    — pick one co-located infected neighbor uniformly;
                            infection is then certain
    """
    prob_transmission: float = 0.3   # per qualifying neighbor, sequential only
    prob_community: float = 0.5      # infected agents: Community vs Home
    sampler: str = "sequential"


@dataclass
class SimulationConfig:
    """Complete simulation configuration.

    Load from YAML via `load_config()`. Sections map 1:1 to YAML top-level keys.
    """
    simulation: SimulationSection = field(default_factory=SimulationSection)
    population: PopulationSection = field(default_factory=PopulationSection)
    pathogen: PathogenSection = field(default_factory=PathogenSection)
    transmission: TransmissionSection = field(default_factory=TransmissionSection)
    parameters: Dict[str, float] = field(default_factory=_default_parameters)

    def model_parameters(self) -> ModelParameters:
        return ModelParameters(self.parameters)


# ═══════════════════════════════════════════════════════════════════════
# YAML LOADING & MERGING
# ═══════════════════════════════════════════════════════════════════════

def deep_merge(base: Dict, override: Dict) -> Dict:
    """Recursively merge override into base. Modifies base in place.

    - Dict values are merged recursively
    - Non-dict values are replaced
    - Keys in override but not base are added

    Returns:
        The merged base dictionary.
    """
    for key, value in override.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(value, dict)
        ):
            deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _dict_to_section(section_cls, data: Dict) -> Any:
    """Convert a dict to a dataclass, ignoring unknown keys."""
    valid_fields = {f.name for f in dataclasses.fields(section_cls)}
    filtered = {k: v for k, v in data.items() if k in valid_fields}
    return section_cls(**filtered)


def _yaml_to_config(data: Dict) -> SimulationConfig:
    """Convert a merged YAML dict to a SimulationConfig."""
    sections = {}
    section_map = {
        'simulation': SimulationSection,
        'population': PopulationSection,
        'pathogen': PathogenSection,
        'transmission': TransmissionSection,
    }
    for key, cls in section_map.items():
        if key in data and isinstance(data[key], dict):
            sections[key] = _dict_to_section(cls, data[key])
        else:
            sections[key] = cls()

    # Named parameters override defaults one by one
    parameters = _default_parameters()
    if 'parameters' in data:
        if not isinstance(data['parameters'], dict):
            raise ConfigurationError(
                f"parameters must be a mapping of name to probability, "
                f"got {type(data['parameters']).__name__}"
            )
        parameters.update(data['parameters'])
    sections['parameters'] = parameters

    return SimulationConfig(**sections)


def validate_config(config: SimulationConfig) -> None:
    """Validate configuration constraints.

    Numeric fields are type-checked and normalized in place: counts must be
    integers and probabilities real numbers, so a quoted "0.5" is rejected
    here instead of failing mid-run.

    Raises:
        ConfigurationError: Out-of-range or inconsistent values.
        SamplingError: Infected-rule roulette weights sum above 1.
    """
    sim = config.simulation
    sim.n_ticks = check_integer("simulation.n_ticks", sim.n_ticks)
    sim.seed = check_integer("simulation.seed", sim.seed)
    if sim.n_ticks < 1:
        raise ConfigurationError(
            f"simulation.n_ticks must be >= 1, got {sim.n_ticks}"
        )
    if sim.seed < 0:
        raise ConfigurationError("simulation.seed must be non-negative")

    pop = config.population
    pop.n_agents = check_integer("population.n_agents", pop.n_agents)
    pop.mean_degree = check_integer("population.mean_degree", pop.mean_degree)
    if pop.n_agents < 1:
        raise ConfigurationError(
            f"population.n_agents must be >= 1, got {pop.n_agents}"
        )
    if pop.mean_degree < 0 or pop.mean_degree % 2 != 0:
        raise ConfigurationError(
            f"population.mean_degree must be a non-negative even integer, "
            f"got {pop.mean_degree}"
        )
    if pop.mean_degree >= pop.n_agents:
        raise ConfigurationError(
            f"population.mean_degree ({pop.mean_degree}) must be < "
            f"n_agents ({pop.n_agents})"
        )
    pop.rewire_prob = check_probability("population.rewire_prob", pop.rewire_prob)

    pat = config.pathogen
    if not isinstance(pat.name, str) or not pat.name:
        raise ConfigurationError(
            f"pathogen.name must be a non-empty string, got {pat.name!r}"
        )
    if not isinstance(pat.init_state, str):
        raise ConfigurationError(
            f"pathogen.init_state must be a string, got {pat.init_state!r}"
        )
    try:
        init_state = parse_state(pat.init_state)
    except KeyError:
        raise ConfigurationError(
            f"pathogen.init_state must name a disease state, "
            f"got '{pat.init_state}'"
        ) from None
    if init_state == DiseaseState.SUSCEPTIBLE:
        raise ConfigurationError(
            "pathogen.init_state cannot be Susceptible (carriers are infected)"
        )
    pat.prob_infecting = check_probability("pathogen.prob_infecting",
                                           pat.prob_infecting)
    pat.prob_recovery = check_probability("pathogen.prob_recovery",
                                          pat.prob_recovery)
    pat.prevalence = check_probability("pathogen.prevalence", pat.prevalence)

    tr = config.transmission
    tr.prob_transmission = check_probability("transmission.prob_transmission",
                                             tr.prob_transmission)
    tr.prob_community = check_probability("transmission.prob_community",
                                          tr.prob_community)
    if not isinstance(tr.sampler, str) or tr.sampler not in SAMPLERS:
        raise ConfigurationError(
            f"transmission.sampler must be one of {sorted(SAMPLERS)}, "
            f"got '{tr.sampler}'"
        )

    params = config.model_parameters()

    # Infected-rule roulette: hospitalization and recovery compete
    total = params[PROB_HOSPITALIZATION] + params[PROB_RECOVERY]
    if total > 1.0:
        raise SamplingError(
            f"'{PROB_HOSPITALIZATION}' + '{PROB_RECOVERY}' must be <= 1, "
            f"got {total}"
        )


def load_config(
    base_path: Union[str, Path],
    scenario_path: Optional[Union[str, Path]] = None,
    sweep_overrides: Optional[Dict] = None,
) -> SimulationConfig:
    """Load and merge hierarchical YAML configuration.

    Merge order: base → scenario → sweep overrides.
    Each layer overrides only the fields it specifies.

    Args:
        base_path: Path to base configuration YAML.
        scenario_path: Optional scenario override YAML.
        sweep_overrides: Optional dict of parameter sweep overrides.

    Returns:
        Validated SimulationConfig.

    Raises:
        FileNotFoundError: If base_path or scenario_path doesn't exist.
        ConfigurationError: If validation fails.
    """
    base_path = Path(base_path)
    if not base_path.exists():
        raise FileNotFoundError(f"Config file not found: {base_path}")

    with open(base_path) as f:
        config_dict = yaml.safe_load(f) or {}

    if scenario_path is not None:
        scenario_path = Path(scenario_path)
        if not scenario_path.exists():
            raise FileNotFoundError(f"Scenario file not found: {scenario_path}")
        with open(scenario_path) as f:
            scenario = yaml.safe_load(f) or {}
        deep_merge(config_dict, scenario)

    if sweep_overrides is not None:
        deep_merge(config_dict, sweep_overrides)

    return config_from_dict(config_dict)


def config_from_dict(data: Dict) -> SimulationConfig:
    """Build and validate a SimulationConfig from an already merged dict."""
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"configuration must be a mapping, got {type(data).__name__}"
        )
    config = _yaml_to_config(data)
    validate_config(config)
    return config


def default_config() -> SimulationConfig:
    """Return a SimulationConfig with all default values."""
    config = SimulationConfig()
    validate_config(config)
    return config
