"""Tests for epiloc.config — configuration loading and validation."""

from pathlib import Path

import pytest
import yaml

from epiloc.config import (
    DISCHARGE_INFECTED,
    PROB_HOSPITALIZATION,
    PROB_RECOVERY,
    ModelParameters,
    PathogenSection,
    SimulationConfig,
    config_from_dict,
    deep_merge,
    default_config,
    load_config,
    validate_config,
)
from epiloc.errors import ConfigurationError, SamplingError
from epiloc.types import DiseaseState


# ── deep_merge tests ──────────────────────────────────────────────────

class TestDeepMerge:
    def test_simple_override(self):
        assert deep_merge({'a': 1, 'b': 2}, {'b': 3}) == {'a': 1, 'b': 3}

    def test_nested_merge(self):
        base = {'x': {'a': 1, 'b': 2}, 'y': 10}
        result = deep_merge(base, {'x': {'b': 3, 'c': 4}})
        assert result == {'x': {'a': 1, 'b': 3, 'c': 4}, 'y': 10}

    def test_override_dict_with_scalar(self):
        assert deep_merge({'a': {'nested': 1}}, {'a': 'replaced'}) == {'a': 'replaced'}

    def test_empty_override(self):
        assert deep_merge({'a': 1}, {}) == {'a': 1}


# ── default_config tests ─────────────────────────────────────────────

class TestDefaultConfig:
    def test_creates_valid_config(self):
        assert isinstance(default_config(), SimulationConfig)

    def test_default_values(self):
        config = default_config()
        assert config.simulation.n_ticks == 100
        assert config.simulation.seed == 1231
        assert config.population.n_agents == 1000
        assert config.population.mean_degree == 4
        assert config.population.rewire_prob == 0.1
        assert config.pathogen.name == "MRSA"
        assert config.pathogen.prevalence == 0.01
        assert config.transmission.prob_transmission == 0.3
        assert config.transmission.sampler == "sequential"

    def test_default_parameters(self):
        params = default_config().model_parameters()
        assert params[PROB_HOSPITALIZATION] == 0.1
        assert params[PROB_RECOVERY] == 0.0
        assert params[DISCHARGE_INFECTED] == 0.1

    def test_sections_not_shared(self):
        a, b = SimulationConfig(), SimulationConfig()
        a.parameters[PROB_RECOVERY] = 0.5
        assert b.parameters[PROB_RECOVERY] == 0.0


# ── YAML loading tests ───────────────────────────────────────────────

def _write_yaml(path: Path, content: dict) -> Path:
    with open(path, 'w') as f:
        yaml.dump(content, f)
    return path


class TestLoadConfig:
    def test_load_from_yaml(self, tmp_path):
        path = _write_yaml(tmp_path / "test.yaml", {
            'simulation': {'seed': 99, 'n_ticks': 10},
            'population': {'n_agents': 50},
        })
        config = load_config(path)
        assert config.simulation.seed == 99
        assert config.simulation.n_ticks == 10
        assert config.population.n_agents == 50
        # Unspecified sections get defaults
        assert config.pathogen.name == "MRSA"

    def test_named_parameters_merge_over_defaults(self, tmp_path):
        path = _write_yaml(tmp_path / "p.yaml", {
            'parameters': {'Prob recovery': 0.2},
        })
        params = load_config(path).model_parameters()
        assert params[PROB_RECOVERY] == 0.2
        assert params[PROB_HOSPITALIZATION] == 0.1

    def test_unknown_keys_ignored(self, tmp_path):
        path = _write_yaml(tmp_path / "u.yaml", {
            'simulation': {'seed': 5, 'not_a_field': 1},
            'unknown_section': {'x': 1},
        })
        assert load_config(path).simulation.seed == 5

    def test_scenario_override(self, tmp_path):
        base = _write_yaml(tmp_path / "base.yaml", {
            'simulation': {'seed': 42, 'n_ticks': 50},
        })
        scen = _write_yaml(tmp_path / "scen.yaml", {
            'simulation': {'n_ticks': 20},
            'transmission': {'sampler': 'uniform'},
        })
        config = load_config(base, scenario_path=scen)
        assert config.simulation.n_ticks == 20
        assert config.simulation.seed == 42
        assert config.transmission.sampler == 'uniform'

    def test_sweep_overrides_applied_last(self, tmp_path):
        base = _write_yaml(tmp_path / "base.yaml", {'simulation': {'seed': 42}})
        config = load_config(base, sweep_overrides={'simulation': {'seed': 123}})
        assert config.simulation.seed == 123

    def test_file_not_found(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nonexistent.yaml")

    def test_invalid_yaml_values_rejected(self, tmp_path):
        path = _write_yaml(tmp_path / "bad.yaml", {
            'parameters': {'Discharge infected': 1.5},
        })
        with pytest.raises(ConfigurationError, match="Discharge infected"):
            load_config(path)

    def test_parameters_must_be_mapping(self, tmp_path):
        path = _write_yaml(tmp_path / "bad.yaml", {'parameters': [0.1, 0.2]})
        with pytest.raises(ConfigurationError, match="mapping"):
            load_config(path)

    def test_load_real_default_yaml(self):
        """Load the shipped configs/default.yaml."""
        default_path = Path(__file__).parent.parent / "configs" / "default.yaml"
        config = load_config(default_path)
        assert config.simulation.seed == 1231
        assert config.population.n_agents == 1000
        assert config.model_parameters()[DISCHARGE_INFECTED] == 0.1


# ── ModelParameters tests ─────────────────────────────────────────────

class TestModelParameters:
    def _values(self, **overrides):
        values = {
            PROB_HOSPITALIZATION: 0.1,
            PROB_RECOVERY: 0.0,
            DISCHARGE_INFECTED: 0.1,
        }
        values.update(overrides)
        return values

    def test_lookup_by_name(self):
        params = ModelParameters(self._values())
        assert params["Prob hospitalization"] == 0.1
        assert len(params) == 3
        assert set(params) == {PROB_HOSPITALIZATION, PROB_RECOVERY, DISCHARGE_INFECTED}

    def test_missing_required(self):
        values = self._values()
        del values[PROB_RECOVERY]
        with pytest.raises(ConfigurationError, match="Prob recovery"):
            ModelParameters(values)

    def test_unknown_name_lookup(self):
        params = ModelParameters(self._values())
        with pytest.raises(ConfigurationError, match="Unknown model parameter"):
            params["Prob death"]

    @pytest.mark.parametrize("bad", [-0.1, 1.01, float('nan'), "high", None])
    def test_out_of_range(self, bad):
        with pytest.raises(ConfigurationError):
            ModelParameters(self._values(**{'Prob hospitalization': bad}))

    def test_bounds_inclusive(self):
        params = ModelParameters({
            PROB_HOSPITALIZATION: 0.0,
            PROB_RECOVERY: 1.0,
            DISCHARGE_INFECTED: 1.0,
        })
        assert params[PROB_RECOVERY] == 1.0

    def test_extra_parameters_validated(self):
        with pytest.raises(ConfigurationError, match="Extra"):
            ModelParameters(self._values(Extra=2.0))

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            ModelParameters({})


# ── Validation tests ──────────────────────────────────────────────────

class TestValidation:
    def test_defaults_valid(self):
        validate_config(SimulationConfig())

    def test_ticks_positive(self):
        config = SimulationConfig()
        config.simulation.n_ticks = 0
        with pytest.raises(ConfigurationError, match="n_ticks"):
            validate_config(config)

    def test_negative_seed(self):
        config = SimulationConfig()
        config.simulation.seed = -1
        with pytest.raises(ConfigurationError, match="seed"):
            validate_config(config)

    def test_odd_mean_degree(self):
        config = SimulationConfig()
        config.population.mean_degree = 3
        with pytest.raises(ConfigurationError, match="mean_degree"):
            validate_config(config)

    def test_mean_degree_below_population(self):
        config = SimulationConfig()
        config.population.n_agents = 4
        config.population.mean_degree = 4
        with pytest.raises(ConfigurationError, match="mean_degree"):
            validate_config(config)

    def test_rewire_prob_range(self):
        config = SimulationConfig()
        config.population.rewire_prob = 1.5
        with pytest.raises(ConfigurationError, match="rewire_prob"):
            validate_config(config)

    def test_prevalence_range(self):
        config = SimulationConfig()
        config.pathogen.prevalence = -0.01
        with pytest.raises(ConfigurationError, match="prevalence"):
            validate_config(config)

    def test_unknown_init_state(self):
        config = SimulationConfig()
        config.pathogen.init_state = "Zombie"
        with pytest.raises(ConfigurationError, match="init_state"):
            validate_config(config)

    def test_susceptible_init_state(self):
        config = SimulationConfig()
        config.pathogen.init_state = "Susceptible"
        with pytest.raises(ConfigurationError, match="init_state"):
            validate_config(config)

    def test_unknown_sampler(self):
        config = SimulationConfig()
        config.transmission.sampler = "roulette"
        with pytest.raises(ConfigurationError, match="sampler"):
            validate_config(config)

    def test_transmission_prob_range(self):
        config = SimulationConfig()
        config.transmission.prob_transmission = 2.0
        with pytest.raises(ConfigurationError, match="prob_transmission"):
            validate_config(config)

    def test_parameter_out_of_range(self):
        config = SimulationConfig()
        config.parameters[PROB_RECOVERY] = 1.2
        with pytest.raises(ConfigurationError, match="Prob recovery"):
            validate_config(config)

    def test_missing_parameter(self):
        config = SimulationConfig()
        del config.parameters[DISCHARGE_INFECTED]
        with pytest.raises(ConfigurationError, match="Discharge infected"):
            validate_config(config)

    def test_roulette_weights_above_one(self):
        """Hospitalization and recovery compete; their sum must be <= 1."""
        config = SimulationConfig()
        config.parameters[PROB_HOSPITALIZATION] = 0.6
        config.parameters[PROB_RECOVERY] = 0.5
        with pytest.raises(SamplingError):
            validate_config(config)

    def test_roulette_weights_exactly_one(self):
        config = SimulationConfig()
        config.parameters[PROB_HOSPITALIZATION] = 0.5
        config.parameters[PROB_RECOVERY] = 0.5
        validate_config(config)  # should not raise


class TestPathogenSection:
    def test_build(self):
        p = PathogenSection(name="X", init_state="Infected (hospitalized)").build()
        assert p.name == "X"
        assert p.init_state == DiseaseState.INFECTED_HOSPITALIZED


class TestConfigFromDict:
    def test_empty_dict_gives_defaults(self):
        config = config_from_dict({})
        assert config.simulation.seed == 1231

    def test_partial_sections(self):
        config = config_from_dict({'transmission': {'sampler': 'uniform'}})
        assert config.transmission.sampler == 'uniform'
        assert config.transmission.prob_transmission == 0.3

    def test_validates(self):
        with pytest.raises(ConfigurationError):
            config_from_dict({'simulation': {'n_ticks': 0}})

    def test_rejects_non_mapping(self):
        with pytest.raises(ConfigurationError, match="mapping"):
            config_from_dict(['not', 'a', 'mapping'])


class TestFieldTypes:
    """Counts must be integers and probabilities real numbers."""

    @pytest.mark.parametrize("section, key", [
        ('transmission', 'prob_community'),
        ('transmission', 'prob_transmission'),
        ('pathogen', 'prevalence'),
        ('pathogen', 'prob_infecting'),
        ('population', 'rewire_prob'),
    ])
    def test_quoted_probability_rejected(self, section, key):
        with pytest.raises(ConfigurationError, match=f"{section}.{key} must be a number"):
            config_from_dict({section: {key: "0.5"}})

    def test_quoted_named_parameter_rejected(self):
        with pytest.raises(ConfigurationError, match="Prob recovery"):
            config_from_dict({'parameters': {PROB_RECOVERY: "0.1"}})

    def test_boolean_probability_rejected(self):
        with pytest.raises(ConfigurationError, match="prob_community"):
            config_from_dict({'transmission': {'prob_community': True}})

    @pytest.mark.parametrize("section, key, value", [
        ('population', 'n_agents', 50.5),
        ('population', 'n_agents', 50.0),
        ('population', 'mean_degree', 4.0),
        ('simulation', 'n_ticks', 10.0),
        ('simulation', 'seed', "7"),
    ])
    def test_non_integer_count_rejected(self, section, key, value):
        with pytest.raises(ConfigurationError, match=f"{section}.{key} must be an integer"):
            config_from_dict({section: {key: value}})

    def test_integer_probability_normalized(self):
        config = config_from_dict({'transmission': {'prob_community': 1},
                                   'pathogen': {'prevalence': 0}})
        assert isinstance(config.transmission.prob_community, float)
        assert config.transmission.prob_community == 1.0
        assert isinstance(config.pathogen.prevalence, float)

    def test_quoted_value_in_yaml_file(self, tmp_path):
        path = tmp_path / "quoted.yaml"
        path.write_text('transmission:\n  prob_community: "0.5"\n')
        with pytest.raises(ConfigurationError, match="prob_community"):
            load_config(path)

    def test_non_string_sampler(self):
        with pytest.raises(ConfigurationError, match="sampler"):
            config_from_dict({'transmission': {'sampler': ['uniform']}})

    def test_non_string_init_state(self):
        with pytest.raises(ConfigurationError, match="init_state"):
            config_from_dict({'pathogen': {'init_state': 1}})


class TestScenarioPath:
    def test_missing_scenario_file(self, tmp_path):
        base = _write_yaml(tmp_path / "base.yaml", {'simulation': {'seed': 1}})
        with pytest.raises(FileNotFoundError, match="Scenario"):
            load_config(base, scenario_path=tmp_path / "missing.yaml")
