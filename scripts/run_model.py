#!/usr/bin/env python3
"""Run the location-aware network epidemic model from a YAML config.

Loads and validates the configuration, runs the simulation, prints the
summary (optionally every infection event) and can save figures.

Usage:
    python scripts/run_model.py configs/default.yaml
    python scripts/run_model.py configs/default.yaml --seed 7 --ticks 200
    python scripts/run_model.py configs/default.yaml --sampler uniform --show-events
    python scripts/run_model.py configs/default.yaml --plot-dir results/figs -v
"""

import argparse
import logging
import sys
from pathlib import Path

# ── Project imports ──────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

from epiloc.config import config_from_dict, load_config
from epiloc.errors import EpiLocError
from epiloc.model import format_summary, run_network_simulation

logger = logging.getLogger("run_model")


def setup_logging(verbose: bool) -> None:
    """Configure the root logger for console output."""
    logging.captureWarnings(True)
    fmt = logging.Formatter(
        "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    sh = logging.StreamHandler(sys.stderr)
    sh.setFormatter(fmt)
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.handlers[:] = [sh]


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Location-aware network epidemic simulation",
    )
    parser.add_argument("config", nargs="?", default=None,
                        help="Base YAML config (defaults if omitted)")
    parser.add_argument("--scenario", default=None,
                        help="Scenario YAML merged over the base config")
    parser.add_argument("--seed", type=int, default=None,
                        help="Override simulation.seed")
    parser.add_argument("--ticks", type=int, default=None,
                        help="Override simulation.n_ticks")
    parser.add_argument("--sampler", choices=["sequential", "uniform"],
                        default=None, help="Override transmission.sampler")
    parser.add_argument("--show-events", action="store_true",
                        help="Print every infection event")
    parser.add_argument("--plot-dir", default=None,
                        help="Directory to save summary figures")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Per-tick debug logging")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(args.verbose)

    if args.scenario is not None and args.config is None:
        logger.error("--scenario needs a base config to merge over")
        return 2

    overrides = {}
    if args.seed is not None:
        overrides.setdefault('simulation', {})['seed'] = args.seed
    if args.ticks is not None:
        overrides.setdefault('simulation', {})['n_ticks'] = args.ticks
    if args.sampler is not None:
        overrides.setdefault('transmission', {})['sampler'] = args.sampler

    try:
        if args.config is not None:
            config = load_config(args.config, scenario_path=args.scenario,
                                 sweep_overrides=overrides)
        else:
            config = config_from_dict(overrides)
        result = run_network_simulation(config)
    except (EpiLocError, FileNotFoundError) as e:
        logger.error("%s: %s", type(e).__name__, e)
        return 1

    print(format_summary(result, show_events=args.show_events))

    if args.plot_dir is not None:
        from epiloc.viz import (
            plot_infections_by_location,
            plot_location_distribution,
            plot_state_trajectory,
        )
        out = Path(args.plot_dir)
        out.mkdir(parents=True, exist_ok=True)
        plot_state_trajectory(result, save_path=str(out / "state_trajectory.png"))
        plot_location_distribution(result, save_path=str(out / "location_distribution.png"))
        plot_infections_by_location(result.infection_log,
                                    save_path=str(out / "infections_by_location.png"))
        logger.info("Saved figures to %s", out)

    return 0


if __name__ == "__main__":
    sys.exit(main())
