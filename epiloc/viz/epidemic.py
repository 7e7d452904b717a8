"""Epidemic visualizations for EpiLoc.

Every function:
  - Accepts a NetworkSimResult (or its InfectionLog) as input
  - Returns a matplotlib Figure
  - Has an optional ``save_path`` parameter (saves PNG when given)
  - Uses the shared dark theme from ``epiloc.viz.style``

matplotlib backend is forced to Agg (no display) on import.
"""

from __future__ import annotations

import matplotlib
matplotlib.use('Agg')

from typing import Optional, TYPE_CHECKING

import matplotlib.pyplot as plt
import numpy as np

from epiloc.infection_log import InfectionLog
from epiloc.types import LOCATION_NAMES, STATE_NAMES, DiseaseState, Location
from epiloc.viz.style import (
    LOCATION_COLORS,
    STATE_COLORS,
    TEXT_COLOR,
    dark_figure,
    dark_legend,
    save_figure,
)

if TYPE_CHECKING:
    from epiloc.model import NetworkSimResult


def plot_state_trajectory(
    result: 'NetworkSimResult',
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Agents per disease state at every tick, with new infections as bars."""
    fig, ax = dark_figure(figsize=(12, 6))
    ticks = np.arange(result.tick_counts.shape[0])

    for state in DiseaseState:
        ax.plot(ticks, result.tick_counts[:, state], linewidth=2,
                color=STATE_COLORS[state], label=STATE_NAMES[state])

    ax.bar(np.arange(1, len(result.tick_new_infections) + 1),
           result.tick_new_infections, color=TEXT_COLOR, alpha=0.25,
           width=1.0, label='New infections')

    ax.set_xlabel('Tick', fontsize=12)
    ax.set_ylabel('Agents', fontsize=12)
    ax.set_title('Disease states over time', fontsize=15, fontweight='bold')
    ax.set_ylim(bottom=0)
    dark_legend(ax, fontsize=10, loc='upper right')

    if save_path:
        save_figure(fig, save_path)
    return fig


def plot_location_distribution(
    result: 'NetworkSimResult',
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Final agents per state, split by location (grouped bars)."""
    fig, ax = dark_figure(figsize=(10, 6))
    counts = result.state_location_counts()
    x = np.arange(len(DiseaseState))
    width = 0.8 / len(Location)

    for k, loc in enumerate(Location):
        ax.bar(x + (k - 1) * width, counts[:, loc], width=width,
               color=LOCATION_COLORS[loc], label=LOCATION_NAMES[loc])

    ax.set_xticks(x)
    ax.set_xticklabels([STATE_NAMES[s] for s in DiseaseState])
    ax.set_ylabel('Agents', fontsize=12)
    ax.set_title('Location-wise distribution of states',
                 fontsize=15, fontweight='bold')
    dark_legend(ax, fontsize=10)

    if save_path:
        save_figure(fig, save_path)
    return fig


def plot_infections_by_location(
    log: InfectionLog,
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Where transmissions happened, from the infection log."""
    fig, ax = dark_figure(figsize=(8, 6))
    counts = log.count_by_location()
    labels = [LOCATION_NAMES[loc] for loc in Location]
    colors = [LOCATION_COLORS[loc] for loc in Location]
    ax.bar(labels, counts, color=colors)
    for k, c in enumerate(counts):
        ax.text(k, c, str(int(c)), ha='center', va='bottom', color=TEXT_COLOR)
    ax.set_ylabel('Infection events', fontsize=12)
    ax.set_title(f'Infections by location (n={len(log)})',
                 fontsize=15, fontweight='bold')

    if save_path:
        save_figure(fig, save_path)
    return fig
