"""EpiLoc: location-aware network epidemic simulator.

A discrete-time, individual-based model of a single circulating pathogen:
  - Fixed small-world contact graph between agents
  - Three disease states: Susceptible, Infected, Infected (hospitalized)
  - Three locations: Community, Hospital, Home; reassigned every tick
  - Transmission only between neighbors sharing a location
  - Per-tick snapshot isolation so results do not depend on update order
  - Append-only infection log of (susceptible, infector, location) events
"""

import logging

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())
