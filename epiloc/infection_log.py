"""Append-only record of infection events.

One InfectionLog is owned by each run and handed to the update rules
through the tick context. Events are stored in the order the driver
processed agents, tagged with the tick in which they happened.
"""

from __future__ import annotations

from typing import Iterator, List, Tuple

import numpy as np

from epiloc.types import N_LOCATIONS, InfectionEvent, Location

EVENT_DTYPE = np.dtype([
    ('tick',           np.int32),
    ('susceptible_id', np.int32),
    ('infector_id',    np.int32),
    ('location',       np.int8),
])


class InfectionLog:
    """Ordered, append-only sequence of InfectionEvent."""

    def __init__(self):
        self._events: List[InfectionEvent] = []
        self._ticks: List[int] = []
        self.current_tick: int = 0

    def append(self, susceptible_id: int, infector_id: int,
               location: Location) -> InfectionEvent:
        """Record one transmission in the current tick."""
        event = InfectionEvent(int(susceptible_id), int(infector_id),
                               Location(location))
        self._events.append(event)
        self._ticks.append(self.current_tick)
        return event

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[InfectionEvent]:
        return iter(self._events)

    def __getitem__(self, idx):
        if isinstance(idx, slice):
            return tuple(self._events[idx])
        return self._events[idx]

    @property
    def events(self) -> Tuple[InfectionEvent, ...]:
        """Read-only copy of all events."""
        return tuple(self._events)

    def events_in_tick(self, tick: int) -> Tuple[InfectionEvent, ...]:
        return tuple(e for e, t in zip(self._events, self._ticks) if t == tick)

    def to_array(self) -> np.ndarray:
        """Structured array (EVENT_DTYPE) of every event, in log order."""
        arr = np.zeros(len(self._events), dtype=EVENT_DTYPE)
        if self._events:
            arr['tick'] = self._ticks
            arr['susceptible_id'] = [e.susceptible_id for e in self._events]
            arr['infector_id'] = [e.infector_id for e in self._events]
            arr['location'] = [e.location for e in self._events]
        return arr

    def count_by_location(self) -> np.ndarray:
        """(N_LOCATIONS,) number of infections per location."""
        locs = np.fromiter((e.location for e in self._events), dtype=np.int64,
                           count=len(self._events))
        return np.bincount(locs, minlength=N_LOCATIONS)

    def __repr__(self) -> str:
        return f"InfectionLog(n_events={len(self)})"
