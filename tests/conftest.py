"""Shared fixtures for EpiLoc tests."""

import pytest


class ScriptedRng:
    """Stand-in Generator that replays fixed draws.

    ``random()`` pops from ``uniforms`` and ``integers()`` from ``ints``;
    running out raises IndexError, so tests also pin the number of draws.
    """

    def __init__(self, uniforms=(), ints=()):
        self.uniforms = list(uniforms)
        self.ints = list(ints)

    def random(self):
        return self.uniforms.pop(0)

    def integers(self, low, high=None):
        return self.ints.pop(0)


@pytest.fixture
def scripted_rng():
    """Factory: scripted_rng(uniforms=[...], ints=[...])."""
    return ScriptedRng
