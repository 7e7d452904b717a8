"""Error taxonomy for EpiLoc.

Every failure is fatal to the run: there is no partial-tick rollback.
  - ConfigurationError: missing or out-of-range named parameter, bad config
  - SamplingError: roulette weights that cannot be probabilities
  - InvariantViolation: internal-consistency fault during a tick
"""


class EpiLocError(Exception):
    """Base class for all EpiLoc errors."""


class ConfigurationError(EpiLocError, ValueError):
    """Invalid configuration; raised before the run starts."""


class SamplingError(EpiLocError, ValueError):
    """Weighted-categorical draw given weights summing above 1 (or negative)."""


class InvariantViolation(EpiLocError, RuntimeError):
    """A rule observed a state it must never see.

    Raised when an update rule is invoked for an agent whose snapshot state
    is not the rule's state, or when a mutation would break the
    pathogen-attached-iff-infected invariant.
    """
