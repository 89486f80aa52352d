"""Error taxonomy for scoring and tiered memory operations.

- ``ConnectivityError``: a tier is unreachable. The orchestrator degrades
  that tier to an empty result and logs a warning.
- ``ValidationError``: malformed memory or interaction input. Raised before
  any scoring happens, never coerced.
- ``ComputationError``: embedding or similarity failure. The semantic tier is
  left out of that call's results.
- ``DataIntegrityError``: the durable tier failed to store a message. Always
  surfaced to the caller.
"""


class AttuneError(Exception):
    """Base class for all engine errors."""


class ConnectivityError(AttuneError):
    """A storage tier could not be reached."""

    def __init__(self, tier: str, message: str) -> None:
        super().__init__(f"{tier}: {message}")
        self.tier = tier


class ValidationError(AttuneError, ValueError):
    """Input rejected before scoring."""


class ComputationError(AttuneError):
    """Embedding generation or similarity search failed."""


class DataIntegrityError(AttuneError):
    """A source-of-truth write did not complete."""
