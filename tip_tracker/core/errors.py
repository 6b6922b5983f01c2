"""
Error kinds raised at collaborator boundaries.

Aggregation code never raises these; they are produced where the store,
identity provider or text-generation service is called.
"""

from dataclasses import dataclass


class TipTrackerError(Exception):
    """Base class for all tip tracker errors."""


class ConfigurationError(TipTrackerError):
    """Backing store credentials or settings are absent or invalid."""


class AuthenticationError(TipTrackerError):
    """No stable user identity could be established."""


class SyncError(TipTrackerError):
    """Subscription or fetch against the event store failed."""


class WriteError(TipTrackerError):
    """Persisting a new tip failed."""


class GenerationError(TipTrackerError):
    """The text-generation service failed or returned nothing usable."""


@dataclass(frozen=True)
class InsufficientData:
    """Soft result returned when there is not enough data for a prompt."""
    message: str

    def __str__(self) -> str:
        return self.message
