"""Errors raised around the redistribution core."""


class RedistributionError(Exception):
    """Base class for redistribution failures outside the engine."""


class NoPendingRedistributionError(RedistributionError):
    """Raised when accepting or inspecting a result that does not exist."""


class RedistributionPendingError(RedistributionError):
    """Raised when a trigger fires while another result awaits confirmation."""


class RedistributionCommitError(RedistributionError):
    """Raised when an accepted result could not be persisted."""


class WindowNotFoundError(RedistributionError):
    """Raised when a referenced meal window is not in the day's snapshot."""
