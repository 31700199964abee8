"""Shared exception hierarchy for blockshot."""


class BlockshotError(Exception):
    """Base exception for every error raised by blockshot."""


# Chain


class ChainClientError(BlockshotError):
    """Base exception for chain endpoint errors."""

    def __init__(self, endpoint: str, reason: str) -> None:
        self.endpoint = endpoint
        self.reason = reason
        super().__init__(f"{endpoint}: {reason}")


class EndpointUnreachableError(ChainClientError):
    """Endpoint failed, timed out, or returned a malformed answer."""


class BlockNotFoundError(ChainClientError):
    """Endpoint answered but does not have the requested block."""


class TransactionRejectedError(ChainClientError):
    """Endpoint answered but refused the transaction."""


# Prediction


class PredictionError(BlockshotError):
    """Base exception for block time estimation and target prediction."""


class InsufficientHistoryError(PredictionError):
    """A valid average block time cannot be computed from the sample."""


class EventAlreadyPassedError(PredictionError):
    """The event being scheduled against is already in the past."""

    def __init__(self, seconds_until: float) -> None:
        self.seconds_until = seconds_until
        super().__init__(f"Event already passed ({abs(seconds_until):.0f}s ago)")


# Scheduling


class SchedulingError(BlockshotError):
    """Base exception for waiting on a submission block."""


class NoValidTargetError(SchedulingError):
    """Every endpoint kept failing for too many consecutive rounds."""


class SchedulingCancelledError(SchedulingError):
    """The wait was cancelled by a stop signal."""


# Configuration


class ConfigurationError(BlockshotError):
    """Settings or work items are unusable; fatal at startup."""


class WorkItemError(BlockshotError):
    """A stored work item failed validation."""


__all__ = [
    "BlockNotFoundError",
    "BlockshotError",
    "ChainClientError",
    "ConfigurationError",
    "EndpointUnreachableError",
    "EventAlreadyPassedError",
    "InsufficientHistoryError",
    "NoValidTargetError",
    "PredictionError",
    "SchedulingCancelledError",
    "SchedulingError",
    "TransactionRejectedError",
    "WorkItemError",
]
