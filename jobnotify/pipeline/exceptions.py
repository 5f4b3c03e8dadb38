"""Pipeline-level exceptions."""


class PipelineError(Exception):
    """Base exception for cycle failures."""


class SnapshotUnavailableError(PipelineError):
    """No readable listing snapshot exists, so new listings cannot be computed.

    The notify cycle aborts rather than treat this as "no new listings".
    """


class MalformedSubscriptionError(PipelineError):
    """A stored subscription cannot be parsed. Only that subscription is skipped."""

    def __init__(self, message: str, subscription_id: str):
        super().__init__(message)
        self.subscription_id = subscription_id
