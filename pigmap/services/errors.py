"""Errors raised by the live coordinator."""


class CoordinatorError(Exception):
    """Base class for coordinator failures surfaced to the gateway."""


class InvalidEventError(CoordinatorError, ValueError):
    """Publish input is not one of the known domain events."""


class SnapshotPersistError(CoordinatorError):
    """
    The durable cache snapshot could not be written.

    The write that triggered the publish is already committed; only live
    subscribers and the restart snapshot may be briefly stale.
    """
