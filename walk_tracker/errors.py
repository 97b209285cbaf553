"""Exceptions raised by walk_tracker."""

from __future__ import annotations


class WalkTrackerError(Exception):
    """Base class for all walk_tracker errors."""


class PreconditionViolation(WalkTrackerError):
    """An operation was called in a state that does not allow it.

    The operation is a no-op: nothing was changed.
    """


class SensorUnavailable(WalkTrackerError):
    """The position source could not deliver a sample (timeout, no fix)."""


class PermissionDenied(WalkTrackerError):
    """The position source refused access to location."""


class PersistenceError(WalkTrackerError):
    """The walk store could not be read or written."""
