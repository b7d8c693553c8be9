from __future__ import annotations

"""Exception types raised by the progression core."""


class DogDogError(Exception):
    """Base class for errors raised by dogdog."""


class NotInitializedError(DogDogError, RuntimeError):
    """A component was used before its data was loaded."""


class SessionError(DogDogError):
    """A session operation was called without an active session or for a stale question."""


class ContentError(DogDogError, ValueError):
    """The question dataset is malformed."""
