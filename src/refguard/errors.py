"""Exception taxonomy for ref update evaluation."""

from __future__ import annotations


class RefGuardError(Exception):
    """Base class for refguard errors."""


class PolicyViolation(RefGuardError):
    """The update breaks configured policy. Expected; never shown as a traceback."""

    def __init__(self, message: str, hint: str | None = None) -> None:
        self.message = message
        self.hint = hint or None
        super().__init__(message)


class UnknownRefNamespace(PolicyViolation):
    """The ref is outside refs/tags, refs/heads and refs/remotes."""


class CollaboratorFailure(RefGuardError):
    """The object store or the config provider failed or returned garbage.

    Always turned into a rejection: the hook fails closed.
    """
