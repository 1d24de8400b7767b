"""Typed errors raised while ensuring dependencies."""
from __future__ import annotations

from typing import Optional


class EnsureError(Exception):
    """Base class for every error surfaced by the ensure engine.

    Attributes:
        message: Human readable description of the failure
        dependency: Identity of the dependency being ensured, if known
        operation: The operation that was attempted (clone, fetch, ...)
    """

    def __init__(
        self,
        message: str,
        dependency: Optional[str] = None,
        operation: Optional[str] = None,
    ) -> None:
        self.message = message
        self.dependency = dependency
        self.operation = operation
        super().__init__(message)

    def annotate(self, dependency: str, operation: Optional[str] = None) -> "EnsureError":
        """Attach dependency identity without replacing earlier annotations."""
        if self.dependency is None:
            self.dependency = dependency
        if self.operation is None and operation is not None:
            self.operation = operation
        return self

    def __str__(self) -> str:
        parts = []
        if self.dependency:
            parts.append(self.dependency)
        if self.operation:
            parts.append(self.operation)
        if parts:
            return f"{': '.join(parts)}: {self.message}"
        return self.message


class RepositoryAccessError(EnsureError):
    """The local or remote repository could not be read."""


class TransportError(EnsureError):
    """Network or authentication failure during clone, fetch or push."""


class OperationCancelledError(TransportError):
    """A network operation was aborted by cancellation or deadline."""


class NotFoundError(EnsureError):
    """No tag satisfies the requested constraint."""


class CorruptedWorkingCopyError(EnsureError):
    """The local path exists but is not a usable working copy."""


class ConstraintParseError(EnsureError):
    """Exception raised when a version constraint cannot be parsed."""

    def __init__(self, raw: str, reason: str = "unrecognised version constraint") -> None:
        self.raw = raw
        super().__init__(f"{reason}: {raw!r}", operation="parse constraint")


class ReleaseError(EnsureError):
    """A release could not be created."""
