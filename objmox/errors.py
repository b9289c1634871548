"""Exception hierarchy for objmox."""

from __future__ import annotations

import typing as t

if t.TYPE_CHECKING:  # pragma: no cover - used only for typing
    from .verifiers import Violation


class ObjMoxError(Exception):
    """Base class for all objmox errors."""


class LifecycleError(ObjMoxError):
    """Raised when the controller or a handle is used in the wrong phase."""


class UnexpectedCallError(ObjMoxError, AttributeError):
    """Raised when a handle receives a call for a method it never declared."""

    def __init__(self, message: str, *, label: str, method: str) -> None:
        super().__init__(message)
        self.label = label
        self.method = method


class NoMatchingExpectationError(ObjMoxError):
    """Raised when no declared expectation accepts the call arguments."""

    def __init__(self, message: str, *, label: str, method: str) -> None:
        super().__init__(message)
        self.label = label
        self.method = method


class VerificationFailedError(ObjMoxError, AssertionError):
    """Aggregate of every unmet expectation found during verification."""

    def __init__(self, message: str, violations: t.Sequence[Violation]) -> None:
        super().__init__(message)
        self.violations = list(violations)


class InterceptionError(ObjMoxError):
    """Raised when an interception rule is installed or restored incorrectly."""


__all__ = [
    "InterceptionError",
    "LifecycleError",
    "NoMatchingExpectationError",
    "ObjMoxError",
    "UnexpectedCallError",
    "VerificationFailedError",
]
