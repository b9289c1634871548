"""Verification helpers for :class:`~objmox.controller.ObjMox`.

Verifiers never raise on their own. Each returns the violations it finds so
the controller can report every unmet expectation in one
:class:`~objmox.errors.VerificationFailedError`.
"""

from __future__ import annotations

import dataclasses as dc
import typing as t

from ._formatting import describe_calls, describe_constraint, format_sections, numbered

if t.TYPE_CHECKING:  # pragma: no cover - used only for typing
    from .calls import Call
    from .expectations import Expectation


@dc.dataclass(slots=True, frozen=True)
class Violation:
    """A single unmet expectation found during verification."""

    label: str
    method: str
    expected: str
    actual: str
    details: tuple[tuple[str, str], ...] = ()
    expectation: Expectation | None = dc.field(default=None, repr=False, compare=False)

    def describe(self) -> str:
        """Return ``label.method: expected X, got Y`` plus indented details."""
        headline = (
            f"{self.label}.{self.method}: expected {self.expected}, got {self.actual}"
        )
        return format_sections(headline, self.details)


class CountVerifier:
    """Check that each expectation was called a permitted number of times."""

    def verify(self, expectations: t.Iterable[Expectation]) -> list[Violation]:
        """Return a violation for each expectation outside its count range."""
        violations: list[Violation] = []
        for exp in expectations:
            if exp.is_satisfied:
                continue
            violations.append(
                Violation(
                    label=exp.label,
                    method=exp.method,
                    expected=exp.describe_range(),
                    actual=str(exp.call_count),
                    expectation=exp,
                    details=(
                        ("Arguments", describe_constraint(exp)),
                        ("Recent calls", describe_calls(exp.history)),
                    ),
                )
            )
        return violations


class OrderVerifier:
    """Validate ordering of expectations marked with ``in_order``.

    Once a call has matched an ordered expectation, no call may match an
    ordered expectation declared before it.
    """

    def __init__(self, ordered: t.Iterable[Expectation]) -> None:
        self._ordered = sorted(ordered, key=lambda exp: exp.sequence)

    def verify(
        self, observed: t.Sequence[tuple[Expectation, Call]]
    ) -> list[Violation]:
        """Return a violation for the first out-of-order call in *observed*."""
        if not self._ordered:
            return []
        latest: Expectation | None = None
        for position, (exp, call) in enumerate(observed, start=1):
            if latest is not None and exp.sequence < latest.sequence:
                return [self._violation(exp, call, latest, position, observed)]
            latest = exp
        return []

    def _violation(
        self,
        exp: Expectation,
        call: Call,
        latest: Expectation,
        position: int,
        observed: t.Sequence[tuple[Expectation, Call]],
    ) -> Violation:
        expected_order = [
            f"{item.label}.{describe_constraint(item)}" for item in self._ordered
        ]
        observed_order = [f"{item.label}.{seen.describe()}" for item, seen in observed]
        return Violation(
            label=exp.label,
            method=exp.method,
            expected=f"before {latest.label}.{latest.method}",
            actual=f"call {position} after it",
            details=(
                ("Out of order call", f"{exp.label}.{call.describe()}"),
                ("Expected order", numbered(expected_order)),
                ("Observed order", numbered(observed_order)),
            ),
            expectation=exp,
        )


def format_violations(violations: t.Sequence[Violation]) -> str:
    """Return the aggregated verification failure message."""
    noun = "expectation" if len(violations) == 1 else "expectations"
    title = f"Verification failed: {len(violations)} unmet {noun}."
    body = "\n\n".join(violation.describe() for violation in violations)
    return f"{title}\n\n{body}"


__all__ = ["CountVerifier", "OrderVerifier", "Violation", "format_violations"]
