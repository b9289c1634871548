"""Message formatting helpers shared by dispatch errors and verifiers."""

from __future__ import annotations

import typing as t
from textwrap import indent

from .calls import format_arguments

if t.TYPE_CHECKING:  # pragma: no cover - used only for typing
    from .calls import Call
    from .expectations import Expectation


def format_sections(title: str, sections: t.Sequence[tuple[str, str]]) -> str:
    """Return *title* followed by indented ``label:`` blocks."""
    parts = [title]
    for label, body in sections:
        if not body:
            continue
        parts.append("")
        parts.append(f"{label}:")
        parts.append(indent(body, "  "))
    return "\n".join(parts)


def numbered(entries: t.Sequence[str], *, start: int = 1) -> str:
    """Return *entries* as a numbered list, or ``(none)`` when empty."""
    if not entries:
        return "(none)"
    lines: list[str] = []
    for index, entry in enumerate(entries, start=start):
        entry_lines = entry.splitlines() or [""]
        lines.append(f"{index}. {entry_lines[0]}")
        lines.extend(f"   {extra}" for extra in entry_lines[1:])
    return "\n".join(lines)


def describe_constraint(exp: Expectation) -> str:
    """Return ``method(constraints)`` for *exp*."""
    if exp.args is None and exp.kwargs is None:
        return f"{exp.method}(...)"
    args_repr = format_arguments(exp.args or (), exp.kwargs)
    return f"{exp.method}({args_repr})"


def describe_calls(calls: t.Iterable[Call]) -> str:
    """Return one line per recorded call, or ``(none)`` when empty."""
    lines = [call.describe() for call in calls]
    if not lines:
        return "(none)"
    return "\n".join(lines)


def list_methods(names: t.Iterable[str]) -> str:
    """Return a sorted, comma separated list of method names."""
    ordered = sorted(names)
    if not ordered:
        return "(none)"
    return ", ".join(repr(name) for name in ordered)
