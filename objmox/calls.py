"""Value types describing a single call received by a mock."""

from __future__ import annotations

import dataclasses as dc
import typing as t

_REPR_FIELD_LIMIT: t.Final[int] = 80


def _shorten(text: str, limit: int = _REPR_FIELD_LIMIT) -> str:
    if len(text) <= limit:
        return text
    return f"{text[: limit - 3]}..."


def format_arguments(
    args: t.Sequence[object], kwargs: t.Mapping[str, object] | None = None
) -> str:
    """Return ``args`` and ``kwargs`` rendered as a call signature body."""
    parts = [_shorten(repr(arg)) for arg in args]
    if kwargs:
        parts.extend(f"{key}={_shorten(repr(kwargs[key]))}" for key in sorted(kwargs))
    return ", ".join(parts)


@dc.dataclass(slots=True, frozen=True)
class Call:
    """A method call received by a mock handle."""

    method: str
    args: tuple[object, ...] = ()
    kwargs: dict[str, object] = dc.field(default_factory=dict)

    @property
    def block(self) -> t.Callable[..., object] | None:
        """Return the trailing callable positional argument, if any."""
        if self.args and callable(self.args[-1]):
            return t.cast("t.Callable[..., object]", self.args[-1])
        return None

    def describe(self) -> str:
        """Return ``method(args)`` for diagnostics."""
        return f"{self.method}({format_arguments(self.args, self.kwargs)})"

    def __repr__(self) -> str:
        """Return a compact representation of the call."""
        return f"Call({self.describe()})"


@dc.dataclass(slots=True, frozen=True)
class Invocation:
    """Journal entry pairing a :class:`Call` with the handle that received it."""

    label: str
    call: Call

    def describe(self) -> str:
        """Return ``label.method(args)`` for diagnostics."""
        return f"{self.label}.{self.call.describe()}"


__all__ = ["Call", "Invocation", "format_arguments"]
