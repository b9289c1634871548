"""Comparator classes used for argument matching.

Any object passed to :meth:`~objmox.expectations.Expectation.with_args` that
is an instance of :class:`Comparator` is evaluated against the actual value;
every other object is compared by equality.
"""

from __future__ import annotations

import dataclasses as dc
import re
import typing as t


class Comparator:
    """Base class for values that decide whether an argument matches."""

    __slots__ = ()

    def __call__(self, value: object) -> bool:
        """Return ``True`` if *value* satisfies the comparison."""
        raise NotImplementedError


@dc.dataclass(frozen=True, slots=True)
class Any(Comparator):
    """Match any value."""

    def __call__(self, value: object) -> bool:
        """Return ``True`` for any input."""
        return True


@dc.dataclass(frozen=True, slots=True)
class IsA(Comparator):
    """Match values that are instances of ``typ``."""

    typ: type | tuple[type, ...]

    def __call__(self, value: object) -> bool:
        """Return ``True`` when ``isinstance(value, typ)``."""
        return isinstance(value, self.typ)


@dc.dataclass(frozen=True, slots=True)
class AnyCallable(Comparator):
    """Match any callable, such as a callback passed as the last argument."""

    def __call__(self, value: object) -> bool:
        """Return ``True`` when *value* can be called."""
        return callable(value)


@dc.dataclass(frozen=True, slots=True)
class AnyArgs(Comparator):
    """Match any number of remaining positional arguments.

    Only meaningful as the final positional constraint; elsewhere it behaves
    like :class:`Any` for a single argument.
    """

    def __call__(self, value: object) -> bool:
        """Return ``True`` for any input."""
        return True


@dc.dataclass(frozen=True, slots=True)
class Regex(Comparator):
    """Match if *value* is a string matching ``pattern``."""

    pattern: str
    _compiled: re.Pattern[str] = dc.field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        """Compile ``pattern`` eagerly so malformed patterns fail early."""
        object.__setattr__(self, "_compiled", re.compile(self.pattern))

    def __call__(self, value: object) -> bool:
        """Return ``True`` if the regex matches *value*."""
        if not isinstance(value, str):
            return False
        return bool(self._compiled.search(value))


@dc.dataclass(frozen=True, slots=True)
class Contains(Comparator):
    """Match if ``item`` is contained in *value*."""

    item: object

    def __call__(self, value: object) -> bool:
        """Return ``True`` if ``item in value``."""
        try:
            return self.item in value  # type: ignore[operator]
        except TypeError:
            return False


@dc.dataclass(frozen=True, slots=True)
class StartsWith(Comparator):
    """Match if *value* is a string beginning with ``prefix``."""

    prefix: str

    def __call__(self, value: object) -> bool:
        """Return ``True`` if *value* starts with ``prefix``."""
        return isinstance(value, str) and value.startswith(self.prefix)


@dc.dataclass(frozen=True, slots=True)
class Predicate(Comparator):
    """Use a custom ``func`` to determine a match."""

    func: t.Callable[[object], object]

    def __call__(self, value: object) -> bool:
        """Return ``True`` if ``func(value)`` is truthy."""
        return bool(self.func(value))


def matches_value(constraint: object, value: object) -> bool:
    """Return ``True`` when *value* satisfies *constraint*."""
    if isinstance(constraint, Comparator):
        return constraint(value)
    return bool(constraint == value)


__all__ = [
    "Any",
    "AnyArgs",
    "AnyCallable",
    "Comparator",
    "Contains",
    "IsA",
    "Predicate",
    "Regex",
    "StartsWith",
    "matches_value",
]
