"""Expectation matching and response helpers for mock handles."""

from __future__ import annotations

import dataclasses as dc
import enum
import typing as t
from collections import deque

from ._validators import validate_call_count
from .comparators import AnyArgs, Comparator, matches_value
from .errors import ObjMoxError

if t.TYPE_CHECKING:  # pragma: no cover - used only for typing
    from .calls import Call

DEFAULT_HISTORY_SIZE: t.Final[int] = 10


class _CountMode(enum.Enum):
    EXACT = enum.auto()
    AT_LEAST = enum.auto()
    AT_MOST = enum.auto()


class ReturnPolicy(t.Protocol):
    """Produce the result of a matched call."""

    def respond(
        self, call: Call, original: t.Callable[..., object] | None
    ) -> object:
        """Return the value handed back to the caller of the mocked method."""
        ...


@dc.dataclass(slots=True)
class ReturnValue:
    """Return the same ``value`` for every call."""

    value: object = None

    def respond(
        self, call: Call, original: t.Callable[..., object] | None
    ) -> object:
        """Return ``value``."""
        return self.value


@dc.dataclass(slots=True)
class ReturnSequence:
    """Return ``values`` one per call, repeating the last once exhausted."""

    values: tuple[object, ...]
    _index: int = 0

    def respond(
        self, call: Call, original: t.Callable[..., object] | None
    ) -> object:
        """Return the next value in the sequence."""
        value = self.values[min(self._index, len(self.values) - 1)]
        self._index += 1
        return value


@dc.dataclass(slots=True)
class RunCallback:
    """Invoke ``func`` with the actual call arguments."""

    func: t.Callable[..., object]

    def respond(
        self, call: Call, original: t.Callable[..., object] | None
    ) -> object:
        """Return whatever ``func`` returns; its exceptions propagate."""
        return self.func(*call.args, **call.kwargs)


@dc.dataclass(slots=True)
class YieldToBlock:
    """Call the trailing callable passed by the caller with ``values``."""

    values: tuple[object, ...]

    def respond(
        self, call: Call, original: t.Callable[..., object] | None
    ) -> object:
        """Return whatever the caller's block returns."""
        block = call.block
        if block is None:
            msg = f"{call.method}() was called without a trailing callable to yield to"
            raise ObjMoxError(msg)
        return block(*self.values)


@dc.dataclass(slots=True)
class RaiseError:
    """Raise ``error`` when the call is made."""

    error: BaseException | type[BaseException]

    def respond(
        self, call: Call, original: t.Callable[..., object] | None
    ) -> object:
        """Raise the configured exception."""
        raise self.error


@dc.dataclass(slots=True)
class PassThrough:
    """Delegate to the real method of a partially mocked object."""

    def respond(
        self, call: Call, original: t.Callable[..., object] | None
    ) -> object:
        """Call ``original`` with the actual arguments."""
        if original is None:
            msg = f"{call.method}() has no real implementation to pass through to"
            raise ObjMoxError(msg)
        return original(*call.args, **call.kwargs)


def _history_factory() -> deque[Call]:
    return deque(maxlen=DEFAULT_HISTORY_SIZE)


@dc.dataclass(slots=True, eq=False)
class Expectation:
    """A rule binding a method and argument constraint to a count and response.

    Builder methods mutate the expectation in place and return it so calls can
    be chained::

        handle.should_receive("find").with_args(1).at_least().once().and_return(x)
    """

    method: str
    label: str = ""
    args: tuple[object, ...] | None = None
    kwargs: dict[str, object] | None = None
    min_calls: int = 0
    max_calls: int | None = None
    ordered: bool = False
    sequence: int = 0
    call_count: int = 0
    history: deque[Call] = dc.field(default_factory=_history_factory)
    policy: ReturnPolicy = dc.field(default_factory=ReturnValue)
    _mode: _CountMode = _CountMode.EXACT

    # ------------------------------------------------------------------
    # Argument constraints
    # ------------------------------------------------------------------
    def with_args(self, *args: object, **kwargs: object) -> Expectation:
        """Require the call arguments to match ``args`` and ``kwargs``.

        Literal values are compared by equality and
        :class:`~objmox.comparators.Comparator` instances are evaluated. A
        trailing :class:`~objmox.comparators.AnyArgs` accepts any number of
        further positional arguments.
        """
        self.args = args
        self.kwargs = dict(kwargs)
        return self

    def with_no_args(self) -> Expectation:
        """Require the method to be called without arguments."""
        return self.with_args()

    # ------------------------------------------------------------------
    # Call counts
    # ------------------------------------------------------------------
    def times(self, count: int) -> Expectation:
        """Apply *count* under the pending ``at_least``/``at_most`` modifier."""
        validate_call_count(count)
        if self._mode is _CountMode.AT_LEAST:
            self.min_calls, self.max_calls = count, None
        elif self._mode is _CountMode.AT_MOST:
            self.min_calls, self.max_calls = 0, count
        else:
            self.min_calls, self.max_calls = count, count
        self._mode = _CountMode.EXACT
        return self

    def times_called(self, count: int) -> Expectation:
        """Alias for :meth:`times`."""
        return self.times(count)

    def once(self) -> Expectation:
        """Expect exactly one call, or at least/at most one after a modifier."""
        return self.times(1)

    def twice(self) -> Expectation:
        """Expect exactly two calls, or at least/at most two after a modifier."""
        return self.times(2)

    def never(self) -> Expectation:
        """Forbid any call to this expectation."""
        self._mode = _CountMode.EXACT
        return self.times(0)

    def at_least(self) -> Expectation:
        """Turn the next count into a lower bound (defaults to one call)."""
        self._mode = _CountMode.AT_LEAST
        self.min_calls, self.max_calls = 1, None
        return self

    def at_most(self) -> Expectation:
        """Turn the next count into an upper bound (defaults to one call)."""
        self._mode = _CountMode.AT_MOST
        self.min_calls, self.max_calls = 0, 1
        return self

    # ------------------------------------------------------------------
    # Ordering
    # ------------------------------------------------------------------
    def in_order(self) -> Expectation:
        """Require calls to follow the declaration order of ordered expectations."""
        self.ordered = True
        return self

    def any_order(self) -> Expectation:
        """Allow this expectation to be called in any order."""
        self.ordered = False
        return self

    # ------------------------------------------------------------------
    # Return policies
    # ------------------------------------------------------------------
    def and_return(self, *values: object) -> Expectation:
        """Return ``values`` from successive calls.

        A single value is returned every time; several values are returned in
        turn and the last one repeats once they run out.
        """
        if len(values) > 1:
            self.policy = ReturnSequence(values)
        else:
            self.policy = ReturnValue(values[0] if values else None)
        return self

    def and_run(self, func: t.Callable[..., object]) -> Expectation:
        """Compute each result by calling ``func(*args, **kwargs)``."""
        if not callable(func):
            msg = f"and_run() expects a callable, got {type(func).__name__}"
            raise TypeError(msg)
        self.policy = RunCallback(func)
        return self

    def and_yield(self, *values: object) -> Expectation:
        """Call the trailing callable argument with ``values`` and return its result."""
        self.policy = YieldToBlock(values)
        return self

    def and_raise(self, error: BaseException | type[BaseException]) -> Expectation:
        """Raise ``error`` whenever the expectation is matched."""
        self.policy = RaiseError(error)
        return self

    def and_pass_through(self) -> Expectation:
        """Call the real method of the partially mocked object."""
        self.policy = PassThrough()
        return self

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------
    def matches(self, call: Call) -> bool:
        """Return ``True`` if *call* satisfies this expectation."""
        return self.explain_mismatch(call) is None

    def explain_mismatch(self, call: Call) -> str | None:
        """Return why *call* does not match, or ``None`` when it does."""
        if call.method != self.method:
            return f"method {call.method!r} != {self.method!r}"
        reason = self._explain_args(call.args)
        if reason is None:
            reason = self._explain_kwargs(call.kwargs)
        return reason

    def _explain_args(self, args: tuple[object, ...]) -> str | None:
        """Validate positional arguments."""
        if self.args is None:
            return None
        constraints = self.args
        variadic = bool(constraints) and isinstance(constraints[-1], AnyArgs)
        if variadic:
            constraints = constraints[:-1]
            if len(args) < len(constraints):
                return (
                    f"expected at least {len(constraints)} positional "
                    f"argument(s), got {len(args)}"
                )
        elif len(args) != len(constraints):
            return (
                f"expected {len(constraints)} positional argument(s), "
                f"got {len(args)}"
            )
        for index, (constraint, value) in enumerate(
            zip(constraints, args, strict=False)
        ):
            if not matches_value(constraint, value):
                return _describe_failure(f"arg[{index}]", value, constraint)
        return None

    def _explain_kwargs(self, kwargs: t.Mapping[str, object]) -> str | None:
        """Validate keyword arguments."""
        if self.kwargs is None:
            return None
        missing = sorted(set(self.kwargs) - set(kwargs))
        if missing:
            return f"missing keyword argument(s): {', '.join(missing)}"
        unexpected = sorted(set(kwargs) - set(self.kwargs))
        if unexpected:
            return f"unexpected keyword argument(s): {', '.join(unexpected)}"
        for key in sorted(self.kwargs):
            constraint = self.kwargs[key]
            if not matches_value(constraint, kwargs[key]):
                return _describe_failure(f"kwarg[{key}]", kwargs[key], constraint)
        return None

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------
    def record(self, call: Call) -> None:
        """Count *call* and keep it in the bounded history."""
        self.call_count += 1
        self.history.append(call)

    def respond(
        self, call: Call, original: t.Callable[..., object] | None = None
    ) -> object:
        """Run the return policy for *call*."""
        return self.policy.respond(call, original)

    @property
    def is_satisfied(self) -> bool:
        """Return ``True`` when the call count lies within the declared range."""
        if self.call_count < self.min_calls:
            return False
        return self.max_calls is None or self.call_count <= self.max_calls

    def describe_range(self) -> str:
        """Return the expected call count in words."""
        if self.max_calls is None:
            if self.min_calls == 0:
                return "any number of calls"
            return f"at least {self.min_calls}"
        if self.min_calls == self.max_calls:
            return str(self.min_calls)
        if self.min_calls == 0:
            return f"at most {self.max_calls}"
        return f"between {self.min_calls} and {self.max_calls}"


def _describe_failure(position: str, value: object, constraint: object) -> str:
    if isinstance(constraint, Comparator):
        return f"{position}={value!r} failed {constraint!r}"
    return f"{position}={value!r} != {constraint!r}"


__all__ = [
    "DEFAULT_HISTORY_SIZE",
    "Expectation",
    "PassThrough",
    "RaiseError",
    "ReturnPolicy",
    "ReturnSequence",
    "ReturnValue",
    "RunCallback",
    "YieldToBlock",
]
