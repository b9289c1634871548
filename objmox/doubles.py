"""Mock handles and partial mocks dispatching calls to expectations."""

from __future__ import annotations

import enum
import typing as t
from collections import deque

from ._formatting import describe_constraint, format_sections, list_methods, numbered
from .calls import Call
from .errors import NoMatchingExpectationError, UnexpectedCallError
from .expectations import Expectation

if t.TYPE_CHECKING:  # pragma: no cover - used only for typing
    from .controller import ObjMox


class HandleState(enum.StrEnum):
    """Verification state of a :class:`MockHandle`."""

    UNVERIFIED = "UNVERIFIED"
    VERIFIED = "VERIFIED"
    FAILED = "FAILED"


class MockHandle:
    """A stand-in object whose methods are entirely declared by the test.

    Expectations are kept in a dispatch table keyed by method name. Attribute
    access for a declared name returns a callable routed through
    :meth:`mox_invoke`; any other name raises :class:`UnexpectedCallError`.

    Internal state lives in ``_mox_`` prefixed attributes and the public
    helpers carry a ``mox_`` prefix so they do not collide with mocked
    method names.
    """

    _mox_label: str
    _mox_controller: ObjMox
    _mox_table: dict[str, list[Expectation]]
    _mox_state: HandleState

    def __init__(self, label: str, controller: ObjMox) -> None:
        self._mox_label = label
        self._mox_controller = controller
        self._mox_table = {}
        self._mox_state = HandleState.UNVERIFIED

    # ------------------------------------------------------------------
    # Declaration
    # ------------------------------------------------------------------
    def should_receive(self, method: str) -> Expectation:
        """Declare and return a new expectation for *method*."""
        if not method.isidentifier():
            msg = f"method name must be a valid identifier, got {method!r}"
            raise ValueError(msg)
        if method.startswith("_mox_") or hasattr(type(self), method):
            msg = f"{method!r} is reserved by {type(self).__name__}"
            raise ValueError(msg)
        self._mox_controller._require_declarations_open("should_receive")
        expectation = Expectation(
            method,
            label=self._mox_label,
            sequence=self._mox_controller._next_sequence(),
            history=deque(maxlen=self._mox_controller.max_history),
        )
        self._mox_table.setdefault(method, []).append(expectation)
        return expectation

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def mox_label(self) -> str:
        """Return the diagnostic label of this handle."""
        return self._mox_label

    @property
    def mox_state(self) -> HandleState:
        """Return the verification state of this handle."""
        return self._mox_state

    def mox_expectations(self, method: str | None = None) -> list[Expectation]:
        """Return declared expectations, optionally only those for *method*."""
        if method is not None:
            return list(self._mox_table.get(method, ()))
        return [exp for group in self._mox_table.values() for exp in group]

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------
    def mox_invoke(self, method: str, /, *args: object, **kwargs: object) -> object:
        """Dispatch a call to *method* with the given arguments.

        The first declared expectation accepting the arguments is selected,
        regardless of how specific later expectations are.
        """
        controller = self._mox_controller
        controller._require_calls_open(self, method)
        call = Call(method, args, kwargs)
        expectations = self._mox_table.get(method)
        if not expectations:
            return self._mox_undeclared(call)
        for expectation in expectations:
            if expectation.matches(call):
                expectation.record(call)
                controller._record_call(self, expectation, call)
                return expectation.respond(call, self._mox_original(method))
        raise NoMatchingExpectationError(
            self._mox_describe_mismatch(call, expectations),
            label=self._mox_label,
            method=method,
        )

    def _mox_undeclared(self, call: Call) -> object:
        """Handle a call to a method that has no expectations."""
        raise self._mox_unexpected(call.method)

    def _mox_original(self, method: str) -> t.Callable[..., object] | None:
        """Return the real implementation of *method*, if there is one."""
        return None

    def _mox_unexpected(self, method: str) -> UnexpectedCallError:
        msg = format_sections(
            "Unexpected call to undeclared method.",
            [
                ("Handle", self._mox_label),
                ("Method", method),
                ("Declared methods", list_methods(self._mox_table)),
            ],
        )
        return UnexpectedCallError(msg, label=self._mox_label, method=method)

    def _mox_describe_mismatch(
        self, call: Call, expectations: t.Sequence[Expectation]
    ) -> str:
        attempts = [
            f"{describe_constraint(exp)}\nreason: {exp.explain_mismatch(call)}"
            for exp in expectations
        ]
        return format_sections(
            "No expectation matched the call.",
            [
                ("Handle", self._mox_label),
                ("Actual call", call.describe()),
                ("Attempted expectations", numbered(attempts)),
            ],
        )

    def _mox_dispatcher(self, method: str) -> t.Callable[..., object]:
        def dispatch(*args: object, **kwargs: object) -> object:
            return self.mox_invoke(method, *args, **kwargs)

        dispatch.__name__ = method
        dispatch.__qualname__ = f"{self._mox_label}.{method}"
        return dispatch

    def __getattr__(self, name: str) -> t.Any:  # noqa: ANN401 - dynamic dispatch
        """Return a dispatcher for declared methods."""
        if name.startswith(("__", "_mox_")):
            raise AttributeError(name)
        if name in self._mox_table:
            return self._mox_dispatcher(name)
        return self._mox_missing(name)

    def _mox_missing(self, name: str) -> t.Any:  # noqa: ANN401 - dynamic dispatch
        raise self._mox_unexpected(name)

    def __repr__(self) -> str:
        """Return a debug representation."""
        return f"<{type(self).__name__} {self._mox_label!r} {self._mox_state}>"


class PartialMock(MockHandle):
    """Wrap a real object, overriding only the declared methods.

    Undeclared attributes and methods fall through to the wrapped object, and
    ``isinstance`` checks see the wrapped object's class.
    """

    _mox_target: object

    def __init__(self, target: object, label: str, controller: ObjMox) -> None:
        self._mox_target = target
        MockHandle.__init__(self, label, controller)

    @property
    def mox_target(self) -> object:
        """Return the wrapped real object."""
        return self._mox_target

    @property  # type: ignore[misc]
    def __class__(self) -> type:  # noqa: D105
        return type(self._mox_target)

    def _mox_undeclared(self, call: Call) -> object:
        method = getattr(self._mox_target, call.method)
        return method(*call.args, **call.kwargs)

    def _mox_original(self, method: str) -> t.Callable[..., object] | None:
        original = getattr(self._mox_target, method, None)
        return original if callable(original) else None

    def _mox_missing(self, name: str) -> t.Any:  # noqa: ANN401 - dynamic dispatch
        return getattr(self._mox_target, name)

    def __setattr__(self, name: str, value: object) -> None:
        """Store internal state locally and forward everything else."""
        if name.startswith("_mox_"):
            object.__setattr__(self, name, value)
        else:
            setattr(self._mox_target, name, value)


__all__ = ["HandleState", "MockHandle", "PartialMock"]
