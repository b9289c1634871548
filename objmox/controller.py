"""ObjMox controller and related helpers."""

from __future__ import annotations

import enum
import itertools
import logging
import types  # noqa: TC003
import typing as t
from collections import deque

from ._validators import validate_optional_size
from .calls import Invocation
from .doubles import HandleState, MockHandle, PartialMock
from .errors import InterceptionError, LifecycleError, VerificationFailedError
from .expectations import DEFAULT_HISTORY_SIZE
from .interceptor import (
    FactoryRegistry,
    InterceptionRule,
    NewInstanceFactory,
    SharedHandleFactory,
    default_registry,
)
from .verifiers import CountVerifier, OrderVerifier, Violation, format_violations

if t.TYPE_CHECKING:  # pragma: no cover - used only for typing
    from .calls import Call
    from .expectations import Expectation

logger = logging.getLogger(__name__)


class Phase(enum.StrEnum):
    """Lifecycle phases for :class:`ObjMox`."""

    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"


class ObjMox:
    """Scope owning every mock, expectation and interception of one test.

    Handles and interceptions are created while the controller is active.
    :meth:`verify` checks all expectations at once, restores every
    interception and closes the scope; afterwards mocked methods refuse
    further calls.
    """

    def __init__(
        self,
        *,
        verify_on_exit: bool = True,
        max_history: int | None = DEFAULT_HISTORY_SIZE,
        max_journal_entries: int | None = None,
        registry: FactoryRegistry | None = None,
    ) -> None:
        """Create a new controller.

        Parameters
        ----------
        verify_on_exit:
            When ``True`` (the default), :meth:`__exit__` calls :meth:`verify`
            if the scope is still active. Otherwise interceptions are restored
            without verifying.
        max_history:
            Number of recent calls each expectation keeps for failure messages,
            or ``None`` to keep them all.
        max_journal_entries:
            Maximum number of calls retained in :attr:`journal`. When ``None``
            the journal is unbounded; otherwise older entries are discarded
            once the limit is exceeded.
        registry:
            :class:`FactoryRegistry` used by :meth:`intercept_new_instances`
            and :meth:`substitute` when no registry is passed to them. Defaults
            to the module-level registry.
        """
        validate_optional_size(max_history, name="max_history")
        validate_optional_size(max_journal_entries, name="max_journal_entries")

        self._verify_on_exit = verify_on_exit
        self.max_history = max_history
        self.registry = registry if registry is not None else default_registry
        self.journal: deque[Invocation] = deque(maxlen=max_journal_entries)

        self._phase = Phase.ACTIVE
        self._handles: list[MockHandle] = []
        self._interceptions: list[InterceptionRule] = []
        self._ordered_calls: list[tuple[Expectation, Call]] = []
        self._labels = itertools.count(1)
        self._sequence = itertools.count(1)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def phase(self) -> Phase:
        """Return the current lifecycle phase."""
        return self._phase

    @property
    def handles(self) -> tuple[MockHandle, ...]:
        """Return every handle created in this scope."""
        return tuple(self._handles)

    @property
    def interceptions(self) -> tuple[InterceptionRule, ...]:
        """Return every interception rule created in this scope."""
        return tuple(self._interceptions)

    def expectations(self) -> list[Expectation]:
        """Return every expectation declared in this scope."""
        return [exp for handle in self._handles for exp in handle.mox_expectations()]

    # ------------------------------------------------------------------
    # Context manager protocol
    # ------------------------------------------------------------------
    def __enter__(self) -> ObjMox:
        """Enter the scope."""
        self._require_phase(Phase.ACTIVE, "__enter__")
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: types.TracebackType | None,
    ) -> None:
        """Exit the scope, verifying when configured to."""
        if self._phase is not Phase.ACTIVE:
            return
        if not self._verify_on_exit:
            self.close()
            return
        try:
            self.verify()
        except VerificationFailedError:
            # Let the body's exception propagate instead.
            if exc_type is None:
                raise
            logger.debug("Suppressed verification failure after body error")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def mock(self, label: str | None = None, **stubs: object) -> MockHandle:
        """Create a mock handle.

        Each keyword in *stubs* declares a method returning that value with no
        call-count constraint, so ``mock("guitar", name="Deschutes")`` yields a
        handle whose ``name()`` returns ``"Deschutes"``.
        """
        self._require_phase(Phase.ACTIVE, "mock")
        handle = MockHandle(self._label(label), self)
        for method, value in stubs.items():
            handle.should_receive(method).and_return(value)
        return self._register(handle)

    def partial(self, obj: object, label: str | None = None) -> PartialMock:
        """Wrap *obj* so selected methods can be overridden."""
        self._require_phase(Phase.ACTIVE, "partial")
        if label is None:
            label = f"partial {type(obj).__name__}#{next(self._labels)}"
        return t.cast("PartialMock", self._register(PartialMock(obj, label, self)))

    def intercept_new_instances(
        self,
        cls: type,
        configurator: t.Callable[[PartialMock], object],
        *,
        registry: FactoryRegistry | None = None,
    ) -> InterceptionRule:
        """Configure every instance of *cls* constructed through *registry*.

        Each construction builds the real instance, wraps it in a fresh
        :class:`PartialMock` belonging to this scope and passes the wrapper to
        *configurator* before returning it to the caller.
        """
        self._require_phase(Phase.ACTIVE, "intercept_new_instances")
        factory = NewInstanceFactory(cls, self.partial, configurator)
        return self._intercept(cls, factory, registry)

    def substitute(
        self,
        cls: type,
        handle: MockHandle,
        *,
        registry: FactoryRegistry | None = None,
    ) -> InterceptionRule:
        """Return *handle* from every construction of *cls* through *registry*."""
        self._require_phase(Phase.ACTIVE, "substitute")
        return self._intercept(cls, SharedHandleFactory(handle), registry)

    def verify(self) -> None:
        """Check every expectation, restore interceptions and close the scope.

        Raises
        ------
        VerificationFailedError
            Listing every expectation whose call count fell outside its range
            and the first out-of-order call, if any. A failure to restore an
            interception is attached as ``__cause__``.
        InterceptionError
            When an interception cannot be restored and every expectation
            was met.
        """
        self._require_phase(Phase.ACTIVE, "verify")
        self._phase = Phase.CLOSED
        try:
            violations = self._run_verifiers()
            self._settle_handles(violations)
        except BaseException:
            self._restore_interceptions()
            raise
        try:
            self._restore_interceptions()
        except InterceptionError as err:
            if not violations:
                raise
            msg = format_violations(violations)
            raise VerificationFailedError(msg, violations) from err
        if violations:
            logger.debug("Verification found %d violation(s)", len(violations))
            raise VerificationFailedError(format_violations(violations), violations)
        logger.debug("Verified %d handle(s)", len(self._handles))

    def close(self) -> None:
        """Restore interceptions and close the scope without verifying."""
        if self._phase is Phase.CLOSED:
            return
        self._phase = Phase.CLOSED
        self._restore_interceptions()

    # ------------------------------------------------------------------
    # Hooks used by handles
    # ------------------------------------------------------------------
    def _next_sequence(self) -> int:
        return next(self._sequence)

    def _require_declarations_open(self, action: str) -> None:
        self._require_phase(Phase.ACTIVE, action)

    def _require_calls_open(self, handle: MockHandle, method: str) -> None:
        if self._phase is not Phase.ACTIVE:
            msg = (
                f"{handle.mox_label}.{method}() called after teardown began "
                f"(current phase: {self._phase.name.lower()})"
            )
            raise LifecycleError(msg)

    def _record_call(self, handle: MockHandle, exp: Expectation, call: Call) -> None:
        self.journal.append(Invocation(handle.mox_label, call))
        if exp.ordered:
            self._ordered_calls.append((exp, call))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _label(self, label: str | None) -> str:
        if label is not None:
            return label
        return f"mock-{next(self._labels)}"

    def _register(self, handle: MockHandle) -> MockHandle:
        self._handles.append(handle)
        logger.debug("Created %s %r", type(handle).__name__, handle.mox_label)
        return handle

    def _intercept(
        self,
        cls: type,
        factory: t.Callable[..., object],
        registry: FactoryRegistry | None,
    ) -> InterceptionRule:
        rule = InterceptionRule(
            registry if registry is not None else self.registry, cls, factory
        )
        rule.install()
        self._interceptions.append(rule)
        return rule

    def _require_phase(self, expected: Phase, action: str) -> None:
        """Ensure we're in ``expected`` phase before executing ``action``."""
        if self._phase != expected:
            msg = (
                f"Cannot call {action}(): not in '{expected.name.lower()}' phase "
                f"(current phase: {self._phase.name.lower()})"
            )
            raise LifecycleError(msg)

    def _run_verifiers(self) -> list[Violation]:
        expectations = self.expectations()
        violations = CountVerifier().verify(expectations)
        ordered = [exp for exp in expectations if exp.ordered]
        violations.extend(OrderVerifier(ordered).verify(self._ordered_calls))
        return violations

    def _settle_handles(self, violations: t.Sequence[Violation]) -> None:
        failed = {id(violation.expectation) for violation in violations}
        for handle in self._handles:
            if any(id(exp) in failed for exp in handle.mox_expectations()):
                handle._mox_state = HandleState.FAILED
            else:
                handle._mox_state = HandleState.VERIFIED

    def _restore_interceptions(self) -> None:
        """Restore every active rule, newest first, reporting the first error."""
        first_error: InterceptionError | None = None
        for rule in reversed(self._interceptions):
            try:
                rule.restore()
            except InterceptionError as err:
                logger.exception("Failed to restore %r", rule)
                if first_error is None:
                    first_error = err
        if first_error is not None:
            raise first_error


__all__ = ["ObjMox", "Phase"]
