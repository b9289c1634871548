"""Expectation-based mock objects built around a declare-call-verify lifecycle.

Tests declare expectations on mock handles with :meth:`MockHandle.should_receive`,
exercise the code under test, and let :meth:`ObjMox.verify` report every unmet
call-count constraint at once.
"""

from __future__ import annotations

from .calls import Call, Invocation
from .comparators import (
    Any,
    AnyArgs,
    AnyCallable,
    Comparator,
    Contains,
    IsA,
    Predicate,
    Regex,
    StartsWith,
)
from .controller import ObjMox, Phase
from .doubles import HandleState, MockHandle, PartialMock
from .errors import (
    InterceptionError,
    LifecycleError,
    NoMatchingExpectationError,
    ObjMoxError,
    UnexpectedCallError,
    VerificationFailedError,
)
from .expectations import Expectation
from .interceptor import (
    FactoryRegistry,
    InterceptionRule,
    Provider,
    create,
    default_registry,
)
from .verifiers import Violation

__all__ = [
    "Any",
    "AnyArgs",
    "AnyCallable",
    "Call",
    "Comparator",
    "Contains",
    "Expectation",
    "FactoryRegistry",
    "HandleState",
    "InterceptionError",
    "InterceptionRule",
    "Invocation",
    "IsA",
    "LifecycleError",
    "MockHandle",
    "NoMatchingExpectationError",
    "ObjMox",
    "ObjMoxError",
    "PartialMock",
    "Phase",
    "Predicate",
    "Provider",
    "Regex",
    "StartsWith",
    "UnexpectedCallError",
    "VerificationFailedError",
    "Violation",
    "create",
    "default_registry",
]
