"""Pytest plugin providing the ``objmox`` fixture."""

from __future__ import annotations

import logging
import typing as t

import pytest

from .controller import ObjMox, Phase
from .errors import VerificationFailedError

logger = logging.getLogger(__name__)


def pytest_addoption(parser: pytest.Parser) -> None:
    """Register command-line and ini options for the plugin."""
    group = parser.getgroup("objmox")
    group.addoption(
        "--objmox-verify",
        action="store_true",
        dest="objmox_verify",
        default=None,
        help=(
            "Verify every objmox expectation during fixture teardown. "
            "Overrides the pytest.ini setting."
        ),
    )
    group.addoption(
        "--no-objmox-verify",
        action="store_false",
        dest="objmox_verify",
        default=None,
        help=(
            "Skip automatic verification during fixture teardown. "
            "Overrides the pytest.ini setting."
        ),
    )
    parser.addini(
        "objmox_verify_on_teardown",
        "Verify every objmox expectation during fixture teardown.",
        type="bool",
        default=True,
    )


def pytest_configure(config: pytest.Config) -> None:
    """Register plugin-specific markers."""
    config.addinivalue_line(
        "markers",
        (
            "objmox(verify: bool = True): override automatic verification "
            "during teardown for a single test."
        ),
    )


class _ObjMoxItem(t.Protocol):
    """pytest item carrying objmox teardown metadata."""

    _objmox_instance: ObjMox | None
    _objmox_verify_error: Exception | None
    _objmox_verify_should_fail: bool


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(
    item: pytest.Item, call: pytest.CallInfo[t.Any]
) -> t.Generator[None, None, None]:
    """Attach the call/report objects to each collected test item.

    Teardown uses the stored call report to decide whether a verification
    failure should fail the test or only be reported alongside an existing
    failure.
    """
    del call
    outcome = yield
    rep = outcome.get_result()
    setattr(item, f"rep_{rep.when}", rep)
    if rep.when == "teardown":
        _apply_deferred_verify_failure(item, rep)


def _verify_enabled(request: pytest.FixtureRequest) -> bool:
    """Return whether the fixture should verify during teardown."""
    # Priority order: marker > fixture param > CLI option > INI setting

    marker_value = _get_marker_verify(request)
    if marker_value is not None:
        return marker_value

    param_value = _get_param_verify(request)
    if param_value is not None:
        return param_value

    config = request.config
    cli_value = config.getoption("objmox_verify")
    if cli_value is not None:
        return bool(cli_value)

    return bool(config.getini("objmox_verify_on_teardown"))


def _get_marker_verify(request: pytest.FixtureRequest) -> bool | None:
    """Return marker override for teardown verification if present."""
    marker = request.node.get_closest_marker("objmox")
    if marker is None or "verify" not in marker.kwargs:
        return None
    return bool(marker.kwargs["verify"])


def _get_param_verify(request: pytest.FixtureRequest) -> bool | None:
    """Return fixture parameter override for teardown verification if present."""
    param = getattr(request, "param", None)
    if param is None:
        return None
    if isinstance(param, dict):
        if "verify" in param:
            return bool(param["verify"])
        keys = list(param.keys())
        msg = f"objmox fixture param dict must contain 'verify' key, got keys: {keys}"
        raise TypeError(msg)
    if isinstance(param, bool):
        return param
    msg = (
        "objmox fixture param must be a bool or dict with 'verify' key, "
        f"got {type(param).__name__}"
    )
    raise TypeError(msg)


def _apply_deferred_verify_failure(
    item: pytest.Item, report: pytest.TestReport
) -> None:
    """Attach a verification error suppressed during teardown to *report*."""
    err: Exception | None = getattr(item, "_objmox_verify_error", None)
    if err is None:
        return
    delattr(item, "_objmox_verify_error")
    should_fail = getattr(item, "_objmox_verify_should_fail", False)
    if hasattr(item, "_objmox_verify_should_fail"):
        delattr(item, "_objmox_verify_should_fail")
    if not should_fail:
        report.sections.append(("objmox verification", f"{type(err).__name__}: {err}"))


@pytest.fixture
def objmox(request: pytest.FixtureRequest) -> t.Generator[ObjMox, None, None]:
    """Provide an :class:`ObjMox` scope verified and torn down after the test."""
    mox = ObjMox(verify_on_exit=False)
    verify = _verify_enabled(request)
    _attach_node_state(request.node, mox)
    try:
        yield mox
    finally:
        _teardown_objmox(request.node, mox, verify=verify)


def _attach_node_state(item: pytest.Item, mox: ObjMox) -> None:
    """Expose ``mox`` on the test item for later teardown hooks."""
    typed_item = t.cast("_ObjMoxItem", item)
    typed_item._objmox_instance = mox
    typed_item._objmox_verify_error = None
    typed_item._objmox_verify_should_fail = False


def _teardown_objmox(item: pytest.Item, mox: ObjMox, *, verify: bool) -> None:
    """Verify and close the controller, then clear per-item state."""
    typed_item = t.cast("_ObjMoxItem", item)
    should_raise = False
    try:
        if verify and mox.phase is Phase.ACTIVE:
            try:
                mox.verify()
            except VerificationFailedError as err:
                logger.debug("objmox verification failed for %s", item.nodeid)
                typed_item._objmox_verify_error = err
                should_raise = not _call_stage_failed(item)
                typed_item._objmox_verify_should_fail = should_raise
        mox.close()
    except Exception:
        logger.exception("Error during objmox fixture cleanup")
        pytest.fail("objmox fixture cleanup failed")
    finally:
        _detach_node_state(item, mox)
    if should_raise:
        err = typed_item._objmox_verify_error
        pytest.fail(f"{type(err).__name__}: {err}", pytrace=False)


def _detach_node_state(item: pytest.Item, mox: ObjMox) -> None:
    """Remove per-item references to ``mox``."""
    typed_item = t.cast("_ObjMoxItem", item)
    if getattr(typed_item, "_objmox_instance", None) is mox:
        delattr(typed_item, "_objmox_instance")


def _call_stage_failed(item: pytest.Item) -> bool:
    """Return ``True`` when the test body has already failed."""
    rep_call = getattr(item, "rep_call", None)
    return bool(rep_call and rep_call.failed)
