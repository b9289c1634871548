"""Tests for the ``objmox`` pytest fixture and its configuration options."""

from __future__ import annotations

import textwrap
import typing as t

if t.TYPE_CHECKING:  # pragma: no cover - used only for typing
    import pytest


PLUGIN_HEADER = textwrap.dedent(
    """
    import pytest

    pytest_plugins = ("objmox.pytest_plugin",)
    """
)

# Command-line options only exist once the plugin is loaded before parsing.
PLUGINS = ("objmox.pytest_plugin",)

UNMET_EXPECTATION = PLUGIN_HEADER + textwrap.dedent(
    """
    def test_unmet(objmox):
        objmox.mock("guitar").should_receive("name").once()
    """
)


def _write(pytester: pytest.Pytester, body: str) -> None:
    pytester.makepyfile(test_sample=PLUGIN_HEADER + textwrap.dedent(body))


def test_fixture_verifies_satisfied_expectations(pytester: pytest.Pytester) -> None:
    """A test meeting every expectation passes cleanly."""
    _write(
        pytester,
        """
        def test_ok(objmox):
            guitar = objmox.mock("guitar")
            guitar.should_receive("name").once().and_return("Deschutes")
            assert guitar.name() == "Deschutes"
        """,
    )
    result = pytester.runpytest()
    result.assert_outcomes(passed=1)


def test_unmet_expectation_fails_during_teardown(pytester: pytest.Pytester) -> None:
    """Verification failures are reported as teardown errors."""
    pytester.makepyfile(test_sample=UNMET_EXPECTATION)
    result = pytester.runpytest()
    result.assert_outcomes(passed=1, errors=1)
    result.stdout.fnmatch_lines(["*VerificationFailedError*"])
    result.stdout.fnmatch_lines(["*guitar.name: expected 1, got 0*"])


def test_body_failure_is_not_masked(pytester: pytest.Pytester) -> None:
    """When the body already failed, verification does not add an error."""
    _write(
        pytester,
        """
        def test_body_fails(objmox):
            objmox.mock("guitar").should_receive("name").once()
            assert False, "body failure"
        """,
    )
    result = pytester.runpytest()
    result.assert_outcomes(failed=1)
    result.stdout.fnmatch_lines(["*body failure*"])


def test_marker_disables_verification(pytester: pytest.Pytester) -> None:
    """``@pytest.mark.objmox(verify=False)`` skips teardown verification."""
    _write(
        pytester,
        """
        @pytest.mark.objmox(verify=False)
        def test_unverified(objmox):
            objmox.mock("guitar").should_receive("name").once()
        """,
    )
    result = pytester.runpytest()
    result.assert_outcomes(passed=1)


def test_cli_flag_disables_verification(pytester: pytest.Pytester) -> None:
    """``--no-objmox-verify`` skips teardown verification."""
    pytester.makepyfile(test_sample=UNMET_EXPECTATION)
    result = pytester.runpytest("--no-objmox-verify", plugins=PLUGINS)
    result.assert_outcomes(passed=1)


def test_ini_setting_and_cli_override(pytester: pytest.Pytester) -> None:
    """The ini option disables verification unless the CLI re-enables it."""
    pytester.makeini(
        """
        [pytest]
        objmox_verify_on_teardown = false
        """
    )
    pytester.makepyfile(test_sample=UNMET_EXPECTATION)

    disabled = pytester.runpytest(plugins=PLUGINS)
    disabled.assert_outcomes(passed=1)

    enabled = pytester.runpytest("--objmox-verify", plugins=PLUGINS)
    enabled.assert_outcomes(passed=1, errors=1)


def test_fixture_param_overrides_cli(pytester: pytest.Pytester) -> None:
    """Indirect parametrisation takes precedence over command-line flags."""
    _write(
        pytester,
        """
        @pytest.mark.parametrize("objmox", [{"verify": False}], indirect=True)
        def test_param(objmox):
            objmox.mock("guitar").should_receive("name").once()
        """,
    )
    result = pytester.runpytest("--objmox-verify", plugins=PLUGINS)
    result.assert_outcomes(passed=1)


def test_invalid_fixture_param_errors(pytester: pytest.Pytester) -> None:
    """Unsupported parameter types are rejected during setup."""
    _write(
        pytester,
        """
        @pytest.mark.parametrize("objmox", ["yes"], indirect=True)
        def test_param(objmox):
            pass
        """,
    )
    result = pytester.runpytest()
    result.assert_outcomes(errors=1)
    result.stdout.fnmatch_lines(["*objmox fixture param must be a bool*"])


def test_interception_restored_after_failing_test(pytester: pytest.Pytester) -> None:
    """A failing test does not leak its interception into the next one."""
    _write(
        pytester,
        """
        from objmox import PartialMock, default_registry


        class Item:
            def save(self):
                return True


        def test_first_fails(objmox):
            objmox.intercept_new_instances(
                Item, lambda item: item.should_receive("save").and_return(False)
            )
            assert default_registry.create(Item).save() is False
            raise RuntimeError("boom")


        def test_second_sees_real_class():
            item = default_registry.create(Item)
            assert not isinstance(item, PartialMock)
            assert item.save() is True
        """,
    )
    result = pytester.runpytest()
    result.assert_outcomes(passed=1, failed=1)
