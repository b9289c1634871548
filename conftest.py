"""Global test configuration and shared fixtures."""

from __future__ import annotations

import typing as t

import pytest

import objmox.interceptor

pytest_plugins = ("pytester", "objmox.pytest_plugin")


@pytest.fixture(autouse=True)
def reset_default_registry() -> t.Generator[None, None, None]:
    """Ensure no interception leaks into ``default_registry`` between tests."""
    objmox.interceptor.default_registry.reset()
    yield
    objmox.interceptor.default_registry.reset()
