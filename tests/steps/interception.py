"""pytest-bdd steps for intercepting construction of collaborators."""

from __future__ import annotations

import typing as t

from pytest_bdd import given, parsers, then, when

from objmox.doubles import PartialMock

if t.TYPE_CHECKING:  # pragma: no cover - typing only
    from objmox.controller import ObjMox
    from objmox.interceptor import FactoryRegistry, InterceptionRule


class Item:
    """Collaborator constructed by the code under test."""

    def __init__(self, sku: str) -> None:
        self.sku = sku

    def save(self) -> bool:
        return True


def build_items(registry: FactoryRegistry, count: int) -> list[Item]:
    """Code under test: build *count* items through *registry*."""
    return [registry.create(Item, f"sku-{index}") for index in range(count)]


@given(
    "new items are intercepted to fail saving",
    target_fixture="rule",
)
def intercept_failing_save(mox: ObjMox) -> InterceptionRule:
    """Make every new item return ``False`` from ``save``."""
    return mox.intercept_new_instances(
        Item, lambda item: item.should_receive("save").and_return(False)
    )


@given(
    "new items are intercepted expecting one save",
    target_fixture="rule",
)
def intercept_expecting_save(mox: ObjMox) -> InterceptionRule:
    """Require every new item to be saved exactly once."""
    return mox.intercept_new_instances(
        Item, lambda item: item.should_receive("save").once().and_return(True)
    )


@when(
    parsers.cfparse("the code under test builds {count:d} item(s)"),
    target_fixture="items",
)
def build(registry: FactoryRegistry, count: int) -> list[Item]:
    """Construct items the way production code would."""
    return build_items(registry, count)


@when("every built item is saved", target_fixture="saved")
def save_all(items: list[Item]) -> list[bool]:
    """Call ``save`` on every constructed item."""
    return [item.save() for item in items]


@then(parsers.cfparse("every save should return {expected:w}"))
def check_saves(saved: list[bool], expected: str) -> None:
    """Compare the save results with *expected*."""
    assert saved
    assert all(result is (expected == "true") for result in saved)


@then(parsers.cfparse("the rule should have configured {count:d} instance(s)"))
def check_instances(rule: InterceptionRule, items: list[Item], count: int) -> None:
    """Ensure each construction produced a distinct configured wrapper."""
    assert len(rule.instances) == count
    assert rule.instances == items
    assert all(isinstance(item, PartialMock) for item in items)
    assert all(isinstance(item, Item) for item in items)


@then("items should be constructed normally again")
def check_restored(registry: FactoryRegistry, rule: InterceptionRule) -> None:
    """Ensure the interception was restored."""
    assert not rule.active
    assert not registry.is_intercepted(Item)
    assert type(registry.create(Item, "after")) is Item
