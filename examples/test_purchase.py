"""Example tests walking through a purchase that talks to a checkout API."""

from __future__ import annotations

import typing as t

import pytest

from examples._shop import CheckoutError, CheckoutGateway, Purchase
from objmox.comparators import AnyCallable, IsA

pytest_plugins = ("objmox.pytest_plugin",)

if t.TYPE_CHECKING:  # pragma: no cover - typing only
    from objmox.controller import ObjMox
    from objmox.doubles import MockHandle


def _guitar(objmox: ObjMox) -> MockHandle:
    guitar = objmox.mock("guitar")
    guitar.should_receive("name").once().and_return("Deschutes")
    guitar.should_receive("description").once().and_return("Deschutes model Guitar")
    guitar.should_receive("unit_price").at_least().once().and_return(2400.00)
    return guitar


def test_total_uses_catalog_prices(objmox: ObjMox) -> None:
    """Items are looked up once and priced per quantity."""
    guitar = objmox.mock("guitar")
    guitar.should_receive("unit_price").once().and_return(2400.00)
    catalog = objmox.mock("catalog")
    catalog.should_receive("find").with_args(1).at_least().once().and_return(guitar)

    purchase = Purchase(catalog)
    purchase.add(1, quantity=2)

    assert purchase.total() == 4800.00


def test_checkout_submits_cart_and_receives_order_id(objmox: ObjMox) -> None:
    """The gateway's completion callback is driven by the mock."""
    catalog = objmox.mock("catalog")
    catalog.should_receive("find").with_args(1).once().and_return(_guitar(objmox))
    gateway = objmox.mock("gateway")

    def complete(cart: list[dict[str, object]], on_complete: t.Callable) -> str:
        assert cart == [
            {
                "name": "Deschutes",
                "description": "Deschutes model Guitar",
                "unit_price": 2400.00,
                "quantity": 1,
            }
        ]
        on_complete("ORD-1")
        return "ORD-1"

    gateway.should_receive("submit").with_args(IsA(list), AnyCallable()).once().and_run(
        complete
    )
    objmox.substitute(CheckoutGateway, gateway)

    purchase = Purchase(catalog)
    purchase.add(1)

    assert purchase.checkout() == "ORD-1"
    assert purchase.status == "paid"
    assert purchase.order_id == "ORD-1"


def test_checkout_failure_is_injected(objmox: ObjMox) -> None:
    """A raising callback simulates an outage of the checkout service."""
    gateway = objmox.mock("gateway")
    gateway.should_receive("submit").once().and_raise(CheckoutError("503"))
    objmox.substitute(CheckoutGateway, gateway)

    purchase = Purchase(objmox.mock("catalog"))

    with pytest.raises(CheckoutError, match="503"):
        purchase.checkout()
    assert purchase.status == "failed"


def test_new_gateways_keep_their_real_state(objmox: ObjMox) -> None:
    """Intercepted gateways are partial mocks around the real instance."""
    merchants: list[str] = []

    def configure(gateway: MockHandle) -> None:
        merchants.append(gateway.merchant_id)
        gateway.should_receive("submit").once().and_run(
            lambda cart, on_complete: on_complete("ORD-9") or "ORD-9"
        )

    rule = objmox.intercept_new_instances(CheckoutGateway, configure)

    purchase = Purchase(objmox.mock("catalog"), merchant_id="M-42")

    assert purchase.checkout() == "ORD-9"
    assert merchants == ["M-42"]
    assert [gw.mox_label for gw in rule.instances] == ["CheckoutGateway#1"]


def test_gateway_yields_order_id_to_callback(objmox: ObjMox) -> None:
    """``and_yield`` hands values straight to the caller's callback."""
    gateway = objmox.mock("gateway")
    gateway.should_receive("submit").with_args([], AnyCallable()).once().and_yield(
        "ORD-7"
    )
    objmox.substitute(CheckoutGateway, gateway)

    purchase = Purchase(objmox.mock("catalog"))
    purchase.checkout()

    assert purchase.status == "paid"
    assert purchase.order_id == "ORD-7"
