"""A small purchase workflow used by the runnable examples."""

from __future__ import annotations

import typing as t

from objmox import create


class CheckoutError(RuntimeError):
    """Raised when the checkout service rejects an order."""


class Item:
    """A catalogue entry."""

    def __init__(self, item_id: int, name: str, unit_price: float) -> None:
        self.item_id = item_id
        self._name = name
        self._unit_price = unit_price

    def name(self) -> str:
        return self._name

    def description(self) -> str:
        return f"{self._name} model Guitar"

    def unit_price(self) -> float:
        return self._unit_price


class Catalog(t.Protocol):
    """Anything that can look items up by identifier."""

    def find(self, item_id: int) -> Item: ...


class CheckoutGateway:
    """Client for the external checkout service."""

    endpoint = "https://checkout.example.invalid/orders"

    def __init__(self, merchant_id: str) -> None:
        self.merchant_id = merchant_id

    def submit(
        self,
        cart: list[dict[str, object]],
        on_complete: t.Callable[[str], None],
    ) -> str:
        """Post *cart* and call *on_complete* with the new order id."""
        msg = f"{self.endpoint} is not reachable from this environment"
        raise ConnectionError(msg)


class Purchase:
    """Collect items and pay for them through :class:`CheckoutGateway`."""

    def __init__(self, catalog: Catalog, merchant_id: str = "M-1") -> None:
        self.catalog = catalog
        self.merchant_id = merchant_id
        self.lines: list[tuple[Item, int]] = []
        self.status = "open"
        self.order_id: str | None = None

    def add(self, item_id: int, quantity: int = 1) -> None:
        self.lines.append((self.catalog.find(item_id), quantity))

    def total(self) -> float:
        return sum(item.unit_price() * quantity for item, quantity in self.lines)

    def cart(self) -> list[dict[str, object]]:
        return [
            {
                "name": item.name(),
                "description": item.description(),
                "unit_price": item.unit_price(),
                "quantity": quantity,
            }
            for item, quantity in self.lines
        ]

    def checkout(self) -> str:
        """Submit the cart; the gateway reports the order id via callback."""
        gateway = create(CheckoutGateway, self.merchant_id)

        def on_complete(order_id: str) -> None:
            self.order_id = order_id
            self.status = "paid"

        try:
            return gateway.submit(self.cart(), on_complete)
        except CheckoutError:
            self.status = "failed"
            raise
