from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable

CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def quantize(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def line_gross(quantity: int, unit_price: Decimal) -> Decimal:
    return Decimal(quantity) * Decimal(unit_price)


def line_discount(quantity: int, unit_price: Decimal, discount: Decimal) -> Decimal:
    return quantize(line_gross(quantity, unit_price) * Decimal(discount or 0) / HUNDRED)


def line_subtotal(quantity: int, unit_price: Decimal, discount: Decimal = Decimal("0")) -> Decimal:
    """``quantity * unit_price * (1 - discount / 100)``, rounded to cents."""
    return quantize(line_gross(quantity, unit_price)) - line_discount(
        quantity, unit_price, discount
    )


@dataclass(frozen=True)
class CartTotals:
    subtotal: Decimal
    total_discount: Decimal
    total: Decimal
    total_items: int


def calculate_totals(items: Iterable[Any]) -> CartTotals:
    """Totals over cart lines whose product is still active.

    Lines of inactive products are skipped; they stay in the cart.
    """
    subtotal = Decimal("0")
    discount = Decimal("0")
    count = 0
    for item in items:
        if not _is_active(item):
            continue
        subtotal += line_subtotal(item.quantity, item.unit_price, item.discount)
        discount += line_discount(item.quantity, item.unit_price, item.discount)
        count += int(item.quantity)
    subtotal = quantize(subtotal)
    return CartTotals(
        subtotal=subtotal,
        total_discount=quantize(discount),
        total=subtotal,
        total_items=count,
    )


def _is_active(item: Any) -> bool:
    active = getattr(item, "product_active", None)
    if active is None:
        product = getattr(item, "product", None)
        active = getattr(product, "active", True)
    return bool(active)
