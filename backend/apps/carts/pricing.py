"""Tier-dependent unit price."""
from decimal import Decimal
from typing import Any

from apps.users.models import UserTier


def price_for(product: Any, tier: str) -> Decimal:
    """Unit price to charge ``tier`` for ``product``.

    Business accounts pay the wholesale price when one is set; a missing or
    zero wholesale price falls back to the base price. Works on models and
    DTOs alike.
    """
    wholesale = getattr(product, "wholesale_price", None)
    if tier == UserTier.EMPRESA and wholesale:
        return Decimal(wholesale)
    return Decimal(product.base_price)
