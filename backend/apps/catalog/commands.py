from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional


def _to_bool(raw) -> Optional[bool]:
    if raw is None or raw == "":
        return None
    if isinstance(raw, bool):
        return raw
    value = str(raw).strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    return None


def _to_int(raw, default: Optional[int] = None) -> Optional[int]:
    try:
        return int(raw) if raw not in (None, "") else default
    except (ValueError, TypeError):
        return default


def _to_decimal(raw) -> Optional[Decimal]:
    if raw in (None, ""):
        return None
    try:
        return Decimal(str(raw))
    except (InvalidOperation, ValueError):
        raise ValueError(f"Invalid decimal value: {raw!r}")


@dataclass
class ProductListQuery:
    category_id: Optional[int] = None
    active: Optional[bool] = True
    featured: Optional[bool] = None
    limit: int = 50
    offset: int = 0

    MAX_LIMIT = 100

    @staticmethod
    def from_raw(params: Dict[str, Any]):
        data = params or {}
        limit = _to_int(data.get("limit"), 50)
        offset = _to_int(data.get("offset"), 0)
        return ProductListQuery(
            category_id=_to_int(data.get("categoryId") or data.get("category_id")),
            featured=_to_bool(data.get("featured")),
            limit=max(1, min(limit, ProductListQuery.MAX_LIMIT)),
            offset=max(0, offset),
        )

    def as_filters(self) -> Dict[str, Any]:
        return {
            "category_id": self.category_id,
            "active": self.active,
            "featured": self.featured,
            "limit": self.limit,
            "offset": self.offset,
        }


@dataclass
class ProductUpdateCommand:
    """Partial staff update; only keys present in the payload are changed."""

    product_id: int
    changes: Dict[str, Any] = field(default_factory=dict)

    FIELD_ALIASES = {
        "name": "name",
        "basePrice": "base_price",
        "base_price": "base_price",
        "wholesalePrice": "wholesale_price",
        "wholesale_price": "wholesale_price",
        "stock": "stock",
        "active": "active",
        "featured": "featured",
    }

    @staticmethod
    def from_raw(product_id: int, payload: Dict[str, Any]):
        if not isinstance(payload, dict):
            raise ValueError("Payload must be a dict")
        changes: Dict[str, Any] = {}
        for raw_key, field_name in ProductUpdateCommand.FIELD_ALIASES.items():
            if raw_key not in payload:
                continue
            value = payload[raw_key]
            if field_name in ("base_price", "wholesale_price"):
                value = _to_decimal(value)
                if field_name == "base_price" and value is None:
                    raise ValueError("base_price cannot be empty")
            elif field_name == "stock":
                value = _to_int(value)
                if value is None or value < 0:
                    raise ValueError("stock must be a non-negative integer")
            elif field_name in ("active", "featured"):
                value = _to_bool(value)
                if value is None:
                    raise ValueError(f"{field_name} must be a boolean")
            elif field_name == "name":
                value = str(value).strip()
                if not value:
                    raise ValueError("name cannot be empty")
            changes[field_name] = value
        return ProductUpdateCommand(product_id=product_id, changes=changes)
