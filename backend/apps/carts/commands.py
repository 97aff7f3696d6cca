from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class CartItemCommand:
    product_id: int
    quantity: int

    @staticmethod
    def from_raw(raw: Dict[str, Any]) -> Optional["CartItemCommand"]:
        if not isinstance(raw, dict):
            return None
        pid = raw.get("productId") or raw.get("product_id")
        if pid is None:
            # nested product object fallback
            product = raw.get("product")
            if isinstance(product, dict):
                pid = product.get("id")
        try:
            pid = int(pid) if pid is not None else None
        except (ValueError, TypeError):
            pid = None
        try:
            qty = int(raw.get("quantity", 0))
        except (ValueError, TypeError):
            qty = 0
        if not pid or qty <= 0:
            return None
        return CartItemCommand(product_id=pid, quantity=qty)


@dataclass
class CartReplaceCommand:
    items: List[CartItemCommand] = field(default_factory=list)

    @staticmethod
    def from_raw(payload: Dict[str, Any]) -> "CartReplaceCommand":
        if not isinstance(payload, dict):
            raise ValueError("Payload must be a dict")
        items: List[CartItemCommand] = []
        for raw in payload.get("items") or []:
            cmd = raw if isinstance(raw, CartItemCommand) else CartItemCommand.from_raw(raw)
            if cmd:
                items.append(cmd)
        return CartReplaceCommand(items=items)

    def merged(self) -> Dict[int, int]:
        """Quantities per product, duplicates summed, first-seen order kept."""
        out: Dict[int, int] = {}
        for item in self.items:
            out[item.product_id] = out.get(item.product_id, 0) + item.quantity
        return out
