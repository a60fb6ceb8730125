import threading
import time
from typing import Any, Dict, List, Optional, Tuple

from pos_engine.schemas.models import CartLine, OrderDraft, Totals
from pos_engine.services.draft import normalize_draft
from pos_engine.services.pricing_engine import to_order_item
from pos_engine.services.totals import compute_totals


class CartSession:
    """
    Owner of one cashier's cart. Lines are immutable; every change builds a
    new tuple and swaps it in under the lock, so readers always see a whole
    cart.
    """

    def __init__(self, lines: Tuple[CartLine, ...] = (), **checkout: Any):
        self._lock = threading.Lock()
        self._lines: Tuple[CartLine, ...] = tuple(lines)
        self.discount_rp: float = checkout.get("discount_rp", 0)
        self.discount_pct: float = checkout.get("discount_pct", 0)
        self.customer_name: str = checkout.get("customer_name", "")
        self.customer_phone: str = checkout.get("customer_phone", "")
        self.send_notif: bool = checkout.get("send_notif", False)
        self.payment_method: str = checkout.get("payment_method", "QRIS")

    @property
    def lines(self) -> Tuple[CartLine, ...]:
        return self._lines

    def __len__(self) -> int:
        return len(self._lines)

    def find(self, key: str) -> Optional[CartLine]:
        return next((l for l in self._lines if l.identity_key == key), None)

    # -- mutations ----------------------------------------------------

    def add(self, line: CartLine) -> CartLine:
        """Merge into an existing line with the same identity key, else append."""
        with self._lock:
            out: List[CartLine] = []
            merged = None
            for l in self._lines:
                if merged is None and l.identity_key == line.identity_key:
                    merged = l.model_copy(update={"quantity": l.quantity + line.quantity})
                    out.append(merged)
                else:
                    out.append(l)
            if merged is None:
                merged = line
                out.append(line)
            self._lines = tuple(out)
            return merged

    def set_quantity(self, key: str, quantity: int) -> Optional[CartLine]:
        """Quantity <= 0 removes the line. Returns the updated line or None."""
        with self._lock:
            out: List[CartLine] = []
            updated = None
            for l in self._lines:
                if l.identity_key != key:
                    out.append(l)
                elif quantity > 0:
                    updated = l.model_copy(update={"quantity": int(quantity)})
                    out.append(updated)
            self._lines = tuple(out)
            return updated

    def change_quantity(self, key: str, delta: int) -> Optional[CartLine]:
        current = self.find(key)
        if current is None:
            return None
        return self.set_quantity(key, current.quantity + delta)

    def remove(self, key: str) -> None:
        with self._lock:
            self._lines = tuple(l for l in self._lines if l.identity_key != key)

    def clear(self) -> None:
        with self._lock:
            self._lines = ()

    # -- reads --------------------------------------------------------

    def totals(self, fee: float = 0) -> Totals:
        return compute_totals(self._lines, self.discount_rp, self.discount_pct, fee)

    def to_order_items(self) -> List[Dict[str, Any]]:
        return [to_order_item(l) for l in self._lines]

    def snapshot(self) -> OrderDraft:
        return OrderDraft(
            cart=list(self._lines),
            discount_rp=self.discount_rp,
            discount_pct=self.discount_pct,
            customer_name=self.customer_name,
            customer_phone=self.customer_phone,
            send_notif=self.send_notif,
            payment_method=self.payment_method,
            timestamp=int(time.time() * 1000),
        )

    @classmethod
    def from_draft(cls, raw: Any) -> "CartSession":
        """Restore from a stored draft; unreadable drafts give an empty cart."""
        draft = normalize_draft(raw)
        if draft is None:
            return cls()
        return cls(
            tuple(draft.cart),
            discount_rp=draft.discount_rp,
            discount_pct=draft.discount_pct,
            customer_name=draft.customer_name,
            customer_phone=draft.customer_phone,
            send_notif=draft.send_notif,
            payment_method=draft.payment_method,
        )
