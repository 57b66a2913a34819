from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from app.opspanel.records import Record, RecordStore

logger = logging.getLogger(__name__)

ORDERS = "orders"

VALID_STATUSES = ("pending", "processing", "shipped", "delivered", "cancelled")
INITIAL_STATUS = "pending"

DELIVERY_STATUSES = ("pending", "in_transit", "out_for_delivery", "delivered")
CARRIERS = ("fedex", "ups", "usps", "dhl")
DEFAULT_CARRIER = "fedex"
ESTIMATED_DELIVERY_DAYS = 7


def _iso(ts: datetime) -> str:
    return ts.isoformat().replace("+00:00", "Z")


def _positive_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    try:
        n = float(value)
    except (TypeError, ValueError):
        return False
    return math.isfinite(n) and n > 0


def validate_order_payload(payload: dict, *, is_update: bool = False) -> list[str]:
    """Validate order creation/update payload. Returns list of errors."""
    errors = []
    if not is_update and not payload.get("customerId"):
        errors.append("customerId is required.")
    if not is_update or "items" in payload:
        items = payload.get("items")
        if not isinstance(items, list) or not items:
            errors.append("items must be a non-empty list.")
        else:
            for i, item in enumerate(items):
                if not isinstance(item, dict):
                    errors.append(f"items[{i}] must be an object.")
                    continue
                name = item.get("productName")
                if not isinstance(name, str) or not name.strip():
                    errors.append(f"items[{i}].productName is required.")
                if not _positive_number(item.get("quantity", 1)):
                    errors.append(f"items[{i}].quantity must be a positive number.")
                price = item.get("unitPrice", 0)
                if not (price == 0 or _positive_number(price)):
                    errors.append(f"items[{i}].unitPrice must be a number, not negative.")
    if "carrier" in payload and payload["carrier"] not in CARRIERS:
        errors.append(f"Invalid carrier. Must be one of: {', '.join(CARRIERS)}")
    if "status" in payload and payload["status"] not in VALID_STATUSES:
        errors.append(f"Invalid status. Must be one of: {', '.join(VALID_STATUSES)}")
    address = payload.get("shippingAddress")
    if address is not None and not isinstance(address, str):
        errors.append("shippingAddress must be a string.")
    return errors


def _priced_items(items: list[dict]) -> tuple[list[dict], float]:
    priced = []
    for item in items:
        quantity = float(item.get("quantity", 1))
        unit_price = float(item.get("unitPrice") or 0)
        priced.append(
            {
                "productName": item["productName"].strip(),
                "description": item.get("description") or "",
                "quantity": quantity,
                "unitPrice": unit_price,
                "totalPrice": round(quantity * unit_price, 2),
            }
        )
    return priced, round(sum(i["totalPrice"] for i in priced), 2)


def get_orders(store: "RecordStore") -> list["Record"]:
    return store.get_all(ORDERS)


def get_order_by_id(store: "RecordStore", order_id: str) -> "Record | None":
    return store.get_by_id(ORDERS, order_id)


def add_order(store: "RecordStore", order: dict[str, Any], *, now: datetime | None = None) -> "Record":
    """
    New orders start `pending` with a `pending` delivery record whose
    estimate is a week out. Line totals and `totalAmount` are computed here.
    """
    now = now or datetime.now(timezone.utc)
    to_add = {k: v for k, v in order.items() if k not in ("carrier", "status", "delivery")}
    items, total = _priced_items(order.get("items") or [])
    to_add.update(
        {
            "items": items,
            "totalAmount": total,
            "status": INITIAL_STATUS,
            "delivery": {
                "status": "pending",
                "carrier": order.get("carrier") or DEFAULT_CARRIER,
                "estimatedDelivery": _iso(now + timedelta(days=ESTIMATED_DELIVERY_DAYS)),
                "actualDelivery": None,
            },
        }
    )
    return store.add(ORDERS, to_add)


def update_order(store: "RecordStore", order_id: str, updated: dict[str, Any]) -> "Record":
    to_update = {k: v for k, v in updated.items() if k not in ("delivery", "carrier", "totalAmount")}
    if "items" in to_update:
        to_update["items"], to_update["totalAmount"] = _priced_items(to_update["items"])
    if "carrier" in updated:
        current = store.require(ORDERS, order_id)
        to_update["delivery"] = {**(current.get("delivery") or {}), "carrier": updated["carrier"]}
    return store.update(ORDERS, order_id, to_update)


def update_order_status(store: "RecordStore", order_id: str, status: str) -> "Record":
    if status not in VALID_STATUSES:
        raise ValueError(f"Invalid order status {status!r}")
    order = store.update(ORDERS, order_id, {"status": status})
    logger.info("Order %s status -> %s", order_id, status)
    return order


def update_delivery_status(
    store: "RecordStore", order_id: str, status: str, *, now: datetime | None = None
) -> "Record":
    """Set the delivery status; `actualDelivery` is stamped only when delivered."""
    if status not in DELIVERY_STATUSES:
        raise ValueError(f"Invalid delivery status {status!r}")
    current = store.require(ORDERS, order_id)
    delivery = dict(current.get("delivery") or {})
    if delivery.get("status") == status:
        return current
    delivery["status"] = status
    delivery["actualDelivery"] = _iso(now or datetime.now(timezone.utc)) if status == "delivered" else None
    order = store.update(ORDERS, order_id, {"delivery": delivery})
    logger.info("Order %s delivery -> %s", order_id, status)
    return order


def delete_order(store: "RecordStore", order_id: str) -> None:
    store.delete(ORDERS, order_id)
