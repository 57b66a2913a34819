from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from app.opspanel.records import Record, RecordStore


QUOTES = "quotes"

VALID_STATUSES = ("draft", "sent", "accepted", "declined")
INITIAL_STATUS = "draft"


def validate_quote_payload(payload: dict, *, is_update: bool = False) -> list[str]:
    """Validate quote creation/update payload. Returns list of errors."""
    errors = []
    if not is_update and not payload.get("customerId"):
        errors.append("customerId is required.")
    status = payload.get("status")
    if status is not None and status not in VALID_STATUSES:
        errors.append(f"Invalid status. Must be one of: {', '.join(VALID_STATUSES)}")
    for field in ("amount", "subtotal", "tax", "total"):
        if field in payload and payload[field] is not None:
            try:
                if float(payload[field]) < 0:
                    errors.append(f"{field} cannot be negative.")
            except (TypeError, ValueError):
                errors.append(f"{field} must be a number.")
    items = payload.get("items")
    if items is not None and not isinstance(items, list):
        errors.append("items must be a list.")
    return errors


def get_quotes(store: "RecordStore") -> list["Record"]:
    return store.get_all(QUOTES)


def get_quote_by_id(store: "RecordStore", quote_id: str) -> "Record | None":
    return store.get_by_id(QUOTES, quote_id)


def add_quote(store: "RecordStore", quote: dict[str, Any]) -> "Record":
    # New quotes always start as drafts, whatever the caller sent.
    return store.add(QUOTES, {**quote, "status": INITIAL_STATUS})


def update_quote(store: "RecordStore", quote_id: str, updated: dict[str, Any]) -> "Record":
    return store.update(QUOTES, quote_id, updated)


def delete_quote(store: "RecordStore", quote_id: str) -> None:
    store.delete(QUOTES, quote_id)
