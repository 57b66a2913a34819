from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from app.opspanel.modules.quotes.service import get_quote_by_id, update_quote

if TYPE_CHECKING:
    from app.opspanel.records import Record, RecordStore

logger = logging.getLogger(__name__)

SALES = "sales"

VALID_STATUSES = ("lead", "qualified", "proposal", "negotiation", "won", "lost")
CLOSED_STATUSES = ("won", "lost")
INITIAL_STATUS = "lead"


def validate_sale_payload(payload: dict, *, is_update: bool = False) -> list[str]:
    """Validate sale creation/update payload. Returns list of errors."""
    errors = []
    if not is_update and not payload.get("customerId"):
        errors.append("customerId is required.")
    status = payload.get("status")
    if status is not None and status not in VALID_STATUSES:
        errors.append(f"Invalid status. Must be one of: {', '.join(VALID_STATUSES)}")
    if payload.get("amount") is not None:
        try:
            if float(payload["amount"]) < 0:
                errors.append("amount cannot be negative.")
        except (TypeError, ValueError):
            errors.append("amount must be a number.")
    return errors


def get_sales(store: "RecordStore") -> list["Record"]:
    return store.get_all(SALES)


def get_sale_by_id(store: "RecordStore", sale_id: str) -> "Record | None":
    return store.get_by_id(SALES, sale_id)


def add_sale(store: "RecordStore", sale: dict[str, Any]) -> "Record":
    return store.add(SALES, {**sale, "status": INITIAL_STATUS})


def update_sale(store: "RecordStore", sale_id: str, updated: dict[str, Any]) -> "Record":
    return store.update(SALES, sale_id, updated)


def delete_sale(store: "RecordStore", sale_id: str) -> None:
    store.delete(SALES, sale_id)


def convert_quote_to_sale(store: "RecordStore", quote_id: str) -> "Record | None":
    """
    Open a sales lead from a quote and mark the quote accepted.
    Returns None when the quote does not exist.
    """
    quote = get_quote_by_id(store, quote_id)
    if quote is None:
        return None

    sale = add_sale(
        store,
        {
            "quoteId": quote["id"],
            "customerId": quote.get("customerId"),
            "amount": quote.get("total"),
            "title": f"Sale from quote #{quote['id'][:8]}",
            "description": quote.get("description") or "",
        },
    )
    update_quote(store, quote_id, {"status": "accepted"})
    logger.info("Converted quote %s to sale %s", quote_id, sale["id"])
    return sale
