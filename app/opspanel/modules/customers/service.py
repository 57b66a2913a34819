from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from app.opspanel.records import Record, RecordStore


CUSTOMERS = "customers"

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def validate_customer_payload(payload: dict, *, is_update: bool = False) -> list[str]:
    """Validate customer creation/update payload. Returns list of errors."""
    errors = []
    name = payload.get("name")
    if not is_update or "name" in payload:
        if not isinstance(name, str) or not name.strip():
            errors.append("Name is required.")
    email = payload.get("email")
    if email:
        if not isinstance(email, str) or not _EMAIL_RE.match(email.strip()):
            errors.append("Invalid email format.")
    return errors


def get_customers(store: "RecordStore") -> list["Record"]:
    return store.get_all(CUSTOMERS)


def get_customer_by_id(store: "RecordStore", customer_id: str) -> "Record | None":
    return store.get_by_id(CUSTOMERS, customer_id)


def add_customer(store: "RecordStore", customer: dict[str, Any]) -> "Record":
    return store.add(CUSTOMERS, customer)


def update_customer(store: "RecordStore", customer_id: str, updated: dict[str, Any]) -> "Record":
    return store.update(CUSTOMERS, customer_id, updated)


def delete_customer(store: "RecordStore", customer_id: str) -> None:
    store.delete(CUSTOMERS, customer_id)
