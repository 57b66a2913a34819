from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from app.opspanel.records import Record, RecordStore


PRODUCTS = "products"

DEFAULT_TIER_LIMIT = 10000


def _has_tiers(payload: dict) -> bool:
    tiers = payload.get("priceTiers")
    return isinstance(tiers, list) and len(tiers) > 0


def _number(value: Any) -> int | float:
    n = float(value)
    return int(n) if n.is_integer() else n


def _normalize_tiers(tiers: list[dict]) -> list[dict]:
    """Numeric bounds and prices, ordered by upToQuantity."""
    normalized = [{**t, "upToQuantity": _number(t["upToQuantity"]), "price": _number(t["price"])} for t in tiers]
    return sorted(normalized, key=lambda t: t["upToQuantity"])


def validate_product_payload(payload: dict, *, is_update: bool = False) -> list[str]:
    """Validate product creation/update payload. Returns list of errors."""
    errors = []
    if not is_update or "name" in payload:
        name = payload.get("name")
        if not isinstance(name, str) or not name.strip():
            errors.append("Name is required.")
    if "price" in payload and payload["price"] is not None:
        try:
            price = float(payload["price"])
            if not math.isfinite(price):
                errors.append("price must be a finite number.")
            elif price < 0:
                errors.append("price cannot be negative.")
        except (TypeError, ValueError):
            errors.append("price must be a number.")
    tiers = payload.get("priceTiers")
    if tiers is not None:
        if not isinstance(tiers, list):
            errors.append("priceTiers must be a list.")
        else:
            for i, tier in enumerate(tiers):
                if not isinstance(tier, dict):
                    errors.append(f"priceTiers[{i}] must be an object.")
                    continue
                try:
                    bounds = (float(tier["upToQuantity"]), float(tier["price"]))
                except (KeyError, TypeError, ValueError):
                    errors.append(f"priceTiers[{i}] needs numeric upToQuantity and price.")
                    continue
                if not all(math.isfinite(b) and b >= 0 for b in bounds):
                    errors.append(f"priceTiers[{i}] upToQuantity and price must be finite and not negative.")
    return errors


def get_products(store: "RecordStore") -> list["Record"]:
    return store.get_all(PRODUCTS)


def get_product_by_id(store: "RecordStore", product_id: str) -> "Record | None":
    return store.get_by_id(PRODUCTS, product_id)


def add_product(store: "RecordStore", product: dict[str, Any]) -> "Record":
    to_add = dict(product)
    if _has_tiers(to_add):
        to_add["priceTiers"] = _normalize_tiers(to_add["priceTiers"])
    else:
        to_add["priceTiers"] = [{"upToQuantity": DEFAULT_TIER_LIMIT, "price": _number(to_add.get("price") or 0)}]
    to_add.pop("price", None)
    return store.add(PRODUCTS, to_add)


def update_product(store: "RecordStore", product_id: str, updated: dict[str, Any]) -> "Record":
    to_update = dict(updated)
    if _has_tiers(to_update):
        to_update["priceTiers"] = _normalize_tiers(to_update["priceTiers"])
        to_update.pop("price", None)
    elif to_update.get("price") is not None:
        to_update["price"] = _number(to_update["price"])
    return store.update(PRODUCTS, product_id, to_update)


def delete_product(store: "RecordStore", product_id: str) -> None:
    store.delete(PRODUCTS, product_id)


def price_for_quantity(product: dict | None, quantity: float) -> float:
    """
    Unit price for `quantity`: the first tier (by upToQuantity) that covers it.
    Quantities above every tier get the last tier's price; no tiers means 0.
    """
    if not product or not _has_tiers(product):
        return 0
    tiers = _normalize_tiers(product["priceTiers"])
    for tier in tiers:
        if quantity <= tier["upToQuantity"]:
            return tier["price"]
    return tiers[-1]["price"]
