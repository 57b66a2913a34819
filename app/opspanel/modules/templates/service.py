"""
Email and PDF templates.

Each kind is a collection whose records use the template type as their id
(`quote`, `orderConfirmation`, ...). The set of types is fixed by the
defaults below; a stored record overrides its default, deleting it restores
the default.
"""

from __future__ import annotations

import copy
import html
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from app.opspanel.records import Record, RecordStore

logger = logging.getLogger(__name__)

EMAIL_TEMPLATES = "email_templates"
PDF_TEMPLATES = "pdf_templates"

COMPANY_NAME = "Promocups"


def _email_html(title: str, body: str) -> str:
    return (
        "<!DOCTYPE html>\n<html>\n<head>\n  <meta charset=\"utf-8\">\n"
        f"  <title>{title}</title>\n</head>\n<body>\n"
        "  <h1>{{company_name}}</h1>\n"
        "  <p>Dear {{customer_name}},</p>\n"
        f"{body}"
        "  <p>Best regards,<br>{{company_name}}</p>\n</body>\n</html>"
    )


DEFAULT_EMAIL_TEMPLATES: dict[str, dict[str, Any]] = {
    "quote": {
        "name": "Quote Email Template",
        "subject": "Quote {{quote_number}} from {{company_name}}",
        "html": _email_html(
            "Quote {{quote_number}}",
            "  <p>Please find attached quote <strong>{{quote_number}}</strong>.</p>\n"
            "  <p>{{quote_description}}</p>\n"
            "  <p>Total: ${{total_amount}}. Valid until {{valid_until}}.</p>\n",
        ),
    },
    "orderConfirmation": {
        "name": "Order Confirmation Template",
        "subject": "Order Confirmation - {{order_number}}",
        "html": _email_html(
            "Order {{order_number}}",
            "  <p>Thank you for your order <strong>{{order_number}}</strong> placed on {{order_date}}.</p>\n"
            "  <p>Status: {{order_status}}. Total: ${{total_amount}}.</p>\n"
            "  <p>Estimated delivery: {{estimated_delivery}} to {{shipping_address}}.</p>\n",
        ),
    },
    "orderStatusUpdate": {
        "name": "Order Status Update Template",
        "subject": "Order Update - {{order_number}} Status Changed",
        "html": _email_html(
            "Order {{order_number}} update",
            "  <p>Your order <strong>{{order_number}}</strong> changed from {{old_status}} to "
            "<span style=\"color: {{status_color}}\">{{new_status}}</span>.</p>\n"
            "  <p>{{status_message}}</p>\n"
            "  {{#if tracking_number}}<p><strong>Tracking Number:</strong> {{tracking_number}}</p>{{/if}}\n",
        ),
    },
}

_PDF_COLORS = {"secondary": "#f9fafb", "text": "#333333", "headerText": "#ffffff"}
_PDF_FONTS = {"main": "Arial", "size": "normal"}

DEFAULT_PDF_TEMPLATES: dict[str, dict[str, Any]] = {
    "quote": {
        "name": "Quote PDF Template",
        "language": "english",
        "header": {"title": "QUOTE", "companyInfo": f"{COMPANY_NAME}\nYour Sales Management Solution", "showLogo": True},
        "content": {
            "customerTitle": "Bill To:",
            "quoteTitle": "Quote Title:",
            "descriptionTitle": "Description:",
            "itemsTitle": "Items",
            "itemsColumns": ["Description", "Qty", "Price", "Total"],
            "subtotalLabel": "Subtotal:",
            "taxLabel": "Tax:",
            "totalLabel": "Total:",
            "termsTitle": "Terms and Conditions:",
            "terms": [
                "1. This quote is valid for the period specified above.",
                "2. Payment terms: 50% upfront, 50% upon delivery.",
                "3. Prices are subject to change without notice.",
                "4. All work will be completed according to specifications.",
            ],
            "footerText": "Thank you for your business!",
        },
        "colors": {"primary": "#4f46e5", **_PDF_COLORS},
        "fonts": dict(_PDF_FONTS),
    },
    "order": {
        "name": "Order PDF Template",
        "language": "english",
        "header": {"title": "ORDER", "companyInfo": f"{COMPANY_NAME}\nYour Sales Management Solution", "showLogo": True},
        "content": {
            "customerTitle": "Bill To:",
            "shippingTitle": "Shipping Address:",
            "orderTitle": "Order Information:",
            "statusTitle": "Order Status:",
            "paymentTitle": "Payment Status:",
            "trackingTitle": "Tracking Information:",
            "deliveryTitle": "Delivery Information:",
            "itemsTitle": "Items",
            "itemsColumns": ["Description", "Qty", "Price", "Total"],
            "subtotalLabel": "Subtotal:",
            "taxLabel": "Tax:",
            "totalLabel": "Total:",
            "footerText": "Thank you for your business!",
        },
        "colors": {"primary": "#EF4B24", **_PDF_COLORS, "secondary": "#fff7ed"},
        "fonts": dict(_PDF_FONTS),
    },
}

KINDS: dict[str, tuple[str, dict[str, dict[str, Any]]]] = {
    "email": (EMAIL_TEMPLATES, DEFAULT_EMAIL_TEMPLATES),
    "pdf": (PDF_TEMPLATES, DEFAULT_PDF_TEMPLATES),
}

_EMAIL_FIELDS = ("name", "subject", "html")
_PDF_SECTIONS = ("header", "content", "colors", "fonts")


def _kind(kind: str) -> tuple[str, dict[str, dict[str, Any]]]:
    if kind not in KINDS:
        raise ValueError(f"Unknown template kind {kind!r}")
    return KINDS[kind]


def is_known_template(kind: str, template_type: str) -> bool:
    return kind in KINDS and template_type in KINDS[kind][1]


def validate_template_payload(kind: str, payload: dict) -> list[str]:
    """Validate a full template save. Returns list of errors."""
    errors = []
    if kind == "email":
        for field in _EMAIL_FIELDS:
            value = payload.get(field)
            if not isinstance(value, str) or not value.strip():
                errors.append(f"{field} is required.")
    elif kind == "pdf":
        name = payload.get("name")
        if not isinstance(name, str) or not name.strip():
            errors.append("name is required.")
        if "language" in payload and not isinstance(payload["language"], str):
            errors.append("language must be a string.")
        for section in _PDF_SECTIONS:
            if section in payload and not isinstance(payload[section], dict):
                errors.append(f"{section} must be an object.")
    else:
        errors.append(f"Unknown template kind: {kind}")
    return errors


def _with_type(template_type: str, template: dict[str, Any]) -> dict[str, Any]:
    out = {k: v for k, v in template.items() if k != "id"}
    out["type"] = template_type
    return out


def get_templates(store: "RecordStore", kind: str) -> dict[str, dict[str, Any]]:
    """Every template of `kind`: defaults overlaid by saved versions. Reads only."""
    collection, defaults = _kind(kind)
    stored = {r["id"]: r for r in store.get_all(collection)}
    return {t: _with_type(t, stored.get(t) or copy.deepcopy(d)) for t, d in defaults.items()}


def get_template(store: "RecordStore", kind: str, template_type: str) -> dict[str, Any] | None:
    collection, defaults = _kind(kind)
    if template_type not in defaults:
        return None
    saved = store.get_by_id(collection, template_type)
    return _with_type(template_type, saved or copy.deepcopy(defaults[template_type]))


def save_template(store: "RecordStore", kind: str, template_type: str, data: dict[str, Any]) -> "Record":
    collection, defaults = _kind(kind)
    if template_type not in defaults:
        raise ValueError(f"Unknown {kind} template type {template_type!r}")
    fields = _EMAIL_FIELDS if kind == "email" else ("name", "language", *_PDF_SECTIONS)
    # PDF sections not sent keep their default layout.
    base = {} if kind == "email" else copy.deepcopy(defaults[template_type])
    values = {**{k: v for k, v in base.items() if k in fields}, **{k: data[k] for k in fields if k in data}}
    if store.get_by_id(collection, template_type) is None:
        saved = store.add(collection, {"id": template_type, **values})
    else:
        saved = store.update(collection, template_type, values)
    logger.info("Saved %s template %s", kind, template_type)
    return saved


def reset_template(store: "RecordStore", kind: str, template_type: str) -> None:
    collection, _ = _kind(kind)
    store.delete(collection, template_type)


def seed_templates(store: "RecordStore") -> int:
    """Store the default templates of every kind whose collection is empty."""
    added = 0
    for collection, defaults in KINDS.values():
        if store.get_all(collection):
            continue
        store.replace_all(collection, [{"id": t, **copy.deepcopy(d)} for t, d in defaults.items()])
        added += len(defaults)
    return added


_IF_BLOCK = re.compile(r"\{\{#if (\w+)\}\}(.*?)\{\{/if\}\}", re.DOTALL)
_PLACEHOLDER = re.compile(r"\{\{(\w+)\}\}")


def render_text(text: str, data: dict[str, Any], *, escape: bool = True) -> str:
    """
    Fill `{{name}}` placeholders from `data` (HTML-escaped unless `escape`
    is false) and keep
    `{{#if name}}...{{/if}}` blocks only when `data[name]` is truthy.
    Unknown placeholders are left as-is.
    """
    text = _IF_BLOCK.sub(lambda m: m.group(2) if data.get(m.group(1)) else "", text)

    def _fill(m: re.Match) -> str:
        key = m.group(1)
        if key not in data:
            return m.group(0)
        value = str(data[key])
        return html.escape(value) if escape else value

    return _PLACEHOLDER.sub(_fill, text)


def preview_data(template_type: str, *, now: datetime | None = None) -> dict[str, Any]:
    """Sample values used to preview an email template."""
    now = now or datetime.now(timezone.utc)
    base = {
        "company_name": COMPANY_NAME,
        "customer_name": "John Smith",
        "order_date": now.date().isoformat(),
        "total_amount": "1,250.00",
    }
    if template_type == "quote":
        return {
            **base,
            "quote_number": "QT-2025-000123",
            "valid_until": (now + timedelta(days=30)).date().isoformat(),
            "quote_description": "This quote includes premium promotional cups with custom branding.",
        }
    if template_type == "orderConfirmation":
        return {
            **base,
            "order_number": "ORD-2025-000456",
            "order_status": "Processing",
            "estimated_delivery": (now + timedelta(days=7)).date().isoformat(),
            "shipping_address": "123 Business Ave, Suite 100, New York, NY 10001",
        }
    if template_type == "orderStatusUpdate":
        return {
            **base,
            "order_number": "ORD-2025-000456",
            "old_status": "Processing",
            "new_status": "Shipped",
            "status_color": "#8b5cf6",
            "status_message": "Your order has been shipped and is on its way to you.",
            "tracking_number": "1Z999AA1234567890",
        }
    return base


def render_email_template(template: dict[str, Any], data: dict[str, Any]) -> dict[str, str]:
    return {"subject": render_text(template["subject"], data, escape=False), "html": render_text(template["html"], data)}
