from __future__ import annotations

from flask import Blueprint, jsonify

from app.opspanel.api import audit, current_store, json_payload, not_found, validation_error
from app.opspanel.modules.quotes.service import (
    QUOTES,
    add_quote,
    delete_quote,
    get_quote_by_id,
    get_quotes,
    update_quote,
    validate_quote_payload,
)
from app.opspanel.modules.sales.service import SALES, convert_quote_to_sale
from app.opspanel.rbac import Role, require_role

bp = Blueprint("quotes", __name__)


@bp.get("/quotes")
@require_role(Role.USER)
def quotes_list():
    return jsonify(get_quotes(current_store()))


@bp.post("/quotes")
@require_role(Role.ADMIN)
def quotes_create():
    payload = json_payload()
    errors = validate_quote_payload(payload)
    if errors:
        return validation_error(errors)
    quote = add_quote(current_store(), payload)
    audit("quote.create", QUOTES, quote["id"], {"customerId": quote.get("customerId")})
    return jsonify(quote), 201


@bp.get("/quotes/<quote_id>")
@require_role(Role.USER)
def quote_detail(quote_id: str):
    quote = get_quote_by_id(current_store(), quote_id)
    if quote is None:
        return not_found(QUOTES, quote_id)
    return jsonify(quote)


@bp.patch("/quotes/<quote_id>")
@require_role(Role.ADMIN)
def quote_update(quote_id: str):
    payload = json_payload()
    errors = validate_quote_payload(payload, is_update=True)
    if errors:
        return validation_error(errors)
    quote = update_quote(current_store(), quote_id, payload)
    audit("quote.update", QUOTES, quote_id, {"fields": sorted(payload)})
    return jsonify(quote)


@bp.delete("/quotes/<quote_id>")
@require_role(Role.ADMIN)
def quote_delete(quote_id: str):
    delete_quote(current_store(), quote_id)
    audit("quote.delete", QUOTES, quote_id)
    return "", 204


@bp.post("/quotes/<quote_id>/convert")
@require_role(Role.ADMIN)
def quote_convert(quote_id: str):
    sale = convert_quote_to_sale(current_store(), quote_id)
    if sale is None:
        return not_found(QUOTES, quote_id)
    audit("quote.convert", SALES, sale["id"], {"quoteId": quote_id})
    return jsonify(sale), 201
