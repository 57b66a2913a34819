from __future__ import annotations

from flask import Blueprint, jsonify, request

from app.opspanel.api import audit, current_store, json_payload, not_found, validation_error
from app.opspanel.modules.sales.service import (
    SALES,
    VALID_STATUSES,
    add_sale,
    delete_sale,
    get_sale_by_id,
    get_sales,
    update_sale,
    validate_sale_payload,
)
from app.opspanel.rbac import Role, require_role

bp = Blueprint("sales", __name__)


@bp.get("/sales")
@require_role(Role.USER)
def sales_list():
    sales = get_sales(current_store())
    status_filter = (request.args.get("status") or "").strip()
    if status_filter:
        if status_filter not in VALID_STATUSES:
            return validation_error([f"Invalid status. Must be one of: {', '.join(VALID_STATUSES)}"])
        sales = [s for s in sales if s.get("status") == status_filter]
    return jsonify(sales)


@bp.post("/sales")
@require_role(Role.ADMIN)
def sales_create():
    payload = json_payload()
    errors = validate_sale_payload(payload)
    if errors:
        return validation_error(errors)
    sale = add_sale(current_store(), payload)
    audit("sale.create", SALES, sale["id"], {"customerId": sale.get("customerId")})
    return jsonify(sale), 201


@bp.get("/sales/<sale_id>")
@require_role(Role.USER)
def sale_detail(sale_id: str):
    sale = get_sale_by_id(current_store(), sale_id)
    if sale is None:
        return not_found(SALES, sale_id)
    return jsonify(sale)


@bp.patch("/sales/<sale_id>")
@require_role(Role.ADMIN)
def sale_update(sale_id: str):
    payload = json_payload()
    errors = validate_sale_payload(payload, is_update=True)
    if errors:
        return validation_error(errors)
    sale = update_sale(current_store(), sale_id, payload)
    audit("sale.update", SALES, sale_id, {"fields": sorted(payload)})
    return jsonify(sale)


@bp.delete("/sales/<sale_id>")
@require_role(Role.ADMIN)
def sale_delete(sale_id: str):
    delete_sale(current_store(), sale_id)
    audit("sale.delete", SALES, sale_id)
    return "", 204
