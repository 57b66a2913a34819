from __future__ import annotations

from flask import Blueprint, jsonify, request

from app.opspanel.api import audit, current_store, json_payload, not_found, validation_error
from app.opspanel.modules.orders.service import (
    DELIVERY_STATUSES,
    ORDERS,
    VALID_STATUSES,
    add_order,
    delete_order,
    get_order_by_id,
    get_orders,
    update_delivery_status,
    update_order,
    update_order_status,
    validate_order_payload,
)
from app.opspanel.rbac import Role, require_role

bp = Blueprint("orders", __name__)


@bp.get("/orders")
@require_role(Role.USER)
def orders_list():
    orders = get_orders(current_store())
    status_filter = (request.args.get("status") or "").strip()
    if status_filter:
        if status_filter not in VALID_STATUSES:
            return validation_error([f"Invalid status. Must be one of: {', '.join(VALID_STATUSES)}"])
        orders = [o for o in orders if o.get("status") == status_filter]
    return jsonify(orders)


@bp.post("/orders")
@require_role(Role.ADMIN)
def orders_create():
    payload = json_payload()
    errors = validate_order_payload(payload)
    if errors:
        return validation_error(errors)
    order = add_order(current_store(), payload)
    audit("order.create", ORDERS, order["id"], {"customerId": order.get("customerId"), "items": len(order["items"])})
    return jsonify(order), 201


@bp.get("/orders/<order_id>")
@require_role(Role.USER)
def order_detail(order_id: str):
    order = get_order_by_id(current_store(), order_id)
    if order is None:
        return not_found(ORDERS, order_id)
    return jsonify(order)


@bp.patch("/orders/<order_id>")
@require_role(Role.ADMIN)
def order_update(order_id: str):
    payload = json_payload()
    errors = validate_order_payload(payload, is_update=True)
    if errors:
        return validation_error(errors)
    order = update_order(current_store(), order_id, payload)
    audit("order.update", ORDERS, order_id, {"fields": sorted(payload)})
    return jsonify(order)


@bp.post("/orders/<order_id>/status")
@require_role(Role.ADMIN)
def order_status(order_id: str):
    status = json_payload().get("status")
    if status not in VALID_STATUSES:
        return validation_error([f"Invalid status. Must be one of: {', '.join(VALID_STATUSES)}"])
    order = update_order_status(current_store(), order_id, status)
    audit("order.status", ORDERS, order_id, {"status": status})
    return jsonify(order)


@bp.post("/orders/<order_id>/delivery")
@require_role(Role.ADMIN)
def order_delivery(order_id: str):
    status = json_payload().get("status")
    if status not in DELIVERY_STATUSES:
        return validation_error([f"Invalid delivery status. Must be one of: {', '.join(DELIVERY_STATUSES)}"])
    order = update_delivery_status(current_store(), order_id, status)
    audit("order.delivery", ORDERS, order_id, {"status": status})
    return jsonify(order)


@bp.delete("/orders/<order_id>")
@require_role(Role.ADMIN)
def order_delete(order_id: str):
    delete_order(current_store(), order_id)
    audit("order.delete", ORDERS, order_id)
    return "", 204
