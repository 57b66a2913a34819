from __future__ import annotations

from flask import Blueprint, jsonify

from app.opspanel.api import audit, current_store, json_payload, not_found, validation_error
from app.opspanel.modules.customers.service import (
    CUSTOMERS,
    add_customer,
    delete_customer,
    get_customer_by_id,
    get_customers,
    update_customer,
    validate_customer_payload,
)
from app.opspanel.rbac import Role, require_role

bp = Blueprint("customers", __name__)


@bp.get("/customers")
@require_role(Role.USER)
def customers_list():
    return jsonify(get_customers(current_store()))


@bp.post("/customers")
@require_role(Role.ADMIN)
def customers_create():
    payload = json_payload()
    errors = validate_customer_payload(payload)
    if errors:
        return validation_error(errors)
    customer = add_customer(current_store(), payload)
    audit("customer.create", CUSTOMERS, customer["id"], {"name": customer.get("name")})
    return jsonify(customer), 201


@bp.get("/customers/<customer_id>")
@require_role(Role.USER)
def customer_detail(customer_id: str):
    customer = get_customer_by_id(current_store(), customer_id)
    if customer is None:
        return not_found(CUSTOMERS, customer_id)
    return jsonify(customer)


@bp.patch("/customers/<customer_id>")
@require_role(Role.ADMIN)
def customer_update(customer_id: str):
    payload = json_payload()
    errors = validate_customer_payload(payload, is_update=True)
    if errors:
        return validation_error(errors)
    customer = update_customer(current_store(), customer_id, payload)
    audit("customer.update", CUSTOMERS, customer_id, {"fields": sorted(payload)})
    return jsonify(customer)


@bp.delete("/customers/<customer_id>")
@require_role(Role.ADMIN)
def customer_delete(customer_id: str):
    delete_customer(current_store(), customer_id)
    audit("customer.delete", CUSTOMERS, customer_id)
    return "", 204
