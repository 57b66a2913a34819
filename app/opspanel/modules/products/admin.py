from __future__ import annotations

from flask import Blueprint, jsonify, request

from app.opspanel.api import audit, current_store, json_payload, not_found, validation_error
from app.opspanel.modules.products.service import (
    PRODUCTS,
    add_product,
    delete_product,
    get_product_by_id,
    get_products,
    price_for_quantity,
    update_product,
    validate_product_payload,
)
from app.opspanel.rbac import Role, require_role

bp = Blueprint("products", __name__)


@bp.get("/products")
@require_role(Role.USER)
def products_list():
    return jsonify(get_products(current_store()))


@bp.post("/products")
@require_role(Role.ADMIN)
def products_create():
    payload = json_payload()
    errors = validate_product_payload(payload)
    if errors:
        return validation_error(errors)
    product = add_product(current_store(), payload)
    audit("product.create", PRODUCTS, product["id"], {"name": product.get("name")})
    return jsonify(product), 201


@bp.get("/products/<product_id>")
@require_role(Role.USER)
def product_detail(product_id: str):
    product = get_product_by_id(current_store(), product_id)
    if product is None:
        return not_found(PRODUCTS, product_id)
    return jsonify(product)


@bp.get("/products/<product_id>/price")
@require_role(Role.USER)
def product_price(product_id: str):
    product = get_product_by_id(current_store(), product_id)
    if product is None:
        return not_found(PRODUCTS, product_id)
    try:
        quantity = float(request.args.get("quantity") or 1)
    except ValueError:
        return validation_error(["quantity must be a number."])
    return jsonify({"productId": product_id, "quantity": quantity, "unitPrice": price_for_quantity(product, quantity)})


@bp.patch("/products/<product_id>")
@require_role(Role.ADMIN)
def product_update(product_id: str):
    payload = json_payload()
    errors = validate_product_payload(payload, is_update=True)
    if errors:
        return validation_error(errors)
    product = update_product(current_store(), product_id, payload)
    audit("product.update", PRODUCTS, product_id, {"fields": sorted(payload)})
    return jsonify(product)


@bp.delete("/products/<product_id>")
@require_role(Role.ADMIN)
def product_delete(product_id: str):
    delete_product(current_store(), product_id)
    audit("product.delete", PRODUCTS, product_id)
    return "", 204
