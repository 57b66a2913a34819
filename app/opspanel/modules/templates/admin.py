from __future__ import annotations

from flask import Blueprint, jsonify

from app.opspanel.api import audit, current_store, json_payload, not_found, validation_error
from app.opspanel.modules.templates.service import (
    KINDS,
    get_template,
    get_templates,
    is_known_template,
    preview_data,
    render_email_template,
    reset_template,
    save_template,
    validate_template_payload,
)
from app.opspanel.rbac import Role, require_role

bp = Blueprint("templates", __name__)


def _collection(kind: str) -> str:
    return KINDS[kind][0] if kind in KINDS else f"{kind}_templates"


@bp.get("/templates/<kind>")
@require_role(Role.USER)
def templates_list(kind: str):
    if kind not in KINDS:
        return not_found("templates", kind)
    return jsonify(get_templates(current_store(), kind))


@bp.get("/templates/<kind>/<template_type>")
@require_role(Role.USER)
def template_detail(kind: str, template_type: str):
    if not is_known_template(kind, template_type):
        return not_found(_collection(kind), template_type)
    return jsonify(get_template(current_store(), kind, template_type))


@bp.put("/templates/<kind>/<template_type>")
@require_role(Role.ADMIN)
def template_save(kind: str, template_type: str):
    if not is_known_template(kind, template_type):
        return not_found(_collection(kind), template_type)
    payload = json_payload()
    errors = validate_template_payload(kind, payload)
    if errors:
        return validation_error(errors)
    store = current_store()
    save_template(store, kind, template_type, payload)
    audit("template.save", _collection(kind), template_type, {"fields": sorted(payload)})
    return jsonify(get_template(store, kind, template_type))


@bp.delete("/templates/<kind>/<template_type>")
@require_role(Role.ADMIN)
def template_reset(kind: str, template_type: str):
    if not is_known_template(kind, template_type):
        return not_found(_collection(kind), template_type)
    store = current_store()
    reset_template(store, kind, template_type)
    audit("template.reset", _collection(kind), template_type)
    return jsonify(get_template(store, kind, template_type))


@bp.get("/templates/email/<template_type>/preview")
@require_role(Role.USER)
def email_template_preview(template_type: str):
    if not is_known_template("email", template_type):
        return not_found(_collection("email"), template_type)
    template = get_template(current_store(), "email", template_type)
    return jsonify(render_email_template(template, preview_data(template_type)))
