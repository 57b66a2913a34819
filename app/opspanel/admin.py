from __future__ import annotations

from flask import Blueprint, current_app, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.security import generate_password_hash

from app.opspanel.api import audit, current_user, json_payload, validation_error
from app.opspanel.db import db_session
from app.opspanel.models import User
from app.opspanel.rbac import ROLE_KEYS, Role, require_role

bp = Blueprint("admin", __name__)


@bp.get("/")
@require_role(Role.USER)
def index():
    s = db_session()
    status = {
        "env": (current_app.config.get("ENV") or "development").strip().lower(),
        "db_connected": False,
        "db_error": None,
        "store_backend": current_app.config.get("STORE_BACKEND"),
        "user": current_user().to_dict(),
    }
    try:
        s.execute(text("SELECT 1"))
        status["db_connected"] = True
    except SQLAlchemyError as e:
        status["db_error"] = str(e)
    return jsonify(status)


# ---------- Users (super admin) ----------
def validate_user_payload(payload: dict, *, is_update: bool = False) -> list[str]:
    errors = []
    if not is_update:
        email = payload.get("email")
        if not isinstance(email, str) or "@" not in email.strip():
            errors.append("A valid email is required.")
        if not isinstance(payload.get("password"), str) or not payload["password"]:
            errors.append("Password is required.")
    elif "password" in payload and not isinstance(payload["password"], (str, type(None))):
        errors.append("password must be a string.")
    for field in ("first_name", "last_name"):
        if payload.get(field) is not None and not isinstance(payload[field], str):
            errors.append(f"{field} must be a string.")
    if "role" in payload and Role.parse(payload["role"]) is None:
        errors.append(f"Invalid role. Must be one of: {', '.join(ROLE_KEYS)}")
    if "is_active" in payload and not isinstance(payload["is_active"], bool):
        errors.append("is_active must be true or false.")
    return errors


@bp.get("/api/users")
@require_role(Role.SUPER_ADMIN)
def users_list():
    s = db_session()
    users = s.query(User).order_by(User.email.asc()).all()
    return jsonify([u.to_dict() for u in users])


@bp.post("/api/users")
@require_role(Role.SUPER_ADMIN)
def users_create():
    payload = json_payload()
    errors = validate_user_payload(payload)
    if errors:
        return validation_error(errors)

    s = db_session()
    email = payload["email"].strip().lower()
    if s.query(User).filter(User.email == email).one_or_none():
        return validation_error([f"User {email} already exists."])
    user = User(
        email=email,
        password_hash=generate_password_hash(payload["password"]),
        first_name=(payload.get("first_name") or "").strip() or None,
        last_name=(payload.get("last_name") or "").strip() or None,
        role=Role.parse(payload.get("role", Role.USER)).key,
        is_active=True,
    )
    s.add(user)
    s.commit()
    audit("user.create", "users", str(user.id), {"email": email, "role": user.role})
    return jsonify(user.to_dict()), 201


@bp.patch("/api/users/<int:user_id>")
@require_role(Role.SUPER_ADMIN)
def users_update(user_id: int):
    payload = json_payload()
    errors = validate_user_payload(payload, is_update=True)
    if errors:
        return validation_error(errors)

    s = db_session()
    user = s.get(User, user_id)
    if not user:
        return jsonify({"ok": False, "error": f"users/{user_id} not found"}), 404

    changes = {}
    if "role" in payload:
        new_role = Role.parse(payload["role"]).key
        if new_role != user.role:
            changes["role"] = {"from": user.role, "to": new_role}
            user.role = new_role
    if "is_active" in payload and payload["is_active"] != user.is_active:
        changes["is_active"] = {"from": user.is_active, "to": payload["is_active"]}
        user.is_active = payload["is_active"]
    if payload.get("password"):
        user.password_hash = generate_password_hash(payload["password"])
        changes["password"] = "reset"
    s.commit()
    if changes:
        audit("user.update", "users", str(user.id), changes)
    return jsonify(user.to_dict())
