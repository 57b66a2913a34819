"""
Helpers shared by the JSON admin endpoints.
"""

from __future__ import annotations

from typing import Any

from flask import abort, current_app, g, jsonify, request

from app.opspanel.audit import record_event
from app.opspanel.db import db_session
from app.opspanel.models import User
from app.opspanel.records import RecordStore


def current_store() -> RecordStore:
    return current_app.extensions["record_store"]


def current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def json_payload() -> dict[str, Any]:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        abort(400, description="Expected a JSON object body.")
    data.pop("csrf_token", None)
    return data


def validation_error(errors: list[str]):
    return jsonify({"ok": False, "errors": errors}), 400


def not_found(collection: str, record_id: str):
    return jsonify({"ok": False, "error": f"{collection}/{record_id} not found"}), 404


def audit(action: str, collection: str, record_id: str | None, metadata: dict[str, Any] | None = None) -> None:
    s = db_session()
    record_event(
        s,
        actor=getattr(g, "current_user", None),
        action=action,
        entity_type=collection,
        entity_id=record_id,
        metadata=metadata,
    )
    s.commit()
