from __future__ import annotations

from flask import Blueprint, jsonify

from app.opspanel.api import audit, current_store
from app.opspanel.modules.dashboard.service import dashboard_stats, seed_sample_data
from app.opspanel.rbac import Role, require_role

bp = Blueprint("dashboard", __name__)


@bp.get("/dashboard")
@require_role(Role.USER)
def dashboard():
    return jsonify(dashboard_stats(current_store()))


@bp.post("/seed")
@require_role(Role.SUPER_ADMIN)
def seed():
    result = seed_sample_data(current_store())
    audit("sample_data.seed", "customers,quotes,sales,orders,products,templates", None, {"customers": len(result["customerIds"])})
    return jsonify(result), 201
