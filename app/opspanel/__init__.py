import logging
from datetime import timedelta

from flask import Flask, g, jsonify, render_template, request, session
from dotenv import load_dotenv
from werkzeug.exceptions import HTTPException

from app.opspanel.config import load_config
from app.opspanel.db import init_db, teardown_db_session
from app.opspanel.records import DuplicateRecordId, RecordNotFound, RecordStore
from app.opspanel.routes import bp as routes_bp
from app.opspanel.auth import bp as auth_bp, load_current_user
from app.opspanel.admin import bp as admin_bp
from app.opspanel.modules.customers.admin import bp as customers_bp
from app.opspanel.modules.quotes.admin import bp as quotes_bp
from app.opspanel.modules.sales.admin import bp as sales_bp
from app.opspanel.modules.products.admin import bp as products_bp
from app.opspanel.modules.orders.admin import bp as orders_bp
from app.opspanel.modules.templates.admin import bp as templates_bp
from app.opspanel.modules.dashboard.admin import bp as dashboard_bp
from app.opspanel.storage import StorageError, storage_from_config

logger = logging.getLogger(__name__)

_UNGUARDED_PREFIXES = ("/static/", "/health", "/healthz")


def _wants_json() -> bool:
    return request.path.startswith("/admin/") or request.is_json


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__, template_folder="templates", static_folder="static")
    app.config.from_mapping(load_config())
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(hours=8)
    app.config["SESSION_REFRESH_EACH_REQUEST"] = True

    from app.opspanel.security import ensure_csrf_token, validate_csrf

    @app.context_processor
    def _inject_csrf() -> dict:
        return {"csrf_token": ensure_csrf_token()}

    @app.context_processor
    def _inject_roles() -> dict:
        from app.opspanel.rbac import satisfies

        def has_role(required: str) -> bool:
            state = getattr(g, "auth_state", None)
            return bool(state and state.user and satisfies(required, state.role))

        return {"has_role": has_role}

    @app.before_request
    def _csrf_guard():
        if request.path.startswith(_UNGUARDED_PREFIXES):
            return None
        ensure_csrf_token()
        session.permanent = True
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            # Login/logout carry no session yet.
            if (request.endpoint or "").startswith("auth."):
                return None
            if not validate_csrf(request):
                if _wants_json():
                    return jsonify({"ok": False, "error": "CSRF token missing or invalid."}), 400
                return render_template("errors/400.html", message="CSRF token missing or invalid."), 400

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")
        if app.config.get("STORE_BACKEND") == "memory":
            raise RuntimeError("STORE_BACKEND=memory loses all records on restart; not allowed in production.")

    init_db(app)

    storage = storage_from_config(app.config, app)
    app.extensions["record_store"] = RecordStore(storage)
    app.logger.info("Record store backend: %s", type(storage).__name__)

    if app.config.get("STORE_BACKEND") == "s3":
        missing_s3 = [
            key
            for key in ("S3_ENDPOINT", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY")
            if not app.config.get(key)
        ]
        if missing_s3:
            app.logger.error("STORE CONFIG ERROR: Missing required S3 env vars: %s", ", ".join(missing_s3))

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(admin_bp, url_prefix="/admin")
    app.register_blueprint(customers_bp, url_prefix="/admin/api")
    app.register_blueprint(quotes_bp, url_prefix="/admin/api")
    app.register_blueprint(sales_bp, url_prefix="/admin/api")
    app.register_blueprint(products_bp, url_prefix="/admin/api")
    app.register_blueprint(orders_bp, url_prefix="/admin/api")
    app.register_blueprint(templates_bp, url_prefix="/admin/api")
    app.register_blueprint(dashboard_bp, url_prefix="/admin/api")

    def _load_user_wrapper():
        if request.path.startswith(_UNGUARDED_PREFIXES):
            g.current_user = None
            return None
        return load_current_user()

    app.before_request(_load_user_wrapper)
    app.teardown_appcontext(teardown_db_session)

    @app.errorhandler(RecordNotFound)
    def _err_record_not_found(e: RecordNotFound):
        return jsonify({"ok": False, "error": str(e)}), 404

    @app.errorhandler(DuplicateRecordId)
    def _err_duplicate_id(e: DuplicateRecordId):
        return jsonify({"ok": False, "error": str(e)}), 409

    @app.errorhandler(StorageError)
    def _err_storage(e: StorageError):
        app.logger.exception("Record store failure (request_id=%s)", getattr(g, "request_id", None))
        return jsonify({"ok": False, "error": "Record storage is unavailable. Please try again."}), 503

    @app.errorhandler(HTTPException)
    def _err_http(e: HTTPException):
        if e.code == 500:
            app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        if _wants_json():
            return jsonify({"ok": False, "error": e.description}), e.code
        template = f"errors/{e.code}.html" if e.code in (400, 403, 404) else "errors/500.html"
        return render_template(template, message=e.description), e.code

    @app.errorhandler(500)
    def _err_500(e):  # type: ignore[no-redef]
        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        if _wants_json():
            return jsonify({"ok": False, "error": "Internal server error."}), 500
        return render_template("errors/500.html"), 500

    logger.info("create_app() complete; app ready to serve")

    return app
