# moneyflow/__init__.py
import uuid
from pathlib import Path

from flask import Flask, g, jsonify, request
from werkzeug.middleware.proxy_fix import ProxyFix

from moneyflow.errors import register_error_handlers
from moneyflow.extensions import db, login_manager, migrate


def create_app(config_object="config.Config"):
    app = Flask(__name__, instance_relative_config=True)
    Path(app.instance_path).mkdir(parents=True, exist_ok=True)

    # 1) Base config object (config.py at project root)
    app.config.from_object(config_object)

    # 2) Instance overrides (instance/config.py) – safe if missing
    app.config.from_pyfile("config.py", silent=True)

    # 3) Environment overrides (e.g., FLASK_SQLALCHEMY_DATABASE_URI)
    app.config.from_prefixed_env()

    # 4) Extensions AFTER config
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    app.wsgi_app = ProxyFix(app.wsgi_app, x_proto=1, x_host=1)

    from moneyflow import models  # noqa: F401  (register tables)
    from moneyflow.models import User
    from moneyflow.security import user_id_from_token

    @login_manager.request_loader
    def load_user_from_request(req):
        header = req.headers.get("Authorization", "")
        if not header.startswith("Bearer "):
            return None
        user_id = user_id_from_token(header[len("Bearer "):].strip())
        if user_id is None:
            return None
        user = db.session.get(User, user_id)
        if user is None:
            # first request from a user the identity provider already knows
            user = User(id=user_id)
            db.session.add(user)
            db.session.commit()
            app.logger.info("provisioned user %s", user_id)
        return user

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({"error": "not authenticated"}), 401

    if app.config.get("REQUEST_TRACE"):
        @app.before_request
        def _trace_in():
            g.reqid = str(uuid.uuid4())[:8]
            app.logger.info("[%s] → %s %s ep=%s", g.reqid, request.method, request.path, request.endpoint)

        @app.after_request
        def _trace_out(resp):
            app.logger.info("[%s] ← %s", getattr(g, "reqid", "????"), resp.status)
            return resp

    register_error_handlers(app)

    # 5) Blueprints
    from moneyflow.accounts import accounts_bp
    from moneyflow.credits import credits_bp
    from moneyflow.forecast import forecast_bp
    from moneyflow.identity import identity_bp
    from moneyflow.maintenance import maintenance_bp
    from moneyflow.notifications import notifications_bp
    from moneyflow.settings import settings_bp
    from moneyflow.sharing import sharing_bp
    from moneyflow.transactions import transactions_bp
    from moneyflow.transfers import transfers_bp

    for bp in (
        accounts_bp, transactions_bp, transfers_bp, credits_bp, sharing_bp,
        notifications_bp, settings_bp, maintenance_bp, identity_bp, forecast_bp,
    ):
        app.register_blueprint(bp)

    @app.get("/healthz")
    def healthz():
        return "ok", 200

    from moneyflow.cli import register_cli
    register_cli(app)

    # 6) Tables (migrations own the schema in production; this keeps dev/test DBs usable)
    with app.app_context():
        db.create_all()

    return app
