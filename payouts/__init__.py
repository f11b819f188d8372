# -*- coding: utf-8 -*-
import logging
import uuid

from flask import Flask, g, jsonify, request

from .config import Config, ensure_instance
from .errors import error_response, register_error_handlers, request_id
from .extensions import db, migrate, login_manager
from .fx import build_fx_cache

# blueprints
from .auth import auth_bp
from .modules.payroll import bp as payroll_bp
from .modules.fx import bp as fx_bp
from .admin_mgmt import bp as admin_mgmt_bp


def _configure_logging(app):
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger(__name__).setLevel(level)
    app.logger.setLevel(level)


def create_app(config=None):
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config:
        app.config.from_mapping(config)
    ensure_instance(app)
    _configure_logging(app)

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    # one FX cache per app instance, shared by all request threads
    app.extensions["fx_cache"] = build_fx_cache(app.config)

    register_error_handlers(app)

    @login_manager.unauthorized_handler
    def _unauthorized():
        return error_response(401, "Unauthorized")

    # --- request id ---
    @app.before_request
    def _assign_request_id():
        g.request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())

    @app.after_request
    def _expose_request_id(response):
        response.headers["request-id"] = request_id()
        return response

    # --- blueprints ---
    app.register_blueprint(auth_bp)
    app.register_blueprint(payroll_bp)
    app.register_blueprint(fx_bp)
    app.register_blueprint(admin_mgmt_bp)

    @app.get("/health")
    def health():
        return jsonify({"ok": True})

    return app
