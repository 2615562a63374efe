# backend/cladstock/__init__.py
import logging

from flask import Flask, request

from .config import Config
from .extensions import db, migrate


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))
    logging.getLogger("cladstock").setLevel(app.logger.level)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Storage backend is chosen once, after config is final
    from .storage import init_storage
    storage = init_storage(app)

    @app.teardown_request
    def close_storage(exc):
        storage.close()

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.items import items_bp
    from .routes.transactions import transactions_bp
    from .routes.counts import counts_bp
    from .routes.count_sessions import count_sessions_bp
    from .routes.users import users_bp
    from .routes.spreadsheets import spreadsheets_bp
    from .routes.labels import labels_bp
    from .routes.assistant import assistant_bp
    from .routes.admin import admin_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(items_bp)
    app.register_blueprint(transactions_bp)
    app.register_blueprint(counts_bp)
    app.register_blueprint(count_sessions_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(spreadsheets_bp)
    app.register_blueprint(labels_bp)
    app.register_blueprint(assistant_bp)
    app.register_blueprint(admin_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in app.config.get("CORS_ORIGINS", []):
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
