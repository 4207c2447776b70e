"""
Application factory for the CarHub auto-repair shop backend.

Usage::

    from carhub import create_app
    app = create_app()           # Uses FLASK_ENV to pick config.
    app = create_app("testing")  # Explicit config for tests.
"""

import logging
import os

from flask import Flask, jsonify

from .config import config_by_name
from .extensions import csrf, db, login_manager, migrate


def create_app(config_name: str | None = None) -> Flask:
    """
    Create and configure the Flask application.

    Args:
        config_name: One of 'development', 'testing', or 'production'.
                     Defaults to the FLASK_ENV environment variable,
                     falling back to 'development'.

    Returns:
        A fully configured Flask application instance.
    """
    # Resolve the configuration class.
    if config_name is None:
        config_name = os.environ.get("FLASK_ENV", "development")
    config_class = config_by_name.get(config_name)
    if config_class is None:
        raise ValueError(
            f"Unknown config '{config_name}'. "
            f"Valid options: {list(config_by_name.keys())}"
        )

    app = Flask(__name__)
    app.config.from_object(config_class)

    # Refuse to run production with default secrets.
    if config_name == "production":
        config_class.validate_production_secrets(app.config)

    # -- Initialize extensions ---------------------------------------------
    _register_extensions(app)

    # -- Register blueprints -----------------------------------------------
    _register_blueprints(app)

    # -- Register error handlers -------------------------------------------
    _register_error_handlers(app)

    # -- Register custom CLI commands --------------------------------------
    _register_cli_commands(app)

    # -- Configure logging -------------------------------------------------
    _configure_logging(app)

    return app


def _register_extensions(app: Flask) -> None:
    """Bind all Flask extensions to the application instance."""
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)

    # Make every model visible to Alembic autogenerate.
    from . import models  # noqa: F401  pylint: disable=import-outside-toplevel
    from .models.user import User  # pylint: disable=import-outside-toplevel

    @login_manager.user_loader
    def load_user(user_id: str):
        """Load an active user by primary key for Flask-Login."""
        user = db.session.get(User, int(user_id))
        if user is None or not user.is_active:
            return None
        return user

    @login_manager.unauthorized_handler
    def unauthorized():
        """Answer API clients with 401 JSON instead of a redirect."""
        return jsonify({"message": "Authentication required"}), 401


def _register_blueprints(app: Flask) -> None:
    """
    Import and register each blueprint.

    Every route carries its full ``/api/...`` path, so no URL prefixes
    are applied here.  Blueprints are imported inside this function to
    avoid circular imports.
    """
    # pylint: disable=import-outside-toplevel

    # Health check and uploaded files.
    from .blueprints.main import bp as main_bp

    app.register_blueprint(main_bp)

    # Session authentication and CSRF token.
    from .blueprints.auth import bp as auth_bp

    app.register_blueprint(auth_bp)

    # Customers and their vehicles.
    from .blueprints.customers import bp as customers_bp

    app.register_blueprint(customers_bp)

    from .blueprints.vehicles import bp as vehicles_bp

    app.register_blueprint(vehicles_bp)

    # Active service types for order forms.
    from .blueprints.catalog import bp as catalog_bp

    app.register_blueprint(catalog_bp)

    # Service orders, items, payments and reminders.
    from .blueprints.service_orders import bp as service_orders_bp

    app.register_blueprint(service_orders_bp)

    # Photos attached to customers, vehicles and orders.
    from .blueprints.photos import bp as photos_bp

    app.register_blueprint(photos_bp)

    # Dashboard and analytics figures.
    from .blueprints.dashboard import bp as dashboard_bp

    app.register_blueprint(dashboard_bp)

    from .blueprints.analytics import bp as analytics_bp

    app.register_blueprint(analytics_bp)

    # CSV and Excel exports.
    from .blueprints.reports import bp as reports_bp

    app.register_blueprint(reports_bp)

    # Admin: users, service catalog and audit logs.
    from .blueprints.admin import bp as admin_bp

    app.register_blueprint(admin_bp)


def _register_error_handlers(app: Flask) -> None:
    """Render HTTP errors as JSON ``{"message": ...}`` bodies."""

    def _json_error(error, status: int, fallback: str):
        message = getattr(error, "description", None) or fallback
        return jsonify({"message": message}), status

    @app.errorhandler(400)
    def bad_request(error):
        """Handle 400 Bad Request, including CSRF failures."""
        return _json_error(error, 400, "Bad request")

    @app.errorhandler(401)
    def unauthorized(error):
        return _json_error(error, 401, "Authentication required")

    @app.errorhandler(403)
    def forbidden(error):
        return _json_error(error, 403, "Forbidden")

    @app.errorhandler(404)
    def not_found(error):  # pylint: disable=unused-argument
        return jsonify({"message": "Not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):  # pylint: disable=unused-argument
        return jsonify({"message": "Method not allowed"}), 405

    @app.errorhandler(413)
    def too_large(error):  # pylint: disable=unused-argument
        return jsonify({"message": "Upload too large"}), 413

    @app.errorhandler(500)
    def internal_error(error):  # pylint: disable=unused-argument
        """Handle 500 Internal Server Error."""
        db.session.rollback()
        return jsonify({"message": "Internal server error"}), 500


def _register_cli_commands(app: Flask) -> None:
    """Register custom Flask CLI commands (e.g., flask db-check)."""
    from .cli import register_commands  # pylint: disable=import-outside-toplevel

    register_commands(app)


def _configure_logging(app: Flask) -> None:
    """
    Set the root log level from ``LOG_LEVEL``.

    SQL echo is left to ``SQLALCHEMY_ECHO``; the engine logger is kept
    at WARNING in debug so request logs stay readable.
    """
    log_level = app.config.get("LOG_LEVEL", "INFO")
    logging.basicConfig(level=getattr(logging, log_level, logging.INFO))

    if app.debug:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
