"""
Application configuration classes.

Each class represents a deployment environment. The factory function
``create_app`` in ``carhub/__init__.py`` selects the appropriate config
based on the FLASK_ENV environment variable.

The default database is a SQLite file in the instance folder so that a
fresh checkout runs without any server. Point ``DATABASE_URL`` at
PostgreSQL or another SQLAlchemy-supported backend for real deployments.
"""

import logging
import os

# Module-level logger for startup warnings emitted by config classes.
_logger = logging.getLogger(__name__)

# =========================================================================
# Sentinels for detecting unset secrets in production.
# =========================================================================
_DEFAULT_SECRET_KEY = "dev-secret-change-me"
_DEFAULT_ADMIN_PASSWORD = "admin123"

_BASE_DIR = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))


class BaseConfig:
    """
    Shared configuration values inherited by all environments.

    Secrets and connection strings are loaded from environment variables
    so they never appear in source control.
    """

    # -- Flask core --------------------------------------------------------
    SECRET_KEY: str = os.environ.get("SECRET_KEY", _DEFAULT_SECRET_KEY)

    # -- Session cookie hardening ------------------------------------------
    # HttpOnly prevents JavaScript access to the session cookie.
    SESSION_COOKIE_HTTPONLY: bool = True

    # SameSite=Lax blocks cross-origin POST-based CSRF while still
    # allowing top-level navigations.
    SESSION_COOKIE_SAMESITE: str = "Lax"

    # ProductionConfig overrides this to True (requires HTTPS).
    SESSION_COOKIE_SECURE: bool = False

    # Sessions last one week, matching the shop's login cookie.
    PERMANENT_SESSION_LIFETIME: int = int(
        os.environ.get("PERMANENT_SESSION_LIFETIME", str(7 * 24 * 3600))
    )

    # -- SQLAlchemy --------------------------------------------------------
    SQLALCHEMY_DATABASE_URI: str = os.environ.get(
        "DATABASE_URL",
        f"sqlite:///{os.path.join(_BASE_DIR, 'carhub.db')}",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS: bool = False
    SQLALCHEMY_ECHO: bool = False

    # -- CSRF --------------------------------------------------------------
    # The SPA fetches a token from /api/csrf-token and sends it back in
    # the X-CSRFToken header on every mutating request.
    WTF_CSRF_HEADERS: list[str] = ["X-CSRFToken", "X-CSRF-Token"]
    WTF_CSRF_TIME_LIMIT: int | None = None

    # -- Uploads -----------------------------------------------------------
    UPLOAD_FOLDER: str = os.environ.get(
        "UPLOAD_FOLDER", os.path.join(_BASE_DIR, "uploads")
    )
    # Requests larger than this are rejected with 413 before reaching
    # the photo service.
    MAX_CONTENT_LENGTH: int = int(
        os.environ.get("MAX_CONTENT_LENGTH", str(10 * 1024 * 1024))
    )
    PHOTO_MAX_DIMENSION: int = int(os.environ.get("PHOTO_MAX_DIMENSION", "480"))
    PHOTO_JPEG_QUALITY: int = int(os.environ.get("PHOTO_JPEG_QUALITY", "70"))

    # -- Business rules ----------------------------------------------------
    # All "today" / "this week" figures are computed in this zone.
    BUSINESS_TIMEZONE: str = os.environ.get("BUSINESS_TIMEZONE", "America/Sao_Paulo")
    DEFAULT_REMINDER_MINUTES: int = 30

    # -- Initial administrator ---------------------------------------------
    DEFAULT_ADMIN_USERNAME: str = os.environ.get("DEFAULT_ADMIN_USERNAME", "admin")
    DEFAULT_ADMIN_PASSWORD: str = os.environ.get(
        "DEFAULT_ADMIN_PASSWORD", _DEFAULT_ADMIN_PASSWORD
    )
    DEFAULT_ADMIN_EMAIL: str = os.environ.get(
        "DEFAULT_ADMIN_EMAIL", "admin@carhub.com"
    )

    # -- Logging -----------------------------------------------------------
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")

    # =====================================================================
    # Production validation helpers
    # =====================================================================

    @classmethod
    def validate_production_secrets(cls, app_config: dict) -> None:
        """
        Verify that all required secrets are set for production.

        Called by ``create_app()`` when ``config_name == 'production'``.
        Raises ``RuntimeError`` for hard requirements and logs warnings
        for soft requirements.

        Args:
            app_config: The ``app.config`` dict after loading the
                        config class.

        Raises:
            RuntimeError: If any critical secret is missing or still
                          set to its insecure default value.
        """
        errors: list[str] = []

        # -- SECRET_KEY (hard fail) ----------------------------------------
        if app_config.get("SECRET_KEY") == _DEFAULT_SECRET_KEY:
            errors.append(
                "SECRET_KEY is still the insecure default. "
                "Generate one with: python -c "
                '"import secrets; print(secrets.token_hex(32))"'
            )

        # -- Seeded admin password (hard fail) -----------------------------
        if app_config.get("DEFAULT_ADMIN_PASSWORD") == _DEFAULT_ADMIN_PASSWORD:
            errors.append(
                "DEFAULT_ADMIN_PASSWORD is still the well-known default. "
                "Set a strong password before running `flask seed-admin`."
            )

        if errors:
            combined = "\n  - ".join(errors)
            raise RuntimeError(f"Production configuration errors:\n  - {combined}")

        # -- SQLite in production (soft warning) ---------------------------
        if app_config.get("SQLALCHEMY_DATABASE_URI", "").startswith("sqlite"):
            _logger.warning(
                "DATABASE_URL points at SQLite. Concurrent writers will "
                "serialize; consider PostgreSQL for multi-user shops."
            )

        # -- LOG_LEVEL sanity check (soft warning) -------------------------
        if app_config.get("LOG_LEVEL", "").upper() == "DEBUG":
            _logger.warning(
                "LOG_LEVEL=DEBUG is not recommended in production; "
                "SQL statements and customer data may appear in logs."
            )


class DevelopmentConfig(BaseConfig):
    """Development environment: verbose logging, SQL echo enabled."""

    DEBUG: bool = True
    SQLALCHEMY_ECHO: bool = True
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "DEBUG")


class TestingConfig(BaseConfig):
    """
    Testing environment: in-memory SQLite database.

    WTF_CSRF_ENABLED is disabled so JSON requests in tests don't need
    CSRF tokens.
    """

    TESTING: bool = True
    WTF_CSRF_ENABLED: bool = False

    SQLALCHEMY_DATABASE_URI: str = os.environ.get("TEST_DATABASE_URL", "sqlite://")
    LOG_LEVEL: str = "DEBUG"


class ProductionConfig(BaseConfig):
    """
    Production environment: strict settings, no debug output.

    The application factory calls ``validate_production_secrets()`` at
    startup and will refuse to launch if critical values are missing.
    """

    DEBUG: bool = False
    SQLALCHEMY_ECHO: bool = False
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "WARNING")

    # -- Session cookie: require HTTPS in production -----------------------
    SESSION_COOKIE_SECURE: bool = True


# Lookup dict used by the application factory.
config_by_name: dict[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}
