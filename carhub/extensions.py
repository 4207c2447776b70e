"""
Shared Flask extensions, bound to the app inside ``create_app()``.
"""

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_wtf.csrf import CSRFProtect

# Models and services import ``db`` from here.
db = SQLAlchemy()

# Alembic migrations live in ``migrations/``.
migrate = Migrate()

# No login_view: the API answers 401 JSON instead of redirecting.
login_manager = LoginManager()
login_manager.session_protection = "basic"

# Mutating requests carry the token from /api/csrf-token.
csrf = CSRFProtect()
