"""
Authentication model — shop staff accounts.

Staff sign in with a username and password.  Only a salted hash is
stored (Werkzeug ``generate_password_hash``).  Two roles exist:

  - ``admin``:      full access, user management, analytics.
  - ``technician``: sees and works on the service orders assigned to them.
"""

from flask_login import UserMixin
from werkzeug.security import check_password_hash, generate_password_hash

from carhub.clock import utcnow
from carhub.extensions import db

ROLES = ("admin", "technician")


class User(UserMixin, db.Model):
    """
    Application user record.

    Inherits from ``UserMixin`` to satisfy Flask-Login requirements
    (``is_authenticated``, ``get_id``).  ``is_active`` is a real column,
    so deactivated users are refused by ``login_user``.
    """

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    username = db.Column(db.String(100), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(200), nullable=True)
    first_name = db.Column(db.String(100), nullable=True)
    last_name = db.Column(db.String(100), nullable=True)
    role = db.Column(db.String(20), nullable=False, default="technician")
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    last_login = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(
        db.DateTime, nullable=False, default=utcnow, server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime, nullable=False, default=utcnow, server_default=db.func.now()
    )

    __table_args__ = (
        db.CheckConstraint(
            "role IN ('admin', 'technician')", name="CK_users_role"
        ),
    )

    # -- Relationships -----------------------------------------------------
    services = db.relationship(
        "Service", back_populates="technician", lazy="dynamic"
    )

    # ---- Password handling -----------------------------------------------

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    # ---- Convenience properties ------------------------------------------

    @property
    def full_name(self) -> str:
        """Return the user's display name, falling back to the username."""
        name = " ".join(part for part in (self.first_name, self.last_name) if part)
        return name or self.username

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def has_role(self, *role_names: str) -> bool:
        """Check if the user has any of the given role names."""
        return self.role in role_names

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "full_name": self.full_name,
            "role": self.role,
            "is_active": self.is_active,
            "last_login": self.last_login.isoformat() if self.last_login else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return f"<User {self.username} role={self.role}>"
