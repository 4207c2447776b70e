"""
Model package — imports all models so Alembic and SQLAlchemy can
discover them automatically when ``flask db`` commands are run.

  - user.py     -> staff accounts
  - customer.py -> customers and vehicles
  - service.py  -> service catalog, service orders, items, payments, reminders
  - photo.py    -> uploaded photos
  - audit.py    -> audit trail
"""

from carhub.models.user import User  # noqa: F401
from carhub.models.customer import Customer, Vehicle  # noqa: F401
from carhub.models.service import (  # noqa: F401
    Payment,
    Service,
    ServiceItem,
    ServiceReminder,
    ServiceType,
)
from carhub.models.photo import Photo  # noqa: F401
from carhub.models.audit import AuditLog  # noqa: F401
