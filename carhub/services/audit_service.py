"""
Audit service — the change trail behind every write.

Services call :func:`log_change` before committing, so a record change
and its audit row are persisted together.  Values are stored as JSON;
for UPDATE entries only the fields that actually changed are kept.
"""

import json
import logging
from datetime import date, datetime, time
from typing import Any

from flask import has_request_context, request
from sqlalchemy import desc

from carhub.extensions import db
from carhub.models.audit import AuditLog

logger = logging.getLogger(__name__)

ACTION_TYPES = ("CREATE", "UPDATE", "DELETE", "DEACTIVATE", "LOGIN", "LOGOUT")


# -- Writing ---------------------------------------------------------------


def log_change(
    user_id: int | None,
    action_type: str,
    entity_type: str,
    entity_id: int | None,
    previous_value: dict[str, Any] | None = None,
    new_value: dict[str, Any] | None = None,
) -> AuditLog:
    """
    Add an audit entry to the current session (no commit).

    Args:
        user_id:        Acting user, or None for CLI and system actions.
        action_type:    One of ``ACTION_TYPES``.
        entity_type:    Record kind, e.g. ``'customer'`` or ``'service'``.
        entity_id:      Primary key of the affected record.
        previous_value: Snapshot before the change.
        new_value:      Snapshot after the change.
    """
    if action_type not in ACTION_TYPES:
        raise ValueError(f"Unknown audit action '{action_type}'.")

    if action_type == "UPDATE" and previous_value and new_value:
        previous_value, new_value = changed_fields(previous_value, new_value)

    ip_address, user_agent = _request_metadata()
    entry = AuditLog(
        user_id=user_id,
        action_type=action_type,
        entity_type=entity_type,
        entity_id=entity_id,
        previous_value=_to_json(previous_value),
        new_value=_to_json(new_value),
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.session.add(entry)
    db.session.flush()

    logger.info(
        "Audit: %s %s:%s by user %s", action_type, entity_type, entity_id, user_id
    )
    return entry


def log_login(user_id: int) -> AuditLog:
    return log_change(user_id, "LOGIN", "user", user_id)


def log_logout(user_id: int) -> AuditLog:
    return log_change(user_id, "LOGOUT", "user", user_id)


def changed_fields(
    previous: dict[str, Any], new: dict[str, Any]
) -> tuple[dict[str, Any], dict[str, Any]]:
    """Reduce two snapshots to the keys whose values differ."""
    keys = [key for key in new if previous.get(key) != new[key]]
    keys += [key for key in previous if key not in new]
    return (
        {key: previous.get(key) for key in keys},
        {key: new.get(key) for key in keys},
    )


# -- Reading ---------------------------------------------------------------


def get_audit_logs(
    page: int = 1,
    per_page: int = 50,
    user_id: int | None = None,
    action_type: str | None = None,
    entity_type: str | None = None,
    start: date | None = None,
    end: date | None = None,
):
    """
    Audit entries, newest first, as a Flask-SQLAlchemy pagination.

    ``start`` and ``end`` are whole days, both inclusive.
    """
    query = AuditLog.query
    if user_id is not None:
        query = query.filter(AuditLog.user_id == user_id)
    if action_type:
        query = query.filter(AuditLog.action_type == action_type)
    if entity_type:
        query = query.filter(AuditLog.entity_type == entity_type)
    if start is not None:
        query = query.filter(AuditLog.created_at >= datetime.combine(start, time.min))
    if end is not None:
        query = query.filter(AuditLog.created_at <= datetime.combine(end, time.max))

    return query.order_by(desc(AuditLog.created_at), desc(AuditLog.id)).paginate(
        page=page, per_page=per_page, error_out=False
    )


def get_distinct_entity_types() -> list[str]:
    """Entity kinds present in the log, for the admin filter drop-down."""
    rows = (
        db.session.query(AuditLog.entity_type)
        .distinct()
        .order_by(AuditLog.entity_type)
        .all()
    )
    return [entity_type for (entity_type,) in rows]


def page_to_dict(pagination) -> dict[str, Any]:
    return {
        "items": [entry.to_dict() for entry in pagination.items],
        "page": pagination.page,
        "pages": pagination.pages,
        "total": pagination.total,
        "entity_types": get_distinct_entity_types(),
    }


# -- Helpers ---------------------------------------------------------------


def _request_metadata() -> tuple[str | None, str | None]:
    if not has_request_context():
        return None, None
    return request.remote_addr, str(request.user_agent)[:500]


def _to_json(value: dict[str, Any] | None) -> str | None:
    # Decimals, dates and times are stored as their string form.
    return json.dumps(value, default=str) if value else None
