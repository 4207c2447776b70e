"""
Request and response helpers shared by the JSON blueprints.

Services signal problems with exceptions; routes catch them and hand
them to :func:`error_response`, which picks the status code:

  - ``ValidationError``           -> 400 with the offending ``field``
  - ``PermissionError``           -> 403
  - ``ValueError`` "... not found." -> 404
  - any other ``ValueError``       -> 400
"""

import logging

from flask import jsonify, request

from carhub.extensions import db
from carhub.validators import ValidationError

logger = logging.getLogger(__name__)


def json_body() -> dict:
    """The request's JSON object, or an empty dict."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def arg_int(*names: str) -> int | None:
    """First integer query argument among ``names`` (camelCase aliases)."""
    for name in names:
        value = request.args.get(name, type=int)
        if value is not None:
            return value
    return None


def error_response(exc: Exception):
    """Translate a service-layer exception into a JSON error response."""
    # Discard whatever the failed call added or changed before raising.
    db.session.rollback()
    if isinstance(exc, ValidationError):
        return jsonify({"message": exc.message, "field": exc.field}), 400
    if isinstance(exc, PermissionError):
        logger.warning("Access denied on %s %s: %s", request.method, request.path, exc)
        return jsonify({"message": str(exc)}), 403
    message = str(exc)
    status = 404 if message.endswith("not found.") else 400
    return jsonify({"message": message}), status


def message_response(message: str, status: int = 200):
    return jsonify({"message": message}), status
