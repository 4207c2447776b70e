"""
Routes for the main blueprint — health check and uploaded files.
"""

from flask import current_app, send_from_directory
from flask_login import login_required
from sqlalchemy import text

from carhub.blueprints.main import bp
from carhub.extensions import db


@bp.route("/health")
def health_check():
    """
    Health check endpoint for monitoring and load balancers.

    Returns 200 if the app is running and can reach the database.
    """
    try:
        db.session.execute(text("SELECT 1"))
        return {"status": "healthy", "database": "connected"}, 200
    except Exception as exc:  # pylint: disable=broad-except
        return {"status": "unhealthy", "database": str(exc)}, 503


@bp.route("/uploads/<path:filename>")
@login_required
def uploaded_file(filename):
    """Serve a compressed photo from the upload folder."""
    return send_from_directory(current_app.config["UPLOAD_FOLDER"], filename)
