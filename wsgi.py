"""
Waitress WSGI entry point for production deployment.

Usage::

    python wsgi.py

Waitress is a pure-Python WSGI server, so the same entry point works
on Linux hosts and on the shop's Windows machine.
"""

import os

from waitress import serve

from carhub import create_app

# Production config unless FLASK_ENV says otherwise.
app = create_app(os.environ.get("FLASK_ENV", "production"))

if __name__ == "__main__":
    host = os.environ.get("WAITRESS_HOST", "127.0.0.1")
    port = int(os.environ.get("WAITRESS_PORT", "8080"))
    print(f"Starting Waitress on {host}:{port}")
    serve(app, host=host, port=port, max_request_body_size=app.config["MAX_CONTENT_LENGTH"])
