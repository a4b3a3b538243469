"""
WSGI / Flask CLI entry point.

Usage:
    flask --app wsgi db upgrade
    flask --app wsgi dispatch-notifications --limit 100
    gunicorn wsgi:app
"""

from scisubmit import create_app

app = create_app()
