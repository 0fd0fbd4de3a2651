"""
wsgi.py: Entry point for WSGI servers and the Flask CLI.

  gunicorn "fleamarket.wsgi:app"
  flask --app fleamarket.wsgi run
  flask --app fleamarket.wsgi purge-blacklist
"""

import os

from fleamarket.app import create_app

app = create_app(os.getenv("FLASK_ENV", "development"))
