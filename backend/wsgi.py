"""WSGI entry point for Prompt Battle.

Run with a single eventlet worker, since rooms live in process memory:

    gunicorn -k eventlet -w 1 backend.wsgi:app
"""
import logging
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parents[1] / ".env")
logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO").upper())

try:
    from backend.promptbattle.server import create_app
except ImportError:  # pragma: no cover
    from promptbattle.server import create_app

app, socketio = create_app()
