"""
extensions.py — Flask extension singletons.

Initialises SQLAlchemy as a module-level object so it can be imported anywhere
without creating circular dependencies.

Pattern:
    1. Create the extension object here (no app attached yet).
    2. Call init_app(app) inside the app factory in pulse/__init__.py.
    3. Import `db` from here wherever needed.

    from backend.pulse.extensions import db

Do not pass the app object directly to SQLAlchemy() at import time — that
would prevent running tests with a separate test app instance.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event

db = SQLAlchemy()


def register_sqlite_pragmas(app: Flask) -> None:
    """
    Applies the connection policy to every new SQLite DBAPI connection:

      foreign_keys=ON  — SQLite ignores REFERENCES clauses without it
      journal_mode=WAL — readers never block the single writer
      busy_timeout     — writers queue on the lock instead of failing fast

    Must run inside an app context after db.init_app(app).
    """
    busy_timeout = int(app.config.get("SQLITE_BUSY_TIMEOUT_MS", 10000))

    @event.listens_for(db.engine, "connect")
    def _set_sqlite_pragmas(dbapi_connection, connection_record):  # noqa: ARG001
        if not isinstance(dbapi_connection, sqlite3.Connection):
            return
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        if app.config["SQLALCHEMY_DATABASE_URI"] not in ("sqlite://", "sqlite:///:memory:"):
            cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute(f"PRAGMA busy_timeout={busy_timeout}")
        cursor.close()


def ensure_sqlite_directory(app: Flask) -> None:
    """Creates the parent directory of a file-backed SQLite URL."""
    uri = app.config.get("SQLALCHEMY_DATABASE_URI", "")
    prefix = "sqlite:///"
    if not uri.startswith(prefix) or uri in ("sqlite://", "sqlite:///:memory:"):
        return
    Path(uri[len(prefix):]).parent.mkdir(parents=True, exist_ok=True)
