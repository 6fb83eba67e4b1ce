"""
Unit tests for extensions.ensure_sqlite_directory.
"""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from backend.pulse.extensions import ensure_sqlite_directory


def test_creates_parent_of_file_database(tmp_path):
    db_file = tmp_path / "instance" / "nested" / "pulse.db"
    app = SimpleNamespace(config={"SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_file}"})

    ensure_sqlite_directory(app)

    assert db_file.parent.is_dir()
    assert not db_file.exists()


@pytest.mark.parametrize("uri", [
    "sqlite://",
    "sqlite:///:memory:",
    "postgresql://localhost/pulse",
    "",
])
def test_ignores_non_file_urls(tmp_path, monkeypatch, uri):
    monkeypatch.chdir(tmp_path)

    ensure_sqlite_directory(SimpleNamespace(config={"SQLALCHEMY_DATABASE_URI": uri}))

    assert list(tmp_path.iterdir()) == []
