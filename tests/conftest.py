"""Shared pytest fixtures for kvlog tests."""

from __future__ import annotations

import pytest

from kvlog import Store


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "db.log"


@pytest.fixture
def store(db_path):
    s = Store.open(db_path)
    yield s
    s.close()
