"""Unit tests for DATABASE_URL normalisation."""

import pytest

from desk_backend.repositories.database import resolve_database_url


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("postgresql://u:p@h:5432/db?sslmode=require", "postgresql+asyncpg://u:p@h:5432/db"),
        ("postgresql://u:p@h:5432/db?foo=1&sslmode=disable", "postgresql+asyncpg://u:p@h:5432/db?foo=1"),
        ("postgresql://u:p@h:5432/db?sslmode=require&foo=1", "postgresql+asyncpg://u:p@h:5432/db?foo=1"),
        ("postgresql+asyncpg://u:p@h:5432/db", "postgresql+asyncpg://u:p@h:5432/db"),
        ("sqlite+aiosqlite:///:memory:", "sqlite+aiosqlite:///:memory:"),
    ],
)
def test_resolve_database_url(raw, expected):
    assert resolve_database_url(raw) == expected
