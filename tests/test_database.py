"""Tests for pool configuration and the migration file layout."""

import pytest

from shared.database import DatabaseManager, PoolConfig
from shared.migrations.runner import MigrationRunner


def test_session_pooler_keeps_statement_cache():
    manager = DatabaseManager("postgresql://u:p@db.example.supabase.co:5432/postgres")
    kwargs = manager.pool_kwargs()
    assert manager.transaction_pooler is False
    assert kwargs["statement_cache_size"] == 100
    assert kwargs["min_size"] == 1


def test_transaction_pooler_disables_prepared_statements():
    manager = DatabaseManager(
        "postgresql://u:p@pooler.supabase.com:6543/postgres", PoolConfig(max_size=4)
    )
    kwargs = manager.pool_kwargs()
    assert manager.transaction_pooler is True
    assert kwargs["statement_cache_size"] == 0
    assert kwargs["min_size"] == 0
    assert kwargs["max_inactive_connection_lifetime"] == 0
    assert kwargs["max_size"] == 4


async def test_health_is_false_before_connect():
    manager = DatabaseManager("postgresql://u:p@localhost:5432/postgres")
    assert await manager.check_health() is False
    with pytest.raises(RuntimeError):
        _ = manager.pool


def test_bundled_migrations_are_discovered_in_order():
    versions = MigrationRunner(None).discover()
    assert versions[0].name.startswith("001_")
    assert [v.name for v in versions] == sorted(v.name for v in versions)
