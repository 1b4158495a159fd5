"""
Tests for the insert-once distributed lock.
"""

import threading
from datetime import timedelta

from cronstore.repositories.locks import LockStore


class TestLock:
    """Test single-caller lock semantics."""

    def test_first_caller_acquires(self, store):
        assert store.lock("backup:2024-01-01T10:00", 60) is True

    def test_second_caller_is_refused(self, store):
        """A held key returns False, not an error."""
        store.lock("backup:tick-1", 60)

        assert store.lock("backup:tick-1", 60) is False

    def test_keys_are_independent(self, store):
        assert store.lock("backup:tick-1", 60) is True
        assert store.lock("backup:tick-2", 60) is True
        assert store.lock("report:tick-1", 60) is True

    def test_ttl_does_not_reclaim(self, store):
        """ttl is accepted but never expires a row."""
        assert store.lock("backup:tick-1", timedelta(seconds=0)) is True
        assert store.lock("backup:tick-1", 0) is False
        assert store.lock("backup:tick-1") is False

    def test_remove_does_not_touch_locks(self, store, backup_job):
        """Lock rows outlive the job they guard."""
        store.add("backup", backup_job)
        store.lock("backup", 60)

        store.remove("backup")

        assert store.lock("backup", 60) is False

    def test_outcomes_are_counted(self, store, logger):
        store.lock("k", 1)
        store.lock("k", 1)
        store.lock("k", 1)

        metrics = logger.get_metrics()
        assert metrics["locks_acquired"] == 1
        assert metrics["locks_contended"] == 2


class TestConcurrentLock:
    """Test racing lock attempts."""

    def test_exactly_one_winner(self, store):
        """N racing callers: one True, N-1 False, no errors."""
        callers = 8
        barrier = threading.Barrier(callers)
        results = []
        errors = []
        guard = threading.Lock()

        def attempt():
            barrier.wait()
            try:
                acquired = store.lock("backup:2024-01-01T10:00", 60)
            except Exception as e:  # collected and asserted below
                with guard:
                    errors.append(e)
                return
            with guard:
                results.append(acquired)

        threads = [threading.Thread(target=attempt) for _ in range(callers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)

        assert errors == []
        assert sorted(results) == [False] * (callers - 1) + [True]

    def test_two_connections_share_one_lock_table(self, registry, store):
        """Separate connections (separate pools) still see one winner."""
        if store.dialect.name != "sqlite":
            other_setting = {"dsn": store.config.dsn, "schema": store.config.schema}
            other = registry.connection("pgsql", other_setting)
        else:
            other = registry.connection("sqlite", {"url": store.config.dsn})
        other.open()

        assert store.lock("shared-key", 60) is True
        assert other.lock("shared-key", 60) is False
        other.close()


class TestLockStoreDirect:
    """LockStore works on its own, without a Connection."""

    def test_standalone_repository(self, store, logger):
        locks = LockStore(store._engine, store.dialect, store.tables, logger)

        assert locks.lock("standalone", 5) is True
        assert locks.lock("standalone", 5) is False
