"""Tests for the document file lock."""
import pytest

from confdb.backend import BackendStore, FileLock, LockTimeout


@pytest.fixture
def lock_path(tmp_path):
    return tmp_path / "config.yaml.lock"


class TestFileLock:
    """Tests for FileLock."""

    def test_acquire_release(self, lock_path):
        lock = FileLock(lock_path)

        with lock.hold():
            assert lock.is_held
            assert lock.is_exclusive
            assert lock_path.exists()

        assert not lock.is_held

    def test_reentrant(self, lock_path):
        """Test nested holds keep the lock until the outermost exits."""
        lock = FileLock(lock_path)

        with lock.hold():
            with lock.hold(exclusive=False):
                assert lock.is_exclusive
            assert lock.is_held

        assert not lock.is_held

    def test_cannot_upgrade_shared(self, lock_path):
        lock = FileLock(lock_path)

        with lock.hold(exclusive=False):
            with pytest.raises(RuntimeError):
                lock.acquire(exclusive=True)

    def test_timeout(self, lock_path):
        """Test a second holder gives up after the timeout."""
        holder = FileLock(lock_path)
        waiter = FileLock(lock_path, timeout=0.2, poll_interval=0.05)

        with holder.hold():
            with pytest.raises(LockTimeout):
                waiter.acquire()

        assert not waiter.is_held
        with waiter.hold():
            assert waiter.is_held

    def test_shared_locks_coexist(self, lock_path):
        a = FileLock(lock_path, timeout=0.2)
        b = FileLock(lock_path, timeout=0.2)

        with a.hold(exclusive=False), b.hold(exclusive=False):
            assert a.is_held and b.is_held

    def test_context_manager(self, lock_path):
        lock = FileLock(lock_path)

        with lock as held:
            assert held is lock
            assert lock.is_exclusive

    def test_release_unheld(self, lock_path):
        FileLock(lock_path).release()


class TestStoreLocking:
    """Tests for lock handling in the backend store."""

    def test_mutation_fails_while_locked(self, document_path):
        """Test a lock timeout surfaces as a failed operation."""
        store = BackendStore(document_path, lock_timeout=0.2)
        other = FileLock(store.lock.path)

        with other.hold():
            assert not store.replace("/config/services/ssh/port", 2222)

        assert "Timed out" in store.last_error
        assert store.replace("/config/services/ssh/port", 2222)
