import os

import pytest

from weatherdesk import lockfile
from weatherdesk.errors import LockError
from weatherdesk.lockfile import RunLock


def test_acquire_writes_pid_and_release_removes_it(tmp_path):
    path = tmp_path / "run.lock"

    with RunLock(path) as lock:
        assert path.read_text().strip() == str(os.getpid())
        assert lock.pid == os.getpid()

    assert not path.exists()


def test_live_holder_blocks_second_run(tmp_path):
    path = tmp_path / "run.lock"
    path.write_text(f"{os.getppid()}\n")

    with pytest.raises(LockError):
        RunLock(path).acquire()

    assert path.read_text().strip() == str(os.getppid())


def test_stale_lock_is_replaced(tmp_path):
    path = tmp_path / "run.lock"
    path.write_text("2000000000\n")

    lock = RunLock(path)
    lock.acquire()

    assert path.read_text().strip() == str(os.getpid())
    lock.release()
    assert not path.exists()


def test_garbage_lock_contents_are_treated_as_stale(tmp_path):
    path = tmp_path / "run.lock"
    path.write_text("not a pid")

    with RunLock(path):
        assert path.read_text().strip() == str(os.getpid())


def test_release_leaves_foreign_lock_alone(tmp_path):
    path = tmp_path / "run.lock"
    lock = RunLock(path)
    lock.acquire()
    path.write_text("12345\n")

    lock.release()

    assert path.read_text().strip() == "12345"


def test_fresh_acquire_does_not_inspect_existing_lock(tmp_path, monkeypatch):
    def _unexpected(path):
        raise AssertionError(f"read {path} before trying an exclusive create")

    monkeypatch.setattr(lockfile, "_read_pid", _unexpected)
    lock = RunLock(tmp_path / "run.lock")

    lock.acquire()

    assert (tmp_path / "run.lock").read_text().strip() == str(os.getpid())


def test_lock_recreated_by_another_run_raises(tmp_path, monkeypatch):
    path = tmp_path / "run.lock"
    path.write_text("2000000000\n")
    real_unlink = type(path).unlink

    def _unlink_then_race(self, missing_ok=False):
        real_unlink(self, missing_ok=missing_ok)
        if self == path:
            self.write_text("4242\n")

    monkeypatch.setattr(type(path), "unlink", _unlink_then_race)

    with pytest.raises(LockError):
        RunLock(path).acquire()

    monkeypatch.undo()
    assert path.read_text().strip() == "4242"
