"""Shared fixtures: settings and a scripted in-memory session."""
import pytest

from netcommit.config.settings import Settings
from netcommit.config_engine.lines import render_as_snapshot
from netcommit.config_engine.schema import (
    ConfigSnapshot,
    Found,
    NotFound,
    Operation,
    Statement,
)
from netcommit.errors import (
    ApplyFailed,
    CommitFailed,
    LockFailed,
    QueryFailed,
    SessionOpenFailed,
)
from netcommit.session.base import Session, check_load_request


FAULTS = {
    "open": lambda: SessionOpenFailed("connection refused"),
    "lock": lambda: LockFailed("candidate locked by another session"),
    "apply_lines": lambda: ApplyFailed("syntax error"),
    "load": lambda: ApplyFailed("syntax error"),
    "commit": lambda: CommitFailed("commit check failed", warnings=["statement has no contents; ignored"]),
    "query": lambda: QueryFailed("rpc timeout"),
}


class FakeSession(Session):
    """In-memory device: statements are staged on apply and kept on commit.

    Args:
        settings: Session settings
        fail_at: Primitive name that raises its FAULTS error
        fail_unlock: Make unlock raise instead of returning warnings
        persist: Keep staged statements on commit (False drops them)
    """

    def __init__(self, settings, fail_at=None, fail_unlock=False, persist=True):
        super().__init__(settings)
        self.fail_at = fail_at
        self.fail_unlock = fail_unlock
        self.persist = persist
        self.calls: list[str] = []
        self.messages: list[str] = []
        self.pending: list[Statement] = []
        self.config: list[Statement] = []
        self.commit_warnings: list[str] = []

    def _step(self, name):
        self.calls.append(name)
        if self.fail_at == name:
            raise FAULTS[name]()

    async def open(self):
        self._step("open")
        self._open = True

    async def close(self):
        self.calls.append("close")
        self._open = False

    async def lock(self):
        self._step("lock")
        self.locked = True

    async def unlock(self):
        self.calls.append("unlock")
        self.locked = False
        if self.fail_unlock:
            raise ConnectionResetError("socket closed")
        return []

    async def clear(self):
        self.calls.append("clear")
        self.pending = []
        return await self.unlock()

    async def apply_lines(self, statements):
        self._step("apply_lines")
        self.pending.extend(statements)

    async def load(self, action, fmt, blob):
        check_load_request(action, fmt)
        self._step("load")

    async def commit(self, message):
        self._step("commit")
        self.messages.append(message)
        if self.persist:
            for statement in self.pending:
                if statement.operation == Operation.ADD:
                    self.config.append(statement)
                else:
                    size = len(statement.path)
                    self.config = [s for s in self.config if s.path[:size] != statement.path]
        self.pending = []
        return list(self.commit_warnings)

    async def commit_confirmed(self, message):
        self.calls.append("commit_confirmed")
        return await self.commit(message)

    async def query(self, path):
        self._step("query")
        prefix = tuple(path.split())
        matching = [
            s for s in self.config
            if s.path[:len(prefix)] == prefix and len(s.path) > len(prefix)
        ]
        if not matching:
            return NotFound()
        return Found(ConfigSnapshot(render_as_snapshot(matching, prefix)))

    async def command(self, text):
        self._step("command")
        return ""


@pytest.fixture
def settings():
    return Settings(host="192.0.2.1", name="srx-test", sleep_short=0)


@pytest.fixture
def fake_session(settings):
    return FakeSession(settings)


@pytest.fixture
def make_session(settings):
    """Build a FakeSession with fault options."""
    def factory(**kwargs):
        return FakeSession(settings, **kwargs)
    return factory
