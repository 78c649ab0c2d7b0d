"""Tests for the offline set file session."""
import pytest
import pytest_asyncio

from netcommit.config.settings import Settings
from netcommit.config_engine import Transaction, TransactionState
from netcommit.config_engine.schema import Found, NotFound, Operation, Statement
from netcommit.errors import ApplyFailed, QueryFailed
from netcommit.session import SetFileSession

CLUSTER = ("chassis", "cluster")


def add(*tokens):
    return Statement(Operation.ADD, tokens)


def remove(*tokens):
    return Statement(Operation.REMOVE, tokens)


@pytest.fixture
def set_file(tmp_path):
    return tmp_path / "staged" / "srx-lab.set"


@pytest_asyncio.fixture
async def session(set_file):
    session = SetFileSession(Settings(host="192.0.2.2", name="srx-lab", fake_set_file=str(set_file)))
    await session.open()
    yield session
    await session.close()


class TestSetFileTransaction:
    """A full transaction against the set file."""

    @pytest.mark.asyncio
    async def test_commit_appends_statements(self, session, set_file):
        async with Transaction(session) as txn:
            assert session.locked
            await txn.apply([
                add(*CLUSTER, "reth-count", "2"),
                add(*CLUSTER, "redundancy-group", "0", "node", "0", "priority", "200"),
            ])
            assert await txn.commit("create resource netcommit_chassis_cluster") == []

        assert txn.state == TransactionState.IDLE
        assert not session.locked
        assert set_file.read_text().splitlines() == [
            "set chassis cluster reth-count 2",
            "set chassis cluster redundancy-group 0 node 0 priority 200",
        ]

    @pytest.mark.asyncio
    async def test_query_replays_file(self, session):
        async with Transaction(session) as txn:
            await txn.apply([
                add(*CLUSTER, "reth-count", "2"),
                add(*CLUSTER, "redundancy-group", "1", "preempt"),
            ])
            await txn.commit("create")

        result = await session.query("chassis cluster")

        assert isinstance(result, Found)
        assert result.snapshot.lines() == [
            "set reth-count 2",
            "set redundancy-group 1 preempt",
        ]

    @pytest.mark.asyncio
    async def test_delete_removes_subtree(self, session):
        async with Transaction(session) as txn:
            await txn.apply([
                add(*CLUSTER, "reth-count", "2"),
                add(*CLUSTER, "redundancy-group", "1", "preempt"),
            ])
            await txn.commit("create")
        async with Transaction(session) as txn:
            await txn.apply([remove(*CLUSTER, "redundancy-group", "1")])
            await txn.commit("update")

        result = await session.query("chassis cluster")

        assert result.snapshot.lines() == ["set reth-count 2"]

    @pytest.mark.asyncio
    async def test_delete_everything(self, session):
        async with Transaction(session) as txn:
            await txn.apply([add(*CLUSTER, "reth-count", "2")])
            await txn.apply([remove(*CLUSTER)])
            await txn.commit("delete")

        assert isinstance(await session.query("chassis cluster"), NotFound)

    @pytest.mark.asyncio
    async def test_failure_releases_lock(self, session):
        with pytest.raises(RuntimeError):
            async with Transaction(session) as txn:
                await txn.apply([add(*CLUSTER, "reth-count", "2")])
                raise RuntimeError("interrupted")

        assert txn.state == TransactionState.IDLE
        assert not session.locked
        assert txn.cleanup_warnings == []

    @pytest.mark.asyncio
    async def test_load_set_blob(self, session, set_file):
        async with Transaction(session) as txn:
            await txn.load("set", "text", "set chassis cluster reth-count 4\n\n  set chassis cluster control-link-recovery\n")
            await txn.commit("load")

        assert set_file.read_text().splitlines() == [
            "set chassis cluster reth-count 4",
            "set chassis cluster control-link-recovery",
        ]

    @pytest.mark.asyncio
    async def test_load_merge_rejected(self, session, set_file):
        with pytest.raises(ApplyFailed, match="only accepts action 'set'"):
            async with Transaction(session) as txn:
                await txn.load("merge", "text", "chassis { cluster { reth-count 4; } }")

        assert not set_file.exists()


class TestSetFileSession:
    """Tests for the session outside a transaction."""

    @pytest.mark.asyncio
    async def test_query_without_file(self, session):
        assert isinstance(await session.query("chassis cluster"), NotFound)

    @pytest.mark.asyncio
    async def test_commands_unavailable(self, session):
        with pytest.raises(QueryFailed, match="not available offline"):
            await session.command("show version")

    def test_needs_set_file(self):
        with pytest.raises(ValueError):
            SetFileSession(Settings(host="192.0.2.2"))

    @pytest.mark.asyncio
    async def test_offline(self, session):
        assert session.offline
        assert session.is_open
