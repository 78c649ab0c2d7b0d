"""Offline session writing statements to a set file.

Used to stage configuration without a device: statements are appended to a
text file that can later be loaded with ``load set``. Queries replay the file
so a read after a create sees what was written.
"""
import asyncio
import logging
import os
from pathlib import Path

from ..config.settings import Settings
from ..config_engine.lines import END_MARKER, START_MARKER, parse_statement, split_tokens
from ..config_engine.schema import (
    ConfigSnapshot,
    Found,
    LoadAction,
    NotFound,
    Operation,
    QueryResult,
    Statement,
)
from ..errors import ApplyFailed, QueryFailed
from ..utils.logging_config import timed
from .base import Session, check_load_request

logger = logging.getLogger(__name__)


class SetFileSession(Session):
    """Session that appends statements to ``settings.fake_set_file``."""

    def __init__(self, settings: Settings):
        super().__init__(settings)
        if not settings.fake_set_file:
            raise ValueError("SetFileSession needs settings.fake_set_file")
        self.path = Path(settings.fake_set_file)

    @property
    def offline(self) -> bool:
        return True

    async def open(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._open = True
        logger.info(f"Writing statements for {self.device_id} to {self.path}")

    async def close(self) -> None:
        self._open = False

    async def lock(self) -> None:
        self.locked = True

    async def unlock(self) -> list[str]:
        self.locked = False
        return []

    async def clear(self) -> list[str]:
        return await self.unlock()

    def _append(self, lines: list[str]) -> None:
        with open(self.path, "a", encoding="utf-8") as f:
            for line in lines:
                f.write(line + "\n")
        os.chmod(self.path, 0o644)

    @timed("apply_lines")
    async def apply_lines(self, statements: list[Statement]) -> None:
        if not statements:
            return
        loop = asyncio.get_event_loop()
        try:
            await loop.run_in_executor(None, self._append, [s.text for s in statements])
        except OSError as e:
            raise ApplyFailed(f"writing set file {self.path}: {e}") from e

    async def load(self, action: str, fmt: str, blob: str) -> None:
        load_action, _ = check_load_request(action, fmt)
        if load_action != LoadAction.SET:
            raise ApplyFailed(f"set file session only accepts action 'set', not {action!r}")
        lines = [line.strip() for line in blob.splitlines() if line.strip()]
        loop = asyncio.get_event_loop()
        try:
            await loop.run_in_executor(None, self._append, lines)
        except OSError as e:
            raise ApplyFailed(f"writing set file {self.path}: {e}") from e

    async def commit(self, message: str) -> list[str]:
        return []

    async def commit_confirmed(self, message: str) -> list[str]:
        return []

    def _replay(self) -> list[tuple[str, ...]]:
        """Paths present after applying the file's set/delete lines in order."""
        if not self.path.exists():
            return []
        present: list[tuple[str, ...]] = []
        with open(self.path, encoding="utf-8") as f:
            for line in f:
                statement = parse_statement(line)
                if statement is None:
                    continue
                if statement.operation == Operation.ADD:
                    if statement.path not in present:
                        present.append(statement.path)
                else:
                    size = len(statement.path)
                    present = [p for p in present if p[:size] != statement.path]
        return present

    @timed("query")
    async def query(self, path: str) -> QueryResult:
        prefix = tuple(split_tokens(path))
        loop = asyncio.get_event_loop()
        try:
            present = await loop.run_in_executor(None, self._replay)
        except OSError as e:
            raise QueryFailed(f"reading set file {self.path}: {e}") from e

        body = [
            "set " + " ".join(p[len(prefix):])
            for p in present
            if p[:len(prefix)] == prefix and len(p) > len(prefix)
        ]
        if not body:
            return NotFound()
        return Found(ConfigSnapshot("\n".join([START_MARKER, *body, END_MARKER])))

    async def command(self, text: str) -> str:
        raise QueryFailed(f"commands are not available offline: {text}")
