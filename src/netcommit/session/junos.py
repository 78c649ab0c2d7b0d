"""Junos session over NETCONF.

Implements the session primitives with Junos RPCs:
- candidate lock polled until lock_timeout
- ``load-configuration`` for statement batches and raw blobs
- ``commit-configuration`` with warning/error split by severity
- ``show configuration <path> | display set relative`` for subtree queries
"""
import asyncio
import logging
import time
from typing import Callable, Optional
from xml.sax.saxutils import escape

from ..config.settings import Settings
from ..config_engine.lines import END_MARKER, START_MARKER
from ..config_engine.schema import (
    ConfigFormat,
    ConfigSnapshot,
    Found,
    LoadAction,
    NotFound,
    QueryResult,
    Statement,
)
from ..errors import (
    ApplyFailed,
    CommitFailed,
    LockFailed,
    QueryFailed,
    SessionOpenFailed,
)
from ..utils.connection import RETRYABLE_EXCEPTIONS, retry_async
from ..utils.logging_config import timed
from .base import Session, check_load_request
from .netconf import ChannelError, NetconfChannel, RpcChannel, RpcError, RpcReply

logger = logging.getLogger(__name__)

RPC_LOCK = "<lock><target><candidate/></target></lock>"
RPC_UNLOCK = "<unlock><target><candidate/></target></unlock>"
RPC_CLEAR = "<delete-config><target><candidate/></target></delete-config>"
RPC_SYSTEM_INFORMATION = "<get-system-information/>"
RPC_CLOSE = "<close-session/>"
RPC_COMMAND = '<command format="text">{}</command>'
RPC_COMMIT = "<commit-configuration><log>{}</log></commit-configuration>"
RPC_COMMIT_CONFIRMED = (
    "<commit-configuration><confirmed/><confirm-timeout>{timeout}</confirm-timeout>"
    "<log>{log}</log></commit-configuration>"
)
RPC_COMMIT_CHECK = "<commit-configuration><check/></commit-configuration>"
RPC_LOAD_SET = (
    '<load-configuration action="set" format="text">'
    "<configuration-set>{}</configuration-set></load-configuration>"
)
RPC_LOAD_TEXT = (
    '<load-configuration action="{action}" format="text">'
    "<configuration-text>{config}</configuration-text></load-configuration>"
)
RPC_LOAD_JSON = (
    '<load-configuration action="{action}" format="json">'
    "<configuration-json>{config}</configuration-json></load-configuration>"
)
RPC_LOAD_XML = (
    '<load-configuration action="{action}" format="xml">'
    "<configuration>{config}</configuration></load-configuration>"
)

ERROR_SEVERITY = "error"


def split_severity(errors: list[RpcError]) -> tuple[list[str], list[str]]:
    """Split rpc errors into (errors, warnings) by severity."""
    fatal, warnings = [], []
    for error in errors:
        if error.severity == ERROR_SEVERITY:
            fatal.append(str(error))
        else:
            warnings.append(str(error))
    return fatal, warnings


def read_commit_reply(reply: RpcReply, commit_type: str) -> list[str]:
    """Collect warnings from a commit reply.

    Raises:
        CommitFailed: An error-severity message was returned; carries warnings
    """
    warnings: list[str] = []
    for errors in (reply.errors, reply.commit_result_errors()):
        fatal, soft = split_severity(errors)
        warnings.extend(soft)
        if fatal:
            raise CommitFailed(f"{commit_type}: " + "\n".join(fatal), warnings=warnings)
    return warnings


class JunosSession(Session):
    """Session on a Junos device through a NETCONF channel."""

    def __init__(
        self,
        settings: Settings,
        channel_factory: Optional[Callable[[Settings], RpcChannel]] = None,
    ):
        super().__init__(settings)
        self._channel_factory = channel_factory or NetconfChannel
        self._channel: Optional[RpcChannel] = None
        self.system_information: dict[str, str] = {}

    def _require_channel(self) -> RpcChannel:
        if self._channel is None:
            raise ChannelError(f"session to {self.device_id} is not open")
        return self._channel

    @timed("open")
    async def open(self) -> None:
        """Open the channel, retrying transient socket errors."""
        logger.info(f"Starting session to {self.device_id}")
        channel = self._channel_factory(self.settings)
        try:
            await retry_async(
                channel.connect,
                max_attempts=self.settings.connect_retries,
                exceptions=RETRYABLE_EXCEPTIONS + (ChannelError,),
            )
        except Exception as e:
            await channel.close()
            raise SessionOpenFailed(f"failed to connect to {self.device_id}: {e}") from e

        self._channel = channel
        self._open = True
        try:
            await self._gather_facts()
        except ChannelError as e:
            await self.close()
            raise SessionOpenFailed(f"gathering facts on {self.device_id}: {e}") from e

    async def _gather_facts(self) -> None:
        reply = await self._require_channel().rpc(RPC_SYSTEM_INFORMATION)
        if reply.errors:
            raise ChannelError("\n".join(str(e) for e in reply.errors))
        info = reply.find("system-information")
        if info is None:
            return
        for child in info:
            tag = child.tag.rsplit("}", 1)[-1]
            self.system_information[tag] = (child.text or "").strip()
        logger.debug(
            f"{self.device_id}: model={self.system_information.get('hardware-model', '?')} "
            f"os={self.system_information.get('os-version', '?')}"
        )

    @property
    def is_cluster(self) -> bool:
        return bool(self.system_information.get("cluster-node"))

    @timed("close")
    async def close(self) -> None:
        if self._channel is None:
            return
        channel, self._channel = self._channel, None
        try:
            await channel.rpc(RPC_CLOSE)
        except ChannelError as e:
            logger.warning(f"Closing netconf session to {self.device_id}: {e}")
        finally:
            await channel.close()
            self._open = False
            if self.settings.sleep_ssh_closed:
                await asyncio.sleep(self.settings.sleep_ssh_closed)

    @timed("lock")
    async def lock(self) -> None:
        """Poll the candidate lock every sleep_lock seconds until lock_timeout."""
        deadline = time.monotonic() + self.settings.lock_timeout
        while True:
            try:
                reply = await self._require_channel().rpc(RPC_LOCK)
            except ChannelError as e:
                raise LockFailed(f"locking candidate on {self.device_id}: {e}") from e
            if not reply.errors:
                self.locked = True
                logger.debug(f"Candidate locked on {self.device_id}")
                return
            if time.monotonic() + self.settings.sleep_lock > deadline:
                raise LockFailed(
                    f"candidate configuration lock on {self.device_id} not acquired "
                    f"after {self.settings.lock_timeout}s: "
                    + "\n".join(e.message for e in reply.errors)
                )
            logger.info(f"Candidate locked by another session on {self.device_id}, waiting")
            await asyncio.sleep(self.settings.sleep_lock)

    @timed("unlock")
    async def unlock(self) -> list[str]:
        try:
            reply = await self._require_channel().rpc(RPC_UNLOCK)
        except ChannelError as e:
            return [f"executing netconf config unlock: {e}"]
        finally:
            self.locked = False
        return [f"config unlock: {e.message}" for e in reply.errors]

    @timed("clear")
    async def clear(self) -> list[str]:
        warnings: list[str] = []
        try:
            reply = await self._require_channel().rpc(RPC_CLEAR)
            warnings.extend(f"config clear: {e.message}" for e in reply.errors)
        except ChannelError as e:
            warnings.append(f"executing netconf config clear: {e}")
        warnings.extend(await self.unlock())
        return warnings

    @timed("apply_lines")
    async def apply_lines(self, statements: list[Statement]) -> None:
        if not statements:
            return
        body = "\n".join(s.text for s in statements)
        await self._load_rpc(RPC_LOAD_SET.format(escape(body)), "apply of set/delete statements")
        await asyncio.sleep(self.settings.sleep_short)

    @timed("load")
    async def load(self, action: str, fmt: str, blob: str) -> None:
        load_action, config_format = check_load_request(action, fmt)
        if load_action == LoadAction.SET:
            rpc = RPC_LOAD_SET.format(escape(blob))
        elif config_format == ConfigFormat.JSON:
            rpc = RPC_LOAD_JSON.format(action=load_action.value, config=escape(blob))
        elif config_format == ConfigFormat.TEXT:
            rpc = RPC_LOAD_TEXT.format(action=load_action.value, config=escape(blob))
        else:
            # XML is embedded as-is
            rpc = RPC_LOAD_XML.format(action=load_action.value, config=blob)
        await self._load_rpc(rpc, f"load-configuration with action {action!r} and format {fmt!r}")

    async def _load_rpc(self, rpc: str, what: str) -> None:
        try:
            reply = await self._require_channel().rpc(rpc)
        except ChannelError as e:
            raise ApplyFailed(f"executing netconf {what}: {e}") from e
        fatal, warnings = split_severity(reply.errors)
        for warning in warnings:
            logger.warning(f"{self.device_id}: {warning}")
        if fatal:
            raise ApplyFailed("\n".join(e.message for e in reply.errors if e.severity == ERROR_SEVERITY))

    @timed("commit")
    async def commit(self, message: str) -> list[str]:
        try:
            reply = await self._require_channel().rpc(RPC_COMMIT.format(escape(message)))
        except ChannelError as e:
            raise CommitFailed(f"executing netconf commit: {e}") from e
        return read_commit_reply(reply, "commit-configuration")

    @timed("commit_confirmed")
    async def commit_confirmed(self, message: str) -> list[str]:
        timeout = self.settings.commit_confirmed or 1
        try:
            channel = self._require_channel()
            reply = await channel.rpc(RPC_COMMIT_CONFIRMED.format(timeout=timeout, log=escape(message)))
        except ChannelError as e:
            raise CommitFailed(f"executing netconf commit (confirmed {timeout}): {e}") from e
        warnings = read_commit_reply(reply, "commit-configuration(confirmed)")

        await asyncio.sleep(self.settings.commit_confirmed_wait)

        try:
            reply = await channel.rpc(RPC_COMMIT_CHECK)
        except ChannelError as e:
            raise CommitFailed(
                f"executing netconf commit check (to confirm): {e}", warnings=warnings
            ) from e
        try:
            warnings.extend(read_commit_reply(reply, "commit-configuration(check)"))
        except CommitFailed as e:
            e.warnings = warnings + e.warnings
            raise
        return warnings

    @timed("query")
    async def query(self, path: str) -> QueryResult:
        output = await self.command(f"show configuration {path} | display set relative")
        snapshot = ConfigSnapshot(output)
        if not output or snapshot.is_empty:
            return NotFound()
        return Found(snapshot)

    async def command(self, text: str) -> str:
        """Run a text command; configuration output keeps its markers."""
        try:
            reply = await self._require_channel().rpc(RPC_COMMAND.format(escape(text)))
        except ChannelError as e:
            raise QueryFailed(f"executing netconf command: {e}") from e
        if reply.errors:
            raise QueryFailed("\n".join(str(e) for e in reply.errors))

        config_output = reply.find("configuration-output")
        if config_output is not None:
            return f"{START_MARKER}\n{config_output.text or ''}\n{END_MARKER}"
        output = reply.find("output")
        if output is not None:
            return output.text or ""
        return ""
