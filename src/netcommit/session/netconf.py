"""NETCONF over SSH channel.

A thin request/response adapter: paramiko carries the ``netconf`` subsystem,
messages use NETCONF 1.0 end-of-message framing, and replies are parsed into
RpcReply objects with ElementTree. Blocking socket work runs in the default
executor so the event loop stays free.
"""
import asyncio
import io
import logging
import socket
import threading
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

import paramiko

from ..config.settings import Settings

logger = logging.getLogger(__name__)
# RPC trace, enabled through the debug_netconf_log_path setting
trace_logger = logging.getLogger("netcommit.netconf")

DELIMITER = "]]>]]>"
BASE_CAPABILITY = "urn:ietf:params:netconf:base:1.0"

HELLO = (
    '<?xml version="1.0" encoding="UTF-8"?>'
    '<hello xmlns="urn:ietf:params:xml:ns:netconf:base:1.0">'
    "<capabilities>"
    "<capability>urn:ietf:params:netconf:base:1.0</capability>"
    "</capabilities>"
    "</hello>"
)


class ChannelError(Exception):
    """Transport level failure of the NETCONF channel."""
    pass


def _local(tag: str) -> str:
    """Strip an XML namespace from a tag."""
    return tag.rsplit("}", 1)[-1]


def _find_all(element: ET.Element, name: str) -> list[ET.Element]:
    return [e for e in element.iter() if _local(e.tag) == name]


def _child_text(element: ET.Element, name: str) -> str:
    for child in element:
        if _local(child.tag) == name:
            return (child.text or "").strip()
    return ""


@dataclass
class RpcError:
    """One rpc-error element of a reply."""
    severity: str
    message: str
    path: str = ""

    def __str__(self) -> str:
        return f"netconf rpc [{self.severity}] '{self.message}'"


@dataclass
class RpcReply:
    """Parsed rpc-reply."""
    raw: str
    root: Optional[ET.Element] = None
    errors: list[RpcError] = field(default_factory=list)

    @classmethod
    def parse(cls, raw: str) -> "RpcReply":
        """Parse reply text; top level rpc-error children become errors."""
        try:
            root = ET.fromstring(raw)
        except ET.ParseError as e:
            raise ChannelError(f"malformed rpc-reply: {e}") from e
        errors = [
            cls._error(child)
            for child in root
            if _local(child.tag) == "rpc-error"
        ]
        return cls(raw=raw, root=root, errors=errors)

    @staticmethod
    def _error(element: ET.Element) -> RpcError:
        return RpcError(
            severity=_child_text(element, "error-severity") or "error",
            message=_child_text(element, "error-message"),
            path=_child_text(element, "error-path"),
        )

    def find(self, name: str) -> Optional[ET.Element]:
        if self.root is None:
            return None
        found = _find_all(self.root, name)
        return found[0] if found else None

    def commit_result_errors(self) -> list[RpcError]:
        """rpc-error entries nested inside commit-results."""
        results = self.find("commit-results")
        if results is None:
            return []
        return [self._error(e) for e in results if _local(e.tag) == "rpc-error"]


class RpcChannel(ABC):
    """Request/response channel carrying NETCONF RPCs."""

    @abstractmethod
    async def connect(self) -> None:
        pass

    @abstractmethod
    async def rpc(self, body: str) -> RpcReply:
        """Send one RPC body (without the rpc envelope) and return its reply."""
        pass

    @abstractmethod
    async def close(self) -> None:
        pass


class NetconfChannel(RpcChannel):
    """NETCONF 1.0 channel on a paramiko ``netconf`` subsystem.

    One RPC is in flight at a time: a worker thread left reading after its
    caller was cancelled holds the lock until its reply is consumed.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._transport: Optional[paramiko.Transport] = None
        self._channel: Optional[paramiko.Channel] = None
        self._message_id = 0
        self._buffer = b""
        self._lock = threading.Lock()

    def _load_key(self) -> Optional[paramiko.PKey]:
        passphrase = self.settings.ssh_key_pass or None
        if self.settings.ssh_key_pem:
            return self._read_key(io.StringIO(self.settings.ssh_key_pem), passphrase)
        if self.settings.ssh_key_file:
            with open(self.settings.ssh_key_file) as f:
                return self._read_key(f, passphrase)
        return None

    @staticmethod
    def _read_key(handle, passphrase: Optional[str]) -> paramiko.PKey:
        text = handle.read()
        last_error: Optional[Exception] = None
        for key_class in (paramiko.Ed25519Key, paramiko.ECDSAKey, paramiko.RSAKey):
            try:
                return key_class.from_private_key(io.StringIO(text), password=passphrase)
            except paramiko.SSHException as e:
                last_error = e
        raise paramiko.SSHException(f"unsupported private key: {last_error}")

    def _connect(self) -> None:
        sock = socket.create_connection(
            (self.settings.host, self.settings.port),
            timeout=self.settings.timeout,
        )
        transport = None
        try:
            transport = paramiko.Transport(sock)
            security = transport.get_security_options()
            ciphers = [c for c in self.settings.ssh_ciphers if c in security.ciphers]
            if ciphers:
                security.ciphers = ciphers
            transport.start_client(timeout=self.settings.timeout)

            key = self._load_key()
            if key is not None:
                transport.auth_publickey(self.settings.username, key)
            else:
                transport.auth_password(self.settings.username, self.settings.get_password())

            channel = transport.open_session(timeout=self.settings.timeout)
            channel.settimeout(self.settings.timeout)
            channel.invoke_subsystem("netconf")
            self._transport = transport
            self._channel = channel
            self._buffer = b""

            self._check_hello(self._read_message())
            self._send_message(HELLO)
        except Exception:
            self._transport = None
            self._channel = None
            if transport is not None:
                transport.close()
            sock.close()
            raise

    @staticmethod
    def _check_hello(text: str) -> None:
        try:
            root = ET.fromstring(text)
        except ET.ParseError as e:
            raise ChannelError(f"malformed NETCONF hello: {e}") from e
        if _local(root.tag) != "hello":
            raise ChannelError(f"expected NETCONF hello, got <{_local(root.tag)}>")
        capabilities = [(c.text or "").strip() for c in _find_all(root, "capability")]
        if BASE_CAPABILITY not in capabilities:
            raise ChannelError("device does not announce NETCONF base:1.0")

    async def connect(self) -> None:
        """Open the SSH transport and exchange NETCONF hellos."""
        logger.info(f"Opening NETCONF channel to {self.settings.host}:{self.settings.port}")
        loop = asyncio.get_event_loop()
        await loop.run_in_executor(None, self._connect)
        logger.info(f"NETCONF channel open to {self.settings.device_id}")

    def _send_message(self, text: str) -> None:
        self._channel.sendall((text + DELIMITER).encode("utf-8"))

    def _read_message(self) -> str:
        """Read one framed message; bytes past the delimiter stay buffered."""
        marker = DELIMITER.encode()
        while marker not in self._buffer:
            chunk = self._channel.recv(65536)
            if not chunk:
                raise ChannelError("NETCONF channel closed by device")
            self._buffer += chunk
        message, _, self._buffer = self._buffer.partition(marker)
        return message.decode("utf-8", errors="replace").strip()

    def _exchange(self, body: str) -> tuple[str, str]:
        with self._lock:
            if self._channel is None:
                raise ChannelError("NETCONF channel is not open")
            self._message_id += 1
            message_id = str(self._message_id)
            request = (
                f'<rpc xmlns="urn:ietf:params:xml:ns:netconf:base:1.0" '
                f'message-id="{message_id}">{body}</rpc>'
            )
            trace_logger.debug(f"[{self.settings.device_id}] >>> {request}")
            self._send_message(request)
            reply = self._read_message()
            trace_logger.debug(f"[{self.settings.device_id}] <<< {reply}")
            return message_id, reply

    async def rpc(self, body: str) -> RpcReply:
        loop = asyncio.get_event_loop()
        try:
            message_id, raw = await loop.run_in_executor(None, self._exchange, body)
        except (OSError, EOFError, paramiko.SSHException) as e:
            raise ChannelError(f"executing netconf rpc: {e}") from e
        reply = RpcReply.parse(raw)
        reply_id = reply.root.get("message-id")
        if reply_id is not None and reply_id != message_id:
            raise ChannelError(f"rpc-reply message-id {reply_id} does not match request {message_id}")
        return reply

    async def close(self) -> None:
        if self._transport is not None:
            self._transport.close()
        self._transport = None
        self._channel = None
        self._buffer = b""
        logger.info(f"Closed NETCONF channel to {self.settings.device_id}")
