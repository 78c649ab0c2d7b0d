"""Base session abstraction for configuration transactions."""
import logging
from abc import ABC, abstractmethod
from typing import Optional

from ..config.settings import Settings
from ..config_engine.schema import (
    ConfigFormat,
    Found,
    LoadAction,
    QueryResult,
    Statement,
)
from ..errors import InvalidLoadRequest

logger = logging.getLogger(__name__)


def check_load_request(action: str, fmt: str) -> tuple[LoadAction, ConfigFormat]:
    """Validate a load (action, format) pair.

    Raises:
        InvalidLoadRequest: Unknown action or format, or a set/format mismatch
    """
    try:
        load_action = LoadAction(action)
    except ValueError:
        valid = ", ".join(a.value for a in LoadAction)
        raise InvalidLoadRequest(f"unknown load action {action!r} (expected one of {valid})") from None
    try:
        config_format = ConfigFormat(fmt)
    except ValueError:
        valid = ", ".join(f.value for f in ConfigFormat)
        raise InvalidLoadRequest(f"unknown config format {fmt!r} (expected one of {valid})") from None

    if config_format == ConfigFormat.SET and load_action != LoadAction.SET:
        raise InvalidLoadRequest(f"format 'set' is only valid with action 'set', not {action!r}")
    if load_action == LoadAction.SET and config_format not in (ConfigFormat.SET, ConfigFormat.TEXT):
        raise InvalidLoadRequest(f"action 'set' needs format 'set' or 'text', not {fmt!r}")
    return load_action, config_format


class Session(ABC):
    """Abstract handle on one device configuration session.

    A session is owned by a single transaction at a time and is not shared
    between concurrent operations. Mutual exclusion between sessions is the
    device's candidate lock.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.device_id = settings.device_id
        self._open = False
        self.locked = False

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def offline(self) -> bool:
        """True when the session does not talk to a live device."""
        return False

    # Connection management
    @abstractmethod
    async def open(self) -> None:
        """Establish the channel.

        Raises:
            SessionOpenFailed: The channel could not be established
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the channel."""
        pass

    # Candidate configuration
    @abstractmethod
    async def lock(self) -> None:
        """Acquire the candidate lock, waiting while another session holds it.

        Raises:
            LockFailed: The lock was not acquired before lock_timeout
        """
        pass

    @abstractmethod
    async def unlock(self) -> list[str]:
        """Release the candidate lock.

        Returns:
            Warning messages; never raises
        """
        pass

    @abstractmethod
    async def clear(self) -> list[str]:
        """Discard uncommitted candidate edits, then unlock.

        Returns:
            Warning messages; never raises
        """
        pass

    @abstractmethod
    async def apply_lines(self, statements: list[Statement]) -> None:
        """Apply a statement batch to the candidate configuration.

        Raises:
            ApplyFailed: The device rejected one or more statements
        """
        pass

    @abstractmethod
    async def load(self, action: str, fmt: str, blob: str) -> None:
        """Load a raw configuration blob into the candidate configuration.

        Raises:
            InvalidLoadRequest: Bad (action, format) pair
            ApplyFailed: The device rejected the blob
        """
        pass

    @abstractmethod
    async def commit(self, message: str) -> list[str]:
        """Activate the candidate configuration.

        Returns:
            Warning messages from the device

        Raises:
            CommitFailed: Activation rejected; carries warnings seen so far
        """
        pass

    @abstractmethod
    async def commit_confirmed(self, message: str) -> list[str]:
        """Commit with automatic rollback, then confirm after a wait.

        Returns:
            Warning messages from both commits
        """
        pass

    # Reads
    @abstractmethod
    async def query(self, path: str) -> QueryResult:
        """Query the committed configuration under a path.

        Returns:
            Found(snapshot) or NotFound

        Raises:
            QueryFailed: The query could not be executed
        """
        pass

    @abstractmethod
    async def command(self, text: str) -> str:
        """Run an operational command and return its text output."""
        pass

    async def exists(self, path: str) -> bool:
        """Whether the configuration holds anything under a path."""
        return isinstance(await self.query(path), Found)

    async def commit_with(self, message: str, confirmed: Optional[bool] = None) -> list[str]:
        """Commit, using ``commit confirmed`` when the settings ask for it."""
        if confirmed is None:
            confirmed = self.settings.commit_confirmed is not None
        if confirmed:
            return await self.commit_confirmed(message)
        return await self.commit(message)

    # Context manager support
    async def __aenter__(self):
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False
