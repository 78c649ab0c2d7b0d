"""Connection and transaction settings for a device session."""
import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

DEFAULT_SSH_CIPHERS = [
    "aes128-gcm@openssh.com",
    "chacha20-poly1305@openssh.com",
    "aes128-ctr",
    "aes192-ctr",
    "aes256-ctr",
    "aes128-cbc",
]

# Environment variable -> (settings field, converter)
ENV_VARS = {
    "NETCOMMIT_HOST": ("host", str),
    "NETCOMMIT_PORT": ("port", int),
    "NETCOMMIT_USERNAME": ("username", str),
    "NETCOMMIT_PASSWORD": ("password", str),
    "NETCOMMIT_KEYPEM": ("ssh_key_pem", str),
    "NETCOMMIT_KEYFILE": ("ssh_key_file", str),
    "NETCOMMIT_KEYPASS": ("ssh_key_pass", str),
    "NETCOMMIT_TIMEOUT": ("timeout", int),
    "NETCOMMIT_CONNECT_RETRIES": ("connect_retries", int),
    "NETCOMMIT_SLEEP_SHORT": ("sleep_short", float),
    "NETCOMMIT_SLEEP_LOCK": ("sleep_lock", float),
    "NETCOMMIT_LOCK_TIMEOUT": ("lock_timeout", float),
    "NETCOMMIT_SLEEP_SSH_CLOSED": ("sleep_ssh_closed", float),
    "NETCOMMIT_COMMIT_CONFIRMED": ("commit_confirmed", int),
    "NETCOMMIT_COMMIT_CONFIRMED_WAIT_PERCENT": ("commit_confirmed_wait_percent", int),
    "NETCOMMIT_FAKECREATE_SETFILE": ("fake_set_file", str),
    "NETCOMMIT_FAKEUPDATE_ALSO": ("fake_update_also", lambda v: v.lower() in ("true", "1")),
    "NETCOMMIT_FAKEDELETE_ALSO": ("fake_delete_also", lambda v: v.lower() in ("true", "1")),
    "NETCOMMIT_NETCONF_LOG_PATH": ("debug_netconf_log_path", str),
}


@dataclass
class Settings:
    """Settings for one device session.

    Sleep and timeout values are in seconds, except commit_confirmed which is
    in minutes like the device's own ``commit confirmed`` option.
    """
    host: str = ""
    port: int = 830
    username: str = "netconf"
    password: Optional[str] = None
    password_env: str = "NETCOMMIT_PASSWORD"
    ssh_key_pem: Optional[str] = None
    ssh_key_file: Optional[str] = None
    ssh_key_pass: Optional[str] = None
    ssh_ciphers: list[str] = field(default_factory=lambda: list(DEFAULT_SSH_CIPHERS))
    timeout: int = 30
    connect_retries: int = 1
    sleep_short: float = 0.1
    sleep_lock: float = 10
    lock_timeout: float = 600
    sleep_ssh_closed: float = 0
    commit_confirmed: Optional[int] = None
    commit_confirmed_wait_percent: int = 90
    fake_set_file: Optional[str] = None
    fake_update_also: bool = False
    fake_delete_also: bool = False
    debug_netconf_log_path: Optional[str] = None
    provider_name: str = "netcommit"
    name: str = ""
    type: str = "junos"

    def __post_init__(self):
        if not 1 <= self.connect_retries <= 10:
            logger.warning(
                f"connect_retries={self.connect_retries} out of range 1-10, clamping"
            )
            self.connect_retries = min(max(self.connect_retries, 1), 10)
        if self.commit_confirmed is not None and not 1 <= self.commit_confirmed <= 65535:
            raise ValueError(f"commit_confirmed must be in range 1-65535, got {self.commit_confirmed}")
        if not 1 <= self.commit_confirmed_wait_percent <= 99:
            raise ValueError(
                f"commit_confirmed_wait_percent must be in range 1-99, "
                f"got {self.commit_confirmed_wait_percent}"
            )
        for attr in ("ssh_key_file", "fake_set_file", "debug_netconf_log_path"):
            value = getattr(self, attr)
            if value and value.startswith("~"):
                setattr(self, attr, str(Path(value).expanduser()))

    @property
    def device_id(self) -> str:
        return self.name or self.host

    @property
    def offline(self) -> bool:
        """True when statements go to a set file instead of a device."""
        return bool(self.fake_set_file)

    @property
    def commit_confirmed_wait(self) -> float:
        """Seconds to wait before confirming a ``commit confirmed``."""
        if self.commit_confirmed is None:
            return 0
        return self.commit_confirmed * 60 * self.commit_confirmed_wait_percent / 100

    def get_password(self) -> str:
        """Get password from config or environment variable."""
        if self.password:
            return self.password
        return os.environ.get(self.password_env, "")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Settings":
        """Build settings from a dict, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            logger.warning(f"Ignoring unknown settings: {', '.join(sorted(unknown))}")
        return cls(**{k: v for k, v in data.items() if k in known})

    @classmethod
    def from_env(cls, base: Optional[dict[str, Any]] = None) -> "Settings":
        """Build settings from NETCOMMIT_* environment variables.

        Values in ``base`` win over the environment. A variable that cannot be
        converted is skipped with a warning.
        """
        data: dict[str, Any] = {}
        for env_name, (attr, convert) in ENV_VARS.items():
            raw = os.environ.get(env_name)
            if raw is None or raw == "":
                continue
            try:
                data[attr] = convert(raw)
            except ValueError as e:
                logger.warning(f"Error parsing {env_name}, variable not used: {e}")
        ciphers = os.environ.get("NETCOMMIT_SSH_CIPHERS")
        if ciphers:
            data["ssh_ciphers"] = [c.strip() for c in ciphers.split(",") if c.strip()]
        data.update(base or {})
        return cls.from_dict(data)
