"""Session handlers for configuration transactions."""
from ..config.settings import Settings
from .base import Session, check_load_request
from .junos import JunosSession
from .netconf import NetconfChannel, RpcChannel, RpcReply
from .setfile import SetFileSession

__all__ = [
    "Session",
    "JunosSession",
    "SetFileSession",
    "NetconfChannel",
    "RpcChannel",
    "RpcReply",
    "check_load_request",
    "create_session",
]

# Session type registry
SESSION_TYPES = {
    "junos": JunosSession,
    "setfile": SetFileSession,
}


def create_session(settings: Settings) -> Session:
    """Factory function to create session instances.

    A configured fake_set_file always selects the offline set file session.
    """
    if settings.fake_set_file:
        return SetFileSession(settings)

    session_type = settings.type.lower()
    if session_type not in SESSION_TYPES:
        raise ValueError(f"Unknown session type: {session_type}")
    if settings.debug_netconf_log_path:
        from ..utils.logging_config import setup_netconf_trace
        setup_netconf_trace(settings.debug_netconf_log_path)
    return SESSION_TYPES[session_type](settings)
