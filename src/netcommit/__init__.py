"""netcommit - declarative Junos configuration over NETCONF.

Entities are typed attribute trees. They serialize into flat ``set``
statements, parse back from ``display set relative`` output, and are pushed
in lock -> apply -> commit -> unlock transactions.
"""
from .config import DeviceInventory, Settings
from .config_engine import ConfigEngine, Resource
from .errors import Diagnostics, NetcommitError

__version__ = "0.1.0"

__all__ = [
    "ConfigEngine",
    "Resource",
    "Settings",
    "DeviceInventory",
    "Diagnostics",
    "NetcommitError",
]
