"""Session settings and device inventory."""
from .settings import Settings
from .inventory import DeviceInventory

__all__ = ["Settings", "DeviceInventory"]
