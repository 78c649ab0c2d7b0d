"""Device inventory management from YAML configuration."""
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

import yaml

from .settings import Settings

if TYPE_CHECKING:
    from ..config_engine.engine import Resource
    from ..session.base import Session

logger = logging.getLogger(__name__)


class DeviceInventory:
    """Manages the device inventory loaded from YAML config.

    Each device entry holds Settings fields; ``defaults`` are merged into
    every device. A device may also list desired resources:

    ```yaml
    defaults:
      username: netconf
      password_env: SRX_PASSWORD
    devices:
      srx-1:
        host: 192.0.2.1
        resources:
          - type: application_set
            name: web
            applications: [junos-http, junos-https]
    ```
    """

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or self._find_config()
        self._config: dict = {}
        self._load_config()

    def _find_config(self) -> str:
        """Find the devices.yaml config file."""
        search_paths = [
            Path.cwd() / "configs" / "devices.yaml",
            Path.cwd() / "devices.yaml",
            Path.home() / ".config" / "netcommit" / "devices.yaml",
            Path("/etc/netcommit/devices.yaml"),
        ]

        for path in search_paths:
            if path.exists():
                return str(path)

        raise FileNotFoundError(
            "Could not find devices.yaml. Create one in ./configs/devices.yaml"
        )

    def _load_config(self) -> None:
        """Load the YAML configuration."""
        with open(self.config_path) as f:
            self._config = yaml.safe_load(f) or {}

        defaults = self._config.get("defaults", {}) or {}
        devices = self._config.get("devices", {}) or {}
        for device_id, device_config in devices.items():
            if device_config is None:
                device_config = devices[device_id] = {}
            for key, value in defaults.items():
                if key not in device_config:
                    device_config[key] = value
        self._config["devices"] = devices

    def get_device_ids(self) -> list[str]:
        """Get all device IDs."""
        return list(self._config.get("devices", {}).keys())

    def get_device_config(self, device_id: str) -> dict:
        """Get raw config for a device."""
        devices = self._config.get("devices", {})
        if device_id not in devices:
            raise KeyError(f"Unknown device: {device_id}")
        return devices[device_id]

    def get_settings(self, device_id: str) -> Settings:
        """Build session settings for a device."""
        config = {
            k: v for k, v in self.get_device_config(device_id).items()
            if k != "resources"
        }
        config.setdefault("name", device_id)
        return Settings.from_dict(config)

    def create_session(self, device_id: str) -> "Session":
        """Create a new, unopened session for a device."""
        from ..session import create_session
        return create_session(self.get_settings(device_id))

    def get_desired_state(self, device_id: str) -> list[tuple["Resource", Any]]:
        """Parse a device's ``resources`` list into (resource, tree) pairs.

        Raises:
            ValueError: Unknown resource type
            ParseError: Resource fields do not fit the resource schema
        """
        from ..config_engine.parser import ConfigParser
        from ..entities import get_resource

        parser = ConfigParser()
        desired = []
        for entry in self.get_device_config(device_id).get("resources", []) or []:
            data = dict(entry)
            resource = get_resource(data.pop("type", ""))
            desired.append((resource, parser.from_dict(data, resource.schema)))
        logger.debug(f"{device_id}: {len(desired)} desired resources")
        return desired
