"""Device inventory management from YAML configuration."""
import logging
from dataclasses import fields
from pathlib import Path
from typing import Optional

import yaml

from ..config_engine.engine import ConfigEngine
from ..config_engine.gate import SerializationGate
from ..devices.base import DeviceConfig
from .schema import EngineOptions

logger = logging.getLogger(__name__)

_DEVICE_FIELDS = {f.name for f in fields(DeviceConfig)}


class DeviceInventory:
    """Devices and engine options loaded from a YAML file.

    ```yaml
    defaults:
      username: automation
      password_env: JUNOS_PASSWORD
      port: 830

    options:
      cmd_sleep_lock: 5
      commit_confirmed: 2

    devices:
      srx-edge:
        host: 192.0.2.1
      qfx-leaf1:
        host: 192.0.2.11
        sshkey_file: ~/.ssh/id_ed25519

    groups:
      leaves:
        - qfx-leaf1
    ```

    Every engine handed out shares one SerializationGate.
    """

    def __init__(self, config_path: Optional[str] = None, gate: Optional[SerializationGate] = None):
        self.config_path = config_path or self._find_config()
        self._config: dict = {}
        self._engines: dict[str, ConfigEngine] = {}
        self.gate = gate or SerializationGate()
        self._load_config()
        self.options = EngineOptions.from_env(self._config.get("options") or {})

    def _find_config(self) -> str:
        """Find the devices.yaml config file."""
        search_paths = [
            Path.cwd() / "configs" / "devices.yaml",
            Path.cwd() / "devices.yaml",
            Path.home() / ".config" / "junos-commit" / "devices.yaml",
            Path("/etc/junos-commit/devices.yaml"),
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

        # Apply defaults
        defaults = self._config.get("defaults") or {}
        devices = self._config.get("devices") or {}
        self._config["devices"] = devices
        for device_id, device_config in devices.items():
            if device_config is None:
                device_config = devices[device_id] = {}
            for key, value in defaults.items():
                if key not in device_config:
                    device_config[key] = value

        self._validate_groups()

    def _validate_groups(self) -> None:
        """Validate that all group members reference valid devices."""
        groups = self._config.get("groups") or {}
        devices = self._config["devices"]

        for group_name, members in groups.items():
            if not isinstance(members, list):
                logger.warning(f"Group '{group_name}' should be a list of device IDs")
                continue
            for device_id in members:
                if device_id not in devices:
                    logger.warning(
                        f"Group '{group_name}' references unknown device: {device_id}"
                    )

    def get_device_ids(self) -> list[str]:
        """Get all device IDs."""
        return list(self._config["devices"].keys())

    def get_device_config(self, device_id: str) -> DeviceConfig:
        """Build the DeviceConfig of a device. Unknown keys are ignored."""
        devices = self._config["devices"]
        if device_id not in devices:
            raise KeyError(f"Unknown device: {device_id}")

        raw = dict(devices[device_id])
        unknown = sorted(set(raw) - _DEVICE_FIELDS)
        if unknown:
            logger.warning(f"Device '{device_id}': ignoring unknown keys {unknown}")
        kwargs = {k: v for k, v in raw.items() if k in _DEVICE_FIELDS}
        kwargs["name"] = device_id
        if "host" not in kwargs:
            raise ValueError(f"Device '{device_id}' has no host")
        if kwargs.get("sshkey_file"):
            kwargs["sshkey_file"] = str(Path(kwargs["sshkey_file"]).expanduser())
        return DeviceConfig(**kwargs)

    def get_engine(self, device_id: str) -> ConfigEngine:
        """Get or create the engine of a device."""
        if device_id not in self._engines:
            self._engines[device_id] = ConfigEngine(
                self.get_device_config(device_id),
                self.gate,
                self.options,
            )
        return self._engines[device_id]

    def get_all_engines(self) -> dict[str, ConfigEngine]:
        for device_id in self.get_device_ids():
            self.get_engine(device_id)
        return dict(self._engines)

    def get_group_members(self, group_name: str) -> list[str]:
        """Get device IDs in a group.

        Raises:
            KeyError: If group doesn't exist
        """
        groups = self._config.get("groups") or {}
        if group_name not in groups:
            raise KeyError(f"Unknown group: {group_name}")
        return list(groups[group_name])

    def get_engines_in_group(self, group_name: str) -> list[ConfigEngine]:
        return [self.get_engine(device_id) for device_id in self.get_group_members(group_name)]
