"""
Persisted backend choice for TAMS Bridge.

The selected backend id is stored as YAML at
``~/.tams-bridge/config.yaml`` by default, together with a
``config_version`` tag. Files written before versioning stored the id
under ``selectedBackend`` and are upgraded on load.
"""

import logging
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)


class SelectionStorage:
    """
    Storage for the persisted backend selection.

    Attributes:
        config_dir: Directory path for configuration files.
        config_file: Path to the configuration file.
    """

    CURRENT_VERSION: str = "1.0.0"

    def __init__(self, config_dir: Path | None = None) -> None:
        """
        Initialize the storage.

        Args:
            config_dir: Optional path to configuration directory.
                       Defaults to ~/.tams-bridge/
        """
        self.config_dir = config_dir or Path.home() / ".tams-bridge"
        self.config_file = self.config_dir / "config.yaml"

    def load(self) -> dict[str, Any]:
        """
        Load the raw configuration data.

        Returns:
            Configuration dictionary, empty when no file exists
        """
        if not self.config_file.exists():
            return {}

        with open(self.config_file, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed configuration file {self.config_file}")
            return {}

        if data.get("config_version") != self.CURRENT_VERSION:
            data = self._migrate(data)
            self._save_raw_data(data)

        return data

    def _migrate(self, data: dict[str, Any]) -> dict[str, Any]:
        logger.info(f"Migrating selection config from version {data.get('config_version', '0')}")
        migrated = dict(data)
        legacy = migrated.pop("selectedBackend", None)
        if legacy and "selected_backend" not in migrated:
            migrated["selected_backend"] = legacy
        migrated["config_version"] = self.CURRENT_VERSION
        return migrated

    def get_selected_backend(self) -> str | None:
        """Return the persisted backend id, if any."""
        value = self.load().get("selected_backend")
        return str(value) if value else None

    def set_selected_backend(self, backend_id: str) -> None:
        """
        Persist the selected backend id.

        Args:
            backend_id: Identifier of the backend to remember.
        """
        data = self.load()
        data["selected_backend"] = backend_id
        data["config_version"] = self.CURRENT_VERSION
        self._save_raw_data(data)
        logger.debug(f"Persisted backend selection: {backend_id}")

    def clear(self) -> None:
        """Remove the persisted selection."""
        data = self.load()
        if data.pop("selected_backend", None) is not None:
            self._save_raw_data(data)

    def _save_raw_data(self, data: dict[str, Any]) -> None:
        """
        Save raw dictionary data to the configuration file.

        Args:
            data: Dictionary to save as YAML.
        """
        self.config_dir.mkdir(parents=True, exist_ok=True)

        with open(self.config_file, "w", encoding="utf-8") as f:
            yaml.dump(data, f, default_flow_style=False, allow_unicode=True, sort_keys=False)
