"""
Compiled-in catalog of known backends.

Base addresses can be overridden per backend through the environment:
``TAMS_BACKEND_<ID>_URL`` and ``TAMS_BACKEND_<ID>_WS_URL`` where ``<ID>``
is the backend id upper-cased with dashes replaced by underscores.
``TAMS_DEFAULT_BACKEND`` picks the default backend id.
"""

import dataclasses
import logging
import os
from collections.abc import Iterable, Mapping
from typing import Any

from .defaults import DEFAULT_CONFIGS
from .models import BackendConfig, BackendFeatures, BackendType
from .validation import BackendConfigValidator

logger = logging.getLogger(__name__)

DEFAULT_BACKEND_ENV = "TAMS_DEFAULT_BACKEND"
FALLBACK_DEFAULT_BACKEND = "vast-tams"

# Display names for the comparison table, in flag order
FEATURE_LABELS: dict[str, str] = {
    "soft_delete": "Soft Delete",
    "cmcd": "CMCD Analytics",
    "webhooks": "Webhooks",
    "storage_allocation": "Storage Allocation",
    "flow_collections": "Flow Collections",
    "advanced_search": "Advanced Search",
    "async_operations": "Async Operations",
    "health_monitoring": "Health Monitoring",
}


def _builtin(
    backend_id: str,
    name: str,
    backend_type: BackendType,
    base_url: str,
    version: str,
    description: str,
    **extra: Any,
) -> dict[str, Any]:
    seed = DEFAULT_CONFIGS[backend_type]
    return {
        "id": backend_id,
        "name": name,
        "backend_type": backend_type.value,
        "base_url": base_url,
        "version": version,
        "description": description,
        "features": dict(seed["features"]),
        "endpoints": dict(seed["endpoints"]),
        **extra,
    }


BUILTIN_BACKENDS: list[dict[str, Any]] = [
    _builtin(
        "vast-tams",
        "VAST TAMS",
        BackendType.VAST_TAMS,
        "http://localhost:8000",
        "6.0",
        "Full-featured VAST TAMS backend with all advanced features",
    ),
    _builtin(
        "bbc-tams",
        "BBC TAMS",
        BackendType.BBC_TAMS,
        "http://localhost:8001",
        "7.0",
        "Reference TAMS API surface without vendor extensions",
    ),
    _builtin(
        "ibc-demo",
        "IBC Demo",
        BackendType.IBC_DEMO,
        "http://localhost:3000",
        "3.0",
        "TAMS v3 demo with HLS streaming and real-time markers",
        ws_url="ws://localhost:3000/ws",
    ),
    _builtin(
        "ibc-demo-imported",
        "IBC Demo with Imported Data",
        BackendType.IBC_DEMO,
        "http://localhost:3002",
        "3.0",
        "TAMS v3 demo with imported media data and HLS streaming",
        ws_url="ws://localhost:3002/ws",
    ),
]


def env_key(backend_id: str, suffix: str) -> str:
    """Environment variable name for a backend setting."""
    return f"TAMS_BACKEND_{backend_id.upper().replace('-', '_')}_{suffix}"


class BackendCatalog:
    """
    Registry of backends the selection state can switch between.

    Example:
        catalog = BackendCatalog()
        config = catalog.get_backend_config("vast-tams")
        default = catalog.get_default_backend()
    """

    def __init__(
        self,
        backends: Iterable[BackendConfig | dict[str, Any]] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        """
        Initialize the catalog.

        Args:
            backends: Backend declarations (defaults to the built-in set)
            environ: Environment used for overrides (defaults to os.environ)
        """
        self._environ = os.environ if environ is None else environ
        self._declarations = list(BUILTIN_BACKENDS if backends is None else backends)
        self._backends: dict[str, BackendConfig] = {}
        self.reload()

    def reload(self) -> list[BackendConfig]:
        """Rebuild the backend table, re-reading environment overrides."""
        backends: dict[str, BackendConfig] = {}
        for declaration in self._declarations:
            config = (
                declaration
                if isinstance(declaration, BackendConfig)
                else BackendConfig.from_dict(declaration)
            )
            backends[config.id] = self._apply_overrides(config)
        self._backends = backends
        return list(backends.values())

    def _apply_overrides(self, config: BackendConfig) -> BackendConfig:
        changes: dict[str, Any] = {}
        base_url = self._environ.get(env_key(config.id, "URL"))
        if base_url:
            changes["base_url"] = base_url.rstrip("/")
        ws_url = self._environ.get(env_key(config.id, "WS_URL"))
        if ws_url:
            changes["ws_url"] = ws_url
        if changes:
            logger.debug(f"Environment overrides for {config.id}: {sorted(changes)}")
            return dataclasses.replace(config, **changes)
        return config

    def get_available_backends(self) -> list[BackendConfig]:
        return list(self._backends.values())

    def get_backend_config(self, backend_id: str) -> BackendConfig | None:
        return self._backends.get(backend_id)

    def is_valid_backend_id(self, backend_id: str | None) -> bool:
        return bool(backend_id) and backend_id in self._backends

    def get_default_backend_id(self) -> str:
        """
        Resolve the default backend id.

        Uses ``TAMS_DEFAULT_BACKEND`` when it names a known backend, then
        the compiled-in default, then the first declared backend.
        """
        configured = self._environ.get(DEFAULT_BACKEND_ENV)
        if configured:
            if configured in self._backends:
                return configured
            logger.warning(f"Unknown default backend '{configured}', ignoring")
        if FALLBACK_DEFAULT_BACKEND in self._backends:
            return FALLBACK_DEFAULT_BACKEND
        if not self._backends:
            raise LookupError("Backend catalog is empty")
        return next(iter(self._backends))

    def get_default_backend(self) -> BackendConfig:
        return self._backends[self.get_default_backend_id()]

    def backend_supports_feature(self, backend_id: str, feature: str) -> bool:
        config = self.get_backend_config(backend_id)
        if config is None:
            return False
        return bool(config.features.to_dict().get(feature, False))

    def validate_backend_config(self, config: BackendConfig) -> list[str]:
        """Return the list of problems with a catalog entry (empty when valid)."""
        return BackendConfigValidator.validate_catalog_entry(config).errors

    def get_backend_comparison(self) -> list[dict[str, Any]]:
        """
        Feature-by-backend comparison table.

        Returns:
            One row per feature flag: ``{"feature": label, <backend id>: bool, ...}``
        """
        rows = []
        for flag, label in FEATURE_LABELS.items():
            row: dict[str, Any] = {"feature": label, "key": flag}
            for config in self._backends.values():
                row[config.id] = getattr(config.features, flag)
            rows.append(row)
        return rows


def get_feature_summary(features: BackendFeatures) -> dict[str, Any]:
    """Summarize which capability flags a backend declares."""
    enabled = features.enabled()
    return {
        "enabled": enabled,
        "disabled": [name for name in FEATURE_LABELS if name not in enabled],
        "enabled_count": len(enabled),
        "total": len(FEATURE_LABELS),
    }
