"""
Backend configuration for TAMS Bridge.

This module provides:
- Configuration data models (BackendType, BackendFeatures, EndpointTemplates, BackendConfig)
- Default feature flags and endpoint templates per backend type
- The compiled-in backend catalog with environment overrides
- Configuration validation
- YAML persistence of the selected backend
"""

from .catalog import BackendCatalog, get_feature_summary
from .defaults import DEFAULT_CONFIGS
from .models import BackendConfig, BackendFeatures, BackendType, EndpointTemplates
from .storage import SelectionStorage
from .validation import BackendConfigValidator, ValidationResult

__all__ = [
    # Models
    "BackendConfig",
    "BackendFeatures",
    "BackendType",
    "EndpointTemplates",
    "DEFAULT_CONFIGS",
    # Catalog
    "BackendCatalog",
    "get_feature_summary",
    # Storage
    "SelectionStorage",
    # Validation
    "BackendConfigValidator",
    "ValidationResult",
]
