"""
Backend configuration validation for TAMS Bridge.

This module provides:
- Structural checks (identity, address and type present)
- Type-specific capability-consistency rules
- Catalog entry checks (version and every endpoint declared)
"""

from dataclasses import dataclass, field, fields
from typing import List

from .models import BackendConfig, BackendType, EndpointTemplates


@dataclass
class ValidationResult:
    """
    Result of a configuration validation.

    Attributes:
        valid: Whether the configuration passed all validation checks.
        errors: List of error messages (validation failures).
        warnings: List of warning messages (non-critical issues).
    """

    valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def add_error(self, message: str) -> None:
        """Add an error message and mark validation as failed."""
        self.errors.append(message)
        self.valid = False

    def add_warning(self, message: str) -> None:
        """Add a warning message (does not affect validity)."""
        self.warnings.append(message)

    def merge(self, other: "ValidationResult") -> None:
        """Merge another ValidationResult into this one."""
        if not other.valid:
            self.valid = False
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)


class BackendConfigValidator:
    """
    Validator for backend declarations.

    Type rules catch declarations whose capability flags disagree with
    what the adapter for that type can actually do.
    """

    # flag name -> required value, per backend type
    REQUIRED_FEATURES: dict[BackendType, dict[str, bool]] = {
        BackendType.VAST_TAMS: {
            "soft_delete": True,
            "cmcd": True,
            "webhooks": True,
            "storage_allocation": True,
        },
        BackendType.BBC_TAMS: {
            "cmcd": True,
            "webhooks": True,
            "soft_delete": False,
            "storage_allocation": False,
        },
        BackendType.IBC_DEMO: {
            "storage_allocation": True,
            "health_monitoring": True,
        },
        BackendType.CUSTOM: {},
    }

    # endpoints that must be declared, per backend type
    REQUIRED_ENDPOINTS: dict[BackendType, tuple[str, ...]] = {
        BackendType.CUSTOM: ("sources", "flows"),
    }

    @classmethod
    def validate_structure(cls, config: BackendConfig) -> ValidationResult:
        """Check that identity, address and type are present."""
        result = ValidationResult()

        if not config.id:
            result.add_error("Backend id is required")
        if not config.name:
            result.add_error("Backend name is required")
        if not config.base_url:
            result.add_error("Base URL is required")
        if not isinstance(config.backend_type, BackendType):
            result.add_error("Backend type is required")
        if not config.version:
            result.add_warning("Backend version is not declared")

        return result

    @classmethod
    def validate_for_type(cls, backend_type: BackendType, config: BackendConfig) -> ValidationResult:
        """
        Full validation of a config against the type it will be built as.

        Args:
            backend_type: Type the client is requested for
            config: Backend configuration

        Returns:
            ValidationResult with any errors and warnings
        """
        result = cls.validate_structure(config)
        if not result.valid:
            return result

        if config.backend_type != backend_type:
            result.add_error(
                f"Config type '{config.backend_type.value}' does not match "
                f"requested type '{backend_type.value}'"
            )
            return result

        features = config.features.to_dict()
        for flag, expected in cls.REQUIRED_FEATURES[backend_type].items():
            if features[flag] != expected:
                state = "enabled" if expected else "disabled"
                result.add_error(f"{backend_type.value} requires feature '{flag}' to be {state}")

        for endpoint in cls.REQUIRED_ENDPOINTS.get(backend_type, ()):
            if not config.endpoints.get(endpoint):
                result.add_error(f"{backend_type.value} requires the '{endpoint}' endpoint")

        return result

    @classmethod
    def validate_catalog_entry(cls, config: BackendConfig) -> ValidationResult:
        """Catalog entries must also declare a version and every endpoint."""
        result = cls.validate_structure(config)

        if not config.version:
            result.add_error("Backend version is required")

        for f in fields(EndpointTemplates):
            if not config.endpoints.get(f.name):
                result.add_error(f"Endpoint '{f.name}' is required")

        return result
