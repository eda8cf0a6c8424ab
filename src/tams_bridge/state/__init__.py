"""
TAMS Bridge State Module

Contains the backend selection state machine:
- BackendSelection: Current backend with switch, refresh and test operations
- SelectionState: Snapshot of the selection including bounded histories
- FeatureAvailability: Feature flags of the active backend
"""

from .selection import (
    BackendSelection,
    ConnectionTest,
    FeatureAvailability,
    SelectionState,
    SelectionStatus,
    SwitchEvent,
)

__all__ = [
    "BackendSelection",
    "ConnectionTest",
    "FeatureAvailability",
    "SelectionState",
    "SelectionStatus",
    "SwitchEvent",
]
