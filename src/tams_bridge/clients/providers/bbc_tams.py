"""
BBC TAMS Client

Adapter for backends implementing only the reference TAMS API. It has no
soft deletion, storage allocation, flow collections or read-only toggle;
those operations raise UnsupportedOperationError without a request.
"""

from ..extensions import (
    AdvancedSearchExtension,
    AnalyticsExtension,
    FieldExtension,
    FlowMetadataExtension,
    MonitoringExtension,
    WebhookExtension,
)
from .tams import TamsClient


class BbcTamsClient(
    AnalyticsExtension,
    WebhookExtension,
    FlowMetadataExtension,
    FieldExtension,
    MonitoringExtension,
    AdvancedSearchExtension,
    TamsClient,
):
    """Client for reference TAMS API backends."""
