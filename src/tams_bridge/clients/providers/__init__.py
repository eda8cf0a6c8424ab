"""
Backend Client Implementations

Concrete implementations of ApiClient for each backend type:
- VastTamsClient: Full-featured VAST TAMS backend
- BbcTamsClient: Reference TAMS API surface only
- IbcDemoClient: Streaming-oriented IBC demo backend
- CustomClient: Minimal custom backend
"""

from .bbc_tams import BbcTamsClient
from .custom import CustomClient
from .ibc_demo import IbcDemoClient
from .tams import TamsClient
from .vast_tams import VastTamsClient

__all__ = [
    "BbcTamsClient",
    "CustomClient",
    "IbcDemoClient",
    "TamsClient",
    "VastTamsClient",
]
