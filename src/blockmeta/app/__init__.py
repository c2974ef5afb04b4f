"""Host application contracts.

The pipeline consumes the host through the Protocol types defined in
``protocols``; any object with matching async methods can be used.
"""

from .protocols import (
    AssetStoreProtocol,
    BlockStoreProtocol,
    HostProtocol,
    InteractiveSessionProtocol,
    NotifierProtocol,
)

__all__ = [
    "AssetStoreProtocol",
    "BlockStoreProtocol",
    "HostProtocol",
    "InteractiveSessionProtocol",
    "NotifierProtocol",
]
