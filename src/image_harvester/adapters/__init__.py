"""
Tree adapters.

- ``static``: BeautifulSoup documents fetched with httpx
- ``rendered``: Playwright snapshots of live pages, one per frame
"""

from .static import SoupNode, StaticSurfaceProvider, parse_inline_style
from .rendered import (
    PlaywrightHandleResolver,
    RenderedSurfaceProvider,
    SnapshotNode,
)

__all__ = [
    "SoupNode",
    "StaticSurfaceProvider",
    "parse_inline_style",
    "PlaywrightHandleResolver",
    "RenderedSurfaceProvider",
    "SnapshotNode",
]
