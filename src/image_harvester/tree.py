"""
Tree Input Interfaces

Read-only capability interfaces the discovery engine walks. Adapters in
``image_harvester.adapters`` implement them over static HTML (BeautifulSoup)
and over live pages (Playwright snapshots).
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Protocol, Tuple, runtime_checkable
from urllib.parse import urlsplit


@runtime_checkable
class TreeNode(Protocol):
    """
    A node of a document tree.

    Non-element nodes (a document, a shadow root) report an empty ``tag_name``.
    Implementations may raise from any capability method; the engine contains
    those failures per node.
    """

    @property
    def tag_name(self) -> str:
        ...

    def element_children(self) -> Iterable["TreeNode"]:
        ...

    def get_attribute(self, name: str) -> Optional[str]:
        ...

    def computed_background_image(self) -> Optional[str]:
        ...

    def rendered_size(self) -> Tuple[int, int]:
        ...

    def natural_size(self) -> Tuple[int, int]:
        ...

    def resolved_source(self) -> Optional[str]:
        ...

    def raster_size(self) -> Tuple[int, int]:
        ...

    def encode_raster(self, mime_type: str) -> str:
        """Return the pixel buffer as a data: locator or raise RasterAccessError."""
        ...

    def attached_subtree(self) -> Optional["TreeNode"]:
        ...


@runtime_checkable
class EphemeralHandleResolver(Protocol):
    """Fetches the bytes behind a blob: locator while its surface is alive."""

    async def fetch(self, locator: str) -> Tuple[bytes, str]:
        """Return ``(payload, mime_type)`` or raise HandleResolutionError."""
        ...


OPAQUE_ORIGIN = "null"


@dataclass(frozen=True)
class SurfaceLocation:
    """Where a surface lives; drives relative locator resolution."""
    href: str
    base_url: Optional[str] = None

    @property
    def scheme(self) -> str:
        """Scheme with its trailing colon, e.g. ``https:``."""
        scheme = urlsplit(self.href).scheme
        return f"{scheme}:" if scheme else ""

    @property
    def origin(self) -> str:
        parts = urlsplit(self.href)
        if parts.scheme in ("http", "https", "ws", "wss", "ftp") and parts.netloc:
            return f"{parts.scheme}://{parts.netloc}"
        return OPAQUE_ORIGIN

    @property
    def base(self) -> str:
        return self.base_url or self.href


@dataclass
class Surface:
    """An independently rooted tree over which one discovery invocation runs."""
    name: str
    location: SurfaceLocation
    root: TreeNode
    resolver: Optional[EphemeralHandleResolver] = None
