"""
Rendered Page Adapter

Loads a page in headless Chromium with Playwright and snapshots every frame's
live DOM (computed background images, layout boxes, natural image sizes,
canvas pixel buffers and open shadow roots) in a single evaluate call per
frame. Discovery then walks the snapshot while the page stays open, so
``blob:`` handles can still be fetched inside their owning frame.
"""

import asyncio
import base64
import binascii
import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from playwright.async_api import Browser, Error as PlaywrightError, Frame, Page, async_playwright

from ..config import HarvesterConfig, get_config
from ..errors import DiscoveryUnavailableError, HandleResolutionError, RasterAccessError
from ..tree import Surface, SurfaceLocation

logger = logging.getLogger(__name__)

SNAPSHOT_JS = """
(mimeType) => {
  const snap = (node) => {
    const el = node.nodeType === Node.ELEMENT_NODE ? node : null;
    const out = { tag: el ? el.tagName.toLowerCase() : '', attrs: {}, children: [], shadow: null };
    if (el) {
      for (const attr of Array.from(el.attributes)) out.attrs[attr.name] = attr.value;
      try {
        out.bg = window.getComputedStyle(el).getPropertyValue('background-image');
      } catch (e) {
        out.bg_error = String(e);
      }
      out.box = [el.offsetWidth || 0, el.offsetHeight || 0];
      if (out.tag === 'img') {
        out.natural = [el.naturalWidth || 0, el.naturalHeight || 0];
        out.src = el.src || null;
      }
      if (out.tag === 'canvas') {
        out.raster = [el.width || 0, el.height || 0];
        try {
          out.canvas = el.toDataURL(mimeType);
        } catch (e) {
          out.canvas = null;
        }
      }
      if (el.shadowRoot) out.shadow = snap(el.shadowRoot);
    }
    for (const child of Array.from(node.children || [])) out.children.push(snap(child));
    return out;
  };
  return { href: window.location.href, base: document.baseURI, root: snap(document) };
}
"""

FETCH_HANDLE_JS = """
async (url) => {
  const response = await fetch(url);
  const blob = await response.blob();
  const dataUrl = await new Promise((resolve, reject) => {
    const reader = new FileReader();
    reader.onloadend = () => resolve(reader.result);
    reader.onerror = reject;
    reader.readAsDataURL(blob);
  });
  const comma = dataUrl.indexOf(',');
  return { type: blob.type, data: comma >= 0 ? dataUrl.slice(comma + 1) : '' };
}
"""


def _pair(value) -> Tuple[int, int]:
    if not value:
        return 0, 0
    return int(value[0] or 0), int(value[1] or 0)


class SnapshotNode:
    """TreeNode over one node of a frame snapshot."""

    def __init__(self, data: Dict[str, Any]):
        self._data = data

    def __repr__(self) -> str:
        return f"SnapshotNode({self.tag_name or '#root'})"

    @property
    def tag_name(self) -> str:
        return self._data.get('tag') or ''

    def element_children(self) -> Iterable["SnapshotNode"]:
        return [SnapshotNode(child) for child in self._data.get('children', [])]

    def attached_subtree(self) -> Optional["SnapshotNode"]:
        shadow = self._data.get('shadow')
        return SnapshotNode(shadow) if shadow else None

    def get_attribute(self, name: str) -> Optional[str]:
        return self._data.get('attrs', {}).get(name)

    def computed_background_image(self) -> Optional[str]:
        if 'bg_error' in self._data:
            raise ValueError(f"Style was not computable: {self._data['bg_error']}")
        return self._data.get('bg')

    def rendered_size(self) -> Tuple[int, int]:
        return _pair(self._data.get('box'))

    def natural_size(self) -> Tuple[int, int]:
        return _pair(self._data.get('natural'))

    def resolved_source(self) -> Optional[str]:
        return self._data.get('src')

    def raster_size(self) -> Tuple[int, int]:
        return _pair(self._data.get('raster'))

    def encode_raster(self, mime_type: str) -> str:
        encoded = self._data.get('canvas')
        if not encoded:
            raise RasterAccessError("Canvas is tainted or could not be encoded")
        return encoded


class PlaywrightHandleResolver:
    """Fetches blob: handles from inside the frame that created them."""

    def __init__(self, frame: Frame):
        self.frame = frame

    async def fetch(self, locator: str) -> Tuple[bytes, str]:
        try:
            result = await self.frame.evaluate(FETCH_HANDLE_JS, locator)
            payload = base64.b64decode(result.get('data') or '', validate=True)
        except PlaywrightError as e:
            raise HandleResolutionError(f"Handle fetch failed: {e}", context={'locator': locator}) from e
        except (binascii.Error, AttributeError) as e:
            raise HandleResolutionError(f"Handle payload unreadable: {e}", context={'locator': locator}) from e
        return payload, result.get('type') or ''


class RenderedSurfaceProvider:
    """
    Opens a page in Chromium and exposes each of its frames as a surface.

    The page stays open until the provider is closed so handle resolvers
    remain valid for the whole discovery run.
    """

    def __init__(self, config: Optional[HarvesterConfig] = None):
        self.config = config or get_config()
        self._playwright = None
        self._browser: Optional[Browser] = None
        self._page: Optional[Page] = None

    async def __aenter__(self):
        """Async context manager entry."""
        await self._ensure_browser()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def _ensure_browser(self):
        if self._playwright is None:
            self._playwright = await async_playwright().start()
        if self._browser is None or not self._browser.is_connected():
            self._browser = await self._playwright.chromium.launch(
                headless=self.config.headless,
                args=['--no-sandbox', '--disable-dev-shm-usage', '--disable-gpu'],
            )
            logger.info("Browser launched for rendered discovery")

    async def open(self, url: str) -> List[Surface]:
        """Navigate to ``url`` and snapshot every frame, main frame first."""
        await self._ensure_browser()
        context = await self._browser.new_context(
            viewport={'width': self.config.viewport_width, 'height': self.config.viewport_height},
            user_agent=self.config.user_agent,
        )
        self._page = await context.new_page()
        self._page.set_default_timeout(self.config.navigation_timeout * 1000)

        try:
            await self._page.goto(url, wait_until='load')
        except PlaywrightError as e:
            logger.error(f"Failed to load {url}: {e}")
            raise DiscoveryUnavailableError(context={'url': url, 'error': str(e)}) from e
        await asyncio.sleep(self.config.settle_time)

        surfaces = []
        for position, frame in enumerate(self._page.frames):
            is_main = frame == self._page.main_frame
            try:
                snapshot = await frame.evaluate(SNAPSHOT_JS, self.config.raster_mime_type)
            except PlaywrightError as e:
                if is_main:
                    raise DiscoveryUnavailableError(context={'url': url, 'error': str(e)}) from e
                logger.warning(f"Skipping unreadable frame {frame.url}: {e}")
                continue
            surfaces.append(Surface(
                name='main' if is_main else f"frame[{position}]",
                location=SurfaceLocation(href=snapshot['href'], base_url=snapshot.get('base')),
                root=SnapshotNode(snapshot['root']),
                resolver=PlaywrightHandleResolver(frame),
            ))

        logger.info(f"Snapshotted {len(surfaces)} frames of {url}")
        return surfaces

    async def close(self):
        """Close the page, browser and Playwright driver."""
        try:
            if self._page is not None:
                await self._page.context.close()
                self._page = None
            if self._browser is not None:
                await self._browser.close()
                self._browser = None
            if self._playwright is not None:
                await self._playwright.stop()
                self._playwright = None
        except PlaywrightError as e:
            logger.error(f"Error closing rendered surface provider: {e}")
