"""
Static HTML Adapter

Exposes a BeautifulSoup document through the TreeNode interface and turns a
fetched page (plus its iframes) into discovery surfaces.

Static HTML has no layout engine: background images come from inline
``style`` attributes only, box sizes from ``width``/``height`` attributes,
and canvases carry no pixel buffer.
"""

import logging
import re
from typing import Dict, Iterable, List, Optional, Tuple
from urllib.parse import urljoin, urlsplit

import httpx
from bs4 import BeautifulSoup, Tag

from ..config import HarvesterConfig, get_config
from ..errors import DiscoveryUnavailableError, RasterAccessError
from ..tree import Surface, SurfaceLocation

logger = logging.getLogger(__name__)

SHADOW_ROOT_ATTRIBUTES = ('shadowrootmode', 'shadowroot')
DEFAULT_CANVAS_SIZE = (300, 150)

_LEADING_INT = re.compile(r"^\s*(\d+)")


def parse_inline_style(style: Optional[str]) -> Dict[str, str]:
    """
    Split a ``style`` attribute into lower-cased property -> value pairs.

    Semicolons inside parentheses or quotes (``url(data:...;base64,...)``)
    do not end a declaration. Later declarations override earlier ones.
    """
    declarations: Dict[str, str] = {}
    if not style:
        return declarations

    current = []
    depth = 0
    quote = None
    chunks = []
    for char in style:
        if quote:
            if char == quote:
                quote = None
        elif char in ('"', "'"):
            quote = char
        elif char == '(':
            depth += 1
        elif char == ')':
            depth = max(0, depth - 1)
        elif char == ';' and depth == 0:
            chunks.append(''.join(current))
            current = []
            continue
        current.append(char)
    chunks.append(''.join(current))

    for chunk in chunks:
        name, sep, value = chunk.partition(':')
        if sep and name.strip():
            declarations[name.strip().lower()] = value.strip()
    return declarations


def _int_attribute(value) -> int:
    if value is None:
        return 0
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else 0


def _is_shadow_template(tag: Tag) -> bool:
    return tag.name == 'template' and any(tag.has_attr(a) for a in SHADOW_ROOT_ATTRIBUTES)


class SoupNode:
    """TreeNode over a BeautifulSoup document, element or declarative shadow root."""

    def __init__(self, tag, shadow_root: bool = False):
        self._tag = tag
        self._shadow_root = shadow_root

    def __repr__(self) -> str:
        return f"SoupNode({self.tag_name or '#root'})"

    @property
    def tag_name(self) -> str:
        if self._shadow_root or isinstance(self._tag, BeautifulSoup):
            return ''
        return (self._tag.name or '').lower()

    def element_children(self) -> Iterable["SoupNode"]:
        for child in self._tag.children:
            if isinstance(child, Tag) and not _is_shadow_template(child):
                yield SoupNode(child)

    def attached_subtree(self) -> Optional["SoupNode"]:
        if not self.tag_name:
            return None
        for child in self._tag.children:
            if isinstance(child, Tag) and _is_shadow_template(child):
                return SoupNode(child, shadow_root=True)
        return None

    def get_attribute(self, name: str) -> Optional[str]:
        if not self.tag_name:
            return None
        value = self._tag.get(name)
        if isinstance(value, list):
            return ' '.join(value)
        return value

    def computed_background_image(self) -> Optional[str]:
        declarations = parse_inline_style(self.get_attribute('style'))
        value = declarations.get('background-image')
        if value is None and 'url(' in declarations.get('background', ''):
            value = declarations['background']
        return value

    def rendered_size(self) -> Tuple[int, int]:
        return _int_attribute(self.get_attribute('width')), _int_attribute(self.get_attribute('height'))

    def natural_size(self) -> Tuple[int, int]:
        return 0, 0

    def resolved_source(self) -> Optional[str]:
        return self.get_attribute('src')

    def raster_size(self) -> Tuple[int, int]:
        width = self.get_attribute('width')
        height = self.get_attribute('height')
        return (
            _int_attribute(width) if width is not None else DEFAULT_CANVAS_SIZE[0],
            _int_attribute(height) if height is not None else DEFAULT_CANVAS_SIZE[1],
        )

    def encode_raster(self, mime_type: str) -> str:
        raise RasterAccessError("Static HTML carries no canvas pixel buffer")


def document_base(soup: BeautifulSoup, href: str) -> str:
    """Resolve the document base URL, honouring the first ``<base href>``."""
    base = soup.find('base', href=True)
    if base is not None:
        try:
            return urljoin(href, base['href'])
        except ValueError:
            logger.debug(f"Ignoring malformed <base href={base['href']!r}>")
    return href


class StaticSurfaceProvider:
    """
    Fetches a page with httpx and exposes it, and its iframes, as surfaces.

    ``srcdoc`` frames inherit the parent's location; ``src`` frames are fetched
    (up to ``max_frames``) and become surfaces of their own.
    """

    def __init__(self, config: Optional[HarvesterConfig] = None, client: Optional[httpx.AsyncClient] = None):
        self.config = config or get_config()
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self):
        """Async context manager entry."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(**self.config.get_http_timeout()),
                headers={'User-Agent': self.config.user_agent},
                follow_redirects=True,
            )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def close(self):
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _fetch(self, url: str) -> Tuple[str, str]:
        response = await self._client.get(url)
        response.raise_for_status()
        return response.text, str(response.url)

    async def open(self, url: str) -> List[Surface]:
        """Fetch ``url`` and return its surfaces, primary document first."""
        try:
            html, final_url = await self._fetch(url)
        except httpx.HTTPError as e:
            logger.error(f"Failed to fetch {url}: {e}")
            raise DiscoveryUnavailableError(context={'url': url, 'error': str(e)}) from e
        return await self.surfaces_from_html(html, final_url)

    async def surfaces_from_html(self, html: str, url: str) -> List[Surface]:
        """Build surfaces from already-fetched markup located at ``url``."""
        soup = BeautifulSoup(html, 'html.parser')
        location = SurfaceLocation(href=url, base_url=document_base(soup, url))
        surfaces = [Surface(name='main', location=location, root=SoupNode(soup))]
        surfaces.extend(await self._frame_surfaces(soup, location))
        logger.info(f"Prepared {len(surfaces)} surfaces for {url}")
        return surfaces

    async def _frame_surfaces(self, soup: BeautifulSoup, parent: SurfaceLocation) -> List[Surface]:
        surfaces = []
        fetched = 0
        for position, frame in enumerate(soup.find_all('iframe')):
            name = f"frame[{position}]"
            if frame.has_attr('srcdoc'):
                frame_soup = BeautifulSoup(frame['srcdoc'], 'html.parser')
                location = SurfaceLocation(href=parent.href, base_url=document_base(frame_soup, parent.base))
                surfaces.append(Surface(name=f"{name}:srcdoc", location=location, root=SoupNode(frame_soup)))
                continue

            src = frame.get('src')
            if not src or self._client is None:
                continue
            if fetched >= self.config.max_frames:
                logger.debug(f"Frame limit {self.config.max_frames} reached, skipping {src}")
                continue
            try:
                frame_url = urljoin(parent.base, src)
            except ValueError:
                continue
            if urlsplit(frame_url).scheme not in ('http', 'https'):
                continue

            fetched += 1
            try:
                html, final_url = await self._fetch(frame_url)
            except httpx.HTTPError as e:
                logger.warning(f"Skipping frame {frame_url}: {e}")
                continue
            frame_soup = BeautifulSoup(html, 'html.parser')
            location = SurfaceLocation(href=final_url, base_url=document_base(frame_soup, final_url))
            surfaces.append(Surface(name=name, location=location, root=SoupNode(frame_soup)))
        return surfaces
