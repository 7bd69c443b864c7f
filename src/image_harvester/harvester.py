"""
Harvest Orchestration

Requests surfaces for a page from a tree adapter, runs one discovery
invocation per surface and merges the per-surface collections into the final
inventory. This is the only layer that raises errors meant for a human.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .aggregation import merge
from .adapters.rendered import RenderedSurfaceProvider
from .adapters.static import StaticSurfaceProvider
from .config import HarvesterConfig, get_config
from .discovery import discover_surface
from .errors import DiscoveryUnavailableError, NoImagesFoundError, SurfaceUnavailableError
from .logging_config import get_logger
from .models import AssetRecord
from .tree import Surface

logger = get_logger(__name__)

MODES = ('static', 'rendered')


@dataclass
class HarvestResult:
    """Final inventory of one harvest plus run statistics."""
    url: str
    records: List[AssetRecord]
    surfaces_scanned: int
    surfaces_failed: int
    elapsed: float
    errors: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.records)


class ImageHarvester:
    """
    Discovers the image inventory of a page across all of its surfaces.

    Usage:
        async with ImageHarvester(config) as harvester:
            result = await harvester.harvest("https://example.com")
    """

    def __init__(
        self,
        config: Optional[HarvesterConfig] = None,
        mode: Optional[str] = None,
        provider_factory: Optional[Callable[[], object]] = None,
    ):
        self.config = config or get_config()
        self.mode = mode or self.config.default_mode
        if self.mode not in MODES:
            raise ValueError(f"Unknown harvest mode {self.mode!r}, expected one of {MODES}")
        self._provider_factory = provider_factory or self._default_provider

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        return None

    def _default_provider(self):
        if self.mode == 'rendered':
            return RenderedSurfaceProvider(self.config)
        return StaticSurfaceProvider(self.config)

    def check_scannable(self, url: str) -> None:
        """Reject page schemes no surface can be opened for."""
        if not url or url.lower().startswith(self.config.restricted_page_schemes):
            raise SurfaceUnavailableError(context={'url': url})

    async def harvest(self, url: str) -> HarvestResult:
        """
        Harvest every image-like resource on ``url``.

        Args:
            url: Page URL

        Returns:
            HarvestResult with records ordered by discovery index

        Raises:
            SurfaceUnavailableError: page is restricted or exposes no surface
            DiscoveryUnavailableError: every surface walk failed
            NoImagesFoundError: discovery produced nothing
        """
        self.check_scannable(url)
        start_time = time.monotonic()

        async with self._provider_factory() as provider:
            surfaces = await provider.open(url)
            return await self._run(url, surfaces, start_time)

    async def harvest_html(self, html: str, url: str) -> HarvestResult:
        """Harvest already-fetched markup, treating ``url`` as its location."""
        start_time = time.monotonic()
        async with StaticSurfaceProvider(self.config) as provider:
            surfaces = await provider.surfaces_from_html(html, url)
            return await self._run(url, surfaces, start_time)

    async def _run(self, url: str, surfaces: List[Surface], start_time: float) -> HarvestResult:
        if not surfaces:
            raise SurfaceUnavailableError(context={'url': url})

        # Surfaces are independent; merge order is the surface order, not completion order
        collections = await asyncio.gather(*(self._discover(surface) for surface in surfaces))
        failed = [surface.name for surface, found in zip(surfaces, collections) if found is None]
        if len(failed) == len(surfaces):
            raise DiscoveryUnavailableError(context={'url': url, 'surfaces': failed})

        records = merge(collections)
        elapsed = time.monotonic() - start_time
        logger.info(
            "harvest complete",
            url=url,
            assets=len(records),
            surfaces=len(surfaces),
            surfaces_failed=len(failed),
            elapsed=round(elapsed, 3),
        )
        if not records:
            raise NoImagesFoundError(context={'url': url})

        return HarvestResult(
            url=url,
            records=records,
            surfaces_scanned=len(surfaces),
            surfaces_failed=len(failed),
            elapsed=elapsed,
            errors=[f"discovery unavailable on {name}" for name in failed],
        )

    async def _discover(self, surface: Surface) -> Optional[List[AssetRecord]]:
        try:
            return await discover_surface(surface, self.config)
        except Exception as e:
            logger.warning("discovery unavailable", surface=surface.name, href=surface.location.href, error=str(e))
            return None


async def harvest(url: str, config: Optional[HarvesterConfig] = None, mode: Optional[str] = None) -> HarvestResult:
    """Convenience function to harvest a single page."""
    async with ImageHarvester(config, mode=mode) as harvester:
        return await harvester.harvest(url)
