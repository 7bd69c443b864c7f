"""
Image Discovery Engine

Walks a document tree (descending into isolated attached sub-trees such as
shadow roots), pulls candidate locators off every element, canonicalizes them
and collects one AssetRecord per canonical locator, first seen wins.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from .config import HarvesterConfig, get_config
from .errors import RasterAccessError
from .locators import canonicalize, extract_css_url, is_ephemeral, materialize
from .models import AssetCategory, AssetRecord
from .outcome import FailureKind, Outcome
from .srcset import select_best_candidate
from .tree import EphemeralHandleResolver, Surface, SurfaceLocation, TreeNode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CandidateLocator:
    """A raw locator pulled from a node, with the node's box and intended category."""
    raw: object
    width: int
    height: int
    category: AssetCategory


class WorkingSet:
    """Invocation-scoped records keyed by canonical locator, in insertion order."""

    def __init__(self):
        self._records: Dict[str, AssetRecord] = {}

    def __contains__(self, locator: str) -> bool:
        return locator in self._records

    def __len__(self) -> int:
        return len(self._records)

    def add(self, record: AssetRecord) -> bool:
        if record.locator in self._records:
            return False
        self._records[record.locator] = record
        return True

    def absorb(self, records: Iterable[AssetRecord]) -> int:
        """Merge a child collection, keeping records already present."""
        return sum(1 for record in records if self.add(record))

    def records(self) -> List[AssetRecord]:
        return list(self._records.values())


def _box(size: Optional[Tuple[int, int]]) -> Tuple[int, int]:
    if not size:
        return 0, 0
    width, height = size
    return max(0, int(width or 0)), max(0, int(height or 0))


class DiscoveryEngine:
    """
    Discovers image-like resources on one surface.

    Nodes are processed strictly in pre-order; the walk waits on each node's
    extraction (including ephemeral-handle materialization) before moving on,
    so the first-seen-wins rule is deterministic.
    """

    def __init__(
        self,
        location: SurfaceLocation,
        resolver: Optional[EphemeralHandleResolver] = None,
        config: Optional[HarvesterConfig] = None,
    ):
        self.location = location
        self.resolver = resolver
        self.config = config or get_config()
        self.failures: Counter = Counter()

    async def discover(self, root: TreeNode) -> List[AssetRecord]:
        """
        Discover every image-like resource reachable from ``root``.

        Args:
            root: Tree root (a document, a shadow root or an element)

        Returns:
            Records in first-seen order with ``discovery_index`` unset
        """
        self.failures = Counter()
        records = await self._walk(root)
        dropped = sum(self.failures.values())
        logger.info(f"Discovered {len(records)} assets on {self.location.href} ({dropped} candidates dropped)")
        if dropped:
            logger.debug(f"Dropped candidates by reason: {dict(self.failures)}")
        return records

    async def _walk(self, root: TreeNode) -> List[AssetRecord]:
        working = WorkingSet()

        for node in self._collect_nodes(root):
            subtree = self._attached_subtree(node)
            if subtree is not None:
                outcome = await self._walk_subtree(subtree)
                if outcome.ok:
                    working.absorb(outcome.value)
                else:
                    self.failures[outcome.failure] += 1

            for extracted in self._extract_candidates(node):
                if not extracted.ok:
                    self.failures[extracted.failure] += 1
                    continue
                await self._accept(extracted.value, working)

        return working.records()

    def _collect_nodes(self, root: TreeNode) -> List[TreeNode]:
        """Pre-order list of every element node under ``root``, root included."""
        nodes = []
        stack = [root]
        while stack:
            node = stack.pop()
            nodes.append(node)
            children = list(node.element_children())
            stack.extend(reversed(children))
        return nodes

    def _attached_subtree(self, node: TreeNode) -> Optional[TreeNode]:
        try:
            return node.attached_subtree()
        except Exception as e:
            logger.debug(f"Error reading attached sub-tree: {e}")
            self.failures[FailureKind.SUBTREE_FAILED] += 1
            return None

    async def _walk_subtree(self, subtree: TreeNode) -> Outcome[List[AssetRecord]]:
        # A failing sub-tree contributes nothing; the parent walk continues
        try:
            return Outcome.success(await self._walk(subtree))
        except Exception as e:
            logger.debug(f"Sub-tree walk failed on {self.location.href}: {e}")
            return Outcome.fail(FailureKind.SUBTREE_FAILED, str(e))

    # ------------------------------------------------------------------
    # Per-node extraction
    # ------------------------------------------------------------------

    def _extract_candidates(self, node: TreeNode) -> List[Outcome[CandidateLocator]]:
        try:
            tag_name = (node.tag_name or '').lower()
        except Exception as e:
            logger.debug(f"Error reading node tag: {e}")
            return [Outcome.fail(FailureKind.MALFORMED, str(e))]

        if not tag_name:
            return []

        extracted = [self._extract_background(node)]
        if tag_name == 'img':
            extracted.append(self._extract_image(node))
        if tag_name == 'canvas':
            extracted.append(self._extract_raster(node))
        return [outcome for outcome in extracted if outcome is not None]

    def _extract_background(self, node: TreeNode) -> Optional[Outcome[CandidateLocator]]:
        try:
            locator = extract_css_url(node.computed_background_image())
            if locator is None:
                return None
            width, height = _box(node.rendered_size())
        except Exception as e:
            logger.debug(f"Error computing background style: {e}")
            return Outcome.fail(FailureKind.MALFORMED, str(e))
        return Outcome.success(CandidateLocator(locator, width, height, AssetCategory.BACKGROUND))

    def _extract_image(self, node: TreeNode) -> Outcome[CandidateLocator]:
        try:
            locator = self._image_source(node)
            natural_w, natural_h = _box(node.natural_size())
            rendered_w, rendered_h = _box(node.rendered_size())
        except Exception as e:
            logger.debug(f"Error reading image element: {e}")
            return Outcome.fail(FailureKind.MALFORMED, str(e))
        return Outcome.success(CandidateLocator(
            locator,
            natural_w or rendered_w,
            natural_h or rendered_h,
            AssetCategory.IMAGE,
        ))

    def _image_source(self, node: TreeNode) -> Optional[str]:
        """
        First non-empty source in a fixed priority chain: lazy-load
        attributes in configured order, the best srcset candidate, then the
        element's resolved src.
        """
        for attribute in self.config.lazy_attributes:
            value = node.get_attribute(attribute)
            if value:
                return value
        best = select_best_candidate(node.get_attribute(self.config.srcset_attribute))
        if best:
            return best
        return node.resolved_source()

    def _extract_raster(self, node: TreeNode) -> Outcome[CandidateLocator]:
        try:
            locator = node.encode_raster(self.config.raster_mime_type)
            width, height = _box(node.raster_size())
        except RasterAccessError as e:
            logger.debug(f"Skipping restricted canvas: {e.message}")
            return Outcome.fail(FailureKind.ACCESS_RESTRICTED, e.message)
        except Exception as e:
            logger.debug(f"Error encoding canvas: {e}")
            return Outcome.fail(FailureKind.ACCESS_RESTRICTED, str(e))
        return Outcome.success(CandidateLocator(locator, width, height, AssetCategory.RASTER))

    # ------------------------------------------------------------------
    # Acceptance
    # ------------------------------------------------------------------

    async def _accept(self, candidate: CandidateLocator, working: WorkingSet) -> Optional[AssetRecord]:
        resolved = canonicalize(candidate.raw, self.location, self.config)
        if not resolved.ok:
            self.failures[resolved.failure] += 1
            return None

        locator = resolved.value
        if not is_ephemeral(locator) and locator in working:
            return None

        materialized = await materialize(locator, self.resolver, self.config)
        if not materialized.ok:
            self.failures[materialized.failure] += 1
            return None

        record = AssetRecord(
            locator=materialized.value,
            width=candidate.width,
            height=candidate.height,
            category=candidate.category,
        )
        return record if working.add(record) else None


async def discover_surface(surface: Surface, config: Optional[HarvesterConfig] = None) -> List[AssetRecord]:
    """Run one discovery invocation over a surface."""
    engine = DiscoveryEngine(surface.location, surface.resolver, config)
    return await engine.discover(surface.root)
