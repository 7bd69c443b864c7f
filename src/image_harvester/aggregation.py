"""
Aggregation & Identity Merge

Merges the per-surface collections of one harvest into a single inventory,
assigning each canonical locator a discovery index in first-seen order.
"""

import logging
from typing import Iterable, List, Optional, Sequence

from .models import AssetRecord

logger = logging.getLogger(__name__)


def merge(collections_by_surface: Sequence[Optional[Iterable[AssetRecord]]]) -> List[AssetRecord]:
    """
    Merge surface collections in the order given.

    Surfaces are visited in caller order, records within a surface in their
    own order. The first record seen for a locator is kept and numbered from
    0; later duplicates are dropped. ``None`` entries (surfaces whose
    discovery was unavailable) are skipped.

    Args:
        collections_by_surface: One collection per surface, primary first

    Returns:
        New records with ``discovery_index`` assigned, in index order
    """
    seen = set()
    merged: List[AssetRecord] = []
    duplicates = 0

    for collection in collections_by_surface:
        if collection is None:
            continue
        for record in collection:
            if record.locator in seen:
                duplicates += 1
                continue
            seen.add(record.locator)
            merged.append(record.model_copy(update={'discovery_index': len(merged)}))

    logger.debug(f"Merged {len(merged)} assets from {len(collections_by_surface)} surfaces ({duplicates} duplicates dropped)")
    return merged
