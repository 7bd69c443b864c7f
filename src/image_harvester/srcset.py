"""
Resolution-preference parsing for ``srcset``-style descriptors.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional

logger = logging.getLogger(__name__)

_LEADING_INT = re.compile(r"^\d+")


@dataclass(frozen=True)
class ResolutionCandidate:
    locator: str
    width: int = 0


def _parse_width(descriptor: str) -> int:
    # "300w" -> 300, "2x" -> 2, anything without leading digits -> 0
    match = _LEADING_INT.match(descriptor)
    return int(match.group(0)) if match else 0


def parse_descriptor(descriptor: str) -> List[ResolutionCandidate]:
    """Split a descriptor into candidates, dropping entries with no locator."""
    candidates = []
    for entry in descriptor.split(','):
        parts = entry.strip().split()
        if not parts:
            continue
        width = _parse_width(parts[1]) if len(parts) > 1 else 0
        candidates.append(ResolutionCandidate(locator=parts[0], width=width))
    return candidates


def select_best_candidate(descriptor: Optional[str]) -> Optional[str]:
    """
    Return the locator with the largest declared width.

    Ties go to the candidate listed first. Empty or malformed descriptors
    yield ``None``.

    Args:
        descriptor: Comma-separated ``locator [width]`` entries

    Returns:
        Highest-resolution locator, or None
    """
    if not descriptor:
        return None
    try:
        candidates = parse_descriptor(descriptor)
    except (AttributeError, TypeError, ValueError) as e:
        logger.debug(f"Error parsing srcset {descriptor!r}: {e}")
        return None

    if not candidates:
        return None
    # sorted() is stable, so equal widths keep their original order
    ranked = sorted(candidates, key=lambda c: c.width, reverse=True)
    return ranked[0].locator
