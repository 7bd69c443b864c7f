"""
Locator Canonicalization

Turns raw candidate strings pulled off tree nodes into canonical locators:
absolute, scheme-normalized, and with ephemeral ``blob:`` handles materialized
into self-contained ``data:`` locators.
"""

import base64
import logging
import re
from typing import Optional
from urllib.parse import urljoin, urlsplit

from .config import HarvesterConfig
from .errors import HandleResolutionError
from .outcome import FailureKind, Outcome
from .tree import OPAQUE_ORIGIN, EphemeralHandleResolver, SurfaceLocation

logger = logging.getLogger(__name__)

BLOB_PREFIX = 'blob:'
DATA_PREFIX = 'data:'
DEFAULT_BLOB_MIME = 'application/octet-stream'

# First url(...) in a background-image value, quotes optional
_CSS_URL = re.compile(r"""url\(['"]?(.*?)['"]?\)""")


def extract_css_url(value: Optional[str]) -> Optional[str]:
    """Pull the locator out of a ``url(...)`` value, unescaping quotes."""
    if not value or value == 'none':
        return None
    match = _CSS_URL.search(value)
    if not match or not match.group(1):
        return None
    return match.group(1).replace('\\"', '"').replace("\\'", "'")


def is_ephemeral(locator: str) -> bool:
    return locator.startswith(BLOB_PREFIX)


def is_vector(locator: str, config: HarvesterConfig) -> bool:
    lowered = locator.lower()
    if lowered.startswith(config.vector_data_prefixes):
        return True
    return any(marker in lowered for marker in config.vector_markers)


def _looks_absolute(locator: str) -> bool:
    return locator.startswith(('http://', 'https://', DATA_PREFIX, BLOB_PREFIX))


def _screen(candidate, config: HarvesterConfig) -> Outcome[str]:
    if not candidate or not isinstance(candidate, str):
        return Outcome.fail(FailureKind.EMPTY)
    if candidate.startswith(config.private_schemes):
        return Outcome.fail(FailureKind.PRIVATE, candidate)
    if is_vector(candidate, config):
        return Outcome.fail(FailureKind.VECTOR, candidate)
    return Outcome.success(candidate)


def canonicalize(candidate, location: SurfaceLocation, config: HarvesterConfig) -> Outcome[str]:
    """
    Resolve a raw candidate against its surface.

    Ephemeral handles pass through unchanged; ``materialize`` turns them into
    data: locators afterwards.

    Args:
        candidate: Raw locator from a node (may be None or a non-string)
        location: Location of the surface the node belongs to
        config: Harvester configuration

    Returns:
        Outcome carrying the absolute locator, or the reason it was rejected
    """
    screened = _screen(candidate, config)
    if not screened.ok:
        return screened
    locator = screened.value

    try:
        if locator.startswith('//'):
            if not location.scheme:
                return Outcome.fail(FailureKind.UNRESOLVABLE, locator)
            locator = location.scheme + locator
        elif locator.startswith('/'):
            if location.origin == OPAQUE_ORIGIN:
                return Outcome.fail(FailureKind.UNRESOLVABLE, locator)
            locator = location.origin + locator
        elif not _looks_absolute(locator):
            resolved = urljoin(location.base, locator)
            parts = urlsplit(resolved)
            if not parts.scheme or not (parts.netloc or parts.scheme in ('data', 'blob', 'file')):
                return Outcome.fail(FailureKind.UNRESOLVABLE, locator)
            locator = resolved
    except ValueError as e:
        logger.debug(f"Error resolving locator {locator!r} against {location.base}: {e}")
        return Outcome.fail(FailureKind.UNRESOLVABLE, locator)

    return Outcome.success(locator)


def encode_data_locator(payload: bytes, mime_type: Optional[str]) -> str:
    encoded = base64.b64encode(payload).decode('ascii')
    return f"{DATA_PREFIX}{mime_type or DEFAULT_BLOB_MIME};base64,{encoded}"


async def materialize(
    locator: str,
    resolver: Optional[EphemeralHandleResolver],
    config: HarvesterConfig,
) -> Outcome[str]:
    """
    Replace an ephemeral handle with a portable data: locator.

    Non-ephemeral locators are returned as they are. A handle that cannot be
    fetched (revoked, access-restricted, or no resolver for the surface) is
    rejected.
    """
    if not is_ephemeral(locator):
        return Outcome.success(locator)
    if resolver is None:
        return Outcome.fail(FailureKind.FETCH_FAILED, "no handle resolver for surface")

    try:
        payload, mime_type = await resolver.fetch(locator)
        materialized = encode_data_locator(payload, mime_type)
    except HandleResolutionError as e:
        logger.debug(f"Ephemeral handle {locator} unavailable: {e.message}")
        return Outcome.fail(FailureKind.FETCH_FAILED, e.message)
    except Exception as e:
        logger.debug(f"Could not fetch ephemeral handle {locator}: {e}")
        return Outcome.fail(FailureKind.FETCH_FAILED, str(e))

    # A materialized handle may turn out to be a vector image
    if is_vector(materialized, config):
        return Outcome.fail(FailureKind.VECTOR, locator)
    return Outcome.success(materialized)
