"""
Asset Export

Writes discovered assets to disk: data: locators are decoded locally,
network locators are downloaded with httpx. Bulk export staggers retrievals
at a fixed interval.
"""

import asyncio
import base64
import binascii
import io
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple
from urllib.parse import unquote_to_bytes, urlsplit

import httpx
from PIL import Image, UnidentifiedImageError

from .config import HarvesterConfig, get_config
from .errors import ExportError
from .models import AssetRecord

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = 'png'

_DATA_EXTENSIONS = (
    ('data:image/jpeg', 'jpg'),
    ('data:image/webp', 'webp'),
    ('data:image/gif', 'gif'),
    ('data:image/svg', 'svg'),
)
_PATH_EXTENSION = re.compile(r"\.([a-zA-Z0-9]+)$")
_LOOSE_EXTENSION = re.compile(r"\.([a-zA-Z0-9]{3,4})(?:[?#]|$)")


def sniff_extension(locator: str) -> str:
    """Guess a file extension from a locator without fetching it."""
    for prefix, extension in _DATA_EXTENSIONS:
        if locator.startswith(prefix):
            return extension
    if '.svg' in locator:
        return 'svg'
    try:
        path = urlsplit(locator).path
        match = _PATH_EXTENSION.search(path)
        if match and len(match.group(1)) <= 5:
            return match.group(1)
    except ValueError:
        match = _LOOSE_EXTENSION.search(locator)
        if match:
            return match.group(1)
    return DEFAULT_EXTENSION


def export_filename(index: int, locator: str) -> str:
    """``image_{n}.{ext}`` with n counted from 1."""
    return f"image_{index + 1}.{sniff_extension(locator)}"


def decode_data_locator(locator: str) -> Tuple[bytes, str]:
    """Decode a data: locator into ``(payload, mime_type)``."""
    header, sep, body = locator.partition(',')
    if not header.startswith('data:') or not sep:
        raise ExportError("Malformed data locator", context={'locator': locator[:64]})
    meta = header[len('data:'):].split(';')
    mime_type = meta[0] or 'text/plain'
    try:
        if 'base64' in meta[1:]:
            return base64.b64decode(body, validate=True), mime_type
        return unquote_to_bytes(body), mime_type
    except (binascii.Error, ValueError) as e:
        raise ExportError(f"Undecodable data locator: {e}", context={'locator': locator[:64]}) from e


def measure(payload: bytes) -> Optional[Tuple[int, int]]:
    """Read pixel dimensions from image bytes, or None if Pillow cannot."""
    try:
        with Image.open(io.BytesIO(payload)) as image:
            return image.size
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError):
        return None


@dataclass
class ExportResult:
    record: AssetRecord
    path: Optional[Path]
    success: bool
    error: Optional[str] = None


class AssetExporter:
    """
    Saves records into an output directory.

    Usage:
        async with AssetExporter(config) as exporter:
            results = await exporter.export_all(records)
    """

    def __init__(
        self,
        config: Optional[HarvesterConfig] = None,
        output_dir: Optional[Path] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config or get_config()
        self.output_dir = Path(output_dir or self.config.output_dir)
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
        self.output_dir.mkdir(parents=True, exist_ok=True)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _retrieve(self, locator: str) -> bytes:
        if locator.startswith('data:'):
            payload, _ = decode_data_locator(locator)
            return payload
        try:
            response = await self._client.get(locator)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ExportError(f"Download failed: {e}", context={'locator': locator}) from e
        return response.content

    async def export(self, record: AssetRecord, index: int) -> ExportResult:
        """Retrieve one record and write it as ``image_{index+1}.{ext}``."""
        path = self.output_dir / export_filename(index, record.locator)
        try:
            payload = await self._retrieve(record.locator)
            path.write_bytes(payload)
        except ExportError as e:
            logger.warning(f"Could not export {record.locator[:80]}: {e.message}")
            return ExportResult(record=record, path=None, success=False, error=e.message)
        except OSError as e:
            logger.warning(f"Could not write {path}: {e}")
            return ExportResult(record=record, path=None, success=False, error=str(e))

        if not record.has_dimensions:
            size = measure(payload)
            if size:
                record.refine_dimensions(*size)

        logger.debug(f"Exported {path.name} ({len(payload)} bytes)")
        return ExportResult(record=record, path=path, success=True)

    async def _export_staggered(self, record: AssetRecord, index: int) -> ExportResult:
        await asyncio.sleep(index * self.config.stagger_interval)
        return await self.export(record, index)

    async def export_all(self, records: Sequence[AssetRecord]) -> List[ExportResult]:
        """Export every record, starting retrieval ``n`` at ``n * stagger_interval`` seconds."""
        results = await asyncio.gather(
            *(self._export_staggered(record, index) for index, record in enumerate(records))
        )
        saved = sum(1 for result in results if result.success)
        logger.info(f"Exported {saved}/{len(results)} assets to {self.output_dir}")
        return list(results)
