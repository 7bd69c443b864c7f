"""
Presentation helpers: sort modes and display formatting for an inventory.
"""

from enum import Enum
from typing import Iterable, List

from .models import AssetRecord


class SortMode(str, Enum):
    ORIGINAL = "original"
    SIZE_DESC = "size-desc"
    SIZE_ASC = "size-asc"
    TYPE = "type"


def sort_records(records: Iterable[AssetRecord], mode: SortMode = SortMode.ORIGINAL) -> List[AssetRecord]:
    """
    Return a sorted copy of ``records``.

    Unknown dimensions count as area 0. All sorts are stable, so records that
    compare equal stay in discovery order.
    """
    ordered = sorted(records, key=lambda r: r.discovery_index if r.discovery_index is not None else 0)
    mode = SortMode(mode)
    if mode is SortMode.SIZE_DESC:
        return sorted(ordered, key=lambda r: r.area, reverse=True)
    if mode is SortMode.SIZE_ASC:
        return sorted(ordered, key=lambda r: r.area)
    if mode is SortMode.TYPE:
        return sorted(ordered, key=lambda r: r.category.value)
    return ordered


def format_dimensions(record: AssetRecord) -> str:
    if record.has_dimensions:
        return f"{record.width} × {record.height}"
    return "Size Unknown"


def format_count(count: int) -> str:
    return f"{count} image{'s' if count != 1 else ''}"


def truncate_locator(locator: str, max_length: int = 80) -> str:
    """Shorten long locators (notably data: payloads) for terminal output."""
    if len(locator) <= max_length:
        return locator
    keep = max_length - 3
    return f"{locator[:keep]}..."


def render_table(records: Iterable[AssetRecord], max_locator_length: int = 80) -> str:
    """Render records as a fixed-width text table."""
    lines = [f"{'#':>4}  {'type':<10}  {'size':<14}  locator"]
    for record in records:
        index = record.discovery_index + 1 if record.discovery_index is not None else '-'
        lines.append(
            f"{index:>4}  {record.category.value:<10}  {format_dimensions(record):<14}  "
            f"{truncate_locator(record.locator, max_locator_length)}"
        )
    return "\n".join(lines)
