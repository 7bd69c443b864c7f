"""
Image Harvester

Discovers every image-like resource on a page (including shadow roots and
frames) and produces a deduplicated, ordered inventory.

Main Components:
- DiscoveryEngine: per-surface tree walk and locator canonicalization
- select_best_candidate: srcset resolution preference
- merge: cross-surface aggregation and discovery indexing
- ImageHarvester: orchestration over static or rendered pages
- AssetExporter: saving records to disk
"""

from .aggregation import merge
from .config import HarvesterConfig, get_config, load_env, reset_config, set_config
from .discovery import DiscoveryEngine, discover_surface
from .errors import (
    DiscoveryUnavailableError,
    HarvesterError,
    NoImagesFoundError,
    SurfaceUnavailableError,
)
from .export import AssetExporter, export_filename, sniff_extension
from .harvester import HarvestResult, ImageHarvester, harvest
from .locators import canonicalize, materialize
from .models import AssetCategory, AssetRecord
from .presentation import SortMode, sort_records
from .srcset import select_best_candidate
from .tree import EphemeralHandleResolver, Surface, SurfaceLocation, TreeNode

__version__ = "1.0.0"

__all__ = [
    # Discovery
    "DiscoveryEngine",
    "discover_surface",
    "canonicalize",
    "materialize",
    "select_best_candidate",
    "merge",

    # Models and interfaces
    "AssetCategory",
    "AssetRecord",
    "TreeNode",
    "EphemeralHandleResolver",
    "Surface",
    "SurfaceLocation",

    # Orchestration
    "ImageHarvester",
    "HarvestResult",
    "harvest",
    "AssetExporter",
    "export_filename",
    "sniff_extension",
    "SortMode",
    "sort_records",

    # Configuration
    "HarvesterConfig",
    "get_config",
    "set_config",
    "reset_config",
    "load_env",

    # Errors
    "HarvesterError",
    "SurfaceUnavailableError",
    "NoImagesFoundError",
    "DiscoveryUnavailableError",

    "__version__",
]
