"""
Unified Configuration System for Image Harvester

Centralized configuration management with environment variable integration.
"""

import os
from dataclasses import dataclass, field
from typing import Optional, Dict, List, Tuple

from dotenv import load_dotenv

from .logging_config import LOG_FORMATS, LOG_LEVELS


@dataclass
class HarvesterConfig:
    """Unified configuration for all harvesting operations."""

    # ============================================================================
    # Discovery Settings
    # ============================================================================
    # Checked in this order before srcset and the resolved src
    lazy_attributes: List[str] = field(default_factory=lambda: [
        'data-src', 'data-original', 'data-lazy-src'
    ])
    srcset_attribute: str = 'srcset'
    private_schemes: Tuple[str, ...] = ('chrome-extension://', 'moz-extension://')
    vector_markers: Tuple[str, ...] = ('.svg',)
    vector_data_prefixes: Tuple[str, ...] = ('data:image/svg',)
    raster_mime_type: str = 'image/png'

    # ============================================================================
    # Orchestration Settings
    # ============================================================================
    restricted_page_schemes: Tuple[str, ...] = (
        'chrome://', 'edge://', 'about:', 'chrome-extension://', 'view-source:'
    )
    default_mode: str = 'static'

    # ============================================================================
    # HTTP Client Settings
    # ============================================================================
    timeout_seconds: float = 30.0
    connect_timeout: float = 5.0
    max_frames: int = 10
    user_agent: str = (
        'Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 '
        '(KHTML, like Gecko) Chrome/124.0 Safari/537.36'
    )

    # ============================================================================
    # Rendered Mode Settings
    # ============================================================================
    headless: bool = True
    viewport_width: int = 1280
    viewport_height: int = 720
    navigation_timeout: float = 30.0
    settle_time: float = 0.5

    # ============================================================================
    # Export Settings
    # ============================================================================
    stagger_interval: float = 0.1
    output_dir: str = 'downloads'

    # ============================================================================
    # Logging Settings
    # ============================================================================
    service_name: str = 'image-harvester'
    log_level: str = 'INFO'
    log_format: str = 'json'

    @classmethod
    def from_env(cls) -> 'HarvesterConfig':
        """Load configuration from environment variables."""
        defaults = cls()
        lazy = os.getenv('HARVESTER_LAZY_ATTRIBUTES')
        return cls(
            lazy_attributes=(
                [a.strip() for a in lazy.split(',') if a.strip()]
                if lazy else defaults.lazy_attributes
            ),
            srcset_attribute=os.getenv('HARVESTER_SRCSET_ATTRIBUTE', defaults.srcset_attribute),
            default_mode=os.getenv('HARVESTER_MODE', defaults.default_mode),
            timeout_seconds=float(os.getenv('HARVESTER_TIMEOUT', defaults.timeout_seconds)),
            connect_timeout=float(os.getenv('HARVESTER_CONNECT_TIMEOUT', defaults.connect_timeout)),
            max_frames=int(os.getenv('HARVESTER_MAX_FRAMES', defaults.max_frames)),
            user_agent=os.getenv('HARVESTER_USER_AGENT', defaults.user_agent),
            headless=os.getenv('HARVESTER_HEADLESS', 'true').lower() == 'true',
            viewport_width=int(os.getenv('HARVESTER_VIEWPORT_WIDTH', defaults.viewport_width)),
            viewport_height=int(os.getenv('HARVESTER_VIEWPORT_HEIGHT', defaults.viewport_height)),
            navigation_timeout=float(os.getenv('HARVESTER_NAVIGATION_TIMEOUT', defaults.navigation_timeout)),
            settle_time=float(os.getenv('HARVESTER_SETTLE_TIME', defaults.settle_time)),
            stagger_interval=float(os.getenv('HARVESTER_STAGGER_INTERVAL', defaults.stagger_interval)),
            output_dir=os.getenv('HARVESTER_OUTPUT_DIR', defaults.output_dir),
            service_name=os.getenv('SERVICE_NAME', defaults.service_name),
            log_level=os.getenv('LOG_LEVEL', defaults.log_level),
            log_format=os.getenv('HARVESTER_LOG_FORMAT', defaults.log_format),
        )

    def validate(self) -> None:
        """Validate configuration values."""
        if self.default_mode not in ('static', 'rendered'):
            raise ValueError(f"default_mode must be 'static' or 'rendered', got {self.default_mode!r}")
        if self.max_frames < 0:
            raise ValueError("max_frames must be non-negative")
        if self.stagger_interval < 0:
            raise ValueError("stagger_interval must be non-negative")
        if self.timeout_seconds <= 0 or self.connect_timeout <= 0:
            raise ValueError("timeouts must be positive")
        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {LOG_FORMATS}, got {self.log_format!r}")
        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {LOG_LEVELS}, got {self.log_level!r}")

    def get_http_timeout(self) -> Dict[str, float]:
        """Get HTTP client timeout configuration."""
        return {
            'timeout': self.timeout_seconds,
            'connect': self.connect_timeout,
        }


def load_env(env_file: Optional[str] = None) -> HarvesterConfig:
    """Load a .env file (if any) and build configuration from the environment."""
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()
    config = HarvesterConfig.from_env()
    config.validate()
    return config


_config: Optional[HarvesterConfig] = None


def get_config() -> HarvesterConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = HarvesterConfig.from_env()
        _config.validate()
    return _config


def set_config(config: HarvesterConfig) -> None:
    """Set the global configuration instance."""
    global _config
    config.validate()
    _config = config


def reset_config() -> None:
    """Reset the global configuration to be reloaded from the environment."""
    global _config
    _config = None
