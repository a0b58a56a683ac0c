"""
Configuration and constants for the crime log pipeline.

This module provides:
- Global logging setup
- Line reconstruction parameters
- Field parser options
- Export settings
"""

import os
from dataclasses import dataclass, field
from typing import Optional, Tuple
import logging

# ============================================================================
# Logging Configuration
# ============================================================================

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("crimelog")


# ============================================================================
# Processing Configuration
# ============================================================================

@dataclass
class LineConfig:
    """Line reconstruction configuration."""
    tolerance: float = 0.3  # Max y-distance for fragments on the same line
    header_lines: int = 4   # Lines dropped from the top of every page


@dataclass
class ParserConfig:
    """Field parser configuration."""
    # Keep the active field and in-progress entry across page breaks
    carry_over_pages: bool = False
    # IANA zone name for report timestamps; None = local zone
    timezone: Optional[str] = None


@dataclass
class ExportConfig:
    """Export configuration."""
    indent: Optional[int] = None  # None = compact output
    ensure_ascii: bool = False


@dataclass
class PipelineConfig:
    """Main pipeline configuration."""
    lines: LineConfig = field(default_factory=LineConfig)
    parser: ParserConfig = field(default_factory=ParserConfig)
    export: ExportConfig = field(default_factory=ExportConfig)

    # Global settings
    debug_mode: bool = False
    max_pages: Optional[int] = None  # None = process all pages


# ============================================================================
# Default Configuration Instance
# ============================================================================

def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").lower() in ("1", "true", "yes")


def get_config() -> PipelineConfig:
    """Get the default pipeline configuration with environment overrides."""
    config = PipelineConfig()

    tolerance = os.environ.get("CRIMELOG_TOLERANCE")
    if tolerance:
        config.lines.tolerance = float(tolerance)

    header_lines = os.environ.get("CRIMELOG_HEADER_LINES")
    if header_lines:
        config.lines.header_lines = int(header_lines)

    config.parser.timezone = os.environ.get("CRIMELOG_TIMEZONE") or None

    max_pages = os.environ.get("CRIMELOG_MAX_PAGES")
    if max_pages:
        config.max_pages = int(max_pages)

    if _env_flag("CRIMELOG_CARRY_OVER"):
        config.parser.carry_over_pages = True

    if _env_flag("CRIMELOG_DEBUG"):
        config.debug_mode = True

    return config


# ============================================================================
# JSON Schema
# ============================================================================

JSON_SCHEMA_VERSION = "1.0"

# Output key order of an incident entry
FIELD_KEYS: Tuple[str, ...] = (
    "incident",
    "reportDate",
    "location",
    "onCampus",
    "timeStart",
    "timeEnd",
    "disposition",
    "dateModified",
)
