"""
Probe registry and the default probe catalog.
"""

from .catalog import build_registry, expand_entry, load_catalog
from .registry import SECTION_ORDER, SECTION_TITLES, SectionRegistry, section_title

__all__ = [
    "SectionRegistry",
    "SECTION_ORDER",
    "SECTION_TITLES",
    "section_title",
    "build_registry",
    "expand_entry",
    "load_catalog",
]
