"""
Dictionary harvesting system.

This package contains the components that turn the source dictionary site into
structured entries:
- Oxford page extractor (markup -> Entry)
- Page sequencer (numbered pages, rate-limited fetching)
"""

from .oxford_extractor import extract_entry, parse_sense
from .page_sequencer import OxfordPageSequencer, build_slug

__all__ = [
    'extract_entry',
    'parse_sense',
    'OxfordPageSequencer',
    'build_slug',
]
