"""
Web applications for the lexicon service.

This package contains the HTTP surface:
- Lexicon API (lookup, prefix/idiom search, translation backfill, ingest)
"""

# Web applications are typically run as modules, not imported

__all__ = []
