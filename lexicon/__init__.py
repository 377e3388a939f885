"""
Core lexicon system components.

This package contains the building blocks of the dictionary service:
- Configuration and database management
- Lexical data model and canonicalization
- Document store, query engine and lookup orchestration
"""

from .config import LexiconConfig, configure_logging
from .errors import LexiconError, InvalidInput, FetchError, MalformedIdentifier
from .models import (
    Entry, Example, Idiom, IngestPayload, LexicalRecord, LookupResult,
    Phonetics, PhrasalVerbRef, PhrasalVerbSense, Sense,
)
from .canonicalizer import (
    normalize, validate_term, build_variants, derive_symbol,
    derive_parts_of_speech, merge_record,
)
from .query_engine import QueryEngine
from .lookup_service import LookupService

__all__ = [
    'LexiconConfig',
    'configure_logging',
    'LexiconError',
    'InvalidInput',
    'FetchError',
    'MalformedIdentifier',
    'Entry',
    'Example',
    'Idiom',
    'IngestPayload',
    'LexicalRecord',
    'LookupResult',
    'Phonetics',
    'PhrasalVerbRef',
    'PhrasalVerbSense',
    'Sense',
    'normalize',
    'validate_term',
    'build_variants',
    'derive_symbol',
    'derive_parts_of_speech',
    'merge_record',
    'QueryEngine',
    'LookupService',
]
