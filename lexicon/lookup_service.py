#!/usr/bin/env python3
"""
Lookup Service
Serves a word from the store, scraping and persisting it on a miss.
"""

import logging
from typing import Any, Optional

from .canonicalizer import build_variants, canonical_key, normalize, validate_term
from .errors import InvalidInput
from .models import IngestPayload, LookupResult

logger = logging.getLogger(__name__)


class LookupService:
    """Ties the page sequencer, canonicalizer and store together"""

    def __init__(self, store, sequencer, max_pages: Optional[int] = None):
        self.store = store
        self.sequencer = sequencer
        self.max_pages = max_pages

    def lookup(self, word: Any) -> LookupResult:
        """
        Look a word up, scraping it when the store does not know it yet

        Raises:
            InvalidInput: term is empty or not letters/spaces/hyphens
            FetchError: scraping failed; nothing is persisted
        """
        term = validate_term(word)
        key = normalize(term)

        record = self.store.find_by_term(term)
        if record is not None:
            logger.debug(f"Store hit for '{term}' -> '{record.key}'")
            return LookupResult(
                word=record.key,
                found=True,
                source="store",
                entries=record.entries,
                variants=record.variants,
            )

        entries = self.sequencer.fetch_entries(key, self.max_pages)
        if not entries:
            logger.info(f"No entries scraped for '{term}'")
            return LookupResult(word=key, found=False)

        variants = build_variants(entry.headword for entry in entries)
        if key not in variants:
            variants.append(key)

        record_key = canonical_key(entries, key)
        merged = self.store.merge_entries(record_key, IngestPayload(entries=entries, variants=variants))

        # Stored copies carry the ids later backfills will target
        scraped = {entry.headword.strip() for entry in entries}
        return LookupResult(
            word=merged.key,
            found=True,
            source="scraped",
            entries=[entry for entry in merged.entries if entry.headword.strip() in scraped],
            variants=merged.variants,
        )

    def ingest(self, payload: Any, term: Optional[str] = None) -> LookupResult:
        """Merge externally supplied entries (import path, legacy list shape accepted)"""
        payload = IngestPayload.from_legacy(payload)
        entries = [entry for entry in payload.entries if entry.headword.strip()]
        if not entries:
            raise InvalidInput("Ingest payload has no entries with a headword")

        # ids are assigned once here and persisted with the record
        assigned = sum(entry.ensure_ids() for entry in entries)
        if assigned:
            logger.debug(f"Assigned {assigned} missing ids to ingested entries")

        fallback = normalize(validate_term(term)) if term else ""
        record_key = canonical_key(entries, fallback)
        variants = list(payload.variants) or build_variants(entry.headword for entry in entries)
        merged = self.store.merge_entries(record_key, IngestPayload(entries=entries, variants=variants))
        return LookupResult(
            word=merged.key,
            found=True,
            source="ingested",
            entries=merged.entries,
            variants=merged.variants,
        )
