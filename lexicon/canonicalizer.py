#!/usr/bin/env python3
"""
Canonicalization of dictionary spellings and record merging.

Every spelling that reaches the store is reduced to a canonical key with
:func:`normalize`. Scraped entries for the same key are merged into a single
:class:`~lexicon.models.LexicalRecord` by :func:`merge_record`, which never
duplicates a headword that is already stored and never drops stored entries.
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import Iterable, List, Optional, Sequence

from .errors import InvalidInput
from .models import Entry, LexicalRecord, utc_now

logger = logging.getLogger(__name__)

SYMBOL_ORDER = ("a1", "a2", "b1", "b2", "c1")

_NON_WORD_RE = re.compile(r"[^A-Za-z\s-]+")
_HYPHEN_RUN_RE = re.compile(r"-{2,}")
# hyphens and whitespace interleaved at either end, e.g. "-- -word"
_EDGE_RE = re.compile(r"^[\s-]+|[\s-]+$")
_WS_RE = re.compile(r"\s+")
_VALID_TERM_RE = re.compile(r"^[A-Za-z\s-]+$")


# ---------------------------------------------------------------------------
# Keys and spellings


def normalize(raw) -> str:
    """Reduce a spelling to its canonical key.

    Anything other than letters, whitespace and hyphens is dropped, hyphen
    runs collapse to one hyphen, edge hyphens go, whitespace collapses to a
    single space and the result is lowercased and trimmed.

    >>> normalize("-Ability-")
    'ability'
    >>> normalize("take   care")
    'take care'
    """
    if not isinstance(raw, str):
        return ""
    value = _NON_WORD_RE.sub("", raw)
    value = _HYPHEN_RUN_RE.sub("-", value)
    value = _EDGE_RE.sub("", value)
    value = _WS_RE.sub(" ", value)
    return value.lower().strip()


def validate_term(raw) -> str:
    """Return the trimmed term or raise InvalidInput before any I/O happens"""
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidInput("Word is required")
    term = raw.strip()
    if not _VALID_TERM_RE.match(term) or not any(ch.isalpha() for ch in term):
        raise InvalidInput(f"Invalid word format: {raw!r}")
    return term


def counterpart(spelling: str) -> Optional[str]:
    """Hyphenated/spaced alternative of a spelling ("well-being" <-> "well being")"""
    if not spelling or not isinstance(spelling, str):
        return None
    if "-" in spelling:
        return spelling.replace("-", " ")
    if _WS_RE.search(spelling):
        return _WS_RE.sub("-", spelling)
    return None


def build_variants(spellings: Iterable[str]) -> List[str]:
    """Normalized spellings in first-seen order, followed by their counterparts"""
    unique: List[str] = []
    for spelling in spellings:
        cleaned = normalize(spelling)
        if cleaned and cleaned not in unique:
            unique.append(cleaned)

    variants = list(unique)
    for spelling in unique:
        alt = counterpart(spelling)
        if alt and alt not in variants:
            variants.append(alt)
    return variants


def canonical_key(entries: Sequence[Entry], requested_term: str = "") -> str:
    """Key of the first scraped headword, or of the requested term when nothing was scraped"""
    for entry in entries:
        key = normalize(entry.headword)
        if key:
            return key
    return normalize(requested_term)


# ---------------------------------------------------------------------------
# Derived summaries


def derive_symbol(entries: Sequence[Entry]) -> str:
    """Lowest CEFR level present across entries, else the first symbol seen"""
    collected = [entry.symbol.strip() for entry in entries if entry.symbol and entry.symbol.strip()]
    if not collected:
        return ""
    for symbol in SYMBOL_ORDER:
        if symbol in collected:
            return symbol
    return collected[0]


def derive_parts_of_speech(entries: Sequence[Entry]) -> List[str]:
    return sorted({entry.part_of_speech.strip() for entry in entries
                   if entry.part_of_speech and entry.part_of_speech.strip()})


# ---------------------------------------------------------------------------
# Merging


def merge_record(existing: Optional[LexicalRecord],
                 new_entries: Sequence[Entry],
                 source_spellings: Iterable[str],
                 key: Optional[str] = None) -> LexicalRecord:
    """Merge freshly scraped entries into the stored record for their key.

    Entries whose trimmed headword is already stored (exact, case-sensitive
    comparison) are skipped, so merging the same page twice is a no-op.
    Variants are unioned. The stored record is not mutated.
    """
    spellings = [s for s in source_spellings if isinstance(s, str) and s.strip()]
    now = utc_now()

    if existing is None:
        record_key = key or canonical_key(new_entries, spellings[0] if spellings else "")
        entries = _dedupe_entries([], new_entries)
        record = LexicalRecord(
            key=record_key,
            entries=entries,
            variants=_union([], spellings),
            created_at=now,
            updated_at=now,
        )
    else:
        entries = _dedupe_entries(existing.entries, new_entries)
        record = replace(
            existing,
            entries=entries,
            variants=_union(existing.variants, spellings),
            created_at=existing.created_at or now,
            updated_at=now,
        )
        added = len(entries) - len(existing.entries)
        if added:
            logger.info(f"Merged {added} new entries into '{record.key}'")

    record.symbol = derive_symbol(record.entries)
    record.parts_of_speech = derive_parts_of_speech(record.entries)
    return record


def _dedupe_entries(stored: Sequence[Entry], incoming: Sequence[Entry]) -> List[Entry]:
    merged = list(stored)
    seen = {entry.headword.strip() for entry in stored}
    for entry in incoming:
        headword = entry.headword.strip()
        if headword in seen:
            logger.debug(f"Skipping already stored headword '{headword}'")
            continue
        seen.add(headword)
        merged.append(entry)
    return merged


def _union(current: Sequence[str], extra: Iterable[str]) -> List[str]:
    result = list(dict.fromkeys(current))
    for value in extra:
        if value not in result:
            result.append(value)
    return result
