#!/usr/bin/env python3
"""Search and translation backfill over stored lexical records.

Candidate records come from the store (which narrows them in SQL); the exact
matching, de-duplication, ranking and pagination semantics live here so they
behave the same regardless of how the store orders or filters rows.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence

from .errors import MalformedIdentifier
from .models import Example, LexicalRecord, Sense, parse_identifier

logger = logging.getLogger(__name__)

_NON_LETTER_RE = re.compile(r"[^A-Za-z]+")
_WS_RE = re.compile(r"\s+")


# ---------------------------------------------------------------------------
# Result containers


@dataclass(slots=True)
class SearchPage:
    total: int
    words: List[Any] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {'total': self.total, 'words': list(self.words)}


@dataclass(slots=True)
class IdiomMatch:
    idiom_text: str
    part_of_speech: str
    record_key: str
    is_idiom: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            'idiom_text': self.idiom_text,
            'part_of_speech': self.part_of_speech,
            'is_idiom': self.is_idiom,
            'record_key': self.record_key,
        }


@dataclass(slots=True)
class BackfillSummary:
    updated: int = 0
    skipped: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {'updated': self.updated, 'skipped': self.skipped}


# ---------------------------------------------------------------------------
# Pure helpers, usable without a store


def paginate(items: Sequence[Any], page: int, per_page: int) -> List[Any]:
    page = max(1, int(page or 1))
    per_page = max(1, int(per_page or 1))
    start = (page - 1) * per_page
    return list(items[start:start + per_page])


def prefix_headwords(records: Iterable[LexicalRecord], prefix: str) -> List[str]:
    """Headwords of entries whose key, headword or a variant starts with ``prefix``.

    Deduplicated by exact string and sorted descending.
    """
    needle = prefix.strip().lower()
    if not needle:
        return []

    matches = set()
    for record in records:
        record_hit = record.key.lower().startswith(needle) or any(
            variant.lower().startswith(needle) for variant in record.variants
        )
        for entry in record.entries:
            if record_hit or entry.headword.lower().startswith(needle):
                matches.add(entry.headword)
    return sorted(matches, reverse=True)


def sanitize_phrase(phrase: str) -> str:
    """Letters and single spaces only"""
    if not isinstance(phrase, str):
        return ""
    return _WS_RE.sub(" ", _NON_LETTER_RE.sub(" ", phrase)).strip()


def phrase_pattern(phrase: str) -> str:
    """Regex where every gap between words matches anything ("take into" ~ "take X into")"""
    return _WS_RE.sub(".*", sanitize_phrase(phrase))


def collect_idioms(records: Iterable[LexicalRecord], pattern: str) -> List[IdiomMatch]:
    """Idioms matching ``pattern`` in visit order, first occurrence of each text wins"""
    regex = re.compile(pattern, re.IGNORECASE)
    seen = set()
    matches: List[IdiomMatch] = []
    for record in records:
        for entry in record.entries:
            for idiom in entry.idioms:
                text = idiom.idiom_text
                if not text or text in seen or not regex.search(text):
                    continue
                seen.add(text)
                matches.append(IdiomMatch(
                    idiom_text=text,
                    part_of_speech=entry.part_of_speech,
                    record_key=record.key,
                ))
    return matches


def rank_idioms(matches: Sequence[IdiomMatch], phrase: str) -> List[IdiomMatch]:
    """Exact match first, then contiguous-phrase matches, then the rest.

    The sort is stable so ties keep the order they were collected in.
    """
    needle = sanitize_phrase(phrase).lower()

    def tier(match: IdiomMatch) -> int:
        text = _WS_RE.sub(" ", match.idiom_text).strip().lower()
        if text == needle:
            return 0
        if needle in text:
            return 1
        return 2

    return sorted(matches, key=tier)


def iter_senses(record: LexicalRecord) -> Iterator[Sense]:
    for entry in record.entries:
        yield from entry.all_senses()


def iter_examples(record: LexicalRecord) -> Iterator[Example]:
    for sense in iter_senses(record):
        yield from sense.examples


def fill_example_translation(record: LexicalRecord, example_id: str, text: str) -> int:
    """Write ``text`` into every example with this id whose translation is empty"""
    filled = 0
    for example in iter_examples(record):
        if example.id == example_id and not (example.translated_text or "").strip():
            example.translated_text = text
            filled += 1
    return filled


def fill_sense_translation(record: LexicalRecord, sense_id: str,
                           definition_translated: Optional[str],
                           definition_translated_short: Optional[str]) -> int:
    """Fill the long/short translated definitions of matching senses where empty"""
    filled = 0
    for sense in iter_senses(record):
        if sense.id != sense_id:
            continue
        if definition_translated and not (sense.definition_translated or "").strip():
            sense.definition_translated = definition_translated
            filled += 1
        if definition_translated_short and not (sense.definition_translated_short or "").strip():
            sense.definition_translated_short = definition_translated_short
            filled += 1
    return filled


def _clean_text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _parse_ids(ids: Iterable[Any]) -> List[str]:
    parsed = []
    for raw in ids:
        try:
            item_id = parse_identifier(raw)
        except MalformedIdentifier:
            logger.debug(f"Ignoring malformed id {raw!r}")
            continue
        if item_id not in parsed:
            parsed.append(item_id)
    return parsed


# ---------------------------------------------------------------------------
# Engine


class QueryEngine:
    """Read/write operations over the lexical store"""

    def __init__(self, store, max_per_page: int = 500):
        self.store = store
        self.max_per_page = max_per_page

    def _per_page(self, per_page: int) -> int:
        return max(1, min(int(per_page or 1), self.max_per_page))

    def search_prefix(self, prefix: str, page: int = 1, per_page: int = 100) -> SearchPage:
        prefix = (prefix or "").strip()
        if not prefix:
            return SearchPage(total=0)
        words = prefix_headwords(self.store.prefix_candidates(prefix), prefix)
        return SearchPage(total=len(words), words=paginate(words, page, self._per_page(per_page)))

    def search_idioms(self, phrase: str, page: int = 1, per_page: int = 100) -> SearchPage:
        pattern = phrase_pattern(phrase)
        if not pattern:
            return SearchPage(total=0)
        matches = collect_idioms(self.store.idiom_candidates(pattern), pattern)
        ranked = rank_idioms(matches, phrase)
        page_items = paginate(ranked, page, self._per_page(per_page))
        return SearchPage(total=len(ranked), words=[match.to_dict() for match in page_items])

    def backfill_example_translations(self, updates: Iterable[Dict[str, Any]]) -> BackfillSummary:
        """Fill empty example translations; each update is counted once as updated or skipped"""
        summary = BackfillSummary()
        for update in updates or []:
            if not isinstance(update, dict):
                summary.skipped += 1
                continue
            text = _clean_text(update.get('translated_text'))
            try:
                example_id = parse_identifier(update.get('id'))
            except MalformedIdentifier as e:
                logger.warning(f"Skipping example backfill: {e}")
                summary.skipped += 1
                continue
            if not text:
                summary.skipped += 1
                continue

            written = self.store.apply_nested_update(
                'example', example_id,
                lambda record: fill_example_translation(record, example_id, text) > 0,
            )
            if written:
                summary.updated += 1
            else:
                summary.skipped += 1

        logger.info(f"Example backfill: {summary.updated} updated, {summary.skipped} skipped")
        return summary

    def backfill_sense_translations(self, updates: Iterable[Dict[str, Any]]) -> BackfillSummary:
        summary = BackfillSummary()
        for update in updates or []:
            if not isinstance(update, dict):
                summary.skipped += 1
                continue
            long_text = _clean_text(update.get('definition_translated'))
            short_text = _clean_text(update.get('definition_translated_short'))
            try:
                sense_id = parse_identifier(update.get('id'))
            except MalformedIdentifier as e:
                logger.warning(f"Skipping sense backfill: {e}")
                summary.skipped += 1
                continue
            if not long_text and not short_text:
                summary.skipped += 1
                continue

            written = self.store.apply_nested_update(
                'sense', sense_id,
                lambda record: fill_sense_translation(record, sense_id, long_text, short_text) > 0,
            )
            if written:
                summary.updated += 1
            else:
                summary.skipped += 1

        logger.info(f"Sense backfill: {summary.updated} updated, {summary.skipped} skipped")
        return summary

    def get_example_translations(self, ids: Iterable[Any]) -> List[Dict[str, str]]:
        wanted = _parse_ids(ids)
        found: Dict[str, str] = {}
        for record in self.store.records_containing('example', wanted):
            for example in iter_examples(record):
                if example.id in wanted and example.id not in found:
                    found[example.id] = example.translated_text or ""
        return [{'id': item_id, 'translated_text': found[item_id]} for item_id in wanted if item_id in found]

    def get_sense_translations(self, ids: Iterable[Any]) -> List[Dict[str, str]]:
        wanted = _parse_ids(ids)
        found: Dict[str, Sense] = {}
        for record in self.store.records_containing('sense', wanted):
            for sense in iter_senses(record):
                if sense.id in wanted and sense.id not in found:
                    found[sense.id] = sense
        return [
            {
                'id': item_id,
                'definition_translated': found[item_id].definition_translated or "",
                'definition_translated_short': found[item_id].definition_translated_short or "",
            }
            for item_id in wanted if item_id in found
        ]

    def list_records(self, page: int = 1, per_page: int = 100) -> Dict[str, Any]:
        page = max(1, int(page or 1))
        per_page = self._per_page(per_page)
        total, records = self.store.list_records((page - 1) * per_page, per_page)
        return {
            'total': total,
            'page': page,
            'per_page': per_page,
            'records': [record.to_dict() for record in records],
        }
