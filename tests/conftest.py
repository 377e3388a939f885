"""Shared fixtures: an in-memory lexical store and record builders."""

import threading
from typing import Callable, Dict, Iterable, List, Optional, Tuple

import pytest

from lexicon.canonicalizer import merge_record, normalize
from lexicon.models import Entry, Example, Idiom, IngestPayload, LexicalRecord, PhrasalVerbSense, Sense


class InMemoryStore:
    """Dict-backed stand-in for LexicalStore with the same method surface"""

    def __init__(self, records: Iterable[LexicalRecord] = ()):
        self.records: Dict[str, LexicalRecord] = {record.key: record for record in records}
        self._lock = threading.Lock()
        self.merge_calls: List[Tuple[str, IngestPayload]] = []

    def _sorted(self) -> List[LexicalRecord]:
        return [self.records[key] for key in sorted(self.records)]

    def get(self, key: str) -> Optional[LexicalRecord]:
        return self.records.get(key)

    def find_by_term(self, term: str) -> Optional[LexicalRecord]:
        key = normalize(term)
        with self._lock:
            if key in self.records:
                return self.records[key]
            for record in self._sorted():
                if any(v.lower() in (term.strip().lower(), key) for v in record.variants):
                    return record
        return None

    def prefix_candidates(self, prefix: str) -> List[LexicalRecord]:
        return self._sorted()

    def idiom_candidates(self, pattern: str) -> List[LexicalRecord]:
        return self._sorted()

    def records_containing(self, kind: str, ids) -> List[LexicalRecord]:
        return self._sorted()

    def list_records(self, offset: int, limit: int):
        records = self._sorted()
        return len(records), records[offset:offset + limit]

    def merge_entries(self, key: str, payload: IngestPayload) -> LexicalRecord:
        with self._lock:
            self.merge_calls.append((key, payload))
            merged = merge_record(self.records.get(key), payload.entries, payload.variants, key=key)
            self.records[key] = merged
            return merged

    def apply_nested_update(self, kind: str, item_id: str,
                            mutate: Callable[[LexicalRecord], bool]) -> int:
        with self._lock:
            return sum(1 for record in self._sorted() if mutate(record))


class FakeSequencer:
    """Returns canned entries per term and records the calls made"""

    def __init__(self, pages: Optional[Dict[str, List[Entry]]] = None, error: Exception = None):
        self.pages = pages or {}
        self.error = error
        self.calls: List[str] = []

    def fetch_entries(self, term: str, max_pages=None) -> List[Entry]:
        self.calls.append(term)
        if self.error is not None:
            raise self.error
        return list(self.pages.get(term, []))


def make_entry(headword: str, part_of_speech: str = "noun", symbol: str = "",
               idioms: Iterable[str] = (), examples: Iterable[str] = ()) -> Entry:
    sense = Sense(definition=f"meaning of {headword}",
                  examples=[Example(source_text=text) for text in examples])
    return Entry(
        headword=headword,
        part_of_speech=part_of_speech,
        symbol=symbol,
        senses=[sense],
        idioms=[Idiom(idiom_text=text, senses=[Sense(definition=f"idiom {text}")]) for text in idioms],
    )


def make_record(key: str, entries: Iterable[Entry] = None, variants: Iterable[str] = ()) -> LexicalRecord:
    entries = list(entries) if entries is not None else [make_entry(key)]
    return merge_record(None, entries, list(variants), key=key)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def translated_record():
    """Record with one translated and one untranslated example in each nested location"""
    direct = Sense(definition="the fact that somebody is able to do something", examples=[
        Example(source_text="She has the ability to pay.", translated_text="Cô ấy có khả năng chi trả."),
        Example(source_text="He lost the ability to walk."),
    ])
    idiom = Idiom(idiom_text="to the best of your ability", senses=[
        Sense(definition="as well as you can", examples=[Example(source_text="Do it to the best of your ability.")]),
    ])
    block = PhrasalVerbSense(word="ability up", senses=[
        Sense(definition="made-up phrasal sense", examples=[Example(source_text="Ability up now.")]),
    ])
    entry = Entry(headword="ability", part_of_speech="noun", symbol="a2",
                  senses=[direct], idioms=[idiom], phrasal_verb_senses=[block])
    return make_record("ability", [entry], ["ability"])
