#!/usr/bin/env python3
"""
Lexical data model
Records, entries, senses, idioms and examples stored as one JSONB document per
canonical key. Every nested list is always present (empty when the page had no
such section) so queries never have to branch on a missing key.
"""

import uuid
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .errors import MalformedIdentifier


def new_id() -> str:
    """Opaque identifier for entries, senses and examples"""
    return uuid.uuid4().hex


def parse_identifier(value: Any) -> str:
    """
    Return the trimmed identifier or raise MalformedIdentifier

    Ids are matched exactly as stored, so imported ids (dashed UUIDs,
    ObjectIds) stay addressable.
    """
    if not isinstance(value, str) or not value.strip():
        raise MalformedIdentifier(f"Invalid identifier: {value!r}")
    return value.strip()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _text(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    return value if isinstance(value, str) else ""


def _strings(data: Dict[str, Any], key: str) -> List[str]:
    value = data.get(key)
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def _dicts(data: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
    value = data.get(key)
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


@dataclass
class Phonetics:
    audio_url: str = ""
    transcription: str = ""

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'Phonetics':
        data = data or {}
        return cls(audio_url=_text(data, 'audio_url'), transcription=_text(data, 'transcription'))


@dataclass
class Example:
    source_text: str
    translated_text: str = ""
    cf: str = ""
    labels: str = ""
    id: str = field(default_factory=new_id)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Example':
        return cls(
            id=_text(data, 'id').strip(),
            source_text=_text(data, 'source_text'),
            translated_text=_text(data, 'translated_text'),
            cf=_text(data, 'cf'),
            labels=_text(data, 'labels'),
        )


@dataclass
class Sense:
    definition: str
    definition_translated: str = ""
    definition_translated_short: str = ""
    symbol: str = ""
    labels: str = ""
    disambiguation: str = ""
    grammar: str = ""
    cf: str = ""
    synonyms: List[str] = field(default_factory=list)
    opposites: List[str] = field(default_factory=list)
    see_alsos: List[str] = field(default_factory=list)
    examples: List[Example] = field(default_factory=list)
    id: str = field(default_factory=new_id)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Sense':
        return cls(
            id=_text(data, 'id').strip(),
            definition=_text(data, 'definition'),
            definition_translated=_text(data, 'definition_translated'),
            definition_translated_short=_text(data, 'definition_translated_short'),
            symbol=_text(data, 'symbol'),
            labels=_text(data, 'labels'),
            disambiguation=_text(data, 'disambiguation'),
            grammar=_text(data, 'grammar'),
            cf=_text(data, 'cf'),
            synonyms=_strings(data, 'synonyms'),
            opposites=_strings(data, 'opposites'),
            see_alsos=_strings(data, 'see_alsos'),
            examples=[Example.from_dict(item) for item in _dicts(data, 'examples')],
        )


def _senses(data: Dict[str, Any]) -> List[Sense]:
    # a sense without a definition is dropped, as the extractor does
    senses = [Sense.from_dict(item) for item in _dicts(data, 'senses')]
    return [sense for sense in senses if sense.definition.strip()]


@dataclass
class Idiom:
    idiom_text: str
    labels: str = ""
    senses: List[Sense] = field(default_factory=list)
    id: str = field(default_factory=new_id)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Idiom':
        return cls(
            id=_text(data, 'id').strip(),
            idiom_text=_text(data, 'idiom_text'),
            labels=_text(data, 'labels'),
            senses=_senses(data),
        )


@dataclass
class PhrasalVerbSense:
    """Phrasal verb block shown inline on the headword page"""
    word: str
    labels: str = ""
    senses: List[Sense] = field(default_factory=list)
    id: str = field(default_factory=new_id)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PhrasalVerbSense':
        return cls(
            id=_text(data, 'id').strip(),
            word=_text(data, 'word'),
            labels=_text(data, 'labels'),
            senses=_senses(data),
        )


@dataclass
class PhrasalVerbRef:
    word: str
    link: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PhrasalVerbRef':
        return cls(word=_text(data, 'word'), link=_text(data, 'link'))


@dataclass
class Entry:
    """Structured content of one scraped page"""
    headword: str
    part_of_speech: str = ""
    symbol: str = ""
    grammar: str = ""
    labels: str = ""
    variants_text: str = ""
    phonetics_british: Phonetics = field(default_factory=Phonetics)
    phonetics_american: Phonetics = field(default_factory=Phonetics)
    senses: List[Sense] = field(default_factory=list)
    idioms: List[Idiom] = field(default_factory=list)
    phrasal_verbs: List[PhrasalVerbRef] = field(default_factory=list)
    phrasal_verb_senses: List[PhrasalVerbSense] = field(default_factory=list)
    id: str = field(default_factory=new_id)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Entry':
        return cls(
            id=_text(data, 'id').strip(),
            headword=_text(data, 'headword'),
            part_of_speech=_text(data, 'part_of_speech'),
            symbol=_text(data, 'symbol'),
            grammar=_text(data, 'grammar'),
            labels=_text(data, 'labels'),
            variants_text=_text(data, 'variants_text'),
            phonetics_british=Phonetics.from_dict(data.get('phonetics_british')),
            phonetics_american=Phonetics.from_dict(data.get('phonetics_american')),
            senses=_senses(data),
            idioms=[Idiom.from_dict(item) for item in _dicts(data, 'idioms')],
            phrasal_verbs=[PhrasalVerbRef.from_dict(item) for item in _dicts(data, 'phrasal_verbs')],
            phrasal_verb_senses=[
                PhrasalVerbSense.from_dict(item) for item in _dicts(data, 'phrasal_verb_senses')
            ],
        )

    def all_senses(self) -> List[Sense]:
        """Direct senses, idiom senses and phrasal verb senses in document order"""
        senses = list(self.senses)
        for idiom in self.idioms:
            senses.extend(idiom.senses)
        for block in self.phrasal_verb_senses:
            senses.extend(block.senses)
        return senses

    def ensure_ids(self) -> int:
        """Give every node without an id a fresh one; returns how many were assigned"""
        nodes = [self, *self.idioms, *self.phrasal_verb_senses]
        for sense in self.all_senses():
            nodes.append(sense)
            nodes.extend(sense.examples)

        assigned = 0
        for node in nodes:
            if not node.id:
                node.id = new_id()
                assigned += 1
        return assigned


@dataclass
class LexicalRecord:
    key: str
    entries: List[Entry] = field(default_factory=list)
    variants: List[str] = field(default_factory=list)
    symbol: str = ""
    parts_of_speech: List[str] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def headwords(self) -> List[str]:
        return [entry.headword.strip() for entry in self.entries]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'key': self.key,
            'entries': [entry.to_dict() for entry in self.entries],
            'variants': list(self.variants),
            'symbol': self.symbol,
            'parts_of_speech': list(self.parts_of_speech),
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'LexicalRecord':
        """Build a record from a ``dict_row`` of the lexical_records table

        Ids are read back as stored; a node stored without one keeps an empty id.
        """
        return cls(
            key=row['key'],
            entries=[Entry.from_dict(item) for item in (row.get('entries') or []) if isinstance(item, dict)],
            variants=[v for v in (row.get('variants') or []) if isinstance(v, str)],
            symbol=row.get('symbol') or "",
            parts_of_speech=[p for p in (row.get('parts_of_speech') or []) if isinstance(p, str)],
            created_at=row.get('created_at'),
            updated_at=row.get('updated_at'),
        )


@dataclass
class IngestPayload:
    """Entries plus the spellings that produced them"""
    entries: List[Entry] = field(default_factory=list)
    variants: List[str] = field(default_factory=list)

    @classmethod
    def from_legacy(cls, data: Any) -> 'IngestPayload':
        """Adapt the old bare-list shape (entries only) or a dict payload"""
        from .canonicalizer import build_variants

        if isinstance(data, cls):
            return data
        if isinstance(data, list):
            entries = [item if isinstance(item, Entry) else Entry.from_dict(item)
                       for item in data if isinstance(item, (Entry, dict))]
            return cls(entries=entries, variants=build_variants(e.headword for e in entries))
        if isinstance(data, dict):
            entries = [Entry.from_dict(item) for item in _dicts(data, 'entries')]
            variants = _strings(data, 'variants') or build_variants(e.headword for e in entries)
            return cls(entries=entries, variants=variants)
        raise TypeError(f"Unsupported ingest payload type: {type(data).__name__}")


@dataclass
class LookupResult:
    """Outcome of a lookup; found=False is the normal not-found outcome"""
    word: str
    found: bool
    source: str = ""
    entries: List[Entry] = field(default_factory=list)
    variants: List[str] = field(default_factory=list)

    @property
    def quantity(self) -> int:
        return len(self.entries)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'word': self.word,
            'quantity': self.quantity,
            'data': [entry.to_dict() for entry in self.entries],
            'variants': list(self.variants),
            'source': self.source,
        }
