#!/usr/bin/env python3
"""
Oxford Learner's Dictionaries page extractor
Turns one fetched definition page into a structured Entry. Purely structural:
no network access, and missing optional sections become empty containers.
"""

import copy
import logging
import re
from typing import Iterable, List, Optional

from bs4 import BeautifulSoup, Tag

from lexicon.models import (
    Entry,
    Example,
    Idiom,
    Phonetics,
    PhrasalVerbRef,
    PhrasalVerbSense,
    Sense,
)

logger = logging.getLogger(__name__)

WS_RE = re.compile(r"\s+")

# Leading token of a span.xrefs group -> Sense attribute
XREF_KINDS = {
    'synonym': 'synonyms',
    'opposite': 'opposites',
    'see also': 'see_alsos',
}


# ---------------------------------------------------------------------------
# Helpers


def _normalize_ws(text: str) -> str:
    return WS_RE.sub(" ", text).strip()


def _tag_text(tag: Optional[Tag]) -> str:
    return _normalize_ws(tag.get_text()) if tag is not None else ""


def _inside(tag: Tag, *classes: str) -> bool:
    return any(tag.find_parent(class_=cls) is not None for cls in classes)


def _first_outside(tags: Iterable[Tag], *classes: str) -> Optional[Tag]:
    for tag in tags:
        if not _inside(tag, *classes):
            return tag
    return None


def _symbol_from(span: Optional[Tag]) -> str:
    """CEFR level from a symbol class such as ``ox3ksym_a1``"""
    if span is None:
        return ""
    for cls in span.get('class') or []:
        if '_' in cls:
            return cls.split('_', 1)[1]
    return ""


def _sense_part(sense: Tag, selector: str) -> List[Tag]:
    """Tags matching ``selector`` in the sense header, before nested content"""
    return sense.select(
        f".sensetop > {selector}, .sensetop ~ {selector}, :scope > {selector}"
    )


def _sense_field(sense: Tag, selector: str) -> str:
    return _tag_text(_first_outside(_sense_part(sense, selector), 'variants'))


# ---------------------------------------------------------------------------
# Senses


def _parse_xrefs(sense_tag: Tag, sense: Sense):
    for xref in sense_tag.select("span.xrefs"):
        kind = _tag_text(xref.select_one("span.prefix")).lower()
        attr = XREF_KINDS.get(kind)
        if attr is None:
            continue
        getattr(sense, attr).extend(a.get_text() for a in xref.find_all("a"))


def _parse_examples(sense_tag: Tag, excluded: tuple, detailed: bool) -> List[Example]:
    examples = []
    for item in sense_tag.select("ul.examples li"):
        if _inside(item, *excluded):
            continue
        text = _tag_text(item.select_one("span.x"))
        if not detailed:
            if text:
                examples.append(Example(source_text=text))
            continue
        cf = _tag_text(item.select_one("span.cf"))
        labels = _tag_text(_first_outside(item.select("span.labels"), 'variants'))
        if cf or labels or text:
            examples.append(Example(source_text=text, cf=cf, labels=labels))
    return examples


def parse_sense(sense_tag: Tag, excluded: tuple = ('collapse',), detailed: bool = False) -> Optional[Sense]:
    """Build a Sense from an ``li.sense``; None when it carries no definition"""
    definition = _tag_text(sense_tag.select_one("span.def"))
    if not definition:
        return None

    sense = Sense(
        definition=definition,
        symbol=_symbol_from(_first_outside(_sense_part(sense_tag, "div.symbols span"))),
        labels=_sense_field(sense_tag, "span.labels"),
        disambiguation=_sense_field(sense_tag, "span.dis-g"),
        grammar=_sense_field(sense_tag, "span.grammar"),
        cf=_sense_field(sense_tag, "span.cf"),
    )
    _parse_xrefs(sense_tag, sense)
    sense.examples = _parse_examples(sense_tag, excluded, detailed)
    return sense


def _parse_senses(container: Tag) -> List[Sense]:
    senses = []
    for sense_tag in container.select("li.sense"):
        sense = parse_sense(sense_tag)
        if sense is not None:
            senses.append(sense)
    return senses


# ---------------------------------------------------------------------------
# Page sections


def _main_senses(soup: BeautifulSoup) -> List[Sense]:
    senses = []
    for sense_tag in soup.select("li.sense"):
        if _inside(sense_tag, 'idioms', 'collapse', 'pv-g'):
            continue
        sense = parse_sense(sense_tag, excluded=('idioms', 'collapse'), detailed=True)
        if sense is None:
            logger.debug("Dropping sense without definition")
            continue
        senses.append(sense)
    return senses


def _webtop_labels(block: Tag) -> str:
    return _tag_text(_first_outside(block.select(".webtop span.labels"), 'variants'))


def _idioms(soup: BeautifulSoup) -> List[Idiom]:
    idioms = []
    for block in soup.select("div.idioms span.idm-g"):
        idioms.append(Idiom(
            idiom_text=_tag_text(block.select_one("span.idm")),
            labels=_webtop_labels(block),
            senses=_parse_senses(block),
        ))
    return idioms


def _phrasal_verb_word(pv: Optional[Tag]) -> str:
    if pv is None:
        return ""
    pv = copy.copy(pv)
    for variants in pv.select("div.variants"):
        variants.decompose()
    for arrow in pv.select("span.pvarr"):
        arrow.replace_with(f" ↔ {arrow.get_text()}")
    return _normalize_ws(pv.get_text())


def _phrasal_verb_senses(soup: BeautifulSoup) -> List[PhrasalVerbSense]:
    blocks = []
    for block in soup.select("span.pv-g"):
        blocks.append(PhrasalVerbSense(
            word=_phrasal_verb_word(block.select_one("span.pv")),
            labels=_webtop_labels(block),
            senses=_parse_senses(block),
        ))
    return blocks


def _phrasal_verb_refs(soup: BeautifulSoup) -> List[PhrasalVerbRef]:
    refs = []
    for item in soup.select(".phrasal_verb_links ul.pvrefs li"):
        link = item.find("a")
        if link is None:
            continue
        refs.append(PhrasalVerbRef(word=_tag_text(link), link=link.get('href') or ""))
    return refs


def _phonetics(soup: BeautifulSoup, container: str) -> Phonetics:
    sound = soup.select_one(f"div.{container} div.sound")
    return Phonetics(
        audio_url=(sound.get('data-src-mp3') or "") if sound is not None else "",
        transcription=_tag_text(soup.select_one(f"div.{container} span.phon")),
    )


def _headword_siblings(headword: Tag, name: str, cls: str) -> List[Tag]:
    parent = headword.parent
    if parent is None:
        return []
    return [tag for tag in parent.find_all(name, class_=cls, recursive=False) if tag is not headword]


# ---------------------------------------------------------------------------
# Entry point


def extract_entry(html: str) -> Optional[Entry]:
    """Extract one Entry from a page; None when the page has no headword"""
    soup = BeautifulSoup(html or "", 'html.parser')
    headword = soup.select_one("h1.headword")
    headword_text = _tag_text(headword)
    if not headword_text:
        return None

    symbols = _headword_siblings(headword, "div", "symbols")
    symbol_span = symbols[0].find("span") if symbols else None
    variants = _headword_siblings(headword, "div", "variants")
    grammar = _headword_siblings(headword, "span", "grammar")
    labels = [tag for tag in _headword_siblings(headword, "span", "labels") if not _inside(tag, 'variants')]

    entry = Entry(
        headword=headword_text,
        part_of_speech=_tag_text(soup.select_one("span.pos")),
        symbol=_symbol_from(symbol_span),
        grammar=_tag_text(grammar[0]) if grammar else "",
        labels=_tag_text(labels[0]) if labels else "",
        variants_text=_tag_text(variants[0]) if variants else "",
        phonetics_british=_phonetics(soup, "phons_br"),
        phonetics_american=_phonetics(soup, "phons_n_am"),
        senses=_main_senses(soup),
        idioms=_idioms(soup),
        phrasal_verbs=_phrasal_verb_refs(soup),
        phrasal_verb_senses=_phrasal_verb_senses(soup),
    )
    logger.debug(
        f"Extracted '{entry.headword}' ({entry.part_of_speech or 'no pos'}): "
        f"{len(entry.senses)} senses, {len(entry.idioms)} idioms"
    )
    return entry
