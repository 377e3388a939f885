#!/usr/bin/env python3
"""
FastAPI Lexicon Application
Word lookup (scraping on a miss), prefix and idiom search, and translation backfill
"""

import logging
from functools import lru_cache
from typing import Any, Dict, List, Optional, Union

from fastapi import Depends, FastAPI, HTTPException, Query
from pydantic import BaseModel, Field

from harvesters.page_sequencer import OxfordPageSequencer
from lexicon.config import LexiconConfig, configure_logging
from lexicon.errors import FetchError, InvalidInput
from lexicon.canonicalizer import validate_term
from lexicon.lexical_store import LexicalStore
from lexicon.lookup_service import LookupService
from lexicon.query_engine import QueryEngine

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Lexicon", description="Dictionary lookup, search and translation backfill")

DEFAULT_PER_PAGE = LexiconConfig.SEARCH['default_per_page']


# ---------------------------------------------------------------------------
# Request bodies


class ExampleTranslation(BaseModel):
    id: Any = None
    translated_text: Optional[str] = ""


class SenseTranslation(BaseModel):
    id: Any = None
    definition_translated: Optional[str] = None
    definition_translated_short: Optional[str] = None


class ExampleBackfillRequest(BaseModel):
    updates: List[ExampleTranslation] = Field(default_factory=list)


class SenseBackfillRequest(BaseModel):
    updates: List[SenseTranslation] = Field(default_factory=list)


class IdsRequest(BaseModel):
    ids: List[Any] = Field(default_factory=list)


class IngestRequest(BaseModel):
    term: Optional[str] = None
    entries: List[Dict[str, Any]] = Field(default_factory=list)
    variants: List[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Dependencies


@lru_cache(maxsize=1)
def get_store() -> LexicalStore:
    return LexicalStore()


def get_lookup_service(store: LexicalStore = Depends(get_store)) -> LookupService:
    return LookupService(store, OxfordPageSequencer())


def get_query_engine(store: LexicalStore = Depends(get_store)) -> QueryEngine:
    return QueryEngine(store, max_per_page=LexiconConfig.SEARCH['max_per_page'])


# ---------------------------------------------------------------------------
# Routes


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/lookup")
def lookup(word: Optional[str] = Query(None, description="Word to look up"),
           service: LookupService = Depends(get_lookup_service)):
    """Look a word up in the store, scraping the dictionary site on a miss"""
    try:
        result = service.lookup(word)
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    except FetchError as e:
        logger.error(f"Scrape failed for '{word}': {e}")
        raise HTTPException(status_code=502, detail="Failed to fetch dictionary pages")

    if not result.found:
        raise HTTPException(status_code=404, detail="Word not found")
    return result.to_dict()


@app.get("/search")
def search(q: Optional[str] = Query(None, description="Prefix to search for"),
           page: int = Query(1, ge=1),
           per_page: int = Query(DEFAULT_PER_PAGE, ge=1),
           engine: QueryEngine = Depends(get_query_engine)):
    """Headwords starting with a prefix (key, headword or variant)"""
    try:
        prefix = validate_term(q)
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    return engine.search_prefix(prefix, page, per_page).to_dict()


@app.get("/search/idioms")
def search_idioms(q: Optional[str] = Query(None, description="Idiom phrase"),
                  page: int = Query(1, ge=1),
                  per_page: int = Query(DEFAULT_PER_PAGE, ge=1),
                  engine: QueryEngine = Depends(get_query_engine)):
    """Idioms containing the words of a phrase in order"""
    if not q or not q.strip():
        raise HTTPException(status_code=400, detail="Query parameter 'q' is required")
    return engine.search_idioms(q, page, per_page).to_dict()


@app.post("/examples/translations")
def backfill_examples(body: ExampleBackfillRequest, engine: QueryEngine = Depends(get_query_engine)):
    """Fill empty example translations; already translated examples are left alone"""
    if not body.updates:
        raise HTTPException(status_code=400, detail="updates array is required")
    updates = [update.model_dump() for update in body.updates]
    return engine.backfill_example_translations(updates).to_dict()


@app.post("/senses/translations")
def backfill_senses(body: SenseBackfillRequest, engine: QueryEngine = Depends(get_query_engine)):
    """Fill empty translated definitions (long and short) by sense id"""
    if not body.updates:
        raise HTTPException(status_code=400, detail="updates array is required")
    updates = [update.model_dump() for update in body.updates]
    return engine.backfill_sense_translations(updates).to_dict()


@app.post("/examples/translations/lookup")
def example_translations(body: IdsRequest, engine: QueryEngine = Depends(get_query_engine)):
    if not body.ids:
        raise HTTPException(status_code=400, detail="ids array is required")
    return {"data": engine.get_example_translations(body.ids)}


@app.post("/senses/translations/lookup")
def sense_translations(body: IdsRequest, engine: QueryEngine = Depends(get_query_engine)):
    if not body.ids:
        raise HTTPException(status_code=400, detail="ids array is required")
    return {"data": engine.get_sense_translations(body.ids)}


@app.get("/words")
def list_words(page: int = Query(1, ge=1),
               per_page: int = Query(DEFAULT_PER_PAGE, ge=1),
               engine: QueryEngine = Depends(get_query_engine)):
    return engine.list_records(page, per_page)


@app.post("/ingest")
def ingest(body: Union[IngestRequest, List[Dict[str, Any]]],
           service: LookupService = Depends(get_lookup_service)):
    """Merge externally supplied entries; a bare entry list is accepted for old clients"""
    if isinstance(body, list):
        logger.warning("Ingest called with a bare entry list; send {entries, variants} instead")
        payload, term = body, None
    else:
        payload = {'entries': body.entries, 'variants': body.variants}
        term = body.term

    try:
        result = service.ingest(payload, term)
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    return result.to_dict()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
