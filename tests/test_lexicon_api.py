"""Tests for the HTTP API with the store and scraper replaced by in-memory fakes."""

import pytest
from fastapi.testclient import TestClient

from lexicon.errors import FetchError
from lexicon.lookup_service import LookupService
from web_apps.lexicon_api import app, get_lookup_service, get_store

from conftest import FakeSequencer, InMemoryStore, make_entry, make_record


@pytest.fixture
def sequencer():
    return FakeSequencer({"light": [make_entry("light", "noun"), make_entry("light", "verb")]})


@pytest.fixture
def client(translated_record, sequencer):
    store = InMemoryStore([
        translated_record,
        make_record("above", [make_entry("above", "preposition", idioms=["above all"])], ["above"]),
    ])
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_lookup_service] = lambda: LookupService(store, sequencer)
    with TestClient(app) as test_client:
        test_client.store = store
        yield test_client
    app.dependency_overrides.clear()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


class TestLookupEndpoint:
    def test_stored_word(self, client):
        response = client.get("/lookup", params={"word": "Ability"})
        assert response.status_code == 200
        body = response.json()
        assert body['word'] == "ability"
        assert body['source'] == "store"
        assert body['quantity'] == 1
        assert body['data'][0]['headword'] == "ability"

    def test_scraped_word(self, client, sequencer):
        body = client.get("/lookup", params={"word": "light"}).json()
        assert body['source'] == "scraped"
        assert body['quantity'] == 1
        assert sequencer.calls == ["light"]
        assert client.store.get("light") is not None

    def test_not_found(self, client):
        response = client.get("/lookup", params={"word": "qwzx"})
        assert response.status_code == 404
        assert response.json() == {"detail": "Word not found"}

    @pytest.mark.parametrize("params", [{}, {"word": ""}, {"word": "abc1"}])
    def test_invalid_word(self, client, params):
        assert client.get("/lookup", params=params).status_code == 400

    def test_fetch_failure(self, client):
        failing = FakeSequencer(error=FetchError("HTTP 503", status=503))
        app.dependency_overrides[get_lookup_service] = lambda: LookupService(client.store, failing)
        response = client.get("/lookup", params={"word": "run"})
        assert response.status_code == 502
        assert client.store.get("run") is None


class TestSearchEndpoints:
    def test_prefix_search(self, client):
        body = client.get("/search", params={"q": "ab", "page": 1, "per_page": 10}).json()
        assert body == {'total': 2, 'words': ["above", "ability"]}

    def test_prefix_search_requires_query(self, client):
        assert client.get("/search").status_code == 400
        assert client.get("/search", params={"q": "a1"}).status_code == 400

    def test_idiom_search(self, client):
        body = client.get("/search/idioms", params={"q": "best ability"}).json()
        assert body['total'] == 1
        assert body['words'][0]['idiom_text'] == "to the best of your ability"
        assert body['words'][0]['is_idiom'] is True

    def test_idiom_search_requires_query(self, client):
        assert client.get("/search/idioms", params={"q": "  "}).status_code == 400

    def test_list_words(self, client):
        body = client.get("/words", params={"per_page": 1}).json()
        assert body['total'] == 2
        assert [record['key'] for record in body['records']] == ["ability"]


class TestTranslationEndpoints:
    def test_example_backfill(self, client, translated_record):
        untranslated = translated_record.entries[0].senses[0].examples[1]
        response = client.post("/examples/translations", json={"updates": [
            {"id": untranslated.id, "translated_text": "Anh ấy mất khả năng đi lại."},
            {"id": "nope", "translated_text": "x"},
        ]})
        assert response.json() == {'updated': 1, 'skipped': 1}

        lookup = client.post("/examples/translations/lookup", json={"ids": [untranslated.id]}).json()
        assert lookup == {'data': [{'id': untranslated.id, 'translated_text': "Anh ấy mất khả năng đi lại."}]}

    def test_sense_backfill(self, client, translated_record):
        sense = translated_record.entries[0].senses[0]
        response = client.post("/senses/translations", json={"updates": [
            {"id": sense.id, "definition_translated_short": "khả năng"},
        ]})
        assert response.json() == {'updated': 1, 'skipped': 0}

        lookup = client.post("/senses/translations/lookup", json={"ids": [sense.id]}).json()
        assert lookup['data'][0]['definition_translated_short'] == "khả năng"

    @pytest.mark.parametrize("path", ["/examples/translations", "/senses/translations"])
    def test_empty_updates_rejected(self, client, path):
        assert client.post(path, json={"updates": []}).status_code == 400

    def test_empty_ids_rejected(self, client):
        assert client.post("/examples/translations/lookup", json={"ids": []}).status_code == 400


class TestIngestEndpoint:
    def test_structured_payload(self, client):
        response = client.post("/ingest", json={
            "entries": [make_entry("ice cream").to_dict()],
            "variants": ["ice cream"],
        })
        assert response.status_code == 200
        assert response.json()['source'] == "ingested"
        assert client.store.get("ice cream").variants == ["ice cream"]

    def test_legacy_list_payload(self, client):
        response = client.post("/ingest", json=[make_entry("ice cream").to_dict()])
        assert response.status_code == 200
        assert client.store.get("ice cream").variants == ["ice cream", "ice-cream"]

    def test_no_headword(self, client):
        assert client.post("/ingest", json={"entries": [{"headword": ""}]}).status_code == 400
