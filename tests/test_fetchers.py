"""Tests for the Firestore source and value decoding."""

import asyncio

import pytest
import requests

from config import FirebaseSettings
from controller import ListingController
from fetchers import FetchFailure, FirestoreSource, StaticSource, decode_document, decode_value


class FakeResponse:
    def __init__(self, payload=None, status_code=200, bad_json=False):
        self.payload = payload
        self.status_code = status_code
        self.bad_json = bad_json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Error", response=self)

    def json(self):
        if self.bad_json:
            raise ValueError("No JSON object could be decoded")
        return self.payload


def make_source(monkeypatch, responses):
    source = FirestoreSource(FirebaseSettings(project_id="sat-hackpsu", api_key="k", collection="testApartments"))
    calls = []

    def fake_request(method, url, **kwargs):
        calls.append((method, url, dict(kwargs.get("params", {}))))
        result = responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    monkeypatch.setattr(source.session, "request", fake_request)
    return source, calls


DOC = {
    "name": "projects/sat-hackpsu/databases/(default)/documents/testApartments/abc123",
    "fields": {
        "name": {"stringValue": "The Rise"},
        "rent": {"integerValue": "1150"},
        "distance": {"doubleValue": 0.3},
        "featured": {"booleanValue": True},
        "rating": {"nullValue": None},
        "amenities": {"arrayValue": {"values": [{"stringValue": "Gym"}, {"stringValue": "Pool"}]}},
        "coordinates": {"geoPointValue": {"latitude": 40.79, "longitude": -77.86}},
    },
}


def test_decode_document():
    record = decode_document(DOC)
    assert record == {
        "id": "abc123",
        "name": "The Rise",
        "rent": 1150,
        "distance": 0.3,
        "featured": True,
        "rating": None,
        "amenities": ["Gym", "Pool"],
        "coordinates": {"latitude": 40.79, "longitude": -77.86},
    }


def test_document_id_wins_over_id_field():
    record = decode_document({
        "name": "projects/p/databases/(default)/documents/c/real-id",
        "fields": {"id": {"stringValue": "spoofed"}},
    })
    assert record["id"] == "real-id"


def test_decode_value_shapes():
    assert decode_value({"mapValue": {"fields": {"a": {"integerValue": "2"}}}}) == {"a": 2}
    assert decode_value({"arrayValue": {}}) == []
    assert decode_value({"timestampValue": "2026-08-01T00:00:00Z"}) == "2026-08-01T00:00:00Z"
    assert decode_value({"integerValue": "lots"}) is None
    assert decode_value({"mysteryValue": 1}) is None
    assert decode_value("raw") is None


def test_malformed_containers_decode_to_none():
    assert decode_value({"mapValue": {"fields": []}}) is None
    assert decode_value({"mapValue": "oops"}) is None
    assert decode_value({"arrayValue": "oops"}) is None
    assert decode_value({"arrayValue": {"values": {"a": 1}}}) is None
    assert decode_value({"mapValue": None}) is None
    nested = {"arrayValue": {"values": [{"mapValue": {"fields": "x"}}, {"integerValue": "3"}]}}
    assert decode_value(nested) == [None, 3]


def test_fetch_all_follows_pages(monkeypatch):
    source, calls = make_source(monkeypatch, [
        FakeResponse({"documents": [DOC], "nextPageToken": "tok"}),
        FakeResponse({"documents": [{"name": ".../testApartments/def", "fields": {}}]}),
    ])
    records = source.fetch_all("testApartments")
    assert [r["id"] for r in records] == ["abc123", "def"]
    assert calls[0][1].endswith("/projects/sat-hackpsu/databases/(default)/documents/testApartments")
    assert calls[0][2] == {"pageSize": 300, "key": "k"}
    assert calls[1][2]["pageToken"] == "tok"


def test_empty_collection(monkeypatch):
    source, _ = make_source(monkeypatch, [FakeResponse({})])
    assert source.fetch_all("testApartments") == []


@pytest.mark.parametrize("response", [
    FakeResponse(status_code=403),
    FakeResponse(bad_json=True),
    FakeResponse(["not", "a", "dict"]),
    FakeResponse({"documents": "nope"}),
    FakeResponse({"documents": ["nope"]}),
    requests.exceptions.ConnectionError("offline"),
])
def test_failures_raise_fetch_failure(monkeypatch, response):
    source, _ = make_source(monkeypatch, [response])
    with pytest.raises(FetchFailure):
        source.fetch_all("testApartments")


def test_rate_limit_retries_once(monkeypatch):
    monkeypatch.setattr("fetchers.time.sleep", lambda s: None)
    source, calls = make_source(monkeypatch, [
        FakeResponse(status_code=429),
        FakeResponse({"documents": [DOC]}),
    ])
    assert len(source.fetch_all("testApartments")) == 1
    assert len(calls) == 2


def test_missing_project_id():
    source = FirestoreSource(FirebaseSettings(project_id=""))
    with pytest.raises(FetchFailure):
        source.fetch_all("testApartments")


def test_static_source_returns_copies():
    records = [{"id": "1", "name": "A"}]
    fetched = StaticSource(records).fetch_all("anything")
    fetched[0]["name"] = "B"
    assert records[0]["name"] == "A"


def test_nested_malformed_document_still_loads(monkeypatch):
    broken = {
        "name": ".../testApartments/bad",
        "fields": {
            "name": {"stringValue": "Beaver Hill"},
            "amenities": {"arrayValue": "oops"},
            "coordinates": {"mapValue": {"fields": []}},
        },
    }
    source, _ = make_source(monkeypatch, [FakeResponse({"documents": [DOC, broken]})])
    ctrl = ListingController(source, "testApartments")
    asyncio.run(ctrl.mount())
    assert not ctrl.loading
    assert [l.id for l in ctrl.listings] == ["abc123", "bad"]
    bad = ctrl.listings[1]
    assert bad.name == "Beaver Hill"
    assert bad.amenities == ()
    assert bad.coordinates is None


def test_decode_error_becomes_fetch_failure(monkeypatch):
    def explode(doc):
        raise TypeError("unhashable")

    monkeypatch.setattr("fetchers.decode_document", explode)
    source, _ = make_source(monkeypatch, [FakeResponse({"documents": [DOC]})])
    with pytest.raises(FetchFailure):
        source.fetch_all("testApartments")

    source, _ = make_source(monkeypatch, [FakeResponse({"documents": [DOC]})])
    ctrl = ListingController(source, "testApartments")
    asyncio.run(ctrl.mount())
    assert not ctrl.loading
    assert ctrl.listings == []
