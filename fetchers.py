"""
Listing sources.

The production source reads a Firestore collection through the public
REST API. Records come back as plain dicts with an `id` key plus whatever
fields the document holds; no field is guaranteed.
"""

import base64
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Optional

import requests

from config import FirebaseSettings

logger = logging.getLogger(__name__)


class FetchFailure(Exception):
    """The data source was unreachable or returned something unusable."""


# ── Base Source ─────────────────────────────────────────────────────────────

class BaseSource(ABC):
    """Abstract base for listing sources."""

    @abstractmethod
    def fetch_all(self, collection: str) -> list[dict]:
        """Fetch every raw record in `collection`, in no particular order."""
        ...

    @property
    @abstractmethod
    def source_name(self) -> str:
        ...


class StaticSource(BaseSource):
    """Serves records held in memory. Used for demo mode."""

    source_name = "static"

    def __init__(self, records: list[dict]):
        self.records = records

    def fetch_all(self, collection: str) -> list[dict]:
        logger.info(f"[static] Serving {len(self.records)} records for '{collection}'")
        return [dict(r) for r in self.records]


# ── Firestore Source ────────────────────────────────────────────────────────

class FirestoreSource(BaseSource):
    """
    Reads a collection from Cloud Firestore via the REST API
    (https://firebase.google.com/docs/firestore/reference/rest).
    """

    BASE_URL = "https://firestore.googleapis.com/v1"
    source_name = "firestore"

    def __init__(self, settings: FirebaseSettings):
        self.settings = settings
        self.session = requests.Session()
        self.session.headers.update({"Accept": "application/json"})

    def fetch_all(self, collection: str) -> list[dict]:
        if not self.settings.project_id:
            raise FetchFailure("FIREBASE_PROJECT_ID is not set")

        url = (
            f"{self.BASE_URL}/projects/{self.settings.project_id}"
            f"/databases/(default)/documents/{collection}"
        )
        params: dict[str, Any] = {"pageSize": self.settings.page_size}
        if self.settings.api_key:
            params["key"] = self.settings.api_key

        records: list[dict] = []
        while True:
            data = self._safe_request("GET", url, params=params)
            if not isinstance(data, dict):
                raise FetchFailure(f"[{self.source_name}] Unexpected response shape")

            documents = data.get("documents", [])
            if not isinstance(documents, list):
                raise FetchFailure(f"[{self.source_name}] 'documents' is not a list")
            for doc in documents:
                try:
                    records.append(decode_document(doc))
                except (AttributeError, TypeError, ValueError) as e:
                    raise FetchFailure(f"[{self.source_name}] Could not decode document: {e}") from e

            token = data.get("nextPageToken")
            if not token:
                break
            params["pageToken"] = token

        logger.info(f"[{self.source_name}] Fetched {len(records)} records from '{collection}'")
        return records

    def _safe_request(self, method: str, url: str, **kwargs) -> Any:
        """Make an API request with error handling and rate limiting."""
        timeout = self.settings.timeout
        try:
            resp = self.session.request(method, url, timeout=timeout, **kwargs)
            if resp.status_code == 429:
                logger.warning(f"[{self.source_name}] Rate limited. Waiting 60s...")
                time.sleep(60)
                resp = self.session.request(method, url, timeout=timeout, **kwargs)
            resp.raise_for_status()
            return resp.json()
        except requests.exceptions.HTTPError as e:
            raise FetchFailure(f"[{self.source_name}] HTTP {e.response.status_code}: {e}") from e
        except requests.exceptions.RequestException as e:
            raise FetchFailure(f"[{self.source_name}] Request failed: {e}") from e
        except ValueError as e:
            raise FetchFailure(f"[{self.source_name}] Invalid JSON response") from e


# ── Firestore Value Decoding ────────────────────────────────────────────────

def decode_document(doc: Any) -> dict:
    """Turn a Firestore REST document into {"id": <doc id>, **fields}."""
    if not isinstance(doc, dict):
        raise FetchFailure(f"Malformed document: {doc!r}")
    fields = doc.get("fields", {}) or {}
    if not isinstance(fields, dict):
        raise FetchFailure(f"Malformed fields in document {doc.get('name')!r}")
    record = {key: decode_value(value) for key, value in fields.items()}
    # The document id is the store-assigned key; it wins over any "id" field
    record["id"] = str(doc.get("name", "")).rsplit("/", 1)[-1]
    return record


def decode_value(value: Any) -> Optional[Any]:
    """Decode one typed Firestore value. Unknown shapes decode to None."""
    if not isinstance(value, dict) or not value:
        return None
    kind, payload = next(iter(value.items()))

    if kind == "nullValue":
        return None
    if kind in ("stringValue", "timestampValue", "referenceValue"):
        return payload
    if kind == "booleanValue":
        return bool(payload)
    if kind == "integerValue":
        # int64 is sent as a string
        try:
            return int(payload)
        except (TypeError, ValueError):
            return None
    if kind == "doubleValue":
        try:
            return float(payload)
        except (TypeError, ValueError):
            return None
    if kind == "bytesValue":
        try:
            return base64.b64decode(payload)
        except (TypeError, ValueError):
            return None
    if kind == "geoPointValue":
        if not isinstance(payload, dict):
            return None
        return {
            "latitude": payload.get("latitude", 0.0),
            "longitude": payload.get("longitude", 0.0),
        }
    if kind == "arrayValue":
        values = payload.get("values", []) if isinstance(payload, dict) else None
        if not isinstance(values, list):
            return None
        return [decode_value(v) for v in values]
    if kind == "mapValue":
        fields = payload.get("fields", {}) if isinstance(payload, dict) else None
        if not isinstance(fields, dict):
            return None
        return {k: decode_value(v) for k, v in fields.items()}

    logger.debug(f"Unknown Firestore value type '{kind}'")
    return None
