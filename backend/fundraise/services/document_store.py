"""
Document Store Interface Module

Minimal async document store contract shared by every backing technology,
plus the in-process implementation used for development and tests.

Key Features:
- find_one / upsert / delete_one / count over named collections
- Equality filters on document fields
- Collection and key-field registry shared by all adapters
"""

import abc
import asyncio
import copy
from datetime import datetime
from typing import Any, Dict, Iterable, Optional

# Collection names
WALLET_COLLECTION = "wallet_addresses"
STARTUP_WALLET_COLLECTION = "startup_wallet_addresses"
USERS_COLLECTION = "users"
IDENTITY_USERS_COLLECTION = "identity_users"
STARTUPS_COLLECTION = "startups"

# Field identifying a document within its collection
KEY_FIELDS = {
    WALLET_COLLECTION: "user_id",
    STARTUP_WALLET_COLLECTION: "startup_id",
    USERS_COLLECTION: "id",
    IDENTITY_USERS_COLLECTION: "id",
    STARTUPS_COLLECTION: "id",
}

# Non-key fields that are queried by value
INDEXED_FIELDS = {
    WALLET_COLLECTION: ("wallet_address",),
    USERS_COLLECTION: ("wallet_address",),
}

# Field recording when a document's wallet last changed
RECENCY_FIELDS = {
    WALLET_COLLECTION: "updated_at",
    STARTUP_WALLET_COLLECTION: "updated_at",
    USERS_COLLECTION: "wallet_address_updated_at",
    IDENTITY_USERS_COLLECTION: "updated_at",
    STARTUPS_COLLECTION: "wallet_address_updated_at",
}


def key_field(collection: str) -> str:
    try:
        return KEY_FIELDS[collection]
    except KeyError:
        raise ValueError(f"Unknown collection: {collection}")


def matches(document: Dict[str, Any], filter: Dict[str, Any]) -> bool:
    """Return True if every filter field equals the document's value."""
    return all(document.get(field) == value for field, value in filter.items())


def _recency(collection: str, document: Dict[str, Any]) -> str:
    value = document.get(RECENCY_FIELDS.get(collection, "updated_at"))
    if isinstance(value, datetime):
        value = value.isoformat()
    return value or ""


def pick_latest(collection: str, documents: Iterable[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Choose among several documents matching one filter.

    Every backend applies this rule: the most recently updated document wins,
    ties go to the smallest key.
    """
    documents = list(documents)
    if not documents:
        return None
    key_name = key_field(collection)
    latest = max(_recency(collection, document) for document in documents)
    return min(
        (document for document in documents if _recency(collection, document) == latest),
        key=lambda document: str(document.get(key_name)),
    )


class DocumentStore(abc.ABC):
    """
    Async key-value document store.

    Implementations raise StoreUnavailableError when the backend cannot be
    reached; "not found" is always None, never an exception.
    """

    name = "document"

    @abc.abstractmethod
    async def find_one(self, collection: str, filter: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Return the document matching filter, chosen by pick_latest, or None."""

    @abc.abstractmethod
    async def upsert(self, collection: str, filter: Dict[str, Any], fields: Dict[str, Any]) -> None:
        """
        Update the document matching filter with fields, creating it when absent.

        A created document gets created_at set once; the filter values are
        written into it as well.
        """

    @abc.abstractmethod
    async def delete_one(self, collection: str, filter: Dict[str, Any]) -> bool:
        """Delete the document find_one would return. Returns True if one was deleted."""

    @abc.abstractmethod
    async def count(self, collection: str) -> int:
        """Number of documents in collection."""

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None


class InMemoryDocumentStore(DocumentStore):
    """Dictionary-backed store for development and tests."""

    name = "memory"

    def __init__(self):
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = asyncio.Lock()

    def _documents(self, collection: str) -> Dict[str, Dict[str, Any]]:
        key_field(collection)
        return self._collections.setdefault(collection, {})

    def _locate(self, collection: str, filter: Dict[str, Any]) -> Optional[str]:
        documents = self._documents(collection)
        key = filter.get(key_field(collection))
        if key is not None:
            document = documents.get(str(key))
            return str(key) if document is not None and matches(document, filter) else None
        chosen = pick_latest(collection, (d for d in documents.values() if matches(d, filter)))
        return str(chosen[key_field(collection)]) if chosen is not None else None

    async def find_one(self, collection, filter):
        doc_key = self._locate(collection, filter)
        if doc_key is None:
            return None
        return copy.deepcopy(self._documents(collection)[doc_key])

    async def upsert(self, collection, filter, fields):
        async with self._lock:
            documents = self._documents(collection)
            doc_key = self._locate(collection, filter)
            if doc_key is None:
                key_name = key_field(collection)
                key = filter.get(key_name, fields.get(key_name))
                if key is None:
                    raise ValueError(f"Upsert into {collection} needs a {key_name}")
                doc_key = str(key)
                documents[doc_key] = {key_name: doc_key, "created_at": datetime.utcnow()}
            document = documents[doc_key]
            document.update(filter)
            document.update(copy.deepcopy(fields))

    async def delete_one(self, collection, filter):
        async with self._lock:
            doc_key = self._locate(collection, filter)
            if doc_key is None:
                return False
            del self._documents(collection)[doc_key]
            return True

    async def count(self, collection):
        return len(self._documents(collection))
