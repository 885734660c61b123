"""
Redis Document Store Module

Primary wallet backend. Stores each document as a JSON string and keeps
secondary index sets for fields that are queried by value (reverse wallet
lookups).

Key layout:
- {prefix}:{collection}:doc:{key}            JSON document
- {prefix}:{collection}:idx:{field}:{value}  set of document keys

Key Features:
- Async Redis operations over a shared connection pool
- Socket and connect timeouts on every call
- Retry of transient connection errors
- JSON serialization of datetimes
"""

from redis import asyncio as aioredis
from redis.exceptions import RedisError, ConnectionError as RedisConnectionError, TimeoutError as RedisTimeoutError
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type
from typing import Optional, Any, Dict, List
import json
from datetime import datetime

from .document_store import DocumentStore, INDEXED_FIELDS, key_field, matches, pick_latest
from ..utils.config import settings
from ..utils.errors import StoreUnavailableError
from ..utils.logger import redis_service_logger as logger

transient_retry = retry(
    stop=stop_after_attempt(2),
    wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
    retry=retry_if_exception_type((RedisConnectionError, RedisTimeoutError)),
    reraise=True
)


class RedisDocumentStore(DocumentStore):
    """
    Async Redis implementation of the document store.
    The connection pool is created once and shared by all callers.
    """

    name = "redis"

    def __init__(
        self,
        redis_url: Optional[str] = None,
        key_prefix: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Any = None
    ):
        """
        Initialize Redis connection pool.

        Args:
            redis_url: Connection URL, defaults to settings.REDIS_URL
            key_prefix: Namespace for every key, defaults to settings.REDIS_KEY_PREFIX
            timeout: Socket and connect timeout in seconds
            client: Pre-built client (tests)
        """
        timeout = timeout or settings.STORE_TIMEOUT_SECONDS
        self.prefix = key_prefix or settings.REDIS_KEY_PREFIX
        self.redis = client or aioredis.from_url(
            redis_url or settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            socket_timeout=timeout,
            socket_connect_timeout=timeout,
            health_check_interval=30
        )

    # Key helpers
    def _doc_key(self, collection: str, key: Any) -> str:
        return f"{self.prefix}:{collection}:doc:{key}"

    def _index_key(self, collection: str, field: str, value: Any) -> str:
        return f"{self.prefix}:{collection}:idx:{field}:{value}"

    def _serialize_for_redis(self, value: Any) -> Any:
        """Helper function to serialize data for Redis storage."""
        if isinstance(value, datetime):
            return value.isoformat()
        elif isinstance(value, dict):
            return {k: self._serialize_for_redis(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [self._serialize_for_redis(item) for item in value]
        return value

    async def _run(self, operation: str, func, *args):
        try:
            return await func(*args)
        except (RedisError, OSError) as e:
            logger.error(f"Redis {operation} error: {str(e)}")
            raise StoreUnavailableError(self.name, operation, e) from e

    async def _load(self, doc_key: str) -> Optional[Dict[str, Any]]:
        data = await self.redis.get(doc_key)
        if not data:
            return None
        try:
            return json.loads(data)
        except json.JSONDecodeError:
            logger.warning(f"Skipping malformed document at {doc_key}")
            return None

    async def _candidate_keys(self, collection: str, filter: Dict[str, Any]) -> List[str]:
        key_name = key_field(collection)
        if filter.get(key_name) is not None:
            return [self._doc_key(collection, filter[key_name])]
        for field in INDEXED_FIELDS.get(collection, ()):
            if filter.get(field) is not None:
                members = await self.redis.smembers(self._index_key(collection, field, filter[field]))
                return sorted(members)
        # Unindexed filter: full collection scan
        return [k async for k in self.redis.scan_iter(match=self._doc_key(collection, "*"))]

    async def _locate(self, collection: str, filter: Dict[str, Any]):
        found = {}
        for doc_key in await self._candidate_keys(collection, filter):
            document = await self._load(doc_key)
            if document is not None and matches(document, filter):
                found[doc_key] = document
        chosen = pick_latest(collection, found.values())
        if chosen is None:
            return None, None
        return next(k for k, d in found.items() if d is chosen), chosen

    # DocumentStore interface
    async def find_one(self, collection, filter):
        return await self._run("find_one", self._find_one, collection, filter)

    @transient_retry
    async def _find_one(self, collection, filter):
        _, document = await self._locate(collection, self._serialize_for_redis(filter))
        return document

    async def upsert(self, collection, filter, fields):
        await self._run("upsert", self._upsert, collection, filter, fields)

    @transient_retry
    async def _upsert(self, collection, filter, fields):
        filter = self._serialize_for_redis(filter)
        fields = self._serialize_for_redis(fields)
        doc_key, existing = await self._locate(collection, filter)

        key_name = key_field(collection)
        if existing is None:
            key = filter.get(key_name, fields.get(key_name))
            if key is None:
                raise ValueError(f"Upsert into {collection} needs a {key_name}")
            doc_key = self._doc_key(collection, key)
            existing = {key_name: str(key), "created_at": datetime.utcnow().isoformat()}

        document = {**existing, **filter, **fields}

        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.set(doc_key, json.dumps(document))
            for field in INDEXED_FIELDS.get(collection, ()):
                old_value, new_value = existing.get(field), document.get(field)
                if old_value is not None and old_value != new_value:
                    pipe.srem(self._index_key(collection, field, old_value), doc_key)
                if new_value is not None:
                    pipe.sadd(self._index_key(collection, field, new_value), doc_key)
            await pipe.execute()

    async def delete_one(self, collection, filter):
        return await self._run("delete_one", self._delete_one, collection, filter)

    @transient_retry
    async def _delete_one(self, collection, filter):
        doc_key, document = await self._locate(collection, self._serialize_for_redis(filter))
        if doc_key is None:
            return False
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.delete(doc_key)
            for field in INDEXED_FIELDS.get(collection, ()):
                if document.get(field) is not None:
                    pipe.srem(self._index_key(collection, field, document[field]), doc_key)
            await pipe.execute()
        return True

    async def count(self, collection):
        return await self._run("count", self._count, collection)

    @transient_retry
    async def _count(self, collection):
        key_field(collection)
        total = 0
        async for _ in self.redis.scan_iter(match=self._doc_key(collection, "*")):
            total += 1
        return total

    async def ping(self) -> bool:
        try:
            return bool(await self.redis.ping())
        except (RedisError, OSError) as e:
            logger.error(f"Redis ping error: {str(e)}")
            return False

    async def close(self) -> None:
        await self.redis.aclose()
