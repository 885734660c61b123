"""
SQL document store operations.

Implements the document store contract on top of the legacy relational
tables, mapping each collection to its ORM model and document fields to
columns of the same name.

Key Features:
- Async database operations
- Error handling and logging
- Transaction per write
"""

import asyncio
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import func, inspect as sa_inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker
from sqlalchemy.future import select

from .models import COLLECTION_MODELS
from .session import check_db_connection
from ..services.document_store import DocumentStore, key_field, pick_latest
from ..utils.errors import StoreUnavailableError
from ..utils.logger import db_logger as logger


class SqlDocumentStore(DocumentStore):
    """Document store over the legacy SQL tables."""

    name = "sql"

    def __init__(self, session_factory: async_sessionmaker, engine: Optional[AsyncEngine] = None):
        self.session_factory = session_factory
        self.engine = engine

    def _model(self, collection: str):
        key_field(collection)
        try:
            return COLLECTION_MODELS[collection]
        except KeyError:
            raise ValueError(f"No table for collection: {collection}")

    def _columns(self, model) -> set:
        return {column.key for column in sa_inspect(model).columns}

    def _known_fields(self, model, values: Dict[str, Any], operation: str) -> Dict[str, Any]:
        columns = self._columns(model)
        unknown = set(values) - columns
        if unknown:
            logger.debug(f"Ignoring fields {sorted(unknown)} for {model.__tablename__} {operation}")
        return {k: v for k, v in values.items() if k in columns}

    def _to_document(self, row) -> Dict[str, Any]:
        return {column: getattr(row, column) for column in self._columns(type(row))}

    async def _run(self, operation: str, func_, *args):
        try:
            return await func_(*args)
        except (SQLAlchemyError, OSError, asyncio.TimeoutError) as e:
            logger.error(f"Database {operation} error: {str(e)}")
            raise StoreUnavailableError(self.name, operation, e) from e

    async def _select_one(self, session, collection: str, model, filter: Dict[str, Any]):
        result = await session.execute(select(model).filter_by(**filter))
        rows = result.scalars().all()
        if len(rows) <= 1:
            return rows[0] if rows else None
        documents = [self._to_document(row) for row in rows]
        chosen = pick_latest(collection, documents)
        return next(row for row, d in zip(rows, documents) if d is chosen)

    async def find_one(self, collection, filter):
        return await self._run("find_one", self._find_one, collection, filter)

    async def _find_one(self, collection, filter):
        model = self._model(collection)
        known = self._known_fields(model, filter, "find_one")
        if len(known) != len(filter):
            # A field the table does not have can never match
            return None
        async with self.session_factory() as session:
            row = await self._select_one(session, collection, model, known)
            return self._to_document(row) if row is not None else None

    async def upsert(self, collection, filter, fields):
        await self._run("upsert", self._upsert, collection, filter, fields)

    async def _upsert(self, collection, filter, fields):
        model = self._model(collection)
        known_filter = self._known_fields(model, filter, "upsert")
        known_fields = self._known_fields(model, fields, "upsert")
        async with self.session_factory() as session:
            async with session.begin():
                row = await self._select_one(session, collection, model, known_filter)
                if row is None:
                    key_name = key_field(collection)
                    if known_filter.get(key_name, known_fields.get(key_name)) is None:
                        raise ValueError(f"Upsert into {collection} needs a {key_name}")
                    row = model(**{**known_filter, **known_fields})
                    if getattr(row, "created_at", None) is None:
                        row.created_at = datetime.utcnow()
                    session.add(row)
                else:
                    for name, value in known_fields.items():
                        setattr(row, name, value)

    async def delete_one(self, collection, filter):
        return await self._run("delete_one", self._delete_one, collection, filter)

    async def _delete_one(self, collection, filter):
        model = self._model(collection)
        known = self._known_fields(model, filter, "delete_one")
        if len(known) != len(filter):
            return False
        async with self.session_factory() as session:
            async with session.begin():
                row = await self._select_one(session, collection, model, known)
                if row is None:
                    return False
                await session.delete(row)
                return True

    async def count(self, collection):
        return await self._run("count", self._count, collection)

    async def _count(self, collection):
        model = self._model(collection)
        async with self.session_factory() as session:
            result = await session.execute(select(func.count()).select_from(model))
            return result.scalar_one()

    async def ping(self) -> bool:
        return await check_db_connection(self.session_factory)

    async def close(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()
