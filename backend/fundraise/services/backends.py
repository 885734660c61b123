"""
Construction of the configured document store backends.
"""

import asyncio
from typing import List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from .document_store import DocumentStore, InMemoryDocumentStore
from .redis import RedisDocumentStore
from ..db.crud import SqlDocumentStore
from ..db.session import create_engine, create_session_factory, init_db
from ..utils.config import settings
from ..utils.logger import store_logger as logger


async def open_document_stores(
    backend_names: Optional[Sequence[str]] = None,
    timeout: Optional[float] = None
) -> List[DocumentStore]:
    """
    Build the backends in precedence order. Each owns its connection pool.

    A backend that is unreachable at startup is still returned; its calls
    fail at the wallet store boundary until it comes back.
    """
    timeout = timeout or settings.STORE_TIMEOUT_SECONDS
    stores: List[DocumentStore] = []
    for name in backend_names or settings.STORE_BACKENDS:
        if name == "redis":
            stores.append(RedisDocumentStore(timeout=timeout))
        elif name == "sql":
            engine = create_engine(timeout=timeout)
            try:
                await asyncio.wait_for(init_db(engine), timeout)
            except (SQLAlchemyError, OSError, asyncio.TimeoutError) as e:
                logger.error(f"Could not initialize SQL wallet tables: {e}")
            stores.append(SqlDocumentStore(create_session_factory(engine), engine))
        elif name == "memory":
            stores.append(InMemoryDocumentStore())
        else:
            raise ValueError(f"Unknown store backend: {name}")
    logger.info(f"Wallet store backends: {[store.name for store in stores]}")
    return stores


async def close_document_stores(stores: Sequence[DocumentStore]) -> None:
    for store in stores:
        try:
            await store.close()
        except Exception as e:
            logger.error(f"Error closing {store.name} store: {e}")
