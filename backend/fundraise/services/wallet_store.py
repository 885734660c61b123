"""
Wallet Record Store Module

Durable access to user and startup wallet records across one or more
document stores, consulted in precedence order.

Reads return the first backend hit; writes go to every backend and report
the primary backend's outcome. Infrastructure errors never leave this
module: reads degrade to None, writes to False.
"""

import asyncio
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from .document_store import (
    DocumentStore,
    WALLET_COLLECTION,
    STARTUP_WALLET_COLLECTION,
    USERS_COLLECTION,
    IDENTITY_USERS_COLLECTION,
    STARTUPS_COLLECTION,
)
from ..db.schemas import WalletRecord, StartupWalletRecord, SubjectMatch, normalize_wallet_address
from ..utils.config import settings
from ..utils.errors import StoreUnavailableError
from ..utils.logger import store_logger as logger

# (collection, filter, fields)
Write = Tuple[str, Dict[str, Any], Dict[str, Any]]


class WalletRecordStore:
    """Wallet records over an ordered list of document stores."""

    def __init__(
        self,
        backends: Sequence[DocumentStore],
        timeout: Optional[float] = None,
        identity_id_min_length: Optional[int] = None
    ):
        if not backends:
            raise ValueError("WalletRecordStore needs at least one backend")
        self.backends: List[DocumentStore] = list(backends)
        self.timeout = timeout or settings.STORE_TIMEOUT_SECONDS
        self.identity_id_min_length = identity_id_min_length or settings.IDENTITY_ID_MIN_LENGTH

    @property
    def primary(self) -> DocumentStore:
        return self.backends[0]

    def is_identity_id(self, subject_id: str) -> bool:
        """Externally issued identity ids are long strings; sequence ids are short."""
        return len(subject_id) > self.identity_id_min_length

    # Backend access
    async def _bounded(self, backend: DocumentStore, operation: str, coro):
        try:
            return await asyncio.wait_for(coro, self.timeout)
        except asyncio.TimeoutError as e:
            raise StoreUnavailableError(backend.name, operation, e) from e

    async def _find(
        self,
        collection: str,
        filter: Dict[str, Any],
        parse: Callable[[Dict[str, Any]], Any] = None
    ) -> Any:
        found, _ = await self._find_with_backend(collection, filter, parse)
        return found

    async def _find_with_backend(
        self,
        collection: str,
        filter: Dict[str, Any],
        parse: Callable[[Dict[str, Any]], Any] = None
    ) -> Tuple[Any, Optional[DocumentStore]]:
        """First hit in precedence order together with the backend that had it."""
        for backend in self.backends:
            try:
                document = await self._bounded(backend, "find_one", backend.find_one(collection, filter))
            except StoreUnavailableError as e:
                logger.error(f"Read of {collection} {filter} failed: {e}")
                continue
            except Exception as e:
                logger.error(f"Unexpected {backend.name} error reading {collection} {filter}: {e}", exc_info=True)
                continue
            if document is None:
                continue
            if parse is None:
                return document, backend
            try:
                return parse(document), backend
            except (ValidationError, KeyError) as e:
                logger.warning(f"Skipping malformed {collection} document in {backend.name} store: {e}")
        return None, None

    async def _write(self, operation: str, writes: List[Write]) -> bool:
        results = []
        for backend in self.backends:
            try:
                for collection, filter, fields in writes:
                    await self._bounded(backend, operation, backend.upsert(collection, filter, fields))
                results.append(True)
            except StoreUnavailableError as e:
                logger.error(f"{operation} failed: {e}")
                results.append(False)
            except Exception as e:
                logger.error(f"Unexpected {backend.name} error during {operation}: {e}", exc_info=True)
                results.append(False)
        for backend, ok in zip(self.backends[1:], results[1:]):
            if not ok:
                logger.warning(f"{operation} not mirrored to {backend.name} store")
        return results[0]

    # Wallet records
    async def get_wallet_by_subject(self, subject_id: str) -> Optional[WalletRecord]:
        return await self._find(WALLET_COLLECTION, {"user_id": str(subject_id)}, WalletRecord.from_document)

    async def put_wallet(
        self,
        subject_id: str,
        wallet_address: str,
        is_permanent: bool = False,
        source: str = "user-update"
    ) -> bool:
        """
        Upsert a subject's wallet and denormalize it onto the profile records.

        Returns:
            True if the primary backend stored every write
        """
        subject_id = str(subject_id)
        address = normalize_wallet_address(wallet_address)
        if address is None:
            logger.warning(f"Refusing to store empty wallet for {subject_id}")
            return False

        now = datetime.utcnow()
        writes: List[Write] = [
            (WALLET_COLLECTION, {"user_id": subject_id}, {
                "wallet_address": address,
                "is_permanent": is_permanent,
                "source": source,
                "updated_at": now,
            }),
            (USERS_COLLECTION, {"id": subject_id}, {
                "wallet_address": address,
                "wallet_address_updated_at": now,
            }),
        ]
        if self.is_identity_id(subject_id):
            writes.append((IDENTITY_USERS_COLLECTION, {"id": subject_id}, {
                "wallet_address": address,
                "updated_at": now,
            }))

        stored = await self._write("put_wallet", writes)
        if stored:
            logger.info(
                f"Stored {'permanent' if is_permanent else 'temporary'} wallet {address} "
                f"for {subject_id} (source: {source})"
            )
        return stored

    async def remove_wallet(self, subject_id: str) -> bool:
        """
        Delete a subject's wallet record and clear the profile copies.

        Returns:
            True only if every backend completed the removal
        """
        subject_id = str(subject_id)
        now = datetime.utcnow()
        results = []
        for backend in self.backends:
            try:
                await self._bounded(backend, "remove_wallet",
                                    backend.delete_one(WALLET_COLLECTION, {"user_id": subject_id}))
                if await self._bounded(backend, "remove_wallet",
                                       backend.find_one(USERS_COLLECTION, {"id": subject_id})):
                    await self._bounded(backend, "remove_wallet", backend.upsert(
                        USERS_COLLECTION, {"id": subject_id},
                        {"wallet_address": None, "wallet_address_updated_at": now}))
                if self.is_identity_id(subject_id) and await self._bounded(
                        backend, "remove_wallet",
                        backend.find_one(IDENTITY_USERS_COLLECTION, {"id": subject_id})):
                    await self._bounded(backend, "remove_wallet", backend.upsert(
                        IDENTITY_USERS_COLLECTION, {"id": subject_id},
                        {"wallet_address": None, "updated_at": now}))
                results.append(True)
            except StoreUnavailableError as e:
                logger.error(f"remove_wallet failed: {e}")
                results.append(False)
            except Exception as e:
                logger.error(f"Unexpected {backend.name} error during remove_wallet: {e}", exc_info=True)
                results.append(False)

        for backend, ok in zip(self.backends, results):
            if not ok:
                logger.warning(f"remove_wallet for {subject_id} not applied to {backend.name} store")
        removed = all(results)
        if removed:
            logger.info(f"Removed wallet for {subject_id}")
        return removed

    async def lookup_subject_by_wallet(self, wallet_address: str) -> Optional[SubjectMatch]:
        """
        Reverse lookup of the subject that connected a wallet.

        The match names where it was found: the backend for wallet records,
        "<backend>-profile" for the profile fallback. When several subjects
        share a wallet the most recently updated one wins.
        """
        address = normalize_wallet_address(wallet_address)
        if address is None:
            return None
        document, backend = await self._find_with_backend(WALLET_COLLECTION, {"wallet_address": address})
        if document is not None and document.get("user_id"):
            return SubjectMatch(subject_id=document["user_id"], source=backend.name)
        document, backend = await self._find_with_backend(USERS_COLLECTION, {"wallet_address": address})
        if document is not None and document.get("id"):
            return SubjectMatch(subject_id=document["id"], source=f"{backend.name}-profile")
        return None

    async def get_subject_by_wallet(self, wallet_address: str) -> Optional[str]:
        match = await self.lookup_subject_by_wallet(wallet_address)
        return match.subject_id if match else None

    async def get_profile_wallet(self, subject_id: str) -> Optional[str]:
        """Wallet embedded in the subject's profile records, if any."""
        subject_id = str(subject_id)
        document = await self._find(USERS_COLLECTION, {"id": subject_id})
        address = normalize_wallet_address((document or {}).get("wallet_address"))
        if address is None and self.is_identity_id(subject_id):
            document = await self._find(IDENTITY_USERS_COLLECTION, {"id": subject_id})
            address = normalize_wallet_address((document or {}).get("wallet_address"))
        return address

    # Startup wallet records
    async def get_startup_wallet(self, startup_id: str) -> Optional[StartupWalletRecord]:
        return await self._find(
            STARTUP_WALLET_COLLECTION, {"startup_id": str(startup_id)}, StartupWalletRecord.from_document
        )

    async def put_startup_wallet(
        self,
        startup_id: str,
        founder_id: str,
        wallet_address: str,
        source: str = "user-update"
    ) -> bool:
        """
        Upsert a startup's wallet and denormalize it onto the startup record
        under both field names older readers use.
        """
        startup_id, founder_id = str(startup_id), str(founder_id)
        address = normalize_wallet_address(wallet_address)
        if address is None:
            logger.warning(f"Refusing to store empty wallet for startup {startup_id}")
            return False

        now = datetime.utcnow()
        stored = await self._write("put_startup_wallet", [
            (STARTUP_WALLET_COLLECTION, {"startup_id": startup_id}, {
                "founder_id": founder_id,
                "wallet_address": address,
                "source": source,
                "updated_at": now,
            }),
            (STARTUPS_COLLECTION, {"id": startup_id}, {
                "wallet_address": address,
                "founder_wallet_address": address,
                "founder_id": founder_id,
                "wallet_address_updated_at": now,
            }),
        ])
        if stored:
            logger.info(f"Stored wallet {address} for startup {startup_id} (founder: {founder_id}, source: {source})")
        return stored

    # Status
    async def count_wallets(self) -> Tuple[int, int]:
        """(user wallets, startup wallets) as reported by the first reachable backend."""
        for backend in self.backends:
            try:
                users = await self._bounded(backend, "count", backend.count(WALLET_COLLECTION))
                startups = await self._bounded(backend, "count", backend.count(STARTUP_WALLET_COLLECTION))
            except StoreUnavailableError as e:
                logger.error(f"Wallet count failed: {e}")
                continue
            except Exception as e:
                logger.error(f"Unexpected {backend.name} error counting wallets: {e}", exc_info=True)
                continue
            logger.info(f"Wallet check: {users} user wallets and {startups} startup wallets in {backend.name} store")
            return users, startups
        return 0, 0

    async def wallets_exist(self) -> bool:
        users, startups = await self.count_wallets()
        return users > 0 or startups > 0

    async def health(self) -> Dict[str, bool]:
        """Reachability of each backend by name."""
        status = {}
        for backend in self.backends:
            try:
                status[backend.name] = bool(await asyncio.wait_for(backend.ping(), self.timeout))
            except Exception as e:
                logger.error(f"{backend.name} health check failed: {e}")
                status[backend.name] = False
        return status
