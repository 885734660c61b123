"""
Wallet Resolver Module

Produces the wallet address an investor should pay for a startup, and the
wallet connected by a user, using an ordered chain of lookups:

Startup resolution:
1. Direct startup wallet record
2. Founder wallet, via the founder id on the startup record
3. Founder wallet, via the seed startup-founder associations
4. Seed wallet table keyed by the startup id
5. Configured default founder wallet

User resolution:
1. Wallet record of the subject
2. Wallet embedded in the subject's profile records

Layers run sequentially and stop at the first hit. Successful derived
lookups are written back in the background so the next call takes the
direct path; the write-back never delays the answer.
"""

import asyncio
from functools import partial
from typing import Optional, Set

from .wallet_store import WalletRecordStore
from ..db.schemas import ResolvedWallet, SeedData
from ..utils.config import settings
from ..utils.logger import resolver_logger as logger


class WalletResolver:
    """Layered wallet lookup over a WalletRecordStore."""

    def __init__(
        self,
        store: WalletRecordStore,
        seeds: SeedData,
        default_fallback_enabled: Optional[bool] = None
    ):
        self.store = store
        self.seeds = seeds
        if default_fallback_enabled is None:
            default_fallback_enabled = settings.DEFAULT_WALLET_FALLBACK_ENABLED
        self.default_fallback_enabled = default_fallback_enabled
        self._pending: Set[asyncio.Task] = set()

    # Background write-backs
    def _write_back(self, description: str, coro) -> None:
        task = asyncio.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(partial(self._write_back_done, description))

    def _write_back_done(self, description: str, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning(f"Write-back of {description} failed: {error}")
        elif task.result() is False:
            logger.warning(f"Write-back of {description} was not stored")

    @property
    def pending_write_backs(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for every outstanding write-back."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # User resolution
    async def lookup_user_wallet(self, subject_id: str) -> Optional[ResolvedWallet]:
        """Resolve a user's wallet. There is no default: unknown users give None."""
        subject_id = str(subject_id)
        try:
            record = await self.store.get_wallet_by_subject(subject_id)
            if record is not None:
                logger.info(f"Found wallet for user {subject_id}: {record.wallet_address}")
                return ResolvedWallet(wallet_address=record.wallet_address, source="direct")

            profile_wallet = await self.store.get_profile_wallet(subject_id)
            if profile_wallet:
                logger.info(f"Found wallet in profile record of user {subject_id}: {profile_wallet}")
                self._write_back(
                    f"profile wallet of user {subject_id}",
                    self.store.put_wallet(subject_id, profile_wallet, is_permanent=False,
                                          source="derived-from-profile")
                )
                return ResolvedWallet(wallet_address=profile_wallet, source="profile")
        except Exception as e:
            logger.error(f"Error resolving wallet for user {subject_id}: {e}", exc_info=True)
            return None

        logger.info(f"No wallet found for user {subject_id}")
        return None

    async def resolve_user_wallet(self, subject_id: str) -> Optional[str]:
        resolved = await self.lookup_user_wallet(subject_id)
        return resolved.wallet_address if resolved else None

    # Startup resolution
    async def _via_founder(self, startup_id: str, founder_id: str, source: str) -> Optional[ResolvedWallet]:
        founder = await self.lookup_user_wallet(founder_id)
        if founder is None:
            return None
        logger.info(f"Found wallet for startup {startup_id} via founder {founder_id} ({source}): {founder.wallet_address}")
        self._write_back(
            f"startup {startup_id} wallet",
            self.store.put_startup_wallet(startup_id, founder_id, founder.wallet_address,
                                          source=f"derived-from-{source}")
        )
        return ResolvedWallet(wallet_address=founder.wallet_address, source=source)

    def _default(self, startup_id: str) -> Optional[ResolvedWallet]:
        if not self.default_fallback_enabled:
            logger.warning(f"No wallet found for startup {startup_id} and default fallback is disabled")
            return None
        logger.warning(
            f"Serving default founder wallet {self.seeds.default_wallet} for startup {startup_id}; "
            f"no wallet mapping exists"
        )
        return ResolvedWallet(wallet_address=self.seeds.default_wallet, source="default")

    async def lookup_startup_wallet(self, startup_id: str) -> Optional[ResolvedWallet]:
        """
        Resolve the wallet a startup receives funds at.

        Never raises. Returns None only when the default fallback is disabled
        and no layer produced an address.
        """
        startup_id = str(startup_id)
        logger.info(f"Looking up wallet for startup {startup_id}")
        try:
            record = await self.store.get_startup_wallet(startup_id)
            if record is not None:
                if record.wallet_address:
                    logger.info(f"Found direct wallet for startup {startup_id}: {record.wallet_address}")
                    return ResolvedWallet(wallet_address=record.wallet_address, source="direct")
                if record.founder_id:
                    resolved = await self._via_founder(startup_id, record.founder_id, "founder")
                    if resolved is not None:
                        return resolved

            association = self.seeds.association_for(startup_id)
            if association is not None:
                resolved = await self._via_founder(startup_id, association.founder_id, "association")
                if resolved is not None:
                    return resolved

            seed_wallet = self.seeds.wallets.get(startup_id)
            if seed_wallet:
                logger.info(f"Found seed wallet keyed by startup {startup_id}: {seed_wallet}")
                self._write_back(
                    f"startup {startup_id} seed wallet",
                    self.store.put_startup_wallet(startup_id, startup_id, seed_wallet, source="seed")
                )
                return ResolvedWallet(wallet_address=seed_wallet, source="seed")

            return self._default(startup_id)
        except Exception as e:
            logger.error(f"Error resolving wallet for startup {startup_id}: {e}", exc_info=True)
            return self._default(startup_id)

    async def resolve_startup_wallet(self, startup_id: str) -> Optional[str]:
        resolved = await self.lookup_startup_wallet(startup_id)
        return resolved.wallet_address if resolved else None
