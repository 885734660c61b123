"""
Seeds the wallet store with the known founder wallets and startup
associations so the resolver's early layers have data on a fresh store.
Safe to run on every process start.
"""

from .wallet_store import WalletRecordStore
from ..db.schemas import SeedData
from ..utils.logger import seeder_logger as logger


class WalletSeeder:

    def __init__(self, store: WalletRecordStore, seeds: SeedData):
        self.store = store
        self.seeds = seeds

    async def initialize_known_wallets(self) -> bool:
        """
        Write every seed wallet and association. A failing entry is logged
        and skipped.

        Returns:
            True if every entry was stored
        """
        logger.info("Initializing known wallet addresses")
        failures = 0

        for subject_id, wallet in self.seeds.wallets.items():
            try:
                stored = await self.store.put_wallet(subject_id, wallet, is_permanent=True, source="seed")
            except Exception as e:
                logger.warning(f"Error seeding wallet for {subject_id}: {e}")
                stored = False
            if not stored:
                failures += 1
                logger.warning(f"Failed to seed wallet for {subject_id}, continuing")

        for association in self.seeds.associations:
            wallet = self.seeds.wallets.get(association.founder_id, self.seeds.default_wallet)
            try:
                stored = await self.store.put_startup_wallet(
                    association.startup_id, association.founder_id, wallet, source="seed-association"
                )
            except Exception as e:
                logger.warning(f"Error seeding startup {association.startup_id}: {e}")
                stored = False
            if not stored:
                failures += 1
                logger.warning(f"Failed to seed startup {association.startup_id}, continuing")

        total = len(self.seeds.wallets) + len(self.seeds.associations)
        logger.info(f"Seeded {total - failures} of {total} known wallet entries")
        return failures == 0
