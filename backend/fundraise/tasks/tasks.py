"""
Background tasks for wallet store maintenance.
"""
from typing import Any, Dict, Optional, Sequence
import asyncio
import time

from ..tasks.celery_app import celery_app
from ..services.backends import open_document_stores, close_document_stores
from ..services.seeder import WalletSeeder
from ..services.wallet_store import WalletRecordStore
from ..utils.seeds import load_seed_data
from ..utils.logger import celery_logger as logger


async def _seed_known_wallets_async(backend_names: Optional[Sequence[str]] = None,
                                    seed_file: Optional[str] = None) -> Dict[str, Any]:
    """Open the configured backends, seed them and close them again."""
    start_time = time.time()
    seeds = load_seed_data(seed_file)
    backends = await open_document_stores(backend_names)
    try:
        store = WalletRecordStore(backends)
        success = await WalletSeeder(store, seeds).initialize_known_wallets()
    finally:
        await close_document_stores(backends)

    duration = time.time() - start_time
    logger.info(f"Seeding task finished in {duration:.2f}s, success={success}")
    return {
        "status": "success" if success else "partial",
        "wallets": len(seeds.wallets),
        "associations": len(seeds.associations),
        "duration": round(duration, 3),
    }


@celery_app.task(name="seed_known_wallets")
def seed_known_wallets(backend_names: Optional[Sequence[str]] = None,
                       seed_file: Optional[str] = None) -> Dict[str, Any]:
    """Task to write the known seed wallets into every configured backend."""
    logger.info("Starting known wallet seeding task")
    return asyncio.run(_seed_known_wallets_async(backend_names, seed_file))
