"""
Loading of the known-wallet seed resource.
"""
import json
from typing import Optional

from pydantic import ValidationError

from ..db.schemas import SeedData
from .config import settings
from .errors import SeedDataError
from .logger import seeder_logger as logger


def load_seed_data(path: Optional[str] = None) -> SeedData:
    """
    Read and validate the seed file.

    Args:
        path: JSON file to load, defaults to settings.SEED_FILE

    Raises:
        SeedDataError: If the file cannot be read or fails validation
    """
    path = path or settings.SEED_FILE
    try:
        with open(path, 'r', encoding='utf-8') as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise SeedDataError(f"Cannot read seed file {path}: {e}") from e

    try:
        seeds = SeedData.model_validate(raw)
    except ValidationError as e:
        raise SeedDataError(f"Invalid seed file {path}: {e}") from e

    logger.info(
        f"Loaded {len(seeds.wallets)} seed wallets and "
        f"{len(seeds.associations)} startup associations from {path}"
    )
    return seeds
