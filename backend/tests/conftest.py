"""
Root conftest file for pytest.

This file is automatically loaded by pytest and contains setup
for making imports work correctly in tests, plus the shared wallet fixtures.
"""
import os
import sys
import tempfile
from pathlib import Path

# Add the backend directory to the Python path for imports
backend_dir = str(Path(__file__).parent.parent)
if backend_dir not in sys.path:
    sys.path.insert(0, backend_dir)

# Test environment, set before the settings module is imported
os.environ.setdefault("STORE_BACKENDS", "memory")
os.environ.setdefault("SEED_ON_STARTUP", "false")
os.environ.setdefault("LOGS_DIR", os.path.join(tempfile.gettempdir(), "fundraise_test_logs"))

import pytest
from fastapi.testclient import TestClient

from fundraise.db.schemas import SeedData
from fundraise.main import create_app
from fundraise.services.document_store import InMemoryDocumentStore
from fundraise.services.resolver import WalletResolver
from fundraise.services.wallet_store import WalletRecordStore

DEFAULT_WALLET = "0x05fe362a1cb1a55a99bfdceb7e91c6cf241ee782"
FOUNDER_WALLET = "0x1111111111111111111111111111111111111111"
LEGACY_STARTUP_WALLET = "0x2222222222222222222222222222222222222222"
IDENTITY_ID = "5SddFKVv8ydDMPl4sSnrgPazt3c2"


@pytest.fixture
def seeds():
    """Small seed set: one default founder, one founder with a startup, one legacy startup key."""
    return SeedData(
        default_founder_id="F-default",
        wallets={
            "F-default": DEFAULT_WALLET,
            "F1": FOUNDER_WALLET,
            "8126": LEGACY_STARTUP_WALLET,
        },
        associations=[{"startup_id": "S1", "founder_id": "F1"}],
    )


@pytest.fixture
def memory_backend():
    return InMemoryDocumentStore()


@pytest.fixture
def wallet_store(memory_backend):
    return WalletRecordStore([memory_backend], timeout=1.0)


@pytest.fixture
def resolver(wallet_store, seeds):
    return WalletResolver(wallet_store, seeds, default_fallback_enabled=True)


@pytest.fixture
def client(wallet_store, seeds):
    """Test client over an in-memory store; the app is started and stopped per test."""
    app = create_app(wallet_store=wallet_store, seeds=seeds, seed_on_startup=False)
    with TestClient(app) as test_client:
        yield test_client
