"""
API tests for the wallet endpoints.
"""
import asyncio
from unittest.mock import AsyncMock

from fastapi.testclient import TestClient

from fundraise.main import create_app
from fundraise.services.document_store import InMemoryDocumentStore, USERS_COLLECTION
from fundraise.services.wallet_store import WalletRecordStore
from fundraise.utils.errors import StoreUnavailableError

DEFAULT_WALLET = "0x05fe362a1cb1a55a99bfdceb7e91c6cf241ee782"
FOUNDER_WALLET = "0x1111111111111111111111111111111111111111"
WALLET = "0xAbCdEf0123456789AbCdEf0123456789AbCdEf01"


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["name"] == "Startup Wallet Service"


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["components"]["memory"]["status"] == "connected"


def test_status_and_initialize(client):
    response = client.get("/api/wallets/status")
    assert response.json() == {"wallets_exist": False, "user_wallets": 0, "startup_wallets": 0}

    response = client.post("/api/wallets/initialize")
    assert response.status_code == 200
    assert response.json() == {"success": True}

    response = client.get("/api/wallets/status")
    assert response.json() == {"wallets_exist": True, "user_wallets": 3, "startup_wallets": 1}


def test_seed_on_startup(wallet_store, seeds):
    app = create_app(wallet_store=wallet_store, seeds=seeds, seed_on_startup=True)
    with TestClient(app) as client:
        response = client.get("/api/wallets/startup/S1")
    assert response.status_code == 200
    assert response.json() == {"wallet_address": FOUNDER_WALLET, "source": "direct"}


def test_connect_and_get_user_wallet(client):
    response = client.post("/api/wallets/connect", json={"user_id": "42", "wallet_address": WALLET})
    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "wallet_address": WALLET.lower(),
        "user_id": "42",
        "startup_id": None,
        "founder_id": None,
    }

    response = client.get("/api/wallets/user/42")
    assert response.status_code == 200
    assert response.json() == {"wallet_address": WALLET.lower(), "source": "direct"}


def test_unknown_user_is_404(client):
    response = client.get("/api/wallets/user/nobody")
    assert response.status_code == 404
    assert response.json()["error"]["code"] == 404


def test_connect_startup_wallet(client):
    response = client.post("/api/wallets/connect", json={
        "startup_id": 8182, "founder_id": "F9", "wallet_address": WALLET
    })
    assert response.status_code == 200
    assert response.json()["founder_id"] == "F9"
    assert response.json()["startup_id"] == "8182"

    response = client.get("/api/wallets/startup/8182")
    assert response.json() == {"wallet_address": WALLET.lower(), "source": "direct"}


def test_connect_requires_an_id(client):
    response = client.post("/api/wallets/connect", json={"wallet_address": WALLET})
    assert response.status_code == 400


def test_connect_rejects_bad_address(client):
    response = client.post("/api/wallets/connect", json={"user_id": "42", "wallet_address": "not-a-wallet"})
    assert response.status_code == 422


def test_connect_failure_is_reported(seeds):
    """A failed user-initiated write answers success false."""
    store = AsyncMock(spec=WalletRecordStore)
    store.put_wallet.return_value = False
    app = create_app(wallet_store=store, seeds=seeds, seed_on_startup=False)
    with TestClient(app) as client:
        response = client.post("/api/wallets/connect", json={"user_id": "42", "wallet_address": WALLET})
    assert response.status_code == 503
    assert response.json()["success"] is False


def test_unknown_startup_gets_default(client):
    response = client.get("/api/wallets/startup/no-such-startup")
    assert response.status_code == 200
    assert response.json() == {"wallet_address": DEFAULT_WALLET, "source": "default"}


def test_unknown_startup_404_without_fallback(wallet_store, seeds):
    app = create_app(wallet_store=wallet_store, seeds=seeds, seed_on_startup=False,
                     default_fallback_enabled=False)
    with TestClient(app) as client:
        response = client.get("/api/wallets/startup/no-such-startup")
    assert response.status_code == 404


def test_get_user_by_wallet(client):
    client.post("/api/wallets/connect", json={"user_id": "42", "wallet_address": WALLET})
    response = client.get(f"/api/wallets/address/{WALLET.upper().replace('0X', '0x')}")
    assert response.status_code == 200
    assert response.json() == {"user_id": "42", "source": "memory"}

    response = client.get("/api/wallets/address/0x0000000000000000000000000000000000000000")
    assert response.status_code == 404


def test_disconnect(client):
    client.post("/api/wallets/connect", json={"user_id": "42", "wallet_address": WALLET})
    response = client.post("/api/wallets/disconnect", json={"user_id": "42"})
    assert response.status_code == 200
    assert response.json() == {"success": True, "user_id": "42"}

    assert client.get("/api/wallets/user/42").status_code == 404
    assert client.post("/api/wallets/disconnect", json={"user_id": "42"}).status_code == 404


def test_permanent_wallet_cannot_be_disconnected(client):
    client.post("/api/wallets/connect", json={"user_id": "42", "wallet_address": WALLET, "is_permanent": True})
    response = client.post("/api/wallets/disconnect", json={"user_id": "42"})
    assert response.status_code == 409
    assert client.get("/api/wallets/user/42").status_code == 200


def test_get_user_by_wallet_from_profile(client, memory_backend):
    """Reverse lookups answered by the profile record say so."""
    asyncio.run(memory_backend.upsert(USERS_COLLECTION, {"id": "7"}, {"wallet_address": WALLET.lower()}))
    response = client.get(f"/api/wallets/address/{WALLET}")
    assert response.status_code == 200
    assert response.json() == {"user_id": "7", "source": "memory-profile"}


def test_disconnect_fails_when_a_backend_keeps_the_wallet(seeds):
    class UndeletableStore(InMemoryDocumentStore):
        name = "legacy"

        async def delete_one(self, collection, filter):
            raise StoreUnavailableError(self.name, "delete_one", ConnectionError("refused"))

    store = WalletRecordStore([InMemoryDocumentStore(), UndeletableStore()], timeout=1.0)
    app = create_app(wallet_store=store, seeds=seeds, seed_on_startup=False)
    with TestClient(app) as client:
        client.post("/api/wallets/connect", json={"user_id": "42", "wallet_address": WALLET})
        response = client.post("/api/wallets/disconnect", json={"user_id": "42"})
    assert response.status_code == 503
    assert response.json() == {"success": False, "user_id": "42"}
