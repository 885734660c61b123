"""
Unit tests for layered wallet resolution.
"""
import asyncio
import logging
from unittest.mock import AsyncMock, patch

import pytest

from fundraise.services.document_store import STARTUP_WALLET_COLLECTION, USERS_COLLECTION
from fundraise.services.resolver import WalletResolver
from fundraise.services.seeder import WalletSeeder
from fundraise.services.wallet_store import WalletRecordStore

DEFAULT_WALLET = "0x05fe362a1cb1a55a99bfdceb7e91c6cf241ee782"
FOUNDER_WALLET = "0x1111111111111111111111111111111111111111"
LEGACY_STARTUP_WALLET = "0x2222222222222222222222222222222222222222"
DIRECT_WALLET = "0x3333333333333333333333333333333333333333"


# User resolution

@pytest.mark.asyncio
async def test_user_wallet_direct(resolver, wallet_store):
    await wallet_store.put_wallet("42", DIRECT_WALLET)
    resolved = await resolver.lookup_user_wallet("42")
    assert resolved.wallet_address == DIRECT_WALLET
    assert resolved.source == "direct"
    assert await resolver.resolve_user_wallet("42") == DIRECT_WALLET


@pytest.mark.asyncio
async def test_unknown_user_has_no_default(resolver):
    """Users never fall back to the default wallet."""
    assert await resolver.lookup_user_wallet("nobody") is None
    assert await resolver.resolve_user_wallet("nobody") is None


@pytest.mark.asyncio
async def test_user_wallet_from_profile_is_written_back(resolver, wallet_store, memory_backend):
    await memory_backend.upsert(USERS_COLLECTION, {"id": "42"}, {"wallet_address": DIRECT_WALLET})

    resolved = await resolver.lookup_user_wallet("42")
    assert resolved.source == "profile"
    assert resolved.wallet_address == DIRECT_WALLET

    await resolver.drain()
    record = await wallet_store.get_wallet_by_subject("42")
    assert record.wallet_address == DIRECT_WALLET
    assert record.is_permanent is False
    assert record.source == "derived-from-profile"


@pytest.mark.asyncio
async def test_user_lookup_error_returns_none(seeds):
    store = AsyncMock(spec=WalletRecordStore)
    store.get_wallet_by_subject.side_effect = RuntimeError("boom")
    resolver = WalletResolver(store, seeds, default_fallback_enabled=True)
    assert await resolver.lookup_user_wallet("42") is None


# Startup resolution

@pytest.mark.asyncio
async def test_startup_wallet_direct(resolver, wallet_store):
    await wallet_store.put_startup_wallet("S7", "F7", DIRECT_WALLET)
    resolved = await resolver.lookup_startup_wallet("S7")
    assert resolved.wallet_address == DIRECT_WALLET
    assert resolved.source == "direct"


@pytest.mark.asyncio
async def test_startup_wallet_via_founder_record(resolver, wallet_store, memory_backend):
    """A record with only a founder id resolves through the founder and is then cached."""
    await memory_backend.upsert(STARTUP_WALLET_COLLECTION, {"startup_id": "S7"}, {"founder_id": "F7"})
    await wallet_store.put_wallet("F7", DIRECT_WALLET)

    resolved = await resolver.lookup_startup_wallet("S7")
    assert resolved.wallet_address == DIRECT_WALLET
    assert resolved.source == "founder"

    await resolver.drain()
    record = await wallet_store.get_startup_wallet("S7")
    assert record.wallet_address == DIRECT_WALLET
    assert record.founder_id == "F7"
    assert record.source == "derived-from-founder"


@pytest.mark.asyncio
async def test_founder_record_without_known_founder_falls_through(resolver, memory_backend):
    await memory_backend.upsert(STARTUP_WALLET_COLLECTION, {"startup_id": "S7"}, {"founder_id": "F7"})
    resolved = await resolver.lookup_startup_wallet("S7")
    assert resolved.source == "default"
    assert resolved.wallet_address == DEFAULT_WALLET


@pytest.mark.asyncio
async def test_seeded_association_scenario(wallet_store, seeds):
    """S1 -> F1 is seeded; a fresh store resolves S1 to F1's wallet."""
    assert await WalletSeeder(wallet_store, seeds).initialize_known_wallets()
    resolver = WalletResolver(wallet_store, seeds, default_fallback_enabled=True)
    assert await resolver.resolve_startup_wallet("S1") == FOUNDER_WALLET

    # Drop the seeded startup record so the association layer does the work
    await wallet_store.primary.delete_one(STARTUP_WALLET_COLLECTION, {"startup_id": "S1"})

    resolved = await resolver.lookup_startup_wallet("S1")
    assert resolved.wallet_address == FOUNDER_WALLET
    assert resolved.source == "association"

    await resolver.drain()
    record = await wallet_store.get_startup_wallet("S1")
    assert record.wallet_address == FOUNDER_WALLET
    assert record.source == "derived-from-association"


@pytest.mark.asyncio
async def test_resolution_is_idempotent(resolver, wallet_store):
    """The second resolution takes the direct path without asking the founder layer."""
    await wallet_store.put_wallet("F1", FOUNDER_WALLET)
    first = await resolver.lookup_startup_wallet("S1")
    assert first.source == "association"
    await resolver.drain()

    with patch.object(resolver, "lookup_user_wallet", wraps=resolver.lookup_user_wallet) as spy:
        second = await resolver.lookup_startup_wallet("S1")
    assert second.wallet_address == first.wallet_address
    assert second.source == "direct"
    spy.assert_not_called()


@pytest.mark.asyncio
async def test_association_with_unknown_founder_falls_through(resolver):
    resolved = await resolver.lookup_startup_wallet("S1")
    assert resolved.source == "default"


@pytest.mark.asyncio
async def test_seed_wallet_keyed_by_startup(resolver, wallet_store):
    resolved = await resolver.lookup_startup_wallet(8126)
    assert resolved.wallet_address == LEGACY_STARTUP_WALLET
    assert resolved.source == "seed"

    await resolver.drain()
    record = await wallet_store.get_startup_wallet("8126")
    assert record.wallet_address == LEGACY_STARTUP_WALLET
    assert record.founder_id == "8126"


@pytest.mark.asyncio
async def test_unknown_startup_gets_default(resolver, caplog):
    """The default is served, and served loudly."""
    with caplog.at_level(logging.WARNING, logger="resolver"):
        resolved = await resolver.lookup_startup_wallet("no-such-startup")
    assert resolved is not None
    assert resolved.wallet_address == DEFAULT_WALLET
    assert resolved.source == "default"
    assert any("default founder wallet" in message for message in caplog.messages)
    assert await resolver.resolve_startup_wallet("no-such-startup") == DEFAULT_WALLET


@pytest.mark.asyncio
async def test_default_is_not_persisted(resolver, wallet_store):
    await resolver.lookup_startup_wallet("no-such-startup")
    await resolver.drain()
    assert await wallet_store.get_startup_wallet("no-such-startup") is None


@pytest.mark.asyncio
async def test_disabled_fallback_returns_none(wallet_store, seeds):
    resolver = WalletResolver(wallet_store, seeds, default_fallback_enabled=False)
    assert await resolver.lookup_startup_wallet("no-such-startup") is None
    assert await resolver.resolve_startup_wallet("no-such-startup") is None


@pytest.mark.asyncio
async def test_store_failure_returns_default(seeds):
    """An exception escaping the store still yields the default wallet."""
    store = AsyncMock(spec=WalletRecordStore)
    store.get_startup_wallet.side_effect = RuntimeError("store exploded")
    resolver = WalletResolver(store, seeds, default_fallback_enabled=True)
    resolved = await resolver.lookup_startup_wallet("S1")
    assert resolved.wallet_address == DEFAULT_WALLET
    assert resolved.source == "default"


@pytest.mark.asyncio
async def test_failed_write_back_does_not_change_answer(seeds):
    store = AsyncMock(spec=WalletRecordStore)
    store.get_startup_wallet.return_value = None
    store.put_startup_wallet.side_effect = RuntimeError("write failed")
    resolver = WalletResolver(store, seeds, default_fallback_enabled=True)

    resolved = await resolver.lookup_startup_wallet("8126")
    assert resolved.wallet_address == LEGACY_STARTUP_WALLET
    await resolver.drain()
    assert resolver.pending_write_backs == 0
    store.put_startup_wallet.assert_awaited_once()


@pytest.mark.asyncio
async def test_write_back_does_not_delay_answer(resolver, wallet_store):
    """The answer is returned while its write-back is still in flight."""
    release = asyncio.Event()
    store_startup_wallet = wallet_store.put_startup_wallet

    async def slow_put_startup_wallet(*args, **kwargs):
        await release.wait()
        return await store_startup_wallet(*args, **kwargs)

    await wallet_store.put_wallet("F1", FOUNDER_WALLET)
    with patch.object(wallet_store, "put_startup_wallet", side_effect=slow_put_startup_wallet):
        resolved = await asyncio.wait_for(resolver.lookup_startup_wallet("S1"), timeout=1.0)
        assert resolved.wallet_address == FOUNDER_WALLET
        assert resolver.pending_write_backs == 1
        assert await wallet_store.get_startup_wallet("S1") is None

        release.set()
        await resolver.drain()

    assert resolver.pending_write_backs == 0
    assert (await wallet_store.get_startup_wallet("S1")).wallet_address == FOUNDER_WALLET
