"""
Tests for building the module-level app from settings.
"""

import pytest

from swapflow.core.swap import InMemorySwapStore
from swapflow.main import build_coordinator, settings
from tests.helpers import FakeWallet


@pytest.mark.asyncio
async def test_configured_wallet_builds_coordinator(monkeypatch):
    monkeypatch.setattr(settings, "wallet_provider", "tests.helpers:FakeWallet")
    monkeypatch.setattr(settings, "swap_store_backend", "memory")

    coordinator = build_coordinator()

    assert isinstance(coordinator.wallet, FakeWallet)
    assert isinstance(coordinator.store, InMemorySwapStore)
    assert coordinator.machine.wallet is coordinator.wallet
    await coordinator.shutdown()


def test_no_wallet_serves_quotes_only(monkeypatch):
    monkeypatch.setattr(settings, "wallet_provider", "")

    assert build_coordinator() is None
