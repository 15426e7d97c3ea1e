"""
Tests for the swap record stores.
"""

import json
from unittest.mock import AsyncMock

import pytest

from swapflow.core.swap import (
    ConvexSwapStore,
    InMemorySwapStore,
    JsonFileSwapStore,
    StaleRecordError,
    SwapNotFoundError,
    SwapStatus,
    SwapStoreError,
    create_swap_store,
)
from swapflow.db import ConvexMutationError
from tests.helpers import executed_route, make_record


@pytest.fixture(params=["memory", "file"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemorySwapStore()
    return JsonFileSwapStore(tmp_path / "swaps.json")


class TestLocalStores:
    @pytest.mark.asyncio
    async def test_create_and_get(self, store):
        record = make_record(SwapStatus.AWAITING_APPROVAL_CONFIRMATION, approve_tx_hash="0xapprove")

        await store.create(record)

        loaded = await store.get(record.id)
        assert loaded.id == record.id
        assert loaded.status == SwapStatus.AWAITING_APPROVAL_CONFIRMATION
        assert loaded.approve_tx_hash == "0xapprove"
        assert await store.get("missing") is None

    @pytest.mark.asyncio
    async def test_update_applies_status_and_fields_together(self, store):
        record = await store.create(make_record(SwapStatus.APPROVAL_CONFIRMED))
        route = executed_route()

        updated = await store.update(
            record.id,
            SwapStatus.AWAITING_SETTLEMENT_CONFIRMATION,
            {"route": route, "swap_tx_hash": "0xswap1"},
        )

        assert updated.status == SwapStatus.AWAITING_SETTLEMENT_CONFIRMATION
        assert updated.swap_tx_hash == "0xswap1"
        loaded = await store.get(record.id)
        assert loaded.route.bridge == "stargate"
        assert loaded.route.source_tx_hash == "0xswap1"

    @pytest.mark.asyncio
    async def test_conditional_update_applies_when_status_matches(self, store):
        record = await store.create(make_record(SwapStatus.APPROVAL_CONFIRMED))

        updated = await store.update(
            record.id,
            SwapStatus.AWAITING_SETTLEMENT_CONFIRMATION,
            {"swap_tx_hash": "0xswap1"},
            expected_status=SwapStatus.APPROVAL_CONFIRMED,
        )

        assert updated.status == SwapStatus.AWAITING_SETTLEMENT_CONFIRMATION

    @pytest.mark.asyncio
    async def test_conditional_update_rejects_status_mismatch(self, store):
        record = await store.create(make_record(SwapStatus.SUCCESS, end_time=5))

        with pytest.raises(StaleRecordError) as exc_info:
            await store.update(
                record.id,
                SwapStatus.APPROVAL_CONFIRMED,
                {"end_time": 9},
                expected_status=SwapStatus.AWAITING_APPROVAL_CONFIRMATION,
            )

        assert exc_info.value.actual_status == SwapStatus.SUCCESS
        loaded = await store.get(record.id)
        assert loaded.status == SwapStatus.SUCCESS
        assert loaded.end_time == 5

    @pytest.mark.asyncio
    async def test_update_rejects_immutable_fields(self, store):
        record = await store.create(make_record(SwapStatus.APPROVAL_CONFIRMED))

        with pytest.raises(ValueError):
            await store.update(record.id, None, {"from_amount": 1})

        assert (await store.get(record.id)).from_amount == record.from_amount

    @pytest.mark.asyncio
    async def test_update_unknown_record(self, store):
        with pytest.raises(SwapNotFoundError):
            await store.update("missing", SwapStatus.SUCCESS)

    @pytest.mark.asyncio
    async def test_duplicate_create(self, store):
        record = await store.create(make_record(SwapStatus.APPROVAL_CONFIRMED))
        with pytest.raises(SwapStoreError):
            await store.create(record)

    @pytest.mark.asyncio
    async def test_list_active_skips_terminal(self, store):
        pending = await store.create(make_record(SwapStatus.AWAITING_SETTLEMENT_CONFIRMATION))
        await store.create(make_record(SwapStatus.SUCCESS))
        await store.create(make_record(SwapStatus.FAILED))

        active = await store.list_active()

        assert [record.id for record in active] == [pending.id]


class TestJsonFileSwapStore:
    @pytest.mark.asyncio
    async def test_survives_reopen(self, tmp_path):
        path = tmp_path / "nested" / "swaps.json"
        record = make_record(SwapStatus.AWAITING_SETTLEMENT_CONFIRMATION, swap_tx_hash="0xswap1")
        await JsonFileSwapStore(path).create(record)

        reopened = JsonFileSwapStore(path)
        loaded = await reopened.get(record.id)

        assert loaded == record
        stored = json.loads(path.read_text())
        assert stored["swaps"][record.id]["fromAmount"] == str(10 ** 18)
        assert list(path.parent.iterdir()) == [path]

    @pytest.mark.asyncio
    async def test_corrupt_file(self, tmp_path):
        path = tmp_path / "swaps.json"
        path.write_text("{not json")

        with pytest.raises(SwapStoreError):
            await JsonFileSwapStore(path).get("anything")


class TestConvexSwapStore:
    @pytest.mark.asyncio
    async def test_update_sends_camel_case_fields(self):
        record = make_record(SwapStatus.APPROVAL_CONFIRMED)
        convex = AsyncMock()
        updated = record.with_updates(SwapStatus.AWAITING_SETTLEMENT_CONFIRMATION, swap_tx_hash="0xswap1")
        convex.update_swap.return_value = updated.to_dict()
        store = ConvexSwapStore(convex)

        result = await store.update(
            record.id,
            SwapStatus.AWAITING_SETTLEMENT_CONFIRMATION,
            {"swap_tx_hash": "0xswap1", "route": executed_route()},
        )

        swap_id, status, fields = convex.update_swap.call_args.args
        assert swap_id == record.id
        assert status == "AWAITING_SETTLEMENT_CONFIRMATION"
        assert fields["swapTxHash"] == "0xswap1"
        assert fields["route"]["fromChainId"] == 1
        assert result.swap_tx_hash == "0xswap1"

    @pytest.mark.asyncio
    async def test_status_conflict_is_stale_record(self):
        convex = AsyncMock()
        convex.update_swap.side_effect = ConvexMutationError(
            "status conflict",
            "swaps:update",
            {"code": "STATUS_CONFLICT", "status": "SUCCESS"},
        )
        store = ConvexSwapStore(convex)

        with pytest.raises(StaleRecordError) as exc_info:
            await store.update(
                "swap-1",
                SwapStatus.APPROVAL_CONFIRMED,
                expected_status=SwapStatus.AWAITING_APPROVAL_CONFIRMATION,
            )

        assert exc_info.value.actual_status == "SUCCESS"
        assert convex.update_swap.call_args.kwargs["expected_status"] == "AWAITING_APPROVAL_CONFIRMATION"

    @pytest.mark.asyncio
    async def test_other_mutation_errors_propagate(self):
        convex = AsyncMock()
        convex.update_swap.side_effect = ConvexMutationError("HTTP 500: boom", "swaps:update")

        with pytest.raises(ConvexMutationError):
            await ConvexSwapStore(convex).update("swap-1", SwapStatus.SUCCESS)

    @pytest.mark.asyncio
    async def test_get_missing(self):
        convex = AsyncMock()
        convex.get_swap.return_value = None

        assert await ConvexSwapStore(convex).get("missing") is None

    @pytest.mark.asyncio
    async def test_list_active(self):
        convex = AsyncMock()
        convex.list_active_swaps.return_value = [make_record(SwapStatus.APPROVAL_CONFIRMED).to_dict()]

        active = await ConvexSwapStore(convex).list_active()

        assert [record.status for record in active] == [SwapStatus.APPROVAL_CONFIRMED]


def test_create_swap_store(tmp_path):
    assert isinstance(create_swap_store("memory"), InMemorySwapStore)
    assert isinstance(create_swap_store("file", tmp_path / "swaps.json"), JsonFileSwapStore)
    with pytest.raises(ValueError):
        create_swap_store("redis")
