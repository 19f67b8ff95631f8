"""Test batched per-item execution."""

import asyncio
import time

import pytest

from mcp_client_node.core.config import Settings
from mcp_client_node.mcp.batch_executor import BatchExecutor, resolve_batch_config
from mcp_client_node.mcp.exceptions import MCPConnectionError
from mcp_client_node.mcp.models import BatchConfig, ItemResult


def make_tracking_operation():
    """Operation that records batch overlap and finishes items out of order."""
    state = {"active": 0, "max_active": 0, "started": []}

    async def operation(item, index):
        state["active"] += 1
        state["max_active"] = max(state["max_active"], state["active"])
        state["started"].append(index)
        # later items finish first within a batch
        await asyncio.sleep(0.001 * (10 - index % 10))
        state["active"] -= 1
        return {"value": item * 2}

    return operation, state


class TestResolveBatchConfig:
    """Test effective batch configuration."""

    def test_unbatched_runs_everything_at_once(self):
        """Test no batching configuration gives one batch and no delay."""
        assert resolve_batch_config(7) == BatchConfig(items_per_batch=7, batch_interval_ms=0)

    def test_unbatched_empty_input(self):
        """Test the batch size is at least one."""
        assert resolve_batch_config(0).items_per_batch == 1

    def test_configured_values(self):
        """Test configured size and interval are used."""
        config = resolve_batch_config(100, {"batchSize": 10, "batchInterval": 250})

        assert config == BatchConfig(items_per_batch=10, batch_interval_ms=250)
        assert config.batch_interval_seconds == 0.25

    def test_defaults(self):
        """Test an empty batching block falls back to the defaults."""
        assert resolve_batch_config(100, {}) == BatchConfig(items_per_batch=50, batch_interval_ms=0)

    @pytest.mark.parametrize("batching,expected", [
        ({"batchSize": 0}, 1),
        ({"batchSize": -3}, 1),
        ({"batchSize": 5000}, 1000),
        ({"batchSize": "20"}, 20),
        ({"batchSize": "many"}, 50),
        ({"batchSize": float("nan")}, 50),
    ])
    def test_batch_size_is_clamped(self, batching, expected):
        """Test out-of-range and malformed sizes."""
        assert resolve_batch_config(10, batching).items_per_batch == expected

    def test_interval_is_clamped(self):
        """Test negative and oversized intervals."""
        settings = Settings()

        assert resolve_batch_config(10, {"batchInterval": -100}, settings).batch_interval_ms == 0
        assert resolve_batch_config(10, {"batchInterval": 10 ** 9}, settings).batch_interval_ms == 60000


class TestBatchExecutor:
    """Test batch scheduling, ordering and failure handling."""

    @pytest.mark.parametrize("batch_size", [1, 2, 3, 4, 7, 10, 11])
    async def test_results_follow_input_order(self, batch_size):
        """Test output order matches input order for every batch size."""
        items = list(range(10))
        operation, state = make_tracking_operation()

        results = await BatchExecutor(BatchConfig(batch_size, 0)).run(items, operation)

        assert [r.source_item_index for r in results] == items
        assert [r.payload for r in results] == [{"value": i * 2} for i in items]
        assert state["max_active"] <= batch_size

    async def test_batches_do_not_overlap(self):
        """Test a batch only starts after the previous one settles."""
        operation, state = make_tracking_operation()

        await BatchExecutor(BatchConfig(3, 0)).run(list(range(9)), operation)

        assert state["max_active"] == 3
        assert sorted(state["started"][:3]) == [0, 1, 2]
        assert sorted(state["started"][3:6]) == [3, 4, 5]

    async def test_items_in_a_batch_run_concurrently(self):
        """Test a batch takes about as long as its slowest item."""
        async def operation(item, index):
            await asyncio.sleep(0.05)
            return item

        started = time.monotonic()
        await BatchExecutor(BatchConfig(5, 0)).run(list(range(5)), operation)

        assert time.monotonic() - started < 0.2

    async def test_interval_between_batches_only(self, monkeypatch):
        """Test the delay is applied between batches but not after the last."""
        delays = []
        real_sleep = asyncio.sleep

        async def fake_sleep(seconds, *args, **kwargs):
            if seconds == 0.5:
                delays.append(seconds)
                return
            await real_sleep(seconds, *args, **kwargs)

        monkeypatch.setattr("mcp_client_node.mcp.batch_executor.asyncio.sleep", fake_sleep)

        async def operation(item, index):
            return item

        await BatchExecutor(BatchConfig(2, 500)).run(list(range(5)), operation)

        assert delays == [0.5, 0.5]

    async def test_empty_input(self):
        """Test no items produce no results."""
        async def operation(item, index):
            raise AssertionError("not called")

        assert await BatchExecutor(BatchConfig(3, 0)).run([], operation) == []


class TestFailureHandling:
    """Test tolerant and strict failure modes."""

    async def test_tolerant_mode_isolates_failures(self):
        """Test a failing item yields an error result and the others succeed."""
        async def operation(item, index):
            if index == 2:
                raise ValueError("bad item")
            return {"ok": index}

        results = await BatchExecutor(BatchConfig(2, 0), continue_on_fail=True).run(list(range(5)), operation)

        assert [r.source_item_index for r in results] == [0, 1, 2, 3, 4]
        assert results[2] == ItemResult(payload={"error": "bad item"}, source_item_index=2, error="bad item")
        assert [r.payload for r in results if r.error is None] == [{"ok": 0}, {"ok": 1}, {"ok": 3}, {"ok": 4}]

    async def test_tolerant_mode_aborts_on_connection_loss(self):
        """Test a lost session stops the run instead of failing every item."""
        started = []

        async def operation(item, index):
            started.append(index)
            if index == 1:
                raise MCPConnectionError("Transport error: connection reset")
            return {"ok": index}

        executor = BatchExecutor(BatchConfig(2, 0), continue_on_fail=True)

        with pytest.raises(MCPConnectionError, match="connection reset"):
            await executor.run(list(range(6)), operation)

        assert sorted(started) == [0, 1]

    async def test_strict_mode_propagates_first_failure(self):
        """Test the lowest failing index of the batch is raised."""
        async def operation(item, index):
            if index in (1, 2):
                raise ValueError(f"item {index} failed")
            return index

        with pytest.raises(ValueError, match="item 1 failed"):
            await BatchExecutor(BatchConfig(5, 0)).run(list(range(5)), operation)

    async def test_strict_mode_stops_later_batches(self):
        """Test no further batch starts after a failure."""
        started = []

        async def operation(item, index):
            started.append(index)
            if index == 0:
                raise RuntimeError("boom")
            return index

        with pytest.raises(RuntimeError):
            await BatchExecutor(BatchConfig(2, 0)).run(list(range(6)), operation)

        assert sorted(started) == [0, 1]

    async def test_strict_mode_cancels_pending_items(self):
        """Test unfinished items of the failing batch are cancelled."""
        cancelled = []

        async def operation(item, index):
            if index == 0:
                raise RuntimeError("boom")
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.append(index)
                raise
            return index

        with pytest.raises(RuntimeError):
            await BatchExecutor(BatchConfig(3, 0)).run(list(range(3)), operation)

        assert sorted(cancelled) == [1, 2]

    def test_item_output_format(self):
        """Test rendering in the host item format."""
        assert ItemResult(payload={"a": 1}, source_item_index=3).to_output() == {
            "json": {"a": 1},
            "pairedItem": {"item": 3},
        }
