"""Tests for the event emitter."""
from unittest.mock import AsyncMock, Mock

import pytest

from edgeserver_upload.utils.events import EventEmitter


class TestEventEmitter:
    @pytest.mark.asyncio
    async def test_sync_and_async_listeners(self):
        events = EventEmitter()
        sync_cb = Mock()
        async_cb = AsyncMock()
        events.on("progress", sync_cb)
        events.on("progress", async_cb)

        await events.emit("progress", 42)

        sync_cb.assert_called_once_with(42)
        async_cb.assert_awaited_once_with(42)

    @pytest.mark.asyncio
    async def test_duplicate_subscription_ignored(self):
        events = EventEmitter()
        cb = Mock()
        events.on("state", cb)
        events.on("state", cb)

        await events.emit("state", "done")

        cb.assert_called_once_with("done")

    @pytest.mark.asyncio
    async def test_off_unsubscribes(self):
        events = EventEmitter()
        cb = Mock()
        events.on("state", cb)
        events.off("state", cb)

        await events.emit("state", "done")

        cb.assert_not_called()

    @pytest.mark.asyncio
    async def test_listener_error_does_not_propagate(self):
        events = EventEmitter()
        failing = Mock(side_effect=RuntimeError("boom"))
        after = Mock()
        events.on("progress", failing)
        events.on("progress", after)

        await events.emit("progress", 1)

        after.assert_called_once_with(1)

    @pytest.mark.asyncio
    async def test_emit_without_listeners(self):
        await EventEmitter().emit("nothing")
