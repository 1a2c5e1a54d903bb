"""Tests for transient status messages."""

from __future__ import annotations

import asyncio

import pytest

from dragonsheet.engine.status import StatusMessage


class TestStatusMessage:
    """Tests for the reset-on-replace expiry timer."""

    async def test_expires(self) -> None:
        status = StatusMessage(default_duration=0.05)

        status.show("Initiative drawn: 4")
        assert status.text == "Initiative drawn: 4"

        await asyncio.sleep(0.1)
        assert status.text is None

    async def test_replace_cancels_previous_expiry(self) -> None:
        status = StatusMessage(default_duration=10)

        status.show("first", 0.05)
        status.show("second", 0.3)
        await asyncio.sleep(0.1)

        assert status.text == "second"

    async def test_clear(self) -> None:
        status = StatusMessage()

        status.show("hello")
        status.clear()

        assert status.text is None

    def test_requires_running_loop(self) -> None:
        with pytest.raises(RuntimeError):
            StatusMessage().show("no loop")
