"""Transient status messages with a reset-on-replace expiry timer."""

from __future__ import annotations

import asyncio

from dragonsheet.core.logging import get_logger


logger = get_logger(__name__)


class StatusMessage:
    """A single status line that clears itself after a while.

    Showing a new message cancels the pending expiry of the previous one.
    Must be used from inside a running event loop.
    """

    def __init__(self, default_duration: float = 30.0) -> None:
        self._default_duration = default_duration
        self._text: str | None = None
        self._expiry: asyncio.TimerHandle | None = None

    @property
    def text(self) -> str | None:
        return self._text

    def show(self, text: str, duration: float | None = None) -> None:
        loop = asyncio.get_running_loop()
        self._cancel_expiry()
        self._text = text
        self._expiry = loop.call_later(
            self._default_duration if duration is None else duration,
            self._expire,
        )
        logger.debug("Status message shown", message=text)

    def clear(self) -> None:
        self._cancel_expiry()
        self._text = None

    def _expire(self) -> None:
        self._expiry = None
        self._text = None

    def _cancel_expiry(self) -> None:
        if self._expiry is not None:
            self._expiry.cancel()
            self._expiry = None


__all__ = [
    "StatusMessage",
]
