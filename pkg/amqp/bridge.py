"""Relay of asynchronous channel closures onto the client's error stream."""

from __future__ import annotations

import asyncio
from typing import Any, Optional

from pkg.logger.logger import Logger

from .errors import BrokerCloseError, ClientCloseError, ServerCloseError
from .stream import Stream
from .type import CloseEvent


class ErrorBridge:
    """Background task translating close events into application errors.

    One bridge is attached per opened channel. The channel's close callback
    feeds a notification stream: an error-bearing closure emits one event
    and then ends the stream, a graceful closure only ends it. The relay
    task exits once the stream ends.

    Attributes:
        errors: Stream the translated errors are written to
        task: The relay task, once attached
    """

    def __init__(self, errors: Stream[Exception], logger: Optional[Logger] = None):
        self.errors = errors
        self.logger = logger or Logger()
        self.task: Optional[asyncio.Task] = None
        self._notifications: Stream[CloseEvent] = Stream()

    def attach(self, channel: Any) -> asyncio.Task:
        """Register on the channel's close callbacks and start relaying."""
        channel.close_callbacks.add(self._on_close)
        self.task = asyncio.create_task(self._relay())
        return self.task

    def _on_close(self, sender: Any, exc: Optional[BaseException] = None) -> None:
        if self._notifications.closed:
            return

        event = CloseEvent.from_exception(exc)
        if event is not None:
            self._notifications.put_nowait(event)
        self._notifications.close()

    @staticmethod
    def translate(event: CloseEvent) -> BrokerCloseError:
        if event.server:
            return ServerCloseError(event.code, event.reason)
        return ClientCloseError(event.code, event.reason)

    async def _relay(self) -> None:
        async for event in self._notifications:
            error = self.translate(event)
            self.logger.warning(f"Channel closed: {error}")
            await self.errors.put(error)

        self.logger.debug("Close notification source ended, error bridge stopped")


__all__ = ["ErrorBridge"]
