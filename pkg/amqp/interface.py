"""Interfaces for AMQP publish/subscribe operations."""

from typing import Any, Protocol, runtime_checkable

from .message import Message
from .stream import Stream
from .type import MessageHeader


@runtime_checkable
class IPublisher(Protocol):
    """Protocol for publishing messages."""

    async def publish(self, data: bytes, header: MessageHeader) -> None:
        """Publish a single message."""
        ...

    async def publish_lines(self, reader: Any, header: MessageHeader) -> int:
        """Publish each line read from reader as its own message."""
        ...


@runtime_checkable
class ISubscriber(Protocol):
    """Protocol for consuming messages."""

    async def subscribe_raw(self) -> Stream:
        """Start a consumer and return the raw delivery stream."""
        ...

    async def subscribe(self) -> None:
        """Start forwarding deliveries to receive()."""
        ...

    def receive(self) -> Stream[Message]:
        """Stream of subscribed messages, closed when the subscription ends."""
        ...

    def err(self) -> Stream[Exception]:
        """Stream of asynchronous broker closures."""
        ...


@runtime_checkable
class IBrokerClient(IPublisher, ISubscriber, Protocol):
    """Protocol for a client owning one connection and channel."""

    async def connect(self) -> None:
        """Dial the broker, open a channel and declare the queue."""
        ...

    async def close(self) -> None:
        """Cancel the consumer, close the channel and the connection."""
        ...

    def is_connected(self) -> bool:
        """Check if the connection and channel are open."""
        ...


__all__ = ["IPublisher", "ISubscriber", "IBrokerClient"]
