from __future__ import annotations

import asyncio
import socket
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Awaitable, Callable, List, Optional, Union

import aio_pika
from aio_pika.abc import (
    AbstractChannel,
    AbstractConnection,
    AbstractIncomingMessage,
    AbstractQueue,
)

from pkg.logger.logger import Logger

from .bridge import ErrorBridge
from .constant import *
from .errors import ConnectionNotExistError, TeardownError
from .interface import IBrokerClient
from .message import Message, OutgoingMessage
from .stream import Stream
from .type import ConnectionParameters, MessageHeader

Dialer = Callable[..., Awaitable[AbstractConnection]]
LineSource = Union[Any, AsyncIterator[Union[str, bytes]]]


class AMQPClient(IBrokerClient):
    """Publish/subscribe client owning one broker connection and channel.

    connect() dials the broker, opens a channel, applies QoS, starts the
    error bridge and declares the configured queue. Messages are published
    with publish()/publish_lines(); subscribe() forwards deliveries to the
    stream returned by receive(), and channel closures arrive on err().

    Not safe for concurrent connect()/close() calls.

    Attributes:
        params: Connection parameters, adjustable until connect()
        connection: Active broker connection
        channel: Active channel
        queue: Declared queue, None for publish-only use
    """

    def __init__(
        self,
        params: ConnectionParameters,
        dialer: Optional[Dialer] = None,
        logger: Optional[Logger] = None,
    ):
        """Initialize the client.

        Args:
            params: Connection parameters
            dialer: Coroutine function opening a connection, aio_pika.connect by default
            logger: Logger instance (optional)
        """
        self.params = params
        self.dialer: Dialer = dialer or aio_pika.connect
        self.logger = logger or Logger()

        self.connection: Optional[AbstractConnection] = None
        self.channel: Optional[AbstractChannel] = None
        self.queue: Optional[AbstractQueue] = None

        self._consumer_tag: Optional[str] = None
        self._deliveries: Optional[Stream[AbstractIncomingMessage]] = None
        self._outchan: Stream[Message] = Stream(maxsize=DEFAULT_OUTPUT_BUFFER)
        self._errchan: Stream[Exception] = Stream()
        self._bridges: List[ErrorBridge] = []
        self._forwarder: Optional[asyncio.Task] = None

    def _ensure_client_properties(self) -> None:
        props = self.params.client_properties

        if PROPERTY_PRODUCT not in props:
            props[PROPERTY_PRODUCT] = PRODUCT_NAME
            props[PROPERTY_VERSION] = VERSION

        if PROPERTY_HOSTNAME not in props:
            try:
                props[PROPERTY_HOSTNAME] = socket.gethostname()
            except OSError as e:
                self.logger.debug(f"Could not resolve local hostname: {e}")

    async def connect(self) -> None:
        """Dial the broker and prepare the channel and queue.

        A queue is declared only when params.queue_name is set. If the
        declaration fails the channel is closed before the error is raised;
        the connection stays open and close() must still be called.

        Raises:
            Exception: The broker library's error from whichever step failed
        """
        self.params.validate()
        self._ensure_client_properties()

        self.logger.info(
            f"Connecting to {self.params.scheme}://{self.params.host}:{self.params.port} "
            f"(vhost={self.params.vhost!r}, timeout={self.params.connect_timeout}s)"
        )

        try:
            connection = await self.dialer(
                self.params.url(),
                ssl_context=self.params.tls,
                client_properties=self.params.client_properties,
                timeout=self.params.connect_timeout,
            )
        except Exception as e:
            self.logger.error(f"Failed to connect to broker: {e}")
            raise

        self.connection = connection

        try:
            channel = await connection.channel()
        except Exception as e:
            self.logger.error(f"Failed to open channel: {e}")
            self.connection = None
            await self._close_after_failure(connection, "connection")
            raise

        await channel.set_qos(
            prefetch_count=self.params.prefetch, prefetch_size=0, global_=False
        )
        self.channel = channel

        bridge = ErrorBridge(self._errchan, logger=self.logger)
        bridge.attach(channel)
        self._bridges.append(bridge)

        if not self.params.queue_name:
            self.logger.info("Connected without queue (publish only)")
            return

        try:
            self.queue = await channel.declare_queue(
                self.params.queue_name,
                durable=self.params.durable,
                auto_delete=self.params.autodelete,
                exclusive=self.params.exclusive,
                arguments=self.params.headers,
            )
        except Exception as e:
            self.logger.error(
                f"Failed to declare queue '{self.params.queue_name}': {e}"
            )
            await self._close_after_failure(channel, "channel")
            raise

        self.logger.info(
            f"Connected, queue '{self.params.queue_name}' declared "
            f"(durable={self.params.durable}, prefetch={self.params.prefetch})"
        )

    async def _close_after_failure(self, resource: Any, name: str) -> None:
        # The setup error is the one reported; a failed cleanup is only logged.
        try:
            await resource.close()
        except Exception as e:
            self.logger.warning(f"Failed to close {name} after setup error: {e}")

    async def close(self) -> None:
        """Cancel the consumer, close the channel and close the connection.

        Every step runs even if an earlier one fails.

        Raises:
            ConnectionNotExistError: If connect() never succeeded in dialing
            TeardownError: With every failure recorded during teardown
        """
        if self.connection is None:
            raise ConnectionNotExistError(ERROR_CONNECTION_NOT_EXIST)

        errors: List[BaseException] = []

        if self.channel is not None:
            if self.queue is not None and self._consumer_tag is not None:
                try:
                    await self.queue.cancel(self._consumer_tag)
                except Exception as e:
                    self.logger.warning(
                        f"Failed to cancel consumer '{self._consumer_tag}': {e}"
                    )
                    errors.append(e)

            self._consumer_tag = None
            if self._deliveries is not None:
                self._deliveries.close()

            try:
                await self.channel.close()
            except Exception as e:
                self.logger.warning(f"Failed to close channel: {e}")
                errors.append(e)

        try:
            await self.connection.close()
        except Exception as e:
            self.logger.warning(f"Failed to close connection: {e}")
            errors.append(e)

        if errors:
            raise TeardownError(errors)

        self.logger.info("Connection closed")

    def is_connected(self) -> bool:
        return (
            self.connection is not None
            and not self.connection.is_closed
            and self.channel is not None
            and not self.channel.is_closed
        )

    def _require_channel(self) -> AbstractChannel:
        if self.channel is None:
            raise ConnectionNotExistError(ERROR_NOT_CONNECTED)
        return self.channel

    def build_message(self, data: bytes, header: MessageHeader) -> OutgoingMessage:
        """Build the publish request for one message body."""
        return OutgoingMessage(data, header, timestamp=datetime.now(timezone.utc))

    async def publish(self, data: bytes, header: MessageHeader) -> None:
        """Publish a single message to the configured exchange and routing key.

        Raises:
            ConnectionNotExistError: If not connected
            Exception: The broker library's send error, unchanged
        """
        channel = self._require_channel()

        if self.params.exchange_name:
            exchange = await channel.get_exchange(self.params.exchange_name, ensure=False)
        else:
            exchange = channel.default_exchange

        await exchange.publish(
            self.build_message(data, header),
            routing_key=self.params.routing_key,
            mandatory=self.params.mandatory,
            immediate=self.params.immediate,
        )

        self.logger.debug(
            f"Published {len(data)} bytes to exchange='{self.params.exchange_name}', "
            f"routing_key='{self.params.routing_key}'"
        )

    async def publish_lines(self, reader: LineSource, header: MessageHeader) -> int:
        """Publish every newline-delimited line read from reader.

        reader may be a text or binary file object, any iterable of str or
        bytes, or an async iterable of them. Line terminators ("\\n" or
        "\\r\\n") are not included; blank lines are published as empty
        bodies.

        Returns:
            Number of messages published

        Raises:
            Exception: The first publish or read error
        """
        count = 0
        async for line in _iter_lines(reader):
            await self.publish(line, header)
            count += 1

        self.logger.debug(f"Published {count} line(s)")
        return count

    async def subscribe_raw(self) -> Stream[AbstractIncomingMessage]:
        """Start consuming the declared queue.

        Returns:
            Stream of raw deliveries, closed when the consumer is cancelled
            or the channel closes

        Raises:
            ConnectionNotExistError: If not connected or no queue was declared
            Exception: The broker library's consume error
        """
        channel = self._require_channel()
        if self.queue is None:
            raise ConnectionNotExistError(ERROR_NOT_SUBSCRIBED)

        deliveries: Stream[AbstractIncomingMessage] = Stream()

        async def on_delivery(delivery: AbstractIncomingMessage) -> None:
            if not deliveries.closed:
                await deliveries.put(delivery)

        self._consumer_tag = await self.queue.consume(
            on_delivery,
            no_ack=self.params.auto_ack,
            exclusive=self.params.exclusive,
            arguments=self.params.headers,
            consumer_tag=self.params.id or None,
        )
        consumer_tag = self._consumer_tag

        def on_consumer_cancel(frame: Any) -> None:
            if frame.consumer_tag != consumer_tag:
                return
            self.logger.warning(f"Consumer '{consumer_tag}' cancelled by broker")
            if self._consumer_tag == consumer_tag:
                self._consumer_tag = None
            deliveries.close()

        # Basic.Cancel from the broker (queue deleted, failover) only reaches
        # the underlying aiormq channel.
        underlay = await channel.get_underlay_channel()
        underlay.on_consumer_cancel_callbacks.add(on_consumer_cancel)
        channel.close_callbacks.add(lambda *_: deliveries.close())
        self._deliveries = deliveries

        self.logger.info(
            f"Consuming queue '{self.queue.name}' as '{self._consumer_tag}' "
            f"(auto_ack={self.params.auto_ack})"
        )
        return deliveries

    async def subscribe(self) -> None:
        """Start forwarding deliveries as Messages to receive().

        Returns as soon as the forwarding task is started. The stream from
        receive() is closed when the subscription ends.
        """
        deliveries = await self.subscribe_raw()
        self._forwarder = asyncio.create_task(
            self._forward(deliveries, ack_required=not self.params.auto_ack)
        )

    async def _forward(
        self, deliveries: Stream[AbstractIncomingMessage], ack_required: bool
    ) -> None:
        consumer_tag = self._consumer_tag
        try:
            async for delivery in deliveries:
                with self.logger.delivery_context(
                    consumer_tag=consumer_tag,
                    delivery_tag=getattr(delivery, "delivery_tag", None),
                ):
                    self.logger.debug(f"Received {len(delivery.body)} bytes")
                    message = Message.from_delivery(
                        delivery, ack_required, logger=self.logger
                    )
                    await self._outchan.put(message)
        finally:
            self._outchan.close()
            self.logger.info(f"Subscription '{consumer_tag}' ended")

    def receive(self) -> Stream[Message]:
        return self._outchan

    def err(self) -> Stream[Exception]:
        return self._errchan


async def _iter_chunks(reader: LineSource) -> AsyncIterator[Union[str, bytes]]:
    if isinstance(reader, (str, bytes, bytearray)):
        yield reader
        return

    if hasattr(reader, "__aiter__"):
        async for chunk in reader:
            yield chunk
        return

    for chunk in reader:
        yield chunk
        # Let other tasks run between reads of a synchronous source.
        await asyncio.sleep(0)


async def _iter_lines(reader: LineSource) -> AsyncIterator[bytes]:
    pending = b""
    async for chunk in _iter_chunks(reader):
        if isinstance(chunk, str):
            chunk = chunk.encode("utf-8")

        pending += chunk
        *lines, pending = pending.split(b"\n")
        for line in lines:
            yield _strip_cr(line)

    if pending:
        yield _strip_cr(pending)


def _strip_cr(line: bytes) -> bytes:
    return line[:-1] if line.endswith(b"\r") else line


__all__ = ["AMQPClient"]
