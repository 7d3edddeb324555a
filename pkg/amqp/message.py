from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

import aio_pika
from aio_pika.abc import AbstractIncomingMessage
from pydantic import TypeAdapter, ValidationError

from pkg.logger.logger import Logger

from .constant import *
from .errors import (
    BufferTooSmallError,
    MalformedPayloadError,
    UnsupportedTargetError,
)
from .type import DeliveryMode, MessageHeader, encode_expiration, wire_delivery_mode


def _is_json(content_type: str) -> bool:
    media_type = (content_type or "").split(";", 1)[0].strip().lower()
    return media_type == CONTENT_TYPE_JSON


@dataclass
class Message:
    """A delivery received from a subscription.

    The message owns its delivery and is the only way to settle it. When the
    subscription ran with auto-ack, acknowledge(), reject() and requeue() are
    no-ops. Otherwise the first of them to succeed settles the delivery and
    any later call does nothing.

    Attributes:
        timestamp: Timestamp set by the publisher, if any
        header: Content properties of the delivery
        body: Raw message body
        ack_required: Whether the consumer must settle this message
    """

    timestamp: Optional[datetime]
    header: MessageHeader
    body: bytes
    ack_required: bool = False
    _delivery: Optional[AbstractIncomingMessage] = field(
        default=None, repr=False, compare=False
    )
    _settled: bool = field(default=False, repr=False, compare=False)
    _logger: Logger = field(default_factory=Logger, repr=False, compare=False)

    @classmethod
    def from_delivery(
        cls,
        delivery: AbstractIncomingMessage,
        ack_required: bool,
        logger: Optional[Logger] = None,
    ) -> "Message":
        """Wrap a raw delivery, taking ownership of it."""
        if delivery.delivery_mode is not None and int(delivery.delivery_mode) == DELIVERY_MODE_PERSISTENT:
            delivery_mode = DeliveryMode.PERSISTENT
        else:
            delivery_mode = DeliveryMode.TRANSIENT

        return cls(
            timestamp=delivery.timestamp,
            header=MessageHeader(
                content_type=delivery.content_type or "",
                content_encoding=delivery.content_encoding or "",
                delivery_mode=delivery_mode,
                priority=int(delivery.priority or 0),
            ),
            body=delivery.body,
            ack_required=ack_required,
            _delivery=delivery,
            _logger=logger or Logger(),
        )

    @property
    def delivery_tag(self) -> Optional[int]:
        return getattr(self._delivery, "delivery_tag", None)

    @property
    def settled(self) -> bool:
        """Whether a disposition has been sent to the broker."""
        return self._settled

    def should_ack(self) -> bool:
        return self.ack_required

    async def acknowledge(self) -> None:
        """Acknowledge the successful processing of this message."""
        if self._can_settle("acknowledge"):
            await self._delivery.ack(multiple=False)
            self._settled = True

    async def reject(self) -> None:
        """Reject this message without requeueing it."""
        if self._can_settle("reject"):
            await self._delivery.nack(multiple=False, requeue=False)
            self._settled = True

    async def requeue(self) -> None:
        """Reject this message and ask the broker to requeue it."""
        if self._can_settle("requeue"):
            await self._delivery.nack(multiple=False, requeue=True)
            self._settled = True

    def _can_settle(self, action: str) -> bool:
        if not self.ack_required:
            return False

        if self._settled:
            self._logger.debug(
                f"Ignoring {action} for delivery_tag={self.delivery_tag}: already settled"
            )
            return False

        return True

    def decode(self, target: Any) -> Any:
        """Decode the body into target according to the content type.

        application/json bodies are parsed and then either merged into a
        dict or list instance, or validated against a type (pydantic model,
        dataclass, builtin or typing annotation). Any other content type is
        copied into a bytearray/memoryview target, or coerced from its text
        into a type target.

        Args:
            target: Container instance, buffer, or type to decode into

        Returns:
            The decoded value, or the byte count for buffer targets

        Raises:
            MalformedPayloadError: Invalid JSON or a shape that does not fit target
            BufferTooSmallError: Zero-capacity buffer with a non-empty body
            UnsupportedTargetError: Target cannot accept a string value
        """
        if _is_json(self.header.content_type):
            return self._decode_json(target)

        if isinstance(target, (bytearray, memoryview)):
            return self._copy_into(target)

        return self._assign_string(target)

    def _decode_json(self, target: Any) -> Any:
        try:
            data = json.loads(self.body)
        except (ValueError, UnicodeDecodeError) as e:
            raise MalformedPayloadError(ERROR_MALFORMED_JSON.format(reason=e)) from e

        if isinstance(target, dict):
            if not isinstance(data, dict):
                raise MalformedPayloadError(
                    ERROR_JSON_MISMATCH.format(type="dict", reason=f"got {type(data).__name__}")
                )
            target.update(data)
            return target

        if isinstance(target, list):
            if not isinstance(data, list):
                raise MalformedPayloadError(
                    ERROR_JSON_MISMATCH.format(type="list", reason=f"got {type(data).__name__}")
                )
            target[:] = data
            return target

        try:
            adapter = TypeAdapter(target)
        except Exception as e:
            raise UnsupportedTargetError(
                ERROR_UNSUPPORTED_TARGET.format(type=type(target).__name__)
            ) from e

        try:
            return adapter.validate_python(data)
        except ValidationError as e:
            raise MalformedPayloadError(
                ERROR_JSON_MISMATCH.format(type=getattr(target, "__name__", target), reason=e)
            ) from e

    def _copy_into(self, buffer: Any) -> int:
        view = memoryview(buffer).cast("B")
        if len(view) == 0 and len(self.body) > 0:
            raise BufferTooSmallError(ERROR_BUFFER_TOO_SMALL.format(size=len(self.body)))

        n = min(len(view), len(self.body))
        view[:n] = self.body[:n]
        return n

    def _assign_string(self, target: Any) -> Any:
        if not isinstance(target, type) and getattr(target, "__origin__", None) is None:
            raise UnsupportedTargetError(
                ERROR_UNSUPPORTED_TARGET.format(type=type(target).__name__)
            )

        if target is bytes:
            return bytes(self.body)

        try:
            text = self.body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise UnsupportedTargetError(
                ERROR_INVALID_TEXT.format(type=getattr(target, "__name__", target), reason=e)
            ) from e

        try:
            return TypeAdapter(target).validate_python(text)
        except Exception as e:
            raise UnsupportedTargetError(
                ERROR_UNSUPPORTED_TARGET.format(type=getattr(target, "__name__", target))
            ) from e


class OutgoingMessage(aio_pika.Message):
    """Publish request whose delivery mode and expiration go out exactly as given.

    aio_pika.Message substitutes transient for an unset delivery mode and
    converts expirations through float seconds, which can drop a
    millisecond. Here an unknown mode stays unset and the expiration is the
    rounded millisecond string from encode_expiration.
    """

    def __init__(self, body: bytes, header: MessageHeader, timestamp: Optional[datetime] = None):
        super().__init__(
            bytes(body),
            content_type=header.content_type,
            content_encoding=header.content_encoding,
            priority=header.priority,
            timestamp=timestamp,
        )
        self.delivery_mode = wire_delivery_mode(header.delivery_mode)
        self._expiration_ms = encode_expiration(header.expiration)
        if self._expiration_ms is not None:
            self.expiration = header.expiration

    @property
    def properties(self) -> Any:
        properties = super().properties
        properties.delivery_mode = self.delivery_mode
        properties.expiration = self._expiration_ms
        return properties


__all__ = ["Message", "OutgoingMessage"]
