from __future__ import annotations

import asyncio
import ssl
from dataclasses import dataclass, field
from datetime import timedelta
from enum import IntEnum
from typing import Any, Dict, Optional
from urllib.parse import quote, unquote, urlencode, urlsplit

import aiormq

from .constant import *
from .errors import InvalidURIError


class DeliveryMode(IntEnum):
    """Logical delivery mode of a message."""

    TRANSIENT = DELIVERY_MODE_TRANSIENT
    PERSISTENT = DELIVERY_MODE_PERSISTENT


@dataclass
class MessageHeader:
    """Properties sent with, or received alongside, a message body.

    Attributes:
        content_type: MIME type of the body
        content_encoding: Encoding of the body (e.g. gzip)
        delivery_mode: 1 (transient) or 2 (persistent); other values are sent unset
        priority: Message priority
        expiration: Per-message TTL; zero means the message never expires
    """

    content_type: str = ""
    content_encoding: str = ""
    delivery_mode: int = DeliveryMode.TRANSIENT
    priority: int = 0
    expiration: timedelta = NO_EXPIRATION


def wire_delivery_mode(mode: Any) -> Optional[int]:
    """Map a logical delivery mode to its wire value, None when unset."""
    if mode == DeliveryMode.TRANSIENT:
        return DELIVERY_MODE_TRANSIENT
    if mode == DeliveryMode.PERSISTENT:
        return DELIVERY_MODE_PERSISTENT
    return None


def encode_expiration(expiration: Optional[timedelta]) -> Optional[str]:
    """Encode a TTL as whole milliseconds, rounded to the nearest one.

    Returns None when the message should carry no expiration at all.
    """
    if not expiration or expiration <= NO_EXPIRATION:
        return None
    return str(round(expiration / timedelta(milliseconds=1)))


@dataclass
class ConnectionParameters:
    """Connection, queue and QoS settings for one client instance.

    Built once from a connection URI with from_uri() and then free to be
    adjusted by the caller up until connect().
    """

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORTS[SCHEME_AMQP]
    username: str = DEFAULT_USERNAME
    password: str = DEFAULT_PASSWORD
    vhost: str = DEFAULT_VHOST
    scheme: str = SCHEME_AMQP
    id: str = ""
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    heartbeat_interval: float = DEFAULT_HEARTBEAT_INTERVAL
    tls: Optional[ssl.SSLContext] = None
    exchange_name: str = ""
    routing_key: str = ""
    queue_name: str = DEFAULT_QUEUE_NAME
    durable: bool = False
    autodelete: bool = False
    exclusive: bool = False
    mandatory: bool = False
    immediate: bool = False
    auto_ack: bool = DEFAULT_AUTO_ACK
    prefetch: int = DEFAULT_PREFETCH_COUNT
    headers: Dict[str, Any] = field(default_factory=dict)
    client_properties: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Validate configuration."""
        self.validate()

    def validate(self) -> None:
        if self.scheme not in DEFAULT_PORTS:
            raise InvalidURIError(ERROR_INVALID_SCHEME.format(scheme=self.scheme))

        if self.port <= 0 or self.port > 65535:
            raise ValueError(ERROR_INVALID_PORT.format(port=self.port))

        if self.prefetch < 0:
            raise ValueError(ERROR_PREFETCH_NEGATIVE.format(count=self.prefetch))

        if self.connect_timeout <= 0:
            raise ValueError(
                ERROR_CONNECT_TIMEOUT_POSITIVE.format(value=self.connect_timeout)
            )

        if self.heartbeat_interval < 0:
            raise ValueError(
                ERROR_HEARTBEAT_NEGATIVE.format(value=self.heartbeat_interval)
            )

    @classmethod
    def from_uri(cls, uri: str) -> "ConnectionParameters":
        """Parse an amqp:// or amqps:// URI.

        An absent path selects the "/" vhost; otherwise the path minus its
        leading slash is the vhost, so "amqp://host/" selects "" and
        "amqp://host/%2f" selects "/".

        Raises:
            InvalidURIError: If the scheme or port is invalid
        """
        try:
            parts = urlsplit(uri)
            port = parts.port
        except ValueError as e:
            raise InvalidURIError(ERROR_INVALID_URI.format(uri=uri, reason=e)) from e

        scheme = parts.scheme.lower()
        if scheme not in DEFAULT_PORTS:
            raise InvalidURIError(ERROR_INVALID_SCHEME.format(scheme=parts.scheme))

        vhost = DEFAULT_VHOST
        if parts.path:
            vhost = unquote(parts.path[1:] if parts.path.startswith("/") else parts.path)

        return cls(
            scheme=scheme,
            host=parts.hostname or DEFAULT_HOST,
            port=port or DEFAULT_PORTS[scheme],
            username=unquote(parts.username) if parts.username is not None else DEFAULT_USERNAME,
            password=unquote(parts.password) if parts.password is not None else DEFAULT_PASSWORD,
            vhost=vhost,
        )

    def url(self) -> str:
        """Build the dial URI from the current field values."""
        userinfo = f"{quote(self.username, safe='')}:{quote(self.password, safe='')}"
        url = (
            f"{self.scheme}://{userinfo}@{self.host}:{self.port}/"
            f"{quote(self.vhost, safe='')}"
        )

        if self.heartbeat_interval > 0:
            url += "?" + urlencode({"heartbeat": max(1, round(self.heartbeat_interval))})

        return url


@dataclass
class CloseEvent:
    """A channel closure reported by the broker library.

    Attributes:
        code: AMQP reply code
        reason: Reply text
        server: True when the broker sent the close
    """

    code: int
    reason: str
    server: bool

    @classmethod
    def from_exception(cls, exc: Optional[BaseException]) -> Optional["CloseEvent"]:
        """Classify the exception handed to a close callback.

        Returns None for a graceful closure, which carries no error.
        """
        if exc is None or isinstance(exc, asyncio.CancelledError):
            return None

        code = getattr(exc, "reply_code", None) or getattr(exc, "code", None)
        reason = None
        for arg in exc.args:
            if code is None and isinstance(arg, int) and not isinstance(arg, bool):
                code = arg
            elif reason is None and isinstance(arg, str):
                reason = arg

        code = int(code or 0)
        if code == REPLY_SUCCESS:
            return None

        return cls(
            code=code,
            reason=reason if reason is not None else (str(exc) or type(exc).__name__),
            server=isinstance(exc, aiormq.exceptions.AMQPError) and code != 0,
        )


__all__ = [
    "DeliveryMode",
    "MessageHeader",
    "ConnectionParameters",
    "CloseEvent",
    "wire_delivery_mode",
    "encode_expiration",
]
