"""Errors raised and relayed by the AMQP client."""

from typing import List, Sequence

from .constant import (
    ERROR_CLIENT_CLOSE,
    ERROR_SERVER_CLOSE,
    ERROR_TEARDOWN,
)


class AMQPError(Exception):
    """Base exception for AMQP client operations."""

    pass


class ConnectionNotExistError(AMQPError):
    """Raised when an operation needs a connection that was never established."""

    pass


class InvalidURIError(AMQPError, ValueError):
    """Raised when a connection URI cannot be parsed."""

    pass


class BrokerCloseError(AMQPError):
    """Asynchronous channel closure delivered on the error stream.

    Attributes:
        code: AMQP reply code carried by the closure
        reason: Reply text carried by the closure
        server: True when the broker initiated the closure
    """

    template = ERROR_CLIENT_CLOSE

    def __init__(self, code: int, reason: str):
        self.code = code
        self.reason = reason
        super().__init__(self.template.format(code=code, reason=reason))

    @property
    def server(self) -> bool:
        return isinstance(self, ServerCloseError)


class ServerCloseError(BrokerCloseError):
    """Closure initiated by the broker."""

    template = ERROR_SERVER_CLOSE


class ClientCloseError(BrokerCloseError):
    """Closure initiated on the client side."""

    template = ERROR_CLIENT_CLOSE


class TeardownError(AMQPError):
    """Raised by close() with every failure recorded during teardown.

    Attributes:
        errors: Failures in the order the teardown steps ran
    """

    def __init__(self, errors: Sequence[BaseException]):
        self.errors: List[BaseException] = list(errors)
        super().__init__(
            ERROR_TEARDOWN.format(
                count=len(self.errors),
                errors="; ".join(str(e) or type(e).__name__ for e in self.errors),
            )
        )


class DecodeError(AMQPError):
    """Base exception for message body decoding."""

    pass


class MalformedPayloadError(DecodeError):
    """Body is not valid JSON or does not fit the target structure."""

    pass


class BufferTooSmallError(DecodeError):
    """Target buffer has no room for a non-empty body."""

    pass


class UnsupportedTargetError(DecodeError):
    """Target cannot accept a string value."""

    pass


__all__ = [
    "AMQPError",
    "ConnectionNotExistError",
    "InvalidURIError",
    "BrokerCloseError",
    "ServerCloseError",
    "ClientCloseError",
    "TeardownError",
    "DecodeError",
    "MalformedPayloadError",
    "BufferTooSmallError",
    "UnsupportedTargetError",
]
