from .constant import DEFAULT_QUEUE_NAME, DEFAULT_CONNECT_TIMEOUT, VERSION
from .type import DeliveryMode, MessageHeader, ConnectionParameters, CloseEvent
from .errors import (
    AMQPError,
    ConnectionNotExistError,
    InvalidURIError,
    BrokerCloseError,
    ServerCloseError,
    ClientCloseError,
    TeardownError,
    DecodeError,
    MalformedPayloadError,
    BufferTooSmallError,
    UnsupportedTargetError,
)
from .interface import IBrokerClient, IPublisher, ISubscriber
from .stream import Stream, StreamClosed
from .message import Message
from .bridge import ErrorBridge
from .client import AMQPClient
from .new import New, new_amqp, new_amqp_from_config

__all__ = [
    # Interfaces
    "IBrokerClient",
    "IPublisher",
    "ISubscriber",
    # Implementations
    "AMQPClient",
    "ErrorBridge",
    "Message",
    "Stream",
    "New",
    "new_amqp",
    "new_amqp_from_config",
    # Types
    "ConnectionParameters",
    "MessageHeader",
    "DeliveryMode",
    "CloseEvent",
    # Constants
    "DEFAULT_QUEUE_NAME",
    "DEFAULT_CONNECT_TIMEOUT",
    "VERSION",
    # Errors
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
    "StreamClosed",
]
