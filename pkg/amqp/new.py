"""Factory functions for creating AMQP clients."""

from typing import Any, Optional

from pkg.logger.logger import Logger

from .client import AMQPClient, Dialer
from .type import ConnectionParameters


def New(
    params: ConnectionParameters,
    dialer: Optional[Dialer] = None,
    logger: Optional[Logger] = None,
) -> AMQPClient:
    """Create a new client from connection parameters.

    Args:
        params: Connection parameters
        dialer: Connection factory (optional, aio_pika.connect by default)
        logger: Logger instance (optional)

    Returns:
        AMQPClient instance
    """
    return AMQPClient(params, dialer=dialer, logger=logger)


def new_amqp(
    uri: str,
    dialer: Optional[Dialer] = None,
    logger: Optional[Logger] = None,
    **overrides: Any,
) -> AMQPClient:
    """Parse a connection URI and create a client.

    Keyword overrides are applied to the parsed ConnectionParameters, e.g.
    ``new_amqp("amqp://localhost", queue_name="jobs", auto_ack=False)``.

    Raises:
        InvalidURIError: If the URI cannot be parsed
        TypeError: If an override names an unknown parameter
    """
    params = ConnectionParameters.from_uri(uri)

    for key, value in overrides.items():
        if not hasattr(params, key):
            raise TypeError(f"unknown connection parameter: {key}")
        setattr(params, key, value)

    params.validate()
    return New(params, dialer=dialer, logger=logger)


def new_amqp_from_config(
    config: Any,
    dialer: Optional[Dialer] = None,
    logger: Optional[Logger] = None,
) -> AMQPClient:
    """Create a client from the amqp section of the application config.

    Args:
        config: AMQPConfig instance
        dialer: Connection factory (optional)
        logger: Logger instance (optional)
    """
    return New(config.to_parameters(), dialer=dialer, logger=logger)


__all__ = ["New", "new_amqp", "new_amqp_from_config"]
