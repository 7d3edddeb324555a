from datetime import timedelta

PRODUCT_NAME = "qcat"
VERSION = "0.1.0"

# Connection Defaults
DEFAULT_QUEUE_NAME = "qcat"
DEFAULT_CONNECT_TIMEOUT = 5.0
DEFAULT_HEARTBEAT_INTERVAL = 0
DEFAULT_PREFETCH_COUNT = 0
DEFAULT_AUTO_ACK = True
DEFAULT_HOST = "localhost"
DEFAULT_USERNAME = "guest"
DEFAULT_PASSWORD = "guest"
DEFAULT_VHOST = "/"

SCHEME_AMQP = "amqp"
SCHEME_AMQPS = "amqps"
DEFAULT_PORTS = {
    SCHEME_AMQP: 5672,
    SCHEME_AMQPS: 5671,
}

# Client identity property keys
PROPERTY_PRODUCT = "product"
PROPERTY_VERSION = "version"
PROPERTY_HOSTNAME = "hostname"

# Delivery modes (wire values)
DELIVERY_MODE_TRANSIENT = 1
DELIVERY_MODE_PERSISTENT = 2

NO_EXPIRATION = timedelta(0)

CONTENT_TYPE_JSON = "application/json"

# Output stream capacity for subscribed messages
DEFAULT_OUTPUT_BUFFER = 1

# AMQP reply code for a normal (non-error) close
REPLY_SUCCESS = 200

# Errors
ERROR_CONNECTION_NOT_EXIST = "Cannot close, connection does not exist"
ERROR_NOT_CONNECTED = "Not connected to broker. Call connect() first."
ERROR_NOT_SUBSCRIBED = "No queue declared. Set queue_name before connect()."
ERROR_INVALID_SCHEME = "invalid AMQP scheme {scheme!r}, expected 'amqp' or 'amqps'"
ERROR_INVALID_URI = "invalid AMQP URI {uri!r}: {reason}"
ERROR_INVALID_PORT = "port must be between 1 and 65535, got {port}"
ERROR_PREFETCH_NEGATIVE = "prefetch must not be negative, got {count}"
ERROR_CONNECT_TIMEOUT_POSITIVE = "connect_timeout must be positive, got {value}"
ERROR_HEARTBEAT_NEGATIVE = "heartbeat_interval must not be negative, got {value}"
ERROR_SERVER_CLOSE = "server error {code}: {reason}"
ERROR_CLIENT_CLOSE = "client error {code}: {reason}"
ERROR_TEARDOWN = "{count} error(s) occurred while closing: {errors}"
ERROR_BUFFER_TOO_SMALL = "target must be able to hold at least {size} bytes"
ERROR_UNSUPPORTED_TARGET = "cannot assign a string value to target of type {type}"
ERROR_INVALID_TEXT = "cannot assign a non UTF-8 body to target of type {type}: {reason}"
ERROR_MALFORMED_JSON = "malformed JSON payload: {reason}"
ERROR_JSON_MISMATCH = "JSON payload does not match target {type}: {reason}"
