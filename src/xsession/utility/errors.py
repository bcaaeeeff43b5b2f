"""
Error codes and message templates for xsession.

Codes below 4000 and in the 5000 range are the ones the server reports;
the 4000 range belongs to the client. Templates use %-style placeholders
so the same text can be matched in logs and tests.
"""

# Server-reported codes the session layer reacts to
ER_UNKNOWN_COM_ERROR = 1047
ER_ACCESS_DENIED_ERROR = 1045
ER_MAX_PREPARED_STMT_COUNT_REACHED = 1461
ER_X_CAPABILITIES_PREPARE_FAILED = 5001
ER_X_CAPABILITY_NOT_FOUND = 5002

# Client codes
ER_DEVAPI_MIXED_CONNECTION_ENDPOINT_PRIORITY = 4000
ER_DEVAPI_CONNECTION_TIMEOUT = 4001
ER_DEVAPI_MULTI_HOST_CONNECTION_FAILED = 4002
ER_DEVAPI_BAD_CONNECTION_ENDPOINT_PRIORITY_RANGE = 4007
ER_DEVAPI_BAD_CONNECTION_PORT_RANGE = 4008
ER_DEVAPI_BAD_CONNECTION_TIMEOUT = 4009
ER_DEVAPI_BAD_CLIENT_OPTION = 4010
ER_DEVAPI_BAD_CLIENT_OPTION_VALUE = 4011
ER_DEVAPI_SRV_LOOKUP_NO_PORT = 4012
ER_DEVAPI_SRV_LOOKUP_NO_UNIX_SOCKET = 4013
ER_DEVAPI_SRV_LOOKUP_NO_MULTIPLE_ENDPOINTS = 4014
ER_DEVAPI_SRV_RECORDS_NOT_AVAILABLE = 4015
ER_DEVAPI_BAD_CONNECTION_URI = 4016
ER_DEVAPI_BAD_TLS_OPTIONS = 4017
ER_DEVAPI_NO_SERVER_TLS = 4018
ER_DEVAPI_AUTH_MECHANISM_NOT_SUPPORTED = 4019
ER_DEVAPI_AUTH_INSECURE_PLAIN = 4020
ER_DEVAPI_AUTH_FALLBACK_FAILED = 4021
ER_DEVAPI_BAD_CONNECTION_ATTRIBUTE = 4022
ER_DEVAPI_POOL_QUEUE_TIMEOUT = 4030
ER_DEVAPI_POOL_CLOSED = 4031
ER_DEVAPI_SESSION_CLOSED = 4040
ER_DEVAPI_CONNECTION_CLOSED = 4041

MESSAGES = {
    ER_DEVAPI_MIXED_CONNECTION_ENDPOINT_PRIORITY: (
        "You must either assign no priority to any of the routers "
        "or give a priority for every router"
    ),
    ER_DEVAPI_CONNECTION_TIMEOUT: (
        "Connection attempt to the server was aborted. "
        "Timeout of %d ms was exceeded."
    ),
    ER_DEVAPI_MULTI_HOST_CONNECTION_FAILED: (
        "Unable to connect to any of the target hosts."
    ),
    ER_DEVAPI_BAD_CONNECTION_ENDPOINT_PRIORITY_RANGE: (
        "The priorities must be between 0 and 100"
    ),
    ER_DEVAPI_BAD_CONNECTION_PORT_RANGE: (
        "The port number must be between 0 and 65536."
    ),
    ER_DEVAPI_BAD_CONNECTION_TIMEOUT: (
        "The connection timeout value must be a positive integer (including 0)."
    ),
    ER_DEVAPI_BAD_CLIENT_OPTION: "Client option '%s' is not recognized as valid.",
    ER_DEVAPI_BAD_CLIENT_OPTION_VALUE: (
        "Client option '%s' does not support value '%s'."
    ),
    ER_DEVAPI_SRV_LOOKUP_NO_PORT: (
        "Specifying a port number with DNS SRV lookup is not allowed."
    ),
    ER_DEVAPI_SRV_LOOKUP_NO_UNIX_SOCKET: (
        "Using Unix domain sockets with DNS SRV lookup is not allowed."
    ),
    ER_DEVAPI_SRV_LOOKUP_NO_MULTIPLE_ENDPOINTS: (
        "Specifying multiple hostnames with DNS SRV lookup is not allowed."
    ),
    ER_DEVAPI_SRV_RECORDS_NOT_AVAILABLE: "Unable to locate any hosts for %s.",
    ER_DEVAPI_BAD_CONNECTION_URI: "The connection string is invalid: %s",
    ER_DEVAPI_BAD_TLS_OPTIONS: (
        "Additional TLS options cannot be specified when TLS is disabled."
    ),
    ER_DEVAPI_NO_SERVER_TLS: "The server does not support TLS.",
    ER_DEVAPI_AUTH_MECHANISM_NOT_SUPPORTED: (
        "%s authentication is not supported by the server."
    ),
    ER_DEVAPI_AUTH_INSECURE_PLAIN: (
        "PLAIN authentication is not allowed over an insecure connection."
    ),
    ER_DEVAPI_AUTH_FALLBACK_FAILED: (
        'Authentication failed using "MYSQL41" and "SHA256_MEMORY", '
        "check username and password or try a secure connection."
    ),
    ER_DEVAPI_BAD_CONNECTION_ATTRIBUTE: (
        "Connection attribute names cannot start with \"_\": %s"
    ),
    ER_DEVAPI_POOL_QUEUE_TIMEOUT: (
        "Could not retrieve a connection from the pool. "
        "Timeout of %d ms was exceeded."
    ),
    ER_DEVAPI_POOL_CLOSED: (
        "Cannot close the pool. Maybe it has been destroyed already."
    ),
    ER_DEVAPI_SESSION_CLOSED: (
        "This session was closed. Use a new session to run statements."
    ),
    ER_DEVAPI_CONNECTION_CLOSED: "The server has gone away.",
}

# Multi-host exhaustion when every attempt ran into the timer
MULTI_HOST_TIMEOUT_MESSAGE = (
    "All server connection attempts were aborted. "
    "Timeout of %d ms was exceeded for each selected server."
)


def message_for(code: int, *args) -> str:
    """Render the message template registered for an error code."""
    template = MESSAGES[code]
    return template % args if args else template
