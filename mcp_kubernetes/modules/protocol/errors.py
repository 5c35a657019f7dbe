"""Per-request errors. Raised by handlers, answered as failed responses."""


class RequestError(Exception):
    """Expected request failure; the message is returned to the caller."""


class InvalidParametersError(RequestError):
    """Request parameters are missing or malformed."""


class CommandNotAllowedError(RequestError):
    """Command verb is not on the allow-list."""
