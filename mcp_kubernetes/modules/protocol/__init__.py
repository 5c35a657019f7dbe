"""
Protocol Module - Black Box Interface

Purpose: Request/response protocol over any message channel
Interface: ProtocolServer (register_handler(), handle_connection(), handle_request()),
           create_kubectl_server()
Hidden: Frame decoding, ID generation, per-request tasks and deadlines, write serialization

Can be replaced with other protocols (JSON-RPC, gRPC) without touching the executor.
"""

from .errors import CommandNotAllowedError, InvalidParametersError, RequestError
from .handlers import (
    CURRENT_CONTEXT,
    EXECUTE,
    GET_CONTEXTS,
    LIST_ALLOWED_COMMANDS,
    LIST_RECENT_COMMANDS,
    SERVER_DESCRIPTION,
    SERVER_NAME,
    SET_CONTEXT,
    create_kubectl_server,
    register_kubectl_handlers,
)
from .models import Request, Response, ServerInfo
from .server import DEFAULT_REQUEST_TIMEOUT, Connection, ProtocolServer

__all__ = [
    "ProtocolServer",
    "Connection",
    "DEFAULT_REQUEST_TIMEOUT",
    "create_kubectl_server",
    "register_kubectl_handlers",
    "Request",
    "Response",
    "ServerInfo",
    "RequestError",
    "InvalidParametersError",
    "CommandNotAllowedError",
    "SERVER_NAME",
    "SERVER_DESCRIPTION",
    "EXECUTE",
    "GET_CONTEXTS",
    "CURRENT_CONTEXT",
    "SET_CONTEXT",
    "LIST_RECENT_COMMANDS",
    "LIST_ALLOWED_COMMANDS",
]
