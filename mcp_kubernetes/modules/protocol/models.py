"""
Wire models for the request/response protocol.

Every frame is a UTF-8 JSON object. Requests select a handler through
``type``; responses echo the request ``id``.
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator

PROTOCOL_MARKER = "mcp"

RequestID = Union[str, int]


class Request(BaseModel):
    """Inbound request."""

    id: Optional[RequestID] = Field(None, description="Caller correlation token")
    type: str = Field(..., min_length=1, description="Registered request type")
    parameters: Optional[Any] = Field(None, description="Handler specific payload")


class Response(BaseModel):
    """Outbound response. Exactly one of result and error is set."""

    id: RequestID = ""
    success: bool
    result: Optional[Any] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, request_id: RequestID, result: Any) -> "Response":
        """Successful response; a handler returning nothing yields an empty object."""
        return cls(id=request_id, success=True, result=result if result is not None else {})

    @classmethod
    def fail(cls, request_id: RequestID, error: str) -> "Response":
        return cls(id=request_id, success=False, error=error or "unknown error")

    def to_json(self) -> str:
        return self.model_dump_json(exclude_none=True)


class ServerDetails(BaseModel):
    name: str
    description: str
    version: str
    protocol: str = PROTOCOL_MARKER


class ServerInfo(BaseModel):
    """Announcement sent once when a connection opens."""

    type: str = "server_info"
    info: ServerDetails


# Handler parameters


class ExecuteParams(BaseModel):
    """Parameters of ``execute``."""

    command: str

    @field_validator("command")
    @classmethod
    def strip_command(cls, v):
        return v.strip()


class SetContextParams(BaseModel):
    """Parameters of ``set-context``."""

    context: str

    @field_validator("context")
    @classmethod
    def strip_context(cls, v):
        return v.strip()


# Handler results


class ExecuteResult(BaseModel):
    """Result of ``execute``; ``success`` is false when kubectl failed."""

    success: bool
    output: str = ""
    error: Optional[str] = None
    execution_time: str


class ContextsResult(BaseModel):
    contexts: List[str]


class CurrentContextResult(BaseModel):
    context: str


class SetContextResult(BaseModel):
    success: bool = True


class RecentCommandsResult(BaseModel):
    commands: List[Dict[str, Any]]


class AllowedCommandsResult(BaseModel):
    allowed_commands: Union[str, List[str]]


__all__ = [
    "PROTOCOL_MARKER",
    "RequestID",
    "Request",
    "Response",
    "ServerDetails",
    "ServerInfo",
    "ExecuteParams",
    "SetContextParams",
    "ExecuteResult",
    "ContextsResult",
    "CurrentContextResult",
    "SetContextResult",
    "RecentCommandsResult",
    "AllowedCommandsResult",
]
