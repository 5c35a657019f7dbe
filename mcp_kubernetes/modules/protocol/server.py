#!/usr/bin/env python3
"""
Protocol server.

Owns the request type registry and drives connections: announces the
server, reads framed JSON requests, runs each one as its own task with a
deadline and writes back responses correlated by request ID. Responses
may be sent in a different order than requests arrived.
"""

import asyncio
import json
import logging
import threading
import uuid
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Coroutine, Dict, List, Optional, Set, Tuple, Type

from pydantic import BaseModel, ValidationError
from pydantic_core import PydanticSerializationError

from mcp_kubernetes.modules.transport.base import Channel, ChannelClosed

from .errors import InvalidParametersError, RequestError
from .models import Request, RequestID, Response, ServerDetails, ServerInfo

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_TIMEOUT = 30.0
INVALID_REQUEST_FORMAT = "Invalid request format"

HandlerFunc = Callable[[Any], Awaitable[Any]]


def _validation_summary(error: ValidationError) -> str:
    """Condense a pydantic error into one line."""
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item.get("loc", ())) or "parameters"
        parts.append(f"{location}: {item.get('msg', 'invalid')}")
    return "; ".join(parts)


@dataclass(frozen=True)
class RegisteredHandler:
    """
    Handler bound to a request type.

    Parameters are validated with ``params_model`` when one is given,
    otherwise the raw payload is passed through. Pydantic results are
    dumped to plain JSON-compatible data.
    """

    request_type: str
    func: HandlerFunc
    params_model: Optional[Type[BaseModel]] = None

    async def invoke(self, parameters: Any) -> Any:
        if self.params_model is not None:
            try:
                params = self.params_model.model_validate(
                    parameters if parameters is not None else {}
                )
            except ValidationError as e:
                raise InvalidParametersError(
                    f"invalid parameters: {_validation_summary(e)}"
                ) from e
        else:
            params = parameters

        result = await self.func(params)

        if isinstance(result, BaseModel):
            return result.model_dump(mode="json", exclude_none=True)
        return result


class Connection:
    """
    One client connection.

    Writes go through a lock so concurrently finishing requests never
    interleave frames.
    """

    def __init__(self, channel: Channel):
        self.channel = channel
        self.connection_id = str(uuid.uuid4())
        self._write_lock = asyncio.Lock()
        self._tasks: Set[asyncio.Task] = set()

    async def send(self, message: str) -> None:
        async with self._write_lock:
            await self.channel.send(message)

    def track(self, task: asyncio.Task) -> None:
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def cancel_pending(self) -> None:
        """Cancel in-flight requests and wait for them to unwind."""
        tasks = list(self._tasks)
        if not tasks:
            return
        logger.info(f"Cancelling {len(tasks)} in-flight request(s) on connection {self.connection_id}")
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


class ProtocolServer:
    """Request registry and connection driver."""

    def __init__(
        self,
        name: str,
        description: str,
        version: str,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        cancel_on_disconnect: bool = True,
    ):
        """
        Initialize protocol server.

        Args:
            name: Server name announced to clients
            description: Server description announced to clients
            version: Server version announced to clients
            request_timeout: Seconds before an in-flight request is cancelled
            cancel_on_disconnect: Cancel a connection's in-flight requests when it closes
        """
        if request_timeout <= 0:
            raise ValueError(f"request_timeout must be positive, got {request_timeout}")

        self.details = ServerDetails(name=name, description=description, version=version)
        self.request_timeout = request_timeout
        self.cancel_on_disconnect = cancel_on_disconnect

        self._handlers: Dict[str, RegisteredHandler] = {}
        self._handlers_lock = threading.RLock()
        # Every dispatched request task, including detached ones
        self._tasks: Set[asyncio.Task] = set()

    # Registry

    def register_handler(
        self,
        request_type: str,
        func: HandlerFunc,
        params_model: Optional[Type[BaseModel]] = None,
    ) -> None:
        """
        Register a handler for a request type.

        The last registration for a type wins.
        """
        if not request_type:
            raise ValueError("request type cannot be empty")

        with self._handlers_lock:
            if request_type in self._handlers:
                logger.warning(f"Handler for '{request_type}' replaced by a new registration")
            self._handlers[request_type] = RegisteredHandler(request_type, func, params_model)

    def has_handler(self, request_type: str) -> bool:
        with self._handlers_lock:
            return request_type in self._handlers

    def registered_types(self) -> List[str]:
        with self._handlers_lock:
            return sorted(self._handlers)

    def _lookup(self, request_type: str) -> Optional[RegisteredHandler]:
        with self._handlers_lock:
            return self._handlers.get(request_type)

    def server_info(self) -> ServerInfo:
        return ServerInfo(info=self.details)

    # Dispatch

    async def handle_request(self, request: Request) -> Response:
        """
        Run one request to completion and build its response.

        Never raises for handler failures; cancellation of the calling task
        propagates.
        """
        request_id: RequestID = request.id if request.id not in (None, "") else str(uuid.uuid4())

        handler = self._lookup(request.type)
        if handler is None:
            logger.warning(f"Unknown request type '{request.type}' (request {request_id})")
            return Response.fail(request_id, f"unknown request type: {request.type}")

        try:
            result = await asyncio.wait_for(
                handler.invoke(request.parameters), timeout=self.request_timeout
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"Request {request_id} ({request.type}) timed out after {self.request_timeout:g}s"
            )
            return Response.fail(request_id, f"request timed out after {self.request_timeout:g}s")
        except RequestError as e:
            logger.info(f"Request {request_id} ({request.type}) failed: {e}")
            return Response.fail(request_id, str(e))
        except Exception as e:
            logger.exception(f"Handler for '{request.type}' raised while serving {request_id}")
            return Response.fail(request_id, str(e) or e.__class__.__name__)

        return Response.ok(request_id, result)

    def decode(self, message: str) -> Tuple[Optional[Request], Optional[Response]]:
        """
        Parse an inbound frame.

        Returns:
            (request, None) on success, (None, error_response) otherwise
        """
        try:
            data = json.loads(message)
        except ValueError as e:
            logger.warning(f"Error parsing request: {e}")
            return None, Response.fail("", INVALID_REQUEST_FORMAT)

        if not isinstance(data, dict):
            logger.warning("Error parsing request: frame is not a JSON object")
            return None, Response.fail("", INVALID_REQUEST_FORMAT)

        try:
            request = Request.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Error parsing request: {_validation_summary(e)}")
            raw_id = data.get("id")
            echo_id = raw_id if isinstance(raw_id, (str, int)) and not isinstance(raw_id, bool) else ""
            return None, Response.fail(echo_id, f"{INVALID_REQUEST_FORMAT}: {_validation_summary(e)}")

        if request.id in (None, ""):
            request.id = str(uuid.uuid4())

        return request, None

    async def _respond(self, connection: Connection, response: Response) -> None:
        try:
            payload = response.to_json()
        except PydanticSerializationError as e:
            logger.error(f"Error marshaling response {response.id}: {e}")
            payload = Response.fail(response.id, f"failed to marshal result: {e}").to_json()

        try:
            await connection.send(payload)
        except ChannelClosed:
            logger.info(f"Dropping response {response.id}: connection closed")
        except Exception as e:
            logger.error(f"Error sending response {response.id}: {e}")

    async def _dispatch(self, connection: Connection, request: Request) -> None:
        response = await self.handle_request(request)
        await self._respond(connection, response)

    def _spawn(self, connection: Connection, coro: Coroutine[Any, Any, None]) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        connection.track(task)
        return task

    # Connections

    async def handle_connection(self, channel: Channel) -> None:
        """
        Serve one connection until the peer closes it.

        Returns normally on a clean close; transport read errors propagate
        after in-flight requests have been dealt with.
        """
        connection = Connection(channel)
        logger.info(f"Connection {connection.connection_id} opened")

        await connection.send(self.server_info().model_dump_json())

        try:
            while True:
                try:
                    message = await channel.receive()
                except ChannelClosed:
                    logger.info(f"Connection {connection.connection_id} closed by peer")
                    return

                request, error_response = self.decode(message)
                if error_response is not None:
                    await self._respond(connection, error_response)
                    continue

                logger.debug(f"Dispatching request {request.id} ({request.type})")
                self._spawn(connection, self._dispatch(connection, request))
        finally:
            if self.cancel_on_disconnect:
                await connection.cancel_pending()
            elif connection.pending:
                logger.info(
                    f"Connection {connection.connection_id} closed with "
                    f"{connection.pending} request(s) still running"
                )

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every outstanding request to finish or time out."""
        tasks = list(self._tasks)
        if tasks:
            logger.info(f"Waiting for {len(tasks)} in-flight request(s)")
            await asyncio.gather(*tasks, return_exceptions=True)

    async def close(self) -> None:
        """Cancel every outstanding request, e.g. at shutdown."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
