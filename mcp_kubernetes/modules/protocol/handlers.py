#!/usr/bin/env python3
"""
kubectl request handlers.

Registers the kubectl request types on a protocol server. Every handler
closes over the same executor, allow-list and history instances.
"""

import asyncio
import logging
import time
from typing import Any

from mcp_kubernetes import __version__
from mcp_kubernetes.modules.allowlist import AllowList
from mcp_kubernetes.modules.executor import (
    CommandExecutionError,
    ExecutorError,
    InvalidCommandError,
    KubectlExecutor,
)
from mcp_kubernetes.modules.history import CommandHistory

from .errors import CommandNotAllowedError, InvalidParametersError, RequestError
from .models import (
    AllowedCommandsResult,
    ContextsResult,
    CurrentContextResult,
    ExecuteParams,
    ExecuteResult,
    RecentCommandsResult,
    SetContextParams,
    SetContextResult,
)
from .server import DEFAULT_REQUEST_TIMEOUT, ProtocolServer

logger = logging.getLogger(__name__)

SERVER_NAME = "mcp-kubernetes"
SERVER_DESCRIPTION = "MCP server for executing Kubernetes commands"

EXECUTE = "execute"
GET_CONTEXTS = "get-contexts"
CURRENT_CONTEXT = "current-context"
SET_CONTEXT = "set-context"
LIST_RECENT_COMMANDS = "list-recent-commands"
LIST_ALLOWED_COMMANDS = "list-allowed-commands"


def format_duration(seconds: float) -> str:
    return f"{seconds:.3f}s"


def describe_failure(error: ExecutorError) -> str:
    """Error text including captured kubectl output when there is any."""
    output = getattr(error, "output", "").strip()
    if output:
        return f"{error}: {output}"
    return str(error)


def register_kubectl_handlers(
    server: ProtocolServer,
    executor: KubectlExecutor,
    allow_list: AllowList,
    history: CommandHistory,
) -> None:
    """Register all kubectl request types on ``server``."""

    async def handle_execute(params: ExecuteParams) -> ExecuteResult:
        command = params.command
        if not command:
            raise InvalidParametersError("command cannot be empty")

        if not allow_list.is_allowed(command):
            message = f"command '{command}' is not allowed"
            logger.warning(f"Denied command: {command}")
            history.record(command, False, message)
            raise CommandNotAllowedError(message)

        start_time = time.monotonic()
        try:
            output = await executor.execute(command)
        except CommandExecutionError as e:
            history.record(command, False, str(e))
            return ExecuteResult(
                success=False,
                output=e.output,
                error=str(e),
                execution_time=format_duration(time.monotonic() - start_time),
            )
        except InvalidCommandError as e:
            history.record(command, False, str(e))
            raise RequestError(str(e)) from e
        except asyncio.CancelledError:
            history.record(command, False, "command cancelled before completion")
            raise

        history.record(command, True)
        return ExecuteResult(
            success=True,
            output=output,
            execution_time=format_duration(time.monotonic() - start_time),
        )

    async def handle_get_contexts(params: Any) -> ContextsResult:
        try:
            contexts = await executor.get_contexts()
        except ExecutorError as e:
            raise RequestError(f"failed to get contexts: {describe_failure(e)}") from e
        return ContextsResult(contexts=contexts)

    async def handle_current_context(params: Any) -> CurrentContextResult:
        try:
            context = await executor.get_current_context()
        except ExecutorError as e:
            raise RequestError(f"failed to get current context: {describe_failure(e)}") from e
        return CurrentContextResult(context=context)

    async def handle_set_context(params: SetContextParams) -> SetContextResult:
        if not params.context:
            raise InvalidParametersError("context cannot be empty")
        try:
            await executor.set_context(params.context)
        except ExecutorError as e:
            raise RequestError(f"failed to set context: {describe_failure(e)}") from e
        logger.info(f"Switched kubectl context to {params.context}")
        return SetContextResult()

    async def handle_list_recent_commands(params: Any) -> RecentCommandsResult:
        # Unparsable parameters fall back to the default limit
        limit = params.get("limit") if isinstance(params, dict) else None
        records = history.list(limit)
        return RecentCommandsResult(
            commands=[r.model_dump(mode="json", exclude_none=True) for r in records]
        )

    async def handle_list_allowed_commands(params: Any) -> AllowedCommandsResult:
        return AllowedCommandsResult(allowed_commands=allow_list.describe())

    server.register_handler(EXECUTE, handle_execute, ExecuteParams)
    server.register_handler(GET_CONTEXTS, handle_get_contexts)
    server.register_handler(CURRENT_CONTEXT, handle_current_context)
    server.register_handler(SET_CONTEXT, handle_set_context, SetContextParams)
    server.register_handler(LIST_RECENT_COMMANDS, handle_list_recent_commands)
    server.register_handler(LIST_ALLOWED_COMMANDS, handle_list_allowed_commands)


def create_kubectl_server(
    executor: KubectlExecutor,
    allow_list: AllowList,
    history: CommandHistory,
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
    cancel_on_disconnect: bool = True,
) -> ProtocolServer:
    """Build a protocol server serving the kubectl request types."""
    server = ProtocolServer(
        name=SERVER_NAME,
        description=SERVER_DESCRIPTION,
        version=__version__,
        request_timeout=request_timeout,
        cancel_on_disconnect=cancel_on_disconnect,
    )
    register_kubectl_handlers(server, executor, allow_list, history)
    return server
