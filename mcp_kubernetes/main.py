#!/usr/bin/env python3
"""
MCP Kubernetes - Main Entry Point

This is the thin orchestration layer that:
1. Loads configuration
2. Initializes modules
3. Serves the protocol over WebSocket (HTTP) or stdio

All business logic is in the modules, following black box principles.
"""

import asyncio
import logging
import signal
import sys
import threading
from contextlib import asynccontextmanager
from typing import Optional

import click
import uvicorn
from fastapi import FastAPI, WebSocket
from fastapi.responses import PlainTextResponse

from mcp_kubernetes import __version__
from mcp_kubernetes.logging_config import configure_logging
from mcp_kubernetes.modules.allowlist import AllowList
from mcp_kubernetes.modules.config import ConfigModule, get_config
from mcp_kubernetes.modules.executor import ExecutorError, KubectlExecutor
from mcp_kubernetes.modules.history import CommandHistory
from mcp_kubernetes.modules.protocol import ProtocolServer, create_kubectl_server
from mcp_kubernetes.modules.transport import StdioChannel, WebSocketChannel

logger = logging.getLogger(__name__)

HEALTH_MESSAGE = "MCP Kubernetes server is running"

EXIT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def load_allow_list(config: ConfigModule) -> AllowList:
    """Allow-list from the YAML file if configured, else from the verb string."""
    allowed_file = config.get("allowed_commands_file")
    if allowed_file:
        return AllowList.from_yaml(allowed_file)
    return AllowList.from_string(config.get("allowed_commands"))


def build_protocol_server(config: ConfigModule, cancel_on_disconnect: bool = True) -> ProtocolServer:
    """
    Initialize modules and wire them into a protocol server.

    Args:
        config: Loaded configuration
        cancel_on_disconnect: Cancel in-flight requests when their connection closes

    Raises:
        ExecutorError: kubectl or kubeconfig missing
        ValueError, OSError: Invalid allow-list configuration
    """
    allow_list = load_allow_list(config)
    if allow_list.allows_all:
        logger.info("All kubectl commands are allowed")
    else:
        logger.info(f"Allowed kubectl commands: {allow_list.describe()}")

    executor = KubectlExecutor.create(
        kubectl_path=config.get("kubectl_path"),
        kubeconfig=config.get("kubeconfig"),
    )
    history = CommandHistory(capacity=config.get("history_size"))

    return create_kubectl_server(
        executor,
        allow_list,
        history,
        request_timeout=config.get("request_timeout"),
        cancel_on_disconnect=cancel_on_disconnect,
    )


def create_app(protocol_server: ProtocolServer, ws_path: str = "/ws") -> FastAPI:
    """
    Create the HTTP application exposing the protocol endpoint and liveness check.

    Problems during shutdown are collected in ``app.state.shutdown_errors``
    so the caller can turn them into a non-zero exit.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Protocol endpoint listening on {ws_path}")
        yield
        logger.info("Shutting down, cancelling in-flight requests...")
        try:
            await protocol_server.close()
        except Exception as e:
            logger.exception(f"Error closing protocol server: {e}")
            app.state.shutdown_errors.append(f"protocol server close failed: {e}")
        else:
            logger.info("Shutdown complete")

    app = FastAPI(
        title="MCP Kubernetes",
        description="MCP server for executing Kubernetes commands",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.protocol_server = protocol_server
    app.state.shutdown_errors = []

    @app.websocket(ws_path)
    async def protocol_endpoint(websocket: WebSocket):
        await websocket.accept()
        try:
            await protocol_server.handle_connection(WebSocketChannel(websocket))
        except asyncio.CancelledError:
            # Only uvicorn cancels a connection task, once the graceful timeout expires
            logger.error("Connection cancelled before it closed")
            app.state.shutdown_errors.append("graceful shutdown timed out")
            raise
        except Exception as e:
            logger.error(f"Error handling MCP connection: {e}")

    @app.get("/health", response_class=PlainTextResponse)
    async def health():
        """Liveness probe."""
        return HEALTH_MESSAGE

    return app


def _on_exit_signal(signum, frame) -> None:
    # uvicorn re-raises the signal it shut down on once it has stopped
    logger.info(f"Received {signal.Signals(signum).name}")


def serve_http(app: FastAPI, host: str, port: int, shutdown_timeout: float) -> None:
    """
    Serve until SIGINT/SIGTERM, then shut down within ``shutdown_timeout``.

    Returns after a clean stop. Exits with status 1 if the listener fails
    to start, or if the shutdown raised or ran out of time.
    """
    server = uvicorn.Server(
        uvicorn.Config(
            app,
            host=host,
            port=port,
            log_config=None,
            timeout_graceful_shutdown=shutdown_timeout,
        )
    )

    previous_handlers = {}
    if threading.current_thread() is threading.main_thread():
        for sig in EXIT_SIGNALS:
            previous_handlers[sig] = signal.signal(sig, _on_exit_signal)

    try:
        server.run()
    except Exception as e:
        logger.exception(f"Error during server shutdown: {e}")
        sys.exit(1)
    finally:
        for sig, handler in previous_handlers.items():
            signal.signal(sig, handler)

    if not server.started:
        logger.error(f"Server failed to start on {host}:{port}")
        sys.exit(1)

    shutdown_errors = getattr(app.state, "shutdown_errors", [])
    if shutdown_errors:
        logger.error(f"Server did not stop cleanly: {'; '.join(shutdown_errors)}")
        sys.exit(1)
    logger.info("Server stopped")


async def serve_stdio(protocol_server: ProtocolServer, channel: Optional[StdioChannel] = None) -> None:
    """
    Serve a single connection over stdin/stdout.

    End of input only closes the read side: requests already dispatched
    still run to completion and their responses are written.
    """
    channel = channel or StdioChannel()
    try:
        await protocol_server.handle_connection(channel)
        await protocol_server.drain()
    finally:
        await protocol_server.close()


@click.command()
@click.option("--host", "host", default=None, help="Bind address [env MCP_HOST, default 0.0.0.0]")
@click.option("--port", "port", type=int, default=None, help="Port [env MCP_PORT, default 3000]")
@click.option(
    "--allowed-commands",
    "allowed_commands",
    default=None,
    help="Comma-separated list of allowed kubectl commands, or * for all commands",
)
@click.option(
    "--allowed-commands-file",
    "allowed_commands_file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="YAML file listing allowedVerbs",
)
@click.option(
    "--transport",
    type=click.Choice(["websocket", "stdio"]),
    default="websocket",
    show_default=True,
)
@click.option("--log-level", "log_level", default=None, help="Logging level [env LOG_LEVEL]")
def main(
    host: Optional[str],
    port: Optional[int],
    allowed_commands: Optional[str],
    allowed_commands_file: Optional[str],
    transport: str,
    log_level: Optional[str],
):
    """Serve kubectl to remote callers."""
    try:
        config = get_config()
        config.override(
            host=host,
            port=port,
            allowed_commands=allowed_commands,
            allowed_commands_file=allowed_commands_file,
            log_level=log_level.upper() if log_level else None,
        )
    except ValueError as e:
        click.echo(f"Invalid configuration: {e}", err=True)
        sys.exit(1)

    stdio = transport == "stdio"
    configure_logging(config.get("log_level"), stdio=stdio)

    try:
        protocol_server = build_protocol_server(config, cancel_on_disconnect=not stdio)
    except (ExecutorError, ValueError, OSError) as e:
        logger.error(f"Failed to initialize server: {e}")
        sys.exit(1)

    if stdio:
        logger.info("Starting MCP Kubernetes server with stdio transport...")
        try:
            asyncio.run(serve_stdio(protocol_server))
        except KeyboardInterrupt:
            logger.info("Server stopped by user")
        return

    logger.info(f"Starting MCP Kubernetes server on {config.get('host')}:{config.get('port')}")
    app = create_app(protocol_server, ws_path=config.get("ws_path"))
    serve_http(app, config.get("host"), config.get("port"), config.get("shutdown_timeout"))


if __name__ == "__main__":
    main()
