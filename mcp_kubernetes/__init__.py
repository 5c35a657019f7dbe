"""
MCP Kubernetes - kubectl over a request/response protocol

Lets remote callers operate kubectl through framed JSON requests.

Architecture:
- Each module is self-contained with clear interfaces
- Modules are completely replaceable
- No module knows the internals of another
- All communication through defined interfaces

Modules:
- executor: kubectl invocation and cluster context handling
- allowlist: top-level command filtering
- history: recent command log
- protocol: request registry, dispatch and wire models
- transport: WebSocket and stdio channels
- config: environment configuration
"""

__version__ = "1.0.0"
