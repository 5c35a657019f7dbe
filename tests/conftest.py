"""
Shared pytest fixtures for MCP Kubernetes tests.

This module provides common fixtures including:
- KubectlMocker: Mock kubectl subprocess launches with canned responses
- An executor wired to fake kubectl/kubeconfig paths
- Config singleton isolation
- FakeChannel: In-memory transport for driving connections
"""

import asyncio
import json
import os
import sys
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Pattern, Tuple, Union
from unittest.mock import patch

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from mcp_kubernetes.modules.config import reset_config
from mcp_kubernetes.modules.executor import KubectlExecutor
from mcp_kubernetes.modules.transport import ChannelClosed

FAKE_KUBECTL = "/usr/local/bin/kubectl"
FAKE_KUBECONFIG = "/tmp/mcp-kubernetes-test/kubeconfig"


# =============================================================================
# Kubectl Mocking Infrastructure
# =============================================================================

@dataclass
class KubectlResponse:
    """Represents a mocked kubectl command response."""
    stdout: str = ""
    stderr: str = ""
    returncode: int = 0
    delay: float = 0.0
    launch_error: Optional[Exception] = None


class FakeProcess:
    """Stands in for asyncio.subprocess.Process."""

    def __init__(self, response: KubectlResponse, pid: int):
        self.response = response
        self.pid = pid
        self.returncode: Optional[int] = None
        self.killed = False

    async def communicate(self) -> Tuple[bytes, bytes]:
        if self.response.delay:
            await asyncio.sleep(self.response.delay)
        self.returncode = self.response.returncode
        return self.response.stdout.encode(), self.response.stderr.encode()

    def kill(self) -> None:
        self.killed = True
        self.returncode = -9

    async def wait(self) -> int:
        return self.returncode


@dataclass
class KubectlCall:
    """Record of a kubectl call made during testing."""
    program: str
    args: List[str]
    env: Dict[str, str] = field(default_factory=dict)
    matched_pattern: Optional[str] = None
    process: Optional[FakeProcess] = None

    @property
    def full_command_str(self) -> str:
        return " ".join(self.args)


class KubectlMocker:
    """
    Mock kubectl launches with pattern-matched responses.

    Intercepts asyncio.create_subprocess_exec, so executor code runs
    unchanged without a real cluster or binary.

    Usage:
        async def test_pods(kubectl_mocker, executor):
            kubectl_mocker.register("get pods", KubectlResponse(
                stdout="NAME  STATUS\\nmypod  Running"
            ))
            output = await executor.execute("get pods")
            assert kubectl_mocker.was_called_with("get pods")
    """

    def __init__(self):
        self._responses: List[Tuple[Union[str, Pattern], KubectlResponse, int]] = []
        self._call_history: List[KubectlCall] = []
        self._default_response = KubectlResponse(
            stderr="Error: mock not configured for this command",
            returncode=1
        )
        self._next_pid = 1000

    def register(
        self,
        pattern: Union[str, Pattern],
        response: KubectlResponse,
        priority: int = 0
    ) -> "KubectlMocker":
        """
        Register a response for commands matching the pattern.

        Args:
            pattern: String (substring match) or regex pattern
            response: KubectlResponse to return when matched
            priority: Higher priority patterns are checked first
        """
        self._responses.append((pattern, response, priority))
        self._responses.sort(key=lambda x: x[2], reverse=True)
        return self

    def set_default_response(self, response: KubectlResponse) -> "KubectlMocker":
        """Set the default response for unmatched commands."""
        self._default_response = response
        return self

    async def mock_exec(self, program, *args, stdout=None, stderr=None, env=None, **kwargs):
        """Replacement for asyncio.create_subprocess_exec."""
        kubectl_args = " ".join(args)
        matched_pattern = None
        response = self._default_response

        for pattern, resp, _ in self._responses:
            if isinstance(pattern, str):
                if pattern in kubectl_args:
                    matched_pattern = pattern
                    response = resp
                    break
            elif pattern.search(kubectl_args):
                matched_pattern = pattern.pattern
                response = resp
                break

        call = KubectlCall(
            program=program,
            args=list(args),
            env=dict(env or {}),
            matched_pattern=matched_pattern,
        )
        self._call_history.append(call)

        if response.launch_error is not None:
            raise response.launch_error

        self._next_pid += 1
        call.process = FakeProcess(response, self._next_pid)
        return call.process

    @property
    def calls(self) -> List[KubectlCall]:
        return self._call_history

    @property
    def call_count(self) -> int:
        return len(self._call_history)

    def was_called_with(self, pattern: str) -> bool:
        return any(pattern in call.full_command_str for call in self._call_history)

    def get_calls_matching(self, pattern: str) -> List[KubectlCall]:
        return [c for c in self._call_history if pattern in c.full_command_str]

    def reset(self):
        """Clear call history (but keep registered responses)."""
        self._call_history = []


@pytest.fixture
def kubectl_mocker():
    """
    Fixture that provides a KubectlMocker with subprocess launches patched.
    """
    mocker = KubectlMocker()
    with patch("asyncio.create_subprocess_exec", side_effect=mocker.mock_exec):
        yield mocker


@pytest.fixture
def executor():
    """Executor with fixed paths; pair with kubectl_mocker."""
    return KubectlExecutor(FAKE_KUBECTL, FAKE_KUBECONFIG)


@pytest.fixture(autouse=True)
def fresh_config():
    """Every test starts without a cached configuration."""
    reset_config()
    yield
    reset_config()


# =============================================================================
# In-memory Channel
# =============================================================================

CLOSE = object()


class FakeChannel:
    """In-memory channel; push frames into ``inbound``, read ``sent``."""

    def __init__(self):
        self.inbound: asyncio.Queue = asyncio.Queue()
        self.sent = []
        self.in_send = False
        self.overlapping_sends = 0

    async def receive(self) -> str:
        item = await self.inbound.get()
        if item is CLOSE:
            raise ChannelClosed("closed")
        if isinstance(item, Exception):
            raise item
        return item

    async def send(self, message: str) -> None:
        if self.in_send:
            self.overlapping_sends += 1
        self.in_send = True
        await asyncio.sleep(0)
        self.sent.append(json.loads(message))
        self.in_send = False

    def push(self, frame) -> None:
        self.inbound.put_nowait(frame if isinstance(frame, str) else json.dumps(frame))

    def close(self) -> None:
        self.inbound.put_nowait(CLOSE)

    @property
    def responses(self):
        return [m for m in self.sent if m.get("type") != "server_info"]


async def wait_for_responses(channel: FakeChannel, count: int, timeout: float = 2.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while len(channel.responses) < count:
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError(f"expected {count} responses, got {channel.responses}")
        await asyncio.sleep(0.01)
    return channel.responses


# =============================================================================
# Test Markers Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "kubectl_mock: Tests using mocked kubectl subprocess calls"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests requiring a real kubectl binary"
    )
