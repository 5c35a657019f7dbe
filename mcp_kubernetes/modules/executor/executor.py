#!/usr/bin/env python3
"""
kubectl executor.

Resolves the kubectl binary and kubeconfig once, tokenizes freeform
command strings and runs them as subprocesses. Cancelling the calling
task terminates the running kubectl process.
"""

import asyncio
import logging
import os
import shutil
from pathlib import Path
from typing import List, Optional, Sequence

from .errors import (
    CommandExecutionError,
    InvalidCommandError,
    KubeconfigNotFoundError,
    KubectlNotFoundError,
)

logger = logging.getLogger(__name__)

KUBECTL = "kubectl"
QUOTE_CHARS = ("'", '"')


def parse_command(command: str) -> List[str]:
    """
    Split a command string into kubectl arguments.

    Whitespace separates arguments except inside single or double quotes.
    Quote characters are consumed; a quote of the other kind inside a
    quoted region is kept literally. A leading ``kubectl`` token is dropped.
    Shell operators (pipes, redirects, globs) get no special treatment.

    Args:
        command: Raw command string

    Returns:
        List of arguments (may be empty)
    """
    args: List[str] = []
    current: List[str] = []
    quote: Optional[str] = None
    # Tracks "" and '' so an explicitly quoted empty argument survives
    has_token = False

    for char in command:
        if quote:
            if char == quote:
                quote = None
            else:
                current.append(char)
            continue

        if char in QUOTE_CHARS:
            quote = char
            has_token = True
            continue

        if char.isspace():
            if has_token:
                args.append("".join(current))
                current = []
                has_token = False
            continue

        current.append(char)
        has_token = True

    if has_token:
        args.append("".join(current))

    if args and args[0] == KUBECTL:
        args = args[1:]

    return args


def default_kubeconfig() -> str:
    """Return KUBECONFIG if set, otherwise ~/.kube/config."""
    kubeconfig = os.environ.get("KUBECONFIG")
    if kubeconfig:
        return kubeconfig
    return str(Path.home() / ".kube" / "config")


class KubectlExecutor:
    """Runs kubectl commands against a fixed binary and kubeconfig."""

    def __init__(self, kubectl_path: str, kubeconfig: str):
        """
        Initialize executor with already resolved paths.

        Use ``KubectlExecutor.create()`` to resolve and validate them.

        Args:
            kubectl_path: Absolute path to the kubectl binary
            kubeconfig: Kubeconfig location passed to kubectl via KUBECONFIG
        """
        self.kubectl_path = kubectl_path
        self.kubeconfig = kubeconfig

    @classmethod
    def create(
        cls, kubectl_path: Optional[str] = None, kubeconfig: Optional[str] = None
    ) -> "KubectlExecutor":
        """
        Resolve kubectl and kubeconfig, failing fast if either is missing.

        Args:
            kubectl_path: Explicit binary path or name; PATH lookup of ``kubectl`` if omitted
            kubeconfig: Explicit kubeconfig; KUBECONFIG or ~/.kube/config if omitted

        Raises:
            KubectlNotFoundError: Binary not found
            KubeconfigNotFoundError: Kubeconfig file does not exist
        """
        resolved = shutil.which(kubectl_path or KUBECTL)
        if not resolved:
            raise KubectlNotFoundError(f"kubectl not found: {kubectl_path or 'not in PATH'}")

        kubeconfig = kubeconfig or default_kubeconfig()
        if not os.path.exists(kubeconfig):
            raise KubeconfigNotFoundError(f"kubeconfig not found at {kubeconfig}")

        logger.info(f"Using kubectl at {resolved} with kubeconfig {kubeconfig}")
        return cls(resolved, kubeconfig)

    async def execute(self, command: str) -> str:
        """
        Execute a freeform kubectl command string.

        Args:
            command: Command such as ``get pods -n default`` (``kubectl`` prefix optional)

        Returns:
            Command stdout

        Raises:
            InvalidCommandError: Command is empty after tokenizing
            CommandExecutionError: Launch failure or nonzero exit
        """
        args = parse_command(command.strip())
        if not args:
            raise InvalidCommandError("invalid kubectl command")
        return await self.run(args)

    async def run(self, args: Sequence[str]) -> str:
        """
        Run kubectl with pre-split arguments.

        On nonzero exit the error carries stderr if non-empty, else stdout.
        """
        logger.debug(f"Running: {KUBECTL} {' '.join(args)}")

        env = os.environ.copy()
        env["KUBECONFIG"] = self.kubeconfig

        try:
            process = await asyncio.create_subprocess_exec(
                self.kubectl_path,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
            )
        except OSError as e:
            logger.error(f"Failed to launch kubectl: {e}")
            raise CommandExecutionError(f"failed to launch kubectl: {e}") from e

        try:
            stdout_bytes, stderr_bytes = await process.communicate()
        except asyncio.CancelledError:
            await self._terminate(process)
            raise

        stdout = stdout_bytes.decode("utf-8", errors="replace")
        stderr = stderr_bytes.decode("utf-8", errors="replace")

        if process.returncode != 0:
            output = stderr if stderr else stdout
            raise CommandExecutionError(
                f"command execution failed: exit status {process.returncode}",
                output=output,
                exit_code=process.returncode,
            )

        return stdout

    async def _terminate(self, process: asyncio.subprocess.Process) -> None:
        """Kill a kubectl process whose caller was cancelled."""
        if process.returncode is not None:
            return
        logger.warning(f"Killing kubectl process {process.pid} after cancellation")
        try:
            process.kill()
        except ProcessLookupError:
            return
        await process.wait()

    async def get_contexts(self) -> List[str]:
        """List context names from the kubeconfig."""
        output = await self.execute("config get-contexts -o name")
        output = output.strip()
        if not output:
            return []
        return [line.strip() for line in output.splitlines() if line.strip()]

    async def get_current_context(self) -> str:
        """Return the active context name."""
        output = await self.execute("config current-context")
        return output.strip()

    async def set_context(self, context_name: str) -> None:
        """Switch the active context."""
        context_name = context_name.strip()
        if not context_name:
            raise InvalidCommandError("context cannot be empty")
        await self.run(["config", "use-context", context_name])
