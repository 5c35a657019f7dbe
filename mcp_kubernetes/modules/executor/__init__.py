"""
Executor Module - Black Box Interface

Purpose: Execute kubectl commands and manage the active cluster context
Interface: KubectlExecutor.create(), execute(), get_contexts(), get_current_context(), set_context()
Hidden: Binary lookup, tokenizing, subprocess handling, cancellation

Can be replaced with different execution mechanisms (direct K8s API, remote agents).
"""

from .errors import (
    CommandExecutionError,
    ExecutorError,
    InvalidCommandError,
    KubeconfigNotFoundError,
    KubectlNotFoundError,
)
from .executor import KubectlExecutor, default_kubeconfig, parse_command

__all__ = [
    "KubectlExecutor",
    "parse_command",
    "default_kubeconfig",
    "ExecutorError",
    "KubectlNotFoundError",
    "KubeconfigNotFoundError",
    "InvalidCommandError",
    "CommandExecutionError",
]
