"""Exceptions raised by the kubectl executor."""

from typing import Optional


class ExecutorError(Exception):
    """Base class for executor failures."""


class KubectlNotFoundError(ExecutorError):
    """kubectl binary could not be located."""


class KubeconfigNotFoundError(ExecutorError):
    """Kubeconfig file does not exist."""


class InvalidCommandError(ExecutorError):
    """Command string is empty or could not be tokenized."""


class CommandExecutionError(ExecutorError):
    """
    kubectl could not be launched or exited with a nonzero status.

    Attributes:
        output: Captured output (stderr when present, otherwise stdout)
        exit_code: Process exit code, None if the process never started
    """

    def __init__(self, message: str, output: str = "", exit_code: Optional[int] = None):
        super().__init__(message)
        self.output = output
        self.exit_code = exit_code
