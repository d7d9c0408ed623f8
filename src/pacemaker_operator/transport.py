"""Boundary to the cluster manager's command-line tools.

The controller only depends on the ClusterTransport protocol. The concrete
CrmShellTransport runs crm and crm_resource as subprocesses without a shell;
command text is split with shlex so quoted values stay intact.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from dataclasses import dataclass
from typing import Protocol

from .commands import CommandBuilder
from .config import Config
from .errors import ExternalCommandError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApplyOutcome:
    """Result of applying one command."""

    success: bool
    diagnostic: str = ""


class ClusterTransport(Protocol):
    """Contract between the controller and the cluster manager."""

    def query(self, name: str) -> str:
        """Return the object's definition, or an empty string if it does not exist."""
        ...

    def apply(self, command: str) -> ApplyOutcome:
        """Execute one command and report whether it succeeded."""
        ...

    def is_running(self, name: str) -> bool:
        """Return True if the resource is currently running."""
        ...


class CrmShellTransport:
    """ClusterTransport backed by the crm shell and crm_resource."""

    def __init__(self, config: Config) -> None:
        self._timeout = config.command_timeout_seconds
        self._builder = CommandBuilder(
            crm_binary=config.crm_binary,
            crm_resource_binary=config.crm_resource_binary,
        )

    def _run(self, command: str) -> subprocess.CompletedProcess[str]:
        argv = shlex.split(command)
        try:
            return subprocess.run(
                argv,
                timeout=self._timeout,
                capture_output=True,
                text=True,
                check=False,
            )
        except FileNotFoundError as e:
            raise ExternalCommandError(command, f"command not found: {argv[0]}") from e

    def query(self, name: str) -> str:
        command = self._builder.build_show(name)
        try:
            result = self._run(command)
        except subprocess.TimeoutExpired as e:
            raise ExternalCommandError(command, f"timed out after {self._timeout}s") from e

        if result.returncode != 0:
            # crm exits non-zero when the object does not exist
            logger.debug(
                "CIB object not found",
                extra={"resource": name, "stderr": result.stderr.strip()},
            )
            return ""
        return result.stdout

    def apply(self, command: str) -> ApplyOutcome:
        logger.info("Running command", extra={"command": command})
        try:
            result = self._run(command)
        except subprocess.TimeoutExpired:
            return ApplyOutcome(False, f"timed out after {self._timeout}s")

        if result.returncode != 0:
            diagnostic = result.stderr.strip() or f"exit code {result.returncode}"
            return ApplyOutcome(False, diagnostic)
        return ApplyOutcome(True)

    def is_running(self, name: str) -> bool:
        command = self._builder.build_status(name)
        try:
            result = self._run(command)
        except subprocess.TimeoutExpired as e:
            raise ExternalCommandError(command, f"timed out after {self._timeout}s") from e

        logger.debug("Resource status", extra={"resource": name, "stdout": result.stdout.strip()})
        return f"resource {name} is running" in result.stdout
