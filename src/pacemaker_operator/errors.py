"""Error taxonomy for primitive reconciliation.

Every error raised by the parser, command builder and controller derives
from PrimitiveError so callers can catch the whole family at one boundary.
Configuration and declaration-file errors live next to the code that raises
them (config.ConfigurationError, spec_loader.SpecLoadError).
"""

from __future__ import annotations


class PrimitiveError(Exception):
    """Base class for primitive reconciliation errors."""

    pass


class ParseError(PrimitiveError):
    """Raised when a CIB object definition does not match the crm grammar."""

    pass


class ObjectKindMismatchError(ParseError):
    """Raised in strict mode when the named CIB object is not a primitive."""

    pass


class AgentMismatchError(PrimitiveError):
    """Raised when the desired agent differs from the live agent.

    Changing the agent requires an explicit delete and recreate.
    """

    def __init__(self, name: str, live_agent: str, desired_agent: str) -> None:
        super().__init__(
            f"Existing resource primitive '{name}' has agent '{live_agent}' "
            f"but declaration wants '{desired_agent}'"
        )
        self.name = name
        self.live_agent = live_agent
        self.desired_agent = desired_agent


class ResourceBusyError(PrimitiveError):
    """Raised when deleting a primitive that is currently running."""

    pass


class NotFoundError(PrimitiveError):
    """Raised when starting or stopping a primitive that does not exist."""

    pass


class InvalidValueError(PrimitiveError):
    """Raised when a name, key or value cannot be embedded in a command."""

    pass


class ExternalCommandError(PrimitiveError):
    """Raised (or recorded) when the cluster tool reports a failed command."""

    def __init__(self, command: str, diagnostic: str = "") -> None:
        message = f"Command failed: {command}"
        if diagnostic:
            message = f"{message}: {diagnostic}"
        super().__init__(message)
        self.command = command
        self.diagnostic = diagnostic
