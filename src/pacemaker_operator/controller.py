"""Reconciliation of one Pacemaker primitive against its declaration.

A pass is explicit and stateless:
1. load_live_state() queries the cluster and parses a fresh LiveState
2. an ensure_*() method receives that snapshot and decides what to do
3. commands are built and applied one at a time; the first failure stops
   the pass and the result reports what was applied before it

Nothing is cached between passes, so re-running a pass after a failure
re-diffs against the new live state and applies only what is left.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from .commands import CommandBuilder
from .config import Config
from .differ import diff_attributes
from .errors import (
    AgentMismatchError,
    ExternalCommandError,
    NotFoundError,
    ParseError,
    ResourceBusyError,
)
from .models import (
    AttributeDelta,
    AttributeNamespace,
    LifecycleAction,
    LiveState,
    ReconciliationResult,
    ResourceSpec,
)
from .parser import parse_definition
from .transport import ClusterTransport

logger = logging.getLogger(__name__)


class ReconciliationController:
    """Drives create, modify, start, stop and delete for primitives."""

    def __init__(self, transport: ClusterTransport, config: Config | None = None) -> None:
        """Initialize the controller.

        Args:
            transport: Query/apply/status boundary to the cluster manager.
            config: Operator configuration; defaults are used if omitted.
        """
        self._config = config or Config()
        self._transport = transport
        self._builder = CommandBuilder(
            crm_binary=self._config.crm_binary,
            crm_resource_binary=self._config.crm_resource_binary,
        )

    @property
    def config(self) -> Config:
        """Get the controller configuration."""
        return self._config

    @property
    def builder(self) -> CommandBuilder:
        """Get the command builder used for this controller."""
        return self._builder

    def load_live_state(self, name: str) -> LiveState | None:
        """Query and parse the current definition of a primitive.

        Returns:
            A fresh LiveState, or None if the primitive does not exist.
        """
        raw_text = self._transport.query(name)
        return parse_definition(name, raw_text, strict=self._config.strict_object_kind)

    def reconcile(self, spec: ResourceSpec, action: LifecycleAction) -> ReconciliationResult:
        """Load live state and run one action for a declared primitive."""
        live = self.load_live_state(spec.name)
        match action:
            case LifecycleAction.CREATE:
                return self.ensure_created(spec, live)
            case LifecycleAction.DELETE:
                return self.ensure_deleted(spec.name, live)
            case LifecycleAction.START:
                return self.ensure_started(spec.name, live)
            case LifecycleAction.STOP:
                return self.ensure_stopped(spec.name, live)
            case _:
                raise ValueError(f"Unsupported action: {action}")

    def plan(self, spec: ResourceSpec, live: LiveState | None) -> list[str]:
        """Return the commands ensure_created would apply, without applying them.

        Raises:
            AgentMismatchError: If the live agent differs from the declared one.
            InvalidValueError: If a value cannot be embedded in a command.
        """
        if live is None:
            return [self._builder.build_create(spec)]

        if live.agent != spec.agent:
            raise AgentMismatchError(spec.name, live.agent, spec.agent)

        deltas: list[AttributeDelta] = []
        for namespace in AttributeNamespace:
            deltas.extend(
                diff_attributes(
                    spec.attributes(namespace), live.attributes(namespace), namespace
                )
            )
        return self._builder.build_deltas(spec.name, deltas)

    def ensure_created(self, spec: ResourceSpec, live: LiveState | None) -> ReconciliationResult:
        """Create the primitive, or bring its params and meta in line.

        Raises:
            AgentMismatchError: If the primitive exists with another agent.
            InvalidValueError: If a value cannot be embedded in a command.
        """
        result = ReconciliationResult(name=spec.name, action=LifecycleAction.CREATE)

        if live is None:
            logger.info("Creating new resource primitive", extra={"resource": spec.name})
        else:
            logger.info(
                "Checking existing resource primitive for modifications",
                extra={"resource": spec.name},
            )
        commands = self.plan(spec, live)

        if self._apply_all(result, commands) and live is None and result.commands_applied:
            # crm can exit zero without committing; confirm the object exists
            try:
                created = self.load_live_state(spec.name)
            except (ExternalCommandError, ParseError) as e:
                result.error = e
                result.failure_reason = f"Could not verify '{spec.name}' after create: {e}"
                logger.error(
                    "Failed to verify primitive after create",
                    extra={"resource": spec.name, "error": str(e)},
                )
                return self._finish(result)

            if created is None:
                result.failure_reason = f"Primitive '{spec.name}' not found after create"
                logger.error(
                    "Failed to configure primitive",
                    extra={"resource": spec.name},
                )
            else:
                logger.info("Successfully configured primitive", extra={"resource": spec.name})

        return self._finish(result)

    def ensure_deleted(self, name: str, live: LiveState | None) -> ReconciliationResult:
        """Delete the primitive if it exists and is not running.

        Raises:
            ResourceBusyError: If the primitive is running.
        """
        result = ReconciliationResult(name=name, action=LifecycleAction.DELETE)
        if live is None:
            logger.debug("Primitive already absent", extra={"resource": name})
            return self._finish(result)

        if self._transport.is_running(name):
            raise ResourceBusyError(f"Cannot delete running resource primitive '{name}'")

        if self._apply_all(result, [self._builder.build_lifecycle(name, LifecycleAction.DELETE)]):
            logger.info("Deleted primitive", extra={"resource": name})
        return self._finish(result)

    def ensure_started(self, name: str, live: LiveState | None) -> ReconciliationResult:
        """Start the primitive unless it is already running.

        Raises:
            NotFoundError: If the primitive does not exist.
        """
        return self._ensure_run_state(name, live, LifecycleAction.START, running=True)

    def ensure_stopped(self, name: str, live: LiveState | None) -> ReconciliationResult:
        """Stop the primitive unless it is already stopped.

        Raises:
            NotFoundError: If the primitive does not exist.
        """
        return self._ensure_run_state(name, live, LifecycleAction.STOP, running=False)

    def _ensure_run_state(
        self,
        name: str,
        live: LiveState | None,
        action: LifecycleAction,
        *,
        running: bool,
    ) -> ReconciliationResult:
        result = ReconciliationResult(name=name, action=action)
        if live is None:
            raise NotFoundError(f"Cannot {action.value} non-existent resource primitive '{name}'")

        if self._transport.is_running(name) == running:
            logger.debug(
                "Primitive already in target run state",
                extra={"resource": name, "running": running},
            )
            return self._finish(result)

        if self._apply_all(result, [self._builder.build_lifecycle(name, action)]):
            logger.info(
                "Primitive run state changed",
                extra={"resource": name, "action": action.value},
            )
        return self._finish(result)

    def _apply_all(self, result: ReconciliationResult, commands: list[str]) -> bool:
        """Apply commands in order, stopping at the first failure.

        Returns:
            True if every command succeeded (or dry-run planned them).
        """
        if self._config.dry_run:
            result.commands_planned.extend(commands)
            for command in commands:
                logger.info("Dry-run, skipping command", extra={"command": command})
            return True

        for command in commands:
            try:
                outcome = self._transport.apply(command)
            except ExternalCommandError as e:
                result.error = e
            else:
                if outcome.success:
                    result.commands_applied.append(command)
                    continue
                result.error = ExternalCommandError(command, outcome.diagnostic)

            result.failure_reason = str(result.error)
            logger.error(
                "Command failed, aborting pass",
                extra={
                    "resource": result.name,
                    "command": command,
                    "applied": len(result.commands_applied),
                    "remaining": len(commands) - len(result.commands_applied) - 1,
                },
            )
            return False
        return True

    def _finish(self, result: ReconciliationResult) -> ReconciliationResult:
        result.changed = bool(result.commands_applied)
        result.end_time = datetime.now(UTC)
        return result
