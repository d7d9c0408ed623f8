"""Models for desired and live primitive state.

These models provide:
1. Validated desired state parsed from declaration files (pydantic)
2. Immutable live-state snapshots produced by the definition parser
3. The transient delta and result records passed through a reconciliation pass
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, Field, field_validator

# Pacemaker object IDs: letters, digits, underscore, dot, hyphen
VALID_NAME_PATTERN = r"^[A-Za-z0-9_][A-Za-z0-9_.-]*$"

# Parameter, meta-attribute and operation attribute keys
VALID_KEY_PATTERN = r"^[A-Za-z0-9_][A-Za-z0-9_.:-]*$"

# Agent identifiers such as ocf:heartbeat:IPaddr2 or systemd:nginx@main
VALID_AGENT_PATTERN = r"^[^\s\"'\\]+$"


class AttributeNamespace(str, Enum):
    """Attribute sets of a primitive that are reconciled independently."""

    PARAMETER = "params"
    META = "meta"


class DeltaKind(str, Enum):
    """Kinds of attribute corrections."""

    ADD = "add"
    CHANGE = "change"
    REMOVE = "remove"


class LifecycleAction(str, Enum):
    """Actions a declaration can request for a primitive."""

    CREATE = "create"
    DELETE = "delete"
    START = "start"
    STOP = "stop"


# =============================================================================
# Desired State
# =============================================================================


class OperationSpec(BaseModel):
    """A resource operation such as ``monitor interval=10s``."""

    model_config = {"extra": "forbid", "frozen": True}

    name: Annotated[str, Field(min_length=1)]
    attributes: dict[str, str] = Field(default_factory=dict)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not re.match(VALID_KEY_PATTERN, v):
            raise ValueError(f"operation name must match {VALID_KEY_PATTERN}")
        return v


class ResourceSpec(BaseModel):
    """Desired configuration of one primitive.

    Values are compared as exact strings, so non-string YAML scalars are
    rejected instead of being coerced.
    """

    model_config = {"extra": "forbid", "frozen": True}

    name: Annotated[str, Field(min_length=1)]
    agent: Annotated[str, Field(min_length=1)]
    params: dict[str, str] = Field(default_factory=dict)
    meta: dict[str, str] = Field(default_factory=dict)
    op: list[OperationSpec] = Field(default_factory=list)

    # Actions run in order by the declaration layer (Chef default: create)
    actions: list[LifecycleAction] = Field(
        default_factory=lambda: [LifecycleAction.CREATE]
    )

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not re.match(VALID_NAME_PATTERN, v):
            raise ValueError(f"name must match {VALID_NAME_PATTERN}")
        return v

    @field_validator("agent")
    @classmethod
    def validate_agent(cls, v: str) -> str:
        if not re.match(VALID_AGENT_PATTERN, v):
            raise ValueError("agent must not contain whitespace, quotes or backslashes")
        return v

    def attributes(self, namespace: AttributeNamespace) -> dict[str, str]:
        """Return the desired mapping for an attribute namespace."""
        match namespace:
            case AttributeNamespace.PARAMETER:
                return self.params
            case AttributeNamespace.META:
                return self.meta


# =============================================================================
# Live State
# =============================================================================


@dataclass(frozen=True)
class LiveState:
    """Snapshot of a primitive as reported by ``crm configure show``.

    A fresh snapshot is produced on every pass. ``None`` stands for a
    primitive that does not exist.
    """

    name: str
    definition: str
    agent: str
    params: dict[str, str] = field(default_factory=dict)
    meta: dict[str, str] = field(default_factory=dict)

    def attributes(self, namespace: AttributeNamespace) -> dict[str, str]:
        """Return the live mapping for an attribute namespace."""
        match namespace:
            case AttributeNamespace.PARAMETER:
                return self.params
            case AttributeNamespace.META:
                return self.meta


@dataclass(frozen=True)
class AttributeDelta:
    """One corrective step for a single attribute."""

    kind: DeltaKind
    namespace: AttributeNamespace
    key: str
    old_value: str | None = None
    new_value: str | None = None

    @classmethod
    def add(cls, namespace: AttributeNamespace, key: str, value: str) -> AttributeDelta:
        return cls(DeltaKind.ADD, namespace, key, new_value=value)

    @classmethod
    def change(
        cls, namespace: AttributeNamespace, key: str, old_value: str, new_value: str
    ) -> AttributeDelta:
        return cls(DeltaKind.CHANGE, namespace, key, old_value=old_value, new_value=new_value)

    @classmethod
    def remove(cls, namespace: AttributeNamespace, key: str) -> AttributeDelta:
        return cls(DeltaKind.REMOVE, namespace, key)


# =============================================================================
# Results
# =============================================================================


@dataclass
class ReconciliationResult:
    """Outcome of one reconciliation pass for one primitive."""

    name: str
    action: LifecycleAction
    changed: bool = False
    commands_applied: list[str] = field(default_factory=list)
    commands_planned: list[str] = field(default_factory=list)  # Dry-run only
    failure_reason: str | None = None
    error: Exception | None = None
    start_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    end_time: datetime | None = None

    @property
    def duration_seconds(self) -> float:
        """Calculate duration in seconds."""
        if self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time).total_seconds()

    @property
    def success(self) -> bool:
        """Check if the pass completed without a failure."""
        return self.failure_reason is None
