"""Rendering of crm and crm_resource command lines.

All methods are pure: they validate their input and return command text,
they never execute anything. Values are always double-quoted; a value that
contains a quote, a backslash or a line break is rejected rather than
escaped, because crm and the shell disagree on escape rules.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from .errors import InvalidValueError
from .models import (
    VALID_AGENT_PATTERN,
    VALID_KEY_PATTERN,
    VALID_NAME_PATTERN,
    AttributeDelta,
    AttributeNamespace,
    DeltaKind,
    LifecycleAction,
    OperationSpec,
    ResourceSpec,
)

DEFAULT_CRM_BINARY = "crm"
DEFAULT_CRM_RESOURCE_BINARY = "crm_resource"

# Characters that cannot appear inside a double-quoted command value
FORBIDDEN_VALUE_CHARACTERS = frozenset('"\\\r\n\x00')


def _check_name(name: str) -> str:
    if not re.match(VALID_NAME_PATTERN, name):
        raise InvalidValueError(f"Invalid primitive name {name!r}")
    return name


def _check_key(key: str) -> str:
    if not re.match(VALID_KEY_PATTERN, key):
        raise InvalidValueError(f"Invalid attribute key {key!r}")
    return key


def _quote(value: str) -> str:
    bad = FORBIDDEN_VALUE_CHARACTERS.intersection(value)
    if bad:
        raise InvalidValueError(
            f"Value {value!r} contains characters that cannot be quoted: {sorted(bad)}"
        )
    return f'"{value}"'


def _pairs(attributes: Mapping[str, str]) -> str:
    return " ".join(f"{_check_key(k)}={_quote(v)}" for k, v in sorted(attributes.items()))


@dataclass(frozen=True)
class CommandBuilder:
    """Builds command text for the crm shell and crm_resource."""

    crm_binary: str = DEFAULT_CRM_BINARY
    crm_resource_binary: str = DEFAULT_CRM_RESOURCE_BINARY

    def build_create(self, spec: ResourceSpec) -> str:
        """Render ``crm configure primitive`` for a full desired spec.

        Clause order is fixed (params, meta, op) and empty clauses are
        omitted.
        """
        name = _check_name(spec.name)
        if not re.match(VALID_AGENT_PATTERN, spec.agent):
            raise InvalidValueError(f"Invalid agent {spec.agent!r}")

        cmd = f"{self.crm_binary} configure primitive {name} {spec.agent}"
        if spec.params:
            cmd += f" params {_pairs(spec.params)}"
        if spec.meta:
            cmd += f" meta {_pairs(spec.meta)}"
        cmd += self._op_clause(spec.op)
        return cmd

    def _op_clause(self, operations: Sequence[OperationSpec]) -> str:
        # One "op" keyword per operation; operations without attributes are skipped
        clause = ""
        for operation in operations:
            if operation.attributes:
                clause += f" op {_check_key(operation.name)} {_pairs(operation.attributes)}"
        return clause

    def build_delta(self, name: str, delta: AttributeDelta) -> str:
        """Render the crm_resource call that applies one attribute delta."""
        cmd = f"{self.crm_resource_binary} --resource {_check_name(name)}"
        key = _quote(_check_key(delta.key))

        if delta.kind == DeltaKind.REMOVE:
            cmd += f" --delete-parameter {key}"
        else:
            if delta.new_value is None:
                raise InvalidValueError(f"{delta.kind.value} delta for {delta.key!r} has no value")
            cmd += f" --set-parameter {key} --parameter-value {_quote(delta.new_value)}"

        if delta.namespace == AttributeNamespace.META:
            cmd += " --meta"
        return cmd

    def build_deltas(self, name: str, deltas: Sequence[AttributeDelta]) -> list[str]:
        """Render one command per delta, preserving order."""
        return [self.build_delta(name, delta) for delta in deltas]

    def build_lifecycle(self, name: str, action: LifecycleAction) -> str:
        """Render start, stop or delete for a primitive.

        Raises:
            ValueError: For CREATE, which needs a full spec (see build_create).
        """
        name = _check_name(name)
        match action:
            case LifecycleAction.START:
                return f"{self.crm_binary} resource start {name}"
            case LifecycleAction.STOP:
                return f"{self.crm_binary} resource stop {name}"
            case LifecycleAction.DELETE:
                return f"{self.crm_binary} configure delete {name}"
            case _:
                raise ValueError(f"'{action.value}' is not a lifecycle command")

    def build_show(self, name: str) -> str:
        """Render the query for a CIB object definition."""
        return f"{self.crm_binary} configure show {_check_name(name)}"

    def build_status(self, name: str) -> str:
        """Render the query for a resource's run state."""
        return f"{self.crm_binary} resource status {_check_name(name)}"
