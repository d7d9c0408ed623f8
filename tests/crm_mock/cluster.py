"""Mock Pacemaker CIB state and command interpretation.

Implements query/apply/is_running over an in-memory CIB, rendering object
definitions the way ``crm configure show`` does and executing the command
lines produced by CommandBuilder.
"""

from __future__ import annotations

import copy
import re
import shlex
from dataclasses import dataclass, field

from pacemaker_operator.transport import ApplyOutcome

_SECTIONS = ("params", "meta", "op", "utilization")


@dataclass
class MockPrimitive:
    """A primitive stored in the mock CIB."""

    name: str
    agent: str
    params: dict[str, str] = field(default_factory=dict)
    meta: dict[str, str] = field(default_factory=dict)
    ops: list[tuple[str, dict[str, str]]] = field(default_factory=list)
    running: bool = False


def _render_value(value: str) -> str:
    if value == "" or re.search(r"[\s=]", value):
        return f'"{value}"'
    return value


def _render_pairs(attributes: dict[str, str]) -> str:
    return " ".join(f"{k}={_render_value(v)}" for k, v in attributes.items())


def render_definition(primitive: MockPrimitive) -> str:
    """Render a primitive like ``crm configure show`` does."""
    lines = [f"primitive {primitive.name} {primitive.agent}"]
    if primitive.params:
        lines.append(f"params {_render_pairs(primitive.params)}")
    if primitive.meta:
        lines.append(f"meta {_render_pairs(primitive.meta)}")
    for op_name, attributes in primitive.ops:
        op_line = f"op {op_name}"
        if attributes:
            op_line += f" {_render_pairs(attributes)}"
        lines.append(op_line)
    return " \\\n\t".join(lines) + "\n"


class MockCluster:
    """In-memory cluster implementing the ClusterTransport contract."""

    def __init__(self) -> None:
        self._primitives: dict[str, MockPrimitive] = {}
        self._other_objects: dict[str, str] = {}
        self._fail_patterns: list[str] = []
        self._drop_creates = False

        self.applied: list[str] = []
        self.attempted: list[str] = []
        self.query_count = 0
        self.status_count = 0

    # =========================================================================
    # Setup helpers
    # =========================================================================

    def add_primitive(
        self,
        name: str,
        agent: str,
        params: dict[str, str] | None = None,
        meta: dict[str, str] | None = None,
        *,
        running: bool = False,
    ) -> MockPrimitive:
        primitive = MockPrimitive(
            name=name,
            agent=agent,
            params=dict(params or {}),
            meta=dict(meta or {}),
            running=running,
        )
        self._primitives[name] = primitive
        return primitive

    def add_object(self, name: str, definition: str) -> None:
        """Store a non-primitive CIB object (group, clone, ...) verbatim."""
        self._other_objects[name] = definition

    def fail_commands_matching(self, pattern: str) -> None:
        """Make every command containing ``pattern`` fail."""
        self._fail_patterns.append(pattern)

    def drop_creates(self) -> None:
        """Accept create commands without storing the primitive."""
        self._drop_creates = True

    def primitive(self, name: str) -> MockPrimitive | None:
        found = self._primitives.get(name)
        return copy.deepcopy(found) if found else None

    # =========================================================================
    # ClusterTransport
    # =========================================================================

    def query(self, name: str) -> str:
        self.query_count += 1
        if name in self._primitives:
            return render_definition(self._primitives[name])
        return self._other_objects.get(name, "")

    def is_running(self, name: str) -> bool:
        self.status_count += 1
        found = self._primitives.get(name)
        return bool(found and found.running)

    def apply(self, command: str) -> ApplyOutcome:
        self.attempted.append(command)
        for pattern in self._fail_patterns:
            if pattern in command:
                return ApplyOutcome(False, f"injected failure for '{pattern}'")

        tokens = shlex.split(command)
        if tokens[:1] == ["crm"]:
            outcome = self._apply_crm(tokens[1:])
        elif tokens[:1] == ["crm_resource"]:
            outcome = self._apply_crm_resource(tokens[1:])
        else:
            outcome = ApplyOutcome(False, f"unknown command: {command}")

        if outcome.success:
            self.applied.append(command)
        return outcome

    # =========================================================================
    # Command interpretation
    # =========================================================================

    def _apply_crm(self, args: list[str]) -> ApplyOutcome:
        match args:
            case ["configure", "primitive", name, agent, *rest]:
                if name in self._primitives or name in self._other_objects:
                    return ApplyOutcome(False, f"ERROR: object {name} already exists")
                primitive = MockPrimitive(name=name, agent=agent)
                try:
                    self._load_sections(primitive, rest)
                except ValueError as e:
                    return ApplyOutcome(False, f"ERROR: syntax in primitive {name}: {e}")
                if not self._drop_creates:
                    self._primitives[name] = primitive
                return ApplyOutcome(True)
            case ["configure", "delete", name]:
                found = self._primitives.get(name)
                if found is None:
                    return ApplyOutcome(False, f"ERROR: object {name} does not exist")
                if found.running:
                    return ApplyOutcome(False, f"ERROR: resource {name} is running")
                del self._primitives[name]
                return ApplyOutcome(True)
            case ["resource", ("start" | "stop") as verb, name]:
                found = self._primitives.get(name)
                if found is None:
                    return ApplyOutcome(False, f"ERROR: resource {name} does not exist")
                found.running = verb == "start"
                return ApplyOutcome(True)
            case _:
                return ApplyOutcome(False, f"unsupported crm arguments: {args}")

    def _load_sections(self, primitive: MockPrimitive, tokens: list[str]) -> None:
        """Load clauses the way crm does; raises ValueError on syntax errors."""
        section = None
        op_open = False
        for token in tokens:
            if token in _SECTIONS:
                section = token
                op_open = token == "op"
                continue
            key, sep, value = token.partition("=")
            if section == "op" and op_open:
                if sep:
                    raise ValueError(f"op without a name before '{token}'")
                primitive.ops.append((token, {}))
                op_open = False
                continue
            if not sep or not key:
                raise ValueError(f"'{token}' is not a key=value pair in {section} section")
            if section == "params":
                primitive.params[key] = value
            elif section == "meta":
                primitive.meta[key] = value
            elif section == "op":
                primitive.ops[-1][1][key] = value
            elif section is None:
                raise ValueError(f"'{token}' outside of any section")

    def _apply_crm_resource(self, args: list[str]) -> ApplyOutcome:
        options: dict[str, str] = {}
        flags: set[str] = set()
        i = 0
        while i < len(args):
            arg = args[i]
            if arg == "--meta":
                flags.add(arg)
                i += 1
            else:
                options[arg] = args[i + 1]
                i += 2

        name = options.get("--resource", "")
        found = self._primitives.get(name)
        if found is None:
            return ApplyOutcome(False, f"Resource '{name}' not found")

        target = found.meta if "--meta" in flags else found.params
        if "--set-parameter" in options:
            target[options["--set-parameter"]] = options["--parameter-value"]
        elif "--delete-parameter" in options:
            target.pop(options["--delete-parameter"], None)
        else:
            return ApplyOutcome(False, f"unsupported crm_resource arguments: {args}")
        return ApplyOutcome(True)
