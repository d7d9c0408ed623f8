"""Tests for crm command rendering."""

from __future__ import annotations

import pytest

from pacemaker_operator.commands import CommandBuilder
from pacemaker_operator.errors import InvalidValueError
from pacemaker_operator.models import (
    AttributeDelta,
    AttributeNamespace,
    LifecycleAction,
    OperationSpec,
    ResourceSpec,
)

PARAM = AttributeNamespace.PARAMETER
META = AttributeNamespace.META


@pytest.fixture
def builder() -> CommandBuilder:
    """Create a builder with default binaries."""
    return CommandBuilder()


class TestBuildCreate:
    """Tests for CommandBuilder.build_create."""

    def test_minimal_spec(self, builder: CommandBuilder) -> None:
        """Test that empty clauses are omitted."""
        spec = ResourceSpec(name="dummy", agent="ocf:pacemaker:Dummy")
        assert builder.build_create(spec) == "crm configure primitive dummy ocf:pacemaker:Dummy"

    def test_clause_order_and_quoting(self, builder: CommandBuilder) -> None:
        """Test params, meta, op order with sorted, quoted pairs."""
        spec = ResourceSpec(
            name="vip",
            agent="ocf:heartbeat:IPaddr2",
            params={"ip": "10.0.0.10", "cidr_netmask": "24"},
            meta={"target-role": "Started"},
            op=[
                OperationSpec(name="monitor", attributes={"timeout": "20s", "interval": "10s"}),
                OperationSpec(name="start", attributes={"timeout": "30s"}),
            ],
        )

        assert builder.build_create(spec) == (
            "crm configure primitive vip ocf:heartbeat:IPaddr2"
            ' params cidr_netmask="24" ip="10.0.0.10"'
            ' meta target-role="Started"'
            ' op monitor interval="10s" timeout="20s"'
            ' op start timeout="30s"'
        )

    def test_meta_only(self, builder: CommandBuilder) -> None:
        """Test that an empty params clause is not rendered."""
        spec = ResourceSpec(name="p", agent="ocf:pacemaker:Dummy", meta={"a": "1"})
        command = builder.build_create(spec)

        assert "params" not in command
        assert command.endswith(' meta a="1"')

    def test_each_operation_gets_op_keyword(self, builder: CommandBuilder) -> None:
        """Test that every operation opens its own op clause."""
        spec = ResourceSpec(
            name="p",
            agent="ocf:pacemaker:Dummy",
            op=[
                OperationSpec(name="monitor", attributes={"interval": "10s"}),
                OperationSpec(name="start", attributes={"timeout": "30s"}),
                OperationSpec(name="stop", attributes={"timeout": "30s"}),
            ],
        )

        command = builder.build_create(spec)

        assert command.count(" op ") == 3
        assert command.endswith(' op stop timeout="30s"')

    def test_operation_without_attributes_skipped(self, builder: CommandBuilder) -> None:
        """Test that an op entry with no attributes is not rendered."""
        spec = ResourceSpec(
            name="p",
            agent="ocf:pacemaker:Dummy",
            op=[
                OperationSpec(name="monitor"),
                OperationSpec(name="start", attributes={"timeout": "30s"}),
            ],
        )
        assert builder.build_create(spec) == (
            'crm configure primitive p ocf:pacemaker:Dummy op start timeout="30s"'
        )

    def test_value_with_spaces_is_quoted(self, builder: CommandBuilder) -> None:
        """Test that values with spaces survive as a single quoted token."""
        spec = ResourceSpec(
            name="fs", agent="ocf:heartbeat:Filesystem", params={"options": "rw,noatime mode=0755"}
        )
        assert 'options="rw,noatime mode=0755"' in builder.build_create(spec)

    @pytest.mark.parametrize("value", ['say "hi"', "C:\\path", "line\nbreak", "cr\r", "nul\x00"])
    def test_unquotable_value_rejected(self, builder: CommandBuilder, value: str) -> None:
        """Test that values which cannot be quoted are rejected."""
        spec = ResourceSpec(name="p", agent="ocf:pacemaker:Dummy", params={"a": value})
        with pytest.raises(InvalidValueError):
            builder.build_create(spec)

    def test_invalid_key_rejected(self, builder: CommandBuilder) -> None:
        """Test that keys with spaces are rejected."""
        spec = ResourceSpec(name="p", agent="ocf:pacemaker:Dummy", meta={"bad key": "1"})
        with pytest.raises(InvalidValueError):
            builder.build_create(spec)

    def test_custom_binary(self) -> None:
        """Test that the crm binary is configurable."""
        builder = CommandBuilder(crm_binary="/usr/sbin/crm")
        spec = ResourceSpec(name="p", agent="ocf:pacemaker:Dummy")
        assert builder.build_create(spec).startswith("/usr/sbin/crm configure primitive p ")


class TestBuildDelta:
    """Tests for CommandBuilder.build_delta."""

    def test_add_parameter(self, builder: CommandBuilder) -> None:
        """Test set-parameter for a params addition."""
        command = builder.build_delta("vip", AttributeDelta.add(PARAM, "ip", "10.0.0.10"))
        assert command == (
            'crm_resource --resource vip --set-parameter "ip" --parameter-value "10.0.0.10"'
        )

    def test_change_meta(self, builder: CommandBuilder) -> None:
        """Test that meta changes are flagged with --meta."""
        command = builder.build_delta(
            "vip", AttributeDelta.change(META, "target-role", "Started", "Stopped")
        )
        assert command == (
            "crm_resource --resource vip --set-parameter \"target-role\" "
            '--parameter-value "Stopped" --meta'
        )

    def test_remove_parameter(self, builder: CommandBuilder) -> None:
        """Test delete-parameter without --meta."""
        command = builder.build_delta("vip", AttributeDelta.remove(PARAM, "cidr_netmask"))
        assert command == 'crm_resource --resource vip --delete-parameter "cidr_netmask"'

    def test_remove_meta(self, builder: CommandBuilder) -> None:
        """Test delete-parameter with --meta."""
        command = builder.build_delta("vip", AttributeDelta.remove(META, "is-managed"))
        assert command == 'crm_resource --resource vip --delete-parameter "is-managed" --meta'

    def test_unquotable_value_rejected(self, builder: CommandBuilder) -> None:
        """Test that set-parameter refuses embedded quotes."""
        with pytest.raises(InvalidValueError):
            builder.build_delta("vip", AttributeDelta.add(PARAM, "a", 'x"y'))

    def test_invalid_name_rejected(self, builder: CommandBuilder) -> None:
        """Test that resource names are validated."""
        with pytest.raises(InvalidValueError):
            builder.build_delta("vip; rm -rf /", AttributeDelta.remove(PARAM, "a"))

    def test_build_deltas_preserves_order(self, builder: CommandBuilder) -> None:
        """Test one command per delta, in order."""
        commands = builder.build_deltas(
            "p",
            [AttributeDelta.add(PARAM, "c", "3"), AttributeDelta.remove(PARAM, "b")],
        )
        assert len(commands) == 2
        assert "--set-parameter" in commands[0]
        assert "--delete-parameter" in commands[1]


class TestBuildLifecycle:
    """Tests for lifecycle and query commands."""

    @pytest.mark.parametrize(
        ("action", "expected"),
        [
            (LifecycleAction.START, "crm resource start vip"),
            (LifecycleAction.STOP, "crm resource stop vip"),
            (LifecycleAction.DELETE, "crm configure delete vip"),
        ],
    )
    def test_lifecycle(
        self, builder: CommandBuilder, action: LifecycleAction, expected: str
    ) -> None:
        """Test lifecycle command forms."""
        assert builder.build_lifecycle("vip", action) == expected

    def test_create_is_not_lifecycle(self, builder: CommandBuilder) -> None:
        """Test that create needs a full spec."""
        with pytest.raises(ValueError):
            builder.build_lifecycle("vip", LifecycleAction.CREATE)

    def test_queries(self, builder: CommandBuilder) -> None:
        """Test query command forms."""
        assert builder.build_show("vip") == "crm configure show vip"
        assert builder.build_status("vip") == "crm resource status vip"
