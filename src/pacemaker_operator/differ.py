"""Attribute diffing between desired and live primitive state.

Deltas are produced in two passes: additions and changes first (in desired
order), then removals (in live order). A renamed key therefore shows up as
one ADD and one REMOVE, matching the independent set/delete commands of
crm_resource. Values are compared as exact strings.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from .models import AttributeDelta, AttributeNamespace, DeltaKind

logger = logging.getLogger(__name__)


def diff_attributes(
    desired: Mapping[str, str],
    current: Mapping[str, str],
    namespace: AttributeNamespace,
) -> list[AttributeDelta]:
    """Compute the deltas that turn ``current`` into ``desired``.

    Args:
        desired: Declared attribute mapping.
        current: Live attribute mapping.
        namespace: Namespace the mappings belong to; tagged on every delta.

    Returns:
        Ordered deltas: adds/changes, then removals. Empty if equal.
    """
    deltas: list[AttributeDelta] = []

    for key, new_value in desired.items():
        if key not in current:
            logger.info(
                "Attribute added",
                extra={"namespace": namespace.value, "key": key, "new_value": new_value},
            )
            deltas.append(AttributeDelta.add(namespace, key, new_value))
        elif current[key] != new_value:
            logger.info(
                "Attribute changed",
                extra={
                    "namespace": namespace.value,
                    "key": key,
                    "old_value": current[key],
                    "new_value": new_value,
                },
            )
            deltas.append(AttributeDelta.change(namespace, key, current[key], new_value))
        else:
            logger.debug(
                "Attribute unchanged",
                extra={"namespace": namespace.value, "key": key},
            )

    for key in current:
        if key not in desired:
            logger.info(
                "Attribute removed",
                extra={"namespace": namespace.value, "key": key},
            )
            deltas.append(AttributeDelta.remove(namespace, key))

    return deltas


def apply_deltas(
    current: Mapping[str, str],
    deltas: Iterable[AttributeDelta],
    namespace: AttributeNamespace,
) -> dict[str, str]:
    """Apply deltas to a copy of ``current`` and return the result.

    Raises:
        ValueError: If a delta belongs to another namespace or is incomplete.
    """
    result = dict(current)
    for delta in deltas:
        if delta.namespace != namespace:
            raise ValueError(
                f"Delta for '{delta.key}' is in namespace {delta.namespace.value}, "
                f"expected {namespace.value}"
            )
        if delta.kind == DeltaKind.REMOVE:
            result.pop(delta.key, None)
        elif delta.new_value is None:
            raise ValueError(f"{delta.kind.value} delta for '{delta.key}' has no value")
        else:
            result[delta.key] = delta.new_value
    return result
