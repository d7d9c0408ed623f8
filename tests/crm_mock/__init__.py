"""In-memory Pacemaker cluster for integration testing.

This module provides a mock implementation of the ClusterTransport contract
that enables controller tests without a real cluster.

Key Features:
- In-memory CIB holding primitives and arbitrary other objects
- ``crm configure show`` rendering with backslash continuations
- Interpretation of the crm / crm_resource commands the builder emits
- Error injection for testing partial-failure scenarios

Usage:
    from crm_mock import MockCluster

    cluster = MockCluster()
    controller = ReconciliationController(cluster)
    controller.reconcile(spec, LifecycleAction.CREATE)

    assert cluster.primitive("vip").params == {"ip": "10.0.0.10"}
"""

from .cluster import MockCluster, MockPrimitive, render_definition

__all__ = [
    "MockCluster",
    "MockPrimitive",
    "render_definition",
]
