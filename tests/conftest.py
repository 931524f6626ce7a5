"""Shared fixtures: a small service registry used across the test suite.

Registry (interfaces in insertion order)::

    IF-1  APP-001 -> APP-002  Payment postings
    IF-2  APP-002 -> APP-001  Balance updates
    IF-3  APP-001 -> APP-003  Daily extract
    IF-4  APP-004 -> APP-001  Fraud scores      (APP-004 not in registry)
    IF-5  APP-002 -> APP-005  Archive feed
    IF-6  APP-003 -> APP-002  Reconciliation

APP-009 is registered but has no interfaces.
"""

from __future__ import annotations

import pytest

from service_flowmap.core.models import (
    InterfaceRecord,
    Priority,
    ServiceRecord,
    ServiceStatus,
)
from service_flowmap.sources.memory import InMemorySubgraphSource


@pytest.fixture
def services() -> list[ServiceRecord]:
    return [
        ServiceRecord(id="APP-001", name="Payments", owner="Treasury"),
        ServiceRecord(id="APP-002", name="Ledger"),
        ServiceRecord(id="APP-003", name="Reporting", status=ServiceStatus.INACTIVE),
        ServiceRecord(id="APP-005", name="Archive"),
        ServiceRecord(id="APP-009", name="Standalone"),
    ]


@pytest.fixture
def interfaces() -> list[InterfaceRecord]:
    return [
        InterfaceRecord(
            id="IF-1",
            sender_id="APP-001",
            receiver_id="APP-002",
            name="Payment postings",
            priority=Priority.HIGH,
        ),
        InterfaceRecord(
            id="IF-2", sender_id="APP-002", receiver_id="APP-001", name="Balance updates"
        ),
        InterfaceRecord(
            id="IF-3", sender_id="APP-001", receiver_id="APP-003", name="Daily extract"
        ),
        InterfaceRecord(
            id="IF-4",
            sender_id="APP-004",
            sender_name="Fraud Engine",
            receiver_id="APP-001",
            name="Fraud scores",
        ),
        InterfaceRecord(
            id="IF-5", sender_id="APP-002", receiver_id="APP-005", name="Archive feed"
        ),
        InterfaceRecord(
            id="IF-6", sender_id="APP-003", receiver_id="APP-002", name="Reconciliation"
        ),
    ]


@pytest.fixture
def memory_source(services, interfaces) -> InMemorySubgraphSource:
    return InMemorySubgraphSource(services, interfaces)


@pytest.fixture
def seed_document(services, interfaces) -> dict:
    """Registry as a seed-file document."""
    return {
        "services": [s.model_dump(mode="json", exclude={"placeholder"}) for s in services],
        "interfaces": [i.model_dump(mode="json") for i in interfaces],
    }
