"""Shared fixtures for wiring graph tests."""

from typing import Any, Dict, List

import pytest

from wiring_graph.core.config import Settings
from wiring_graph.core.errors import IssueLog
from tests.factories import edge, meta, node


@pytest.fixture
def settings() -> Settings:
    """Lenient settings isolated from the environment and any .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def strict_settings() -> Settings:
    return Settings(_env_file=None, strict_mode=True)


@pytest.fixture
def issues() -> IssueLog:
    return IssueLog()


@pytest.fixture
def starter_records() -> List[Dict[str, Any]]:
    """Battery, relay and starter motor, fully connected with a heavy feed."""
    return [
        meta(),
        node("battery", "battery", anchor_zone="Engine Compartment", label="Battery"),
        node("relay_1", "relay", anchor_zone="Engine Compartment"),
        node("starter_motor", "motor", anchor_zone="Engine Compartment"),
        edge("battery", "relay_1", "feeds", gauge="16mm²"),
        edge("relay_1", "starter_motor", "feeds"),
        edge("battery", "starter_motor", "feeds", gauge="16mm²"),
    ]


@pytest.fixture
def wired_records() -> List[Dict[str, Any]]:
    """Two anchored pins joined by one wire, plus a wire with a single anchored end."""
    return [
        meta(),
        node("conn_a", "connector", anchor_xyz=[1.0, 0.0, 0.0]),
        node("pin_a1", "pin", anchor_xyz=[1.0, 0.0, 0.0]),
        node("pin_b1", "pin", anchor_xyz=[0.0, 0.0, 1.0]),
        node("pin_c1", "pin"),
        node("w_ab", "wire", rail="main_harness", color="B/W (stripe)"),
        node("w_orphan", "wire", rail="main_harness"),
        edge("conn_a", "pin_a1", "has_pin"),
        edge("pin_a1", "w_ab", "pin_to_wire"),
        edge("w_ab", "pin_b1", "wire_to_pin"),
        edge("pin_b1", "w_orphan", "pin_to_wire"),
        edge("w_orphan", "pin_c1", "wire_to_pin"),
    ]


