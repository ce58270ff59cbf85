"""Pytest configuration and fixtures."""

import copy
from typing import Any, Dict

import pytest

from flowlineage.history import (
    DiffEngine,
    InMemoryVersionStore,
    WorkflowDefinition,
    WorkflowVersionManager,
)


def make_node(node_id: str, label: str = None, node_type: str = "action",
              x: float = 0, y: float = 0, **data: Any) -> Dict[str, Any]:
    """Build a raw node dict as the visual builder emits it."""
    if label is not None:
        data["label"] = label
    return {
        "id": node_id,
        "type": node_type,
        "position": {"x": x, "y": y},
        "data": data,
    }


def make_edge(edge_id: str, source: str, target: str,
              edge_type: str = "default", animated: bool = False, **extra: Any) -> Dict[str, Any]:
    return {
        "id": edge_id,
        "source": source,
        "target": target,
        "type": edge_type,
        "animated": animated,
        **extra,
    }


@pytest.fixture
def sample_workflow_data():
    """Create sample workflow data for testing."""
    return {
        "nodes": [
            make_node("n1", "Start", node_type="start"),
            make_node("n2", "Fetch patients", x=200, url="https://api.example.com", method="GET"),
            make_node("n3", "Notify", x=400, channel="email"),
        ],
        "edges": [
            make_edge("e1", "n1", "n2"),
            make_edge("e2", "n2", "n3"),
        ],
    }


@pytest.fixture
def modified_workflow_data(sample_workflow_data):
    """Create modified workflow data for testing."""
    data = copy.deepcopy(sample_workflow_data)
    data["nodes"][1]["data"]["method"] = "POST"
    data["nodes"].append(make_node("n4", "Archive", x=600))
    data["edges"].append(make_edge("e3", "n3", "n4"))
    return data


@pytest.fixture
def sample_definition(sample_workflow_data):
    return WorkflowDefinition.model_validate(sample_workflow_data)


@pytest.fixture
def diff_engine():
    return DiffEngine()


@pytest.fixture
def version_store():
    return InMemoryVersionStore()


@pytest.fixture
def workflow_version_manager(version_store):
    """Create WorkflowVersionManager backed by an in-memory store."""
    return WorkflowVersionManager(store=version_store)
