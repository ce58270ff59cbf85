"""Workflow version lineage and structural diff module for FlowLineage."""

from .diff import DiffEngine
from .exceptions import (
    ErrorKind,
    VersionConflictError,
    VersionControlError,
    VersionNotFoundError,
    WorkflowDefinitionError,
)
from .models import (
    ChangeType,
    Position,
    VersionComparison,
    VersionStats,
    WorkflowChange,
    WorkflowDefinition,
    WorkflowEdge,
    WorkflowNode,
    WorkflowVersion,
)
from .store import InMemoryVersionStore, VersionStore
from .version_control import WorkflowVersionManager

__all__ = [
    "WorkflowVersionManager",
    "DiffEngine",
    "VersionStore",
    "InMemoryVersionStore",
    "WorkflowVersion",
    "WorkflowDefinition",
    "WorkflowNode",
    "WorkflowEdge",
    "Position",
    "VersionStats",
    "WorkflowChange",
    "VersionComparison",
    "ChangeType",
    "ErrorKind",
    "VersionControlError",
    "VersionNotFoundError",
    "VersionConflictError",
    "WorkflowDefinitionError",
]
