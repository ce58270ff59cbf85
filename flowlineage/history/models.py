"""Workflow graph and version lineage models."""

import hashlib
import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, JsonValue, ValidationError

from .exceptions import WorkflowDefinitionError


def canonical_json(value: Any) -> str:
    """Serialize a value deterministically (sorted keys, compact separators)."""
    return json.dumps(value, sort_keys=True, separators=(',', ':'), default=str)


class ChangeType(str, Enum):
    """Types of changes detected between two workflow definitions."""
    NODE_ADDED = "node_added"
    NODE_REMOVED = "node_removed"
    NODE_MODIFIED = "node_modified"
    EDGE_ADDED = "edge_added"
    EDGE_REMOVED = "edge_removed"
    EDGE_MODIFIED = "edge_modified"
    METADATA_CHANGED = "metadata_changed"


class Position(BaseModel):
    """Node position on the builder canvas."""

    x: float = Field(default=0, description="Horizontal coordinate")
    y: float = Field(default=0, description="Vertical coordinate")


class WorkflowNode(BaseModel):
    """A node in a workflow graph."""

    id: str = Field(..., min_length=1, description="Node ID, unique within a definition")
    type: str = Field(..., description="Node type")
    position: Position = Field(default_factory=Position, description="Node position in UI")
    data: Dict[str, JsonValue] = Field(default_factory=dict, description="Node data bag")

    model_config = ConfigDict(extra="allow")

    @property
    def label(self) -> str:
        """Display label, falling back to the node ID."""
        label = self.data.get("label")
        return str(label) if label else self.id


class WorkflowEdge(BaseModel):
    """A directed connection between two nodes."""

    id: str = Field(..., description="Edge ID")
    source: str = Field(..., description="Source node ID")
    target: str = Field(..., description="Target node ID")
    type: Optional[str] = Field(default=None, description="Edge type")
    animated: bool = Field(default=False, description="Whether the edge is animated")

    model_config = ConfigDict(extra="allow")

    @property
    def key(self) -> str:
        """Identity of the edge for diffing: its endpoints, not its ID."""
        return f"{self.source}-{self.target}"


class WorkflowDefinition(BaseModel):
    """Graph snapshot of a workflow: ordered nodes and edges."""

    nodes: List[WorkflowNode] = Field(default_factory=list, description="Workflow nodes")
    edges: List[WorkflowEdge] = Field(default_factory=list, description="Workflow edges")

    model_config = ConfigDict(extra="allow")

    @classmethod
    def coerce(cls, value: Any) -> "WorkflowDefinition":
        """Return a private deep copy of ``value`` as a definition."""
        if isinstance(value, cls):
            return value.model_copy(deep=True)
        try:
            return cls.model_validate(value)
        except ValidationError as e:
            raise WorkflowDefinitionError(f"Invalid workflow definition: {e}") from e

    def node_map(self) -> Dict[str, WorkflowNode]:
        """Nodes keyed by ID, in definition order."""
        return {node.id: node for node in self.nodes}

    def edge_map(self) -> Dict[str, WorkflowEdge]:
        """Edges keyed by ``source-target``, in definition order."""
        return {edge.key: edge for edge in self.edges}

    def content_hash(self) -> str:
        """Calculate SHA-256 hash of the definition content."""
        content_json = canonical_json(self.model_dump(mode="json"))
        return hashlib.sha256(content_json.encode('utf-8')).hexdigest()


class VersionStats(BaseModel):
    """Derived metrics for a workflow snapshot."""

    node_count: int = Field(default=0, description="Number of nodes")
    edge_count: int = Field(default=0, description="Number of edges")
    complexity: int = Field(default=0, description="Structural complexity score")
    estimated_execution_time_ms: int = Field(
        default=0, description="Rough execution time estimate in milliseconds"
    )


class WorkflowVersion(BaseModel):
    """Immutable snapshot of a workflow at one point in its lineage."""

    id: str = Field(..., description="Version ID derived from workflow ID and number")
    workflow_id: str = Field(..., description="Workflow ID")
    version: int = Field(..., ge=1, description="Sequential version number")
    name: str = Field(..., description="Version name")
    description: str = Field(default="", description="Version description")
    change_summary: str = Field(default="", description="Summary of what changed")
    definition: WorkflowDefinition = Field(..., description="Workflow graph snapshot")
    created_by: str = Field(..., description="Author of this version")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), description="Creation timestamp"
    )
    is_active: bool = Field(default=False, description="Whether this is the current version")
    parent_version: Optional[int] = Field(
        default=None, description="Version this one was derived from"
    )
    content_hash: str = Field(default="", description="Hash of the definition content")
    stats: VersionStats = Field(default_factory=VersionStats, description="Snapshot metrics")
    tags: List[str] = Field(default_factory=list, description="Version tags")

    @staticmethod
    def make_id(workflow_id: str, version: int) -> str:
        """Build the version ID for a workflow and sequence number."""
        return f"{workflow_id}:v{version}"

    def is_initial_version(self) -> bool:
        """Check if this is an initial version (no parent)."""
        return self.parent_version is None


class WorkflowChange(BaseModel):
    """A single detected difference between two definitions."""

    type: ChangeType = Field(..., description="Change classification")
    node_id: Optional[str] = Field(default=None, description="Subject node ID")
    edge_id: Optional[str] = Field(default=None, description="Subject edge ID")
    field: Optional[str] = Field(default=None, description="Dotted path of the changed field")
    old_value: Any = Field(default=None, description="Value before the change")
    new_value: Any = Field(default=None, description="Value after the change")
    description: str = Field(..., description="Human-readable rendering")


class VersionComparison(BaseModel):
    """Structured result of diffing two definitions."""

    added: List[WorkflowChange] = Field(default_factory=list, description="Added elements")
    removed: List[WorkflowChange] = Field(default_factory=list, description="Removed elements")
    modified: List[WorkflowChange] = Field(default_factory=list, description="Modified elements")
    changes: List[WorkflowChange] = Field(
        default_factory=list, description="All changes in emission order"
    )
    summary: str = Field(..., description="Human-readable summary")

    @property
    def total_changes(self) -> int:
        return len(self.added) + len(self.removed) + len(self.modified)

    def get_changes_by_type(self, change_type: ChangeType) -> List[WorkflowChange]:
        """Get changes of specific type."""
        return [change for change in self.changes if change.type == change_type]

    def has_breaking_changes(self) -> bool:
        """Check if the comparison removes any node or connection."""
        return any(
            change.type in (ChangeType.NODE_REMOVED, ChangeType.EDGE_REMOVED)
            for change in self.changes
        )
