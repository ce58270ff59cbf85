"""Structural diff between two workflow graph definitions.

Nodes are matched by ID. Edges are matched by their endpoints
(``"<source>-<target>"``), so re-pointing an edge shows up as one removed and
one added connection even when its ID is unchanged.
"""

from typing import Any, Dict, List, Tuple

import structlog

from .models import (
    ChangeType,
    VersionComparison,
    WorkflowChange,
    WorkflowDefinition,
    WorkflowEdge,
    WorkflowNode,
    canonical_json,
)

logger = structlog.get_logger()

_MISSING = object()


class DiffEngine:
    """Computes a VersionComparison between two workflow definitions."""

    def __init__(self):
        self.logger = logger.bind(component="diff_engine")

    def calculate_differences(
        self,
        definition1: WorkflowDefinition,
        definition2: WorkflowDefinition,
    ) -> VersionComparison:
        """Diff ``definition1`` (before) against ``definition2`` (after)."""
        changes: List[WorkflowChange] = []
        added: List[WorkflowChange] = []
        removed: List[WorkflowChange] = []
        modified: List[WorkflowChange] = []

        def record(bucket: List[WorkflowChange], change: WorkflowChange) -> None:
            changes.append(change)
            bucket.append(change)

        nodes1 = definition1.node_map()
        nodes2 = definition2.node_map()

        for node_id, node in nodes2.items():
            if node_id not in nodes1:
                record(added, WorkflowChange(
                    type=ChangeType.NODE_ADDED,
                    node_id=node_id,
                    new_value=node.model_dump(mode="json"),
                    description=f'Node "{node.label}" added',
                ))

        for node_id, node in nodes1.items():
            if node_id not in nodes2:
                record(removed, WorkflowChange(
                    type=ChangeType.NODE_REMOVED,
                    node_id=node_id,
                    old_value=node.model_dump(mode="json"),
                    description=f'Node "{node.label}" removed',
                ))

        for node_id, node1 in nodes1.items():
            node2 = nodes2.get(node_id)
            if node2 is not None:
                for change in self.compare_nodes(node1, node2):
                    record(modified, change)

        edges1 = definition1.edge_map()
        edges2 = definition2.edge_map()

        for key, edge in edges2.items():
            if key not in edges1:
                record(added, WorkflowChange(
                    type=ChangeType.EDGE_ADDED,
                    edge_id=edge.id,
                    new_value=edge.model_dump(mode="json"),
                    description=f"Connection added from {edge.source} to {edge.target}",
                ))

        for key, edge in edges1.items():
            if key not in edges2:
                record(removed, WorkflowChange(
                    type=ChangeType.EDGE_REMOVED,
                    edge_id=edge.id,
                    old_value=edge.model_dump(mode="json"),
                    description=f"Connection removed from {edge.source} to {edge.target}",
                ))

        for key, edge1 in edges1.items():
            edge2 = edges2.get(key)
            if edge2 is not None:
                for change in self.compare_edges(edge1, edge2):
                    record(modified, change)

        summary = self.generate_change_summary(added, removed, modified)
        self.logger.debug("Calculated workflow differences",
                          added=len(added),
                          removed=len(removed),
                          modified=len(modified))

        return VersionComparison(
            added=added,
            removed=removed,
            modified=modified,
            changes=changes,
            summary=summary,
        )

    def compare_nodes(self, node1: WorkflowNode, node2: WorkflowNode) -> List[WorkflowChange]:
        """Field-level changes between two versions of the same node."""
        changes = []

        if node1.position.x != node2.position.x or node1.position.y != node2.position.y:
            changes.append(WorkflowChange(
                type=ChangeType.NODE_MODIFIED,
                node_id=node1.id,
                field="position",
                old_value=node1.position.model_dump(),
                new_value=node2.position.model_dump(),
                description="Node position changed",
            ))

        for field, old_value, new_value, action in self.compare_objects(
            node1.data, node2.data, "data"
        ):
            changes.append(WorkflowChange(
                type=ChangeType.NODE_MODIFIED,
                node_id=node1.id,
                field=field,
                old_value=old_value,
                new_value=new_value,
                description=f"Field {field} {action}",
            ))

        return changes

    def compare_objects(
        self,
        obj1: Dict[str, Any],
        obj2: Dict[str, Any],
        prefix: str,
    ) -> List[Tuple[str, Any, Any, str]]:
        """Key-level differences as ``(field, old, new, action)`` tuples.

        Keys are visited in ``obj1`` order followed by keys only in ``obj2``.
        Missing sides are reported as ``None``.
        """
        differences = []
        keys = list(obj1.keys()) + [key for key in obj2.keys() if key not in obj1]

        for key in keys:
            field = f"{prefix}.{key}"
            old_value = obj1.get(key, _MISSING)
            new_value = obj2.get(key, _MISSING)

            if new_value is _MISSING:
                differences.append((field, old_value, None, "removed"))
            elif old_value is _MISSING:
                differences.append((field, None, new_value, "added"))
            elif canonical_json(old_value) != canonical_json(new_value):
                differences.append((field, old_value, new_value, "changed"))

        return differences

    def compare_edges(self, edge1: WorkflowEdge, edge2: WorkflowEdge) -> List[WorkflowChange]:
        """Compare the ``type`` and ``animated`` flags of a connection."""
        changes = []

        if edge1.type != edge2.type:
            changes.append(WorkflowChange(
                type=ChangeType.EDGE_MODIFIED,
                edge_id=edge2.id,
                field="type",
                old_value=edge1.type,
                new_value=edge2.type,
                description=f"Edge type changed from {edge1.type} to {edge2.type}",
            ))

        if edge1.animated != edge2.animated:
            changes.append(WorkflowChange(
                type=ChangeType.EDGE_MODIFIED,
                edge_id=edge2.id,
                field="animated",
                old_value=edge1.animated,
                new_value=edge2.animated,
                description="Edge animation changed",
            ))

        return changes

    @staticmethod
    def generate_change_summary(
        added: List[WorkflowChange],
        removed: List[WorkflowChange],
        modified: List[WorkflowChange],
    ) -> str:
        """Render counts as ``Total changes: n (a added, r removed, m modified)``."""
        total = len(added) + len(removed) + len(modified)
        if total == 0:
            return "No changes detected"

        parts = []
        if added:
            parts.append(f"{len(added)} added")
        if removed:
            parts.append(f"{len(removed)} removed")
        if modified:
            parts.append(f"{len(modified)} modified")

        return f"Total changes: {total} ({', '.join(parts)})"
