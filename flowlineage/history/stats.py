"""Derived metrics for workflow snapshots."""

import networkx as nx

from .models import VersionStats, WorkflowDefinition

CONDITIONAL_NODE_TYPES = {"if", "switch", "loop"}

# Connections a node may have before it adds to the complexity score
CONNECTION_THRESHOLD = 3

NODE_EXECUTION_TIME_MS = {
    "dataProcessor": 100,
    "aiAgent": 2000,
    "if": 50,
    "switch": 50,
    "loop": 500,
}
DEFAULT_EXECUTION_TIME_MS = 100


def build_graph(definition: WorkflowDefinition) -> nx.MultiDiGraph:
    """Build a directed multigraph; parallel connections are kept."""
    graph = nx.MultiDiGraph()
    for node in definition.nodes:
        graph.add_node(node.id, type=node.type)
    for edge in definition.edges:
        graph.add_edge(edge.source, edge.target, key=edge.id)
    return graph


def calculate_complexity(definition: WorkflowDefinition) -> int:
    """Score nodes, conditional branching and heavily connected nodes."""
    complexity = len(definition.nodes)
    complexity += 2 * sum(1 for node in definition.nodes if node.type in CONDITIONAL_NODE_TYPES)

    graph = build_graph(definition)
    for _, connections in graph.degree():
        if connections > CONNECTION_THRESHOLD:
            complexity += connections - CONNECTION_THRESHOLD

    return complexity


def estimate_execution_time(definition: WorkflowDefinition) -> int:
    """Rough execution time in milliseconds based on node types."""
    return sum(
        NODE_EXECUTION_TIME_MS.get(node.type, DEFAULT_EXECUTION_TIME_MS)
        for node in definition.nodes
    )


def calculate_stats(definition: WorkflowDefinition) -> VersionStats:
    return VersionStats(
        node_count=len(definition.nodes),
        edge_count=len(definition.edges),
        complexity=calculate_complexity(definition),
        estimated_execution_time_ms=estimate_execution_time(definition),
    )
