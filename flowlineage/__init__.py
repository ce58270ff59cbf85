"""FlowLineage - version lineage and structural diffs for workflow graphs."""

__version__ = "0.1.0"
