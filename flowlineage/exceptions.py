"""Base exceptions for FlowLineage."""


class FlowLineageException(Exception):
    """Base exception for all FlowLineage errors."""
    pass
