"""Version control exceptions."""

from enum import Enum
from typing import Optional

from flowlineage.exceptions import FlowLineageException


class ErrorKind(str, Enum):
    """Kinds of version control failures."""
    NOT_FOUND = "not_found"
    INVALID_STATE = "invalid_state"
    CONFLICT = "conflict"
    INVALID_DEFINITION = "invalid_definition"


class VersionControlError(FlowLineageException):
    """Base exception for version control operations."""

    kind: ErrorKind = ErrorKind.INVALID_STATE

    def __init__(self, message: str, workflow_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.workflow_id = workflow_id


class VersionNotFoundError(VersionControlError):
    """Raised when a requested version does not exist."""
    kind = ErrorKind.NOT_FOUND


class VersionConflictError(VersionControlError):
    """Raised when the lineage head moved since the caller last read it."""

    kind = ErrorKind.CONFLICT

    def __init__(
        self,
        message: str,
        workflow_id: Optional[str] = None,
        expected_version: Optional[int] = None,
        current_version: Optional[int] = None,
    ):
        super().__init__(message, workflow_id=workflow_id)
        self.expected_version = expected_version
        self.current_version = current_version


class WorkflowDefinitionError(VersionControlError):
    """Raised when a workflow definition cannot be parsed."""
    kind = ErrorKind.INVALID_DEFINITION
