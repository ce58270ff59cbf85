"""Storage backends for workflow version lineages."""

from abc import ABC, abstractmethod
from typing import Dict, List

import structlog

from .models import WorkflowVersion

logger = structlog.get_logger()


class VersionStore(ABC):
    """Abstract base class for lineage storage backends.

    A lineage is the ordered list of versions of one workflow. Backends own
    their records and hand out copies; version numbering and the
    single-active-version rule are enforced by the version manager.
    """

    @abstractmethod
    async def get_lineage(self, workflow_id: str) -> List[WorkflowVersion]:
        """Return the lineage in creation order (empty if unknown)."""
        pass

    @abstractmethod
    async def append(self, version: WorkflowVersion) -> None:
        """Append a version to the end of its workflow's lineage."""
        pass

    @abstractmethod
    async def set_active(self, workflow_id: str, version: int, is_active: bool) -> bool:
        """Update the active flag of one version. False if it does not exist."""
        pass

    @abstractmethod
    async def deactivate_all(self, workflow_id: str) -> None:
        """Clear the active flag on every version of a workflow."""
        pass

    @abstractmethod
    async def remove(self, workflow_id: str, version: int) -> bool:
        """Remove one version, keeping the order of the rest."""
        pass

    @abstractmethod
    async def add_tag(self, workflow_id: str, version: int, tag: str) -> bool:
        """Attach a tag to one version if not already present. False if it does not exist."""
        pass

    @abstractmethod
    async def workflow_ids(self) -> List[str]:
        """IDs of all workflows with at least one version."""
        pass


class InMemoryVersionStore(VersionStore):
    """Process-local lineage storage."""

    def __init__(self):
        self._lineages: Dict[str, List[WorkflowVersion]] = {}
        self.logger = logger.bind(component="in_memory_version_store")

    async def get_lineage(self, workflow_id: str) -> List[WorkflowVersion]:
        return [entry.model_copy(deep=True) for entry in self._lineages.get(workflow_id, [])]

    async def append(self, version: WorkflowVersion) -> None:
        self._lineages.setdefault(version.workflow_id, []).append(version.model_copy(deep=True))
        self.logger.debug("Appended version",
                          workflow_id=version.workflow_id,
                          version=version.version)

    async def set_active(self, workflow_id: str, version: int, is_active: bool) -> bool:
        for entry in self._lineages.get(workflow_id, []):
            if entry.version == version:
                entry.is_active = is_active
                return True
        return False

    async def deactivate_all(self, workflow_id: str) -> None:
        for entry in self._lineages.get(workflow_id, []):
            entry.is_active = False

    async def add_tag(self, workflow_id: str, version: int, tag: str) -> bool:
        for entry in self._lineages.get(workflow_id, []):
            if entry.version == version:
                if tag not in entry.tags:
                    entry.tags.append(tag)
                return True
        return False

    async def remove(self, workflow_id: str, version: int) -> bool:
        lineage = self._lineages.get(workflow_id, [])
        for index, entry in enumerate(lineage):
            if entry.version == version:
                del lineage[index]
                self.logger.debug("Removed version", workflow_id=workflow_id, version=version)
                return True
        return False

    async def workflow_ids(self) -> List[str]:
        return [workflow_id for workflow_id, lineage in self._lineages.items() if lineage]
