"""Workflow version lineage management.

Each workflow has an append-only lineage of immutable snapshots. Creating a
version or rolling back always appends a new head and makes it the single
active version; history is only shortened by explicit deletion.
"""

import asyncio
import weakref
from typing import Any, Dict, List, Optional, Union

import structlog

from flowlineage.config import settings

from .diff import DiffEngine
from .exceptions import VersionConflictError, VersionControlError, VersionNotFoundError
from .models import VersionComparison, WorkflowChange, WorkflowDefinition, WorkflowVersion
from .stats import calculate_stats
from .store import InMemoryVersionStore, VersionStore

logger = structlog.get_logger()

DefinitionInput = Union[WorkflowDefinition, Dict[str, Any]]


class WorkflowVersionManager:
    """Manager for workflow version control operations."""

    def __init__(
        self,
        store: Optional[VersionStore] = None,
        diff_engine: Optional[DiffEngine] = None,
    ):
        self.store = store if store is not None else InMemoryVersionStore()
        self.diff_engine = diff_engine or DiffEngine()
        self.logger = logger.bind(component="workflow_version_manager")
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    async def create_version(
        self,
        workflow_id: str,
        definition: DefinitionInput,
        *,
        name: str,
        created_by: str,
        description: str = "",
        change_summary: str = "",
        expected_version: Optional[int] = None,
    ) -> WorkflowVersion:
        """Append a new active version to the workflow's lineage."""
        snapshot = WorkflowDefinition.coerce(definition)

        async with self._lock_for(workflow_id):
            try:
                self.logger.info("Creating workflow version",
                                 workflow_id=workflow_id,
                                 name=name,
                                 created_by=created_by)

                version = await self._append_version(
                    workflow_id,
                    snapshot,
                    name=name,
                    description=description,
                    change_summary=change_summary,
                    created_by=created_by,
                    expected_version=expected_version,
                )

                self.logger.info("Workflow version created",
                                 version_id=version.id,
                                 version=version.version)
                return version

            except VersionControlError:
                raise
            except Exception as e:
                self.logger.error("Failed to create workflow version",
                                  workflow_id=workflow_id,
                                  error=str(e))
                raise VersionControlError(
                    f"Failed to create version: {str(e)}", workflow_id=workflow_id
                ) from e

    async def get_versions(self, workflow_id: str) -> List[WorkflowVersion]:
        """Full lineage in creation order."""
        return await self.store.get_lineage(workflow_id)

    async def get_version(self, workflow_id: str, version: int) -> Optional[WorkflowVersion]:
        """Get a version by its number."""
        for entry in await self.store.get_lineage(workflow_id):
            if entry.version == version:
                return entry
        return None

    async def get_active_version(self, workflow_id: str) -> Optional[WorkflowVersion]:
        """Get the version currently marked active."""
        for entry in await self.store.get_lineage(workflow_id):
            if entry.is_active:
                return entry
        return None

    async def set_active_version(self, workflow_id: str, version: int) -> bool:
        """Make an existing version the active one without adding history."""
        async with self._lock_for(workflow_id):
            if await self.get_version(workflow_id, version) is None:
                return False

            await self.store.deactivate_all(workflow_id)
            await self.store.set_active(workflow_id, version, True)

            self.logger.info("Active version changed",
                             workflow_id=workflow_id,
                             version=version)
            return True

    async def rollback_to_version(
        self,
        workflow_id: str,
        target_version: int,
        *,
        expected_version: Optional[int] = None,
    ) -> Optional[WorkflowVersion]:
        """Restore an old snapshot by appending a copy of it as the new head."""
        async with self._lock_for(workflow_id):
            target = await self.get_version(workflow_id, target_version)
            if target is None:
                self.logger.warning("Rollback target not found",
                                    workflow_id=workflow_id,
                                    target_version=target_version)
                return None

            try:
                self.logger.info("Rolling back workflow",
                                 workflow_id=workflow_id,
                                 target_version=target_version)

                version = await self._append_version(
                    workflow_id,
                    target.definition.model_copy(deep=True),
                    name=f"{target.name} (Rollback)",
                    description=target.description,
                    change_summary=f"Rollback to version {target_version}",
                    created_by=settings.rollback_author,
                    parent_version=target_version,
                    expected_version=expected_version,
                )

                self.logger.info("Workflow rolled back",
                                 version_id=version.id,
                                 restored_from=target_version)
                return version

            except VersionControlError:
                raise
            except Exception as e:
                self.logger.error("Failed to roll back workflow",
                                  workflow_id=workflow_id,
                                  target_version=target_version,
                                  error=str(e))
                raise VersionControlError(
                    f"Failed to roll back: {str(e)}", workflow_id=workflow_id
                ) from e

    async def delete_version(self, workflow_id: str, version: int) -> bool:
        """Delete a version; the last remaining version cannot be deleted."""
        async with self._lock_for(workflow_id):
            lineage = await self.store.get_lineage(workflow_id)
            index = next(
                (i for i, entry in enumerate(lineage) if entry.version == version), None
            )

            if index is None:
                return False
            if len(lineage) == 1:
                self.logger.warning("Refusing to delete the only version",
                                    workflow_id=workflow_id,
                                    version=version)
                return False

            was_active = lineage[index].is_active
            await self.store.remove(workflow_id, version)

            if was_active:
                # Fall forward to the next entry when the first one is deleted
                successor = lineage[index - 1] if index > 0 else lineage[index + 1]
                await self.store.set_active(workflow_id, successor.version, True)

            self.logger.info("Workflow version deleted",
                             workflow_id=workflow_id,
                             version=version,
                             was_active=was_active)
            return True

    async def compare_versions(
        self,
        workflow_id: str,
        version1: int,
        version2: int,
    ) -> VersionComparison:
        """Diff ``version1`` against ``version2`` in that direction."""
        try:
            self.logger.info("Comparing workflow versions",
                             workflow_id=workflow_id,
                             version_from=version1,
                             version_to=version2)

            from_version = await self.get_version(workflow_id, version1)
            to_version = await self.get_version(workflow_id, version2)

            if not from_version or not to_version:
                raise VersionNotFoundError(
                    "One or both versions not found", workflow_id=workflow_id
                )

            return self.diff_engine.calculate_differences(
                from_version.definition, to_version.definition
            )

        except VersionControlError as e:
            self.logger.error("Failed to compare workflow versions",
                              workflow_id=workflow_id,
                              error=str(e))
            raise
        except Exception as e:
            self.logger.error("Failed to compare workflow versions",
                              workflow_id=workflow_id,
                              error=str(e))
            raise VersionControlError(
                f"Failed to compare versions: {str(e)}", workflow_id=workflow_id
            ) from e

    async def get_change_history(self, workflow_id: str) -> List[WorkflowChange]:
        """All changes between consecutive versions, oldest first."""
        lineage = await self.store.get_lineage(workflow_id)
        history: List[WorkflowChange] = []

        for previous, current in zip(lineage, lineage[1:]):
            comparison = self.diff_engine.calculate_differences(
                previous.definition, current.definition
            )
            history.extend(comparison.added)
            history.extend(comparison.removed)
            history.extend(comparison.modified)

        return history

    async def get_version_history(
        self,
        workflow_id: str,
        limit: Optional[int] = None,
    ) -> List[WorkflowVersion]:
        """Most recent versions first."""
        limit = limit if limit is not None else settings.history_limit
        lineage = await self.store.get_lineage(workflow_id)
        return list(reversed(lineage))[:limit]

    async def tag_version(self, workflow_id: str, version: int, tag: str) -> bool:
        """Attach a tag to a version. Tagging twice is a no-op."""
        async with self._lock_for(workflow_id):
            if not await self.store.add_tag(workflow_id, version, tag):
                return False

            self.logger.info("Version tagged",
                             workflow_id=workflow_id,
                             version=version,
                             tag=tag)
            return True

    async def get_versions_by_tag(self, workflow_id: str, tag: str) -> List[WorkflowVersion]:
        return [entry for entry in await self.store.get_lineage(workflow_id) if tag in entry.tags]

    # Private helper methods

    def _lock_for(self, workflow_id: str) -> asyncio.Lock:
        """Write lock for one workflow, dropped once no operation holds it."""
        lock = self._locks.get(workflow_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[workflow_id] = lock
        return lock

    async def _append_version(
        self,
        workflow_id: str,
        definition: WorkflowDefinition,
        *,
        name: str,
        description: str,
        change_summary: str,
        created_by: str,
        parent_version: Optional[int] = None,
        expected_version: Optional[int] = None,
    ) -> WorkflowVersion:
        """Deactivate the lineage and append ``definition`` as the active head.

        Callers must hold the workflow lock.
        """
        lineage = await self.store.get_lineage(workflow_id)
        head = lineage[-1] if lineage else None
        current_version = head.version if head else 0

        if expected_version is not None and expected_version != current_version:
            raise VersionConflictError(
                f"Workflow {workflow_id} is at version {current_version}, "
                f"expected {expected_version}",
                workflow_id=workflow_id,
                expected_version=expected_version,
                current_version=current_version,
            )

        next_version = current_version + 1
        if parent_version is None and head is not None:
            parent_version = head.version

        version = WorkflowVersion(
            id=WorkflowVersion.make_id(workflow_id, next_version),
            workflow_id=workflow_id,
            version=next_version,
            name=name,
            description=description,
            change_summary=change_summary,
            definition=definition,
            created_by=created_by,
            is_active=True,
            parent_version=parent_version,
            content_hash=definition.content_hash(),
            stats=calculate_stats(definition),
        )

        await self.store.deactivate_all(workflow_id)
        await self.store.append(version)
        return version
