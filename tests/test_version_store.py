"""Test lineage storage backends."""

import pytest

from flowlineage.history import InMemoryVersionStore, VersionStore, WorkflowDefinition, WorkflowVersion


def make_version(workflow_id: str, number: int, is_active: bool = False) -> WorkflowVersion:
    return WorkflowVersion(
        id=WorkflowVersion.make_id(workflow_id, number),
        workflow_id=workflow_id,
        version=number,
        name=f"Version {number}",
        definition=WorkflowDefinition(),
        created_by="alice",
        is_active=is_active,
    )


@pytest.mark.unit
class TestInMemoryVersionStore:
    """Test InMemoryVersionStore."""

    def test_is_a_version_store(self, version_store):
        assert isinstance(version_store, VersionStore)

    @pytest.mark.asyncio
    async def test_append_and_get_lineage(self, version_store):
        await version_store.append(make_version("wf1", 1))
        await version_store.append(make_version("wf1", 2))
        await version_store.append(make_version("wf2", 1))

        lineage = await version_store.get_lineage("wf1")
        assert [v.version for v in lineage] == [1, 2]
        assert await version_store.get_lineage("unknown") == []
        assert sorted(await version_store.workflow_ids()) == ["wf1", "wf2"]

    @pytest.mark.asyncio
    async def test_get_lineage_returns_copy(self, version_store):
        await version_store.append(make_version("wf1", 1))

        lineage = await version_store.get_lineage("wf1")
        lineage.clear()

        assert len(await version_store.get_lineage("wf1")) == 1

    @pytest.mark.asyncio
    async def test_active_flags(self, version_store):
        await version_store.append(make_version("wf1", 1, is_active=True))
        await version_store.append(make_version("wf1", 2))

        assert await version_store.set_active("wf1", 2, True) is True
        assert await version_store.set_active("wf1", 3, True) is False

        await version_store.deactivate_all("wf1")
        assert not any(v.is_active for v in await version_store.get_lineage("wf1"))

    @pytest.mark.asyncio
    async def test_remove_preserves_order(self, version_store):
        for number in (1, 2, 3):
            await version_store.append(make_version("wf1", number))

        assert await version_store.remove("wf1", 2) is True
        assert await version_store.remove("wf1", 2) is False

        assert [v.version for v in await version_store.get_lineage("wf1")] == [1, 3]

    @pytest.mark.asyncio
    async def test_empty_lineage_is_not_listed(self):
        store = InMemoryVersionStore()
        await store.append(make_version("wf1", 1))
        await store.remove("wf1", 1)

        assert await store.workflow_ids() == []

    @pytest.mark.asyncio
    async def test_records_are_not_shared_with_callers(self, version_store):
        version = make_version("wf1", 1)
        await version_store.append(version)

        version.name = "Changed after append"
        fetched = (await version_store.get_lineage("wf1"))[0]
        fetched.tags.append("leaked")
        fetched.is_active = True

        stored = (await version_store.get_lineage("wf1"))[0]
        assert stored.name == "Version 1"
        assert stored.tags == []
        assert stored.is_active is False

    @pytest.mark.asyncio
    async def test_add_tag(self, version_store):
        await version_store.append(make_version("wf1", 1))

        assert await version_store.add_tag("wf1", 1, "approved") is True
        assert await version_store.add_tag("wf1", 1, "approved") is True
        assert await version_store.add_tag("wf1", 2, "approved") is False

        assert (await version_store.get_lineage("wf1"))[0].tags == ["approved"]
