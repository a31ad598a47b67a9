"""Tests for workspace access through the service layer."""

import asyncio

import pytest

from protracker.core.modules.project.models import ProjectDetails
from protracker.core.modules.workspace.service import WorkspaceService
from protracker.core.modules.workspace.store import MemoryDocumentStore
from protracker.errors import NotFoundError, TransportUnavailableError, ValidationError, WriteError

CODE = "team-a"


class UnreachableStore(MemoryDocumentStore):
    async def document_exists(self, collection, key):
        raise TransportUnavailableError

    async def get_document(self, collection, key):
        raise TransportUnavailableError


class RejectingStore(MemoryDocumentStore):
    async def set_document_merge(self, collection, key, partial):
        raise WriteError("Could not save workspace", code="permission-denied")

    async def create_document_if_absent(self, collection, key, initial, stamps):
        raise WriteError("Could not save workspace", code="permission-denied")


class SlowCreateStore(MemoryDocumentStore):
    """Lets other clients run before the create-if-absent write lands."""

    async def create_document_if_absent(self, collection, key, initial, stamps):
        await asyncio.sleep(0.05)
        return await super().create_document_if_absent(collection, key, initial, stamps)


class TestValidateCode:
    def test_code_is_stripped(self):
        assert WorkspaceService.validate_code("  team-a ") == "team-a"

    @pytest.mark.parametrize("code", ["", "   ", "a/b"])
    def test_invalid_codes_rejected(self, code):
        with pytest.raises(ValidationError):
            WorkspaceService.validate_code(code)


class TestOpen:
    def test_new_code_creates_empty_workspace(self, core):
        async def scenario():
            async with core.lifespan():
                first = await core.services.workspace.open(CODE)
                second = await core.services.workspace.open(f" {CODE} ")
                return first, second

        (workspace, created), (_, created_again) = asyncio.run(scenario())
        assert created is True
        assert created_again is False
        assert workspace.projects == []
        assert workspace.custom_steps is None
        assert workspace.last_accessed_at is not None

    def test_workspace_created_meanwhile_is_kept(self, core, three_step_template):
        store = SlowCreateStore()
        core.services.workspace.store = store

        async def scenario():
            opening = asyncio.create_task(core.services.workspace.open(CODE))
            await asyncio.sleep(0)
            # Another client creates the workspace and a project while the open is in flight
            await store.set_document_merge("workspaces", CODE, {"projects": []})
            await core.services.project.create_project(CODE, ProjectDetails(name="P"), three_step_template)
            workspace, created = await opening
            return created, workspace, await core.services.workspace.read_all(CODE)

        created, opened, stored = asyncio.run(scenario())
        assert created is False
        assert [p.name for p in opened.projects] == ["P"]
        assert [p.name for p in stored.projects] == ["P"]

    def test_invalid_code_never_reaches_store(self, core):
        core.services.workspace.store = UnreachableStore()

        async def scenario():
            await core.services.workspace.open("a/b")

        with pytest.raises(ValidationError):
            asyncio.run(scenario())


class TestReadFailures:
    """Missing workspaces and unreachable stores are reported differently."""

    def test_missing_workspace(self, core):
        with pytest.raises(NotFoundError):
            asyncio.run(core.services.workspace.read_all("nobody"))

    def test_unreachable_store(self, core):
        core.services.workspace.store = UnreachableStore()
        with pytest.raises(TransportUnavailableError):
            asyncio.run(core.services.workspace.read_all(CODE))
        with pytest.raises(TransportUnavailableError):
            asyncio.run(core.services.workspace.exists(CODE))

    def test_write_failure_carries_code(self, core):
        core.services.workspace.store = RejectingStore()
        with pytest.raises(WriteError, match=r"\(code: permission-denied\)") as exc_info:
            asyncio.run(core.services.workspace.open(CODE))
        assert exc_info.value.code == "permission-denied"


class TestSubscribe:
    def test_invalid_documents_are_skipped(self, core):
        async def scenario():
            received = []

            async def on_change(workspace):
                received.append(workspace)

            await core.services.workspace.open(CODE)
            subscription = await core.services.workspace.subscribe(CODE, on_change)
            await core.store.set_document_merge("workspaces", CODE, {"projects": "not a list"})
            await core.store.set_document_merge("workspaces", CODE, {"projects": []})
            subscription.cancel()
            return received

        received = asyncio.run(scenario())
        assert len(received) == 2
        assert all(workspace.projects == [] for workspace in received)
