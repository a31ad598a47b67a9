from collections.abc import Awaitable, Callable
from typing import Any

import structlog
from pydantic import ValidationError as PydanticValidationError

from protracker.core.core import Service
from protracker.core.modules.workspace.models import Workspace
from protracker.core.modules.workspace.store import Document, Subscription
from protracker.errors import NotFoundError, TransportUnavailableError, ValidationError, WriteError
from protracker.utils import mask_code, now

logger = structlog.get_logger(__name__)

WorkspaceCallback = Callable[[Workspace | None], Awaitable[None]]


class WorkspaceService(Service):
    """Adapter between workspace documents and the document store.

    Reads fail with distinct errors for a missing workspace and an unreachable
    store. Writes fail loudly with the transport error code and are never
    retried.
    """

    @property
    def _collection(self) -> str:
        return self.core.config.workspace_collection

    @staticmethod
    def validate_code(code: str) -> str:
        """Return the normalized access code or raise ValidationError."""
        code = code.strip()
        if not code:
            raise ValidationError("Access code cannot be empty")
        if "/" in code:
            raise ValidationError("Access code cannot contain '/'")
        return code

    async def exists(self, code: str) -> bool:
        try:
            return await self.store.document_exists(self._collection, code)
        except TransportUnavailableError:
            logger.warning("workspace_exists_failed", workspace=mask_code(code))
            raise

    async def read_all(self, code: str) -> Workspace:
        """Load the whole workspace document."""
        try:
            doc = await self.store.get_document(self._collection, code)
        except TransportUnavailableError:
            logger.warning("workspace_read_failed", workspace=mask_code(code))
            raise
        if doc is None:
            raise NotFoundError(f"Workspace '{code}' not found")
        return Workspace.model_validate(doc)

    async def write_merge(self, code: str, partial: Document) -> None:
        """Merge top-level fields into the workspace document.

        Array fields such as ``projects`` are replaced as a whole.
        """
        timestamp = now().isoformat()
        data = {**partial, "lastAccessedAt": timestamp, "lastUpdatedAt": timestamp}
        await self._guard_write(code, self.store.set_document_merge(self._collection, code, data))

    async def replace_project(self, code: str, project: Document, expected_revision: int) -> bool:
        """Compare-and-set one project; False if it is missing or its revision moved on."""
        return bool(
            await self._guard_write(
                code,
                self.store.replace_array_item(
                    self._collection,
                    code,
                    "projects",
                    project["id"],
                    expected_revision,
                    project,
                    extra=self._stamps(),
                ),
            )
        )

    async def prepend_projects(self, code: str, projects: list[Document]) -> None:
        await self._guard_write(
            code, self.store.push_array_items(self._collection, code, "projects", projects, extra=self._stamps())
        )

    async def remove_project(self, code: str, project_id: str) -> bool:
        return bool(
            await self._guard_write(
                code, self.store.remove_array_item(self._collection, code, "projects", project_id, extra=self._stamps())
            )
        )

    async def subscribe(self, code: str, on_change: WorkspaceCallback) -> Subscription:
        """Register a live callback for every change of the workspace document.

        The current state is delivered once immediately. Own writes come back
        through the callback too.
        """

        async def deliver(doc: Document | None) -> None:
            if doc is None:
                await on_change(None)
                return
            try:
                workspace = Workspace.model_validate(doc)
            except PydanticValidationError:
                logger.exception("workspace_change_invalid", workspace=mask_code(code))
                return
            await on_change(workspace)

        return await self.store.subscribe(self._collection, code, deliver)

    async def open(self, code: str) -> tuple[Workspace, bool]:
        """Open a workspace, creating an empty one when the code is new.

        Returns the workspace and whether it was created.
        """
        code = self.validate_code(code)
        timestamp = now().isoformat()
        # Insert-if-absent in one write; a workspace another client created meanwhile stays intact
        created = bool(
            await self._guard_write(
                code,
                self.store.create_document_if_absent(
                    self._collection,
                    code,
                    {"projects": [], "lastUpdatedAt": timestamp},
                    {"lastAccessedAt": timestamp},
                ),
            )
        )
        if created:
            logger.info("workspace_created", workspace=mask_code(code))
        return await self.read_all(code), created

    @staticmethod
    def _stamps() -> Document:
        return {"lastUpdatedAt": now().isoformat()}

    async def _guard_write(self, code: str, operation: Awaitable[Any]) -> Any:
        try:
            return await operation
        except WriteError as e:
            logger.error("workspace_write_failed", workspace=mask_code(code), code=e.code)
            raise
