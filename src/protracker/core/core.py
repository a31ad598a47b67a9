from __future__ import annotations

import importlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, cast

from protracker.config import Config
from protracker.core.modules.workspace.store import DocumentStore, create_document_store


class Service:
    """Base class for services with direct document store access."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store
        self._core: Core | None = None

    async def on_start(self) -> None:
        """Initialize service on application startup."""

    async def on_stop(self) -> None:
        """Cleanup service on application shutdown."""

    @property
    def core(self) -> Core:
        """Get the core application context."""
        if self._core is None:
            raise RuntimeError("Core not set for service")
        return self._core

    def set_core(self, core: Core) -> None:
        """Set the core application context."""
        self._core = core


class Services:
    """Service registry that automatically discovers and initializes services."""

    if TYPE_CHECKING:
        from protracker.core.modules.project.service import ProjectService
        from protracker.core.modules.sync.service import SyncService
        from protracker.core.modules.template.service import TemplateService
        from protracker.core.modules.workspace.service import WorkspaceService

    workspace: WorkspaceService
    template: TemplateService
    project: ProjectService
    sync: SyncService

    def __init__(self, store: DocumentStore) -> None:
        """Initialize all services automatically using service configuration."""
        self._services: list[Service] = []
        self._store = store

        # Service configuration: (attribute_name, module_path, class_name)
        # Sync must stop first so no session writes after the store closes
        service_configs = [
            ("sync", "protracker.core.modules.sync.service", "SyncService"),
            ("workspace", "protracker.core.modules.workspace.service", "WorkspaceService"),
            ("template", "protracker.core.modules.template.service", "TemplateService"),
            ("project", "protracker.core.modules.project.service", "ProjectService"),
        ]

        for attr_name, module_path, class_name in service_configs:
            module = importlib.import_module(module_path)
            service_class = cast(type[Service], getattr(module, class_name))
            service_instance = service_class(store)
            setattr(self, attr_name, service_instance)
            self._services.append(service_instance)

    def set_core(self, core: Core) -> None:
        """Set core reference for all services."""
        for service in self._services:
            service.set_core(core)

    async def start_all(self) -> None:
        """Start all services that have startup logic."""
        for service in self._services:
            await service.on_start()

    async def stop_all(self) -> None:
        """Stop all services that have cleanup logic."""
        for service in self._services:
            await service.on_stop()


class Core:
    """Container providing config, the document store, and all service instances."""

    config: Config
    store: DocumentStore
    services: Services

    def __init__(self, config: Config) -> None:
        self.config = config
        self.store = create_document_store(config.database_url)
        self.services = Services(self.store)
        self.services.set_core(self)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Manage application lifecycle - startup and shutdown."""
        await self.on_start()
        try:
            yield
        finally:
            await self.on_stop()

    async def on_start(self) -> None:
        await self.services.start_all()

    async def on_stop(self) -> None:
        """Stop services and close the document store on shutdown."""
        await self.services.stop_all()
        await self.store.close()
