"""Shared pytest fixtures."""

import pytest

from protracker.config import Config
from protracker.core.core import Core
from protracker.core.modules.project.models import Project, ProjectDetails, create_project
from protracker.core.modules.template.models import StepTemplateEntry


@pytest.fixture
def config():
    """Configuration backed by the in-process document store."""
    return Config(database_url="memory://", session_secret_key="test-secret")


@pytest.fixture
def core(config):
    """Core wired to a fresh memory store. Not started; tests enter its lifespan."""
    return Core(config)


@pytest.fixture
def three_step_template():
    """Template with three steps and no checklist items."""
    return [
        StepTemplateEntry(id=1, title="S1"),
        StepTemplateEntry(id=2, title="S2"),
        StepTemplateEntry(id=3, title="S3"),
    ]


@pytest.fixture
def checklist_template():
    """Template whose first step carries two default checklist items."""
    return [
        StepTemplateEntry(id=1, title="Survey", default_checklist=["A", "B"]),
        StepTemplateEntry(id=2, title="Approve", default_checklist=["Sign"]),
    ]


@pytest.fixture
def details():
    return ProjectDetails(name="Office laptops", description="Replace ten laptops", budget=250000)


@pytest.fixture
def project(details, three_step_template) -> Project:
    return create_project(details, three_step_template)


@pytest.fixture
def checklist_project(details, checklist_template) -> Project:
    return create_project(details, checklist_template)
