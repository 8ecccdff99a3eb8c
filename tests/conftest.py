"""
Pytest Configuration and Fixtures

Shared fixtures wiring the engine and services to in-memory repositories.
"""

import os

# Settings are read once at import time; pin the test environment first
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("JWT_SECRET", "")

import pytest

from advanced_workflow.domain.models import ActorContext
from advanced_workflow.engine.audit_writer import AuditWriter
from advanced_workflow.engine.engine import WorkflowEngine
from advanced_workflow.repositories.inmemory import (
    InMemoryAuditRepository,
    InMemoryDefinitionRepository,
    InMemoryGroupRepository,
    InMemoryInstanceRepository,
    InMemoryTargetRepository,
)
from advanced_workflow.services.definition_service import DefinitionService
from advanced_workflow.services.instance_service import InstanceService


@pytest.fixture
def definition_repo() -> InMemoryDefinitionRepository:
    return InMemoryDefinitionRepository()


@pytest.fixture
def instance_repo() -> InMemoryInstanceRepository:
    return InMemoryInstanceRepository()


@pytest.fixture
def audit_repo() -> InMemoryAuditRepository:
    return InMemoryAuditRepository()


@pytest.fixture
def group_repo() -> InMemoryGroupRepository:
    return InMemoryGroupRepository({"reviewers": ["carol", "dave"]})


@pytest.fixture
def target_repo() -> InMemoryTargetRepository:
    return InMemoryTargetRepository()


@pytest.fixture
def engine(definition_repo, instance_repo, audit_repo, group_repo, target_repo) -> WorkflowEngine:
    """Provide an engine backed by fresh in-memory stores."""
    return WorkflowEngine(
        instance_repo=instance_repo,
        definition_repo=definition_repo,
        group_repo=group_repo,
        target_repo=target_repo,
        audit_writer=AuditWriter(audit_repo),
    )


@pytest.fixture
def instance_service(engine, audit_repo) -> InstanceService:
    return InstanceService(engine=engine, audit_repo=audit_repo)


@pytest.fixture
def definition_service(definition_repo) -> DefinitionService:
    return DefinitionService(repo=definition_repo)


@pytest.fixture
def actor() -> ActorContext:
    """An assigned, non-admin member."""
    return ActorContext(user_id="alice", email="alice@example.com", display_name="Alice")


@pytest.fixture
def outsider() -> ActorContext:
    """A member with no assignment on any test definition."""
    return ActorContext(user_id="mallory", email="mallory@example.com")


@pytest.fixture
def admin() -> ActorContext:
    return ActorContext(user_id="root", roles=["ADMIN"])


@pytest.fixture
def store(definition_repo):
    """Persist a definition and hand it back."""
    def _store(definition):
        return definition_repo.create_definition(definition)
    return _store
