"""Repository modules - Data access layer"""
from functools import lru_cache

from ..config.settings import settings
from .mongo_client import get_database, get_collection
from .definition_repo import DefinitionRepository
from .instance_repo import InstanceRepository
from .audit_repo import AuditRepository
from .group_repo import GroupRepository
from .target_repo import TargetRepository
from .inmemory import (
    InMemoryDefinitionRepository,
    InMemoryInstanceRepository,
    InMemoryAuditRepository,
    InMemoryGroupRepository,
    InMemoryTargetRepository,
)


@lru_cache()
def _memory_store():
    """Process-wide in-memory repositories (one set per process)"""
    return {
        "definitions": InMemoryDefinitionRepository(),
        "instances": InMemoryInstanceRepository(),
        "audit": InMemoryAuditRepository(),
        "groups": InMemoryGroupRepository(),
        "targets": InMemoryTargetRepository(),
    }


def get_definition_repository():
    """Definition repository for the configured backend"""
    if settings.use_memory_storage:
        return _memory_store()["definitions"]
    return DefinitionRepository()


def get_instance_repository():
    """Instance repository for the configured backend"""
    if settings.use_memory_storage:
        return _memory_store()["instances"]
    return InstanceRepository()


def get_audit_repository():
    """Audit repository for the configured backend"""
    if settings.use_memory_storage:
        return _memory_store()["audit"]
    return AuditRepository()


def get_group_repository():
    """Group repository for the configured backend"""
    if settings.use_memory_storage:
        return _memory_store()["groups"]
    return GroupRepository()


def get_target_repository():
    """Target repository for the configured backend"""
    if settings.use_memory_storage:
        return _memory_store()["targets"]
    return TargetRepository()


__all__ = [
    "get_database",
    "get_collection",
    "DefinitionRepository",
    "InstanceRepository",
    "AuditRepository",
    "GroupRepository",
    "TargetRepository",
    "InMemoryDefinitionRepository",
    "InMemoryInstanceRepository",
    "InMemoryAuditRepository",
    "InMemoryGroupRepository",
    "InMemoryTargetRepository",
    "get_definition_repository",
    "get_instance_repository",
    "get_audit_repository",
    "get_group_repository",
    "get_target_repository",
]
