"""Service modules - Business logic layer"""
from .definition_service import DefinitionService
from .instance_service import InstanceService

__all__ = [
    "DefinitionService",
    "InstanceService",
]
