"""Workflow Engine - The brain of the system"""
from .engine import WorkflowEngine
from .transition_resolver import TransitionResolver
from .condition_evaluator import ConditionEvaluator
from .assignment_resolver import AssignmentResolver
from .audit_writer import AuditWriter
from .definition_validator import DefinitionValidator
from .behaviors import ActionBehavior, behavior_registry
from .guards import TransitionGuard, guard_registry
from .hooks import hook_registry
from .registry import Registry

__all__ = [
    "WorkflowEngine",
    "TransitionResolver",
    "ConditionEvaluator",
    "AssignmentResolver",
    "AuditWriter",
    "DefinitionValidator",
    "ActionBehavior",
    "TransitionGuard",
    "Registry",
    "behavior_registry",
    "guard_registry",
    "hook_registry",
]
