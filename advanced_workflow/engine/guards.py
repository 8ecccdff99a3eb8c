"""Transition Guards - Predicates deciding whether an edge can be taken"""
from ..domain.models import TransitionDefinition
from ..domain.errors import InvalidDefinitionError
from .condition_evaluator import ConditionEvaluator
from .context import ExecutionContext
from .registry import Registry


class TransitionGuard:
    """Base guard: always valid. Guards must not have side effects."""

    def is_valid(self, transition: TransitionDefinition, ctx: ExecutionContext) -> bool:
        return True

    def validate(self, transition: TransitionDefinition) -> None:
        """Reject unusable guard configuration at definition-load time"""


guard_registry: Registry[TransitionGuard] = Registry("guard")


@guard_registry.decorator("always")
class AlwaysGuard(TransitionGuard):
    """No restriction"""


@guard_registry.decorator("condition")
class ConditionGuard(TransitionGuard):
    """Valid while the transition's condition group holds"""

    def __init__(self):
        self.condition_evaluator = ConditionEvaluator()

    def validate(self, transition):
        if transition.condition is None:
            raise InvalidDefinitionError(
                f"Transition {transition.transition_id} uses the condition guard without a condition",
                details={"transition_id": transition.transition_id}
            )

    def is_valid(self, transition, ctx):
        if transition.condition is None:
            return False
        return self.condition_evaluator.evaluate(transition.condition, ctx.evaluation_data())


@guard_registry.decorator("assignee")
class AssigneeGuard(TransitionGuard):
    """Valid only when the acting member is assigned to the instance"""

    def is_valid(self, transition, ctx):
        return ctx.assignments.is_assigned(ctx.instance, ctx.actor)


@guard_registry.decorator("role")
class RoleGuard(TransitionGuard):
    """Valid when the acting member holds one of guard_config["roles"]"""

    def validate(self, transition):
        if not transition.guard_config.get("roles"):
            raise InvalidDefinitionError(
                f"Transition {transition.transition_id} uses the role guard without roles",
                details={"transition_id": transition.transition_id}
            )

    def is_valid(self, transition, ctx):
        allowed = set(transition.guard_config.get("roles", []))
        return bool(allowed & set(ctx.actor.roles))
