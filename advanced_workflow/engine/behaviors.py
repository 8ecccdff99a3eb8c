"""Action Behaviors - The work performed while an action is current"""
from ..domain.models import ActionDefinition, ActionRuntime, ConditionGroup
from ..domain.enums import Capability
from ..domain.errors import InvalidDefinitionError
from ..utils.logger import get_logger
from .condition_evaluator import ConditionEvaluator
from .context import ExecutionContext
from .registry import Registry

logger = get_logger(__name__)


class ActionBehavior:
    """
    Base behavior: finishes immediately and has no capability opinion

    Subclasses override execute() to do real work. execute() may be called
    several times before the action finishes (scheduler ticks, repeated
    events), so implementations must be idempotent.
    """

    def execute(
        self,
        ctx: ExecutionContext,
        action: ActionDefinition,
        runtime: ActionRuntime
    ) -> bool:
        """Return True once the action is finished"""
        return True

    def validate(self, action: ActionDefinition) -> None:
        """Reject unusable behavior_config at definition-load time"""

    def can_edit_target(self, ctx: ExecutionContext, action: ActionDefinition) -> Capability:
        return Capability.UNDECIDED

    def can_view_target(self, ctx: ExecutionContext, action: ActionDefinition) -> Capability:
        return Capability.UNDECIDED

    def can_publish_target(self, ctx: ExecutionContext, action: ActionDefinition) -> Capability:
        return Capability.UNDECIDED


behavior_registry: Registry[ActionBehavior] = Registry("behavior")


@behavior_registry.decorator("noop")
class NoopBehavior(ActionBehavior):
    """Manual gate: does nothing, so the outgoing transitions decide"""


@behavior_registry.decorator("require_comment")
class RequireCommentBehavior(ActionBehavior):
    """Finished once somebody has left a comment on the runtime"""

    def execute(self, ctx, action, runtime):
        return bool(runtime.comment and runtime.comment.strip())


@behavior_registry.decorator("condition")
class ConditionBehavior(ActionBehavior):
    """
    Finished once behavior_config["condition"] holds

    Typical use is waiting on target state, e.g. a document reaching
    status "reviewed". Also restricts publishing while unfinished when
    behavior_config["block_publish"] is set.
    """

    def __init__(self):
        self.condition_evaluator = ConditionEvaluator()

    def _condition(self, action: ActionDefinition) -> ConditionGroup:
        return ConditionGroup.model_validate(action.behavior_config.get("condition") or {})

    def validate(self, action):
        if not action.behavior_config.get("condition"):
            raise InvalidDefinitionError(
                f"Action {action.action_id} uses the condition behavior without a condition",
                details={"action_id": action.action_id}
            )
        self._condition(action)

    def execute(self, ctx, action, runtime):
        met = self.condition_evaluator.evaluate(self._condition(action), ctx.evaluation_data())
        if not met:
            logger.debug(
                f"Condition not met yet for action {action.action_id}",
                extra={"instance_id": ctx.instance.instance_id, "action_id": action.action_id}
            )
        return met

    def can_publish_target(self, ctx, action):
        if action.behavior_config.get("block_publish"):
            return Capability.DENY
        return Capability.UNDECIDED
