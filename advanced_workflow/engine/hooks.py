"""Post-transition hooks - Run after an edge is committed, before the next action"""
from typing import Callable

from ..domain.models import TransitionDefinition
from ..utils.logger import get_logger
from .context import ExecutionContext
from .registry import Registry

logger = get_logger(__name__)

TransitionHook = Callable[[TransitionDefinition, ExecutionContext], None]

hook_registry: Registry[TransitionHook] = Registry("hook")


@hook_registry.decorator("log")
def log_transition(transition: TransitionDefinition, ctx: ExecutionContext) -> None:
    logger.info(
        f"Transition '{transition.title}' taken",
        extra={
            "instance_id": ctx.instance.instance_id,
            "transition_id": transition.transition_id,
            "actor_id": ctx.actor.user_id,
        }
    )


@hook_registry.decorator("notify_assignees")
def notify_assignees(transition: TransitionDefinition, ctx: ExecutionContext) -> None:
    """Announce the new step to everyone assigned (delivery is a logging sink)"""
    members = ctx.assignments.get_assigned_members(ctx.instance)
    for user_id in members:
        logger.info(
            f"Notify {user_id}: '{ctx.instance.title}' moved on via '{transition.title}'",
            extra={"instance_id": ctx.instance.instance_id, "transition_id": transition.transition_id}
        )
