"""Transition Resolver - Decide which outgoing transitions are currently valid"""
from typing import List, Optional

from ..domain.models import ActionDefinition, TransitionDefinition
from ..utils.logger import get_logger
from .context import ExecutionContext
from .guards import TransitionGuard, guard_registry
from .registry import Registry

logger = get_logger(__name__)


class TransitionResolver:
    """
    Filter an action's transitions through their guards

    Given a finished action A:
    1. Take A's transitions in definition order
    2. Keep those whose guard accepts the current context
    The engine takes a lone survivor automatically and otherwise pauses
    (or completes when A defines no transitions at all).
    """

    def __init__(self, guards: Optional[Registry[TransitionGuard]] = None):
        self.guards = guards or guard_registry

    def get_valid_transitions(
        self,
        action: ActionDefinition,
        ctx: ExecutionContext
    ) -> List[TransitionDefinition]:
        """Transitions whose guard currently passes, in definition order"""
        valid = []
        for transition in action.transitions:
            guard = self.guards.get(transition.guard)
            if guard.is_valid(transition, ctx):
                valid.append(transition)

        logger.debug(
            f"{len(valid)} of {len(action.transitions)} transitions valid from {action.action_id}",
            extra={"instance_id": ctx.instance.instance_id, "action_id": action.action_id}
        )
        return valid
