"""Builders for definitions used across the test suite."""

from typing import List, Optional

from advanced_workflow.domain.models import (
    ActionDefinition,
    Condition,
    ConditionGroup,
    TransitionDefinition,
    WorkflowDefinition,
)
from advanced_workflow.domain.enums import ConditionOperator
from advanced_workflow.utils.idgen import generate_definition_id
from advanced_workflow.utils.time import utc_now


def transition(transition_id: str, next_action_id: str, guard: str = "always", **kwargs) -> TransitionDefinition:
    return TransitionDefinition(
        transition_id=transition_id,
        title=kwargs.pop("title", f"Go to {next_action_id}"),
        next_action_id=next_action_id,
        guard=guard,
        **kwargs,
    )


def action(action_id: str, *transitions: TransitionDefinition, behavior: str = "noop", **kwargs) -> ActionDefinition:
    return ActionDefinition(
        action_id=action_id,
        title=kwargs.pop("title", f"Action {action_id}"),
        behavior=behavior,
        transitions=list(transitions),
        **kwargs,
    )


def condition(field: str, value, operator: ConditionOperator = ConditionOperator.EQUALS) -> ConditionGroup:
    return ConditionGroup(conditions=[Condition(field=field, operator=operator, value=value)])


def definition(
    *actions: ActionDefinition,
    initial_action_id: Optional[str] = None,
    users: Optional[List[str]] = None,
    groups: Optional[List[str]] = None,
    title: str = "Page review",
) -> WorkflowDefinition:
    now = utc_now()
    return WorkflowDefinition(
        definition_id=generate_definition_id(),
        title=title,
        initial_action_id=initial_action_id if initial_action_id is not None else actions[0].action_id,
        actions=list(actions),
        users=["alice"] if users is None else users,
        groups=groups or [],
        created_at=now,
        updated_at=now,
    )
