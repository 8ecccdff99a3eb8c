"""Tests for built-in behaviors, guards and the transition resolver."""

import pytest

from advanced_workflow.domain.enums import Capability, ConditionOperator
from advanced_workflow.domain.errors import InvalidDefinitionError, UnknownTypeError
from advanced_workflow.domain.models import ActionRuntime, ActorContext, WorkflowInstance
from advanced_workflow.engine.assignment_resolver import AssignmentResolver
from advanced_workflow.engine.behaviors import behavior_registry
from advanced_workflow.engine.context import ExecutionContext
from advanced_workflow.engine.guards import guard_registry
from advanced_workflow.engine.registry import Registry
from advanced_workflow.engine.transition_resolver import TransitionResolver
from advanced_workflow.repositories.inmemory import InMemoryGroupRepository
from advanced_workflow.utils.time import utc_now
from tests.factories import action, condition, transition


@pytest.fixture
def instance() -> WorkflowInstance:
    now = utc_now()
    return WorkflowInstance(
        instance_id="WFI-test",
        title="Instance #WFI-test of Page review",
        definition_id="WFD-test",
        initiator_id="alice",
        assigned_users=["alice"],
        assigned_groups=["reviewers"],
        created_at=now,
        updated_at=now,
    )


@pytest.fixture
def make_ctx(instance):
    resolver = AssignmentResolver(group_repo=InMemoryGroupRepository({"reviewers": ["carol"]}))

    def _make(actor: ActorContext, target=None) -> ExecutionContext:
        return ExecutionContext(instance=instance, actor=actor, assignments=resolver, target=target)
    return _make


def _runtime(comment=None) -> ActionRuntime:
    return ActionRuntime(
        runtime_id="RUN-test",
        instance_id="WFI-test",
        action_id="A1",
        title="Action A1",
        comment=comment,
        created_at=utc_now(),
    )


# ============================================================================
# Behaviors
# ============================================================================

def test_noop_finishes_immediately(make_ctx) -> None:
    noop = behavior_registry.get("noop")

    assert noop.execute(make_ctx(ActorContext(user_id="alice")), action("A1"), _runtime()) is True


@pytest.mark.parametrize("comment, done", [(None, False), ("   ", False), ("Approved", True)])
def test_require_comment(make_ctx, comment, done) -> None:
    behavior = behavior_registry.get("require_comment")

    assert behavior.execute(make_ctx(ActorContext(user_id="alice")), action("A1"), _runtime(comment)) is done


def test_condition_behavior_waits_for_target(make_ctx) -> None:
    behavior = behavior_registry.get("condition")
    a = action("A1", behavior="condition", behavior_config={"condition": condition("target.status", "approved").model_dump()})
    actor = ActorContext(user_id="alice")

    assert behavior.execute(make_ctx(actor, {"status": "draft"}), a, _runtime()) is False
    assert behavior.execute(make_ctx(actor, {"status": "approved"}), a, _runtime()) is True


def test_condition_behavior_requires_config() -> None:
    with pytest.raises(InvalidDefinitionError):
        behavior_registry.get("condition").validate(action("A1", behavior="condition"))


def test_base_behavior_has_no_capability_opinion(make_ctx) -> None:
    noop = behavior_registry.get("noop")
    ctx = make_ctx(ActorContext(user_id="alice"))

    assert noop.can_edit_target(ctx, action("A1")) == Capability.UNDECIDED
    assert noop.can_view_target(ctx, action("A1")) == Capability.UNDECIDED
    assert noop.can_publish_target(ctx, action("A1")) == Capability.UNDECIDED


# ============================================================================
# Guards
# ============================================================================

def test_assignee_guard(make_ctx) -> None:
    guard = guard_registry.get("assignee")
    t = transition("t1", "A2", guard="assignee")

    assert guard.is_valid(t, make_ctx(ActorContext(user_id="alice"))) is True
    assert guard.is_valid(t, make_ctx(ActorContext(user_id="carol"))) is True
    assert guard.is_valid(t, make_ctx(ActorContext(user_id="mallory"))) is False


def test_role_guard(make_ctx) -> None:
    guard = guard_registry.get("role")
    t = transition("t1", "A2", guard="role", guard_config={"roles": ["publisher"]})

    assert guard.is_valid(t, make_ctx(ActorContext(user_id="bob", roles=["publisher"]))) is True
    assert guard.is_valid(t, make_ctx(ActorContext(user_id="bob", roles=["editor"]))) is False


def test_role_guard_requires_roles() -> None:
    with pytest.raises(InvalidDefinitionError):
        guard_registry.get("role").validate(transition("t1", "A2", guard="role"))


def test_condition_guard_reads_instance_and_target(make_ctx) -> None:
    guard = guard_registry.get("condition")
    t = transition("t1", "A2", guard="condition", condition=condition("instance.assigned_groups", "reviewers", ConditionOperator.CONTAINS))

    assert guard.is_valid(t, make_ctx(ActorContext(user_id="alice"))) is True


def test_condition_guard_without_condition_is_closed(make_ctx) -> None:
    guard = guard_registry.get("condition")
    t = transition("t1", "A2", guard="condition")

    assert guard.is_valid(t, make_ctx(ActorContext(user_id="alice"))) is False
    with pytest.raises(InvalidDefinitionError):
        guard.validate(t)


# ============================================================================
# Registry and resolver
# ============================================================================

def test_registry_unknown_name() -> None:
    registry: Registry = Registry("guard")

    with pytest.raises(UnknownTypeError) as exc_info:
        registry.get("nope")

    assert exc_info.value.details == {"kind": "guard", "name": "nope", "known": []}


def test_registry_copy_is_independent() -> None:
    clone = guard_registry.copy()
    clone.register("only_here", guard_registry.get("always"))

    assert "only_here" in clone
    assert "only_here" not in guard_registry


def test_resolver_keeps_definition_order(make_ctx) -> None:
    a = action(
        "A1",
        transition("t1", "A2", guard="role", guard_config={"roles": ["publisher"]}),
        transition("t2", "A3"),
        transition("t3", "A4", guard="assignee"),
    )
    resolver = TransitionResolver()
    ctx = make_ctx(ActorContext(user_id="alice"))

    assert [t.transition_id for t in resolver.get_valid_transitions(a, ctx)] == ["t2", "t3"]


def test_resolver_filters_by_role(make_ctx) -> None:
    a = action(
        "A1",
        transition("t1", "A2", guard="role", guard_config={"roles": ["publisher"]}),
        transition("t2", "A3"),
    )
    resolver = TransitionResolver()

    as_alice = resolver.get_valid_transitions(a, make_ctx(ActorContext(user_id="alice")))
    as_publisher = resolver.get_valid_transitions(
        a, make_ctx(ActorContext(user_id="alice", roles=["publisher"]))
    )

    assert [t.transition_id for t in as_alice] == ["t2"]
    assert [t.transition_id for t in as_publisher] == ["t1", "t2"]
