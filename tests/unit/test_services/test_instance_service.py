"""Tests for InstanceService."""

import pytest

from advanced_workflow.domain.enums import (
    ActionType,
    AllowEditing,
    AuditEventType,
    Capability,
    WorkflowStatus,
)
from advanced_workflow.domain.errors import (
    InstanceNotActiveError,
    InvalidStateError,
    PermissionDeniedError,
)
from advanced_workflow.domain.models import ActorContext, TargetRef
from advanced_workflow.scheduler.poller import InstancePoller
from tests.factories import action, condition, definition, transition


@pytest.fixture
def review_definition(store):
    """Draft -> (publish | reject) with a comment required on the decision step."""
    return store(definition(
        action("draft", transition("submit", "decide"), allow_editing=AllowEditing.BY_ASSIGNEES),
        action(
            "decide",
            transition("publish", "published", title="Publish"),
            transition("reject", "draft", title="Send back"),
        ),
        action("published"),
        groups=["reviewers"],
    ))


def test_start_executes_by_default(instance_service, review_definition, actor) -> None:
    instance = instance_service.start_workflow(review_definition.definition_id, actor)

    assert instance.status == WorkflowStatus.PAUSED
    transitions = instance_service.get_available_transitions(instance.instance_id, actor)
    assert [t.transition_id for t in transitions] == ["publish", "reject"]


def test_start_without_execute(instance_service, review_definition, actor) -> None:
    instance = instance_service.start_workflow(review_definition.definition_id, actor, execute=False)

    assert instance.status == WorkflowStatus.ACTIVE
    assert instance.version == 1


def test_choose_transition_with_comment(instance_service, review_definition, actor) -> None:
    instance = instance_service.start_workflow(review_definition.definition_id, actor)

    instance = instance_service.choose_transition(
        instance.instance_id, "publish", actor, comment="Ship it"
    )

    assert instance.status == WorkflowStatus.COMPLETE
    summary = instance_service.get_actions_summary(instance.instance_id, actor)
    assert [s.title for s in summary] == ["Action draft", "Action decide", "Action published"]
    assert summary[1].comment == "Ship it"
    assert all(s.member_id == "alice" for s in summary)


def test_choose_transition_rejects_closed_choice(instance_service, store, actor, target_repo) -> None:
    target = TargetRef(type_name="page", target_id="p1")
    target_repo.set_target(target, {"status": "draft"})
    d = store(definition(
        action(
            "A1",
            transition("ready", "A2", guard="condition", condition=condition("target.status", "ready")),
            transition("hold", "A2", guard="condition", condition=condition("target.status", "ready")),
        ),
        action("A2"),
    ))
    instance = instance_service.start_workflow(d.definition_id, actor, target=target)

    with pytest.raises(InvalidStateError):
        instance_service.choose_transition(instance.instance_id, "ready", actor)


def test_choose_transition_on_unfinished_action(instance_service, store, actor) -> None:
    d = store(definition(action("A1", transition("t1", "A2"), behavior="require_comment"), action("A2")))
    instance = instance_service.start_workflow(d.definition_id, actor)

    with pytest.raises(InvalidStateError):
        instance_service.choose_transition(instance.instance_id, "t1", actor)


def test_comment_then_execute_finishes_action(instance_service, store, actor, audit_repo) -> None:
    d = store(definition(action("A1", behavior="require_comment")))
    instance = instance_service.start_workflow(d.definition_id, actor)

    instance_service.add_comment(instance.instance_id, "Reviewed", actor)
    instance = instance_service.execute_instance(instance.instance_id, actor)

    assert instance.status == WorkflowStatus.COMPLETE
    events = audit_repo.get_events_for_instance(instance.instance_id, event_types=[AuditEventType.COMMENT_ADDED])
    assert events[0].details == {"comment": "Reviewed"}


def test_cancel(instance_service, review_definition, actor) -> None:
    instance = instance_service.start_workflow(review_definition.definition_id, actor)

    cancelled = instance_service.cancel_instance(instance.instance_id, actor, reason="Obsolete")

    assert cancelled.status == WorkflowStatus.CANCELLED
    assert cancelled.current_action_id is None
    with pytest.raises(InstanceNotActiveError):
        instance_service.cancel_instance(instance.instance_id, actor)
    with pytest.raises(InstanceNotActiveError):
        instance_service.execute_instance(instance.instance_id, actor)


def test_outsider_is_denied(instance_service, review_definition, actor, outsider) -> None:
    instance = instance_service.start_workflow(review_definition.definition_id, actor)

    with pytest.raises(PermissionDeniedError):
        instance_service.get_instance(instance.instance_id, outsider)
    with pytest.raises(PermissionDeniedError):
        instance_service.choose_transition(instance.instance_id, "publish", outsider)


def test_group_member_and_admin_have_access(instance_service, review_definition, actor, admin) -> None:
    instance = instance_service.start_workflow(review_definition.definition_id, actor)
    carol = ActorContext(user_id="carol")

    assert instance_service.get_instance(instance.instance_id, carol).instance_id == instance.instance_id
    assert instance_service.get_instance(instance.instance_id, admin).instance_id == instance.instance_id


def test_list_instances_filters(instance_service, review_definition, store, actor, outsider, admin) -> None:
    paused = instance_service.start_workflow(review_definition.definition_id, actor)
    other = store(definition(action("A1"), users=["mallory"]))
    done = instance_service.start_workflow(other.definition_id, outsider)

    assert [i.instance_id for i in instance_service.list_instances(actor)] == [paused.instance_id]
    assert [i.instance_id for i in instance_service.list_instances(outsider)] == [done.instance_id]
    assert len(instance_service.list_instances(admin)) == 2
    completed = instance_service.list_instances(admin, statuses=[WorkflowStatus.COMPLETE])
    assert [i.instance_id for i in completed] == [done.instance_id]


def test_capabilities_and_members(instance_service, review_definition, actor) -> None:
    instance = instance_service.start_workflow(review_definition.definition_id, actor, execute=False)

    capabilities = instance_service.get_capabilities(instance.instance_id, actor)

    assert capabilities.can_edit == Capability.ALLOW
    assert capabilities.can_view == Capability.UNDECIDED
    assert capabilities.can_publish == Capability.UNDECIDED
    assert instance_service.get_assigned_members(instance.instance_id, actor) == ["alice", "carol", "dave"]


def test_audit_trail_newest_first(instance_service, review_definition, actor) -> None:
    instance = instance_service.start_workflow(review_definition.definition_id, actor)

    events = instance_service.get_audit_events(instance.instance_id, actor)

    assert events[0].event_type == AuditEventType.INSTANCE_PAUSED
    assert events[-1].event_type == AuditEventType.INSTANCE_STARTED


def test_poller_reexecutes_dynamic_instances(instance_service, store, actor, target_repo) -> None:
    target = TargetRef(type_name="page", target_id="p1")
    target_repo.set_target(target, {"status": "draft"})
    d = store(definition(
        action(
            "wait",
            transition("t1", "done"),
            behavior="condition",
            behavior_config={"condition": condition("target.status", "approved").model_dump()},
            action_type=ActionType.DYNAMIC,
        ),
        action("done"),
    ))
    manual = store(definition(action("A1", behavior="require_comment")))
    waiting = instance_service.start_workflow(d.definition_id, actor, target=target)
    instance_service.start_workflow(manual.definition_id, actor)
    poller = InstancePoller(instance_service=instance_service)

    assert [i.instance_id for i in instance_service.list_dynamic_instances()] == [waiting.instance_id]
    assert poller.sweep() == 0

    target_repo.set_target(target, {"status": "approved"})
    assert poller.sweep() == 1
    assert instance_service.get_instance(waiting.instance_id, actor).status == WorkflowStatus.COMPLETE
    assert instance_service.list_dynamic_instances() == []


def test_dynamic_instance_found_behind_many_manual_ones(instance_service, store, actor, target_repo) -> None:
    target = TargetRef(type_name="page", target_id="p1")
    target_repo.set_target(target, {"status": "draft"})
    d = store(definition(
        action(
            "wait",
            transition("t1", "done"),
            behavior="condition",
            behavior_config={"condition": condition("target.status", "approved").model_dump()},
            action_type=ActionType.DYNAMIC,
        ),
        action("done"),
    ))
    manual = store(definition(action("A1", behavior="require_comment")))
    waiting = instance_service.start_workflow(d.definition_id, actor, target=target)
    for _ in range(500):
        instance_service.start_workflow(manual.definition_id, actor)

    assert [i.instance_id for i in instance_service.list_dynamic_instances()] == [waiting.instance_id]
    assert [i.instance_id for i in instance_service.list_dynamic_instances(batch_size=7)] == [waiting.instance_id]

    target_repo.set_target(target, {"status": "approved"})
    assert InstancePoller(instance_service=instance_service).sweep() == 1
    assert instance_service.get_instance(waiting.instance_id, actor).status == WorkflowStatus.COMPLETE


def test_current_action_type_follows_the_instance(instance_service, store, actor) -> None:
    d = store(definition(
        action("A1", transition("t1", "A2")),
        action("A2", behavior="require_comment", action_type=ActionType.DYNAMIC),
    ))

    instance = instance_service.start_workflow(d.definition_id, actor, execute=False)
    assert instance.current_action_type == ActionType.MANUAL

    instance = instance_service.execute_instance(instance.instance_id, actor)
    assert instance.current_action_type == ActionType.DYNAMIC

    cancelled = instance_service.cancel_instance(instance.instance_id, actor)
    assert cancelled.current_action_type is None


def test_list_instances_pages_over_accessible_only(instance_service, store, actor, outsider) -> None:
    mine = store(definition(action("A1", behavior="require_comment")))
    theirs = store(definition(action("A1", behavior="require_comment"), users=["mallory"]))
    own_ids = []
    for _ in range(3):
        own_ids.append(instance_service.start_workflow(mine.definition_id, actor).instance_id)
        instance_service.start_workflow(theirs.definition_id, outsider)

    first = instance_service.list_instances(actor, limit=2)
    second = instance_service.list_instances(actor, skip=2, limit=2)

    assert len(first) == 2
    assert len(second) == 1
    assert sorted(i.instance_id for i in first + second) == sorted(own_ids)


def test_list_instances_through_group_membership(instance_service, review_definition, actor) -> None:
    instance = instance_service.start_workflow(review_definition.definition_id, actor)

    stored_member = ActorContext(user_id="carol")
    token_member = ActorContext(user_id="erin", group_ids=["reviewers"])

    assert [i.instance_id for i in instance_service.list_instances(stored_member)] == [instance.instance_id]
    assert [i.instance_id for i in instance_service.list_instances(token_member)] == [instance.instance_id]


def test_capabilities_require_access(instance_service, review_definition, actor, outsider) -> None:
    instance = instance_service.start_workflow(review_definition.definition_id, actor)

    with pytest.raises(PermissionDeniedError):
        instance_service.get_capabilities(instance.instance_id, outsider)
