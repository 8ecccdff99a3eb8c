"""Tests for assignment resolution and access checks."""

from advanced_workflow.domain.models import ActorContext, WorkflowInstance
from advanced_workflow.engine.assignment_resolver import AssignmentResolver
from advanced_workflow.repositories.inmemory import InMemoryGroupRepository
from advanced_workflow.utils.time import utc_now


def _instance(users, groups) -> WorkflowInstance:
    now = utc_now()
    return WorkflowInstance(
        instance_id="WFI-test",
        title="Instance #WFI-test of Page review",
        definition_id="WFD-test",
        initiator_id="alice",
        assigned_users=users,
        assigned_groups=groups,
        created_at=now,
        updated_at=now,
    )


def test_members_are_users_then_group_members_without_duplicates() -> None:
    groups = InMemoryGroupRepository({"reviewers": ["carol", "alice"], "legal": ["dave"]})
    resolver = AssignmentResolver(group_repo=groups)

    members = resolver.get_assigned_members(_instance(["alice", "bob"], ["reviewers", "legal"]))

    assert members == ["alice", "bob", "carol", "dave"]


def test_members_without_group_repository() -> None:
    resolver = AssignmentResolver()

    assert resolver.get_assigned_members(_instance(["alice"], ["reviewers"])) == ["alice"]


def test_group_asserted_on_token_counts() -> None:
    resolver = AssignmentResolver()
    actor = ActorContext(user_id="erin", group_ids=["reviewers"])

    assert resolver.is_assigned(_instance([], ["reviewers"]), actor) is True


def test_admin_has_access_without_assignment() -> None:
    resolver = AssignmentResolver(admin_role="SUPERVISOR")
    instance = _instance([], [])

    assert resolver.user_has_access(instance, ActorContext(user_id="root", roles=["SUPERVISOR"])) is True
    assert resolver.user_has_access(instance, ActorContext(user_id="root", roles=["ADMIN"])) is False
    assert resolver.user_has_access(instance, None) is False
