"""Tests for the condition DSL."""

import pytest

from advanced_workflow.domain.enums import ConditionOperator
from advanced_workflow.domain.models import Condition, ConditionGroup
from advanced_workflow.engine.condition_evaluator import ConditionEvaluator


CONTEXT = {
    "target": {"status": "reviewed", "word_count": 1200, "tags": ["legal", "public"]},
    "instance": {"status": "ACTIVE"},
    "actor": {"user_id": "alice", "roles": ["editor"]},
}


def _group(*conditions: Condition, logic: str = "AND") -> ConditionGroup:
    return ConditionGroup(logic=logic, conditions=list(conditions))


@pytest.mark.parametrize(
    "field, operator, value, expected",
    [
        ("target.status", ConditionOperator.EQUALS, "reviewed", True),
        ("target.status", ConditionOperator.NOT_EQUALS, "reviewed", False),
        ("target.word_count", ConditionOperator.GREATER_THAN, 1000, True),
        ("target.word_count", ConditionOperator.LESS_THAN_OR_EQUALS, 1000, False),
        ("target.tags", ConditionOperator.CONTAINS, "legal", True),
        ("target.tags", ConditionOperator.NOT_CONTAINS, "draft", True),
        ("actor.user_id", ConditionOperator.IN, ["alice", "bob"], True),
        ("target.missing", ConditionOperator.IS_EMPTY, None, True),
        ("target.status", ConditionOperator.IS_NOT_EMPTY, None, True),
    ],
)
def test_single_condition(field, operator, value, expected) -> None:
    group = _group(Condition(field=field, operator=operator, value=value))

    assert ConditionEvaluator().evaluate(group, CONTEXT) is expected


def test_empty_group_is_true() -> None:
    assert ConditionEvaluator().evaluate(ConditionGroup(), CONTEXT) is True


def test_and_requires_all() -> None:
    group = _group(
        Condition(field="target.status", operator=ConditionOperator.EQUALS, value="reviewed"),
        Condition(field="instance.status", operator=ConditionOperator.EQUALS, value="PAUSED"),
    )

    assert ConditionEvaluator().evaluate(group, CONTEXT) is False


def test_or_requires_any() -> None:
    group = _group(
        Condition(field="target.status", operator=ConditionOperator.EQUALS, value="draft"),
        Condition(field="instance.status", operator=ConditionOperator.EQUALS, value="ACTIVE"),
        logic="OR",
    )

    assert ConditionEvaluator().evaluate(group, CONTEXT) is True


def test_path_through_non_dict_resolves_to_none() -> None:
    group = _group(Condition(field="target.status.length", operator=ConditionOperator.EQUALS, value=8))

    assert ConditionEvaluator().evaluate(group, CONTEXT) is False


def test_non_numeric_comparison_fails_closed() -> None:
    group = _group(Condition(field="target.status", operator=ConditionOperator.GREATER_THAN, value=3))

    assert ConditionEvaluator().evaluate(group, CONTEXT) is False


def test_missing_numeric_field_fails_closed() -> None:
    group = _group(Condition(field="target.missing", operator=ConditionOperator.LESS_THAN, value=5))

    assert ConditionEvaluator().evaluate(group, CONTEXT) is False
