"""Condition Evaluator - Safe evaluation of guard and behavior conditions"""
import operator as op
from typing import Any, Callable, Dict

from ..domain.models import ConditionGroup, Condition
from ..domain.enums import ConditionOperator
from ..utils.logger import get_logger

logger = get_logger(__name__)

_EMPTY = (None, "", [], {})


def _contains(field_value: Any, compare_value: Any) -> bool:
    if field_value is None:
        return False
    if isinstance(field_value, (list, tuple, set)):
        return compare_value in field_value
    return str(compare_value) in str(field_value)


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else [value]


def _numeric(comparator: Callable[[float, float], bool]) -> Callable[[Any, Any], bool]:
    """Wrap a comparator so both sides are coerced to float; missing values never match"""
    def compare(field_value: Any, compare_value: Any) -> bool:
        if field_value is None or compare_value is None:
            return False
        return comparator(float(field_value), float(compare_value))
    return compare


_OPERATORS: Dict[ConditionOperator, Callable[[Any, Any], bool]] = {
    ConditionOperator.EQUALS: op.eq,
    ConditionOperator.NOT_EQUALS: op.ne,
    ConditionOperator.GREATER_THAN: _numeric(op.gt),
    ConditionOperator.LESS_THAN: _numeric(op.lt),
    ConditionOperator.GREATER_THAN_OR_EQUALS: _numeric(op.ge),
    ConditionOperator.LESS_THAN_OR_EQUALS: _numeric(op.le),
    ConditionOperator.CONTAINS: _contains,
    ConditionOperator.NOT_CONTAINS: lambda a, b: a is None or not _contains(a, b),
    ConditionOperator.IN: lambda a, b: a in _as_list(b),
    ConditionOperator.NOT_IN: lambda a, b: a not in _as_list(b),
    ConditionOperator.IS_EMPTY: lambda a, _: a in _EMPTY,
    ConditionOperator.IS_NOT_EMPTY: lambda a, _: a not in _EMPTY,
}


class ConditionEvaluator:
    """
    Evaluate condition groups against an evaluation context

    Uses a simple DSL - no eval() or exec(). The context is a nested dict,
    typically {"instance": ..., "target": ..., "actor": ...}. Anything that
    cannot be compared evaluates to False.
    """

    def evaluate(
        self,
        condition_group: ConditionGroup,
        context: Dict[str, Any]
    ) -> bool:
        """
        Evaluate a condition group

        An empty group holds. Logic is AND unless the group says OR.
        """
        if not condition_group.conditions:
            return True

        results = (self._evaluate_single(c, context) for c in condition_group.conditions)
        if condition_group.logic.upper() == "OR":
            return any(results)
        return all(results)

    def _evaluate_single(self, condition: Condition, context: Dict[str, Any]) -> bool:
        compare = _OPERATORS.get(condition.operator)
        if compare is None:
            logger.warning(f"Unsupported condition operator {condition.operator}")
            return False

        field_value = self.resolve_path(condition.field, context)
        try:
            return bool(compare(field_value, condition.value))
        except (TypeError, ValueError) as e:
            logger.warning(f"Condition evaluation failed for {condition.field}: {e}")
            return False

    @staticmethod
    def resolve_path(field_path: str, context: Dict[str, Any]) -> Any:
        """
        Look up a dotted path, e.g. "target.status" -> context["target"]["status"]

        Returns None as soon as a segment is missing or not a dict.
        """
        value: Any = context
        for part in field_path.split("."):
            if not isinstance(value, dict):
                return None
            value = value.get(part)
        return value
