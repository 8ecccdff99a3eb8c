"""Definition Validator - Authoring-time checks on a workflow definition"""
from typing import Any, Dict, List, Optional, Set

from ..domain.models import ActionDefinition, WorkflowDefinition
from ..domain.errors import InvalidDefinitionError, UnknownTypeError
from ..utils.logger import get_logger
from .behaviors import ActionBehavior, behavior_registry
from .guards import TransitionGuard, guard_registry
from .hooks import TransitionHook, hook_registry
from .registry import Registry

logger = get_logger(__name__)


class DefinitionValidator:
    """
    Validate a definition before it is saved or started

    Returns a result dict in the same shape the API serves:
        {"is_valid": bool, "errors": [...], "warnings": [...]}
    where each entry carries "type", "message" and "path".
    """

    def __init__(
        self,
        behaviors: Optional[Registry[ActionBehavior]] = None,
        guards: Optional[Registry[TransitionGuard]] = None,
        hooks: Optional[Registry[TransitionHook]] = None
    ):
        self.behaviors = behaviors or behavior_registry
        self.guards = guards or guard_registry
        self.hooks = hooks or hook_registry

    def validate(self, definition: WorkflowDefinition) -> Dict[str, Any]:
        errors: List[Dict[str, str]] = []
        warnings: List[Dict[str, str]] = []

        if not definition.actions:
            errors.append({
                "type": "EMPTY_ACTIONS",
                "message": "Workflow must have at least one action",
                "path": "actions"
            })

        # Action and transition ids
        action_ids: Set[str] = set()
        transition_ids: Set[str] = set()
        for i, action in enumerate(definition.actions):
            if action.action_id in action_ids:
                errors.append({
                    "type": "DUPLICATE_ACTION_ID",
                    "message": f"Duplicate action_id: {action.action_id}",
                    "path": f"actions[{i}].action_id"
                })
            action_ids.add(action.action_id)

            for j, transition in enumerate(action.transitions):
                if transition.transition_id in transition_ids:
                    errors.append({
                        "type": "DUPLICATE_TRANSITION_ID",
                        "message": f"Duplicate transition_id: {transition.transition_id}",
                        "path": f"actions[{i}].transitions[{j}].transition_id"
                    })
                transition_ids.add(transition.transition_id)

        if not definition.initial_action_id:
            errors.append({
                "type": "MISSING_INITIAL",
                "message": "Workflow must have an initial action",
                "path": "initial_action_id"
            })
        elif definition.initial_action_id not in action_ids:
            errors.append({
                "type": "INVALID_INITIAL",
                "message": f"Initial action {definition.initial_action_id} does not exist",
                "path": "initial_action_id"
            })

        # References and registered types
        for i, action in enumerate(definition.actions):
            self._check_type(
                self.behaviors, action.behavior, f"actions[{i}].behavior", errors,
                lambda impl, a=action: impl.validate(a)
            )

            for j, transition in enumerate(action.transitions):
                path = f"actions[{i}].transitions[{j}]"
                if transition.next_action_id not in action_ids:
                    errors.append({
                        "type": "DANGLING_TRANSITION",
                        "message": f"Transition {transition.transition_id} references non-existent action: {transition.next_action_id}",
                        "path": f"{path}.next_action_id"
                    })

                self._check_type(
                    self.guards, transition.guard, f"{path}.guard", errors,
                    lambda impl, t=transition: impl.validate(t)
                )

                for k, hook_name in enumerate(transition.hooks):
                    self._check_type(self.hooks, hook_name, f"{path}.hooks[{k}]", errors)

        # Graph checks only make sense once the references hold
        if definition.initial_action_id in action_ids:
            reachable = self._find_reachable_actions(definition)
            for i, action in enumerate(definition.actions):
                if action.action_id not in reachable:
                    warnings.append({
                        "type": "UNREACHABLE_ACTION",
                        "message": f"Action {action.action_id} is not reachable from the initial action",
                        "path": f"actions[{i}]"
                    })

            for cycle in self._find_auto_advance_cycles(definition):
                ids = " -> ".join(a.action_id for a in cycle)
                if all(a.behavior == "noop" for a in cycle):
                    errors.append({
                        "type": "AUTO_ADVANCE_CYCLE",
                        "message": f"Actions loop forever without waiting: {ids}",
                        "path": "actions"
                    })
                else:
                    warnings.append({
                        "type": "POSSIBLE_AUTO_ADVANCE_CYCLE",
                        "message": f"Actions may loop while their behaviors finish immediately: {ids}",
                        "path": "actions"
                    })

        is_valid = len(errors) == 0
        if not is_valid:
            logger.info(
                f"Definition {definition.definition_id} failed validation with {len(errors)} errors",
                extra={"definition_id": definition.definition_id}
            )

        return {
            "is_valid": is_valid,
            "errors": errors,
            "warnings": warnings
        }

    def _check_type(self, registry: Registry, name: str, path: str, errors: List[Dict[str, str]], check=None) -> None:
        try:
            impl = registry.get(name)
            if check:
                check(impl)
        except UnknownTypeError as e:
            errors.append({"type": f"UNKNOWN_{registry.kind.upper()}", "message": e.message, "path": path})
        except InvalidDefinitionError as e:
            errors.append({"type": f"INVALID_{registry.kind.upper()}_CONFIG", "message": e.message, "path": path})

    def _find_reachable_actions(self, definition: WorkflowDefinition) -> Set[str]:
        """All action ids reachable from the initial action"""
        reachable = {definition.initial_action_id}
        to_visit = [definition.initial_action_id]

        while to_visit:
            action = definition.get_action(to_visit.pop())
            if action is None:
                continue
            for transition in action.transitions:
                if transition.next_action_id not in reachable:
                    reachable.add(transition.next_action_id)
                    to_visit.append(transition.next_action_id)

        return reachable

    def _find_auto_advance_cycles(self, definition: WorkflowDefinition) -> List[List[ActionDefinition]]:
        """
        Cycles in which every action has exactly one transition and it is
        unguarded. Such a chain keeps advancing as long as the behaviors on it
        finish immediately.
        """
        def single_step(action: ActionDefinition) -> Optional[str]:
            if len(action.transitions) == 1 and action.transitions[0].guard == "always":
                return action.transitions[0].next_action_id
            return None

        cycles: List[List[ActionDefinition]] = []
        seen: Set[str] = set()

        for start in definition.actions:
            if start.action_id in seen:
                continue

            path: List[str] = []
            current: Optional[str] = start.action_id
            while current is not None and current not in seen and current not in path:
                path.append(current)
                action = definition.get_action(current)
                current = single_step(action) if action else None

            if current is not None and current in path:
                cycle_ids = path[path.index(current):]
                cycles.append([definition.get_action(a) for a in cycle_ids])

            seen.update(path)

        return cycles
