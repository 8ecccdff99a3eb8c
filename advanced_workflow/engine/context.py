"""Execution Context - What behaviors, guards and hooks get to see"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..domain.models import ActorContext, WorkflowInstance
from .assignment_resolver import AssignmentResolver


@dataclass
class ExecutionContext:
    """Snapshot handed to pluggable code during one engine step"""

    instance: WorkflowInstance
    actor: ActorContext
    assignments: AssignmentResolver
    target: Optional[Dict[str, Any]] = None
    _data: Optional[Dict[str, Any]] = field(default=None, repr=False)

    def evaluation_data(self) -> Dict[str, Any]:
        """Context dict for the condition evaluator"""
        if self._data is None:
            instance = self.instance
            self._data = {
                "instance": {
                    "instance_id": instance.instance_id,
                    "title": instance.title,
                    "status": instance.status.value,
                    "definition_id": instance.definition_id,
                    "initiator_id": instance.initiator_id,
                    "assigned_users": list(instance.assigned_users),
                    "assigned_groups": list(instance.assigned_groups),
                    "target_type": instance.target.type_name if instance.target else None,
                    "target_id": instance.target.target_id if instance.target else None,
                },
                "target": dict(self.target or {}),
                "actor": {
                    "user_id": self.actor.user_id,
                    "roles": list(self.actor.roles),
                    "group_ids": list(self.actor.group_ids),
                },
            }
        return self._data
