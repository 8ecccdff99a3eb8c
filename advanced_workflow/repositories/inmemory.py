"""In-memory repositories with the same surface as the MongoDB ones.

Useful for tests or when no database is configured. Data is not persisted
across process restarts. Records are copied on the way in and out so callers
never share mutable state with the store.
"""
from threading import RLock
from typing import Any, Dict, List, Optional, Tuple

from .definition_repo import assign_action_sort
from ..domain.models import (
    WorkflowDefinition, WorkflowInstance, ActionRuntime, AuditEvent, TargetRef
)
from ..domain.enums import WorkflowStatus, ActionType, AuditEventType
from ..domain.errors import (
    DefinitionNotFoundError, InstanceNotFoundError, ActionRuntimeNotFoundError,
    ConcurrencyError, AlreadyExistsError
)
from ..utils.time import utc_now


class InMemoryDefinitionRepository:
    """Store definitions in local memory"""

    def __init__(self) -> None:
        self._definitions: Dict[str, WorkflowDefinition] = {}
        self._lock = RLock()

    def create_definition(self, definition: WorkflowDefinition) -> WorkflowDefinition:
        with self._lock:
            if definition.definition_id in self._definitions:
                raise AlreadyExistsError(f"Definition {definition.definition_id} already exists")
            assign_action_sort(definition)
            self._definitions[definition.definition_id] = definition.model_copy(deep=True)
        return definition

    def get_definition(self, definition_id: str) -> Optional[WorkflowDefinition]:
        definition = self._definitions.get(definition_id)
        return definition.model_copy(deep=True) if definition else None

    def get_definition_or_raise(self, definition_id: str) -> WorkflowDefinition:
        definition = self.get_definition(definition_id)
        if not definition:
            raise DefinitionNotFoundError(f"Definition {definition_id} not found")
        return definition

    def save_definition(
        self,
        definition: WorkflowDefinition,
        expected_version: int
    ) -> WorkflowDefinition:
        with self._lock:
            stored = self._definitions.get(definition.definition_id)
            if stored is None:
                raise DefinitionNotFoundError(f"Definition {definition.definition_id} not found")
            if stored.version != expected_version:
                raise ConcurrencyError(
                    f"Definition {definition.definition_id} was modified. Please refresh and try again.",
                    details={"expected_version": expected_version}
                )
            assign_action_sort(definition)
            definition.updated_at = utc_now()
            definition.version = expected_version + 1
            self._definitions[definition.definition_id] = definition.model_copy(deep=True)
        return definition

    def list_definitions(self, skip: int = 0, limit: int = 50) -> List[WorkflowDefinition]:
        ordered = sorted(self._definitions.values(), key=lambda d: d.updated_at, reverse=True)
        return [d.model_copy(deep=True) for d in ordered[skip:skip + limit]]

    def count_definitions(self) -> int:
        return len(self._definitions)

    def delete_definition(self, definition_id: str) -> bool:
        with self._lock:
            return self._definitions.pop(definition_id, None) is not None


class InMemoryInstanceRepository:
    """Store instances and action runtimes in local memory"""

    def __init__(self) -> None:
        self._instances: Dict[str, WorkflowInstance] = {}
        self._runtimes: Dict[str, ActionRuntime] = {}
        self._lock = RLock()

    # ------------------------------------------------------------------
    def create_instance(self, instance: WorkflowInstance) -> WorkflowInstance:
        with self._lock:
            self._instances[instance.instance_id] = instance.model_copy(deep=True)
        return instance

    def get_instance(self, instance_id: str) -> Optional[WorkflowInstance]:
        instance = self._instances.get(instance_id)
        return instance.model_copy(deep=True) if instance else None

    def get_instance_or_raise(self, instance_id: str) -> WorkflowInstance:
        instance = self.get_instance(instance_id)
        if not instance:
            raise InstanceNotFoundError(f"Instance {instance_id} not found")
        return instance

    def update_instance(
        self,
        instance_id: str,
        updates: Dict[str, Any],
        expected_version: Optional[int] = None
    ) -> WorkflowInstance:
        with self._lock:
            stored = self._instances.get(instance_id)
            if stored is None:
                raise InstanceNotFoundError(f"Instance {instance_id} not found")
            if expected_version is not None and stored.version != expected_version:
                raise ConcurrencyError(
                    f"Instance {instance_id} was modified. Please refresh and try again.",
                    details={"expected_version": expected_version}
                )

            changes = dict(updates)
            changes["updated_at"] = utc_now()
            if expected_version is not None:
                changes["version"] = expected_version + 1

            data = stored.model_dump()
            data.update(changes)
            updated = WorkflowInstance.model_validate(data)
            self._instances[instance_id] = updated
            return updated.model_copy(deep=True)

    def list_instances(
        self,
        statuses: Optional[List[WorkflowStatus]] = None,
        target: Optional[TargetRef] = None,
        definition_id: Optional[str] = None,
        action_types: Optional[List[ActionType]] = None,
        member_id: Optional[str] = None,
        member_groups: Optional[List[str]] = None,
        skip: int = 0,
        limit: int = 50
    ) -> List[WorkflowInstance]:
        groups = set(member_groups or [])
        matches = []
        for instance in self._instances.values():
            if statuses and instance.status not in statuses:
                continue
            if target and instance.target != target:
                continue
            if definition_id and instance.definition_id != definition_id:
                continue
            if action_types and instance.current_action_type not in action_types:
                continue
            if member_id is not None and not (
                member_id in instance.assigned_users or groups & set(instance.assigned_groups)
            ):
                continue
            matches.append(instance)

        matches.sort(key=lambda i: i.updated_at, reverse=True)
        return [i.model_copy(deep=True) for i in matches[skip:skip + limit]]

    # ------------------------------------------------------------------
    def create_runtime(self, runtime: ActionRuntime) -> ActionRuntime:
        with self._lock:
            self._runtimes[runtime.runtime_id] = runtime.model_copy(deep=True)
        return runtime

    def get_runtime(self, runtime_id: str) -> Optional[ActionRuntime]:
        runtime = self._runtimes.get(runtime_id)
        return runtime.model_copy(deep=True) if runtime else None

    def get_runtime_or_raise(self, runtime_id: str) -> ActionRuntime:
        runtime = self.get_runtime(runtime_id)
        if not runtime:
            raise ActionRuntimeNotFoundError(f"Action runtime {runtime_id} not found")
        return runtime

    def finish_runtime(self, runtime_id: str, member_id: str) -> ActionRuntime:
        with self._lock:
            stored = self._runtimes.get(runtime_id)
            if stored is None:
                raise ActionRuntimeNotFoundError(f"Action runtime {runtime_id} not found")
            if not stored.finished:
                stored.finished = True
                stored.member_id = member_id
                stored.finished_at = utc_now()
            return stored.model_copy(deep=True)

    def update_runtime_comment(self, runtime_id: str, comment: Optional[str]) -> ActionRuntime:
        with self._lock:
            stored = self._runtimes.get(runtime_id)
            if stored is None:
                raise ActionRuntimeNotFoundError(f"Action runtime {runtime_id} not found")
            stored.comment = comment
            return stored.model_copy(deep=True)

    def list_runtimes(
        self,
        instance_id: str,
        finished: Optional[bool] = None
    ) -> List[ActionRuntime]:
        runtimes = [
            r for r in self._runtimes.values()
            if r.instance_id == instance_id and (finished is None or r.finished == finished)
        ]
        runtimes.sort(key=lambda r: r.created_at)
        return [r.model_copy(deep=True) for r in runtimes]


class InMemoryAuditRepository:
    """Append-only audit events in local memory"""

    def __init__(self) -> None:
        self._events: List[AuditEvent] = []

    def create_event(self, event: AuditEvent) -> AuditEvent:
        self._events.append(event.model_copy(deep=True))
        return event

    def get_events_for_instance(
        self,
        instance_id: str,
        event_types: Optional[List[AuditEventType]] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[AuditEvent]:
        events = [
            e for e in reversed(self._events)
            if e.instance_id == instance_id and (not event_types or e.event_type in event_types)
        ]
        return [e.model_copy(deep=True) for e in events[skip:skip + limit]]


class InMemoryGroupRepository:
    """Group membership in local memory"""

    def __init__(self, groups: Optional[Dict[str, List[str]]] = None) -> None:
        self._groups: Dict[str, List[str]] = {k: list(v) for k, v in (groups or {}).items()}

    def get_members(self, group_id: str) -> List[str]:
        return list(self._groups.get(group_id, []))

    def get_groups_for_member(self, user_id: str) -> List[str]:
        return [group_id for group_id, members in self._groups.items() if user_id in members]

    def set_members(self, group_id: str, members: List[str]) -> None:
        self._groups[group_id] = list(members)


class InMemoryTargetRepository:
    """Target documents in local memory, keyed by (type_name, target_id)"""

    def __init__(self) -> None:
        self._targets: Dict[Tuple[str, str], Dict[str, Any]] = {}

    def get_target(self, target: TargetRef) -> Optional[Dict[str, Any]]:
        doc = self._targets.get((target.type_name, target.target_id))
        return dict(doc) if doc is not None else None

    def set_target(self, target: TargetRef, doc: Dict[str, Any]) -> None:
        self._targets[(target.type_name, target.target_id)] = dict(doc)
