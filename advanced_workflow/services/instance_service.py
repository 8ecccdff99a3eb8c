"""Instance Service - Running workflow instances for API callers"""
from typing import List, Optional

from ..domain.models import (
    ActorContext, ActionSummary, AuditEvent, TargetCapabilities, TargetRef,
    TransitionDefinition, WorkflowInstance
)
from ..domain.enums import WorkflowStatus, ActionType
from ..domain.errors import (
    PermissionDeniedError, InvalidStateError, InstanceNotActiveError
)
from ..engine.engine import WorkflowEngine
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)


class InstanceService:
    """Service for workflow instance operations"""

    def __init__(self, engine: Optional[WorkflowEngine] = None, audit_repo=None):
        self.engine = engine or WorkflowEngine()
        self.instance_repo = self.engine.instance_repo
        self.definition_repo = self.engine.definition_repo
        self.audit_repo = audit_repo or self.engine.audit_writer.repo
        self.assignments = self.engine.assignment_resolver

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start_workflow(
        self,
        definition_id: str,
        actor: ActorContext,
        target: Optional[TargetRef] = None,
        execute: bool = True
    ) -> WorkflowInstance:
        """Start an instance and, unless told otherwise, run its first action"""
        definition = self.engine.load_definition(definition_id)
        instance = self.engine.start(definition, actor, target=target)
        if execute:
            instance = self.engine.execute(instance, actor)
        return instance

    def execute_instance(self, instance_id: str, actor: ActorContext) -> WorkflowInstance:
        """Re-trigger the current action (push)"""
        instance = self._get_accessible(instance_id, actor)
        return self.engine.execute(instance, actor)

    def choose_transition(
        self,
        instance_id: str,
        transition_id: str,
        actor: ActorContext,
        comment: Optional[str] = None
    ) -> WorkflowInstance:
        """
        Take one of the transitions offered while the instance is paused

        The choice must still be valid at the time it arrives; a guard that
        closed in the meantime rejects it.
        """
        instance = self._get_accessible(instance_id, actor)
        self.engine.ensure_runnable(instance)

        runtime = self.instance_repo.get_runtime_or_raise(instance.current_action_id)
        if not runtime.finished:
            raise InvalidStateError(
                f"Action '{runtime.title}' is not finished yet",
                details={"instance_id": instance_id, "runtime_id": runtime.runtime_id}
            )

        valid_ids = [t.transition_id for t in self.engine.get_valid_transitions(instance, actor)]
        if transition_id not in valid_ids:
            raise InvalidStateError(
                f"Transition {transition_id} is not currently available",
                details={"instance_id": instance_id, "transition_id": transition_id, "available": valid_ids}
            )

        if comment:
            self._store_comment(instance, runtime.runtime_id, comment, actor)

        return self.engine.perform_transition(instance, transition_id, actor)

    def add_comment(self, instance_id: str, comment: str, actor: ActorContext) -> WorkflowInstance:
        """Attach a comment to the current action"""
        instance = self._get_accessible(instance_id, actor)
        self.engine.ensure_runnable(instance)
        self._store_comment(instance, instance.current_action_id, comment, actor)
        return instance

    def cancel_instance(
        self,
        instance_id: str,
        actor: ActorContext,
        reason: Optional[str] = None
    ) -> WorkflowInstance:
        """Cancel a running instance; it cannot be resumed afterwards"""
        instance = self._get_accessible(instance_id, actor)
        if instance.status.is_terminal:
            raise InstanceNotActiveError(
                f"Instance {instance_id} is already {instance.status.value}",
                details={"instance_id": instance_id, "status": instance.status.value}
            )

        instance = self.instance_repo.update_instance(
            instance_id,
            {
                "status": WorkflowStatus.CANCELLED,
                "current_action_id": None,
                "current_action_type": None,
                "completed_at": utc_now()
            },
            expected_version=instance.version
        )
        self.engine.audit_writer.write_cancelled(instance, actor, reason)

        logger.info(
            f"Cancelled workflow instance {instance_id}",
            extra={"instance_id": instance_id, "actor_id": actor.user_id}
        )
        return instance

    # =========================================================================
    # Queries
    # =========================================================================

    def get_instance(self, instance_id: str, actor: ActorContext) -> WorkflowInstance:
        return self._get_accessible(instance_id, actor)

    def list_instances(
        self,
        actor: ActorContext,
        statuses: Optional[List[WorkflowStatus]] = None,
        target: Optional[TargetRef] = None,
        definition_id: Optional[str] = None,
        skip: int = 0,
        limit: int = 50
    ) -> List[WorkflowInstance]:
        """List instances; non-admins only see the ones they have access to"""
        member_id = None
        member_groups = None
        if not self.assignments.is_admin(actor):
            member_id = actor.user_id
            member_groups = self.assignments.get_member_groups(actor)

        return self.instance_repo.list_instances(
            statuses=statuses,
            target=target,
            definition_id=definition_id,
            member_id=member_id,
            member_groups=member_groups,
            skip=skip,
            limit=limit
        )

    def list_dynamic_instances(self, batch_size: int = 500) -> List[WorkflowInstance]:
        """Every running instance whose current action is DYNAMIC (for the poller)"""
        dynamic: List[WorkflowInstance] = []
        skip = 0
        while True:
            page = self.instance_repo.list_instances(
                statuses=[WorkflowStatus.ACTIVE, WorkflowStatus.PAUSED],
                action_types=[ActionType.DYNAMIC],
                skip=skip,
                limit=batch_size
            )
            dynamic.extend(i for i in page if i.current_action_id)
            if len(page) < batch_size:
                return dynamic
            skip += batch_size

    def get_actions_summary(self, instance_id: str, actor: ActorContext) -> List[ActionSummary]:
        """Finished actions in the order they were entered"""
        self._get_accessible(instance_id, actor)
        return [
            ActionSummary(
                runtime_id=r.runtime_id,
                title=r.title,
                comment=r.comment,
                created_at=r.created_at,
                finished_at=r.finished_at,
                member_id=r.member_id
            )
            for r in self.instance_repo.list_runtimes(instance_id, finished=True)
        ]

    def get_available_transitions(
        self,
        instance_id: str,
        actor: ActorContext
    ) -> List[TransitionDefinition]:
        instance = self._get_accessible(instance_id, actor)
        return self.engine.get_valid_transitions(instance, actor)

    def get_capabilities(self, instance_id: str, actor: ActorContext) -> TargetCapabilities:
        """What the current action allows the actor to do with the target"""
        instance = self._get_accessible(instance_id, actor)
        return TargetCapabilities(
            can_edit=self.engine.can_edit_target(instance, actor),
            can_view=self.engine.can_view_target(instance, actor),
            can_publish=self.engine.can_publish_target(instance, actor)
        )

    def get_assigned_members(self, instance_id: str, actor: ActorContext) -> List[str]:
        instance = self._get_accessible(instance_id, actor)
        return self.assignments.get_assigned_members(instance)

    def get_audit_events(
        self,
        instance_id: str,
        actor: ActorContext,
        skip: int = 0,
        limit: int = 100
    ) -> List[AuditEvent]:
        self._get_accessible(instance_id, actor)
        return self.audit_repo.get_events_for_instance(instance_id, skip=skip, limit=limit)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _get_accessible(self, instance_id: str, actor: ActorContext) -> WorkflowInstance:
        instance = self.instance_repo.get_instance_or_raise(instance_id)
        if self.assignments.user_has_access(instance, actor):
            return instance
        raise PermissionDeniedError(
            "You do not have access to this workflow instance",
            details={"instance_id": instance_id}
        )

    def _store_comment(
        self,
        instance: WorkflowInstance,
        runtime_id: str,
        comment: str,
        actor: ActorContext
    ) -> None:
        self.instance_repo.update_runtime_comment(runtime_id, comment)
        self.engine.audit_writer.write_comment(instance, runtime_id, actor, comment)
