"""Audit Writer - Append-only audit events"""
from typing import Any, Dict, Optional

from ..domain.models import AuditEvent, ActorContext, WorkflowInstance, TransitionDefinition
from ..domain.enums import AuditEventType
from ..repositories import get_audit_repository
from ..utils.idgen import generate_audit_event_id
from ..utils.time import utc_now
from ..utils.logger import get_logger, get_correlation_id

logger = get_logger(__name__)


class AuditWriter:
    """
    Write audit events (append-only)

    Every state change the engine commits produces an audit event.
    """

    def __init__(self, repo=None):
        self.repo = repo or get_audit_repository()

    def write_event(
        self,
        instance_id: str,
        event_type: AuditEventType,
        actor: ActorContext,
        runtime_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> AuditEvent:
        """Write a single audit event"""
        event = AuditEvent(
            audit_event_id=generate_audit_event_id(),
            instance_id=instance_id,
            runtime_id=runtime_id,
            event_type=event_type,
            actor_id=actor.user_id,
            details=details or {},
            timestamp=utc_now(),
            correlation_id=get_correlation_id()
        )
        return self.repo.create_event(event)

    def write_started(self, instance: WorkflowInstance, actor: ActorContext) -> AuditEvent:
        return self.write_event(
            instance_id=instance.instance_id,
            event_type=AuditEventType.INSTANCE_STARTED,
            actor=actor,
            runtime_id=instance.current_action_id,
            details={"definition_id": instance.definition_id, "title": instance.title}
        )

    def write_action_finished(
        self,
        instance: WorkflowInstance,
        runtime_id: str,
        action_id: str,
        actor: ActorContext
    ) -> AuditEvent:
        return self.write_event(
            instance_id=instance.instance_id,
            event_type=AuditEventType.ACTION_FINISHED,
            actor=actor,
            runtime_id=runtime_id,
            details={"action_id": action_id}
        )

    def write_transition(
        self,
        instance: WorkflowInstance,
        transition: TransitionDefinition,
        actor: ActorContext
    ) -> AuditEvent:
        return self.write_event(
            instance_id=instance.instance_id,
            event_type=AuditEventType.TRANSITION_TAKEN,
            actor=actor,
            runtime_id=instance.current_action_id,
            details={
                "transition_id": transition.transition_id,
                "title": transition.title,
                "next_action_id": transition.next_action_id,
            }
        )

    def write_paused(
        self,
        instance: WorkflowInstance,
        actor: ActorContext,
        valid_count: int
    ) -> AuditEvent:
        return self.write_event(
            instance_id=instance.instance_id,
            event_type=AuditEventType.INSTANCE_PAUSED,
            actor=actor,
            runtime_id=instance.current_action_id,
            details={"valid_transitions": valid_count}
        )

    def write_completed(self, instance: WorkflowInstance, actor: ActorContext) -> AuditEvent:
        return self.write_event(
            instance_id=instance.instance_id,
            event_type=AuditEventType.INSTANCE_COMPLETED,
            actor=actor
        )

    def write_cancelled(
        self,
        instance: WorkflowInstance,
        actor: ActorContext,
        reason: Optional[str] = None
    ) -> AuditEvent:
        return self.write_event(
            instance_id=instance.instance_id,
            event_type=AuditEventType.INSTANCE_CANCELLED,
            actor=actor,
            details={"reason": reason}
        )

    def write_comment(
        self,
        instance: WorkflowInstance,
        runtime_id: str,
        actor: ActorContext,
        comment: str
    ) -> AuditEvent:
        return self.write_event(
            instance_id=instance.instance_id,
            event_type=AuditEventType.COMMENT_ADDED,
            actor=actor,
            runtime_id=runtime_id,
            details={"comment": comment}
        )

    def write_hook_failed(
        self,
        instance: WorkflowInstance,
        transition: TransitionDefinition,
        hook_name: str,
        actor: ActorContext,
        error: str
    ) -> AuditEvent:
        return self.write_event(
            instance_id=instance.instance_id,
            event_type=AuditEventType.HOOK_FAILED,
            actor=actor,
            runtime_id=instance.current_action_id,
            details={"transition_id": transition.transition_id, "hook": hook_name, "error": error}
        )
