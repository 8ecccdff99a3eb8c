"""Domain Enumerations - All status and type definitions"""
from enum import Enum


class WorkflowStatus(str, Enum):
    """Workflow instance status"""
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"  # Waiting on an external decision or guard change
    COMPLETE = "COMPLETE"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in (WorkflowStatus.COMPLETE, WorkflowStatus.CANCELLED)


class ActionType(str, Enum):
    """How an action is expected to finish"""
    DYNAMIC = "DYNAMIC"  # May finish on its own; picked up by the poller
    MANUAL = "MANUAL"    # Needs a human to supply input or a decision


class AllowEditing(str, Enum):
    """Editing policy for the target while an action is current"""
    BY_ASSIGNEES = "BY_ASSIGNEES"
    CONTENT_SETTINGS = "CONTENT_SETTINGS"  # Defer to the target's own settings
    NO = "NO"


class Capability(str, Enum):
    """Tri-state answer to a capability query"""
    ALLOW = "ALLOW"
    DENY = "DENY"
    UNDECIDED = "UNDECIDED"  # No opinion, caller applies its default


class ConditionOperator(str, Enum):
    """Operators for condition evaluation"""
    EQUALS = "EQUALS"
    NOT_EQUALS = "NOT_EQUALS"
    GREATER_THAN = "GREATER_THAN"
    LESS_THAN = "LESS_THAN"
    GREATER_THAN_OR_EQUALS = "GREATER_THAN_OR_EQUALS"
    LESS_THAN_OR_EQUALS = "LESS_THAN_OR_EQUALS"
    CONTAINS = "CONTAINS"
    NOT_CONTAINS = "NOT_CONTAINS"
    IN = "IN"
    NOT_IN = "NOT_IN"
    IS_EMPTY = "IS_EMPTY"
    IS_NOT_EMPTY = "IS_NOT_EMPTY"


class AuditEventType(str, Enum):
    """Types of audit events"""
    INSTANCE_STARTED = "INSTANCE_STARTED"
    ACTION_FINISHED = "ACTION_FINISHED"
    TRANSITION_TAKEN = "TRANSITION_TAKEN"
    INSTANCE_PAUSED = "INSTANCE_PAUSED"
    INSTANCE_COMPLETED = "INSTANCE_COMPLETED"
    INSTANCE_CANCELLED = "INSTANCE_CANCELLED"
    COMMENT_ADDED = "COMMENT_ADDED"
    HOOK_FAILED = "HOOK_FAILED"
