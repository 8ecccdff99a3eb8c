"""Domain Models - Pydantic schemas for all entities"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, EmailStr, ConfigDict

from .enums import (
    WorkflowStatus, ActionType, AllowEditing, Capability, ConditionOperator, AuditEventType
)


# ============================================================================
# Identity
# ============================================================================

class ActorContext(BaseModel):
    """Identity of whoever is driving the current call"""
    model_config = ConfigDict(extra="forbid")

    user_id: str = Field(..., description="Stable member identifier")
    email: Optional[EmailStr] = Field(None, description="User email")
    display_name: Optional[str] = Field(None, description="User display name")
    roles: List[str] = Field(default_factory=list, description="Assigned roles")
    group_ids: List[str] = Field(default_factory=list, description="Groups asserted by the token")


class TargetRef(BaseModel):
    """Reference to the business object a workflow governs"""
    model_config = ConfigDict(extra="forbid")

    type_name: str = Field(..., description="Kind of object, e.g. 'page'")
    target_id: str = Field(..., description="Identifier of the object within its kind")


# ============================================================================
# Condition
# ============================================================================

class Condition(BaseModel):
    """Single comparison against the evaluation context"""
    model_config = ConfigDict(extra="forbid")

    field: str = Field(..., description="Dotted path, e.g. 'target.status'")
    operator: ConditionOperator = Field(..., description="Comparison operator")
    value: Any = Field(None, description="Value to compare against")


class ConditionGroup(BaseModel):
    """Group of conditions with AND/OR logic"""
    model_config = ConfigDict(extra="forbid")

    logic: str = Field("AND", description="AND or OR")
    conditions: List[Condition] = Field(default_factory=list)


# ============================================================================
# Definition (static graph)
# ============================================================================

class TransitionDefinition(BaseModel):
    """Directed edge out of the owning action"""
    model_config = ConfigDict(extra="ignore")

    transition_id: str = Field(..., description="Unique transition ID")
    title: str = Field(..., description="Label shown when a choice is required")
    next_action_id: str = Field(..., description="Target action ID")
    guard: str = Field(default="always", description="Registered guard name")
    condition: Optional[ConditionGroup] = Field(None, description="Condition for the 'condition' guard")
    guard_config: Dict[str, Any] = Field(default_factory=dict)
    hooks: List[str] = Field(default_factory=list, description="Post-transition hook names, run in order")


class ActionDefinition(BaseModel):
    """A step in the workflow graph"""
    model_config = ConfigDict(extra="ignore")

    action_id: str = Field(..., description="Unique action ID within the definition")
    title: str = Field(..., description="Display name")
    action_type: ActionType = Field(default=ActionType.MANUAL)
    allow_editing: AllowEditing = Field(default=AllowEditing.NO)
    behavior: str = Field(default="noop", description="Registered behavior name")
    behavior_config: Dict[str, Any] = Field(default_factory=dict)
    sort: int = Field(default=0, description="Display order, assigned on first save")
    transitions: List[TransitionDefinition] = Field(default_factory=list)

    def get_transition(self, transition_id: str) -> Optional[TransitionDefinition]:
        for transition in self.transitions:
            if transition.transition_id == transition_id:
                return transition
        return None


class WorkflowDefinition(BaseModel):
    """Reusable template graph of actions and transitions"""
    model_config = ConfigDict(extra="ignore")

    definition_id: str = Field(..., description="Unique definition ID")
    title: str
    description: Optional[str] = None
    initial_action_id: Optional[str] = None
    actions: List[ActionDefinition] = Field(default_factory=list)
    users: List[str] = Field(default_factory=list, description="Default assigned user IDs")
    groups: List[str] = Field(default_factory=list, description="Default assigned group IDs")
    created_at: datetime
    updated_at: datetime
    version: int = Field(default=1, description="Optimistic concurrency version")

    def get_action(self, action_id: Optional[str]) -> Optional[ActionDefinition]:
        """Find action by ID"""
        if not action_id:
            return None
        for action in self.actions:
            if action.action_id == action_id:
                return action
        return None

    def get_initial_action(self) -> Optional[ActionDefinition]:
        return self.get_action(self.initial_action_id)

    def sorted_actions(self) -> List[ActionDefinition]:
        return sorted(self.actions, key=lambda a: a.sort)


# ============================================================================
# Runtime
# ============================================================================

class WorkflowInstance(BaseModel):
    """One running occurrence of a definition"""
    model_config = ConfigDict(extra="ignore")

    instance_id: str = Field(..., description="Unique instance ID")
    title: str
    status: WorkflowStatus = Field(default=WorkflowStatus.ACTIVE)
    definition_id: str
    target: Optional[TargetRef] = None
    current_action_id: Optional[str] = Field(None, description="ID of the current ActionRuntime")
    current_action_type: Optional[ActionType] = Field(None, description="Type of the current action, for the poller query")
    initiator_id: str
    assigned_users: List[str] = Field(default_factory=list)
    assigned_groups: List[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None
    version: int = Field(default=1, description="Optimistic concurrency version")


class ActionRuntime(BaseModel):
    """Record of one action entered during an instance's life"""
    model_config = ConfigDict(extra="ignore")

    runtime_id: str = Field(..., description="Unique runtime ID")
    instance_id: str
    action_id: str = Field(..., description="Reference to the action definition")
    title: str = Field(..., description="Action title at the time it was entered")
    finished: bool = False
    member_id: Optional[str] = Field(None, description="Who was acting when the action finished")
    comment: Optional[str] = None
    created_at: datetime
    finished_at: Optional[datetime] = None


class ActionSummary(BaseModel):
    """Row of the finished-actions history"""
    runtime_id: str
    title: str
    comment: Optional[str] = None
    created_at: datetime
    finished_at: Optional[datetime] = None
    member_id: Optional[str] = None


class TargetCapabilities(BaseModel):
    """Capability answers for the target while an instance runs"""
    can_edit: Capability
    can_view: Capability
    can_publish: Capability


# ============================================================================
# Audit
# ============================================================================

class AuditEvent(BaseModel):
    """Audit event (append-only)"""
    model_config = ConfigDict(extra="forbid")

    audit_event_id: str
    instance_id: str
    runtime_id: Optional[str] = None
    event_type: AuditEventType
    actor_id: str
    details: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime
    correlation_id: Optional[str] = None
