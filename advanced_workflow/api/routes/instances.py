"""Instance API Routes - Starting, advancing and inspecting workflow instances"""
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from pydantic import BaseModel, Field

from ..deps import get_current_user_dep, get_correlation_id_dep, get_instance_service
from ...domain.models import ActorContext, TargetRef, TargetCapabilities
from ...domain.enums import WorkflowStatus
from ...domain.errors import DomainError
from ...services.instance_service import InstanceService
from ...utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================

class StartInstanceRequest(BaseModel):
    """Request to start a workflow on an (optional) target"""
    definition_id: str
    target: Optional[TargetRef] = None
    execute: bool = Field(True, description="Run the initial action right away")


class InstanceResponse(BaseModel):
    """Instance state after an operation"""
    instance: Dict[str, Any]


class InstanceListResponse(BaseModel):
    """Response for instance list"""
    items: List[Dict[str, Any]]
    page: int
    page_size: int


class ChooseTransitionRequest(BaseModel):
    """Pick one of the offered transitions"""
    transition_id: str
    comment: Optional[str] = Field(None, max_length=5000)


class CommentRequest(BaseModel):
    """Comment on the current action"""
    comment: str = Field(..., min_length=1, max_length=5000)


class CancelInstanceRequest(BaseModel):
    """Request to cancel an instance"""
    reason: Optional[str] = Field(None, max_length=2000)


# ============================================================================
# Routes
# ============================================================================

@router.post("", response_model=InstanceResponse, status_code=status.HTTP_201_CREATED)
async def start_instance(
    request: StartInstanceRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep),
    service: InstanceService = Depends(get_instance_service)
):
    """
    Start a workflow instance

    The initial action is executed immediately unless execute is false, so
    the returned instance may already be paused or complete.
    """
    try:
        instance = service.start_workflow(
            definition_id=request.definition_id,
            actor=actor,
            target=request.target,
            execute=request.execute
        )

        logger.info(
            f"Started instance: {instance.instance_id}",
            extra={"instance_id": instance.instance_id, "actor_id": actor.user_id}
        )

        return InstanceResponse(instance=instance.model_dump(mode="json"))

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("", response_model=InstanceListResponse)
async def list_instances(
    status: Optional[List[WorkflowStatus]] = Query(None),
    definition_id: Optional[str] = Query(None),
    target_type: Optional[str] = Query(None),
    target_id: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    actor: ActorContext = Depends(get_current_user_dep),
    service: InstanceService = Depends(get_instance_service)
):
    """
    List workflow instances

    Filter by status (repeatable), definition, or target. Only instances
    the caller has access to are returned.
    """
    target = None
    if target_type and target_id:
        target = TargetRef(type_name=target_type, target_id=target_id)

    instances = service.list_instances(
        actor=actor,
        statuses=status,
        target=target,
        definition_id=definition_id,
        skip=(page - 1) * page_size,
        limit=page_size
    )

    return InstanceListResponse(
        items=[i.model_dump(mode="json") for i in instances],
        page=page,
        page_size=page_size
    )


@router.get("/{instance_id}", response_model=InstanceResponse)
async def get_instance(
    instance_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    service: InstanceService = Depends(get_instance_service)
):
    """Get instance by ID"""
    try:
        instance = service.get_instance(instance_id, actor)
        return InstanceResponse(instance=instance.model_dump(mode="json"))

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.post("/{instance_id}/execute", response_model=InstanceResponse)
async def execute_instance(
    instance_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep),
    service: InstanceService = Depends(get_instance_service)
):
    """Re-trigger the current action, e.g. after the target changed"""
    try:
        instance = service.execute_instance(instance_id, actor)
        return InstanceResponse(instance=instance.model_dump(mode="json"))

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/{instance_id}/transitions")
async def get_available_transitions(
    instance_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    service: InstanceService = Depends(get_instance_service)
):
    """Transitions the caller can choose from right now"""
    try:
        transitions = service.get_available_transitions(instance_id, actor)
        return {
            "items": [
                {"transition_id": t.transition_id, "title": t.title, "next_action_id": t.next_action_id}
                for t in transitions
            ]
        }

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.post("/{instance_id}/transitions", response_model=InstanceResponse)
async def choose_transition(
    instance_id: str,
    request: ChooseTransitionRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep),
    service: InstanceService = Depends(get_instance_service)
):
    """
    Take a transition out of a paused instance

    The choice is rechecked against the guards at the time it arrives.
    """
    try:
        instance = service.choose_transition(
            instance_id=instance_id,
            transition_id=request.transition_id,
            actor=actor,
            comment=request.comment
        )
        return InstanceResponse(instance=instance.model_dump(mode="json"))

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.post("/{instance_id}/comment", response_model=InstanceResponse)
async def add_comment(
    instance_id: str,
    request: CommentRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep),
    service: InstanceService = Depends(get_instance_service)
):
    """Comment on the current action"""
    try:
        instance = service.add_comment(instance_id, request.comment, actor)
        return InstanceResponse(instance=instance.model_dump(mode="json"))

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.post("/{instance_id}/cancel", response_model=InstanceResponse)
async def cancel_instance(
    instance_id: str,
    request: CancelInstanceRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep),
    service: InstanceService = Depends(get_instance_service)
):
    """Cancel an instance. Cancelled instances cannot be resumed."""
    try:
        instance = service.cancel_instance(instance_id, actor, reason=request.reason)
        return InstanceResponse(instance=instance.model_dump(mode="json"))

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/{instance_id}/actions")
async def get_actions_summary(
    instance_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    service: InstanceService = Depends(get_instance_service)
):
    """Finished actions with who finished them and their comments"""
    try:
        summary = service.get_actions_summary(instance_id, actor)
        return {"items": [s.model_dump(mode="json") for s in summary]}

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/{instance_id}/capabilities", response_model=TargetCapabilities)
async def get_capabilities(
    instance_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    service: InstanceService = Depends(get_instance_service)
):
    """What the current action lets the caller do with the target"""
    try:
        return service.get_capabilities(instance_id, actor)

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/{instance_id}/members")
async def get_assigned_members(
    instance_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    service: InstanceService = Depends(get_instance_service)
):
    """Users assigned directly or through a group"""
    try:
        return {"items": service.get_assigned_members(instance_id, actor)}

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/{instance_id}/audit")
async def get_audit_events(
    instance_id: str,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    actor: ActorContext = Depends(get_current_user_dep),
    service: InstanceService = Depends(get_instance_service)
):
    """Audit trail of the instance, newest first"""
    try:
        events = service.get_audit_events(
            instance_id, actor, skip=(page - 1) * page_size, limit=page_size
        )
        return {"items": [e.model_dump(mode="json") for e in events]}

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())
