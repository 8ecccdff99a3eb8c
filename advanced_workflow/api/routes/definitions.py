"""Definition API Routes - Authoring and validating workflow definitions"""
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from pydantic import BaseModel, Field

from ..deps import get_current_user_dep, get_correlation_id_dep, get_definition_service
from ...domain.models import ActorContext
from ...domain.errors import DomainError
from ...services.definition_service import DefinitionService
from ...utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================

class DefinitionDocument(BaseModel):
    """Authored definition; ids of actions and transitions may be omitted"""
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    initial_action_id: Optional[str] = None
    actions: List[Dict[str, Any]] = Field(default_factory=list)
    users: List[str] = Field(default_factory=list)
    groups: List[str] = Field(default_factory=list)


class UpdateDefinitionRequest(DefinitionDocument):
    """Replace a definition's graph"""
    version: int = Field(..., ge=1, description="Version the edit was based on")


class CreateDefinitionResponse(BaseModel):
    """Response after creating a definition"""
    definition_id: str
    version: int


class DefinitionListResponse(BaseModel):
    """Response for definition list"""
    items: List[Dict[str, Any]]
    page: int
    page_size: int
    total: int


class ValidationResult(BaseModel):
    """Validation result"""
    is_valid: bool
    errors: List[Dict[str, Any]] = Field(default_factory=list)
    warnings: List[Dict[str, Any]] = Field(default_factory=list)


# ============================================================================
# Routes
# ============================================================================

@router.post("", response_model=CreateDefinitionResponse, status_code=status.HTTP_201_CREATED)
async def create_definition(
    request: DefinitionDocument,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep),
    service: DefinitionService = Depends(get_definition_service)
):
    """
    Create a workflow definition

    The document is validated before it is stored; an invalid graph is
    rejected with the validation result in the error details.
    """
    try:
        definition = service.create_definition(request.model_dump(), actor)
        return CreateDefinitionResponse(
            definition_id=definition.definition_id,
            version=definition.version
        )

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.post("/validate", response_model=ValidationResult)
async def validate_document(
    request: DefinitionDocument,
    actor: ActorContext = Depends(get_current_user_dep),
    service: DefinitionService = Depends(get_definition_service)
):
    """Validate a definition document without saving it"""
    return ValidationResult(**service.validate_document(request.model_dump()))


@router.get("", response_model=DefinitionListResponse)
async def list_definitions(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    actor: ActorContext = Depends(get_current_user_dep),
    service: DefinitionService = Depends(get_definition_service)
):
    """List workflow definitions"""
    skip = (page - 1) * page_size
    definitions, total = service.list_definitions(skip=skip, limit=page_size)

    return DefinitionListResponse(
        items=[d.model_dump(mode="json") for d in definitions],
        page=page,
        page_size=page_size,
        total=total
    )


@router.get("/{definition_id}")
async def get_definition(
    definition_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    service: DefinitionService = Depends(get_definition_service)
):
    """Get a definition with its actions in display order"""
    try:
        definition = service.get_definition(definition_id)
        data = definition.model_dump(mode="json")
        data["actions"] = [a.model_dump(mode="json") for a in definition.sorted_actions()]
        return data

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.put("/{definition_id}", response_model=CreateDefinitionResponse)
async def update_definition(
    definition_id: str,
    request: UpdateDefinitionRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep),
    service: DefinitionService = Depends(get_definition_service)
):
    """
    Replace a definition's graph

    Fails with 409 if somebody else saved the definition after the given
    version was read.
    """
    try:
        document = request.model_dump(exclude={"version"})
        definition = service.update_definition(
            definition_id,
            document,
            expected_version=request.version,
            actor=actor
        )
        return CreateDefinitionResponse(
            definition_id=definition.definition_id,
            version=definition.version
        )

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/{definition_id}/validate", response_model=ValidationResult)
async def validate_definition(
    definition_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    service: DefinitionService = Depends(get_definition_service)
):
    """Validate a stored definition"""
    try:
        return ValidationResult(**service.validate_definition(definition_id))

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())
