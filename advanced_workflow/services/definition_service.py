"""Definition Service - Workflow definition management business logic"""
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from ..domain.models import ActorContext, WorkflowDefinition
from ..domain.errors import WorkflowValidationError
from ..engine.definition_validator import DefinitionValidator
from ..repositories import get_definition_repository
from ..utils.idgen import generate_definition_id, generate_action_id, generate_transition_id
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)


class DefinitionService:
    """Service for workflow definition operations"""

    def __init__(self, repo=None, validator: Optional[DefinitionValidator] = None):
        self.repo = repo or get_definition_repository()
        self.validator = validator or DefinitionValidator()

    def create_definition(self, document: Dict[str, Any], actor: ActorContext) -> WorkflowDefinition:
        """
        Create a definition from an authored document

        Missing ids are generated, actions get their display sort on save,
        and the document must pass validation before anything is stored.
        """
        now = utc_now()
        data = self._with_ids(document)
        data.update({
            "definition_id": generate_definition_id(),
            "created_at": now,
            "updated_at": now,
            "version": 1
        })

        definition = self._build(data)
        self._ensure_valid(definition)
        definition = self.repo.create_definition(definition)

        logger.info(
            f"Definition '{definition.title}' created by {actor.user_id}",
            extra={"definition_id": definition.definition_id, "actor_id": actor.user_id}
        )
        return definition

    def update_definition(
        self,
        definition_id: str,
        document: Dict[str, Any],
        expected_version: int,
        actor: ActorContext
    ) -> WorkflowDefinition:
        """Replace the graph of an existing definition; running instances keep going"""
        existing = self.repo.get_definition_or_raise(definition_id)

        data = self._with_ids(document)
        data.update({
            "definition_id": definition_id,
            "created_at": existing.created_at,
            "updated_at": utc_now(),
            "version": existing.version
        })

        # Actions that survive keep the sort they were first saved with
        previous_sort = {a.action_id: a.sort for a in existing.actions}
        for action in data.get("actions", []):
            if not action.get("sort") and action.get("action_id") in previous_sort:
                action["sort"] = previous_sort[action["action_id"]]

        definition = self._build(data)
        self._ensure_valid(definition)
        definition = self.repo.save_definition(definition, expected_version=expected_version)

        logger.info(
            f"Definition {definition_id} updated by {actor.user_id}",
            extra={"definition_id": definition_id, "actor_id": actor.user_id}
        )
        return definition

    def get_definition(self, definition_id: str) -> WorkflowDefinition:
        """Get definition by ID"""
        return self.repo.get_definition_or_raise(definition_id)

    def list_definitions(self, skip: int = 0, limit: int = 50) -> Tuple[List[WorkflowDefinition], int]:
        return self.repo.list_definitions(skip=skip, limit=limit), self.repo.count_definitions()

    def validate_definition(self, definition_id: str) -> Dict[str, Any]:
        """Validate a stored definition"""
        definition = self.repo.get_definition_or_raise(definition_id)
        return self.validator.validate(definition)

    def validate_document(self, document: Dict[str, Any]) -> Dict[str, Any]:
        """Validate an authored document without saving it"""
        now = utc_now()
        data = self._with_ids(document)
        data.setdefault("definition_id", "draft")
        data.setdefault("created_at", now)
        data.setdefault("updated_at", now)

        try:
            definition = WorkflowDefinition.model_validate(data)
        except PydanticValidationError as e:
            return {
                "is_valid": False,
                "errors": self._schema_errors(e),
                "warnings": []
            }
        return self.validator.validate(definition)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _with_ids(self, document: Dict[str, Any]) -> Dict[str, Any]:
        """Copy of the document with generated action / transition ids where absent"""
        data = dict(document)
        actions = []
        for action in data.get("actions") or []:
            action = dict(action)
            if not action.get("action_id"):
                action["action_id"] = generate_action_id()
            transitions = []
            for transition in action.get("transitions") or []:
                transition = dict(transition)
                if not transition.get("transition_id"):
                    transition["transition_id"] = generate_transition_id()
                transitions.append(transition)
            action["transitions"] = transitions
            actions.append(action)
        data["actions"] = actions
        return data

    def _build(self, data: Dict[str, Any]) -> WorkflowDefinition:
        try:
            return WorkflowDefinition.model_validate(data)
        except PydanticValidationError as e:
            errors = self._schema_errors(e)
            raise WorkflowValidationError(
                "Workflow definition is malformed",
                details={"is_valid": False, "errors": errors, "warnings": []}
            )

    def _ensure_valid(self, definition: WorkflowDefinition) -> None:
        result = self.validator.validate(definition)
        if not result["is_valid"]:
            raise WorkflowValidationError(
                "Workflow definition failed validation",
                details=result
            )

    def _schema_errors(self, error: PydanticValidationError) -> List[Dict[str, str]]:
        return [
            {
                "type": "SCHEMA",
                "message": err["msg"],
                "path": ".".join(str(p) for p in err["loc"])
            }
            for err in error.errors()
        ]
