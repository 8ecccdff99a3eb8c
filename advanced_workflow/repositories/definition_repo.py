"""Definition Repository - Data access for workflow definitions"""
from typing import Any, Dict, List, Optional
from pymongo.collection import Collection
from pymongo import DESCENDING
from pymongo.errors import DuplicateKeyError
from pydantic import ValidationError

from .mongo_client import get_collection
from ..domain.models import WorkflowDefinition
from ..domain.errors import DefinitionNotFoundError, ConcurrencyError, AlreadyExistsError
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)


def assign_action_sort(definition: WorkflowDefinition) -> WorkflowDefinition:
    """
    Give every not-yet-sorted action the next sort value

    Actions keep the sort they were first saved with; new actions (sort 0)
    get one more than the current maximum, in list order.
    """
    current_max = max((a.sort for a in definition.actions), default=0)
    for action in definition.actions:
        if not action.sort:
            current_max += 1
            action.sort = current_max
    return definition


class DefinitionRepository:
    """Repository for workflow definition operations"""

    def __init__(self, collection: Optional[Collection] = None):
        self._definitions: Collection = collection if collection is not None else get_collection("workflow_definitions")

    def create_definition(self, definition: WorkflowDefinition) -> WorkflowDefinition:
        """Create a new workflow definition"""
        assign_action_sort(definition)
        doc = definition.model_dump()
        doc["_id"] = definition.definition_id

        try:
            self._definitions.insert_one(doc)
        except DuplicateKeyError:
            raise AlreadyExistsError(f"Definition {definition.definition_id} already exists")

        logger.info(
            f"Created definition: {definition.definition_id}",
            extra={"definition_id": definition.definition_id}
        )
        return definition

    def get_definition(self, definition_id: str) -> Optional[WorkflowDefinition]:
        """Get definition by ID"""
        doc = self._definitions.find_one({"definition_id": definition_id})
        if doc:
            doc.pop("_id", None)
            try:
                return WorkflowDefinition.model_validate(doc)
            except ValidationError as e:
                logger.error(
                    f"Corrupted definition data for {definition_id}: {str(e)[:300]}",
                    extra={"definition_id": definition_id}
                )
                return None
        return None

    def get_definition_or_raise(self, definition_id: str) -> WorkflowDefinition:
        """Get definition by ID or raise error"""
        definition = self.get_definition(definition_id)
        if not definition:
            raise DefinitionNotFoundError(f"Definition {definition_id} not found")
        return definition

    def save_definition(
        self,
        definition: WorkflowDefinition,
        expected_version: int
    ) -> WorkflowDefinition:
        """Replace a definition with optimistic concurrency"""
        assign_action_sort(definition)
        definition.updated_at = utc_now()
        definition.version = expected_version + 1
        doc = definition.model_dump()
        doc["_id"] = definition.definition_id

        result = self._definitions.find_one_and_replace(
            {"definition_id": definition.definition_id, "version": expected_version},
            doc,
            return_document=True
        )

        if result is None:
            if self._definitions.find_one({"definition_id": definition.definition_id}):
                raise ConcurrencyError(
                    f"Definition {definition.definition_id} was modified. Please refresh and try again.",
                    details={"expected_version": expected_version}
                )
            raise DefinitionNotFoundError(f"Definition {definition.definition_id} not found")

        logger.info(
            f"Updated definition: {definition.definition_id}",
            extra={"definition_id": definition.definition_id}
        )
        return definition

    def list_definitions(self, skip: int = 0, limit: int = 50) -> List[WorkflowDefinition]:
        """List definitions, newest first. Corrupted records are skipped."""
        cursor = self._definitions.find({}).sort("updated_at", DESCENDING).skip(skip).limit(limit)

        definitions = []
        for doc in cursor:
            doc.pop("_id", None)
            try:
                definitions.append(WorkflowDefinition.model_validate(doc))
            except ValidationError as e:
                logger.warning(
                    f"Skipping corrupted definition {doc.get('definition_id', 'unknown')}",
                    extra={"definition_id": doc.get("definition_id"), "error_preview": str(e)[:300]}
                )
        return definitions

    def count_definitions(self) -> int:
        """Count definitions"""
        return self._definitions.count_documents({})

    def delete_definition(self, definition_id: str) -> bool:
        """Delete definition. Running instances keep their definition ID."""
        result = self._definitions.delete_one({"definition_id": definition_id})
        return result.deleted_count > 0
