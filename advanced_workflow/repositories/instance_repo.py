"""Instance Repository - Data access for workflow instances and action runtimes"""
from enum import Enum
from typing import Any, Dict, List, Optional
from pymongo.collection import Collection
from pymongo import ASCENDING, DESCENDING

from .mongo_client import get_collection
from ..domain.models import WorkflowInstance, ActionRuntime, TargetRef
from ..domain.enums import WorkflowStatus, ActionType
from ..domain.errors import (
    InstanceNotFoundError, ActionRuntimeNotFoundError, ConcurrencyError
)
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)


class InstanceRepository:
    """Repository for instance operations"""

    def __init__(
        self,
        instances: Optional[Collection] = None,
        runtimes: Optional[Collection] = None
    ):
        self._instances: Collection = instances if instances is not None else get_collection("workflow_instances")
        self._runtimes: Collection = runtimes if runtimes is not None else get_collection("action_runtimes")

    # =========================================================================
    # Instance CRUD
    # =========================================================================

    def create_instance(self, instance: WorkflowInstance) -> WorkflowInstance:
        """Create a new instance"""
        # Keep datetimes native so MongoDB can sort on them
        doc = instance.model_dump()
        doc["_id"] = instance.instance_id

        self._instances.insert_one(doc)
        logger.info(f"Created instance: {instance.instance_id}", extra={"instance_id": instance.instance_id})
        return instance

    def get_instance(self, instance_id: str) -> Optional[WorkflowInstance]:
        """Get instance by ID"""
        doc = self._instances.find_one({"instance_id": instance_id})
        if doc:
            doc.pop("_id", None)
            return WorkflowInstance.model_validate(doc)
        return None

    def get_instance_or_raise(self, instance_id: str) -> WorkflowInstance:
        """Get instance by ID or raise error"""
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
        """Update instance with optimistic concurrency"""
        updates = _to_document(updates)
        updates["updated_at"] = utc_now()

        filter_query: Dict[str, Any] = {"instance_id": instance_id}
        if expected_version is not None:
            filter_query["version"] = expected_version
            updates["version"] = expected_version + 1

        result = self._instances.find_one_and_update(
            filter_query,
            {"$set": updates},
            return_document=True
        )

        if result is None:
            if expected_version is not None:
                exists = self._instances.find_one({"instance_id": instance_id})
                if exists:
                    raise ConcurrencyError(
                        f"Instance {instance_id} was modified. Please refresh and try again.",
                        details={"expected_version": expected_version}
                    )
            raise InstanceNotFoundError(f"Instance {instance_id} not found")

        result.pop("_id", None)
        logger.debug(f"Updated instance: {instance_id}", extra={"instance_id": instance_id})
        return WorkflowInstance.model_validate(result)

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
        """
        List instances with optional filters, most recently updated first

        member_id restricts the result to instances assigned to that user
        directly or through one of member_groups, before paging.
        """
        query: Dict[str, Any] = {}

        if statuses:
            query["status"] = {"$in": [s.value for s in statuses]}
        if target:
            query["target.type_name"] = target.type_name
            query["target.target_id"] = target.target_id
        if definition_id:
            query["definition_id"] = definition_id
        if action_types:
            query["current_action_type"] = {"$in": [t.value for t in action_types]}
        if member_id is not None:
            query["$or"] = [
                {"assigned_users": member_id},
                {"assigned_groups": {"$in": list(member_groups or [])}},
            ]

        cursor = self._instances.find(query).sort("updated_at", DESCENDING).skip(skip).limit(limit)

        instances = []
        for doc in cursor:
            doc.pop("_id", None)
            instances.append(WorkflowInstance.model_validate(doc))
        return instances

    # =========================================================================
    # Action Runtime Operations
    # =========================================================================

    def create_runtime(self, runtime: ActionRuntime) -> ActionRuntime:
        """Create an action runtime (history is append-only)"""
        doc = runtime.model_dump()
        doc["_id"] = runtime.runtime_id

        self._runtimes.insert_one(doc)
        logger.info(
            f"Created action runtime: {runtime.runtime_id}",
            extra={"instance_id": runtime.instance_id, "runtime_id": runtime.runtime_id, "action_id": runtime.action_id}
        )
        return runtime

    def get_runtime(self, runtime_id: str) -> Optional[ActionRuntime]:
        """Get action runtime by ID"""
        doc = self._runtimes.find_one({"runtime_id": runtime_id})
        if doc:
            doc.pop("_id", None)
            return ActionRuntime.model_validate(doc)
        return None

    def get_runtime_or_raise(self, runtime_id: str) -> ActionRuntime:
        """Get action runtime by ID or raise error"""
        runtime = self.get_runtime(runtime_id)
        if not runtime:
            raise ActionRuntimeNotFoundError(f"Action runtime {runtime_id} not found")
        return runtime

    def finish_runtime(self, runtime_id: str, member_id: str) -> ActionRuntime:
        """
        Mark a runtime finished and stamp the acting member

        Only an unfinished runtime is updated. If another caller already
        finished it, the stored record is returned unchanged.
        """
        result = self._runtimes.find_one_and_update(
            {"runtime_id": runtime_id, "finished": False},
            {"$set": {"finished": True, "member_id": member_id, "finished_at": utc_now()}},
            return_document=True
        )

        if result is None:
            existing = self.get_runtime_or_raise(runtime_id)
            logger.info(
                f"Action runtime {runtime_id} was already finished",
                extra={"runtime_id": runtime_id}
            )
            return existing

        result.pop("_id", None)
        return ActionRuntime.model_validate(result)

    def update_runtime_comment(self, runtime_id: str, comment: Optional[str]) -> ActionRuntime:
        """Store the free-form comment on a runtime"""
        result = self._runtimes.find_one_and_update(
            {"runtime_id": runtime_id},
            {"$set": {"comment": comment}},
            return_document=True
        )
        if result is None:
            raise ActionRuntimeNotFoundError(f"Action runtime {runtime_id} not found")

        result.pop("_id", None)
        return ActionRuntime.model_validate(result)

    def list_runtimes(
        self,
        instance_id: str,
        finished: Optional[bool] = None
    ) -> List[ActionRuntime]:
        """List runtimes for an instance in the order they were entered"""
        query: Dict[str, Any] = {"instance_id": instance_id}
        if finished is not None:
            query["finished"] = finished

        cursor = self._runtimes.find(query).sort("created_at", ASCENDING)

        runtimes = []
        for doc in cursor:
            doc.pop("_id", None)
            runtimes.append(ActionRuntime.model_validate(doc))
        return runtimes


def _to_document(updates: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten enums and nested models in an update dict for storage"""
    doc: Dict[str, Any] = {}
    for key, value in updates.items():
        if hasattr(value, "model_dump"):
            doc[key] = value.model_dump()
        elif isinstance(value, Enum):
            doc[key] = value.value
        else:
            doc[key] = value
    return doc
