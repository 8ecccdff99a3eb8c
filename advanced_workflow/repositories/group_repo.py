"""Group Repository - Group membership lookups"""
from typing import List, Optional
from pymongo.collection import Collection

from .mongo_client import get_collection
from ..utils.logger import get_logger

logger = get_logger(__name__)


class GroupRepository:
    """Read access to group membership; groups are managed elsewhere"""

    def __init__(self, collection: Optional[Collection] = None):
        self._groups: Collection = collection if collection is not None else get_collection("groups")

    def get_members(self, group_id: str) -> List[str]:
        """User IDs belonging to a group (empty for unknown groups)"""
        doc = self._groups.find_one({"group_id": group_id}, {"members": 1})
        if not doc:
            logger.debug(f"Group {group_id} not found")
            return []
        return list(doc.get("members", []))

    def get_groups_for_member(self, user_id: str) -> List[str]:
        """Group IDs the user belongs to (uses the members index)"""
        return [doc["group_id"] for doc in self._groups.find({"members": user_id}, {"group_id": 1})]

    def set_members(self, group_id: str, members: List[str]) -> None:
        """Replace a group's members"""
        self._groups.update_one(
            {"group_id": group_id},
            {"$set": {"group_id": group_id, "members": list(members)}},
            upsert=True
        )
