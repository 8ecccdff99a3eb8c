"""Assignment Resolver - Who is attached to a running instance"""
from typing import List, Optional, TYPE_CHECKING

from ..config.settings import settings
from ..domain.models import ActorContext, WorkflowInstance
from ..utils.logger import get_logger

if TYPE_CHECKING:
    from ..repositories.group_repo import GroupRepository

logger = get_logger(__name__)


class AssignmentResolver:
    """
    Resolve assigned members of an instance

    Rules:
    - Directly assigned users are members
    - Members of assigned groups are members (group lookup via repository,
      or groups asserted on the actor's token)
    - Holders of the admin role pass every access check

    Only reads the instance; assignment sets are owned by external callers.
    """

    def __init__(self, group_repo: "GroupRepository" = None, admin_role: Optional[str] = None):
        self._group_repo = group_repo
        self.admin_role = admin_role or settings.admin_role

    def get_assigned_members(self, instance: WorkflowInstance) -> List[str]:
        """User IDs assigned directly or through a group, without duplicates"""
        members: List[str] = []
        seen = set()

        candidates = list(instance.assigned_users)
        if self._group_repo:
            for group_id in instance.assigned_groups:
                candidates.extend(self._group_repo.get_members(group_id))

        for user_id in candidates:
            if user_id not in seen:
                seen.add(user_id)
                members.append(user_id)
        return members

    def get_member_groups(self, actor: ActorContext) -> List[str]:
        """Groups the actor belongs to: asserted on the token plus stored membership"""
        groups = list(actor.group_ids)
        if self._group_repo:
            for group_id in self._group_repo.get_groups_for_member(actor.user_id):
                if group_id not in groups:
                    groups.append(group_id)
        return groups

    def is_admin(self, actor: Optional[ActorContext]) -> bool:
        return actor is not None and self.admin_role in actor.roles

    def is_assigned(self, instance: WorkflowInstance, actor: Optional[ActorContext]) -> bool:
        """Check if actor is among the instance's assigned members"""
        if actor is None:
            return False

        if actor.user_id in instance.assigned_users:
            return True

        if set(actor.group_ids) & set(instance.assigned_groups):
            return True

        if self._group_repo:
            for group_id in instance.assigned_groups:
                if actor.user_id in self._group_repo.get_members(group_id):
                    return True

        return False

    def user_has_access(self, instance: WorkflowInstance, actor: Optional[ActorContext]) -> bool:
        """Admins and assigned members may view and act on the instance"""
        if actor is None:
            return False
        if self.is_admin(actor):
            return True
        return self.is_assigned(instance, actor)
