"""Group domain service."""

import logging
from typing import Any, Optional

from famledger.database.base import Database
from famledger.domain.entities import DEFAULT_PLAN, Group
from famledger.domain.errors import (
    DependencyError,
    NotFoundError,
    ValidationError,
    group_delete_blocked,
    group_not_found,
    user_not_found,
)

logger = logging.getLogger(__name__)


class GroupService:
    """Service for managing family groups and their membership."""

    def __init__(self, db: Database):
        """Initialize group service.

        Args:
            db: Database instance
        """
        self.db = db

    def _require_group(self, group_id: int) -> Group:
        group = self.db.get_group(group_id)
        if group is None:
            raise NotFoundError(group_not_found(group_id))
        return group

    def create_group(
        self,
        name: str,
        user_ids: list[int],
        description: Optional[str] = None,
        plan: Optional[dict[str, Any]] = None,
    ) -> int:
        """Create a group and attach its initial members.

        Args:
            name: Group name
            user_ids: Initial member IDs (at least one)
            description: Optional description
            plan: Subscription plan metadata (defaults to the free plan)

        Returns:
            Group ID

        Raises:
            ValidationError: If the name is blank or there are no users
            NotFoundError: If a user does not exist
        """
        if not name or not name.strip():
            raise ValidationError("Group name is required")
        if not user_ids:
            raise ValidationError("A group needs at least one user")
        users = []
        for user_id in dict.fromkeys(user_ids):
            user = self.db.get_user(user_id)
            if user is None:
                raise NotFoundError(user_not_found(user_id))
            users.append(user)

        group_id = self.db.create_group(
            name=name.strip(),
            user_ids=[u.id for u in users],
            description=description,
            plan=plan if plan is not None else dict(DEFAULT_PLAN),
        )
        for user in users:
            # Leave the previous group first so both member lists stay in sync
            if user.group_id is not None and self.db.get_group(user.group_id) is not None:
                self.remove_member(user.group_id, user.id)
            self.db.update_user(user.id, group_id=group_id)
        logger.info("Created group %s (%s) with %d members", group_id, name, len(user_ids))
        return group_id

    def get_group(self, group_id: int) -> Optional[Group]:
        return self.db.get_group(group_id)

    def list_groups(self) -> list[Group]:
        return self.db.list_groups()

    def update_group(
        self,
        group_id: int,
        name: Optional[str] = None,
        description: Optional[str] = None,
        plan: Optional[dict[str, Any]] = None,
        is_active: Optional[bool] = None,
    ) -> None:
        """Update group details. Membership changes go through add/remove_member."""
        self._require_group(group_id)
        fields: dict[str, Any] = {}
        if name is not None:
            if not name.strip():
                raise ValidationError("Group name cannot be empty")
            fields["name"] = name.strip()
        if description is not None:
            fields["description"] = description
        if plan is not None:
            fields["plan"] = plan
        if is_active is not None:
            fields["is_active"] = is_active
        if fields:
            self.db.update_group(group_id, **fields)

    def add_member(self, group_id: int, user_id: int) -> None:
        """Add a user to a group, moving them out of any previous group."""
        group = self._require_group(group_id)
        user = self.db.get_user(user_id)
        if user is None:
            raise NotFoundError(user_not_found(user_id))

        if user.group_id is not None and user.group_id != group_id:
            self.remove_member(user.group_id, user_id)
        if user_id not in group.user_ids:
            self.db.update_group(group_id, user_ids=[*group.user_ids, user_id])
        self.db.update_user(user_id, group_id=group_id)
        logger.info("Added user %s to group %s", user_id, group_id)

    def remove_member(self, group_id: int, user_id: int) -> None:
        """Remove a user from a group."""
        group = self._require_group(group_id)
        self.db.update_group(group_id, user_ids=[u for u in group.user_ids if u != user_id])
        user = self.db.get_user(user_id)
        if user is not None and user.group_id == group_id:
            self.db.update_user(user_id, group_id=None)
        logger.info("Removed user %s from group %s", user_id, group_id)

    def delete_group(self, group_id: int) -> None:
        """Delete an empty group.

        Raises:
            NotFoundError: If the group does not exist
            DependencyError: If the group still has members
        """
        group = self._require_group(group_id)
        if group.user_ids:
            raise DependencyError(group_delete_blocked(group_id, len(group.user_ids)))
        self.db.delete_group(group_id)
        logger.info("Deleted group %s", group_id)
