"""Role checks for acting on other users' data.

Admins (``admin``) manage the data of every user in their own group,
``superadmin`` reaches every group. Members only ever see and change
their own.
"""

from typing import Iterable, Optional, TypeVar

from famledger.domain.entities import User

ADMIN_ROLES = ("admin", "superadmin")

T = TypeVar("T")


def has_role(user: Optional[User], *roles: str) -> bool:
    if user is None or not user.role:
        return False
    return user.role in roles


def is_admin(user: Optional[User]) -> bool:
    return has_role(user, *ADMIN_ROLES)


def is_member(user: Optional[User]) -> bool:
    return has_role(user, "member")


def is_superadmin(user: Optional[User]) -> bool:
    return has_role(user, "superadmin")


def can_access_user_data(current: Optional[User], target: Optional[User]) -> bool:
    """Whether ``current`` may read or change data owned by ``target``.

    Admins reach every user of their own group, superadmins every user.
    """
    if current is None or target is None:
        return False
    if current.id == target.id or is_superadmin(current):
        return True
    return is_admin(current) and current.group_id is not None and target.group_id == current.group_id


def get_effective_user_id(current: Optional[User], selected_user_id: Optional[int] = None) -> Optional[int]:
    """User id a view should be filtered on; None means every user.

    Members are pinned to themselves whatever they select.
    """
    if current is None:
        return None
    if is_member(current):
        return current.id
    return selected_user_id


def get_default_form_user_id(current: User, selected_user_id: Optional[int] = None) -> int:
    if is_member(current):
        return current.id
    return selected_user_id if selected_user_id is not None else current.id


def get_visible_users(current: Optional[User], users: Iterable[User]) -> list[User]:
    if current is None or not is_admin(current):
        return []
    return list(users)


def get_selectable_users(current: Optional[User], users: Iterable[User]) -> list[User]:
    if current is None:
        return []
    if is_admin(current):
        return list(users)
    return [current]


def filter_by_user_permissions(
    items: Iterable[T], current: Optional[User], selected_user_id: Optional[int] = None
) -> list[T]:
    """Keep the items (anything with a ``user_id``) the current user may see."""
    if current is None:
        return []
    if is_member(current):
        return [item for item in items if item.user_id == current.id]
    if selected_user_id is not None:
        return [item for item in items if item.user_id == selected_user_id]
    return list(items)
