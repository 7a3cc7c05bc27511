"""Tests for role based permission helpers."""

from famledger.domain import permissions
from famledger.domain.entities import Transaction, User


def _user(id, role):
    return User(id=id, name=f"u{id}", email=f"u{id}@example.com", group_id=1, role=role)


ADMIN = _user(1, "admin")
MEMBER = _user(2, "member")
SUPER = _user(3, "superadmin")


def test_role_checks():
    assert permissions.is_admin(ADMIN)
    assert permissions.is_admin(SUPER)
    assert not permissions.is_admin(MEMBER)
    assert permissions.is_member(MEMBER)
    assert permissions.is_superadmin(SUPER)
    assert not permissions.is_superadmin(ADMIN)
    assert not permissions.is_admin(None)


def test_can_access_user_data():
    assert permissions.can_access_user_data(ADMIN, MEMBER)
    assert permissions.can_access_user_data(MEMBER, MEMBER)
    assert not permissions.can_access_user_data(MEMBER, ADMIN)
    assert not permissions.can_access_user_data(None, MEMBER)
    assert not permissions.can_access_user_data(ADMIN, None)


def test_can_access_user_data_stays_within_group():
    outsider = User(id=9, name="u9", email="u9@example.com", group_id=2, role="member")
    assert not permissions.can_access_user_data(ADMIN, outsider)
    assert permissions.can_access_user_data(SUPER, outsider)
    assert permissions.can_access_user_data(outsider, outsider)


def test_effective_user_id_pins_members():
    assert permissions.get_effective_user_id(MEMBER, 1) == 2
    assert permissions.get_effective_user_id(ADMIN, 2) == 2
    assert permissions.get_effective_user_id(ADMIN) is None
    assert permissions.get_default_form_user_id(ADMIN) == 1


def test_visible_and_selectable_users():
    users = [ADMIN, MEMBER]
    assert permissions.get_visible_users(MEMBER, users) == []
    assert permissions.get_visible_users(ADMIN, users) == users
    assert permissions.get_selectable_users(MEMBER, users) == [MEMBER]


def test_filter_by_user_permissions():
    from datetime import date
    from decimal import Decimal

    items = [
        Transaction(
            id=i, description="x", type="expense", amount=Decimal("1"), category="c",
            date=date(2025, 1, 1), account_id=1, user_id=user_id,
        )
        for i, user_id in enumerate([1, 2, 2], start=1)
    ]
    assert [t.id for t in permissions.filter_by_user_permissions(items, MEMBER)] == [2, 3]
    assert [t.id for t in permissions.filter_by_user_permissions(items, ADMIN, 1)] == [1]
    assert len(permissions.filter_by_user_permissions(items, ADMIN)) == 3
    assert permissions.filter_by_user_permissions(items, None) == []
