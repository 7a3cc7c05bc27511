"""Tests for resolving users, accounts and categories from CLI input."""

import pytest

from famledger.domain.errors import NotFoundError, ValidationError
from famledger.utils.resolvers import resolve_account, resolve_category, resolve_user


def test_resolve_user_by_id_email_or_name(temp_db, family):
    anna = family["anna"]
    assert resolve_user(temp_db, anna.id).id == anna.id
    assert resolve_user(temp_db, str(anna.id)).id == anna.id
    assert resolve_user(temp_db, "ANNA@example.com").id == anna.id
    assert resolve_user(temp_db, "anna").id == anna.id


def test_resolve_user_errors(temp_db, family, user_service):
    with pytest.raises(NotFoundError):
        resolve_user(temp_db, "Giulia")
    with pytest.raises(NotFoundError):
        resolve_user(temp_db, 999)

    user_service.create_user("Anna", "anna.bis@example.com")
    with pytest.raises(ValidationError, match="More than one user"):
        resolve_user(temp_db, "Anna")


def test_resolve_account(temp_db, family, accounts):
    assert resolve_account(temp_db, "Risparmi").id == accounts["savings"].id
    assert resolve_account(temp_db, accounts["shared"].id).name == "Conto comune"
    with pytest.raises(NotFoundError):
        resolve_account(temp_db, "Risparmi", group_id=family["group"].id + 1)


def test_resolve_category_by_key_or_label(temp_db, family, categories):
    group_id = family["group"].id
    assert resolve_category(temp_db, "SPESA", group_id=group_id).id == categories["spesa"].id
    assert resolve_category(temp_db, "Stipendio").key == "stipendio"
    assert resolve_category(temp_db, categories["casa"].id).key == "casa"
    with pytest.raises(NotFoundError):
        resolve_category(temp_db, "viaggi", group_id=group_id)
