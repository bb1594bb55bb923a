"""Tests for the identity directory service."""

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from watchtogether.db.models import User
from watchtogether.errors import ApiErrorCode, InvalidRequestError, NotFoundError
from watchtogether.services import users as users_service


class TestUpsertUser:
    def test_creates_record(self, db_session: Session):
        user = users_service.upsert_user(
            db_session, "sub_1", "  Ada@Example.com ", display_name="Ada Lovelace"
        )

        assert user.external_subject == "sub_1"
        assert user.email == "Ada@Example.com"
        assert user.display_name == "Ada Lovelace"
        assert user.avatar_url is None

    def test_is_idempotent_and_updates_profile(self, db_session: Session):
        first = users_service.upsert_user(db_session, "sub_1", "ada@example.com")

        second = users_service.upsert_user(
            db_session, "sub_1", "ada@new.example.com", avatar_url="https://img/ada.png"
        )

        assert second.id == first.id
        assert second.email == "ada@new.example.com"
        assert second.avatar_url == "https://img/ada.png"
        assert db_session.scalar(select(func.count()).select_from(User)) == 1

    def test_blank_display_name_stored_as_none(self, db_session: Session):
        user = users_service.upsert_user(db_session, "sub_1", "a@b.co", display_name="")

        assert user.display_name is None

    def test_invalid_email(self, db_session: Session):
        with pytest.raises(InvalidRequestError) as exc_info:
            users_service.upsert_user(db_session, "sub_1", "not-an-email")
        assert exc_info.value.code == ApiErrorCode.E_EMAIL_INVALID

    def test_blank_subject(self, db_session: Session):
        with pytest.raises(InvalidRequestError):
            users_service.upsert_user(db_session, "  ", "a@b.co")


class TestDeleteUser:
    def test_removes_record(self, db_session: Session):
        users_service.upsert_user(db_session, "sub_1", "a@b.co")

        assert users_service.delete_user(db_session, "sub_1") is True
        with pytest.raises(NotFoundError) as exc_info:
            users_service.get_user(db_session, "sub_1")
        assert exc_info.value.code == ApiErrorCode.E_USER_NOT_FOUND

    def test_missing_record(self, db_session: Session):
        assert users_service.delete_user(db_session, "ghost") is False


class TestLookups:
    def test_batch_lookup_skips_unknown(self, db_session: Session):
        users_service.upsert_user(db_session, "sub_1", "a@b.co")
        users_service.upsert_user(db_session, "sub_2", "c@d.co")

        found = users_service.get_users_by_subject(db_session, ["sub_1", "sub_2", "ghost"])

        assert set(found) == {"sub_1", "sub_2"}

    def test_batch_lookup_empty(self, db_session: Session):
        assert users_service.get_users_by_subject(db_session, []) == {}


class TestSearchUsers:
    @pytest.fixture(autouse=True)
    def directory(self, db_session: Session):
        users_service.upsert_user(db_session, "viewer", "alex@example.com")
        users_service.upsert_user(db_session, "alice", "Alice@example.com")
        users_service.upsert_user(db_session, "albert", "albert@example.com")
        users_service.upsert_user(db_session, "bob", "bob@example.com")
        users_service.upsert_user(db_session, "under", "al_x@example.com")

    def subjects(self, results):
        return [user.external_subject for user in results]

    def test_prefix_is_case_insensitive(self, db_session: Session):
        results = users_service.search_users(db_session, "ALI")

        assert self.subjects(results) == ["alice"]

    def test_excludes_caller(self, db_session: Session):
        results = users_service.search_users(db_session, "al", exclude_subject="viewer")

        assert "viewer" not in self.subjects(results)

    def test_ordered_by_email(self, db_session: Session):
        results = users_service.search_users(db_session, "al", exclude_subject="viewer")

        assert self.subjects(results) == ["under", "albert", "alice"]

    def test_underscore_is_literal(self, db_session: Session):
        results = users_service.search_users(db_session, "al_")

        assert self.subjects(results) == ["under"]

    def test_blank_prefix(self, db_session: Session):
        assert users_service.search_users(db_session, "   ") == []

    def test_limit(self, db_session: Session):
        assert len(users_service.search_users(db_session, "a", limit=2)) == 2
