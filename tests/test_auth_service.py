"""Tests for auth service - signup validation, duplicate detection, login."""
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import IntegrityError

from reprice.core.exceptions import BadRequestError, ConflictError, UnauthorizedError
from reprice.core.security import hash_password, verify_access_token, verify_password
from reprice.models.dto.user import LoginRequest, SignupRequest
from reprice.services.auth_service import AuthResult, login, signup
from tests.factories import make_user


def _signup_body(**overrides):
    fields = {"name": "Asha", "phone": "9876543210", "password": "s3cret", "userType": "customer"}
    fields.update(overrides)
    return SignupRequest.model_validate(fields)


def _assign_id(db, user):
    user.id = 11
    return user


class TestSignup:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("missing", ["name", "phone", "password", "userType"])
    async def test_missing_field_raises(self, mock_db, missing):
        with pytest.raises(BadRequestError, match="required"):
            await signup(mock_db, _signup_body(**{missing: None}))

    @pytest.mark.asyncio
    async def test_invalid_user_type_raises(self, mock_db):
        with pytest.raises(BadRequestError, match="Invalid user type"):
            await signup(mock_db, _signup_body(userType="admin"))

    @pytest.mark.asyncio
    @patch("reprice.services.auth_service.user_repo")
    async def test_duplicate_phone_conflicts_without_insert(self, mock_repo, mock_db):
        mock_repo.get_by_phone = AsyncMock(return_value=make_user())
        mock_repo.create = AsyncMock()

        with pytest.raises(ConflictError) as exc_info:
            await signup(mock_db, _signup_body())

        assert exc_info.value.status_code == 409
        mock_repo.get_by_phone.assert_called_once_with(mock_db, "9876543210", "customer")
        mock_repo.create.assert_not_called()

    @pytest.mark.asyncio
    @patch("reprice.services.auth_service.user_repo")
    async def test_concurrent_duplicate_maps_to_conflict(self, mock_repo, mock_db):
        mock_repo.get_by_phone = AsyncMock(return_value=None)
        mock_repo.create = AsyncMock(side_effect=IntegrityError("INSERT", {}, Exception("duplicate key")))

        with pytest.raises(ConflictError):
            await signup(mock_db, _signup_body())

        mock_db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    @patch("reprice.services.auth_service.user_repo")
    async def test_success_hashes_password_and_issues_token(self, mock_repo, mock_db):
        mock_repo.get_by_phone = AsyncMock(return_value=None)
        mock_repo.create = AsyncMock(side_effect=_assign_id)

        result = await signup(mock_db, _signup_body(userType="agent", email="a@example.com"))

        assert isinstance(result, AuthResult)
        assert result.user.id == 11
        assert result.user.user_type == "agent"
        assert result.user.password_hash != "s3cret"
        assert verify_password("s3cret", result.user.password_hash)
        payload = verify_access_token(result.token)
        assert payload["sub"] == "11"
        assert payload["user_type"] == "agent"

    @pytest.mark.asyncio
    @patch("reprice.services.auth_service.user_repo")
    async def test_same_phone_other_user_type_is_checked_separately(self, mock_repo, mock_db):
        mock_repo.get_by_phone = AsyncMock(return_value=None)
        mock_repo.create = AsyncMock(side_effect=_assign_id)

        await signup(mock_db, _signup_body(userType="agent"))

        mock_repo.get_by_phone.assert_called_once_with(mock_db, "9876543210", "agent")


class TestLogin:
    @pytest.mark.asyncio
    @patch("reprice.services.auth_service.user_repo")
    async def test_valid_credentials(self, mock_repo, mock_db):
        user = make_user(user_id=5, password_hash=hash_password("s3cret"))
        mock_repo.get_by_phone = AsyncMock(return_value=user)

        result = await login(
            mock_db, LoginRequest(phone="9876543210", password="s3cret", userType="customer"),
        )

        assert result.user is user
        assert verify_access_token(result.token)["sub"] == "5"

    @pytest.mark.asyncio
    @patch("reprice.services.auth_service.user_repo")
    async def test_wrong_password(self, mock_repo, mock_db):
        mock_repo.get_by_phone = AsyncMock(return_value=make_user(password_hash=hash_password("s3cret")))

        with pytest.raises(UnauthorizedError, match="Invalid phone or password"):
            await login(mock_db, LoginRequest(phone="9876543210", password="nope", userType="customer"))

    @pytest.mark.asyncio
    @patch("reprice.services.auth_service.user_repo")
    async def test_unknown_user(self, mock_repo, mock_db):
        mock_repo.get_by_phone = AsyncMock(return_value=None)

        with pytest.raises(UnauthorizedError):
            await login(mock_db, LoginRequest(phone="000", password="x", userType="agent"))
