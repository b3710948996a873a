import uuid

import pytest

from app.auth.models.user import Role
from app.auth.services.identity_service import IdentityService
from app.core import redis as redis_module
from app.core.exceptions import ProfileMissingError, UnauthorizedError
from app.core.security import create_refresh_token
from tests.utils.factories import create_profile_factory
from tests.utils.helpers import access_token_for


@pytest.fixture
def cache(mock_redis, monkeypatch):
    monkeypatch.setattr(redis_module, "redis_client", mock_redis)
    return mock_redis


class TestResolve:
    async def test_should_resolve_student_identity(self, db_session, student, cache):
        identity = await IdentityService(db_session).resolve(access_token_for(student))

        assert identity.user_id == student.id
        assert identity.role == Role.STUDENT
        assert identity.university == student.university

    async def test_should_cache_resolved_identity(self, db_session, admin, cache):
        await IdentityService(db_session).resolve(access_token_for(admin))

        assert f"identity:{admin.id}" in cache.store

    async def test_should_serve_from_cache(self, db_session, pending_admin, cache):
        service = IdentityService(db_session)
        token = access_token_for(pending_admin)
        await service.resolve(token)
        cache.get.reset_mock()

        identity = await service.resolve(token)

        cache.get.assert_awaited_once()
        assert identity.is_verified is False

    async def test_should_fall_back_to_storage_when_cache_is_down(self, db_session, student, cache):
        cache.get.side_effect = ConnectionError("redis down")
        cache.setex.side_effect = ConnectionError("redis down")

        identity = await IdentityService(db_session).resolve(access_token_for(student))

        assert identity.user_id == student.id

    @pytest.mark.parametrize("token", [None, "", "not-a-jwt"])
    async def test_should_reject_missing_or_malformed_token(self, db_session, token):
        with pytest.raises(UnauthorizedError):
            await IdentityService(db_session).resolve(token)

    async def test_should_reject_refresh_token_as_session(self, db_session, student):
        token = create_refresh_token({"sub": str(student.id)})

        with pytest.raises(UnauthorizedError):
            await IdentityService(db_session).resolve(token)

    async def test_should_report_missing_profile(self, db_session, cache):
        ghost = type("Ghost", (), {"id": uuid.uuid4(), "email": "ghost@example.com"})()

        with pytest.raises(ProfileMissingError):
            await IdentityService(db_session).resolve(access_token_for(ghost))

    async def test_should_report_profile_without_role_grant(self, db_session, cache):
        orphan = create_profile_factory(db_session, role=None)

        with pytest.raises(ProfileMissingError):
            await IdentityService(db_session).resolve(access_token_for(orphan))

    async def test_should_report_unknown_role(self, db_session, cache):
        odd = create_profile_factory(db_session, role="janitor")

        with pytest.raises(ProfileMissingError):
            await IdentityService(db_session).resolve(access_token_for(odd))


class TestInvalidate:
    async def test_should_drop_cache_entry(self, db_session, student, cache):
        await IdentityService(db_session).resolve(access_token_for(student))

        await IdentityService.invalidate(student.id)

        assert f"identity:{student.id}" not in cache.store

    async def test_should_not_raise_when_cache_is_down(self, student, cache):
        cache.delete.side_effect = ConnectionError("redis down")

        await IdentityService.invalidate(student.id)
