"""Tests for token handling and role permissions."""

from datetime import timedelta

import pytest

from app.core.permissions import Role, has_permission
from app.core.security import create_access_token, decode_access_token


class TestAccessToken:
    def test_round_trip(self):
        token = create_access_token(data={"sub": "42"})
        payload = decode_access_token(token)

        assert payload["sub"] == "42"
        assert payload["type"] == "access"

    def test_expired_token_rejected(self):
        token = create_access_token(data={"sub": "42"}, expires_delta=timedelta(seconds=-1))
        assert decode_access_token(token) is None

    def test_garbage_rejected(self):
        assert decode_access_token("abc.def.ghi") is None


class TestSwitchPermission:
    @pytest.mark.parametrize(
        "role,allowed",
        [
            (Role.OWNER, True),
            (Role.ADMIN, True),
            (Role.COUNSELLOR, True),
            (Role.ACCOUNTANT, False),
            (Role.STAFF, False),
        ],
    )
    def test_roles(self, role: Role, allowed: bool):
        assert has_permission(role, "students:switch_batch") is allowed

    def test_unknown_role(self):
        assert has_permission("janitor", "students:switch_batch") is False
