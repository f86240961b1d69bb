"""Tests for role and ownership checks"""

from unittest.mock import patch

import pytest

from famsaveapi.errors import Forbidden, ResourceNotFound, Unauthenticated
from famsaveapi.models import SecurityEvent
from famsaveapi.services import AccountService
from famsaveapi.utils.permissions import (
    ROLES,
    authorize,
    check_ownership,
    get_role_description,
    is_valid_role,
)


def _claims(role="PARENT", account_id=1, **extra):
    claims = {"account_id": account_id, "email": "parent@test.com", "role": role}
    claims.update(extra)
    return claims


class TestRoleCatalogue:
    @pytest.mark.parametrize("role", ["PARENT", "GUARDIAN", "CHILD", "ADMIN"])
    def test_known_roles(self, role):
        assert is_valid_role(role)
        assert get_role_description(role) == ROLES[role]

    @pytest.mark.parametrize("role", ["GUEST", "parent", "", None, 1])
    def test_unknown_roles(self, role):
        assert not is_valid_role(role)
        assert get_role_description(role) == "Unknown role"


class TestAuthorize:
    def test_allowed_role(self, app):
        assert authorize(_claims("PARENT"), ["PARENT"]) is None

    def test_any_of_several_roles(self, app):
        authorize(_claims("GUARDIAN"), ["PARENT", "GUARDIAN"])

    def test_other_claims_do_not_matter(self, app):
        authorize(_claims("PARENT", account_id=999, is_admin=True), ["PARENT"])

    def test_rejected_role(self, app):
        with pytest.raises(Forbidden) as excinfo:
            authorize(_claims("GUEST", is_admin=True), ["PARENT"])
        assert excinfo.value.message == "Forbidden"
        assert "PARENT" not in str(excinfo.value.serialize)
        assert "GUEST" not in str(excinfo.value.serialize)

    def test_missing_role(self, app):
        claims = _claims()
        del claims["role"]
        with pytest.raises(Forbidden):
            authorize(claims, ["PARENT"])

    @pytest.mark.parametrize("claims", [None, {}])
    def test_no_session(self, app, claims):
        with pytest.raises(Unauthenticated):
            authorize(claims, ["PARENT"])

    def test_rejection_is_audited(self, app):
        with patch(
            "famsaveapi.utils.permissions.log_role_check_failed"
        ) as log_role_check_failed:
            with pytest.raises(Forbidden):
                authorize(_claims("CHILD", account_id=7), ["PARENT", "ADMIN"])
        log_role_check_failed.assert_called_once_with(7, {"PARENT", "ADMIN"}, "CHILD")

    def test_rejection_is_persisted_as_critical(self, app):
        with pytest.raises(Forbidden):
            authorize(_claims("CHILD", account_id=7), ["PARENT"])
        event = SecurityEvent.query.filter_by(action="ROLE_CHECK_FAILED").one()
        assert event.severity == "CRITICAL"
        assert event.result == "BLOCKED"
        assert event.actor_id == 7
        assert event.details == {"required_roles": ["PARENT"], "actual_role": "CHILD"}

    def test_works_with_verified_session(self, app, parent_account):
        claims = AccountService.verify_session(
            parent_account["tokens"]["access_token"]
        )
        authorize(claims, ["PARENT"])
        with pytest.raises(Forbidden):
            authorize(claims, ["ADMIN"])


class TestCheckOwnership:
    def test_owner_allowed(self, app):
        assert check_ownership(_claims(account_id=3), 3, "CHILD", 10) is None

    def test_owner_id_compared_as_identifier(self, app):
        check_ownership(_claims(account_id=3), "3", "CHILD", 10)

    def test_missing_resource(self, app):
        with patch(
            "famsaveapi.utils.permissions.log_ownership_check_failed"
        ) as log_ownership_check_failed:
            with pytest.raises(ResourceNotFound) as missing:
                check_ownership(_claims(account_id=3), None, "CHILD", 10)
        log_ownership_check_failed.assert_not_called()
        assert missing.value.serialize["message"] == "Not found"

    def test_not_owner_looks_like_missing(self, app):
        with pytest.raises(ResourceNotFound) as missing:
            check_ownership(_claims(account_id=3), None, "CHILD", 10)
        with pytest.raises(ResourceNotFound) as not_owned:
            check_ownership(_claims(account_id=3), 4, "CHILD", 10)
        assert missing.value.serialize == not_owned.value.serialize

    def test_not_owner_is_audited(self, app):
        with pytest.raises(ResourceNotFound):
            check_ownership(_claims(account_id=3), 4, "CHILD", 10)
        event = SecurityEvent.query.filter_by(action="OWNERSHIP_CHECK_FAILED").one()
        assert event.severity == "CRITICAL"
        assert event.actor_id == 3
        assert event.resource_type == "CHILD"
        assert event.resource_id == "10"

    def test_no_session(self, app):
        with pytest.raises(Unauthenticated):
            check_ownership(None, 3, "CHILD", 10)
