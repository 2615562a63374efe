from datetime import timedelta

import pytest

from cladstock.catalog import ROLE_ADMIN, ROLE_COUNTER, ROLE_USER
from cladstock.permissions import ALL_PERMISSIONS, get_role_permissions, has_permission
from cladstock.services import session_service, user_service
from cladstock.storage import get_storage
from cladstock.time_utils import utcnow
from cladstock.validation import ValidationError


class TestUsers:
    def test_seed_creates_default_admin_once(self, any_app):
        admin = user_service.seed_default_user()
        get_storage().commit()

        assert admin.id == user_service.DEFAULT_ADMIN_ID
        assert admin.role == ROLE_ADMIN
        assert user_service.validate_user_pin("1234").id == admin.id

        again = user_service.seed_default_user()
        assert again.id == admin.id
        assert len(user_service.list_users()) == 1

    def test_pin_is_hashed(self, any_app, make_user):
        user = make_user("Jordan", "5678")

        assert user.pin_hash != "5678"
        assert user.pin_hash.startswith("$2")
        assert "pin_hash" not in user.to_dict()

    def test_duplicate_pin_rejected(self, any_app, make_user):
        make_user("Jordan", "5678")

        with pytest.raises(ValidationError):
            user_service.create_user("Sam", "5678")

    @pytest.mark.parametrize("pin", ["12", "123456789", "12a4", "", None])
    def test_malformed_pin_rejected(self, any_app, pin):
        with pytest.raises(ValidationError):
            user_service.create_user("Sam", pin)

    def test_unknown_role_rejected(self, any_app):
        with pytest.raises(ValidationError):
            user_service.create_user("Sam", "4321", role="foreman")

    def test_update_pin_rehashes(self, any_app, make_user):
        user = make_user("Jordan", "5678")

        user_service.update_user(user.id, {"pin": "8765"})
        get_storage().commit()

        assert user_service.validate_user_pin("5678") is None
        assert user_service.validate_user_pin("8765").id == user.id

    def test_deactivated_user_cannot_log_in(self, any_app, make_user):
        user = make_user("Jordan", "5678")

        user_service.deactivate_user(user.id)
        get_storage().commit()

        assert user_service.validate_user_pin("5678") is None
        # History is kept
        assert user_service.get_user(user.id).active is False

    def test_update_missing_user_returns_none(self, any_app):
        assert user_service.update_user("missing", {"name": "X"}) is None


class TestSessions:
    def test_token_is_stored_hashed(self, any_app, make_user):
        user = make_user("Jordan", "5678")

        session, token = session_service.create_session(user)

        assert session.token_hash == session_service.hash_token(token)
        assert session.token_hash != token
        assert len(token) == 64

    def test_validate_and_revoke(self, any_app, make_user):
        user = make_user("Jordan", "5678")
        _, token = session_service.create_session(user)

        context = session_service.validate_session(token)
        assert context.user.id == user.id

        assert session_service.revoke_session(token) is True
        assert session_service.validate_session(token) is None
        assert session_service.revoke_session(token) is False

    def test_idle_session_is_revoked(self, any_app, make_user):
        user = make_user("Jordan", "5678")
        session, token = session_service.create_session(user)

        stale = utcnow() - session_service.SESSION_IDLE_TIMEOUT - timedelta(minutes=1)
        get_storage().update_session_token(session.id, {"last_used_at": stale})
        get_storage().commit()

        assert session_service.validate_session(token) is None
        assert get_storage().get_session_token(session.token_hash).revoked_reason == "Idle timeout"

    def test_expired_session_rejected(self, any_app, make_user):
        user = make_user("Jordan", "5678")
        session, token = session_service.create_session(user)

        get_storage().update_session_token(session.id, {"expires_at": utcnow() - timedelta(seconds=1)})
        get_storage().commit()

        assert session_service.validate_session(token) is None

    def test_deactivating_user_kills_session(self, any_app, make_user):
        user = make_user("Jordan", "5678")
        _, token = session_service.create_session(user)

        user_service.deactivate_user(user.id)
        get_storage().commit()

        assert session_service.validate_session(token) is None

    def test_unknown_token(self, any_app):
        assert session_service.validate_session("not-a-token") is None


class TestPermissions:
    def test_admin_has_everything(self):
        assert get_role_permissions(ROLE_ADMIN) == ALL_PERMISSIONS

    def test_counter_can_count_but_not_manage(self):
        perms = get_role_permissions(ROLE_COUNTER)
        assert "RECORD_COUNTS" in perms
        assert "MANAGE_COUNT_SESSIONS" in perms
        assert "MANAGE_ITEMS" not in perms
        assert "MANAGE_USERS" not in perms

    def test_user_role_is_pull_and_return_only(self):
        perms = get_role_permissions(ROLE_USER)
        assert perms == {"VIEW_INVENTORY", "RECORD_TRANSACTIONS", "USE_ASSISTANT"}

    def test_unknown_role_has_nothing(self):
        class Stranger:
            role = "visitor"

        assert not has_permission(Stranger(), "VIEW_INVENTORY")
