"""
Test suite for the credential store

Tests registration validation, password hashing, authentication and
state export/import.
"""

import pytest

from bank_ledger.credentials import CredentialStore, UserDetails, hash_password
from bank_ledger.errors import UserAlreadyExistsError, UserNotFoundError, LedgerErrorCode


@pytest.fixture
def store():
    """Create credential store for tests"""
    return CredentialStore(password_min_length=8)


def register(store, username="asha", password="s3cretpass", **overrides):
    fields = dict(name="Asha Rao", city="Pune", email="asha@example.com", phone="9876543210")
    fields.update(overrides)
    return store.register_user(username, password, **fields)


class TestRegistration:
    """Test user registration"""

    def test_register_user(self, store):
        """Test that a valid user is stored with a salted digest"""
        user = register(store)

        assert user.username == "asha"
        assert user.city == "Pune"
        assert user.password_hash != "s3cretpass"
        assert len(user.password_salt) == 32
        assert user.password_hash == hash_password("s3cretpass", user.password_salt)
        assert store.exists("asha")

    def test_same_password_different_salt(self, store):
        """Test that two users with one password get different digests"""
        first = register(store, "asha")
        second = register(store, "ravi", email="ravi@example.com")
        assert first.password_hash != second.password_hash

    def test_duplicate_username(self, store):
        """Test that usernames are unique"""
        register(store)
        with pytest.raises(UserAlreadyExistsError) as exc_info:
            register(store, email="other@example.com")
        assert exc_info.value.code == LedgerErrorCode.USER_ALREADY_EXISTS

    def test_invalid_email(self, store):
        """Test email validation"""
        with pytest.raises(ValueError, match="email"):
            register(store, email="not-an-email")

    def test_invalid_phone(self, store):
        """Test that phone numbers must be exactly 10 digits"""
        with pytest.raises(ValueError, match="Phone"):
            register(store, phone="12345")
        with pytest.raises(ValueError, match="Phone"):
            register(store, phone="98765432ab")

    def test_invalid_username(self, store):
        """Test that usernames are non-empty without whitespace"""
        with pytest.raises(ValueError):
            register(store, username="")
        with pytest.raises(ValueError):
            register(store, username="asha rao")

    def test_short_password(self, store):
        """Test minimum password length"""
        with pytest.raises(ValueError, match="at least 8"):
            register(store, password="short")
        assert not store.exists("asha")


class TestAuthentication:
    """Test login and password changes"""

    def setup_method(self):
        self.store = CredentialStore()
        register(self.store)

    def test_authenticate_success(self):
        """Test correct credentials return the user"""
        user = self.store.authenticate("asha", "s3cretpass")
        assert user is not None
        assert user.username == "asha"

    def test_authenticate_failure(self):
        """Test wrong password or unknown user return None"""
        assert self.store.authenticate("asha", "wrongpass") is None
        assert self.store.authenticate("nobody", "s3cretpass") is None

    def test_change_password(self):
        """Test password change requires the old password"""
        assert not self.store.change_password("asha", "wrongpass", "newpassword")
        assert self.store.change_password("asha", "s3cretpass", "newpassword")
        assert self.store.authenticate("asha", "newpassword") is not None
        assert self.store.authenticate("asha", "s3cretpass") is None

    def test_change_password_unknown_user(self):
        """Test password change for a missing user"""
        with pytest.raises(UserNotFoundError):
            self.store.change_password("nobody", "a", "b")

    def test_require_user(self):
        """Test lookup that raises for unknown users"""
        assert self.store.require_user("asha").name == "Asha Rao"
        with pytest.raises(UserNotFoundError):
            self.store.require_user("nobody")


class TestUserDetails:
    """Test UserDetails record"""

    def test_digest_not_in_repr_or_summary(self):
        """Test that password material is never displayed"""
        store = CredentialStore()
        user = register(store)

        assert user.password_hash not in repr(user)
        assert user.password_salt not in repr(user)
        assert user.password_hash not in user.summary()

    def test_dict_round_trip_and_state(self):
        """Test serialization and load_state/export_state"""
        store = CredentialStore()
        user = register(store)

        restored = UserDetails.from_dict(user.to_dict())
        assert restored == user

        other = CredentialStore()
        other.load_state([restored])
        assert other.authenticate("asha", "s3cretpass") is not None
        assert list(other.export_state()) == ["asha"]
        assert [u.username for u in other.list_users()] == ["asha"]

    def test_snapshot_users_are_detached(self):
        """Test that snapshot copies match the store but do not share state"""
        store = CredentialStore()
        user = register(store)

        copies = store.snapshot_users()
        assert copies == [user]
        assert copies[0] is not user

        copies[0].password_hash = "tampered"
        assert store.get_user("asha").password_hash == user.password_hash
        assert store.authenticate("asha", "s3cretpass") is not None
