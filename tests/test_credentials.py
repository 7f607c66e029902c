"""
Test suite for the credential store

Tests registration, authentication, default-user seeding and persistence of
the username/password mapping.
"""

import json
import pytest
import tempfile
from pathlib import Path

from teller.credentials import CredentialStore, RegistrationReceipt
from teller.errors import (
    DuplicateUsernameError, ErrorKind, InvalidCredentialsError, InvalidInputError,
    PersistenceError
)
from teller.storage import FileStorage, InMemoryStorage


# Small scrypt cost keeps the suite fast
FAST_N = 16


class FailingStorage(InMemoryStorage):

    def __init__(self):
        super().__init__()
        self.fail_snapshots = False

    def write_snapshot(self, name, payload):
        if self.fail_snapshots:
            raise PersistenceError("permission denied")
        super().write_snapshot(name, payload)


@pytest.fixture
def storage():
    return FailingStorage()


@pytest.fixture
def store(storage):
    return CredentialStore(storage, scrypt_n=FAST_N).open()


class TestSeeding:

    def test_first_run_seeds_defaults_and_persists(self, store, storage):
        assert sorted(store.list_usernames()) == ["admin", "user1"]
        assert store.authenticate("user1", "pass1") == "user1"
        assert store.authenticate("admin", "admin123") == "admin"
        assert sorted(storage.read_snapshot("users")) == ["admin", "user1"]

    def test_existing_snapshot_is_not_reseeded(self, store, storage):
        store.register("bob", "secret")

        reopened = CredentialStore(storage, default_users={"other": "x"}, scrypt_n=FAST_N).open()
        assert sorted(reopened.list_usernames()) == ["admin", "bob", "user1"]
        assert not reopened.has_user("other")

    def test_custom_default_users(self, storage):
        store = CredentialStore(storage, default_users={"teller": "counter"}, scrypt_n=FAST_N).open()
        assert store.list_usernames() == ["teller"]
        assert store.authenticate("teller", "counter") == "teller"

    def test_seed_failure_is_reported(self, storage):
        storage.fail_snapshots = True
        store = CredentialStore(storage, scrypt_n=FAST_N).open()

        assert "Error saving user data" in store.seed_warning
        assert store.authenticate("user1", "pass1") == "user1"


class TestRegistration:

    def test_register_then_authenticate(self, store):
        receipt = store.register("bob", "secret")

        assert isinstance(receipt, RegistrationReceipt)
        assert receipt.username == "bob"
        assert receipt.persisted is True
        assert store.authenticate("bob", "secret") == "bob"

        with pytest.raises(InvalidCredentialsError) as exc_info:
            store.authenticate("bob", "wrong")
        assert exc_info.value.kind == ErrorKind.INVALID_CREDENTIALS

    def test_duplicate_username(self, store):
        store.register("bob", "secret")
        with pytest.raises(DuplicateUsernameError) as exc_info:
            store.register("bob", "other")

        assert exc_info.value.kind == ErrorKind.DUPLICATE_USERNAME
        assert store.authenticate("bob", "secret") == "bob"

    @pytest.mark.parametrize("username,password", [
        ("", "secret"), ("   ", "secret"), ("bob", ""), (None, "secret"),
    ])
    def test_empty_fields(self, store, username, password):
        count = len(store)
        with pytest.raises(InvalidInputError):
            store.register(username, password)
        assert len(store) == count

    def test_username_is_trimmed_password_is_not(self, store):
        store.register("  carol ", " pw ")

        assert store.has_user("carol")
        assert store.authenticate(" carol", " pw ") == "carol"
        with pytest.raises(InvalidCredentialsError):
            store.authenticate("carol", "pw")

    def test_unknown_user(self, store):
        with pytest.raises(InvalidCredentialsError):
            store.authenticate("nobody", "pass1")

    def test_persistence_failure_warns(self, store, storage):
        storage.fail_snapshots = True
        receipt = store.register("dave", "pw")

        assert receipt.persisted is False
        assert "Error saving user data" in receipt.warning
        assert store.authenticate("dave", "pw") == "dave"
        assert "dave" not in storage.read_snapshot("users")


class TestCredentialPersistence:

    def test_passwords_are_not_stored_in_plain_text(self, store, storage):
        store.register("bob", "secret")
        stored = storage.read_snapshot("users")["bob"]

        assert "secret" not in stored
        assert stored.startswith("scrypt$")

    def test_round_trip(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            with CredentialStore(FileStorage(temp_dir), scrypt_n=FAST_N) as store:
                store.register("bob", "secret")
                before = dict(json.loads((Path(temp_dir) / "users.json").read_text()))

            with CredentialStore(FileStorage(temp_dir), scrypt_n=FAST_N) as reloaded:
                assert reloaded.authenticate("bob", "secret") == "bob"
                reloaded.save()
            after = json.loads((Path(temp_dir) / "users.json").read_text())
            assert after == before

    def test_malformed_snapshot(self, storage):
        storage.write_snapshot("users", ["not", "a", "mapping"])
        with pytest.raises(PersistenceError):
            CredentialStore(storage, scrypt_n=FAST_N).open()

    def test_store_must_be_open(self, storage):
        with pytest.raises(RuntimeError):
            CredentialStore(storage).register("bob", "secret")
