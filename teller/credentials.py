"""
Credential Store Module

Username/password registry used for login. The mapping is persisted as one
snapshot after each registration. Passwords are kept as salted scrypt hashes
rather than plain text.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional
import hashlib
import hmac
import secrets
import threading

from .errors import (
    DuplicateUsernameError, InvalidCredentialsError, InvalidInputError, PersistenceError
)
from .logging_config import get_logger, log_action
from .storage import SnapshotStorage


logger = get_logger("teller.credentials")

DEFAULT_USERS = {"user1": "pass1", "admin": "admin123"}
HASH_SCHEME = "scrypt"


@dataclass
class RegistrationReceipt:
    """Outcome of a registration; the user exists in memory even when persisted is False"""
    username: str
    persisted: bool = True
    warning: Optional[str] = None


class CredentialStore:
    """
    Maps usernames to password hashes

    On first run (no users snapshot) the store seeds the default users and
    persists them immediately.
    """

    def __init__(
        self,
        storage: SnapshotStorage,
        default_users: Optional[Dict[str, str]] = None,
        scrypt_n: int = 16384,
        snapshot_name: str = "users"
    ):
        self.storage = storage
        self.snapshot_name = snapshot_name
        self.default_users = dict(DEFAULT_USERS if default_users is None else default_users)
        self.scrypt_n = scrypt_n
        self._users: Dict[str, str] = {}
        self._lock = threading.RLock()
        self._opened = False
        self.seed_warning: Optional[str] = None

    def open(self) -> 'CredentialStore':
        """
        Load the users snapshot, seeding defaults on first run

        Raises:
            PersistenceError: If an existing snapshot cannot be read
        """
        with self._lock:
            payload = self.storage.read_snapshot(self.snapshot_name)
            self._opened = True
            self.seed_warning = None

            if payload is None:
                self._users = {
                    username: self._hash_password(password)
                    for username, password in self.default_users.items()
                }
                log_action(
                    logger, "info", f"Seeded {len(self._users)} default users",
                    action="seed_users", resource=self.snapshot_name
                )
                try:
                    self.save()
                except PersistenceError as e:
                    self.seed_warning = f"Error saving user data: {e.message}"
                    log_action(
                        logger, "warning", f"Default users not saved: {e.message}",
                        action="save_users_failed", resource=self.snapshot_name
                    )
                return self

            if not isinstance(payload, dict):
                raise PersistenceError("Malformed users snapshot: expected a mapping")
            self._users = {str(k): str(v) for k, v in payload.items()}
            log_action(
                logger, "info", f"Loaded {len(self._users)} users",
                action="credentials_open", resource=self.snapshot_name
            )
            return self

    def save(self) -> None:
        """
        Write the full users snapshot

        Raises:
            PersistenceError: If the backend cannot write it
        """
        with self._lock:
            self._require_open()
            self.storage.write_snapshot(self.snapshot_name, dict(self._users))

    def close(self) -> None:
        with self._lock:
            self.storage.close()
            self._opened = False

    def __enter__(self) -> 'CredentialStore':
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def register(self, username: str, password: str) -> RegistrationReceipt:
        """
        Register a new user

        Raises:
            InvalidInputError: Empty username or password
            DuplicateUsernameError: Username already taken
        """
        username = (username or "").strip()
        if not username or not password:
            raise InvalidInputError("Username and password cannot be empty.")

        with self._lock:
            self._require_open()
            if username in self._users:
                raise DuplicateUsernameError(username)

            self._users[username] = self._hash_password(password)
            log_action(
                logger, "info", "User registered",
                user_id=username, action="register", resource=self.snapshot_name
            )

            try:
                self.save()
            except PersistenceError as e:
                log_action(
                    logger, "warning", f"User data not saved: {e.message}",
                    user_id=username, action="save_users_failed", resource=self.snapshot_name
                )
                return RegistrationReceipt(
                    username=username, persisted=False,
                    warning=f"Error saving user data: {e.message}"
                )
            return RegistrationReceipt(username=username)

    def authenticate(self, username: str, password: str) -> str:
        """
        Check a username/password pair

        Returns:
            The trimmed username

        Raises:
            InvalidCredentialsError: Unknown user or wrong password
        """
        username = (username or "").strip()
        with self._lock:
            self._require_open()
            stored = self._users.get(username)

        if stored is None or password is None or not self._verify_password(password, stored):
            log_action(
                logger, "warning", "Authentication failed",
                action="login_failed", resource="auth", extra={"username": username}
            )
            raise InvalidCredentialsError()

        log_action(logger, "info", "User authenticated", user_id=username, action="login", resource="auth")
        return username

    def has_user(self, username: str) -> bool:
        with self._lock:
            return (username or "").strip() in self._users

    def list_usernames(self) -> List[str]:
        with self._lock:
            return list(self._users)

    def __len__(self) -> int:
        return len(self._users)

    def _require_open(self) -> None:
        if not self._opened:
            raise RuntimeError("CredentialStore is not open")

    def _hash_password(self, password: str, salt: Optional[str] = None) -> str:
        """Hash password with salt using scrypt"""
        if salt is None:
            salt = secrets.token_hex(16)
        digest = hashlib.scrypt(
            password.encode(),
            salt=salt.encode(),
            n=self.scrypt_n, r=8, p=1
        ).hex()
        return f"{HASH_SCHEME}${self.scrypt_n}${salt}${digest}"

    def _verify_password(self, password: str, stored: str) -> bool:
        parts = stored.split("$")
        if len(parts) != 4 or parts[0] != HASH_SCHEME:
            return False
        _, n, salt, digest = parts
        if not n.isdigit():
            return False
        expected = hashlib.scrypt(
            password.encode(),
            salt=salt.encode(),
            n=int(n), r=8, p=1
        ).hex()
        return hmac.compare_digest(expected, digest)
