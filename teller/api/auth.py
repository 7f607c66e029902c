"""
Authentication and system dependencies
"""

from datetime import datetime, timezone, timedelta
from decimal import Decimal
from typing import Optional

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from ..accounts import LedgerStore
from ..config import TellerConfig, get_config
from ..credentials import CredentialStore
from ..storage import SnapshotStorage, create_storage


class BankingSystem:
    """Ledger and credential stores sharing one storage backend"""

    def __init__(self, config: Optional[TellerConfig] = None, storage: Optional[SnapshotStorage] = None):
        self.config = config or get_config()
        self.storage = storage or create_storage(self.config)

        self.ledger = LedgerStore(
            self.storage,
            timestamp_format=self.config.history_timestamp_format,
            max_balance=Decimal(self.config.max_balance),
            snapshot_name=self.config.accounts_snapshot
        )
        self.credentials = CredentialStore(
            self.storage,
            default_users=self.config.default_users,
            scrypt_n=self.config.password_scrypt_n,
            snapshot_name=self.config.users_snapshot
        )

    def open(self) -> 'BankingSystem':
        self.credentials.open()
        self.ledger.open()
        return self

    def close(self) -> None:
        self.ledger.close()
        self.credentials.close()


_banking_system: Optional[BankingSystem] = None


def get_banking_system() -> BankingSystem:
    """Dependency returning the process-wide system, opened on first use"""
    global _banking_system
    if _banking_system is None:
        _banking_system = BankingSystem().open()
    return _banking_system


def set_banking_system(system: Optional[BankingSystem]) -> None:
    global _banking_system
    _banking_system = system


# JWT Security
security = HTTPBearer(auto_error=False)


def create_access_token(username: str, config: TellerConfig) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": username,
        "iat": now,
        "exp": now + timedelta(hours=config.jwt_expiry_hours)
    }
    return jwt.encode(payload, config.jwt_secret, algorithm=config.jwt_algorithm)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    config: TellerConfig = Depends(get_config)
) -> str:
    """Dependency that validates the bearer JWT and returns the username"""
    if not config.auth_enabled:
        return "anonymous"

    if not credentials:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        payload = jwt.decode(credentials.credentials, config.jwt_secret, algorithms=[config.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")

    username = payload.get("sub")
    if not username:
        raise HTTPException(status_code=401, detail="Invalid token")
    return username
