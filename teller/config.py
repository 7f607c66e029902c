"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings
from typing import Dict, Optional


class TellerConfig(BaseSettings):
    """Teller ledger configuration"""

    # Storage configuration
    storage_backend: str = "file"  # file, sqlite or memory
    data_dir: str = "."
    accounts_snapshot: str = "accounts"
    users_snapshot: str = "users"
    reports_dir: str = "transactions"
    sqlite_path: str = "teller.db"

    # Ledger configuration
    history_timestamp_format: str = "%Y-%m-%d %H:%M:%S"
    max_balance: str = "999999999999999.99"  # Decimal as string

    # Credential configuration
    default_users: Dict[str, str] = {"user1": "pass1", "admin": "admin123"}
    password_scrypt_n: int = 16384

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090

    # Security configuration
    auth_enabled: bool = True
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expiry_hours: int = 24

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stderr

    class Config:
        env_prefix = "TELLER_"
        env_file = ".env"
        case_sensitive = False


# Global configuration instance
config = TellerConfig()


def get_config() -> TellerConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> TellerConfig:
    """Reload configuration from environment"""
    global config
    config = TellerConfig()
    return config
