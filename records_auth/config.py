"""
Configuration for the security core.

Values are read from ``RECORDS_AUTH_*`` environment variables or a
``.env`` file, e.g. ``RECORDS_AUTH_SERVICE_SALT``.
"""

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SecuritySettings(BaseSettings):
    """Settings for the security service and its components."""

    model_config = SettingsConfigDict(
        env_prefix="RECORDS_AUTH_",
        env_file=".env",
        extra="ignore",
    )

    # Key derivation
    service_salt: str = Field(default="healthchain_key", min_length=1)
    kdf_iterations: int = Field(default=100_000, ge=1)

    # Access control
    default_ttl_hours: float = Field(default=24, gt=0)

    # Audit log
    default_query_limit: int = Field(default=50, ge=1)
    audit_max_events: Optional[int] = Field(default=None, ge=1)
    default_ip_address: str = "unknown"
    default_user_agent: str = "Unknown"

    # Scoring
    score_history_limit: int = Field(default=100, ge=1)
    score_recent_days: int = Field(default=7, ge=0)
    max_permissions_before_penalty: int = Field(default=10, ge=0)
    permission_penalty: int = Field(default=3, ge=0)
    failed_event_penalty: int = Field(default=2, ge=0)
    high_risk_penalty: int = Field(default=5, ge=0)
    recent_activity_bonus: int = Field(default=5, ge=0)

    # Persistence
    audit_log_key: str = "security_audit_logs"
    permissions_key: str = "access_permissions"
    storage_dir: Optional[Path] = None
