"""
Name: Application Configuration (Settings)

Responsibilities:
  - Centralized, typed configuration using pydantic-settings
  - Validate environment variables at startup
  - Provide defaults for the authorization and audit core

Collaborators:
  - container.py: reads TTLs, timeouts and retention for component wiring
  - api/main.py: reads pool settings at startup
  - worker/scheduler.py: reads job cadences

Constraints:
  - Lives in API/infrastructure layer, NOT in domain/application
  - No business logic — pure configuration

Notes:
  - Uses pydantic-settings for env parsing and validation
  - Singleton via lru_cache for performance
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        database_url: PostgreSQL connection string
        app_env: Application environment (development/production)
        redis_url: Redis connection string for RQ jobs (optional)
        permission_cache_ttl_seconds: Role grants cache TTL (default: 30)
        permission_catalog_timeout_ms: Max wait for the catalog store (default: 2000)
        audit_retention_years: Retention horizon before archival (default: 7)
        audit_verify_recent_limit: Entries checked by the integrity job (default: 1000)
        audit_verification_interval_seconds: Integrity job cadence (default: 6h)
        audit_archival_interval_seconds: Archival job cadence (default: 24h)
        audit_archive_exempt_actions: Comma-separated actions never archived
        audit_archive_exempt_entity_types: Comma-separated entity types never archived
    """

    # Required (no defaults)
    database_url: str

    # Environment
    app_env: str = "development"

    # Redis (RQ jobs)
    redis_url: str = ""
    audit_queue_name: str = "audit"

    # Database - Connection Pool
    db_pool_min_size: int = 2
    db_pool_max_size: int = 10
    db_statement_timeout_ms: int = 30000  # 30 seconds

    # Authorization
    permission_cache_ttl_seconds: float = 30.0
    permission_catalog_timeout_ms: int = 2000

    # Audit trail
    audit_retention_years: int = 7
    audit_verify_recent_limit: int = 1000
    audit_verification_interval_seconds: int = 6 * 60 * 60
    audit_archival_interval_seconds: int = 24 * 60 * 60
    audit_archive_exempt_actions: str = "gdpr_account_deletion,security_breach"
    audit_archive_exempt_entity_types: str = "USER_DELETE,SECURITY_INCIDENT"

    @field_validator("permission_cache_ttl_seconds")
    @classmethod
    def cache_ttl_must_be_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("permission_cache_ttl_seconds must be >= 0")
        return v

    @field_validator("permission_catalog_timeout_ms")
    @classmethod
    def catalog_timeout_must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("permission_catalog_timeout_ms must be greater than 0")
        return v

    @field_validator("audit_retention_years")
    @classmethod
    def retention_must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("audit_retention_years must be greater than 0")
        return v

    @field_validator("audit_verify_recent_limit")
    @classmethod
    def verify_limit_must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("audit_verify_recent_limit must be greater than 0")
        return v

    def get_archive_exempt_actions(self) -> frozenset[str]:
        """Parse comma-separated exempt actions into a set."""
        return _split_csv(self.audit_archive_exempt_actions)

    def get_archive_exempt_entity_types(self) -> frozenset[str]:
        """Parse comma-separated exempt entity types into a set."""
        return _split_csv(self.audit_archive_exempt_entity_types)

    def is_production(self) -> bool:
        return self.app_env.strip().lower() == "production"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore unknown env vars
    )


def _split_csv(raw: str) -> frozenset[str]:
    return frozenset(item.strip() for item in (raw or "").split(",") if item.strip())


@lru_cache
def get_settings() -> Settings:
    """
    Get singleton Settings instance.

    Raises:
        ValidationError: If required env vars are missing or invalid
    """
    return Settings()
