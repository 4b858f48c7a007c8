"""
Configuration Management for TH Control

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Every external endpoint (the JSON document store, the address lookup
service) and every tunable of the synchronizer is visible in one place
and validated at startup.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RemoteStoreSettings(BaseSettings):
    """JSON document store (jsonblob-style API) configuration."""

    model_config = SettingsConfigDict(
        env_prefix="THCONTROL_REMOTE_",
        extra="ignore"
    )

    base_url: str = Field(
        default="https://jsonblob.com/api/jsonBlob",
        description="Collection endpoint; documents live at {base_url}/{id}"
    )
    timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        le=120,
        description="Timeout for a single HTTP request"
    )

    @field_validator('base_url')
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Document URLs are built by appending '/{id}'."""
        v = v.strip()
        if not v:
            raise ValueError("Remote store base URL cannot be empty")
        return v.rstrip("/")


class SyncSettings(BaseSettings):
    """Synchronizer and durable local storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="THCONTROL_SYNC_",
        extra="ignore"
    )

    min_push_interval_seconds: float = Field(
        default=2.0,
        ge=0.0,
        description="Minimum time between two push attempts"
    )
    data_dir: Path = Field(
        default=Path.home() / ".thcontrol",
        description="Directory holding the durable local keys"
    )
    document_id_key: str = Field(
        default="th_control_blob_id",
        description="Local key holding the last known document id"
    )
    state_key: str = Field(
        default="th_control_state",
        description="Local key holding the session mirror"
    )


class AuthSettings(BaseSettings):
    """Static login credentials."""

    model_config = SettingsConfigDict(
        env_prefix="THCONTROL_AUTH_",
        extra="ignore"
    )

    admin_keys: str = Field(
        default="Admin1,Admin2",
        description="Comma-separated list of administrator keys"
    )
    resident_key: str = Field(
        default="VecinoTH",
        description="Shared key for residents"
    )

    @property
    def admin_keys_list(self) -> list[str]:
        """Get admin keys as a list."""
        return [key.strip() for key in self.admin_keys.split(",") if key.strip()]


class AddressLookupSettings(BaseSettings):
    """Public network address lookup used when submitting suggestions."""

    model_config = SettingsConfigDict(
        env_prefix="THCONTROL_IP_LOOKUP_",
        extra="ignore"
    )

    enabled: bool = Field(
        default=True,
        description="Attach the submitter's public address to suggestions"
    )
    url: str = Field(
        default="https://api.ipify.org?format=json",
        description="Endpoint returning {\"ip\": \"...\"}"
    )
    timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        le=30,
    )
    attempts: int = Field(
        default=2,
        ge=1,
        le=5,
        description="Total attempts before giving up"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    admin_whatsapp: str = Field(
        default="1234567890",
        description="Administrator contact number shown to residents"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def remote(self) -> RemoteStoreSettings:
        return RemoteStoreSettings()

    @property
    def sync(self) -> SyncSettings:
        return SyncSettings()

    @property
    def auth(self) -> AuthSettings:
        return AuthSettings()

    @property
    def address_lookup(self) -> AddressLookupSettings:
        return AddressLookupSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid} plus '<name>_error'
    entries describing failures. Useful for startup checks.
    """
    results = {}
    settings = get_settings()

    for name in ("remote", "sync", "auth", "address_lookup", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
