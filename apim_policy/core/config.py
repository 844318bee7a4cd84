"""Service configuration, read from environment variables.

Set ``ENV_FILE`` to load a local env file as well (development only).
Variable names are the field names upper-cased: ``COMPILER_MODE``,
``COMPILER_REMOTE_URL``, ``METRICS_TOKEN`` and so on.
"""

import os
from enum import Enum

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from apim_policy.domain.enums import PolicyScope


class AppEnvironment(str, Enum):
    LOCAL = "local"
    TEST = "test"
    PROD = "prod"


class CompilerMode(str, Enum):
    """
    Which compiler get_policy_compiler() hands out.

    AUTO prefers the in-process compiler and uses the remote HTTP surface
    only when the in-process one cannot be imported.
    """

    LOCAL = "local"
    REMOTE = "remote"
    AUTO = "auto"


def _parse_enum(enum_class: type[Enum], field_name: str, value: object) -> Enum:
    if isinstance(value, enum_class):
        return value
    try:
        return enum_class(str(value).strip().lower())
    except ValueError:
        allowed = [member.value for member in enum_class]
        raise ValueError(f"{field_name} must be one of {allowed}, got '{value}'") from None


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=os.getenv("ENV_FILE") or None, env_prefix="", extra="ignore"
    )

    app_env: AppEnvironment = AppEnvironment.LOCAL
    app_name: str = "apim-policy-compiler"
    app_log_level: str = "INFO"

    observability_enabled: bool = True
    observability_structured_logs: bool = True
    observability_request_id_header: str = "X-Request-ID"
    # /metrics answers 500 until this is set
    metrics_token: str | None = None

    max_request_size_mb: int = 1

    compiler_mode: CompilerMode = CompilerMode.AUTO
    compiler_remote_url: str | None = None
    compiler_remote_timeout_seconds: float = Field(default=10.0, gt=0)

    # Policy XML has no scope marker of its own
    default_parsed_scope: PolicyScope = PolicyScope.API

    @field_validator("app_env", mode="before")
    @classmethod
    def parse_app_env(cls, v: object) -> AppEnvironment:
        return _parse_enum(AppEnvironment, "app_env", v)

    @field_validator("compiler_mode", mode="before")
    @classmethod
    def parse_compiler_mode(cls, v: object) -> CompilerMode:
        return _parse_enum(CompilerMode, "compiler_mode", v)

    @field_validator("compiler_remote_url")
    @classmethod
    def normalise_remote_url(cls, v: str | None) -> str | None:
        """Blank means unset; trailing slashes are dropped."""
        if v is None or not v.strip():
            return None
        return v.strip().rstrip("/")

    @model_validator(mode="after")
    def require_url_for_remote_mode(self) -> "Settings":
        if self.compiler_mode == CompilerMode.REMOTE and not self.compiler_remote_url:
            raise ValueError("COMPILER_REMOTE_URL must be set when COMPILER_MODE=remote")
        return self


settings = Settings()
