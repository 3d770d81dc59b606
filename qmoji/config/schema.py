"""Configuration schema using Pydantic."""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings


class NapCatConfig(BaseModel):
    """NapCat (OneBot 11) websocket gateway settings."""

    model_config = ConfigDict(extra="ignore")

    ws_url: str = "ws://127.0.0.1:3001"
    token: str = ""
    timeout_seconds: float = Field(default=10.0, gt=0)


class PolicySettings(BaseModel):
    """Permission policy settings."""

    model_config = ConfigDict(extra="ignore")

    path: str = "~/.qmoji/policy.json"
    group_admin_cache_ttl_seconds: float = Field(default=30.0, ge=0)
    group_admin_failure_ttl_seconds: float = Field(default=10.0, ge=0)
    command_name: str = "perm"

    @property
    def policy_path(self) -> Path:
        return Path(self.path).expanduser()


class Config(BaseSettings):
    """Root configuration for qmoji."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, env_prefix="QMOJI_", env_nested_delimiter="__")

    config_version: int = 2
    napcat: NapCatConfig = Field(default_factory=NapCatConfig)
    admins: list[int] = Field(default_factory=list)
    policy: PolicySettings = Field(default_factory=PolicySettings)
    allowlist_path: str = "~/.qmoji/allowlist.json"

    @property
    def allowlist_file(self) -> Path:
        return Path(self.allowlist_path).expanduser()
