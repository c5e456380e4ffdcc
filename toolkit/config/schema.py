# ==============================
# Config Schemas (Pydantic)
# ==============================
"""
Pydantic settings models for toolkit/.

Notes:
- No env reads here. No file IO here. Pure types + defaults.
- loader.py builds a single Settings object with precedence merging.

Precedence (implemented in loader.py):
env > .env > secrets/secrets.yaml > configs/*.yaml > defaults
"""

from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_BASE_URL = "https://api.stackone.com"


# ==============================
# Toolset Settings
# ==============================


class ToolsetConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    base_url: str = Field(default=DEFAULT_BASE_URL, description="Remote platform base URL")
    account_id: Optional[str] = Field(default=None, description="Single account id sent as x-account-id")
    account_ids: List[str] = Field(default_factory=list, description="Fetch catalogs for several accounts")
    headers: Dict[str, str] = Field(default_factory=dict, description="Extra headers for every tool")
    catalog_file: Optional[str] = Field(default=None, description="Static YAML/JSON operation catalog")
    strict: bool = Field(default=False, description="Fail instead of warn when no API key is configured")

    @model_validator(mode="after")
    def _exclusive_accounts(self) -> "ToolsetConfig":
        if self.account_id and self.account_ids:
            raise ValueError("Provide only one of account_id or account_ids")
        return self


class AuthConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["basic", "bearer"] = Field(default="basic")
    username: Optional[str] = Field(default=None, description="Basic auth user; defaults to secrets.api_key")
    password: Optional[str] = Field(default=None)
    token: Optional[str] = Field(default=None, description="Bearer token")
    headers: Dict[str, str] = Field(default_factory=dict, description="Auth headers merged beneath explicit ones")


# ==============================
# Discovery / HTTP Settings
# ==============================


class DiscoveryConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    limit: int = Field(default=5, ge=1)
    min_score: float = Field(default=0.3, ge=0.0, le=1.0)
    hybrid_alpha: float = Field(default=1.0, ge=0.0, le=1.0, description="BM25 weight; 1.0 = BM25 only")
    k1: float = Field(default=1.2, gt=0.0)
    b: float = Field(default=0.75, ge=0.0, le=1.0)


class HttpConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    user_agent: str = Field(default="toolkit-python")


# ==============================
# Logging Settings
# ==============================


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    level: str = Field(default="INFO")
    redact: bool = Field(default=True)
    redact_patterns: List[str] = Field(default_factory=list)
    console: bool = Field(default=True)


# ==============================
# Secrets Settings
# ==============================


class SecretsConfig(BaseModel):
    model_config = ConfigDict(extra="allow")

    api_key: Optional[str] = Field(default=None)


# ==============================
# Top-Level Settings
# ==============================


class Settings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    toolset: ToolsetConfig = Field(default_factory=ToolsetConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)
    http: HttpConfig = Field(default_factory=HttpConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    secrets: SecretsConfig = Field(default_factory=SecretsConfig)
