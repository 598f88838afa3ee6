"""Configuration loading utilities for dg-awskms."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, Literal, Optional

import yaml
from platformdirs import PlatformDirs
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .client import AwsKmsClient, new_client
from .options import (
    ClientOption,
    EncryptionContextName,
    V2ClientOption,
    with_api_timeout,
    with_credential_path,
    with_encryption_context_name,
    with_kms_options,
    with_load_options,
    with_shared_credentials_file,
    with_v2_kms_options,
)
from .uri import AWS_PREFIX, has_aws_prefix

_CONFIG_ENV = "DG_AWSKMS_CONFIG"
_CONFIG_NAME = "awskms.yaml"


class ClientConfig(BaseModel):
    key_uri_prefix: str = Field(description="Key URIs starting with this prefix are served")
    protocol: Literal["v1", "v2"] = Field(default="v1", description="Handle construction strategy")
    credential_path: Optional[Path] = Field(default=None, description="CSV or INI credential file")
    encryption_context_name: EncryptionContextName = EncryptionContextName.ASSOCIATED_DATA
    api_timeout: Optional[float] = Field(default=None, ge=0, description="v2 request budget in seconds")
    region_name: Optional[str] = None
    profile_name: Optional[str] = None
    endpoint_url: Optional[str] = None

    @field_validator("key_uri_prefix")
    @classmethod
    def _validate_prefix(cls, value: str) -> str:
        if not has_aws_prefix(value):
            raise ValueError(f"key_uri_prefix must start with {AWS_PREFIX!r}")
        return value

    @model_validator(mode="after")
    def _v2_fields_need_v2(self) -> "ClientConfig":
        if self.protocol == "v1":
            v2_only = [
                name
                for name in ("api_timeout", "region_name", "profile_name", "endpoint_url")
                if getattr(self, name) is not None
            ]
            if v2_only:
                raise ValueError(f"{', '.join(v2_only)} require protocol 'v2'")
        return self


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO", description="Logging verbosity level")

    def normalized_level(self) -> str:
        return self.level.upper()


class AppConfig(BaseModel):
    client: Optional[ClientConfig] = None
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


DEFAULT_CONFIG = AppConfig()


def user_config_dir() -> Path:
    return Path(PlatformDirs(appname="dg-awskms", appauthor=None).user_config_path)


def config_search_paths(explicit: Optional[Path] = None) -> Iterable[Path]:
    if explicit:
        yield explicit
    env_path = os.getenv(_CONFIG_ENV)
    if env_path:
        yield Path(env_path).expanduser()
    yield Path.cwd() / ".dg" / _CONFIG_NAME
    yield user_config_dir() / _CONFIG_NAME


def load_config(path: Optional[Path] = None) -> AppConfig:
    if path is not None and not path.is_file():
        raise ValueError(f"Configuration file not found: {path}")
    for candidate in config_search_paths(path):
        if candidate.is_file():
            with candidate.open("r", encoding="utf-8") as handle:
                data = yaml.safe_load(handle) or {}
            try:
                return AppConfig.model_validate(data)
            except ValidationError as exc:
                raise ValueError(f"Invalid configuration in {candidate}: {exc}") from exc
    return DEFAULT_CONFIG.model_copy(deep=True)


def client_options(config: ClientConfig) -> list[ClientOption]:
    options = [with_encryption_context_name(config.encryption_context_name)]
    if config.protocol == "v1":
        if config.credential_path is not None:
            options.append(with_credential_path(config.credential_path))
        return options

    v2_options: list[V2ClientOption] = []
    if config.api_timeout is not None:
        v2_options.append(with_api_timeout(config.api_timeout))
    load = {
        key: value
        for key, value in (("region_name", config.region_name), ("profile_name", config.profile_name))
        if value is not None
    }
    if load:
        v2_options.append(with_load_options(**load))
    if config.endpoint_url is not None:
        v2_options.append(with_kms_options(endpoint_url=config.endpoint_url))
    if config.credential_path is not None:
        v2_options.append(with_shared_credentials_file(config.credential_path))
    options.append(with_v2_kms_options(*v2_options))
    return options


def build_client(config: ClientConfig) -> AwsKmsClient:
    return new_client(config.key_uri_prefix, *client_options(config))


__all__ = [
    "AppConfig",
    "ClientConfig",
    "DEFAULT_CONFIG",
    "LoggingConfig",
    "build_client",
    "client_options",
    "config_search_paths",
    "load_config",
]
