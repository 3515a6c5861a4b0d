"""Configuration management for the document store."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from dataorbit.domain.value_objects import FieldType
from dataorbit.ports.inbound.errors import ConfigurationError

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def _snake_case_keys(data: Any) -> Any:
    """Accept camelCase keys (primaryKey, encryptionKey...) at one level."""
    if not isinstance(data, Mapping):
        return data
    return {
        (_CAMEL_BOUNDARY.sub("_", key).lower() if isinstance(key, str) else key): value
        for key, value in data.items()
    }


class FieldSchema(BaseModel):
    """Type and presence rule for one document field."""

    type: FieldType = Field(description="Required value kind")
    required: bool = Field(default=False, description="Reject documents missing this field")

    @field_validator("type", mode="before")
    @classmethod
    def _parse_type(cls, value: Any) -> FieldType:
        return FieldType.parse(value)


class TableConfig(BaseModel):
    """Per-table configuration."""

    model_config = ConfigDict(populate_by_name=True)

    primary_key: str = Field(default="id", min_length=1, description="Primary key field name")
    unique: list[str] = Field(default_factory=list, description="Unique-constrained fields")
    field_schema: dict[str, FieldSchema] = Field(
        default_factory=dict, alias="schema", description="Field type rules"
    )
    indexes: list[str] = Field(
        default_factory=list, description="Fields indexed at startup besides the primary key"
    )

    @model_validator(mode="before")
    @classmethod
    def _normalize_keys(cls, data: Any) -> Any:
        return _snake_case_keys(data)


class BackupPolicy(BaseModel):
    """Periodic backup policy."""

    interval: float = Field(gt=0, description="Interval between backups in days")


class ObservabilityConfig(BaseModel):
    """Observability configuration."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Log level"
    )
    log_format: Literal["json", "console"] = Field(default="json", description="Log format")
    otel_endpoint: str | None = Field(
        default=None, description="OpenTelemetry collector endpoint"
    )
    otel_service_name: str = Field(default="dataorbit", description="Service name for tracing")
    metrics_port: int | None = Field(
        default=None, ge=1, le=65535, description="Prometheus metrics port"
    )


class StoreConfig(BaseSettings):
    """Main configuration for a document store instance."""

    model_config = SettingsConfigDict(
        env_prefix="DATAORBIT_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    file: Path = Field(description="Encrypted data file path")
    encryption_key: SecretStr = Field(description="Passphrase the AES key is derived from")
    tables: dict[str, TableConfig] = Field(default_factory=dict)
    backups: list[BackupPolicy] = Field(default_factory=list)
    backup_dir: Path | None = Field(
        default=None, description="Backup directory (default: '<file>_backups')"
    )
    connection_timeout: int | None = Field(
        default=None, ge=0, description="Accepted for compatibility; not enforced"
    )
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    @model_validator(mode="before")
    @classmethod
    def _normalize_keys(cls, data: Any) -> Any:
        return _snake_case_keys(data)

    @field_validator("encryption_key")
    @classmethod
    def _key_not_empty(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value():
            raise ValueError("encryption_key must not be empty")
        return value

    @property
    def resolved_backup_dir(self) -> Path:
        """Directory backups are written to."""
        if self.backup_dir is not None:
            return self.backup_dir
        return Path(f"{self.file}_backups")

    def table(self, name: str) -> TableConfig:
        """Configuration for a table, falling back to defaults."""
        return self.tables.get(name) or TableConfig()


def load_config(
    source: StoreConfig | Mapping[str, Any] | None = None,
    **overrides: Any,
) -> StoreConfig:
    """Build a StoreConfig from a mapping, keyword overrides and the environment.

    Args:
        source: An existing StoreConfig (returned as-is when no overrides are
            given) or a mapping in either camelCase or snake_case.
        **overrides: Individual settings that take precedence over ``source``.

    Returns:
        The validated configuration.

    Raises:
        ConfigurationError: If required settings are missing or invalid.
    """
    if isinstance(source, StoreConfig):
        if not overrides:
            return source
        source = source.model_dump(by_alias=True)
        source["encryption_key"] = source["encryption_key"].get_secret_value()

    data = dict(_snake_case_keys(source or {}))
    data.update(_snake_case_keys(overrides))
    try:
        return StoreConfig(**data)
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid store configuration: {e}") from e
