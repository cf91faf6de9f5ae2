"""Application settings with Pydantic Settings validation.

Secrets (tokens, signing secret) are loaded from the environment or .env file.
Non-sensitive configuration is loaded from config/*.yaml files, merged, and
validated against JSON schemas in config/schemas/.
"""

import json
from pathlib import Path
from typing import Any, Final, cast

import yaml
from jsonschema import ValidationError as JSONSchemaValidationError
from jsonschema import validate
from pydantic import Field, SecretStr, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from peer_rating.config.logging_config import get_logger
from peer_rating.domain.rating_constants import (
    DEFAULT_RATE_LIMIT_MAX_REQUESTS,
    DEFAULT_RATE_LIMIT_WINDOW_SECONDS,
)

CONFIG_DIR_DEFAULT: Final[str] = "config"
PORT_DEFAULT: Final[int] = 3000
METRICS_PORT_DEFAULT: Final[int] = 9000
SLACK_MAX_RETRIES_DEFAULT: Final[int] = 3
ALLOWED_LOG_LEVELS: Final[frozenset[str]] = frozenset(
    {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}
)

logger = cast(Any, get_logger(__name__))


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Dictionary to merge into base (takes precedence)

    Returns:
        Merged dictionary
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_schema(schema_name: str, config_dir: Path | None = None) -> dict[str, Any]:
    """Load JSON Schema from config/schemas/.

    Args:
        schema_name: Schema name without extension (e.g., "main")
        config_dir: Config directory (defaults to ./config)

    Returns:
        JSON Schema dictionary or empty dict if not found
    """
    base_dir = config_dir or Path(CONFIG_DIR_DEFAULT)
    schema_path = base_dir / "schemas" / f"{schema_name}.schema.json"
    if not schema_path.exists():
        return {}

    try:
        with open(schema_path, encoding="utf-8") as f:
            return cast(dict[str, Any], json.load(f))
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(
            "config_schema_load_failed",
            schema=schema_name,
            error=str(e),
        )
        return {}


def validate_config_section(
    config: dict[str, Any],
    schema_name: str,
    file_path: str = "",
    config_dir: Path | None = None,
) -> None:
    """Validate config section against JSON Schema.

    Args:
        config: Configuration dictionary to validate
        schema_name: Name of schema to validate against
        file_path: Optional file path for error messages
        config_dir: Config directory holding schemas/

    Raises:
        ValueError: If validation fails
    """
    schema = load_schema(schema_name, config_dir)
    if not schema:
        return

    try:
        validate(instance=config, schema=schema)
        logger.debug("config_validation_succeeded", schema=schema_name)
    except JSONSchemaValidationError as e:
        error_msg = f"Config validation failed for {schema_name}"
        if file_path:
            error_msg += f" (file: {file_path})"
        error_msg += f": {e.message}"
        raise ValueError(error_msg) from e


def load_all_configs(config_dir: Path | None = None) -> dict[str, Any]:
    """Load and merge all YAML configs from the config directory.

    Loading order (later overrides earlier):
    1. config/main.yaml
    2. All other config/*.yaml files (sorted alphabetically)

    Each file is validated against its JSON Schema if one exists.

    Returns:
        Merged configuration dictionary

    Raises:
        ValueError: If a file fails schema validation
    """
    base_dir = config_dir or Path(CONFIG_DIR_DEFAULT)
    if not base_dir.is_dir():
        return {}

    main_path = base_dir / "main.yaml"
    yaml_files = sorted(f for f in base_dir.glob("*.yaml") if f.name != "main.yaml")
    if main_path.exists():
        yaml_files.insert(0, main_path)

    merged_config: dict[str, Any] = {}
    for yaml_file in yaml_files:
        try:
            with open(yaml_file, encoding="utf-8") as f:
                file_config = yaml.safe_load(f) or {}
        except (yaml.YAMLError, OSError) as e:
            logger.warning(
                "config_file_load_failed",
                path=str(yaml_file),
                error=str(e),
            )
            continue

        try:
            validate_config_section(
                file_config, yaml_file.stem, str(yaml_file), base_dir
            )
        except ValueError as e:
            logger.error(
                "config_validation_failed",
                path=str(yaml_file),
                schema=yaml_file.stem,
                error=str(e),
            )
            raise

        merged_config = deep_merge(merged_config, file_config)
        logger.debug("config_file_loaded", path=str(yaml_file), schema=yaml_file.stem)

    logger.info("config_load_complete", file_count=len(yaml_files))
    return merged_config


class Settings(BaseSettings):
    """Application settings.

    Secrets are loaded from the environment or .env file.
    Non-sensitive config is loaded from config/*.yaml with fallback to defaults.
    """

    model_config = SettingsConfigDict(
        env_file=".env" if Path(".env").exists() else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === SECRETS (from env / .env) ===

    slack_bot_token: SecretStr = Field(
        ..., description="Slack Bot User OAuth Token (from .env)"
    )
    slack_signing_secret: SecretStr | None = Field(
        default=None,
        description="Slack signing secret, required when serving HTTP events",
    )
    slack_app_token: SecretStr | None = Field(
        default=None,
        description="App-level token; when set the bot runs in Socket Mode",
    )

    # === NON-SENSITIVE CONFIG (from config/*.yaml or defaults) ===

    rate_limit_max_requests: int = Field(
        default=DEFAULT_RATE_LIMIT_MAX_REQUESTS,
        ge=1,
        description="Rating requests allowed per requester per window",
    )
    rate_limit_window_seconds: int = Field(
        default=DEFAULT_RATE_LIMIT_WINDOW_SECONDS,
        ge=1,
        description="Admission sliding window length in seconds",
    )
    port: int = Field(default=PORT_DEFAULT, description="HTTP port for Slack events")
    announcement_timezone: str = Field(
        default="UTC", description="Timezone for rating announcement dates"
    )
    slack_max_retries: int = Field(
        default=SLACK_MAX_RETRIES_DEFAULT,
        ge=1,
        description="Maximum attempts for transient Slack API errors",
    )

    log_level: str = Field(default="INFO", description="Logging level")
    json_logs: bool = Field(default=False, description="Emit JSON logs")

    metrics_enabled: bool = Field(
        default=False, description="Expose Prometheus metrics over HTTP"
    )
    metrics_port: int = Field(
        default=METRICS_PORT_DEFAULT, description="Prometheus exporter port"
    )

    @field_validator("slack_bot_token", mode="before")
    @classmethod
    def _ensure_secret(
        cls, value: SecretStr | str | None, info: ValidationInfo
    ) -> SecretStr:
        if value is None:
            raise ValueError(f"{info.field_name} must be provided")

        if isinstance(value, SecretStr):
            secret_value = value.get_secret_value()
        else:
            secret_value = str(value)
        if not secret_value.strip():
            raise ValueError(f"{info.field_name} must not be empty")
        return value if isinstance(value, SecretStr) else SecretStr(secret_value)

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = value.upper()
        if normalized not in ALLOWED_LOG_LEVELS:
            raise ValueError(
                f"Invalid log_level={value!r}. Allowed: {sorted(ALLOWED_LOG_LEVELS)}"
            )
        return normalized

    def __init__(self, **data: Any):
        """Initialize settings with auto-loaded configs from all YAML files."""
        config = load_all_configs()
        super().__init__(**data)
        self._apply_yaml_defaults(config)

    def _apply_yaml_defaults(self, config: dict[str, Any]) -> None:
        """Apply YAML-sourced defaults without overriding env-provided values."""
        fields_from_env = set(self.model_fields_set)

        def _assign(field_name: str, value: Any) -> None:
            if value is None:
                return
            if field_name in fields_from_env:
                return
            object.__setattr__(self, field_name, value)
            self.model_fields_set.add(field_name)

        rate_limit_config = config.get("rate_limit") or {}
        _assign("rate_limit_max_requests", rate_limit_config.get("max_requests"))
        _assign("rate_limit_window_seconds", rate_limit_config.get("window_seconds"))

        slack_config = config.get("slack") or {}
        _assign("port", slack_config.get("port"))
        _assign("slack_max_retries", slack_config.get("max_retries"))

        announcement_config = config.get("announcement") or {}
        _assign("announcement_timezone", announcement_config.get("timezone"))

        logging_config = config.get("logging") or {}
        level = logging_config.get("level")
        _assign("log_level", level.upper() if isinstance(level, str) else None)
        _assign("json_logs", logging_config.get("json"))

        metrics_config = config.get("metrics") or {}
        _assign("metrics_enabled", metrics_config.get("enabled"))
        _assign("metrics_port", metrics_config.get("port"))

    @property
    def socket_mode(self) -> bool:
        return self.slack_app_token is not None


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create global settings instance.

    Returns:
        Settings instance
    """
    global _settings
    if _settings is None:
        _settings = Settings()  # type: ignore[call-arg]
    return _settings
