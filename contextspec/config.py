"""
Configuration loading and validation for contextspec.

Supports YAML configuration files and the pytest ``--contextspec-config``
option. The active configuration is process-wide and read lazily by the
orchestrator and the naming service.
"""

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from contextspec.exceptions import ConfigurationError


class ContextSpecConfig(BaseModel):
    """Settings for exception translation, naming and logging."""

    model_config = {"frozen": True, "extra": "forbid"}

    assertion_prefixes: list[str] = Field(
        default_factory=lambda: ["Expected"],
        description=(
            "Assertion message prefixes that mark a classifiable failure; "
            "an empty list disables prerequisite failure translation"
        ),
    )
    base_suffix: str = Field(
        default="_Base",
        description="Fixture name suffix excluded from context descriptions",
    )
    category_template: str = Field(
        default="Specifications for {subject}",
        description="Template for category labels; must contain {subject}",
    )
    log_level: str = Field(default="WARNING", description="Log level of the contextspec logger")
    log_format: Literal["console", "json"] = Field(default="console", description="Log format")

    @field_validator("category_template")
    @classmethod
    def template_has_subject(cls, v: str) -> str:
        """Validate that the template references the subject."""
        if "{subject}" not in v:
            raise ValueError("category_template must contain '{subject}'")
        return v

    @field_validator("log_level")
    @classmethod
    def level_is_known(cls, v: str) -> str:
        """Validate and normalize the log level name."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


class ConfigLoader:
    """Load and validate contextspec configurations."""

    @classmethod
    def from_yaml(cls, path: str | Path) -> ContextSpecConfig:
        """
        Load configuration from a YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            ContextSpecConfig loaded from file

        Raises:
            FileNotFoundError: If the file does not exist
            ConfigurationError: If the content is not a valid configuration
        """
        path = Path(path)
        if not path.exists():
            msg = f"Configuration file not found: {path}"
            raise FileNotFoundError(msg)

        with path.open() as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

        return cls.from_dict(data or {})

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ContextSpecConfig:
        """
        Create configuration from a dictionary.

        Args:
            data: Configuration dictionary, optionally nested under "contextspec"

        Returns:
            ContextSpecConfig from dictionary
        """
        if not isinstance(data, dict):
            raise ConfigurationError("Configuration must be a mapping")
        section = data.get("contextspec", data)
        try:
            return ContextSpecConfig.model_validate(section)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid contextspec configuration: {e}") from e

    @classmethod
    def generate_sample_config(cls) -> str:
        """
        Generate a sample YAML configuration file.

        Returns:
            YAML string for sample configuration
        """
        sample = {"contextspec": ContextSpecConfig().model_dump(mode="json")}
        return yaml.dump(sample, default_flow_style=False, sort_keys=False)


_active_config = ContextSpecConfig()


def get_config() -> ContextSpecConfig:
    """Return the active configuration."""
    return _active_config


def set_config(config: ContextSpecConfig) -> ContextSpecConfig:
    """Replace the active configuration, returning the previous one."""
    global _active_config
    previous = _active_config
    _active_config = config
    return previous
