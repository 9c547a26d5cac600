# src/cwlog/core/config.py
"""Configuration schema and loading for cwlog.

Settings come from three layers, highest precedence first:
1. Environment variables (CWLOG_*)
2. An optional YAML settings file
3. Defaults from the Pydantic schema

The CLI layers its own flags on top of whatever load_settings() returns.
"""

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from cwlog.writer.events import (
    EVENT_OVERHEAD_BYTES,
    MAX_BATCH_BYTES,
    MAX_BATCH_EVENTS,
    EmptyLineMode,
)


class WriterSettings(BaseModel):
    """Top-level cwlog configuration.

    Validated and frozen after construction. Batch limits default to the
    CloudWatch Logs PutLogEvents quotas; lower them for other backends or
    for testing.
    """

    model_config = {"frozen": True}

    # Destination
    log_group: str = Field(min_length=1, max_length=512, description="Log group receiving the events")
    log_stream: str = Field(min_length=1, max_length=512, description="Log stream receiving the events")
    region: str | None = Field(default=None, description="AWS region (falls back to the SDK default chain)")
    profile: str | None = Field(default=None, description="AWS shared-credentials profile")
    create_destination: bool = Field(
        default=True,
        description="Create the log group/stream when PutLogEvents reports it missing",
    )

    # Flushing and batching
    flush_interval_seconds: float = Field(default=2.0, gt=0, description="Periodic flush interval")
    max_batch_bytes: int = Field(
        default=MAX_BATCH_BYTES,
        gt=EVENT_OVERHEAD_BYTES,
        description="Maximum batch size in bytes, counting 26 bytes of overhead per event",
    )
    max_batch_events: int = Field(default=MAX_BATCH_EVENTS, gt=0, description="Maximum events per batch")

    # Retry
    max_retries: int = Field(default=5, gt=0, description="Counted delivery attempts per batch")
    backoff_unit_seconds: float = Field(
        default=0.1,
        ge=0,
        description="Linear backoff unit; the n-th retry sleeps n units",
    )

    # Input handling
    empty_lines: EmptyLineMode = Field(default=EmptyLineMode.DROP, description="What to do with blank input lines")
    empty_line_placeholder: str = Field(
        default=" ",
        min_length=1,
        description="Message sent for blank lines when empty_lines is 'placeholder'",
    )

    @field_validator("log_group", "log_stream", "region", "profile", mode="before")
    @classmethod
    def coerce_names_to_str(cls, value: Any) -> Any:
        """Accept names that YAML or environment parsing turned into numbers."""
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @model_validator(mode="after")
    def validate_profile_region(self) -> "WriterSettings":
        """Reject whitespace-only identifiers that boto3 would accept silently."""
        for name in ("region", "profile"):
            value = getattr(self, name)
            if value is not None and not value.strip():
                raise ValueError(f"{name} must not be blank")
        return self


def load_settings(config_path: Path | None = None, **overrides: Any) -> WriterSettings:
    """Load settings from an optional YAML file plus CWLOG_* environment variables.

    Uses Dynaconf for multi-source loading. Keyword overrides (typically
    CLI flags) win over everything else; overrides whose value is None are
    ignored so unset flags do not mask file or environment values.

    Args:
        config_path: Optional path to a YAML settings file
        **overrides: Explicit setting values

    Returns:
        Validated WriterSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config_path is given but doesn't exist
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if config_path is not None and not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="CWLOG",
        settings_files=[str(config_path)] if config_path is not None else [],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    # Dynaconf returns uppercase keys; Pydantic fields are lowercase
    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k.lower(): v for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}
    raw_config.update({k: v for k, v in overrides.items() if v is not None})

    return WriterSettings(**raw_config)
