from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DATA_DIR = ".reelmark"
DEFAULT_GENERATION_MODEL = "gpt-3.5-turbo"
DEFAULT_YOUTUBE_OEMBED_URL = "https://www.youtube.com/oembed"
DEFAULT_VIMEO_OEMBED_URL = "https://vimeo.com/api/oembed.json"
_DATA_DIR_RELATIVE_DEFAULTS: tuple[tuple[str, Path], ...] = (("log_dir", Path("logs")),)
_PATH_FIELDS: tuple[str, ...] = (
    "data_dir",
    *(field_name for field_name, _ in _DATA_DIR_RELATIVE_DEFAULTS),
)
_BOOLEAN_COERCION_FIELDS: tuple[str, ...] = (
    "telemetry_enabled",
    "seed_library",
)


def _default_in_data_dir(relative_path: Path) -> Path:
    return Path(DEFAULT_DATA_DIR) / relative_path


def _resolve_path(value: str | Path) -> Path:
    return Path(value).expanduser().resolve()


def _parse_bool_with_default(value: Any, *, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        if value == 1:
            return True
        if value == 0:
            return False
        return default
    if not isinstance(value, str):
        return default

    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


def _normalize_optional_text(value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        return None
    normalized = value.strip()
    if normalized:
        return normalized
    return None


class AppSettings(BaseSettings):
    """
    Runtime configuration for the capture backend.

    Every option is read from `REELMARK_*` environment variables (or `.env`).
    Missing generation credentials are not an error: thought processing then
    always takes the deterministic fallback path.
    """

    model_config = SettingsConfigDict(
        env_prefix="REELMARK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Paths and logging.
    data_dir: Path = Field(
        default=Path(DEFAULT_DATA_DIR),
        description="Root runtime directory for local logs.",
    )
    log_dir: Path = Field(
        default=_default_in_data_dir(Path("logs")),
        description="Directory for application and telemetry logs. Defaults to `${REELMARK_DATA_DIR}/logs`.",
    )
    log_level: str = Field(
        default="INFO",
        description="Console log level (DEBUG, INFO, WARNING, ERROR).",
    )
    telemetry_enabled: bool = Field(
        default=True,
        description="Enable lightweight internal telemetry events.",
    )
    telemetry_sink: Literal["none", "log"] = Field(
        default="log",
        description=(
            "Telemetry sink backend. `log` emits structured telemetry locally; "
            "`none` disables sink output."
        ),
    )

    # Text generation.
    openai_api_key: str | None = Field(
        default=None,
        description="API key for the text-generation service. Unset means fallback-only enrichment.",
    )
    openai_base_url: str | None = Field(
        default=None,
        description="Optional override for the text-generation API base URL.",
    )
    generation_model: str = Field(
        default=DEFAULT_GENERATION_MODEL,
        description="Chat model used to turn thoughts into tags and description fragments.",
    )

    # Provider metadata lookup.
    youtube_oembed_url: str = Field(
        default=DEFAULT_YOUTUBE_OEMBED_URL,
        description="YouTube oEmbed endpoint.",
    )
    vimeo_oembed_url: str = Field(
        default=DEFAULT_VIMEO_OEMBED_URL,
        description="Vimeo oEmbed endpoint.",
    )
    metadata_http_timeout_seconds: float | None = Field(
        default=None,
        gt=0,
        description="Timeout for oEmbed lookups. Unset waits indefinitely.",
    )

    # Capture sessions.
    capture_session_idle_seconds: float | None = Field(
        default=3600.0,
        gt=0,
        description="Capture sessions idle for this many seconds are evicted. Blank disables eviction.",
    )

    # Reference library.
    seed_library: bool = Field(
        default=False,
        description="Start the in-memory reference library with the starter references.",
    )

    @field_validator("telemetry_sink", mode="before")
    @classmethod
    def _normalize_telemetry_sink(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("REELMARK_TELEMETRY_SINK must be a string.")
        normalized = value.strip().lower()
        if normalized in {"none", "log"}:
            return normalized
        raise ValueError("REELMARK_TELEMETRY_SINK must be set to: none, log.")

    @field_validator("generation_model", mode="before")
    @classmethod
    def _normalize_generation_model(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("REELMARK_GENERATION_MODEL must be a string.")
        normalized = value.strip()
        if not normalized:
            raise ValueError("REELMARK_GENERATION_MODEL must not be empty.")
        return normalized

    @field_validator("youtube_oembed_url", "vimeo_oembed_url", mode="before")
    @classmethod
    def _normalize_endpoint_url(cls, value: Any, info: ValidationInfo) -> str:
        env_name = f"REELMARK_{(info.field_name or '').upper()}"
        if not isinstance(value, str):
            raise ValueError(f"{env_name} must be a string.")
        normalized = value.strip()
        if not normalized:
            raise ValueError(f"{env_name} must not be empty.")
        return normalized

    @field_validator("metadata_http_timeout_seconds", "capture_session_idle_seconds", mode="before")
    @classmethod
    def _normalize_optional_timeout(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator(*_PATH_FIELDS, mode="before")
    @classmethod
    def _normalize_paths(cls, value: Any) -> Any:
        if value is None:
            return None
        return _resolve_path(value)

    @field_validator(*_BOOLEAN_COERCION_FIELDS, mode="before")
    @classmethod
    def _normalize_booleans(cls, value: Any, info: ValidationInfo) -> bool:
        field_name = info.field_name
        assert field_name is not None
        default_value = cls.model_fields[field_name].default
        assert isinstance(default_value, bool)
        return _parse_bool_with_default(value, default=default_value)

    @field_validator("openai_api_key", "openai_base_url", mode="before")
    @classmethod
    def _normalize_optional_strings(cls, value: Any) -> str | None:
        return _normalize_optional_text(value)


def _apply_path_defaults(settings: AppSettings) -> AppSettings:
    updates: dict[str, Path] = {}
    for field_name, relative_default in _DATA_DIR_RELATIVE_DEFAULTS:
        if field_name in settings.model_fields_set:
            continue
        updates[field_name] = settings.data_dir / relative_default
    if not updates:
        return settings
    return settings.model_copy(update=updates)


def _resolve_path_fields(settings: AppSettings) -> AppSettings:
    resolved_updates = {
        field_name: _resolve_path(getattr(settings, field_name))
        for field_name in _PATH_FIELDS
    }
    return settings.model_copy(update=resolved_updates)


def load_settings() -> AppSettings:
    settings = AppSettings()
    settings = _apply_path_defaults(settings)
    return _resolve_path_fields(settings)
