"""Configuration model and loaders for markcast.

Responsibilities:
- Define runtime configuration as a typed dataclass.
- Resolve values with deterministic precedence: YAML file > environment > defaults.
  (CLI options are applied on top by the command layer.)
- Validate values before any store or filesystem access.

Key types:
- `MarkcastConfig`: normalized settings for one command invocation.
- `ConfigLoader`: static construction helpers for `MarkcastConfig`.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
import os
from pathlib import Path
from typing import Any, Mapping

import yaml

from .parsing import normalize_optional_string, parse_non_negative_float


_DEFAULT_SILENCE_SECONDS = 1.3
_DEFAULT_TTS_MODEL = "gpt-4o-mini-tts"
_DEFAULT_TTS_VOICE = "alloy"
_DEFAULT_INTRO_TEXT = "Welcome to markcast. Here are the bookmarks picked for this episode."
_DEFAULT_OUTRO_TEXT = "That is all for this episode. Thank you for listening."
_SUPPORTED_OUTPUT_FORMATS = frozenset({"mp3", "m4a", "wav"})


@dataclass(frozen=True, slots=True)
class MarkcastConfig:
    """Runtime configuration for one command invocation.

    Attributes:
        database_path: SQLite file backing the segment, playlist, and ledger stores.
        audio_output_dir: Directory receiving merged outputs.
        silence_seconds: Gap inserted between consecutive inputs.
        output_format: Merged output extension (`mp3`, `m4a`, `wav`).
        intro_path: Cached fixed intro clip.
        outro_path: Cached fixed outro clip.
        intro_text: Text synthesized into the intro clip.
        outro_text: Text synthesized into the outro clip.
        ffmpeg_binary: ffmpeg executable name or path.
        ffprobe_binary: ffprobe executable name or path.
        sample_rate: Sample rate all inputs are normalized to before joining.
        tts_model: Speech model for intro/outro synthesis.
        tts_voice: Speech voice for intro/outro synthesis.
        api_key: Speech provider API key, never persisted.
        lock_stale_seconds: Age after which a held writer lock may be taken over.
    """

    database_path: Path = Path("data/markcast.db")
    audio_output_dir: Path = Path("data/audio")
    silence_seconds: float = _DEFAULT_SILENCE_SECONDS
    output_format: str = "mp3"
    intro_path: Path = Path("data/assets/intro.mp3")
    outro_path: Path = Path("data/assets/outro.mp3")
    intro_text: str = _DEFAULT_INTRO_TEXT
    outro_text: str = _DEFAULT_OUTRO_TEXT
    ffmpeg_binary: str = "ffmpeg"
    ffprobe_binary: str = "ffprobe"
    sample_rate: int = 24000
    tts_model: str = _DEFAULT_TTS_MODEL
    tts_voice: str = _DEFAULT_TTS_VOICE
    api_key: str | None = None
    lock_stale_seconds: float = 3600.0

    def validate(self) -> None:
        """Validate configuration values.

        Raises:
            ValueError: On negative silence, unsupported format, or non-positive limits.
        """

        if self.silence_seconds < 0:
            raise ValueError(
                f"`silence_seconds` must be non-negative, got {self.silence_seconds}."
            )
        if self.output_format not in _SUPPORTED_OUTPUT_FORMATS:
            supported = ", ".join(sorted(_SUPPORTED_OUTPUT_FORMATS))
            raise ValueError(
                f"Unsupported `output_format` `{self.output_format}`. Supported: {supported}."
            )
        if self.sample_rate <= 0:
            raise ValueError("`sample_rate` must be a positive integer.")
        if self.lock_stale_seconds <= 0:
            raise ValueError("`lock_stale_seconds` must be positive.")
        for field_name in ("ffmpeg_binary", "ffprobe_binary", "tts_model", "tts_voice"):
            if normalize_optional_string(getattr(self, field_name)) is None:
                raise ValueError(f"`{field_name}` must be a non-empty string.")

    def with_overrides(self, **overrides: Any) -> "MarkcastConfig":
        """Return a validated copy with non-`None` overrides applied."""

        applied = {key: value for key, value in overrides.items() if value is not None}
        updated = replace(self, **applied)
        updated.validate()
        return updated


class ConfigLoader:
    """Factory methods for creating `MarkcastConfig` from external sources."""

    _PATH_KEYS = frozenset({"database_path", "audio_output_dir", "intro_path", "outro_path"})
    _STRING_KEYS = frozenset(
        {
            "output_format",
            "intro_text",
            "outro_text",
            "ffmpeg_binary",
            "ffprobe_binary",
            "tts_model",
            "tts_voice",
            "api_key",
        }
    )
    _ENV_KEYS = {
        "database_path": "MARKCAST_DATABASE_PATH",
        "audio_output_dir": "MARKCAST_AUDIO_OUTPUT_DIR",
        "silence_seconds": "MARKCAST_SILENCE_SECONDS",
        "output_format": "MARKCAST_OUTPUT_FORMAT",
        "intro_path": "MARKCAST_INTRO_PATH",
        "outro_path": "MARKCAST_OUTRO_PATH",
        "intro_text": "MARKCAST_INTRO_TEXT",
        "outro_text": "MARKCAST_OUTRO_TEXT",
        "ffmpeg_binary": "MARKCAST_FFMPEG",
        "ffprobe_binary": "MARKCAST_FFPROBE",
        "sample_rate": "MARKCAST_SAMPLE_RATE",
        "tts_model": "MARKCAST_TTS_MODEL",
        "tts_voice": "MARKCAST_TTS_VOICE",
        "api_key": "OPENAI_API_KEY",
        "lock_stale_seconds": "MARKCAST_LOCK_STALE_SECONDS",
    }

    @staticmethod
    def load(config_path: Path | None = None, env: Mapping[str, str] | None = None) -> MarkcastConfig:
        """Resolve config from defaults, environment, then an optional YAML file."""

        config = ConfigLoader.from_env(env)
        if config_path is None:
            return config
        payload = ConfigLoader._read_yaml(config_path)
        values = ConfigLoader._values_from_mapping(payload, source_label=f"YAML `{config_path}`")
        updated = replace(config, **values)
        updated.validate()
        return updated

    @staticmethod
    def from_yaml(path: Path) -> MarkcastConfig:
        """Create a validated config from a YAML file over built-in defaults."""

        payload = ConfigLoader._read_yaml(path)
        values = ConfigLoader._values_from_mapping(payload, source_label=f"YAML `{path}`")
        config = MarkcastConfig(**values)
        config.validate()
        return config

    @staticmethod
    def from_env(env: Mapping[str, str] | None = None) -> MarkcastConfig:
        """Create a validated config from environment variables over defaults."""

        env_map: Mapping[str, str] = os.environ if env is None else env
        payload: dict[str, Any] = {}
        for key, env_key in ConfigLoader._ENV_KEYS.items():
            value = normalize_optional_string(env_map.get(env_key))
            if value is not None:
                payload[key] = value
        values = ConfigLoader._values_from_mapping(payload, source_label="Environment")
        config = MarkcastConfig(**values)
        config.validate()
        return config

    @staticmethod
    def _read_yaml(path: Path) -> Mapping[str, Any]:
        """Parse YAML text and enforce a mapping root payload."""

        payload = yaml.safe_load(path.read_text(encoding="utf-8"))
        if payload is None:
            return {}
        if not isinstance(payload, Mapping):
            raise ValueError(f"YAML config `{path}` must contain a top-level mapping/object.")
        return payload

    @staticmethod
    def _values_from_mapping(payload: Mapping[str, Any], source_label: str) -> dict[str, Any]:
        """Validate keys and coerce a raw mapping into typed dataclass values."""

        supported = {item.name for item in fields(MarkcastConfig)}
        unknown = sorted(str(key) for key in payload if key not in supported)
        if unknown:
            raise ValueError(f"{source_label} includes unsupported key(s): {', '.join(unknown)}.")

        values: dict[str, Any] = {}
        for key, raw_value in payload.items():
            if key in ConfigLoader._PATH_KEYS:
                text = normalize_optional_string(raw_value)
                if text is None:
                    raise ValueError(f"{source_label} requires non-empty `{key}`.")
                values[key] = Path(text)
            elif key in ConfigLoader._STRING_KEYS:
                text = normalize_optional_string(raw_value)
                if text is not None:
                    values[key] = text.lower() if key == "output_format" else text
            elif key == "sample_rate":
                values[key] = ConfigLoader._positive_int(raw_value, key, source_label)
            else:
                try:
                    values[key] = parse_non_negative_float(raw_value, key)
                except ValueError as exc:
                    raise ValueError(f"{source_label}: {exc}") from exc
        return values

    @staticmethod
    def _positive_int(raw_value: Any, key: str, source_label: str) -> int:
        if isinstance(raw_value, bool):
            raise ValueError(f"{source_label} field `{key}` must be a positive integer.")
        try:
            parsed = int(str(raw_value).strip())
        except ValueError as exc:
            raise ValueError(f"{source_label} field `{key}` must be a positive integer.") from exc
        if parsed <= 0:
            raise ValueError(f"{source_label} field `{key}` must be a positive integer.")
        return parsed
