"""Player configuration loaded from DECKPLAYER_* environment variables."""

import os
from typing import Mapping, Optional
from pydantic import BaseModel, Field, ValidationError

from .core.errors import ConfigError
from .core.slides import TransitionKind

ENV_PREFIX = "DECKPLAYER_"

DEFAULT_PROGRESS_TICK_MS = 100
DEFAULT_NARRATION_SETTLE_MS = 300


class PlayerSettings(BaseModel):
    """Tunables for the playback engine and its side channels."""
    progress_tick_ms: int = Field(default=DEFAULT_PROGRESS_TICK_MS, gt=0)
    narration_settle_ms: int = Field(default=DEFAULT_NARRATION_SETTLE_MS, ge=0)
    narration_enabled: bool = True
    tts_url: Optional[str] = None
    tts_voice: str = "default"
    analytics_url: Optional[str] = None
    instance_id: Optional[str] = None
    pinned_transitions: dict[str, TransitionKind] = Field(default_factory=dict)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "PlayerSettings":
        env = os.environ if environ is None else environ

        def get(name: str) -> Optional[str]:
            value = env.get(ENV_PREFIX + name)
            return value if value not in (None, "") else None

        raw: dict = {}
        for name, field in [
            ("PROGRESS_TICK_MS", "progress_tick_ms"),
            ("NARRATION_SETTLE_MS", "narration_settle_ms"),
            ("TTS_URL", "tts_url"),
            ("TTS_VOICE", "tts_voice"),
            ("ANALYTICS_URL", "analytics_url"),
            ("INSTANCE_ID", "instance_id"),
            ("LOG_LEVEL", "log_level"),
        ]:
            value = get(name)
            if value is not None:
                raw[field] = value

        enabled = get("NARRATION_ENABLED")
        if enabled is not None:
            raw["narration_enabled"] = enabled.lower() in ("1", "true", "yes", "on")

        pins = get("PINNED_TRANSITIONS")
        if pins is not None:
            raw["pinned_transitions"] = parse_pins(pins)

        try:
            return cls.model_validate(raw)
        except ValidationError as e:
            raise ConfigError(f"Invalid player configuration: {e}") from e


def parse_pins(text: str) -> dict[str, TransitionKind]:
    """Parse ``"slide-10=prezoom,outro=fade-white"`` into a pin map."""
    pins: dict[str, TransitionKind] = {}
    for entry in text.split(","):
        entry = entry.strip()
        if not entry:
            continue
        slide_id, sep, kind = entry.partition("=")
        if not sep or not slide_id.strip():
            raise ConfigError(f"Malformed transition pin '{entry}' (expected id=kind)")
        try:
            pins[slide_id.strip()] = TransitionKind(kind.strip())
        except ValueError:
            raise ConfigError(f"Unknown transition kind '{kind.strip()}' for slide '{slide_id.strip()}'")
    return pins
