"""App configuration from the environment (optionally a .env file).

Every setting has a default, so the engine starts with nothing configured;
without an API key it falls back to the offline EchoGenerator.

    ECHOES_PROVIDER_URL     generator base URL
    ECHOES_PROVIDER_FORMAT  "gemini" | "openai"
    ECHOES_API_KEY          provider key
    ECHOES_MODEL            model identifier
    ECHOES_TIMEOUT          HTTP timeout, seconds
    ECHOES_WORLD            starting world key
    ECHOES_TEXT_SPEED       "slow" | "normal" | "fast"
    ECHOES_MUTED            start muted ("1", "true", "yes")
    ECHOES_OFFLINE          force the EchoGenerator
    HOST, PORT              API server bind address
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

from echoes.llm import EchoGenerator, HttpNarrativeGenerator, NarrativeGenerator, ProviderFormat
from echoes.models import Preferences, TextSpeed
from echoes.worlds import DEFAULT_WORLD, UnknownWorldError, get_world

ROOT = Path(__file__).parent.parent

_CONFIG_DEFAULTS: dict[str, Any] = {
    "provider_url": "https://generativelanguage.googleapis.com",
    "provider_format": "gemini",
    "api_key": "",
    "model": "gemini-2.5-flash",
    "timeout": 60.0,
    "world": DEFAULT_WORLD,
    "text_speed": "normal",
    "muted": False,
    "offline": False,
    "host": "127.0.0.1",
    "port": 13013,
}

_ENV_KEYS: dict[str, str] = {
    "provider_url": "ECHOES_PROVIDER_URL",
    "provider_format": "ECHOES_PROVIDER_FORMAT",
    "api_key": "ECHOES_API_KEY",
    "model": "ECHOES_MODEL",
    "timeout": "ECHOES_TIMEOUT",
    "world": "ECHOES_WORLD",
    "text_speed": "ECHOES_TEXT_SPEED",
    "muted": "ECHOES_MUTED",
    "offline": "ECHOES_OFFLINE",
    "host": "HOST",
    "port": "PORT",
}


class Settings(BaseModel):
    provider_url: str
    provider_format: ProviderFormat
    api_key: str
    model: str
    timeout: float
    world: str
    text_speed: TextSpeed
    muted: bool
    offline: bool
    host: str
    port: int

    @field_validator("world")
    @classmethod
    def _known_world(cls, v: str) -> str:
        try:
            get_world(v)
        except UnknownWorldError:
            raise ValueError(f"unknown world {v!r}") from None
        return v

    def preferences(self) -> Preferences:
        return Preferences(muted=self.muted, text_speed=self.text_speed, world=self.world)

    def build_generator(self) -> NarrativeGenerator:
        if self.offline or not self.api_key:
            return EchoGenerator()
        return HttpNarrativeGenerator(
            provider_url=self.provider_url,
            api_key=self.api_key,
            provider_format=self.provider_format,
            model=self.model,
            timeout=self.timeout,
        )


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """Read settings, returning defaults merged with environment values.

    Raises pydantic.ValidationError for values that do not parse.
    """
    if env is None:
        load_dotenv(ROOT / ".env")
        env = os.environ
    values = dict(_CONFIG_DEFAULTS)
    for field, key in _ENV_KEYS.items():
        raw = env.get(key)
        if raw is not None and raw != "":
            values[field] = raw
    return Settings.model_validate(values)
