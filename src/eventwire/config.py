"""Configuration sources: environment first, then a .env file."""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
import os
from pathlib import Path
from typing import Protocol


class ConfigSource(Protocol):
    """Strategy interface for pulling configuration values from a backing store."""

    def get(self, key: str) -> str | None: ...


@dataclass(slots=True)
class EnvConfigSource:
    """Reads values directly from environment variables."""

    prefix: str | None = None

    def get(self, key: str) -> str | None:
        env_key = f"{self.prefix}{key}" if self.prefix else key
        return os.getenv(env_key)


@dataclass(slots=True)
class DotEnvConfigSource:
    """Lightweight .env reader."""

    path: Path = Path(".env")
    encoding: str = "utf-8"
    _cache: dict[str, str] = field(default_factory=dict, init=False)
    _loaded: bool = field(default=False, init=False)

    def _load(self) -> None:
        if self._loaded:
            return
        try:
            for raw_line in self.path.read_text(encoding=self.encoding).splitlines():
                line = raw_line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue
                key, value = line.split("=", 1)
                self._cache[key.strip()] = self._strip_quotes(value.strip())
        except FileNotFoundError:
            pass
        finally:
            self._loaded = True

    @staticmethod
    def _strip_quotes(value: str) -> str:
        if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
            return value[1:-1]
        return value

    def get(self, key: str) -> str | None:
        self._load()
        return self._cache.get(key)


@dataclass(slots=True)
class ConfigAdapter:
    """Composite over multiple sources (env → .env)."""

    sources: tuple[ConfigSource, ...]

    def get(self, key: str, default: str | None = None) -> str | None:
        for source in self.sources:
            value = source.get(key)
            if value is not None:
                return value
        return default


@lru_cache
def _config_adapter() -> ConfigAdapter:
    dotenv_path = Path(os.getenv("DOTENV_PATH", ".env"))
    return ConfigAdapter((EnvConfigSource(), DotEnvConfigSource(path=dotenv_path)))


def get_config_value(key: str, default: str | None = None) -> str | None:
    return _config_adapter().get(key, default)
