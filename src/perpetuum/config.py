import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

from perpetuum import SAMPLE_RATE
from perpetuum.errors import PerpetuumError

ENV_PREFIX = "PERPETUUM"


@dataclass(frozen=True)
class Settings:
    instrument_url: str = "http://localhost:8000"
    sample_rate: int = SAMPLE_RATE
    http_timeout: float = 10.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            instrument_url=env.get(f"{ENV_PREFIX}_INSTRUMENT_URL", cls.instrument_url),
            sample_rate=_positive(env, f"{ENV_PREFIX}_SAMPLE_RATE", cls.sample_rate, int),
            http_timeout=_positive(env, f"{ENV_PREFIX}_HTTP_TIMEOUT", cls.http_timeout, float),
            log_level=_log_level(env.get("LOG_LEVEL") or cls.log_level),
        )


def _positive(env: Mapping[str, str], key: str, default, cast):
    raw = env.get(key)
    if not raw:
        return default
    try:
        value = cast(raw)
    except ValueError:
        raise PerpetuumError(f"{key} must be a number, got {raw!r}") from None
    if not value > 0:
        raise PerpetuumError(f"{key} must be positive, got {raw!r}")
    return value


def _log_level(raw: str) -> str:
    level = raw.strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        raise PerpetuumError(f"LOG_LEVEL must be a logging level name, got {raw!r}")
    return level


def load_settings() -> Settings:
    """Read settings from the environment, after loading any .env file."""
    load_dotenv()
    return Settings.from_env()
