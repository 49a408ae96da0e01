"""Runtime settings for the itinerary optimizer service.

Values come from the environment (optionally seeded from a ``.env`` file).
Callers read them as module attributes at call time so tests can
monkeypatch individual settings.
"""
import os

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()

_PREFIX = "ITINERARY_OPTIMIZER_"


def _env(name: str, default: str) -> str:
    return os.getenv(f"{_PREFIX}{name}", default)


def _env_flag(name: str, default: str) -> bool:
    return _env(name, default).strip().lower() in ("1", "true", "yes", "on")


LOG_LEVEL: str = _env("LOG_LEVEL", "INFO").upper()

# Comma separated list; "*" opens the API to any local UI.
ALLOWED_ORIGINS: str = _env("ALLOWED_ORIGINS", "*")

USE_REMOTE_AIRPORTS: bool = _env_flag("USE_REMOTE_AIRPORTS", "true")
AIRPORT_DATASET_URL: str = _env(
    "AIRPORT_DATASET_URL",
    "https://raw.githubusercontent.com/jpatokal/openflights/master/data/airports.dat",
)
AIRPORT_FETCH_TIMEOUT: float = float(_env("AIRPORT_FETCH_TIMEOUT", "10.0"))

# Hosting platforms cut requests at 60s; stop iterating well before that.
TIME_BUDGET_SECONDS: float = float(_env("TIME_BUDGET_SECONDS", "50.0"))
MAX_PLACES_PER_DAY: int = int(_env("MAX_PLACES_PER_DAY", "4"))
