import os
from pathlib import Path
from dotenv import load_dotenv
load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent  # <project>
INSTANCE_DIR = BASE_DIR / "instance"

FRANKFURTER_URL = "https://api.frankfurter.app/latest?from=USD&to=EUR"
DEFAULT_FX_RATE = 0.92


def _default_sqlite_uri():
    return f"sqlite:///{(INSTANCE_DIR / 'payouts.db').as_posix()}"


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw in (None, ""):
        return default
    try:
        return float(raw)
    except ValueError:
        return default


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL") or _default_sqlite_uri()
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # FX: primary provider, internal endpoint, last-resort rate.
    # The internal stage is opt-in: set FX_INTERNAL_URL to a deployed
    # /api/fx/usd-eur (usually another instance); unset skips the stage.
    FX_API_URL = os.getenv("FX_API_URL") or FRANKFURTER_URL
    FX_INTERNAL_URL = os.getenv("FX_INTERNAL_URL") or None
    FX_FALLBACK_RATE = _float_env("FX_FALLBACK_RATE", DEFAULT_FX_RATE)
    FX_CACHE_TTL_SECONDS = _float_env("FX_CACHE_TTL_SECONDS", 600)
    FX_TIMEOUT_SECONDS = _float_env("FX_TIMEOUT_SECONDS", 5)

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def ensure_instance(app):
    # Flask instance path
    os.makedirs(app.instance_path, exist_ok=True)
    INSTANCE_DIR.mkdir(parents=True, exist_ok=True)
