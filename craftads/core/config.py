# FILE: craftads/core/config.py
import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from openai import OpenAI

# ================== ENV ==================

ROOT_DIR = Path(__file__).resolve().parents[2]
load_dotenv(ROOT_DIR / ".env")


def env(*names: str, default: Optional[str] = None) -> str:
    for n in names:
        v = os.environ.get(n)
        if v is not None and str(v).strip() != "":
            return v
    if default is not None:
        return default
    raise KeyError(f"Missing required env var. Tried: {', '.join(names)}")


def env_list(name: str, default: str = "") -> List[str]:
    return [v.strip() for v in env(name, default=default).split(",") if v.strip()]


# ================== JWT ==================

JWT_SECRET = env("JWT_SECRET", default="default_secret_key")
JWT_ALGORITHM = "HS256"
JWT_EXPIRATION_HOURS = int(env("JWT_EXPIRATION_HOURS", default="24"))

# ================== CREDITS ==================

SIGNUP_BONUS_CREDITS = int(env("SIGNUP_BONUS_CREDITS", default="10"))
LEDGER_WRITE_RETRIES = int(env("LEDGER_WRITE_RETRIES", default="3"))
LEDGER_RETRY_DELAY_SECONDS = float(env("LEDGER_RETRY_DELAY_SECONDS", default="0.05"))
HISTORY_MAX_LIMIT = int(env("HISTORY_MAX_LIMIT", default="100"))

# ================== GENERATION ==================

GENERATION_BACKEND = env("GENERATION_BACKEND", default="mock").strip().lower()
GENERATION_TIMEOUT_SECONDS = float(env("GENERATION_TIMEOUT_SECONDS", default="60"))
MOCK_GENERATION_DELAY_SECONDS = float(env("MOCK_GENERATION_DELAY_SECONDS", default="3.0"))
MOCK_GENERATION_FAILURE_RATE = float(env("MOCK_GENERATION_FAILURE_RATE", default="0.1"))
# pending reservations older than this are released by the startup sweep
STALE_RESERVATION_SECONDS = float(env("STALE_RESERVATION_SECONDS", default=str(GENERATION_TIMEOUT_SECONDS + 300)))
OPENAI_IMAGE_MODEL = env("OPENAI_IMAGE_MODEL", default="gpt-image-1")

# ================== GALLERY ==================

GALLERY_DEFAULT_LIMIT = int(env("GALLERY_DEFAULT_LIMIT", default="50"))
GALLERY_MAX_LIMIT = int(env("GALLERY_MAX_LIMIT", default="100"))

# ================== HTTP / LOGGING ==================

CORS_ORIGINS = env_list("CORS_ORIGINS", default="*")
LOG_DIR = env("LOG_DIR", default="logs")
LOG_LEVEL = env("LOG_LEVEL", default="INFO").upper()


# ================== OPENAI ==================

def has_openai_key() -> bool:
    return bool(os.environ.get("OPENAI_API_KEY", "").strip())


def get_openai_client() -> OpenAI:
    """
    Lazy init: the server starts without a key.
    Only the openai generation backend requires OPENAI_API_KEY.
    """
    key = os.environ.get("OPENAI_API_KEY")
    if not key:
        raise RuntimeError("OPENAI_API_KEY not configured (.env).")
    return OpenAI(api_key=key)


# ================== DATABASE ==================
# SQLite for local development, MySQL when configured

def get_database_url() -> str:
    """Get database URL - supports SQLite or MySQL."""
    database_url = os.environ.get("DATABASE_URL", "")
    if database_url:
        return database_url

    mysql_host = os.environ.get("MYSQL_HOST")
    if mysql_host and mysql_host not in {"127.0.0.1", "localhost"}:
        mysql_port = int(os.environ.get("MYSQL_PORT", "3306"))
        mysql_user = os.environ.get("MYSQL_USER", "root")
        mysql_password = os.environ.get("MYSQL_PASSWORD", "")
        mysql_db = os.environ.get("MYSQL_DB", "craftads")
        return f"mysql+aiomysql://{mysql_user}:{mysql_password}@{mysql_host}:{mysql_port}/{mysql_db}?charset=utf8mb4"

    db_path = ROOT_DIR / "craftads.db"
    return f"sqlite+aiosqlite:///{db_path}"
