# pwa2apk/core/config.py
import os
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv
from openai import OpenAI

# ================== ENV ==================

ROOT_DIR = Path(__file__).resolve().parents[2]
load_dotenv(ROOT_DIR / "pwa2apk/.env", override=False)

def env(*names: str, default: Optional[str] = None) -> str:
    for n in names:
        v = os.environ.get(n)
        if v is not None and str(v).strip() != "":
            return v
    if default is not None:
        return default
    raise KeyError(f"Missing required env var. Tried: {', '.join(names)}")

# ================== GITHUB ==================

GITHUB_API_BASE = env("GITHUB_API_URL", default="https://api.github.com").rstrip("/")
GITHUB_WEB_BASE = env("GITHUB_WEB_URL", default="https://github.com").rstrip("/")
GITHUB_DISPATCH_EVENT = env("GITHUB_DISPATCH_EVENT", default="build-apk")
GITHUB_REQUEST_TIMEOUT_SECONDS = float(env("GITHUB_REQUEST_TIMEOUT_SECONDS", default="30"))

# ================== POLLING ==================

RUN_START_MAX_ATTEMPTS = int(env("RUN_START_MAX_ATTEMPTS", default="10"))
RUN_START_POLL_SECONDS = float(env("RUN_START_POLL_SECONDS", default="3.0"))
RUN_MATCH_WINDOW_SECONDS = float(env("RUN_MATCH_WINDOW_SECONDS", default="60"))
COMPLETION_POLL_SECONDS = float(env("COMPLETION_POLL_SECONDS", default="5.0"))
# 0 keeps the completion monitor unbounded
COMPLETION_MAX_POLLS = int(env("COMPLETION_MAX_POLLS", default="0"))

# ================== OPENAI ==================

def openai_configured() -> bool:
    return bool((os.environ.get("OPENAI_API_KEY") or "").strip())


def get_openai_client() -> OpenAI:
    """
    Lazy init: the server starts without a key.
    Metadata generation falls back to local synthesis when it is missing.
    """
    key = os.environ.get("OPENAI_API_KEY")
    if not key:
        raise RuntimeError("OPENAI_API_KEY not configured (.env).")
    return OpenAI(api_key=key)

# ================== DATABASE ==================

def get_database_url() -> str:
    """Get database URL - defaults to a local SQLite file."""
    url = os.environ.get("DATABASE_URL", "")
    if url:
        return url
    db_path = ROOT_DIR / "pwa2apk" / "pwa2apk.db"
    return f"sqlite+aiosqlite:///{db_path}"

# ================== HTTP ==================

CORS_ORIGINS = [o.strip() for o in env("CORS_ORIGINS", default="*").split(",") if o.strip()]

SERVER_HOST = env("PWA2APK_HOST", default="127.0.0.1")
SERVER_PORT = int(env("PWA2APK_PORT", default="8000"))
