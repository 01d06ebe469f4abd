# FILE: pwa2apk/services/openai_model_service.py
import os

FALLBACK_MODEL = "gpt-4.1-mini"


def metadata_model() -> str:
    """OPENAI_METADATA_MODEL, else OPENAI_DEFAULT_MODEL, else the built-in default."""
    for name in ("OPENAI_METADATA_MODEL", "OPENAI_DEFAULT_MODEL"):
        value = os.getenv(name, "").strip()
        if value:
            return value
    return FALLBACK_MODEL
