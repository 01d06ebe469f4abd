# FILE: pwa2apk/services/metadata_service.py

import asyncio
import json
import logging
import re
from urllib.parse import urlparse

from pydantic import ValidationError

from pwa2apk.core.config import get_openai_client, openai_configured
from pwa2apk.schemas.metadata import APP_METADATA_SCHEMA, AppMetadata
from pwa2apk.services.openai_model_service import metadata_model

logger = logging.getLogger("pwa2apk.metadata")

DEFAULT_THEME_COLOR = "#4f46e5"
DEFAULT_BACKGROUND_COLOR = "#ffffff"
DEFAULT_DISPLAY = "standalone"
DEFAULT_ORIENTATION = "portrait"
DEFAULT_VERSION = "1.0.0"

METADATA_SYSTEM_PROMPT = (
    "You generate metadata for Trusted Web Activity (TWA) Android applications "
    "that wrap an existing progressive web app. Respond with JSON only."
)

_INVALID_PACKAGE_CHARS = re.compile(r"[^a-z0-9]")
_REPEATED_UNDERSCORES = re.compile(r"_{2,}")

# Lazy initialization - only create client when needed
_openai_client = None


def get_client():
    global _openai_client
    if _openai_client is None:
        _openai_client = get_openai_client()
    return _openai_client


class InvalidAIJson(Exception):
    pass


# =========================
# PACKAGE NAMES
# =========================
def sanitize_package_name(name: str) -> str:
    """
    Lowercase, replace anything outside [a-z0-9] with "_", collapse runs of "_"
    and trim them from both ends. Yields "" or a match of ^[a-z0-9]+(_[a-z0-9]+)*$.
    """
    value = _INVALID_PACKAGE_CHARS.sub("_", (name or "").lower())
    value = _REPEATED_UNDERSCORES.sub("_", value)
    return value.strip("_")


def get_domain_name(url: str) -> str:
    """First host label with a leading "www." removed; "app" when the URL has no host."""
    try:
        hostname = urlparse(url).hostname
    except ValueError:
        hostname = None
    if not hostname:
        return "app"
    if hostname.startswith("www."):
        hostname = hostname[len("www."):]
    return hostname.split(".")[0] or "app"


def fallback_metadata(url: str) -> AppMetadata:
    domain = get_domain_name(url)
    title = domain[:1].upper() + domain[1:]
    return AppMetadata(
        name=f"{title} App",
        short_name=title,
        description=f"Native Android application for {url}",
        theme_color=DEFAULT_THEME_COLOR,
        background_color=DEFAULT_BACKGROUND_COLOR,
        display=DEFAULT_DISPLAY,
        orientation=DEFAULT_ORIENTATION,
        version=DEFAULT_VERSION,
        package_name=f"com.{sanitize_package_name(domain)}.app",
    )


# =========================
# AI RESPONSE PARSING
# =========================
def _extract_json(text: str) -> dict:
    if not text:
        raise InvalidAIJson("Empty AI response")

    t = text.strip()

    # 1) direct JSON
    try:
        return json.loads(t)
    except json.JSONDecodeError:
        pass

    # 2) ```json fenced
    fence = re.search(r"```json\s*(\{.*?\})\s*```", t, re.S)
    if fence:
        try:
            return json.loads(fence.group(1))
        except json.JSONDecodeError:
            pass

    raise InvalidAIJson("Could not extract valid JSON")


def build_metadata_user_prompt(url: str) -> str:
    return (
        f"Analyze this PWA URL: {url}.\n"
        "Based on standard web practices for this specific site, generate metadata for a "
        "TWA (Trusted Web Activity) Android application.\n"
        "IMPORTANT: The package_name must be a valid Android package name (only lowercase "
        "letters, numbers, and underscores - NO hyphens or special characters).\n"
        "Provide a realistic package name based on the domain, replacing any hyphens or "
        "special characters with underscores."
    )


def parse_metadata_response(raw: str) -> AppMetadata:
    data = _extract_json(raw)
    if not isinstance(data, dict):
        raise InvalidAIJson("Root is not object")
    metadata = AppMetadata(**data)
    return metadata.model_copy(update={"package_name": sanitize_package_name(metadata.package_name)})


async def generate_metadata_with_ai(url: str) -> AppMetadata:
    def _call():
        return get_client().chat.completions.create(
            model=metadata_model(),
            messages=[
                {"role": "system", "content": METADATA_SYSTEM_PROMPT},
                {"role": "user", "content": build_metadata_user_prompt(url)},
            ],
            response_format={
                "type": "json_schema",
                "json_schema": {
                    "name": "app_metadata",
                    "strict": True,
                    "schema": APP_METADATA_SCHEMA,
                },
            },
            temperature=0.2,
        )

    response = await asyncio.to_thread(_call)
    raw = (response.choices[0].message.content or "").strip()
    return parse_metadata_response(raw)


# =========================
# RESOLVE
# =========================
async def resolve_metadata(url: str) -> AppMetadata:
    """
    Resolve app metadata for a web app URL.

    Uses the OpenAI model when a key is configured; any failure (missing key,
    API error, malformed JSON) falls back to metadata derived from the domain.
    """
    if not openai_configured():
        logger.warning("OPENAI_API_KEY missing. Using fallback metadata.")
        return fallback_metadata(url)

    try:
        metadata = await generate_metadata_with_ai(url)
    except (InvalidAIJson, ValidationError) as e:
        logger.error(f"AI metadata response rejected: {e}")
        return fallback_metadata(url)
    except Exception as e:
        logger.error(f"AI metadata analysis failed: {e}")
        return fallback_metadata(url)

    logger.info(f"AI metadata resolved for {url}: {metadata.package_name}")
    return metadata
