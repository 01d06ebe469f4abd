# =========================================================
# FILE: /pwa2apk/schemas/metadata.py
# =========================================================

from pydantic import BaseModel, ConfigDict


class AppMetadata(BaseModel):
    """Android (TWA) app metadata resolved for a web app URL."""
    model_config = ConfigDict(extra="ignore", frozen=True)

    name: str
    short_name: str
    description: str
    theme_color: str
    background_color: str
    display: str
    orientation: str
    version: str
    package_name: str


METADATA_FIELDS = list(AppMetadata.model_fields.keys())

# Structured-output schema sent to the model: every field is a required string.
APP_METADATA_SCHEMA = {
    "type": "object",
    "properties": {name: {"type": "string"} for name in METADATA_FIELDS},
    "required": METADATA_FIELDS,
    "additionalProperties": False,
}
