"""
Domain: intake and upload payload shapes (pure).

Public request bodies are untrusted JSON objects. They are turned into explicit,
frozen structures here, with required and optional fields enumerated and checked
by presence in a fixed order so the first missing field is what gets reported.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional

from .lead import ContactMethod, Lang, Urgency
from .time import from_epoch_millis

REQUIRED_INTAKE_FIELDS = (
    "lang",
    "pest_category",
    "pest_detail",
    "urgency",
    "postal_code",
    "city",
    "description",
    "contact_method",
    "phone",
)
OPTIONAL_INTAKE_FIELDS = (
    "source",
    "utm_source",
    "utm_campaign",
    "hp",
    "name",
    "form_started_at",
)

REQUIRED_UPLOAD_FIELDS = ("lead_id", "file_name", "file_data", "mime_type")

DEFAULT_SOURCE = "website"


class IntakeValidationError(ValueError):
    """Raised when an intake payload is missing a field or carries an invalid value."""

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class UploadValidationError(ValueError):
    """Raised when an upload payload is missing a field."""

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


@dataclass(frozen=True, slots=True)
class IntakeSubmission:
    """A validated intake submission, before normalization."""

    lang: Lang
    pest_category: str
    pest_detail: str
    urgency: Urgency
    postal_code: str
    city: str
    description: str
    contact_method: ContactMethod
    phone: str
    source: str = DEFAULT_SOURCE
    utm_source: Optional[str] = None
    utm_campaign: Optional[str] = None
    honeypot: Optional[str] = None
    name: Optional[str] = None
    form_started_at: Optional[datetime] = None


@dataclass(frozen=True, slots=True)
class UploadSubmission:
    lead_id: str
    file_name: str
    file_data: str
    mime_type: str


def _text(value: Any) -> Optional[str]:
    """Return a stripped string for text-like JSON values, else None."""

    if isinstance(value, str):
        return value.strip()
    if isinstance(value, int) and not isinstance(value, bool):
        # Sloppy clients send postal codes and phones as numbers.
        return str(value)
    return None


def _required_text(raw: Mapping[str, Any], name: str, error_cls: type[ValueError]) -> str:
    value = _text(raw.get(name))
    if not value:
        raise error_cls(f"Missing required field: {name}", name)
    return value


def _optional_text(raw: Mapping[str, Any], name: str) -> Optional[str]:
    return _text(raw.get(name)) or None


def _honeypot(value: Any) -> Optional[str]:
    """Any non-null value other than a blank string counts as a filled honeypot."""

    if value is None:
        return None
    if isinstance(value, str):
        return value.strip() or None
    return str(value)


def _form_started_at(value: Any) -> Optional[datetime]:
    """Client form start time as epoch milliseconds. Unparseable values are ignored."""

    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return None
    try:
        return from_epoch_millis(float(value))
    except (ValueError, OverflowError, OSError):
        return None


def parse_intake_submission(raw: Mapping[str, Any]) -> IntakeSubmission:
    """
    Build an IntakeSubmission from a decoded JSON object.

    Raises IntakeValidationError naming the first missing required field, or the
    first closed-set field whose value is outside its enum.
    """

    values = {name: _required_text(raw, name, IntakeValidationError) for name in REQUIRED_INTAKE_FIELDS}

    try:
        lang = Lang.parse(values["lang"])
    except ValueError:
        raise IntakeValidationError("Invalid value for field: lang", "lang") from None
    try:
        urgency = Urgency.parse(values["urgency"])
    except ValueError:
        raise IntakeValidationError("Invalid value for field: urgency", "urgency") from None
    try:
        contact_method = ContactMethod.parse(values["contact_method"])
    except ValueError:
        raise IntakeValidationError("Invalid value for field: contact_method", "contact_method") from None

    return IntakeSubmission(
        lang=lang,
        pest_category=values["pest_category"],
        pest_detail=values["pest_detail"],
        urgency=urgency,
        postal_code=values["postal_code"],
        city=values["city"],
        description=values["description"],
        contact_method=contact_method,
        phone=values["phone"],
        source=_optional_text(raw, "source") or DEFAULT_SOURCE,
        utm_source=_optional_text(raw, "utm_source"),
        utm_campaign=_optional_text(raw, "utm_campaign"),
        honeypot=_honeypot(raw.get("hp")),
        name=_optional_text(raw, "name"),
        form_started_at=_form_started_at(raw.get("form_started_at")),
    )


def parse_upload_submission(raw: Mapping[str, Any]) -> UploadSubmission:
    values = {name: _required_text(raw, name, UploadValidationError) for name in REQUIRED_UPLOAD_FIELDS}
    return UploadSubmission(**values)
