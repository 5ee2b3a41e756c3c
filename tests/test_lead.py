"""
Tests for `domain/lead.py` and `domain/intake.py`.

Covers contract rules:
- Lead, LeadFile and LeadEvent are immutable after creation.
- All timestamps are required to be UTC.
- LeadFile storage paths are scoped under their owning lead.
- Urgency and contact method spellings resolve through one mapping table.
- Intake payloads report the first missing required field.
"""

from __future__ import annotations

from dataclasses import FrozenInstanceError
from datetime import datetime, timedelta, timezone
from uuid import UUID

import pytest

from conftest import valid_intake_payload
from domain.intake import (
    IntakeValidationError,
    UploadValidationError,
    parse_intake_submission,
    parse_upload_submission,
)
from domain.lead import (
    ContactMethod,
    Lang,
    Lead,
    LeadEvent,
    LeadFile,
    LeadStatus,
    Urgency,
)

LEAD_ID = UUID("00000000-0000-0000-0000-000000000001")
CREATED = datetime(2025, 1, 1, 0, 0, 0, tzinfo=timezone.utc)


def _lead(**overrides) -> Lead:
    values = dict(
        lead_id=LEAD_ID,
        created_at=CREATED,
        lang=Lang.FR,
        source="website",
        pest_category="insects",
        pest_detail="cafards",
        urgency=Urgency.H48,
        postal_code="1000",
        city="Bruxelles",
        description="Cafards dans la cuisine",
        contact_method=ContactMethod.CALL,
        phone="+32470123456",
        status=LeadStatus.NEW,
        priority_score=85,
        sla_due_at=CREATED + timedelta(hours=12),
    )
    values.update(overrides)
    return Lead(**values)


def test_lead_created_at_must_be_utc() -> None:
    """Verify created_at must be timezone-aware UTC (offset 0)."""

    with pytest.raises(ValueError):
        _lead(created_at=datetime(2025, 1, 1, 0, 0, 0))

    with pytest.raises(ValueError):
        _lead(created_at=datetime(2025, 1, 1, 0, 0, 0, tzinfo=timezone(timedelta(hours=1))))


def test_lead_sla_due_at_must_be_utc() -> None:
    with pytest.raises(ValueError):
        _lead(sla_due_at=datetime(2025, 1, 1, 12, 0, 0))


def test_lead_is_immutable() -> None:
    """Verify priority and status cannot be reassigned on the entity."""

    lead = _lead()

    with pytest.raises(FrozenInstanceError):
        lead.priority_score = 1  # type: ignore[misc]
    with pytest.raises(FrozenInstanceError):
        lead.status = LeadStatus.DONE  # type: ignore[misc]


def test_only_new_leads_are_in_active_queue() -> None:
    assert _lead().is_in_active_queue is True
    for status in (LeadStatus.SPAM, LeadStatus.CONTACTED, LeadStatus.DONE, LeadStatus.LOST, LeadStatus.SCHEDULED):
        assert _lead(status=status).is_in_active_queue is False


def test_lead_file_path_must_be_scoped_to_lead() -> None:
    """Verify a LeadFile cannot point outside leads/<lead_id>/."""

    LeadFile(
        file_id=UUID("00000000-0000-0000-0000-0000000000f1"),
        lead_id=LEAD_ID,
        storage_bucket="interventia-intake",
        storage_path=f"leads/{LEAD_ID}/1735689600000-abcd_photo.jpg",
        mime_type="image/jpeg",
        size_bytes=1024,
        created_at=CREATED,
    )

    with pytest.raises(ValueError):
        LeadFile(
            file_id=UUID("00000000-0000-0000-0000-0000000000f2"),
            lead_id=LEAD_ID,
            storage_bucket="interventia-intake",
            storage_path="leads/someone-else/photo.jpg",
            mime_type="image/jpeg",
            size_bytes=1024,
            created_at=CREATED,
        )


def test_lead_file_size_must_not_be_negative() -> None:
    with pytest.raises(ValueError):
        LeadFile(
            file_id=UUID("00000000-0000-0000-0000-0000000000f3"),
            lead_id=LEAD_ID,
            storage_bucket="interventia-intake",
            storage_path=f"leads/{LEAD_ID}/x.jpg",
            mime_type="image/jpeg",
            size_bytes=-1,
            created_at=CREATED,
        )


def test_lead_event_requires_type_and_utc() -> None:
    event = LeadEvent(
        event_id=UUID("00000000-0000-0000-0000-0000000000e1"),
        lead_id=LEAD_ID,
        event_type="lead_created",
        created_at=CREATED,
    )
    assert event.actor is None
    assert event.payload == {}

    with pytest.raises(ValueError):
        LeadEvent(
            event_id=UUID("00000000-0000-0000-0000-0000000000e2"),
            lead_id=LEAD_ID,
            event_type="",
            created_at=CREATED,
        )
    with pytest.raises(ValueError):
        LeadEvent(
            event_id=UUID("00000000-0000-0000-0000-0000000000e3"),
            lead_id=LEAD_ID,
            event_type="lead_created",
            created_at=datetime(2025, 1, 1),
        )


@pytest.mark.parametrize(
    "value, expected",
    [
        ("IMMEDIATE", Urgency.IMMEDIATE),
        ("H48", Urgency.H48),
        ("48H", Urgency.H48),
        ("INSPECTION", Urgency.INSPECTION),
        ("immediate", Urgency.IMMEDIATE),
        ("today", Urgency.IMMEDIATE),
        ("48h", Urgency.H48),
        ("week", Urgency.INSPECTION),
        (" 48H ", Urgency.H48),
    ],
)
def test_urgency_parse(value: str, expected: Urgency) -> None:
    assert Urgency.parse(value) is expected


def test_urgency_parse_rejects_unknown() -> None:
    with pytest.raises(ValueError):
        Urgency.parse("asap")


@pytest.mark.parametrize(
    "value, expected",
    [
        ("WHATSAPP", ContactMethod.WHATSAPP),
        ("whatsapp", ContactMethod.WHATSAPP),
        ("CALL", ContactMethod.CALL),
        ("phone", ContactMethod.CALL),
        ("ONLINE", ContactMethod.ONLINE),
        ("email", ContactMethod.ONLINE),
    ],
)
def test_contact_method_parse(value: str, expected: ContactMethod) -> None:
    assert ContactMethod.parse(value) is expected


def test_lang_parse_accepts_lowercase() -> None:
    assert Lang.parse("nl") is Lang.NL
    with pytest.raises(ValueError):
        Lang.parse("EN")


def test_parse_intake_submission_defaults_and_optionals() -> None:
    submission = parse_intake_submission(
        valid_intake_payload(utm_source="google", name="  Anne  ", form_started_at=1735689600000)
    )

    assert submission.source == "website"
    assert submission.utm_source == "google"
    assert submission.utm_campaign is None
    assert submission.name == "Anne"
    assert submission.honeypot is None
    assert submission.form_started_at == CREATED
    assert submission.urgency is Urgency.IMMEDIATE


def test_parse_intake_submission_accepts_numeric_postal_code() -> None:
    submission = parse_intake_submission(valid_intake_payload(postal_code=1050))

    assert submission.postal_code == "1050"


def test_parse_intake_submission_ignores_bad_form_start() -> None:
    submission = parse_intake_submission(valid_intake_payload(form_started_at="yesterday"))

    assert submission.form_started_at is None


def test_parse_intake_submission_whitespace_only_is_missing() -> None:
    with pytest.raises(IntakeValidationError) as exc_info:
        parse_intake_submission(valid_intake_payload(description="   "))

    assert str(exc_info.value) == "Missing required field: description"
    assert exc_info.value.field == "description"


def test_parse_intake_submission_rejects_bad_enums() -> None:
    with pytest.raises(IntakeValidationError) as exc_info:
        parse_intake_submission(valid_intake_payload(lang="DE"))
    assert str(exc_info.value) == "Invalid value for field: lang"

    with pytest.raises(IntakeValidationError) as exc_info:
        parse_intake_submission(valid_intake_payload(contact_method="FAX"))
    assert str(exc_info.value) == "Invalid value for field: contact_method"


def test_parse_upload_submission_reports_first_missing_field() -> None:
    with pytest.raises(UploadValidationError) as exc_info:
        parse_upload_submission({"lead_id": str(LEAD_ID), "mime_type": "image/png"})

    assert str(exc_info.value) == "Missing required field: file_name"


@pytest.mark.parametrize("hp, expected", [(True, "True"), (["x"], "['x']"), (1.5, "1.5"), (" bot ", "bot"), ("  ", None), (None, None)])
def test_parse_intake_submission_honeypot_values(hp, expected) -> None:
    submission = parse_intake_submission(valid_intake_payload(hp=hp))

    assert submission.honeypot == expected
