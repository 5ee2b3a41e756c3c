"""
Client-side submission flow for the onboarding form.

Mirrors what the website does before and after calling the intake API:
- Resubmission guard: at least 3 seconds between attempts, at most 5 attempts.
- Advisory spam pre-check. A positive verdict returns a fake success without
  any network call, so scripted bots get nothing to iterate on.
- Form values mapped through the canonical enum tables shared with the server.
- Photos uploaded concurrently once the lead exists. A failed photo is collected
  and logged, never raised: partial success is expected.
"""

from __future__ import annotations

import base64
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

import httpx

from domain.lead import ContactMethod, Urgency
from domain.phone import normalize_belgian_phone
from domain.spam import ClientSpamInput, SpamCheckResult, check_client_spam
from domain.time import utc_now

logger = logging.getLogger(__name__)

INTAKE_PATH = "/api/v1/intake"
UPLOAD_PATH = "/api/v1/uploads"


class SubmissionError(Exception):
    """Base class for client-side submission failures."""


class SubmissionThrottledError(SubmissionError):
    """Raised when the form is resubmitted less than the minimum interval after the last attempt."""


class TooManyAttemptsError(SubmissionError):
    """Raised once the attempt cap is reached."""


class IntakeSubmissionError(SubmissionError):
    """Raised when the intake API rejects the submission or cannot be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


@dataclass
class OnboardingForm:
    """Values collected by the multi-step form."""
    language: str  # "fr" / "nl"
    pest_category: str
    urgency: str  # "immediate", "today", "48h", "week" (or canonical values)
    postal_code: str
    city: str
    description: str
    contact_method: str  # "whatsapp", "phone", "email" (or canonical values)
    phone: str
    name: str
    form_started_at: datetime
    pest_detail: Optional[str] = None
    honeypot: Optional[str] = None
    utm_source: Optional[str] = None
    utm_campaign: Optional[str] = None


@dataclass(frozen=True, slots=True)
class PhotoUpload:
    file_name: str
    content: bytes
    mime_type: str

    def as_data_url(self) -> str:
        encoded = base64.b64encode(self.content).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"


@dataclass
class SubmissionResult:
    ok: bool
    lead_id: Optional[str] = None
    priority_score: Optional[int] = None
    suppressed: bool = False  # client-side spam verdict; nothing was sent
    uploaded: List[Dict[str, Any]] = field(default_factory=list)
    failed_uploads: List[str] = field(default_factory=list)
    spam_check: Optional[SpamCheckResult] = None


class SubmissionGuard:
    """Per-form resubmission limits."""

    def __init__(
        self,
        min_interval_seconds: float = 3.0,
        max_attempts: int = 5,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.min_interval_seconds = min_interval_seconds
        self.max_attempts = max_attempts
        self.attempts = 0
        self._last_attempt_at: Optional[float] = None
        self._clock = clock

    def check(self) -> None:
        """
        Register an attempt.

        Raises SubmissionThrottledError (attempt not counted) or
        TooManyAttemptsError (attempt counted) when the submission must not go out.
        """

        now = self._clock()
        if self._last_attempt_at is not None and now - self._last_attempt_at < self.min_interval_seconds:
            raise SubmissionThrottledError("Please wait before submitting again.")
        self._last_attempt_at = now

        previous = self.attempts
        self.attempts += 1
        if previous >= self.max_attempts:
            raise TooManyAttemptsError("Too many attempts. Please try again later.")


def map_onboarding_to_intake(form: OnboardingForm) -> Dict[str, Any]:
    """Build the intake API payload from form values."""

    try:
        urgency = Urgency.parse(form.urgency)
    except ValueError:
        urgency = Urgency.INSPECTION
    try:
        contact_method = ContactMethod.parse(form.contact_method)
    except ValueError:
        contact_method = ContactMethod.WHATSAPP

    phone = normalize_belgian_phone(form.phone)

    payload: Dict[str, Any] = {
        "lang": form.language.strip().upper(),
        "source": "website",
        "pest_category": form.pest_category,
        "pest_detail": form.pest_detail or form.pest_category,
        "urgency": urgency.value,
        "postal_code": form.postal_code,
        "city": form.city,
        "description": f"{form.description}\n\nNom: {form.name}",
        "contact_method": contact_method.value,
        "phone": phone.normalized if phone.valid else form.phone,
        "name": form.name,
        "hp": form.honeypot or "",
        "form_started_at": int(form.form_started_at.timestamp() * 1000),
    }
    if form.utm_source:
        payload["utm_source"] = form.utm_source
    if form.utm_campaign:
        payload["utm_campaign"] = form.utm_campaign
    return payload


class IntakeClient:
    def __init__(
        self,
        base_url: str,
        http_client: Optional[httpx.Client] = None,
        api_key: Optional[str] = None,
        guard: Optional[SubmissionGuard] = None,
        clock: Callable[[], datetime] = utc_now,
        max_upload_workers: int = 4,
    ) -> None:
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["apikey"] = api_key
            headers["Authorization"] = f"Bearer {api_key}"

        self._http = http_client or httpx.Client(timeout=30.0)
        self._base_url = base_url.rstrip("/")
        self._headers = headers
        self.guard = guard or SubmissionGuard()
        self._clock = clock
        self._max_upload_workers = max_upload_workers

    def close(self) -> None:
        self._http.close()

    def submit(self, form: OnboardingForm, photos: Sequence[PhotoUpload] = ()) -> SubmissionResult:
        """
        Submit the form, then upload its photos.

        Raises SubmissionThrottledError / TooManyAttemptsError from the guard and
        IntakeSubmissionError when the intake call fails. Photo failures are
        reported in the result, never raised.
        """

        self.guard.check()

        spam = check_client_spam(
            ClientSpamInput(
                description=form.description,
                name=form.name,
                phone=form.phone,
                form_started_at=form.form_started_at,
                honeypot=form.honeypot,
            ),
            now=self._clock(),
        )
        if spam.is_spam:
            logger.warning("Spam detected, submission suppressed", extra={"spam_reasons": spam.reasons})
            return SubmissionResult(ok=True, suppressed=True, spam_check=spam)

        data = self._post(INTAKE_PATH, map_onboarding_to_intake(form))
        result = SubmissionResult(
            ok=True,
            lead_id=data.get("lead_id"),
            priority_score=data.get("priority_score"),
            spam_check=spam,
        )

        if photos and result.lead_id:
            self._upload_photos(result, photos)
        return result

    def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self._http.post(f"{self._base_url}{path}", json=payload, headers=self._headers)
        except httpx.HTTPError as e:
            raise IntakeSubmissionError("Network error. Please check your internet connection.") from e

        try:
            data = response.json()
        except ValueError:
            raise IntakeSubmissionError("Invalid response from server", response.status_code) from None

        if response.status_code != 200 or not isinstance(data, dict) or not data.get("ok"):
            message = data.get("error") if isinstance(data, dict) else None
            raise IntakeSubmissionError(message or f"Server error: {response.status_code}", response.status_code)
        return data

    def _upload_one(self, lead_id: str, photo: PhotoUpload) -> Optional[Dict[str, Any]]:
        try:
            return self._post(
                UPLOAD_PATH,
                {
                    "lead_id": lead_id,
                    "file_name": photo.file_name,
                    "file_data": photo.as_data_url(),
                    "mime_type": photo.mime_type,
                },
            )
        except SubmissionError as e:
            logger.error("Failed to upload photo", extra={"lead_id": lead_id, "file_name": photo.file_name, "error": str(e)})
            return None

    def _upload_photos(self, result: SubmissionResult, photos: Sequence[PhotoUpload]) -> None:
        assert result.lead_id is not None
        lead_id = result.lead_id
        with ThreadPoolExecutor(max_workers=self._max_upload_workers) as pool:
            outcomes = list(pool.map(lambda photo: self._upload_one(lead_id, photo), photos))

        for photo, outcome in zip(photos, outcomes):
            if outcome is None:
                result.failed_uploads.append(photo.file_name)
            else:
                result.uploaded.append(outcome)
