"""
Intake orchestrator for public lead submissions.

One request moves through explicit stages, each of which either advances or
stops the request with a tagged failure:

    RECEIVED -> RATE_CHECKED -> VALIDATED -> SPAM_SCORED -> NORMALIZED
             -> PERSISTED -> EVENT_LOGGED -> RESPONDED

Write strategy:
- The lead insert is the primary write. Its failure fails the request.
- The lead_created event is a best-effort secondary write. Its failure is logged
  and never rolls back or fails the lead.

Spam-flagged submissions are stored with status SPAM and acknowledged exactly
like legitimate ones, so bots get no signal to iterate on.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Tuple
from uuid import uuid4

from domain.intake import IntakeSubmission, IntakeValidationError, parse_intake_submission
from domain.lead import LEAD_CREATED_EVENT, Lead, LeadEvent, LeadStatus
from domain.priority import assess_priority
from domain.spam import ServerSpamInput, SpamCheckResult, check_server_spam
from domain.time import utc_now
from repositories.lead_event_repository import insert_lead_event
from repositories.lead_repository import insert_lead
from services.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s")

RATE_LIMITED_MESSAGE = "Too many requests. Please try again later."
INTERNAL_ERROR_MESSAGE = "Internal server error"


class IntakeStage(str, Enum):
    RECEIVED = "RECEIVED"
    RATE_CHECKED = "RATE_CHECKED"
    VALIDATED = "VALIDATED"
    SPAM_SCORED = "SPAM_SCORED"
    NORMALIZED = "NORMALIZED"
    PERSISTED = "PERSISTED"
    EVENT_LOGGED = "EVENT_LOGGED"
    RESPONDED = "RESPONDED"


@dataclass(frozen=True, slots=True)
class IntakeFailure:
    """Early exit from a stage gate."""
    stage: IntakeStage
    status_code: int
    error: str


@dataclass(frozen=True, slots=True)
class IntakeOutcome:
    """
    What the endpoint sends back.

    stage is the last stage reached: RESPONDED on success, otherwise the gate
    that stopped the request.
    """
    status_code: int
    body: Dict[str, Any]
    stage: IntakeStage

    @property
    def ok(self) -> bool:
        return self.status_code == 200


@dataclass
class IntakeContext:
    """Mutable state carried through the stages of one request."""
    body: Any
    client_ip: str
    user_agent: Optional[str]
    received_at: datetime
    stage: IntakeStage = IntakeStage.RECEIVED
    payload: Optional[Mapping[str, Any]] = None
    submission: Optional[IntakeSubmission] = None
    spam: Optional[SpamCheckResult] = None
    phone: Optional[str] = None
    lead: Optional[Lead] = None


class IntakeService:
    """
    Handles lead submissions end to end.

    The rate limiter is owned by the service instance; one instance is shared by
    every request the process serves.
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.rate_limiter = rate_limiter
        self._clock = clock

    def _pipeline(self) -> Tuple[Tuple[IntakeStage, Callable[[IntakeContext], Optional[IntakeFailure]]], ...]:
        return (
            (IntakeStage.RECEIVED, self._receive),
            (IntakeStage.RATE_CHECKED, self._check_rate_limit),
            (IntakeStage.VALIDATED, self._validate),
            (IntakeStage.SPAM_SCORED, self._score_spam),
            (IntakeStage.NORMALIZED, self._normalize),
            (IntakeStage.PERSISTED, self._persist),
            (IntakeStage.EVENT_LOGGED, self._log_event),
        )

    def submit(self, body: Any, client_ip: str, user_agent: Optional[str] = None) -> IntakeOutcome:
        """
        Run one submission through every stage.

        Never raises: unexpected exceptions become a generic 500 outcome and
        the details stay in the server log.
        """

        context = IntakeContext(
            body=body,
            client_ip=client_ip,
            user_agent=user_agent,
            received_at=self._clock(),
        )

        try:
            for stage, step in self._pipeline():
                context.stage = stage
                failure = step(context)
                if failure is not None:
                    return self._fail(context, failure)
        except Exception:
            logger.exception(
                "Unhandled intake error",
                extra={"stage": context.stage.value, "client_ip": context.client_ip},
            )
            return IntakeOutcome(
                status_code=500,
                body={"ok": False, "error": INTERNAL_ERROR_MESSAGE},
                stage=context.stage,
            )

        context.stage = IntakeStage.RESPONDED
        assert context.lead is not None
        return IntakeOutcome(
            status_code=200,
            body={
                "ok": True,
                "lead_id": str(context.lead.lead_id),
                "priority_score": context.lead.priority_score,
            },
            stage=context.stage,
        )

    @staticmethod
    def _fail(context: IntakeContext, failure: IntakeFailure) -> IntakeOutcome:
        logger.info(
            "Intake request rejected",
            extra={
                "stage": failure.stage.value,
                "status_code": failure.status_code,
                "error": failure.error,
                "client_ip": context.client_ip,
            },
        )
        return IntakeOutcome(
            status_code=failure.status_code,
            body={"ok": False, "error": failure.error},
            stage=failure.stage,
        )

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _receive(self, context: IntakeContext) -> Optional[IntakeFailure]:
        if not isinstance(context.body, Mapping):
            return IntakeFailure(IntakeStage.RECEIVED, 400, "Invalid request body")
        context.payload = context.body
        return None

    def _check_rate_limit(self, context: IntakeContext) -> Optional[IntakeFailure]:
        if not self.rate_limiter.allow(context.client_ip):
            return IntakeFailure(IntakeStage.RATE_CHECKED, 429, RATE_LIMITED_MESSAGE)
        return None

    def _validate(self, context: IntakeContext) -> Optional[IntakeFailure]:
        assert context.payload is not None
        try:
            context.submission = parse_intake_submission(context.payload)
        except IntakeValidationError as e:
            return IntakeFailure(IntakeStage.VALIDATED, 400, str(e))

        logger.info(
            "Intake request received",
            extra={
                "client_ip": context.client_ip,
                "lang": context.submission.lang.value,
                "pest_detail": context.submission.pest_detail,
            },
        )
        return None

    def _score_spam(self, context: IntakeContext) -> Optional[IntakeFailure]:
        submission = context.submission
        assert submission is not None

        context.spam = check_server_spam(
            ServerSpamInput(
                description=submission.description,
                phone=submission.phone,
                postal_code=submission.postal_code,
                honeypot=submission.honeypot,
                name=submission.name,
                form_started_at=submission.form_started_at,
            ),
            received_at=context.received_at,
        )

        log = logger.warning if context.spam.is_spam else logger.info
        log(
            "Spam check completed",
            extra={
                "client_ip": context.client_ip,
                "spam_score": context.spam.score,
                "spam_reasons": context.spam.reasons,
                "is_spam": context.spam.is_spam,
            },
        )
        return None

    def _normalize(self, context: IntakeContext) -> Optional[IntakeFailure]:
        # Urgency synonyms were already canonicalized while parsing. The phone
        # has been validated by the client; only formatting is stripped here.
        assert context.submission is not None
        context.phone = _WHITESPACE.sub("", context.submission.phone)
        return None

    def _persist(self, context: IntakeContext) -> Optional[IntakeFailure]:
        submission = context.submission
        assert submission is not None and context.spam is not None and context.phone is not None

        assessment = assess_priority(submission.pest_detail, submission.urgency, context.received_at)
        lead = Lead(
            lead_id=uuid4(),
            created_at=context.received_at,
            lang=submission.lang,
            source=submission.source,
            utm_source=submission.utm_source,
            utm_campaign=submission.utm_campaign,
            pest_category=submission.pest_category,
            pest_detail=submission.pest_detail,
            urgency=submission.urgency,
            postal_code=submission.postal_code,
            city=submission.city,
            description=submission.description,
            contact_method=submission.contact_method,
            phone=context.phone,
            status=LeadStatus.SPAM if context.spam.is_spam else LeadStatus.NEW,
            priority_score=assessment.priority_score,
            sla_due_at=assessment.sla_due_at,
            updated_at=context.received_at,
        )

        try:
            insert_lead(lead)
        except Exception:
            logger.exception(
                "Database insert error",
                extra={"lead_id": str(lead.lead_id), "client_ip": context.client_ip},
            )
            return IntakeFailure(IntakeStage.PERSISTED, 500, "Failed to create lead")

        context.lead = lead
        logger.info(
            "Lead created",
            extra={
                "lead_id": str(lead.lead_id),
                "status": lead.status.value,
                "priority_score": lead.priority_score,
            },
        )
        return None

    def _log_event(self, context: IntakeContext) -> Optional[IntakeFailure]:
        lead = context.lead
        assert lead is not None and context.spam is not None

        event = LeadEvent(
            event_id=uuid4(),
            lead_id=lead.lead_id,
            event_type=LEAD_CREATED_EVENT,
            created_at=context.received_at,
            actor=None,
            payload={
                "source": lead.source,
                "ip": context.client_ip,
                "user_agent": context.user_agent,
                "spam_score": context.spam.score,
                "spam_reasons": list(context.spam.reasons),
            },
        )

        try:
            insert_lead_event(event)
        except Exception:
            # The lead exists and matters more than its audit trail.
            logger.exception(
                "Failed to record lead_created event",
                extra={"lead_id": str(lead.lead_id)},
            )
        return None
