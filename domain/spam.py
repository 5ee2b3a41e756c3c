"""
Domain: spam heuristics for public lead submissions (pure).

One signal table, two evaluations:
- check_server_spam: authoritative. The only verdict that decides whether a
  Lead is stored as NEW or SPAM.
- check_client_spam: advisory pre-check run by the submission flow before any
  network call. A positive verdict silently short-circuits the submission.

Signals are additive; the score is capped at 100 and a submission is spam at 50.
The repeated-character rule uses a run of 6 on both sides.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from .phone import digits_only, validate_belgian_postal_code

SPAM_THRESHOLD = 50
MAX_SCORE = 100

# Signal weights
HONEYPOT_WEIGHT = 50
TOO_FAST_WEIGHT = 40
SUSPICIOUSLY_FAST_WEIGHT = 15
URL_WEIGHT = 30
KEYWORD_WEIGHT = 25
REPEATED_CHARS_WEIGHT = 15
NAME_TOO_SHORT_WEIGHT = 10
SUSPICIOUS_NAME_WEIGHT = 15
INVALID_PHONE_WEIGHT = 10
INVALID_POSTAL_WEIGHT = 10

TOO_FAST_SECONDS = 6
SUSPICIOUSLY_FAST_SECONDS = 15
REPEATED_CHAR_RUN = 6
MIN_PHONE_DIGITS = 9

CORE_SPAM_KEYWORDS = (
    "bitcoin",
    "crypto",
    "casino",
    "viagra",
    "lottery",
    "winner",
    "click here",
    "free money",
)
CLIENT_SPAM_KEYWORDS = CORE_SPAM_KEYWORDS + (
    "congratulations",
    "make money",
    "work from home",
)

_URL_PATTERN = re.compile(r"https?://|www\.", re.IGNORECASE)
_REPEATED_PATTERN = re.compile(r"(.)\1{%d,}" % (REPEATED_CHAR_RUN - 1), re.DOTALL)
_VOWELS = frozenset("aeiou")


@dataclass(frozen=True, slots=True)
class SpamCheckResult:
    is_spam: bool
    score: int  # 0-100, higher = more suspicious
    reasons: List[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class ServerSpamInput:
    """Fields of an intake submission the server-side check looks at."""

    description: str
    phone: str
    postal_code: str
    honeypot: Optional[str] = None
    name: Optional[str] = None
    form_started_at: Optional[datetime] = None


@dataclass(frozen=True, slots=True)
class ClientSpamInput:
    """Fields of the onboarding form draft the client-side check looks at."""

    description: str
    name: str
    phone: str
    form_started_at: datetime
    honeypot: Optional[str] = None


class _Score:
    def __init__(self) -> None:
        self.points = 0
        self.reasons: List[str] = []

    def add(self, reason: str, weight: int) -> None:
        self.reasons.append(reason)
        self.points += weight

    def result(self) -> SpamCheckResult:
        score = min(self.points, MAX_SCORE)
        return SpamCheckResult(is_spam=score >= SPAM_THRESHOLD, score=score, reasons=self.reasons)


def _honeypot(score: _Score, honeypot: Optional[str]) -> None:
    if honeypot and honeypot.strip():
        score.add("honeypot_filled", HONEYPOT_WEIGHT)


def _timing(score: _Score, started_at: datetime, now: datetime) -> None:
    elapsed = (now - started_at).total_seconds()
    if elapsed < 0:
        # Start time ahead of our clock: the sender's clock is off, no signal.
        return
    if elapsed < TOO_FAST_SECONDS:
        score.add("too_fast", TOO_FAST_WEIGHT)
    elif elapsed < SUSPICIOUSLY_FAST_SECONDS:
        score.add("suspiciously_fast", SUSPICIOUSLY_FAST_WEIGHT)


def _description(score: _Score, description: str, keywords: tuple[str, ...]) -> None:
    text = (description or "").lower()

    if _URL_PATTERN.search(text):
        score.add("contains_url", URL_WEIGHT)

    if any(keyword in text for keyword in keywords):
        score.add("spam_keyword", KEYWORD_WEIGHT)

    if _REPEATED_PATTERN.search(text):
        score.add("repeated_chars", REPEATED_CHARS_WEIGHT)


def _letters(name: str) -> str:
    folded = unicodedata.normalize("NFKD", name.lower())
    return "".join(ch for ch in folded if "a" <= ch <= "z")


def _name(score: _Score, name: str) -> None:
    if len(name.strip()) < 2:
        score.add("name_too_short", NAME_TOO_SHORT_WEIGHT)

    letters = _letters(name)
    if len(letters) > 3:
        ratio = sum(1 for ch in letters if ch in _VOWELS) / len(letters)
        if ratio < 0.1 or ratio > 0.8:
            score.add("suspicious_name", SUSPICIOUS_NAME_WEIGHT)


def _phone(score: _Score, phone: str) -> None:
    if len(digits_only(phone)) < MIN_PHONE_DIGITS:
        score.add("invalid_phone", INVALID_PHONE_WEIGHT)


def check_server_spam(submission: ServerSpamInput, received_at: datetime) -> SpamCheckResult:
    """
    Authoritative spam check run by the intake orchestrator.

    Timing is only scored when the client forwarded its form start time, and
    the name rules only when a name was submitted.
    """

    score = _Score()
    _honeypot(score, submission.honeypot)
    if submission.form_started_at is not None:
        _timing(score, submission.form_started_at, received_at)
    _description(score, submission.description, CORE_SPAM_KEYWORDS)
    if submission.name:
        _name(score, submission.name)
    _phone(score, submission.phone)
    if not validate_belgian_postal_code(submission.postal_code).valid:
        score.add("invalid_postal", INVALID_POSTAL_WEIGHT)
    return score.result()


def check_client_spam(draft: ClientSpamInput, now: datetime) -> SpamCheckResult:
    """Advisory pre-check. Never trusted for storage decisions."""

    score = _Score()
    _honeypot(score, draft.honeypot)
    _timing(score, draft.form_started_at, now)
    _description(score, draft.description, CLIENT_SPAM_KEYWORDS)
    _name(score, draft.name)
    _phone(score, draft.phone)
    return score.result()
