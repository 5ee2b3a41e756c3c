"""
Domain: priority score and SLA deadline (pure).

Computed exactly once at intake and stored on the Lead, so historical leads keep
the rules that applied when they were created.

Pest base score, first matching class wins (checked in this order):
  bedbug 90, cockroach 85, rat 80, wasp/hornet 70, mouse 60, ant 45, pigeon 40,
  no match 30.

Urgency multiplier: IMMEDIATE x1.3, H48 x1.0, INSPECTION x0.7.
priority_score = round(base * multiplier), halves rounded up.

SLA due = submission time + 2h (IMMEDIATE), 12h (H48), 48h (INSPECTION).
Plain UTC arithmetic, not business-hours aware.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Tuple

from .lead import Urgency
from .time import require_utc_timestamp

DEFAULT_PEST_SCORE = 30

# (score, keyword patterns) in match priority order. Keywords are FR / NL / EN
# regex fragments matched at the start of a word, so "rats" and "ratten" match
# "rat" but "pirate" does not. English "ant" is a whole word only ("antenne").
# The onboarding form category ids (wasps, ants, ...) must all resolve here.
PEST_SCORE_TABLE: Tuple[Tuple[int, Tuple[str, ...]], ...] = (
    (90, ("punaise", "bedwants", "bedbug", "bed bug")),
    (85, ("cafard", "blatte", "kakkerlak", "cockroach", "roach")),
    (80, ("rat",)),
    (70, ("guepe", "frelon", "wesp", "hoornaar", "horzel", "wasp", "hornet")),
    (60, ("souris", "muis", "muizen", "mouse", "mice")),
    (45, ("fourmi", "mier", r"ants?\b")),
    (40, ("pigeon", "duif", "duiven")),
)

URGENCY_MULTIPLIERS: dict[Urgency, Decimal] = {
    Urgency.IMMEDIATE: Decimal("1.3"),
    Urgency.H48: Decimal("1.0"),
    Urgency.INSPECTION: Decimal("0.7"),
}

SLA_OFFSETS: dict[Urgency, timedelta] = {
    Urgency.IMMEDIATE: timedelta(hours=2),
    Urgency.H48: timedelta(hours=12),
    Urgency.INSPECTION: timedelta(hours=48),
}

_PEST_PATTERNS = tuple(
    (score, re.compile(r"\b(?:" + "|".join(keywords) + ")"))
    for score, keywords in PEST_SCORE_TABLE
)


@dataclass(frozen=True, slots=True)
class PriorityAssessment:
    priority_score: int
    sla_due_at: datetime


def _fold(text: str) -> str:
    """Lowercase and strip accents so 'Guêpes' matches 'guepe'."""
    decomposed = unicodedata.normalize("NFKD", (text or "").lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def base_pest_score(pest_detail: str) -> int:
    text = _fold(pest_detail)
    for score, pattern in _PEST_PATTERNS:
        if pattern.search(text):
            return score
    return DEFAULT_PEST_SCORE


def calculate_priority_score(pest_detail: str, urgency: Urgency) -> int:
    raw = Decimal(base_pest_score(pest_detail)) * URGENCY_MULTIPLIERS[urgency]
    return int(raw.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def calculate_sla_due_at(urgency: Urgency, submitted_at: datetime) -> datetime:
    require_utc_timestamp("submitted_at", submitted_at)
    return submitted_at + SLA_OFFSETS[urgency]


def assess_priority(pest_detail: str, urgency: Urgency, submitted_at: datetime) -> PriorityAssessment:
    """Priority score and SLA deadline for one new lead."""

    return PriorityAssessment(
        priority_score=calculate_priority_score(pest_detail, urgency),
        sla_due_at=calculate_sla_due_at(urgency, submitted_at),
    )
