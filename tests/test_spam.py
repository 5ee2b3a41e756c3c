"""
Tests for `domain/spam.py`.

Covers contract rules:
- A filled honeypot alone makes a submission spam.
- Adding a signal never lowers the score; the score never exceeds 100.
- Timing and name rules only apply server-side when those values were sent.
- The client keyword list is a superset of the server's.
"""

from __future__ import annotations

import itertools
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from domain.spam import (
    CLIENT_SPAM_KEYWORDS,
    CORE_SPAM_KEYWORDS,
    MAX_SCORE,
    SPAM_THRESHOLD,
    ClientSpamInput,
    ServerSpamInput,
    check_client_spam,
    check_server_spam,
)

NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)

CLEAN_SERVER = ServerSpamInput(
    description="Des souris dans le grenier depuis deux semaines.",
    phone="+32470123456",
    postal_code="1000",
)

CLEAN_CLIENT = ClientSpamInput(
    description="Des souris dans le grenier depuis deux semaines.",
    name="Marie Dubois",
    phone="0470 12 34 56",
    form_started_at=NOW - timedelta(minutes=3),
)


def test_clean_server_submission_scores_zero() -> None:
    result = check_server_spam(CLEAN_SERVER, received_at=NOW)

    assert result.is_spam is False
    assert result.score == 0
    assert result.reasons == []


def test_clean_client_draft_scores_zero() -> None:
    result = check_client_spam(CLEAN_CLIENT, now=NOW)

    assert result.is_spam is False
    assert result.score == 0


@pytest.mark.parametrize("honeypot", ["x", "http://bot.example", "  filled  "])
def test_honeypot_alone_is_spam_on_both_sides(honeypot: str) -> None:
    server = check_server_spam(replace(CLEAN_SERVER, honeypot=honeypot), received_at=NOW)
    client = check_client_spam(replace(CLEAN_CLIENT, honeypot=honeypot), now=NOW)

    assert server.is_spam is True
    assert server.score >= SPAM_THRESHOLD
    assert "honeypot_filled" in server.reasons
    assert client.is_spam is True
    assert "honeypot_filled" in client.reasons


def test_blank_honeypot_is_ignored() -> None:
    result = check_server_spam(replace(CLEAN_SERVER, honeypot="   "), received_at=NOW)

    assert result.score == 0


def test_url_and_keyword_cross_the_threshold() -> None:
    submission = replace(CLEAN_SERVER, description="Click here: https://casino.example")

    result = check_server_spam(submission, received_at=NOW)

    assert result.is_spam is True
    assert result.score == 55
    assert result.reasons == ["contains_url", "spam_keyword"]


def test_repeated_characters_need_a_run_of_six() -> None:
    five = check_server_spam(replace(CLEAN_SERVER, description="Au secours aaaaa"), received_at=NOW)
    six = check_server_spam(replace(CLEAN_SERVER, description="Au secours aaaaaa"), received_at=NOW)

    assert "repeated_chars" not in five.reasons
    assert "repeated_chars" in six.reasons
    assert six.score == 15


def test_server_checks_postal_code_client_does_not() -> None:
    server = check_server_spam(replace(CLEAN_SERVER, postal_code="0999"), received_at=NOW)

    assert server.reasons == ["invalid_postal"]
    assert server.score == 10


def test_short_phone_is_a_signal() -> None:
    result = check_server_spam(replace(CLEAN_SERVER, phone="0470 12"), received_at=NOW)

    assert result.reasons == ["invalid_phone"]


def test_server_timing_only_when_form_start_is_forwarded() -> None:
    no_timing = check_server_spam(CLEAN_SERVER, received_at=NOW)
    too_fast = check_server_spam(
        replace(CLEAN_SERVER, form_started_at=NOW - timedelta(seconds=3)), received_at=NOW
    )
    slow_ish = check_server_spam(
        replace(CLEAN_SERVER, form_started_at=NOW - timedelta(seconds=10)), received_at=NOW
    )

    assert no_timing.reasons == []
    assert too_fast.reasons == ["too_fast"]
    assert too_fast.score == 40
    assert slow_ish.reasons == ["suspiciously_fast"]
    assert slow_ish.score == 15


def test_form_start_in_the_future_is_ignored() -> None:
    ahead = replace(CLEAN_SERVER, form_started_at=NOW + timedelta(minutes=2))

    result = check_server_spam(ahead, received_at=NOW)

    assert result.reasons == []
    assert result.score == 0


def test_client_timing_bands() -> None:
    assert check_client_spam(replace(CLEAN_CLIENT, form_started_at=NOW - timedelta(seconds=5)), now=NOW).reasons == ["too_fast"]
    assert check_client_spam(replace(CLEAN_CLIENT, form_started_at=NOW - timedelta(seconds=14)), now=NOW).reasons == ["suspiciously_fast"]
    assert check_client_spam(replace(CLEAN_CLIENT, form_started_at=NOW - timedelta(seconds=15)), now=NOW).reasons == []


def test_too_fast_with_short_phone_is_client_spam() -> None:
    draft = replace(CLEAN_CLIENT, form_started_at=NOW - timedelta(seconds=2), phone="0470")

    result = check_client_spam(draft, now=NOW)

    assert result.is_spam is True
    assert result.score == 50


def test_name_rules() -> None:
    too_short = check_client_spam(replace(CLEAN_CLIENT, name="A"), now=NOW)
    consonants = check_client_spam(replace(CLEAN_CLIENT, name="Xkcdzbrt"), now=NOW)
    accented = check_client_spam(replace(CLEAN_CLIENT, name="Hélène Gérard"), now=NOW)

    assert too_short.reasons == ["name_too_short"]
    assert consonants.reasons == ["suspicious_name"]
    assert accented.reasons == []


def test_server_name_rules_only_when_name_is_sent() -> None:
    without = check_server_spam(CLEAN_SERVER, received_at=NOW)
    with_bad_name = check_server_spam(replace(CLEAN_SERVER, name="Xkcdzbrt"), received_at=NOW)

    assert without.reasons == []
    assert with_bad_name.reasons == ["suspicious_name"]


def test_client_keyword_list_extends_server_list() -> None:
    assert set(CORE_SPAM_KEYWORDS) < set(CLIENT_SPAM_KEYWORDS)

    text = "Congratulations, we need help with wasps"
    client = check_client_spam(replace(CLEAN_CLIENT, description=text), now=NOW)
    server = check_server_spam(replace(CLEAN_SERVER, description=text), received_at=NOW)

    assert "spam_keyword" in client.reasons
    assert "spam_keyword" not in server.reasons


def test_keyword_match_is_case_insensitive() -> None:
    result = check_server_spam(replace(CLEAN_SERVER, description="Free Money for you"), received_at=NOW)

    assert result.reasons == ["spam_keyword"]


def test_score_is_capped_at_100() -> None:
    everything = ServerSpamInput(
        description="WINNER!!!!!!! bitcoin casino http://x.example",
        phone="12",
        postal_code="99",
        honeypot="bot",
        name="Q",
        form_started_at=NOW - timedelta(seconds=1),
    )

    result = check_server_spam(everything, received_at=NOW)

    assert result.score == MAX_SCORE
    assert result.is_spam is True
    assert len(result.reasons) >= 6


SIGNALS = {
    "honeypot": {"honeypot": "bot"},
    "url": {"description": "see www.example.com"},
    "keyword": {"description": "crypto help"},
    "phone": {"phone": "123"},
    "postal": {"postal_code": "12"},
    "timing": {"form_started_at": NOW - timedelta(seconds=2)},
    "name": {"name": "Zzzzz"},
}


def _build(names: tuple[str, ...]) -> ServerSpamInput:
    changes: dict = {}
    description_parts = []
    for name in names:
        for key, value in SIGNALS[name].items():
            if key == "description":
                description_parts.append(value)
            else:
                changes[key] = value
    if description_parts:
        changes["description"] = " / ".join(description_parts)
    return replace(CLEAN_SERVER, **changes)


def test_adding_a_signal_never_lowers_the_score() -> None:
    names = tuple(SIGNALS)
    for size in range(len(names)):
        for subset in itertools.combinations(names, size):
            base = check_server_spam(_build(subset), received_at=NOW).score
            for extra in names:
                if extra in subset:
                    continue
                more = check_server_spam(_build(subset + (extra,)), received_at=NOW).score
                assert more >= base, (subset, extra)
                assert more <= MAX_SCORE


@pytest.mark.parametrize(
    "signal, reason, weight",
    [
        ("honeypot", "honeypot_filled", 50),
        ("url", "contains_url", 30),
        ("keyword", "spam_keyword", 25),
        ("phone", "invalid_phone", 10),
        ("postal", "invalid_postal", 10),
        ("timing", "too_fast", 40),
        ("name", "suspicious_name", 15),
    ],
)
def test_single_signal_adds_exactly_its_weight(signal: str, reason: str, weight: int) -> None:
    result = check_server_spam(_build((signal,)), received_at=NOW)

    assert result.score == weight
    assert result.reasons == [reason]
