"""Signal extraction for Connex.

Turns a message stream into intent and timing signals, and infers
per-member interests and locations from what each member wrote. Every
age is computed against an explicit reference time so results are
reproducible.
"""

import logging
import re
from collections.abc import Iterable, Sequence
from datetime import date, datetime

from connex.core.constants import (
    FULL_TEXT_LIMIT,
    INTENT_MEDIUM_DAYS,
    INTENT_MEDIUM_MULTIPLIER,
    INTENT_RECENT_DAYS,
    INTENT_RECENT_MULTIPLIER,
    INTENT_STALE_MULTIPLIER,
    INTEREST_CATEGORIES,
    KNOWN_CITIES,
    MEMBER_LOCATION_CONFIDENCE,
    TIMING_MAX_DAYS,
    TIMING_RECENT_DAYS,
    TIMING_RECENT_MULTIPLIER,
    TIMING_STALE_MULTIPLIER,
    UNPARSEABLE_DAYS,
)
from connex.core.rules import INTENT_RULES, TIMING_RULES, apply_rules, captured_detail
from connex.core.types import IntentSignal, Interest, MemberLocation, Message, TimingSignal

logger = logging.getLogger(__name__)

# YYYY-MM-DD, optionally followed by a time
_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})(?:[T ].*)?$")
# M/D/YY or MM/DD/YYYY, optionally followed by ", time"
_MDY_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2,4})(?:,.*)?$")


def parse_message_date(timestamp: str | None) -> date | None:
    """Parse a message timestamp leniently.

    Only the calendar date is kept; any time-of-day suffix is ignored.

    Args:
        timestamp: Raw timestamp text from the transcript.

    Returns:
        The message date, or None if the text is not a recognised format
        or names an impossible date.
    """
    if not timestamp:
        return None
    text = timestamp.strip()

    iso = _ISO_DATE.match(text)
    if iso:
        year, month, day = (int(g) for g in iso.groups())
    else:
        mdy = _MDY_DATE.match(text)
        if not mdy:
            return None
        month, day, year = (int(g) for g in mdy.groups())
        if year < 100:
            year += 2000

    try:
        return date(year, month, day)
    except ValueError:
        logger.debug("Impossible date in timestamp %r", timestamp)
        return None


def days_since(timestamp: str | None, now: datetime) -> int:
    """Return whole days between a message timestamp and now.

    Unparseable timestamps are treated as maximally stale (999 days).
    """
    message_date = parse_message_date(timestamp)
    if message_date is None:
        return UNPARSEABLE_DAYS
    return (now.date() - message_date).days


def intent_multiplier(days: int) -> float:
    """Recency multiplier for intent signals (tier bounds are inclusive)."""
    if days <= INTENT_RECENT_DAYS:
        return INTENT_RECENT_MULTIPLIER
    if days <= INTENT_MEDIUM_DAYS:
        return INTENT_MEDIUM_MULTIPLIER
    return INTENT_STALE_MULTIPLIER


def timing_multiplier(days: int) -> float:
    """Recency multiplier for timing signals that survived the 14-day cut."""
    if days <= TIMING_RECENT_DAYS:
        return TIMING_RECENT_MULTIPLIER
    return TIMING_STALE_MULTIPLIER


def extract_intents(messages: Iterable[Message], now: datetime) -> list[IntentSignal]:
    """Extract intent signals from every message.

    Every intent rule is tried against every message, so one message can
    yield several signals of several types. Messages that match nothing
    contribute nothing.

    Args:
        messages: Transcript messages in order.
        now: Reference time used for recency scaling.

    Returns:
        Intent signals in message order, then rule order.
    """
    intents: list[IntentSignal] = []
    for message in messages:
        age = days_since(message.timestamp, now)
        multiplier = intent_multiplier(age)
        for rule, match in apply_rules(INTENT_RULES, message.text):
            intents.append(
                IntentSignal(
                    type=rule.category,  # type: ignore[arg-type]
                    sender=message.sender,
                    detail=captured_detail(rule, match),
                    full_text=message.text[:FULL_TEXT_LIMIT],
                    timestamp=message.timestamp,
                    days_since=age,
                    strength=rule.strength * multiplier,
                    raw_strength=rule.strength,
                )
            )

    logger.debug("Extracted %d intent signals", len(intents))
    return intents


def extract_timing_signals(messages: Iterable[Message], now: datetime) -> list[TimingSignal]:
    """Extract timing signals (travel, events, deadlines, life changes).

    Messages older than 14 days are skipped before any rule is applied.
    The captured group becomes the location and the whole match the detail.

    Args:
        messages: Transcript messages in order.
        now: Reference time used for the cut-off and recency scaling.

    Returns:
        Timing signals in message order, then rule order.
    """
    signals: list[TimingSignal] = []
    for message in messages:
        age = days_since(message.timestamp, now)
        if age > TIMING_MAX_DAYS:
            continue
        multiplier = timing_multiplier(age)
        for rule, match in apply_rules(TIMING_RULES, message.text):
            signals.append(
                TimingSignal(
                    type=rule.category,  # type: ignore[arg-type]
                    sender=message.sender,
                    location=captured_detail(rule, match),
                    detail=match.group(0),
                    timestamp=message.timestamp,
                    days_since=age,
                    strength=rule.strength * multiplier,
                )
            )

    logger.debug("Extracted %d timing signals", len(signals))
    return signals


def _member_text(name: str, messages: Sequence[Message]) -> str:
    return " ".join(m.text.lower() for m in messages if m.sender == name)


def extract_member_interests(name: str, messages: Sequence[Message]) -> list[Interest]:
    """Infer interest categories from a member's own messages.

    A category is reported when any of its keywords appears as a substring
    of the member's lower-cased messages. Confidence is the share of the
    category's keywords that appeared.

    Returns:
        Interests sorted by confidence, highest first.
    """
    text = _member_text(name, messages)
    found: list[Interest] = []
    for category, keywords in INTEREST_CATEGORIES.items():
        matched = tuple(kw for kw in keywords if kw in text)
        if matched:
            found.append(
                Interest(
                    category=category,
                    keywords=matched,
                    confidence=min(len(matched) / len(keywords), 1.0),
                )
            )
    return sorted(found, key=lambda i: i.confidence, reverse=True)


def extract_member_location(name: str, messages: Sequence[Message]) -> MemberLocation:
    """Infer the cities a member mentioned; the first one found is primary."""
    text = _member_text(name, messages)
    cities: list[str] = []
    for token, city in KNOWN_CITIES.items():
        if token in text and city not in cities:
            cities.append(city)
    if not cities:
        return MemberLocation()
    return MemberLocation(
        cities=tuple(cities),
        primary=cities[0],
        confidence=MEMBER_LOCATION_CONFIDENCE,
    )
