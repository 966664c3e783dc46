"""Extraction rule tables.

Every rule the extractors apply lives here as an ordered table of
(pattern, category, base strength) entries, so the rule set can be
audited and tested without touching the scoring logic. All patterns are
case-insensitive, and every rule is tried against every message.
"""

import re
from collections.abc import Iterator
from dataclasses import dataclass

from connex.core.constants import (
    EDGE_ATTENDED,
    EDGE_CAN_HELP_WITH,
    EDGE_INTERESTED_IN,
    EDGE_WANTS_HELP_WITH,
    EDGE_WANTS_TO_MEET,
    EDGE_WORKED_AT,
)


@dataclass(frozen=True)
class ExtractionRule:
    """A single text pattern and what a match means.

    Attributes:
        pattern: Compiled case-insensitive pattern. The first group, when
            present, captures the detail/target of the match.
        category: Signal type or edge type produced by a match.
        strength: Base strength before any recency scaling.
    """

    pattern: re.Pattern[str]
    category: str
    strength: float = 1.0

    @property
    def has_detail(self) -> bool:
        """Return True if the pattern captures a detail group."""
        return self.pattern.groups > 0


def _rule(pattern: str, category: str, strength: float = 1.0) -> ExtractionRule:
    return ExtractionRule(re.compile(pattern, re.IGNORECASE), category, strength)


# Intent rules: what people are trying to do
INTENT_RULES: tuple[ExtractionRule, ...] = (
    _rule(
        r"(?:i'?m |we'?re |currently )?(?:looking for|searching for|trying to find|need(?:ing)?)"
        r"\s+(.+?)(?:\.|!|\?|$)",
        "seeking",
        0.9,
    ),
    _rule(r"(?:anyone know|does anyone|who knows|can someone)\s+(.+?)(?:\?|$)", "asking", 0.85),
    _rule(r"(?:i'?m |we'?re )?hiring\s+(.+?)(?:\.|!|$)", "hiring", 0.95),
    _rule(
        r"(?:open role|job opening|looking to hire)\s*(?:for\s+)?(.+?)(?:\.|!|$)",
        "hiring",
        0.9,
    ),
    _rule(
        r"(?:looking for (?:a |an )?(?:new )?(?:job|role|position|opportunity))",
        "job_seeking",
        0.95,
    ),
    _rule(r"(?:open to (?:new )?opportunities|exploring options)", "job_seeking", 0.8),
    _rule(
        r"(?:raising|fundraising|looking for (?:investors?|funding|capital))",
        "fundraising",
        0.95,
    ),
    _rule(r"(?:series [a-d]|seed round|pre-seed)", "fundraising", 0.9),
    _rule(
        r"(?:i can help with|i'?m? offering|happy to help|let me know if you need)"
        r"\s+(.+?)(?:\.|!|$)",
        "offering",
        0.7,
    ),
    _rule(
        r"(?:can (?:someone |anyone )?intro|would love an intro|looking for intro)",
        "seeking_intro",
        0.9,
    ),
    _rule(r"(?:happy to intro|i can connect|want me to intro)", "offering_intro", 0.8),
)

# Timing rules: travel, events, deadlines and life changes
TIMING_RULES: tuple[ExtractionRule, ...] = (
    _rule(
        r"(?:i'?ll be in|heading to|flying to|going to|visiting)\s+([a-z\s]+?)"
        r"(?:\s+(?:next|this|on|in)\s+(?:week|month|monday|tuesday|wednesday|thursday|friday"
        r"|saturday|sunday)|\s+soon|$)",
        "travel_future",
        0.95,
    ),
    _rule(
        r"(?:just (?:landed|arrived)|i'?m in|currently in|based in)\s+([a-z\s]+?)(?:\s|$|!|\.)",
        "travel_current",
        0.9,
    ),
    _rule(
        r"(?:going to|attending|speaking at|will be at)\s+(.+?)"
        r"(?:\s+(?:next|this)\s+(?:week|month)|$)",
        "event",
        0.85,
    ),
    _rule(
        r"(?:deadline|launching|closing|announcing)\s+(?:next|this)\s+(?:week|month)",
        "deadline",
        0.9,
    ),
    _rule(
        r"(?:just (?:started|joined|left|quit)|new job|new role|starting at)",
        "life_change",
        0.8,
    ),
)

_NAME = r"([A-Z][a-z]+(?:\s+[A-Z][a-z]+)?)"

# Entity rules: typed edges from the sender to a captured target
ENTITY_RULES: tuple[ExtractionRule, ...] = (
    _rule(
        r"want(?:s|ed)? to (?:meet|connect with|intro to|introduction to)\s+" + _NAME,
        EDGE_WANTS_TO_MEET,
    ),
    _rule(r"looking (?:for|to meet)\s+" + _NAME, EDGE_WANTS_TO_MEET),
    _rule(r"can (?:you|someone) intro(?:duce)? (?:me to\s+)?" + _NAME, EDGE_WANTS_TO_MEET),
    _rule(r"interested in\s+([^.!?]+)", EDGE_INTERESTED_IN),
    _rule(r"passionate about\s+([^.!?]+)", EDGE_INTERESTED_IN),
    _rule(r"focused on\s+([^.!?]+)", EDGE_INTERESTED_IN),
    _rule(r"i can help (?:with\s+)?([^.!?]+)", EDGE_CAN_HELP_WITH),
    _rule(r"happy to (?:help|assist) (?:with\s+)?([^.!?]+)", EDGE_CAN_HELP_WITH),
    _rule(r"i know (?:a lot )?about\s+([^.!?]+)", EDGE_CAN_HELP_WITH),
    _rule(r"i need help (?:with\s+)?([^.!?]+)", EDGE_WANTS_HELP_WITH),
    _rule(r"looking for (?:help|advice) (?:on|with)\s+([^.!?]+)", EDGE_WANTS_HELP_WITH),
    _rule(r"anyone know (?:about\s+)?([^.!?]+)", EDGE_WANTS_HELP_WITH),
    _rule(r"i (?:went to|graduated from|attended)\s+([A-Z][^.!?,]+)", EDGE_ATTENDED),
    _rule(r"(?:i'm |i am )(?:a |an )?([A-Z][a-z]+) (?:alum|grad|graduate)", EDGE_ATTENDED),
    _rule(r"i (?:work|worked) (?:at|for)\s+([A-Z][^.!?,]+)", EDGE_WORKED_AT),
    _rule(r"i'm (?:at|with)\s+([A-Z][^.!?,]+)", EDGE_WORKED_AT),
)


def apply_rules(
    rules: tuple[ExtractionRule, ...], text: str
) -> Iterator[tuple[ExtractionRule, re.Match[str]]]:
    """Yield every (rule, match) pair for text.

    Rules are non-exclusive: each rule is tried in table order and every
    non-overlapping match of each rule is reported.

    Args:
        rules: Ordered rule table.
        text: Message text to scan.

    Yields:
        Tuples of the matching rule and the match object.
    """
    for rule in rules:
        for match in rule.pattern.finditer(text):
            yield rule, match


def captured_detail(rule: ExtractionRule, match: re.Match[str]) -> str | None:
    """Return the stripped first group of a match, or None when empty/absent."""
    if not rule.has_detail:
        return None
    value = match.group(1)
    if value is None:
        return None
    return value.strip() or None
