"""Fit scoring between the requester and a candidate.

The fit score is the sum of independent contributions: what you can
offer against their needs, what they offer against your needs, deep
shared interests, and a shared industry. A contribution that fails is
logged and skipped so the others still count.
"""

import logging
from collections.abc import Callable, Sequence

from connex.core.constants import (
    COMPLEMENTARY_MATCH_SCORE,
    NEED_INTENT_TYPES,
    OFFER_INTENT_TYPES,
    SAME_INDUSTRY_SCORE,
    SHARED_INTERESTS_MIN,
    SHARED_INTERESTS_SCORE,
)
from connex.core.matching import flatten_interests, fuzzy_match, words_overlap
from connex.core.types import DiscoveryContext, FitResult, HelpPair, IntentSignal, Profile

logger = logging.getLogger(__name__)

FitScorer = Callable[[Profile, Profile, Sequence[IntentSignal]], FitResult]


def _lowered(values: Sequence[str | None]) -> list[str]:
    return [v.lower() for v in values if v]


def _intent_phrases(intents: Sequence[IntentSignal], types: frozenset[str]) -> list[str]:
    return [i.detail or i.type for i in intents if i.type in types]


def _you_can_help(
    requester: Profile, candidate: Profile, intents: Sequence[IntentSignal]
) -> FitResult:
    offers = _lowered(requester.offering)
    needs = _lowered([*candidate.looking_for, *_intent_phrases(intents, NEED_INTENT_TYPES)])
    pairs = [
        HelpPair(need, offer) for need in needs for offer in offers if words_overlap(offer, need)
    ]
    return FitResult(
        score=COMPLEMENTARY_MATCH_SCORE * len(pairs),
        reasons=tuple(f"You can help: {p.offer} → their need for {p.need}" for p in pairs),
        you_can_help=tuple(pairs),
    )


def _they_can_help(
    requester: Profile, candidate: Profile, intents: Sequence[IntentSignal]
) -> FitResult:
    needs = _lowered(requester.looking_for)
    offers = _lowered([*candidate.offering, *_intent_phrases(intents, OFFER_INTENT_TYPES)])
    pairs = [
        HelpPair(need, offer) for need in needs for offer in offers if words_overlap(offer, need)
    ]
    return FitResult(
        score=COMPLEMENTARY_MATCH_SCORE * len(pairs),
        reasons=tuple(f"They can help: {p.offer} → your need for {p.need}" for p in pairs),
        they_can_help=tuple(pairs),
    )


def _shared_interests(
    requester: Profile, candidate: Profile, intents: Sequence[IntentSignal]
) -> FitResult:
    theirs = flatten_interests(candidate.interests)
    yours = dict.fromkeys(flatten_interests(requester.interests))
    shared = [mine for mine in yours if any(fuzzy_match(mine, t) for t in theirs)]
    if len(shared) < SHARED_INTERESTS_MIN:
        return FitResult()
    return FitResult(
        score=SHARED_INTERESTS_SCORE,
        reasons=(f"Deep shared interests: {', '.join(shared[:3])}",),
    )


def _same_industry(
    requester: Profile, candidate: Profile, intents: Sequence[IntentSignal]
) -> FitResult:
    if requester.industry and candidate.industry:
        if fuzzy_match(requester.industry, candidate.industry):
            return FitResult(
                score=SAME_INDUSTRY_SCORE,
                reasons=(f"Same industry: {candidate.industry}",),
            )
    return FitResult()


FIT_SCORERS: tuple[tuple[str, FitScorer], ...] = (
    ("you_can_help", _you_can_help),
    ("they_can_help", _they_can_help),
    ("shared_interests", _shared_interests),
    ("same_industry", _same_industry),
)


def calculate_fit(
    requester: Profile,
    candidate: Profile,
    context: DiscoveryContext | None = None,
    scorers: Sequence[tuple[str, FitScorer]] = FIT_SCORERS,
) -> FitResult:
    """Score how well the requester and a candidate complement each other.

    Needs and offers come from the profiles plus the candidate's own
    intent signals (seeking/hiring/job_seeking/fundraising count as needs,
    offering/offering_intro as offers). Contributions are summed without
    a cap.

    Args:
        requester: The requester's profile.
        candidate: The candidate's profile.
        context: Shared discovery context supplying intent signals.
        scorers: Named contribution functions, applied in order.

    Returns:
        FitResult with the total score, reasons and help pairs.
    """
    intents: list[IntentSignal] = []
    if context is not None:
        intents = [i for i in context.intents if i.sender == candidate.name]

    score = 0
    reasons: list[str] = []
    you_can_help: list[HelpPair] = []
    they_can_help: list[HelpPair] = []

    for name, scorer in scorers:
        try:
            part = scorer(requester, candidate, intents)
        except Exception as e:
            logger.warning("Fit scorer %s failed for %s: %s", name, candidate.name, e)
            continue
        score += part.score
        reasons.extend(part.reasons)
        you_can_help.extend(part.you_can_help)
        they_can_help.extend(part.they_can_help)

    return FitResult(
        score=score,
        reasons=tuple(reasons),
        you_can_help=tuple(you_can_help),
        they_can_help=tuple(they_can_help),
    )
