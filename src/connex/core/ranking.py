"""Recommendation ranking for Connex.

Scores every candidate against the requester from five additive
contributions (intents, timing, warm path, fit, recent activity), clamps
the total to 0-100, filters by minimum score, sorts and truncates. Each
recommendation carries the signals that explain it and a suggested
outreach message.
"""

import logging
import math
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace

from connex.core.constants import (
    BRIDGE_PATH_BONUS,
    BRIDGE_PATH_SIGNAL_STRENGTH,
    BRIDGE_REQUESTER_MIN_STRENGTH,
    BRIDGE_TARGET_MIN_STRENGTH,
    DIRECT_PATH_BONUS,
    DIRECT_PATH_MIN_STRENGTH,
    DIRECT_PATH_SIGNAL_STRENGTH,
    EVIDENCE_INTENTS,
    EVIDENCE_MESSAGES,
    EVIDENCE_TIMING,
    FIT_SIGNAL_STRENGTH,
    FULL_TEXT_LIMIT,
    INTENT_WEIGHT,
    MAX_EVIDENCE,
    MAX_SCORE,
    MIN_SCORE,
    RECENCY_SIGNAL_STRENGTH,
    RECENT_ACTIVITY_BONUS,
    RECENT_ACTIVITY_DAYS,
    SUBSTANTIVE_MESSAGE_LENGTH,
    TIMING_MATCH_BONUS,
    TIMING_MATCH_SIGNAL_STRENGTH,
    TIMING_RECENT_DAYS,
    TIMING_WEIGHT,
    TOP_INTENTS,
)
from connex.core.fit import calculate_fit
from connex.core.matching import normalize_city
from connex.core.signals import days_since, parse_message_date
from connex.core.types import (
    Activation,
    DiscoveryContext,
    Evidence,
    FitResult,
    Profile,
    Recommendation,
    RecommendationSignal,
    Relationship,
    ScanOptions,
    TimingSignal,
    WarmPath,
)

logger = logging.getLogger(__name__)


def build_warm_paths(
    relationships: Sequence[Relationship], target: str, requester: str
) -> list[WarmPath]:
    """Find routes from the requester to a target through the interaction graph.

    A direct relationship of strength 30+ is a direct path. Otherwise any
    person the requester knows strongly (40+) who also knows the target
    (30+) is a bridge, rated by the weaker of the two legs.

    Args:
        relationships: Interaction graph edges.
        target: Candidate name.
        requester: Requester name.

    Returns:
        A direct path first if any, then bridges, strongest first.
    """
    paths: list[WarmPath] = []

    direct = next(
        (r for r in relationships if r.involves(requester) and r.other(requester) == target),
        None,
    )
    if direct is not None and direct.strength >= DIRECT_PATH_MIN_STRENGTH:
        paths.append(
            WarmPath(
                type="direct",
                strength=direct.strength,
                description=f"You've talked directly (strength: {direct.strength})",
                bidirectional=direct.bidirectional,
            )
        )

    yours = [
        (r.other(requester), r.strength)
        for r in relationships
        if r.involves(requester) and r.strength >= BRIDGE_REQUESTER_MIN_STRENGTH
    ]
    theirs = [
        (r.other(target), r.strength)
        for r in relationships
        if r.involves(target) and r.strength >= BRIDGE_TARGET_MIN_STRENGTH
    ]

    bridges: list[WarmPath] = []
    for via, your_strength in yours:
        their_strength = next((s for person, s in theirs if person == via), None)
        if their_strength is None:
            continue
        bridges.append(
            WarmPath(
                type="bridge",
                strength=min(your_strength, their_strength),
                description=f"{via} knows you both ({your_strength}/{their_strength})",
                via=via,
                your_strength=your_strength,
                their_strength=their_strength,
            )
        )

    paths.extend(sorted(bridges, key=lambda p: p.strength, reverse=True))
    return paths


@dataclass(frozen=True)
class _Contribution:
    """Points and explanations from one scoring contributor."""

    points: float = 0.0
    signals: tuple[RecommendationSignal, ...] = ()
    timing: TimingSignal | None = None
    warm_path: WarmPath | None = None
    fit: FitResult | None = None


Contributor = Callable[[Profile, Profile, DiscoveryContext, str | None], _Contribution]


def _intent_contribution(
    requester: Profile, candidate: Profile, context: DiscoveryContext, city: str | None
) -> _Contribution:
    theirs = sorted(
        (i for i in context.intents if i.sender == candidate.name),
        key=lambda i: i.strength,
        reverse=True,
    )[:TOP_INTENTS]
    return _Contribution(
        points=sum(i.strength * INTENT_WEIGHT for i in theirs),
        signals=tuple(
            RecommendationSignal(
                type="intent",
                description=f"{i.type}: {i.detail or i.full_text[:50]}",
                strength=i.strength,
            )
            for i in theirs
        ),
    )


def _timing_contribution(
    requester: Profile, candidate: Profile, context: DiscoveryContext, city: str | None
) -> _Contribution:
    theirs = [t for t in context.timing_signals if t.sender == candidate.name]
    if not theirs:
        return _Contribution()
    best = max(theirs, key=lambda t: t.strength)
    points = best.strength * TIMING_WEIGHT
    signals: tuple[RecommendationSignal, ...] = ()
    if city and best.location and normalize_city(city) == normalize_city(best.location):
        points += TIMING_MATCH_BONUS
        when = "NOW" if best.days_since <= TIMING_RECENT_DAYS else "soon"
        signals = (
            RecommendationSignal(
                type="timing_match",
                description=f"In {city} {when}!",
                strength=TIMING_MATCH_SIGNAL_STRENGTH,
            ),
        )
    return _Contribution(points=points, signals=signals, timing=best)


def _warm_path_contribution(
    requester: Profile, candidate: Profile, context: DiscoveryContext, city: str | None
) -> _Contribution:
    paths = build_warm_paths(context.relationships, candidate.name, requester.name)
    if not paths:
        return _Contribution()
    best = paths[0]
    direct = best.type == "direct"
    return _Contribution(
        points=DIRECT_PATH_BONUS if direct else BRIDGE_PATH_BONUS,
        signals=(
            RecommendationSignal(
                type="warm_path",
                description=best.description,
                strength=DIRECT_PATH_SIGNAL_STRENGTH if direct else BRIDGE_PATH_SIGNAL_STRENGTH,
            ),
        ),
        warm_path=best,
    )


def _fit_contribution(
    requester: Profile, candidate: Profile, context: DiscoveryContext, city: str | None
) -> _Contribution:
    fit = calculate_fit(requester, candidate, context)
    return _Contribution(
        points=fit.score,
        signals=tuple(
            RecommendationSignal(type="fit", description=reason, strength=FIT_SIGNAL_STRENGTH)
            for reason in fit.reasons
        ),
        fit=fit,
    )


def _recency_contribution(
    requester: Profile, candidate: Profile, context: DiscoveryContext, city: str | None
) -> _Contribution:
    recent = [
        m
        for m in context.messages
        if m.sender == candidate.name
        and parse_message_date(m.timestamp) is not None
        and days_since(m.timestamp, context.reference_time) < RECENT_ACTIVITY_DAYS
    ]
    if not recent:
        return _Contribution()
    return _Contribution(
        points=RECENT_ACTIVITY_BONUS,
        signals=(
            RecommendationSignal(
                type="recency",
                description=f"Active in last {RECENT_ACTIVITY_DAYS} days ({len(recent)} messages)",
                strength=RECENCY_SIGNAL_STRENGTH,
            ),
        ),
    )


CONTRIBUTORS: tuple[tuple[str, Contributor], ...] = (
    ("intents", _intent_contribution),
    ("timing", _timing_contribution),
    ("warm_path", _warm_path_contribution),
    ("fit", _fit_contribution),
    ("recency", _recency_contribution),
)


def clamp_score(raw: float) -> int:
    """Round half up and clamp to the 0-100 score range."""
    return max(MIN_SCORE, min(MAX_SCORE, math.floor(raw + 0.5)))


def score_candidate(
    requester: Profile,
    candidate: Profile,
    context: DiscoveryContext,
    reference_city: str | None = None,
    contributors: Sequence[tuple[str, Contributor]] = CONTRIBUTORS,
) -> Recommendation:
    """Score one candidate and attach signals and an activation.

    A contributor that raises is logged and skipped; the rest still count.

    Args:
        requester: The requester's profile.
        candidate: The candidate's profile.
        context: Shared, read-only discovery context.
        reference_city: Requester's city for timing matches.
        contributors: Named contribution functions, applied in order.

    Returns:
        The recommendation with a clamped score.
    """
    raw = 0.0
    signals: list[RecommendationSignal] = []
    timing: TimingSignal | None = None
    warm_path: WarmPath | None = None
    fit = FitResult()

    for name, contributor in contributors:
        try:
            part = contributor(requester, candidate, context, reference_city)
        except Exception as e:
            logger.warning("Scoring %s failed for %s: %s", name, candidate.name, e)
            continue
        raw += part.points
        signals.extend(part.signals)
        timing = part.timing or timing
        warm_path = part.warm_path or warm_path
        fit = part.fit or fit

    recommendation = Recommendation(
        person=candidate.name,
        score=clamp_score(raw),
        signals=tuple(signals),
        timing=timing,
        warm_path=warm_path,
        fit=fit,
    )
    return replace(recommendation, activation=generate_activation(recommendation, requester))


def _after_colon(text: str) -> str:
    return text.split(":")[1].strip() if ":" in text else ""


def generate_activation(recommendation: Recommendation, requester: Profile) -> Activation:
    """Suggest how to reach the recommended person and what to say.

    Urgency is "urgent" when they are in the requester's city, "high" when
    the best timing signal is at most 7 days old, otherwise "normal". The
    method follows the warm path: direct message, intro request through
    the bridge, or cold outreach.
    """
    rec = recommendation
    urgency = "normal"
    if rec.timing is not None and rec.timing.days_since <= TIMING_RECENT_DAYS:
        urgency = "high"
    if any(s.type == "timing_match" for s in rec.signals):
        urgency = "urgent"

    first_name = rec.person.split(" ")[0]
    top_intent = next((s for s in rec.signals if s.type == "intent"), None)
    top_need = rec.fit.you_can_help[0].need if rec.fit.you_can_help else None

    if rec.warm_path is not None and rec.warm_path.type == "bridge" and rec.warm_path.via:
        via = rec.warm_path.via
        reason = top_need or (top_intent.description if top_intent else "would love to connect")
        detail = _after_colon(reason) if ":" in reason else reason
        return Activation(
            action=f"Ask {via} for an intro",
            method="intro_request",
            message=(
                f"Hey {via.split(' ')[0]}! Would you intro me to {first_name}? "
                f"I saw {detail} and think I could help."
            ),
            urgency=urgency,  # type: ignore[arg-type]
        )

    if top_need:
        hook = f"I noticed you're looking for {top_need}. I might be able to help with that."
    elif top_intent is not None:
        topic = _after_colon(top_intent.description) or "what you mentioned"
        hook = f"Saw your message about {topic}."
    else:
        hook = "Been meaning to connect!"
    message = f"Hey {first_name}! {hook} Would love to chat if you're up for it."

    if rec.warm_path is not None and rec.warm_path.type == "direct":
        return Activation(
            action=f"Message {rec.person} directly",
            method="direct_message",
            message=message,
            urgency=urgency,  # type: ignore[arg-type]
        )
    return Activation(
        action="Reach out in the group chat or find their contact",
        method="cold_outreach",
        message=message,
        urgency=urgency,  # type: ignore[arg-type]
    )


def discover_connections(
    requester: Profile,
    candidates: Sequence[Profile],
    context: DiscoveryContext,
    options: ScanOptions | None = None,
    workers: int = 1,
) -> list[Recommendation]:
    """Rank candidates the requester should talk to.

    The requester is skipped by exact name. Candidates below min_score are
    dropped; the rest are sorted by score (ties keep candidate order) and
    truncated to max_results.

    Args:
        requester: The requester's profile.
        candidates: Candidate profiles in roster order.
        context: Shared discovery context, treated as read-only.
        options: Reference city, max results and min score.
        workers: Thread count for scoring; 1 scores sequentially.

    Returns:
        Ranked recommendations.
    """
    options = options or ScanOptions()
    eligible = [c for c in candidates if c.name != requester.name]

    def score(candidate: Profile) -> Recommendation:
        return score_candidate(requester, candidate, context, options.reference_city)

    if workers > 1 and len(eligible) > 1:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            scored = list(executor.map(score, eligible))
    else:
        scored = [score(c) for c in eligible]

    kept = [r for r in scored if r.score >= options.min_score]
    ranked = sorted(kept, key=lambda r: r.score, reverse=True)
    logger.debug(
        "Scored %d candidates, %d above min score %d", len(scored), len(kept), options.min_score
    )
    return ranked[: options.max_results]


def gather_evidence(person: str, context: DiscoveryContext) -> tuple[Evidence, ...]:
    """Collect up to four supporting quotes for a recommendation.

    Up to two intent quotes and one timing quote come first, then up to
    two of the person's latest substantive messages not already quoted.
    """
    evidence: list[Evidence] = []
    intents = [i for i in context.intents if i.sender == person][:EVIDENCE_INTENTS]
    evidence.extend(Evidence("intent", i.full_text, i.timestamp) for i in intents)
    timing = [t for t in context.timing_signals if t.sender == person][:EVIDENCE_TIMING]
    evidence.extend(Evidence("timing", t.detail, t.timestamp) for t in timing)

    substantive = [
        m
        for m in context.messages
        if m.sender == person and len(m.text) > SUBSTANTIVE_MESSAGE_LENGTH
    ]
    for message in substantive[-EVIDENCE_MESSAGES:]:
        quote = message.text[:FULL_TEXT_LIMIT]
        if not any(e.quote == quote for e in evidence):
            evidence.append(Evidence("message", quote, message.timestamp))

    return tuple(evidence[:MAX_EVIDENCE])


def generate_summary(recommendations: Sequence[Recommendation], city: str | None = None) -> str:
    """Summarise a ranked list in a sentence or two."""
    if not recommendations:
        return (
            "No strong recommendations found. "
            "Try importing more chat history or updating your profile."
        )

    urgent = sum(1 for r in recommendations if r.activation and r.activation.urgency == "urgent")
    high = sum(1 for r in recommendations if r.activation and r.activation.urgency == "high")

    summary = f"Found {len(recommendations)} people you should connect with"
    if urgent:
        summary += f". {urgent} urgent: they're in {city or 'your city'} NOW"
    if high:
        summary += f". {high} time-sensitive"

    top = recommendations[0]
    action = top.activation.action if top.activation else "reach out"
    summary += f".\n\nTop recommendation: {top.person} (score: {top.score}), {action}"
    return summary
