"""Discovery pipeline orchestration.

Builds the shared DiscoveryContext from a transcript, derives candidate
profiles from the roster, runs the ranker and assembles a ScanReport.
Everything is recomputed per call; nothing is cached between scans.
"""

import dataclasses
import logging
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime

from connex.core.graph import (
    EntityGraph,
    add_relationship_edges,
    build_interaction_graph,
    extract_entity_graph,
)
from connex.core.graph_ops import find_bridge_opportunities
from connex.core.ranking import discover_connections, gather_evidence, generate_summary
from connex.core.signals import (
    extract_intents,
    extract_member_interests,
    extract_member_location,
    extract_timing_signals,
)
from connex.core.types import (
    DiscoveryContext,
    Member,
    Message,
    Profile,
    ScanOptions,
    ScanReport,
)

logger = logging.getLogger(__name__)


def roster_from_messages(messages: Iterable[Message]) -> tuple[Member, ...]:
    """Derive a member roster from message senders, in first-seen order."""
    counts: dict[str, int] = {}
    first_seen: dict[str, str] = {}
    last_seen: dict[str, str] = {}
    for message in messages:
        counts[message.sender] = counts.get(message.sender, 0) + 1
        first_seen.setdefault(message.sender, message.timestamp)
        last_seen[message.sender] = message.timestamp
    return tuple(
        Member(
            name=name,
            message_count=count,
            first_seen=first_seen[name] or None,
            last_seen=last_seen[name] or None,
        )
        for name, count in counts.items()
    )


def build_context(
    messages: Iterable[Message],
    members: Iterable[Member] | None,
    now: datetime,
    extra_graph: EntityGraph | None = None,
) -> DiscoveryContext:
    """Extract signals and build both graphs for one transcript.

    Args:
        messages: Transcript messages in order.
        members: Chat roster; derived from the senders when None or empty.
        now: Reference time for every recency computation.
        extra_graph: Known entity graph to extend. It is copied, never
            modified.

    Returns:
        A read-only context shared by every scorer.
    """
    message_list = tuple(messages)
    roster = tuple(members or ()) or roster_from_messages(message_list)

    relationships = build_interaction_graph(message_list, roster)
    graph = extra_graph.copy() if extra_graph is not None else EntityGraph()
    extract_entity_graph(message_list, graph)
    add_relationship_edges(graph, relationships)

    context = DiscoveryContext(
        messages=message_list,
        members=roster,
        intents=tuple(extract_intents(message_list, now)),
        timing_signals=tuple(extract_timing_signals(message_list, now)),
        relationships=tuple(relationships),
        graph=graph,
        reference_time=now,
    )
    logger.debug(
        "Context: %d messages, %d intents, %d timing signals, %d relationships",
        len(context.messages),
        len(context.intents),
        len(context.timing_signals),
        len(context.relationships),
    )
    return context


def build_candidates(
    context: DiscoveryContext,
    profiles: Mapping[str, Profile] | None = None,
) -> list[Profile]:
    """Build candidate profiles for every roster member.

    Interests and city are inferred from each member's own messages.
    Supplied profiles are merged in: their offering, looking_for and
    industry are used as-is, their interests come before the inferred
    ones, and their city wins over the inferred one. Supplied profiles
    for people outside the roster are appended after the roster.
    """
    profiles = dict(profiles or {})
    candidates: list[Profile] = []
    for member in context.members:
        inferred_interests = tuple(extract_member_interests(member.name, context.messages))
        location = extract_member_location(member.name, context.messages)
        supplied = profiles.pop(member.name, None)
        if supplied is None:
            candidates.append(
                Profile(name=member.name, interests=inferred_interests, city=location.primary)
            )
            continue
        candidates.append(
            dataclasses.replace(
                supplied,
                interests=(*supplied.interests, *inferred_interests),
                city=supplied.city or location.primary,
            )
        )
    candidates.extend(profiles.values())
    return candidates


def who_to_talk_to(
    requester: Profile,
    messages: Sequence[Message],
    members: Iterable[Member] | None,
    now: datetime,
    options: ScanOptions | None = None,
    profiles: Mapping[str, Profile] | None = None,
    extra_graph: EntityGraph | None = None,
    workers: int = 1,
) -> ScanReport:
    """Answer "who should I talk to right now, and why?".

    Args:
        requester: The requester's profile.
        messages: Transcript messages in order.
        members: Chat roster, or None to derive it from senders.
        now: Reference time.
        options: Scan options. The requester's city is used when no
            reference city is set.
        profiles: Known profiles keyed by member name.
        extra_graph: Known entity graph merged with the chat graph.
        workers: Thread count for candidate scoring.

    Returns:
        ScanReport with ranked recommendations (evidence attached), the
        requester's bridge opportunities, stats and a summary.
    """
    options = options or ScanOptions()
    if not options.reference_city and requester.city:
        options = dataclasses.replace(options, reference_city=requester.city)

    context = build_context(messages, members, now, extra_graph)
    candidates = build_candidates(context, profiles)
    ranked = discover_connections(requester, candidates, context, options, workers=workers)
    recommendations = tuple(
        dataclasses.replace(r, evidence=gather_evidence(r.person, context)) for r in ranked
    )
    graph_stats = context.graph.stats()

    return ScanReport(
        generated_at=now.isoformat(),
        requester=requester,
        stats={
            "messages": len(context.messages),
            "members": len(context.members),
            "intents": len(context.intents),
            "timing_signals": len(context.timing_signals),
            "relationships": len(context.relationships),
            "graph_nodes": graph_stats["total_nodes"],
            "graph_edges": graph_stats["total_edges"],
        },
        recommendations=recommendations,
        bridges=tuple(find_bridge_opportunities(context.graph, requester.name)),
        summary=generate_summary(recommendations, options.reference_city),
    )
