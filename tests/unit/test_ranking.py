"""Tests for warm paths, composite scoring, activation and ranking."""

from datetime import datetime

import pytest

from connex.core.engine import build_candidates, build_context
from connex.core.graph import EntityGraph
from connex.core.ranking import (
    CONTRIBUTORS,
    build_warm_paths,
    clamp_score,
    discover_connections,
    gather_evidence,
    generate_activation,
    generate_summary,
    score_candidate,
)
from connex.core.types import (
    DiscoveryContext,
    IntentSignal,
    Message,
    Profile,
    Recommendation,
    RecommendationSignal,
    Relationship,
    ScanOptions,
    TimingSignal,
    WarmPath,
)


@pytest.fixture
def chat_context(chat_messages: list[Message], chat_members, now: datetime) -> DiscoveryContext:
    """Discovery context for the shared sample chat."""
    return build_context(chat_messages, chat_members, now)


@pytest.fixture
def nathan() -> Profile:
    """Requester who knows crypto and lives in Bangkok."""
    return Profile("Nathan", offering=("crypto knowledge",), city="bkk")


def _candidate(context: DiscoveryContext, name: str) -> Profile:
    return next(c for c in build_candidates(context) if c.name == name)


class TestClampScore:
    """Tests for score rounding and clamping."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [(-5.0, 0), (0.0, 0), (18.5, 19), (42.4, 42), (43.5, 44), (100.0, 100), (250.0, 100)],
    )
    def test_clamp(self, raw: float, expected: int) -> None:
        """Half rounds up and the result stays within 0-100."""
        assert clamp_score(raw) == expected


class TestBuildWarmPaths:
    """Tests for direct and bridge paths."""

    def test_direct_path_comes_before_bridges(self) -> None:
        relationships = [
            Relationship("Nathan", "Eve", 60),
            Relationship("Eve", "Carol", 45),
            Relationship("Nathan", "Carol", 37, bidirectional=True),
        ]

        paths = build_warm_paths(relationships, "Carol", "Nathan")

        assert [p.type for p in paths] == ["direct", "bridge"], f"Got {paths}"
        assert paths[0].description == "You've talked directly (strength: 37)"
        assert paths[0].bidirectional
        bridge = paths[1]
        assert bridge.via == "Eve"
        assert bridge.strength == 45
        assert (bridge.your_strength, bridge.their_strength) == (60, 45)
        assert bridge.description == "Eve knows you both (60/45)"

    def test_weak_direct_relationship_is_not_a_path(self) -> None:
        """Direct relationships under 30 are ignored."""
        assert build_warm_paths([Relationship("Nathan", "Carol", 29)], "Carol", "Nathan") == []

    def test_bridges_sorted_by_weaker_leg(self) -> None:
        relationships = [
            Relationship("Nathan", "Eve", 60),
            Relationship("Eve", "Carol", 45),
            Relationship("Frank", "Nathan", 50),
            Relationship("Carol", "Frank", 80),
            Relationship("Nathan", "Gus", 39),
            Relationship("Gus", "Carol", 90),
        ]

        paths = build_warm_paths(relationships, "Carol", "Nathan")

        assert [(p.via, p.strength) for p in paths] == [("Frank", 50), ("Eve", 45)]


class TestScoreCandidate:
    """Tests for the composite score."""

    def test_crypto_advisor(self, chat_context: DiscoveryContext, nathan: Profile) -> None:
        """Recent intent (27) + you-can-help fit (15) + recent activity (5)."""
        rec = score_candidate(nathan, _candidate(chat_context, "Alice"), chat_context, "bkk")

        assert rec.score == 47, f"Expected 47, got {rec.score}: {rec.signals}"
        types = [s.type for s in rec.signals]
        assert types == ["intent", "fit", "recency"], f"Got {types}"
        assert rec.signals[0].description == "seeking: a crypto advisor"
        assert rec.warm_path is None
        assert rec.activation is not None
        assert rec.activation.method == "cold_outreach"
        assert rec.activation.message == (
            "Hey Alice! I noticed you're looking for a crypto advisor. "
            "I might be able to help with that. Would love to chat if you're up for it."
        )

    def test_timing_match_adds_25(self, chat_context: DiscoveryContext, nathan: Profile) -> None:
        """Being in the requester's city (via alias) adds exactly 25."""
        bob = _candidate(chat_context, "Bob")

        in_town = score_candidate(nathan, bob, chat_context, "bkk")
        no_city = score_candidate(nathan, bob, chat_context, None)

        assert in_town.score == 44, f"Got {in_town.score}"
        assert no_city.score == 19, f"Got {no_city.score}"
        assert in_town.score - no_city.score == 25
        match = next(s for s in in_town.signals if s.type == "timing_match")
        assert match.description == "In bkk NOW!"
        assert in_town.activation.urgency == "urgent"
        assert no_city.activation.urgency == "high"

    def test_direct_path(self, chat_context: DiscoveryContext, nathan: Profile) -> None:
        """A strong direct relationship adds 20 and suggests a direct message."""
        rec = score_candidate(nathan, _candidate(chat_context, "Carol"), chat_context)

        assert rec.score == 25, f"Expected 20 + 5, got {rec.score}"
        assert rec.warm_path is not None and rec.warm_path.type == "direct"
        assert rec.activation.method == "direct_message"
        assert rec.activation.action == "Message Carol directly"
        assert "Been meaning to connect!" in rec.activation.message

    def test_more_evidence_never_lowers_score(
        self, chat_context: DiscoveryContext, nathan: Profile
    ) -> None:
        """Adding a matching offer can only raise the score."""
        alice = _candidate(chat_context, "Alice")
        without_offer = score_candidate(Profile("Nathan"), alice, chat_context)
        with_offer = score_candidate(nathan, alice, chat_context)

        assert with_offer.score >= without_offer.score
        assert without_offer.score == 32

    def test_failing_contributor_is_skipped(
        self, chat_context: DiscoveryContext, nathan: Profile
    ) -> None:
        """A contributor that raises is logged and the rest still count."""

        def broken(*args: object) -> None:
            raise RuntimeError("boom")

        rec = score_candidate(
            nathan,
            _candidate(chat_context, "Alice"),
            chat_context,
            contributors=(("broken", broken), *CONTRIBUTORS),
        )

        assert rec.score == 47

    @pytest.mark.parametrize(
        ("timestamp", "bonus"),
        [("2025-02-14", 5), ("2025-02-13", 0), ("last tuesday", 0)],
        ids=["29_days", "30_days", "unparseable"],
    )
    def test_recent_activity_window(self, now: datetime, timestamp: str, bonus: int) -> None:
        """Activity counts only when strictly under 30 days old."""
        context = DiscoveryContext(
            messages=(Message("Eve", "hello", timestamp),),
            members=(),
            intents=(),
            timing_signals=(),
            relationships=(),
            graph=EntityGraph(),
            reference_time=now,
        )

        rec = score_candidate(Profile("Nathan"), Profile("Eve"), context)

        assert rec.score == bonus, f"Expected {bonus}, got {rec.score}"
        assert ("recency" in [s.type for s in rec.signals]) == bool(bonus)


class TestGenerateActivation:
    """Tests for outreach suggestions."""

    def test_bridge_path_asks_for_intro(self) -> None:
        rec = Recommendation(
            person="Carol Smith",
            score=50,
            signals=(RecommendationSignal("intent", "hiring: a designer", 2.7),),
            warm_path=WarmPath("bridge", 45, "Eve Park knows you both (60/45)", via="Eve Park"),
        )

        activation = generate_activation(rec, Profile("Nathan"))

        assert activation.method == "intro_request"
        assert activation.action == "Ask Eve Park for an intro"
        assert activation.message == (
            "Hey Eve! Would you intro me to Carol? I saw a designer and think I could help."
        )
        assert activation.urgency == "normal"

    def test_intent_topic_hook(self) -> None:
        rec = Recommendation(
            person="Dave",
            score=30,
            signals=(RecommendationSignal("intent", "hiring: a backend engineer", 1.0),),
        )

        activation = generate_activation(rec, Profile("Nathan"))

        assert activation.method == "cold_outreach"
        assert "Saw your message about a backend engineer." in activation.message


class TestDiscoverConnections:
    """Tests for filtering, ordering and truncation."""

    def test_ranking(self, chat_context: DiscoveryContext, nathan: Profile) -> None:
        """Requester is skipped, low scores dropped, best first."""
        recs = discover_connections(
            nathan, build_candidates(chat_context), chat_context, ScanOptions(reference_city="bkk")
        )

        assert [(r.person, r.score) for r in recs] == [
            ("Alice", 47),
            ("Bob", 44),
            ("Carol", 25),
        ], f"Got {[(r.person, r.score) for r in recs]}"

    def test_max_results(self, chat_context: DiscoveryContext, nathan: Profile) -> None:
        options = ScanOptions(reference_city="bkk", max_results=2)
        recs = discover_connections(nathan, build_candidates(chat_context), chat_context, options)
        assert [r.person for r in recs] == ["Alice", "Bob"]

    def test_threaded_scoring_matches_sequential(
        self, chat_context: DiscoveryContext, nathan: Profile
    ) -> None:
        """Parallel scoring gives the same ranking."""
        candidates = build_candidates(chat_context)
        options = ScanOptions(reference_city="bkk", min_score=0)

        sequential = discover_connections(nathan, candidates, chat_context, options)
        threaded = discover_connections(nathan, candidates, chat_context, options, workers=4)

        assert threaded == sequential

    def test_ties_keep_candidate_order(self, chat_context: DiscoveryContext) -> None:
        """Equal scores stay in candidate order."""
        candidates = [Profile("Xavier"), Profile("Yolanda"), Profile("Zed")]

        recs = discover_connections(
            Profile("Nathan"), candidates, chat_context, ScanOptions(min_score=0)
        )

        assert [r.person for r in recs] == ["Xavier", "Yolanda", "Zed"]
        assert all(r.score == 0 for r in recs)


class TestEvidenceAndSummary:
    """Tests for evidence gathering and the report summary."""

    def test_evidence_quotes(self, chat_context: DiscoveryContext) -> None:
        alice = gather_evidence("Alice", chat_context)
        bob = gather_evidence("Bob", chat_context)

        assert [(e.type, e.quote) for e in alice] == [
            ("intent", "I'm looking for a crypto advisor.")
        ]
        assert [(e.type, e.quote) for e in bob] == [("timing", "I'm in Bangkok!")]

    def test_substantive_messages_are_quoted(self, now: datetime) -> None:
        long_text = "Spent the weekend rebuilding our data pipeline from scratch, worth it."
        context = build_context([Message("Eve", long_text, "2025-03-14")], None, now)

        evidence = gather_evidence("Eve", context)

        assert [(e.type, e.quote) for e in evidence] == [("message", long_text)]

    def test_empty_summary(self) -> None:
        assert generate_summary([]).startswith("No strong recommendations found.")

    def test_summary(self, chat_context: DiscoveryContext, nathan: Profile) -> None:
        recs = discover_connections(
            nathan, build_candidates(chat_context), chat_context, ScanOptions(reference_city="bkk")
        )

        summary = generate_summary(recs, "bkk")

        assert summary.startswith("Found 3 people you should connect with. 1 urgent")
        assert "Top recommendation: Alice (score: 47)" in summary


class TestHandBuiltScenarios:
    """Scenarios driven directly by extracted signals, without a transcript."""

    @staticmethod
    def _context(now: datetime, intents=(), timing=()) -> DiscoveryContext:
        return DiscoveryContext(
            messages=(),
            members=(),
            intents=tuple(intents),
            timing_signals=tuple(timing),
            relationships=(),
            graph=EntityGraph(),
            reference_time=now,
        )

    def test_seeking_signal_meets_offer(self, now: datetime) -> None:
        """A two-day-old seeking signal plus a matching offer."""
        intent = IntentSignal(
            type="seeking",
            sender="Alice",
            detail="crypto advisor",
            full_text="Looking for a crypto advisor",
            timestamp="2025-03-13",
            days_since=2,
            strength=2.7,
            raw_strength=0.9,
        )
        context = self._context(now, intents=[intent])

        rec = score_candidate(
            Profile("Nathan", offering=("crypto knowledge",)), Profile("Alice"), context
        )

        assert rec.score == 42, f"Expected 27 + 15, got {rec.score}"
        assert "You can help: crypto knowledge → their need for crypto advisor" in rec.fit.reasons

    def test_travel_signal_in_requester_city(self, now: datetime) -> None:
        """Bangkok matches the requester's 'bkk' through the alias table."""
        timing = TimingSignal(
            type="travel_current",
            sender="Bob",
            location="Bangkok",
            detail="I'm in Bangkok",
            timestamp="2025-03-14",
            days_since=1,
            strength=0.9,
        )
        context = self._context(now, timing=[timing])
        requester = Profile("Nathan", city="bkk")

        in_town = score_candidate(requester, Profile("Bob"), context, "bkk")
        elsewhere = score_candidate(requester, Profile("Bob"), context, "Lisbon")

        assert [s.type for s in in_town.signals] == ["timing_match"]
        assert (in_town.score, elsewhere.score) == (39, 14)
