"""Core data types for Connex.

These types define the transcript records, the two graph schemas, the
extracted signals and the recommendation structures. All types are
immutable dataclasses so that a DiscoveryContext can be shared read-only
across scoring threads.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Literal

if TYPE_CHECKING:
    from connex.core.graph import EntityGraph

IntentType = Literal[
    "seeking",
    "asking",
    "hiring",
    "job_seeking",
    "fundraising",
    "offering",
    "seeking_intro",
    "offering_intro",
]
TimingType = Literal["travel_future", "travel_current", "event", "deadline", "life_change"]
RelationshipLabel = Literal["weak", "moderate", "strong"]
WarmPathType = Literal["direct", "bridge"]
ContactMethod = Literal["direct_message", "intro_request", "cold_outreach"]
Urgency = Literal["urgent", "high", "normal"]

# (source_id, target_id, edge type)
EdgeKey = tuple[str, str, str]


@dataclass(frozen=True)
class Message:
    """A single chat message.

    Attributes:
        sender: Display name of the sender.
        text: Message body.
        timestamp: Raw timestamp string, parsed leniently.
    """

    sender: str
    text: str
    timestamp: str = ""


@dataclass(frozen=True)
class Member:
    """A roster entry for a chat member."""

    name: str
    message_count: int = 0
    first_seen: str | None = None
    last_seen: str | None = None


@dataclass(frozen=True)
class Node:
    """A node in the typed entity graph.

    Attributes:
        id: Canonical id (lower-cased, non-alphanumerics replaced).
        type: Entity type (person, school, company, interest, ...).
        attributes: Free-form attributes; "name" holds the display name.
    """

    id: str
    type: str
    attributes: Mapping[str, Any] = field(default_factory=dict)

    @property
    def label(self) -> str:
        """Return the human-readable display name of the node."""
        return str(self.attributes.get("name", self.id))


@dataclass(frozen=True)
class Edge:
    """A directed, typed edge in the entity graph.

    Attributes:
        source_id: Canonical id of the source node.
        target_id: Canonical id of the target node.
        type: Relationship type (knows, wants_to_meet, attended, ...).
        weight: Number of times this edge was observed (>= 1).
        contexts: Provenance records, oldest first.
        timestamp: Timestamp of the first observation, if known.
    """

    source_id: str
    target_id: str
    type: str
    weight: int = 1
    contexts: tuple[Mapping[str, Any], ...] = ()
    timestamp: str = ""

    @property
    def key(self) -> EdgeKey:
        """Return the (source, target, type) key this edge is merged on."""
        return (self.source_id, self.target_id, self.type)

    @property
    def context(self) -> Mapping[str, Any]:
        """Return the context recorded when the edge was first created."""
        return self.contexts[0] if self.contexts else {}

    def other(self, node_id: str) -> str:
        """Return the endpoint opposite to node_id."""
        return self.target_id if self.source_id == node_id else self.source_id


@dataclass(frozen=True)
class Relationship:
    """An undirected interaction edge between two chat members.

    Attributes:
        person_a: First member of the pair (as first observed).
        person_b: Second member of the pair.
        strength: Derived strength, 0-100.
        interactions: Total replies plus mentions.
        bidirectional: True when the pair replied to each other at least twice.
        label: weak, moderate or strong.
    """

    person_a: str
    person_b: str
    strength: int
    interactions: int = 0
    bidirectional: bool = False
    label: RelationshipLabel = "weak"

    def involves(self, name: str) -> bool:
        return name in (self.person_a, self.person_b)

    def other(self, name: str) -> str:
        return self.person_b if self.person_a == name else self.person_a


@dataclass(frozen=True)
class IntentSignal:
    """A goal someone expressed in a message (hiring, seeking, ...).

    Attributes:
        type: Intent category.
        sender: Who expressed it.
        detail: Captured fragment, or None when the rule has no group.
        full_text: Message text truncated to 200 characters.
        timestamp: Raw message timestamp.
        days_since: Age in whole days (999 when unparseable).
        strength: Base strength scaled by recency.
        raw_strength: Base strength of the matching rule.
    """

    type: IntentType
    sender: str
    detail: str | None
    full_text: str
    timestamp: str
    days_since: int
    strength: float
    raw_strength: float


@dataclass(frozen=True)
class TimingSignal:
    """A time-sensitive event (travel, deadline, life change)."""

    type: TimingType
    sender: str
    location: str | None
    detail: str
    timestamp: str
    days_since: int
    strength: float


@dataclass(frozen=True)
class Interest:
    """An interest category with the keywords that evidenced it."""

    category: str
    keywords: tuple[str, ...] = ()
    confidence: float = 0.0


@dataclass(frozen=True)
class Profile:
    """Lightweight profile of the requester or a candidate.

    Interests may be plain strings or Interest records; both shapes are
    flattened to lower-case tokens by the fit scorer.
    """

    name: str
    interests: tuple["str | Interest", ...] = ()
    offering: tuple[str, ...] = ()
    looking_for: tuple[str, ...] = ()
    city: str | None = None
    industry: str | None = None


@dataclass(frozen=True)
class MemberLocation:
    """Cities a member mentioned, with the first one treated as primary."""

    cities: tuple[str, ...] = ()
    primary: str | None = None
    confidence: float = 0.0


@dataclass(frozen=True)
class HelpPair:
    """A need matched with an offer."""

    need: str
    offer: str


@dataclass(frozen=True)
class FitResult:
    """Compatibility between the requester and a candidate.

    The score is uncapped; the ranker clamps the composite score.
    """

    score: int = 0
    reasons: tuple[str, ...] = ()
    you_can_help: tuple[HelpPair, ...] = ()
    they_can_help: tuple[HelpPair, ...] = ()


@dataclass(frozen=True)
class WarmPath:
    """A route from the requester to a target.

    Attributes:
        type: "direct" or "bridge".
        strength: Direct relationship strength, or the bridge strength
            (weaker of the two legs) for bridge paths.
        description: Human-readable explanation.
        via: Bridge person for bridge paths.
        bidirectional: Whether the direct relationship is bidirectional.
        your_strength: Requester-to-bridge strength (bridge paths only).
        their_strength: Bridge-to-target strength (bridge paths only).
    """

    type: WarmPathType
    strength: int
    description: str
    via: str | None = None
    bidirectional: bool = False
    your_strength: int | None = None
    their_strength: int | None = None


@dataclass(frozen=True)
class RecommendationSignal:
    """One explanatory reason attached to a recommendation."""

    type: str
    description: str
    strength: float


@dataclass(frozen=True)
class Activation:
    """Suggested next step for reaching a recommended person."""

    action: str
    method: ContactMethod
    message: str
    urgency: Urgency = "normal"


@dataclass(frozen=True)
class Evidence:
    """A supporting quote from the transcript."""

    type: str
    quote: str
    timestamp: str = ""


@dataclass(frozen=True)
class Recommendation:
    """A ranked, explainable recommendation to contact someone."""

    person: str
    score: int
    signals: tuple[RecommendationSignal, ...] = ()
    timing: TimingSignal | None = None
    warm_path: WarmPath | None = None
    fit: FitResult = field(default_factory=FitResult)
    activation: Activation | None = None
    evidence: tuple[Evidence, ...] = ()


@dataclass(frozen=True)
class ScanOptions:
    """Options for a discovery scan.

    Attributes:
        reference_city: Requester's city for timing matches (aliases allowed).
        max_results: Maximum recommendations returned.
        min_score: Candidates scoring below this are dropped.
    """

    reference_city: str | None = None
    max_results: int = 10
    min_score: int = 20


@dataclass(frozen=True)
class BridgeOpportunity:
    """The requester knows both A and B, and A wants to meet B."""

    person_a: str
    person_b: str
    what_a_wants: str
    your_relationship_to_a: str
    your_relationship_to_b: str
    strength: int
    context_a: Mapping[str, Any] = field(default_factory=dict)
    context_b: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SharedContext:
    """A node both X and Y are directly connected to."""

    node: str
    node_type: str | None
    your_relation: str
    their_relation: str
    same_year: bool = False


@dataclass(frozen=True)
class HelpMatch:
    """Someone the requester knows needs help that another contact offers."""

    topic: str
    needer: str
    helper: str
    needer_context: Mapping[str, Any] = field(default_factory=dict)
    helper_context: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DiscoveryContext:
    """Everything derived from one transcript, shared read-only by scorers.

    Attributes:
        messages: Transcript messages in order.
        members: Chat roster.
        intents: Extracted intent signals.
        timing_signals: Extracted timing signals (none older than 14 days).
        relationships: Interaction graph edges.
        graph: Typed entity graph.
        reference_time: The injected "now" every age is computed against.
    """

    messages: tuple[Message, ...]
    members: tuple[Member, ...]
    intents: tuple[IntentSignal, ...]
    timing_signals: tuple[TimingSignal, ...]
    relationships: tuple[Relationship, ...]
    graph: "EntityGraph"
    reference_time: datetime


@dataclass(frozen=True)
class ScanReport:
    """Output of a full who-to-talk-to scan."""

    generated_at: str
    requester: Profile
    stats: Mapping[str, int]
    recommendations: tuple[Recommendation, ...]
    bridges: tuple[BridgeOpportunity, ...] = ()
    summary: str = ""
