"""Constants for Connex.

Exit codes, recency windows, scoring weights and graph vocabularies.
"""

from typing import Final

# Exit codes (following Unix conventions)
EXIT_SUCCESS: Final[int] = 0
EXIT_USER_ERROR: Final[int] = 1
EXIT_INTERNAL_ERROR: Final[int] = 2
EXIT_CONFIG_ERROR: Final[int] = 3

# Timestamps that cannot be parsed are treated as maximally stale
UNPARSEABLE_DAYS: Final[int] = 999

# Intent recency tiers (inclusive upper bounds in days)
INTENT_RECENT_DAYS: Final[int] = 7
INTENT_MEDIUM_DAYS: Final[int] = 30
INTENT_RECENT_MULTIPLIER: Final[float] = 3.0
INTENT_MEDIUM_MULTIPLIER: Final[float] = 1.5
INTENT_STALE_MULTIPLIER: Final[float] = 0.5

# Timing signals older than TIMING_MAX_DAYS are dropped entirely
TIMING_MAX_DAYS: Final[int] = 14
TIMING_RECENT_DAYS: Final[int] = 7
TIMING_RECENT_MULTIPLIER: Final[float] = 1.0
TIMING_STALE_MULTIPLIER: Final[float] = 0.5

FULL_TEXT_LIMIT: Final[int] = 200

# Interaction graph weights
REPLY_WEIGHT: Final[int] = 3
MENTION_WEIGHT: Final[int] = 5
MAX_STRENGTH: Final[int] = 100
BIDIRECTIONAL_MIN_REPLIES: Final[int] = 2
STRONG_RELATIONSHIP: Final[int] = 50
MODERATE_RELATIONSHIP: Final[int] = 25
MIN_FIRST_NAME_LENGTH: Final[int] = 3

# Warm path thresholds
DIRECT_PATH_MIN_STRENGTH: Final[int] = 30
BRIDGE_REQUESTER_MIN_STRENGTH: Final[int] = 40
BRIDGE_TARGET_MIN_STRENGTH: Final[int] = 30

# Fit scoring
COMPLEMENTARY_MATCH_SCORE: Final[int] = 15
SHARED_INTERESTS_SCORE: Final[int] = 10
SHARED_INTERESTS_MIN: Final[int] = 2
SAME_INDUSTRY_SCORE: Final[int] = 8
MIN_OVERLAP_WORD_LENGTH: Final[int] = 4
FUZZY_DISTANCE_RATIO: Final[float] = 0.3

# Composite score contributions
TOP_INTENTS: Final[int] = 3
INTENT_WEIGHT: Final[int] = 10
TIMING_WEIGHT: Final[int] = 15
TIMING_MATCH_BONUS: Final[int] = 25
DIRECT_PATH_BONUS: Final[int] = 20
BRIDGE_PATH_BONUS: Final[int] = 15
RECENT_ACTIVITY_BONUS: Final[int] = 5
RECENT_ACTIVITY_DAYS: Final[int] = 30
MIN_SCORE: Final[int] = 0
MAX_SCORE: Final[int] = 100

# Strengths attached to explanatory recommendation signals
TIMING_MATCH_SIGNAL_STRENGTH: Final[float] = 1.0
DIRECT_PATH_SIGNAL_STRENGTH: Final[float] = 0.9
BRIDGE_PATH_SIGNAL_STRENGTH: Final[float] = 0.7
FIT_SIGNAL_STRENGTH: Final[float] = 0.6
RECENCY_SIGNAL_STRENGTH: Final[float] = 0.5

# Scan defaults
DEFAULT_MAX_RESULTS: Final[int] = 10
DEFAULT_MIN_SCORE: Final[int] = 20
DEFAULT_MAX_PATH_DEPTH: Final[int] = 4
DEFAULT_EXPLORATION_DEPTH: Final[int] = 2
MAX_EXPLORATION_DEPTH: Final[int] = 5

# Entity extraction target length bounds (exclusive)
MIN_TARGET_LENGTH: Final[int] = 2
MAX_TARGET_LENGTH: Final[int] = 50

# Node types
NODE_PERSON: Final[str] = "person"
NODE_SCHOOL: Final[str] = "school"
NODE_COMPANY: Final[str] = "company"
NODE_INTEREST: Final[str] = "interest"
NODE_EVENT: Final[str] = "event"
NODE_LOCATION: Final[str] = "location"
NODE_GROUP: Final[str] = "group"

NODE_TYPES: frozenset[str] = frozenset(
    {
        NODE_PERSON,
        NODE_SCHOOL,
        NODE_COMPANY,
        NODE_INTEREST,
        NODE_EVENT,
        NODE_LOCATION,
        NODE_GROUP,
    }
)

# Edge types
EDGE_KNOWS: Final[str] = "knows"
EDGE_ATTENDED: Final[str] = "attended"
EDGE_WORKED_AT: Final[str] = "worked_at"
EDGE_INTERESTED_IN: Final[str] = "interested_in"
EDGE_WANTS_TO_MEET: Final[str] = "wants_to_meet"
EDGE_WANTS_HELP_WITH: Final[str] = "wants_help_with"
EDGE_CAN_HELP_WITH: Final[str] = "can_help_with"
EDGE_CLASSMATE: Final[str] = "classmate"
EDGE_COLLEAGUE: Final[str] = "colleague"
EDGE_MET_AT: Final[str] = "met_at"
EDGE_LIVES_IN: Final[str] = "lives_in"
EDGE_MEMBER_OF: Final[str] = "member_of"

EDGE_TYPES: frozenset[str] = frozenset(
    {
        EDGE_KNOWS,
        EDGE_ATTENDED,
        EDGE_WORKED_AT,
        EDGE_INTERESTED_IN,
        EDGE_WANTS_TO_MEET,
        EDGE_WANTS_HELP_WITH,
        EDGE_CAN_HELP_WITH,
        EDGE_CLASSMATE,
        EDGE_COLLEAGUE,
        EDGE_MET_AT,
        EDGE_LIVES_IN,
        EDGE_MEMBER_OF,
    }
)

# Target node type for each chat-extracted edge type (interest otherwise)
EDGE_TARGET_NODE_TYPES: Final[dict[str, str]] = {
    EDGE_WANTS_TO_MEET: NODE_PERSON,
    EDGE_ATTENDED: NODE_SCHOOL,
    EDGE_WORKED_AT: NODE_COMPANY,
}

# Intent categories feeding the fit scorer
NEED_INTENT_TYPES: frozenset[str] = frozenset({"seeking", "hiring", "job_seeking", "fundraising"})
OFFER_INTENT_TYPES: frozenset[str] = frozenset({"offering", "offering_intro"})

# City alias table applied before comparing locations
CITY_ALIASES: Final[dict[str, str]] = {
    "sf": "san francisco",
    "san fran": "san francisco",
    "nyc": "new york",
    "ny": "new york",
    "la": "los angeles",
    "bkk": "bangkok",
    "sg": "singapore",
    "hk": "hong kong",
    "dc": "washington dc",
}

# Known cities mentioned in chats, keyed by the lower-case token searched for
KNOWN_CITIES: Final[dict[str, str]] = {
    "bangkok": "Bangkok",
    "bkk": "Bangkok",
    "singapore": "Singapore",
    "sg": "Singapore",
    "hong kong": "Hong Kong",
    "hk": "Hong Kong",
    "san francisco": "San Francisco",
    "sf": "San Francisco",
    "new york": "New York",
    "nyc": "New York",
    "los angeles": "Los Angeles",
    "la": "Los Angeles",
    "london": "London",
    "tokyo": "Tokyo",
    "austin": "Austin",
    "miami": "Miami",
    "seattle": "Seattle",
    "denver": "Denver",
}
MEMBER_LOCATION_CONFIDENCE: Final[float] = 0.7

# Interest categories inferred from a member's own messages
INTEREST_CATEGORIES: Final[dict[str, tuple[str, ...]]] = {
    "sports": (
        "ufc",
        "mma",
        "warriors",
        "basketball",
        "golf",
        "football",
        "soccer",
        "tennis",
        "gym",
        "workout",
        "nba",
        "nfl",
    ),
    "crypto": (
        "bitcoin",
        "btc",
        "ethereum",
        "crypto",
        "trading",
        "blockchain",
        "nft",
        "defi",
        "solana",
        "web3",
    ),
    "food": (
        "dim sum",
        "restaurant",
        "brunch",
        "dinner",
        "thai food",
        "sushi",
        "ramen",
        "coffee",
        "cocktails",
    ),
    "wellness": ("sauna", "ice bath", "massage", "spa", "wellness", "yoga", "meditation"),
    "tech": (
        "ai",
        "startup",
        "coding",
        "engineering",
        "product",
        "developer",
        "software",
        "llm",
        "gpt",
    ),
    "business": (
        "fundraising",
        "investor",
        "funding",
        "strategy",
        "revenue",
        "growth",
        "pitch",
        "vc",
    ),
    "travel": ("flight", "airport", "hotel", "trip", "vacation", "traveling"),
    "music": ("concert", "festival", "spotify", "playlist", "music", "show", "tickets"),
}

# Evidence gathering limits
MAX_EVIDENCE: Final[int] = 4
EVIDENCE_INTENTS: Final[int] = 2
EVIDENCE_TIMING: Final[int] = 1
EVIDENCE_MESSAGES: Final[int] = 2
SUBSTANTIVE_MESSAGE_LENGTH: Final[int] = 50

# Node lookup (CLI) fuzzy threshold, RapidFuzz 0-100 scale
NODE_LOOKUP_THRESHOLD: Final[int] = 70
MAX_SUGGESTIONS: Final[int] = 5
