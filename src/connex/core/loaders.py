"""Input loading for the Connex CLI.

Reads already-normalised JSON transcripts, profiles and entity graphs
into core types. This is the only place that touches the filesystem for
input; malformed files raise InputError.
"""

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from connex.core.engine import roster_from_messages
from connex.core.exceptions import InputError
from connex.core.graph import EntityGraph
from connex.core.types import Interest, Member, Message, Profile

logger = logging.getLogger(__name__)


def _read_json(path: Path) -> Any:
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except OSError as e:
        raise InputError(f"Cannot read {path}: {e.strerror or e}") from e
    except json.JSONDecodeError as e:
        raise InputError(f"{path} is not valid JSON: {e}") from e


def _first(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return default


def _strings(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(str(v) for v in value if v)


def message_from_dict(data: Mapping[str, Any]) -> Message:
    """Build a Message; "date" is accepted in place of "timestamp"."""
    sender = data.get("sender")
    if not sender:
        raise InputError(f"Message without a sender: {data!r}")
    return Message(
        sender=str(sender),
        text=str(data.get("text") or ""),
        timestamp=str(_first(data, "timestamp", "date", default="")),
    )


def member_from_dict(data: Mapping[str, Any]) -> Member:
    name = data.get("name")
    if not name:
        raise InputError(f"Member without a name: {data!r}")
    return Member(
        name=str(name),
        message_count=int(_first(data, "messageCount", "message_count", default=0)),
        first_seen=_first(data, "firstSeen", "first_seen"),
        last_seen=_first(data, "lastSeen", "last_seen"),
    )


def load_transcript(path: Path) -> tuple[tuple[Message, ...], tuple[Member, ...]]:
    """Load a transcript file.

    Accepts either {"messages": [...], "members": [...]} or a bare list of
    messages. Members are derived from message senders when absent.

    Raises:
        InputError: If the file is unreadable or malformed.
    """
    data = _read_json(path)
    if isinstance(data, list):
        raw_messages, raw_members = data, None
    elif isinstance(data, dict):
        raw_messages, raw_members = data.get("messages"), data.get("members")
    else:
        raise InputError(f"{path}: expected an object or a list of messages")

    if not isinstance(raw_messages, list):
        raise InputError(f"{path}: 'messages' must be a list")

    try:
        messages = tuple(message_from_dict(m) for m in raw_messages)
        members = tuple(member_from_dict(m) for m in raw_members or [])
    except (AttributeError, TypeError, ValueError) as e:
        raise InputError(f"{path}: malformed record: {e}") from e

    if not members:
        members = roster_from_messages(messages)

    logger.debug("Loaded %d messages and %d members from %s", len(messages), len(members), path)
    return messages, members


def _interest(value: Any) -> "str | Interest":
    if isinstance(value, Mapping):
        return Interest(
            category=str(value.get("category") or ""),
            keywords=_strings(value.get("keywords")),
            confidence=float(value.get("confidence") or 0.0),
        )
    return str(value)


def profile_from_dict(data: Mapping[str, Any]) -> Profile:
    """Build a Profile from JSON-style data.

    Recognised keys: name, interests (strings or {category, keywords}),
    offering, lookingFor or looking_for, city or location, industry.
    Missing optional fields are treated as empty.

    Raises:
        InputError: If the profile has no name.
    """
    name = _first(data, "name", "display_name")
    if not name:
        raise InputError(f"Profile without a name: {data!r}")

    city = _first(data, "city", "location")
    if isinstance(city, Mapping):
        city = city.get("primary")

    return Profile(
        name=str(name),
        interests=tuple(_interest(i) for i in data.get("interests") or () if i),
        offering=_strings(data.get("offering")),
        looking_for=_strings(_first(data, "lookingFor", "looking_for")),
        city=str(city) if city else None,
        industry=str(data["industry"]) if data.get("industry") else None,
    )


def load_profile(path: Path) -> Profile:
    """Load a single profile file."""
    data = _read_json(path)
    if not isinstance(data, dict):
        raise InputError(f"{path}: expected a profile object")
    try:
        return profile_from_dict(data)
    except (AttributeError, TypeError, ValueError) as e:
        raise InputError(f"{path}: malformed profile: {e}") from e


def load_profiles(path: Path) -> dict[str, Profile]:
    """Load candidate profiles keyed by name.

    Accepts a list of profiles or {"profiles": [...]}.
    """
    data = _read_json(path)
    if isinstance(data, dict):
        data = data.get("profiles")
    if not isinstance(data, list):
        raise InputError(f"{path}: expected a list of profiles")
    try:
        profiles = [profile_from_dict(p) for p in data]
    except (AttributeError, TypeError, ValueError) as e:
        raise InputError(f"{path}: malformed profile: {e}") from e
    return {p.name: p for p in profiles}


def load_graph(path: Path) -> EntityGraph:
    """Load an entity graph saved with EntityGraph.to_dict()."""
    data = _read_json(path)
    if not isinstance(data, dict):
        raise InputError(f"{path}: expected a graph object with nodes and edges")
    try:
        return EntityGraph.from_dict(data)
    except (AttributeError, TypeError, ValueError) as e:
        raise InputError(f"{path}: malformed graph: {e}") from e
