"""Pytest configuration and shared fixtures.

Provides a fixed reference time, a small group-chat transcript and
helpers for writing transcript files, so every test is deterministic.
"""

import json
import os
from collections.abc import Iterator
from datetime import datetime
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from connex.core.types import Member, Message

# Every test computes ages against this instant
REFERENCE_TIME = datetime(2025, 3, 15, 12, 0, 0)


@pytest.fixture
def now() -> datetime:
    """Fixed reference time for recency calculations."""
    return REFERENCE_TIME


@pytest.fixture
def chat_messages() -> list[Message]:
    """A short, realistic group chat.

    Alice wants a crypto advisor, Bob is in Bangkok right now, Carol and
    Nathan talk a lot, and Dave's only message is two months old.
    """
    return [
        Message("Alice", "I'm looking for a crypto advisor.", "2025-03-14"),
        Message("Nathan", "Welcome everyone, glad this group exists.", "2025-03-14"),
        Message("Bob", "I'm in Bangkok!", "2025-03-14"),
        Message("Carol", "Nathan did you see the product launch?", "2025-03-13"),
        Message("Nathan", "Carol yes, it went great.", "2025-03-13"),
        Message("Carol", "Nathan we should grab coffee.", "2025-03-13"),
        Message("Nathan", "Carol for sure, next week.", "2025-03-13"),
        Message("Carol", "Nathan perfect, see you then.", "2025-03-13"),
        Message("Dave", "We're hiring a senior backend engineer.", "2025-01-10"),
    ]


@pytest.fixture
def chat_members(chat_messages: list[Message]) -> list[Member]:
    """Roster matching chat_messages, in first-seen order."""
    names = dict.fromkeys(m.sender for m in chat_messages)
    return [Member(name=name) for name in names]


def message_dicts(messages: list[Message]) -> list[dict[str, Any]]:
    """Convert messages to the JSON records a transcript file holds."""
    return [{"sender": m.sender, "text": m.text, "timestamp": m.timestamp} for m in messages]


@pytest.fixture
def write_json(tmp_path: Path):
    """Return a helper that writes JSON data to a file under tmp_path."""

    def _write(name: str, data: Any) -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def transcript_file(write_json, chat_messages: list[Message]) -> Path:
    """Transcript JSON file holding chat_messages (members derived)."""
    return write_json("chat.json", {"messages": message_dicts(chat_messages)})


@pytest.fixture
def isolated_config(tmp_path: Path) -> Iterator[Path]:
    """Point XDG_CONFIG_HOME at a temp directory for the duration of a test."""
    config_home = tmp_path / "xdg"
    with patch.dict(os.environ, {"XDG_CONFIG_HOME": str(config_home)}):
        yield config_home
