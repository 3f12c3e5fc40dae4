"""
Pytest configuration and shared fixtures
"""

import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Tuple, Union

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from storage.feedback_store import SQLiteFeedbackStore  # noqa: E402


FIXED_NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


def make_summary(themes: int = 3, **overrides) -> dict:
    data = {
        "date_range": "2026-10-18T12:00:00.000Z to 2026-10-19T12:00:00.000Z",
        "total_items": 5,
        "top_themes": [
            {
                "theme": f"Theme {i}",
                "summary": "Users report friction in this area.",
                "sentiment": "negative",
                "urgency": "medium",
                "evidence_quote": "The dashboard loads slowly when viewing analytics.",
            }
            for i in range(1, themes + 1)
        ],
    }
    data.update(overrides)
    return data


class ScriptedClient:
    """Generative client double: replays scripted replies and records every call."""

    def __init__(self, *replies: Union[str, Exception]):
        self.replies = list(replies)
        self.calls: List[Tuple[str, str]] = []

    def generate(self, system: str, user: str) -> str:
        self.calls.append((system, user))
        if not self.replies:
            raise AssertionError("unexpected extra model call")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def valid_summary_text() -> str:
    return json.dumps(make_summary())


@pytest.fixture
def store(tmp_path: Path):
    s = SQLiteFeedbackStore(str(tmp_path / "feedback.db"))
    yield s
    s.close()


@pytest.fixture
def log_path(tmp_path: Path) -> str:
    return str(tmp_path / "pulse.log")
