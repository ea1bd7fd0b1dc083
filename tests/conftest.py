"""Shared fixtures and in-memory fakes for the Discord and Raid-Helper edges."""
import asyncio
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Dict, Iterable, List, Optional

import pytest

from src.errors import EventFetchFailed, PublishTargetUnresolvable, SourceUnavailable
from src.models.signup import RaidEvent
from src.models.team import Team

BOT_USER_ID = 999


def make_message(message_id: int, content: str = "", embeds=None, components=None, author_id=1):
    return SimpleNamespace(
        id=message_id,
        content=content,
        embeds=embeds or [],
        components=components or [],
        author=SimpleNamespace(id=author_id),
    )


def make_embed(url=None, title=None, description=None, fields=None, author_url=None, footer=None):
    return SimpleNamespace(
        url=url,
        title=title,
        description=description,
        fields=[SimpleNamespace(name=n, value=v) for n, v in (fields or [])],
        author=SimpleNamespace(url=author_url),
        footer=SimpleNamespace(text=footer),
    )


def filler_messages(count: int, start_id: int = 10_000) -> List[SimpleNamespace]:
    """Newest-first chatter with no event links; ids decrease like real history."""
    return [make_message(start_id - i, content=f"chatter {i}") for i in range(count)]


class FakeHistory:
    """HistoryReader over per-channel message lists ordered newest first."""

    def __init__(self, channels: Optional[Dict[int, List[SimpleNamespace]]] = None):
        self.channels = channels or {}
        self.calls: List[tuple] = []

    async def fetch_page(self, channel_id: int, limit: int, before_id: Optional[int] = None):
        self.calls.append((channel_id, limit, before_id))
        if channel_id not in self.channels:
            raise SourceUnavailable(channel_id, "not found")
        messages = self.channels[channel_id]
        start = 0
        if before_id is not None:
            start = next(
                (i + 1 for i, m in enumerate(messages) if m.id == before_id), len(messages)
            )
        return messages[start : start + limit]


class FakeResolver:
    """Stands in for EventResolver; unknown ids fail like a 404."""

    def __init__(self, events: Optional[Dict[str, dict]] = None):
        self.events = events or {}
        self.requested: List[str] = []

    async def fetch_event_with_retry(self, event_id: str) -> RaidEvent:
        self.requested.append(event_id)
        await asyncio.sleep(0)
        if event_id not in self.events:
            raise EventFetchFailed(404, '{"error":"Event not found"}')
        return RaidEvent.model_validate(self.events[event_id])


class FakeChannel(SimpleNamespace):
    pass


class FakeGateway:
    """PublishGateway keeping messages in memory, authored by BOT_USER_ID by default."""

    def __init__(self, channel_ids: Iterable[int] = ()):
        self.channels = {cid: FakeChannel(id=cid, messages={}) for cid in channel_ids}
        self.created: List[SimpleNamespace] = []
        self.edits: List[tuple] = []
        self.fail_create = False
        self._next_id = 5000

    def seed_message(self, channel_id: int, message_id: int, content: str = "", author_id=BOT_USER_ID):
        message = make_message(message_id, content=content, author_id=author_id)
        self.channels[channel_id].messages[message_id] = message
        return message

    async def get_destination(self, channel_id: int):
        if channel_id not in self.channels:
            raise SourceUnavailable(channel_id, "not found")
        return self.channels[channel_id]

    async def fetch_message(self, destination, message_id: int):
        message = destination.messages.get(message_id)
        if message is None:
            raise PublishTargetUnresolvable(f"Message {message_id} not found")
        if message.author.id != BOT_USER_ID:
            raise PublishTargetUnresolvable(f"Message {message_id} was not posted by this bot")
        return message

    async def create_message(self, destination, text: str):
        if self.fail_create:
            raise SourceUnavailable(destination.id, "cannot post messages")
        self._next_id += 1
        message = make_message(self._next_id, content=text, author_id=BOT_USER_ID)
        destination.messages[message.id] = message
        self.created.append(message)
        return message

    async def edit_message(self, message, text: str) -> None:
        self.edits.append((message.id, text))
        message.content = text


def event_payload(event_id: str, start: datetime, signups: List[dict], title: str = "Raid") -> dict:
    return {
        "id": event_id,
        "title": title,
        "startTime": int(start.timestamp()),
        "signUps": signups,
    }


def signup(role=None, cls=None, status="primary", spec=None, name="Player") -> dict:
    entry = {"name": name, "status": status}
    if role is not None:
        entry["roleName"] = role
    if cls is not None:
        entry["className"] = cls
    if spec is not None:
        entry["specName"] = spec
    return entry


@pytest.fixture
def fixed_now():
    # A Sunday
    return datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def teams():
    return [
        Team(key="alpha", display_name="ALPHA", signup_channel_id=101, roster_size=20),
        Team(key="bravo", display_name="BRAVO", signup_channel_id=102, roster_size=20),
        Team(key="charlie", display_name="CHARLIE", signup_channel_id=103, roster_size=20),
    ]


@pytest.fixture
def full_roster_signups():
    """2 tanks, 4 healers (1 melee), 5 melee, 5 ranged."""
    return (
        [signup(role="Tanks", cls="Warrior", spec="Protection") for _ in range(2)]
        + [signup(role="Healers", cls="Monk", spec="Mistweaver")]
        + [signup(role="Healers", cls="Priest", spec="Discipline") for _ in range(3)]
        + [signup(role="Melee", cls="Rogue", spec="Outlaw") for _ in range(5)]
        + [signup(role="Ranged", cls="Mage", spec="Frost") for _ in range(5)]
    )
