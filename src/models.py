"""Data models for the Discord notice RSS bot."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any


@dataclass(frozen=True)
class ChatMessage:
    """A message delivered by the chat gateway."""

    content: str
    author_name: str
    channel_id: str
    guild_id: str
    message_id: str
    created_at: datetime
    author_is_bot: bool = False

    @classmethod
    def from_discord(cls, message: Any) -> "ChatMessage":
        """Build a ChatMessage from a ``discord.Message``."""
        guild = getattr(message, "guild", None)
        return cls(
            content=message.content or "",
            author_name=message.author.name,
            channel_id=str(message.channel.id),
            guild_id=str(guild.id) if guild is not None else "",
            message_id=str(message.id),
            created_at=message.created_at,
            author_is_bot=bool(message.author.bot),
        )


@dataclass(frozen=True)
class TransformResult:
    """Title and HTML fragment derived from a message body."""

    title: str
    content: str


@dataclass(frozen=True)
class FeedItem:
    """Represents a single RSS item before serialization."""

    title: str
    link: str
    guid: str
    pub_date: str
    author: str
    description: str
    content: str


@dataclass(frozen=True)
class RenderedItem:
    """Serialized ``<item>`` markup plus its GUID for duplicate detection."""

    xml: str
    guid: str


class UpdateStatus(str, Enum):
    """Outcome of a feed document update."""

    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class UpdateResult:
    """Result of merging one item into the remote feed document."""

    status: UpdateStatus
    guid: str
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is not UpdateStatus.FAILED
