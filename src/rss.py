"""RSS item construction for the Discord notice RSS bot."""

from datetime import UTC, datetime
from email.utils import formatdate

from dateutil import tz

from .config import FeedConfig
from .models import ChatMessage, FeedItem, RenderedItem, TransformResult
from .summarize import summarize

DISCORD_MESSAGE_URL = "https://discord.com/channels/{guild_id}/{channel_id}/{message_id}"
GUID_TIME_FORMAT = "%Y%m%d%H%M%S"

ITEM_TEMPLATE = """
<item>
  <title>{title}</title>
  <link>{link}</link>
  <guid isPermaLink="false">{guid}</guid>
  <pubDate>{pub_date}</pubDate>
  <author>{author}</author>
  <description>{description}</description>
  <content:encoded><![CDATA[
{content}
  ]]></content:encoded>
</item>"""


def escape_xml(text: str) -> str:
    """Escape the five XML reserved characters.

    Args:
        text: Text to escape

    Returns:
        XML-escaped text
    """
    if not text:
        return ""

    # Ampersand first so the other entities are not double escaped
    text = text.replace("&", "&amp;")
    text = text.replace("<", "&lt;")
    text = text.replace(">", "&gt;")
    text = text.replace('"', "&quot;")
    text = text.replace("'", "&apos;")

    return text


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)


def http_date(moment: datetime) -> str:
    """Render an instant as an HTTP-date, e.g. ``Sat, 17 Oct 2026 01:02:03 GMT``."""
    return formatdate(_as_utc(moment).timestamp(), usegmt=True)


def make_guid(created_at: datetime, prefix: str, timezone: str) -> str:
    """Build the item GUID from the creation second in the feed's time zone.

    Two messages created within the same second share a GUID.

    Raises:
        ValueError: If the time zone name is unknown
    """
    zone = tz.gettz(timezone) if timezone else None
    if zone is None:
        raise ValueError(f"Unknown time zone: {timezone!r}")
    local = _as_utc(created_at).astimezone(zone)
    return f"{prefix}{local.strftime(GUID_TIME_FORMAT)}"


def make_link(message: ChatMessage) -> str:
    """Deep link back to the source message."""
    return DISCORD_MESSAGE_URL.format(
        guild_id=message.guild_id,
        channel_id=message.channel_id,
        message_id=message.message_id,
    )


def create_feed_item(
    message: ChatMessage, transformed: TransformResult, config: FeedConfig
) -> FeedItem:
    """Assemble the feed entry fields for a message."""
    return FeedItem(
        title=transformed.title or config.default_title,
        link=make_link(message),
        guid=make_guid(message.created_at, config.guid_prefix, config.timezone),
        pub_date=http_date(message.created_at),
        author=f"{message.author_name} {config.author_suffix}",
        description=summarize(transformed.content),
        content=transformed.content,
    )


def render_item(item: FeedItem) -> str:
    """Serialize a FeedItem to ``<item>`` markup.

    Text fields are XML-escaped; the HTML content goes into a CDATA block
    untouched.
    """
    return ITEM_TEMPLATE.format(
        title=escape_xml(item.title),
        link=item.link,
        guid=item.guid,
        pub_date=item.pub_date,
        author=escape_xml(item.author),
        description=escape_xml(item.description),
        content=item.content,
    )


def build_item(
    message: ChatMessage, transformed: TransformResult, config: FeedConfig
) -> RenderedItem:
    """Build the serialized RSS item for a message.

    Args:
        message: Source chat message
        transformed: Output of the markup transformer for the message body
        config: Feed branding configuration

    Returns:
        RenderedItem with the item XML and its GUID
    """
    item = create_feed_item(message, transformed, config)
    return RenderedItem(xml=render_item(item), guid=item.guid)
