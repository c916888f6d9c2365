"""Message handler that runs the Discord-to-RSS pipeline for one event."""

from .config import FeedConfig
from .logging_config import create_execution_logger
from .markup import transform
from .models import ChatMessage, UpdateResult, UpdateStatus
from .rss import build_item
from .updater import FeedUpdater

PREVIEW_LENGTH = 30


def should_process(message: ChatMessage, channel_id: str) -> bool:
    """Only human messages in the watched channel become feed items."""
    if message.channel_id != str(channel_id):
        return False
    if message.author_is_bot:
        return False
    return True


def handle_message(
    message: ChatMessage,
    channel_id: str,
    feed_config: FeedConfig,
    updater: FeedUpdater,
) -> UpdateResult | None:
    """Publish one chat message to the feed.

    Args:
        message: Incoming chat message
        channel_id: Watched channel identifier
        feed_config: Feed item branding
        updater: Updater bound to the feed document

    Returns:
        The update outcome, or None when the message was ignored
    """
    if not should_process(message, channel_id):
        return None

    logger = create_execution_logger("handler", f"event_{message.message_id}")
    logger.info(
        f"New notice detected: {message.content[:PREVIEW_LENGTH]}...",
        channel_id=message.channel_id,
        message_id=message.message_id,
    )

    try:
        transformed = transform(message.content)
        item = build_item(message, transformed, feed_config)
        result = updater.update(item.xml, item.guid)
    except Exception as e:
        # Keep the gateway loop alive whatever happens to one event
        logger.error(
            f"Unexpected error publishing message {message.message_id}: {e}",
            message_id=message.message_id,
            error=str(e),
        )
        return UpdateResult(status=UpdateStatus.FAILED, guid="", error=str(e))

    logger.info(
        f"Message {message.message_id} processed: {result.status.value}",
        message_id=message.message_id,
        guid=result.guid,
        status=result.status.value,
    )
    return result
