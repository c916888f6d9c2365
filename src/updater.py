"""Merges new items into the feed document held by the remote store."""

import re
from datetime import UTC, datetime
from typing import Protocol

from .config import GitHubConfig
from .github_store import FeedStoreError, StoredDocument
from .logging_config import create_execution_logger
from .models import UpdateResult, UpdateStatus
from .rss import http_date

_CHANNEL_OPEN_RE = re.compile(r"(<channel[^>]*>\s*)", re.DOTALL)
_CHANNEL_CLOSE_RE = re.compile(r"(</channel>)")
_LAST_BUILD_DATE_RE = re.compile(r"<lastBuildDate>.*?</lastBuildDate>")


class MalformedFeedError(FeedStoreError):
    """The fetched document lacks an element the merge relies on."""


class DocumentStore(Protocol):
    def get_content(self, path: str, ref: str) -> StoredDocument: ...

    def put_content(
        self, path: str, ref: str, text: str, sha: str, message: str
    ) -> None: ...


def insert_item(document: str, item_xml: str, now: datetime) -> str:
    """Insert an item as the newest entry and refresh lastBuildDate.

    Args:
        document: Current feed document text
        item_xml: Serialized ``<item>`` markup
        now: Instant written to lastBuildDate

    Returns:
        Updated document text

    Raises:
        MalformedFeedError: If the channel or lastBuildDate element is missing
    """
    if "<item>" in document:
        if not _CHANNEL_OPEN_RE.search(document):
            raise MalformedFeedError("Feed document has no <channel> element")
        updated = _CHANNEL_OPEN_RE.sub(
            lambda m: f"{m.group(1)}{item_xml}\n", document, count=1
        )
    else:
        if not _CHANNEL_CLOSE_RE.search(document):
            raise MalformedFeedError("Feed document has no </channel> element")
        updated = _CHANNEL_CLOSE_RE.sub(
            lambda m: f"{item_xml}\n{m.group(1)}", document, count=1
        )

    if not _LAST_BUILD_DATE_RE.search(updated):
        raise MalformedFeedError("Feed document has no <lastBuildDate> element")
    return _LAST_BUILD_DATE_RE.sub(
        lambda m: f"<lastBuildDate>{http_date(now)}</lastBuildDate>", updated, count=1
    )


class FeedUpdater:
    """Fetches the feed, deduplicates by GUID and writes the merged document."""

    def __init__(
        self,
        store: DocumentStore,
        config: GitHubConfig,
        execution_id: str | None = None,
    ):
        """Initialize the updater.

        Args:
            store: Remote store exposing get_content/put_content
            config: Repository coordinates of the feed file
            execution_id: Execution ID for logging context
        """
        self.store = store
        self.config = config
        self.logger = create_execution_logger("updater", execution_id)

    def update(self, item_xml: str, guid: str) -> UpdateResult:
        """Add one item to the top of the feed.

        The write is conditioned on the revision fetched at the start; a
        concurrent writer makes this update fail rather than merge.

        Args:
            item_xml: Serialized ``<item>`` markup
            guid: GUID embedded in item_xml

        Returns:
            UpdateResult with SUCCESS, SKIPPED (duplicate) or FAILED
        """
        path, branch = self.config.rss_file, self.config.branch
        try:
            document = self.store.get_content(path, branch)

            if guid in document.text:
                self.logger.warning(
                    "Item already present in feed, skipping", guid=guid
                )
                return UpdateResult(status=UpdateStatus.SKIPPED, guid=guid)

            updated = insert_item(document.text, item_xml, datetime.now(UTC))
            self.store.put_content(
                path, branch, updated, document.sha, self.config.commit_message
            )
        except FeedStoreError as e:
            self.logger.error(
                f"Failed to update {path}: {e}",
                guid=guid,
                status=UpdateStatus.FAILED.value,
                error=str(e),
            )
            return UpdateResult(status=UpdateStatus.FAILED, guid=guid, error=str(e))

        self.logger.info(
            f"Feed {path} updated with new item on top",
            guid=guid,
            status=UpdateStatus.SUCCESS.value,
        )
        return UpdateResult(status=UpdateStatus.SUCCESS, guid=guid)
