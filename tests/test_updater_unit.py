"""Unit tests for the feed document updater."""

import base64
from datetime import UTC, datetime
from unittest.mock import Mock

import pytest
import requests

from src.config import GitHubConfig
from src.github_store import (
    DocumentNotFoundError,
    GitHubContentStore,
    RevisionConflictError,
    StoreAuthError,
    StoredDocument,
)
from src.models import UpdateStatus
from src.updater import FeedUpdater, MalformedFeedError, insert_item

OLD_BUILD_DATE = "<lastBuildDate>Mon, 01 Jan 2024 00:00:00 GMT</lastBuildDate>"

FEED_WITH_ITEMS = f"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:content="http://purl.org/rss/1.0/modules/content/">
<channel>
  <title>News</title>
  {OLD_BUILD_DATE}
<item>
  <title>A</title>
  <guid isPermaLink="false">lastsaviors-20240101000001</guid>
</item>
<item>
  <title>B</title>
  <guid isPermaLink="false">lastsaviors-20231231000001</guid>
</item>
</channel>
</rss>
"""

EMPTY_FEED = f"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
<channel>
  <title>News</title>
  {OLD_BUILD_DATE}
</channel>
</rss>
"""

NEW_GUID = "lastsaviors-20240102000001"
NEW_ITEM = f"""
<item>
  <title>C</title>
  <guid isPermaLink="false">{NEW_GUID}</guid>
</item>"""

NOW = datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)


class TestInsertItemUnit:
    """Unit tests for the pure document merge."""

    def test_new_item_goes_first(self):
        updated = insert_item(FEED_WITH_ITEMS, NEW_ITEM, NOW)

        positions = [
            updated.index(NEW_GUID),
            updated.index("lastsaviors-20240101000001"),
            updated.index("lastsaviors-20231231000001"),
        ]
        assert positions == sorted(positions)

    def test_new_item_follows_channel_tag(self):
        updated = insert_item(FEED_WITH_ITEMS, NEW_ITEM, NOW)

        assert f"<channel>\n  {NEW_ITEM}\n<title>News</title>" in updated

    def test_first_item_goes_before_channel_close(self):
        updated = insert_item(EMPTY_FEED, NEW_ITEM, NOW)

        assert f"{NEW_ITEM}\n</channel>" in updated
        assert updated.index("<title>News</title>") < updated.index(NEW_GUID)

    def test_last_build_date_is_refreshed(self):
        updated = insert_item(FEED_WITH_ITEMS, NEW_ITEM, NOW)

        assert OLD_BUILD_DATE not in updated
        assert "<lastBuildDate>Tue, 02 Jan 2024 03:04:05 GMT</lastBuildDate>" in updated
        assert updated.count("<lastBuildDate>") == 1

    def test_channel_attributes_are_kept(self):
        document = FEED_WITH_ITEMS.replace("<channel>", '<channel xml:lang="ko">')

        updated = insert_item(document, NEW_ITEM, NOW)

        assert f'<channel xml:lang="ko">\n  {NEW_ITEM}\n' in updated

    def test_item_with_backslashes_is_inserted_verbatim(self):
        item = "\n<item><title>C:\\path\\1</title></item>"

        updated = insert_item(EMPTY_FEED, item, NOW)

        assert "<title>C:\\path\\1</title>" in updated

    def test_missing_last_build_date_is_malformed(self):
        document = EMPTY_FEED.replace(f"  {OLD_BUILD_DATE}\n", "")

        with pytest.raises(MalformedFeedError):
            insert_item(document, NEW_ITEM, NOW)

    def test_missing_channel_is_malformed(self):
        with pytest.raises(MalformedFeedError):
            insert_item("<rss></rss>", NEW_ITEM, NOW)

        with pytest.raises(MalformedFeedError):
            insert_item("<rss><item></item></rss>", NEW_ITEM, NOW)


class TestFeedUpdaterUnit:
    """Unit tests for FeedUpdater.update()."""

    def setup_method(self):
        self.config = GitHubConfig(token="t", owner="octo", repo="site")
        self.store = Mock()
        self.store.get_content.return_value = StoredDocument(
            text=FEED_WITH_ITEMS, sha="abc123"
        )
        self.updater = FeedUpdater(self.store, self.config)

    def test_successful_update(self):
        result = self.updater.update(NEW_ITEM, NEW_GUID)

        assert result.status is UpdateStatus.SUCCESS
        assert result.guid == NEW_GUID
        assert result.ok
        self.store.get_content.assert_called_once_with("news.xml", "main")

        args = self.store.put_content.call_args[0]
        assert args[0] == "news.xml"
        assert args[1] == "main"
        assert args[2].index(NEW_GUID) < args[2].index("lastsaviors-20240101000001")
        assert OLD_BUILD_DATE not in args[2]
        assert args[3] == "abc123"
        assert args[4] == "Update news.xml - add new RSS item"

    def test_duplicate_is_skipped(self):
        result = self.updater.update(NEW_ITEM, "lastsaviors-20240101000001")

        assert result.status is UpdateStatus.SKIPPED
        assert result.ok
        self.store.put_content.assert_not_called()

    def test_conflict_fails_without_retry(self):
        self.store.put_content.side_effect = RevisionConflictError("stale sha")

        result = self.updater.update(NEW_ITEM, NEW_GUID)

        assert result.status is UpdateStatus.FAILED
        assert result.error == "stale sha"
        assert not result.ok
        assert self.store.put_content.call_count == 1
        assert self.store.get_content.call_count == 1

    @pytest.mark.parametrize(
        "error", [DocumentNotFoundError("missing"), StoreAuthError("denied")]
    )
    def test_fetch_errors_fail(self, error):
        self.store.get_content.side_effect = error

        result = self.updater.update(NEW_ITEM, NEW_GUID)

        assert result.status is UpdateStatus.FAILED
        assert result.error == str(error)
        self.store.put_content.assert_not_called()

    def test_malformed_document_fails_without_write(self):
        self.store.get_content.return_value = StoredDocument(
            text=FEED_WITH_ITEMS.replace(OLD_BUILD_DATE, ""), sha="abc123"
        )

        result = self.updater.update(NEW_ITEM, NEW_GUID)

        assert result.status is UpdateStatus.FAILED
        assert "lastBuildDate" in result.error
        self.store.put_content.assert_not_called()

    def test_uses_configured_path_and_branch(self):
        config = GitHubConfig(
            token="t",
            owner="octo",
            repo="site",
            branch="gh-pages",
            rss_file="feeds/notice.xml",
            commit_message="Update feeds/notice.xml - add new RSS item",
        )
        updater = FeedUpdater(self.store, config)

        updater.update(NEW_ITEM, NEW_GUID)

        self.store.get_content.assert_called_once_with("feeds/notice.xml", "gh-pages")
        args = self.store.put_content.call_args[0]
        assert args[:2] == ("feeds/notice.xml", "gh-pages")
        assert args[4] == "Update feeds/notice.xml - add new RSS item"


class TestFeedUpdaterUndecodableDocumentUnit:
    """Decoding failures in the store surface as FAILED results."""

    def setup_method(self):
        self.store = GitHubContentStore(GitHubConfig(token="t", owner="o", repo="r"))
        self.store.session = Mock()
        self.updater = FeedUpdater(self.store, self.store.config)

    def test_non_utf8_document_fails(self):
        response = Mock(status_code=200)
        response.json.return_value = {
            "content": base64.b64encode(b"\xff\xfe<rss>").decode("ascii"),
            "sha": "s",
        }
        self.store.session.get.return_value = response

        result = self.updater.update("<item/>", "g")

        assert result.status is UpdateStatus.FAILED
        assert result.guid == "g"
        self.store.session.put.assert_not_called()

    def test_non_json_body_fails(self):
        response = Mock(status_code=200)
        response.json.side_effect = requests.JSONDecodeError("Expecting value", "", 0)
        self.store.session.get.return_value = response

        result = self.updater.update("<item/>", "g")

        assert result.status is UpdateStatus.FAILED
        assert "invalid JSON" in result.error
        self.store.session.put.assert_not_called()
