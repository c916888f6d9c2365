"""Configuration management for the Discord notice RSS bot."""

import os
from dataclasses import dataclass

from dateutil import tz


@dataclass(frozen=True)
class DiscordConfig:
    """Configuration for the Discord gateway connection."""

    bot_token: str
    channel_id: str


@dataclass(frozen=True)
class GitHubConfig:
    """Configuration for the GitHub repository holding the feed file."""

    token: str
    owner: str
    repo: str
    branch: str = "main"
    rss_file: str = "news.xml"
    api_url: str = "https://api.github.com"
    commit_message: str = "Update news.xml - add new RSS item"
    timeout: int = 30


@dataclass(frozen=True)
class FeedConfig:
    """Branding used when rendering feed items."""

    guid_prefix: str = "lastsaviors-"
    author_suffix: str = "(라스트 세이비어스 운영팀)"
    default_title: str = "새 공지사항"
    timezone: str = "Asia/Seoul"


class Config:
    """Main configuration manager.

    Reads the process environment once; components receive the frozen
    dataclasses returned by the getters instead of reading ``os.environ``.
    """

    def __init__(self):
        """Initialize configuration from environment variables."""
        self.discord_token = os.getenv("DISCORD_TOKEN", "")
        self.channel_id = os.getenv("CHANNEL_ID", "")
        self.github_token = os.getenv("GITHUB_TOKEN", "")
        self.repo_owner = os.getenv("GITHUB_REPO_OWNER", "")
        self.repo_name = os.getenv("GITHUB_REPO_NAME", "")
        self.branch = os.getenv("GITHUB_BRANCH") or "main"
        self.rss_file = os.getenv("RSS_FILE") or "news.xml"
        self.api_url = os.getenv("GITHUB_API_URL") or "https://api.github.com"
        self.log_level = os.getenv("LOG_LEVEL", "INFO")

        # Optional AWS Secrets Manager fallback for the tokens
        self.github_secret_name = os.getenv("GITHUB_SECRET_NAME", "")
        self.discord_secret_name = os.getenv("DISCORD_SECRET_NAME", "")
        self.aws_region = os.getenv(
            "AWS_REGION", os.getenv("AWS_DEFAULT_REGION", "us-east-1")
        )

        defaults = FeedConfig()
        self.guid_prefix = os.getenv("FEED_GUID_PREFIX", defaults.guid_prefix)
        self.author_suffix = os.getenv("FEED_AUTHOR_SUFFIX", defaults.author_suffix)
        self.default_title = os.getenv("FEED_DEFAULT_TITLE", defaults.default_title)
        self.timezone = os.getenv("FEED_TIMEZONE", defaults.timezone)

    def get_discord_config(self) -> DiscordConfig:
        """Get Discord configuration."""
        return DiscordConfig(bot_token=self.discord_token, channel_id=self.channel_id)

    def get_github_config(self) -> GitHubConfig:
        """Get GitHub configuration."""
        return GitHubConfig(
            token=self.github_token,
            owner=self.repo_owner,
            repo=self.repo_name,
            branch=self.branch,
            rss_file=self.rss_file,
            api_url=self.api_url.rstrip("/"),
            commit_message=f"Update {self.rss_file} - add new RSS item",
        )

    def get_feed_config(self) -> FeedConfig:
        """Get feed item branding configuration."""
        return FeedConfig(
            guid_prefix=self.guid_prefix,
            author_suffix=self.author_suffix,
            default_title=self.default_title,
            timezone=self.timezone,
        )

    def validate(self) -> list[str]:
        """Return the names of required settings that are missing or invalid.

        Tokens count as present when a Secrets Manager name is configured
        for them. FEED_TIMEZONE must name a zone dateutil can load.
        """
        missing = []
        if not self.channel_id:
            missing.append("CHANNEL_ID")
        if not self.discord_token and not self.discord_secret_name:
            missing.append("DISCORD_TOKEN")
        if not self.github_token and not self.github_secret_name:
            missing.append("GITHUB_TOKEN")
        if not self.repo_owner:
            missing.append("GITHUB_REPO_OWNER")
        if not self.repo_name:
            missing.append("GITHUB_REPO_NAME")
        # gettz("") is the host zone, which would make GUIDs host dependent
        if not self.timezone or tz.gettz(self.timezone) is None:
            missing.append("FEED_TIMEZONE")
        return missing
