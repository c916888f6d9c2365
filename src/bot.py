"""Discord gateway entry point for the notice RSS bot."""

import asyncio
import json
import sys

import boto3
import discord
from botocore.exceptions import ClientError
from dotenv import load_dotenv

from .config import Config, DiscordConfig, FeedConfig, GitHubConfig
from .github_store import GitHubContentStore
from .handler import handle_message, should_process
from .logging_config import create_execution_logger, setup_structured_logging
from .models import ChatMessage, UpdateResult
from .updater import DocumentStore, FeedUpdater

SECRET_KEYS = ("token", "bot_token", "github_token", "discord_token")


def get_secret_token(secret_name: str, aws_region: str) -> str:
    """
    Retrieve a token from AWS Secrets Manager.

    Supports plain string secrets and JSON objects holding the token under
    one of the common key names. The secret value is never logged.

    Args:
        secret_name: Name of the secret in Secrets Manager
        aws_region: AWS region for Secrets Manager client

    Returns:
        Token value

    Raises:
        RuntimeError: If the secret cannot be retrieved or holds no token
    """
    secrets_logger = create_execution_logger("secrets_manager", "startup")

    if not secret_name or not secret_name.strip():
        raise ValueError("Secret name cannot be empty")

    try:
        secrets_logger.info(f"Retrieving token from Secrets Manager: {secret_name}")
        secrets_client = boto3.client("secretsmanager", region_name=aws_region)
        response = secrets_client.get_secret_value(SecretId=secret_name)

        secret_value = response.get("SecretString", "")
        if not secret_value or not secret_value.strip():
            raise ValueError(f"Secret {secret_name} contains empty value")

        try:
            secret_data = json.loads(secret_value)
        except json.JSONDecodeError:
            return secret_value.strip()

        if not isinstance(secret_data, dict):
            raise ValueError(f"JSON secret {secret_name} must be an object")

        for key in SECRET_KEYS:
            value = secret_data.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()

        raise ValueError(f"No token found in JSON secret {secret_name}")

    except ClientError as e:
        error_code = e.response.get("Error", {}).get("Code", "Unknown")
        secrets_logger.error(
            f"AWS Secrets Manager error retrieving {secret_name}: {error_code}"
        )
        raise RuntimeError(f"Failed to retrieve secret {secret_name}") from e
    except ValueError as e:
        secrets_logger.error(f"Invalid secret format for {secret_name}: {e}")
        raise RuntimeError(f"Invalid secret format for {secret_name}") from e


def resolve_tokens(config: Config) -> None:
    """Fill tokens missing from the environment from Secrets Manager."""
    if not config.github_token and config.github_secret_name:
        config.github_token = get_secret_token(
            config.github_secret_name, config.aws_region
        )
    if not config.discord_token and config.discord_secret_name:
        config.discord_token = get_secret_token(
            config.discord_secret_name, config.aws_region
        )


def publish(
    message: ChatMessage,
    discord_config: DiscordConfig,
    feed_config: FeedConfig,
    github_config: GitHubConfig,
    store: DocumentStore,
) -> UpdateResult | None:
    """Run the pipeline for one message with a per-event updater."""
    updater = FeedUpdater(
        store, github_config, execution_id=f"event_{message.message_id}"
    )
    return handle_message(message, discord_config.channel_id, feed_config, updater)


def create_client(
    discord_config: DiscordConfig,
    feed_config: FeedConfig,
    github_config: GitHubConfig,
    store: DocumentStore,
) -> discord.Client:
    """Create a Discord client that publishes watched-channel messages."""
    intents = discord.Intents.default()
    intents.guilds = True
    intents.guild_messages = True
    intents.message_content = True

    client = discord.Client(intents=intents)
    logger = create_execution_logger("bot", "gateway")

    @client.event
    async def on_ready():
        logger.info(f"Logged in as {client.user}")
        logger.info(
            f"Watching channel: {discord_config.channel_id}",
            channel_id=discord_config.channel_id,
        )

    @client.event
    async def on_message(message: discord.Message):
        chat_message = ChatMessage.from_discord(message)
        if not should_process(chat_message, discord_config.channel_id):
            return

        # requests is blocking; keep the gateway heartbeat running
        await asyncio.to_thread(
            publish, chat_message, discord_config, feed_config, github_config, store
        )

    return client


def main() -> int:
    """Load configuration, connect to Discord and run until interrupted."""
    load_dotenv()
    config = Config()
    setup_structured_logging(config.log_level)
    logger = create_execution_logger("main", "startup")

    missing = config.validate()
    if missing:
        logger.error(f"Missing or invalid settings: {', '.join(missing)}")
        return 1

    try:
        resolve_tokens(config)
    except RuntimeError as e:
        logger.error(f"Could not resolve tokens: {e}", error=str(e))
        return 1

    discord_config = config.get_discord_config()
    github_config = config.get_github_config()
    store = GitHubContentStore(github_config, execution_id="gateway")
    client = create_client(
        discord_config, config.get_feed_config(), github_config, store
    )

    # Logging is already configured; keep discord.py from adding a handler
    client.run(discord_config.bot_token, log_handler=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
