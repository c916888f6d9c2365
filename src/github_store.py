"""GitHub contents API client used as the feed document store."""

import base64
from dataclasses import dataclass

import requests

from .config import GitHubConfig
from .logging_config import create_execution_logger


class FeedStoreError(Exception):
    """Base error for feed document store operations."""


class DocumentNotFoundError(FeedStoreError):
    """The path or branch does not exist."""


class StoreAuthError(FeedStoreError):
    """The credentials were rejected."""


class RevisionConflictError(FeedStoreError):
    """The document changed since it was fetched."""


@dataclass(frozen=True)
class StoredDocument:
    """File text plus the blob sha required for a conditional write."""

    text: str
    sha: str


class GitHubContentStore:
    """Reads and writes a single repository file through the contents API."""

    def __init__(self, config: GitHubConfig, execution_id: str | None = None):
        """Initialize the store with repository coordinates and credentials.

        Args:
            config: GitHub repository configuration
            execution_id: Execution ID for logging context
        """
        self.config = config
        self.logger = create_execution_logger("github_store", execution_id)
        self.session = requests.Session()
        self.session.headers.update(
            {
                "Accept": "application/vnd.github+json",
                "User-Agent": "Discord-RSS-Bot/1.0",
            }
        )
        if config.token:
            self.session.headers["Authorization"] = f"Bearer {config.token}"

    def _contents_url(self, path: str) -> str:
        return (
            f"{self.config.api_url}/repos/{self.config.owner}/"
            f"{self.config.repo}/contents/{path}"
        )

    def _raise_for_status(self, response: requests.Response, path: str) -> None:
        """Translate GitHub error responses into store errors."""
        status = response.status_code
        if status < 400:
            return

        self.logger.error(
            f"GitHub API returned status {status} for {path}",
            http_code=status,
            path=path,
        )
        if status == 404:
            raise DocumentNotFoundError(f"{path} not found on {self.config.branch}")
        if status in (401, 403):
            raise StoreAuthError(f"GitHub rejected credentials for {path} ({status})")
        if status == 409:
            raise RevisionConflictError(f"{path} changed since it was fetched")
        raise FeedStoreError(f"GitHub API error {status} for {path}: {response.text}")

    def get_content(self, path: str, ref: str) -> StoredDocument:
        """Fetch a file and its revision token.

        Args:
            path: Repository path of the file
            ref: Branch or commit to read from

        Returns:
            StoredDocument with decoded UTF-8 text and blob sha

        Raises:
            FeedStoreError: On network failure or an error response
        """
        self.logger.info("Fetching document", path=path, ref=ref)
        try:
            response = self.session.get(
                self._contents_url(path),
                params={"ref": ref},
                timeout=self.config.timeout,
            )
        except requests.RequestException as e:
            self.logger.error(f"Failed to fetch {path}: {e}", path=path, error=str(e))
            raise FeedStoreError(f"Failed to fetch {path}: {e}") from e

        self._raise_for_status(response, path)

        try:
            data = response.json()
        except ValueError as e:
            self.logger.error(f"Invalid JSON for {path}: {e}", path=path, error=str(e))
            raise FeedStoreError(f"GitHub returned invalid JSON for {path}") from e

        if not isinstance(data, dict) or "content" not in data or "sha" not in data:
            raise FeedStoreError(f"{path} is not a file")

        # binascii.Error and UnicodeDecodeError are both ValueErrors
        try:
            text = base64.b64decode(data["content"]).decode("utf-8")
        except ValueError as e:
            self.logger.error(f"Cannot decode {path}: {e}", path=path, error=str(e))
            raise FeedStoreError(f"{path} is not valid UTF-8 text: {e}") from e
        self.logger.debug(
            "Document fetched", path=path, sha=data["sha"], content_length=len(text)
        )
        return StoredDocument(text=text, sha=data["sha"])

    def put_content(
        self, path: str, ref: str, text: str, sha: str, message: str
    ) -> None:
        """Write a file, conditioned on the sha it was read at.

        Args:
            path: Repository path of the file
            ref: Branch to commit to
            text: New file content
            sha: Blob sha returned by get_content
            message: Commit message

        Raises:
            RevisionConflictError: If the file changed since it was fetched
            FeedStoreError: On any other failure
        """
        payload = {
            "message": message,
            "content": base64.b64encode(text.encode("utf-8")).decode("ascii"),
            "sha": sha,
            "branch": ref,
        }
        self.logger.info("Writing document", path=path, ref=ref, sha=sha)
        try:
            response = self.session.put(
                self._contents_url(path), json=payload, timeout=self.config.timeout
            )
        except requests.RequestException as e:
            self.logger.error(f"Failed to write {path}: {e}", path=path, error=str(e))
            raise FeedStoreError(f"Failed to write {path}: {e}") from e

        self._raise_for_status(response, path)
        self.logger.info("Document written", path=path, http_code=response.status_code)
