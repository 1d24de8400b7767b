"""Publish draft releases through the GitHub REST API."""
from __future__ import annotations

import logging
from typing import Optional

import httpx
from pydantic import BaseModel, Field
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from engine.errors import ReleaseError, TransportError

logger = logging.getLogger(__name__)


class PublishedRelease(BaseModel):
    """Model representing a GitHub release."""

    id: int = Field(description="Release id")
    tag_name: str = Field(description="Tag the release points at")
    url: str = Field(description="Release page URL")
    draft: bool = Field(description="Whether the release is still a draft")


class GitHubReleasePublisher:
    """Creates draft releases for pushed tags."""

    def __init__(
        self,
        token: Optional[str],
        api_url: str = "https://api.github.com",
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.client = client or httpx.Client(timeout=30.0)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    def _post(self, url: str, payload: dict) -> httpx.Response:
        return self.client.post(
            url,
            json=payload,
            headers={
                "Authorization": f"token {self.token}",
                "Accept": "application/vnd.github.v3+json",
            },
        )

    def publish(self, owner: str, repo: str, tag: str) -> PublishedRelease:
        """Create a draft release named after ``tag``.

        Raises:
            ReleaseError: If no token is configured
            TransportError: If the API call fails
        """
        if not self.token:
            raise ReleaseError("GitHub token required to publish releases", operation="publish")

        url = f"{self.api_url}/repos/{owner}/{repo}/releases"
        try:
            response = self._post(url, {"tag_name": tag, "name": tag, "draft": True})
            response.raise_for_status()
            info = response.json()
            release = PublishedRelease(
                id=info["id"],
                tag_name=info["tag_name"],
                url=info["html_url"],
                draft=info.get("draft", True),
            )
        except (httpx.HTTPError, KeyError) as e:
            raise TransportError(
                f"Failed to create release {tag} for {owner}/{repo}: {e}",
                operation="publish",
            ) from e

        logger.info(f"Created draft release {tag}", extra={"release_url": release.url})
        return release
