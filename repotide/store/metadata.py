from ..core.defaults import GITHUB_API_URL, GITHUB_HOST
from ..core.models import RepositoryMetadata
from ..core.logs import logger

from typing import Optional
import httpx


class GitHubMetadataClient:
    """Read-only access to the host's repository metadata API"""

    def __init__(
        self,
        token: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        api_url: str = GITHUB_API_URL,
        host: str = GITHUB_HOST):

        self.token = token
        self.api_url = api_url.rstrip("/")
        self.host = host
        self._http_client = http_client

    def _headers(self) -> dict:
        headers = {"Accept": "application/vnd.github+json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def fetch(self, owner: str, name: str, host: Optional[str] = None) -> RepositoryMetadata:
        """
        Fetch description, star and fork counts.

        Never raises: any failure degrades to an empty description and zero counts
        so that the repository code stays available.
        """
        if host is not None and host != self.host:
            logger.debug(f"No metadata API for host {host}, using defaults")
            return RepositoryMetadata()

        url = f"{self.api_url}/repos/{owner}/{name}"
        try:
            if self._http_client is not None:
                response = await self._http_client.get(url, headers=self._headers())
            else:
                async with httpx.AsyncClient(timeout=10) as client:
                    response = await client.get(url, headers=self._headers())

            response.raise_for_status()
            data = response.json()
            return RepositoryMetadata(
                description=data.get("description") or "",
                stars=int(data.get("stargazers_count") or 0),
                forks=int(data.get("forks_count") or 0)
            )

        except (httpx.HTTPError, ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Error fetching repository details for {owner}/{name}: {e}")
            return RepositoryMetadata()
