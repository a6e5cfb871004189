from __future__ import annotations

import logging
from typing import Any

import httpx

from steward.errors import DirectoryUnavailableError, HostingError, TopicWriteError
from steward.hosting.base import ClientSettings, Repository

logger = logging.getLogger(__name__)


class HostingClient:
    """Gitea-compatible REST client for repository listings and topics."""

    def __init__(
        self,
        settings: ClientSettings,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self._client = httpx.Client(
            base_url=settings.api_url,
            headers=settings.request_headers(),
            verify=settings.verify_tls,
            timeout=settings.timeout_seconds,
            transport=transport,
        )

    def __enter__(self) -> HostingClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise HostingError(f"{method} {path} failed: {exc}") from exc
        if response.is_error:
            raise HostingError(
                f"{method} {path} returned HTTP {response.status_code}: "
                f"{response.text.strip()[:200]}",
                status_code=response.status_code,
            )
        return response

    def _repo_path(self, name: str) -> str:
        return f"/repos/{self.settings.organization}/{name}"

    def list_repositories(self) -> list[Repository]:
        """Return every non-archived, non-excluded repository of the organization."""
        page_size = self.settings.page_size
        org_path = f"/orgs/{self.settings.organization}/repos"
        repositories: list[Repository] = []
        page = 1
        try:
            while True:
                response = self._request(
                    "GET", org_path, params={"page": page, "limit": page_size}
                )
                entries = response.json()
                if not isinstance(entries, list):
                    raise DirectoryUnavailableError(
                        f"Unexpected repository listing payload on page {page}."
                    )
                logger.debug("Fetched repository page %d (%d entries)", page, len(entries))
                for entry in entries:
                    repository = self._repository_from_entry(entry)
                    if repository is not None:
                        repositories.append(repository)
                if len(entries) < page_size:
                    break
                page += 1
        except DirectoryUnavailableError:
            raise
        except (HostingError, ValueError) as exc:
            raise DirectoryUnavailableError(
                f"Could not list repositories for {self.settings.organization}: {exc}"
            ) from exc
        logger.info(
            "Listed %d active repositories in %s", len(repositories), self.settings.organization
        )
        return repositories

    def _repository_from_entry(self, entry: Any) -> Repository | None:
        if not isinstance(entry, dict):
            return None
        if entry.get("archived"):
            logger.debug("Skipping archived repository %s", entry.get("name"))
            return None
        name = str(entry.get("name") or "")
        if not name or name in self.settings.exclude:
            logger.debug("Skipping excluded repository %s", name)
            return None
        topics = entry.get("topics")
        if not isinstance(topics, list):
            topics = self.get_topics(name)
        return Repository.from_api(entry, topics=topics)

    def get_topics(self, name: str) -> list[str]:
        response = self._request("GET", f"{self._repo_path(name)}/topics")
        try:
            payload = response.json()
        except ValueError as exc:
            raise HostingError(
                f"GET {self._repo_path(name)}/topics returned a non-JSON body: {exc}",
                status_code=response.status_code,
            ) from exc
        topics = payload.get("topics") if isinstance(payload, dict) else None
        if not isinstance(topics, list):
            return []
        return [str(topic) for topic in topics]

    def set_topics(self, name: str, topics: list[str]) -> None:
        """Replace the full topic set of ``name``."""
        try:
            self._request("PUT", f"{self._repo_path(name)}/topics", json={"topics": list(topics)})
        except HostingError as exc:
            raise TopicWriteError(
                f"Could not update topics for {name}: {exc}", status_code=exc.status_code
            ) from exc
        logger.debug("Topics for %s set to %s", name, topics)
