from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class ClientSettings:
    """Connection settings shared by every hosting-service call.

    Built once at startup and handed to the client; nothing here mutates
    process-wide state (TLS verification is per client, not global).
    """

    base_url: str
    organization: str
    token: str
    verify_tls: bool = True
    page_size: int = 50
    timeout_seconds: float = 30.0
    exclude: frozenset[str] = frozenset()
    headers: tuple[tuple[str, str], ...] = ()

    @property
    def api_url(self) -> str:
        root = self.base_url.rstrip("/")
        if root.endswith("/api/v1"):
            return root
        return f"{root}/api/v1"

    def request_headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/json",
            "Authorization": f"token {self.token}",
        }
        headers.update(dict(self.headers))
        return headers


@dataclass(frozen=True, slots=True)
class Repository:
    name: str
    full_name: str = ""
    archived: bool = False
    empty: bool = False
    description: str = ""
    default_branch: str = "main"
    clone_url: str = ""
    html_url: str = ""
    topics: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_api(cls, payload: dict[str, Any], topics: list[str] | None = None) -> Repository:
        raw_topics = topics if topics is not None else payload.get("topics") or []
        return cls(
            name=str(payload.get("name") or ""),
            full_name=str(payload.get("full_name") or ""),
            archived=bool(payload.get("archived", False)),
            empty=bool(payload.get("empty", False)),
            description=str(payload.get("description") or "").strip(),
            default_branch=str(payload.get("default_branch") or "main"),
            clone_url=str(payload.get("clone_url") or ""),
            html_url=str(payload.get("html_url") or ""),
            topics=tuple(str(topic) for topic in raw_topics),
        )

    def has_topic(self, topic: str) -> bool:
        return topic in self.topics
