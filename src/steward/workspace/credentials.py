from __future__ import annotations

from abc import ABC, abstractmethod
from urllib.parse import quote, urlsplit, urlunsplit


class CredentialProvider(ABC):
    @abstractmethod
    def authenticated_url(self, url: str) -> str:
        """Return the remote URL git should use for ``url``."""


class AnonymousCredentials(CredentialProvider):
    def authenticated_url(self, url: str) -> str:
        return url


class TokenCredentials(CredentialProvider):
    """Embeds a token as HTTP basic credentials in http(s) remote URLs."""

    def __init__(self, token: str, username: str = "oauth2") -> None:
        self._token = token
        self.username = username

    def authenticated_url(self, url: str) -> str:
        parts = urlsplit(url)
        if parts.scheme not in {"http", "https"} or not parts.hostname:
            return url
        host = parts.hostname
        if parts.port:
            host = f"{host}:{parts.port}"
        netloc = f"{quote(self.username, safe='')}:{quote(self._token, safe='')}@{host}"
        return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))

    def __repr__(self) -> str:
        return f"TokenCredentials(username={self.username!r}, token='***')"
