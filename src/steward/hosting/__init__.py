from steward.hosting.base import ClientSettings, Repository
from steward.hosting.client import HostingClient

__all__ = ["ClientSettings", "HostingClient", "Repository"]
