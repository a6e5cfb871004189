import json
import subprocess
from pathlib import Path
from typing import Any

import httpx
import pytest

from steward.agents.base import AgentBackend, AgentResult, Instructions
from steward.hosting import ClientSettings, HostingClient


def run(cmd: list[str], cwd: Path) -> str:
    proc = subprocess.run(cmd, cwd=cwd, check=True, text=True, capture_output=True)
    return proc.stdout.strip()


def make_remote(root: Path, name: str, files: dict[str, str]) -> Path:
    """Create a bare repository at ``root/name.git`` whose ``main`` holds ``files``."""
    remote = root / f"{name}.git"
    run(["git", "init", "--bare", "--initial-branch=main", str(remote)], cwd=root)
    seed = root / f"{name}-seed"
    seed.mkdir()
    run(["git", "init", "--initial-branch=main"], cwd=seed)
    run(["git", "config", "user.email", "test@example.com"], cwd=seed)
    run(["git", "config", "user.name", "Test User"], cwd=seed)
    for rel_path, content in files.items():
        target = seed / rel_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    run(["git", "add", "-A"], cwd=seed)
    run(["git", "commit", "-m", "seed"], cwd=seed)
    run(["git", "remote", "add", "origin", str(remote)], cwd=seed)
    run(["git", "push", "origin", "main"], cwd=seed)
    return remote


def remote_file(remote: Path, rel_path: str) -> str:
    return run(["git", "show", f"main:{rel_path}"], cwd=remote)


def remote_log(remote: Path) -> list[str]:
    return run(["git", "log", "--pretty=%s", "main"], cwd=remote).splitlines()


def tracked_files(working_copy: Path) -> set[str]:
    return {
        str(path.relative_to(working_copy))
        for path in working_copy.rglob("*")
        if path.is_file() and ".git" not in path.relative_to(working_copy).parts
    }


class FakeOrganization:
    """In-memory stand-in for the hosting service's REST API."""

    def __init__(self, name: str = "acme", *, list_topics: bool = True) -> None:
        self.name = name
        self.list_topics = list_topics
        self.repos: dict[str, dict[str, Any]] = {}
        self.topics: dict[str, list[str]] = {}
        self.topic_writes: list[tuple[str, list[str]]] = []
        self.fail_listing = False
        self.fail_topic_writes: set[str] = set()
        self.html_topic_reads: set[str] = set()
        self.requests: list[httpx.Request] = []

    def add_repo(
        self,
        name: str,
        *,
        topics: list[str] | None = None,
        archived: bool = False,
        empty: bool = False,
        description: str = "",
        clone_url: str = "",
    ) -> None:
        self.repos[name] = {
            "name": name,
            "full_name": f"{self.name}/{name}",
            "archived": archived,
            "empty": empty,
            "description": description,
            "default_branch": "main",
            "clone_url": clone_url or f"https://git.example.com/{self.name}/{name}.git",
            "html_url": f"https://git.example.com/{self.name}/{name}",
        }
        self.topics[name] = list(topics or [])

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        prefix = "/api/v1"
        if not path.startswith(prefix):
            return httpx.Response(404)
        path = path[len(prefix):]
        org_repos = f"/orgs/{self.name}/repos"
        if path == org_repos and request.method == "GET":
            if self.fail_listing:
                return httpx.Response(503, text="unavailable")
            page = int(request.url.params.get("page", "1"))
            limit = int(request.url.params.get("limit", "50"))
            names = list(self.repos)
            chunk = names[(page - 1) * limit : page * limit]
            payload = []
            for name in chunk:
                entry = dict(self.repos[name])
                if self.list_topics:
                    entry["topics"] = list(self.topics[name])
                payload.append(entry)
            return httpx.Response(200, json=payload)

        repo_prefix = f"/repos/{self.name}/"
        if path.startswith(repo_prefix) and path.endswith("/topics"):
            name = path[len(repo_prefix) : -len("/topics")]
            if name not in self.repos:
                return httpx.Response(404, json={"message": "not found"})
            if request.method == "GET":
                if name in self.html_topic_reads:
                    return httpx.Response(200, text="<html>proxy login</html>")
                return httpx.Response(200, json={"topics": list(self.topics[name])})
            if request.method == "PUT":
                if name in self.fail_topic_writes:
                    return httpx.Response(500, text="write failed")
                body = json.loads(request.content.decode("utf-8"))
                self.topics[name] = list(body["topics"])
                self.topic_writes.append((name, list(body["topics"])))
                return httpx.Response(204)
        return httpx.Response(404)

    def client(self, *, page_size: int = 50, exclude: frozenset[str] = frozenset()) -> HostingClient:
        settings = ClientSettings(
            base_url="https://git.example.com",
            organization=self.name,
            token="secret-token",
            page_size=page_size,
            exclude=exclude,
        )
        return HostingClient(settings, transport=httpx.MockTransport(self.handler))


class ScriptedAgent(AgentBackend):
    """Writes preset file contents into the working copy, per repository."""

    name = "scripted"

    def __init__(
        self,
        edits: dict[str, dict[str, str]] | None = None,
        *,
        exit_codes: dict[str, int] | None = None,
    ) -> None:
        self.edits = edits or {}
        self.exit_codes = exit_codes or {}
        self.calls: list[tuple[Path, Instructions]] = []
        self.files_before: dict[str, set[str]] = {}

    async def invoke(self, working_copy: Path, instructions: Instructions) -> AgentResult:
        self.calls.append((working_copy, instructions))
        name = working_copy.name
        self.files_before[name] = tracked_files(working_copy)
        for rel_path, content in self.edits.get(name, {}).items():
            target = working_copy / rel_path
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        exit_code = self.exit_codes.get(name, 0)
        return AgentResult(exit_code=exit_code, output=f"edited {name}", stderr="")


@pytest.fixture
def org() -> FakeOrganization:
    return FakeOrganization()
