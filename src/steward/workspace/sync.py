from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

from steward.errors import GitCommandError
from steward.hosting.base import Repository
from steward.log import mask_credentials
from steward.workspace.credentials import AnonymousCredentials, CredentialProvider
from steward.workspace.git import head_commit, is_git_repo, run_git

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SyncResult:
    ok: bool
    detail: str = ""
    cloned: bool = False


class WorkingCopySynchronizer:
    """Keeps one local clone per repository in lockstep with its default branch."""

    def __init__(self, credentials: CredentialProvider | None = None) -> None:
        self.credentials = credentials or AnonymousCredentials()

    def sync(self, repository: Repository, destination: Path) -> SyncResult:
        remote = self.credentials.authenticated_url(repository.clone_url)
        branch = repository.default_branch
        try:
            if is_git_repo(destination):
                self._refresh(destination, remote, branch)
                logger.info("Reset %s to origin/%s", repository.name, branch)
                return SyncResult(ok=True)
            self._clone(destination, remote, branch)
            logger.info("Cloned %s (%s)", repository.name, branch)
            return SyncResult(ok=True, cloned=True)
        except (GitCommandError, OSError) as exc:
            detail = mask_credentials(str(exc))
            logger.warning("Sync failed for %s: %s", repository.name, detail)
            return SyncResult(ok=False, detail=detail)

    @staticmethod
    def _refresh(destination: Path, remote: str, branch: str) -> None:
        run_git(["remote", "set-url", "origin", remote], destination)
        run_git(
            ["fetch", "--prune", "origin", f"+refs/heads/{branch}:refs/remotes/origin/{branch}"],
            destination,
        )
        run_git(["checkout", "-f", "-B", branch, f"origin/{branch}"], destination)
        run_git(["reset", "--hard", f"origin/{branch}"], destination)
        run_git(["clean", "-ffdx"], destination)

    @staticmethod
    def _clone(destination: Path, remote: str, branch: str) -> None:
        if destination.exists():
            shutil.rmtree(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        run_git(
            ["clone", "--single-branch", "--branch", branch, remote, str(destination)],
            destination.parent,
        )

    @staticmethod
    def baseline(destination: Path) -> str:
        return head_commit(destination)
