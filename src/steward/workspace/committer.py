from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from steward.errors import GitCommandError
from steward.hosting.base import Repository
from steward.markers import TaskMarker
from steward.outcomes import TaskOutcome
from steward.workspace.git import NO_HOOKS, head_commit, run_git, status_paths

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CommitResult:
    outcome: TaskOutcome
    commit: str | None = None
    detail: str = ""
    flag_cleared: bool = False


class CompletionCommitter:
    """Commits and pushes the permitted file, then settles the task flag."""

    def __init__(
        self,
        marker: TaskMarker,
        *,
        flag: str,
        permitted_path: str,
        commit_message: str,
        author_name: str,
        author_email: str,
        push: bool = True,
    ) -> None:
        self.marker = marker
        self.flag = flag
        self.permitted_path = permitted_path
        self.commit_message = commit_message
        self.author_name = author_name
        self.author_email = author_email
        self.push = push

    def has_changes(self, working_copy: Path) -> bool:
        return bool(status_paths(working_copy, self.permitted_path))

    def complete(self, repository: Repository, working_copy: Path) -> CommitResult:
        if not self.has_changes(working_copy):
            cleared = self.marker.unmark(repository, self.flag).ok
            return CommitResult(
                outcome=TaskOutcome.NO_CHANGE_DETECTED,
                detail=f"{self.permitted_path} already up to date",
                flag_cleared=cleared,
            )

        try:
            commit = self._commit(working_copy)
        except GitCommandError as exc:
            logger.warning("Commit failed for %s: %s", repository.name, exc)
            return CommitResult(outcome=TaskOutcome.FAILED_PUSH, detail=str(exc))
        if not self.push:
            logger.info("Committed %s locally for %s (push disabled)", commit[:10], repository.name)
            return CommitResult(outcome=TaskOutcome.UPDATED_NO_PUSH, commit=commit)

        try:
            run_git(
                [
                    *NO_HOOKS,
                    "push",
                    "--no-verify",
                    "origin",
                    f"HEAD:refs/heads/{repository.default_branch}",
                ],
                working_copy,
            )
        except GitCommandError as exc:
            logger.warning("Push failed for %s: %s", repository.name, exc)
            return CommitResult(outcome=TaskOutcome.FAILED_PUSH, commit=commit, detail=str(exc))

        logger.info("Pushed %s to %s/%s", commit[:10], repository.name, repository.default_branch)
        cleared = self.marker.unmark(repository, self.flag).ok
        return CommitResult(outcome=TaskOutcome.UPDATED, commit=commit, flag_cleared=cleared)

    def _commit(self, working_copy: Path) -> str:
        run_git(["add", "--", self.permitted_path], working_copy)
        run_git(
            [
                *NO_HOOKS,
                "-c",
                f"user.name={self.author_name}",
                "-c",
                f"user.email={self.author_email}",
                "commit",
                "--no-verify",
                "-m",
                self.commit_message,
                "--",
                self.permitted_path,
            ],
            working_copy,
        )
        return head_commit(working_copy)
