from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from steward.agents.base import AgentBackend
from steward.agents.instructions import build_instructions
from steward.classifier import classify
from steward.errors import AgentInvocationError, GitCommandError, StewardError
from steward.hosting.base import Repository
from steward.log import mask_credentials
from steward.markers import MarkResult, TaskMarker, export_backup
from steward.outcomes import RepositoryResult, RunSummary, TaskOutcome
from steward.workspace.committer import CompletionCommitter
from steward.workspace.gate import Baseline, SafetyGate
from steward.workspace.sync import WorkingCopySynchronizer

logger = logging.getLogger(__name__)

PipelineEventHook = Callable[[dict[str, Any]], None]


class RepositoryDirectory(Protocol):
    def list_repositories(self) -> list[Repository]: ...


@dataclass(slots=True)
class PreparationReport:
    backup_path: Path
    tagged: list[str] = field(default_factory=list)
    already_tagged: list[str] = field(default_factory=list)
    failed: list[MarkResult] = field(default_factory=list)


class Pipeline:
    def __init__(
        self,
        *,
        directory: RepositoryDirectory,
        marker: TaskMarker,
        synchronizer: WorkingCopySynchronizer,
        agent: AgentBackend,
        gate: SafetyGate,
        committer: CompletionCommitter,
        organization: str,
        workspace_dir: Path,
        backup_dir: Path,
        flag: str = "needs-readme",
        permitted_path: str = "README.md",
        event_hook: PipelineEventHook | None = None,
    ) -> None:
        self.directory = directory
        self.marker = marker
        self.synchronizer = synchronizer
        self.agent = agent
        self.gate = gate
        self.committer = committer
        self.organization = organization
        self.workspace_dir = workspace_dir
        self.backup_dir = backup_dir
        self.flag = flag
        self.permitted_path = permitted_path
        self.event_hook = event_hook

    def _emit(self, event: dict[str, Any]) -> None:
        if self.event_hook:
            self.event_hook(event)

    def working_copy_for(self, repository: Repository) -> Path:
        return self.workspace_dir / repository.name

    def prepare(self) -> PreparationReport:
        """Back up every topic set, then flag every listed repository for processing.

        ``DirectoryUnavailableError`` and ``BackupWriteError`` propagate; in both cases
        no topic has been written.
        """
        repositories = self.directory.list_repositories()
        backup_path = export_backup(repositories, self.backup_dir)
        self._emit({"event": "backup_written", "path": str(backup_path)})

        report = PreparationReport(backup_path=backup_path)
        for repository in repositories:
            if repository.has_topic(self.flag):
                report.already_tagged.append(repository.name)
                continue
            result = self.marker.mark(repository, self.flag)
            if not result.ok:
                report.failed.append(result)
                self._emit(
                    {
                        "event": "topic_write_failed",
                        "repository": repository.name,
                        "error": result.error,
                    }
                )
            elif result.changed:
                report.tagged.append(repository.name)
            else:
                report.already_tagged.append(repository.name)
        return report

    def pending(self) -> list[Repository]:
        return [
            repository
            for repository in self.directory.list_repositories()
            if repository.has_topic(self.flag)
        ]

    async def process(self, only: Iterable[str] | None = None) -> RunSummary:
        """Run every listed repository through sync, agent, gate and commit."""
        selected = set(only) if only else None
        repositories = self.directory.list_repositories()
        summary = RunSummary(organization=self.organization)
        for repository in repositories:
            if selected is not None and repository.name not in selected:
                continue
            result = await self.process_repository(repository)
            summary.record(result)
            self._emit({"event": "repository_result", **result.to_dict()})
        summary.finish()
        return summary

    async def process_repository(self, repository: Repository) -> RepositoryResult:
        url = repository.html_url or repository.clone_url
        if repository.empty:
            return RepositoryResult(repository.name, TaskOutcome.SKIPPED_EMPTY, url=url)
        if not repository.has_topic(self.flag):
            return RepositoryResult(repository.name, TaskOutcome.SKIPPED_NO_FLAG, url=url)

        archetype = classify(repository.topics)
        result = RepositoryResult(repository.name, TaskOutcome.FAILED_SYNC, archetype, url)
        try:
            await self._run_stages(repository, result)
        except (StewardError, OSError) as exc:
            # result.outcome already names the stage that was running.
            result.detail = mask_credentials(f"unexpected error: {exc}")
            logger.warning("%s failed for %s: %s", result.outcome, repository.name, result.detail)
            self._emit(
                {"event": "repository_failed", "repository": repository.name, "error": result.detail}
            )
        return result

    async def _run_stages(self, repository: Repository, result: RepositoryResult) -> None:
        working_copy = self.working_copy_for(repository)
        sync = self.synchronizer.sync(repository, working_copy)
        if not sync.ok:
            result.detail = sync.detail
            self._emit({"event": "sync_failed", "repository": repository.name, "error": sync.detail})
            return
        try:
            baseline = self.gate.capture(working_copy, self.synchronizer.baseline(working_copy))
        except (GitCommandError, OSError) as exc:
            result.detail = str(exc)
            self._emit({"event": "sync_failed", "repository": repository.name, "error": str(exc)})
            return

        result.outcome = TaskOutcome.FAILED_AGENT
        instructions = build_instructions(repository, result.archetype, self.permitted_path)
        logger.info(
            "Invoking %s agent for %s (%s)", self.agent.name, repository.name, result.archetype
        )
        try:
            agent_result = await self.agent.invoke(working_copy, instructions)
        except AgentInvocationError as exc:
            self._agent_failed(result, working_copy, baseline, str(exc))
            return

        self._emit(
            {
                "event": "agent_output",
                "repository": repository.name,
                "exit_code": agent_result.exit_code,
                "output": agent_result.transcript(),
            }
        )
        if not agent_result.ok:
            self._agent_failed(
                result,
                working_copy,
                baseline,
                f"agent exited with status {agent_result.exit_code}",
            )
            return

        result.outcome = TaskOutcome.FAILED_SCOPE_VIOLATION
        try:
            violation = self.gate.verify(working_copy, self.permitted_path, baseline)
        except (GitCommandError, OSError) as exc:
            self._discard_quietly(working_copy, baseline)
            result.detail = f"could not verify changes: {exc}"
            self._emit(
                {"event": "scope_violation", "repository": repository.name, "error": result.detail}
            )
            return
        if violation is not None:
            result.detail = violation.describe()
            self._emit(
                {
                    "event": "scope_violation",
                    "repository": repository.name,
                    "error": result.detail,
                    "paths": list(violation.violating_paths),
                }
            )
            return

        result.outcome = TaskOutcome.FAILED_PUSH
        try:
            commit = self.committer.complete(repository, working_copy)
        except GitCommandError as exc:
            result.detail = str(exc)
            self._emit({"event": "push_failed", "repository": repository.name, "error": str(exc)})
            return
        result.outcome = commit.outcome
        result.detail = commit.detail
        if commit.outcome is TaskOutcome.FAILED_PUSH:
            self._emit(
                {"event": "push_failed", "repository": repository.name, "error": commit.detail}
            )
        elif commit.outcome in {TaskOutcome.UPDATED, TaskOutcome.NO_CHANGE_DETECTED}:
            if not commit.flag_cleared:
                self._emit(
                    {
                        "event": "topic_write_failed",
                        "repository": repository.name,
                        "error": f"could not clear {self.flag}",
                    }
                )

    def _agent_failed(
        self,
        result: RepositoryResult,
        working_copy: Path,
        baseline: Baseline,
        detail: str,
    ) -> None:
        self._discard_quietly(working_copy, baseline)
        result.outcome = TaskOutcome.FAILED_AGENT
        result.detail = detail
        logger.warning("Agent failed for %s: %s", result.repository, detail)
        self._emit({"event": "agent_failed", "repository": result.repository, "error": detail})

    def _discard_quietly(self, working_copy: Path, baseline: Baseline) -> None:
        try:
            self.gate.discard(working_copy, baseline)
        except (GitCommandError, OSError) as exc:
            # The next sync hard-resets the working copy anyway.
            logger.warning("Could not discard changes in %s: %s", working_copy, exc)
