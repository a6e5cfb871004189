from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from steward.workspace.git import (
    committed_paths,
    discard_changes,
    head_commit,
    metadata_changes,
    metadata_digest,
    status_paths,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Baseline:
    commit: str
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class ScopeViolation:
    permitted_path: str
    violating_paths: list[str] = field(default_factory=list)
    head_moved: bool = False
    metadata_changed: bool = False

    def describe(self) -> str:
        message = "Changes outside {}: {}".format(
            self.permitted_path, ", ".join(self.violating_paths) or "(none)"
        )
        if self.head_moved:
            message += " (HEAD moved during invocation)"
        if self.metadata_changed:
            message += " (repository metadata modified; working copy removed)"
        return message


class SafetyGate:
    """Checks, after the fact, that the agent only touched the permitted file."""

    @staticmethod
    def capture(working_copy: Path, commit: str) -> Baseline:
        """Pair the synchronized commit with a snapshot of the guarded .git metadata."""
        return Baseline(commit=commit, metadata=metadata_digest(working_copy))

    @staticmethod
    def changed_paths(working_copy: Path, baseline: Baseline) -> tuple[set[str], bool]:
        paths = set(status_paths(working_copy, include_ignored=True))
        head = head_commit(working_copy)
        head_moved = head != baseline.commit
        if head_moved:
            paths.update(committed_paths(working_copy, baseline.commit, head))
        return paths, head_moved

    def verify(
        self, working_copy: Path, permitted_path: str, baseline: Baseline
    ) -> ScopeViolation | None:
        # Checked before any git command runs, since a tampered config can run code.
        tampered = metadata_changes(baseline.metadata, metadata_digest(working_copy))
        if tampered:
            violation = ScopeViolation(
                permitted_path=permitted_path,
                violating_paths=tampered,
                metadata_changed=True,
            )
            logger.warning("%s in %s", violation.describe(), working_copy)
            shutil.rmtree(working_copy)
            return violation

        paths, head_moved = self.changed_paths(working_copy, baseline)
        violating = sorted(path for path in paths if path != permitted_path)
        if not violating and not head_moved:
            return None
        violation = ScopeViolation(
            permitted_path=permitted_path,
            violating_paths=violating,
            head_moved=head_moved,
        )
        logger.warning("%s in %s; discarding local changes", violation.describe(), working_copy)
        self.discard(working_copy, baseline)
        return violation

    @staticmethod
    def discard(working_copy: Path, baseline: Baseline) -> None:
        """Return the working copy to ``baseline``; drop it entirely if ``.git`` was touched."""
        if metadata_changes(baseline.metadata, metadata_digest(working_copy)):
            logger.warning("Removing %s: repository metadata was modified", working_copy)
            shutil.rmtree(working_copy)
            return
        discard_changes(working_copy, baseline.commit)
