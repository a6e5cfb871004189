from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


def _utcnow_iso() -> str:
    return datetime.now(UTC).replace(microsecond=0).isoformat()


class TaskOutcome(str, Enum):
    SKIPPED_EMPTY = "SkippedEmpty"
    SKIPPED_NO_FLAG = "SkippedNoFlag"
    UPDATED = "Updated"
    UPDATED_NO_PUSH = "UpdatedNoPush"
    FAILED_SYNC = "FailedSync"
    FAILED_AGENT = "FailedAgent"
    FAILED_SCOPE_VIOLATION = "FailedScopeViolation"
    FAILED_PUSH = "FailedPush"
    NO_CHANGE_DETECTED = "NoChangeDetected"

    @property
    def failed(self) -> bool:
        return self.value.startswith("Failed")

    def __str__(self) -> str:
        return self.value


@dataclass(slots=True)
class RepositoryResult:
    repository: str
    outcome: TaskOutcome
    archetype: str = ""
    url: str = ""
    detail: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "repository": self.repository,
            "outcome": self.outcome.value,
            "archetype": self.archetype,
            "url": self.url,
            "detail": self.detail,
        }


@dataclass(slots=True)
class RunSummary:
    organization: str
    started_at: str = field(default_factory=_utcnow_iso)
    ended_at: str | None = None
    results: list[RepositoryResult] = field(default_factory=list)

    def record(self, result: RepositoryResult) -> None:
        self.results.append(result)

    def finish(self) -> None:
        self.ended_at = _utcnow_iso()

    def outcome_for(self, repository: str) -> TaskOutcome | None:
        for result in self.results:
            if result.repository == repository:
                return result.outcome
        return None

    def counts(self) -> dict[str, int]:
        counter = Counter(result.outcome for result in self.results)
        return {outcome.value: counter[outcome] for outcome in TaskOutcome if counter[outcome]}

    @property
    def failures(self) -> list[RepositoryResult]:
        return [result for result in self.results if result.outcome.failed]

    def to_dict(self) -> dict[str, Any]:
        return {
            "organization": self.organization,
            "started_at": self.started_at,
            "ended_at": self.ended_at,
            "results": [result.to_dict() for result in self.results],
            "counts": self.counts(),
        }
