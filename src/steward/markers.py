"""Task-queue flags stored as repository topics, plus the topic backup snapshot.

A repository is pending work while it carries the flag topic. Flag writes are
best-effort: a failed write is logged and reported, never raised, and the next
preparation pass puts the flag back where it is missing.
"""

from __future__ import annotations

import csv
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Protocol

from steward.errors import BackupWriteError, HostingError
from steward.hosting.base import Repository

logger = logging.getLogger(__name__)

BACKUP_HEADER = ("repository", "topics")


class TopicStore(Protocol):
    def get_topics(self, name: str) -> list[str]: ...

    def set_topics(self, name: str, topics: list[str]) -> None: ...


@dataclass(slots=True)
class MarkResult:
    repository: str
    changed: bool
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class TaskMarker:
    def __init__(self, store: TopicStore) -> None:
        self.store = store

    def mark(self, repository: Repository | str, flag: str) -> MarkResult:
        name = _name_of(repository)
        try:
            topics = self.store.get_topics(name)
            if flag in topics:
                return MarkResult(repository=name, changed=False)
            self.store.set_topics(name, [*topics, flag])
        except HostingError as exc:
            logger.warning("Could not add %s to %s: %s", flag, name, exc)
            return MarkResult(repository=name, changed=False, error=str(exc))
        logger.info("Tagged %s with %s", name, flag)
        return MarkResult(repository=name, changed=True)

    def unmark(self, repository: Repository | str, flag: str) -> MarkResult:
        name = _name_of(repository)
        try:
            topics = self.store.get_topics(name)
            remaining = [topic for topic in topics if topic != flag]
            self.store.set_topics(name, remaining)
        except HostingError as exc:
            logger.warning("Could not remove %s from %s: %s", flag, name, exc)
            return MarkResult(repository=name, changed=False, error=str(exc))
        changed = len(remaining) != len(topics)
        if changed:
            logger.info("Cleared %s from %s", flag, name)
        return MarkResult(repository=name, changed=changed)


def _name_of(repository: Repository | str) -> str:
    return repository if isinstance(repository, str) else repository.name


def backup_filename(now: datetime | None = None) -> str:
    stamp = (now or datetime.now(UTC)).strftime("%Y%m%dT%H%M%SZ")
    return f"topics-backup-{stamp}.csv"


def export_backup(
    repositories: Iterable[Repository],
    directory: Path,
    *,
    now: datetime | None = None,
) -> Path:
    """Write every repository's current topic set to a new CSV snapshot."""
    path = directory / backup_filename(now)
    try:
        directory.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8", newline="") as handle:
            writer = csv.writer(handle)
            writer.writerow(BACKUP_HEADER)
            for repository in repositories:
                writer.writerow((repository.name, ",".join(repository.topics)))
    except OSError as exc:
        raise BackupWriteError(f"Could not write topic backup to {path}: {exc}") from exc
    logger.info("Topic backup written to %s", path)
    return path


def read_backup(path: Path) -> dict[str, list[str]]:
    with path.open(encoding="utf-8", newline="") as handle:
        reader = csv.DictReader(handle)
        if tuple(reader.fieldnames or ()) != BACKUP_HEADER:
            raise ValueError(f"{path} is not a topic backup (header {reader.fieldnames}).")
        return {
            row["repository"]: [topic for topic in (row["topics"] or "").split(",") if topic]
            for row in reader
        }


def restore_backup(path: Path, store: TopicStore) -> list[MarkResult]:
    """Write the topic sets recorded in ``path`` back to the hosting service."""
    results: list[MarkResult] = []
    for name, topics in read_backup(path).items():
        try:
            store.set_topics(name, topics)
        except HostingError as exc:
            logger.warning("Could not restore topics for %s: %s", name, exc)
            results.append(MarkResult(repository=name, changed=False, error=str(exc)))
            continue
        results.append(MarkResult(repository=name, changed=True))
    return results
