from __future__ import annotations

from steward.markers import MarkResult
from steward.outcomes import RunSummary
from steward.pipeline import PreparationReport

COLUMNS = ("repository", "outcome", "archetype", "url")


def _table(rows: list[tuple[str, ...]]) -> list[str]:
    widths = [max(len(row[index]) for row in rows) for index in range(len(rows[0]))]
    lines: list[str] = []
    for position, row in enumerate(rows):
        lines.append("  ".join(cell.ljust(width) for cell, width in zip(row, widths)).rstrip())
        if position == 0:
            lines.append("  ".join("-" * width for width in widths))
    return lines


def render_summary(summary: RunSummary) -> str:
    lines = [f"Organization: {summary.organization}"]
    if not summary.results:
        lines.append("No repositories processed.")
        return "\n".join(lines)

    rows: list[tuple[str, ...]] = [COLUMNS]
    for result in summary.results:
        rows.append(
            (result.repository, result.outcome.value, result.archetype or "-", result.url or "-")
        )
    lines.append("")
    lines.extend(_table(rows))

    lines.append("")
    counts = summary.counts()
    lines.append("Totals: " + ", ".join(f"{name}={count}" for name, count in counts.items()))
    lines.append(f"Repositories: {len(summary.results)}")

    failures = summary.failures
    if failures:
        lines.append("")
        lines.append("Failures:")
        for result in failures:
            detail = result.detail.splitlines()[0] if result.detail else ""
            lines.append(f"  {result.repository}: {result.outcome.value} {detail}".rstrip())
    return "\n".join(lines)


def render_preparation(report: PreparationReport) -> str:
    lines = [
        f"Backup: {report.backup_path}",
        f"Tagged: {len(report.tagged)}",
        f"Already tagged: {len(report.already_tagged)}",
    ]
    for name in report.tagged:
        lines.append(f"  + {name}")
    if report.failed:
        lines.append(f"Topic writes failed: {len(report.failed)}")
        lines.extend(_failed_lines(report.failed))
    return "\n".join(lines)


def _failed_lines(results: list[MarkResult]) -> list[str]:
    return [f"  ! {result.repository}: {result.error}" for result in results]
