"""Deterministic instruction payloads for the README agent.

The same repository metadata always produces byte-identical instructions, so
re-running the pipeline asks the agent exactly the same question.
"""

from __future__ import annotations

from steward.agents.base import Instructions
from steward.classifier import deployment_guidance
from steward.hosting.base import Repository

README_SECTIONS: tuple[str, ...] = (
    "## Overview",
    "## Getting Started",
    "## Configuration",
    "## Usage",
    "## Deployment",
    "## Ownership",
)

OWNERSHIP_HEADING = "## Ownership"

OWNERSHIP_PLACEHOLDERS: tuple[str, ...] = ("TBD", "TODO", "<team>", "<owner>", "N/A", "...")

SYSTEM_PROMPT = """
You maintain repository documentation.
You may read any file in the working copy, but you may only write {permitted_path}.
Do not create, modify, rename or delete any other file.
Never run version-control commands; committing and pushing is handled elsewhere.
When you are done, reply with a one-paragraph summary of what you changed.
""".strip()


def _render_sections() -> str:
    return "\n".join(f"{index}. {heading}" for index, heading in enumerate(README_SECTIONS, 1))


def build_instructions(
    repository: Repository,
    archetype: str,
    permitted_path: str = "README.md",
) -> Instructions:
    topics = ", ".join(repository.topics) if repository.topics else "(none)"
    lines = [
        f"Rewrite {permitted_path} for the repository '{repository.name}'.",
        "",
        "Repository facts:",
        f"- Name: {repository.name}",
    ]
    if repository.description:
        lines.append(f"- Description (human-authored): {repository.description}")
    lines.extend(
        [
            f"- Topics: {topics}",
            f"- Application type: {archetype}",
            "",
            "Deployment guidance:",
            deployment_guidance(archetype),
            "",
            "Structural requirements:",
            "The document must contain exactly these headings, verbatim and in this order:",
            _render_sections(),
            "Do not rename, reword, reorder or omit any of these headings.",
            "",
            (
                f"If {permitted_path} already has a '{OWNERSHIP_HEADING}' section with real "
                "content, keep that section exactly as it is. Only fill it in when it is missing "
                "or contains placeholder values such as "
                + ", ".join(repr(value) for value in OWNERSHIP_PLACEHOLDERS)
                + "."
            ),
            "",
            "Base every statement on what the repository actually contains.",
            f"If {permitted_path} already satisfies all requirements, leave it unchanged.",
        ]
    )
    return Instructions(
        system_prompt=SYSTEM_PROMPT.format(permitted_path=permitted_path),
        user_prompt="\n".join(lines),
        permitted_path=permitted_path,
    )
