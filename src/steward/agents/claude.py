from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from pathlib import Path

from steward.agents.base import AgentBackend, AgentResult, Instructions
from steward.errors import AgentProcessError

logger = logging.getLogger(__name__)

# Always withheld from the agent, whatever the configuration says.
VCS_MUTATION_DENYLIST: tuple[str, ...] = (
    "Bash(git add:*)",
    "Bash(git am:*)",
    "Bash(git apply:*)",
    "Bash(git branch:*)",
    "Bash(git checkout:*)",
    "Bash(git cherry-pick:*)",
    "Bash(git clean:*)",
    "Bash(git commit:*)",
    "Bash(git config:*)",
    "Bash(git fetch:*)",
    "Bash(git merge:*)",
    "Bash(git mv:*)",
    "Bash(git pull:*)",
    "Bash(git push:*)",
    "Bash(git rebase:*)",
    "Bash(git remote:*)",
    "Bash(git reset:*)",
    "Bash(git restore:*)",
    "Bash(git revert:*)",
    "Bash(git rm:*)",
    "Bash(git stash:*)",
    "Bash(git switch:*)",
    "Bash(git tag:*)",
    "Bash(git update-ref:*)",
    "Edit(.git/**)",
    "MultiEdit(.git/**)",
    "Write(.git/**)",
)


def _dedupe(items: Iterable[str]) -> list[str]:
    seen: dict[str, None] = {}
    for item in items:
        cleaned = str(item).strip()
        if cleaned:
            seen.setdefault(cleaned, None)
    return list(seen)


class ClaudeCodeBackend(AgentBackend):
    name = "claude"

    def __init__(
        self,
        binary: str = "claude",
        *,
        model: str | None = None,
        allowed_tools: Iterable[str] = (),
        disallowed_tools: Iterable[str] = (),
        extra_args: Iterable[str] = (),
    ) -> None:
        self.binary = binary
        self.model = model
        self.allowed_tools = _dedupe(allowed_tools)
        self.disallowed_tools = _dedupe([*VCS_MUTATION_DENYLIST, *disallowed_tools])
        self.extra_args = list(extra_args)
        # A tool that is both allowed and denied stays denied.
        self.allowed_tools = [
            tool for tool in self.allowed_tools if tool not in self.disallowed_tools
        ]

    def build_command(self, instructions: Instructions) -> list[str]:
        command = [self.binary, "-p", instructions.user_prompt]
        if self.model:
            command.extend(["--model", self.model])
        command.extend(["--append-system-prompt", instructions.system_prompt])
        if self.allowed_tools:
            command.extend(["--allowedTools", ",".join(self.allowed_tools)])
        command.extend(["--disallowedTools", ",".join(self.disallowed_tools)])
        command.extend(["--permission-mode", "acceptEdits", "--output-format", "text"])
        command.extend(self.extra_args)
        return command

    async def invoke(self, working_copy: Path, instructions: Instructions) -> AgentResult:
        command = self.build_command(instructions)
        logger.debug("Launching %s in %s", self.binary, working_copy)
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                cwd=str(working_copy),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise AgentProcessError(
                f"Claude binary not found: {self.binary}", backend=self.name
            ) from exc
        except OSError as exc:
            raise AgentProcessError(
                f"Could not launch {self.binary}: {exc}", backend=self.name
            ) from exc

        stdout, stderr = await process.communicate()
        return_code = process.returncode if process.returncode is not None else -1
        result = AgentResult(
            exit_code=return_code,
            output=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
            command=command,
        )
        logger.debug("%s exited with %d", self.binary, return_code)
        return result
