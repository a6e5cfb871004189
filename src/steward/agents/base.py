from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True, slots=True)
class Instructions:
    system_prompt: str
    user_prompt: str
    permitted_path: str


@dataclass(slots=True)
class AgentResult:
    exit_code: int
    output: str = ""
    stderr: str = ""
    command: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    def transcript(self) -> str:
        parts = [self.output.rstrip()]
        if self.stderr.strip():
            parts.append(f"[stderr]\n{self.stderr.rstrip()}")
        return "\n".join(part for part in parts if part)


class AgentBackend(ABC):
    name: str = "agent"

    @abstractmethod
    async def invoke(self, working_copy: Path, instructions: Instructions) -> AgentResult:
        """Run the agent once inside ``working_copy`` and return its exit status and output."""
