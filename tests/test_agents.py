import asyncio
from pathlib import Path
from typing import Any

import pytest

from steward.agents import (
    README_SECTIONS,
    VCS_MUTATION_DENYLIST,
    ClaudeCodeBackend,
    build_instructions,
)
from steward.errors import AgentProcessError
from steward.hosting import Repository


def _repository() -> Repository:
    return Repository(
        name="billing",
        description="Billing API for invoices",
        topics=("api", "needs-readme"),
    )


def test_instructions_are_deterministic() -> None:
    first = build_instructions(_repository(), "api")
    second = build_instructions(_repository(), "api")

    assert first == second


def test_instructions_carry_repository_facts_and_structure() -> None:
    instructions = build_instructions(_repository(), "api", "README.md")
    prompt = instructions.user_prompt

    assert "billing" in prompt
    assert "Billing API for invoices" in prompt
    assert "api, needs-readme" in prompt
    assert "OpenAPI" in prompt
    positions = [prompt.index(heading) for heading in README_SECTIONS]
    assert positions == sorted(positions)
    assert "## Ownership" in prompt and "keep that section exactly as it is" in prompt
    assert "only write README.md" in instructions.system_prompt
    assert instructions.permitted_path == "README.md"


def test_instructions_omit_missing_description() -> None:
    instructions = build_instructions(Repository(name="tool"), "generic")

    assert "Description" not in instructions.user_prompt
    assert "Topics: (none)" in instructions.user_prompt


def test_claude_command_shape() -> None:
    backend = ClaudeCodeBackend(
        "claude",
        model="claude-sonnet-4-5",
        allowed_tools=["Read", "Edit"],
        disallowed_tools=["WebFetch"],
    )
    instructions = build_instructions(_repository(), "api")
    command = backend.build_command(instructions)

    assert command[0:3] == ["claude", "-p", instructions.user_prompt]
    assert command[command.index("--model") + 1] == "claude-sonnet-4-5"
    assert command[command.index("--allowedTools") + 1] == "Read,Edit"
    denied = command[command.index("--disallowedTools") + 1].split(",")
    assert "WebFetch" in denied
    assert set(VCS_MUTATION_DENYLIST) <= set(denied)
    assert command[command.index("--append-system-prompt") + 1] == instructions.system_prompt


def test_vcs_denylist_cannot_be_weakened_by_allow_list() -> None:
    backend = ClaudeCodeBackend(allowed_tools=["Read", "Bash(git commit:*)"])

    assert "Bash(git commit:*)" not in backend.allowed_tools
    assert "Bash(git commit:*)" in backend.disallowed_tools
    assert "Bash(git push:*)" in backend.disallowed_tools


def test_invoke_captures_output_and_exit_code(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    captured: dict[str, Any] = {}

    class FakeProcess:
        returncode = 3

        async def communicate(self) -> tuple[bytes, bytes]:
            return b"rewrote README.md\n", b"warning: something\n"

    async def fake_create_subprocess_exec(*args: Any, **kwargs: Any) -> FakeProcess:
        captured["args"] = args
        captured["kwargs"] = kwargs
        return FakeProcess()

    monkeypatch.setattr(asyncio, "create_subprocess_exec", fake_create_subprocess_exec)

    backend = ClaudeCodeBackend("claude")
    result = asyncio.run(backend.invoke(tmp_path, build_instructions(_repository(), "api")))

    assert result.exit_code == 3
    assert result.ok is False
    assert result.output == "rewrote README.md\n"
    assert "warning: something" in result.transcript()
    assert captured["kwargs"]["cwd"] == str(tmp_path)
    assert captured["args"][0] == "claude"


def test_invoke_missing_binary_raises_process_error(tmp_path: Path) -> None:
    backend = ClaudeCodeBackend("definitely-not-a-real-agent-binary")

    with pytest.raises(AgentProcessError, match="not found"):
        asyncio.run(backend.invoke(tmp_path, build_instructions(_repository(), "api")))


def test_git_directory_writes_are_always_denied() -> None:
    backend = ClaudeCodeBackend(allowed_tools=["Read", "Edit", "Write"], disallowed_tools=[])

    assert backend.allowed_tools == ["Read", "Edit", "Write"]
    for rule in ("Edit(.git/**)", "MultiEdit(.git/**)", "Write(.git/**)"):
        assert rule in backend.disallowed_tools
