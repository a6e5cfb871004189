from steward.agents.base import AgentBackend, AgentResult, Instructions
from steward.agents.claude import VCS_MUTATION_DENYLIST, ClaudeCodeBackend
from steward.agents.instructions import README_SECTIONS, build_instructions

__all__ = [
    "AgentBackend",
    "AgentResult",
    "ClaudeCodeBackend",
    "Instructions",
    "README_SECTIONS",
    "VCS_MUTATION_DENYLIST",
    "build_instructions",
]
