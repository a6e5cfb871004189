from __future__ import annotations

import json
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from steward.errors import ConfigError

DEFAULT_COMMIT_MESSAGE = "docs: standardize README.md [readme-steward]"


@dataclass(slots=True)
class ServiceConfig:
    base_url: str = "https://git.example.com"
    organization: str = "my-org"
    token_env: str = "STEWARD_TOKEN"
    verify_tls: bool = True
    page_size: int = 50
    timeout_seconds: float = 30.0


@dataclass(slots=True)
class AgentConfig:
    binary: str = "claude"
    model: str = "claude-sonnet-4-5"
    allowed_tools: list[str] = field(
        default_factory=lambda: ["Read", "Edit", "Write", "Glob", "Grep", "LS"]
    )
    disallowed_tools: list[str] = field(default_factory=lambda: ["WebFetch", "WebSearch"])
    extra_args: list[str] = field(default_factory=list)


@dataclass(slots=True)
class PipelineConfig:
    flag: str = "needs-readme"
    permitted_path: str = "README.md"
    workspace_dir: str = ".steward/workspace"
    backup_dir: str = ".steward/backups"
    exclude: list[str] = field(default_factory=list)
    push: bool = True
    commit_message: str = DEFAULT_COMMIT_MESSAGE
    author_name: str = "readme-steward"
    author_email: str = "readme-steward@localhost"


@dataclass(slots=True)
class StewardConfig:
    service: ServiceConfig = field(default_factory=ServiceConfig)
    agent: AgentConfig = field(default_factory=AgentConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)

    @classmethod
    def default(cls) -> StewardConfig:
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> StewardConfig:
        try:
            return cls(
                service=ServiceConfig(**data.get("service", {})),
                agent=AgentConfig(**data.get("agent", {})),
                pipeline=PipelineConfig(**data.get("pipeline", {})),
            )
        except TypeError as exc:
            raise ConfigError(f"Invalid configuration: {exc}") from exc

    def to_dict(self) -> dict:
        return {
            "service": {
                "base_url": self.service.base_url,
                "organization": self.service.organization,
                "token_env": self.service.token_env,
                "verify_tls": self.service.verify_tls,
                "page_size": self.service.page_size,
                "timeout_seconds": self.service.timeout_seconds,
            },
            "agent": {
                "binary": self.agent.binary,
                "model": self.agent.model,
                "allowed_tools": list(self.agent.allowed_tools),
                "disallowed_tools": list(self.agent.disallowed_tools),
                "extra_args": list(self.agent.extra_args),
            },
            "pipeline": {
                "flag": self.pipeline.flag,
                "permitted_path": self.pipeline.permitted_path,
                "workspace_dir": self.pipeline.workspace_dir,
                "backup_dir": self.pipeline.backup_dir,
                "exclude": list(self.pipeline.exclude),
                "push": self.pipeline.push,
                "commit_message": self.pipeline.commit_message,
                "author_name": self.pipeline.author_name,
                "author_email": self.pipeline.author_email,
            },
        }

    def validate(self) -> None:
        if self.service.page_size <= 0:
            raise ConfigError("service.page_size must be positive.")
        if not self.service.organization.strip():
            raise ConfigError("service.organization must not be empty.")
        if not self.pipeline.flag.strip():
            raise ConfigError("pipeline.flag must not be empty.")
        permitted = self.pipeline.permitted_path
        if not permitted or permitted.startswith("/") or ".." in Path(permitted).parts:
            raise ConfigError(
                f"pipeline.permitted_path must be a root-relative path: {permitted!r}"
            )

    def resolve_token(self, environ: dict[str, str] | None = None) -> str:
        env = os.environ if environ is None else environ
        token = (env.get(self.service.token_env) or "").strip()
        if not token:
            raise ConfigError(
                f"No API token found. Set the {self.service.token_env} environment variable."
            )
        return token

    def resolve_path(self, value: str, base: Path) -> Path:
        path = Path(value).expanduser()
        if not path.is_absolute():
            path = base / path
        return path.resolve()


def _toml_value(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        rendered = f"{value:.3f}".rstrip("0").rstrip(".")
        return rendered if rendered else "0"
    if isinstance(value, list):
        return "[" + ", ".join(_toml_value(item) for item in value) + "]"
    return json.dumps(str(value), ensure_ascii=False)


def dumps_toml(config: StewardConfig) -> str:
    data = config.to_dict()
    lines: list[str] = []
    for section in ("service", "agent", "pipeline"):
        lines.append(f"[{section}]")
        for key, value in data[section].items():
            lines.append(f"{key} = {_toml_value(value)}")
        lines.append("")
    return "\n".join(lines).strip() + "\n"


def load_config(path: Path) -> StewardConfig:
    if not path.exists():
        return StewardConfig.default()
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Could not parse {path}: {exc}") from exc
    return StewardConfig.from_dict(data)


def save_config(path: Path, config: StewardConfig) -> None:
    path.write_text(dumps_toml(config), encoding="utf-8")
