from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import click

from steward import __version__
from steward.agents import AgentBackend, ClaudeCodeBackend
from steward.classifier import classify
from steward.config import StewardConfig, load_config, save_config
from steward.errors import BackupWriteError, ConfigError, DirectoryUnavailableError
from steward.hosting import ClientSettings, HostingClient
from steward.log import configure_logging
from steward.markers import TaskMarker, restore_backup
from steward.pipeline import Pipeline
from steward.report import render_preparation, render_summary
from steward.workspace import (
    CompletionCommitter,
    SafetyGate,
    TokenCredentials,
    WorkingCopySynchronizer,
)

WARNING_EVENTS = {
    "repository_failed",
    "sync_failed",
    "agent_failed",
    "scope_violation",
    "push_failed",
    "topic_write_failed",
}


@dataclass(slots=True)
class Runtime:
    base_dir: Path
    config_path: Path
    config: StewardConfig
    client: HostingClient
    pipeline: Pipeline

    def close(self) -> None:
        self.client.close()


def _resolve_config_path(base_dir: Path, config_value: str) -> Path:
    config_path = Path(config_value)
    if not config_path.is_absolute():
        config_path = base_dir / config_path
    return config_path.resolve()


def _build_client(config: StewardConfig, token: str) -> HostingClient:
    settings = ClientSettings(
        base_url=config.service.base_url,
        organization=config.service.organization,
        token=token,
        verify_tls=config.service.verify_tls,
        page_size=config.service.page_size,
        timeout_seconds=config.service.timeout_seconds,
        exclude=frozenset(config.pipeline.exclude),
    )
    return HostingClient(settings)


def _build_agent(config: StewardConfig) -> AgentBackend:
    return ClaudeCodeBackend(
        config.agent.binary,
        model=config.agent.model,
        allowed_tools=config.agent.allowed_tools,
        disallowed_tools=config.agent.disallowed_tools,
        extra_args=config.agent.extra_args,
    )


def _render_event(event: dict[str, Any]) -> None:
    name = event.get("event")
    repository = event.get("repository", "")
    if name == "agent_output":
        click.echo(f"--- agent output for {repository} (exit {event.get('exit_code')}) ---")
        click.echo(event.get("output") or "(no output)")
        click.echo("--- end of agent output ---")
    elif name in WARNING_EVENTS:
        click.secho(f"WARNING [{repository}] {name}: {event.get('error')}", fg="yellow", err=True)
    elif name == "repository_result":
        click.echo(f"{repository}: {event.get('outcome')}")
    elif name == "backup_written":
        click.echo(f"Topic backup written to {event.get('path')}")


def _load_runtime(base_dir: Path, config_path: Path, *, push: bool | None = None) -> Runtime:
    config = load_config(config_path)
    if push is not None:
        config.pipeline.push = push
    config.validate()
    token = config.resolve_token()
    client = _build_client(config, token)
    marker = TaskMarker(client)
    pipeline = Pipeline(
        directory=client,
        marker=marker,
        synchronizer=WorkingCopySynchronizer(TokenCredentials(token)),
        agent=_build_agent(config),
        gate=SafetyGate(),
        committer=CompletionCommitter(
            marker,
            flag=config.pipeline.flag,
            permitted_path=config.pipeline.permitted_path,
            commit_message=config.pipeline.commit_message,
            author_name=config.pipeline.author_name,
            author_email=config.pipeline.author_email,
            push=config.pipeline.push,
        ),
        organization=config.service.organization,
        workspace_dir=config.resolve_path(config.pipeline.workspace_dir, base_dir),
        backup_dir=config.resolve_path(config.pipeline.backup_dir, base_dir),
        flag=config.pipeline.flag,
        permitted_path=config.pipeline.permitted_path,
        event_hook=_render_event,
    )
    return Runtime(
        base_dir=base_dir,
        config_path=config_path,
        config=config,
        client=client,
        pipeline=pipeline,
    )


def _runtime_or_fail(config_value: str, *, push: bool | None = None) -> Runtime:
    base_dir = Path.cwd().resolve()
    try:
        return _load_runtime(base_dir, _resolve_config_path(base_dir, config_value), push=push)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc


config_option = click.option(
    "--config", "config_value", default="steward.toml", show_default=True
)


@click.group()
@click.version_option(__version__, prog_name="steward")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """Safety-gated README maintenance for a self-hosted Git organization."""
    configure_logging(verbose)


@cli.command("init")
@click.option("--base-url", default=None)
@click.option("--organization", default=None)
@config_option
def init_command(base_url: str | None, organization: str | None, config_value: str) -> None:
    base_dir = Path.cwd().resolve()
    config_path = _resolve_config_path(base_dir, config_value)
    try:
        config = load_config(config_path)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    if base_url:
        config.service.base_url = base_url
    if organization:
        config.service.organization = organization
    save_config(config_path, config)
    click.echo(f"Config: {config_path}")
    click.echo(f"Organization: {config.service.organization} at {config.service.base_url}")
    click.echo(f"Token variable: {config.service.token_env}")


@cli.command("prepare")
@config_option
def prepare_command(config_value: str) -> None:
    """Back up all topics, then flag every active repository for processing."""
    runtime = _runtime_or_fail(config_value)
    try:
        report = runtime.pipeline.prepare()
    except (DirectoryUnavailableError, BackupWriteError) as exc:
        raise click.ClickException(str(exc)) from exc
    finally:
        runtime.close()
    click.echo(render_preparation(report))


@cli.command("run")
@click.option("--no-push", is_flag=True, default=False, help="Commit locally without pushing.")
@click.option("--only", "only", multiple=True, help="Process only the named repositories.")
@click.option("--json", "as_json", is_flag=True, default=False)
@config_option
def run_command(no_push: bool, only: tuple[str, ...], as_json: bool, config_value: str) -> None:
    """Process every flagged repository."""
    runtime = _runtime_or_fail(config_value, push=False if no_push else None)
    try:
        summary = asyncio.run(runtime.pipeline.process(only=only or None))
    except DirectoryUnavailableError as exc:
        raise click.ClickException(str(exc)) from exc
    finally:
        runtime.close()
    if as_json:
        click.echo(json.dumps(summary.to_dict(), ensure_ascii=False, indent=2))
        return
    click.echo(render_summary(summary))


@cli.command("status")
@config_option
def status_command(config_value: str) -> None:
    """List repositories that still carry the task flag."""
    runtime = _runtime_or_fail(config_value)
    try:
        pending = runtime.pipeline.pending()
    except DirectoryUnavailableError as exc:
        raise click.ClickException(str(exc)) from exc
    finally:
        runtime.close()
    if not pending:
        click.echo(f"No repositories flagged with {runtime.config.pipeline.flag}.")
        return
    for repository in pending:
        click.echo(f"{repository.name:<40} {classify(repository.topics):<10} {repository.html_url}")


@cli.command("classify")
@click.argument("topics", nargs=-1)
def classify_command(topics: tuple[str, ...]) -> None:
    """Print the archetype inferred from TOPICS."""
    click.echo(classify(topics))


@cli.command("restore-topics")
@click.argument("backup", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.confirmation_option(prompt="Overwrite current topics with the backup?")
@config_option
def restore_topics_command(backup: Path, config_value: str) -> None:
    """Write the topic sets recorded in BACKUP back to every listed repository."""
    runtime = _runtime_or_fail(config_value)
    try:
        results = restore_backup(backup, runtime.client)
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    finally:
        runtime.close()
    restored = [result for result in results if result.ok]
    click.echo(f"Restored topics for {len(restored)}/{len(results)} repositories.")
    for result in results:
        if not result.ok:
            click.secho(f"WARNING [{result.repository}] {result.error}", fg="yellow", err=True)
