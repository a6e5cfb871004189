from __future__ import annotations

import hashlib
import os
import subprocess
from pathlib import Path

from steward.errors import GitCommandError
from steward.log import mask_credentials

# Never prompt for credentials; a missing or bad token must fail fast.
_GIT_ENV = {"GIT_TERMINAL_PROMPT": "0"}

# Prefix for git invocations that must not execute repository-local hooks.
NO_HOOKS = ("-c", "core.hooksPath=/dev/null")

# Entries under .git/ that decide what git executes, or where it fetches and pushes.
GUARDED_METADATA = ("config", "hooks", "info", "refs", "packed-refs")


def run_git(
    args: list[str],
    cwd: Path,
    *,
    check: bool = True,
    env: dict[str, str] | None = None,
) -> subprocess.CompletedProcess[str]:
    merged_env = os.environ.copy()
    merged_env.update(_GIT_ENV)
    if env:
        merged_env.update(env)
    proc = subprocess.run(
        ["git", "--no-pager", *args],
        cwd=cwd,
        text=True,
        capture_output=True,
        env=merged_env,
    )
    if check and proc.returncode != 0:
        detail = proc.stderr.strip() or proc.stdout.strip()
        raise GitCommandError(
            mask_credentials(f"git {_subcommand(args)} failed: {detail}"),
            args=args,
            exit_code=proc.returncode,
        )
    return proc


def _subcommand(args: list[str]) -> str:
    index = 0
    while index < len(args) - 1 and args[index] == "-c":
        index += 2
    return args[index] if index < len(args) else "git"


def is_git_repo(path: Path) -> bool:
    if not (path / ".git").exists():
        return False
    proc = run_git(["rev-parse", "--is-inside-work-tree"], path, check=False)
    return proc.returncode == 0 and proc.stdout.strip() == "true"


def head_commit(path: Path) -> str:
    return run_git(["rev-parse", "HEAD"], path).stdout.strip()


def status_paths(path: Path, *pathspec: str, include_ignored: bool = False) -> list[str]:
    """Return paths reported by ``git status`` relative to the repository root."""
    args = ["status", "--porcelain=v1", "-z", "--untracked-files=all"]
    if include_ignored:
        args.append("--ignored")
    if pathspec:
        args.extend(["--", *pathspec])
    raw = run_git(args, path).stdout
    entries = raw.split("\0")
    paths: list[str] = []
    index = 0
    while index < len(entries):
        entry = entries[index]
        index += 1
        if len(entry) < 4:
            continue
        code, file_path = entry[:2], entry[3:]
        paths.append(file_path)
        if "R" in code or "C" in code:
            # Renames and copies carry the original path as the next entry.
            if index < len(entries) and entries[index]:
                paths.append(entries[index])
            index += 1
    return paths


def committed_paths(path: Path, base: str, head: str = "HEAD") -> list[str]:
    proc = run_git(["diff", "--name-only", "-z", base, head], path)
    return [item for item in proc.stdout.split("\0") if item]


def metadata_digest(path: Path) -> dict[str, str]:
    """Map every guarded file under ``.git/`` to a digest of its mode and content."""
    git_dir = path / ".git"
    files: list[Path] = []
    for name in GUARDED_METADATA:
        target = git_dir / name
        if target.is_dir():
            files.extend(item for item in target.rglob("*") if item.is_file() or item.is_symlink())
        elif target.exists() or target.is_symlink():
            files.append(target)
    digests: dict[str, str] = {}
    for item in sorted(files):
        if item.is_symlink():
            fingerprint = f"link:{os.readlink(item)}"
        else:
            mode = item.stat().st_mode & 0o777
            fingerprint = f"{mode:o}:{hashlib.sha256(item.read_bytes()).hexdigest()}"
        digests[item.relative_to(path).as_posix()] = fingerprint
    return digests


def metadata_changes(before: dict[str, str], after: dict[str, str]) -> list[str]:
    return sorted(
        name for name in before.keys() | after.keys() if before.get(name) != after.get(name)
    )


def discard_changes(path: Path, commit: str) -> None:
    run_git(["reset", "--hard", commit], path)
    run_git(["clean", "-ffdx"], path)
