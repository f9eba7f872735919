"""Invoke tasks for developing pathtag.

Every task shells out to `uv` so local runs match CI.
"""

from __future__ import annotations

import shlex
import shutil
from collections.abc import Sequence
from pathlib import Path

from invoke import Collection, Context, task

PROJECT_ROOT = Path(__file__).parent
SCRATCH_PATHS = ("dist", ".pytest_cache", ".mypy_cache", ".ruff_cache")


def _uv(ctx: Context, args: Sequence[str], *, dry_run: bool = False) -> None:
    """Run `uv` with the given arguments.

    Args:
        ctx: Invoke execution context.
        args: Arguments following the `uv` executable.
        dry_run: Print the command instead of running it.
    """
    command = shlex.join(("uv", *args))
    if dry_run:
        print(f"[dry-run] {command}")
        return
    ctx.run(command, echo=True, pty=True)


@task
def sync(ctx: Context) -> None:
    """Install the project with its development extra."""
    _uv(ctx, ["sync", "--extra", "dev"])


@task(
    help={
        "k": "pytest -k expression for test selection.",
        "path": "Test file or directory (defaults to tests/).",
        "options": "Extra flags forwarded verbatim to pytest.",
    }
)
def tests(ctx: Context, k: str = "", path: str = "tests", options: str = "") -> None:
    """Run the pytest suite.

    Args:
        ctx: Invoke execution context.
        k: Expression selecting tests by name.
        path: Where pytest should collect tests.
        options: Additional pytest arguments.
    """
    args = ["run", "pytest"]
    if k:
        args.extend(["-k", k])
    if options:
        args.extend(shlex.split(options))
    args.append(path)
    _uv(ctx, args)


@task(help={"fix": "Let ruff apply automatic fixes."})
def lint(ctx: Context, fix: bool = False) -> None:
    """Check formatting and lint rules with ruff."""
    _uv(ctx, ["run", "ruff", "format", "--check", "src", "tests"])
    args = ["run", "ruff", "check", "src", "tests"]
    if fix:
        args.append("--fix")
    _uv(ctx, args)


@task
def mypy(ctx: Context) -> None:
    """Type-check the package."""
    _uv(ctx, ["run", "mypy", "src"])


@task(help={"dry_run": "List what would be removed."})
def clean(ctx: Context, dry_run: bool = False) -> None:
    """Remove build output and tool caches."""
    for name in SCRATCH_PATHS:
        target = PROJECT_ROOT / name
        if not target.exists():
            continue
        if dry_run:
            print(f"[dry-run] remove {target}")
            continue
        shutil.rmtree(target)


@task
def ci(ctx: Context) -> None:
    """Run lint, type checks and tests in the same order as CI."""
    ctx.invoke(lint)
    ctx.invoke(mypy)
    ctx.invoke(tests)


namespace = Collection(sync, tests, lint, mypy, clean, ci)
