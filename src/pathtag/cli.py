"""Command line interface for pathtag."""

from __future__ import annotations

import difflib
import logging
from pathlib import Path
from typing import Any

import click
import yaml
from click.core import ParameterSource
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax

from pathtag.cli_support import (
    duplicate_set_lines,
    duplicates_payload,
    file_lines,
    probe_lines,
    status_lines,
    status_payload,
    tag_notices,
)
from pathtag.config import ConfigError, ConfigManager, PathtagConfig, resolve_with_precedence
from pathtag.fingerprint import FingerprintEngine
from pathtag.logging_config import configure_logging
from pathtag.reconcile import (
    DuplicateDetector,
    PathClassifier,
    ReconcileError,
    Tagger,
    list_files,
)
from pathtag.state import EntityStore, MissingStoreError, StoreError

LOGGER = logging.getLogger(__name__)

console = Console(soft_wrap=True)
err_console = Console(stderr=True, soft_wrap=True)


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool = False,
    details: Any | None = None,
    original: Exception | None = None,
) -> None:
    """Emit a standardized error and terminate the command.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier used in JSON mode.
        json_output: Whether JSON output is active.
        details: Optional structured details for the JSON payload.
        original: Exception to chain when raising a `click.ClickException`.

    Raises:
        SystemExit: In JSON mode, after printing the error payload.
        click.ClickException: Otherwise.
    """
    if json_output:
        payload: dict[str, Any] = {"error": {"code": code, "message": message}}
        if details is not None:
            payload["error"]["details"] = details
        console.print_json(data=payload)
        raise SystemExit(1)

    if isinstance(original, click.ClickException):
        raise original

    raise click.ClickException(message) from original


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        console.print(line, markup=False, highlight=False)


def _warn(message: str, *, quiet: bool = False) -> None:
    if not quiet:
        err_console.print(f"[yellow]{escape(message)}[/yellow]", highlight=False)


def _error(message: str) -> None:
    err_console.print(f"[red]{escape(message)}[/red]", highlight=False)


def _load_runtime(ctx: click.Context) -> PathtagConfig:
    """Load configuration with global CLI overrides and configure logging."""
    manager = ConfigManager()
    manager.ensure_exists()
    config = manager.load(cli_overrides=ctx.obj["overrides"])
    configure_logging(config.logging, verbose=ctx.obj["verbose"])
    return config


def _quiet(ctx: click.Context, config: PathtagConfig) -> bool:
    root = ctx.find_root()
    if root.get_parameter_source("quiet") == ParameterSource.COMMANDLINE:
        return bool(root.params["quiet"])
    return config.cli.quiet_default


def _missing_store_message(store: EntityStore) -> str:
    return f"No database found at {store.path}. Tag a file with `pathtag tag` to create it."


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="pathtag")
@click.option(
    "--database",
    type=click.Path(dir_okay=False, path_type=str),
    help="Database file to use instead of the configured one.",
)
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr.")
@click.option("-q", "--quiet", is_flag=True, help="Suppress warnings and notices.")
@click.pass_context
def cli(ctx: click.Context, database: str | None, verbose: bool, quiet: bool) -> None:
    """pathtag labels files with tags and keeps the index in step with the disk.

    Args:
        ctx: Click context carrying global options to subcommands.
        database: Optional database path override.
        verbose: Whether debug logging goes to stderr.
        quiet: Whether notices and warnings are suppressed.
    """
    ctx.ensure_object(dict)
    ctx.obj["overrides"] = {"database.path": database} if database else {}
    ctx.obj["verbose"] = verbose


@cli.command(context_settings={"ignore_unknown_options": True})
@click.argument("arguments", nargs=-1, required=True, metavar="FILE TAG...")
@click.option(
    "--tags",
    "tag_list",
    type=str,
    help='Quoted, space-separated tags to apply to every FILE: --tags "TAG..." FILE...',
)
@click.pass_context
def tag(ctx: click.Context, arguments: tuple[str, ...], tag_list: str | None) -> None:
    """Apply tags to files.

    \b
    pathtag tag FILE TAG...
    pathtag tag --tags "TAG..." FILE...

    Args:
        ctx: Click context.
        arguments: FILE followed by tags, or only files when --tags is given.
        tag_list: Space-separated tags applied to every file.

    Raises:
        click.UsageError: If files or tags are missing.
        click.ClickException: If a tag name is invalid or the store fails.
    """
    if tag_list is not None:
        tag_names = tag_list.split()
        paths = list(arguments)
        if not tag_names or not paths:
            raise click.UsageError(
                "Quoted set of tags and at least one file to tag must be specified."
            )
    else:
        if len(arguments) < 2:
            raise click.UsageError("File to tag and tags to apply must be specified.")
        paths = [arguments[0]]
        tag_names = list(arguments[1:])

    try:
        config = _load_runtime(ctx)
        quiet = _quiet(ctx, config)
        store = EntityStore(Path(config.database.path))
        engine = FingerprintEngine.from_settings(config.fingerprint)
        with store.begin() as tx:
            batch = Tagger(tx, engine).tag_many(paths, tag_names)
    except ReconcileError as exc:
        _handle_cli_error(str(exc), code="invalid_tag", original=exc)
        return
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", original=exc)
        return
    except StoreError as exc:
        _handle_cli_error(str(exc), code="store_error", original=exc)
        return
    except Exception as exc:
        LOGGER.exception("tag failed")
        _handle_cli_error(
            f"Unexpected error while tagging: {exc}", code="internal_error", original=exc
        )
        return

    for notice in tag_notices(batch):
        _warn(notice, quiet=quiet)
    for failure in batch.failures:
        _error(failure.reason)
    if not batch.ok:
        ctx.exit(1)


@cli.command()
@click.argument("paths", nargs=-1, type=click.Path(path_type=str))
@click.option(
    "-d",
    "--directory",
    "show_directory",
    is_flag=True,
    help="List directory arguments themselves instead of their contents.",
)
@click.option("--json", "json_output", is_flag=True, help="Emit the report as JSON.")
@click.pass_context
def status(
    ctx: click.Context, paths: tuple[str, ...], show_directory: bool, json_output: bool
) -> None:
    """List the tagging status of PATHS (the current directory by default).

    \b
    Status codes are:
      T - Tagged
      M - Modified
      ! - Missing
      ? - Untagged
      + - Nested

    Nested (+) indicates a directory is not itself tagged but some of the
    files and directories within it are.

    Args:
        ctx: Click context for parameter source inspection.
        paths: Paths to report on.
        show_directory: Report directories themselves rather than their entries.
        json_output: Emit JSON instead of status lines.
    """
    try:
        config = _load_runtime(ctx)
        if ctx.get_parameter_source("show_directory") != ParameterSource.COMMANDLINE:
            show_directory = config.status.show_directory_default

        store = EntityStore(Path(config.database.path))
        try:
            tx = store.begin(create=False)
        except MissingStoreError as exc:
            raise click.ClickException(_missing_store_message(store)) from exc
        with tx:
            report = PathClassifier(tx).report(paths, show_directory=show_directory)
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
        return
    except click.ClickException as exc:
        _handle_cli_error(str(exc), code="cli_error", json_output=json_output, original=exc)
        return
    except StoreError as exc:
        _handle_cli_error(str(exc), code="store_error", json_output=json_output, original=exc)
        return
    except OSError as exc:
        _handle_cli_error(str(exc), code="filesystem_error", json_output=json_output, original=exc)
        return
    except Exception as exc:
        LOGGER.exception("status failed")
        _handle_cli_error(
            f"Unexpected error while reading status: {exc}",
            code="internal_error",
            json_output=json_output,
            details={"exception": type(exc).__name__},
            original=exc,
        )
        return

    if json_output:
        console.print_json(data=status_payload(report))
    else:
        _emit_lines(status_lines(report))
        for message in report.errors:
            _error(message)
    if report.errors:
        ctx.exit(1)


@cli.command()
@click.argument("paths", nargs=-1, type=click.Path(path_type=str))
@click.option("-r", "--recursive", is_flag=True, help="Recursively check directory contents.")
@click.option("--json", "json_output", is_flag=True, help="Emit duplicates as JSON.")
@click.pass_context
def dupes(
    ctx: click.Context, paths: tuple[str, ...], recursive: bool, json_output: bool
) -> None:
    """Identify duplicate files.

    Lists indexed files that are exact duplicates of each FILE in PATHS, or,
    without arguments, every set of duplicates within the index.

    Args:
        ctx: Click context.
        paths: Candidate files or directories.
        recursive: Check everything beneath directory candidates.
        json_output: Emit JSON instead of text.
    """
    result = None
    sets = None
    try:
        config = _load_runtime(ctx)
        quiet = _quiet(ctx, config)
        store = EntityStore(Path(config.database.path))
        engine = FingerprintEngine.from_settings(config.fingerprint)
        try:
            tx = store.begin(create=False)
        except MissingStoreError as exc:
            raise click.ClickException(_missing_store_message(store)) from exc
        with tx:
            detector = DuplicateDetector(tx, engine)
            if paths:
                result = detector.find_matches(paths, recursive=recursive)
            else:
                sets = detector.find_all()
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
        return
    except click.ClickException as exc:
        _handle_cli_error(str(exc), code="cli_error", json_output=json_output, original=exc)
        return
    except StoreError as exc:
        _handle_cli_error(str(exc), code="store_error", json_output=json_output, original=exc)
        return
    except OSError as exc:
        _handle_cli_error(str(exc), code="filesystem_error", json_output=json_output, original=exc)
        return
    except Exception as exc:
        LOGGER.exception("dupes failed")
        _handle_cli_error(
            f"Unexpected error while identifying duplicates: {exc}",
            code="internal_error",
            json_output=json_output,
            details={"exception": type(exc).__name__},
            original=exc,
        )
        return

    if json_output:
        console.print_json(data=duplicates_payload(sets=sets, result=result))
    elif result is None:
        _emit_lines(duplicate_set_lines(sets or []))
    else:
        for warning in result.warnings:
            _warn(warning, quiet=quiet)
        _emit_lines(probe_lines(result))
    if result is not None and result.partial:
        ctx.exit(1)


@cli.command()
@click.argument("tags", nargs=-1)
@click.option("-a", "--all", "all_files", is_flag=True, help="List every tagged file.")
@click.option(
    "-x",
    "--exclude",
    "excluded",
    multiple=True,
    help="Omit files carrying this tag. May be repeated.",
)
@click.pass_context
def files(
    ctx: click.Context, tags: tuple[str, ...], all_files: bool, excluded: tuple[str, ...]
) -> None:
    """List files carrying all of TAGS.

    A tag prefixed with '-' excludes files carrying it. Place such tags after
    `--` so they are not read as options:

    \b
    pathtag files music -- -mp3
    pathtag files music --exclude mp3

    Args:
        ctx: Click context.
        tags: Tag names every listed file must carry, or `-TAG` exclusions.
        all_files: List every indexed file instead.
        excluded: Tag names no listed file may carry.

    Raises:
        click.UsageError: If neither TAGS nor --all is given, or both are.
    """
    included = [name for name in tags if not name.startswith("-")]
    excluded = excluded + tuple(name[1:] for name in tags if name.startswith("-"))
    if any(not name for name in excluded):
        raise click.UsageError("Excluded tags must be named, as in '-TAG'.")
    if not included and not excluded and not all_files:
        raise click.UsageError("At least one tag must be specified. Use --all to show all files.")
    if (included or excluded) and all_files:
        raise click.UsageError("--all cannot be combined with TAG arguments.")

    try:
        config = _load_runtime(ctx)
        store = EntityStore(Path(config.database.path))
        try:
            tx = store.begin(create=False)
        except MissingStoreError as exc:
            raise click.ClickException(_missing_store_message(store)) from exc
        with tx:
            records = list_files(tx, included, excluded)
    except ReconcileError as exc:
        _handle_cli_error(str(exc), code="unknown_tag", original=exc)
        return
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", original=exc)
        return
    except StoreError as exc:
        _handle_cli_error(str(exc), code="store_error", original=exc)
        return
    except click.ClickException:
        raise
    except Exception as exc:
        LOGGER.exception("files failed")
        _handle_cli_error(
            f"Unexpected error while listing files: {exc}", code="internal_error", original=exc
        )
        return

    _emit_lines(file_lines(records))


def _assign_nested(target: dict[str, Any], path: list[str], value: Any) -> None:
    """Assign `value` at a dotted location inside a nested mapping.

    Raises:
        ConfigError: If a non-mapping value is encountered along the path.
    """
    node = target
    for segment in path[:-1]:
        existing = node.setdefault(segment, {})
        if not isinstance(existing, dict):
            raise ConfigError(
                f"Cannot assign into '{segment}' because it is not a mapping in the config file."
            )
        node = existing
    node[path[-1]] = value


@cli.group()
def config() -> None:
    """Manage pathtag configuration."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
def config_view(no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules.

    Raises:
        click.ClickException: If configuration cannot be loaded.
    """
    manager = ConfigManager()
    try:
        manager.ensure_exists()
        effective = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(effective.model_dump(mode="python"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="YAML literal to assign to KEY.")
def config_set(key: str, value: str) -> None:
    """Persist a configuration value addressed by a dotted KEY.

    Args:
        key: Dotted path such as `fingerprint.file_algorithm`.
        value: YAML literal written into the configuration file.

    Raises:
        click.ClickException: If parsing, assignment or validation fails.
    """
    manager = ConfigManager()
    manager.ensure_exists()

    segments = [segment.strip() for segment in key.split(".") if segment.strip()]
    if not segments:
        raise click.ClickException("KEY must be a dotted path such as 'database.path'.")

    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    before = manager.read_text().splitlines()
    try:
        file_data = manager.load_file_overrides()
        _assign_nested(file_data, segments, parsed_value)
        resolve_with_precedence(defaults=PathtagConfig(), file_overrides=file_data)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(file_data)
    after = manager.read_text().splitlines()

    diff = [
        line
        for line in difflib.unified_diff(
            before, after, fromfile="config.yaml (before)", tofile="config.yaml (after)", lineterm=""
        )
        if not line.lstrip("+-").startswith("# Last updated:")
    ]
    if not any(line.startswith(("+", "-")) and not line.startswith(("+++", "---")) for line in diff):
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return

    console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {'.'.join(segments)}.[/green]")


@config.command("edit")
def config_edit() -> None:
    """Open the configuration file in an editor.

    Raises:
        click.ClickException: If the edited content is invalid.
    """
    manager = ConfigManager()
    manager.ensure_exists()

    original = manager.read_text()
    edited = click.edit(original, extension=".yaml")

    if edited is None:
        console.print("[yellow]Edit cancelled; no changes applied.[/yellow]")
        return
    if edited == original:
        console.print("[yellow]No changes detected.[/yellow]")
        return

    try:
        parsed = yaml.safe_load(edited) or {}
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Invalid YAML: {exc}") from exc

    if not isinstance(parsed, dict):
        raise click.ClickException("Configuration file must contain a top-level mapping.")

    try:
        resolve_with_precedence(defaults=PathtagConfig(), file_overrides=parsed)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(parsed)
    console.print("[green]Configuration updated successfully.[/green]")


def main() -> None:
    """Console script entry point."""
    cli()


if __name__ == "__main__":
    main()
