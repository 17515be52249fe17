"""CLI entrypoint for hunkwise."""

from __future__ import annotations

import fnmatch
import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated

import typer

from hunkwise import __version__
from hunkwise.config import AppConfig, default_config_template, load_app_config
from hunkwise.diff_parser import FileDiff, parse_git_diff
from hunkwise.output import render_human, render_json, render_stat

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="hunkwise",
    no_args_is_help=True,
    help="Parse git unified diffs into per-file, per-line structure.",
)


def version_callback(value: bool) -> None:
    """Print version and exit when --version is provided."""
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option("--version", help="Show version and exit.", callback=version_callback),
    ] = False,
) -> None:
    """Root command callback."""
    _ = version


@app.command("parse")
def parse_command(
    diff_file: Annotated[Path | None, typer.Option(help="Path to unified diff file.")] = None,
    stdin: Annotated[bool, typer.Option(help="Read unified diff from stdin.")] = False,
    root: Annotated[Path, typer.Option(help="Directory searched for config files.")] = Path("."),
    format: Annotated[
        str | None, typer.Option(help="Output format: human|json.", show_default="human")
    ] = None,
    include: Annotated[list[str] | None, typer.Option(help="Include glob pattern.")] = None,
    exclude: Annotated[list[str] | None, typer.Option(help="Exclude glob pattern.")] = None,
    lines: Annotated[
        bool | None,
        typer.Option("--lines/--no-lines", help="Include per-line detail in the output."),
    ] = None,
    require_files: Annotated[
        bool,
        typer.Option("--require-files", help="Exit nonzero when no file diffs are found."),
    ] = False,
    verbose: Annotated[bool, typer.Option("--verbose", help="Log skipped fragments.")] = False,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config TOML file."),
    ] = None,
) -> None:
    """Parse a diff and print its files and lines."""
    app_config = _load_config_or_raise(root, config_file)
    output_format = _resolve_format(format, app_config)
    show_lines = lines if lines is not None else app_config.show_lines
    _configure_logging(verbose=verbose, level_name=app_config.log_level)

    parse_ctx = _prepare_parse_context(
        diff_file=diff_file,
        stdin=stdin,
        include=include,
        exclude=exclude,
        app_config=app_config,
    )

    if output_format == "json":
        typer.echo(
            render_json(
                parse_ctx.files,
                input_source=parse_ctx.input_source,
                show_lines=show_lines,
            )
        )
    else:
        typer.echo(render_human(parse_ctx.files, show_lines=show_lines))

    _exit_if_empty(parse_ctx.files, require_files)


@app.command("stat")
def stat_command(
    diff_file: Annotated[Path | None, typer.Option(help="Path to unified diff file.")] = None,
    stdin: Annotated[bool, typer.Option(help="Read unified diff from stdin.")] = False,
    root: Annotated[Path, typer.Option(help="Directory searched for config files.")] = Path("."),
    format: Annotated[
        str | None, typer.Option(help="Output format: human|json.", show_default="human")
    ] = None,
    include: Annotated[list[str] | None, typer.Option(help="Include glob pattern.")] = None,
    exclude: Annotated[list[str] | None, typer.Option(help="Exclude glob pattern.")] = None,
    require_files: Annotated[
        bool,
        typer.Option("--require-files", help="Exit nonzero when no file diffs are found."),
    ] = False,
    verbose: Annotated[bool, typer.Option("--verbose", help="Log skipped fragments.")] = False,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config TOML file."),
    ] = None,
) -> None:
    """Print per-file added/removed counts."""
    app_config = _load_config_or_raise(root, config_file)
    output_format = _resolve_format(format, app_config)
    _configure_logging(verbose=verbose, level_name=app_config.log_level)

    parse_ctx = _prepare_parse_context(
        diff_file=diff_file,
        stdin=stdin,
        include=include,
        exclude=exclude,
        app_config=app_config,
    )

    if output_format == "json":
        typer.echo(
            render_json(parse_ctx.files, input_source=parse_ctx.input_source, show_lines=False)
        )
    else:
        typer.echo(render_stat(parse_ctx.files))

    _exit_if_empty(parse_ctx.files, require_files)


@app.command("config")
def config_command(
    root: Annotated[Path, typer.Option(help="Directory searched for config files.")] = Path("."),
    format: Annotated[str, typer.Option(help="Output format: human|json.")] = "human",
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config TOML file."),
    ] = None,
) -> None:
    """Show resolved configuration."""
    output_format = format.lower()
    if output_format not in {"human", "json"}:
        raise typer.BadParameter("format must be one of: human, json", param_hint="--format")

    app_config = _load_config_or_raise(root, config_file)
    payload = app_config.to_dict()

    if output_format == "json":
        typer.echo(json.dumps(payload, sort_keys=True))
        return

    lines = [
        "Resolved configuration:",
        f"- source: {payload['source'] or 'defaults'}",
        f"- format: {payload['format']}",
        f"- include: {payload['include']}",
        f"- exclude: {payload['exclude']}",
        f"- show_lines: {payload['show_lines']}",
        f"- normalize_newlines: {payload['normalize_newlines']}",
        f"- log_level: {payload['log_level']}",
    ]
    typer.echo("\n".join(lines))


@app.command("config-init")
def config_init_command(
    out: Annotated[Path, typer.Option(help="Output path for starter config TOML.")] = Path(
        ".hunkwise.toml"
    ),
    force: Annotated[
        bool,
        typer.Option("--force", help="Overwrite if file already exists."),
    ] = False,
) -> None:
    """Create a starter config file."""
    out_path = out.resolve()
    if out_path.exists() and not force:
        raise typer.BadParameter(
            f"Refusing to overwrite existing file: {out_path}. Use --force to overwrite."
        )
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(default_config_template(), encoding="utf-8")
    typer.echo(f"Wrote starter config: {out_path}")


@app.command("config-validate")
def config_validate_command(
    root: Annotated[Path, typer.Option(help="Directory searched for config files.")] = Path("."),
    config_file: Annotated[
        Path,
        typer.Option("--config", help="Path to config TOML file to validate."),
    ] = Path(".hunkwise.toml"),
    format: Annotated[str, typer.Option(help="Output format: human|json.")] = "human",
) -> None:
    """Validate a config file."""
    output_format = format.lower()
    if output_format not in {"human", "json"}:
        raise typer.BadParameter("format must be one of: human, json", param_hint="--format")

    app_config = _load_config_or_raise(root, config_file)
    payload = {"ok": True, "source": app_config.source}
    if output_format == "json":
        typer.echo(json.dumps(payload, sort_keys=True))
        return
    typer.echo("\n".join(["Config is valid.", f"- source: {payload['source']}"]))


def main() -> None:
    """Console script entrypoint."""
    app()


@dataclass(slots=True)
class _ParseContext:
    """Parsed files plus where their text came from."""

    files: list[FileDiff]
    input_source: str


def _prepare_parse_context(
    *,
    diff_file: Path | None,
    stdin: bool,
    include: list[str] | None,
    exclude: list[str] | None,
    app_config: AppConfig,
) -> _ParseContext:
    diff_text, input_source = _resolve_diff_input(diff_file=diff_file, stdin=stdin)
    if app_config.normalize_newlines:
        diff_text = diff_text.replace("\r\n", "\n")

    include_patterns = include if include is not None else app_config.include
    exclude_patterns = exclude if exclude is not None else app_config.exclude

    files = parse_git_diff(diff_text)
    logger.debug("Parsed %d file diff(s) from %s", len(files), input_source)
    filtered_files = _filter_files(files, includes=include_patterns, excludes=exclude_patterns)
    return _ParseContext(files=filtered_files, input_source=input_source)


def _resolve_diff_input(*, diff_file: Path | None, stdin: bool) -> tuple[str, str]:
    if diff_file is not None and stdin:
        raise typer.BadParameter("Use either --diff-file or --stdin, not both.")

    if diff_file is not None:
        try:
            raw = diff_file.read_bytes()
        except OSError as exc:
            raise typer.BadParameter(
                f"Cannot read diff file {diff_file}: {exc.strerror or exc}",
                param_hint="--diff-file",
            ) from exc
        return (raw.decode("utf-8", errors="replace"), f"diff_file:{diff_file}")

    if stdin:
        return (sys.stdin.read(), "stdin")

    raise typer.BadParameter("Provide --diff-file or --stdin.")


def _filter_files(
    files: list[FileDiff], *, includes: list[str], excludes: list[str]
) -> list[FileDiff]:
    filtered: list[FileDiff] = []
    for file_diff in files:
        path = file_diff.file_name
        if includes and not any(fnmatch.fnmatch(path, pattern) for pattern in includes):
            continue
        if excludes and any(fnmatch.fnmatch(path, pattern) for pattern in excludes):
            continue
        filtered.append(file_diff)
    return filtered


def _load_config_or_raise(root: Path, config_file: Path | None = None) -> AppConfig:
    try:
        return load_app_config(root, config_path=config_file)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="config") from exc


def _resolve_format(value: str | None, app_config: AppConfig) -> str:
    output_format = (value or app_config.format).lower()
    if output_format not in {"human", "json"}:
        raise typer.BadParameter("format must be one of: human, json", param_hint="--format")
    return output_format


def _configure_logging(*, verbose: bool, level_name: str) -> None:
    level = logging.DEBUG if verbose else getattr(logging, level_name.upper())
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    logging.getLogger("hunkwise").setLevel(level)


def _exit_if_empty(files: list[FileDiff], require_files: bool) -> None:
    if require_files and not files:
        typer.echo("No file diffs found in input.", err=True)
        raise typer.Exit(code=1)
