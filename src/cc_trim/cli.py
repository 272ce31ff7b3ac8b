"""CLI entry point for cc-trim."""

import json
from pathlib import Path

import typer

APP_HELP = """
Edit Claude Code session transcripts without breaking their structure.

\b
Session files are stored at:
  ~/.claude/projects/<project-dir>/<session-id>.jsonl

\b
Every command taking STREAM accepts either a path to a .jsonl file or
<project-dir>/<session-id> relative to the projects directory.
"""

BASE_DIR_OPTION = typer.Option(
    None,
    "--base-dir",
    envvar="CC_TRIM_BASE_DIR",
    help="Projects directory (default: ~/.claude/projects)",
)

app = typer.Typer(add_completion=False, help=APP_HELP)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Log each step to stderr"),
) -> None:
    import logging
    import sys

    import structlog

    # stdout carries command output only
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.INFO if verbose else logging.ERROR
        ),
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
    )


def _config(base_dir: Path | None):
    from .config import EditorConfig

    return EditorConfig(base_dir=base_dir) if base_dir else EditorConfig()


def _stream(config, target: str) -> Path:
    from .errors import StreamNotFoundError
    from .store import locate_stream

    try:
        return locate_stream(config, target)
    except StreamNotFoundError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e


def _read(func, *args, **kwargs):
    """Call a read-only operation, exiting with code 1 if the stream is unreadable."""
    from .errors import NotFoundError, PersistError

    try:
        return func(*args, **kwargs)
    except (NotFoundError, PersistError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e


def _report(result) -> None:
    typer.echo(result.model_dump_json(indent=2))
    if result.requires_reconciliation:
        typer.echo(
            f"Error: stream may be inconsistent; restore from {result.backup_path}", err=True
        )
        raise typer.Exit(2)
    if not result.ok:
        raise typer.Exit(1)


DELETE_HELP = """
Delete records by uuid and re-link the records that pointed at them.

Records holding thinking blocks and summary records cannot be deleted, and a
tool_use record must be deleted together with its tool_result record. All
problems are reported at once; nothing is written unless the request is valid.

\b
A backup is written next to the stream before it is replaced:
  <stream>.jsonl.backup.<unix-millis>

\b
Examples:
  cc-trim delete session.jsonl 3f2a... 9b1c...
"""


@app.command(help=DELETE_HELP)
def delete(
    stream: str = typer.Argument(..., help="Stream path or project/session"),
    record_ids: list[str] = typer.Argument(..., help="uuids of the records to delete"),
    base_dir: Path | None = BASE_DIR_OPTION,
) -> None:
    from .operations import delete_records

    config = _config(base_dir)
    _report(delete_records(_stream(config, stream), record_ids, config=config))


COMPACT_HELP = """
Replace the tool input and tool output of one record's tool calls with a
short placeholder.

Both sides of every tool pair the record takes part in are rewritten. If any
tool result looks like a failure (contains "error", "traceback", ...) the
stream is left untouched.
"""


@app.command(help=COMPACT_HELP)
def compact(
    stream: str = typer.Argument(..., help="Stream path or project/session"),
    record_id: str = typer.Argument(..., help="uuid of a tool_use or tool_result record"),
    base_dir: Path | None = BASE_DIR_OPTION,
) -> None:
    from .operations import compact_record

    config = _config(base_dir)
    _report(compact_record(_stream(config, stream), record_id, config=config))


@app.command()
def export(
    stream: str = typer.Argument(..., help="Stream path or project/session"),
    output: Path | None = typer.Option(None, "-o", "--output", help="Output file path"),
    exclude_summaries: bool = typer.Option(
        False, "--exclude-summaries", help="Drop summary records"
    ),
    base_dir: Path | None = BASE_DIR_OPTION,
) -> None:
    """Write the stream to stdout or a file, optionally without summaries."""
    from .operations import export_stream

    config = _config(base_dir)
    data = _read(export_stream, _stream(config, stream), exclude_summaries=exclude_summaries)

    if output is None:
        typer.echo(data, nl=False)
    else:
        output.write_bytes(data)
        typer.echo(f"Written to {output}", err=True)


@app.command()
def stats(
    stream: str = typer.Argument(..., help="Stream path or project/session"),
    base_dir: Path | None = BASE_DIR_OPTION,
) -> None:
    """Show record counts, compaction points and tool pairing for a stream."""
    from .operations import stream_stats

    config = _config(base_dir)
    typer.echo(_read(stream_stats, _stream(config, stream)).model_dump_json(indent=2))


@app.command()
def verify(
    stream: str = typer.Argument(..., help="Stream path or project/session"),
    base_dir: Path | None = BASE_DIR_OPTION,
) -> None:
    """Check id uniqueness, parent ordering and tool result pairing."""
    from .index import integrity_problems
    from .parser import load_stream

    config = _config(base_dir)
    problems = integrity_problems(_read(load_stream, _stream(config, stream)))
    for problem in problems:
        typer.echo(problem)
    if problems:
        raise typer.Exit(1)
    typer.echo("OK", err=True)


@app.command()
def projects(base_dir: Path | None = BASE_DIR_OPTION) -> None:
    """List project directories and their conversation counts."""
    from .store import list_projects

    data = [p.model_dump() for p in list_projects(_config(base_dir))]
    typer.echo(json.dumps(data, indent=2))


@app.command()
def conversations(
    project: str = typer.Argument(..., help="Project directory name"),
    base_dir: Path | None = BASE_DIR_OPTION,
) -> None:
    """List a project's conversations, most recent first."""
    from .errors import StreamNotFoundError
    from .store import list_conversations

    try:
        items = list_conversations(_config(base_dir), project)
    except StreamNotFoundError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e
    typer.echo(json.dumps([c.model_dump() for c in items], indent=2))


if __name__ == "__main__":
    app()
