"""
Site Rotation CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Open the SQLite state store and the ``RotationSession``.
  4. Execute the action (suggest, record, undo, import, ...).
  5. Report result to stdout.

Install and run::

    pip install -e .
    site-rotation --help
    site-rotation init-db
    site-rotation suggest
    site-rotation record                 # record the suggested site
    site-rotation record --point th_l1   # record a manually chosen site
    site-rotation undo
    site-rotation history --limit 20
    site-rotation export --out backup.json
    site-rotation import backup.json
    site-rotation prefs set --cooldown-days 10 --disable-region arm

This tool does not give medical advice. Adjust preferences as advised by
your healthcare professional.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

import typer

app = typer.Typer(
    name="site-rotation",
    help="Injection site rotation tracker (local-first CLI).",
    add_completion=False,
)

prefs_app = typer.Typer(help="Show or change rotation preferences.")
app.add_typer(prefs_app, name="prefs")

_CONFIG_OPTION = typer.Option(None, "--config", help="Path to TOML config file.")
_DB_OPTION = typer.Option(None, "--db-path", help="Override DB path from config.")


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from site_rotation.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config):
    """Set up logging from config."""
    from site_rotation.utils.logging import configure_logging
    configure_logging(config.logging, debug=config.debug)


@contextmanager
def _session(config_path: Optional[str], db_path: Optional[str]) -> Iterator:
    """Load config, configure logging, and yield an open ``RotationSession``."""
    from site_rotation.db.connection import get_connection
    from site_rotation.session import RotationSession

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    with get_connection(
        db_path or config.database.db_path,
        wal_mode=config.database.wal_mode,
        busy_timeout_ms=config.database.busy_timeout_ms,
    ) as conn:
        yield RotationSession.open(conn, metric_windows=config.metrics.windows_days)


# ── Setup commands ────────────────────────────────────────────────────────────

@app.command("init-db")
def init_db(
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Initialize the state database and stamp/upgrade the schema version.

    Safe to run multiple times.
    """
    from site_rotation.db.connection import get_connection
    from site_rotation.db.migrations import CURRENT_SCHEMA_VERSION, run_migrations
    from site_rotation.db.repositories.state_repo import RotationStateRepository
    from site_rotation.db.schema import apply_schema, get_existing_tables

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    target_path = db_path or config.database.db_path
    typer.echo(f"Initializing database at: {target_path}")

    with get_connection(
        target_path,
        wal_mode=config.database.wal_mode,
        busy_timeout_ms=config.database.busy_timeout_ms,
    ) as conn:
        apply_schema(conn)
        migrations_applied = run_migrations(RotationStateRepository(conn))
        tables = get_existing_tables(conn)

    typer.echo(f"  Tables: {', '.join(tables)}")
    typer.echo(f"  Migrations applied: {migrations_applied}")
    typer.echo(f"  Schema version: {CURRENT_SCHEMA_VERSION}")
    typer.echo("[OK] Database ready.")


@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = _CONFIG_OPTION,
    show_full: bool = typer.Option(False, "--full", help="Print full config as JSON."),
) -> None:
    """Validate the configuration file and print parsed values."""
    config = _load_config_or_exit(config_path)

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Database path:  {config.database.db_path}")
    typer.echo(f"  Export dir:     {config.export.export_dir}")
    typer.echo(f"  Metric windows: {', '.join(f'{d}d' for d in config.metrics.windows_days)}")
    typer.echo(f"  Log level:      {config.logging.level}")
    typer.echo(f"  Debug mode:     {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(config.model_dump(), indent=2, default=str))

    typer.echo("")
    typer.echo("[OK] Config valid.")


@app.command("points")
def points() -> None:
    """List every site in the body-map catalog."""
    from site_rotation.reporting.formatters import format_points_table

    typer.echo(format_points_table())


# ── Rotation commands ─────────────────────────────────────────────────────────

@app.command("suggest")
def suggest(
    top: int = typer.Option(3, "--top", min=1, help="Candidates to show (incl. the suggestion)."),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Show the recommended next site and the runners-up."""
    from site_rotation.reporting.formatters import format_suggestion

    with _session(config_path, db_path) as session:
        snapshot = session.derive()
        typer.echo(format_suggestion(snapshot.candidates, session.prefs, top_n=top))


@app.command("status")
def status(
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Show availability of every site in the enabled regions."""
    from site_rotation.reporting.formatters import format_metrics, format_status_table

    with _session(config_path, db_path) as session:
        snapshot = session.derive()
        suggestion_id = snapshot.suggestion.id if snapshot.suggestion else None
        typer.echo(format_status_table(snapshot.statuses, suggestion_id))
        typer.echo("")
        typer.echo(format_metrics(snapshot.metrics))


@app.command("record")
def record(
    point: Optional[str] = typer.Option(
        None,
        "--point",
        "-p",
        help="Site id to record (see 'points'). Defaults to the suggested site.",
    ),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Record an injection at the suggested (or given) site."""
    from site_rotation.session import UnknownPointError
    from site_rotation.taxonomy import point_catalog

    with _session(config_path, db_path) as session:
        try:
            entry = session.record(point)
        except UnknownPointError as exc:
            typer.echo(f"[ERROR] {exc}", err=True)
            raise typer.Exit(code=1)

        pt = point_catalog.lookup(entry.point_id)
        typer.echo(f"Recorded {pt.label if pt else entry.point_id}  (entry {entry.id})")
        typer.echo("[OK] Use 'site-rotation undo' to revert this entry.")


@app.command("undo")
def undo(
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Undo the most recent 'record' if nothing else changed since."""
    with _session(config_path, db_path) as session:
        pending = session.store.pending_undo
        if not session.undo():
            typer.echo("[ERROR] Nothing to undo.", err=True)
            raise typer.Exit(code=1)
        typer.echo(f"[OK] Removed entry {pending.appended_id}.")


# ── History commands ──────────────────────────────────────────────────────────

@app.command("history")
def history(
    limit: Optional[int] = typer.Option(None, "--limit", "-n", min=1, help="Show at most N entries."),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """List recorded injections, most recent first."""
    from site_rotation.reporting.formatters import format_history_table

    with _session(config_path, db_path) as session:
        typer.echo(format_history_table(session.store.ordered(), limit=limit))


@app.command("delete")
def delete(
    entry_id: str = typer.Argument(..., help="History entry id."),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Permanently delete one history entry."""
    with _session(config_path, db_path) as session:
        if not session.store.delete(entry_id):
            typer.echo(f"[ERROR] No history entry with id '{entry_id}'.", err=True)
            raise typer.Exit(code=1)
        typer.echo(f"[OK] Deleted entry {entry_id}.")


@app.command("edit-note")
def edit_note(
    entry_id: str = typer.Argument(..., help="History entry id."),
    note: str = typer.Argument(..., help="New note text (use '' to clear)."),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Replace the note on one history entry."""
    with _session(config_path, db_path) as session:
        if session.store.edit_note(entry_id, note) is None:
            typer.echo(f"[ERROR] No history entry with id '{entry_id}'.", err=True)
            raise typer.Exit(code=1)
        typer.echo(f"[OK] Note updated on entry {entry_id}.")


@app.command("metrics")
def metrics(
    as_json: bool = typer.Option(False, "--json", help="Print the windows as a JSON array."),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Show rolling-window usage counts by region and side."""
    from site_rotation.reporting.formatters import format_metrics

    with _session(config_path, db_path) as session:
        windows = session.derive().metrics
        if as_json:
            typer.echo(json.dumps([windows[d].to_dict() for d in sorted(windows)], indent=2))
        else:
            typer.echo(format_metrics(windows))


@app.command("export")
def export(
    out: Optional[str] = typer.Option(
        None,
        "--out",
        "-o",
        help="Output file ('-' for stdout). Defaults to <export_dir>/<prefix>-YYYY-MM-DD.json.",
    ),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Export the full history as a JSON array."""
    from site_rotation.reporting.export import default_export_path, export_to_json

    config = _load_config_or_exit(config_path)
    with _session(config_path, db_path) as session:
        if out == "-":
            typer.echo(session.store.export_json())
            return
        path = Path(out) if out else default_export_path(
            config.export.export_dir, config.export.filename_prefix
        )
        export_to_json(session.store.export(), path)
        typer.echo(f"[OK] Exported {len(session.store)} entries to {path}")


@app.command("import")
def import_history(
    file: str = typer.Argument(..., help="JSON file produced by 'export' (array of entries)."),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Replace the whole history with the entries of a JSON file.

    The existing history is left untouched if the file is not a JSON array.
    """
    from site_rotation.history.transfer import ImportPayloadError
    from site_rotation.reporting.export import read_import_text

    with _session(config_path, db_path) as session:
        try:
            text = read_import_text(Path(file))
            imported = session.store.import_json(text)
        except (FileNotFoundError, ImportPayloadError) as exc:
            typer.echo(f"[ERROR] Invalid file: {exc}", err=True)
            raise typer.Exit(code=1)
        typer.echo(f"[OK] Imported {len(imported)} entries (previous history replaced).")


# ── Preferences ───────────────────────────────────────────────────────────────

@prefs_app.command("show")
def prefs_show(
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Print the current preferences."""
    from site_rotation.reporting.formatters import format_preferences

    with _session(config_path, db_path) as session:
        typer.echo(format_preferences(session.prefs))


@prefs_app.command("set")
def prefs_set(
    cooldown_days: Optional[int] = typer.Option(None, "--cooldown-days", help="Days before a site is reused (min 1)."),
    alternate_side: Optional[bool] = typer.Option(None, "--alternate-side/--no-alternate-side"),
    alternate_region: Optional[bool] = typer.Option(None, "--alternate-region/--no-alternate-region"),
    daily_slots: Optional[int] = typer.Option(None, "--daily-slots", help="Injections per day (informational)."),
    enable_region: Optional[list[str]] = typer.Option(None, "--enable-region", help="Region to enable. Repeatable."),
    disable_region: Optional[list[str]] = typer.Option(None, "--disable-region", help="Region to disable. Repeatable."),
    language: Optional[str] = typer.Option(None, "--language", help="Display language: pt or en."),
    pin_enabled: Optional[bool] = typer.Option(None, "--pin/--no-pin", help="Toggle the history PIN gate."),
    pin_code: Optional[str] = typer.Option(None, "--pin-code", help="PIN value (stored as-is)."),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Change one or more preferences."""
    from pydantic import ValidationError

    from site_rotation.reporting.formatters import format_preferences
    from site_rotation.taxonomy.site_taxonomy import Region

    changes: dict = {}
    for key, val in (
        ("cooldown_days", cooldown_days),
        ("alternate_side", alternate_side),
        ("alternate_region", alternate_region),
        ("daily_slots", daily_slots),
        ("language", language),
        ("pin_enabled", pin_enabled),
        ("pin_code", pin_code),
    ):
        if val is not None:
            changes[key] = val

    valid_regions = {r.value for r in Region}
    region_changes: dict[str, bool] = {}
    for region, enabled in [(r, True) for r in enable_region or []] + [
        (r, False) for r in disable_region or []
    ]:
        if region not in valid_regions:
            typer.echo(
                f"[ERROR] Unknown region '{region}'. Must be one of {sorted(valid_regions)}.",
                err=True,
            )
            raise typer.Exit(code=1)
        region_changes[region] = enabled
    if region_changes:
        changes["enabled_regions"] = region_changes

    if not changes:
        typer.echo("[ERROR] No preference changes given (see --help).", err=True)
        raise typer.Exit(code=1)

    with _session(config_path, db_path) as session:
        try:
            updated = session.update_preferences(**changes)
        except ValidationError as exc:
            typer.echo(f"[ERROR] Invalid preference value: {exc}", err=True)
            raise typer.Exit(code=1)
        typer.echo(format_preferences(updated))
        typer.echo("[OK] Preferences saved.")


if __name__ == "__main__":
    app()
