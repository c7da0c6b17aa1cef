"""
CLI commands for product spreadsheet imports.

``flask product-import run`` executes every pass of an import inline and
prints a summary; ``flask product-import enterprises`` lists what a user may
import into.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Mapping, Optional, Sequence

import click
from flask.cli import ScriptInfo

from catalog_app.importer.adapters import CSVAdapterError, ProductCSVAdapter
from catalog_app.importer.pipeline.settings import (
    IMPORT_INTO_INVENTORIES,
    IMPORT_INTO_PRODUCT_LIST,
    ImportSettingsError,
)
from catalog_app.importer.product_importer import PassSummary, ProductImporter
from catalog_app.models import ImportRunStatus, ImportTargetKind, ProductImportRun, User, db
from catalog_app.utils.importer import get_chunk_size, get_fallback_taxon_id, is_product_import_enabled
from catalog_app.utils.permissions import editable_enterprises_for


@click.group(name="product-import", invoke_without_command=True)
@click.pass_context
def product_import_cli(ctx):
    """
    Product spreadsheet import commands.

    Shows the active import configuration when invoked without a subcommand.
    """
    info = ctx.ensure_object(ScriptInfo)
    app = info.load_app()
    if not is_product_import_enabled(app):
        raise click.ClickException(
            "Product import is disabled via PRODUCT_IMPORT_ENABLED=false. Enable it to run import commands."
        )
    if ctx.invoked_subcommand is None:
        click.echo(f"Product import enabled (chunk size {get_chunk_size(app)}).")


def get_disabled_product_import_group() -> click.Group:
    """
    Return a minimal command group that informs the operator the importer is disabled.
    """

    @click.group(name="product-import", invoke_without_command=True)
    def disabled_group():
        raise click.ClickException("Product import commands are unavailable because PRODUCT_IMPORT_ENABLED=false.")

    return disabled_group


def _load_user(email: str) -> User:
    user = User.find_by_email(email)
    if user is None:
        raise click.ClickException(f"No user found with email {email}.")
    return user


def _parse_defaults(raw: Optional[str]) -> dict | None:
    if not raw:
        return None
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise click.ClickException(f"--defaults is not valid JSON: {exc.msg}.") from exc
    if not isinstance(parsed, dict):
        raise click.ClickException("--defaults must be a JSON object of attribute rules.")
    return parsed


def _build_import_settings(
    *,
    import_into: str,
    reset_absent: bool,
    reset_enterprises: Sequence[int],
    default_reset_enterprises: Sequence[int],
    defaults: dict | None,
) -> dict:
    settings: dict = {"import_into": import_into, "reset_all_absent": reset_absent}
    if defaults:
        settings["defaults"] = defaults
    payload: dict = {"settings": settings, "updated_ids": []}
    chosen = reset_enterprises or default_reset_enterprises
    if reset_absent and chosen:
        payload["enterprises_to_reset"] = [str(enterprise_id) for enterprise_id in chosen]
    return payload


def _sheet_enterprise_ids(rows, editable: Mapping[str, int]) -> list[int]:
    """Ids of the editable enterprises named in the supplier column of ``rows``."""
    names = {str(row.normalized.get("supplier") or "").strip() for row in rows}
    return sorted(editable[name] for name in names if name in editable)


def _read_rows(csv_path: Path):
    with csv_path.open("r", encoding="utf-8-sig", newline="") as handle:
        adapter = ProductCSVAdapter(handle)
        return list(adapter.iter_rows()), adapter.statistics


def _mark_failed(run_id: int, exc: Exception) -> None:
    db.session.rollback()
    recovery_run = db.session.get(ProductImportRun, run_id)
    if recovery_run is None:
        return
    recovery_run.status = ImportRunStatus.FAILED
    recovery_run.error_summary = str(exc)
    recovery_run.finished_at = datetime.now(timezone.utc)
    db.session.commit()


def _format_summary(run: ProductImportRun, importer: ProductImporter, passes: Sequence[PassSummary], reset) -> str:
    counts = importer.state.counts
    status_value = run.status.value if hasattr(run.status, "value") else str(run.status)
    invalid = sum(summary.invalid_count for summary in passes)
    reset_display = "not run" if reset is None else str(reset)
    lines = [
        f"Run {run.id} completed with status {status_value} (dry_run={run.dry_run}).",
        f"  rows              : {importer.item_count}",
        f"  passes            : {len(passes)}",
        f"  invalid_rows      : {invalid}",
        f"  products_created  : {counts.get('products_created', 0)}",
        f"  variants_created  : {counts.get('variants_created', 0)}",
        f"  variants_updated  : {counts.get('variants_updated', 0)}",
        f"  inventory_created : {counts.get('inventory_created', 0)}",
        f"  inventory_updated : {counts.get('inventory_updated', 0)}",
        f"  products_reset    : {reset_display}",
    ]
    if run.dry_run:
        lines.append(f"  would_create      : {sum(summary.products_create_count for summary in passes)}")
        lines.append(f"  would_update      : {sum(summary.products_update_count for summary in passes)}")
    messages = importer.errors.full_messages()
    if messages:
        lines.append("Errors:")
        lines.extend(f"  {message}" for message in messages)
    return "\n".join(lines)


@product_import_cli.command("run")
@click.argument("file_path", type=click.Path(path_type=Path, exists=True, dir_okay=False))
@click.option("--user", "email", required=True, help="Email of the user the import runs as.")
@click.option(
    "--import-into",
    type=click.Choice([IMPORT_INTO_PRODUCT_LIST, IMPORT_INTO_INVENTORIES]),
    default=IMPORT_INTO_PRODUCT_LIST,
    show_default=True,
)
@click.option("--reset-absent", is_flag=True, help="Zero stock of items the spreadsheet leaves out.")
@click.option(
    "--reset-enterprise",
    "reset_enterprises",
    type=int,
    multiple=True,
    help="Enterprise id to reset (repeatable). Defaults to the editable suppliers named in the spreadsheet.",
)
@click.option("--defaults", "defaults_json", help='Default rules as JSON, e.g. {"on_hand": {"active": true, "mode": "overwrite_empty", "value": 5}}.')
@click.option("--chunk-size", type=int, help="Rows per pass (defaults to PRODUCT_IMPORT_CHUNK_SIZE).")
@click.option("--dry-run", is_flag=True, help="Classify rows and report without saving anything.")
@click.pass_context
def product_import_run(
    ctx,
    file_path: Path,
    email: str,
    import_into: str,
    reset_absent: bool,
    reset_enterprises: tuple[int, ...],
    defaults_json: Optional[str],
    chunk_size: Optional[int],
    dry_run: bool,
):
    """Import FILE into the catalog as the given user."""
    info = ctx.ensure_object(ScriptInfo)
    app = info.load_app()
    if not is_product_import_enabled(app):
        raise click.ClickException("Product import is disabled; enable it via PRODUCT_IMPORT_ENABLED before running.")

    user = _load_user(email)
    defaults = _parse_defaults(defaults_json)
    editable = editable_enterprises_for(user)
    import_settings = _build_import_settings(
        import_into=import_into,
        reset_absent=reset_absent,
        reset_enterprises=reset_enterprises,
        default_reset_enterprises=app.config.get("PRODUCT_IMPORT_DEFAULT_RESET_ENTERPRISES") or (),
        defaults=defaults,
    )

    run = ProductImportRun(
        source_filename=file_path.name,
        status=ImportRunStatus.PENDING,
        import_into=ImportTargetKind(import_into),
        dry_run=dry_run,
        triggered_by_user_id=user.id,
        settings_json=import_settings,
        counts_json={},
    )
    db.session.add(run)
    db.session.commit()
    run_id = run.id

    try:
        rows, statistics = _read_rows(file_path)
    except (CSVAdapterError, UnicodeDecodeError) as exc:
        _mark_failed(run_id, exc)
        raise click.ClickException(f"Import run {run_id} failed: {exc}") from exc

    if reset_absent and "enterprises_to_reset" not in import_settings:
        sheet_ids = _sheet_enterprise_ids(rows, editable)
        import_settings = {**import_settings, "enterprises_to_reset": [str(enterprise_id) for enterprise_id in sheet_ids]}
        run.settings_json = import_settings

    run.status = ImportRunStatus.RUNNING
    run.started_at = datetime.now(timezone.utc)
    db.session.commit()

    try:
        importer = ProductImporter(
            rows,
            user,
            import_settings,
            import_run=run,
            fallback_taxon_id=get_fallback_taxon_id(app),
        )
        passes = importer.save_all(chunk_size=chunk_size or get_chunk_size(app), dry_run=dry_run)
        reset = None if dry_run else importer.reset_absent_items()
    except ImportSettingsError as exc:
        _mark_failed(run_id, exc)
        raise click.ClickException(f"Import run {run_id} has invalid settings: {exc}") from exc
    except Exception as exc:
        _mark_failed(run_id, exc)
        raise click.ClickException(f"Import run {run_id} failed: {exc}") from exc

    saved = sum(
        importer.state.counts.get(key, 0)
        for key in ("products_created", "variants_created", "variants_updated", "inventory_created", "inventory_updated")
    )
    if not importer.errors:
        run.status = ImportRunStatus.SUCCEEDED
    elif saved or dry_run:
        run.status = ImportRunStatus.PARTIALLY_FAILED
    else:
        run.status = ImportRunStatus.FAILED
    run.finished_at = datetime.now(timezone.utc)
    run.errors_json = importer.errors.to_dict()
    run.error_summary = "; ".join(importer.errors.full_messages()[:5]) or None
    db.session.commit()

    app.logger.info(
        "Product import run %s finished with status %s (rows=%s skipped_blank=%s)",
        run.id,
        run.status.value,
        statistics.rows_processed,
        statistics.rows_skipped_blank,
    )
    click.echo(_format_summary(run, importer, passes, reset))


@product_import_cli.command("enterprises")
@click.option("--user", "email", required=True, help="Email of the user to list enterprises for.")
@click.pass_context
def product_import_enterprises(ctx, email: str):
    """List the enterprises a user may import products for."""
    info = ctx.ensure_object(ScriptInfo)
    info.load_app()
    user = _load_user(email)
    editable = editable_enterprises_for(user)
    if not editable:
        click.echo(f"{email} cannot manage any enterprises.")
        return
    click.echo(f"Enterprises editable by {email}:")
    for name, enterprise_id in editable.items():
        click.echo(f"  - {enterprise_id}: {name}")
