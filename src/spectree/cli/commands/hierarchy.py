"""Store-level commands: normalize a payload and check its integrity."""

from dataclasses import asdict
from typing import Optional

import click

from spectree.cli.logging import cli_command, get_cli_logger
from spectree.cli.output import emit_error, emit_success
from spectree.cli.payload import load_store
from spectree.cli.registry import get_context
from spectree.core.integrity import check_integrity
from spectree.core.normalizer import NormalizationReport

logger = get_cli_logger()


def _report_dict(report: NormalizationReport) -> dict:
    return {
        "skipped_count": report.skipped_count,
        "skipped_by_type": report.skipped_by_type(),
        "skipped": [asdict(item) for item in report.skipped],
        "warnings": list(report.warnings),
    }


@click.command("normalize")
@click.argument("payload", type=click.Path(dir_okay=False))
@click.option("--app-id", default=None, help="Application id (defaults to the payload's id).")
@click.option("--chat-api", default=None, help="Chat API identifier to record on the store.")
@click.pass_context
@cli_command("normalize")
def normalize_cmd(
    ctx: click.Context,
    payload: str,
    app_id: Optional[str],
    chat_api: Optional[str],
) -> None:
    """Normalize a nested application payload into an id-indexed store.

    PAYLOAD is a JSON file holding the nested tree.
    """
    cli_ctx = get_context(ctx)
    store, report = load_store(
        payload,
        app_id=app_id,
        chat_api=chat_api,
        default_model=cli_ctx.default_model,
    )

    emit_success(
        {
            "store": store.to_dict(),
            "counts": store.counts(),
            "report": _report_dict(report),
        },
        warnings=report.warnings or None,
    )


@click.command("check")
@click.argument("payload", type=click.Path(dir_okay=False))
@click.pass_context
@cli_command("check")
def check_cmd(ctx: click.Context, payload: str) -> None:
    """Check a store's parent/child links and list fields.

    PAYLOAD is a nested payload or a store printed by `spectree normalize`.
    Exits with status 1 when any error is found.
    """
    cli_ctx = get_context(ctx)
    store, report = load_store(payload, default_model=cli_ctx.default_model, validate=False)
    result = check_integrity(store)

    diagnostics = [asdict(diag) for diag in result.diagnostics]
    summary = {
        "app_id": store.id,
        "is_valid": result.is_valid,
        "error_count": result.error_count,
        "warning_count": result.warning_count,
        "skipped_count": report.skipped_count,
    }

    if not result.is_valid:
        logger.warning("Integrity check failed for %s with %d errors", store.id, result.error_count)
        emit_error(
            f"Hierarchy integrity check failed with {result.error_count} errors",
            code="VALIDATION_ERROR",
            error_type="validation",
            remediation="Fix the listed parent/child references and re-run the check",
            details={**summary, "diagnostics": diagnostics},
        )

    emit_success({**summary, "diagnostics": diagnostics}, warnings=report.warnings or None)
