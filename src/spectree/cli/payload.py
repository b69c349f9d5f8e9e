"""Payload loading shared by CLI commands.

A payload file holds either a nested application tree (as delivered by the
remote source) or a normalized store as printed by ``spectree normalize``.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from spectree.cli.output import emit_error
from spectree.core.integrity import check_integrity
from spectree.core.models import HierarchyStore
from spectree.core.normalizer import NormalizationReport, normalize_tree
from spectree.core.responses import ErrorCode, ErrorType

logger = logging.getLogger(__name__)


def read_payload(path: str) -> Dict[str, Any]:
    """Read a JSON payload object, emitting an error envelope on failure."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        emit_error(
            f"Cannot read payload file: {e}",
            code=ErrorCode.NOT_FOUND.value,
            error_type=ErrorType.NOT_FOUND.value,
            details={"path": path},
        )
    except json.JSONDecodeError as e:
        emit_error(
            f"Payload is not valid JSON: {e}",
            code=ErrorCode.INVALID_FORMAT.value,
            error_type=ErrorType.VALIDATION.value,
            details={"path": path},
        )

    if not isinstance(data, dict):
        emit_error(
            "Payload must be a JSON object",
            code=ErrorCode.INVALID_FORMAT.value,
            error_type=ErrorType.VALIDATION.value,
            details={"path": path},
        )
    return data


def is_normalized(data: Dict[str, Any]) -> bool:
    """Normalized stores key epics by id; nested payloads list them."""
    return isinstance(data.get("epics"), dict)


def resolve_app_id(data: Dict[str, Any], path: str, app_id: Optional[str] = None) -> str:
    if app_id:
        return app_id
    for key in ("id", "documentId"):
        value = data.get(key)
        if isinstance(value, (str, int)) and not isinstance(value, bool) and str(value):
            return str(value)
    return Path(path).stem


def _require_list_fields(store: HierarchyStore, path: str) -> None:
    """Reject a normalized store whose list fields are not lists."""
    invalid = [d for d in check_integrity(store).diagnostics if d.code == "INVALID_LIST"]
    if not invalid:
        return
    logger.warning("Rejected store %s: %d malformed list fields", path, len(invalid))
    emit_error(
        f"Malformed normalized store: {invalid[0].message}",
        code=ErrorCode.INVALID_FORMAT.value,
        error_type=ErrorType.VALIDATION.value,
        remediation="Run `spectree check` on the store to list every malformed field",
        details={
            "path": path,
            "fields": [{"item_type": d.item_type, "id": d.location, "message": d.message} for d in invalid],
        },
    )


def load_store(
    path: str,
    *,
    app_id: Optional[str] = None,
    chat_api: Optional[str] = None,
    default_model: Optional[str] = None,
    validate: bool = True,
) -> Tuple[HierarchyStore, NormalizationReport]:
    """
    Load a payload file into a store.

    Nested payloads are normalized; normalized stores are rebuilt as-is and
    come back with an empty report. app_id and chat_api apply to nested
    payloads only.

    Args:
        validate: Reject normalized stores with non-list child or list fields.
            Only ``check`` turns this off, so it can report them.
    """
    data = read_payload(path)

    if is_normalized(data):
        try:
            store = HierarchyStore.from_dict(data)
        except (TypeError, ValueError) as e:
            emit_error(
                f"Malformed normalized store: {e}",
                code=ErrorCode.INVALID_FORMAT.value,
                error_type=ErrorType.VALIDATION.value,
                details={"path": path},
            )
        if validate:
            _require_list_fields(store, path)
        return store, NormalizationReport()

    kwargs = {"selected_model": default_model} if default_model else {}
    return normalize_tree(
        data,
        chat_api if chat_api is not None else data.get("chatApi"),
        resolve_app_id(data, path, app_id),
        **kwargs,
    )
