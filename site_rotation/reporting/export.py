"""
History export/import file helpers.

Export files are pretty-printed JSON arrays in the history exchange shape,
named ``<prefix>-YYYY-MM-DD.json`` by default. Reading an import file only
decodes text; normalization and replacement belong to ``HistoryStore``.
"""

from __future__ import annotations

import json
from datetime import date
from pathlib import Path
from typing import Any, Optional

from site_rotation.history.transfer import ImportPayloadError
from site_rotation.utils.time_utils import utcnow


def default_export_path(
    export_dir: str | Path,
    prefix: str = "site-history",
    on_date: Optional[date] = None,
) -> Path:
    """Return ``<export_dir>/<prefix>-YYYY-MM-DD.json`` for ``on_date`` (UTC today)."""
    stamp = (on_date or utcnow().date()).isoformat()
    return Path(export_dir) / f"{prefix}-{stamp}.json"


def export_to_json(data: list[dict[str, Any]], path: Path) -> Path:
    """Write ``data`` to a pretty-printed UTF-8 JSON file.

    Returns:
        ``path`` as written (parent dirs created if missing).
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
    return path


def read_import_text(path: Path) -> str:
    """Read an import file as UTF-8 text.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ImportPayloadError: If ``path`` cannot be read or is not UTF-8 text.
    """
    if not path.exists():
        raise FileNotFoundError(f"Import file not found: {path}")
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ImportPayloadError(f"Import file is not UTF-8 text: {exc}") from exc
    except OSError as exc:
        raise ImportPayloadError(f"Import file cannot be read: {exc}") from exc
