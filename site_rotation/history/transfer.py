"""
History import/export normalization.

The same normalization is applied to import files and to the persisted log
when it is loaded at startup, so both paths tolerate the same damage.

Per-element rules
-----------------
- Non-object elements, and elements without a non-empty string ``pointId``,
  are skipped (a warning is logged with the element index).
- ``id``: kept when a non-empty string; otherwise a fresh id is generated.
  A later element repeating an earlier id also receives a fresh id.
- ``region``: kept when a non-empty string; otherwise the catalog region of
  ``pointId``, or ``"unknown"`` if the point cannot be resolved.
- ``side``: kept when it is ``left`` / ``right`` / ``na``; otherwise the
  catalog side of ``pointId``, or ``"na"``.
- ``ts``: a finite number, a numeric string, or an ISO-8601 date string;
  anything else becomes *now*.
- ``note``: kept when a string; ``None``/missing becomes ``""``; other values
  are coerced with ``str()``.

Top-level rules
---------------
The payload must be a JSON array. Anything else raises
``ImportPayloadError`` and the caller leaves its history untouched.
"""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Collection, Iterable, Sequence
from typing import Any, Optional

from site_rotation.models.history import HistoryEntry
from site_rotation.taxonomy import point_catalog
from site_rotation.taxonomy.site_taxonomy import UNKNOWN_REGION, Side
from site_rotation.utils.time_utils import parse_timestamp_ms, resolve_now

logger = logging.getLogger(__name__)

_VALID_SIDES: frozenset[str] = frozenset(s.value for s in Side)


class ImportPayloadError(ValueError):
    """The import payload is not a JSON array of history entries."""


def generate_entry_id(now_ms: Optional[int] = None, taken: Collection[str] = ()) -> str:
    """Return a fresh entry id of the form ``h_<ms>_<8 hex>`` not in ``taken``."""
    now = resolve_now(now_ms)
    while True:
        candidate = f"h_{now}_{uuid.uuid4().hex[:8]}"
        if candidate not in taken:
            return candidate


def sort_most_recent_first(entries: Iterable[HistoryEntry]) -> list[HistoryEntry]:
    """Sort by ``ts`` descending; equal timestamps keep their input order."""
    return sorted(entries, key=lambda e: -e.ts)


def normalize_entry(
    raw: dict[str, Any],
    now_ms: int,
    taken_ids: Collection[str] = (),
) -> Optional[HistoryEntry]:
    """Normalize one raw record into a ``HistoryEntry``.

    Args:
        raw:       A decoded JSON object.
        now_ms:    Substitute timestamp for missing/unparseable ``ts``.
        taken_ids: Ids already in use; a clashing ``id`` is replaced.

    Returns:
        The normalized entry, or ``None`` if ``raw`` has no usable ``pointId``.
    """
    point_id = raw.get("pointId")
    if not isinstance(point_id, str) or not point_id:
        return None

    point = point_catalog.lookup(point_id)

    entry_id = raw.get("id")
    if not isinstance(entry_id, str) or not entry_id or entry_id in taken_ids:
        entry_id = generate_entry_id(now_ms, taken_ids)

    region = raw.get("region")
    if not isinstance(region, str) or not region:
        region = point.region.value if point is not None else UNKNOWN_REGION

    side = raw.get("side")
    if side not in _VALID_SIDES:
        side = point.side.value if point is not None else Side.NA.value

    ts = parse_timestamp_ms(raw.get("ts"))
    if ts is None:
        logger.debug("Entry %s has no usable timestamp; using now.", entry_id)
        ts = now_ms

    note = raw.get("note")
    if note is None:
        note = ""
    elif not isinstance(note, str):
        note = str(note)

    return HistoryEntry(
        id=entry_id,
        point_id=point_id,
        region=region,
        side=Side(side),
        ts=ts,
        note=note,
    )


def normalize_entries(
    raw_entries: Any,
    now_ms: Optional[int] = None,
    sort: bool = True,
) -> list[HistoryEntry]:
    """Normalize a decoded JSON array into history entries.

    Args:
        raw_entries: Decoded payload; must be a list (or tuple).
        now_ms:      Substitute timestamp; defaults to the current time.
        sort:        Re-sort most-recent-first (import). Pass ``False`` to keep
                     the stored order (startup load).

    Returns:
        Normalized entries.

    Raises:
        ImportPayloadError: If ``raw_entries`` is not an array.
    """
    if not isinstance(raw_entries, (list, tuple)):
        raise ImportPayloadError(
            f"History payload must be a JSON array, got {type(raw_entries).__name__}."
        )

    now = resolve_now(now_ms)
    entries: list[HistoryEntry] = []
    taken: set[str] = set()
    skipped = 0

    for idx, raw in enumerate(raw_entries):
        if not isinstance(raw, dict):
            logger.warning("Skipping history element #%d: not an object.", idx)
            skipped += 1
            continue
        entry = normalize_entry(raw, now, taken)
        if entry is None:
            logger.warning("Skipping history element #%d: missing pointId.", idx)
            skipped += 1
            continue
        taken.add(entry.id)
        entries.append(entry)

    if skipped:
        logger.info("Normalized %d history entries (%d skipped).", len(entries), skipped)

    return sort_most_recent_first(entries) if sort else entries


def parse_history_json(text: str) -> Any:
    """Decode an import document.

    Raises:
        ImportPayloadError: If ``text`` is not valid JSON.
    """
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError) as exc:
        raise ImportPayloadError(f"History file is not valid JSON: {exc}") from exc


def serialize_entries(entries: Sequence[HistoryEntry]) -> list[dict[str, Any]]:
    """Serialize entries to the exchange shape, preserving order."""
    return [entry.to_record() for entry in entries]
