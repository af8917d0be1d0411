"""
History entry model: one recorded use of an injection site.

``HistoryEntry`` carries denormalized snapshots of the point's ``region`` and
``side`` taken when the use was recorded. They are deliberately *not* a live
reference into the catalog, so history stays meaningful after catalog
revisions and orphaned ids degrade to the ``"unknown"`` / ``"na"`` sentinels.

The serialized shape uses camelCase keys (``pointId``) and is shared by the
persisted log and by import/export files::

    {"id": "h_1718000000000_3f2a9c1d", "pointId": "abd_r1", "region": "abdomen",
     "side": "right", "ts": 1718000000000, "note": ""}

Entries are frozen. The only permitted field change (note edit) produces a
replacement record via ``with_note()``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from site_rotation.taxonomy.site_taxonomy import Side


class HistoryEntry(BaseModel):
    """A single recorded injection.

    Attributes:
        id: Unique within the store.
        point_id: Catalog point id (may be orphaned).
        region: Region snapshot, or ``"unknown"``.
        side: Side snapshot; ``Side.NA`` when unresolved.
        ts: Epoch milliseconds (UTC).
        note: Free text, editable.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(min_length=1)
    point_id: str = Field(alias="pointId")
    region: str
    side: Side
    ts: int
    note: str = ""

    def with_note(self, note: str) -> "HistoryEntry":
        """Return a copy of this entry with ``note`` replaced."""
        return self.model_copy(update={"note": note})

    def to_record(self) -> dict[str, Any]:
        """Serialize to the persisted / exported JSON shape."""
        return self.model_dump(mode="json", by_alias=True)
