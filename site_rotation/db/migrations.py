"""
Schema-version gate for the persisted rotation documents.

This is NOT a full migration framework. The stored ``schema_version``
document is an integer; ``run_migrations()`` applies every registered step
whose version is above it, in order, and then persists the new version.

Version baseline:
  - A database with no documents at all is a fresh install and is stamped
    with ``CURRENT_SCHEMA_VERSION`` directly.
  - A database holding documents but no version predates versioning and is
    treated as version 1.

Adding a migration:
  1. Define ``migration_NNNN_description(repo)`` below.
  2. Register it in ``MIGRATIONS`` under its target version.
  3. Bump ``CURRENT_SCHEMA_VERSION``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from site_rotation.db.repositories.state_repo import RotationStateRepository

logger = logging.getLogger(__name__)

CURRENT_SCHEMA_VERSION = 2
LEGACY_SCHEMA_VERSION = 1

MigrationFn = Callable[[RotationStateRepository], None]


# ── Migration functions ────────────────────────────────────────────────────────


def migration_0002_baseline(repo: RotationStateRepository) -> None:
    """Baseline: documents already have the version-2 shape; nothing to rewrite."""


# ── Registry ──────────────────────────────────────────────────────────────────

MIGRATIONS: dict[int, tuple[MigrationFn, str]] = {
    2: (migration_0002_baseline, "Baseline: introduce schema_version document"),
}


def run_migrations(repo: RotationStateRepository) -> int:
    """Bring the stored documents up to ``CURRENT_SCHEMA_VERSION``.

    Args:
        repo: Repository over an open connection with the schema applied.

    Returns:
        Number of migration steps applied in this call.
    """
    stored = repo.get_schema_version()
    if stored is None:
        if not repo.keys():
            repo.set_schema_version(CURRENT_SCHEMA_VERSION)
            logger.info("Fresh database stamped with schema version %d.", CURRENT_SCHEMA_VERSION)
            return 0
        stored = LEGACY_SCHEMA_VERSION

    if stored >= CURRENT_SCHEMA_VERSION:
        logger.debug("Schema version %d is current; no migrations pending.", stored)
        return 0

    count = 0
    for version, (fn, description) in sorted(MIGRATIONS.items()):
        if version <= stored:
            continue
        logger.info("Applying migration to version %d: %s", version, description)
        try:
            fn(repo)
        except Exception as exc:
            logger.error("Migration to version %d FAILED: %s", version, exc)
            raise
        repo.set_schema_version(version)
        count += 1

    repo.set_schema_version(CURRENT_SCHEMA_VERSION)
    logger.info("Applied %d migration(s); schema version now %d.", count, CURRENT_SCHEMA_VERSION)
    return count
