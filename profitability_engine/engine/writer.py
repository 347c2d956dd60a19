"""Append-only snapshot persistence."""

import logging
from typing import Sequence

from profitability_engine.engine.errors import PersistenceFailure
from profitability_engine.models.snapshots import ProfitabilitySnapshot
from profitability_engine.storage.base import SnapshotStore

log = logging.getLogger(__name__)


class SnapshotWriter:
    """Writes one run's cohort in a single storage call; never updates rows."""

    def __init__(self, store: SnapshotStore):
        self._store = store

    def write(self, records: Sequence[ProfitabilitySnapshot]) -> int:
        if not records:
            return 0
        cohorts = {record.computed_at for record in records}
        if len(cohorts) != 1:
            raise PersistenceFailure("A snapshot batch must share a single computed_at")

        try:
            written = self._store.write_snapshots(list(records))
        except Exception as e:
            log.exception("Snapshot batch write failed (%d records)", len(records))
            raise PersistenceFailure(f"Failed to write snapshots: {e}") from e

        if written < len(records):
            log.info(
                "%d of %d snapshots already existed for %s and were left untouched",
                len(records) - written,
                len(records),
                next(iter(cohorts)).isoformat(),
            )
        return written
