"""
Periodic full reconciliation of the SCIM directory into the local store
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import List, Optional

from diff_engine import changed_keys, compute_diff, snapshot
from local_adapter import LocalStoreAdapter
from models import MODEL_CLASSES
from scim_adapter import ScimAdapter


logger = logging.getLogger(__name__)

# Memberships key on group and user ids, so they must come last
RECONCILE_ORDER = ("user", "group", "membership")


@dataclass
class ReconciliationStats:
    created: int = 0
    updated: int = 0
    deleted: int = 0
    failed: int = 0
    skipped: int = 0
    completed: bool = False
    entity_types: List[str] = field(default_factory=list)

    @property
    def writes(self) -> int:
        return self.created + self.updated + self.deleted

    def __str__(self) -> str:
        return (
            f"created={self.created} updated={self.updated} deleted={self.deleted} "
            f"failed={self.failed} skipped={self.skipped}"
        )


class Reconciler:
    """
    Pulls the full directory state and reconciles it into the local store.

    The directory is authoritative: remote-only records are created locally,
    records on both sides are rewritten from the remote copy, and local-only
    records are deleted.
    """

    def __init__(self, client, store, guard, interval: float = 60.0,
                 dry_run: bool = False, skip_unchanged: bool = False):
        self.client = client
        self.store = store
        self.guard = guard
        self.interval = interval
        self.dry_run = dry_run
        self.skip_unchanged = skip_unchanged
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def run_once(self) -> Optional[ReconciliationStats]:
        """
        Run one reconciliation pass.
        Returns None without doing anything if a pass is already running.
        """
        if not self.guard.try_begin_reconciliation():
            logger.info("Reconciliation already running, skipping")
            return None

        logger.info("Starting reconciliation")
        if self.dry_run:
            logger.info("Running in DRY RUN mode - no local changes will be made")

        stats = ReconciliationStats()
        try:
            remote = ScimAdapter(self.client)
            local = LocalStoreAdapter(self.store, dry_run=self.dry_run)
            loaders = {
                "user": (remote.load_users, local.load_users),
                "group": (remote.load_groups, local.load_groups),
                "membership": (remote.load_memberships, local.load_memberships),
            }

            for modelname in RECONCILE_ORDER:
                load_remote, load_local = loaders[modelname]
                self._reconcile(modelname, remote, local, load_remote, load_local, stats)
                stats.entity_types.append(modelname)
                stats.skipped = remote.skipped

            stats.completed = True
            logger.info(f"Reconciliation completed: {stats}")

        except Exception as e:
            logger.error(
                f"Reconciliation failed after {stats.entity_types or 'no'} entity types: {e}",
                exc_info=True,
            )

        finally:
            self.guard.end_reconciliation()

        return stats

    def _reconcile(self, modelname, remote, local, load_remote, load_local, stats: ReconciliationStats):
        logger.info(f"Reconciling {modelname} records")

        load_remote()
        load_local()
        remote_records = snapshot(remote, modelname)
        local_records = snapshot(local, modelname)

        diff = compute_diff(local_records, remote_records)
        logger.info(f"{modelname}: {diff.summary()}")

        updates = diff.to_update_locally
        if not MODEL_CLASSES[modelname]._attributes:
            # Records without attributes have nothing to update
            updates = frozenset()
        elif self.skip_unchanged:
            updates = changed_keys(updates, local_records, remote_records)

        for key in sorted(diff.to_create_locally):
            local.queue_insert(remote_records[key])
        for key in sorted(updates):
            local.queue_update(key, remote_records[key])
        for key in sorted(diff.to_delete_locally):
            local.queue_delete(modelname, key)

        counts = local.execute_pending_operations()
        stats.created += counts["insert"]
        stats.updated += counts["update"]
        stats.deleted += counts["delete"]
        stats.failed += counts["failed"]

    # ---------- interval loop ----------

    def start(self):
        """Run passes at a fixed rate on a background thread."""
        if self.is_running():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run_loop, name="scim-reconciler", daemon=True)
        self._thread.start()
        logger.info(f"Reconciliation scheduled every {self.interval} seconds")

    def stop(self, timeout: Optional[float] = None):
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Reconciliation schedule stopped")

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run_loop(self):
        next_run = time.monotonic()
        while not self._stop_event.is_set():
            try:
                self.run_once()
            except Exception as e:
                logger.error(f"Unexpected error in reconciliation loop: {e}", exc_info=True)
            next_run = max(next_run + self.interval, time.monotonic())
            self._stop_event.wait(max(0.0, next_run - time.monotonic()))
