#!/usr/bin/env python3
"""
SCIM Directory Sync

Keeps a local store of users, groups and memberships consistent with a SCIM
identity directory: a periodic reconciliation pulls the directory into the
local store, and lifecycle hooks push local changes to the directory as they
happen.
"""

import os
import sys
import time
import logging
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from local_store import InMemoryStore
from propagator import ChangePropagator
from reconciler import Reconciler, ReconciliationStats
from scim_client import ScimClient
from sync_guard import SyncGuard


logger = logging.getLogger(__name__)


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class SyncSettings:
    interval: float = 60.0
    dry_run: bool = False
    skip_unchanged: bool = False
    run_once: bool = False

    @classmethod
    def from_env(cls) -> "SyncSettings":
        """Read sync settings from the environment."""
        settings = cls(
            interval=float(os.getenv("SYNC_INTERVAL_SECONDS", "60")),
            dry_run=_env_flag("SYNC_DRY_RUN"),
            skip_unchanged=_env_flag("SYNC_SKIP_UNCHANGED"),
            run_once=_env_flag("SYNC_RUN_ONCE"),
        )
        if settings.interval <= 0:
            raise ValueError(f"SYNC_INTERVAL_SECONDS must be positive, got {settings.interval}")
        return settings


class SyncService:
    """
    Wires the shared guard, the directory client, the change propagator and
    the reconciler around a local store.
    """

    def __init__(self, store, client=None, guard: Optional[SyncGuard] = None,
                 settings: Optional[SyncSettings] = None):
        self.settings = settings or SyncSettings.from_env()
        self.store = store
        self.guard = guard or SyncGuard()
        self.client = client or ScimClient()

        self.propagator = ChangePropagator(self.client, self.guard, store)
        store.register_hooks(self.propagator)

        self.reconciler = Reconciler(
            self.client,
            store,
            self.guard,
            interval=self.settings.interval,
            dry_run=self.settings.dry_run,
            skip_unchanged=self.settings.skip_unchanged,
        )

    def run_once(self) -> Optional[ReconciliationStats]:
        return self.reconciler.run_once()

    def start(self):
        self.reconciler.start()

    def stop(self):
        self.reconciler.stop()

    def is_running(self) -> bool:
        return self.reconciler.is_running()

    def close(self):
        self.stop()
        if hasattr(self.client, "close"):
            self.client.close()


def main():
    """Run the sync against an in-memory store."""
    load_dotenv()

    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    settings = SyncSettings.from_env()
    service = SyncService(InMemoryStore(), settings=settings)

    try:
        if settings.run_once:
            stats = service.run_once()
            if stats is None or not stats.completed:
                sys.exit(1)
            return

        service.start()
        while service.is_running():
            time.sleep(1)

    except KeyboardInterrupt:
        logger.info("Interrupted, stopping sync")

    finally:
        service.close()


if __name__ == "__main__":
    main()
