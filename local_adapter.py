"""
Local store adapter for diffsync
"""

import logging
from collections import Counter
from typing import Hashable

from diffsync import Adapter, DiffSyncModel

from errors import StoreError
from models import Group, Membership, User


logger = logging.getLogger(__name__)


class LocalStoreAdapter(Adapter):
    """
    DiffSync adapter for the local store.
    Reads the current local state and applies queued writes back to the store.
    """

    user = User
    group = Group
    membership = Membership
    top_level = ["user", "group", "membership"]

    def __init__(self, local_store, *args, dry_run: bool = False, **kwargs):
        super().__init__(*args, **kwargs)
        self.local_store = local_store
        self.dry_run = dry_run
        self.pending_operations: list = []

    def load(self):
        """Load the full local state."""
        self.load_users()
        self.load_groups()
        self.load_memberships()

    def _load(self, modelname: str):
        records = self.local_store.list_all(modelname)
        for record in records.values():
            self.add(record.copy_record())
        logger.info(f"Loaded {len(records)} {modelname} records from local store")

    def load_users(self):
        self._load(User._modelname)

    def load_groups(self):
        self._load(Group._modelname)

    def load_memberships(self):
        self._load(Membership._modelname)

    def queue_insert(self, record: DiffSyncModel):
        self.pending_operations.append(("insert", record.get_type(), record.get_key(), record))

    def queue_update(self, key: Hashable, record: DiffSyncModel):
        self.pending_operations.append(("update", record.get_type(), key, record))

    def queue_delete(self, modelname: str, key: Hashable):
        self.pending_operations.append(("delete", modelname, key, None))

    def execute_pending_operations(self) -> Counter:
        """
        Apply all queued writes to the local store.
        A failed write is logged and counted; the rest of the queue still runs.
        """
        counts: Counter = Counter()
        if not self.pending_operations:
            logger.info("No pending local operations to execute")
            return counts

        logger.info(f"Executing {len(self.pending_operations)} pending local operations")

        for operation, modelname, key, record in self.pending_operations:
            if self.dry_run:
                logger.info(f"[DRY RUN] Would {operation} {modelname} {key}")
                continue

            try:
                if operation == "insert":
                    self.local_store.insert(record.copy_record())
                elif operation == "update":
                    self.local_store.update(key, record.copy_record())
                elif operation == "delete":
                    self.local_store.delete_by_key(modelname, key)
            except StoreError as e:
                counts["failed"] += 1
                logger.error(f"Failed to {operation} {modelname} {key} in local store: {e}")
                continue

            counts[operation] += 1
            logger.debug(f"Applied {operation} of {modelname} {key}")

        self.pending_operations = []
        return counts
