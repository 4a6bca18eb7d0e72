"""
Local store interface and an in-memory reference implementation.

The host application owns the real store; the sync engine only needs the CRUD
surface below plus synchronous lifecycle hooks around each write.
"""

import logging
import threading
from typing import Dict, Hashable, Optional

from diffsync import DiffSyncModel

from errors import StoreError
from models import MODEL_CLASSES, Membership, MembershipKey


logger = logging.getLogger(__name__)


class LifecycleHooks:
    """
    Callbacks the store invokes synchronously around local writes.
    An exception raised by a before_* hook aborts the write.
    """

    def before_create(self, record: DiffSyncModel):
        pass

    def after_create(self, record: DiffSyncModel):
        pass

    def before_update(self, record: DiffSyncModel):
        pass

    def before_delete(self, record: DiffSyncModel):
        pass


class InMemoryStore:
    """Thread-safe in-memory store keyed by entity type and record key."""

    def __init__(self, hooks: Optional[LifecycleHooks] = None):
        self.hooks = hooks or LifecycleHooks()
        self._lock = threading.RLock()
        self._tables: Dict[str, Dict[Hashable, DiffSyncModel]] = {name: {} for name in MODEL_CLASSES}

    def register_hooks(self, hooks: LifecycleHooks):
        self.hooks = hooks

    def _table(self, modelname: str) -> Dict[Hashable, DiffSyncModel]:
        try:
            return self._tables[modelname]
        except KeyError:
            raise StoreError(f"Unknown entity type: {modelname}")

    def list_all(self, modelname: str) -> Dict[Hashable, DiffSyncModel]:
        with self._lock:
            return dict(self._table(modelname))

    def get(self, modelname: str, key: Hashable) -> Optional[DiffSyncModel]:
        with self._lock:
            return self._table(modelname).get(key)

    def insert(self, record: DiffSyncModel):
        self.hooks.before_create(record)

        key = record.get_key()
        if key is None:
            raise StoreError(f"Cannot insert {record.get_type()} without an identifier")

        with self._lock:
            table = self._table(record.get_type())
            if key in table:
                raise StoreError(f"{record.get_type()} {key} already exists")
            table[key] = record
        logger.debug(f"Inserted {record.get_type()} {key}")

        self.hooks.after_create(record)

    def update(self, key: Hashable, record: DiffSyncModel):
        modelname = record.get_type()
        with self._lock:
            if key not in self._table(modelname):
                raise StoreError(f"{modelname} {key} does not exist")

        if record.get_key() is None:
            # An update addressed by key applies to the stored row
            record.id = key

        self.hooks.before_update(record)

        new_key = record.get_key()
        if new_key is None:
            raise StoreError(f"Cannot update {modelname} {key} to a record without an identifier")

        with self._lock:
            table = self._table(modelname)
            table.pop(key, None)
            table[new_key] = record
        logger.debug(f"Updated {modelname} {key}")

    def delete_by_key(self, modelname: str, key: Hashable, notify: bool = True):
        with self._lock:
            record = self._table(modelname).get(key)
        if record is None:
            raise StoreError(f"{modelname} {key} does not exist")

        if notify:
            self.hooks.before_delete(record)

        with self._lock:
            self._table(modelname).pop(key, None)
        logger.debug(f"Deleted {modelname} {key}")

    def delete_memberships(self, user_id: Optional[str] = None, group_id: Optional[str] = None) -> int:
        """Delete membership rows referencing a user and/or group without firing hooks."""
        if user_id is None and group_id is None:
            raise StoreError("delete_memberships needs a user_id or a group_id")

        with self._lock:
            table = self._table(Membership._modelname)
            doomed = [
                key for key in table
                if (user_id is None or key.user_id == user_id) and (group_id is None or key.group_id == group_id)
            ]
            for key in doomed:
                del table[key]
        if doomed:
            logger.debug(f"Deleted {len(doomed)} memberships for user={user_id} group={group_id}")
        return len(doomed)

    def add_membership(self, group_id: str, user_id: str):
        """Convenience wrapper used by the host application."""
        self.insert(Membership(group_id=group_id, user_id=user_id))

    def remove_membership(self, group_id: str, user_id: str):
        self.delete_by_key(Membership._modelname, MembershipKey(group_id, user_id))
