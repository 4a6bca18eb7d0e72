"""
Push local mutations to the SCIM directory as they happen
"""

import logging

from diffsync import DiffSyncModel

from errors import SyncError
from local_store import LifecycleHooks
from models import Group, Membership, User
from schema_mapper import assigned_id, group_to_scim, user_to_scim


logger = logging.getLogger(__name__)


class ChangePropagator(LifecycleHooks):
    """
    Lifecycle hooks that mirror every local write to the SCIM directory.

    Each push runs synchronously inside the hook, so the caller of the local
    write sees the directory's success or failure. While a reconciliation pass
    is running the guard suppresses every push: those writes come from the
    directory in the first place.
    """

    def __init__(self, client, guard, store=None):
        self.client = client
        self.guard = guard
        self.store = store

    def _suppressed(self, operation: str, record: DiffSyncModel) -> bool:
        if self.guard.is_push_suppressed():
            logger.debug(f"Reconciliation running, not pushing {operation} of {record.get_type()} {record.get_key()}")
            return True
        return False

    def _push(self, operation: str, record: DiffSyncModel, call, *args):
        try:
            return call(*args)
        except SyncError as e:
            logger.error(f"Failed to push {operation} of {record.get_type()} {record.get_key()} to SCIM directory: {e}")
            raise

    # ---------- hooks ----------

    def before_create(self, record: DiffSyncModel):
        if isinstance(record, (User, Group)) and not self._suppressed("create", record):
            if record.id:
                # Record already known to the directory (retried or moved create)
                self._push_update(record)
            else:
                self._push_create(record)

    def before_update(self, record: DiffSyncModel):
        if isinstance(record, (User, Group)) and not self._suppressed("update", record):
            if record.id:
                self._push_update(record)
            else:
                self._push_create(record)

    def before_delete(self, record: DiffSyncModel):
        if self._suppressed("delete", record):
            return

        if isinstance(record, Membership):
            self._push(
                "member remove", record,
                self.client.patch_group_remove_member, record.group_id, record.user_id,
            )
            logger.info(f"Removed user {record.user_id} from group {record.group_id} in SCIM directory")
        elif isinstance(record, (User, Group)):
            self._push_delete(record)

    def after_create(self, record: DiffSyncModel):
        if isinstance(record, Membership) and not self._suppressed("member add", record):
            self._push(
                "member add", record,
                self.client.patch_group_add_member, record.group_id, record.user_id,
            )
            logger.info(f"Added user {record.user_id} to group {record.group_id} in SCIM directory")

    # ---------- pushes ----------

    def _push_create(self, record):
        if isinstance(record, User):
            response = self._push("create", record, self.client.create_user, user_to_scim(record))
        else:
            response = self._push("create", record, self.client.create_group, group_to_scim(record))

        try:
            record.id = assigned_id(response)
        except SyncError as e:
            logger.error(f"SCIM directory created {record.get_type()} but returned no id: {e}")
            raise
        logger.info(f"Created {record.get_type()} {record.id} in SCIM directory")

    def _push_update(self, record):
        if isinstance(record, User):
            self._push("update", record, self.client.update_user, record.id, user_to_scim(record))
        else:
            self._push("update", record, self.client.update_group, record.id, group_to_scim(record))
        logger.info(f"Updated {record.get_type()} {record.id} in SCIM directory")

    def _push_delete(self, record):
        if not record.id:
            logger.warning(f"Deleting {record.get_type()} without an id, nothing to remove from SCIM directory")
            return

        # Local memberships must be gone before the remote delete is issued
        if self.store is not None:
            if isinstance(record, User):
                removed = self.store.delete_memberships(user_id=record.id)
            else:
                removed = self.store.delete_memberships(group_id=record.id)
            logger.debug(f"Removed {removed} local memberships of {record.get_type()} {record.id}")

        if isinstance(record, User):
            self._push("delete", record, self.client.delete_user, record.id)
        else:
            self._push("delete", record, self.client.delete_group, record.id)
        logger.info(f"Deleted {record.get_type()} {record.id} from SCIM directory")
