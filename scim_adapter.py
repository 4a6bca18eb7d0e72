"""
SCIM directory adapter for diffsync
"""

import logging
from typing import Callable, List

from diffsync import Adapter, DiffSyncModel
from diffsync.exceptions import ObjectAlreadyExists

from errors import MappingError
from models import Group, Membership, User
from schema_mapper import group_from_scim, memberships_from_scim, user_from_scim


logger = logging.getLogger(__name__)


class ScimAdapter(Adapter):
    """
    DiffSync adapter for the remote SCIM directory.
    Reads users, groups and group memberships through a directory client.
    """

    user = User
    group = Group
    membership = Membership
    top_level = ["user", "group", "membership"]

    def __init__(self, client, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.client = client
        self.skipped = 0

    def load(self):
        """Load the full directory state."""
        self.load_users()
        self.load_groups()
        self.load_memberships()

    def _add_records(self, kind: str, resources: List[dict], mapper: Callable[[dict], List[DiffSyncModel]]) -> int:
        count = 0
        for resource in resources:
            try:
                records = mapper(resource)
            except MappingError as e:
                self.skipped += 1
                logger.warning(f"Skipping {kind} record from SCIM directory: {e}")
                continue

            for record in records:
                try:
                    self.add(record)
                    count += 1
                except ObjectAlreadyExists:
                    self.skipped += 1
                    logger.warning(f"Skipping duplicate {record.get_type()} {record.get_key()} from SCIM directory")
        return count

    def load_users(self):
        logger.info("Loading users from SCIM directory")
        resources = self.client.list_users()
        count = self._add_records("user", resources, lambda r: [user_from_scim(r)])
        logger.info(f"Loaded {count} users from SCIM directory")

    def load_groups(self):
        logger.info("Loading groups from SCIM directory")
        resources = self.client.list_groups()
        count = self._add_records("group", resources, lambda r: [group_from_scim(r)])
        logger.info(f"Loaded {count} groups from SCIM directory")

    def load_memberships(self):
        """Load memberships from the member lists of every group."""
        logger.info("Loading memberships from SCIM directory")
        resources = self.client.list_groups()
        count = self._add_records("group member", resources, memberships_from_scim)
        logger.info(f"Loaded {count} memberships from SCIM directory")
