"""
DiffSync models for the local replica of the SCIM directory
"""

import json
from datetime import datetime
from typing import NamedTuple, Optional

from diffsync import DiffSyncModel


STATUS_ACTIVE = "Active"
STATUS_INACTIVE = "Inactive"


class MembershipKey(NamedTuple):
    """Composite key of a membership, used directly as a dict/set key."""
    group_id: str
    user_id: str


class User(DiffSyncModel):
    """
    DiffSync model representing a directory user.
    The identifier is assigned by the SCIM directory and is None until the first push succeeds.
    """
    _modelname = "user"
    _identifiers = ("id",)
    _attributes = (
        "login_name",
        "first_name",
        "last_name",
        "email",
        "status",
        "user_type",
        "valid_from",
        "valid_to",
        "company",
        "country",
        "city",
    )

    id: Optional[str] = None
    login_name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    status: str = STATUS_INACTIVE
    user_type: Optional[str] = None
    valid_from: Optional[datetime] = None
    valid_to: Optional[datetime] = None
    company: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None

    def get_key(self) -> Optional[str]:
        return self.id

    def copy_record(self) -> "User":
        return User(**self.get_identifiers(), **self.get_attrs())


class Group(DiffSyncModel):
    """DiffSync model representing a directory group."""
    _modelname = "group"
    _identifiers = ("id",)
    _attributes = ("display_name", "name", "description")

    id: Optional[str] = None
    display_name: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None

    def get_key(self) -> Optional[str]:
        return self.id

    def copy_record(self) -> "Group":
        return Group(**self.get_identifiers(), **self.get_attrs())


class Membership(DiffSyncModel):
    """
    DiffSync model representing a group membership.
    A membership has no identity beyond its (group, user) pair.
    """
    _modelname = "membership"
    _identifiers = ("group_id", "user_id")
    _attributes = ()

    group_id: str
    user_id: str

    @classmethod
    def create_unique_id(cls, **identifiers) -> str:
        # diffsync joins identifiers with "__", which is ambiguous for arbitrary ids
        return json.dumps([identifiers["group_id"], identifiers["user_id"]])

    def get_key(self) -> MembershipKey:
        return MembershipKey(self.group_id, self.user_id)

    def copy_record(self) -> "Membership":
        return Membership(group_id=self.group_id, user_id=self.user_id)


MODEL_CLASSES = {
    User._modelname: User,
    Group._modelname: Group,
    Membership._modelname: Membership,
}
