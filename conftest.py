"""
Shared fixtures: an in-memory SCIM directory that records every call
"""

import copy
import itertools

import pytest

from errors import StatusError
from local_store import InMemoryStore, LifecycleHooks
from sync import SyncService, SyncSettings
from sync_guard import SyncGuard


MUTATING_CALLS = {
    "create_user", "update_user", "delete_user",
    "create_group", "update_group", "delete_group",
    "patch_group_add_member", "patch_group_remove_member",
}


class FakeDirectoryClient:
    """Stands in for ScimClient, keeping users and groups as raw SCIM payloads."""

    def __init__(self):
        self.users = {}
        self.groups = {}
        self.calls = []
        self.next_ids = []
        self.failures = {}
        self._counter = itertools.count(1)

    # ---------- test helpers ----------

    def add_user(self, user_id, user_name, given_name=None, family_name=None, email=None, active=True, **extra):
        payload = {"id": user_id, "userName": user_name, "active": active}
        name = {}
        if given_name:
            name["givenName"] = given_name
        if family_name:
            name["familyName"] = family_name
        if name:
            payload["name"] = name
        if email:
            payload["emails"] = [{"value": email, "primary": True}]
        payload.update(extra)
        self.users[user_id] = payload
        return payload

    def add_group(self, group_id, display_name, members=(), **extra):
        payload = {"id": group_id, "displayName": display_name, "members": [{"value": m} for m in members]}
        payload.update(extra)
        self.groups[group_id] = payload
        return payload

    def fail_on(self, method, error):
        self.failures[method] = error

    def mutating_calls(self):
        return [call for call in self.calls if call[0] in MUTATING_CALLS]

    def _record(self, method, *args):
        self.calls.append((method,) + args)
        if method in self.failures:
            raise self.failures[method]

    def _new_id(self, prefix):
        if self.next_ids:
            return self.next_ids.pop(0)
        return f"{prefix}-{next(self._counter)}"

    # ---------- DirectoryClient surface ----------

    def list_users(self):
        self._record("list_users")
        return copy.deepcopy(list(self.users.values()))

    def get_user(self, user_id):
        self._record("get_user", user_id)
        return copy.deepcopy(self.users[user_id])

    def create_user(self, payload):
        self._record("create_user", payload)
        user = dict(payload, id=self._new_id("u"))
        self.users[user["id"]] = user
        return copy.deepcopy(user)

    def update_user(self, user_id, payload):
        self._record("update_user", user_id, payload)
        if user_id not in self.users:
            raise StatusError(404, "User not found", method="PUT", url=f"/Users/{user_id}")
        self.users[user_id] = dict(payload, id=user_id)
        return copy.deepcopy(self.users[user_id])

    def delete_user(self, user_id):
        self._record("delete_user", user_id)
        self.users.pop(user_id, None)
        for group in self.groups.values():
            group["members"] = [m for m in group.get("members", []) if m.get("value") != user_id]

    def list_groups(self):
        self._record("list_groups")
        return copy.deepcopy(list(self.groups.values()))

    def get_group(self, group_id):
        self._record("get_group", group_id)
        return copy.deepcopy(self.groups[group_id])

    def create_group(self, payload):
        self._record("create_group", payload)
        group = dict(payload, id=self._new_id("g"), members=[])
        self.groups[group["id"]] = group
        return copy.deepcopy(group)

    def update_group(self, group_id, payload):
        self._record("update_group", group_id, payload)
        members = self.groups.get(group_id, {}).get("members", [])
        self.groups[group_id] = dict(payload, id=group_id, members=members)
        return copy.deepcopy(self.groups[group_id])

    def delete_group(self, group_id):
        self._record("delete_group", group_id)
        self.groups.pop(group_id, None)

    def patch_group_add_member(self, group_id, user_id):
        self._record("patch_group_add_member", group_id, user_id)
        self.groups[group_id].setdefault("members", []).append({"value": user_id})

    def patch_group_remove_member(self, group_id, user_id):
        self._record("patch_group_remove_member", group_id, user_id)
        group = self.groups[group_id]
        group["members"] = [m for m in group.get("members", []) if m.get("value") != user_id]


@pytest.fixture
def directory():
    return FakeDirectoryClient()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def guard():
    return SyncGuard()


@pytest.fixture
def settings():
    return SyncSettings(interval=60.0)


@pytest.fixture
def service(store, directory, guard, settings):
    return SyncService(store, client=directory, guard=guard, settings=settings)


@pytest.fixture
def seed(store):
    """Insert records into the local store without firing lifecycle hooks."""
    def _seed(*records):
        hooks = store.hooks
        store.hooks = LifecycleHooks()
        try:
            for record in records:
                store.insert(record)
        finally:
            store.hooks = hooks
    return _seed
