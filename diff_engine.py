"""
Key-level diff between a local and a remote snapshot of one entity type
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, Hashable, Iterable, Mapping, Set

from diffsync import Adapter, DiffSyncModel


@dataclass(frozen=True)
class DiffResult:
    """Three disjoint key sets that together cover every key of both snapshots."""
    to_create_locally: FrozenSet[Hashable]
    to_update_locally: FrozenSet[Hashable]
    to_delete_locally: FrozenSet[Hashable]

    def __len__(self) -> int:
        return len(self.to_create_locally) + len(self.to_update_locally) + len(self.to_delete_locally)

    def summary(self) -> str:
        return (
            f"{len(self.to_create_locally)} to create, "
            f"{len(self.to_update_locally)} to update, "
            f"{len(self.to_delete_locally)} to delete"
        )


def compute_diff(local: Mapping[Hashable, object], remote: Mapping[Hashable, object]) -> DiffResult:
    """
    Classify every key of the two snapshots.

    Keys present on both sides are always classified as updates; there is no
    dirty-checking here.
    """
    local_keys = set(local)
    remote_keys = set(remote)
    return DiffResult(
        to_create_locally=frozenset(remote_keys - local_keys),
        to_update_locally=frozenset(remote_keys & local_keys),
        to_delete_locally=frozenset(local_keys - remote_keys),
    )


def snapshot(adapter: Adapter, modelname: str) -> Dict[Hashable, DiffSyncModel]:
    """Build a keyed snapshot from the records an adapter has loaded."""
    return {record.get_key(): record for record in adapter.get_all(modelname)}


def changed_keys(keys: Iterable[Hashable], local: Mapping[Hashable, DiffSyncModel],
                 remote: Mapping[Hashable, DiffSyncModel]) -> Set[Hashable]:
    """Return the keys whose attributes differ between the two snapshots."""
    return {key for key in keys if local[key].get_attrs() != remote[key].get_attrs()}
