"""Negative cache of databases known not to exist."""

from typing import Dict, FrozenSet, Set


class BadDatabaseCache:
    """Maps canonical cluster names to database names confirmed missing.

    Entries are never expired. Not safe for concurrent mutation.
    """

    def __init__(self):
        self._bad_names: Dict[str, Set[str]] = {}

    def contains(self, cluster_name: str, database_name: str) -> bool:
        names = self._bad_names.get(cluster_name)
        return names is not None and database_name in names

    def add(self, cluster_name: str, database_name: str) -> None:
        self._bad_names.setdefault(cluster_name, set()).add(database_name)

    def names_for(self, cluster_name: str) -> FrozenSet[str]:
        """Database names recorded as missing on a cluster."""
        return frozenset(self._bad_names.get(cluster_name, ()))

    def snapshot(self) -> Dict[str, FrozenSet[str]]:
        return {cluster: frozenset(names) for cluster, names in self._bad_names.items()}

    def __len__(self) -> int:
        return sum(len(names) for names in self._bad_names.values())
