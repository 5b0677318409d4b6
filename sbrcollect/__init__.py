"""
sbrcollect: incremental, deduplicating store for SMS Backup & Restore exports.

    from sbrcollect import GroupPeriod, new_grouped_collection
    from sbrcollect.parsers import parse_call_file

    store = new_grouped_collection("./store", GroupPeriod.MONTHLY, backup=True)
    store.add_calls(parse_call_file("calls-2024-01-01.xml").get_calls())
    store.save()
"""

from sbrcollect.collection import Collection, CollectionLoadError, load_collection
from sbrcollect.grouped_collection import (
    GroupedCollection,
    GroupedCollectionConfig,
    KeyFuncs,
    PartitionState,
    new_grouped_collection,
)
from sbrcollect.grouping import GroupPeriod, KeyDerivationError, partition_key

__version__ = "2.0.0"

__all__ = [
    "Collection",
    "CollectionLoadError",
    "GroupPeriod",
    "GroupedCollection",
    "GroupedCollectionConfig",
    "KeyDerivationError",
    "KeyFuncs",
    "PartitionState",
    "load_collection",
    "new_grouped_collection",
    "partition_key",
]
