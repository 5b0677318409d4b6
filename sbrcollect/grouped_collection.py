"""
sbrcollect/grouped_collection.py
A store split into one Collection per calendar period.

LAYOUT (under base_directory):
  GroupPeriod.NONE     collection.json
  GroupPeriod.YEARLY   2023.json, 2024.json, ...
  GroupPeriod.MONTHLY  2023/11.json, 2024/05.json, ...

PARTITION LIFECYCLE:
  UNKNOWN → DISCOVERED   found on disk at construction, not read yet
          → LOADED       materialized in memory (new keys start here)
          → PERSISTED    written back by save()
  A partition is only read when a record is routed to it or it is asked for.

FAILURE POLICY:
  add_*   : a record whose partition cannot be resolved (bad date, directory
            creation failure, corrupt partition file) is logged and skipped.
            Other records in the batch are still added.
  all_*   : the first partition that fails to load is raised. A partial
            "everything" is worse than none.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Set, Union

from sbrcollect.collection import Collection, CollectionLoadError, load_collection
from sbrcollect.grouping import (
    NO_GROUPING_KEY,
    GroupPeriod,
    KeyDerivationError,
    discover_partition_keys,
    is_valid_key,
    partition_path,
    resolve_partition_key,
)
from sbrcollect.models.record import Call, MessageLog, MMS, SMS

logger = logging.getLogger(__name__)


# ── CONFIGURATION ────────────────────────────────────────────

@dataclass(frozen=True)
class GroupedCollectionConfig:
    """Settings fixed for the lifetime of a GroupedCollection."""
    base_directory: Union[str, Path]
    group_period:   GroupPeriod = GroupPeriod.NONE
    verbose:        bool        = False
    backup:         bool        = False

    def validated(self) -> 'GroupedCollectionConfig':
        """Return a normalized copy. Raises ValueError on bad settings."""
        if not str(self.base_directory).strip(' \t'):
            raise ValueError("base_directory must be non empty")
        try:
            period = GroupPeriod(self.group_period)
        except ValueError:
            raise ValueError(
                f"group_period must be one of 0, 1 or 2, got {self.group_period!r}"
            ) from None
        return replace(self, base_directory=Path(self.base_directory), group_period=period)


# ── PARTITION ENTRIES ────────────────────────────────────────

@dataclass(frozen=True)
class Unloaded:
    """Partition known to exist on disk, not read yet."""
    path: Path


@dataclass(frozen=True)
class Loaded:
    """Partition materialized in memory."""
    collection: Collection


class PartitionState(Enum):
    UNKNOWN    = 'unknown'
    DISCOVERED = 'discovered'
    LOADED     = 'loaded'
    PERSISTED  = 'persisted'


@dataclass(frozen=True)
class KeyFuncs:
    """One key function per record kind, used by custom_grouped()."""
    call: Callable[[Call], str]
    sms:  Callable[[SMS], str]
    mms:  Callable[[MMS], str]


_RESOLVE_ERRORS = (KeyDerivationError, CollectionLoadError, OSError)


class GroupedCollection:
    """Routes records to per-period Collections under one base directory."""

    def __init__(self, config: GroupedCollectionConfig):
        self.config = config.validated()
        self._partitions: Dict[str, Union[Unloaded, Loaded]] = {}
        self._persisted:  Set[str] = set()

        base = self.base_directory
        if not base.exists():
            logger.info(f"Creating store directory {base}")
            base.mkdir(parents=True)
        if not base.is_dir():
            raise NotADirectoryError(f"store path is not a directory: {base}")
        for key in discover_partition_keys(base, self.group_period):
            self._partitions[key] = Unloaded(partition_path(base, key))

        logger.debug(
            f"Opened {base} (group_period={self.group_period.name}, "
            f"{len(self._partitions)} partition(s) on disk)"
        )

    @property
    def base_directory(self) -> Path:
        return self.config.base_directory

    @property
    def group_period(self) -> GroupPeriod:
        return self.config.group_period

    @property
    def verbose(self) -> bool:
        return self.config.verbose

    @property
    def backup(self) -> bool:
        return self.config.backup

    # ── PARTITION ACCESS ─────────────────────────────────────

    def keys(self) -> List[str]:
        return sorted(self._partitions)

    def path_for(self, key: str) -> Path:
        return partition_path(self.base_directory, self._normalize_key(key))

    def state(self, key: str) -> PartitionState:
        if self.group_period is GroupPeriod.NONE and key == '':
            key = NO_GROUPING_KEY
        entry = self._partitions.get(key)
        if entry is None:
            return PartitionState.UNKNOWN
        if isinstance(entry, Unloaded):
            return PartitionState.DISCOVERED
        if key in self._persisted and not entry.collection.dirty:
            return PartitionState.PERSISTED
        return PartitionState.LOADED

    def get(self, key: str = '') -> Collection:
        """
        Return the Collection for key, loading it on first access or creating
        an empty one for a new key. Without grouping the only key is
        'collection' ('' is accepted for it); any other key is a ValueError.
        Load failures propagate.
        """
        key   = self._normalize_key(key)
        entry = self._partitions.get(key)

        if isinstance(entry, Loaded):
            return entry.collection

        if isinstance(entry, Unloaded):
            coll = load_collection(entry.path, verbose=self.verbose, backup=self.backup)
            coll.key = key
            if self.verbose:
                logger.info(f"loaded partition {key!r} from {entry.path}")
        else:
            coll = Collection(key=key, verbose=self.verbose, backup=self.backup)
            # not on disk yet, must be written by save()
            coll.dirty = True
            if self.verbose:
                logger.info(f"created partition {key!r}")

        self._partitions[key] = Loaded(coll)
        return coll

    def _normalize_key(self, key: str) -> str:
        if self.group_period is GroupPeriod.NONE:
            if key not in ('', NO_GROUPING_KEY):
                raise ValueError("without grouping no key must be provided")
            return NO_GROUPING_KEY
        if not key or not key.strip():
            raise ValueError("key must be provided")
        return key

    def _collection_for(self, date: str) -> Collection:
        key = resolve_partition_key(date, self.group_period, self.base_directory)
        return self.get(key)

    # ── ADD ──────────────────────────────────────────────────

    def add_calls(self, calls: Iterable[Call]) -> int:
        """Route each call to its partition. Returns the number added."""
        return self._route(calls, 'call', Collection.add_calls)

    def add_sms(self, sms: Iterable[SMS]) -> int:
        return self._route(sms, 'sms', Collection.add_sms)

    def add_mms(self, mms: Iterable[MMS]) -> int:
        return self._route(mms, 'mms', Collection.add_mms)

    def add_messages(self, messages: MessageLog) -> int:
        return self.add_mms(messages.get_mms()) + self.add_sms(messages.get_sms())

    def _route(self, records: Iterable, kind: str, add: Callable[[Collection, list], int]) -> int:
        added   = 0
        skipped = 0
        for record in records:
            try:
                coll = self._collection_for(record.date)
            except _RESOLVE_ERRORS as e:
                logger.debug(f"skipping {kind} dated {record.date!r}: {e}")
                skipped += 1
                continue
            added += add(coll, [record])
        if skipped:
            logger.warning(
                f"Skipped {skipped} {kind} record(s) that could not be assigned to a partition"
            )
        return added

    # ── SAVE ─────────────────────────────────────────────────

    def save(self) -> List[Path]:
        """
        Write every materialized partition with unsaved changes.
        Returns the paths written. Write errors propagate.
        """
        written: List[Path] = []
        for key in self.keys():
            entry = self._partitions[key]
            if not isinstance(entry, Loaded):
                continue
            if not is_valid_key(key, self.group_period):
                logger.warning(
                    f"expected a {self.group_period.name.lower()} partition key, got: {key!r}"
                )
                continue
            if not entry.collection.dirty:
                continue
            path = partition_path(self.base_directory, key)
            path.parent.mkdir(mode=0o770, parents=True, exist_ok=True)
            entry.collection.save(path)
            self._persisted.add(key)
            written.append(path)
        logger.info(f"Saved {len(written)} partition(s) under {self.base_directory}")
        return written

    # ── BULK READ ────────────────────────────────────────────

    def all_calls(self) -> List[Call]:
        result: List[Call] = []
        for key in self.keys():
            result.extend(self.get(key).calls)
        return result

    def all_sms(self) -> List[SMS]:
        result: List[SMS] = []
        for key in self.keys():
            result.extend(self.get(key).sms)
        return result

    def all_mms(self) -> List[MMS]:
        result: List[MMS] = []
        for key in self.keys():
            result.extend(self.get(key).mms)
        return result

    def custom_grouped(self, key_funcs: KeyFuncs) -> Dict[str, Collection]:
        """
        Regroup every known record by caller supplied keys.

        Expensive: loads all partitions and dedups their union before
        grouping. Nothing is written; the returned Collections are detached
        from the store.
        """
        union = Collection()
        for key in self.keys():
            coll = self.get(key)
            union.add_calls(coll.calls)
            union.add_sms(coll.sms)
            union.add_mms(coll.mms)

        result: Dict[str, Collection] = {}

        def bucket(k: str) -> Collection:
            if k not in result:
                result[k] = Collection(key=k)
            return result[k]

        for call in union.calls:
            bucket(key_funcs.call(call)).calls.append(call)
        for sms in union.sms:
            bucket(key_funcs.sms(sms)).sms.append(sms)
        for mms in union.mms:
            bucket(key_funcs.mms(mms)).mms.append(mms)
        return result


def new_grouped_collection(
    base_directory: Union[str, Path],
    group_period:   GroupPeriod = GroupPeriod.NONE,
    verbose:        bool        = False,
    backup:         bool        = False,
) -> GroupedCollection:
    return GroupedCollection(GroupedCollectionConfig(
        base_directory = base_directory,
        group_period   = group_period,
        verbose        = verbose,
        backup         = backup,
    ))
