"""
sbrcollect/grouping.py
Partition keys for a grouped store.

A record's `date` attribute is a Unix epoch in milliseconds. It is turned
into a calendar date (UTC) and rendered as the partition key:

  GroupPeriod.NONE     → 'collection'   <base>/collection.json
  GroupPeriod.YEARLY   → 'yyyy'         <base>/yyyy.json
  GroupPeriod.MONTHLY  → 'yyyy/mm'      <base>/yyyy/mm.json

Monthly partitions live in a per-year directory that must exist before the
partition is written, so resolving a monthly key also creates it.
"""

import logging
import re
from datetime import datetime, timezone
from enum import IntEnum
from pathlib import Path
from typing import List

logger = logging.getLogger(__name__)

NO_GROUPING_KEY = 'collection'
STORE_SUFFIX    = '.json'

_EPOCH_MS  = re.compile(r'-?[0-9]+')
_YEAR      = re.compile(r'[0-9]{4}')
_MONTH     = re.compile(r'[0-9]{2}')


class GroupPeriod(IntEnum):
    NONE    = 0
    MONTHLY = 1
    YEARLY  = 2


_KEY_SHAPE = {
    GroupPeriod.NONE:    re.compile(re.escape(NO_GROUPING_KEY)),
    GroupPeriod.MONTHLY: re.compile(r'[0-9]{4}/[0-9]{2}'),
    GroupPeriod.YEARLY:  re.compile(r'[0-9]{4}'),
}


class KeyDerivationError(ValueError):
    """A record's date cannot be turned into a partition key."""


def parse_epoch_ms(date: str) -> datetime:
    """Parse a string epoch-milliseconds timestamp into a UTC datetime."""
    if not isinstance(date, str) or not _EPOCH_MS.fullmatch(date):
        raise KeyDerivationError(f"could not convert {date!r} to an epoch timestamp")
    ms = int(date)
    # truncate toward zero
    seconds = ms // 1000 if ms >= 0 else -(-ms // 1000)
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as e:
        raise KeyDerivationError(f"timestamp {date!r} is out of range") from e


def partition_key(date: str, period: GroupPeriod) -> str:
    """Pure key derivation. NONE never looks at the date."""
    period = GroupPeriod(period)
    if period is GroupPeriod.NONE:
        return NO_GROUPING_KEY
    moment = parse_epoch_ms(date)
    if period is GroupPeriod.MONTHLY:
        return f"{moment.year:04d}/{moment.month:02d}"
    return f"{moment.year:04d}"


def ensure_partition_directory(base_directory: Path, key: str, period: GroupPeriod) -> None:
    """Create the year directory a monthly partition is stored in."""
    if GroupPeriod(period) is not GroupPeriod.MONTHLY:
        return
    year_dir = Path(base_directory) / key.split('/', 1)[0]
    if not year_dir.is_dir():
        logger.debug(f"creating {year_dir}")
    year_dir.mkdir(mode=0o770, parents=True, exist_ok=True)


def resolve_partition_key(date: str, period: GroupPeriod, base_directory: Path) -> str:
    """Derive the key for date and make sure the on-disk layout can hold it."""
    key = partition_key(date, period)
    ensure_partition_directory(base_directory, key, period)
    return key


def is_valid_key(key: str, period: GroupPeriod) -> bool:
    return bool(_KEY_SHAPE[GroupPeriod(period)].fullmatch(key or ''))


def partition_path(base_directory: Path, key: str) -> Path:
    return Path(base_directory) / f"{key}{STORE_SUFFIX}"


def discover_partition_keys(base_directory: Path, period: GroupPeriod) -> List[str]:
    """
    Scan base_directory for existing partition files and return their keys.
    Backup snapshots (e.g. 11.1700000000.json) and temp files are not partitions.
    """
    base   = Path(base_directory)
    period = GroupPeriod(period)
    keys: List[str] = []

    if period is GroupPeriod.NONE:
        if partition_path(base, NO_GROUPING_KEY).is_file():
            keys.append(NO_GROUPING_KEY)
        return keys

    for item in sorted(base.iterdir()):
        if period is GroupPeriod.YEARLY:
            if item.is_file() and item.suffix == STORE_SUFFIX and _YEAR.fullmatch(item.stem):
                keys.append(item.stem)
            continue
        if not (item.is_dir() and _YEAR.fullmatch(item.name)):
            continue
        for sub in sorted(item.iterdir()):
            if sub.is_file() and sub.suffix == STORE_SUFFIX and _MONTH.fullmatch(sub.stem):
                keys.append(f"{item.name}/{sub.stem}")

    logger.debug(f"Discovered {len(keys)} partition(s) in {base}")
    return keys
