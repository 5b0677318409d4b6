"""
sbrcollect/collection.py
A deduplicating, JSON-backed set of calls, SMS and MMS.

One Collection is one store file (or one partition of a grouped store).
Records are only ever appended through add_* and only written by save().

DEDUP RULES:
  Call and SMS  : a record is known if every field matches a stored one.
  MMS           : a record is known if (date, address) matches. Attachment
                  metadata changes between exports and must not defeat the match.
  Membership is a linear scan; partitions are bounded by the grouping period.

SAVE:
  The file is replaced atomically (temp file + os.replace). With backup
  enabled the previous file is first copied to <stem>.<unix seconds><ext>
  next to it. A backup that cannot be taken aborts the save.
"""

import json
import logging
import os
import shutil
import stat
import tempfile
import time
from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from sbrcollect.models.record import Call, MessageLog, MMS, SMS
from sbrcollect.models.serialization import record_from_dict, record_to_dict

logger = logging.getLogger(__name__)

# Fields compared when deciding whether an incoming record is already stored
CALL_IDENTITY: Sequence[str] = tuple(f.name for f in fields(Call))
SMS_IDENTITY:  Sequence[str] = tuple(f.name for f in fields(SMS))
MMS_IDENTITY:  Sequence[str] = ('date', 'address')

STORE_FILE_MODE = 0o600


class CollectionLoadError(ValueError):
    """A store file exists but does not decode into a Collection."""


def same_record(a: Any, b: Any, identity: Sequence[str]) -> bool:
    return all(getattr(a, name) == getattr(b, name) for name in identity)


class Collection:
    """In-memory calls/SMS/MMS for one store file."""

    def __init__(
        self,
        key:     str                      = '',
        calls:   Optional[Iterable[Call]] = None,
        sms:     Optional[Iterable[SMS]]  = None,
        mms:     Optional[Iterable[MMS]]  = None,
        verbose: bool                     = False,
        backup:  bool                     = False,
    ):
        self.key = key
        self.calls: List[Call] = list(calls or [])
        self.sms:   List[SMS]  = list(sms or [])
        self.mms:   List[MMS]  = list(mms or [])
        self.verbose = verbose
        self.backup  = backup
        # True while the in-memory state has changes not yet written
        self.dirty = False

    def __repr__(self) -> str:
        return (
            f"Collection(key={self.key!r}, calls={len(self.calls)}, "
            f"sms={len(self.sms)}, mms={len(self.mms)})"
        )

    # ── ADD ──────────────────────────────────────────────────

    def add_calls(self, calls: Iterable[Call]) -> int:
        """Append every call not yet known. Returns the number added."""
        return self._add(self.calls, calls, CALL_IDENTITY, 'call')

    def add_sms(self, sms: Iterable[SMS]) -> int:
        return self._add(self.sms, sms, SMS_IDENTITY, 'sms')

    def add_mms(self, mms: Iterable[MMS]) -> int:
        return self._add(self.mms, mms, MMS_IDENTITY, 'mms')

    def add_messages(self, messages: MessageLog) -> int:
        """Append the SMS and MMS of a decoded message file."""
        return self.add_sms(messages.get_sms()) + self.add_mms(messages.get_mms())

    def _add(self, stored: list, incoming: Iterable, identity: Sequence[str], kind: str) -> int:
        added = 0
        for record in incoming:
            if any(same_record(known, record, identity) for known in stored):
                continue
            if self.verbose:
                logger.info(f"adding {kind} with {record.contact_name!r} on {record.date!r}")
            stored.append(record)
            added += 1
        if added:
            self.dirty = True
        return added

    # ── SERIALIZATION ────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {
            'Key':   self.key,
            'Calls': [record_to_dict(c) for c in self.calls],
            'Sms':   [record_to_dict(s) for s in self.sms],
            'Mms':   [record_to_dict(m) for m in self.mms],
        }

    @classmethod
    def from_dict(cls, data: Any, verbose: bool = False, backup: bool = False) -> 'Collection':
        """
        Decode a store document. Accepts both SMS/Sms and MMS/Mms keys.
        Raises TypeError/ValueError on anything that is not a store document.
        """
        if not isinstance(data, dict):
            raise TypeError(f"store document must be an object, got {type(data).__name__}")
        key = data.get('Key') or ''
        if not isinstance(key, str):
            raise TypeError(f"Key must be a string, got {type(key).__name__}")
        return cls(
            key     = key,
            calls   = [record_from_dict(Call, c) for c in _entries(data, 'Calls')],
            sms     = [record_from_dict(SMS, s) for s in _entries(data, 'Sms', 'SMS')],
            mms     = [record_from_dict(MMS, m) for m in _entries(data, 'Mms', 'MMS')],
            verbose = verbose,
            backup  = backup,
        )

    # ── PERSISTENCE ──────────────────────────────────────────

    def save(self, path: Union[str, Path]) -> Path:
        """Write the whole collection to path, taking a backup first if enabled."""
        path    = Path(path)
        content = json.dumps(self.to_dict(), indent=2, ensure_ascii=False)
        if self.backup:
            backup_file(path)
        _atomic_write(path, content)
        self.dirty = False
        logger.debug(
            f"Saved {path}: {len(self.calls)} calls, {len(self.sms)} sms, {len(self.mms)} mms"
        )
        return path


def load_collection(path: Union[str, Path], verbose: bool = False, backup: bool = False) -> Collection:
    """
    Load a Collection from a JSON store file.
    OSError if the file cannot be read, CollectionLoadError if it cannot be decoded.
    """
    path = Path(path)
    raw  = path.read_bytes()
    try:
        data = json.loads(raw.decode('utf-8'))
    except UnicodeDecodeError as e:
        raise CollectionLoadError(f"{path}: not UTF-8: {e}") from e
    except json.JSONDecodeError as e:
        raise CollectionLoadError(f"{path}: invalid JSON: {e}") from e
    try:
        coll = Collection.from_dict(data, verbose=verbose, backup=backup)
    except (TypeError, ValueError) as e:
        raise CollectionLoadError(f"{path}: {e}") from e
    logger.debug(f"Loaded {coll!r} from {path}")
    return coll


def backup_file(path: Path) -> Optional[Path]:
    """
    Copy path to <dir>/<stem>.<unix seconds><suffix>.
    Returns the backup path, or None when there is nothing to back up.
    Raises ValueError if path is not a regular file and FileExistsError if
    the backup name is already taken.
    """
    try:
        st = path.stat()
    except FileNotFoundError:
        return None
    if not stat.S_ISREG(st.st_mode):
        raise ValueError(f"{path} is not a regular file")

    dest = path.with_name(f"{path.stem}.{_now()}{path.suffix}")
    try:
        with path.open('rb') as src, dest.open('xb') as dst:
            shutil.copyfileobj(src, dst)
    except FileExistsError:
        raise FileExistsError(f"backup file {dest} already exists") from None
    logger.info(f"Backed up {path.name} → {dest.name}")
    return dest


# ── HELPERS ──────────────────────────────────────────────────

def _entries(data: Dict[str, Any], *names: str) -> list:
    for name in names:
        if name in data:
            value = data[name]
            if value is None:
                return []
            if not isinstance(value, list):
                raise TypeError(f"{name} must be a list, got {type(value).__name__}")
            return value
    return []


def _now() -> int:
    return int(time.time())


def _atomic_write(path: Path, content: str) -> None:
    fd, tmp_path = tempfile.mkstemp(
        dir=path.parent, suffix='.tmp', prefix=f".{path.stem}_"
    )
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as fh:
            fh.write(content)
        # store files hold private messages, keep them owner-only
        os.chmod(tmp_path, STORE_FILE_MODE)
        os.replace(tmp_path, path)
    except Exception:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise
