"""
CredAdmin - Credential Store

This file handles:
- Loading the account file into an in-memory snapshot (lazily, once)
- Lookup / insert / update / delete of account records
- Rewriting the whole file after every change

Every public method holds the same lock for its full duration, including the
file rewrite, so callers never see a half-applied change and no two changes
interleave. Records handed out are copies; to persist a change, pass the
modified record back to update(), or use modify() when the change depends on
the record's current state (counters).

File structure (JSON):
    {
      "nextId": 3,
      "records": [ {"id": 1, "userName": "alice", ...}, ... ]
    }
"""

import json
import os
import tempfile
import threading
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

import structlog

from .account import AccountRecord
from .errors import DuplicateAccountError, NotFoundError, StoreLoadError

logger = structlog.get_logger(__name__)

# What to do when the account file exists but cannot be read
LOAD_ERRORS_RAISE = "raise"
LOAD_ERRORS_DEGRADE = "degrade"


@dataclass
class StoreSnapshot:
    """In-memory image of the account file."""

    next_id: int = 1
    records: List[AccountRecord] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "nextId": self.next_id,
            "records": [record.to_dict() for record in self.records],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "StoreSnapshot":
        """
        Raises:
            ValueError: Duplicate ids or a record without an id
            KeyError / TypeError: Structurally invalid data
        """
        records = [AccountRecord.from_dict(item) for item in data.get("records") or []]
        seen = set()
        for record in records:
            if not record.persisted:
                raise ValueError(f"Record {record.user_name!r} has no id")
            if record.id in seen:
                raise ValueError(f"Duplicate record id {record.id}")
            seen.add(record.id)

        next_id = int(data.get("nextId", 1))
        highest = max(seen, default=0)
        if next_id <= highest:
            logger.warning("store.next_id_repaired", next_id=next_id, highest_id=highest)
            next_id = highest + 1
        return cls(next_id=next_id, records=records)


class CredentialStore:
    """
    All account records, backed by one file.

    Usage:
        store = CredentialStore("account-info.json")
        saved = store.add(AccountRecord(user_name="alice"))
        alice = store.find_by_user_name("alice")
        alice.enabled = False
        store.update(alice)
    """

    def __init__(self, path: str, load_errors: str = LOAD_ERRORS_RAISE):
        """
        Args:
            path: Location of the account file
            load_errors: LOAD_ERRORS_RAISE to fail the caller when the file is
                unreadable, LOAD_ERRORS_DEGRADE to log it and start empty
        """
        if load_errors not in (LOAD_ERRORS_RAISE, LOAD_ERRORS_DEGRADE):
            raise ValueError(f"Unknown load error mode: {load_errors!r}")
        self.path = path
        self.load_errors = load_errors
        self._lock = threading.RLock()
        self._snapshot: Optional[StoreSnapshot] = None

    # =========================================================================
    # LOOKUP
    # =========================================================================

    def find_by_user_name(self, user_name: str) -> Optional[AccountRecord]:
        with self._lock:
            for record in self._load().records:
                if record.user_name == user_name:
                    return record.copy()
        return None

    def find_by_id(self, account_id: int) -> Optional[AccountRecord]:
        with self._lock:
            for record in self._load().records:
                if record.id == account_id:
                    return record.copy()
        return None

    def list(self) -> Tuple[AccountRecord, ...]:
        """All records in file order, as copies."""
        with self._lock:
            return tuple(record.copy() for record in self._load().records)

    # =========================================================================
    # MUTATION
    # =========================================================================

    def add(self, record: AccountRecord) -> AccountRecord:
        """
        Insert a new record, assigning its id. A record that already has an
        id is passed to update() instead.

        Returns:
            Copy of the stored record (with its id)

        Raises:
            DuplicateAccountError: If the user name is taken
        """
        with self._lock:
            if record.persisted:
                return self.update(record)

            snapshot = self._load()
            self._check_unique(snapshot, record)
            stored = record.copy()
            stored.id = snapshot.next_id
            snapshot.next_id += 1
            snapshot.records.append(stored)
            self._save()
            logger.info("store.record_added", account_id=stored.id, user_name=stored.user_name)
            return stored.copy()

    def update(self, record: AccountRecord) -> AccountRecord:
        """
        Replace the stored record that has the same id.

        Raises:
            NotFoundError: If no record has that id
            DuplicateAccountError: If renamed to a user name already in use
        """
        with self._lock:
            snapshot = self._load()
            for index, existing in enumerate(snapshot.records):
                if existing.id == record.id:
                    self._check_unique(snapshot, record)
                    snapshot.records[index] = record.copy()
                    self._save()
                    logger.debug("store.record_updated", account_id=record.id)
                    return record.copy()
        raise NotFoundError(f"Account {record.id} was not found in the store for update")

    def modify(self, account_id: int, change: Callable[[AccountRecord], object]) -> AccountRecord:
        """
        Read-modify-write of one record as a single locked step.

        `change` is called with a copy of the current record and edits it in
        place. If it raises, nothing is stored and the exception propagates.

        Returns:
            Copy of the stored record

        Raises:
            NotFoundError: If no record has that id
            DuplicateAccountError: If `change` renamed onto a taken user name
        """
        with self._lock:
            snapshot = self._load()
            for index, existing in enumerate(snapshot.records):
                if existing.id == account_id:
                    record = existing.copy()
                    change(record)
                    # The id is the key; a change may not move the record
                    record.id = account_id
                    self._check_unique(snapshot, record)
                    snapshot.records[index] = record
                    self._save()
                    logger.debug("store.record_modified", account_id=account_id)
                    return record.copy()
        raise NotFoundError(f"Account {account_id} was not found in the store for update")

    def delete(self, account_id: int) -> bool:
        """Remove the record with this id. Returns whether one was removed."""
        with self._lock:
            snapshot = self._load()
            for index, existing in enumerate(snapshot.records):
                if existing.id == account_id:
                    del snapshot.records[index]
                    self._save()
                    logger.info("store.record_deleted", account_id=account_id)
                    return True
        return False

    def reset(self) -> None:
        """Drop the cached snapshot; the next call reloads the file."""
        with self._lock:
            self._snapshot = None

    # =========================================================================
    # INTERNAL HELPERS
    # =========================================================================

    @staticmethod
    def _check_unique(snapshot: StoreSnapshot, record: AccountRecord) -> None:
        for existing in snapshot.records:
            if existing.user_name == record.user_name and existing.id != record.id:
                raise DuplicateAccountError(
                    f"The account {record.user_name!r} already exists"
                )

    def _load(self) -> StoreSnapshot:
        """Return the cached snapshot, reading the file on first use."""
        if self._snapshot is not None:
            return self._snapshot

        if not os.path.exists(self.path):
            self._snapshot = StoreSnapshot()
            return self._snapshot

        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                self._snapshot = StoreSnapshot.from_dict(json.load(fh))
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as exc:
            if self.load_errors == LOAD_ERRORS_RAISE:
                raise StoreLoadError(f"Cannot read account file {self.path}: {exc}") from exc
            logger.error("store.load_failed", path=self.path, error=str(exc))
            self._snapshot = StoreSnapshot()
        else:
            logger.debug("store.loaded", path=self.path, records=len(self._snapshot.records))
        return self._snapshot

    def _save(self) -> None:
        """
        Rewrite the whole file from the snapshot.

        Written to a temporary file in the same directory, then moved over
        the old one, so readers see either the old or the new file.
        """
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".accounts-", suffix=".tmp", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(self._snapshot.to_dict(), fh, indent=2)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            # Memory no longer matches the file; reload on next access
            self._snapshot = None
            raise
