"""Key-value store: per-key get/set/delete of opaque byte values."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import StorageError
from app.models.kv_entry import KVEntry

logger = logging.getLogger(__name__)


class BaseKVStore(ABC):
    """Contract for the key-value store. No multi-key transactions, no locking."""

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        """Return the value stored under key, or None when absent."""
        ...

    @abstractmethod
    def set(self, key: str, value: bytes) -> None: ...

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete key. Deleting an absent key is a no-op."""
        ...


class KVStoreService(BaseKVStore):
    """Key-value store backed by the kv_entries table. Each call commits."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, key: str) -> Optional[bytes]:
        try:
            entry = self.db.query(KVEntry).filter(KVEntry.key == key).first()
        except SQLAlchemyError as e:
            logger.error("KV read failed for key=%s: %s", key, e)
            raise StorageError(f"Unable to read key {key}") from e
        return bytes(entry.value) if entry else None

    def set(self, key: str, value: bytes) -> None:
        try:
            entry = self.db.query(KVEntry).filter(KVEntry.key == key).first()
            if entry is None:
                self.db.add(KVEntry(key=key, value=value))
            else:
                entry.value = value
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("KV write failed for key=%s: %s", key, e)
            raise StorageError(f"Unable to write key {key}") from e

    def delete(self, key: str) -> None:
        try:
            self.db.query(KVEntry).filter(KVEntry.key == key).delete()
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("KV delete failed for key=%s: %s", key, e)
            raise StorageError(f"Unable to delete key {key}") from e
