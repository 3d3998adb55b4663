"""
Bidirectional mapping between Firestore document keys and derived package ids.
"""

import logging
import threading
from typing import Dict, Iterable, Optional, Set

from database.exceptions import IdentifierCollision
from models.package import derive_package_id

logger = logging.getLogger(__name__)


class PackageIdIndex:
    """
    Thread-safe key <-> id table populated at read time.

    Snapshot callbacks run on Firestore's listener thread while requests run
    in worker threads, so every access goes through a single lock. Ids derived
    from more than one key are kept as ambiguous and refuse to resolve.
    """

    def __init__(self, collection: Optional[str] = None):
        self.collection = collection
        self._lock = threading.Lock()
        self._keys_by_id: Dict[int, Set[str]] = {}

    def register(self, document_key: str) -> int:
        """Add a key and return its derived id."""
        package_id = derive_package_id(document_key)
        with self._lock:
            self._add(package_id, document_key)
        return package_id

    def rebuild(self, document_keys: Iterable[str]) -> None:
        """Replace the whole table from a complete collection snapshot."""
        with self._lock:
            self._keys_by_id = {}
            for document_key in document_keys:
                self._add(derive_package_id(document_key), document_key)

    def resolve(self, package_id: int) -> Optional[str]:
        """
        Look up the document key for a package id.

        Returns:
            Optional[str]: The key, or None if the id is unknown

        Raises:
            IdentifierCollision: If more than one key maps to the id
        """
        with self._lock:
            keys = self._keys_by_id.get(package_id)
            if not keys:
                return None
            if len(keys) > 1:
                raise IdentifierCollision(package_id, keys, collection=self.collection)
            return next(iter(keys))

    def unique_key(self, package_id: int) -> Optional[str]:
        """The key for a package id, or None if the id is unknown or ambiguous."""
        with self._lock:
            keys = self._keys_by_id.get(package_id)
            if not keys or len(keys) > 1:
                return None
            return next(iter(keys))

    def discard(self, document_key: str) -> None:
        package_id = derive_package_id(document_key)
        with self._lock:
            keys = self._keys_by_id.get(package_id)
            if keys is None:
                return
            keys.discard(document_key)
            if not keys:
                del self._keys_by_id[package_id]

    def is_ambiguous(self, package_id: int) -> bool:
        with self._lock:
            return len(self._keys_by_id.get(package_id, ())) > 1

    def __len__(self) -> int:
        with self._lock:
            return sum(len(keys) for keys in self._keys_by_id.values())

    def _add(self, package_id: int, document_key: str) -> None:
        # Caller holds the lock
        keys = self._keys_by_id.setdefault(package_id, set())
        if document_key in keys:
            return
        keys.add(document_key)
        if len(keys) > 1:
            logger.error(
                f"Package id collision in '{self.collection}': id {package_id} "
                f"derived from {sorted(keys)}"
            )
