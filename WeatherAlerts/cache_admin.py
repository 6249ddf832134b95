"""Cache administration - report store size and clear everything."""
import logging

from local_store import LocalStore

BYTES_PER_MB = 1024 * 1024


class CacheAdmin:
    """Administrative view over the local store."""

    def __init__(self, store: LocalStore):
        self.store = store

    def size_mb(self) -> float:
        """Total size of stored entries in megabytes, rounded to 3 decimals."""
        size = self.store.size_bytes()
        size_mb = round(size / BYTES_PER_MB, 3)
        logging.info(f"Total cache size: {size_mb:.3f} MB ({size} bytes)")
        return size_mb

    def clear(self) -> None:
        """Remove all stored entries. Safe to call on an empty store."""
        self.store.clear_all()
