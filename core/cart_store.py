"""
Cart persistence.

CartService talks to storage only through the CartStore protocol: plain
CRUD, every call scoped by the owning user. A row that exists but belongs
to another user behaves exactly like a missing row.

InMemoryCartStore is the bundled implementation. Each update is atomic
per row and bumps the row version; passing ``expected_version`` turns an
update into a compare-and-set.
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import replace
from typing import Dict, List, Optional, Protocol

from core.exceptions import ConcurrentModificationError
from models.cart import CartItem
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)


class CartStore(Protocol):
    def create(self, user_id: str, item: CartItem) -> CartItem:
        ...

    def list_by_user(self, user_id: str) -> List[CartItem]:
        ...

    def get(self, user_id: str, item_id: str) -> Optional[CartItem]:
        ...

    def update_quantity(
        self, user_id: str, item_id: str, quantity: int, expected_version: Optional[int] = None
    ) -> Optional[CartItem]:
        ...

    def delete(self, user_id: str, item_id: str) -> bool:
        ...

    def delete_all(self, user_id: str) -> int:
        ...


class InMemoryCartStore:
    """
    Thread-safe in-memory cart rows.

    Rows are kept in insertion order so a cart always lists its items the
    way they were added.
    """

    def __init__(self):
        self._rows: Dict[str, CartItem] = {}
        self._lock = threading.Lock()

    def create(self, user_id: str, item: CartItem) -> CartItem:
        """Store ``item`` for ``user_id`` under a new id and return the stored row."""
        stored = replace(item, id=uuid.uuid4().hex, user_id=user_id, version=1)
        with self._lock:
            self._rows[stored.id] = stored
        logger.debug(f"Created cart row {stored.id[:8]} for user {user_id}")
        return stored

    def list_by_user(self, user_id: str) -> List[CartItem]:
        with self._lock:
            return [row for row in self._rows.values() if row.user_id == user_id]

    def get(self, user_id: str, item_id: str) -> Optional[CartItem]:
        with self._lock:
            row = self._rows.get(item_id)
        if row is None or row.user_id != user_id:
            return None
        return row

    def update_quantity(
        self, user_id: str, item_id: str, quantity: int, expected_version: Optional[int] = None
    ) -> Optional[CartItem]:
        """
        Set the quantity of one row.

        Returns:
            The updated row, or None if it does not exist for this user

        Raises:
            ConcurrentModificationError: ``expected_version`` is stale
        """
        with self._lock:
            row = self._rows.get(item_id)
            if row is None or row.user_id != user_id:
                return None
            if expected_version is not None and row.version != expected_version:
                raise ConcurrentModificationError(item_id, expected_version, row.version)
            updated = row.with_quantity(quantity)
            self._rows[item_id] = updated
            return updated

    def delete(self, user_id: str, item_id: str) -> bool:
        with self._lock:
            row = self._rows.get(item_id)
            if row is None or row.user_id != user_id:
                return False
            del self._rows[item_id]
            return True

    def delete_all(self, user_id: str) -> int:
        with self._lock:
            ids = [row_id for row_id, row in self._rows.items() if row.user_id == user_id]
            for row_id in ids:
                del self._rows[row_id]
        return len(ids)
