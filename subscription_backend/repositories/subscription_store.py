"""Subscription store - keyed storage for owners' subscription records.

Records are keyed by owner id with a unique secondary index on the provider
subscription id. Every write is an atomic read-modify-write on one record:
callers pass a mutator that inspects the current record and returns the
fields to change.
"""

import threading
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional

from pydantic import ValidationError

from subscription_backend.models.subscription import SubscriptionRecord

# Receives the current record (None when absent) and returns the fields to
# merge, or None to leave the record untouched.
Mutator = Callable[[Optional[SubscriptionRecord]], Optional[dict]]


class StoreError(Exception):
    """Raised when the backing store fails or rejects a write."""

    pass


class SubscriptionNotFoundError(StoreError):
    """Raised when no record matches the requested key."""

    pass


class DuplicateSubscriptionError(StoreError):
    """Raised when a subscription id is already held by another owner."""

    pass


def merge_fields(owner_id: str, current: Optional[SubscriptionRecord], fields: dict) -> SubscriptionRecord:
    """Merge ``fields`` into ``current`` (or a fresh record) with validation."""
    base = current or SubscriptionRecord(owner_id=owner_id)
    try:
        return base.merged(fields)
    except ValidationError as e:
        raise StoreError(f"Invalid update for owner {owner_id}: {e}") from e


class SubscriptionStore(ABC):
    """Store interface used by the transition engine and lifecycle service."""

    @abstractmethod
    def get_by_owner(self, owner_id: str) -> Optional[SubscriptionRecord]:
        """Get the owner's record, or None."""

    @abstractmethod
    def get_by_subscription_id(self, subscription_id: str) -> Optional[SubscriptionRecord]:
        """Get the record holding ``subscription_id``, or None."""

    @abstractmethod
    def apply_by_owner(self, owner_id: str, mutator: Mutator) -> Optional[SubscriptionRecord]:
        """Atomically read, mutate and write the owner's record.

        The record is created when absent and the mutator returns fields.

        Returns:
            The record after the write, the unchanged record when the mutator
            returned None, or None if no record exists and none was created

        Raises:
            DuplicateSubscriptionError: If the new subscription id belongs to another owner
        """

    @abstractmethod
    def apply_by_subscription_id(
        self, subscription_id: str, mutator: Callable[[SubscriptionRecord], Optional[dict]]
    ) -> SubscriptionRecord:
        """Atomically read, mutate and write the record holding ``subscription_id``.

        Raises:
            SubscriptionNotFoundError: If no record holds the subscription id
        """

    def upsert(self, owner_id: str, fields: dict) -> SubscriptionRecord:
        """Merge ``fields`` into the owner's record, creating it if absent.

        Fields not present in ``fields`` are left untouched; a None value clears.
        """
        return self.apply_by_owner(owner_id, lambda current: dict(fields))

    def update_by_subscription_id(self, subscription_id: str, fields: dict) -> SubscriptionRecord:
        """Merge ``fields`` into the record holding ``subscription_id``.

        Raises:
            SubscriptionNotFoundError: If no record holds the subscription id
        """
        return self.apply_by_subscription_id(subscription_id, lambda current: dict(fields))


class InMemorySubscriptionStore(SubscriptionStore):
    """In-memory storage for subscription records.

    Thread-safe: a single lock guards both indexes, so each apply call is one
    atomic read-modify-write.
    """

    def __init__(self):
        """Initialize store with empty storage."""
        self._records: Dict[str, SubscriptionRecord] = {}
        self._owner_by_subscription: Dict[str, str] = {}
        self._lock = threading.RLock()

    def get_by_owner(self, owner_id: str) -> Optional[SubscriptionRecord]:
        with self._lock:
            return self._records.get(owner_id)

    def get_by_subscription_id(self, subscription_id: str) -> Optional[SubscriptionRecord]:
        with self._lock:
            owner_id = self._owner_by_subscription.get(subscription_id)
            if owner_id is None:
                return None
            return self._records.get(owner_id)

    def apply_by_owner(self, owner_id: str, mutator: Mutator) -> Optional[SubscriptionRecord]:
        with self._lock:
            current = self._records.get(owner_id)
            fields = mutator(current)
            if fields is None:
                return current
            return self._write(owner_id, current, fields)

    def apply_by_subscription_id(
        self, subscription_id: str, mutator: Callable[[SubscriptionRecord], Optional[dict]]
    ) -> SubscriptionRecord:
        with self._lock:
            owner_id = self._owner_by_subscription.get(subscription_id)
            current = self._records.get(owner_id) if owner_id is not None else None
            if current is None:
                raise SubscriptionNotFoundError(
                    f"Subscription not found: {subscription_id}"
                )
            fields = mutator(current)
            if fields is None:
                return current
            return self._write(current.owner_id, current, fields)

    def _write(
        self, owner_id: str, current: Optional[SubscriptionRecord], fields: dict
    ) -> SubscriptionRecord:
        """Validate and store the merged record, keeping the index in step."""
        updated = merge_fields(owner_id, current, fields)

        new_id = updated.subscription_id
        if new_id is not None:
            holder = self._owner_by_subscription.get(new_id)
            if holder is not None and holder != owner_id:
                raise DuplicateSubscriptionError(
                    f"Subscription {new_id} already belongs to another owner"
                )

        old_id = current.subscription_id if current else None
        if old_id is not None and old_id != new_id:
            self._owner_by_subscription.pop(old_id, None)
        if new_id is not None:
            self._owner_by_subscription[new_id] = owner_id

        self._records[owner_id] = updated
        return updated

    def get_all(self) -> List[SubscriptionRecord]:
        """Get all records in the store."""
        with self._lock:
            return list(self._records.values())

    def count(self) -> int:
        """Get total number of records."""
        with self._lock:
            return len(self._records)

    def clear(self) -> None:
        """Remove every record.

        Warning: This removes all data. Use with caution.
        """
        with self._lock:
            self._records.clear()
            self._owner_by_subscription.clear()

    def __len__(self) -> int:
        return self.count()

    def __contains__(self, owner_id: str) -> bool:
        with self._lock:
            return owner_id in self._records

    def __repr__(self) -> str:
        return f"InMemorySubscriptionStore(records={self.count()})"
