"""Firestore-backed subscription store.

One document per owner in the configured collection (``users`` by default),
with the owner id as document id. Read-modify-write operations run inside
Firestore transactions so concurrent deliveries for one subscription cannot
lose updates.
"""

from typing import Callable, Optional

from firebase_admin import firestore
from google.api_core.exceptions import GoogleAPIError
from google.cloud.firestore_v1.base_query import FieldFilter

from subscription_backend.logging_config import get_logger
from subscription_backend.models.subscription import SubscriptionRecord
from subscription_backend.repositories.subscription_store import (
    DuplicateSubscriptionError,
    Mutator,
    StoreError,
    SubscriptionNotFoundError,
    SubscriptionStore,
    merge_fields,
)

logger = get_logger(__name__)


def _document_for(
    current: Optional[SubscriptionRecord], updated: SubscriptionRecord
) -> dict:
    """Build a merge-write payload; fields cleared by the update are deleted."""
    document = updated.to_document()
    if current is not None:
        for key in current.to_document():
            if key not in document:
                document[key] = firestore.DELETE_FIELD
    return document


def _to_record(snapshot) -> Optional[SubscriptionRecord]:
    if snapshot is None or not snapshot.exists:
        return None
    return SubscriptionRecord.from_document(snapshot.id, snapshot.to_dict() or {})


class FirestoreSubscriptionStore(SubscriptionStore):
    """Subscription store persisted in Cloud Firestore."""

    def __init__(self, client, collection: str = "users"):
        """Initialize the store.

        Args:
            client: google.cloud.firestore Client (e.g. firebase_admin.firestore.client())
            collection: Collection holding one document per owner
        """
        self._client = client
        self._collection = client.collection(collection)
        logger.info("firestore_store_initialized", collection=collection)

    def _subscription_query(self, subscription_id: str):
        return self._collection.where(
            filter=FieldFilter("subscriptionId", "==", subscription_id)
        ).limit(2)

    def get_by_owner(self, owner_id: str) -> Optional[SubscriptionRecord]:
        try:
            snapshot = self._collection.document(owner_id).get()
        except GoogleAPIError as e:
            raise StoreError(f"Failed to read record for owner {owner_id}") from e
        return _to_record(snapshot)

    def get_by_subscription_id(self, subscription_id: str) -> Optional[SubscriptionRecord]:
        try:
            snapshots = list(self._subscription_query(subscription_id).stream())
        except GoogleAPIError as e:
            raise StoreError(f"Failed to look up subscription {subscription_id}") from e
        if len(snapshots) > 1:
            logger.error("subscription_id_not_unique", subscription_id=subscription_id)
        return _to_record(snapshots[0]) if snapshots else None

    def _ensure_unique(self, transaction, subscription_id: str, owner_id: str) -> None:
        for snapshot in transaction.get(self._subscription_query(subscription_id)):
            if snapshot.id != owner_id:
                raise DuplicateSubscriptionError(
                    f"Subscription {subscription_id} already belongs to another owner"
                )

    def apply_by_owner(self, owner_id: str, mutator: Mutator) -> Optional[SubscriptionRecord]:
        ref = self._collection.document(owner_id)

        @firestore.transactional
        def apply_in_transaction(transaction):
            current = _to_record(ref.get(transaction=transaction))
            fields = mutator(current)
            if fields is None:
                return current

            updated = merge_fields(owner_id, current, fields)
            new_id = updated.subscription_id
            if new_id is not None and (current is None or current.subscription_id != new_id):
                self._ensure_unique(transaction, new_id, owner_id)

            transaction.set(ref, _document_for(current, updated), merge=True)
            return updated

        try:
            return apply_in_transaction(self._client.transaction())
        except GoogleAPIError as e:
            raise StoreError(f"Failed to write record for owner {owner_id}") from e

    def apply_by_subscription_id(
        self, subscription_id: str, mutator: Callable[[SubscriptionRecord], Optional[dict]]
    ) -> SubscriptionRecord:
        query = self._subscription_query(subscription_id)

        @firestore.transactional
        def apply_in_transaction(transaction):
            snapshots = list(transaction.get(query))
            if not snapshots:
                raise SubscriptionNotFoundError(f"Subscription not found: {subscription_id}")
            if len(snapshots) > 1:
                logger.error("subscription_id_not_unique", subscription_id=subscription_id)

            snapshot = snapshots[0]
            current = _to_record(snapshot)
            fields = mutator(current)
            if fields is None:
                return current

            updated = merge_fields(current.owner_id, current, fields)
            transaction.set(snapshot.reference, _document_for(current, updated), merge=True)
            return updated

        try:
            return apply_in_transaction(self._client.transaction())
        except GoogleAPIError as e:
            raise StoreError(f"Failed to update subscription {subscription_id}") from e
