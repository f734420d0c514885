# Vault - Data Store
#
# CRUD over the two plaintext collections. Every mutation is
# read-decrypt-mutate-encrypt-write of the whole collection, serialised per
# collection by an asyncio.Lock so overlapping calls cannot lose updates.
#
# Full-collection re-encryption per mutation is O(collection size). That is
# fine for one person's ledger and is the ceiling of this design.

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from ..core import EventSeverity, EventType, get_audit_logger
from .codec import VaultCodec
from .errors import AuthenticationError, FormatError, NotFoundError, ValidationError
from .records import (
    new_category_id,
    new_transaction_id,
    utc_timestamp,
    validate_category,
    validate_transaction,
)
from .session import VaultSession
from .storage import CATEGORIES, TRANSACTIONS, KeyValueStore

logger = logging.getLogger(__name__)

# Lock acquisition order for operations spanning both collections
COLLECTIONS = (CATEGORIES, TRANSACTIONS)

_VALIDATORS = {
    TRANSACTIONS: validate_transaction,
    CATEGORIES: validate_category,
}

_ID_FACTORIES = {
    TRANSACTIONS: new_transaction_id,
    CATEGORIES: new_category_id,
}


class DataStore:
    """
    Plaintext CRUD surface of the vault.

    All operations require an unlocked session and raise LockedError
    otherwise. ``kind`` is ``"transactions"`` or ``"categories"``.
    """

    def __init__(self, storage: KeyValueStore, codec: VaultCodec, session: VaultSession):
        self.storage = storage
        self.codec = codec
        self.session = session
        self._locks = {kind: asyncio.Lock() for kind in COLLECTIONS}
        self.logger = get_audit_logger()

    # ── Locking ──────────────────────────────────────────────────────

    @asynccontextmanager
    async def locked(self, *kinds: str):
        """Hold the mutation locks for ``kinds`` (all when none given)."""
        wanted = [k for k in COLLECTIONS if not kinds or k in kinds]
        for kind in kinds:
            self._check_kind(kind)
        for kind in wanted:
            await self._locks[kind].acquire()
        try:
            yield
        finally:
            for kind in reversed(wanted):
                self._locks[kind].release()

    # ── Raw collection access (callers hold the lock) ────────────────

    async def read_collection(self, kind: str) -> List[Dict[str, Any]]:
        key = self.session.key
        blob = self.storage.get(kind)
        try:
            data = await asyncio.to_thread(self.codec.decrypt, blob, key)
        except (AuthenticationError, FormatError) as e:
            self.logger.log_event(
                event_type=EventType.VAULT_ERROR,
                severity=EventSeverity.CRITICAL,
                message=f"Failed to decrypt {kind}: {type(e).__name__}",
                details={"collection": kind}
            )
            raise
        if not isinstance(data, list):
            logger.warning("Decrypted %s payload is not a list, treating as empty", kind)
            return []
        return data

    async def write_collection(self, kind: str, records: List[Dict[str, Any]]):
        key = self.session.key
        blob = await asyncio.to_thread(self.codec.encrypt, records, key)
        self.storage.set(kind, blob)

    # ── Generic operations ───────────────────────────────────────────

    async def get_all(self, kind: str) -> List[Dict[str, Any]]:
        """Decrypt and return the whole collection (empty if never saved)."""
        self._check_kind(kind)
        async with self.locked(kind):
            return await self.read_collection(kind)

    async def save(self, kind: str, records: List[Dict[str, Any]]):
        """Encrypt ``records`` and overwrite the stored collection."""
        self._check_kind(kind)
        if not isinstance(records, list):
            raise TypeError(f"{kind} must be saved as a list, not {type(records).__name__}")
        async with self.locked(kind):
            await self.write_collection(kind, records)

    async def add(self, kind: str, record: Dict[str, Any]) -> Dict[str, Any]:
        """
        Append a record, assigning an id when it has none.

        Raises:
            ValidationError: invalid fields, an explicit id that already
                exists, or a category of the other type
        """
        self._check_kind(kind)
        record = dict(record)
        _VALIDATORS[kind](record)

        # a transaction reads categories for its type check
        kinds = (CATEGORIES, TRANSACTIONS) if kind == TRANSACTIONS else (kind,)
        async with self.locked(*kinds):
            records = await self.read_collection(kind)
            ids = {r.get("id") for r in records}

            if record.get("id"):
                if record["id"] in ids:
                    raise ValidationError("id", f"id {record['id']!r} already exists in {kind}")
            else:
                record["id"] = self._unique_id(kind, ids)

            if kind == TRANSACTIONS:
                await self._check_category_type(record)

            records.append(record)
            await self.write_collection(kind, records)

        self._log_mutation(EventType.RECORD_ADDED, kind, record["id"])
        return record

    async def update(self, kind: str, record_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        """
        Shallow-merge ``patch`` onto the record with ``record_id``.

        Raises:
            NotFoundError: no such record
            ValidationError: the patch changes the id or the merged record
                is invalid
        """
        self._check_kind(kind)
        if "id" in patch and patch["id"] != record_id:
            raise ValidationError("id", "record id cannot be changed")

        async with self.locked(kind):
            records = await self.read_collection(kind)
            index = next((i for i, r in enumerate(records) if r.get("id") == record_id), None)
            if index is None:
                raise NotFoundError(kind, record_id)

            merged = {**records[index], **patch}
            _VALIDATORS[kind](merged)
            records[index] = merged
            await self.write_collection(kind, records)

        self._log_mutation(EventType.RECORD_UPDATED, kind, record_id)
        return merged

    async def delete(self, kind: str, record_id: str) -> bool:
        """
        Remove a record if present. Returns True when something was removed.

        Deleting a category sets ``categoryId`` to None on every transaction
        that referenced it; the transactions and their ``categoryName`` stay.
        """
        self._check_kind(kind)
        if kind == CATEGORIES:
            return await self._delete_category(record_id)

        async with self.locked(kind):
            records = await self.read_collection(kind)
            remaining = [r for r in records if r.get("id") != record_id]
            await self.write_collection(kind, remaining)

        removed = len(remaining) != len(records)
        if removed:
            self._log_mutation(EventType.RECORD_DELETED, kind, record_id)
        return removed

    async def _delete_category(self, category_id: str) -> bool:
        async with self.locked(CATEGORIES, TRANSACTIONS):
            categories = await self.read_collection(CATEGORIES)
            remaining = [c for c in categories if c.get("id") != category_id]
            await self.write_collection(CATEGORIES, remaining)

            transactions = await self.read_collection(TRANSACTIONS)
            detached = 0
            for tx in transactions:
                if tx.get("categoryId") == category_id:
                    tx["categoryId"] = None
                    detached += 1
            if detached:
                await self.write_collection(TRANSACTIONS, transactions)

        removed = len(remaining) != len(categories)
        if removed or detached:
            self._log_mutation(
                EventType.RECORD_DELETED, CATEGORIES, category_id,
                detached_transactions=detached,
            )
        return removed

    # ── Transactions ─────────────────────────────────────────────────

    async def get_transactions(self) -> List[Dict[str, Any]]:
        return await self.get_all(TRANSACTIONS)

    async def add_transaction(self, transaction: Dict[str, Any]) -> Dict[str, Any]:
        """
        Add a transaction, stamping ``createdAt`` and snapshotting the
        category name when the caller did not supply them.
        """
        record = dict(transaction)
        record.setdefault("createdAt", utc_timestamp())
        if record.get("categoryId") and not record.get("categoryName"):
            async with self.locked(CATEGORIES):
                category = await self._find_category(record["categoryId"])
            if category is not None:
                record["categoryName"] = category.get("name", "")
        return await self.add(TRANSACTIONS, record)

    async def update_transaction(self, transaction_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        patch = dict(updates)
        patch.setdefault("updatedAt", utc_timestamp())
        return await self.update(TRANSACTIONS, transaction_id, patch)

    async def delete_transaction(self, transaction_id: str) -> bool:
        return await self.delete(TRANSACTIONS, transaction_id)

    # ── Categories ───────────────────────────────────────────────────

    async def get_categories(self) -> List[Dict[str, Any]]:
        return await self.get_all(CATEGORIES)

    async def add_category(self, category: Dict[str, Any]) -> Dict[str, Any]:
        return await self.add(CATEGORIES, category)

    async def remove_category(self, category_id: str) -> bool:
        return await self.delete(CATEGORIES, category_id)

    # ── Backup files ─────────────────────────────────────────────────

    async def export(self) -> Dict[str, Any]:
        """
        Plaintext snapshot of both collections for a user-initiated backup.

        The result deliberately leaves the vault's trust boundary.
        """
        async with self.locked():
            categories = await self.read_collection(CATEGORIES)
            transactions = await self.read_collection(TRANSACTIONS)

        self.logger.log_event(
            event_type=EventType.DATA_EXPORTED,
            severity=EventSeverity.INVESTIGATE,
            message="Vault data exported as plaintext",
            details={"transactions": len(transactions), "categories": len(categories)}
        )
        return {
            "exportedAt": utc_timestamp(),
            "transactions": transactions,
            "categories": categories,
        }

    async def import_data(self, payload: Any):
        """
        Replace both collections with an exported payload.

        Raises:
            FormatError: payload lacks a ``transactions`` or ``categories`` list
        """
        if (
            not isinstance(payload, dict)
            or not isinstance(payload.get("transactions"), list)
            or not isinstance(payload.get("categories"), list)
        ):
            raise FormatError("Import payload must contain 'transactions' and 'categories' lists")

        self.session.ensure_unlocked()

        async with self.locked():
            await self.write_collection(CATEGORIES, payload["categories"])
            await self.write_collection(TRANSACTIONS, payload["transactions"])

        self.logger.log_event(
            event_type=EventType.DATA_IMPORTED,
            severity=EventSeverity.INVESTIGATE,
            message="Vault data replaced from import file",
            details={
                "transactions": len(payload["transactions"]),
                "categories": len(payload["categories"]),
            }
        )

    # ── Helpers ──────────────────────────────────────────────────────

    @staticmethod
    def _check_kind(kind: str):
        if kind not in COLLECTIONS:
            raise ValueError(f"Unknown collection {kind!r} (expected one of {', '.join(COLLECTIONS)})")

    @staticmethod
    def _unique_id(kind: str, taken: set) -> str:
        factory = _ID_FACTORIES[kind]
        new_id = factory()
        while new_id in taken:
            new_id = factory()
        return new_id

    async def _find_category(self, category_id: str) -> Optional[Dict[str, Any]]:
        # caller holds the categories lock
        categories = await self.read_collection(CATEGORIES)
        return next((c for c in categories if c.get("id") == category_id), None)

    async def _check_category_type(self, transaction: Dict[str, Any]):
        category_id = transaction.get("categoryId")
        if not category_id:
            return
        category = await self._find_category(category_id)
        if category is None:
            logger.warning("Transaction %s references unknown category", transaction.get("id"))
            return
        if category.get("type") != transaction.get("type"):
            raise ValidationError(
                "categoryId",
                f"category {category_id!r} is for {category.get('type')}, not {transaction.get('type')}",
            )

    def _log_mutation(self, event_type: EventType, kind: str, record_id: str, **extra):
        self.logger.log_event(
            event_type=event_type,
            severity=EventSeverity.INFO,
            message=f"{kind} record {event_type.value.rsplit('.', 1)[-1]}",
            details={"collection": kind, "record_id": record_id, **extra}
        )
