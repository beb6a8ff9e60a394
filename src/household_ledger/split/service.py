"""Service layer that applies split accounting against the document store.

Every user action is one sequential chain: write the main transaction, read
its existing portions, then issue the portion writes. Portion writes are
best-effort; their outcomes come back as a BatchResult.

There is no locking or version check, so two sessions editing the same main
transaction at once can race.
"""

import logging
from datetime import datetime
from decimal import Decimal
from functools import partial
from typing import Any

from pydantic import ValidationError

from ..codec import decode_transaction, decode_valid, encode
from ..db import TRANSACTIONS, DocumentStore
from ..exceptions import (
    DocumentNotFoundError,
    SplitPortionError,
    SplitValidationError,
    StoreError,
    TransactionNotFoundError,
)
from ..households import HouseholdDirectory
from ..models import (
    ShareInput,
    SplitMode,
    SplitShare,
    Transaction,
    TransactionDraft,
    TransactionUpdate,
)
from ..state import LedgerState
from .allocator import allocate
from .batch import BatchResult
from .reconciler import (
    ReconciliationPlan,
    plan_reconciliation,
    portion_changes,
    portion_document,
)

logger = logging.getLogger(__name__)


def _validated(document: dict[str, Any]) -> Transaction:
    """Validate a transaction about to be written."""
    try:
        return Transaction.model_validate(document)
    except ValidationError as e:
        raise SplitValidationError(f"Invalid transaction: {e}") from e


class LedgerService:
    """Creates, updates, deletes and lists transactions with split portions."""

    def __init__(
        self,
        database: DocumentStore,
        households: HouseholdDirectory | None = None,
        state: LedgerState | None = None,
    ):
        """Initialize the ledger service."""
        self.db = database
        self.households = households
        self.state = state if state is not None else LedgerState()

    # ========================================================================
    # Reads
    # ========================================================================

    def get_transaction(self, transaction_id: str) -> Transaction:
        """
        Fetch one transaction.

        Raises:
            TransactionNotFoundError: If it doesn't exist
            DocumentDecodeError: If the stored document is malformed
        """
        document = self.db.get(TRANSACTIONS, transaction_id)
        if document is None:
            raise TransactionNotFoundError(transaction_id)
        return decode_transaction(document)

    def portions_of(self, main_transaction_id: str) -> list[Transaction]:
        """All split portions referencing a main transaction."""
        documents = self.db.find(
            TRANSACTIONS, main_transaction_id=main_transaction_id, is_split_portion=True
        )
        return decode_valid(Transaction, documents)

    def list_transactions(
        self, user_id: str, household_id: str | None = None
    ) -> list[Transaction]:
        """
        List a user's transactions, plus every transaction of a household.

        With a household, other members' split portions are included too.
        Results are de-duplicated by id and sorted newest first.

        Args:
            user_id: The requesting user
            household_id: Optional household scope

        Returns:
            Matching transactions
        """
        documents = self.db.find(TRANSACTIONS, user_id=user_id)
        if household_id:
            seen = {doc["id"] for doc in documents}
            for doc in self.db.find(TRANSACTIONS, household_id=household_id):
                if doc["id"] not in seen:
                    seen.add(doc["id"])
                    documents.append(doc)

        transactions = decode_valid(Transaction, documents)
        transactions.sort(key=lambda t: t.date.replace(tzinfo=None), reverse=True)

        self.state.replace_transactions(transactions, scope=(user_id, household_id))
        logger.info(f"Loaded {len(transactions)} transactions for {user_id}")
        return transactions

    def household_shares(self, household_id: str) -> list[ShareInput]:
        """One empty share per household member, for equal splits."""
        if self.households is None:
            raise SplitValidationError("No household directory configured")
        return [
            ShareInput(user_id=member)
            for member in self.households.members_of(household_id)
        ]

    # ========================================================================
    # Writes
    # ========================================================================

    def create_transaction(
        self, draft: TransactionDraft
    ) -> tuple[Transaction, BatchResult]:
        """
        Create a transaction and, for a split household expense, its portions.

        The main transaction is stored first so its id exists; then one
        portion is created per non-owner member with a positive share.

        Args:
            draft: The transaction to create

        Returns:
            Tuple of (stored main transaction, portion batch result)

        Raises:
            SplitValidationError: If the draft or its split is invalid
        """
        shares = None
        if draft.split_info:
            if not draft.household_id:
                raise SplitValidationError("Only household transactions can be split")
            shares = self._allocate(
                draft.household_id, draft.amount, draft.split_info, draft.split_mode
            )

        document = encode(draft, exclude={"split_info", "split_mode"})
        document["description"] = draft.description.strip()
        if shares:
            document["split_info"] = [s.model_dump(mode="json") for s in shares]
        document["created_at"] = datetime.now().isoformat()
        _validated({**document, "id": "pending"})

        main_id = self.db.create(TRANSACTIONS, document)
        main = decode_transaction({**document, "id": main_id})
        logger.info(f"Created transaction {main_id} ({main.amount} {main.kind})")

        result = BatchResult()
        if shares:
            plan = plan_reconciliation(main, shares, existing=[])
            result = self._apply_plan(main, plan)
            logger.info(f"Split portions for {main_id}: {result.summary()}")

        self._after_write(main)
        return main, result

    def update_transaction(
        self, transaction_id: str, changes: TransactionUpdate
    ) -> tuple[Transaction, BatchResult]:
        """
        Update a transaction and reconcile its split portions.

        Fields not set on ``changes`` keep their value, except the split:
        ``changes.split_info`` is the complete new split, and leaving it
        out or empty deletes every portion. To keep a split, send its
        shares again; they are allocated against the new amount.

        Args:
            transaction_id: The main or personal transaction to update
            changes: Fields to change

        Returns:
            Tuple of (updated transaction, portion batch result)

        Raises:
            TransactionNotFoundError: If the transaction doesn't exist
            SplitPortionError: If the target is a split portion
            SplitValidationError: If the new values are invalid
        """
        current = self.get_transaction(transaction_id)
        if current.is_split_portion:
            raise SplitPortionError(transaction_id, current.main_transaction_id)

        provided = changes.provided()
        fields: dict[str, Any] = {}

        for name in ("amount", "description", "date", "category_id", "kind"):
            value = getattr(changes, name)
            if name in provided and value is not None:
                fields[name] = value.strip() if name == "description" else value

        household_id = current.household_id
        if "household_id" in provided:
            household_id = changes.household_id or None
            fields["household_id"] = household_id

        # An update without split_info removes the split
        amount: Decimal = fields.get("amount", current.amount)
        shares: list[SplitShare] | None = None
        if changes.split_info:
            if household_id is None:
                raise SplitValidationError("Only household transactions can be split")
            shares = self._allocate(
                household_id, amount, changes.split_info, changes.split_mode
            )
        if shares or current.split_info:
            fields["split_info"] = shares

        fields["updated_at"] = datetime.now()
        updated = _validated({**current.model_dump(), **fields})

        # None removes a field from the stored document
        stored = updated.model_dump(mode="json")
        body = {name: stored.get(name) for name in fields}

        try:
            self.db.update(TRANSACTIONS, transaction_id, body)
        except DocumentNotFoundError as e:
            raise TransactionNotFoundError(transaction_id) from e
        logger.info(f"Updated transaction {transaction_id}")

        result = BatchResult()
        if current.household_id or updated.household_id:
            result = self._reconcile(updated, shares)
            logger.info(f"Split portions for {transaction_id}: {result.summary()}")

        self._after_write(updated)
        return updated, result

    def delete_transaction(self, transaction_id: str) -> BatchResult:
        """
        Delete a transaction, cascading to its split portions.

        Portions are deleted first, best-effort; the main transaction is
        deleted even if some of them could not be.

        Raises:
            TransactionNotFoundError: If the transaction doesn't exist
            SplitPortionError: If the target is a split portion
        """
        current = self.get_transaction(transaction_id)
        if current.is_split_portion:
            raise SplitPortionError(transaction_id, current.main_transaction_id)

        result = BatchResult()
        if current.has_split:
            result = self._reconcile(current, None)
            logger.info(f"Split portions for {transaction_id}: {result.summary()}")

        self.db.delete(TRANSACTIONS, transaction_id)
        logger.info(f"Deleted transaction {transaction_id}")

        deleted_portions = [
            o.target for o in result.succeeded if o.action == "delete"
        ]
        self.state.remove_transactions([transaction_id, *deleted_portions])
        return result

    # ========================================================================
    # Internals
    # ========================================================================

    def _allocate(
        self,
        household_id: str,
        amount: Decimal,
        split_info: list[ShareInput],
        mode: SplitMode,
    ) -> list[SplitShare]:
        if self.households is not None:
            members = set(self.households.members_of(household_id))
            outsiders = [s.user_id for s in split_info if s.user_id not in members]
            if outsiders:
                raise SplitValidationError(
                    f"Not members of household {household_id}: {', '.join(outsiders)}"
                )
        return allocate(amount, split_info, mode)

    def _reconcile(
        self, main: Transaction, desired: list[SplitShare] | None
    ) -> BatchResult:
        """Bring the stored portions of ``main`` in line with ``desired``."""
        try:
            existing = self.portions_of(main.id)
        except StoreError as e:
            logger.error(f"Could not read split portions of {main.id}: {e}")
            result = BatchResult()
            result.record_failure("query", main.id, e)
            return result

        plan = plan_reconciliation(main, desired, existing)
        return self._apply_plan(main, plan)

    def _apply_plan(self, main: Transaction, plan: ReconciliationPlan) -> BatchResult:
        result = BatchResult()
        for share in plan.creates:
            result.run(
                "create",
                share.user_id,
                partial(self.db.create, TRANSACTIONS, portion_document(main, share)),
            )
        for update in plan.updates:
            result.run(
                "update",
                update.portion_id,
                partial(
                    self.db.update,
                    TRANSACTIONS,
                    update.portion_id,
                    portion_changes(main, update),
                ),
            )
        for portion in plan.deletes:
            result.run(
                "delete", portion.id, partial(self.db.delete, TRANSACTIONS, portion.id)
            )
        return result

    def _after_write(self, main: Transaction) -> None:
        """Refresh in-memory state after a write."""
        if self.state.scope is None:
            self.state.upsert_transaction(main)
            return
        try:
            self.list_transactions(*self.state.scope)
        except StoreError as e:
            logger.warning(f"Could not reload transactions: {e}")
            self.state.upsert_transaction(main)
