"""Split portion reconciliation.

Computes the create/update/delete operations that bring the stored split
portions of a main transaction in line with its desired split. Planning is
pure; the service layer applies the plan.
"""

import logging
from collections.abc import Sequence
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

from ..models import SplitShare, Transaction
from .allocator import portion_shares

logger = logging.getLogger(__name__)

# Fields copied from the main transaction onto every portion
MIRRORED_FIELDS = {"description", "date", "category_id", "kind", "household_id"}


class PortionUpdate(BaseModel):
    """An existing portion to be rewritten in place."""

    portion_id: str
    user_id: str
    amount: Decimal


class ReconciliationPlan(BaseModel):
    """Operations needed to reconcile one main transaction's portions."""

    main_transaction_id: str
    creates: list[SplitShare] = Field(default_factory=list)
    updates: list[PortionUpdate] = Field(default_factory=list)
    deletes: list[Transaction] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.creates or self.updates or self.deletes)


def plan_reconciliation(
    main: Transaction,
    desired: Sequence[SplitShare] | None,
    existing: Sequence[Transaction],
) -> ReconciliationPlan:
    """
    Diff the desired split against the stored portions.

    Members keep their portion (same id) when they stay in the split, get a
    new one when they join it, and lose it when they leave. An empty or
    missing desired split deletes every portion.

    Args:
        main: The main transaction, already carrying its new field values
        desired: Allocated shares, or None when the split was removed
        existing: Portions currently stored for the main transaction

    Returns:
        The reconciliation plan
    """
    plan = ReconciliationPlan(main_transaction_id=main.id)

    if not desired:
        plan.deletes = list(existing)
        return plan

    by_member: dict[str, Transaction] = {}
    for portion in existing:
        if portion.user_id in by_member:
            # A member can hold only one portion; extras are stale
            logger.warning(
                f"Duplicate portion {portion.id} for {portion.user_id} "
                f"on {main.id}, scheduling delete"
            )
            plan.deletes.append(portion)
        else:
            by_member[portion.user_id] = portion

    for share in portion_shares(desired, main.user_id):
        current = by_member.pop(share.user_id, None)
        if current is None:
            plan.creates.append(share)
        else:
            plan.updates.append(
                PortionUpdate(
                    portion_id=current.id, user_id=share.user_id, amount=share.amount
                )
            )

    plan.deletes.extend(by_member.values())
    return plan


def mirrored_fields(main: Transaction) -> dict[str, Any]:
    """The main transaction fields every portion carries a copy of."""
    return main.model_dump(mode="json", include=MIRRORED_FIELDS)


def portion_document(main: Transaction, share: SplitShare) -> dict[str, Any]:
    """Document body for a new split portion of ``main``."""
    document = mirrored_fields(main)
    document.update(
        amount=str(share.amount),
        user_id=share.user_id,
        main_transaction_id=main.id,
        is_split_portion=True,
    )
    return document


def portion_changes(main: Transaction, update: PortionUpdate) -> dict[str, Any]:
    """Fields rewritten on an existing portion."""
    changes = mirrored_fields(main)
    changes["amount"] = str(update.amount)
    return changes
