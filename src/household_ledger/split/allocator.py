"""Split allocation: turn a total and member shares into SplitShare records."""

import logging
from collections.abc import Sequence
from decimal import Decimal

from ..exceptions import SplitValidationError
from ..models import ShareInput, SplitMode, SplitShare
from ..money import HUNDRED, approx_equal, round2, to_decimal

logger = logging.getLogger(__name__)


def allocate(
    total_amount: object,
    shares: Sequence[ShareInput],
    mode: SplitMode = SplitMode.MANUAL,
) -> list[SplitShare]:
    """
    Allocate a transaction total across household members.

    Equal mode gives every member round2(total / N). Remainders are not
    redistributed, so 100 / 3 allocates 33.33 three times.

    Manual mode keeps the supplied amounts when they already add up to the
    total (within a cent). Otherwise every amount is rescaled by
    total / raw_sum, so [30, 30] against 100 becomes [50, 50].

    Args:
        total_amount: Transaction total
        shares: Requested shares, in display order
        mode: Equal or manual allocation

    Returns:
        One SplitShare per input share, same order

    Raises:
        SplitValidationError: If the input can't be allocated
    """
    total = to_decimal(total_amount)
    if not shares:
        raise SplitValidationError("Cannot split a transaction across zero members")

    if SplitMode(mode) is SplitMode.EQUAL:
        return _allocate_equal(total, shares)
    return _allocate_manual(total, shares)


def _allocate_equal(total: Decimal, shares: Sequence[ShareInput]) -> list[SplitShare]:
    count = len(shares)
    amount = round2(total / count)
    percentage = round2(HUNDRED / count)
    return [
        SplitShare(user_id=share.user_id, amount=amount, percentage=percentage)
        for share in shares
    ]


def _allocate_manual(total: Decimal, shares: Sequence[ShareInput]) -> list[SplitShare]:
    amounts = []
    for share in shares:
        if share.amount is None:
            raise SplitValidationError(
                f"Manual split requires an amount for member {share.user_id}"
            )
        amounts.append(to_decimal(share.amount))

    raw_sum = sum(amounts, Decimal("0"))

    if not approx_equal(raw_sum, total):
        # A zero sum would divide by zero; leave the amounts as they are
        ratio = total / raw_sum if raw_sum != 0 else Decimal("1")
        amounts = [round2(amount * ratio) for amount in amounts]
        logger.info(
            f"Rescaled manual split: shares summed to {round2(raw_sum)}, "
            f"total is {round2(total)}"
        )

    return [
        SplitShare(
            user_id=share.user_id,
            amount=amount,
            percentage=round2(amount / total * HUNDRED) if total != 0 else Decimal("0.00"),
        )
        for share, amount in zip(shares, amounts, strict=True)
    ]


def equal_shares(total_amount: object, member_ids: Sequence[str]) -> list[SplitShare]:
    """Equal split across a member list."""
    return allocate(
        total_amount, [ShareInput(user_id=m) for m in member_ids], SplitMode.EQUAL
    )


def portion_shares(shares: Sequence[SplitShare], owner_id: str) -> list[SplitShare]:
    """
    Shares that become split portion transactions.

    The owner's share stays implicit in the main transaction, and members
    with nothing to pay get no portion.
    """
    return [
        share
        for share in shares
        if share.user_id and share.user_id != owner_id and share.amount > 0
    ]
