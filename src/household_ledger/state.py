"""In-memory application state shared by the presentation layer."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from .models import Category, FilterOptions, Transaction, TransactionWithCategory
from .stats import filter_transactions, month_range, with_categories

logger = logging.getLogger(__name__)


def default_filter_options() -> FilterOptions:
    """Current month, both kinds."""
    start, end = month_range()
    return FilterOptions(start_date=start, end_date=end, kind="all")


@dataclass
class LedgerState:
    """Transactions, categories and the filtered view built from them.

    One instance is created at the composition root and handed to whatever
    needs it; only the methods below mutate it.
    """

    transactions: list[Transaction] = field(default_factory=list)
    categories: list[Category] = field(default_factory=list)
    filter_options: FilterOptions = field(default_factory=default_filter_options)
    filtered: list[TransactionWithCategory] = field(default_factory=list)

    # (user_id, household_id) of the last listing, used to reload after writes
    scope: tuple[str, str | None] | None = None

    def replace_transactions(
        self,
        transactions: Iterable[Transaction],
        scope: tuple[str, str | None] | None = None,
    ) -> None:
        self.transactions = list(transactions)
        if scope is not None:
            self.scope = scope
        self.refresh_view()

    def upsert_transaction(self, transaction: Transaction) -> None:
        for idx, current in enumerate(self.transactions):
            if current.id == transaction.id:
                self.transactions[idx] = transaction
                break
        else:
            self.transactions.insert(0, transaction)
        self.refresh_view()

    def remove_transactions(self, transaction_ids: Iterable[str]) -> None:
        doomed = set(transaction_ids)
        self.transactions = [t for t in self.transactions if t.id not in doomed]
        self.refresh_view()

    def set_categories(self, categories: Iterable[Category]) -> None:
        self.categories = list(categories)
        self.refresh_view()

    def set_filter_options(self, **changes) -> FilterOptions:
        """Merge changes into the current filter options and refresh."""
        self.filter_options = FilterOptions.model_validate(
            {**self.filter_options.model_dump(), **changes}
        )
        self.refresh_view()
        return self.filter_options

    def refresh_view(self) -> list[TransactionWithCategory]:
        self.filtered = with_categories(
            filter_transactions(self.transactions, self.filter_options),
            self.categories,
        )
        logger.debug(
            f"View refreshed: {len(self.filtered)} of {len(self.transactions)} "
            f"transactions"
        )
        return self.filtered
