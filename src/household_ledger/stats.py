"""Filtering and aggregation over transaction sets."""

import calendar
from collections.abc import Iterable, Sequence
from datetime import datetime, time
from decimal import Decimal

from .models import (
    UNKNOWN_CATEGORY_ID,
    Category,
    CategoryStats,
    FilterOptions,
    MonthlyStats,
    Transaction,
    TransactionWithCategory,
    unknown_category,
)
from .money import HUNDRED

ZERO = Decimal("0")


def _naive(value: datetime) -> datetime:
    """Drop tzinfo so stored and user-supplied datetimes compare."""
    return value.replace(tzinfo=None) if value.tzinfo else value


def month_range(day: datetime | None = None) -> tuple[datetime, datetime]:
    """First and last instant of the month containing ``day``."""
    day = day or datetime.now()
    last_day = calendar.monthrange(day.year, day.month)[1]
    start = datetime.combine(day.date().replace(day=1), time.min)
    end = datetime.combine(day.date().replace(day=last_day), time.max)
    return start, end


def matches(transaction: Transaction, options: FilterOptions) -> bool:
    """True if the transaction passes every predicate in ``options``."""
    when = _naive(transaction.date)
    if options.start_date and when < _naive(options.start_date):
        return False
    if options.end_date and when > _naive(options.end_date):
        return False

    if options.kind != "all" and transaction.kind != options.kind:
        return False

    if options.household_id and transaction.household_id != options.household_id:
        return False

    if options.category_ids and transaction.category_id not in options.category_ids:
        return False

    if options.search:
        if options.search.strip().lower() not in transaction.description.lower():
            return False

    return True


def filter_transactions(
    transactions: Iterable[Transaction], options: FilterOptions
) -> list[Transaction]:
    """Transactions passing every predicate, in their original order."""
    return [t for t in transactions if matches(t, options)]


def with_categories(
    transactions: Iterable[Transaction], categories: Sequence[Category]
) -> list[TransactionWithCategory]:
    """Join transactions with their categories, falling back to Unknown."""
    by_id = {c.id: c for c in categories}
    return [
        TransactionWithCategory(
            transaction=t,
            category=by_id.get(t.category_id) or unknown_category(t.user_id),
        )
        for t in transactions
    ]


def monthly_stats(
    transactions: Sequence[Transaction], categories: Sequence[Category]
) -> MonthlyStats:
    """
    Totals by kind plus per-category expense breakdown.

    Category percentage is its share of total expenses (0 when there are no
    expenses). Categories without expenses are left out; transactions whose
    category is missing are pooled under Unknown.
    """
    expenses = [t for t in transactions if t.kind == "expense"]
    total_expenses = sum((t.amount for t in expenses), ZERO)
    total_income = sum((t.amount for t in transactions if t.kind == "income"), ZERO)

    totals: dict[str, tuple[Category, Decimal]] = {
        c.id: (c, ZERO) for c in categories
    }
    for t in expenses:
        key = t.category_id if t.category_id in totals else UNKNOWN_CATEGORY_ID
        if key not in totals:
            existing = next((c for c in categories if c.name == "Unknown"), None)
            totals[key] = (existing or unknown_category(t.user_id), ZERO)
        category, running = totals[key]
        totals[key] = (category, running + t.amount)

    categories_stats = [
        CategoryStats(
            category=category,
            total_amount=amount,
            percentage=(amount / total_expenses * HUNDRED) if total_expenses else ZERO,
        )
        for category, amount in totals.values()
        if amount > 0
    ]
    categories_stats.sort(key=lambda s: s.total_amount, reverse=True)

    return MonthlyStats(
        total_expenses=total_expenses,
        total_income=total_income,
        balance=total_income - total_expenses,
        categories_stats=categories_stats,
    )


def top_categories(stats: MonthlyStats, limit: int = 5) -> list[CategoryStats]:
    return stats.categories_stats[:limit]


def recent_transactions(
    transactions: Iterable[Transaction], limit: int = 5
) -> list[Transaction]:
    """Most recent transactions first."""
    return sorted(transactions, key=lambda t: _naive(t.date), reverse=True)[:limit]
