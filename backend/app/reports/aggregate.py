"""
Aggregation of transaction snapshots into time buckets.

Design notes:
- PURE: no database access, no clock, no module-level state.
- Amounts are non-negative magnitudes tagged with a type. The sign is only
  applied when accumulating balance/net.
- Money is summed as Decimal.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
import logging
from typing import Dict, Iterable, Mapping

from backend.app.reports.buckets import ALL_BUCKET, Granularity, bucket_key
from backend.app.reports.errors import UnknownTransactionTypeError

INCOME = "INCOME"
EXPENSE = "EXPENSE"

ZERO = Decimal("0")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReportTransaction:
    """Immutable row handed to the aggregator by the transaction source."""
    amount: Decimal
    date: datetime
    type: str


@dataclass
class BucketTotals:
    income: Decimal = ZERO
    expense: Decimal = ZERO

    @property
    def net(self) -> Decimal:
        return self.income - self.expense


@dataclass
class Aggregation:
    """
    Invariants:
    - balance == sum(bucket.net for bucket in buckets.values())
    - every input transaction lands in exactly one bucket
    """
    granularity: str
    buckets: Dict[str, BucketTotals] = field(default_factory=dict)
    balance: Decimal = ZERO
    count: int = 0

    def sorted_keys(self) -> list[str]:
        return sorted(self.buckets)


def _as_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if value is None:
        return ZERO
    # str() keeps floats like 0.1 from dragging their binary expansion along
    return Decimal(str(value))


def signed_amount(amount, txn_type: str) -> Decimal:
    amt = _as_decimal(amount)
    if amt < 0:
        logger.warning("Invariant guard: transaction amount is negative: %s", amt)
    if txn_type == INCOME:
        return amt
    if txn_type == EXPENSE:
        return -amt
    raise UnknownTransactionTypeError(txn_type)


def aggregate(transactions: Iterable[ReportTransaction], granularity: Granularity) -> Aggregation:
    result = Aggregation(granularity=granularity)

    for txn in transactions:
        amount = _as_decimal(txn.amount)
        result.balance += signed_amount(amount, txn.type)

        key = bucket_key(txn.date, granularity)
        bucket = result.buckets.get(key)
        if bucket is None:
            bucket = BucketTotals()
            result.buckets[key] = bucket

        if txn.type == INCOME:
            bucket.income += amount
        else:
            bucket.expense += amount
        result.count += 1

    return result


def normalize_chart_granularity(value: str) -> str:
    """
    API alias layer for the chart report: "all" means "month" there.

    Only the tabular report has a genuine single-bucket "all".
    """
    return "month" if value == "all" else value


def aggregate_type_totals(totals: Mapping[str, object]) -> Aggregation:
    """
    Single "all" bucket from per-type sums (as returned by a GROUP BY type).

    Types other than INCOME/EXPENSE raise UnknownTransactionTypeError.
    """
    result = Aggregation(granularity="all")
    bucket = BucketTotals()
    for txn_type, amount in totals.items():
        value = _as_decimal(amount)
        result.balance += signed_amount(value, txn_type)
        if txn_type == INCOME:
            bucket.income += value
        else:
            bucket.expense += value
    if totals:
        result.buckets[ALL_BUCKET] = bucket
    return result
