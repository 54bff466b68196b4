from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Any, Callable, Dict, List

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from backend.app.models import Transaction
from backend.app.reports.aggregate import ReportTransaction, aggregate, aggregate_type_totals
from backend.app.reports.assemble import (
    DEFAULT_CURRENCY,
    assemble_balance_report,
    assemble_chart_report,
    assemble_tabular_report,
)
from backend.app.reports.buckets import CHART_GRANULARITIES, validate_granularity
from backend.app.reports.date_range import (
    DateRange,
    build_utc_range_exclusive,
    normalize_range,
    to_iso,
)

logger = logging.getLogger(__name__)

TransactionSource = Callable[[Session, DateRange], List[ReportTransaction]]
TypeTotalsSource = Callable[[Session], Dict[str, Any]]


def _naive_utc(value: datetime) -> datetime:
    # `transactions.date` is a naive UTC column
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _aware_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def fetch_transactions(db: Session, date_range: DateRange) -> List[ReportTransaction]:
    """
    Transaction source: rows inside `date_range`, oldest first.

    Returns frozen snapshots so nothing downstream can mutate ORM state.
    """
    stmt = select(Transaction.amount, Transaction.date, Transaction.type)
    if date_range.start is not None:
        stmt = stmt.where(Transaction.date >= _naive_utc(date_range.start))
    bound, inclusive = date_range.upper_bound()
    if bound is not None:
        upper = _naive_utc(bound)
        stmt = stmt.where(Transaction.date <= upper if inclusive else Transaction.date < upper)
    stmt = stmt.order_by(Transaction.date.asc(), Transaction.id.asc())

    return [
        ReportTransaction(amount=amount, date=_aware_utc(when), type=txn_type)
        for amount, when, txn_type in db.execute(stmt).all()
    ]


def sum_by_type(db: Session) -> Dict[str, Any]:
    """Total amount per transaction type, summed by the database."""
    stmt = select(Transaction.type, func.sum(Transaction.amount)).group_by(Transaction.type)
    return {txn_type: total for txn_type, total in db.execute(stmt).all()}


def build_tabular_report(
    db: Session,
    *,
    start: Any = None,
    end: Any = None,
    granularity: str = "day",
    currency: str = DEFAULT_CURRENCY,
    source: TransactionSource = fetch_transactions,
) -> Dict[str, Any]:
    """
    Period series + overall balance.

    Raises InvalidDateRangeError or InvalidGranularityError before touching
    the source.
    """
    validate_granularity(granularity)
    date_range = normalize_range(start, end)
    rows = source(db, date_range)
    aggregation = aggregate(rows, granularity)

    logger.info(
        "Built tabular report granularity=%s txns=%s buckets=%s",
        granularity,
        aggregation.count,
        len(aggregation.buckets),
    )
    return assemble_tabular_report(
        aggregation,
        start=date_range.start,
        end=date_range.end,
        currency=currency,
    )


def build_chart_report(
    db: Session,
    *,
    start: Any,
    end: Any,
    granularity: str,
    source: TransactionSource = fetch_transactions,
) -> Dict[str, Any]:
    """
    Income/expense/net parallel series for charts. Both bounds are required.

    `granularity` is the internal one (day/week/month); map "all" with
    normalize_chart_granularity before calling.
    """
    validate_granularity(granularity, CHART_GRANULARITIES)
    date_range = build_utc_range_exclusive(start, end)
    rows = source(db, date_range)
    aggregation = aggregate(rows, granularity)

    logger.info(
        "Built chart report granularity=%s txns=%s buckets=%s",
        granularity,
        aggregation.count,
        len(aggregation.buckets),
    )
    return assemble_chart_report(
        aggregation,
        start_iso=to_iso(date_range.start),
        end_iso=to_iso(date_range.end),
    )


def build_balance_report(
    db: Session,
    *,
    now: datetime,
    currency: str = DEFAULT_CURRENCY,
    source: TypeTotalsSource = sum_by_type,
) -> Dict[str, Any]:
    """Balance over every recorded transaction, stamped with the caller's clock."""
    aggregation = aggregate_type_totals(source(db))
    return assemble_balance_report(aggregation, as_of=now, currency=currency)
