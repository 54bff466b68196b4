from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from backend.app.reports.aggregate import ZERO, Aggregation
from backend.app.reports.date_range import to_iso

DEFAULT_CURRENCY = "COP"

DATASET_LABELS = (
    ("income", "Income"),
    ("expense", "Expenses"),
    ("net", "Net"),
)


def _series_rows(aggregation: Aggregation) -> List[Dict[str, Any]]:
    rows: List[Dict[str, Any]] = []
    for key in aggregation.sorted_keys():
        bucket = aggregation.buckets[key]
        rows.append(
            {
                "period": key,
                "income": bucket.income,
                "expense": bucket.expense,
                "net": bucket.net,
            }
        )
    return rows


def assemble_tabular_report(
    aggregation: Aggregation,
    *,
    start: Optional[datetime],
    end: Optional[datetime],
    currency: str = DEFAULT_CURRENCY,
) -> Dict[str, Any]:
    """
    Single series per period plus the overall balance.

    Series are sorted by bucket key, so the output never depends on the order
    the source returned rows in.
    """
    return {
        "balance": aggregation.balance,
        "currency": currency,
        "from": to_iso(start),
        "to": to_iso(end),
        "granularity": aggregation.granularity,
        "series": _series_rows(aggregation),
    }


def assemble_chart_report(
    aggregation: Aggregation,
    *,
    start_iso: str,
    end_iso: str,
) -> Dict[str, Any]:
    labels = aggregation.sorted_keys()
    income = [aggregation.buckets[k].income for k in labels]
    expense = [aggregation.buckets[k].expense for k in labels]
    net = [aggregation.buckets[k].net for k in labels]

    totals = {
        "income": sum(income, ZERO),
        "expense": sum(expense, ZERO),
        "net": sum(net, ZERO),
    }
    series = {"income": income, "expense": expense, "net": net}

    return {
        "meta": {"from": start_iso, "to": end_iso, "granularity": aggregation.granularity},
        "labels": labels,
        "series": series,
        "points": [
            {"label": label, "income": income[i], "expense": expense[i], "net": net[i]}
            for i, label in enumerate(labels)
        ],
        "totals": totals,
        "datasets": [
            {"key": key, "label": label, "data": series[key]}
            for key, label in DATASET_LABELS
        ],
    }


def assemble_balance_report(
    aggregation: Aggregation,
    *,
    as_of: datetime,
    currency: str = DEFAULT_CURRENCY,
) -> Dict[str, Any]:
    income: Decimal = sum((b.income for b in aggregation.buckets.values()), ZERO)
    expense: Decimal = sum((b.expense for b in aggregation.buckets.values()), ZERO)
    return {
        "balance": aggregation.balance,
        "currency": currency,
        "as_of": to_iso(as_of),
        "totals": {"income": income, "expense": expense},
    }
