from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List

_NEEDS_QUOTES = (",", '"', "\n", "\r")

HEADER = ("period", "income", "expense", "net")


def format_number(value: Any) -> str:
    """Plain decimal notation, never an exponent. Integral values drop the fraction."""
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        value = Decimal(repr(value))
    if isinstance(value, Decimal):
        if value == value.to_integral_value():
            return str(int(value))
        return format(value.normalize(), "f")
    return str(value)


def escape_field(value: Any) -> str:
    if value is None:
        text = ""
    elif isinstance(value, (int, float, Decimal)):
        text = format_number(value)
    else:
        text = str(value)
    quoted = text.replace('"', '""')
    if any(ch in text for ch in _NEEDS_QUOTES):
        return f'"{quoted}"'
    return quoted


def _line(fields) -> str:
    return ",".join(escape_field(f) for f in fields)


def encode_report_as_csv(report: Dict[str, Any]) -> str:
    """
    Layout:
      currency,<v>
      granularity,<v>
      from,<v>
      to,<v>
      balance,<v>
      <blank>
      period,income,expense,net
      <one row per series entry>
    """
    meta = [
        ("currency", report.get("currency")),
        ("granularity", report.get("granularity")),
        ("from", report.get("from")),
        ("to", report.get("to")),
        ("balance", report.get("balance")),
    ]
    lines: List[str] = [_line(pair) for pair in meta]
    lines.append("")
    lines.append(",".join(HEADER))
    for row in report.get("series") or []:
        lines.append(_line(row[col] for col in HEADER))
    return "\n".join(lines)


def csv_filename(granularity: str) -> str:
    return f"financial-movements-{granularity}.csv"
