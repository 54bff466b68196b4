from __future__ import annotations


class ReportError(Exception):
    """Base class for report aggregation failures."""


class InvalidDateError(ReportError, ValueError):
    """A date boundary could not be parsed."""


class InvalidDateRangeError(ReportError, ValueError):
    """The caller asked for a range whose start is after its end."""

    def __init__(self, message: str = "Invalid date range: 'from' date must be before or equal to 'to' date"):
        super().__init__(message)


class UnknownTransactionTypeError(ReportError):
    """A transaction carried a type other than INCOME or EXPENSE."""

    def __init__(self, txn_type: object):
        self.txn_type = txn_type
        super().__init__(f"Unknown transaction type: {txn_type!r}")


class InvalidGranularityError(ReportError, ValueError):
    """The requested bucket size is not one the report supports."""

    def __init__(self, granularity: object):
        self.granularity = granularity
        super().__init__(f"Unsupported granularity: {granularity!r}")
