from __future__ import annotations

from datetime import datetime
import logging
from typing import Callable, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from backend.app.api.config import report_currency
from backend.app.api.deps import get_clock, require_role_dep
from backend.app.db import get_db
from backend.app.models import ROLE_ADMIN
from backend.app.reports.aggregate import normalize_chart_granularity
from backend.app.reports.csv_export import csv_filename, encode_report_as_csv
from backend.app.reports.date_range import default_window, require_iso_range
from backend.app.reports.errors import (
    InvalidDateError,
    InvalidDateRangeError,
    InvalidGranularityError,
    UnknownTransactionTypeError,
)
from backend.app.services import report_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/reports", tags=["reports"])

ReportGranularity = Literal["day", "week", "month", "all"]
ChartGranularity = Literal["day", "week", "month"]

admin_only = Depends(require_role_dep(ROLE_ADMIN))


# -------------------------
# Schemas
# -------------------------

class MovementPointOut(BaseModel):
    period: str
    income: float
    expense: float
    net: float


class MovementsReportOut(BaseModel):
    balance: float
    currency: str
    from_: Optional[str] = Field(default=None, alias="from")
    to: Optional[str] = None
    granularity: ReportGranularity
    series: List[MovementPointOut]

    model_config = ConfigDict(populate_by_name=True)


class ChartMetaOut(BaseModel):
    from_: str = Field(alias="from")
    to: str
    granularity: ChartGranularity


class ChartSeriesOut(BaseModel):
    income: List[float]
    expense: List[float]
    net: List[float]


class ChartPointOut(BaseModel):
    label: str
    income: float
    expense: float
    net: float


class ChartTotalsOut(BaseModel):
    income: float
    expense: float
    net: float


class ChartDatasetOut(BaseModel):
    key: Literal["income", "expense", "net"]
    label: str
    data: List[float]


class MovementsChartOut(BaseModel):
    meta: ChartMetaOut
    labels: List[str]
    series: ChartSeriesOut
    points: List[ChartPointOut]
    totals: ChartTotalsOut
    datasets: List[ChartDatasetOut]


class BalanceTotalsOut(BaseModel):
    income: float
    expense: float


class BalanceOut(BaseModel):
    balance: float
    currency: str
    as_of: str
    totals: BalanceTotalsOut


# -------------------------
# Helpers
# -------------------------

def _bad_request(exc: Exception) -> HTTPException:
    return HTTPException(status_code=400, detail=str(exc))


def _integrity_failure(message: str) -> HTTPException:
    logger.exception(message)
    return HTTPException(status_code=500, detail=message)


def _tabular_report(
    db: Session,
    start: Optional[str],
    end: Optional[str],
    granularity: str,
) -> dict:
    try:
        return report_service.build_tabular_report(
            db,
            start=start,
            end=end,
            granularity=granularity,
            currency=report_currency(),
        )
    except (InvalidDateError, InvalidDateRangeError, InvalidGranularityError) as exc:
        raise _bad_request(exc)
    except UnknownTransactionTypeError:
        raise _integrity_failure("Failed to generate report")


# -------------------------
# Endpoints
# -------------------------

@router.get(
    "/financial-movements",
    response_model=MovementsReportOut,
    dependencies=[admin_only],
)
def financial_movements(
    start: Optional[str] = Query(None, alias="from", description="Inclusive start (YYYY-MM-DD or ISO 8601)"),
    end: Optional[str] = Query(None, alias="to", description="Inclusive end (YYYY-MM-DD or ISO 8601)"),
    granularity: ReportGranularity = Query("day"),
    db: Session = Depends(get_db),
):
    return _tabular_report(db, start, end, granularity)


@router.get("/financial-movements.csv", dependencies=[admin_only])
def financial_movements_csv(
    start: Optional[str] = Query(None, alias="from"),
    end: Optional[str] = Query(None, alias="to"),
    granularity: ReportGranularity = Query("day"),
    db: Session = Depends(get_db),
):
    report = _tabular_report(db, start, end, granularity)
    return Response(
        content=encode_report_as_csv(report),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{csv_filename(granularity)}"'},
    )


@router.get(
    "/financial-movements-chart",
    response_model=MovementsChartOut,
    dependencies=[admin_only],
)
def financial_movements_chart(
    start: Optional[str] = Query(None, alias="from"),
    end: Optional[str] = Query(None, alias="to"),
    granularity: ReportGranularity = Query("day", description='"all" is an alias for "month"'),
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    if start is None and end is None:
        window_start, window_end = default_window(clock().date())
        start, end = window_start.isoformat(), window_end.isoformat()

    try:
        present = require_iso_range(start, end) is not None
    except InvalidDateRangeError as exc:
        raise _bad_request(exc)
    if not present:
        raise HTTPException(
            status_code=400,
            detail={
                "message": "Invalid date range",
                "from": "from is required and must be a valid date",
                "to": "to is required and must be a valid date",
            },
        )

    try:
        return report_service.build_chart_report(
            db,
            # raw bounds; canonical ISO strings are cut to milliseconds
            start=start,
            end=end,
            granularity=normalize_chart_granularity(granularity),
        )
    except (InvalidDateError, InvalidDateRangeError, InvalidGranularityError) as exc:
        raise _bad_request(exc)
    except UnknownTransactionTypeError:
        raise _integrity_failure("Failed to generate chart data")


@router.get("/financial-balance", response_model=BalanceOut, dependencies=[admin_only])
def financial_balance(
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    try:
        return report_service.build_balance_report(db, now=clock(), currency=report_currency())
    except UnknownTransactionTypeError:
        raise _integrity_failure("Failed to get current balance")
