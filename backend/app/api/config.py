from __future__ import annotations

import os

from backend.app.reports.assemble import DEFAULT_CURRENCY

DEFAULT_CORS_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]


def report_currency() -> str:
    return (os.getenv("REPORT_CURRENCY") or DEFAULT_CURRENCY).strip().upper()


def cors_origins_raw() -> str | None:
    return os.getenv("CORS_ALLOW_ORIGINS")
