import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.app.api.config import DEFAULT_CORS_ORIGINS, cors_origins_raw
from backend.app.api.routes.me import router as me_router
from backend.app.api.routes.reports import router as reports_router
from backend.app.api.routes.transactions import router as transactions_router
from backend.app.api.routes.users import router as users_router


logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    raw = cors_origins_raw()
    if raw is None:
        origins = list(DEFAULT_CORS_ORIGINS)
    else:
        origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
    if not origins:
        raise RuntimeError("CORS_ALLOW_ORIGINS must not be empty.")
    if not any(origin in origins for origin in DEFAULT_CORS_ORIGINS):
        logger.warning("CORS allowlist does not include local dev origins: %s", origins)
    return origins


app = FastAPI(title="Finance Ledger API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(me_router)
app.include_router(users_router)
app.include_router(transactions_router)
app.include_router(reports_router)
