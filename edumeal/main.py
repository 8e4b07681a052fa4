from __future__ import annotations

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# IMPORTANT:
# This imports ALL models so SQLAlchemy registers tables + FKs correctly
import edumeal.models  # noqa: F401
from edumeal.core.config import settings
from edumeal.core.db import SessionLocal, create_tables
from edumeal.core.logging import configure_logging

# Routers
from edumeal.routers.students import router as students_router
from edumeal.routers.tickets import router as tickets_router
from edumeal.routers.reports import markers_router as eligibility_reports_router
from edumeal.routers.reports import router as reports_router
from edumeal.routers.webhooks import router as webhooks_router
from edumeal.routers.integrations import router as integrations_router
from edumeal.services.seed import seed_demo_data

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.LOG_LEVEL, settings.JSON_LOGS)

    if settings.AUTO_CREATE_TABLES:
        await create_tables()

    if settings.SEED_DEMO_DATA:
        async with SessionLocal() as db:
            await seed_demo_data(db)

    logger.info("edumeal_started", auth_mode=settings.AUTH_MODE, timezone=settings.TIMEZONE)
    yield


app = FastAPI(title="EduMeal", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    # 400 with the first readable message; nothing was written
    errors = exc.errors()
    first = errors[0] if errors else {}
    loc = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    msg = first.get("msg", "Invalid request")
    detail = f"{loc}: {msg}" if loc else msg
    return JSONResponse(
        status_code=400,
        content={"detail": detail, "errors": jsonable_errors(errors)},
    )


def jsonable_errors(errors) -> list[dict]:
    out = []
    for e in errors:
        out.append(
            {
                "loc": [str(p) for p in e.get("loc", ())],
                "msg": str(e.get("msg", "")),
                "type": str(e.get("type", "")),
            }
        )
    return out


@app.get("/health", tags=["Health"])
async def health():
    return {"status": "ok"}


# Roster
app.include_router(students_router)

# Tickets
app.include_router(tickets_router)

# Reports
app.include_router(reports_router)
app.include_router(eligibility_reports_router)

# Integrations
app.include_router(webhooks_router)
app.include_router(integrations_router)
