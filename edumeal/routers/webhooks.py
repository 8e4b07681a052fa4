from __future__ import annotations

import json

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from edumeal.core.db import get_db
from edumeal.core.security import WebhookSignatureError, verify_webhook_signature
from edumeal.schemas.logs import WebhookAttemptDetails, WebhookErrorDetails
from edumeal.services.audit_log import write_log
from edumeal.services.meal_credits import MealCreditError, grant_meals, to_cents

logger = structlog.get_logger(__name__)

# Open endpoint: no bearer token. Optional HMAC via WEBHOOK_SECRET.
router = APIRouter(prefix="/api/webhooks", tags=["Webhooks"])

SIGNATURE_HEADER = "X-Webhook-Signature"


def _parse_body(raw: bytes) -> dict:
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except (UnicodeDecodeError, ValueError):
        return {"raw": raw.decode("utf-8", errors="replace")}
    if not isinstance(data, dict):
        return {"raw": data}
    return data


def _text(payload: dict, key: str) -> str | None:
    v = payload.get(key)
    if v is None:
        return None
    s = str(v).strip()
    return s or None


def _fail(status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False})


@router.post("/quickbooks")
async def quickbooks_webhook(request: Request, db: AsyncSession = Depends(get_db)):
    source = "quickbooks"
    raw = await request.body()
    payload = _parse_body(raw)

    # audit first: every inbound call leaves a trace, even if rejected below
    await write_log(db, WebhookAttemptDetails(source=source, payload=payload))

    try:
        verify_webhook_signature(raw, request.headers.get(SIGNATURE_HEADER))
    except WebhookSignatureError as e:
        await write_log(db, WebhookErrorDetails(error="bad_signature", message=str(e)))
        logger.warning("webhook_signature_rejected", source=source, reason=str(e))
        return _fail(401)

    school_id = _text(payload, "studentId")
    plan_type = _text(payload, "productType")
    if not school_id or not plan_type:
        await write_log(
            db,
            WebhookErrorDetails(
                error="missing_fields",
                student_id=school_id,
                message="studentId and productType are required",
            ),
        )
        return _fail(400)

    try:
        amount_cents = to_cents(payload.get("amount"))
    except (TypeError, ValueError, OverflowError):
        await write_log(
            db,
            WebhookErrorDetails(error="invalid_amount", student_id=school_id, message=str(payload.get("amount"))),
        )
        return _fail(400)

    try:
        await grant_meals(
            db,
            school_id=school_id,
            plan_type=plan_type,
            amount_cents=amount_cents,
            transaction_id=_text(payload, "transactionId"),
            grade=_text(payload, "grade"),
            class_name=_text(payload, "class"),
            description=_text(payload, "description"),
            service_date=_text(payload, "serviceDate") or _text(payload, "startDate"),
            source=source,
        )
    except MealCreditError:
        # already logged as creation_failed
        return _fail(500)
    except Exception as e:
        # money-adjacent: keep the payload for manual reconciliation
        await db.rollback()
        logger.exception("webhook_unhandled_error", source=source, student_id=school_id)
        await write_log(
            db,
            WebhookErrorDetails(error="unhandled", student_id=school_id, message=str(e), payload=payload),
            log_type="error",
        )
        return _fail(500)

    return {"success": True}
