from __future__ import annotations

import hashlib
import hmac

import jwt

from edumeal.core.config import settings


class TokenError(Exception):
    pass


class WebhookSignatureError(Exception):
    pass


# -------------------------
# Identity-service JWTs
# -------------------------
def decode_token(token: str) -> dict:
    if not settings.SUPABASE_JWT_SECRET:
        raise TokenError("JWT secret not configured")
    try:
        return jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=[settings.JWT_ALG],
            audience=settings.JWT_AUDIENCE,
        )
    except jwt.ExpiredSignatureError as e:
        raise TokenError("Token expired") from e
    except jwt.InvalidTokenError as e:
        raise TokenError("Invalid token") from e


# -------------------------
# Webhook signatures
# -------------------------
def sign_payload(body: bytes, secret: str) -> str:
    return "sha256=" + hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify_webhook_signature(body: bytes, signature: str | None) -> None:
    """No-op when WEBHOOK_SECRET is unset (the channel is open)."""
    secret = settings.WEBHOOK_SECRET
    if not secret:
        return
    if not signature:
        raise WebhookSignatureError("Missing signature")
    if not hmac.compare_digest(sign_payload(body, secret), signature.strip()):
        raise WebhookSignatureError("Signature mismatch")


# -------------------------
# Ticket hash
# -------------------------
def ticket_security_hash(ticket_id: str, student_pk: int, day: str) -> str:
    # stored alongside the ticket; scans look tickets up by ticket_id only
    msg = f"{ticket_id}|{student_pk}|{day}".encode("utf-8")
    return hmac.new(settings.TICKET_HASH_SECRET.encode("utf-8"), msg, hashlib.sha256).hexdigest()
