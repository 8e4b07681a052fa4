from __future__ import annotations

from dataclasses import dataclass

import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from edumeal.core.config import settings
from edumeal.core.security import TokenError, decode_token
from edumeal.integrations.supabase_auth import IdentityError, SupabaseAuthClient

logger = structlog.get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class AuthUser:
    id: str
    email: str | None = None

    @property
    def label(self) -> str:
        return self.email or self.id


def _unauthorized() -> HTTPException:
    # same answer whatever the reason
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> AuthUser:
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise _unauthorized()

    token = credentials.credentials.strip()

    if settings.AUTH_MODE == "remote":
        try:
            data = await SupabaseAuthClient().get_user(token)
        except IdentityError as e:
            logger.info("auth_rejected", mode="remote", reason=str(e))
            raise _unauthorized()
        return AuthUser(id=str(data["id"]), email=data.get("email"))

    try:
        payload = decode_token(token)
    except TokenError as e:
        logger.info("auth_rejected", mode="jwt", reason=str(e))
        raise _unauthorized()

    user_id = payload.get("sub") or payload.get("user_id")
    if not user_id:
        raise _unauthorized()

    return AuthUser(id=str(user_id), email=payload.get("email"))
