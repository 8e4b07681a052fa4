import time

import jwt

from edumeal.core.config import settings
from edumeal.integrations.supabase_auth import IdentityError, SupabaseAuthClient


def _token(**overrides):
    claims = {
        "sub": "user-42",
        "email": "cook@school.test",
        "aud": "authenticated",
        "exp": int(time.time()) + 3600,
    }
    claims.update(overrides)
    return jwt.encode(claims, settings.SUPABASE_JWT_SECRET, algorithm="HS256")


def _bearer(token):
    return {"Authorization": f"Bearer {token}"}


async def test_missing_token(anon_client):
    r = await anon_client.get("/api/students")
    assert r.status_code == 401
    assert r.json() == {"detail": "Unauthorized"}


async def test_garbage_token(anon_client):
    r = await anon_client.get("/api/students", headers=_bearer("not-a-jwt"))
    assert r.status_code == 401


async def test_expired_token(anon_client):
    r = await anon_client.get("/api/students", headers=_bearer(_token(exp=int(time.time()) - 60)))
    assert r.status_code == 401


async def test_wrong_audience(anon_client):
    r = await anon_client.get("/api/students", headers=_bearer(_token(aud="someone-else")))
    assert r.status_code == 401


async def test_wrong_secret(anon_client):
    token = jwt.encode(
        {"sub": "x", "aud": "authenticated", "exp": int(time.time()) + 60},
        "a-different-secret-that-is-long-enough",
        algorithm="HS256",
    )
    r = await anon_client.get("/api/students", headers=_bearer(token))
    assert r.status_code == 401


async def test_valid_token(anon_client):
    r = await anon_client.get("/api/students", headers=_bearer(_token()))
    assert r.status_code == 200
    assert r.json() == []


async def test_token_subject_becomes_actor(anon_client, make_student, session_factory):
    from sqlalchemy import select

    from edumeal.models.log import Log

    await make_student()
    await anon_client.post("/api/tickets/scan", json={"ticketId": "missing"}, headers=_bearer(_token()))

    async with session_factory() as db:
        log = (await db.execute(select(Log))).scalar_one()
    assert log.actor_id == "user-42"


async def test_remote_mode(anon_client, monkeypatch):
    monkeypatch.setattr(settings, "AUTH_MODE", "remote")

    async def fake_get_user(self, token):
        if token != "good":
            raise IdentityError("rejected")
        return {"id": "remote-1", "email": "remote@school.test"}

    monkeypatch.setattr(SupabaseAuthClient, "get_user", fake_get_user)

    assert (await anon_client.get("/api/students", headers=_bearer("good"))).status_code == 200
    assert (await anon_client.get("/api/students", headers=_bearer("bad"))).status_code == 401
