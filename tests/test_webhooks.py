import json

from sqlalchemy import select

from edumeal.core.config import settings
from edumeal.core.security import sign_payload
from edumeal.core.timeutil import today
from edumeal.models.integration import Integration
from edumeal.models.log import Log
from edumeal.models.student import Student
from edumeal.models.subscription import Subscription
from edumeal.models.ticket import Ticket
from edumeal.routers import webhooks

URL = "/api/webhooks/quickbooks"


async def _logs(session_factory, log_type):
    async with session_factory() as db:
        res = await db.execute(select(Log).where(Log.type == log_type).order_by(Log.id))
        return list(res.scalars().all())


async def _counts(session_factory):
    async with session_factory() as db:
        students = len((await db.execute(select(Student))).scalars().all())
        subs = len((await db.execute(select(Subscription))).scalars().all())
    return students, subs


async def test_payment_to_scan_scenario(client, make_student, fetch_student, session_factory):
    await make_student(student_id="STU001", meals_remaining=10)

    r = await client.post(
        URL,
        json={"studentId": "STU001", "productType": "weekly", "amount": 25.00, "transactionId": "TX1"},
    )
    assert r.status_code == 200
    assert r.json() == {"success": True}

    student = await fetch_student("STU001")
    assert student.meals_remaining == 15

    async with session_factory() as db:
        sub = (await db.execute(select(Subscription))).scalar_one()
    assert (sub.plan_type, sub.total_meals, sub.amount_paid) == ("weekly", 5, 2500)

    gen = await client.post("/api/tickets/generate", json={"date": today().isoformat()})
    assert gen.json()["count"] == 1

    async with session_factory() as db:
        ticket = (await db.execute(select(Ticket))).scalar_one()

    scan = await client.post("/api/tickets/scan", json={"ticketId": ticket.ticket_id})
    assert scan.json() == {
        "valid": True,
        "message": "Valid",
        "student": {"name": "John Doe", "class": "5A", "mealsRemaining": 14},
    }

    again = await client.post("/api/tickets/scan", json={"ticketId": ticket.ticket_id})
    assert again.json() == {"valid": False, "message": "Ticket Already Used"}


async def test_missing_student_id_is_rejected_but_logged(client, session_factory):
    r = await client.post(URL, json={"productType": "weekly", "amount": 10})
    assert r.status_code == 400
    assert r.json() == {"success": False}

    attempts = await _logs(session_factory, "webhook_attempt")
    assert len(attempts) == 1
    assert attempts[0].details["payload"] == {"productType": "weekly", "amount": 10}
    assert await _counts(session_factory) == (0, 0)


async def test_missing_product_type_is_rejected(client, make_student, fetch_student, session_factory):
    await make_student(meals_remaining=2)
    r = await client.post(URL, json={"studentId": "STU001"})
    assert r.status_code == 400
    assert (await fetch_student("STU001")).meals_remaining == 2
    assert len(await _logs(session_factory, "webhook_attempt")) == 1


async def test_malformed_body_is_logged(client, session_factory):
    r = await client.post(URL, content=b"not json at all", headers={"Content-Type": "application/json"})
    assert r.status_code == 400
    attempts = await _logs(session_factory, "webhook_attempt")
    assert attempts[0].details["payload"] == {"raw": "not json at all"}


async def test_invalid_amount_is_rejected(client, make_student, fetch_student):
    await make_student(meals_remaining=2)
    r = await client.post(URL, json={"studentId": "STU001", "productType": "weekly", "amount": "lots"})
    assert r.status_code == 400
    assert (await fetch_student("STU001")).meals_remaining == 2


async def test_unknown_student_is_auto_provisioned(client, fetch_student):
    r = await client.post(
        URL,
        json={
            "studentId": "Kofi Mensah C2010",
            "productType": "Termly Lunch",
            "amount": 300,
            "transactionId": "QB-77",
            "description": "Termly lunch G 8",
            "class": "8A",
        },
    )
    assert r.status_code == 200

    student = await fetch_student("C2010")
    assert student.first_name == "Kofi"
    assert student.last_name == "Mensah"
    assert student.grade == "8"
    assert student.class_name == "8A"
    assert student.meals_remaining == 60


async def test_webhook_needs_no_bearer_token(anon_client, make_student):
    await make_student()
    r = await anon_client.post(URL, json={"studentId": "STU001", "productType": "daily", "amount": 5})
    assert r.status_code == 200


async def test_webhook_marks_integration_active(client, make_student, session_factory):
    await make_student()
    await client.post(URL, json={"studentId": "STU001", "productType": "daily", "amount": 5})

    async with session_factory() as db:
        integration = (await db.execute(select(Integration))).scalar_one()
    assert integration.name == "quickbooks"
    assert integration.status == "active"
    assert integration.last_sync is not None


async def test_signature_required_when_secret_configured(client, make_student, fetch_student, monkeypatch):
    monkeypatch.setattr(settings, "WEBHOOK_SECRET", "shh")
    await make_student(meals_remaining=0)
    body = json.dumps({"studentId": "STU001", "productType": "daily", "amount": 5}).encode()

    bad = await client.post(
        URL, content=body, headers={"Content-Type": "application/json", "X-Webhook-Signature": "sha256=deadbeef"}
    )
    assert bad.status_code == 401

    missing = await client.post(URL, content=body, headers={"Content-Type": "application/json"})
    assert missing.status_code == 401
    assert (await fetch_student("STU001")).meals_remaining == 0

    good = await client.post(
        URL,
        content=body,
        headers={"Content-Type": "application/json", "X-Webhook-Signature": sign_payload(body, "shh")},
    )
    assert good.status_code == 200
    assert (await fetch_student("STU001")).meals_remaining == 1


async def test_unexpected_failure_keeps_payload_for_reconciliation(client, make_student, fetch_student, session_factory, monkeypatch):
    await make_student(meals_remaining=3)

    async def broken_grant(db, **kwargs):
        raise RuntimeError("database went away")

    monkeypatch.setattr(webhooks, "grant_meals", broken_grant)

    r = await client.post(URL, json={"studentId": "STU001", "productType": "daily"})
    assert r.status_code == 500
    assert r.json() == {"success": False}

    errors = await _logs(session_factory, "error")
    assert len(errors) == 1
    assert errors[0].details["error"] == "unhandled"
    assert errors[0].details["message"] == "database went away"
    assert errors[0].details["payload"] == {"studentId": "STU001", "productType": "daily"}

    assert (await fetch_student("STU001")).meals_remaining == 3
    assert await _counts(session_factory) == (1, 0)
