from sqlalchemy import select

from edumeal.models.subscription import Subscription
from edumeal.models.ticket import Ticket


STUDENT = {
    "studentId": "STU100",
    "firstName": "Ada",
    "lastName": "Lovelace",
    "grade": "4",
    "class": "4B",
}


async def test_create_and_get_student(client):
    r = await client.post("/api/students", json=STUDENT)
    assert r.status_code == 201
    body = r.json()
    assert body["studentId"] == "STU100"
    assert body["class"] == "4B"
    assert body["isActive"] is True
    assert body["mealsRemaining"] == 0

    r2 = await client.get(f"/api/students/{body['id']}")
    assert r2.status_code == 200
    assert r2.json()["firstName"] == "Ada"


async def test_list_students_sorted_by_last_name(client, make_student):
    await make_student(student_id="S1", last_name="Zulu")
    await make_student(student_id="S2", last_name="Alpha")

    r = await client.get("/api/students")
    assert r.status_code == 200
    assert [s["lastName"] for s in r.json()] == ["Alpha", "Zulu"]


async def test_get_unknown_student_is_404(client):
    r = await client.get("/api/students/999")
    assert r.status_code == 404


async def test_create_duplicate_school_id_is_400(client):
    assert (await client.post("/api/students", json=STUDENT)).status_code == 201
    r = await client.post("/api/students", json=STUDENT)
    assert r.status_code == 400
    assert "already exists" in r.json()["detail"]


async def test_create_missing_field_is_400(client):
    payload = dict(STUDENT)
    payload.pop("lastName")
    r = await client.post("/api/students", json=payload)
    assert r.status_code == 400
    assert "lastName" in r.json()["detail"]


async def test_partial_update(client, make_student):
    s = await make_student(meals_remaining=3)
    r = await client.put(f"/api/students/{s.id}", json={"mealsRemaining": 7, "isActive": False})
    assert r.status_code == 200
    body = r.json()
    assert body["mealsRemaining"] == 7
    assert body["isActive"] is False
    assert body["firstName"] == "John"


async def test_update_unknown_student_is_404(client):
    r = await client.put("/api/students/12345", json={"grade": "3"})
    assert r.status_code == 404


async def test_update_to_taken_school_id_is_400(client, make_student):
    await make_student(student_id="A1")
    b = await make_student(student_id="B1")
    r = await client.put(f"/api/students/{b.id}", json={"studentId": "A1"})
    assert r.status_code == 400


async def test_delete_student_removes_tickets_and_subscriptions(client, make_student, session_factory):
    s = await make_student(meals_remaining=5)
    await client.post("/api/webhooks/quickbooks", json={"studentId": "STU001", "productType": "daily", "amount": 5})
    await client.post("/api/tickets/generate", json={"date": "2030-01-01"})

    r = await client.delete(f"/api/students/{s.id}")
    assert r.status_code == 204
    assert (await client.get(f"/api/students/{s.id}")).status_code == 404

    async with session_factory() as db:
        tickets = (await db.execute(select(Ticket).where(Ticket.student_id == s.id))).scalars().all()
        subs = (await db.execute(select(Subscription).where(Subscription.student_id == s.id))).scalars().all()
    assert tickets == []
    assert subs == []


async def test_delete_unknown_student_is_404(client):
    r = await client.delete("/api/students/77")
    assert r.status_code == 404
