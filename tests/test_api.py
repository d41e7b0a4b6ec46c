import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["ok"] is True


async def _log(client, seeded, student_id, category_id, **extra):
    payload = {
        "student_id": student_id,
        "class_id": seeded.class_id,
        "category_id": category_id,
        "teacher_id": seeded.teacher_id,
        **extra,
    }
    return await client.post("/behaviours", json=payload)


@pytest.mark.asyncio
async def test_log_behaviour_returns_fresh_views(client: AsyncClient, seeded):
    for _ in range(2):
        response = await _log(client, seeded, seeded.ava, seeded.good)
    assert response.status_code == 201
    body = response.json()
    assert body["totals"]["total"] == 10
    assert body["balance"] == 10
    assert body["streak"]["current_streak"] == 1
    assert body["awarded_badge_ids"] == [seeded.ten_badge]


@pytest.mark.asyncio
async def test_sign_mismatch_is_unprocessable(client: AsyncClient, seeded):
    response = await _log(client, seeded, seeded.ava, seeded.good, points=-4)
    assert response.status_code == 422
    assert "positive category" in response.json()["error"]

    response = await client.post(
        f"/classes/{seeded.class_id}/categories",
        json={"name": "Shouting", "point_value": 3, "type": "negative"},
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_unknown_student_is_not_found(client: AsyncClient, seeded):
    response = await _log(client, seeded, 4242, seeded.good)
    assert response.status_code == 404
    response = await client.get(f"/students/{seeded.outsider}/totals", params={"class_id": seeded.class_id})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_catalog_endpoints(client: AsyncClient, seeded):
    response = await client.post(
        f"/classes/{seeded.class_id}/rewards", json={"name": "Extra Recess", "point_cost": 25}
    )
    assert response.status_code == 201
    assert response.json()["is_active"] is True

    response = await client.post(f"/classes/{seeded.class_id}/rewards", json={"name": "Free", "point_cost": 0})
    assert response.status_code == 422

    response = await client.post(
        f"/classes/{seeded.class_id}/badges",
        json={"name": "Fifty", "requirement_type": "points_threshold", "requirement_value": 50},
    )
    assert response.status_code == 201

    names = [b["name"] for b in (await client.get(f"/classes/{seeded.class_id}/badges")).json()]
    assert names == ["Ten Pointer", "Helper", "Class Captain", "Fifty"]

    categories = (await client.get(f"/classes/{seeded.class_id}/categories")).json()
    assert [(c["name"], c["type"]) for c in categories] == [("On Task", "positive"), ("Off Task", "negative")]

    assert (await client.get("/classes/999/rewards")).status_code == 404


@pytest.mark.asyncio
async def test_leaderboard_endpoint(client: AsyncClient, seeded):
    await _log(client, seeded, seeded.ben, seeded.good)
    response = await client.get(f"/leaderboard/{seeded.class_id}", params={"window": "week"})
    assert response.status_code == 200
    board = response.json()
    assert board[0]["student_id"] == seeded.ben
    assert board[0]["student_name"] == "Ben Brown"
    assert [e["rank"] for e in board] == [1, 2, 3]

    response = await client.get(f"/leaderboard/{seeded.class_id}", params={"window": "custom"})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_redeem_endpoint(client: AsyncClient, seeded):
    for _ in range(3):
        await _log(client, seeded, seeded.ava, seeded.good)
    await _log(client, seeded, seeded.ava, seeded.bad)

    response = await client.post(
        f"/rewards/{seeded.reward}/redeem", json={"student_id": seeded.ava, "request_id": "abc"}
    )
    assert response.status_code == 200
    assert response.json()["new_balance"] == 3
    assert response.json()["created"] is True

    retry = await client.post(
        f"/rewards/{seeded.reward}/redeem", json={"student_id": seeded.ava, "request_id": "abc"}
    )
    assert retry.json()["created"] is False
    assert retry.json()["redemption"]["id"] == response.json()["redemption"]["id"]

    response = await client.post(f"/rewards/{seeded.reward}/redeem", json={"student_id": seeded.ava})
    assert response.status_code == 409
    assert response.json()["shortfall"] == 7

    balance = await client.get(f"/students/{seeded.ava}/balance", params={"class_id": seeded.class_id})
    assert balance.json()["balance"] == 3


@pytest.mark.asyncio
async def test_student_views(client: AsyncClient, seeded):
    for _ in range(3):
        await _log(client, seeded, seeded.cal, seeded.good)
    params = {"class_id": seeded.class_id}

    stats = (await client.get(f"/students/{seeded.cal}/stats", params=params)).json()
    assert (stats["total_points"], stats["badges"]) == (15, 2)

    streak = (await client.get(f"/students/{seeded.cal}/streak", params=params)).json()
    assert streak["milestones"] == {"three_day": False, "weekly": False, "monthly": False}

    eligible = (await client.get(f"/students/{seeded.cal}/eligible-badges")).json()
    assert eligible["badge_ids"] == []


@pytest.mark.asyncio
async def test_history_and_delete(client: AsyncClient, seeded):
    await _log(client, seeded, seeded.ava, seeded.good, note="great question")
    created = await _log(client, seeded, seeded.ava, seeded.bad)
    behaviour_id = created.json()["behaviour_id"]

    page = (await client.get("/behaviours", params={"class_id": seeded.class_id, "kind": "negative"})).json()
    assert page["count"] == 1
    assert page["items"][0]["id"] == behaviour_id

    response = await client.delete(f"/behaviours/{behaviour_id}")
    assert response.status_code == 200
    assert (await client.delete(f"/behaviours/{behaviour_id}")).status_code == 404

    totals = (await client.get(f"/students/{seeded.ava}/totals", params={"class_id": seeded.class_id})).json()
    assert (totals["total"], totals["bad_count"]) == (5, 0)

    trend = (await client.get(f"/classes/{seeded.class_id}/trend")).json()
    assert len(trend) == 7
    assert trend[-1]["positive"] == 1


@pytest.mark.asyncio
async def test_notifications_endpoints(client: AsyncClient, seeded):
    await client.post(f"/badges/{seeded.captain_badge}/award", json={"student_id": seeded.ava})
    again = await client.post(f"/badges/{seeded.captain_badge}/award", json={"student_id": seeded.ava})
    assert again.json()["created"] is False

    inbox = (await client.get("/notifications", params={"user_id": seeded.ava})).json()
    assert [n["type"] for n in inbox] == ["badge_earned"]
    assert "Class Captain" in inbox[0]["content"]

    read = await client.post(f"/notifications/{inbox[0]['id']}/read")
    assert read.json()["is_read"] is True
    unread = (await client.get("/notifications", params={"user_id": seeded.ava, "unread_only": True})).json()
    assert unread == []

    await _log(client, seeded, seeded.ava, seeded.good)
    marked = await client.post("/notifications/read-all", params={"user_id": seeded.teacher_id})
    assert marked.json()["updated"] == 1
    assert (await client.post("/notifications/999/read")).status_code == 404
