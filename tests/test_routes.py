from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy import select

from cradle.db.models import Household, HouseholdInvite, HouseholdMember
from cradle.services.seed import seed_test_data
from cradle.utils.dates import local_now


@pytest.fixture
async def stranger(session_factory):
    # пользователь из другой семьи
    async with session_factory() as s:
        return await seed_test_data(s, prefix="e2e-test-other")


@pytest.fixture
async def viewer(session_factory, seeded):
    # зритель в семье seeded
    async with session_factory() as s:
        data = await seed_test_data(s, prefix="e2e-test-viewer")
        s.add(HouseholdMember(household_id=seeded.household.id, user_id=data.user.id, role="VIEWER"))
        await s.commit()
        return data


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


# --------- Аутентификация и доступ ---------
async def test_missing_token_is_unauthorized(client, seeded) -> None:
    resp = await client.post("/api/sleep/list", json={"childId": seeded.child.id})
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "UNAUTHORIZED"


async def test_other_household_is_forbidden(client, seeded, stranger) -> None:
    resp = await client.post("/api/sleep/list", json={"childId": seeded.child.id}, headers=bearer(stranger.token))
    assert resp.status_code == 403
    assert resp.json()["error"] == {"code": "FORBIDDEN", "message": "You do not have access to this household"}


async def test_record_id_is_checked_against_household(client, auth, seeded, stranger) -> None:
    resp = await client.post("/api/sleep/start", json={"childId": seeded.child.id}, headers=auth)
    sleep_id = resp.json()["id"]
    resp = await client.post("/api/sleep/delete", json={"id": sleep_id}, headers=bearer(stranger.token))
    assert resp.status_code == 403


async def test_viewer_cannot_log(client, seeded, viewer) -> None:
    resp = await client.post(
        "/api/diaper/log", json={"childId": seeded.child.id, "diaperType": "WET"}, headers=bearer(viewer.token)
    )
    assert resp.status_code == 403
    assert resp.json()["error"]["message"] == "Viewers cannot log activities"

    resp = await client.post("/api/diaper/list", json={"childId": seeded.child.id}, headers=bearer(viewer.token))
    assert resp.status_code == 200


async def test_validation_error_is_bad_request(client, auth, seeded) -> None:
    resp = await client.post(
        "/api/diaper/log", json={"childId": seeded.child.id, "diaperType": "SPARKLY"}, headers=auth
    )
    assert resp.status_code == 400
    body = resp.json()["error"]
    assert body["code"] == "BAD_REQUEST"
    assert body["issues"][0]["path"] == "diaperType"


# --------- Сон ---------
async def test_sleep_start_is_atomic(client, auth, seeded) -> None:
    payload = {"childId": seeded.child.id, "sleepType": "NAP"}
    first = await client.post("/api/sleep/start", json=payload, headers=auth)
    assert first.status_code == 200
    assert first.json()["endTime"] is None

    second = await client.post("/api/sleep/start", json=payload, headers=auth)
    assert second.status_code == 409
    assert second.json()["error"] == {"code": "CONFLICT", "message": "There is already an active sleep session"}

    active = await client.post("/api/sleep/getActive", json={"childId": seeded.child.id}, headers=auth)
    assert active.json()["id"] == first.json()["id"]


async def test_sleep_end_and_start_again(client, auth, seeded) -> None:
    start = local_now() - timedelta(hours=1)
    resp = await client.post(
        "/api/sleep/start", json={"childId": seeded.child.id, "startTime": start.isoformat()}, headers=auth
    )
    sleep_id = resp.json()["id"]

    resp = await client.post("/api/sleep/end", json={"id": sleep_id, "quality": 4}, headers=auth)
    assert resp.status_code == 200
    assert resp.json()["quality"] == 4
    assert resp.json()["endTime"] is not None

    again = await client.post("/api/sleep/start", json={"childId": seeded.child.id}, headers=auth)
    assert again.status_code == 200


async def test_sleep_end_before_start_is_rejected(client, auth, seeded) -> None:
    resp = await client.post("/api/sleep/start", json={"childId": seeded.child.id}, headers=auth)
    sleep_id = resp.json()["id"]
    early = (local_now() - timedelta(days=1)).isoformat()
    resp = await client.post("/api/sleep/end", json={"id": sleep_id, "endTime": early}, headers=auth)
    assert resp.status_code == 400


async def test_sleep_summary_excludes_open_session(client, auth, seeded) -> None:
    today = local_now().replace(hour=0, minute=0, second=0)
    for start, minutes in ((today + timedelta(minutes=5), 60), (today + timedelta(minutes=90), 30)):
        await client.post(
            "/api/sleep/log",
            json={
                "childId": seeded.child.id,
                "startTime": start.isoformat(),
                "endTime": (start + timedelta(minutes=minutes)).isoformat(),
            },
            headers=auth,
        )
    await client.post(
        "/api/sleep/start",
        json={"childId": seeded.child.id, "startTime": (today + timedelta(minutes=150)).isoformat()},
        headers=auth,
    )

    resp = await client.post("/api/sleep/summary", json={"childId": seeded.child.id, "period": "today"}, headers=auth)
    body = resp.json()
    assert body["totalSessions"] == 2
    assert body["totalMinutes"] == 90


# --------- Кормление и подгузники ---------
async def test_breastfeeding_conflict_and_side_switch(client, auth, seeded) -> None:
    payload = {"childId": seeded.child.id, "side": "LEFT"}
    first = await client.post("/api/feeding/startBreastfeeding", json=payload, headers=auth)
    assert first.status_code == 200
    second = await client.post("/api/feeding/startBreastfeeding", json=payload, headers=auth)
    assert second.status_code == 409

    # бутылочка не мешает открытому кормлению грудью
    bottle = await client.post(
        "/api/feeding/logBottle",
        json={"childId": seeded.child.id, "amountMl": 120, "startTime": local_now().isoformat()},
        headers=auth,
    )
    assert bottle.status_code == 200
    assert bottle.json()["amountMl"] == 120


async def test_bottle_amount_is_range_checked(client, auth, seeded) -> None:
    resp = await client.post(
        "/api/feeding/logBottle",
        json={"childId": seeded.child.id, "amountMl": 900, "startTime": local_now().isoformat()},
        headers=auth,
    )
    assert resp.status_code == 400


async def test_diaper_summary_counts_both(client, auth, seeded) -> None:
    for diaper_type in ("WET", "DIRTY", "BOTH"):
        resp = await client.post(
            "/api/diaper/log", json={"childId": seeded.child.id, "diaperType": diaper_type}, headers=auth
        )
        assert resp.status_code == 200

    resp = await client.post("/api/diaper/summary", json={"childId": seeded.child.id}, headers=auth)
    body = resp.json()
    assert body["totalChanges"] == 3
    assert body["wetCount"] == 2
    assert body["dirtyCount"] == 2


# --------- Семья ---------
async def test_household_create_makes_owner(client, auth) -> None:
    resp = await client.post("/api/household/create", json={"name": "Smiths"}, headers=auth)
    assert resp.status_code == 200
    body = resp.json()
    assert body["name"] == "Smiths"
    assert [m["role"] for m in body["members"]] == ["OWNER"]

    listed = await client.post("/api/household/list", json={}, headers=auth)
    assert {h["name"] for h in listed.json()} >= {"Smiths"}


async def test_viewer_cannot_delete_household(client, seeded, viewer) -> None:
    resp = await client.post("/api/household/delete", json={"id": seeded.household.id}, headers=bearer(viewer.token))
    assert resp.status_code == 403
    assert resp.json()["error"]["message"] == "Only owners can delete households"


# --------- Таймлайн ---------
async def test_timeline_day_over_http(client, auth, seeded) -> None:
    await client.post(
        "/api/sleep/log",
        json={
            "childId": seeded.child.id,
            "startTime": "2024-01-15T23:30:00",
            "endTime": "2024-01-16T07:00:00",
            "sleepType": "NIGHT",
        },
        headers=auth,
    )
    resp = await client.post(
        "/api/timeline/getDay", json={"childId": seeded.child.id, "date": "2024-01-15"}, headers=auth
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["dayStart"].startswith("2024-01-15T08:00")
    assert len(body["sleepRecords"]) == 1

    resp = await client.post(
        "/api/timeline/getDay", json={"childId": seeded.child.id, "date": "2024-01-16"}, headers=auth
    )
    assert resp.json()["sleepRecords"] == []


async def test_last_activities_over_http(client, auth, seeded) -> None:
    await client.post("/api/sleep/start", json={"childId": seeded.child.id}, headers=auth)
    resp = await client.post("/api/timeline/getLastActivities", json={"childId": seeded.child.id}, headers=auth)
    body = resp.json()
    assert body["activeSleep"] is not None
    assert body["lastSleep"] is None


async def test_health(client) -> None:
    resp = await client.get("/health")
    assert resp.json() == {"ok": True}


# --------- Ссылки на чужую семью ---------
async def test_own_household_id_does_not_unlock_foreign_child(client, auth, seeded, stranger) -> None:
    payload = {"childId": seeded.child.id, "householdId": stranger.household.id}
    resp = await client.post("/api/sleep/start", json=payload, headers=bearer(stranger.token))
    assert resp.status_code == 403
    assert resp.json()["error"]["message"] == "You do not have access to this household"

    active = await client.post("/api/sleep/getActive", json={"childId": seeded.child.id}, headers=auth)
    assert active.json() is None


async def test_own_child_id_does_not_unlock_foreign_medicine(client, auth, seeded, stranger) -> None:
    resp = await client.post(
        "/api/medicine/create",
        json={"childId": seeded.child.id, "name": "Vitamin D", "dosage": "400 IU"},
        headers=auth,
    )
    medicine_id = resp.json()["id"]

    resp = await client.post(
        "/api/medicine/logRecord",
        json={"medicineId": medicine_id, "childId": stranger.child.id},
        headers=bearer(stranger.token),
    )
    assert resp.status_code == 403

    records = await client.post("/api/medicine/getRecords", json={"medicineId": medicine_id}, headers=auth)
    assert records.json() == []


# --------- Приглашения и участники ---------
async def test_invite_and_accept(client, auth, seeded, stranger) -> None:
    resp = await client.post(
        "/api/household/invite",
        json={"householdId": seeded.household.id, "email": stranger.user.email},
        headers=auth,
    )
    assert resp.status_code == 200
    invite = resp.json()
    assert invite["role"] == "CAREGIVER"
    assert invite["token"]

    resp = await client.post(
        "/api/household/acceptInvite", json={"token": invite["token"]}, headers=bearer(stranger.token)
    )
    assert resp.json() == {"success": True, "householdId": seeded.household.id}

    listed = await client.post("/api/sleep/list", json={"childId": seeded.child.id}, headers=bearer(stranger.token))
    assert listed.status_code == 200

    # инвайт удалён вместе с созданием участника
    again = await client.post(
        "/api/household/acceptInvite", json={"token": invite["token"]}, headers=bearer(stranger.token)
    )
    assert again.status_code == 404
    assert again.json()["error"]["message"] == "Invite not found"

    resp = await client.post(
        "/api/household/invite",
        json={"householdId": seeded.household.id, "email": stranger.user.email},
        headers=auth,
    )
    assert resp.status_code == 409
    assert resp.json()["error"]["message"] == "User is already a member of this household"


async def test_invite_requires_admin(client, seeded, viewer) -> None:
    resp = await client.post(
        "/api/household/invite",
        json={"householdId": seeded.household.id, "email": "grandma@example.com"},
        headers=bearer(viewer.token),
    )
    assert resp.status_code == 403
    assert resp.json()["error"]["message"] == "Only owners and admins can invite members"


async def test_accept_invite_rejections(client, session, seeded, stranger) -> None:
    expired = HouseholdInvite(
        household_id=seeded.household.id,
        email=stranger.user.email,
        expires_at=local_now() - timedelta(days=1),
    )
    foreign = HouseholdInvite(
        household_id=seeded.household.id,
        email="someone-else@example.com",
        expires_at=local_now() + timedelta(days=7),
    )
    session.add_all([expired, foreign])
    await session.commit()

    resp = await client.post("/api/household/acceptInvite", json={"token": expired.token}, headers=bearer(stranger.token))
    assert resp.status_code == 400
    assert resp.json()["error"]["message"] == "Invite has expired"

    resp = await client.post("/api/household/acceptInvite", json={"token": foreign.token}, headers=bearer(stranger.token))
    assert resp.status_code == 403
    assert resp.json()["error"]["message"] == "This invite is for a different email address"


async def test_accept_invite_when_already_member(client, session, seeded, stranger) -> None:
    invite = HouseholdInvite(
        household_id=seeded.household.id,
        email=stranger.user.email,
        expires_at=local_now() + timedelta(days=7),
    )
    session.add(invite)
    session.add(HouseholdMember(household_id=seeded.household.id, user_id=stranger.user.id, role="VIEWER"))
    await session.commit()

    resp = await client.post("/api/household/acceptInvite", json={"token": invite.token}, headers=bearer(stranger.token))
    assert resp.status_code == 409
    assert resp.json()["error"] == {"code": "CONFLICT", "message": "User is already a member of this household"}


async def test_update_member_role(client, auth, seeded, viewer) -> None:
    body = {"householdId": seeded.household.id, "userId": seeded.user.id, "role": "VIEWER"}
    resp = await client.post("/api/household/updateMemberRole", json=body, headers=auth)
    assert resp.status_code == 400
    assert resp.json()["error"]["message"] == "You cannot change your own role"

    resp = await client.post("/api/household/updateMemberRole", json=body, headers=bearer(viewer.token))
    assert resp.status_code == 403
    assert resp.json()["error"]["message"] == "Only owners can change member roles"

    body = {"householdId": seeded.household.id, "userId": viewer.user.id, "role": "ADMIN"}
    resp = await client.post("/api/household/updateMemberRole", json=body, headers=auth)
    assert resp.status_code == 200
    assert resp.json()["role"] == "ADMIN"
    assert resp.json()["user"]["email"] == viewer.user.email


async def test_remove_member(client, auth, seeded, viewer) -> None:
    owner = {"householdId": seeded.household.id, "userId": seeded.user.id}
    resp = await client.post("/api/household/removeMember", json=owner, headers=bearer(viewer.token))
    assert resp.status_code == 403
    assert resp.json()["error"]["message"] == "Only owners and admins can remove members"

    await client.post(
        "/api/household/updateMemberRole",
        json={"householdId": seeded.household.id, "userId": viewer.user.id, "role": "ADMIN"},
        headers=auth,
    )
    # админ может удалять участников, но не владельца
    resp = await client.post("/api/household/removeMember", json=owner, headers=bearer(viewer.token))
    assert resp.status_code == 403
    assert resp.json()["error"]["message"] == "Cannot remove the owner"

    missing = {"householdId": seeded.household.id, "userId": "nobody"}
    resp = await client.post("/api/household/removeMember", json=missing, headers=auth)
    assert resp.status_code == 404

    member = {"householdId": seeded.household.id, "userId": viewer.user.id}
    resp = await client.post("/api/household/removeMember", json=member, headers=auth)
    assert resp.json() == {"success": True}
    resp = await client.post("/api/sleep/list", json={"childId": seeded.child.id}, headers=bearer(viewer.token))
    assert resp.status_code == 403


# --------- Удаление аккаунта ---------
async def test_user_delete_transfers_ownership(client, auth, session_factory, seeded, viewer, stranger) -> None:
    async with session_factory() as s:
        admin = await seed_test_data(s, prefix="e2e-test-admin")
        s.add(HouseholdMember(household_id=seeded.household.id, user_id=admin.user.id, role="ADMIN"))
        await s.commit()

    solo = (await client.post("/api/household/create", json={"name": "Solo"}, headers=auth)).json()
    pair = (await client.post("/api/household/create", json={"name": "Pair"}, headers=auth)).json()
    async with session_factory() as s:
        s.add(HouseholdMember(household_id=pair["id"], user_id=stranger.user.id, role="CAREGIVER"))
        await s.commit()

    resp = await client.post("/api/user/delete", json={"confirmEmail": "wrong@example.com"}, headers=auth)
    assert resp.status_code == 400
    assert resp.json()["error"]["message"] == "Email confirmation does not match your account email"

    resp = await client.post("/api/user/delete", json={"confirmEmail": seeded.user.email}, headers=auth)
    assert resp.json() == {"success": True}

    async with session_factory() as s:
        members = await s.scalars(select(HouseholdMember).where(HouseholdMember.household_id == seeded.household.id))
        roles = {m.user_id: m.role for m in members}
        assert roles == {admin.user.id: "OWNER", viewer.user.id: "VIEWER"}

        # без админа владельцем становится оставшийся участник
        pair_members = await s.scalars(select(HouseholdMember).where(HouseholdMember.household_id == pair["id"]))
        assert {m.user_id: m.role for m in pair_members} == {stranger.user.id: "OWNER"}

        assert await s.get(Household, solo["id"]) is None
        assert await s.get(Household, seeded.household.id) is not None

    # сессия удалена вместе с пользователем
    resp = await client.post("/api/user/get", json={}, headers=auth)
    assert resp.status_code == 401


# --------- Рост и температура ---------
@pytest.mark.parametrize(
    "field, value",
    [("weightKg", 51), ("weightKg", -1), ("heightCm", 201), ("headCircumferenceCm", 101)],
)
async def test_growth_ranges(client, auth, seeded, field, value) -> None:
    resp = await client.post(
        "/api/growth/log",
        json={"childId": seeded.child.id, "date": "2024-01-15", field: value},
        headers=auth,
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["issues"][0]["path"] == field


async def test_growth_log_and_latest(client, auth, seeded) -> None:
    for day, weight in (("2024-01-01", 4.2), ("2024-02-01", 5.1)):
        resp = await client.post(
            "/api/growth/log", json={"childId": seeded.child.id, "date": day, "weightKg": weight}, headers=auth
        )
        assert resp.status_code == 200

    latest = await client.post("/api/growth/getLatest", json={"childId": seeded.child.id}, headers=auth)
    assert latest.json()["weightKg"] == 5.1


@pytest.mark.parametrize("value", [29.9, 45.1])
async def test_temperature_range(client, auth, seeded, value) -> None:
    resp = await client.post(
        "/api/temperature/log",
        json={"childId": seeded.child.id, "time": local_now().isoformat(), "temperatureCelsius": value},
        headers=auth,
    )
    assert resp.status_code == 400


async def test_temperature_log_and_latest(client, auth, seeded) -> None:
    resp = await client.post(
        "/api/temperature/log",
        json={"childId": seeded.child.id, "time": local_now().isoformat(), "temperatureCelsius": 37.2},
        headers=auth,
    )
    assert resp.status_code == 200
    latest = await client.post("/api/temperature/getLatest", json={"childId": seeded.child.id}, headers=auth)
    assert latest.json()["temperatureCelsius"] == 37.2


# --------- Сцеживание ---------
async def test_pumping_flow(client, auth, seeded) -> None:
    child = {"childId": seeded.child.id}
    first = await client.post("/api/pumping/start", json={**child, "side": "LEFT"}, headers=auth)
    assert first.status_code == 200

    second = await client.post("/api/pumping/start", json=child, headers=auth)
    assert second.status_code == 409
    assert second.json()["error"]["message"] == "There is already an active pumping session"

    active = await client.post("/api/pumping/getActive", json=child, headers=auth)
    assert active.json()["id"] == first.json()["id"]

    ended = await client.post("/api/pumping/end", json={"id": first.json()["id"], "amountMl": 80}, headers=auth)
    assert ended.json()["amountMl"] == 80
    assert ended.json()["endTime"] is not None

    now = local_now().isoformat()
    logged = await client.post(
        "/api/pumping/log", json={**child, "startTime": now, "endTime": now, "amountMl": 100}, headers=auth
    )
    assert logged.status_code == 200

    summary = await client.post("/api/pumping/summary", json=child, headers=auth)
    assert summary.json()["totalSessions"] == 2
    assert summary.json()["totalMl"] == 180
    assert summary.json()["averageMl"] == 90

    resp = await client.post("/api/pumping/delete", json={"id": logged.json()["id"]}, headers=auth)
    assert resp.json() == {"success": True}
    listed = await client.post("/api/pumping/list", json=child, headers=auth)
    assert [r["id"] for r in listed.json()] == [first.json()["id"]]


# --------- Активности ---------
async def test_activity_flow(client, auth, seeded) -> None:
    child = {"childId": seeded.child.id}
    tummy = await client.post("/api/activity/start", json={**child, "activityType": "TUMMY_TIME"}, headers=auth)
    assert tummy.status_code == 200

    again = await client.post("/api/activity/start", json={**child, "activityType": "TUMMY_TIME"}, headers=auth)
    assert again.status_code == 409
    assert again.json()["error"]["message"] == "There is already an active tummy time session"

    # другой тип не мешает
    bath = await client.post("/api/activity/start", json={**child, "activityType": "BATH"}, headers=auth)
    assert bath.status_code == 200

    active = await client.post("/api/activity/getActive", json={**child, "activityType": "BATH"}, headers=auth)
    assert active.json()["id"] == bath.json()["id"]

    ended = await client.post("/api/activity/end", json={"id": tummy.json()["id"], "notes": "rolled over"}, headers=auth)
    assert ended.json()["notes"] == "rolled over"

    summary = await client.post("/api/activity/summary", json=child, headers=auth)
    body = summary.json()
    assert body["totalActivities"] == 2
    assert body["byType"]["TUMMY_TIME"]["count"] == 1
    assert body["byType"]["BATH"]["count"] == 1

    listed = await client.post("/api/activity/list", json={**child, "activityType": "BATH"}, headers=auth)
    assert [r["id"] for r in listed.json()] == [bath.json()["id"]]


# --------- Лекарства ---------
async def test_medicine_flow(client, auth, seeded, viewer) -> None:
    child = {"childId": seeded.child.id}
    resp = await client.post("/api/medicine/create", json={**child, "name": "Vitamin D", "dosage": "400 IU"}, headers=auth)
    medicine = resp.json()
    assert medicine["isActive"] is True

    given = await client.post(
        "/api/medicine/logRecord", json={"medicineId": medicine["id"], "dosageGiven": "400 IU"}, headers=auth
    )
    assert given.json()["medicine"]["name"] == "Vitamin D"
    skipped = await client.post("/api/medicine/logRecord", json={"medicineId": medicine["id"], "skipped": True}, headers=auth)
    assert skipped.json()["skipped"] is True

    detail = await client.post("/api/medicine/get", json={"id": medicine["id"]}, headers=auth)
    assert len(detail.json()["records"]) == 2

    updated = await client.post(
        "/api/medicine/updateRecord", json={"id": given.json()["id"], "notes": "with milk"}, headers=auth
    )
    assert updated.json()["notes"] == "with milk"
    resp = await client.post("/api/medicine/deleteRecord", json={"id": skipped.json()["id"]}, headers=auth)
    assert resp.json() == {"success": True}
    records = await client.post("/api/medicine/getRecords", json={"medicineId": medicine["id"]}, headers=auth)
    assert [r["id"] for r in records.json()] == [given.json()["id"]]

    await client.post("/api/medicine/update", json={"id": medicine["id"], "isActive": False}, headers=auth)
    assert (await client.post("/api/medicine/list", json=child, headers=auth)).json() == []
    listed = await client.post("/api/medicine/list", json={**child, "activeOnly": False}, headers=auth)
    assert [m["id"] for m in listed.json()] == [medicine["id"]]

    resp = await client.post("/api/medicine/delete", json={"id": medicine["id"]}, headers=bearer(viewer.token))
    assert resp.status_code == 403
    assert resp.json()["error"]["message"] == "Only owners and admins can delete medicines"
    resp = await client.post("/api/medicine/delete", json={"id": medicine["id"]}, headers=auth)
    assert resp.json() == {"success": True}
