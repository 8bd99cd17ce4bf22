from datetime import timedelta

import pytest

from dealer_scheduling.models.calendar import Holiday
from dealer_scheduling.services.availability_service import AvailabilityService
from tests.utils.builders import booking_payload, customer, upcoming

BASE = "/api/v1/availability"


def test_day_availability_lists_open_slots(client, calendar):
    monday = upcoming(1)
    response = client.get(BASE, params={"date": monday.isoformat()})

    assert response.status_code == 200
    body = response.json()
    assert body["date"] == monday.isoformat()
    assert body["booking_type"] == "TEST_DRIVE"
    assert body["is_holiday"] is False
    assert [s["start_time"] for s in body["slots"]] == ["09:00", "10:00"]
    assert body["slots"][0] == {
        "slot_key": calendar["mon_0900"].id,
        "start_time": "09:00",
        "end_time": "10:00",
        "capacity": 3,
        "remaining": 3,
        "available": True,
    }


def test_units_and_vehicle_mark_slots_unavailable(client, calendar, vehicles):
    monday = upcoming(1)
    created = client.post(
        "/api/v1/bookings",
        json=booking_payload(time_slot_key=calendar["mon_0900"].id, vehicle_id=vehicles[0].id),
    )
    assert created.status_code == 201

    response = client.get(
        BASE,
        params={"date": monday.isoformat(), "vehicle_id": vehicles[0].id},
    )
    by_key = {s["slot_key"]: s for s in response.json()["slots"]}
    assert by_key[calendar["mon_0900"].id]["remaining"] == 2
    assert by_key[calendar["mon_0900"].id]["available"] is False
    assert by_key[calendar["mon_1000"].id]["available"] is True

    two_units = client.get(BASE, params={"date": monday.isoformat(), "units": 2})
    by_key = {s["slot_key"]: s for s in two_units.json()["slots"]}
    assert by_key[calendar["mon_0900"].id]["available"] is True
    assert by_key[calendar["mon_1000"].id]["available"] is False


def test_holiday_returns_no_slots(client, calendar, db):
    monday = upcoming(1)
    db.add(Holiday(date=monday, name="Closed"))
    db.commit()

    body = client.get(BASE, params={"date": monday.isoformat()}).json()
    assert body["is_holiday"] is True
    assert body["slots"] == []


@pytest.mark.parametrize("closed", [False, True])
def test_day_availability_looks_up_holidays_once(client, calendar, db, monkeypatch, closed):
    monday = upcoming(1)
    if closed:
        db.add(Holiday(date=monday, name="Closed"))
        db.commit()
    original = AvailabilityService.holiday_on
    calls = []

    def counting_holiday_on(self, target):
        calls.append(target)
        return original(self, target)

    monkeypatch.setattr(AvailabilityService, "holiday_on", counting_holiday_on)

    body = client.get(BASE, params={"date": monday.isoformat()}).json()
    assert body["is_holiday"] is closed
    assert bool(body["slots"]) is not closed
    assert calls == [monday]


def test_missing_date_is_validation_error(client):
    response = client.get(BASE)
    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_calendar_range(client, calendar):
    monday = upcoming(1)
    response = client.get(
        f"{BASE}/calendar",
        params={"start": monday.isoformat(), "end": (monday + timedelta(days=6)).isoformat()},
    )

    assert response.status_code == 200
    days = response.json()
    assert len(days) == 7
    assert days[0]["date"] == monday.isoformat()
    assert len(days[0]["slots"]) == 2
    assert days[5]["is_weekend"] is True
    assert days[5]["slots"] == []


def test_calendar_reversed_range(client):
    monday = upcoming(1)
    response = client.get(
        f"{BASE}/calendar",
        params={"start": monday.isoformat(), "end": (monday - timedelta(days=1)).isoformat()},
    )
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_DATE_RANGE"


def test_second_customer_sees_reduced_capacity(client, calendar, vehicles):
    monday = upcoming(1)
    for n in range(2):
        client.post(
            "/api/v1/bookings",
            json=booking_payload(
                time_slot_key=calendar["mon_0900"].id,
                vehicle_id=vehicles[n].id,
                customer_info=customer(n),
            ),
        )
    body = client.get(BASE, params={"date": monday.isoformat()}).json()
    assert body["slots"][0]["remaining"] == 1
