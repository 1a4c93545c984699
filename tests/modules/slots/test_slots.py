"""Tests for Slots: creation with auto-enrollment, updates and listing."""

from datetime import date, datetime, timedelta, timezone

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.audit import AuditService
from src.core.auth.models import Admin
from src.modules.areas.models import Area
from src.modules.slots.models import Slot, SlotSubscription
from src.modules.slots.schemas import SlotCreate, SlotUpdate
from src.modules.slots.service import SlotService


def _slot_create(area_id: int, day: date = date(2026, 3, 1), capacity: int = 100) -> SlotCreate:
    start = datetime(day.year, day.month, day.day, 8, 0, tzinfo=timezone.utc)
    return SlotCreate(
        date=day,
        start_time=start,
        end_time=start + timedelta(hours=2),
        area_id=area_id,
        capacity=capacity,
        booking_cutoff_time=start - timedelta(hours=1),
    )


async def _subscriptions(db_session: AsyncSession, slot_id: int) -> list[SlotSubscription]:
    result = await db_session.execute(
        select(SlotSubscription)
        .where(SlotSubscription.slot_id == slot_id)
        .order_by(SlotSubscription.customer_id)
    )
    return list(result.scalars().all())


class TestSlotService:
    """Tests for SlotService."""

    async def test_create_slot_enrolls_enabled_residents(
        self, db_session: AsyncSession, admin: Admin, area: Area, make_resident
    ):
        """Every enabled resident of the area gets a Booked subscription at their quantity."""
        r1 = await make_resident(area, water_quantity=10)
        r2 = await make_resident(area, water_quantity=20)
        r3 = await make_resident(area, water_quantity=None)
        await make_resident(area, water_quantity=50, is_enabled=False)

        slot, capacity = await SlotService(db_session).create_slot(
            _slot_create(area.id), admin.id
        )

        subs = await _subscriptions(db_session, slot.id)
        assert [(s.customer_id, s.quantity) for s in subs] == [
            (r1.id, 10),
            (r2.id, 20),
            (r3.id, 0),
        ]
        assert all(s.status == "Booked" for s in subs)
        assert all(s.extra_request_status == "None" for s in subs)
        assert capacity.occupied_liters == 30
        assert capacity.booking_count == 3
        assert capacity.status.value == "Available"

    async def test_create_slot_skips_other_areas_and_deleted(
        self, db_session: AsyncSession, admin: Admin, area: Area, make_resident
    ):
        other = Area(name="Indiranagar", description="", city="Bengaluru", pincode="560038")
        db_session.add(other)
        await db_session.commit()
        await make_resident(other, water_quantity=10)
        await make_resident(area, water_quantity=10, is_deleted=True)
        kept = await make_resident(area, water_quantity=15)

        slot, _ = await SlotService(db_session).create_slot(_slot_create(area.id), admin.id)

        subs = await _subscriptions(db_session, slot.id)
        assert [s.customer_id for s in subs] == [kept.id]

    async def test_create_slot_without_residents(
        self, db_session: AsyncSession, admin: Admin, area: Area
    ):
        slot, capacity = await SlotService(db_session).create_slot(
            _slot_create(area.id), admin.id
        )

        assert slot.id is not None
        assert capacity.booking_count == 0
        assert await _subscriptions(db_session, slot.id) == []

    async def test_failed_enrollment_leaves_no_slot(
        self,
        db_session: AsyncSession,
        admin: Admin,
        area: Area,
        make_resident,
        monkeypatch: pytest.MonkeyPatch,
    ):
        """The slot insert and the enrollment are one unit of work."""
        await make_resident(area, water_quantity=10)

        async def broken_enrollment(db, slot):
            raise RuntimeError("enrollment failed")

        monkeypatch.setattr(
            "src.modules.slots.service.enroll_area_residents", broken_enrollment
        )

        with pytest.raises(RuntimeError, match="enrollment failed"):
            await SlotService(db_session).create_slot(_slot_create(area.id), admin.id)
        await db_session.rollback()

        slot_count = (await db_session.execute(select(func.count(Slot.id)))).scalar_one()
        sub_count = (
            await db_session.execute(select(func.count(SlotSubscription.id)))
        ).scalar_one()
        assert slot_count == 0
        assert sub_count == 0

    async def test_create_slot_is_audited(
        self, db_session: AsyncSession, admin: Admin, area: Area, make_resident
    ):
        resident = await make_resident(area)
        slot, _ = await SlotService(db_session).create_slot(_slot_create(area.id), admin.id)

        trail = await AuditService(db_session).list_for_entity("Slot", slot.id)

        assert [entry.action for entry in trail] == ["CREATE", "AUTO_ENROLL"]
        assert trail[1].new_values == {"customer_ids": [resident.id]}

    async def test_update_area_does_not_enroll(
        self, db_session: AsyncSession, admin: Admin, area: Area, make_resident
    ):
        """Moving a slot to another area keeps its subscriptions and adds none."""
        original = await make_resident(area, water_quantity=10)
        other = Area(name="Indiranagar", description="", city="Bengaluru", pincode="560038")
        db_session.add(other)
        await db_session.commit()
        await make_resident(other, water_quantity=25)

        service = SlotService(db_session)
        slot, _ = await service.create_slot(_slot_create(area.id), admin.id)
        slot, capacity = await service.update_slot(
            slot.id, SlotUpdate(area_id=other.id), admin.id
        )

        assert slot.area_id == other.id
        subs = await _subscriptions(db_session, slot.id)
        assert [s.customer_id for s in subs] == [original.id]
        assert capacity.occupied_liters == 10

    async def test_closed_status_wins_over_capacity(
        self, db_session: AsyncSession, admin: Admin, area: Area, make_resident
    ):
        await make_resident(area, water_quantity=10)
        service = SlotService(db_session)
        slot, _ = await service.create_slot(_slot_create(area.id), admin.id)

        _, capacity = await service.update_slot(
            slot.id, SlotUpdate(status="Closed"), admin.id
        )
        assert capacity.status.value == "Closed"

        _, capacity = await service.update_slot(
            slot.id, SlotUpdate(status="Available"), admin.id
        )
        assert capacity.status.value == "Available"

    async def test_update_ignores_explicit_nulls(
        self, db_session: AsyncSession, admin: Admin, area: Area
    ):
        """A null in the body leaves the field unchanged; only given values apply."""
        service = SlotService(db_session)
        slot, _ = await service.create_slot(_slot_create(area.id, capacity=100), admin.id)

        updated, capacity = await service.update_slot(
            slot.id, SlotUpdate(capacity=None, area_id=None, is_active=False), admin.id
        )

        assert updated.capacity == 100
        assert updated.area_id == area.id
        assert updated.is_active is False
        assert capacity.capacity == 100

        trail = await AuditService(db_session).list_for_entity("Slot", slot.id)
        assert trail[-1].new_values == {"is_active": "False"}

    async def test_full_when_capacity_reached(
        self, db_session: AsyncSession, admin: Admin, area: Area, make_resident
    ):
        await make_resident(area, water_quantity=60)
        await make_resident(area, water_quantity=40)

        _, capacity = await SlotService(db_session).create_slot(
            _slot_create(area.id, capacity=100), admin.id
        )

        assert capacity.status.value == "Full"
        assert capacity.progress_percentage == "100"

    async def test_delete_slot(self, db_session: AsyncSession, admin: Admin, area: Area):
        service = SlotService(db_session)
        slot, _ = await service.create_slot(_slot_create(area.id), admin.id)

        await service.delete_slot(slot.id, admin.id)

        rows, total = await service.list_slots()
        assert total == 0
        stored = await db_session.get(Slot, slot.id)
        assert stored.is_deleted is True


class TestSlotEndpoints:
    """Tests for slot API endpoints."""

    async def test_create_slot(
        self, client: AsyncClient, admin_headers, area: Area, make_resident, slot_payload
    ):
        await make_resident(area, water_quantity=20)
        await make_resident(area, water_quantity=30)

        response = await client.post(
            "/api/v1/slots", json=slot_payload(area.id, capacity=200), headers=admin_headers
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["area_name"] == "Koramangala"
        assert data["status"] == "Available"
        assert data["occupied_liters"] == 50
        assert data["booking_count"] == 2
        assert data["available_liters"] == 150
        assert data["progress_percentage"] == "25"

    async def test_create_slot_requires_admin(
        self, client: AsyncClient, resident_headers, area: Area, slot_payload
    ):
        response = await client.post(
            "/api/v1/slots", json=slot_payload(area.id), headers=resident_headers
        )
        assert response.status_code == 403

    async def test_create_slot_unknown_area(
        self, client: AsyncClient, admin_headers, slot_payload
    ):
        response = await client.post(
            "/api/v1/slots", json=slot_payload(9999), headers=admin_headers
        )
        assert response.status_code == 404

    async def test_create_slot_invalid_window(
        self, client: AsyncClient, admin_headers, area: Area, slot_payload
    ):
        payload = slot_payload(area.id)
        payload["end_time"] = payload["start_time"]

        response = await client.post("/api/v1/slots", json=payload, headers=admin_headers)

        assert response.status_code == 422

    async def test_create_slot_zero_capacity_rejected(
        self, client: AsyncClient, admin_headers, area: Area, slot_payload
    ):
        response = await client.post(
            "/api/v1/slots", json=slot_payload(area.id, capacity=0), headers=admin_headers
        )
        assert response.status_code == 422

    async def test_update_slot_cannot_set_full(
        self, client: AsyncClient, admin_headers, area: Area, slot_payload
    ):
        created = await client.post(
            "/api/v1/slots", json=slot_payload(area.id), headers=admin_headers
        )
        slot_id = created.json()["data"]["id"]

        response = await client.put(
            f"/api/v1/slots/{slot_id}", json={"status": "Full"}, headers=admin_headers
        )

        assert response.status_code == 422

    async def test_get_slot_not_found(self, client: AsyncClient, admin_headers):
        response = await client.get("/api/v1/slots/9999", headers=admin_headers)
        assert response.status_code == 404

    async def test_list_slots_filters(
        self, client: AsyncClient, admin_headers, area: Area, slot_payload, db_session
    ):
        other = Area(name="Indiranagar", description="", city="Bengaluru", pincode="560038")
        db_session.add(other)
        await db_session.commit()

        for payload in (
            slot_payload(area.id, day=date(2026, 3, 1)),
            slot_payload(area.id, day=date(2026, 3, 2)),
            slot_payload(other.id, day=date(2026, 3, 2)),
        ):
            response = await client.post("/api/v1/slots", json=payload, headers=admin_headers)
            assert response.status_code == 201

        response = await client.get(
            "/api/v1/slots", params={"area_id": area.id}, headers=admin_headers
        )
        data = response.json()["data"]
        assert data["total"] == 2
        # Newest date first by default
        assert [item["date"] for item in data["items"]] == ["2026-03-02", "2026-03-01"]

        response = await client.get(
            "/api/v1/slots",
            params={"date_from": "2026-03-02", "date_to": "2026-03-02"},
            headers=admin_headers,
        )
        assert response.json()["data"]["total"] == 2

        response = await client.get(
            "/api/v1/slots", params={"search": "indira"}, headers=admin_headers
        )
        items = response.json()["data"]["items"]
        assert [item["area_name"] for item in items] == ["Indiranagar"]

        response = await client.get(
            "/api/v1/slots",
            params={"limit": 1, "page": 2, "sort_order": "asc"},
            headers=admin_headers,
        )
        data = response.json()["data"]
        assert data["total"] == 3
        assert data["pages"] == 3
        assert len(data["items"]) == 1
