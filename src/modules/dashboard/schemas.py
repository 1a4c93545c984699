"""Schemas for admin dashboard."""

import datetime as dt

from pydantic import BaseModel


class DashboardArea(BaseModel):
    id: int
    name: str


class TodaySlotRow(BaseModel):
    """One of today's slots with booking progress."""

    id: int
    date: dt.date
    start_time: dt.datetime
    end_time: dt.datetime
    status: str
    capacity: int
    customer_booked_liter: int
    progress_percentage: str
    allotted: int
    area: DashboardArea | None


class TodaySlotsResponse(BaseModel):
    """Today's slots and day totals. Totals are display strings."""

    total_count: int
    total_liters_today: str
    total_customer: str
    slots: list[TodaySlotRow]
