"""
工作时间与可预约时段
"""
from typing import List, Optional, Sequence

from pydantic import BaseModel, Field

from app.services.tariffs import format_minutes, parse_time


class WorkingHours(BaseModel):
    """某个星期几的营业时间，0=周日 ... 6=周六"""
    day_of_week: int = Field(..., ge=0, le=6)
    open_time: str = Field("10:00")
    close_time: str = Field("23:00")
    is_open: bool = True


class ScheduleSettings(BaseModel):
    working_hours: List[WorkingHours]
    default_duration: int = Field(2, ge=1, le=24, description="默认排练时长（小时）")
    buffer_minutes: int = Field(0, ge=0, le=240, description="两场之间的间隔（分钟）")


class TimeSlot(BaseModel):
    time: str
    available: bool


def default_schedule() -> ScheduleSettings:
    return ScheduleSettings(
        working_hours=[WorkingHours(day_of_week=d) for d in (1, 2, 3, 4, 5, 6, 0)],
        default_duration=2,
        buffer_minutes=0,
    )


def js_weekday(python_weekday: int) -> int:
    """Python的星期（0=周一）转换为 0=周日 的编号"""
    return (python_weekday + 1) % 7


def working_hours_for_day(settings: ScheduleSettings, day_of_week: int) -> Optional[WorkingHours]:
    for day in settings.working_hours:
        if day.day_of_week == day_of_week:
            return day if day.is_open else None
    return None


def generate_time_slots(working_hours: WorkingHours, duration_hours: int,
                        existing: Sequence[tuple], buffer_minutes: int = 0) -> List[TimeSlot]:
    """
    以一小时为步长生成时段
    existing 为已有预约的 (start_time, end_time)，与之重叠（含间隔）的时段不可用
    """
    open_minutes = parse_time(working_hours.open_time)
    close_minutes = parse_time(working_hours.close_time)
    if open_minutes is None or close_minutes is None:
        return []

    busy = []
    for start, end in existing:
        s, e = parse_time(start), parse_time(end)
        if s is None or e is None:
            continue
        if e <= s:
            e += 24 * 60
        busy.append((s - buffer_minutes, e + buffer_minutes))

    duration = duration_hours * 60
    slots = []
    minutes = open_minutes
    while minutes + duration <= close_minutes:
        slot_end = minutes + duration
        available = not any(minutes < b_end and slot_end > b_start for b_start, b_end in busy)
        slots.append(TimeSlot(time=format_minutes(minutes), available=available))
        minutes += 60
    return slots
