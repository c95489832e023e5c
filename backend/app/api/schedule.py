"""
工作时间API
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
import json
import logging
from app.api.auth import get_current_user, require_owner
from app.db.database import get_db
from app.models.app_setting import AppSetting
from app.models.booking import Booking
from app.models.user import User
from app.services.schedule import (
    ScheduleSettings, TimeSlot, default_schedule, generate_time_slots,
    js_weekday, working_hours_for_day,
)
from app.services.tariffs import parse_date

router = APIRouter(prefix="/api/schedule", tags=["工作时间"])
logger = logging.getLogger("studio.schedule")

SCHEDULE_KEY = "schedule"


def load_schedule(db: Session) -> ScheduleSettings:
    """读取工作时间，不存在时写入默认值"""
    setting = db.query(AppSetting).filter(AppSetting.key == SCHEDULE_KEY).first()
    if setting is None:
        schedule = default_schedule()
        db.add(AppSetting(key=SCHEDULE_KEY, value=schedule.model_dump_json(), description="工作时间"))
        db.commit()
        return schedule
    return ScheduleSettings.model_validate(json.loads(setting.value))


@router.get("", response_model=ScheduleSettings)
def get_schedule(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """获取工作时间"""
    return load_schedule(db)


@router.put("", response_model=ScheduleSettings)
def update_schedule(
    settings: ScheduleSettings,
    db: Session = Depends(get_db),
    owner: User = Depends(require_owner)
):
    """更新工作时间"""
    setting = db.query(AppSetting).filter(AppSetting.key == SCHEDULE_KEY).first()
    if setting is None:
        setting = AppSetting(key=SCHEDULE_KEY, value="", description="工作时间")
        db.add(setting)
    setting.value = settings.model_dump_json()
    setting.updated_by = owner.email
    db.commit()
    logger.info("工作时间已更新: %s", owner.email)
    return settings


@router.get("/slots", response_model=List[TimeSlot])
def get_time_slots(
    target_date: str = Query(..., alias="date", description="日期 yyyy-MM-dd"),
    room_id: Optional[str] = Query(None, description="房间ID，不填则考虑全部房间"),
    duration: Optional[int] = Query(None, ge=1, le=24, description="时长（小时）"),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    """获取某天的可预约时段"""
    day = parse_date(target_date)
    if day is None:
        return []
    schedule = load_schedule(db)
    hours = working_hours_for_day(schedule, js_weekday(day.weekday()))
    if hours is None:
        return []

    bookings = db.query(Booking).filter(
        Booking.date == day.isoformat(),
        Booking.status == "active"
    ).all()
    existing = [
        (b.start_time, b.end_time) for b in bookings
        if room_id is None or any(rb.get("room_id") == room_id for rb in (b.room_bookings or []))
    ]
    return generate_time_slots(hours, duration or schedule.default_duration, existing, schedule.buffer_minutes)
