"""
外部日历事件转换为临时预约

日历本身的授权和拉取不在本服务内，这里只负责把事件数据变成
一条未保存的预约草稿（ID以 temp- 开头），由员工确认后再保存。
"""
from typing import Optional

from app.schemas.booking import (
    BookingResponse, CalendarEventDraftRequest, CashPayment, RoomBooking,
)
from app.services.tariffs import billable_hours

DRAFT_ID = "temp-calendar-event"
DEFAULT_ROOM_ID = "standart"


def detect_room(calendar_id: Optional[str], calendar_name: Optional[str]) -> Optional[str]:
    """根据日历ID或名称判断房间"""
    calendar_id = (calendar_id or "").lower()
    calendar_name = (calendar_name or "").lower()
    if "main" in calendar_id or "main" in calendar_name:
        return "main"
    if "standart" in calendar_id or "standart" in calendar_name:
        return "standart"
    return None


def draft_from_event(event: CalendarEventDraftRequest, created_by: Optional[str] = None) -> BookingResponse:
    hours = max(billable_hours(event.start_time, event.end_time), 1)
    room_id = detect_room(event.calendar_id, event.calendar_name) or DEFAULT_ROOM_ID
    return BookingResponse(
        id=DRAFT_ID,
        band_name=(event.summary or "").strip() or "Без назви",
        date=event.date,
        start_time=event.start_time,
        end_time=event.end_time,
        room_id=room_id,
        room_bookings=[RoomBooking(room_id=room_id, hours=min(hours, 24))],
        is_resident=False,
        equipment=[],
        payment=CashPayment(),
        total_hours=min(hours, 24),
        total_price=0,
        notes=event.description,
        source="calendar",
        created_by=created_by,
    )
