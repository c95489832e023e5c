"""
预约管理API
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError
from typing import List, Optional
from datetime import date, datetime, timezone
import logging
from app.api.auth import get_current_user
from app.api.settings import current_price_table
from app.db.database import get_db
from app.models.booking import Booking
from app.models.user import User
from app.schemas.booking import (
    BookingCancel, BookingCreate, BookingDraftResponse, BookingInput, BookingResponse,
    BookingUpdate, CalendarEventDraftRequest, EquipmentBooking, EquipmentPriceLineResponse,
    QuoteResponse, RoomBooking, RoomPriceLineResponse, payment_from_columns, payment_to_columns,
)
from app.schemas.settings import PriceTable
from app.services.calendar_import import draft_from_event
from app.services.pricing import BookingCheck, PriceCalculation, calculate_booking_price, check_booking
from app.services.report_links import (
    detach_report_entries, effective_report_status, existing_report_ids, sync_report_entry,
)

router = APIRouter(prefix="/api/bookings", tags=["预约管理"])
logger = logging.getLogger("studio.bookings")


def calculate_input(data: BookingInput, price_table: PriceTable) -> PriceCalculation:
    return calculate_booking_price(
        price_table,
        data.date,
        data.start_time,
        data.end_time,
        data.is_resident,
        data.room_bookings,
        data.equipment,
        data.equipment_bookings,
    )


def build_quote(calc: PriceCalculation, check: BookingCheck, is_resident: bool) -> QuoteResponse:
    return QuoteResponse(
        base_hours=calc.base_hours,
        total_hours=calc.total_hours,
        equipment_hours=calc.equipment_hours,
        room_price=calc.room_price,
        equipment_price=calc.equipment_price,
        total_price=calc.total_price,
        hourly_rate=calc.hourly_rate,
        is_evening_rate=calc.is_evening_rate,
        tariff_label=calc.tariff_label(is_resident),
        rooms=[
            RoomPriceLineResponse(
                room_id=line.room_id,
                room_name=line.room_name,
                hours=line.hours,
                day_hours=line.breakdown.day_hours,
                evening_hours=line.breakdown.evening_hours,
                day_rate=line.breakdown.day_rate,
                evening_rate=line.breakdown.evening_rate,
                price=line.price,
            )
            for line in calc.rooms
        ],
        equipment=[
            EquipmentPriceLineResponse(
                equipment_id=line.equipment_id,
                name=line.name,
                hours=line.hours,
                price_per_hour=line.price_per_hour,
                price=line.price,
            )
            for line in calc.equipment
        ],
        errors=check.errors,
        warnings=check.warnings,
    )


def booking_to_response(booking: Booking, report_ids=None, warnings=None) -> BookingResponse:
    """ORM对象转换为响应，报表状态按报表记录是否存在修正"""
    if report_ids is None:
        report_status, report_id = booking.report_status, booking.report_id
    else:
        report_status, report_id = effective_report_status(booking, report_ids)
    return BookingResponse(
        id=booking.id,
        band_name=booking.band_name,
        date=booking.date,
        start_time=booking.start_time,
        end_time=booking.end_time,
        room_id=booking.room_id,
        room_bookings=[RoomBooking(**rb) for rb in (booking.room_bookings or [])],
        is_resident=booking.is_resident,
        equipment=list(booking.equipment or []),
        equipment_bookings=[EquipmentBooking(**eb) for eb in booking.equipment_bookings]
        if booking.equipment_bookings else None,
        payment=payment_from_columns(booking.payment_type, booking.cash_amount, booking.card_amount),
        total_hours=booking.total_hours,
        equipment_hours=booking.equipment_hours or 0,
        total_price=booking.total_price,
        notes=booking.notes,
        source=booking.source,
        status=booking.status,
        report_status=report_status,
        report_id=report_id,
        created_by=booking.created_by,
        version=booking.version,
        created_at=booking.created_at,
        updated_at=booking.updated_at,
        warnings=warnings or [],
    )


def apply_input(booking: Booking, data: BookingInput, calc: PriceCalculation) -> None:
    """把输入和计价结果写入ORM对象，可选字段统一写为None而不是缺省"""
    booking.band_name = data.band_name
    booking.date = data.date
    booking.start_time = data.start_time
    booking.end_time = data.end_time
    booking.room_id = data.room_bookings[0].room_id
    booking.room_bookings = [rb.model_dump() for rb in data.room_bookings]
    booking.is_resident = data.is_resident
    booking.equipment = list(data.equipment)
    booking.equipment_bookings = [eb.model_dump() for eb in data.equipment_bookings] if data.equipment_bookings else None
    for field, value in payment_to_columns(data.payment).items():
        setattr(booking, field, value)
    booking.total_hours = calc.total_hours
    booking.equipment_hours = calc.equipment_hours
    booking.total_price = calc.total_price
    booking.notes = data.notes or None
    booking.source = data.source


def validated_calculation(data: BookingInput, price_table: PriceTable):
    """计价并检查，有错误时返回400"""
    calc = calculate_input(data, price_table)
    check = check_booking(data.band_name, data.room_bookings, data.payment, calc.total_price)
    if not check.ok:
        raise HTTPException(status_code=400, detail="；".join(check.errors))
    return calc, check


def create_booking_record(db: Session, data: BookingInput, user: User, price_table: PriceTable):
    """创建预约（不提交事务），返回 (预约, 检查结果)"""
    calc, check = validated_calculation(data, price_table)
    booking = Booking(created_by=user.email, report_status="pending", status="active")
    apply_input(booking, data, calc)
    db.add(booking)
    db.flush()
    return booking, check


def get_booking_or_404(db: Session, booking_id: int) -> Booking:
    booking = db.query(Booking).filter(Booking.id == booking_id).first()
    if not booking:
        raise HTTPException(status_code=404, detail="预约不存在")
    return booking


def check_version(current: int, expected: Optional[int]) -> None:
    if expected is not None and expected != current:
        raise HTTPException(status_code=409, detail="记录已被其他人修改，请刷新后重试")


@router.get("", response_model=List[BookingResponse])
def get_bookings(
    start_date: Optional[date] = Query(None, description="开始日期"),
    end_date: Optional[date] = Query(None, description="结束日期"),
    report_status: Optional[str] = Query(None, description="报表状态：pending, reported, rejected"),
    include_cancelled: bool = Query(False, description="是否包含已取消"),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    """获取预约列表"""
    query = db.query(Booking)
    if start_date:
        query = query.filter(Booking.date >= start_date.isoformat())
    if end_date:
        query = query.filter(Booking.date <= end_date.isoformat())
    if not include_cancelled:
        query = query.filter(Booking.status == "active")
    bookings = query.order_by(Booking.date, Booking.start_time).all()

    report_ids = existing_report_ids(db, (b.report_id for b in bookings))
    result = [booking_to_response(b, report_ids) for b in bookings]
    if report_status:
        result = [b for b in result if b.report_status == report_status]
    return result


@router.post("/quote", response_model=QuoteResponse)
def quote_booking(
    data: BookingInput,
    price_table: PriceTable = Depends(current_price_table),
    user: User = Depends(get_current_user)
):
    """计算价格（不保存）"""
    calc = calculate_input(data, price_table)
    check = check_booking(data.band_name, data.room_bookings, data.payment, calc.total_price)
    return build_quote(calc, check, data.is_resident)


@router.post("/draft-from-event", response_model=BookingDraftResponse)
def draft_booking_from_event(
    event: CalendarEventDraftRequest,
    price_table: PriceTable = Depends(current_price_table),
    user: User = Depends(get_current_user)
):
    """把外部日历事件转换为临时预约（不保存）"""
    draft = draft_from_event(event, user.email)
    data = BookingInput(
        band_name=draft.band_name,
        date=draft.date,
        start_time=draft.start_time,
        end_time=draft.end_time,
        room_bookings=draft.room_bookings,
        source="calendar",
    )
    calc = calculate_input(data, price_table)
    draft.total_price = calc.total_price
    check = check_booking(data.band_name, data.room_bookings, data.payment, calc.total_price)
    return BookingDraftResponse(booking=draft, quote=build_quote(calc, check, False))


@router.get("/{booking_id}", response_model=BookingResponse)
def get_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    """获取预约详情"""
    booking = get_booking_or_404(db, booking_id)
    return booking_to_response(booking, existing_report_ids(db, [booking.report_id]))


@router.post("", response_model=BookingResponse)
def create_booking(
    data: BookingCreate,
    db: Session = Depends(get_db),
    price_table: PriceTable = Depends(current_price_table),
    user: User = Depends(get_current_user)
):
    """创建预约"""
    try:
        booking, check = create_booking_record(db, data, user, price_table)
        db.commit()
    except HTTPException:
        db.rollback()
        raise
    db.refresh(booking)
    logger.info("%s 创建预约 %s: %s %s", user.email, booking.id, booking.date, booking.band_name)
    return booking_to_response(booking, warnings=check.warnings)


@router.put("/{booking_id}", response_model=BookingResponse)
def update_booking(
    booking_id: int,
    data: BookingUpdate,
    db: Session = Depends(get_db),
    price_table: PriceTable = Depends(current_price_table),
    user: User = Depends(get_current_user)
):
    """修改预约，已加入报表的预约会同步更新报表记录"""
    booking = get_booking_or_404(db, booking_id)
    check_version(booking.version, data.version)
    calc, check = validated_calculation(data, price_table)

    apply_input(booking, data, calc)
    entry = sync_report_entry(db, booking, price_table)
    if entry is None and booking.report_status == "reported":
        booking.report_status = "pending"
        booking.report_id = None
    try:
        db.commit()
    except StaleDataError:
        db.rollback()
        raise HTTPException(status_code=409, detail="记录已被其他人修改，请刷新后重试")
    db.refresh(booking)
    logger.info("%s 修改预约 %s", user.email, booking.id)
    return booking_to_response(booking, warnings=check.warnings)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
def cancel_booking(
    booking_id: int,
    request: Optional[BookingCancel] = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    """取消预约"""
    booking = get_booking_or_404(db, booking_id)
    check_version(booking.version, request.version if request else None)
    if booking.status == "cancelled":
        raise HTTPException(status_code=400, detail="预约已取消")

    booking.status = "cancelled"
    booking.cancelled_at = datetime.now(timezone.utc)
    booking.cancelled_by = user.email
    db.commit()
    db.refresh(booking)
    logger.info("%s 取消预约 %s", user.email, booking.id)
    return booking_to_response(booking)


@router.delete("/{booking_id}")
def delete_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    """删除预约，报表记录保留但不再指向该预约"""
    booking = get_booking_or_404(db, booking_id)
    try:
        detach_report_entries(db, booking)
        db.delete(booking)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("%s 删除预约 %s", user.email, booking_id)
    return {"message": "预约已删除"}
