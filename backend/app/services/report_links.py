"""
预约与报表记录之间的双向关联

报表记录是权威数据：预约上的 report_status / report_id 只是缓存，
加入和移出报表都在同一个数据库事务中同时修改两边。
"""
import logging
from decimal import Decimal
from typing import Iterable, List, Optional, Set

from sqlalchemy.orm import Session

from app.models.booking import Booking
from app.models.report_entry import ReportEntry
from app.schemas.booking import EquipmentBooking, RoomBooking
from app.schemas.settings import PriceTable
from app.services.pricing import PriceCalculation, calculate_booking_price
from app.services.tariffs import ZERO, to_money

logger = logging.getLogger("studio.reports")


def booking_calculation(booking: Booking, price_table: PriceTable) -> PriceCalculation:
    """按当前价格表重新计算预约的价格明细"""
    return calculate_booking_price(
        price_table,
        booking.date,
        booking.start_time,
        booking.end_time,
        booking.is_resident,
        [RoomBooking(**rb) for rb in (booking.room_bookings or [])],
        booking.equipment or [],
        [EquipmentBooking(**eb) for eb in booking.equipment_bookings] if booking.equipment_bookings else None,
    )


def allocate_room_prices(prices: List[Decimal], room_price: Decimal) -> List[Decimal]:
    """
    把房费按各房间计算价格的比例分摊，结果之和等于 room_price
    分摊的尾差计入最后一个房间；各房间价格都为0时全部计入第一个房间
    """
    if not prices:
        return []
    room_price = to_money(room_price)
    computed = sum(prices, ZERO)
    if computed <= 0:
        return [room_price] + [ZERO] * (len(prices) - 1)

    result = [to_money(price * room_price / computed) for price in prices[:-1]]
    result.append(room_price - sum(result, ZERO))
    return result


def _apply_snapshot(entry: ReportEntry, booking: Booking, price_table: PriceTable) -> None:
    calc = booking_calculation(booking, price_table)
    primary = price_table.find_room(booking.room_id)
    total_price = to_money(booking.total_price or 0)

    entry.booking_id = booking.id
    entry.band_name = booking.band_name
    entry.date = booking.date
    entry.room_id = booking.room_id
    entry.room_name = primary.name if primary else booking.room_id
    entry.start_time = booking.start_time
    entry.end_time = booking.end_time
    entry.total_hours = booking.total_hours
    entry.total_price = total_price
    # 预约总价可能是按旧价格保存的，房费取差额以保证 房费 + 设备费 = 总价
    entry.equipment_price = min(calc.equipment_price, total_price)
    entry.room_price = total_price - entry.equipment_price
    room_prices = allocate_room_prices([line.price for line in calc.rooms], entry.room_price)
    entry.room_bookings = [
        {"room_id": line.room_id, "room_name": line.room_name, "hours": line.hours, "price": str(price)}
        for line, price in zip(calc.rooms, room_prices)
    ]
    entry.payment_type = booking.payment_type
    entry.cash_amount = booking.cash_amount
    entry.card_amount = booking.card_amount
    entry.is_resident = booking.is_resident
    entry.equipment = list(booking.equipment or [])
    entry.equipment_names = [line.name for line in calc.equipment]
    entry.equipment_hours = booking.equipment_hours or 0
    entry.equipment_bookings = list(booking.equipment_bookings or [])
    entry.notes = booking.notes
    entry.source = booking.source or "manual"


def add_to_report(db: Session, booking: Booking, staff_email: str, price_table: PriceTable) -> ReportEntry:
    """预约加入报表：生成快照并标记预约为已报"""
    entry = ReportEntry(created_by=staff_email)
    _apply_snapshot(entry, booking, price_table)
    db.add(entry)
    try:
        db.flush()
        booking.report_status = "reported"
        booking.report_id = entry.id
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(entry)
    logger.info("预约 %s 已加入报表 %s (%s)", booking.id, entry.id, staff_email)
    return entry


def remove_from_report(db: Session, entry: ReportEntry) -> Optional[Booking]:
    """删除报表记录，并把原预约恢复为待报"""
    booking = None
    if entry.booking_id is not None:
        booking = db.query(Booking).filter(Booking.id == entry.booking_id).first()
    try:
        if booking is not None and booking.report_id in (None, entry.id):
            booking.report_status = "pending"
            booking.report_id = None
        db.delete(entry)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("报表记录 %s 已删除，关联预约 %s", entry.id, entry.booking_id)
    return booking


def sync_report_entry(db: Session, booking: Booking, price_table: PriceTable) -> Optional[ReportEntry]:
    """预约修改后同步更新其报表记录（不提交事务）"""
    if booking.report_id is None:
        return None
    entry = db.query(ReportEntry).filter(ReportEntry.id == booking.report_id).first()
    if entry is None:
        logger.warning("预约 %s 指向的报表记录 %s 不存在", booking.id, booking.report_id)
        return None
    _apply_snapshot(entry, booking, price_table)
    return entry


def detach_report_entries(db: Session, booking: Booking) -> int:
    """预约删除前断开报表记录的关联，快照保留（不提交事务）"""
    entries = db.query(ReportEntry).filter(ReportEntry.booking_id == booking.id).all()
    for entry in entries:
        entry.booking_id = None
    return len(entries)


def existing_report_ids(db: Session, report_ids: Iterable[Optional[int]]) -> Set[int]:
    ids = {rid for rid in report_ids if rid is not None}
    if not ids:
        return set()
    rows = db.query(ReportEntry.id).filter(ReportEntry.id.in_(ids)).all()
    return {row[0] for row in rows}


def effective_report_status(booking: Booking, report_ids: Set[int]):
    """读取时的报表状态：已报但报表记录不存在时视为待报"""
    if booking.report_status == "reported" and booking.report_id not in report_ids:
        return "pending", None
    return booking.report_status or "pending", booking.report_id


def repair_report_links(db: Session) -> int:
    """以报表记录为准修复预约上的报表状态，返回修复数量"""
    fixed = 0
    entries_by_booking = {}
    for entry in db.query(ReportEntry).filter(ReportEntry.booking_id.isnot(None)).all():
        entries_by_booking.setdefault(entry.booking_id, []).append(entry)

    for booking in db.query(Booking).all():
        entries = entries_by_booking.get(booking.id, [])
        # 同一预约有多条记录时优先保留预约当前指向的那条
        entry = next((e for e in entries if e.id == booking.report_id), entries[0] if entries else None)
        if entry is not None:
            if booking.report_status != "reported" or booking.report_id != entry.id:
                booking.report_status = "reported"
                booking.report_id = entry.id
                fixed += 1
        elif booking.report_status == "reported" or booking.report_id is not None:
            booking.report_status = "pending"
            booking.report_id = None
            fixed += 1

    if fixed:
        db.commit()
        logger.info("已修复 %s 条预约的报表状态", fixed)
    return fixed
