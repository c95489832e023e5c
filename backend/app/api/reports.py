"""
财务报表API
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session
from typing import List, Literal, Optional
from datetime import date
import io
import logging
from app.api.auth import get_current_user, require_owner
from app.api.bookings import check_version, create_booking_record, get_booking_or_404
from app.api.settings import current_price_table
from app.db.database import get_db
from app.models.report_entry import ReportEntry
from app.models.user import User
from app.schemas.booking import EquipmentBooking, payment_from_columns
from app.schemas.report import (
    AddToReportRequest, ManualReportEntryRequest, ReportEntryCreatedResponse,
    ReportEntryResponse, ReportRoomLine, ReportStatisticsResponse, SalaryResponse,
    TrancheResponse,
)
from app.schemas.settings import PriceTable
from app.services.report_links import add_to_report, remove_from_report, repair_report_links
from app.services.reporting import (
    SalaryResult, Tranche, build_report_csv, filter_entries, summarize, visible_entries,
)

router = APIRouter(prefix="/api/reports", tags=["财务报表"])
logger = logging.getLogger("studio.reports")

MONTH_PATTERN = r"^\d{4}-\d{2}$"


def entry_to_response(entry: ReportEntry) -> ReportEntryResponse:
    return ReportEntryResponse(
        id=entry.id,
        booking_id=entry.booking_id,
        band_name=entry.band_name,
        date=entry.date,
        room_id=entry.room_id,
        room_name=entry.room_name,
        room_bookings=[ReportRoomLine(**line) for line in (entry.room_bookings or [])],
        start_time=entry.start_time,
        end_time=entry.end_time,
        total_hours=entry.total_hours,
        room_price=entry.room_price,
        equipment_price=entry.equipment_price,
        total_price=entry.total_price,
        payment=payment_from_columns(entry.payment_type, entry.cash_amount, entry.card_amount),
        is_resident=entry.is_resident,
        equipment=list(entry.equipment or []),
        equipment_names=list(entry.equipment_names or []),
        equipment_hours=entry.equipment_hours or 0,
        equipment_bookings=[EquipmentBooking(**eb) for eb in (entry.equipment_bookings or [])],
        notes=entry.notes,
        source=entry.source,
        created_by=entry.created_by,
        version=entry.version,
        created_at=entry.created_at,
    )


def tranche_to_response(tranche: Tranche) -> TrancheResponse:
    return TrancheResponse(
        bookings=tranche.bookings,
        revenue=tranche.revenue,
        commission=tranche.commission,
        base_salary=tranche.base_salary,
        total=tranche.total,
    )


def salary_to_response(salary: SalaryResult) -> SalaryResponse:
    return SalaryResponse(
        first_half=tranche_to_response(salary.first_half),
        second_half=tranche_to_response(salary.second_half),
        total=salary.total,
    )


def query_entries(db: Session, user: User, month: Optional[str], room_id: Optional[str],
                  payment_type: Optional[str], search: Optional[str]) -> list:
    """当前用户可见、并按条件筛选后的报表记录"""
    query = db.query(ReportEntry)
    if month:
        query = query.filter(ReportEntry.date.like(f"{month}-%"))
    entries = visible_entries(query.all(), user.email, user.is_owner)
    return filter_entries(entries, month=month, room_id=room_id, payment_type=payment_type, search=search)


@router.get("/entries", response_model=List[ReportEntryResponse])
def get_report_entries(
    month: Optional[str] = Query(None, pattern=MONTH_PATTERN, description="月份 yyyy-MM"),
    room_id: Optional[str] = Query(None, description="房间ID"),
    payment_type: Optional[str] = Query(None, description="支付方式"),
    search: Optional[str] = Query(None, description="乐队名称"),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    """获取报表记录（管理员只能看到自己的记录）"""
    entries = query_entries(db, user, month, room_id, payment_type, search)
    return [entry_to_response(e) for e in entries]


@router.post("/entries", response_model=ReportEntryCreatedResponse)
def create_manual_entry(
    data: ManualReportEntryRequest,
    db: Session = Depends(get_db),
    price_table: PriceTable = Depends(current_price_table),
    user: User = Depends(get_current_user)
):
    """直接录入一条报表记录，同时创建对应的预约"""
    try:
        booking, check = create_booking_record(db, data, user, price_table)
    except HTTPException:
        db.rollback()
        raise
    entry = add_to_report(db, booking, user.email, price_table)
    return ReportEntryCreatedResponse(entry=entry_to_response(entry), warnings=check.warnings)


@router.post("/bookings/{booking_id}", response_model=ReportEntryResponse)
def add_booking_to_report(
    booking_id: int,
    request: Optional[AddToReportRequest] = None,
    db: Session = Depends(get_db),
    price_table: PriceTable = Depends(current_price_table),
    user: User = Depends(get_current_user)
):
    """把预约加入报表，提成计入当前员工"""
    booking = get_booking_or_404(db, booking_id)
    check_version(booking.version, request.booking_version if request else None)
    if booking.status == "cancelled":
        raise HTTPException(status_code=400, detail="已取消的预约不能加入报表")
    if booking.report_status == "reported" and booking.report_id is not None:
        existing = db.query(ReportEntry).filter(ReportEntry.id == booking.report_id).first()
        if existing is not None:
            raise HTTPException(status_code=400, detail="预约已在报表中")

    entry = add_to_report(db, booking, user.email, price_table)
    return entry_to_response(entry)


@router.post("/bookings/{booking_id}/reject")
def reject_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    """标记预约不计入报表"""
    booking = get_booking_or_404(db, booking_id)
    if booking.report_status == "reported":
        raise HTTPException(status_code=400, detail="预约已在报表中，请先移出报表")
    booking.report_status = "rejected"
    db.commit()
    logger.info("%s 标记预约 %s 不计入报表", user.email, booking.id)
    return {"message": "已标记为不计入报表"}


@router.delete("/entries/{entry_id}")
def delete_report_entry(
    entry_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    """从报表中移除记录，原预约恢复为待报"""
    entry = db.query(ReportEntry).filter(ReportEntry.id == entry_id).first()
    if not entry:
        raise HTTPException(status_code=404, detail="报表记录不存在")
    if not user.is_owner and entry.created_by != user.email:
        raise HTTPException(status_code=403, detail="只能移除自己的报表记录")

    remove_from_report(db, entry)
    return {"message": "已从报表中移除"}


@router.post("/repair-links")
def repair_links(
    db: Session = Depends(get_db),
    owner: User = Depends(require_owner)
):
    """以报表记录为准修复预约的报表状态"""
    fixed = repair_report_links(db)
    return {"message": f"已修复 {fixed} 条预约", "fixed_count": fixed}


@router.get("/statistics", response_model=ReportStatisticsResponse)
def get_report_statistics(
    month: Optional[str] = Query(None, pattern=MONTH_PATTERN, description="月份 yyyy-MM，不填则使用本月"),
    room_id: Optional[str] = Query(None, description="房间ID"),
    payment_type: Optional[str] = Query(None, description="支付方式"),
    search: Optional[str] = Query(None, description="乐队名称"),
    attribution: Literal["primary", "split"] = Query("primary", description="多房间记录的营业额归属方式"),
    db: Session = Depends(get_db),
    price_table: PriceTable = Depends(current_price_table),
    user: User = Depends(get_current_user)
):
    """月度统计与工资"""
    if month is None:
        month = date.today().strftime("%Y-%m")
    entries = query_entries(db, user, month, room_id, payment_type, search)
    stats = summarize(entries, price_table.rooms, user.email, user.is_owner, attribution)
    return ReportStatisticsResponse(
        month=month,
        total_revenue=stats.total_revenue,
        total_hours=stats.total_hours,
        total_bookings=stats.total_bookings,
        resident_bookings=stats.resident_bookings,
        revenue_by_room=[vars(item) for item in stats.revenue_by_room],
        revenue_by_payment_type=[vars(item) for item in stats.revenue_by_payment_type],
        salary=salary_to_response(stats.salary),
        salary_by_staff=[
            {"staff": s.staff, "bookings_count": s.bookings_count, "salary": salary_to_response(s.salary)}
            for s in stats.salary_by_staff
        ],
    )


@router.get("/export")
def export_report(
    month: Optional[str] = Query(None, pattern=MONTH_PATTERN, description="月份 yyyy-MM，不填则使用本月"),
    room_id: Optional[str] = Query(None, description="房间ID"),
    payment_type: Optional[str] = Query(None, description="支付方式"),
    search: Optional[str] = Query(None, description="乐队名称"),
    db: Session = Depends(get_db),
    price_table: PriceTable = Depends(current_price_table),
    user: User = Depends(get_current_user)
):
    """导出报表CSV"""
    if month is None:
        month = date.today().strftime("%Y-%m")
    entries = query_entries(db, user, month, room_id, payment_type, search)
    csv_content = build_report_csv(entries, price_table.rooms, price_table.equipment, include_price=user.is_owner)

    return StreamingResponse(
        io.BytesIO(csv_content.encode("utf-8-sig")),
        media_type="text/csv",
        headers={
            "Content-Disposition": f"attachment; filename=report_{month}.csv"
        }
    )
