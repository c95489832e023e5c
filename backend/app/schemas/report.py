"""
报表相关的Pydantic模型
"""
from pydantic import BaseModel, Field, field_serializer
from typing import List, Optional
from datetime import datetime
from decimal import Decimal
from app.schemas.booking import BookingInput, EquipmentBooking, Payment
from app.schemas.common import format_datetime_local


class ReportRoomLine(BaseModel):
    """报表记录中的房间明细"""
    room_id: str
    room_name: Optional[str] = None
    hours: int
    price: Decimal = Decimal("0")


class ReportEntryResponse(BaseModel):
    """报表记录响应模型"""
    id: int
    booking_id: Optional[int] = None
    band_name: str
    date: str
    room_id: str
    room_name: str
    room_bookings: List[ReportRoomLine]
    start_time: str
    end_time: str
    total_hours: int
    room_price: Decimal
    equipment_price: Decimal
    total_price: Decimal
    payment: Payment
    is_resident: bool
    equipment: List[str]
    equipment_names: List[str]
    equipment_hours: int = 0
    equipment_bookings: List[EquipmentBooking] = Field(default_factory=list)
    notes: Optional[str] = None
    source: str
    created_by: str
    version: int
    created_at: datetime

    @field_serializer('created_at')
    def serialize_datetime(self, dt: datetime) -> Optional[str]:
        return format_datetime_local(dt)


class AddToReportRequest(BaseModel):
    """预约加入报表"""
    booking_version: Optional[int] = Field(None, description="预约版本号")


class ManualReportEntryRequest(BookingInput):
    """直接录入报表（同时创建预约）"""
    pass


class ReportEntryCreatedResponse(BaseModel):
    entry: ReportEntryResponse
    warnings: List[str] = Field(default_factory=list)


class TrancheResponse(BaseModel):
    """半月工资"""
    bookings: int
    revenue: Decimal
    commission: Decimal
    base_salary: Decimal
    total: Decimal


class SalaryResponse(BaseModel):
    first_half: TrancheResponse
    second_half: TrancheResponse
    total: Decimal


class StaffSalaryResponse(BaseModel):
    staff: str
    bookings_count: int
    salary: SalaryResponse


class RoomRevenueResponse(BaseModel):
    room_id: str
    room_name: str
    revenue: Decimal
    hours: int


class PaymentRevenueResponse(BaseModel):
    payment_type: str
    label: str
    revenue: Decimal
    count: int


class ReportStatisticsResponse(BaseModel):
    """报表统计响应模型"""
    month: Optional[str] = Field(None, description="月份 yyyy-MM")
    total_revenue: Decimal = Field(..., description="总营业额")
    total_hours: int = Field(..., description="总小时数")
    total_bookings: int = Field(..., description="记录数")
    resident_bookings: int = Field(..., description="常驻乐队记录数")
    revenue_by_room: List[RoomRevenueResponse]
    revenue_by_payment_type: List[PaymentRevenueResponse]
    salary: SalaryResponse
    salary_by_staff: List[StaffSalaryResponse] = Field(default_factory=list, description="各员工工资（仅所有者）")
