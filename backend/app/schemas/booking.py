"""
预约相关的Pydantic模型
"""
from pydantic import BaseModel, Field, field_serializer, field_validator
from typing import Annotated, List, Literal, Optional, Union
from datetime import datetime
from decimal import Decimal
from app.schemas.common import format_datetime_local

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"
DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


class RoomBooking(BaseModel):
    """房间及其小时数"""
    room_id: str = Field(..., description="房间ID")
    hours: int = Field(..., ge=1, le=24, description="小时数")


class EquipmentBooking(BaseModel):
    """设备及其独立小时数"""
    equipment_id: str = Field(..., description="设备ID")
    hours: int = Field(..., ge=1, le=24, description="小时数")


class CashPayment(BaseModel):
    """现金支付"""
    type: Literal["cash"] = "cash"


class CardPayment(BaseModel):
    """刷卡支付"""
    type: Literal["card"] = "card"


class MixedPayment(BaseModel):
    """现金 + 刷卡"""
    type: Literal["mixed"] = "mixed"
    cash_amount: Decimal = Field(..., ge=0, description="现金部分")
    card_amount: Decimal = Field(..., ge=0, description="刷卡部分")


Payment = Annotated[Union[CashPayment, CardPayment, MixedPayment], Field(discriminator="type")]

PAYMENT_LABELS = {
    "cash": "Готівка",
    "card": "Картка",
    "mixed": "Готівка + Картка",
}


def payment_from_columns(payment_type: str, cash_amount=None, card_amount=None):
    """由数据库字段还原支付方式"""
    if payment_type == "mixed":
        return MixedPayment(cash_amount=cash_amount or 0, card_amount=card_amount or 0)
    if payment_type == "card":
        return CardPayment()
    return CashPayment()


def payment_to_columns(payment) -> dict:
    """支付方式拆成数据库字段，非混合支付时金额为空"""
    if isinstance(payment, MixedPayment):
        return {"payment_type": "mixed", "cash_amount": payment.cash_amount, "card_amount": payment.card_amount}
    return {"payment_type": payment.type, "cash_amount": None, "card_amount": None}


class BookingInput(BaseModel):
    """预约输入（创建、报价共用）"""
    band_name: str = Field("", description="乐队名称", max_length=200)
    date: str = Field(..., description="日期 yyyy-MM-dd", pattern=DATE_PATTERN)
    start_time: str = Field(..., description="开始时间 HH:mm", pattern=TIME_PATTERN)
    end_time: str = Field(..., description="结束时间 HH:mm", pattern=TIME_PATTERN)
    room_bookings: List[RoomBooking] = Field(default_factory=list, description="房间列表，第一个为主房间")
    is_resident: bool = Field(False, description="是否常驻乐队")
    equipment: List[str] = Field(default_factory=list, description="设备ID列表")
    equipment_bookings: Optional[List[EquipmentBooking]] = Field(None, description="设备独立小时数")
    payment: Payment = Field(default_factory=CashPayment, description="支付方式")
    notes: Optional[str] = Field(None, description="备注")
    source: Literal["manual", "calendar", "telegram"] = Field("manual", description="来源")

    @field_validator("band_name")
    @classmethod
    def strip_band_name(cls, value: str) -> str:
        return value.strip()

    @field_validator("room_bookings")
    @classmethod
    def unique_rooms(cls, value: List[RoomBooking]) -> List[RoomBooking]:
        seen = set()
        for item in value:
            if item.room_id in seen:
                raise ValueError(f"房间重复: {item.room_id}")
            seen.add(item.room_id)
        return value


class BookingCreate(BookingInput):
    """创建预约"""
    pass


class BookingUpdate(BookingInput):
    """更新预约（整条替换）"""
    version: Optional[int] = Field(None, description="客户端持有的版本号，不一致时返回409")


class BookingCancel(BaseModel):
    """取消预约"""
    version: Optional[int] = Field(None, description="版本号")


class CalendarEventDraftRequest(BaseModel):
    """外部日历事件"""
    summary: Optional[str] = Field(None, description="事件标题")
    description: Optional[str] = Field(None, description="事件描述")
    date: str = Field(..., pattern=DATE_PATTERN)
    start_time: str = Field(..., pattern=TIME_PATTERN)
    end_time: str = Field(..., pattern=TIME_PATTERN)
    calendar_id: Optional[str] = Field(None, description="日历ID")
    calendar_name: Optional[str] = Field(None, description="日历名称")


class RoomPriceLineResponse(BaseModel):
    """单个房间计价"""
    room_id: str
    room_name: str
    hours: int
    day_hours: Decimal
    evening_hours: Decimal
    day_rate: Decimal
    evening_rate: Decimal
    price: Decimal


class EquipmentPriceLineResponse(BaseModel):
    """单个设备计价"""
    equipment_id: str
    name: str
    hours: int
    price_per_hour: Decimal
    price: Decimal


class QuoteResponse(BaseModel):
    """报价结果"""
    base_hours: int = Field(..., description="时段小时数（向上取整）")
    total_hours: int = Field(..., description="各房间小时之和")
    equipment_hours: int
    room_price: Decimal
    equipment_price: Decimal
    total_price: Decimal
    hourly_rate: Decimal = Field(..., description="平均每小时房价")
    is_evening_rate: bool
    tariff_label: str
    rooms: List[RoomPriceLineResponse]
    equipment: List[EquipmentPriceLineResponse]
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class BookingResponse(BaseModel):
    """预约响应模型"""
    id: Union[int, str]
    band_name: str
    date: str
    start_time: str
    end_time: str
    room_id: Optional[str] = None
    room_bookings: List[RoomBooking]
    is_resident: bool
    equipment: List[str]
    equipment_bookings: Optional[List[EquipmentBooking]] = None
    payment: Payment
    total_hours: int
    equipment_hours: int = 0
    total_price: Decimal
    notes: Optional[str] = None
    source: str
    status: str = "active"
    report_status: str = "pending"
    report_id: Optional[int] = None
    created_by: Optional[str] = None
    version: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    warnings: List[str] = Field(default_factory=list)

    @field_serializer('created_at', 'updated_at')
    def serialize_datetime(self, dt: datetime) -> Optional[str]:
        return format_datetime_local(dt)


class BookingDraftResponse(BaseModel):
    """日历事件转换的临时预约"""
    booking: BookingResponse
    quote: QuoteResponse
