"""
预约总价计算

房间费用按每个房间自己的小时数分别计价后相加；
设备费用有两种方式：
  - 共用小时：所选设备每小时价格之和 × 房间最大小时数（未选房间时用时段小时数）
  - 独立小时：每个设备按自己的小时数计价
常驻折扣只作用于房间，设备价格不受影响。
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional, Sequence

from app.schemas.booking import EquipmentBooking, MixedPayment, RoomBooking
from app.schemas.settings import PriceTable
from app.services.tariffs import (
    ZERO, TariffBreakdown, billable_hours, is_weekend, parse_date,
    resolve_for_hours, tariff_label, to_money,
)


@dataclass(frozen=True)
class RoomPriceLine:
    room_id: str
    room_name: str
    hours: int
    breakdown: TariffBreakdown

    @property
    def price(self) -> Decimal:
        return self.breakdown.total


@dataclass(frozen=True)
class EquipmentPriceLine:
    equipment_id: str
    name: str
    hours: int
    price_per_hour: Decimal

    @property
    def price(self) -> Decimal:
        return to_money(self.price_per_hour * self.hours)


@dataclass(frozen=True)
class PriceCalculation:
    """计价结果"""
    base_hours: int = 0
    total_hours: int = 0
    equipment_hours: int = 0
    rooms: List[RoomPriceLine] = field(default_factory=list)
    equipment: List[EquipmentPriceLine] = field(default_factory=list)
    is_weekend: bool = False

    @property
    def room_price(self) -> Decimal:
        return to_money(sum((line.price for line in self.rooms), ZERO))

    @property
    def equipment_price(self) -> Decimal:
        return to_money(sum((line.price for line in self.equipment), ZERO))

    @property
    def total_price(self) -> Decimal:
        return self.room_price + self.equipment_price

    @property
    def is_evening_rate(self) -> bool:
        return any(line.breakdown.is_evening for line in self.rooms)

    @property
    def hourly_rate(self) -> Decimal:
        if self.total_hours <= 0:
            return ZERO
        return to_money(self.room_price / self.total_hours)

    def tariff_label(self, is_resident: bool) -> str:
        return tariff_label(self.is_evening_rate, is_resident, self.is_weekend)


@dataclass
class BookingCheck:
    """提交前检查：errors 阻止保存，warnings 仅提示"""
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def calculate_booking_price(
    price_table: PriceTable,
    booking_date: Optional[str],
    start_time: Optional[str],
    end_time: Optional[str],
    is_resident: bool,
    room_bookings: Sequence[RoomBooking],
    equipment_ids: Sequence[str] = (),
    equipment_bookings: Optional[Sequence[EquipmentBooking]] = None,
) -> PriceCalculation:
    """计算预约总价，日期无法解析时返回零值结果"""
    if parse_date(booking_date) is None:
        return PriceCalculation()

    base_hours = billable_hours(start_time, end_time)

    rooms = []
    for room_booking in room_bookings:
        room = price_table.find_room(room_booking.room_id)
        breakdown = resolve_for_hours(room, booking_date, start_time, room_booking.hours, is_resident)
        rooms.append(RoomPriceLine(
            room_id=room_booking.room_id,
            room_name=room.name if room else room_booking.room_id,
            hours=room_booking.hours,
            breakdown=breakdown,
        ))

    equipment = []
    if equipment_bookings:
        for item in equipment_bookings:
            eq = price_table.find_equipment(item.equipment_id)
            if eq is None:
                continue
            equipment.append(EquipmentPriceLine(eq.id, eq.name, item.hours, eq.price_per_hour))
        equipment_hours = sum(item.hours for item in equipment_bookings)
    else:
        governing_hours = max((rb.hours for rb in room_bookings), default=base_hours)
        for equipment_id in equipment_ids:
            eq = price_table.find_equipment(equipment_id)
            if eq is None:
                continue
            equipment.append(EquipmentPriceLine(eq.id, eq.name, governing_hours, eq.price_per_hour))
        equipment_hours = governing_hours

    return PriceCalculation(
        base_hours=base_hours,
        total_hours=sum(rb.hours for rb in room_bookings),
        equipment_hours=equipment_hours,
        rooms=rooms,
        equipment=equipment,
        is_weekend=is_weekend(booking_date),
    )


def check_booking(band_name: Optional[str], room_bookings: Sequence[RoomBooking],
                  payment, total_price: Decimal) -> BookingCheck:
    """保存前的业务检查"""
    check = BookingCheck()
    if not band_name or not band_name.strip():
        check.errors.append("请填写乐队名称")
    if not room_bookings:
        check.errors.append("至少选择一个房间")
    if isinstance(payment, MixedPayment):
        paid = payment.cash_amount + payment.card_amount
        if paid != total_price:
            check.warnings.append(
                f"混合支付金额合计 {paid} 与总价 {total_price} 不一致"
            )
    return check
