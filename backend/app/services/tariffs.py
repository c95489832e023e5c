"""
房间计价规则（日间/晚间费率）

工作日以17:00为界：17:00之前按日间价，17:00之后按晚间价，
跨越17:00的时段按分钟拆分；周六、周日整段按晚间价。
常驻乐队使用对应的常驻价。
所有函数在输入缺失或无法解析时返回零值，不抛异常。
"""
import math
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

from app.schemas.settings import Room

# 晚间价开始时间（分钟）
EVENING_START_MINUTES = 17 * 60
MINUTES_PER_DAY = 24 * 60

ZERO = Decimal("0")
CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    """金额保留两位小数"""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class TariffBreakdown:
    """单个房间的计价明细"""
    day_hours: Decimal = ZERO
    evening_hours: Decimal = ZERO
    day_rate: Decimal = ZERO
    evening_rate: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return to_money(self.day_hours * self.day_rate + self.evening_hours * self.evening_rate)

    @property
    def is_evening(self) -> bool:
        return self.evening_hours > 0


def parse_time(value: Optional[str]) -> Optional[int]:
    """解析 HH:mm，返回当天的分钟数"""
    if not value or not isinstance(value, str):
        return None
    parts = value.strip().split(":")
    if len(parts) < 2:
        return None
    try:
        hours, minutes = int(parts[0]), int(parts[1])
    except ValueError:
        return None
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        return None
    return hours * 60 + minutes


def parse_date(value: Union[str, date, None]) -> Optional[date]:
    """解析 yyyy-MM-dd"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value or not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def format_minutes(minutes: int) -> str:
    minutes %= MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def interval_minutes(start_time: Optional[str], end_time: Optional[str]) -> int:
    """时段长度（分钟），结束早于开始时视为跨越午夜"""
    start = parse_time(start_time)
    end = parse_time(end_time)
    if start is None or end is None:
        return 0
    diff = end - start
    if diff < 0:
        diff += MINUTES_PER_DAY
    return diff


def billable_hours(start_time: Optional[str], end_time: Optional[str]) -> int:
    """界面显示用的小时数，向上取整"""
    return math.ceil(interval_minutes(start_time, end_time) / 60)


def is_weekend(value: Union[str, date, None]) -> bool:
    day = parse_date(value)
    return day is not None and day.weekday() >= 5


def is_evening_tariff(booking_date: Union[str, date, None], start_time: Optional[str]) -> bool:
    """按开始时间判断是否适用晚间价"""
    if is_weekend(booking_date):
        return True
    start = parse_time(start_time)
    return start is not None and start >= EVENING_START_MINUTES


def _rates(room: Room, is_resident: bool):
    tariffs = room.tariffs
    if is_resident:
        return tariffs.weekday_day_resident_price, tariffs.weekday_evening_resident_price
    return tariffs.weekday_day_price, tariffs.weekday_evening_price


def hourly_rate(room: Optional[Room], booking_date, start_time: Optional[str], is_resident: bool) -> Decimal:
    """开始时间对应的小时价格"""
    if room is None or parse_date(booking_date) is None:
        return ZERO
    day_rate, evening_rate = _rates(room, is_resident)
    return evening_rate if is_evening_tariff(booking_date, start_time) else day_rate


def split_minutes(room: Optional[Room], booking_date, start_minutes: Optional[int],
                  duration_minutes: int, is_resident: bool) -> TariffBreakdown:
    """把从 start_minutes 开始、长度为 duration_minutes 的时段拆分为日间/晚间"""
    day = parse_date(booking_date)
    if room is None or day is None or start_minutes is None or duration_minutes <= 0:
        return TariffBreakdown()

    day_rate, evening_rate = _rates(room, is_resident)

    if day.weekday() >= 5:
        return TariffBreakdown(
            evening_hours=Decimal(duration_minutes) / 60,
            evening_rate=evening_rate,
        )

    if start_minutes >= EVENING_START_MINUTES:
        day_minutes, evening_minutes = 0, duration_minutes
    elif start_minutes + duration_minutes <= EVENING_START_MINUTES:
        day_minutes, evening_minutes = duration_minutes, 0
    else:
        day_minutes = EVENING_START_MINUTES - start_minutes
        evening_minutes = duration_minutes - day_minutes

    return TariffBreakdown(
        day_hours=Decimal(day_minutes) / 60,
        evening_hours=Decimal(evening_minutes) / 60,
        day_rate=day_rate,
        evening_rate=evening_rate,
    )


def resolve_tariff(room: Optional[Room], booking_date, start_time: Optional[str],
                   end_time: Optional[str], is_resident: bool) -> TariffBreakdown:
    """计算 start_time 到 end_time 的房间费用明细"""
    start = parse_time(start_time)
    if start is None or parse_time(end_time) is None:
        return TariffBreakdown()
    return split_minutes(room, booking_date, start, interval_minutes(start_time, end_time), is_resident)


def resolve_for_hours(room: Optional[Room], booking_date, start_time: Optional[str],
                      hours: int, is_resident: bool) -> TariffBreakdown:
    """按房间自己的小时数计价，时段为 [start_time, start_time + hours)"""
    if not hours or hours <= 0:
        return TariffBreakdown()
    return split_minutes(room, booking_date, parse_time(start_time), int(hours) * 60, is_resident)


def tariff_label(is_evening: bool, is_resident: bool, is_weekend_day: bool) -> str:
    """价格档位的显示名称"""
    if is_weekend_day:
        return "Вихідний/свято (резидент)" if is_resident else "Вихідний/свято"
    if is_evening:
        return "Вечірній тариф (резидент)" if is_resident else "Вечірній тариф"
    return "Денний тариф (резидент)" if is_resident else "Денний тариф"
