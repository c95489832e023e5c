"""
报表统计与工资计算

输入为报表记录集合（ORM对象或具有相同属性的对象），不做任何数据库读写，
也不读取当前时间；月份等筛选条件由调用方给出。
"""
import csv
import io
from collections import OrderedDict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence

from app.schemas.booking import PAYMENT_LABELS
from app.schemas.settings import Equipment, Room
from app.services.tariffs import ZERO, to_money

COMMISSION_RATE = Decimal("0.10")
BASE_SALARY = Decimal("6000")
FIRST_HALF_LAST_DAY = 15

PAYMENT_TYPES = ("cash", "card", "mixed")
UNKNOWN_STAFF = "unknown"


@dataclass
class Tranche:
    """半月工资"""
    bookings: int = 0
    revenue: Decimal = ZERO
    commission: Decimal = ZERO
    base_salary: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.commission + self.base_salary


@dataclass
class SalaryResult:
    first_half: Tranche = field(default_factory=Tranche)
    second_half: Tranche = field(default_factory=Tranche)

    @property
    def total(self) -> Decimal:
        return self.first_half.total + self.second_half.total


@dataclass
class StaffSalary:
    staff: str
    bookings_count: int
    salary: SalaryResult


@dataclass
class RoomRevenue:
    room_id: str
    room_name: str
    revenue: Decimal = ZERO
    hours: int = 0


@dataclass
class PaymentRevenue:
    payment_type: str
    label: str
    revenue: Decimal = ZERO
    count: int = 0


@dataclass
class ReportStatistics:
    total_revenue: Decimal
    total_hours: int
    total_bookings: int
    resident_bookings: int
    revenue_by_room: List[RoomRevenue]
    revenue_by_payment_type: List[PaymentRevenue]
    salary: SalaryResult
    salary_by_staff: List[StaffSalary]


def _price(value) -> Decimal:
    return Decimal(value) if value is not None else ZERO


def entry_day(entry) -> Optional[int]:
    """日期中的“日”，不做时区换算"""
    try:
        return int(str(entry.date).split("-")[2][:2])
    except (IndexError, ValueError):
        return None


def visible_entries(entries: Iterable, viewer_email: Optional[str], is_owner: bool) -> list:
    """所有者看全部，管理员只看自己创建的记录"""
    if is_owner:
        return list(entries)
    return [e for e in entries if e.created_by == viewer_email]


def filter_entries(entries: Iterable, month: Optional[str] = None, room_id: Optional[str] = None,
                   payment_type: Optional[str] = None, search: Optional[str] = None) -> list:
    """按月份(yyyy-MM)、房间、支付方式、乐队名称筛选，按日期、创建时间倒序"""
    needle = (search or "").strip().lower()
    result = []
    for entry in entries:
        if needle and needle not in (entry.band_name or "").lower():
            continue
        if room_id and room_id != "all":
            rooms = {rb.get("room_id") for rb in (entry.room_bookings or [])}
            if entry.room_id != room_id and room_id not in rooms:
                continue
        if payment_type and payment_type != "all" and entry.payment_type != payment_type:
            continue
        if month and not str(entry.date or "").startswith(month + "-"):
            continue
        result.append(entry)

    def sort_key(entry):
        created = entry.created_at.isoformat() if entry.created_at is not None else ""
        return (str(entry.date or ""), created)

    return sorted(result, key=sort_key, reverse=True)


def calculate_salary(entries: Iterable) -> SalaryResult:
    """
    工资 = 两个半月分别计算后相加
    每半月：提成 = 营业额 × 10%；该半月至少有一条记录时加底薪6000
    """
    result = SalaryResult()
    for entry in entries:
        day = entry_day(entry)
        if day is None:
            continue
        tranche = result.first_half if day <= FIRST_HALF_LAST_DAY else result.second_half
        tranche.bookings += 1
        tranche.revenue += _price(entry.total_price)

    for tranche in (result.first_half, result.second_half):
        tranche.commission = to_money(tranche.revenue * COMMISSION_RATE)
        tranche.base_salary = BASE_SALARY if tranche.bookings > 0 else ZERO
    return result


def salary_by_staff(entries: Iterable) -> List[StaffSalary]:
    """按创建人分别计算工资"""
    grouped = OrderedDict()
    for entry in entries:
        grouped.setdefault(entry.created_by or UNKNOWN_STAFF, []).append(entry)
    return [
        StaffSalary(staff=staff, bookings_count=len(items), salary=calculate_salary(items))
        for staff, items in grouped.items()
    ]


def revenue_by_room(entries: Iterable, rooms: Sequence[Room], attribution: str = "primary") -> List[RoomRevenue]:
    """
    各房间营业额
    primary: 整条记录计入主房间
    split: 按记录中保存的各房间房费分摊，设备费计入主房间
    """
    totals = OrderedDict((room.id, RoomRevenue(room_id=room.id, room_name=room.name)) for room in rooms)
    for entry in entries:
        lines = entry.room_bookings or []
        if attribution == "split" and lines:
            for line in lines:
                item = totals.get(line.get("room_id"))
                if item is None:
                    continue
                item.revenue += _price(line.get("price"))
                item.hours += int(line.get("hours") or 0)
            primary = totals.get(entry.room_id)
            if primary is not None:
                primary.revenue += _price(entry.equipment_price)
        else:
            item = totals.get(entry.room_id)
            if item is None:
                continue
            item.revenue += _price(entry.total_price)
            item.hours += entry.total_hours or 0
    return list(totals.values())


def revenue_by_payment_type(entries: Iterable) -> List[PaymentRevenue]:
    totals = OrderedDict((t, PaymentRevenue(payment_type=t, label=PAYMENT_LABELS[t])) for t in PAYMENT_TYPES)
    for entry in entries:
        item = totals.get(entry.payment_type)
        if item is None:
            continue
        item.revenue += _price(entry.total_price)
        item.count += 1
    return list(totals.values())


def summarize(entries: Iterable, rooms: Sequence[Room], viewer_email: Optional[str],
              is_owner: bool, attribution: str = "primary") -> ReportStatistics:
    """报表页统计：总额、房间、支付方式、工资"""
    entries = list(entries)
    own = entries if is_owner else [e for e in entries if e.created_by == viewer_email]
    return ReportStatistics(
        total_revenue=sum((_price(e.total_price) for e in entries), ZERO),
        total_hours=sum(e.total_hours or 0 for e in entries),
        total_bookings=len(entries),
        resident_bookings=sum(1 for e in entries if e.is_resident),
        revenue_by_room=revenue_by_room(entries, rooms, attribution),
        revenue_by_payment_type=revenue_by_payment_type(entries),
        salary=calculate_salary(own),
        salary_by_staff=salary_by_staff(entries) if is_owner else [],
    )


def build_report_csv(entries: Iterable, rooms: Sequence[Room], equipment: Sequence[Equipment],
                     include_price: bool) -> str:
    """导出报表CSV，只有所有者能看到金额列"""
    room_names = {room.id: room.name for room in rooms}
    equipment_names = {item.id: item.name for item in equipment}

    headers = ["Дата", "Гурт", "Кімната", "Початок", "Кінець", "Годин", "Резидент", "Обладнання", "Тип оплати"]
    if include_price:
        headers.append("Сума")

    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow(headers)
    for entry in entries:
        names = [equipment_names[eq_id] for eq_id in (entry.equipment or []) if eq_id in equipment_names]
        row = [
            entry.date,
            entry.band_name,
            room_names.get(entry.room_id, entry.room_name or ""),
            entry.start_time,
            entry.end_time,
            entry.total_hours,
            "Так" if entry.is_resident else "Ні",
            ", ".join(names) or "-",
            PAYMENT_LABELS.get(entry.payment_type, ""),
        ]
        if include_price:
            row.append(_price(entry.total_price))
        writer.writerow(row)
    return output.getvalue()
