import csv
import io
import unittest
from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace

from app.services.price_table import default_price_table
from app.services.reporting import (
    build_report_csv, calculate_salary, filter_entries, revenue_by_payment_type,
    revenue_by_room, salary_by_staff, summarize, visible_entries,
)


def make_entry(date, total, created_by="admin@example.com", room_id="standart", payment_type="cash",
               band_name="The Band", room_bookings=None, equipment=None, equipment_price="0",
               total_hours=2, is_resident=False, created_at=None):
    return SimpleNamespace(
        date=date,
        band_name=band_name,
        room_id=room_id,
        room_name=room_id,
        room_bookings=room_bookings or [{"room_id": room_id, "hours": total_hours, "price": str(total)}],
        start_time="10:00",
        end_time="12:00",
        total_hours=total_hours,
        total_price=Decimal(str(total)),
        equipment_price=Decimal(equipment_price),
        payment_type=payment_type,
        is_resident=is_resident,
        equipment=equipment or [],
        created_by=created_by,
        created_at=created_at or datetime(2024, 6, 1, 12, 0),
    )


class SalaryTestCase(unittest.TestCase):
    def test_tranches_split_on_day_fifteen(self):
        entries = [make_entry("2024-06-10", 1000), make_entry("2024-06-20", 2000)]
        salary = calculate_salary(entries)
        self.assertEqual(salary.first_half.total, Decimal("6100.00"))
        self.assertEqual(salary.second_half.total, Decimal("6200.00"))
        self.assertEqual(salary.total, Decimal("12300.00"))

    def test_day_fifteen_belongs_to_first_half(self):
        salary = calculate_salary([make_entry("2024-06-15", 500)])
        self.assertEqual(salary.first_half.bookings, 1)
        self.assertEqual(salary.second_half.bookings, 0)

    def test_empty_tranche_has_no_base_salary(self):
        salary = calculate_salary([make_entry("2024-06-03", 300)])
        self.assertEqual(salary.second_half.total, 0)
        self.assertEqual(salary.total, Decimal("6030.00"))
        self.assertEqual(calculate_salary([]).total, 0)

    def test_salary_by_staff(self):
        entries = [
            make_entry("2024-06-03", 1000, created_by="a@example.com"),
            make_entry("2024-06-18", 1000, created_by="b@example.com"),
            make_entry("2024-06-19", 1000, created_by=None),
        ]
        result = {item.staff: item for item in salary_by_staff(entries)}
        self.assertEqual(set(result), {"a@example.com", "b@example.com", "unknown"})
        self.assertEqual(result["a@example.com"].salary.total, Decimal("6100.00"))
        self.assertEqual(result["b@example.com"].bookings_count, 1)


class RevenueTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.rooms = default_price_table().rooms
        self.multi = make_entry(
            "2024-06-03", 1470, room_id="main", total_hours=4, equipment_price="200",
            room_bookings=[
                {"room_id": "main", "hours": 3, "price": "990.00"},
                {"room_id": "standart", "hours": 1, "price": "280.00"},
            ],
        )

    def test_primary_attribution(self):
        result = {item.room_id: item for item in revenue_by_room([self.multi], self.rooms)}
        self.assertEqual(result["main"].revenue, Decimal("1470"))
        self.assertEqual(result["main"].hours, 4)
        self.assertEqual(result["standart"].revenue, 0)

    def test_split_attribution(self):
        result = {item.room_id: item for item in revenue_by_room([self.multi], self.rooms, "split")}
        self.assertEqual(result["main"].revenue, Decimal("1190.00"))
        self.assertEqual(result["standart"].revenue, Decimal("280.00"))
        self.assertEqual(result["standart"].hours, 1)

    def test_revenue_by_payment_type(self):
        entries = [
            make_entry("2024-06-03", 100, payment_type="cash"),
            make_entry("2024-06-04", 200, payment_type="card"),
            make_entry("2024-06-05", 300, payment_type="card"),
        ]
        result = {item.payment_type: item for item in revenue_by_payment_type(entries)}
        self.assertEqual(result["card"].revenue, Decimal("500"))
        self.assertEqual(result["card"].count, 2)
        self.assertEqual(result["mixed"].count, 0)
        self.assertEqual(result["cash"].label, "Готівка")

    def test_summarize_for_admin_hides_other_staff(self):
        entries = [
            make_entry("2024-06-03", 1000, created_by="a@example.com", is_resident=True),
            make_entry("2024-06-04", 500, created_by="b@example.com"),
        ]
        stats = summarize(entries, self.rooms, "a@example.com", False)
        self.assertEqual(stats.total_revenue, Decimal("1500"))
        self.assertEqual(stats.resident_bookings, 1)
        self.assertEqual(stats.salary.total, Decimal("6100.00"))
        self.assertEqual(stats.salary_by_staff, [])

        owner_stats = summarize(entries, self.rooms, "owner@example.com", True)
        self.assertEqual(len(owner_stats.salary_by_staff), 2)


class FilterTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.entries = [
            make_entry("2024-06-03", 100, band_name="Rust Never Sleeps", created_by="a@example.com"),
            make_entry("2024-06-10", 200, band_name="Blue Noise", room_id="main", payment_type="card"),
            make_entry("2024-05-30", 300, band_name="Rusty Strings"),
            make_entry("2024-06-10", 400, band_name="Late Entry", created_at=datetime(2024, 6, 10, 20, 0)),
        ]

    def test_filter_by_month_and_search(self):
        result = filter_entries(self.entries, month="2024-06", search="rust")
        self.assertEqual([e.band_name for e in result], ["Rust Never Sleeps"])

    def test_filter_by_room_and_payment(self):
        self.assertEqual(len(filter_entries(self.entries, room_id="main")), 1)
        self.assertEqual(len(filter_entries(self.entries, room_id="all")), 4)
        self.assertEqual(len(filter_entries(self.entries, payment_type="card")), 1)

    def test_sorted_by_date_then_creation_descending(self):
        result = filter_entries(self.entries)
        self.assertEqual([e.band_name for e in result][:2], ["Late Entry", "Blue Noise"])
        self.assertEqual(result[-1].band_name, "Rusty Strings")

    def test_visible_entries(self):
        self.assertEqual(len(visible_entries(self.entries, "a@example.com", False)), 1)
        self.assertEqual(len(visible_entries(self.entries, "a@example.com", True)), 4)


class ReportCsvTestCase(unittest.TestCase):
    def setUp(self) -> None:
        table = default_price_table()
        self.rooms, self.equipment = table.rooms, table.equipment
        self.entries = [make_entry("2024-06-03", 560, equipment=["guitar", "gone"], is_resident=True)]

    def read(self, content):
        return list(csv.reader(io.StringIO(content)))

    def test_owner_sees_amount_column(self):
        rows = self.read(build_report_csv(self.entries, self.rooms, self.equipment, include_price=True))
        self.assertEqual(rows[0][-1], "Сума")
        self.assertEqual(rows[1][2], "Standart")
        self.assertEqual(rows[1][6], "Так")
        self.assertEqual(rows[1][7], "Електро-гітара")
        self.assertEqual(rows[1][-1], "560")

    def test_admin_export_has_no_amount(self):
        rows = self.read(build_report_csv(self.entries, self.rooms, self.equipment, include_price=False))
        self.assertNotIn("Сума", rows[0])
        self.assertEqual(len(rows[1]), len(rows[0]))
        self.assertEqual(rows[1][-1], "Готівка")

    def test_band_name_with_comma_is_quoted(self):
        entries = [make_entry("2024-06-03", 100, band_name='Smith, "Jr"')]
        content = build_report_csv(entries, self.rooms, self.equipment, include_price=False)
        self.assertEqual(self.read(content)[1][1], 'Smith, "Jr"')


if __name__ == "__main__":
    unittest.main()
