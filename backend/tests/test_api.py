import csv
import io
import unittest
from decimal import Decimal

from fastapi.testclient import TestClient

from app.api.auth import tokens
from app.db.database import Base, SessionLocal, engine
from app.main import app
from app.models.booking import Booking
from app.models.report_entry import ReportEntry

MONDAY = "2024-06-03"


class ApiTestCase(unittest.TestCase):
    def setUp(self) -> None:
        Base.metadata.drop_all(bind=engine)
        Base.metadata.create_all(bind=engine)
        tokens.clear()
        self.client = TestClient(app)
        self.owner = self.register("owner@studio.com.ua")
        self.admin = self.register("admin@studio.com.ua")

    def register(self, email):
        response = self.client.post("/register", json={"email": email, "password": "secret123"})
        self.assertEqual(response.status_code, 200, response.text)
        return {"Authorization": f"Bearer {response.json()['accessToken']}"}

    def booking_payload(self, **kwargs):
        payload = {
            "band_name": "Night Owls",
            "date": MONDAY,
            "start_time": "16:00",
            "end_time": "18:00",
            "room_bookings": [{"room_id": "main", "hours": 2}],
        }
        payload.update(kwargs)
        return payload

    def create_booking(self, headers=None, **kwargs):
        response = self.client.post("/api/bookings", json=self.booking_payload(**kwargs), headers=headers or self.admin)
        self.assertEqual(response.status_code, 200, response.text)
        return response.json()


class AuthApiTestCase(ApiTestCase):
    def test_first_user_is_owner(self):
        owner = self.client.post("/userInfo", headers=self.owner).json()
        admin = self.client.post("/userInfo", headers=self.admin).json()
        self.assertEqual(owner["role"], "owner")
        self.assertEqual(admin["role"], "admin")

    def test_login(self):
        response = self.client.post("/login", json={"email": "Admin@Studio.com.ua", "password": "secret123"})
        self.assertEqual(response.status_code, 200)
        response = self.client.post("/login", json={"email": "admin@studio.com.ua", "password": "wrong"})
        self.assertEqual(response.status_code, 401)

    def test_requires_token(self):
        self.assertEqual(self.client.get("/api/bookings").status_code, 401)
        self.client.post("/logout", headers=self.admin)
        self.assertEqual(self.client.get("/api/bookings", headers=self.admin).status_code, 401)

    def test_owner_only_routes(self):
        self.assertEqual(self.client.get("/api/users", headers=self.admin).status_code, 403)
        self.assertEqual(self.client.get("/api/users", headers=self.owner).status_code, 200)

    def test_owner_manages_users(self):
        response = self.client.post("/api/users", headers=self.owner, json={
            "email": "second@studio.com.ua", "password": "secret123", "role": "admin",
        })
        self.assertEqual(response.status_code, 200, response.text)
        me = [u for u in self.client.get("/api/users", headers=self.owner).json() if u["role"] == "owner"][0]
        response = self.client.put(f"/api/users/{me['id']}", headers=self.owner, json={"role": "admin"})
        self.assertEqual(response.status_code, 400)


class SettingsApiTestCase(ApiTestCase):
    def test_get_prices(self):
        table = self.client.get("/api/settings/prices", headers=self.admin).json()
        self.assertEqual([room["id"] for room in table["rooms"]], ["standart", "main"])
        self.assertEqual(len(table["equipment"]), 4)

    def test_update_rooms_changes_quotes(self):
        table = self.client.get("/api/settings/prices", headers=self.owner).json()
        rooms = table["rooms"]
        rooms[1]["tariffs"]["weekday_day_price"] = "300"
        self.assertEqual(
            self.client.put("/api/settings/prices/rooms", json={"rooms": rooms}, headers=self.admin).status_code,
            403,
        )
        response = self.client.put("/api/settings/prices/rooms", json={"rooms": rooms}, headers=self.owner)
        self.assertEqual(response.status_code, 200, response.text)

        quote = self.client.post("/api/bookings/quote", json=self.booking_payload(), headers=self.admin).json()
        self.assertEqual(Decimal(quote["total_price"]), Decimal("630"))


class BookingApiTestCase(ApiTestCase):
    def test_quote(self):
        payload = self.booking_payload(equipment=["guitar"], is_resident=True, band_name="")
        quote = self.client.post("/api/bookings/quote", json=payload, headers=self.admin).json()
        self.assertEqual(Decimal(quote["room_price"]), Decimal("490"))
        self.assertEqual(Decimal(quote["equipment_price"]), Decimal("200"))
        self.assertEqual(Decimal(quote["total_price"]), Decimal("690"))
        self.assertTrue(quote["is_evening_rate"])
        self.assertEqual(len(quote["errors"]), 1)

    def test_create_booking(self):
        booking = self.create_booking()
        self.assertEqual(Decimal(booking["total_price"]), Decimal("600"))
        self.assertEqual(booking["report_status"], "pending")
        self.assertEqual(booking["created_by"], "admin@studio.com.ua")
        self.assertEqual(booking["payment"], {"type": "cash"})

    def test_create_booking_validation(self):
        response = self.client.post("/api/bookings", json=self.booking_payload(room_bookings=[]), headers=self.admin)
        self.assertEqual(response.status_code, 400)
        response = self.client.post("/api/bookings", json=self.booking_payload(start_time="25:00"), headers=self.admin)
        self.assertEqual(response.status_code, 422)

    def test_mixed_payment_warning(self):
        booking = self.create_booking(payment={"type": "mixed", "cash_amount": "100", "card_amount": "100"})
        self.assertEqual(booking["payment"]["type"], "mixed")
        self.assertEqual(len(booking["warnings"]), 1)

    def test_stale_version_is_rejected(self):
        booking = self.create_booking()
        payload = self.booking_payload(band_name="Renamed", version=booking["version"])
        response = self.client.put(f"/api/bookings/{booking['id']}", json=payload, headers=self.admin)
        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(response.json()["band_name"], "Renamed")

        response = self.client.put(f"/api/bookings/{booking['id']}", json=payload, headers=self.admin)
        self.assertEqual(response.status_code, 409)

    def test_cancel_and_list(self):
        booking = self.create_booking()
        self.create_booking(band_name="Second")
        response = self.client.post(f"/api/bookings/{booking['id']}/cancel", headers=self.admin)
        self.assertEqual(response.json()["status"], "cancelled")
        names = [b["band_name"] for b in self.client.get("/api/bookings", headers=self.admin).json()]
        self.assertEqual(names, ["Second"])
        all_bookings = self.client.get("/api/bookings", params={"include_cancelled": True}, headers=self.admin)
        self.assertEqual(len(all_bookings.json()), 2)

    def test_draft_from_event(self):
        response = self.client.post("/api/bookings/draft-from-event", headers=self.admin, json={
            "summary": "Night Owls", "date": MONDAY, "start_time": "18:00", "end_time": "20:00",
            "calendar_name": "Main",
        })
        draft = response.json()
        self.assertEqual(draft["booking"]["id"], "temp-calendar-event")
        self.assertEqual(Decimal(draft["quote"]["total_price"]), Decimal("660"))
        self.assertEqual(self.client.get("/api/bookings", headers=self.admin).json(), [])

    def test_time_slots(self):
        self.create_booking(start_time="12:00", end_time="14:00")
        slots = self.client.get("/api/schedule/slots", params={"date": MONDAY, "duration": 2}, headers=self.admin).json()
        available = {slot["time"]: slot["available"] for slot in slots}
        self.assertFalse(available["12:00"])
        self.assertTrue(available["14:00"])


class ReportApiTestCase(ApiTestCase):
    def add_to_report(self, booking, headers=None):
        response = self.client.post(f"/api/reports/bookings/{booking['id']}", headers=headers or self.admin)
        self.assertEqual(response.status_code, 200, response.text)
        return response.json()

    def test_add_and_remove(self):
        booking = self.create_booking(equipment=["guitar"])
        entry = self.add_to_report(booking)
        self.assertEqual(entry["booking_id"], booking["id"])
        self.assertEqual(Decimal(entry["room_price"]) + Decimal(entry["equipment_price"]), Decimal(entry["total_price"]))
        self.assertEqual(entry["equipment_names"], ["Електро-гітара"])

        current = self.client.get(f"/api/bookings/{booking['id']}", headers=self.admin).json()
        self.assertEqual(current["report_status"], "reported")
        self.assertEqual(current["report_id"], entry["id"])

        again = self.client.post(f"/api/reports/bookings/{booking['id']}", headers=self.admin)
        self.assertEqual(again.status_code, 400)

        response = self.client.delete(f"/api/reports/entries/{entry['id']}", headers=self.admin)
        self.assertEqual(response.status_code, 200)
        current = self.client.get(f"/api/bookings/{booking['id']}", headers=self.admin).json()
        self.assertEqual(current["report_status"], "pending")
        self.assertIsNone(current["report_id"])

    def test_cancelled_booking_cannot_be_reported(self):
        booking = self.create_booking()
        self.client.post(f"/api/bookings/{booking['id']}/cancel", headers=self.admin)
        response = self.client.post(f"/api/reports/bookings/{booking['id']}", headers=self.admin)
        self.assertEqual(response.status_code, 400)

    def test_edit_updates_report_entry(self):
        booking = self.create_booking()
        entry = self.add_to_report(booking)
        current = self.client.get(f"/api/bookings/{booking['id']}", headers=self.admin).json()
        payload = self.booking_payload(room_bookings=[{"room_id": "main", "hours": 3}], version=current["version"])
        self.client.put(f"/api/bookings/{booking['id']}", json=payload, headers=self.admin)

        entries = self.client.get("/api/reports/entries", headers=self.admin).json()
        self.assertEqual(entries[0]["id"], entry["id"])
        self.assertEqual(Decimal(entries[0]["total_price"]), Decimal("930"))

    def test_admin_sees_only_own_entries(self):
        self.add_to_report(self.create_booking(), headers=self.admin)
        self.add_to_report(self.create_booking(headers=self.owner), headers=self.owner)
        self.assertEqual(len(self.client.get("/api/reports/entries", headers=self.admin).json()), 1)
        self.assertEqual(len(self.client.get("/api/reports/entries", headers=self.owner).json()), 2)

        owner_entry = self.client.get("/api/reports/entries", headers=self.owner).json()
        owner_entry = [e for e in owner_entry if e["created_by"] == "owner@studio.com.ua"][0]
        response = self.client.delete(f"/api/reports/entries/{owner_entry['id']}", headers=self.admin)
        self.assertEqual(response.status_code, 403)

    def test_manual_entry(self):
        response = self.client.post("/api/reports/entries", headers=self.admin, json=self.booking_payload(
            date="2024-06-20", payment={"type": "card"},
        ))
        self.assertEqual(response.status_code, 200, response.text)
        entry = response.json()["entry"]
        self.assertEqual(entry["payment"], {"type": "card"})
        booking = self.client.get(f"/api/bookings/{entry['booking_id']}", headers=self.admin).json()
        self.assertEqual(booking["report_status"], "reported")

    def test_statistics(self):
        self.add_to_report(self.create_booking())
        self.add_to_report(self.create_booking(date="2024-06-20", payment={"type": "card"}))
        stats = self.client.get("/api/reports/statistics", params={"month": "2024-06"}, headers=self.admin).json()
        self.assertEqual(Decimal(stats["total_revenue"]), Decimal("1200"))
        self.assertEqual(stats["total_bookings"], 2)
        self.assertEqual(Decimal(stats["salary"]["first_half"]["total"]), Decimal("6060"))
        self.assertEqual(Decimal(stats["salary"]["total"]), Decimal("12120"))
        self.assertEqual(stats["salary_by_staff"], [])

        owner_stats = self.client.get("/api/reports/statistics", params={"month": "2024-06"}, headers=self.owner).json()
        self.assertEqual(owner_stats["salary_by_staff"][0]["staff"], "admin@studio.com.ua")
        self.assertEqual(Decimal(owner_stats["salary"]["total"]), 0)

    def test_export(self):
        self.add_to_report(self.create_booking())
        admin_csv = self.client.get("/api/reports/export", params={"month": "2024-06"}, headers=self.admin)
        self.assertEqual(admin_csv.status_code, 200)
        self.assertIn("report_2024-06.csv", admin_csv.headers["content-disposition"])
        rows = list(csv.reader(io.StringIO(admin_csv.content.decode("utf-8-sig"))))
        self.assertNotIn("Сума", rows[0])
        self.assertEqual(rows[1][1], "Night Owls")

        owner_csv = self.client.get("/api/reports/export", params={"month": "2024-06"}, headers=self.owner)
        rows = list(csv.reader(io.StringIO(owner_csv.content.decode("utf-8-sig"))))
        self.assertEqual(rows[0][-1], "Сума")
        self.assertEqual(Decimal(rows[1][-1]), Decimal("600"))

    def test_repair_links(self):
        booking = self.create_booking()
        self.add_to_report(booking)
        response = self.client.post("/api/reports/repair-links", headers=self.owner)
        self.assertEqual(response.json()["fixed_count"], 0)
        self.assertEqual(self.client.post("/api/reports/repair-links", headers=self.admin).status_code, 403)

    def test_deleted_booking_keeps_entry_without_link(self):
        old = self.create_booking(band_name="Old")
        entry = self.add_to_report(old)
        self.assertEqual(self.client.delete(f"/api/bookings/{old['id']}", headers=self.admin).status_code, 200)
        new = self.create_booking(band_name="New")
        self.assertNotEqual(new["id"], old["id"])

        entries = self.client.get("/api/reports/entries", headers=self.admin).json()
        self.assertEqual(entries[0]["id"], entry["id"])
        self.assertIsNone(entries[0]["booking_id"])

        response = self.client.post("/api/reports/repair-links", headers=self.owner)
        self.assertEqual(response.json()["fixed_count"], 0)
        current = self.client.get(f"/api/bookings/{new['id']}", headers=self.admin).json()
        self.assertEqual(current["report_status"], "pending")
        self.assertIsNone(current["report_id"])

    def test_missing_entry_reads_pending_and_repair_persists(self):
        booking = self.create_booking()
        entry = self.add_to_report(booking)
        db = SessionLocal()
        try:
            db.query(ReportEntry).filter(ReportEntry.id == entry["id"]).delete()
            db.commit()
        finally:
            db.close()

        current = self.client.get(f"/api/bookings/{booking['id']}", headers=self.admin).json()
        self.assertEqual(current["report_status"], "pending")
        self.assertIsNone(current["report_id"])
        pending = self.client.get("/api/bookings", params={"report_status": "pending"}, headers=self.admin).json()
        self.assertEqual([b["id"] for b in pending], [booking["id"]])

        response = self.client.post("/api/reports/repair-links", headers=self.owner)
        self.assertEqual(response.json()["fixed_count"], 1)
        db = SessionLocal()
        try:
            stored = db.query(Booking).filter(Booking.id == booking["id"]).first()
            self.assertEqual(stored.report_status, "pending")
            self.assertIsNone(stored.report_id)
        finally:
            db.close()

    def test_repair_restores_lost_reported_flag(self):
        booking = self.create_booking()
        entry = self.add_to_report(booking)
        db = SessionLocal()
        try:
            stored = db.query(Booking).filter(Booking.id == booking["id"]).first()
            stored.report_status = "pending"
            stored.report_id = None
            db.commit()
        finally:
            db.close()
        current = self.client.get(f"/api/bookings/{booking['id']}", headers=self.admin).json()
        self.assertEqual(current["report_status"], "pending")

        response = self.client.post("/api/reports/repair-links", headers=self.owner)
        self.assertEqual(response.json()["fixed_count"], 1)
        current = self.client.get(f"/api/bookings/{booking['id']}", headers=self.admin).json()
        self.assertEqual(current["report_status"], "reported")
        self.assertEqual(current["report_id"], entry["id"])

    def test_room_split_matches_stored_total_after_price_change(self):
        booking = self.create_booking(room_bookings=[
            {"room_id": "main", "hours": 2}, {"room_id": "standart", "hours": 1},
        ])
        self.assertEqual(Decimal(booking["total_price"]), Decimal("830"))

        rooms = self.client.get("/api/settings/prices", headers=self.owner).json()["rooms"]
        rooms[1]["tariffs"]["weekday_day_price"] = "300"
        self.client.put("/api/settings/prices/rooms", json={"rooms": rooms}, headers=self.owner)

        entry = self.add_to_report(booking)
        self.assertEqual(Decimal(entry["total_price"]), Decimal("830"))
        line_total = sum(Decimal(line["price"]) for line in entry["room_bookings"])
        self.assertEqual(line_total, Decimal(entry["room_price"]))
        self.assertEqual([Decimal(line["price"]) for line in entry["room_bookings"]], [Decimal("608.02"), Decimal("221.98")])

        stats = self.client.get("/api/reports/statistics", headers=self.admin,
                                params={"month": "2024-06", "attribution": "split"}).json()
        by_room = sum(Decimal(item["revenue"]) for item in stats["revenue_by_room"])
        self.assertEqual(by_room, Decimal(stats["total_revenue"]))


class OperationLogApiTestCase(ApiTestCase):
    def test_mutations_are_logged(self):
        self.create_booking()
        logs = self.client.get("/api/operation-logs", params={"module": "预约管理"}, headers=self.owner).json()
        self.assertEqual(len(logs), 1)
        self.assertEqual(logs[0]["user_email"], "admin@studio.com.ua")
        self.assertEqual(logs[0]["action"], "创建")


if __name__ == "__main__":
    unittest.main()
