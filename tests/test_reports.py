"""
Report tests.

Verifies:
- The overview aggregates live revenue, counts and low stock
- Cancelled orders are not revenue
- Unknown types and periods fall back to overview and 7d
- Generated reports carry metadata
- Malformed report fields fall back to the defaults
- Calendar windows are half-open, so a boundary row lands in one window
- Reports need VIEW_REPORTS
"""

from datetime import datetime, timedelta

import pytest

from bakery.models import Order
from bakery.services import reporting_service

OVERVIEW_KEYS = {
    "total_revenue_cents", "total_orders", "total_products", "total_customers", "active_suppliers",
    "low_stock_items", "pending_orders", "completed_deliveries", "daily_sales", "top_products",
}


@pytest.fixture
def orders(client, manager_headers, customer, product, taxed_product):
    created = []
    for items in (
        [{"product_id": product.id, "quantity": 5}],
        [{"product_id": taxed_product.id, "quantity": 1}],
        [{"product_id": product.id, "quantity": 1}],
    ):
        resp = client.post("/api/orders", headers=manager_headers, json={"customer_id": customer.id, "items": items})
        created.append(resp.get_json()["order"])
    client.patch(f"/api/orders/{created[2]['id']}/status", headers=manager_headers, json={"status": "CANCELLED"})
    return created


class TestOverview:

    def test_overview(self, client, manager_headers, orders, stock):
        resp = client.get("/api/reports?type=overview&period=30d", headers=manager_headers)
        assert resp.status_code == 200
        report = resp.get_json()["report"]
        assert report["type"] == "overview"
        assert report["period"] == "30d"
        assert report["start"] is not None

        data = report["data"]
        assert set(data) == OVERVIEW_KEYS
        assert data["total_revenue_cents"] == 2500 + 2200
        assert data["total_orders"] == 2
        assert data["pending_orders"] == 2
        assert data["total_customers"] == 1
        assert data["total_products"] == 2
        assert data["low_stock_items"] == 0
        assert sum(day["revenue_cents"] for day in data["daily_sales"]) == 4700
        assert [p["sku"] for p in data["top_products"]] == ["BRD-001", "CAK-001"]

    def test_fallbacks(self, client, manager_headers, db_session):
        report = client.get("/api/reports?type=weather&period=forever", headers=manager_headers).get_json()["report"]
        assert report["type"] == "overview"
        assert report["period"] == "7d"

    @pytest.mark.parametrize("report_type", reporting_service.REPORT_TYPES)
    def test_every_type_builds(self, client, manager_headers, orders, report_type):
        resp = client.get(f"/api/reports?type={report_type}&period=all_time", headers=manager_headers)
        assert resp.status_code == 200
        assert resp.get_json()["report"]["type"] == report_type

    def test_sales_breakdown(self, client, manager_headers, orders):
        data = client.get("/api/reports?type=sales", headers=manager_headers).get_json()["report"]["data"]
        assert data["orders_by_status"]["CANCELLED"] == 1
        assert data["orders_by_status"]["PENDING"] == 2
        assert data["average_order_value_cents"] == 2350


class TestPeriods:

    def test_rolling_period(self):
        now = datetime(2026, 10, 19, 12, 0)
        start, end = reporting_service.period_bounds("1d", now)
        assert start == datetime(2026, 10, 18, 12, 0)
        assert end == now

    def test_unknown_period_is_seven_days(self):
        now = datetime(2026, 10, 19, 12, 0)
        start, _ = reporting_service.period_bounds("fortnight", now)
        assert start == datetime(2026, 10, 12, 12, 0)


class TestGenerate:

    def test_metadata(self, client, manager_headers, manager_user):
        resp = client.post("/api/reports", headers=manager_headers, json={
            "reportType": "inventory", "period": "this_month", "format": "PDF",
        })
        assert resp.status_code == 200
        report = resp.get_json()["report"]
        assert report["type"] == "inventory"
        assert report["metadata"]["generatedBy"] == manager_user.email
        assert report["metadata"]["format"] == "pdf"
        assert report["metadata"]["reportType"] == "inventory"
        assert report["metadata"]["period"] == "this_month"

    def test_requires_view_reports(self, client, production_headers):
        assert client.get("/api/reports", headers=production_headers).status_code == 403

    def test_non_string_fields_fall_back(self, client, manager_headers, db_session):
        resp = client.post("/api/reports", headers=manager_headers, json={
            "reportType": 5, "period": ["7d"], "format": {"pdf": True},
        })
        assert resp.status_code == 200
        report = resp.get_json()["report"]
        assert report["type"] == "overview"
        assert report["period"] == "7d"
        assert report["metadata"]["format"] == "json"

    def test_non_object_body(self, client, manager_headers, db_session):
        resp = client.post("/api/reports", headers=manager_headers, json=["overview"])
        assert resp.status_code == 400


class TestCalendarWindows:

    def test_boundary_row_counted_once(self, client, db_session, manager_headers, customer, product):
        resp = client.post("/api/orders", headers=manager_headers, json={
            "customer_id": customer.id, "items": [{"product_id": product.id, "quantity": 1}],
        })
        today_start, today_end = reporting_service.period_bounds("today", datetime(2026, 10, 19, 12, 0))
        order = db_session.get(Order, resp.get_json()["order"]["id"])
        order.order_date = today_end
        db_session.commit()

        assert reporting_service.overview_report(today_start, today_end)["total_orders"] == 0
        tomorrow_end = today_end + timedelta(days=1)
        assert reporting_service.overview_report(today_end, tomorrow_end)["total_orders"] == 1
