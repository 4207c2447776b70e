"""
Tests for the admin blueprint (users, service catalog, audit trail),
the public service-type list, and the report downloads.
"""

import csv
import io

import pytest
from openpyxl import load_workbook


class TestUserAdmin:
    def test_technician_forbidden(self, tech_client):
        assert tech_client.get("/api/admin/users").status_code == 403

    def test_create_list_update(self, admin_client):
        response = admin_client.post(
            "/api/admin/users",
            json={"username": "boss2", "password": "secret1", "role": "admin"},
        )
        assert response.status_code == 201
        user_id = response.get_json()["id"]

        usernames = [u["username"] for u in admin_client.get("/api/admin/users").get_json()]
        assert usernames == ["admin", "boss2"]

        response = admin_client.patch(
            f"/api/admin/users/{user_id}", json={"role": "technician", "is_active": False}
        )
        assert response.get_json()["role"] == "technician"
        assert response.get_json()["is_active"] is False

        hidden = admin_client.get("/api/admin/users?show_inactive=0").get_json()
        assert [u["username"] for u in hidden] == ["admin"]

    def test_cannot_demote_self(self, admin_client, admin_user):
        response = admin_client.patch(
            f"/api/admin/users/{admin_user.id}", json={"role": "technician"}
        )
        assert response.status_code == 400
        assert response.get_json()["field"] == "role"

    def test_delete_or_deactivate(
        self, admin_client, tech_user, other_tech, make_customer, make_vehicle, make_service
    ):
        make_service(make_vehicle(make_customer()), technician=tech_user)

        response = admin_client.delete(f"/api/admin/users/{tech_user.id}")
        assert response.get_json()["result"] == "deactivated"
        response = admin_client.delete(f"/api/admin/users/{other_tech.id}")
        assert response.get_json()["result"] == "deleted"

    def test_cannot_delete_self(self, admin_client, admin_user):
        response = admin_client.delete(f"/api/admin/users/{admin_user.id}")
        assert response.status_code == 400


class TestServiceTypeAdmin:
    def test_create_update_deactivate(self, admin_client, tech_client):
        response = admin_client.post(
            "/api/admin/service-types",
            json={"name": "Alignment", "default_price": "80", "loyalty_points": 5},
        )
        assert response.status_code == 201
        type_id = response.get_json()["id"]

        response = admin_client.put(
            f"/api/admin/service-types/{type_id}", json={"default_price": "85.5"}
        )
        assert response.get_json()["default_price"] == "85.50"

        public = tech_client.get("/api/service-types").get_json()
        assert [t["name"] for t in public] == ["Alignment"]

        assert admin_client.delete(f"/api/admin/service-types/{type_id}").status_code == 200
        assert tech_client.get("/api/service-types").get_json() == []
        listed = admin_client.get("/api/admin/service-types").get_json()
        assert listed[0]["is_active"] is False

    def test_technician_cannot_edit_catalog(self, tech_client):
        response = tech_client.post("/api/admin/service-types", json={"name": "X"})
        assert response.status_code == 403


class TestAuditLogs:
    def test_changes_are_listed_with_filters(self, admin_client):
        admin_client.post(
            "/api/customers", json={"name": "Maria", "document": "12345678909"}
        )

        body = admin_client.get("/api/admin/audit-logs?entity_type=customer").get_json()
        assert body["total"] == 1
        assert body["items"][0]["action_type"] == "CREATE"
        assert "customer" in body["entity_types"]

        logins = admin_client.get("/api/admin/audit-logs?action_type=LOGIN").get_json()
        assert logins["total"] == 1

    def test_bad_date_filter(self, admin_client):
        response = admin_client.get("/api/admin/audit-logs?start_date=13/01/2026")
        assert response.status_code == 400


class TestReports:
    @pytest.fixture()
    def order(self, make_customer, make_vehicle, make_service, service_types):
        vehicle = make_vehicle(make_customer(name="Maria"))
        return make_service(
            vehicle, items=[(service_types["oil"], 1, "120.00")], estimated_value="120.00"
        )

    def test_services_csv(self, admin_client, order):
        response = admin_client.get("/api/reports/services.csv")
        assert response.status_code == 200
        assert response.headers["Content-Type"].startswith("text/csv")
        assert "service_orders.csv" in response.headers["Content-Disposition"]

        rows = list(csv.reader(io.StringIO(response.data.decode("utf-8-sig"))))
        assert rows[1][0] == str(order.id)
        assert rows[-1][0] == "Total"

    def test_services_xlsx(self, admin_client, order):
        response = admin_client.get("/api/reports/services.xlsx")
        assert response.status_code == 200
        sheet = load_workbook(io.BytesIO(response.data)).active
        assert sheet["D2"].value == "Maria"

    def test_customers_csv(self, admin_client, order):
        response = admin_client.get("/api/reports/customers.csv")
        rows = list(csv.reader(io.StringIO(response.data.decode("utf-8-sig"))))
        assert rows[1][1] == "Maria"

    def test_status_filter(self, admin_client, order):
        response = admin_client.get("/api/reports/services.csv?status=completed")
        rows = list(csv.reader(io.StringIO(response.data.decode("utf-8-sig"))))
        assert len(rows) == 2  # header + totals

    def test_unknown_format_is_404(self, admin_client):
        assert admin_client.get("/api/reports/services.pdf").status_code == 404

    def test_technician_export_is_scoped(self, tech_client, order):
        response = tech_client.get("/api/reports/services.csv")
        rows = list(csv.reader(io.StringIO(response.data.decode("utf-8-sig"))))
        assert len(rows) == 2
