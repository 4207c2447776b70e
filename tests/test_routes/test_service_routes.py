"""
Tests for the service orders and photos blueprints: order CRUD,
technician scoping, payments, reminders and uploads.
"""

import base64
import io
from datetime import timedelta

import pytest
from PIL import Image

from carhub import clock
from carhub.models.photo import Photo
from carhub.models.service import Service


@pytest.fixture()
def vehicle(make_customer, make_vehicle):
    return make_vehicle(make_customer(name="Maria"), plate="ABC1234")


def _jpeg_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (32, 32), (0, 120, 200)).save(buffer, format="JPEG")
    return buffer.getvalue()


class TestServiceOrders:
    def test_create_assigns_technician(self, tech_client, tech_user, vehicle, service_types):
        response = tech_client.post(
            "/api/services",
            json={
                "vehicle_id": vehicle.id,
                "scheduled_date": "2026-03-10",
                "scheduled_time": "08:15",
                "items": [{"service_type_id": service_types["oil"].id}],
            },
        )
        assert response.status_code == 201
        body = response.get_json()
        assert body["technician_id"] == tech_user.id
        assert body["estimated_value"] == "120.00"
        assert body["items"][0]["service_type_name"] == "Oil change"
        assert body["payment_status"] == "pending"

    def test_create_without_items_is_400(self, tech_client, vehicle):
        response = tech_client.post("/api/services", json={"vehicle_id": vehicle.id})
        assert response.status_code == 400
        assert response.get_json()["field"] == "items"

    def test_other_technicians_order_is_403(
        self, tech_client, other_tech, vehicle, service_types, make_service
    ):
        service = make_service(
            vehicle, items=[(service_types["oil"], 1, "1")], technician=other_tech
        )
        assert tech_client.get(f"/api/services/{service.id}").status_code == 403
        assert tech_client.patch(
            f"/api/services/{service.id}", json={"notes": "x"}
        ).status_code == 403
        assert tech_client.delete(f"/api/services/{service.id}").status_code == 403

    def test_list_is_scoped(
        self, tech_client, admin_client, tech_user, vehicle, service_types, make_service
    ):
        items = [(service_types["oil"], 1, "1")]
        mine = make_service(vehicle, items=items, technician=tech_user)
        make_service(vehicle, items=items)

        assert [s["id"] for s in tech_client.get("/api/services").get_json()] == [mine.id]
        assert len(admin_client.get("/api/services").get_json()) == 2

    def test_get_includes_reminder_info(self, admin_client, vehicle, service_types, make_service):
        service = make_service(vehicle, items=[(service_types["oil"], 1, "1")])
        body = admin_client.get(f"/api/services/{service.id}").get_json()
        assert body["reminder"] == {"has_reminder": False, "reminder_minutes": 30}
        assert body["items_total"] == "1.00"

    def test_complete_order(self, admin_client, vehicle, service_types, make_service):
        service = make_service(
            vehicle, items=[(service_types["oil"], 1, "120.00")], estimated_value="120.00"
        )
        response = admin_client.put(
            f"/api/services/{service.id}",
            json={"status": "completed", "final_value": "110"},
        )
        assert response.status_code == 200
        body = response.get_json()
        assert body["status"] == "completed"
        assert body["final_value"] == "110.00"
        assert body["completed_at"] is not None

    def test_missing_order_is_404(self, admin_client):
        response = admin_client.get("/api/services/999")
        assert response.status_code == 404
        assert response.get_json() == {"message": "Service ID 999 not found."}

    def test_delete(self, admin_client, vehicle, service_types, make_service):
        service = make_service(vehicle, items=[(service_types["oil"], 1, "1")])
        assert admin_client.delete(f"/api/services/{service.id}").status_code == 200
        assert Service.query.count() == 0

    def test_items_endpoint(self, admin_client, vehicle, service_types, make_service):
        service = make_service(vehicle, items=[(service_types["wash"], 2, "50.00")])
        items = admin_client.get(f"/api/services/{service.id}/items").get_json()
        assert items[0]["quantity"] == 2
        assert items[0]["total_price"] == "100.00"


class TestPayments:
    def test_record_returns_payment_and_totals(
        self, admin_client, vehicle, service_types, make_service
    ):
        service = make_service(
            vehicle, items=[(service_types["oil"], 1, "120.00")], estimated_value="120.00"
        )
        response = admin_client.post(
            "/api/payments",
            json={"service_id": service.id, "amount": "120", "payment_method": "pix"},
        )
        assert response.status_code == 201
        body = response.get_json()
        assert body["payment"]["amount"] == "120.00"
        assert body["service"]["paid_pix"] == "120.00"
        assert body["service"]["payment_status"] == "paid"

        listed = admin_client.get(f"/api/services/{service.id}/payments").get_json()
        assert [p["payment_method"] for p in listed] == ["pix"]

        payment_id = body["payment"]["id"]
        assert admin_client.delete(f"/api/payments/{payment_id}").status_code == 200
        assert admin_client.get(f"/api/services/{service.id}").get_json()[
            "amount_paid"
        ] == "0.00"

    def test_invalid_amount(self, admin_client, vehicle, service_types, make_service):
        service = make_service(vehicle, items=[(service_types["oil"], 1, "1")])
        response = admin_client.post(
            "/api/payments",
            json={"service_id": service.id, "amount": "0", "payment_method": "cash"},
        )
        assert response.status_code == 400
        assert response.get_json()["field"] == "amount"


class TestReminders:
    def test_enable_and_disable(self, admin_client, vehicle, service_types, make_service):
        service = make_service(
            vehicle,
            items=[(service_types["oil"], 1, "1")],
            scheduled_date=clock.today() + timedelta(days=3),
        )
        url = f"/api/services/{service.id}/reminders"

        response = admin_client.put(
            url, json={"reminder_enabled": True, "reminder_minutes": 45}
        )
        assert response.status_code == 200
        assert response.get_json()["reminder_minutes"] == 45
        assert admin_client.get(url).get_json()["has_reminder"] is True

        response = admin_client.put(url, json={"reminder_enabled": False})
        assert response.get_json()["has_reminder"] is False

    @pytest.mark.parametrize("minutes", [-600, 10**12])
    def test_create_with_bad_minutes_is_400(
        self, admin_client, vehicle, service_types, minutes
    ):
        response = admin_client.post(
            "/api/services",
            json={
                "vehicle_id": vehicle.id,
                "scheduled_date": (clock.today() + timedelta(days=1)).isoformat(),
                "scheduled_time": "10:00",
                "items": [{"service_type_id": service_types["oil"].id}],
                "reminder_enabled": True,
                "reminder_minutes": minutes,
            },
        )
        assert response.status_code == 400
        assert response.get_json()["field"] == "reminder_minutes"
        assert Service.query.count() == 0

    def test_update_with_bad_minutes_changes_nothing(
        self, admin_client, vehicle, service_types, make_service
    ):
        service = make_service(vehicle, items=[(service_types["oil"], 1, "1")])
        response = admin_client.put(
            f"/api/services/{service.id}",
            json={"status": "in_progress", "reminder_enabled": True, "reminder_minutes": -5},
        )
        assert response.status_code == 400
        assert admin_client.get(f"/api/services/{service.id}").get_json()[
            "status"
        ] == "scheduled"

    def test_past_order_reports_no_pending_reminder(
        self, admin_client, vehicle, service_types, make_service
    ):
        service = make_service(
            vehicle,
            items=[(service_types["oil"], 1, "1")],
            scheduled_date=clock.today() - timedelta(days=1),
        )
        url = f"/api/services/{service.id}/reminders"
        admin_client.put(url, json={"reminder_enabled": True})
        assert admin_client.get(url).get_json() == {
            "has_reminder": False,
            "reminder_minutes": 30,
        }


class TestPhotoRoutes:
    def test_multipart_upload_and_gallery(self, admin_client, vehicle):
        response = admin_client.post(
            f"/api/vehicles/{vehicle.id}/photos",
            data={"photo": (io.BytesIO(_jpeg_bytes()), "front.jpg"), "category": "vehicle"},
            content_type="multipart/form-data",
        )
        assert response.status_code == 201
        photo = response.get_json()
        assert photo["entity_type"] == "vehicle"
        assert photo["category"] == "vehicle"

        gallery = admin_client.get(f"/api/vehicles/{vehicle.id}/photos").get_json()
        assert [p["id"] for p in gallery] == [photo["id"]]

        served = admin_client.get(photo["url"])
        assert served.status_code == 200
        assert served.mimetype == "image/jpeg"

    def test_generic_upload_with_data_url(self, admin_client, vehicle):
        encoded = base64.b64encode(_jpeg_bytes()).decode("ascii")
        response = admin_client.post(
            "/api/photos/upload",
            json={"customerId": vehicle.customer_id, "photo": f"data:image/jpeg;base64,{encoded}"},
        )
        assert response.status_code == 201
        assert response.get_json()["entity_type"] == "customer"

    def test_upload_without_owner(self, admin_client):
        response = admin_client.post("/api/photos/upload", json={"photo": "data:"})
        assert response.status_code == 400
        assert response.get_json()["field"] == "entity_id"

    def test_technician_cannot_upload_to_others_order(
        self, tech_client, other_tech, vehicle, service_types, make_service
    ):
        service = make_service(
            vehicle, items=[(service_types["oil"], 1, "1")], technician=other_tech
        )
        response = tech_client.post(
            f"/api/services/{service.id}/photos",
            data={"photo": (io.BytesIO(_jpeg_bytes()), "x.jpg")},
            content_type="multipart/form-data",
        )
        assert response.status_code == 403

    def test_delete_photo(self, admin_client, vehicle):
        created = admin_client.post(
            f"/api/vehicles/{vehicle.id}/photos",
            data={"photo": (io.BytesIO(_jpeg_bytes()), "front.jpg")},
            content_type="multipart/form-data",
        ).get_json()
        assert admin_client.delete(f"/api/photos/{created['id']}").status_code == 200
        assert admin_client.get(f"/api/photos/{created['id']}").status_code == 404


class TestPhotoScoping:
    """Photos of another technician's order stay out of reach."""

    @pytest.fixture()
    def others_photo(self, db_session, other_tech, vehicle, service_types, make_service):
        service = make_service(
            vehicle, items=[(service_types["oil"], 1, "1")], technician=other_tech
        )
        photo = Photo(
            entity_type="service",
            entity_id=service.id,
            file_name="engine.jpg",
            url="/uploads/engine.jpg",
        )
        vehicle_photo = Photo(
            entity_type="vehicle",
            entity_id=vehicle.id,
            file_name="front.jpg",
            url="/uploads/front.jpg",
        )
        db_session.add_all([photo, vehicle_photo])
        db_session.commit()
        return photo

    def test_filtered_list_is_forbidden(self, tech_client, others_photo):
        response = tech_client.get(f"/api/photos?serviceId={others_photo.entity_id}")
        assert response.status_code == 403

    def test_unfiltered_list_hides_the_photo(self, tech_client, others_photo):
        photos = tech_client.get("/api/photos").get_json()
        assert [photo["file_name"] for photo in photos] == ["front.jpg"]

    def test_detail_update_and_delete_are_forbidden(
        self, tech_client, db_session, others_photo
    ):
        url = f"/api/photos/{others_photo.id}"
        assert tech_client.get(url).status_code == 403
        assert tech_client.put(url, json={"description": "x"}).status_code == 403
        assert tech_client.delete(url).status_code == 403
        assert db_session.get(Photo, others_photo.id) is not None

    def test_admin_sees_everything(self, admin_client, others_photo):
        assert len(admin_client.get("/api/photos").get_json()) == 2
        assert admin_client.get(f"/api/photos/{others_photo.id}").status_code == 200
