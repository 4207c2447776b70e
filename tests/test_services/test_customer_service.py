"""
Tests for customer_service and vehicle_service: validation, uniqueness,
search, and the rules for deleting customers and vehicles.
"""

import pytest

from carhub.models.audit import AuditLog
from carhub.models.customer import Customer, Vehicle
from carhub.models.service import Service
from carhub.services import customer_service, vehicle_service
from carhub.validators import ValidationError


class TestCreateCustomer:
    def test_document_stored_as_digits_with_generated_code(self, app):
        customer = customer_service.create_customer(
            {"name": "  João Silva ", "document": "123.456.789-09", "state": "sp"}
        )
        assert customer.name == "João Silva"
        assert customer.document == "12345678909"
        assert customer.document_type == "cpf"
        assert customer.state == "SP"
        assert customer.code == f"CLI{customer.id:05d}"

    def test_cnpj_detected(self, app):
        customer = customer_service.create_customer(
            {"name": "Oficina Ltda", "document": "11.222.333/0001-81"}
        )
        assert customer.document_type == "cnpj"
        assert customer.to_dict()["document_formatted"] == "11.222.333/0001-81"

    def test_invalid_document_rejected(self, app):
        with pytest.raises(ValidationError) as exc_info:
            customer_service.create_customer(
                {"name": "X", "document": "123.456.789-00"}
            )
        assert exc_info.value.field == "document"

    def test_name_required(self, app):
        with pytest.raises(ValidationError) as exc_info:
            customer_service.create_customer({"document": "12345678909"})
        assert exc_info.value.field == "name"

    def test_duplicate_document_rejected_even_when_formatted(self, app):
        customer_service.create_customer({"name": "A", "document": "12345678909"})
        with pytest.raises(ValidationError, match="already registered"):
            customer_service.create_customer({"name": "B", "document": "123.456.789-09"})

    def test_invalid_email_rejected(self, app):
        with pytest.raises(ValidationError) as exc_info:
            customer_service.create_customer(
                {"name": "A", "document": "12345678909", "email": "nope"}
            )
        assert exc_info.value.field == "email"

    def test_creation_is_audited(self, app, admin_user):
        customer = customer_service.create_customer(
            {"name": "A", "document": "12345678909"}, user_id=admin_user.id
        )
        entry = AuditLog.query.filter_by(
            entity_type="customer", entity_id=customer.id
        ).one()
        assert entry.action_type == "CREATE"
        assert entry.user_id == admin_user.id


class TestSearchAndUpdate:
    def test_search_by_name_and_document_digits(self, app, make_customer):
        make_customer(name="Maria Souza")
        make_customer(name="Pedro Lima", document="52998224725")

        assert [c.name for c in customer_service.get_customers("souza")] == ["Maria Souza"]
        assert [c.name for c in customer_service.get_customers("529.982")] == ["Pedro Lima"]
        assert len(customer_service.get_customers()) == 2

    def test_partial_update_keeps_other_fields(self, app, make_customer):
        customer = make_customer(name="Maria", phone="11987654321")
        updated = customer_service.update_customer(customer.id, {"city": "Campinas"})
        assert updated.city == "Campinas"
        assert updated.phone == "11987654321"
        assert updated.name == "Maria"

    def test_update_to_taken_document_rejected(self, app, make_customer):
        make_customer(document="12345678909")
        other = make_customer(document="52998224725")
        with pytest.raises(ValidationError):
            customer_service.update_customer(other.id, {"document": "12345678909"})

    def test_update_missing_customer(self, app):
        with pytest.raises(ValueError, match="not found"):
            customer_service.update_customer(999, {"name": "X"})


class TestDeleteCustomer:
    def test_customer_with_vehicle_cannot_be_deleted(self, app, make_customer, make_vehicle):
        customer = make_customer()
        make_vehicle(customer)
        with pytest.raises(ValueError, match="1 vehicle"):
            customer_service.delete_customer(customer.id)
        assert Customer.query.count() == 1

    def test_unused_customer_deleted(self, app, make_customer):
        customer = make_customer()
        customer_service.delete_customer(customer.id)
        assert Customer.query.count() == 0


class TestVehicles:
    def test_create_normalizes_plate(self, app, make_customer):
        customer = make_customer()
        vehicle = vehicle_service.create_vehicle(
            {
                "customer_id": customer.id,
                "license_plate": "bra-2e19",
                "brand": "VW",
                "model": "Gol",
                "year": "2019",
                "fuel_type": "flex",
            }
        )
        assert vehicle.license_plate == "BRA2E19"
        assert vehicle.year == 2019
        assert customer_service.get_customer_vehicles(customer.id) == [vehicle]

    def test_duplicate_plate_rejected(self, app, make_customer, make_vehicle):
        customer = make_customer()
        make_vehicle(customer, plate="ABC1234")
        with pytest.raises(ValidationError) as exc_info:
            vehicle_service.create_vehicle(
                {
                    "customer_id": customer.id,
                    "license_plate": "abc-1234",
                    "brand": "Fiat",
                    "model": "Uno",
                    "year": 2010,
                }
            )
        assert exc_info.value.field == "license_plate"

    def test_unknown_customer_rejected(self, app):
        with pytest.raises(ValidationError) as exc_info:
            vehicle_service.create_vehicle(
                {
                    "customer_id": 42,
                    "license_plate": "ABC1234",
                    "brand": "Fiat",
                    "model": "Uno",
                    "year": 2010,
                }
            )
        assert exc_info.value.field == "customer_id"

    def test_unknown_fuel_type_rejected(self, app, make_customer, make_vehicle):
        vehicle = make_vehicle(make_customer())
        with pytest.raises(ValidationError):
            vehicle_service.update_vehicle(vehicle.id, {"fuel_type": "coal"})

    def test_open_service_blocks_delete(
        self, app, make_customer, make_vehicle, make_service, service_types
    ):
        vehicle = make_vehicle(make_customer())
        make_service(vehicle, items=[(service_types["oil"], 1, "120.00")])
        with pytest.raises(ValueError, match="open service"):
            vehicle_service.delete_vehicle(vehicle.id)

    def test_delete_removes_closed_history(
        self, app, make_customer, make_vehicle, make_service, service_types
    ):
        vehicle = make_vehicle(make_customer())
        make_service(
            vehicle, items=[(service_types["oil"], 1, "120.00")], status="completed"
        )
        vehicle_service.delete_vehicle(vehicle.id)
        assert Vehicle.query.count() == 0
        assert Service.query.count() == 0

    def test_owner_change_refused_once_serviced(
        self, app, make_customer, make_vehicle, make_service, service_types
    ):
        vehicle = make_vehicle(make_customer(name="Ana"))
        owner_id = vehicle.customer_id
        make_service(
            vehicle, items=[(service_types["oil"], 1, "120.00")], status="completed"
        )
        buyer = make_customer(name="Bruno")

        with pytest.raises(ValidationError) as exc_info:
            vehicle_service.update_vehicle(vehicle.id, {"customer_id": buyer.id})
        assert exc_info.value.field == "customer_id"
        assert vehicle.customer_id == owner_id

    def test_owner_change_allowed_without_orders(self, app, make_customer, make_vehicle):
        vehicle = make_vehicle(make_customer(name="Ana"))
        buyer = make_customer(name="Bruno")
        vehicle_service.update_vehicle(vehicle.id, {"customer_id": buyer.id})
        assert vehicle.customer_id == buyer.id
