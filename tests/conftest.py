"""
Pytest configuration and shared fixtures.

Provides a test application backed by an in-memory SQLite database,
test clients signed in as an admin and as a technician, and small
factories for customers, vehicles, service types and service orders.

Each test gets a fresh application and schema, so tests never see
each other's rows.
"""

from datetime import time
from decimal import Decimal

import pytest
from flask import g

from carhub import clock, create_app
from carhub.extensions import db as _db
from carhub.models.customer import Customer, Vehicle
from carhub.models.service import Service, ServiceItem, ServiceType
from carhub.services import user_service

ADMIN_PASSWORD = "admin-pass"
TECH_PASSWORD = "tech-pass"

# Check digits verified; safe to register as customers.
VALID_CPFS = ("12345678909", "52998224725", "11144477735")
VALID_CNPJ = "11222333000181"


@pytest.fixture()
def app(tmp_path):
    """
    Create a Flask application configured for testing.

    The ``testing`` config uses an in-memory database; the schema is
    created here and dropped when the test finishes.  Uploaded photos
    go to a per-test temporary folder.
    """
    app = create_app("testing")
    app.config["UPLOAD_FOLDER"] = str(tmp_path / "uploads")

    # Requests reuse the fixture's app context, so drop the user that
    # Flask-Login cached in ``g`` by the previous request.
    @app.before_request
    def _reload_login_user():
        g.pop("_login_user", None)

    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture()
def db_session(app):  # pylint: disable=redefined-outer-name
    """The SQLAlchemy session bound to the test application."""
    return _db.session


@pytest.fixture()
def client(app):  # pylint: disable=redefined-outer-name
    """
    Provide an anonymous Flask test client.

    Usage in tests::

        def test_health(client):
            response = client.get("/health")
            assert response.status_code == 200
    """
    with app.test_client() as test_client:
        yield test_client


# -- Users -----------------------------------------------------------------


@pytest.fixture()
def admin_user(app):  # pylint: disable=redefined-outer-name
    return user_service.create_user(
        username="admin",
        password=ADMIN_PASSWORD,
        email="admin@carhub.com",
        first_name="Ana",
        last_name="Admin",
        role="admin",
    )


@pytest.fixture()
def tech_user(app):  # pylint: disable=redefined-outer-name
    return user_service.create_user(
        username="tech",
        password=TECH_PASSWORD,
        first_name="Tomas",
        last_name="Tech",
        role="technician",
    )


@pytest.fixture()
def other_tech(app):  # pylint: disable=redefined-outer-name
    return user_service.create_user(
        username="tech2", password=TECH_PASSWORD, role="technician"
    )


def _signed_in_client(app, username, password):  # pylint: disable=redefined-outer-name
    test_client = app.test_client()
    response = test_client.post(
        "/api/login", json={"username": username, "password": password}
    )
    assert response.status_code == 200, response.get_json()
    return test_client


@pytest.fixture()
def admin_client(app, admin_user):  # pylint: disable=redefined-outer-name
    """Test client with an admin session."""
    # Not used as a context manager: two clients preserving request
    # contexts at once would pop each other's contexts out of order.
    yield _signed_in_client(app, admin_user.username, ADMIN_PASSWORD)


@pytest.fixture()
def tech_client(app, tech_user):  # pylint: disable=redefined-outer-name
    """Test client with a technician session."""
    # Not used as a context manager: two clients preserving request
    # contexts at once would pop each other's contexts out of order.
    yield _signed_in_client(app, tech_user.username, TECH_PASSWORD)


# -- Domain factories ------------------------------------------------------


@pytest.fixture()
def service_types(app):  # pylint: disable=redefined-outer-name
    """Two active catalog entries: an oil change and a car wash."""
    oil = ServiceType(
        name="Oil change",
        default_price=Decimal("120.00"),
        estimated_duration=30,
        is_recurring=True,
        interval_months=6,
        loyalty_points=10,
    )
    wash = ServiceType(
        name="Car wash",
        default_price=Decimal("50.00"),
        estimated_duration=40,
        loyalty_points=2,
    )
    _db.session.add_all([oil, wash])
    _db.session.commit()
    return {"oil": oil, "wash": wash}


@pytest.fixture()
def make_customer(app):  # pylint: disable=redefined-outer-name
    """Factory: ``make_customer(name="...", document="...")``."""
    counter = {"n": 0}

    def _make(name=None, document=None, **fields):
        index = counter["n"]
        counter["n"] += 1
        customer = Customer(
            name=name or f"Customer {index}",
            document=document or VALID_CPFS[index % len(VALID_CPFS)],
            document_type="cnpj" if document and len(document) == 14 else "cpf",
            code=f"CLI{index + 1:05d}",
            **fields,
        )
        _db.session.add(customer)
        _db.session.commit()
        return customer

    return _make


@pytest.fixture()
def make_vehicle(app):  # pylint: disable=redefined-outer-name
    """Factory: ``make_vehicle(customer, plate="ABC1234", ...)``."""
    counter = {"n": 0}

    def _make(customer, plate=None, brand="Fiat", model="Uno", year=2020, **fields):
        counter["n"] += 1
        vehicle = Vehicle(
            customer_id=customer.id,
            license_plate=plate or f"AAA{counter['n']:04d}",
            brand=brand,
            model=model,
            year=year,
            **fields,
        )
        _db.session.add(vehicle)
        _db.session.commit()
        return vehicle

    return _make


@pytest.fixture()
def make_service(app):  # pylint: disable=redefined-outer-name
    """
    Factory that inserts a service order directly, bypassing the
    service layer, so tests control every stored value.

    ``items`` is a list of ``(service_type, quantity, unit_price)``.
    Payment amounts go in ``paid_*`` keyword arguments.
    """

    def _make(
        vehicle,
        items=(),
        status="scheduled",
        scheduled_date=None,
        scheduled_time=time(9, 0),
        estimated_value=None,
        final_value=None,
        technician=None,
        **paid,
    ):
        service = Service(
            customer_id=vehicle.customer_id,
            vehicle_id=vehicle.id,
            technician_id=technician.id if technician else None,
            status=status,
            scheduled_date=scheduled_date or clock.today(),
            scheduled_time=scheduled_time,
            estimated_value=(
                Decimal(estimated_value) if estimated_value is not None else None
            ),
            final_value=Decimal(final_value) if final_value is not None else None,
        )
        for field_name in ("paid_pix", "paid_cash", "paid_check", "paid_card"):
            setattr(service, field_name, Decimal(paid.get(field_name, "0.00")))
        service.recompute_amount_paid()
        for service_type, quantity, unit_price in items:
            price = Decimal(unit_price)
            service.items.append(
                ServiceItem(
                    service_type=service_type,
                    quantity=quantity,
                    unit_price=price,
                    total_price=price * quantity,
                )
            )
        _db.session.add(service)
        _db.session.commit()
        return service

    return _make
