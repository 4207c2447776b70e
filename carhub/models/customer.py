"""
Customer and vehicle models.

A customer is identified by a Brazilian tax ID (CPF for individuals,
CNPJ for companies) stored as bare digits.  Every vehicle belongs to
exactly one customer.  License plates are stored normalized
(``ABC1D23``) so uniqueness holds regardless of how they were typed.
"""

from carhub.clock import utcnow
from carhub.extensions import db
from carhub.validators import format_document, format_phone

DOCUMENT_TYPES = ("cpf", "cnpj")
FUEL_TYPES = ("gasoline", "ethanol", "flex", "diesel", "electric", "hybrid", "gnv")


class Customer(db.Model):
    """
    Shop customer.

    ``code`` is a short human-facing identifier (``CLI00042``) printed on
    service orders; it is generated from the primary key when the clerk
    leaves it blank.
    """

    __tablename__ = "customers"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    code = db.Column(db.String(20), unique=True, nullable=True)
    document = db.Column(db.String(14), unique=True, nullable=False)
    document_type = db.Column(db.String(4), nullable=False, default="cpf")
    name = db.Column(db.String(200), nullable=False)
    email = db.Column(db.String(200), nullable=True)
    phone = db.Column(db.String(20), nullable=True)
    address = db.Column(db.String(300), nullable=True)
    city = db.Column(db.String(100), nullable=True)
    state = db.Column(db.String(2), nullable=True)
    zip_code = db.Column(db.String(10), nullable=True)
    observations = db.Column(db.Text, nullable=True)
    loyalty_points = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(
        db.DateTime, nullable=False, default=utcnow, server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime, nullable=False, default=utcnow, server_default=db.func.now()
    )

    __table_args__ = (
        db.CheckConstraint(
            "document_type IN ('cpf', 'cnpj')", name="CK_customers_document_type"
        ),
        db.CheckConstraint("loyalty_points >= 0", name="CK_customers_loyalty"),
    )

    # -- Relationships -----------------------------------------------------
    vehicles = db.relationship(
        "Vehicle",
        back_populates="customer",
        order_by="Vehicle.license_plate",
    )
    services = db.relationship("Service", back_populates="customer", lazy="dynamic")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "document": self.document,
            "document_formatted": format_document(self.document, self.document_type),
            "document_type": self.document_type,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "phone_formatted": format_phone(self.phone) if self.phone else None,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "zip_code": self.zip_code,
            "observations": self.observations,
            "loyalty_points": self.loyalty_points,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return f"<Customer {self.code} {self.name}>"


class Vehicle(db.Model):
    """A customer's vehicle, identified by its license plate."""

    __tablename__ = "vehicles"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    customer_id = db.Column(
        db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True
    )
    license_plate = db.Column(db.String(10), unique=True, nullable=False)
    brand = db.Column(db.String(100), nullable=False)
    model = db.Column(db.String(100), nullable=False)
    year = db.Column(db.Integer, nullable=False)
    color = db.Column(db.String(50), nullable=True)
    chassis = db.Column(db.String(50), nullable=True)
    engine = db.Column(db.String(50), nullable=True)
    fuel_type = db.Column(db.String(20), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(
        db.DateTime, nullable=False, default=utcnow, server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime, nullable=False, default=utcnow, server_default=db.func.now()
    )

    # -- Relationships -----------------------------------------------------
    customer = db.relationship("Customer", back_populates="vehicles")
    services = db.relationship("Service", back_populates="vehicle", lazy="dynamic")

    @property
    def display_name(self) -> str:
        return f"{self.brand} {self.model} ({self.license_plate})"

    def to_dict(self, include_customer: bool = False) -> dict:
        data = {
            "id": self.id,
            "customer_id": self.customer_id,
            "license_plate": self.license_plate,
            "brand": self.brand,
            "model": self.model,
            "year": self.year,
            "color": self.color,
            "chassis": self.chassis,
            "engine": self.engine,
            "fuel_type": self.fuel_type,
            "notes": self.notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_customer and self.customer is not None:
            data["customer"] = {"id": self.customer.id, "name": self.customer.name}
        return data

    def __repr__(self) -> str:
        return f"<Vehicle {self.license_plate}>"
