"""
Photo model — compressed JPEG images attached to a customer, vehicle,
or service order.

The owning record is polymorphic (``entity_type`` + ``entity_id``)
rather than a foreign key per table, so one upload endpoint serves all
three owners.  Files live under ``UPLOAD_FOLDER``; ``url`` is the path
the frontend requests.
"""

from carhub.clock import utcnow
from carhub.extensions import db

ENTITY_TYPES = ("customer", "vehicle", "service")
PHOTO_CATEGORIES = ("vehicle", "service", "damage", "before", "after", "other")


class Photo(db.Model):
    __tablename__ = "photos"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    entity_type = db.Column(db.String(20), nullable=False)
    entity_id = db.Column(db.Integer, nullable=False)
    category = db.Column(db.String(20), nullable=False, default="other")
    file_name = db.Column(db.String(255), nullable=False)
    original_name = db.Column(db.String(255), nullable=True)
    mime_type = db.Column(db.String(100), nullable=False, default="image/jpeg")
    file_size = db.Column(db.Integer, nullable=False, default=0)
    url = db.Column(db.String(500), nullable=False)
    description = db.Column(db.Text, nullable=True)
    uploaded_by = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at = db.Column(
        db.DateTime, nullable=False, default=utcnow, server_default=db.func.now()
    )

    __table_args__ = (
        db.Index("IX_photos_entity", "entity_type", "entity_id"),
        db.CheckConstraint(
            "entity_type IN ('customer', 'vehicle', 'service')",
            name="CK_photos_entity_type",
        ),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "category": self.category,
            "file_name": self.file_name,
            "original_name": self.original_name,
            "mime_type": self.mime_type,
            "file_size": self.file_size,
            "url": self.url,
            "description": self.description,
            "uploaded_by": self.uploaded_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return f"<Photo {self.file_name} {self.entity_type}:{self.entity_id}>"
