"""
Photo service — upload, compress, list, and remove photos.

Uploads arrive either as a multipart file or as a base64 data URL
(the browser camera capture).  Every image is re-encoded with Pillow:
EXIF rotation applied, scaled to fit ``PHOTO_MAX_DIMENSION`` square
without enlarging, converted to RGB, and saved as a progressive JPEG
at ``PHOTO_JPEG_QUALITY``.  Originals are never kept.
"""

import base64
import binascii
import io
import logging
import os
import re
import uuid
from typing import Any

from flask import current_app
from PIL import Image, ImageOps, UnidentifiedImageError
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from carhub.extensions import db
from carhub.models.customer import Customer, Vehicle
from carhub.models.photo import ENTITY_TYPES, PHOTO_CATEGORIES, Photo
from carhub.models.service import Service
from carhub.models.user import User
from carhub.services import audit_service
from carhub.validators import ValidationError, clean_str, parse_choice

logger = logging.getLogger(__name__)

_DATA_URL_PATTERN = re.compile(r"^data:(image/[\w.+-]+);base64,(.*)$", re.DOTALL)
_ENTITY_MODELS = {"customer": Customer, "vehicle": Vehicle, "service": Service}


# -- Lookup ----------------------------------------------------------------


def get_photos(
    customer_id: int | None = None,
    vehicle_id: int | None = None,
    service_id: int | None = None,
    category: str | None = None,
    user: User | None = None,
) -> list[Photo]:
    """
    Return photos matching the filters, newest first.

    A technician passed as ``user`` does not see photos of service
    orders assigned to someone else.
    """
    query = Photo.query
    if user is not None and not user.is_admin:
        own_services = db.select(Service.id).where(Service.technician_id == user.id)
        query = query.filter(
            db.or_(Photo.entity_type != "service", Photo.entity_id.in_(own_services))
        )
    for entity_type, entity_id in (
        ("customer", customer_id),
        ("vehicle", vehicle_id),
        ("service", service_id),
    ):
        if entity_id is not None:
            query = query.filter(
                Photo.entity_type == entity_type, Photo.entity_id == entity_id
            )
    if category:
        query = query.filter(Photo.category == category)
    return query.order_by(Photo.created_at.desc(), Photo.id.desc()).all()


def get_photo_by_id(photo_id: int) -> Photo | None:
    return db.session.get(Photo, photo_id)


def upload_folder() -> str:
    folder = current_app.config["UPLOAD_FOLDER"]
    os.makedirs(folder, exist_ok=True)
    return folder


# -- Upload ----------------------------------------------------------------


def save_photo(
    entity_type: str,
    entity_id: int,
    file: FileStorage | None = None,
    data_url: str | None = None,
    category: str | None = None,
    description: str | None = None,
    user_id: int | None = None,
) -> Photo:
    """
    Compress and store an uploaded image for a customer, vehicle, or
    service order.

    Raises:
        ValueError: If the owning record does not exist.
        ValidationError: If no image was sent, it is not an image, or
                         it exceeds the size limit.
    """
    parse_choice(entity_type, "entity_type", ENTITY_TYPES)
    if db.session.get(_ENTITY_MODELS[entity_type], entity_id) is None:
        raise ValueError(f"{entity_type.capitalize()} ID {entity_id} not found.")
    category = parse_choice(category, "category", PHOTO_CATEGORIES, default="other")

    if file is not None and file.filename:
        if not (file.mimetype or "").startswith("image/"):
            raise ValidationError("Only image files are allowed", field="photo")
        raw = file.read()
        original_name = secure_filename(file.filename) or None
    elif data_url:
        raw = _decode_data_url(data_url)
        original_name = None
    else:
        raise ValidationError("No photo was sent", field="photo")

    if len(raw) > current_app.config["MAX_CONTENT_LENGTH"]:
        raise ValidationError("Photo exceeds the 10 MB limit", field="photo")

    compressed = compress_image(raw)
    file_name = f"{entity_type}_{entity_id}_{uuid.uuid4().hex}.jpg"
    with open(os.path.join(upload_folder(), file_name), "wb") as handle:
        handle.write(compressed)

    photo = Photo(
        entity_type=entity_type,
        entity_id=entity_id,
        category=category,
        file_name=file_name,
        original_name=original_name,
        mime_type="image/jpeg",
        file_size=len(compressed),
        url=f"/uploads/{file_name}",
        description=clean_str(description),
        uploaded_by=user_id,
    )
    db.session.add(photo)
    db.session.flush()

    audit_service.log_change(
        user_id=user_id,
        action_type="CREATE",
        entity_type="photo",
        entity_id=photo.id,
        new_value={
            "entity_type": entity_type,
            "entity_id": entity_id,
            "category": category,
            "file_name": file_name,
        },
    )
    db.session.commit()

    logger.info(
        "Stored photo %s for %s %d (%d -> %d bytes)",
        file_name,
        entity_type,
        entity_id,
        len(raw),
        len(compressed),
    )
    return photo


def compress_image(raw: bytes) -> bytes:
    """
    Re-encode image bytes as a small progressive JPEG.

    Raises:
        ValidationError: If Pillow cannot read the image.
    """
    max_dimension = current_app.config.get("PHOTO_MAX_DIMENSION", 480)
    quality = current_app.config.get("PHOTO_JPEG_QUALITY", 70)
    try:
        with Image.open(io.BytesIO(raw)) as img:
            img = ImageOps.exif_transpose(img)
            if img.mode != "RGB":
                img = img.convert("RGB")
            # thumbnail() keeps the aspect ratio and never enlarges.
            img.thumbnail((max_dimension, max_dimension))
            buffer = io.BytesIO()
            img.save(
                buffer,
                format="JPEG",
                quality=quality,
                progressive=True,
                optimize=True,
            )
    except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as exc:
        raise ValidationError("File is not a readable image", field="photo") from exc
    return buffer.getvalue()


# -- Update / delete -------------------------------------------------------


def update_photo(photo_id: int, data: dict[str, Any], user_id: int | None = None) -> Photo:
    """
    Change a photo's category or description.

    Raises:
        ValueError: If the photo is not found.
    """
    photo = get_photo_by_id(photo_id)
    if photo is None:
        raise ValueError(f"Photo ID {photo_id} not found.")

    previous = {"category": photo.category, "description": photo.description}
    if "category" in data:
        photo.category = parse_choice(data["category"], "category", PHOTO_CATEGORIES)
    if "description" in data:
        photo.description = clean_str(data["description"])

    audit_service.log_change(
        user_id=user_id,
        action_type="UPDATE",
        entity_type="photo",
        entity_id=photo.id,
        previous_value=previous,
        new_value={"category": photo.category, "description": photo.description},
    )
    db.session.commit()

    logger.info("Updated photo ID %d", photo_id)
    return photo


def delete_photo(photo_id: int, user_id: int | None = None) -> None:
    """
    Delete a photo record and its file.

    Raises:
        ValueError: If the photo is not found.
    """
    photo = get_photo_by_id(photo_id)
    if photo is None:
        raise ValueError(f"Photo ID {photo_id} not found.")

    previous = {
        "entity_type": photo.entity_type,
        "entity_id": photo.entity_id,
        "file_name": photo.file_name,
    }
    _remove_file(photo.file_name)
    db.session.delete(photo)
    audit_service.log_change(
        user_id=user_id,
        action_type="DELETE",
        entity_type="photo",
        entity_id=photo_id,
        previous_value=previous,
    )
    db.session.commit()

    logger.info("Deleted photo ID %d", photo_id)


def delete_photos_for(entity_type: str, entity_id: int) -> int:
    """Remove every photo owned by a record (no commit)."""
    photos = Photo.query.filter_by(entity_type=entity_type, entity_id=entity_id).all()
    for photo in photos:
        _remove_file(photo.file_name)
        db.session.delete(photo)
    return len(photos)


# -- Internal helpers ------------------------------------------------------


def _decode_data_url(data_url: str) -> bytes:
    match = _DATA_URL_PATTERN.match(data_url.strip())
    if match is None:
        raise ValidationError("Photo must be an image data URL", field="photo")
    try:
        return base64.b64decode(re.sub(r"\s", "", match.group(2)), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError("Photo data is not valid base64", field="photo") from exc


def _remove_file(file_name: str) -> None:
    path = os.path.join(current_app.config["UPLOAD_FOLDER"], file_name)
    try:
        os.remove(path)
    except FileNotFoundError:
        logger.warning("Photo file already missing: %s", path)
