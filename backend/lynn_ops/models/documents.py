from __future__ import annotations

from ..extensions import db
from lynn_ops.time_utils import to_utc_z
from .inventory import money_to_json


class Expense(db.Model):
    __tablename__ = "expenses"
    __table_args__ = (
        db.Index("ix_expenses_location_created", "location_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False, index=True)

    type = db.Column(db.String(64), nullable=False)
    amount = db.Column(db.Numeric(16, 2), nullable=False)
    currency = db.Column(db.String(8), nullable=False, default="VND")
    description = db.Column(db.Text, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    image_urls = db.Column(db.JSON, nullable=False, default=list)
    file_urls = db.Column(db.JSON, nullable=False, default=list)

    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "location_id": self.location_id,
            "type": self.type,
            "amount": money_to_json(self.amount),
            "currency": self.currency,
            "description": self.description,
            "notes": self.notes,
            "image_urls": list(self.image_urls or []),
            "file_urls": list(self.file_urls or []),
            "created_by_id": self.created_by_id,
            "created_at": to_utc_z(self.created_at),
        }


class LocationDocument(db.Model):
    """A file kept against a location; url/resource_type come from object storage."""
    __tablename__ = "location_documents"
    __table_args__ = (
        db.Index("ix_location_documents_location_uploaded", "location_id", "uploaded_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    url = db.Column(db.String(1024), nullable=False)
    resource_type = db.Column(db.String(16), nullable=False, default="raw")  # image | raw

    uploaded_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    uploaded_by_name = db.Column(db.String(120), nullable=True)
    uploaded_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "location_id": self.location_id,
            "name": self.name,
            "url": self.url,
            "resource_type": self.resource_type,
            "uploaded_by_id": self.uploaded_by_id,
            "uploaded_by_name": self.uploaded_by_name,
            "uploaded_at": to_utc_z(self.uploaded_at),
        }
