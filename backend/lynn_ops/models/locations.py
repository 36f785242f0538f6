from __future__ import annotations

from ..extensions import db
from lynn_ops.time_utils import to_utc_z


class Location(db.Model):
    """
    A physical site (warehouse, hotel, store) and the scope of every
    inventory, sales and expense record.

    admin_id is fixed at creation: there is no ownership transfer.
    """
    __tablename__ = "locations"
    __table_args__ = (
        db.Index("ix_locations_admin_id", "admin_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    type = db.Column(db.String(32), nullable=False, default="warehouse")
    currency = db.Column(db.String(8), nullable=False, default="VND")
    description = db.Column(db.Text, nullable=True)
    address = db.Column(db.String(255), nullable=True)

    admin_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    admin = db.relationship("User", backref=db.backref("owned_locations", lazy=True))

    def __repr__(self) -> str:
        return f"<Location id={self.id} name={self.name!r} admin_id={self.admin_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "currency": self.currency,
            "description": self.description,
            "address": self.address,
            "admin_id": self.admin_id,
            "created_at": to_utc_z(self.created_at),
        }


class UserLocationAccess(db.Model):
    """
    Capability grant for a role=user account on one location.

    One row per (user, location). An existing row with an empty permission
    list still grants view access to the location.
    """
    __tablename__ = "user_location_access"
    __table_args__ = (
        db.UniqueConstraint("user_id", "location_id", name="uq_user_location_access"),
        db.Index("ix_user_location_access_location", "location_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False)
    permissions = db.Column(db.JSON, nullable=False, default=list)

    granted_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    user = db.relationship("User", foreign_keys=[user_id], backref=db.backref("location_access", lazy=True))
    location = db.relationship("Location", backref=db.backref("user_access", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "location_id": self.location_id,
            "permissions": list(self.permissions or []),
            "granted_by_id": self.granted_by_id,
            "updated_at": to_utc_z(self.updated_at),
        }
