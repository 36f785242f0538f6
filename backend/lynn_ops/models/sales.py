from __future__ import annotations

from ..extensions import db
from lynn_ops.time_utils import to_utc_z
from .inventory import money_to_json


class Customer(db.Model):
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_location_name", "location_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(64), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "location_id": self.location_id,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }


class Guest(db.Model):
    """Hotel stay. status follows check_out: active until it is set."""
    __tablename__ = "guests"
    __table_args__ = (
        db.Index("ix_guests_location_check_in", "location_id", "check_in"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True)
    room_number = db.Column(db.String(32), nullable=True)
    check_in = db.Column(db.DateTime(timezone=True), nullable=False)
    check_out = db.Column(db.DateTime(timezone=True), nullable=True)
    adults = db.Column(db.Integer, nullable=False, default=1)
    children = db.Column(db.Integer, nullable=False, default=0)
    notes = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(16), nullable=False, default="active")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "location_id": self.location_id,
            "customer_id": self.customer_id,
            "room_number": self.room_number,
            "check_in": to_utc_z(self.check_in),
            "check_out": to_utc_z(self.check_out),
            "adults": self.adults,
            "children": self.children,
            "notes": self.notes,
            "status": self.status,
        }


class SaleOrder(db.Model):
    """
    Customer order header.

    Lines are a snapshot taken at creation: later product renames or
    repricing never touch them. Deleting an order restocks every line and
    removes the row; there is no cancelled state.
    """
    __tablename__ = "sale_orders"
    __table_args__ = (
        db.Index("ix_sale_orders_location_created", "location_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    total_amount = db.Column(db.Numeric(16, 2), nullable=False, default=0)

    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_by_name = db.Column(db.String(120), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    lines = db.relationship(
        "SaleOrderLine",
        backref="order",
        lazy=True,
        order_by="SaleOrderLine.id",
        cascade="all, delete-orphan",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "location_id": self.location_id,
            "customer_id": self.customer_id,
            "notes": self.notes,
            "total_amount": money_to_json(self.total_amount),
            "items": [line.to_dict() for line in self.lines],
            "created_by_id": self.created_by_id,
            "created_by_name": self.created_by_name,
            "created_at": to_utc_z(self.created_at),
        }


class SaleOrderLine(db.Model):
    __tablename__ = "sale_order_lines"
    __table_args__ = (
        db.Index("ix_sale_order_lines_product", "product_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("sale_orders.id"), nullable=False, index=True)

    # product_id is the restock target; name and price are copies, not lookups
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    product_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.BigInteger, nullable=False)
    sale_price = db.Column(db.Numeric(14, 2), nullable=False)
    total_price = db.Column(db.Numeric(16, 2), nullable=False)

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": int(self.quantity),
            "sale_price": money_to_json(self.sale_price),
            "total_price": money_to_json(self.total_price),
        }
