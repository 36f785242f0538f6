from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from lynn_ops.time_utils import to_utc_z


def money_to_json(value: Decimal | None) -> float | None:
    """Numeric columns come back as Decimal; the API speaks plain numbers."""
    if value is None:
        return None
    return float(value)


class Category(db.Model):
    __tablename__ = "categories"
    __table_args__ = (
        db.UniqueConstraint("location_id", "name", name="uq_categories_location_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "location_id": self.location_id,
            "name": self.name,
            "created_at": to_utc_z(self.created_at),
        }


class Supplier(db.Model):
    __tablename__ = "suppliers"
    __table_args__ = (
        db.Index("ix_suppliers_location_name", "location_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)

    # Contact
    contact_name = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(64), nullable=True)
    email = db.Column(db.String(255), nullable=True)

    # Address
    address = db.Column(db.String(255), nullable=True)
    city = db.Column(db.String(120), nullable=True)
    country = db.Column(db.String(120), nullable=True)

    # Business
    tax_id = db.Column(db.String(64), nullable=True)
    business_registration_number = db.Column(db.String(64), nullable=True)
    company_name = db.Column(db.String(255), nullable=True)

    # Notes / Contract
    notes = db.Column(db.Text, nullable=True)
    payment_terms = db.Column(db.String(255), nullable=True)
    contract_date = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "location_id": self.location_id,
            "name": self.name,
            "contact_name": self.contact_name,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "city": self.city,
            "country": self.country,
            "tax_id": self.tax_id,
            "business_registration_number": self.business_registration_number,
            "company_name": self.company_name,
            "notes": self.notes,
            "payment_terms": self.payment_terms,
            "contract_date": to_utc_z(self.contract_date),
            "created_at": to_utc_z(self.created_at),
        }


class Product(db.Model):
    """
    Product master data for one location.

    QUANTITY INVARIANT:
    - quantity is the single authoritative stock count (no ledger replay).
    - It changes through the transaction ledger, the sale order engine, or
      the explicit override on product update. Nothing else writes it.
    - It may be negative. Only the EXPORT ledger path refuses to go below
      zero; IMPORT and the update override do not check. Keep it that way:
      the override exists for correction entries.

    Stored as BigInteger; callers receive a plain int.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_location_name", "location_id", "name"),
        db.Index("ix_products_location_status", "location_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(64), nullable=True)
    unit = db.Column(db.String(32), nullable=False)

    price = db.Column(db.Numeric(14, 2), nullable=True)
    sale_price = db.Column(db.Numeric(14, 2), nullable=True)

    quantity = db.Column(db.BigInteger, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default="available")

    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True)
    image_url = db.Column(db.String(1024), nullable=True)

    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    location = db.relationship("Location", backref=db.backref("products", lazy=True))
    category = db.relationship("Category")
    supplier = db.relationship("Supplier")

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} location_id={self.location_id} qty={self.quantity}>"

    @property
    def is_active(self) -> bool:
        return self.status == "available"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "location_id": self.location_id,
            "name": self.name,
            "sku": self.sku,
            "unit": self.unit,
            "price": money_to_json(self.price),
            "sale_price": money_to_json(self.sale_price),
            "quantity": int(self.quantity or 0),
            "status": self.status,
            "category_id": self.category_id,
            "supplier_id": self.supplier_id,
            "image_url": self.image_url,
            "created_by_id": self.created_by_id,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class InventoryTransaction(db.Model):
    """
    Append-only stock movement.

    Each row is written in the same database transaction as the matching
    Product.quantity change (IMPORT adds, EXPORT subtracts). Rows are never
    updated; a correction is a new transaction.
    """
    __tablename__ = "inventory_transactions"
    __table_args__ = (
        db.Index("ix_inventory_transactions_location_created", "location_id", "created_at"),
        db.Index("ix_inventory_transactions_product", "product_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    type = db.Column(db.String(16), nullable=False, index=True)  # IMPORT | EXPORT

    quantity = db.Column(db.BigInteger, nullable=False)

    unit_price = db.Column(db.Numeric(14, 2), nullable=True)
    total_price = db.Column(db.Numeric(16, 2), nullable=True)

    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    # Opaque URLs handed back by object storage; stored verbatim
    image_urls = db.Column(db.JSON, nullable=False, default=list)
    file_urls = db.Column(db.JSON, nullable=False, default=list)

    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        index=True,
    )

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "location_id": self.location_id,
            "product_id": self.product_id,
            "type": self.type,
            "quantity": int(self.quantity),
            "unit_price": money_to_json(self.unit_price),
            "total_price": money_to_json(self.total_price),
            "supplier_id": self.supplier_id,
            "notes": self.notes,
            "image_urls": list(self.image_urls or []),
            "file_urls": list(self.file_urls or []),
            "created_by_id": self.created_by_id,
            "created_at": to_utc_z(self.created_at),
        }
