from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class RawMaterialStock(db.Model):
    """
    One lot of raw material in the store.

    Each accepted supply lands as its own lot. Quantity on hand for a
    material is the sum over lots whose name matches case-insensitively.
    Lots are consumed oldest-first and deleted once exhausted.
    """
    __tablename__ = "raw_material_stock"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="raw_material_stock_quantity_nonnegative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    material_name = db.Column(db.String(255), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False, default=0)
    unit = db.Column(db.String(32), nullable=True)

    # Accepted supply that produced this lot (None for manual stock-in)
    source_request_id = db.Column(db.Integer, db.ForeignKey("raw_material_requests.id"), nullable=True)

    received_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "material_name": self.material_name,
            "quantity": self.quantity,
            "unit": self.unit,
            "source_request_id": self.source_request_id,
            "received_at": to_utc_z(self.received_at),
            "version_id": self.version_id,
        }


class ProductStore(db.Model):
    """Finished doors produced in-house, keyed by (door_name, description)."""
    __tablename__ = "product_store"
    __table_args__ = (
        db.UniqueConstraint("door_name", "description", name="uq_product_store_door_description"),
        db.CheckConstraint("quantity >= 0", name="product_store_quantity_nonnegative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    door_name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.String(1024), nullable=False, default="")
    quantity = db.Column(db.Integer, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "door_name": self.door_name,
            "description": self.description,
            "quantity": self.quantity,
            "version_id": self.version_id,
        }


class Product(db.Model):
    """
    Sellable catalog entry.

    Customers add these to carts; order release draws down `quantity`.
    Prices are authoritative here only until a cart line snapshots them.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="products_quantity_nonnegative"),
        db.Index("ix_products_status_title", "status", "title"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    image_url = db.Column(db.String(512), nullable=True)
    price_cents = db.Column(db.Integer, nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(db.String(16), nullable=False, default="active")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} title={self.title!r} quantity={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "image_url": self.image_url,
            "price_cents": self.price_cents,
            "quantity": self.quantity,
            "status": self.status,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Tool(db.Model):
    __tablename__ = "tools"
    __table_args__ = (
        db.CheckConstraint("quantity_available >= 0", name="tools_quantity_available_nonnegative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    unit = db.Column(db.String(32), nullable=False)
    quantity_available = db.Column(db.Integer, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "unit": self.unit,
            "quantity_available": self.quantity_available,
            "version_id": self.version_id,
        }


class InventoryLog(db.Model):
    """
    Append-only audit trail of every stock quantity change.

    Written in the same transaction as the stock mutation it records.
    Updates and deletes are refused (see services/ledger_service.py).
    """
    __tablename__ = "inventory_logs"
    __table_args__ = (
        db.Index("ix_inventory_logs_class_key", "goods_class", "item_key"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # raw_material, product_store, product, tool
    goods_class = db.Column(db.String(32), nullable=False)
    item_key = db.Column(db.String(255), nullable=False)
    item_id = db.Column(db.Integer, nullable=True)

    # add, release
    kind = db.Column(db.String(16), nullable=False, index=True)
    quantity_delta = db.Column(db.Integer, nullable=False)

    related_order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True, index=True)

    # Workflow record that caused the change (e.g. "assigned_task", 12)
    source_type = db.Column(db.String(64), nullable=True)
    source_id = db.Column(db.Integer, nullable=True)
    note = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "goods_class": self.goods_class,
            "item_key": self.item_key,
            "item_id": self.item_id,
            "kind": self.kind,
            "quantity_delta": self.quantity_delta,
            "related_order_id": self.related_order_id,
            "source_type": self.source_type,
            "source_id": self.source_id,
            "note": self.note,
            "created_at": to_utc_z(self.created_at),
        }
