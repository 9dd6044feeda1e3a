# Overview: Single entry point for every stock quantity change.

"""
EuroDoor Stock Ledger

All pipelines (procurement, production, orders, tools) mutate quantities
through `credit` / `debit` here. Each call:

1. re-reads and locks the affected stock rows,
2. checks the precondition (debit: on-hand >= qty),
3. mutates the rows,
4. appends exactly one InventoryLog entry.

Nothing is committed here; the calling workflow operation owns the
transaction (see concurrency.run_with_retry).

Goods classes:
    raw_material   lots keyed by material name (case-insensitive), consumed oldest-first
    product_store  finished doors keyed by (door_name, description)
    product        sellable catalog entries keyed by product id
    tool           tools keyed by tool id
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from flask import current_app
from sqlalchemy import func

from ..errors import InsufficientStockError, InvalidInputError, NotFoundError
from ..extensions import db
from ..models import InventoryLog, Product, ProductStore, RawMaterialStock, Tool
from ..validation import coerce_int
from .concurrency import lock_for_update
from .ledger_service import append_inventory_log


GOODS_RAW_MATERIAL = "raw_material"
GOODS_PRODUCT_STORE = "product_store"
GOODS_PRODUCT = "product"
GOODS_TOOL = "tool"

GOODS_CLASSES = (GOODS_RAW_MATERIAL, GOODS_PRODUCT_STORE, GOODS_PRODUCT, GOODS_TOOL)

KIND_ADD = "add"
KIND_RELEASE = "release"


@dataclass(frozen=True)
class StockKey:
    """
    Identifies one stock item.

    item is a material name (raw_material), a (door_name, description) pair
    (product_store), or a row id (product, tool).
    """
    goods_class: str
    item: Any

    @classmethod
    def raw_material(cls, material_name: str) -> "StockKey":
        return cls(GOODS_RAW_MATERIAL, (material_name or "").strip())

    @classmethod
    def product_store(cls, door_name: str, description: str | None = None) -> "StockKey":
        return cls(GOODS_PRODUCT_STORE, ((door_name or "").strip(), (description or "").strip()))

    @classmethod
    def product(cls, product_id: int) -> "StockKey":
        return cls(GOODS_PRODUCT, int(product_id))

    @classmethod
    def tool(cls, tool_id: int) -> "StockKey":
        return cls(GOODS_TOOL, int(tool_id))

    @property
    def item_key(self) -> str:
        if self.goods_class == GOODS_RAW_MATERIAL:
            return self.item.lower()
        if self.goods_class == GOODS_PRODUCT_STORE:
            door_name, description = self.item
            return f"{door_name}|{description}"
        return str(self.item)


def _validate_key(key: StockKey) -> None:
    if key.goods_class not in GOODS_CLASSES:
        raise InvalidInputError(f"Unknown goods class '{key.goods_class}'")
    if key.goods_class == GOODS_RAW_MATERIAL and not key.item:
        raise InvalidInputError("material_name is required")
    if key.goods_class == GOODS_PRODUCT_STORE and not key.item[0]:
        raise InvalidInputError("door_name is required")


def _raw_lots_query(material_name: str):
    return (
        db.session.query(RawMaterialStock)
        .filter(func.lower(RawMaterialStock.material_name) == material_name.lower())
        .order_by(RawMaterialStock.id.asc())
    )


def _product_store_query(door_name: str, description: str):
    return db.session.query(ProductStore).filter_by(door_name=door_name, description=description)


def _get_locked(model, row_id: int, label: str):
    row = lock_for_update(db.session.query(model).filter_by(id=row_id)).first()
    if not row:
        raise NotFoundError(f"{label} {row_id} not found")
    return row


# =============================================================================
# READS
# =============================================================================

def query(key: StockKey) -> int:
    """Current on-hand quantity (0 when the item has no stock record)."""
    _validate_key(key)

    if key.goods_class == GOODS_RAW_MATERIAL:
        total = (
            db.session.query(func.coalesce(func.sum(RawMaterialStock.quantity), 0))
            .filter(func.lower(RawMaterialStock.material_name) == key.item.lower())
            .scalar()
        )
        return int(total or 0)

    if key.goods_class == GOODS_PRODUCT_STORE:
        row = _product_store_query(*key.item).first()
    elif key.goods_class == GOODS_PRODUCT:
        row = db.session.get(Product, key.item)
    else:
        row = db.session.get(Tool, key.item)

    if row is None:
        return 0
    return int(row.quantity_available if key.goods_class == GOODS_TOOL else row.quantity)


def list_stock(goods_class: str) -> list:
    if goods_class == GOODS_RAW_MATERIAL:
        return _all(RawMaterialStock)
    if goods_class == GOODS_PRODUCT_STORE:
        return db.session.query(ProductStore).order_by(ProductStore.door_name.asc(), ProductStore.id.asc()).all()
    if goods_class == GOODS_PRODUCT:
        return _all(Product)
    if goods_class == GOODS_TOOL:
        return db.session.query(Tool).order_by(Tool.name.asc()).all()
    raise InvalidInputError(f"Unknown goods class '{goods_class}'")


def _all(model) -> list:
    return db.session.query(model).order_by(model.id.asc()).all()


def list_logs(
    *,
    goods_class: str | None = None,
    related_order_id: int | None = None,
    limit: int = 200,
) -> list[InventoryLog]:
    q = db.session.query(InventoryLog)
    if goods_class:
        if goods_class not in GOODS_CLASSES:
            raise InvalidInputError(f"Unknown goods class '{goods_class}'")
        q = q.filter(InventoryLog.goods_class == goods_class)
    if related_order_id is not None:
        q = q.filter(InventoryLog.related_order_id == related_order_id)
    limit = max(1, min(int(limit), 1000))
    return q.order_by(InventoryLog.id.desc()).limit(limit).all()


# =============================================================================
# MUTATIONS
# =============================================================================

def credit(
    key: StockKey,
    qty: Any,
    *,
    kind: str = KIND_ADD,
    unit: str | None = None,
    source_request_id: int | None = None,
    related_order_id: int | None = None,
    source_type: str | None = None,
    source_id: int | None = None,
    note: str | None = None,
):
    """
    Increase stock by qty and log it.

    Raw material always lands as a new lot; a product store record is
    created on first credit. Products and tools must already exist.
    Returns the stock row that was credited.
    """
    _validate_key(key)
    qty = coerce_int(qty, "quantity", minimum=1)

    if key.goods_class == GOODS_RAW_MATERIAL:
        row = RawMaterialStock(
            material_name=key.item,
            quantity=qty,
            unit=unit,
            source_request_id=source_request_id,
        )
        db.session.add(row)
        db.session.flush()
    elif key.goods_class == GOODS_PRODUCT_STORE:
        door_name, description = key.item
        row = lock_for_update(_product_store_query(door_name, description)).first()
        if row is None:
            row = ProductStore(door_name=door_name, description=description, quantity=qty)
            db.session.add(row)
        else:
            row.quantity = int(row.quantity) + qty
        db.session.flush()
    elif key.goods_class == GOODS_PRODUCT:
        row = _get_locked(Product, key.item, "Product")
        row.quantity = int(row.quantity) + qty
    else:
        row = _get_locked(Tool, key.item, "Tool")
        row.quantity_available = int(row.quantity_available) + qty

    append_inventory_log(
        goods_class=key.goods_class,
        item_key=key.item_key,
        item_id=row.id,
        quantity_delta=qty,
        kind=kind,
        related_order_id=related_order_id,
        source_type=source_type,
        source_id=source_id,
        note=note,
    )
    current_app.logger.info("Stock credit %s %s +%d", key.goods_class, key.item_key, qty)
    return row


def debit(
    key: StockKey,
    qty: Any,
    *,
    kind: str = KIND_RELEASE,
    related_order_id: int | None = None,
    source_type: str | None = None,
    source_id: int | None = None,
    note: str | None = None,
) -> int:
    """
    Decrease stock by qty and log it. Returns the remaining on-hand quantity.

    Raises InsufficientStockError (nothing mutated) when on-hand < qty.
    Raw material lots are drawn oldest-first; a lot drawn to exactly zero
    is deleted.
    """
    _validate_key(key)
    qty = coerce_int(qty, "quantity", minimum=1)

    item_id = None
    if key.goods_class == GOODS_RAW_MATERIAL:
        lots = lock_for_update(_raw_lots_query(key.item)).all()
        available = sum(int(lot.quantity) for lot in lots)
        _require_available(key, available, qty)

        remaining = qty
        for lot in lots:
            if remaining == 0:
                break
            take = min(int(lot.quantity), remaining)
            remaining -= take
            if take == int(lot.quantity):
                db.session.delete(lot)
            else:
                lot.quantity = int(lot.quantity) - take
            item_id = item_id or lot.id
        left = available - qty

    elif key.goods_class == GOODS_PRODUCT_STORE:
        row = lock_for_update(_product_store_query(*key.item)).first()
        available = int(row.quantity) if row else 0
        _require_available(key, available, qty)
        row.quantity = available - qty
        item_id, left = row.id, row.quantity

    elif key.goods_class == GOODS_PRODUCT:
        row = _get_locked(Product, key.item, "Product")
        _require_available(key, int(row.quantity), qty, label=row.title)
        row.quantity = int(row.quantity) - qty
        item_id, left = row.id, row.quantity

    else:
        row = _get_locked(Tool, key.item, "Tool")
        _require_available(key, int(row.quantity_available), qty, label=row.name)
        row.quantity_available = int(row.quantity_available) - qty
        item_id, left = row.id, row.quantity_available

    db.session.flush()
    append_inventory_log(
        goods_class=key.goods_class,
        item_key=key.item_key,
        item_id=item_id,
        quantity_delta=-qty,
        kind=kind,
        related_order_id=related_order_id,
        source_type=source_type,
        source_id=source_id,
        note=note,
    )
    current_app.logger.info("Stock debit %s %s -%d (left %d)", key.goods_class, key.item_key, qty, left)
    return left


def _require_available(key: StockKey, available: int, qty: int, *, label: str | None = None) -> None:
    if available < qty:
        name = label or key.item_key
        raise InsufficientStockError(
            f"Insufficient stock for {name}: available {available}, requested {qty}",
            details={
                "goods_class": key.goods_class,
                "item": name,
                "available": available,
                "requested": qty,
            },
        )
