# Overview: Append-only inventory log writes and ORM-level immutability guards.

from __future__ import annotations

from sqlalchemy import event

from ..errors import ImmutableRecordError
from ..extensions import db
from ..models import InventoryLog

"""
Inventory Log Invariants

- One entry per stock mutation, written in the same transaction.
- quantity_delta is signed: positive for credits, negative for debits.
- Entries are never updated or deleted through the ORM.
"""


def append_inventory_log(
    *,
    goods_class: str,
    item_key: str,
    quantity_delta: int,
    kind: str,
    item_id: int | None = None,
    related_order_id: int | None = None,
    source_type: str | None = None,
    source_id: int | None = None,
    note: str | None = None,
) -> InventoryLog:
    entry = InventoryLog(
        goods_class=goods_class,
        item_key=item_key,
        item_id=item_id,
        kind=kind,
        quantity_delta=quantity_delta,
        related_order_id=related_order_id,
        source_type=source_type,
        source_id=source_id,
        note=note,
    )
    db.session.add(entry)
    db.session.flush()
    return entry


def _refuse_update(mapper, connection, target):
    raise ImmutableRecordError(
        f"InventoryLog {target.id} is append-only and cannot be modified",
        details={"inventory_log_id": target.id},
    )


def _refuse_delete(mapper, connection, target):
    raise ImmutableRecordError(
        f"InventoryLog {target.id} is append-only and cannot be deleted",
        details={"inventory_log_id": target.id},
    )


def register_immutability_listeners() -> None:
    """Idempotent; called from create_app."""
    if not event.contains(InventoryLog, "before_update", _refuse_update):
        event.listen(InventoryLog, "before_update", _refuse_update)
    if not event.contains(InventoryLog, "before_delete", _refuse_delete):
        event.listen(InventoryLog, "before_delete", _refuse_delete)
