# Overview: Flask API routes for the inventory manager (catalog, order release, stock ledger).

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_role
from ..errors import WorkflowError
from ..models.directory import ROLE_INVENTORY_MANAGER
from ..services import order_service, stock_service
from ..validation import coerce_int


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


# =============================================================================
# CATALOG
# =============================================================================

@inventory_bp.post("/products")
@require_role(ROLE_INVENTORY_MANAGER)
def create_product_route():
    """
    Request body:
    {
        "title": "Oak Panel Door",
        "price_cents": 1250000,
        "quantity": 10,
        "description": "optional",
        "image_url": "optional",
        "status": "active"
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        product = order_service.create_product(
            title=data.get("title"),
            price_cents=data.get("price_cents"),
            description=data.get("description"),
            image_url=data.get("image_url"),
            quantity=data.get("quantity", 0),
            status=data.get("status", order_service.PRODUCT_ACTIVE),
        )
        return jsonify({"product": product.to_dict()}), 201
    except WorkflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/products")
def list_products_route():
    try:
        products = order_service.list_active_products()
        return jsonify({"products": [p.to_dict() for p in products]}), 200
    except Exception:
        current_app.logger.exception("Failed to list products")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.put("/products/<int:product_id>/restock")
@require_role(ROLE_INVENTORY_MANAGER)
def restock_product_route(product_id: int):
    """Request body: {"quantity": 5, "note": "optional"}"""
    try:
        data = request.get_json(silent=True) or {}
        product = order_service.restock_product(product_id, quantity=data.get("quantity"), note=data.get("note"))
        return jsonify({"product": product.to_dict()}), 200
    except WorkflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to restock product")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.put("/products/<int:product_id>/price")
@require_role(ROLE_INVENTORY_MANAGER)
def update_price_route(product_id: int):
    """Request body: {"price_cents": 1300000}. Existing carts and orders keep their prices."""
    try:
        data = request.get_json(silent=True) or {}
        product = order_service.update_product_price(product_id, price_cents=data.get("price_cents"))
        return jsonify({"product": product.to_dict()}), 200
    except WorkflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update product price")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# ORDER RELEASE
# =============================================================================

@inventory_bp.get("/orders/paid")
@require_role(ROLE_INVENTORY_MANAGER)
def orders_ready_route():
    """Placed orders whose payment finance has confirmed."""
    try:
        orders = order_service.list_orders_ready_for_release()
        return jsonify({"orders": [o.to_dict() for o in orders]}), 200
    except Exception:
        current_app.logger.exception("Failed to list orders ready for release")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.put("/release/<int:order_id>")
@require_role(ROLE_INVENTORY_MANAGER)
def release_order_route(order_id: int):
    try:
        order = order_service.release_order(order_id)
        return jsonify({"message": "Order released for dispatch", "order": order.to_dict()}), 200
    except WorkflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to release order")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# STOCK LEDGER
# =============================================================================

@inventory_bp.get("/stock/<goods_class>")
@require_role(ROLE_INVENTORY_MANAGER)
def list_stock_route(goods_class: str):
    try:
        rows = stock_service.list_stock(goods_class)
        return jsonify({"goods_class": goods_class, "items": [r.to_dict() for r in rows]}), 200
    except WorkflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list stock")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/raw-materials/<path:material_name>/quantity")
def raw_material_quantity_route(material_name: str):
    try:
        qty = stock_service.query(stock_service.StockKey.raw_material(material_name))
        return jsonify({"material_name": material_name, "quantity": qty}), 200
    except WorkflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to query raw material stock")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/logs")
@require_role(ROLE_INVENTORY_MANAGER)
def list_logs_route():
    """Query: ?goods_class=product&related_order_id=12&limit=200"""
    try:
        order_id = request.args.get("related_order_id")
        logs = stock_service.list_logs(
            goods_class=request.args.get("goods_class"),
            related_order_id=coerce_int(order_id, "related_order_id") if order_id else None,
            limit=coerce_int(request.args.get("limit", 200), "limit", minimum=1),
        )
        return jsonify({"logs": [entry.to_dict() for entry in logs]}), 200
    except WorkflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list inventory logs")
        return jsonify({"error": "Internal server error"}), 500
