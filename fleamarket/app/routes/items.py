"""
routes/items.py: Item listing route handlers.

Layer rules:
  - Parse, validate, call ONE service, commit, return envelope.
  - _serialize_item() is a pure data-shape helper: not business logic.

Endpoints (url_prefix=/items):
  GET    /items         → 200  public catalogue
  GET    /items/:id     → 200  owner only
  POST   /items         → 201
  PUT    /items/:id     → 200  owner only, partial update
  DELETE /items/:id     → 200  owner, or any admin
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from fleamarket.app.extensions import db
from fleamarket.app.middleware.auth_middleware import require_auth
from fleamarket.app.models.item import Item
from fleamarket.app.schemas.item_schema import CreateItemSchema, UpdateItemSchema
from fleamarket.app.services import item_service

items_bp = Blueprint("items", __name__)


def _serialize_item(item: Item) -> dict:
    """Converts an Item ORM object to a plain dict for JSON output."""
    return {
        "id": item.id,
        "name": item.name,
        "price": item.price,
        "description": item.description,
        "soldOut": item.sold_out,
        "userId": item.user_id,
        "created_at": item.created_at.isoformat() if item.created_at else None,
        "updated_at": item.updated_at.isoformat() if item.updated_at else None,
    }


@items_bp.route("", methods=["GET"])
def list_items():
    """GET /items: All listings. (No auth required.)"""
    items = item_service.list_items(session=db.session)
    return jsonify({"data": [_serialize_item(i) for i in items], "warnings": []}), 200


@items_bp.route("/<int:item_id>", methods=["GET"])
@require_auth
def get_item(item_id: int):
    item = item_service.get_item(
        item_id=item_id,
        user_id=g.current_user.id,
        session=db.session,
    )
    return jsonify({"data": _serialize_item(item), "warnings": []}), 200


@items_bp.route("", methods=["POST"])
@require_auth
def create_item():
    data = CreateItemSchema().load(request.get_json(force=True, silent=True) or {})
    item = item_service.create_item(
        data=data,
        user_id=g.current_user.id,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": _serialize_item(item), "warnings": []}), 201


@items_bp.route("/<int:item_id>", methods=["PUT"])
@require_auth
def update_item(item_id: int):
    data = UpdateItemSchema().load(request.get_json(force=True, silent=True) or {})
    item = item_service.update_item(
        item_id=item_id,
        user_id=g.current_user.id,
        data=data,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": _serialize_item(item), "warnings": []}), 200


@items_bp.route("/<int:item_id>", methods=["DELETE"])
@require_auth
def delete_item(item_id: int):
    item_service.delete_item(
        item_id=item_id,
        user=g.current_user,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": {"message": f"Item {item_id} deleted."}, "warnings": []}), 200
