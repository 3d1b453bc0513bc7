from datetime import datetime

from flask import jsonify
from flask_jwt_extended import get_jwt_identity, jwt_required

from ..schemas import CartInput, parse_payload
from ..storage import CARTS
from .common import request_payload


def register(app, store, ratings):
    carts = store.collection(CARTS)

    @app.route("/api/cart", methods=["GET"])
    @jwt_required()
    def get_cart():
        cart = carts.find_one({"user_id": get_jwt_identity()})
        return jsonify({"success": True, "cart": cart.get("items", []) if cart else []})

    @app.route("/api/cart", methods=["POST"])
    @jwt_required()
    def save_cart():
        body = parse_payload(CartInput, request_payload())
        items = [item.model_dump(by_alias=True, exclude_none=True) for item in body.items]
        carts.update_one(
            {"user_id": get_jwt_identity()},
            {"$set": {"items": items, "updated_at": datetime.utcnow()}},
            upsert=True,
        )
        return jsonify({"success": True})
