import re
from datetime import datetime

from flask import jsonify, request
from pymongo.errors import DuplicateKeyError

from ..admin_gate import admin_required
from ..errors import ConflictError, NotFoundError, ValidationError
from ..schemas import OrderStatusInput, UserUpdateInput, parse_payload
from ..storage import (
    ORDERS,
    PUBLIC_USER_PROJECTION,
    USERS,
    parse_page_args,
    serialize_document,
)
from .common import load_document, require_object_id, request_payload

USER_PAGE_SIZE = 20
ORDER_PAGE_SIZE = 20
REVENUE_STATUSES = ["delivered", "processing"]
RECENT_ACTIVITY_LIMIT = 5


def collect_analytics(store):
    orders = store.collection(ORDERS)
    revenue = list(
        orders.aggregate(
            [
                {"$match": {"status": {"$in": REVENUE_STATUSES}}},
                {"$group": {"_id": None, "total": {"$sum": "$total"}}},
            ]
        )
    )
    recent_products = store.products.find().sort("created_at", -1).limit(
        RECENT_ACTIVITY_LIMIT
    )
    recent_orders = orders.find().sort("created_at", -1).limit(RECENT_ACTIVITY_LIMIT)

    return {
        "stats": {
            "totalProducts": store.products.count_documents({}),
            "totalUsers": store.users.count_documents({}),
            "totalOrders": orders.count_documents({}),
            "totalReviews": store.reviews.count_documents({}),
            "totalRevenue": revenue[0]["total"] if revenue else 0,
        },
        "recentActivity": {
            "products": [serialize_document(product) for product in recent_products],
            "orders": [serialize_document(order) for order in recent_orders],
        },
    }


def register(app, store, ratings):
    orders = store.collection(ORDERS)

    # Users

    @app.route("/api/admin/users", methods=["GET"])
    @admin_required
    def list_users(admin):
        limit, skip = parse_page_args(request.args, USER_PAGE_SIZE)
        query = {}
        search = (request.args.get("search") or "").strip()
        if search:
            pattern = {"$regex": re.escape(search), "$options": "i"}
            query["$or"] = [{"name": pattern}, {"email": pattern}]

        users, page = store.paginate(
            USERS, query, limit, skip, projection=PUBLIC_USER_PROJECTION
        )
        return jsonify({"success": True, "users": users, **page})

    @app.route("/api/admin/users/<user_id>", methods=["GET"])
    @admin_required
    def get_user(admin, user_id: str):
        user = load_document(store, USERS, user_id, "user", PUBLIC_USER_PROJECTION)
        return jsonify({"success": True, "user": serialize_document(user)})

    @app.route("/api/admin/users/<user_id>", methods=["PUT"])
    @admin_required
    def update_user(admin, user_id: str):
        object_id = require_object_id(user_id, "user")
        body = parse_payload(UserUpdateInput, request_payload())

        if store.users.find_one({"email": body.email, "_id": {"$ne": object_id}}):
            raise ConflictError("Email already exists")

        try:
            result = store.users.update_one(
                {"_id": object_id},
                {
                    "$set": {
                        "name": body.name,
                        "email": body.email,
                        "is_admin": body.is_admin,
                        "updated_at": datetime.utcnow(),
                    }
                },
            )
        except DuplicateKeyError:
            raise ConflictError("Email already exists") from None

        if result.matched_count == 0:
            raise NotFoundError("User not found")

        app.logger.info(
            "Admin %s updated user %s (is_admin=%s)", admin.email, user_id, body.is_admin
        )
        return jsonify({"success": True, "message": "User updated successfully"})

    @app.route("/api/admin/users/<user_id>", methods=["DELETE"])
    @admin_required
    def delete_user(admin, user_id: str):
        object_id = require_object_id(user_id, "user")
        if str(object_id) == admin.id:
            raise ValidationError("Cannot delete your own account")

        result = store.users.delete_one({"_id": object_id})
        if result.deleted_count == 0:
            raise NotFoundError("User not found")

        app.logger.info("Admin %s deleted user %s", admin.email, user_id)
        return jsonify({"success": True, "message": "User deleted successfully"})

    # Orders

    @app.route("/api/admin/orders", methods=["GET"])
    @admin_required
    def list_orders(admin):
        limit, skip = parse_page_args(request.args, ORDER_PAGE_SIZE)
        query = {}
        status = (request.args.get("status") or "").strip()
        if status:
            query["status"] = status
        items, page = store.paginate(ORDERS, query, limit, skip)
        return jsonify({"success": True, "orders": items, **page})

    @app.route("/api/admin/orders/<order_id>", methods=["GET"])
    @admin_required
    def get_order(admin, order_id: str):
        order = load_document(store, ORDERS, order_id, "order")
        return jsonify({"success": True, "order": serialize_document(order)})

    @app.route("/api/admin/orders/<order_id>", methods=["PUT"])
    @admin_required
    def update_order_status(admin, order_id: str):
        object_id = require_object_id(order_id, "order")
        body = parse_payload(OrderStatusInput, request_payload())

        result = orders.update_one(
            {"_id": object_id},
            {"$set": {"status": body.status, "updated_at": datetime.utcnow()}},
        )
        if result.matched_count == 0:
            raise NotFoundError("Order not found")

        app.logger.info(
            "Admin %s set order %s to %s", admin.email, order_id, body.status
        )
        return jsonify({"success": True, "message": "Order status updated successfully"})

    # Analytics

    @app.route("/api/admin/analytics", methods=["GET"])
    @admin_required
    def analytics(admin):
        return jsonify({"success": True, **collect_analytics(store)})
