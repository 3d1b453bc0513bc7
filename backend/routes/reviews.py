"""Review submission and moderation.

Every review write that can change the approved set of a product hands the
product id to the rating aggregator after the write has succeeded.
"""

from datetime import datetime

from flask import jsonify, request

from ..admin_gate import admin_required
from ..errors import NotFoundError
from ..ratings import APPROVED, REVIEW_STATUSES, affects_rating
from ..schemas import ReviewInput, ReviewUpdate, parse_payload
from ..storage import PRODUCTS, REVIEWS, parse_page_args
from .common import load_document, request_payload, require_object_id

REVIEW_PAGE_SIZE = 20


def rating_changed(review, changes) -> bool:
    old_status = review.get("status")
    new_status = changes.get("status", old_status)
    if old_status != new_status:
        return affects_rating(old_status, new_status)
    if "rating" in changes and changes["rating"] != review.get("rating"):
        return new_status == APPROVED
    return False


def register(app, store, ratings):
    @app.route("/api/reviews", methods=["GET"])
    def list_reviews():
        limit, skip = parse_page_args(request.args, REVIEW_PAGE_SIZE)
        query = {"status": APPROVED}
        product_id = (request.args.get("productId") or "").strip()
        if product_id:
            query["product_id"] = product_id

        reviews, page = store.paginate(REVIEWS, query, limit, skip)
        return jsonify({"success": True, "reviews": reviews, **page})

    @app.route("/api/reviews", methods=["POST"])
    def submit_review():
        body = parse_payload(ReviewInput, request_payload())
        product = load_document(store, PRODUCTS, body.product_id, "product", {"_id": 1})

        now = datetime.utcnow()
        review_document = {
            **body.model_dump(),
            "product_id": str(product["_id"]),
            "status": "pending",
            "created_at": now,
            "updated_at": now,
        }
        result = store.reviews.insert_one(review_document)

        # Rebuilt on every submission, pending or not.
        ratings.schedule(review_document["product_id"])

        return (
            jsonify(
                {
                    "success": True,
                    "message": "Review submitted successfully and is pending approval",
                    "reviewId": str(result.inserted_id),
                }
            ),
            201,
        )

    @app.route("/api/admin/reviews", methods=["GET"])
    @admin_required
    def moderation_queue(admin):
        limit, skip = parse_page_args(request.args, REVIEW_PAGE_SIZE)
        query = {}
        status = (request.args.get("status") or "").strip()
        if status in REVIEW_STATUSES:
            query["status"] = status
        product_id = (request.args.get("productId") or "").strip()
        if product_id:
            query["product_id"] = product_id

        reviews, page = store.paginate(REVIEWS, query, limit, skip)
        return jsonify({"success": True, "reviews": reviews, **page})

    @app.route("/api/reviews/<review_id>", methods=["PUT"])
    @admin_required
    def update_review(admin, review_id: str):
        review = load_document(store, REVIEWS, review_id, "review")
        changes = parse_payload(ReviewUpdate, request_payload()).changes()

        changes["updated_at"] = datetime.utcnow()
        store.reviews.update_one({"_id": review["_id"]}, {"$set": changes})

        if rating_changed(review, changes):
            ratings.schedule(review.get("product_id"))

        app.logger.info(
            "Admin %s moderated review %s (%s -> %s)",
            admin.email,
            review_id,
            review.get("status"),
            changes.get("status", review.get("status")),
        )
        return jsonify({"success": True, "message": "Review updated successfully"})

    @app.route("/api/reviews/<review_id>", methods=["DELETE"])
    @admin_required
    def delete_review(admin, review_id: str):
        object_id = require_object_id(review_id, "review")
        review = store.reviews.find_one_and_delete({"_id": object_id})
        if not review:
            raise NotFoundError("Review not found")

        if review.get("status") == APPROVED:
            ratings.schedule(review.get("product_id"))

        app.logger.info("Admin %s deleted review %s", admin.email, review_id)
        return jsonify({"success": True, "message": "Review deleted successfully"})
