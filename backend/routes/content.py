from datetime import datetime

from flask import jsonify, request
from pymongo.errors import PyMongoError

from ..admin_gate import admin_required
from ..errors import NotFoundError
from ..schemas import (
    BannerInput,
    BannerUpdate,
    ModerationInput,
    TestimonialInput,
    parse_payload,
)
from ..storage import BANNERS, TESTIMONIALS, parse_page_args, serialize_document
from ..uploads import collect_files, remove_images, save_images
from .common import load_document, request_payload, require_object_id, timestamps

BANNER_PAGE_SIZE = 50
TESTIMONIAL_PAGE_SIZE = 10


def register(app, store, ratings):
    banners = store.collection(BANNERS)
    testimonials = store.collection(TESTIMONIALS)

    # Banners

    @app.route("/api/banners", methods=["GET"])
    def list_banners():
        limit, skip = parse_page_args(request.args, BANNER_PAGE_SIZE)
        query = {}
        if (request.args.get("active") or "").strip().lower() == "true":
            query["is_active"] = True
        items, page = store.paginate(BANNERS, query, limit, skip)
        return jsonify({"success": True, "banners": items, **page})

    @app.route("/api/banners/<banner_id>", methods=["GET"])
    def get_banner(banner_id: str):
        banner = load_document(store, BANNERS, banner_id, "banner")
        return jsonify({"success": True, "banner": serialize_document(banner)})

    @app.route("/api/banners", methods=["POST"])
    @admin_required
    def create_banner(admin):
        body = parse_payload(BannerInput, request_payload())
        images = save_images(collect_files("image")[:1], "banners")

        banner_document = {
            **body.model_dump(),
            "image": images[0] if images else "",
            **timestamps(),
        }
        try:
            result = banners.insert_one(banner_document)
        except PyMongoError:
            remove_images(images)
            raise
        banner_document["_id"] = result.inserted_id

        app.logger.info("Admin %s created banner %s", admin.email, result.inserted_id)
        return (
            jsonify(
                {
                    "success": True,
                    "bannerId": str(result.inserted_id),
                    "banner": serialize_document(banner_document),
                }
            ),
            201,
        )

    @app.route("/api/banners/<banner_id>", methods=["PUT"])
    @admin_required
    def update_banner(admin, banner_id: str):
        banner = load_document(store, BANNERS, banner_id, "banner")
        changes = parse_payload(BannerUpdate, request_payload()).changes()

        images = save_images(collect_files("image")[:1], "banners")
        if images:
            changes["image"] = images[0]

        changes["updated_at"] = datetime.utcnow()
        try:
            banners.update_one({"_id": banner["_id"]}, {"$set": changes})
        except PyMongoError:
            remove_images(images)
            raise

        if images and banner.get("image"):
            remove_images(banner.get("image"))

        return jsonify({"success": True, "message": "Banner updated successfully"})

    @app.route("/api/banners/<banner_id>", methods=["DELETE"])
    @admin_required
    def delete_banner(admin, banner_id: str):
        object_id = require_object_id(banner_id, "banner")
        banner = banners.find_one_and_delete({"_id": object_id})
        if not banner:
            raise NotFoundError("Banner not found")

        remove_images(banner.get("image"))
        app.logger.info("Admin %s deleted banner %s", admin.email, banner_id)
        return jsonify({"success": True, "message": "Banner deleted successfully"})

    # Testimonials

    @app.route("/api/testimonials", methods=["GET"])
    def list_testimonials():
        limit, skip = parse_page_args(request.args, TESTIMONIAL_PAGE_SIZE)
        items, page = store.paginate(
            TESTIMONIALS, {"status": "approved"}, limit, skip
        )
        return jsonify({"success": True, "testimonials": items, **page})

    @app.route("/api/testimonials", methods=["POST"])
    def submit_testimonial():
        body = parse_payload(TestimonialInput, request_payload())
        avatars = save_images(collect_files("avatar")[:1], "testimonials")

        testimonial_document = {
            **body.model_dump(),
            "avatar": avatars[0] if avatars else "",
            "status": "pending",
            **timestamps(),
        }
        try:
            result = testimonials.insert_one(testimonial_document)
        except PyMongoError:
            remove_images(avatars)
            raise

        return (
            jsonify(
                {
                    "success": True,
                    "message": "Testimonial submitted successfully and is pending approval",
                    "testimonialId": str(result.inserted_id),
                }
            ),
            201,
        )

    @app.route("/api/admin/testimonials", methods=["GET"])
    @admin_required
    def list_all_testimonials(admin):
        limit, skip = parse_page_args(request.args, TESTIMONIAL_PAGE_SIZE)
        query = {}
        status = (request.args.get("status") or "").strip()
        if status:
            query["status"] = status
        items, page = store.paginate(TESTIMONIALS, query, limit, skip)
        return jsonify({"success": True, "testimonials": items, **page})

    @app.route("/api/testimonials/<testimonial_id>", methods=["PUT"])
    @admin_required
    def moderate_testimonial(admin, testimonial_id: str):
        object_id = require_object_id(testimonial_id, "testimonial")
        body = parse_payload(ModerationInput, request_payload())

        result = testimonials.update_one(
            {"_id": object_id},
            {"$set": {"status": body.status, "updated_at": datetime.utcnow()}},
        )
        if result.matched_count == 0:
            raise NotFoundError("Testimonial not found")

        return jsonify(
            {"success": True, "message": "Testimonial status updated successfully"}
        )

    @app.route("/api/testimonials/<testimonial_id>", methods=["DELETE"])
    @admin_required
    def delete_testimonial(admin, testimonial_id: str):
        object_id = require_object_id(testimonial_id, "testimonial")
        testimonial = testimonials.find_one_and_delete({"_id": object_id})
        if not testimonial:
            raise NotFoundError("Testimonial not found")

        remove_images(testimonial.get("avatar"))
        return jsonify({"success": True, "message": "Testimonial deleted successfully"})
