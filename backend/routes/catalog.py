import re
from datetime import datetime

from flask import jsonify, request
from pymongo.errors import PyMongoError

from ..admin_gate import admin_required
from ..errors import NotFoundError
from ..schemas import ProductInput, ProductUpdate, parse_payload
from ..storage import PRODUCTS, parse_page_args, serialize_document
from ..uploads import collect_files, remove_images, save_images
from .common import load_document, request_payload, require_object_id, timestamps

PRODUCT_PAGE_SIZE = 20
PRODUCT_IMAGE_FOLDER = "products"


def build_product_query(args):
    query = {}
    category = (args.get("category") or "").strip()
    if category:
        query["category"] = category

    featured = args.get("featured")
    if featured:
        query["featured"] = featured.strip().lower() == "true"

    search = (args.get("search") or "").strip()
    if search:
        pattern = {"$regex": re.escape(search), "$options": "i"}
        query["$or"] = [
            {"name": pattern},
            {"description": pattern},
            {"brand": pattern},
            {"tags": pattern},
        ]
    return query


def register(app, store, ratings):
    @app.route("/api/products", methods=["GET"])
    def list_products():
        limit, skip = parse_page_args(request.args, PRODUCT_PAGE_SIZE)
        products, page = store.paginate(
            PRODUCTS, build_product_query(request.args), limit, skip
        )
        return jsonify({"success": True, "products": products, **page})

    @app.route("/api/products/<product_id>", methods=["GET"])
    def get_product(product_id: str):
        product = load_document(store, PRODUCTS, product_id, "product")
        return jsonify({"success": True, "product": serialize_document(product)})

    @app.route("/api/products", methods=["POST"])
    @admin_required
    def create_product(admin):
        body = parse_payload(ProductInput, request_payload())
        image_paths = save_images(collect_files("images"), PRODUCT_IMAGE_FOLDER)

        product_document = {
            **body.document(),
            "images": image_paths,
            "rating": 0,
            "review_count": 0,
            **timestamps(),
        }
        try:
            result = store.products.insert_one(product_document)
        except PyMongoError:
            remove_images(image_paths)
            raise
        product_document["_id"] = result.inserted_id

        app.logger.info("Admin %s created product %s", admin.email, result.inserted_id)

        return (
            jsonify(
                {
                    "success": True,
                    "productId": str(result.inserted_id),
                    "product": serialize_document(product_document),
                }
            ),
            201,
        )

    @app.route("/api/products/<product_id>", methods=["PUT"])
    @admin_required
    def update_product(admin, product_id: str):
        product = load_document(store, PRODUCTS, product_id, "product")
        changes = parse_payload(ProductUpdate, request_payload()).changes()

        new_images = save_images(collect_files("images"), PRODUCT_IMAGE_FOLDER)
        if new_images:
            changes["images"] = list(product.get("images") or []) + new_images

        changes["updated_at"] = datetime.utcnow()
        try:
            store.products.update_one({"_id": product["_id"]}, {"$set": changes})
        except PyMongoError:
            remove_images(new_images)
            raise

        app.logger.info("Admin %s updated product %s", admin.email, product_id)
        return jsonify({"success": True, "message": "Product updated successfully"})

    @app.route("/api/products/<product_id>", methods=["DELETE"])
    @admin_required
    def delete_product(admin, product_id: str):
        object_id = require_object_id(product_id, "product")
        product = store.products.find_one_and_delete({"_id": object_id})
        if not product:
            raise NotFoundError("Product not found")

        remove_images(product.get("images"))

        app.logger.info("Admin %s deleted product %s", admin.email, product_id)
        return jsonify({"success": True, "message": "Product deleted successfully"})
