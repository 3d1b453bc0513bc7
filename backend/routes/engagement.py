from datetime import datetime

from flask import jsonify, request
from pymongo.errors import DuplicateKeyError

from ..admin_gate import admin_required
from ..errors import ConflictError, NotFoundError
from ..schemas import (
    ContactInput,
    ContactStatusInput,
    NewsletterSubscribeInput,
    NewsletterUnsubscribeInput,
    parse_payload,
)
from ..storage import CONTACTS, NEWSLETTER, parse_page_args
from .common import request_payload, require_object_id

CONTACT_PAGE_SIZE = 50
SUBSCRIBER_PAGE_SIZE = 100

DEFAULT_PREFERENCES = {"promotions": True, "new_products": True, "newsletters": True}


def register(app, store, ratings):
    contacts = store.collection(CONTACTS)
    subscribers = store.collection(NEWSLETTER)

    @app.route("/api/contact", methods=["POST"])
    def submit_contact():
        body = parse_payload(ContactInput, request_payload())
        contact_document = {
            **body.model_dump(),
            "status": "unread",
            "created_at": datetime.utcnow(),
        }
        result = contacts.insert_one(contact_document)
        return (
            jsonify(
                {
                    "success": True,
                    "message": "Contact form submitted successfully",
                    "contactId": str(result.inserted_id),
                }
            ),
            201,
        )

    @app.route("/api/contact", methods=["GET"])
    @admin_required
    def list_contacts(admin):
        limit, skip = parse_page_args(request.args, CONTACT_PAGE_SIZE)
        query = {}
        status = (request.args.get("status") or "").strip()
        if status:
            query["status"] = status
        items, page = store.paginate(CONTACTS, query, limit, skip)
        return jsonify({"success": True, "contacts": items, **page})

    @app.route("/api/contact/<contact_id>", methods=["PUT"])
    @admin_required
    def update_contact_status(admin, contact_id: str):
        object_id = require_object_id(contact_id, "contact")
        body = parse_payload(ContactStatusInput, request_payload())
        result = contacts.update_one(
            {"_id": object_id},
            {"$set": {"status": body.status, "updated_at": datetime.utcnow()}},
        )
        if result.matched_count == 0:
            raise NotFoundError("Contact not found")
        return jsonify({"success": True, "message": "Contact updated successfully"})

    @app.route("/api/newsletter", methods=["POST"])
    def subscribe_newsletter():
        body = parse_payload(NewsletterSubscribeInput, request_payload())
        now = datetime.utcnow()

        existing = subscribers.find_one({"email": body.email})
        if existing and existing.get("status") == "active":
            raise ConflictError("Email already subscribed")

        if existing:
            subscribers.update_one(
                {"_id": existing["_id"]},
                {
                    "$set": {"status": "active", "subscribed_at": now},
                    "$unset": {"unsubscribed_at": ""},
                },
            )
            return jsonify(
                {
                    "success": True,
                    "message": "Successfully subscribed to newsletter",
                    "subscriptionId": str(existing["_id"]),
                }
            )

        try:
            result = subscribers.insert_one(
                {
                    "email": body.email,
                    "name": body.name,
                    "status": "active",
                    "subscribed_at": now,
                    "created_at": now,
                    "preferences": dict(DEFAULT_PREFERENCES),
                }
            )
        except DuplicateKeyError:
            raise ConflictError("Email already subscribed") from None

        return (
            jsonify(
                {
                    "success": True,
                    "message": "Successfully subscribed to newsletter",
                    "subscriptionId": str(result.inserted_id),
                }
            ),
            201,
        )

    @app.route("/api/newsletter", methods=["GET"])
    @admin_required
    def list_subscribers(admin):
        limit, skip = parse_page_args(request.args, SUBSCRIBER_PAGE_SIZE)
        status = (request.args.get("status") or "active").strip()
        items, page = store.paginate(
            NEWSLETTER, {"status": status}, limit, skip, sort=[("subscribed_at", -1)]
        )
        return jsonify({"success": True, "subscribers": items, **page})

    @app.route("/api/newsletter/unsubscribe", methods=["POST"])
    def unsubscribe_newsletter():
        body = parse_payload(NewsletterUnsubscribeInput, request_payload())
        result = subscribers.update_one(
            {"email": body.email},
            {"$set": {"status": "unsubscribed", "unsubscribed_at": datetime.utcnow()}},
        )
        if result.matched_count == 0:
            raise NotFoundError("Email not found in subscribers")

        return jsonify(
            {"success": True, "message": "Successfully unsubscribed from newsletter"}
        )
