from datetime import datetime

from flask import request
from flask_jwt_extended import get_jwt_identity

from ..errors import AuthError, NotFoundError, ValidationError
from ..storage import parse_object_id


def request_payload():
    payload = request.form.to_dict() if request.form else {}
    if not payload:
        payload = request.get_json(silent=True) or {}
    return payload


def require_object_id(value, label: str):
    object_id = parse_object_id(value)
    if object_id is None:
        raise ValidationError(f"Invalid {label} identifier.")
    return object_id


def load_document(store, collection: str, document_id, label: str, projection=None):
    object_id = require_object_id(document_id, label)
    document = store.collection(collection).find_one({"_id": object_id}, projection)
    if not document:
        raise NotFoundError(f"{label.capitalize()} not found")
    return document


def current_user_document(store):
    user = store.find_user_by_id(get_jwt_identity())
    if not user:
        raise AuthError("User not found")
    return user


def timestamps():
    now = datetime.utcnow()
    return {"created_at": now, "updated_at": now}
