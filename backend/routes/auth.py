from datetime import datetime

import bcrypt
from flask import jsonify
from flask_jwt_extended import jwt_required, set_access_cookies, unset_jwt_cookies
from pymongo.errors import DuplicateKeyError

from ..admin_gate import issue_token
from ..errors import AuthError, ConflictError
from ..schemas import LoginInput, RegisterInput, parse_payload
from ..storage import serialize_document
from .common import current_user_document, request_payload


def hash_password(password: str) -> bytes:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=12))


def verify_password(password: str, hashed) -> bool:
    if not hashed:
        return False
    if isinstance(hashed, str):
        hashed = hashed.encode("utf-8")
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed)
    except ValueError:
        return False


def register(app, store, ratings):
    @app.route("/api/auth/register", methods=["POST"])
    def register_account():
        body = parse_payload(RegisterInput, request_payload())

        if store.find_user_by_email(body.email):
            raise ConflictError("An account with this email already exists")

        user_document = {
            "name": body.name,
            "email": body.email,
            "password": hash_password(body.password),
            "is_admin": False,
            "created_at": datetime.utcnow(),
        }
        try:
            result = store.users.insert_one(user_document)
        except DuplicateKeyError:
            raise ConflictError("An account with this email already exists") from None
        user_document["_id"] = result.inserted_id

        app.logger.info("Registered user %s", body.email)

        response = jsonify({"success": True, "user": serialize_document(user_document)})
        set_access_cookies(response, issue_token(user_document))
        return response, 201

    @app.route("/api/auth/login", methods=["POST"])
    def login():
        body = parse_payload(LoginInput, request_payload())

        user = store.find_user_by_email(body.email)
        if not user or not verify_password(body.password, user.get("password")):
            raise AuthError("Invalid email or password")

        token = issue_token(user)
        response = jsonify(
            {"success": True, "user": serialize_document(user), "token": token}
        )
        set_access_cookies(response, token)
        return response

    @app.route("/api/auth/logout", methods=["POST"])
    def logout():
        response = jsonify({"success": True, "message": "Signed out"})
        unset_jwt_cookies(response)
        return response

    @app.route("/api/auth/me", methods=["GET"])
    @jwt_required()
    def current_account():
        user = current_user_document(store)
        return jsonify({"success": True, "user": serialize_document(user)})
