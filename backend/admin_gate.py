"""Admin authorization.

``authorize`` turns a raw credential into either an ``AdminIdentity`` or a
``Denied`` carrying the reason. It only reads. The API decorator and the
page hook below translate a denial into a 403 body or a redirect.
"""

import enum
from dataclasses import dataclass
from functools import wraps
from typing import Optional, Union
from urllib.parse import urlencode

import jwt
from flask import current_app, g, jsonify, redirect, request
from flask_jwt_extended import create_access_token, decode_token
from flask_jwt_extended.exceptions import JWTExtendedException

ADMIN_CLAIM = "is_admin"


class DenialReason(str, enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    INVALID_TOKEN = "invalid_token"
    FORBIDDEN = "forbidden"


@dataclass(frozen=True)
class AdminIdentity:
    id: str
    email: str
    name: str
    is_admin: bool = True


@dataclass(frozen=True)
class Denied:
    reason: DenialReason


def issue_token(user_document) -> str:
    """Sign a credential for ``user_document`` with its current admin flag."""
    return create_access_token(
        identity=str(user_document["_id"]),
        additional_claims={ADMIN_CLAIM: bool(user_document.get("is_admin"))},
    )


def read_request_token() -> Optional[str]:
    token = request.cookies.get(current_app.config["JWT_ACCESS_COOKIE_NAME"])
    if token:
        return token
    header = request.headers.get("Authorization", "")
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return None


def authorize(token: Optional[str], store) -> Union[AdminIdentity, Denied]:
    if not token:
        return Denied(DenialReason.UNAUTHENTICATED)

    try:
        claims = decode_token(token)
    except (jwt.InvalidTokenError, JWTExtendedException):
        return Denied(DenialReason.INVALID_TOKEN)

    user = store.find_user_by_id(claims.get("sub"))
    if not user:
        return Denied(DenialReason.UNAUTHENTICATED)

    if not user.get("is_admin"):
        return Denied(DenialReason.FORBIDDEN)

    return AdminIdentity(
        id=str(user["_id"]),
        email=user.get("email", ""),
        name=user.get("name", ""),
        is_admin=True,
    )


def admin_required(view):
    """Run ``view(admin, *args, **kwargs)`` for admins, answer 403 otherwise."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        store = current_app.extensions["store"]
        outcome = authorize(read_request_token(), store)
        if isinstance(outcome, Denied):
            current_app.logger.info(
                "Admin access denied on %s: %s", request.path, outcome.reason.value
            )
            return (
                jsonify(
                    {"error": "Admin access required", "reason": outcome.reason.value}
                ),
                403,
            )
        return view(outcome, *args, **kwargs)

    return wrapper


def is_admin_page(path: str) -> bool:
    return path == "/admin" or path.startswith("/admin/")


def page_redirect_for(outcome: Union[AdminIdentity, Denied], requested_path: str):
    """Where a browser should go instead, or ``None`` to let it through."""
    if isinstance(outcome, AdminIdentity):
        return None
    if outcome.reason is DenialReason.FORBIDDEN:
        return "/?" + urlencode({"error": "unauthorized"})
    return "/login?" + urlencode({"redirect": requested_path}, safe="/")


def install_page_gate(app, store):
    @app.before_request
    def guard_admin_pages():
        if not is_admin_page(request.path):
            return None
        outcome = authorize(read_request_token(), store)
        target = page_redirect_for(outcome, request.path)
        if target:
            return redirect(target)
        g.admin = outcome
        return None
