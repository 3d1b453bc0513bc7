"""MongoDB access shared by every request.

``Store`` owns the process-wide database handle. It is built once by the
application factory and handed to the route modules, the admin gate and the
rating aggregator.
"""

import math
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from bson import ObjectId
from bson.errors import InvalidId

USERS = "users"
PRODUCTS = "products"
REVIEWS = "reviews"
ORDERS = "orders"
BANNERS = "banners"
TESTIMONIALS = "testimonials"
NEWSLETTER = "newsletter_subscribers"
CONTACTS = "contacts"
CARTS = "carts"

MAX_PAGE_SIZE = 100

PUBLIC_USER_PROJECTION = {"password": 0}


def parse_object_id(value) -> Optional[ObjectId]:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def normalize_email(value: Optional[str]) -> str:
    return str(value or "").strip().lower()


def serialize_value(value):
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat() + "Z"
    if isinstance(value, dict):
        return {key: serialize_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize_value(item) for item in value]
    return value


def serialize_document(document: Optional[Dict]) -> Dict:
    """Turn a stored document into its JSON shape (``_id`` becomes ``id``)."""
    if not document:
        return {}
    serialized = {}
    for key, value in document.items():
        if key == "password":
            continue
        if key == "_id":
            serialized["id"] = str(value)
            continue
        serialized[key] = serialize_value(value)
    return serialized


def parse_page_args(args, default_limit: int) -> Tuple[int, int]:
    try:
        limit = int(args.get("limit", default_limit))
    except (TypeError, ValueError):
        limit = default_limit
    if limit <= 0:
        limit = default_limit
    limit = min(limit, MAX_PAGE_SIZE)

    try:
        skip = int(args.get("skip", 0))
    except (TypeError, ValueError):
        skip = 0
    return limit, max(skip, 0)


def page_metadata(total: int, limit: int, skip: int) -> Dict[str, int]:
    return {
        "total": total,
        "page": skip // limit + 1,
        "totalPages": math.ceil(total / limit) if total else 0,
    }


class Store:
    def __init__(self, db):
        self.db = db

    def collection(self, name: str):
        return self.db[name]

    @property
    def users(self):
        return self.db[USERS]

    @property
    def products(self):
        return self.db[PRODUCTS]

    @property
    def reviews(self):
        return self.db[REVIEWS]

    def ensure_indexes(self) -> None:
        self.users.create_index("email", unique=True)
        self.users.create_index("is_admin")
        self.products.create_index("category")
        self.products.create_index("featured")
        self.products.create_index([("created_at", -1)])
        orders = self.db[ORDERS]
        orders.create_index("user_id")
        orders.create_index("status")
        orders.create_index([("created_at", -1)])
        self.reviews.create_index("product_id")
        self.reviews.create_index("status")
        self.db[CARTS].create_index("user_id", unique=True)
        self.db[NEWSLETTER].create_index("email", unique=True)
        for name in (BANNERS, TESTIMONIALS, CONTACTS):
            self.db[name].create_index([("created_at", -1)])

    def get_document(self, name: str, document_id, projection=None):
        object_id = parse_object_id(document_id)
        if object_id is None:
            return None
        return self.db[name].find_one({"_id": object_id}, projection)

    def paginate(
        self,
        name: str,
        query: Dict,
        limit: int,
        skip: int,
        sort: Iterable[Tuple[str, int]] = (("created_at", -1),),
        projection=None,
    ) -> Tuple[List[Dict], Dict[str, int]]:
        collection = self.db[name]
        total = collection.count_documents(query)
        cursor = (
            collection.find(query, projection)
            .sort(list(sort))
            .skip(skip)
            .limit(limit)
        )
        items = [serialize_document(document) for document in cursor]
        return items, page_metadata(total, limit, skip)

    # -- capabilities used by the admin gate and the rating aggregator --

    def find_user_by_id(self, user_id) -> Optional[Dict]:
        return self.get_document(USERS, user_id, PUBLIC_USER_PROJECTION)

    def find_user_by_email(self, email: str) -> Optional[Dict]:
        return self.users.find_one({"email": normalize_email(email)})

    def find_reviews_by_product_and_status(
        self, product_id: str, status: str
    ) -> List[Dict]:
        return list(
            self.reviews.find(
                {"product_id": str(product_id), "status": status}, {"rating": 1}
            )
        )

    def set_rating_fields(self, product_id, rating: float, review_count: int) -> bool:
        object_id = parse_object_id(product_id)
        if object_id is None:
            return False
        result = self.products.update_one(
            {"_id": object_id},
            {"$set": {"rating": rating, "review_count": review_count}},
        )
        return result.matched_count > 0
