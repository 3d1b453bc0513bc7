from datetime import datetime

import bcrypt
import mongomock
import pytest

from backend import create_app
from backend.admin_gate import issue_token

TEST_SECRET = "test-secret-key-with-at-least-32-bytes!"
TEST_PASSWORD = "secret123"


@pytest.fixture
def database():
    return mongomock.MongoClient().db


@pytest.fixture
def app(database, tmp_path):
    app = create_app(
        {
            "TESTING": True,
            "JWT_SECRET_KEY": TEST_SECRET,
            "UPLOAD_FOLDER": str(tmp_path / "uploads"),
            "TRUSTED_PROXY_HOPS": 0,
            "RATING_REFRESH_MODE": "inline",
        },
        database=database,
    )
    yield app
    app.extensions["ratings"].shutdown()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def store(app):
    return app.extensions["store"]


def make_user(store, email, name="Test User", is_admin=False, password=TEST_PASSWORD):
    document = {
        "name": name,
        "email": email,
        # checkpw reads the cost factor from the hash itself.
        "password": bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=4)),
        "is_admin": is_admin,
        "created_at": datetime.utcnow(),
    }
    document["_id"] = store.users.insert_one(document).inserted_id
    return document


def make_product(store, **fields):
    document = {
        "name": "Noise Cancelling Headphones",
        "description": "Over-ear, 30h battery",
        "price": 199.0,
        "category": "Audio",
        "brand": "Acme",
        "stock": 12,
        "featured": False,
        "tags": ["audio"],
        "images": [],
        "rating": 0,
        "review_count": 0,
        "created_at": datetime.utcnow(),
        "updated_at": datetime.utcnow(),
    }
    document.update(fields)
    document["_id"] = store.products.insert_one(document).inserted_id
    return document


@pytest.fixture
def admin_user(store):
    return make_user(store, "admin@example.com", name="Ada Admin", is_admin=True)


@pytest.fixture
def customer(store):
    return make_user(store, "shopper@example.com", name="Sam Shopper")


@pytest.fixture
def token_for(app):
    def issue(user):
        with app.app_context():
            return issue_token(user)

    return issue


@pytest.fixture
def admin_headers(admin_user, token_for):
    return {"Authorization": f"Bearer {token_for(admin_user)}"}


@pytest.fixture
def customer_headers(customer, token_for):
    return {"Authorization": f"Bearer {token_for(customer)}"}


@pytest.fixture
def product(store):
    return make_product(store)
