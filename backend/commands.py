from datetime import datetime

import click
from flask import current_app

from .config import DEFAULT_ADMIN_EMAIL, DEFAULT_ADMIN_NAME, DEFAULT_ADMIN_PASSWORD
from .routes.auth import hash_password
from .storage import BANNERS, normalize_email

SAMPLE_PRODUCTS = [
    {
        "name": "iPhone 15 Pro",
        "description": "Latest iPhone with advanced camera system",
        "price": 999.0,
        "original_price": 1099.0,
        "category": "Electronics",
        "brand": "Apple",
        "stock": 25,
        "featured": True,
        "images": ["/iphone-15-pro-max-back.png"],
    },
    {
        "name": "MacBook Air M3",
        "description": "Powerful laptop with M3 chip",
        "price": 1299.0,
        "original_price": 1399.0,
        "category": "Electronics",
        "brand": "Apple",
        "stock": 10,
        "featured": True,
        "images": ["/macbook-pro-16-inch.jpg"],
    },
    {
        "name": "AirPods Pro",
        "description": "Wireless earbuds with noise cancellation",
        "price": 249.0,
        "original_price": 279.0,
        "category": "Electronics",
        "brand": "Apple",
        "stock": 40,
        "featured": False,
        "images": ["/electronics/airpods.jpg"],
    },
]

SAMPLE_BANNER = {
    "title": "Big Sale - Up to 50% Off",
    "subtitle": "",
    "description": "Limited time offer on selected items",
    "button_text": "Shop now",
    "button_link": "/products",
    "position": "hero",
    "is_active": True,
    "background_color": "#ffffff",
    "text_color": "#000000",
    "image": "/banners/soundbar.jpg",
}


def create_admin_user(store, email: str, password: str, name: str):
    """Insert an administrator unless one with ``email`` already exists.

    Returns ``(document, created)``.
    """
    email = normalize_email(email)
    existing = store.find_user_by_email(email)
    if existing:
        return existing, False

    document = {
        "name": name,
        "email": email,
        "password": hash_password(password),
        "is_admin": True,
        "created_at": datetime.utcnow(),
    }
    document["_id"] = store.users.insert_one(document).inserted_id
    return document, True


def seed_sample_data(store) -> int:
    if store.products.count_documents({}) > 0:
        return 0

    timestamp = datetime.utcnow()
    documents = [
        {
            **product,
            "tags": [],
            "rating": 0,
            "review_count": 0,
            "created_at": timestamp,
            "updated_at": timestamp,
        }
        for product in SAMPLE_PRODUCTS
    ]
    store.products.insert_many(documents)

    banners = store.collection(BANNERS)
    if banners.count_documents({}) == 0:
        banners.insert_one(
            {**SAMPLE_BANNER, "created_at": timestamp, "updated_at": timestamp}
        )
    return len(documents)


def register_commands(app):
    @app.cli.command("init-db")
    def init_db_command():
        """Create the collection indexes."""
        current_app.extensions["store"].ensure_indexes()
        click.echo("Database indexes are in place.")

    @app.cli.command("create-admin")
    @click.option("--email", default=DEFAULT_ADMIN_EMAIL, show_default=True)
    @click.option("--name", default=DEFAULT_ADMIN_NAME, show_default=True)
    @click.option("--password", default=DEFAULT_ADMIN_PASSWORD)
    def create_admin_command(email, name, password):
        """Create the administrator account if it does not exist yet."""
        if not password:
            raise click.UsageError(
                "Provide --password or set DEFAULT_ADMIN_PASSWORD."
            )
        document, created = create_admin_user(
            current_app.extensions["store"], email, password, name
        )
        if created:
            click.echo(f"Admin user created: {document['email']} ({document['_id']})")
        else:
            click.echo(f"Admin user already exists: {document['email']}")

    @app.cli.command("seed")
    def seed_command():
        """Insert sample products and a banner into an empty catalog."""
        inserted = seed_sample_data(current_app.extensions["store"])
        if inserted:
            click.echo(f"Seeded {inserted} sample products.")
        else:
            click.echo("Catalog already has products; nothing seeded.")
