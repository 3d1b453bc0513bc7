import io
import os

from bson import ObjectId
from pymongo.errors import PyMongoError


def test_banner_lifecycle(client, store, admin_headers):
    created = client.post(
        "/api/banners",
        data={
            "title": "Summer Sale",
            "buttonText": "Shop now",
            "isActive": "true",
            "image": (io.BytesIO(b"GIF89a"), "sale.gif"),
        },
        headers=admin_headers,
        content_type="multipart/form-data",
    )
    assert created.status_code == 201
    banner_id = created.get_json()["bannerId"]
    client.post("/api/banners", json={"title": "Draft banner"}, headers=admin_headers)

    active = client.get("/api/banners?active=true").get_json()
    assert [banner["title"] for banner in active["banners"]] == ["Summer Sale"]
    assert active["banners"][0]["button_text"] == "Shop now"
    assert active["banners"][0]["image"].startswith("/uploads/banners/")
    assert client.get("/api/banners").get_json()["total"] == 2

    updated = client.put(
        f"/api/banners/{banner_id}", json={"isActive": False}, headers=admin_headers
    )
    assert updated.status_code == 200
    assert client.get("/api/banners?active=true").get_json()["banners"] == []

    deleted = client.delete(f"/api/banners/{banner_id}", headers=admin_headers)
    assert deleted.status_code == 200
    assert client.get(f"/api/banners/{banner_id}").status_code == 404


def test_banner_writes_require_admin(client, store, customer_headers):
    response = client.post("/api/banners", json={"title": "Nope"}, headers=customer_headers)

    assert response.status_code == 403
    assert store.collection("banners").count_documents({}) == 0


def test_testimonial_moderation(client, store, admin_headers):
    submitted = client.post(
        "/api/testimonials",
        json={"customerName": "Morgan", "testimonial": "Fast delivery!", "rating": ""},
    )
    assert submitted.status_code == 201
    testimonial_id = submitted.get_json()["testimonialId"]
    stored = store.collection("testimonials").find_one({"_id": ObjectId(testimonial_id)})
    assert stored["status"] == "pending"
    assert stored["rating"] == 5

    assert client.get("/api/testimonials").get_json()["testimonials"] == []

    approved = client.put(
        f"/api/testimonials/{testimonial_id}",
        json={"status": "approved"},
        headers=admin_headers,
    )
    assert approved.status_code == 200
    public = client.get("/api/testimonials").get_json()["testimonials"]
    assert [item["customer_name"] for item in public] == ["Morgan"]

    queue = client.get("/api/admin/testimonials", headers=admin_headers).get_json()
    assert queue["total"] == 1

    deleted = client.delete(f"/api/testimonials/{testimonial_id}", headers=admin_headers)
    assert deleted.status_code == 200
    assert store.collection("testimonials").count_documents({}) == 0


def test_testimonial_rating_is_validated(client):
    response = client.post(
        "/api/testimonials",
        json={"customerName": "Morgan", "testimonial": "Great", "rating": 9},
    )

    assert response.status_code == 400
    assert response.get_json() == {"error": "Rating must be between 1 and 5"}


def test_contact_messages(client, store, admin_headers, customer_headers):
    created = client.post(
        "/api/contact",
        json={
            "name": "Taylor",
            "email": "taylor@example.com",
            "subject": "Order question",
            "message": "Where is my parcel?",
        },
    )
    assert created.status_code == 201
    contact_id = created.get_json()["contactId"]

    assert client.get("/api/contact", headers=customer_headers).status_code == 403
    listing = client.get("/api/contact", headers=admin_headers).get_json()
    assert listing["contacts"][0]["status"] == "unread"

    marked = client.put(
        f"/api/contact/{contact_id}", json={"status": "read"}, headers=admin_headers
    )
    assert marked.status_code == 200
    stored = store.collection("contacts").find_one({"_id": ObjectId(contact_id)})
    assert stored["status"] == "read"


def test_contact_requires_fields(client, store):
    response = client.post("/api/contact", json={"name": "Taylor"})

    assert response.status_code == 400
    assert response.get_json()["error"] == "Missing required fields: email, subject, message"
    assert store.collection("contacts").count_documents({}) == 0


def test_failed_testimonial_insert_removes_avatar(app, client, store, monkeypatch):
    def refuse(self, document, *args, **kwargs):
        raise PyMongoError("insert refused")

    monkeypatch.setattr(type(store.collection("testimonials")), "insert_one", refuse)

    response = client.post(
        "/api/testimonials",
        data={
            "customerName": "Morgan",
            "testimonial": "Great",
            "avatar": (io.BytesIO(b"GIF89a"), "me.gif"),
        },
        content_type="multipart/form-data",
    )

    assert response.status_code == 500
    assert os.listdir(os.path.join(app.config["UPLOAD_FOLDER"], "testimonials")) == []
