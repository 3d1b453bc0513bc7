import logging

import pytest
from bson import ObjectId


def submit_review(client, product, rating, **fields):
    payload = {
        "productId": str(product["_id"]),
        "customerName": "Jamie",
        "customerEmail": "jamie@example.com",
        "rating": rating,
        "title": "Solid",
        "comment": "Does what it says.",
    }
    payload.update(fields)
    return client.post("/api/reviews", json=payload)


def set_status(client, headers, review_id, status):
    return client.put(f"/api/reviews/{review_id}", json={"status": status}, headers=headers)


def stored_rating(store, product):
    document = store.products.find_one({"_id": product["_id"]})
    return document["rating"], document["review_count"]


def test_submitted_review_is_pending_and_hidden(client, store, product):
    response = submit_review(client, product, 5)

    assert response.status_code == 201
    body = response.get_json()
    assert body["success"] is True
    review = store.reviews.find_one({"_id": ObjectId(body["reviewId"])})
    assert review["status"] == "pending"
    assert review["product_id"] == str(product["_id"])

    listed = client.get(f"/api/reviews?productId={product['_id']}").get_json()
    assert listed["reviews"] == []
    assert stored_rating(store, product) == (0, 0)


@pytest.mark.parametrize("rating", [0, 6, -1, True])
def test_out_of_range_rating_is_rejected(client, store, product, rating):
    response = submit_review(client, product, rating)

    assert response.status_code == 400
    assert response.get_json() == {"error": "Rating must be between 1 and 5"}
    assert store.reviews.count_documents({}) == 0


def test_missing_fields_are_reported(client, store, product):
    response = client.post("/api/reviews", json={"productId": str(product["_id"])})

    assert response.status_code == 400
    assert response.get_json()["error"].startswith("Missing required fields")
    assert store.reviews.count_documents({}) == 0


def test_review_for_unknown_product_is_not_found(client, store):
    response = submit_review(client, {"_id": ObjectId()}, 4)

    assert response.status_code == 404
    assert response.get_json() == {"error": "Product not found"}
    assert store.reviews.count_documents({}) == 0


def test_review_for_malformed_product_id(client, store):
    response = submit_review(client, {"_id": "not-an-id"}, 4)

    assert response.status_code == 400
    assert store.reviews.count_documents({}) == 0


def test_moderation_drives_the_product_rating(client, store, product, admin_headers):
    review_ids = {}
    for rating in (5, 4, 3):
        response = submit_review(client, product, rating)
        review_ids[rating] = response.get_json()["reviewId"]
        assert set_status(client, admin_headers, review_ids[rating], "approved").status_code == 200
    assert stored_rating(store, product) == (4.0, 3)

    review_ids[2] = submit_review(client, product, 2).get_json()["reviewId"]
    assert stored_rating(store, product) == (4.0, 3)

    set_status(client, admin_headers, review_ids[2], "approved")
    assert stored_rating(store, product) == (3.5, 4)

    set_status(client, admin_headers, review_ids[2], "rejected")
    assert stored_rating(store, product) == (4.0, 3)

    response = client.delete(f"/api/reviews/{review_ids[5]}", headers=admin_headers)
    assert response.status_code == 200
    assert stored_rating(store, product) == (3.5, 2)

    listed = client.get(f"/api/reviews?productId={product['_id']}").get_json()
    assert sorted(review["rating"] for review in listed["reviews"]) == [3, 4]
    assert listed["total"] == 2


def test_status_update_accepts_form_data(client, store, product, admin_headers):
    review_id = submit_review(client, product, 5).get_json()["reviewId"]

    response = client.put(
        f"/api/reviews/{review_id}", data={"status": "approved"}, headers=admin_headers
    )

    assert response.status_code == 200
    assert stored_rating(store, product) == (5.0, 1)


def test_editing_an_approved_rating_recomputes(client, store, product, admin_headers):
    review_id = submit_review(client, product, 5).get_json()["reviewId"]
    set_status(client, admin_headers, review_id, "approved")

    client.put(f"/api/reviews/{review_id}", json={"rating": 2}, headers=admin_headers)

    assert stored_rating(store, product) == (2.0, 1)


def test_deleting_a_pending_review_keeps_the_rating(client, store, product, admin_headers):
    approved = submit_review(client, product, 4).get_json()["reviewId"]
    set_status(client, admin_headers, approved, "approved")
    pending = submit_review(client, product, 1).get_json()["reviewId"]

    client.delete(f"/api/reviews/{pending}", headers=admin_headers)

    assert stored_rating(store, product) == (4.0, 1)
    assert store.reviews.count_documents({}) == 1


def test_invalid_status_is_rejected(client, product, admin_headers):
    review_id = submit_review(client, product, 4).get_json()["reviewId"]

    response = set_status(client, admin_headers, review_id, "published")

    assert response.status_code == 400
    assert response.get_json() == {"error": "Invalid status"}


def test_empty_update_is_rejected(client, product, admin_headers):
    review_id = submit_review(client, product, 4).get_json()["reviewId"]

    response = client.put(f"/api/reviews/{review_id}", json={}, headers=admin_headers)

    assert response.status_code == 400
    assert response.get_json() == {"error": "Nothing to update"}


def test_moderation_requires_admin(client, store, product, customer_headers):
    review_id = submit_review(client, product, 5).get_json()["reviewId"]

    update = set_status(client, customer_headers, review_id, "approved")
    delete = client.delete(f"/api/reviews/{review_id}", headers=customer_headers)

    assert update.status_code == 403
    assert delete.status_code == 403
    assert store.reviews.find_one({"_id": ObjectId(review_id)})["status"] == "pending"


def test_unknown_review_is_not_found(client, admin_headers):
    response = set_status(client, admin_headers, str(ObjectId()), "approved")

    assert response.status_code == 404
    assert response.get_json() == {"error": "Review not found"}


def test_moderation_queue_filters_by_status(client, product, admin_headers):
    first = submit_review(client, product, 5).get_json()["reviewId"]
    submit_review(client, product, 3)
    set_status(client, admin_headers, first, "approved")

    pending = client.get("/api/admin/reviews?status=pending", headers=admin_headers)
    everything = client.get("/api/admin/reviews", headers=admin_headers)

    assert [review["rating"] for review in pending.get_json()["reviews"]] == [3]
    assert everything.get_json()["total"] == 2


def test_recompute_failure_does_not_fail_the_request(
    client, store, product, admin_headers, monkeypatch, caplog
):
    caplog.set_level(logging.ERROR)

    def broken_write(product_id, rating, review_count):
        raise RuntimeError("write refused")

    monkeypatch.setattr(store, "set_rating_fields", broken_write)

    created = submit_review(client, product, 5)
    assert created.status_code == 201

    approved = set_status(client, admin_headers, created.get_json()["reviewId"], "approved")
    assert approved.status_code == 200

    review = store.reviews.find_one({"_id": ObjectId(created.get_json()["reviewId"])})
    assert review["status"] == "approved"
    assert stored_rating(store, product) == (0, 0)
    assert "Rating recompute failed" in caplog.text
