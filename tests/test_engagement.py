import uuid

from app.models import ListingEnquiry, WishlistEntry


def test_toggle_wishlist_twice_restores_state(client, db, make_user, make_listing, auth_headers):
    owner = make_user()
    buyer = make_user()
    ad = make_listing(owner)
    url = f"/api/toggle-wish-list/{ad.id}"

    added = client.put(url, headers=auth_headers(buyer)).json()
    removed = client.put(url, headers=auth_headers(buyer)).json()

    assert added["inWishlist"] is True
    assert added["wishlist"] == [str(ad.id)]
    assert removed["inWishlist"] is False
    assert removed["wishlist"] == []
    assert db.query(WishlistEntry).count() == 0

    db.refresh(ad)
    assert [entry["userId"] for entry in ad.shortlists] == [str(buyer.id)]


def test_toggle_wishlist_unknown_listing(client, make_user, auth_headers):
    buyer = make_user()

    response = client.put(f"/api/toggle-wish-list/{uuid.uuid4()}", headers=auth_headers(buyer))

    assert response.status_code == 404


def test_wishlist_page(client, make_user, make_listing, auth_headers):
    owner = make_user()
    buyer = make_user()
    ads = [make_listing(owner) for _ in range(3)]
    for ad in ads:
        client.put(f"/api/toggle-wish-list/{ad.id}", headers=auth_headers(buyer))

    body = client.get("/api/wishlist/2", headers=auth_headers(buyer)).json()

    assert body["total"] == 3
    assert body["totalPages"] == 2
    assert len(body["ads"]) == 1


def test_contact_agent(client, db, make_user, make_listing, auth_headers, notifier):
    owner = make_user(email="owner@example.com")
    buyer = make_user(email="buyer@example.com")
    ad = make_listing(owner)

    response = client.post(
        "/api/contact-agent",
        json={"adId": str(ad.id), "message": "Is it still available?"},
        headers=auth_headers(buyer),
    )

    assert response.status_code == 200
    assert response.json()["user"]["enquiredProperties"] == [str(ad.id)]
    assert notifier.sent == [("enquiry", "owner@example.com", "buyer@example.com", "Is it still available?")]
    db.refresh(ad)
    assert ad.contact_requests[0]["message"] == "Is it still available?"


def test_contact_agent_twice_keeps_single_enquiry(client, db, make_user, make_listing, auth_headers):
    owner = make_user()
    buyer = make_user()
    ad = make_listing(owner)
    body = {"adId": str(ad.id), "message": "Hello"}

    client.post("/api/contact-agent", json=body, headers=auth_headers(buyer))
    client.post("/api/contact-agent", json=body, headers=auth_headers(buyer))

    assert db.query(ListingEnquiry).count() == 1
    db.refresh(ad)
    assert len(ad.contact_requests) == 2

    enquired = client.get("/api/enquired-ads/1", headers=auth_headers(buyer)).json()
    assert enquired["total"] == 1


def test_contact_agent_email_failure(client, db, make_user, make_listing, auth_headers, notifier):
    owner = make_user()
    buyer = make_user()
    ad = make_listing(owner)
    notifier.fail = True

    response = client.post(
        "/api/contact-agent",
        json={"adId": str(ad.id), "message": "Hello"},
        headers=auth_headers(buyer),
    )

    assert response.status_code == 502
    assert response.json()["success"] is False
    assert db.query(ListingEnquiry).count() == 1


def test_contact_agent_missing_listing(client, make_user, auth_headers):
    buyer = make_user()

    response = client.post(
        "/api/contact-agent",
        json={"adId": str(uuid.uuid4()), "message": "Hello"},
        headers=auth_headers(buyer),
    )

    assert response.status_code == 404


def test_deleting_listing_clears_reference_sets(client, db, make_user, make_listing, auth_headers):
    owner = make_user()
    buyer = make_user()
    ad = make_listing(owner)
    client.put(f"/api/toggle-wish-list/{ad.id}", headers=auth_headers(buyer))
    client.post("/api/contact-agent", json={"adId": str(ad.id), "message": "Hi"}, headers=auth_headers(buyer))

    client.delete(f"/api/delete-ad/{ad.slug}", headers=auth_headers(owner))

    assert db.query(WishlistEntry).count() == 0
    assert db.query(ListingEnquiry).count() == 0
