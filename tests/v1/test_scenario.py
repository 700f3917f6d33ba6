"""End-to-end walk through the review lifecycle over HTTP."""

from __future__ import annotations

from review_filter.policy.moderation import ModerationStatus

REVIEWS_URL = "/api/v1/reviews/"


def test_review_lifecycle(client, admin, member, headers_for):
    published = client.post(
        REVIEWS_URL,
        json={"course_title": "Algorithms", "course_platform": "MIT OCW", "content": "Dense.", "rating": 4},
        headers=headers_for(member),
    ).json()
    client.patch(f"/api/v1/admin/review/{published['id']}", json={"action": "approve"}, headers=headers_for(admin))

    # Anonymous readers see approved content only.
    assert client.get(f"{REVIEWS_URL}{published['id']}").status_code == 200

    # A newcomer signs up and submits a review.
    registered = client.post("/api/v1/auth/register", json={"nickname": "Newbie"}, headers=headers_for("newbie"))
    assert registered.status_code == 201
    token = {"Authorization": f"Bearer {registered.json()['access_token']}"}

    created = client.post(
        REVIEWS_URL,
        json={"course_title": "Python Basics", "course_platform": "Udemy", "content": "Great start.", "rating": 5},
        headers=token,
    )
    assert created.status_code == 201
    review_id = created.json()["id"]
    assert created.json()["status"] == ModerationStatus.PENDING.value

    assert client.get(f"{REVIEWS_URL}{review_id}").status_code == 404
    assert client.get(f"{REVIEWS_URL}{review_id}", headers=token).status_code == 200

    # Approval promotes the author.
    approved = client.patch(
        f"/api/v1/admin/review/{review_id}",
        json={"action": "approve"},
        headers=headers_for(admin),
    )
    assert approved.json()["status"] == "APPROVED"
    assert client.get("/api/v1/users/me", headers=token).json()["role"] == "AUTH_LOGIN"

    refreshed = client.post("/api/v1/auth/refresh", headers=token).json()
    token = {"Authorization": f"Bearer {refreshed['access_token']}"}
    permissions = client.get("/api/v1/users/me/permissions", headers=token).json()
    assert permissions["can_view_all_reviews"] is True

    # Editing approved content sends it back for review.
    edited = client.put(f"{REVIEWS_URL}{review_id}", json={"content": "Great start, updated."}, headers=token)
    assert edited.status_code == 200
    assert edited.json()["status"] == "PENDING"
    assert client.get(f"{REVIEWS_URL}{review_id}").status_code == 404

    # A rejection is final for the author.
    rejected = client.patch(
        f"/api/v1/admin/review/{review_id}",
        json={"action": "reject", "reason": "Too short"},
        headers=headers_for(admin),
    )
    assert rejected.json()["status"] == "REJECTED"
    assert client.put(f"{REVIEWS_URL}{review_id}", json={"content": "Please?"}, headers=token).status_code == 409

    mine = client.get(f"{REVIEWS_URL}{review_id}", headers=token).json()
    assert mine["status"] == "REJECTED"
    assert mine["moderation_reason"] == "Too short"
