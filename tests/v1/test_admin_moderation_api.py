"""API tests for the moderation queue, verdicts, audit log and stats."""

from __future__ import annotations

from review_filter.policy.moderation import ModerationStatus
from review_filter.policy.roles import Role

ADMIN_URL = "/api/v1/admin"


def test_queue_requires_authentication(client):
    assert client.get(f"{ADMIN_URL}/review").status_code == 401


def test_queue_requires_admin(client, premium, headers_for):
    assert client.get(f"{ADMIN_URL}/review", headers=headers_for(premium)).status_code == 403


def test_forged_admin_claim_is_not_trusted(client, premium, headers_for):
    response = client.get(f"{ADMIN_URL}/review", headers=headers_for(premium, Role.ADMIN))

    assert response.status_code == 403


def test_queue_lists_pending_items(client, admin, member, make_review, headers_for):
    pending = make_review(member)
    make_review(member, status=ModerationStatus.APPROVED)

    response = client.get(f"{ADMIN_URL}/review", headers=headers_for(admin))

    assert response.status_code == 200
    assert [item["id"] for item in response.json()] == [pending.id]


def test_approve_then_approve_again_is_idempotent(client, admin, member, make_review, headers_for):
    review = make_review(member)
    url = f"{ADMIN_URL}/review/{review.id}"

    first = client.patch(url, json={"action": "approve"}, headers=headers_for(admin))
    second = client.patch(url, json={"action": "approve"}, headers=headers_for(admin))

    assert first.status_code == 200
    assert second.status_code == 200
    assert first.json()["status"] == second.json()["status"] == "APPROVED"
    assert first.json()["moderated_at"] == second.json()["moderated_at"]


def test_reject_then_approve_conflicts(client, admin, member, make_roadmap, headers_for):
    roadmap = make_roadmap(member)
    url = f"{ADMIN_URL}/roadmap/{roadmap.id}"

    rejected = client.patch(url, json={"action": "reject", "reason": "Off topic"}, headers=headers_for(admin))
    approved = client.patch(url, json={"action": "approve"}, headers=headers_for(admin))

    assert rejected.status_code == 200
    assert rejected.json()["moderation_reason"] == "Off topic"
    assert approved.status_code == 409


def test_non_admin_cannot_approve(client, premium, member, make_review, headers_for):
    review = make_review(member)

    response = client.patch(
        f"{ADMIN_URL}/review/{review.id}",
        json={"action": "approve"},
        headers=headers_for(premium),
    )

    assert response.status_code == 403


def test_anonymous_cannot_approve(client, member, make_review):
    review = make_review(member)

    response = client.patch(f"{ADMIN_URL}/review/{review.id}", json={"action": "approve"})

    assert response.status_code == 401


def test_unknown_action_is_rejected(client, admin, member, make_review, headers_for):
    review = make_review(member)

    response = client.patch(
        f"{ADMIN_URL}/review/{review.id}",
        json={"action": "delete"},
        headers=headers_for(admin),
    )

    assert response.status_code == 422


def test_moderating_missing_item_is_not_found(client, admin, headers_for):
    response = client.patch(f"{ADMIN_URL}/comment/missing", json={"action": "approve"}, headers=headers_for(admin))

    assert response.status_code == 404


def test_approval_promotes_author_and_is_audited(client, admin, newcomer, make_review, headers_for):
    review = make_review(newcomer)

    client.patch(f"{ADMIN_URL}/review/{review.id}", json={"action": "approve"}, headers=headers_for(admin))

    users = client.get(f"{ADMIN_URL}/users", params={"role": "AUTH_LOGIN"}, headers=headers_for(admin))
    assert [user["id"] for user in users.json()] == [newcomer.id]

    events = client.get(f"{ADMIN_URL}/events", headers=headers_for(admin)).json()
    assert [(event["subject_kind"], event["action"]) for event in events] == [
        ("user", "promote"),
        ("review", "approve"),
    ]


def test_events_are_hidden_from_non_admins(client, member, headers_for):
    assert client.get(f"{ADMIN_URL}/events", headers=headers_for(member)).status_code == 403


def test_stats(client, admin, member, make_review, headers_for):
    make_review(member)
    make_review(member, status=ModerationStatus.APPROVED)

    response = client.get(f"{ADMIN_URL}/stats", headers=headers_for(admin))

    assert response.status_code == 200
    assert response.json()["content"]["reviews"] == {"PENDING": 1, "APPROVED": 1, "REJECTED": 0}
    assert response.json()["users"]["ADMIN"] == 1
