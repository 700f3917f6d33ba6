"""API tests for administrative role management."""

from __future__ import annotations

USERS_URL = "/api/v1/admin/users"


def test_list_users_requires_admin(client, member, headers_for):
    assert client.get(USERS_URL, headers=headers_for(member)).status_code == 403


def test_list_users(client, admin, member, newcomer, headers_for):
    response = client.get(USERS_URL, headers=headers_for(admin))

    assert response.status_code == 200
    assert {user["id"] for user in response.json()} == {admin.id, member.id, newcomer.id}


def test_block_and_unblock_restores_role(client, admin, premium, headers_for):
    url = f"{USERS_URL}/{premium.id}"

    blocked = client.patch(url, json={"action": "block", "reason": "Spam"}, headers=headers_for(admin))

    assert blocked.status_code == 200
    assert blocked.json()["role"] == "BLOCKED_LOGIN"
    assert blocked.json()["previous_role"] == "AUTH_PREMIUM"
    assert blocked.json()["managed_by"] == admin.id
    assert blocked.json()["management_reason"] == "Spam"

    restored = client.patch(url, json={"action": "unblock"}, headers=headers_for(admin))

    assert restored.json()["role"] == "AUTH_PREMIUM"
    assert restored.json()["previous_role"] is None


def test_blocked_user_loses_write_access(client, admin, member, headers_for):
    client.patch(f"{USERS_URL}/{member.id}", json={"action": "block"}, headers=headers_for(admin))

    # The old token still claims AUTH_LOGIN; the stored role wins.
    response = client.post(
        "/api/v1/reviews/",
        json={"course_title": "X", "course_platform": "Y", "content": "Z", "rating": 3},
        headers=headers_for(member.id, member.role),
    )

    assert response.status_code == 403


def test_admin_cannot_change_own_role(client, admin, headers_for):
    response = client.patch(f"{USERS_URL}/{admin.id}", json={"action": "demote"}, headers=headers_for(admin))

    assert response.status_code == 403


def test_admin_cannot_change_another_admin(client, admin, other_admin, headers_for):
    response = client.patch(f"{USERS_URL}/{other_admin.id}", json={"action": "block"}, headers=headers_for(admin))

    assert response.status_code == 403


def test_illegal_transition_conflicts(client, admin, premium, headers_for):
    response = client.patch(f"{USERS_URL}/{premium.id}", json={"action": "promote"}, headers=headers_for(admin))

    assert response.status_code == 409


def test_set_role(client, admin, newcomer, headers_for):
    response = client.patch(
        f"{USERS_URL}/{newcomer.id}",
        json={"action": "set_role", "role": "AUTH_PREMIUM"},
        headers=headers_for(admin),
    )

    assert response.status_code == 200
    assert response.json()["role"] == "AUTH_PREMIUM"


def test_admin_can_grant_admin(client, admin, member, headers_for):
    response = client.patch(
        f"{USERS_URL}/{member.id}",
        json={"action": "set_role", "role": "ADMIN"},
        headers=headers_for(admin),
    )

    assert response.status_code == 200
    assert response.json()["role"] == "ADMIN"


def test_unknown_user_is_not_found(client, admin, headers_for):
    response = client.patch(f"{USERS_URL}/ghost", json={"action": "promote"}, headers=headers_for(admin))

    assert response.status_code == 404


def test_non_admin_cannot_block(client, premium, member, headers_for):
    response = client.patch(f"{USERS_URL}/{member.id}", json={"action": "block"}, headers=headers_for(premium))

    assert response.status_code == 403
