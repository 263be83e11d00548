"""
Users API tests
"""

import pytest

from models import ChallengeParticipation, UserRole
from services import participations as participation_service
from services import users as user_service


@pytest.fixture
def admin(make_user):
    return make_user(role=UserRole.SUPER_ADMIN)


class TestProfile:

    def test_update_profile(self, client, make_user, auth_headers):
        user = make_user()
        response = client.put(
            "/api/users/profile",
            json={"first_name": "Renamed"},
            headers=auth_headers(user),
        )

        assert response.status_code == 200
        assert response.json()["first_name"] == "Renamed"
        assert response.json()["last_name"] == user.last_name


class TestFriends:

    def test_add_list_remove(self, client, make_user, auth_headers):
        user = make_user()
        friend = make_user()
        headers = auth_headers(user)

        response = client.post(f"/api/users/friends/{friend.id}", headers=headers)
        assert response.status_code == 200
        assert response.json()["friends_count"] == 1

        response = client.get("/api/users/friends", headers=headers)
        assert [f["id"] for f in response.json()] == [friend.id]

        assert client.delete(f"/api/users/friends/{friend.id}", headers=headers).status_code == 200
        assert client.delete(f"/api/users/friends/{friend.id}", headers=headers).status_code == 404

    def test_cannot_add_self(self, client, make_user, auth_headers):
        user = make_user()
        response = client.post(f"/api/users/friends/{user.id}", headers=auth_headers(user))
        assert response.status_code == 400

    def test_cannot_add_inactive(self, client, make_user, auth_headers):
        user = make_user()
        inactive = make_user(is_active=False)
        response = client.post(f"/api/users/friends/{inactive.id}", headers=auth_headers(user))
        assert response.status_code == 400

    def test_unknown_user(self, client, make_user, auth_headers):
        response = client.post("/api/users/friends/9999", headers=auth_headers(make_user()))
        assert response.status_code == 404


class TestLeaderboard:

    def test_public_ranking(self, client, make_user):
        make_user(total_score=10)
        best = make_user(total_score=300)

        response = client.get("/api/users/leaderboard", params={"limit": 1})

        assert response.status_code == 200
        assert response.json() == [{
            "rank": 1,
            "id": best.id,
            "first_name": best.first_name,
            "last_name": best.last_name,
            "total_score": 300,
            "badges": 0,
        }]


class TestAdmin:

    def test_regular_user_forbidden(self, client, make_user, auth_headers):
        response = client.get("/api/users", headers=auth_headers(make_user()))
        assert response.status_code == 403

    def test_list_users(self, client, admin, make_user, auth_headers):
        make_user()
        make_user(role=UserRole.GYM_OWNER)

        response = client.get("/api/users", params={"role": "GYM_OWNER"}, headers=auth_headers(admin))

        assert response.status_code == 200
        body = response.json()
        assert [u["role"] for u in body["users"]] == ["GYM_OWNER"]
        assert body["stats"]["total_users"] == 3
        assert body["pagination"] == {"page": 1, "limit": 20, "total": 1}

    def test_deactivate_and_activate(self, client, db, admin, make_user, auth_headers):
        user = make_user()
        headers = auth_headers(admin)

        response = client.post(f"/api/users/{user.id}/deactivate", headers=headers)
        assert response.status_code == 200
        assert response.json()["user"]["is_active"] is False

        response = client.post(f"/api/users/{user.id}/activate", headers=headers)
        assert response.json()["user"]["is_active"] is True

    def test_cannot_deactivate_self(self, client, admin, auth_headers):
        response = client.post(f"/api/users/{admin.id}/deactivate", headers=auth_headers(admin))
        assert response.status_code == 400

    def test_delete_user(self, client, admin, make_user, auth_headers):
        user = make_user()
        headers = auth_headers(admin)

        assert client.delete(f"/api/users/{user.id}", headers=headers).status_code == 200
        assert client.delete(f"/api/users/{user.id}", headers=headers).status_code == 404

    def test_delete_participant_keeps_leaderboard(self, client, db, admin, make_user, make_challenge, auth_headers):
        challenge = make_challenge(make_user())
        member = make_user()
        stayer = make_user()
        participation_service.join_challenge(db, member.id, challenge)
        kept = participation_service.join_challenge(db, stayer.id, challenge)
        user_service.add_friend(db, stayer, member)
        member_id = member.id

        assert client.delete(f"/api/users/{member_id}", headers=auth_headers(admin)).status_code == 200

        response = client.get(f"/api/challenges/{challenge.id}/leaderboard")
        assert response.status_code == 200
        assert [e["participation_id"] for e in response.json()] == [kept.id]

        db.expire_all()
        assert participation_service.get_user_challenge_participation(db, member_id, challenge.id) is None
        assert db.query(ChallengeParticipation).filter_by(user_id=member_id).count() == 0
        assert stayer.friend_ids == []

    def test_delete_creator_removes_challenges(self, client, db, admin, make_user, make_challenge, auth_headers):
        creator = make_user()
        challenge = make_challenge(creator)
        participation_service.join_challenge(db, make_user().id, challenge)
        challenge_id = challenge.id

        assert client.delete(f"/api/users/{creator.id}", headers=auth_headers(admin)).status_code == 200

        assert client.get(f"/api/challenges/{challenge_id}").status_code == 404
        db.expire_all()
        assert db.query(ChallengeParticipation).filter_by(challenge_id=challenge_id).count() == 0

    def test_promote_gym_owner(self, client, admin, make_user, auth_headers):
        user = make_user()
        response = client.post(f"/api/users/{user.id}/promote-gym-owner", headers=auth_headers(admin))

        assert response.status_code == 200
        assert response.json()["user"]["role"] == "GYM_OWNER"

    def test_promote_gym_owner_unknown_gym(self, client, admin, make_user, auth_headers):
        user = make_user()
        response = client.post(
            f"/api/users/{user.id}/promote-gym-owner",
            json={"gym_id": 9999},
            headers=auth_headers(admin),
        )
        assert response.status_code == 404

    def test_promote_super_admin(self, client, admin, make_user, auth_headers):
        user = make_user()
        response = client.post(f"/api/users/{user.id}/promote-super-admin", headers=auth_headers(admin))
        assert response.json()["user"]["role"] == "SUPER_ADMIN"
