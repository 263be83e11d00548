"""
Type exercise and badge API tests
"""

import pytest

from models import UserRole
from services import users as user_service

BADGE = {
    "name": "First finish",
    "description": "Complete your first challenge",
    "type": "ACHIEVEMENT",
    "rules": [{"condition": "challenges_completed", "operator": ">=", "value": 1}],
    "points": 25,
}


@pytest.fixture
def admin(make_user):
    return make_user(role=UserRole.SUPER_ADMIN)


class TestTypeExercises:

    def test_crud(self, client, admin, auth_headers):
        headers = auth_headers(admin)

        response = client.post(
            "/api/type-exercises",
            json={"name": "Deadlift", "targeted_muscles": ["Back", "Hamstrings"]},
            headers=headers,
        )
        assert response.status_code == 201
        type_id = response.json()["id"]

        response = client.put(f"/api/type-exercises/{type_id}", json={"description": "Hinge"}, headers=headers)
        assert response.json()["description"] == "Hinge"

        assert client.get(f"/api/type-exercises/{type_id}").status_code == 200
        assert client.delete(f"/api/type-exercises/{type_id}", headers=headers).status_code == 200
        assert client.get(f"/api/type-exercises/{type_id}").status_code == 404

    def test_duplicate_name(self, client, admin, auth_headers):
        headers = auth_headers(admin)
        payload = {"name": "Bench press", "targeted_muscles": ["chest"]}

        client.post("/api/type-exercises", json=payload, headers=headers)
        assert client.post("/api/type-exercises", json=payload, headers=headers).status_code == 409

    def test_muscles_required(self, client, admin, auth_headers):
        response = client.post(
            "/api/type-exercises", json={"name": "Nothing", "targeted_muscles": []}, headers=auth_headers(admin)
        )
        assert response.status_code == 400

    def test_search_by_muscle(self, client, admin, auth_headers):
        headers = auth_headers(admin)
        client.post("/api/type-exercises", json={"name": "Row", "targeted_muscles": ["Back"]}, headers=headers)
        client.post("/api/type-exercises", json={"name": "Curl", "targeted_muscles": ["Biceps"]}, headers=headers)

        response = client.get("/api/type-exercises/search", params={"muscle": "back"})
        assert [t["name"] for t in response.json()] == ["Row"]

        assert client.get("/api/type-exercises/search").status_code == 400

    def test_user_cannot_create(self, client, make_user, auth_headers):
        response = client.post(
            "/api/type-exercises",
            json={"name": "Lunge", "targeted_muscles": ["quads"]},
            headers=auth_headers(make_user()),
        )
        assert response.status_code == 403


class TestBadges:

    def test_create_and_read(self, client, admin, auth_headers):
        response = client.post("/api/badges", json=BADGE, headers=auth_headers(admin))

        assert response.status_code == 201
        badge = response.json()
        assert badge["rules"] == [{"condition": "challenges_completed", "operator": ">=", "value": 1.0}]
        assert badge["is_active"] is True

        assert client.get(f"/api/badges/{badge['id']}").json()["name"] == "First finish"
        assert [b["id"] for b in client.get("/api/badges/type/ACHIEVEMENT").json()] == [badge["id"]]

    def test_unknown_stat_field_rejected(self, client, admin, auth_headers):
        payload = {**BADGE, "rules": [{"condition": "marathons_run", "operator": ">=", "value": 1}]}
        assert client.post("/api/badges", json=payload, headers=auth_headers(admin)).status_code == 400

    def test_unknown_operator_rejected(self, client, admin, auth_headers):
        payload = {**BADGE, "rules": [{"condition": "streak_days", "operator": "=>", "value": 1}]}
        assert client.post("/api/badges", json=payload, headers=auth_headers(admin)).status_code == 400

    def test_empty_rules_rejected(self, client, admin, auth_headers):
        payload = {**BADGE, "rules": []}
        assert client.post("/api/badges", json=payload, headers=auth_headers(admin)).status_code == 400

    def test_duplicate_name(self, client, admin, auth_headers):
        headers = auth_headers(admin)
        client.post("/api/badges", json=BADGE, headers=headers)
        assert client.post("/api/badges", json=BADGE, headers=headers).status_code == 409

    def test_toggle_status(self, client, admin, make_badge, auth_headers):
        badge = make_badge()

        response = client.patch(f"/api/badges/{badge.id}/toggle-status", headers=auth_headers(admin))

        assert response.json()["is_active"] is False
        assert client.get("/api/badges/active").json() == []

    def test_update_and_delete(self, client, admin, make_badge, auth_headers):
        badge = make_badge()
        headers = auth_headers(admin)

        response = client.put(f"/api/badges/{badge.id}", json={"points": 99}, headers=headers)
        assert response.json()["points"] == 99

        assert client.delete(f"/api/badges/{badge.id}", headers=headers).status_code == 200
        assert client.get(f"/api/badges/{badge.id}").status_code == 404

    def test_my_eligible_badges(self, client, db, make_user, make_badge, auth_headers):
        user = make_user(challenges_completed=1)
        badge = make_badge()
        make_badge(rules=[{"condition": "streak_days", "operator": ">=", "value": 30}])

        response = client.get("/api/badges/me/eligible", headers=auth_headers(user))

        assert [b["id"] for b in response.json()] == [badge.id]
        assert not user_service.has_badge(db, user.id, badge.id)
