"""
Challenges API tests
"""

import pytest

from models import ChallengeParticipation, ChallengeStatus, Gym, GymStatus, ParticipationStatus, UserRole, WorkoutSession
from services import participations as participation_service
from services import users as user_service


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def headers(user, auth_headers):
    return auth_headers(user)


@pytest.fixture
def challenge(make_user, make_challenge):
    return make_challenge(make_user())


@pytest.fixture
def participation(db, user, challenge):
    return participation_service.join_challenge(db, user.id, challenge)


class TestCreate:

    def test_user_creates_challenge(self, client, user, headers, challenge_payload):
        response = client.post("/api/challenges", json=challenge_payload, headers=headers)

        assert response.status_code == 201
        body = response.json()
        assert body["created_by"] == user.id
        assert body["status"] == "ACTIVE"
        assert body["current_participants"] == 0
        assert body["is_public"] is True

    def test_user_cannot_bind_gym(self, client, headers, challenge_payload):
        response = client.post("/api/challenges", json={**challenge_payload, "gym_id": 1}, headers=headers)
        assert response.status_code == 403

    def test_gym_owner_bound_to_own_gym(self, client, db, make_user, auth_headers, challenge_payload):
        owner = make_user(role=UserRole.GYM_OWNER)
        gym = Gym(name="Owner gym", location="Here", owner_id=owner.id, status=GymStatus.APPROVED)
        db.add(gym)
        db.commit()

        response = client.post("/api/challenges", json=challenge_payload, headers=auth_headers(owner))

        assert response.status_code == 201
        assert response.json()["gym_id"] == gym.id

    def test_gym_owner_without_gym(self, client, make_user, auth_headers, challenge_payload):
        owner = make_user(role=UserRole.GYM_OWNER)
        response = client.post("/api/challenges", json=challenge_payload, headers=auth_headers(owner))
        assert response.status_code == 400

    def test_invalid_goal(self, client, headers, challenge_payload):
        payload = {**challenge_payload, "goals": [{"type": "VIBES", "target": 1, "unit": "x"}]}
        assert client.post("/api/challenges", json=payload, headers=headers).status_code == 400


class TestRead:

    def test_public_and_search(self, client, user, make_challenge):
        make_challenge(user, title="Morning run", tags=["cardio"])
        make_challenge(user, title="Hidden run", is_public=False)
        make_challenge(user, title="Draft run", status=ChallengeStatus.DRAFT)

        assert [c["title"] for c in client.get("/api/challenges/public").json()] == ["Morning run"]

        response = client.get("/api/challenges/search", params={"q": "cardio"})
        assert [c["title"] for c in response.json()] == ["Morning run"]

        assert client.get("/api/challenges/search").status_code == 400

    def test_get_by_id(self, client, challenge):
        assert client.get(f"/api/challenges/{challenge.id}").json()["title"] == challenge.title
        assert client.get("/api/challenges/9999").status_code == 404

    def test_my_lists_and_stats(self, client, user, headers, make_challenge, participation):
        own = make_challenge(user)

        response = client.get("/api/challenges/my/challenges", headers=headers)
        assert [c["id"] for c in response.json()] == [own.id]

        response = client.get("/api/challenges/my/participations", headers=headers)
        assert [p["id"] for p in response.json()] == [participation.id]

        response = client.get("/api/challenges/my/stats", headers=headers)
        assert response.json()["total_challenges"] == 1


class TestJoin:

    def test_join(self, client, db, headers, challenge):
        response = client.post(f"/api/challenges/{challenge.id}/join", headers=headers)

        assert response.status_code == 201
        assert response.json()["status"] == "JOINED"
        db.expire_all()
        assert challenge.current_participants == 1

    def test_join_twice(self, client, headers, challenge):
        client.post(f"/api/challenges/{challenge.id}/join", headers=headers)
        response = client.post(f"/api/challenges/{challenge.id}/join", headers=headers)

        assert response.status_code == 400
        assert response.json()["detail"] == "Already joined this challenge"

    def test_join_with_team(self, client, headers, challenge):
        response = client.post(f"/api/challenges/{challenge.id}/join", json={"team_id": "red"}, headers=headers)
        assert response.json()["team_id"] == "red"

    def test_join_unknown(self, client, headers):
        assert client.post("/api/challenges/9999/join", headers=headers).status_code == 404

    def test_requires_auth(self, client, challenge):
        assert client.post(f"/api/challenges/{challenge.id}/join").status_code == 401


class TestProgress:

    def test_in_progress(self, client, headers, participation):
        response = client.patch(
            f"/api/challenges/participations/{participation.id}/progress", json={"progress": 40}, headers=headers
        )

        assert response.status_code == 200
        assert response.json()["status"] == "IN_PROGRESS"

    @pytest.mark.parametrize("value", [-5, 150])
    def test_out_of_range(self, client, headers, participation, value):
        response = client.patch(
            f"/api/challenges/participations/{participation.id}/progress", json={"progress": value}, headers=headers
        )
        assert response.status_code == 400

    def test_other_users_participation_is_404(self, client, participation, make_user, auth_headers):
        response = client.patch(
            f"/api/challenges/participations/{participation.id}/progress",
            json={"progress": 10},
            headers=auth_headers(make_user()),
        )
        assert response.status_code == 404

    def test_completion_grants_badge_in_background(self, client, db, user, headers, participation, make_badge):
        badge = make_badge(points=30)

        response = client.patch(
            f"/api/challenges/participations/{participation.id}/progress", json={"progress": 100}, headers=headers
        )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "COMPLETED"
        assert body["completed_at"] is not None

        # TestClient выполняет фоновые задачи до возврата ответа
        db.expire_all()
        assert user.challenges_completed == 1
        assert user_service.has_badge(db, user.id, badge.id)
        assert user.total_score == 30

    def test_completed_rejects_updates(self, client, headers, participation):
        url = f"/api/challenges/participations/{participation.id}/progress"
        client.patch(url, json={"progress": 100}, headers=headers)

        response = client.patch(url, json={"progress": 20}, headers=headers)
        assert response.status_code == 400


class TestParticipationActions:

    def test_workout(self, client, headers, participation):
        response = client.post(
            f"/api/challenges/participations/{participation.id}/workout",
            json={
                "exercises": [
                    {"exercise_id": 1, "reps": 20, "duration": 15, "completed": True},
                    {"exercise_id": 2, "duration": 10, "calories_burned": 40},
                ],
                "calories_burned": 180,
                "notes": "Good session",
            },
            headers=headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["total_workouts"] == 1
        assert body["total_duration"] == 25
        assert body["total_calories"] == 180
        assert body["workout_sessions"][0]["notes"] == "Good session"

    def test_abandon(self, client, headers, participation):
        response = client.post(f"/api/challenges/participations/{participation.id}/abandon", headers=headers)

        assert response.json()["status"] == "ABANDONED"

    def test_personal_best(self, client, headers, participation):
        response = client.put(
            f"/api/challenges/participations/{participation.id}/personal-best",
            json={"reps": 40},
            headers=headers,
        )
        assert response.json()["personal_best"]["reps"] == 40

    def test_leave(self, client, db, headers, participation, challenge):
        response = client.delete(f"/api/challenges/participations/{participation.id}", headers=headers)

        assert response.status_code == 200
        db.expire_all()
        assert challenge.current_participants == 0


class TestLeaderboard:

    def test_leaderboard(self, client, db, challenge, make_user, participation):
        other = participation_service.join_challenge(db, make_user().id, challenge)
        participation_service.update_progress(db, other, 80)
        quitter = participation_service.join_challenge(db, make_user().id, challenge)
        participation_service.abandon(db, quitter)

        response = client.get(f"/api/challenges/{challenge.id}/leaderboard")

        body = response.json()
        assert [e["participation_id"] for e in body] == [other.id, participation.id]
        assert [e["rank"] for e in body] == [1, 2]
        assert body[0]["status"] == ParticipationStatus.IN_PROGRESS.value


class TestOwnerActions:

    def test_activate(self, client, user, headers, make_challenge):
        draft = make_challenge(user, status=ChallengeStatus.DRAFT, duration=10)

        response = client.patch(f"/api/challenges/{draft.id}/activate", headers=headers)

        body = response.json()
        assert body["status"] == "ACTIVE"
        assert body["start_date"] is not None
        assert body["end_date"] is not None

    def test_update_by_creator(self, client, user, headers, make_challenge):
        own = make_challenge(user)
        response = client.put(f"/api/challenges/{own.id}", json={"title": "Renamed"}, headers=headers)
        assert response.json()["title"] == "Renamed"

    def test_stranger_cannot_modify(self, client, headers, challenge):
        assert client.put(f"/api/challenges/{challenge.id}", json={"title": "X"}, headers=headers).status_code == 403
        assert client.delete(f"/api/challenges/{challenge.id}", headers=headers).status_code == 403
        assert client.patch(f"/api/challenges/{challenge.id}/activate", headers=headers).status_code == 403

    def test_admin_can_delete(self, client, db, challenge, participation, make_user, auth_headers):
        admin = make_user(role=UserRole.SUPER_ADMIN)
        participation_service.add_workout_session(db, participation, [{"exercise_id": 1, "duration": 10}], total_calories=50)
        challenge_id = challenge.id

        response = client.delete(f"/api/challenges/{challenge_id}", headers=auth_headers(admin))

        assert response.status_code == 200
        assert client.get(f"/api/challenges/{challenge_id}").status_code == 404
        db.expire_all()
        assert db.query(ChallengeParticipation).filter_by(challenge_id=challenge_id).count() == 0
        assert db.query(WorkoutSession).count() == 0
