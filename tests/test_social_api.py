"""Tests de amistades, perfiles, feed, ánimos, leaderboard y búsqueda."""

import pytest


@pytest.fixture
def ana(signup):
    return signup("ana")


@pytest.fixture
def bruno(signup):
    return signup("bruno")


def create_habit(client, headers, name="Leer"):
    response = client.post("/api/habits", json={"name": name}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def check_in(client, headers, habit_id, date=None):
    body = {"date": date.isoformat()} if date else {}
    response = client.post(f"/api/habits/{habit_id}/checkin", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["check_in"]


class TestFriendRequests:

    def test_request_and_accept(self, client, ana, bruno):
        user_a, headers_a = ana
        user_b, headers_b = bruno

        sent = client.post(f"/api/friends/request/{user_b['id']}", headers=headers_a)
        assert sent.status_code == 201
        assert sent.json()["friendship"]["status"] == "pending"
        assert sent.json()["friendship"]["user"]["username"] == "bruno"

        requests_b = client.get("/api/friends/requests", headers=headers_b).json()
        assert [r["user"]["username"] for r in requests_b["received"]] == ["ana"]
        requests_a = client.get("/api/friends/requests", headers=headers_a).json()
        assert [r["user"]["username"] for r in requests_a["sent"]] == ["bruno"]

        friendship_id = sent.json()["friendship"]["id"]
        accepted = client.post(f"/api/friends/accept/{friendship_id}", headers=headers_b)
        assert accepted.status_code == 200
        assert accepted.json()["friend"]["username"] == "ana"

        friends_a = client.get("/api/friends", headers=headers_a).json()
        assert [f["username"] for f in friends_a["friends"]] == ["bruno"]
        friends_b = client.get("/api/friends", headers=headers_b).json()
        assert [f["username"] for f in friends_b["friends"]] == ["ana"]

    def test_request_to_self_is_bad_request(self, client, ana):
        user_a, headers_a = ana
        assert client.post(f"/api/friends/request/{user_a['id']}", headers=headers_a).status_code == 400

    def test_request_to_unknown_user(self, client, ana):
        _, headers_a = ana
        assert client.post("/api/friends/request/9999", headers=headers_a).status_code == 404

    def test_duplicate_request_is_bad_request(self, client, ana, bruno):
        _, headers_a = ana
        user_b, headers_b = bruno
        client.post(f"/api/friends/request/{user_b['id']}", headers=headers_a)

        assert client.post(f"/api/friends/request/{user_b['id']}", headers=headers_a).status_code == 400
        # tampoco en sentido contrario
        assert client.post(f"/api/friends/request/{ana[0]['id']}", headers=headers_b).status_code == 400

    def test_already_friends_is_bad_request(self, client, ana, bruno, make_friends):
        make_friends(ana, bruno)
        user_b, _ = bruno
        _, headers_a = ana
        assert client.post(f"/api/friends/request/{user_b['id']}", headers=headers_a).status_code == 400

    def test_declined_request_can_be_reopened(self, client, ana, bruno):
        user_a, headers_a = ana
        user_b, headers_b = bruno
        sent = client.post(f"/api/friends/request/{user_b['id']}", headers=headers_a).json()

        declined = client.post(f"/api/friends/decline/{sent['friendship']['id']}", headers=headers_b)
        assert declined.status_code == 200
        assert client.get("/api/friends/requests", headers=headers_b).json()["received"] == []

        # Ahora es bruno quien la reenvía
        reopened = client.post(f"/api/friends/request/{user_a['id']}", headers=headers_b)
        assert reopened.status_code == 200
        assert reopened.json()["friendship"]["id"] == sent["friendship"]["id"]
        assert reopened.json()["friendship"]["user"]["username"] == "ana"
        assert reopened.json()["friendship"]["status"] == "pending"

        received = client.get("/api/friends/requests", headers=headers_a).json()["received"]
        assert [r["user"]["username"] for r in received] == ["bruno"]

    def test_only_addressee_can_accept(self, client, ana, bruno):
        _, headers_a = ana
        user_b, _ = bruno
        sent = client.post(f"/api/friends/request/{user_b['id']}", headers=headers_a).json()

        response = client.post(f"/api/friends/accept/{sent['friendship']['id']}", headers=headers_a)
        assert response.status_code == 404

    def test_remove_friend(self, client, ana, bruno, make_friends):
        friendship_id = make_friends(ana, bruno)
        _, headers_a = ana
        _, headers_b = bruno

        assert client.delete(f"/api/friends/{friendship_id}", headers=headers_b).status_code == 200
        assert client.get("/api/friends", headers=headers_a).json()["friends"] == []
        assert client.delete(f"/api/friends/{friendship_id}", headers=headers_a).status_code == 404


class TestUsers:

    def test_search(self, client, ana, bruno, signup):
        signup("brenda")
        _, headers_a = ana

        response = client.get("/api/users/search", params={"q": "BR"}, headers=headers_a)

        assert response.status_code == 200
        assert [u["username"] for u in response.json()] == ["brenda", "bruno"]
        assert "email" not in response.json()[0]

    def test_search_excludes_self(self, client, ana):
        _, headers_a = ana
        assert client.get("/api/users/search", params={"q": "ana"}, headers=headers_a).json() == []

    def test_search_needs_two_characters(self, client, ana):
        _, headers_a = ana
        assert client.get("/api/users/search", params={"q": "b"}, headers=headers_a).status_code == 422

    def test_profile_of_stranger_hides_habits(self, client, ana, bruno):
        _, headers_a = ana
        user_b, headers_b = bruno
        create_habit(client, headers_b)

        profile = client.get(f"/api/users/{user_b['id']}", headers=headers_a).json()

        assert profile["username"] == "bruno"
        assert profile["active_habit_count"] == 1
        assert profile["friendship_status"] is None
        assert profile["habits"] == []
        assert profile["habit_stats"] is None

    def test_profile_of_friend_shows_habits(self, client, ana, bruno, make_friends, days_ago):
        _, headers_a = ana
        user_b, headers_b = bruno
        habit = create_habit(client, headers_b)
        check_in(client, headers_b, habit["id"], days_ago(1))
        check_in(client, headers_b, habit["id"])
        make_friends(ana, bruno)

        profile = client.get(f"/api/users/{user_b['id']}", headers=headers_a).json()

        assert profile["friendship_status"] == "accepted"
        assert profile["friends_since"] is not None
        assert len(profile["habits"]) == 1
        assert profile["habits"][0]["current_streak"] == 2
        assert len(profile["habits"][0]["check_ins"]) == 2
        assert profile["habit_stats"] == {
            "total_active_habits": 1, "total_active_streaks": 2, "longest_streak": 2,
        }

    def test_unknown_profile(self, client, ana):
        _, headers_a = ana
        assert client.get("/api/users/9999", headers=headers_a).status_code == 404


class TestFeedAndCheers:

    @pytest.fixture
    def bruno_check_in(self, client, bruno):
        _, headers_b = bruno
        habit = create_habit(client, headers_b, "Correr")
        return check_in(client, headers_b, habit["id"])

    def test_feed_without_friends_is_empty(self, client, ana, bruno_check_in):
        _, headers_a = ana
        body = client.get("/api/social/feed", headers=headers_a).json()
        assert body["activities"] == []
        assert body["pagination"]["total"] == 0

    def test_feed_shows_friends_check_ins(self, client, ana, bruno, make_friends, bruno_check_in):
        make_friends(ana, bruno)
        _, headers_a = ana

        activities = client.get("/api/social/feed", headers=headers_a).json()["activities"]

        assert len(activities) == 1
        assert activities[0]["id"] == bruno_check_in["id"]
        assert activities[0]["user"]["username"] == "bruno"
        assert activities[0]["habit"]["name"] == "Correr"
        assert activities[0]["habit"]["current_streak"] == 1
        assert activities[0]["has_cheered"] is False

    def test_cheer_friend_check_in(self, client, ana, bruno, make_friends, bruno_check_in):
        make_friends(ana, bruno)
        _, headers_a = ana

        response = client.post(
            f"/api/social/cheer/{bruno_check_in['id']}", json={"emoji": "🔥"}, headers=headers_a
        )

        assert response.status_code == 201
        assert response.json()["emoji"] == "🔥"
        assert response.json()["giver"]["username"] == "ana"

        activity = client.get("/api/social/feed", headers=headers_a).json()["activities"][0]
        assert activity["has_cheered"] is True
        assert activity["cheer_count"] == 1

    def test_default_emoji(self, client, ana, bruno, make_friends, bruno_check_in):
        make_friends(ana, bruno)
        _, headers_a = ana
        response = client.post(f"/api/social/cheer/{bruno_check_in['id']}", headers=headers_a)
        assert response.json()["emoji"] == "👏"

    def test_cheer_twice_is_conflict(self, client, ana, bruno, make_friends, bruno_check_in):
        make_friends(ana, bruno)
        _, headers_a = ana
        url = f"/api/social/cheer/{bruno_check_in['id']}"
        assert client.post(url, headers=headers_a).status_code == 201
        assert client.post(url, headers=headers_a).status_code == 409

    def test_cheer_non_friend_is_forbidden(self, client, ana, bruno_check_in):
        _, headers_a = ana
        response = client.post(f"/api/social/cheer/{bruno_check_in['id']}", headers=headers_a)
        assert response.status_code == 403

    def test_cheer_own_check_in_is_bad_request(self, client, bruno, bruno_check_in):
        _, headers_b = bruno
        response = client.post(f"/api/social/cheer/{bruno_check_in['id']}", headers=headers_b)
        assert response.status_code == 400

    def test_cheer_unknown_check_in(self, client, ana):
        _, headers_a = ana
        assert client.post("/api/social/cheer/9999", headers=headers_a).status_code == 404

    def test_remove_cheer(self, client, ana, bruno, make_friends, bruno_check_in):
        make_friends(ana, bruno)
        _, headers_a = ana
        url = f"/api/social/cheer/{bruno_check_in['id']}"
        client.post(url, headers=headers_a)

        assert client.delete(url, headers=headers_a).status_code == 200
        assert client.delete(url, headers=headers_a).status_code == 404
        # se puede volver a animar
        assert client.post(url, headers=headers_a).status_code == 201

    def test_received_cheers(self, client, ana, bruno, make_friends, bruno_check_in):
        make_friends(ana, bruno)
        _, headers_a = ana
        _, headers_b = bruno
        client.post(f"/api/social/cheer/{bruno_check_in['id']}", headers=headers_a)

        body = client.get("/api/social/cheers", headers=headers_b).json()

        assert body["pagination"]["total"] == 1
        cheer = body["cheers"][0]
        assert cheer["giver"]["username"] == "ana"
        assert cheer["check_in"]["id"] == bruno_check_in["id"]
        assert cheer["check_in"]["habit"]["name"] == "Correr"

        assert client.get("/api/social/cheers", headers=headers_a).json()["cheers"] == []

    def test_received_cheers_since(self, client, ana, bruno, make_friends, bruno_check_in):
        make_friends(ana, bruno)
        _, headers_a = ana
        _, headers_b = bruno
        client.post(f"/api/social/cheer/{bruno_check_in['id']}", headers=headers_a)

        old = client.get("/api/social/cheers", params={"since": "2000-01-01T00:00:00Z"}, headers=headers_b)
        future = client.get("/api/social/cheers", params={"since": "2999-01-01T00:00:00Z"}, headers=headers_b)

        assert len(old.json()["cheers"]) == 1
        assert future.json()["cheers"] == []


class TestLeaderboard:

    @pytest.fixture
    def streaks(self, client, ana, bruno, signup, make_friends, days_ago):
        """ana: racha 1, bruno (amigo): racha 2, carla (no amiga): racha 3"""
        carla = signup("carla")
        for (_, headers), length in ((ana, 1), (bruno, 2), (carla, 3)):
            habit = create_habit(client, headers)
            for n in range(length):
                check_in(client, headers, habit["id"], days_ago(n))
        make_friends(ana, bruno)

    def test_friends_scope(self, client, ana, streaks):
        _, headers_a = ana
        body = client.get("/api/social/leaderboard", headers=headers_a).json()

        assert [(e["username"], e["rank"]) for e in body["leaderboard"]] == [("bruno", 1), ("ana", 2)]
        assert body["leaderboard"][0]["total_active_streaks"] == 2
        assert body["leaderboard"][1]["is_current_user"] is True
        assert body["current_user_rank"] == 2

    def test_global_scope(self, client, ana, streaks):
        _, headers_a = ana
        body = client.get("/api/social/leaderboard", params={"scope": "global"}, headers=headers_a).json()

        assert [e["username"] for e in body["leaderboard"]] == ["carla", "bruno", "ana"]
        assert body["current_user_rank"] == 3
        assert body["pagination"]["total"] == 3

    def test_pagination_keeps_rank(self, client, ana, streaks):
        _, headers_a = ana
        body = client.get(
            "/api/social/leaderboard", params={"scope": "global", "page": 2, "limit": 2}, headers=headers_a
        ).json()

        assert [(e["username"], e["rank"]) for e in body["leaderboard"]] == [("ana", 3)]
        assert body["current_user_rank"] == 3

    def test_ties_are_ordered_by_username(self, client, signup):
        _, headers_z = signup("zoe")
        signup("alba")
        body = client.get("/api/social/leaderboard", params={"scope": "global"}, headers=headers_z).json()
        assert [e["username"] for e in body["leaderboard"]] == ["alba", "zoe"]

    def test_invalid_scope(self, client, ana):
        _, headers_a = ana
        response = client.get("/api/social/leaderboard", params={"scope": "todos"}, headers=headers_a)
        assert response.status_code == 422
