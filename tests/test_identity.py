from sqlalchemy.exc import SQLAlchemyError

from movie_poll.models.user_device import UserDevice
from movie_poll.services.identity_service import IdentityService
from movie_poll.utils.security import decode_token


class TestCheckName:
    def test_new_name_on_fresh_device(self, db_session):
        result = IdentityService.check_name(db_session, "Alice", "dev-1")

        assert result == {"status": "new"}

    def test_device_name_match_ignores_case(self, db_session):
        IdentityService.remember_device_name(db_session, "dev-1", "Alice")

        result = IdentityService.check_name(db_session, "alice", "dev-1")

        assert result["status"] == "existing"
        assert result["closest_match"] == "Alice"
        assert result["similarity"] == 1.0
        assert result["device_names"] == ["Alice"]

    def test_nickname_matches_device_name(self, db_session):
        IdentityService.remember_device_name(db_session, "dev-1", "Alice")

        result = IdentityService.check_name(db_session, "Ali", "dev-1")

        assert result["status"] == "existing"
        assert result["similarity"] == 0.8

    def test_best_device_name_wins(self, db_session):
        IdentityService.remember_device_name(db_session, "dev-1", "Jonathan")
        IdentityService.remember_device_name(db_session, "dev-1", "Jonathon")

        result = IdentityService.check_name(db_session, "jonathan", "dev-1")

        assert result["closest_match"] == "Jonathan"
        assert result["device_names"] == ["Jonathon", "Jonathan"]

    def test_similar_names_from_other_voters(self, db_session, make_movie, add_vote):
        movie = make_movie("Heat")
        add_vote(movie, "Jonathan", seen=False, vibe=3, device_id="dev-2")
        add_vote(movie, "Zed", seen=False, vibe=3, device_id="dev-3")

        result = IdentityService.check_name(db_session, "Jonathon", "dev-1")

        assert result["status"] == "similar"
        assert result["similar_names"] == ["Jonathan"]

    def test_lookup_failure_treats_name_as_new(self, db_session, monkeypatch):
        def broken_lookup(db, device_id):
            raise SQLAlchemyError("database unavailable")

        monkeypatch.setattr(IdentityService, "get_device_names", staticmethod(broken_lookup))

        assert IdentityService.check_name(db_session, "Alice", "dev-1") == {"status": "new"}


def test_remember_device_name_is_idempotent(db_session):
    IdentityService.remember_device_name(db_session, "dev-1", "Alice")
    IdentityService.remember_device_name(db_session, "dev-1", "Alice")
    IdentityService.remember_device_name(db_session, "dev-1", "Ali")

    assert db_session.query(UserDevice).count() == 2
    assert IdentityService.get_most_recent_name(db_session, "dev-1") == "Ali"
    assert IdentityService.get_most_recent_name(db_session, "dev-2") is None


# ==================== API ====================

class TestIdentityApi:
    def test_device_id_is_required(self, client):
        response = client.post("/api/identity/check", json={"name": "Alice"})

        assert response.status_code == 400
        assert response.json()["detail"] == "Device ID is required"

    def test_confirm_issues_voter_token(self, client, settings):
        headers = {"X-Device-ID": "dev-1"}

        check = client.post("/api/identity/check", json={"name": "Alice"}, headers=headers)
        assert check.status_code == 200
        assert check.json()["status"] == "new"

        confirm = client.post("/api/identity/confirm", json={"name": "Alice"}, headers=headers)
        assert confirm.status_code == 200
        body = confirm.json()
        assert body["user_name"] == "Alice"
        assert body["device_id"] == "dev-1"

        payload = decode_token(body["voter_token"], settings)
        assert payload["type"] == "voter"
        assert payload["sub"] == "Alice"
        assert payload["device_id"] == "dev-1"

        me = client.get("/api/identity/me", headers=headers)
        assert me.json()["names"] == ["Alice"]
        assert me.json()["most_recent_name"] == "Alice"

    def test_returning_device_is_asked_about_existing_name(self, client):
        headers = {"X-Device-ID": "dev-1"}
        client.post("/api/identity/confirm", json={"name": "Alice"}, headers=headers)

        response = client.post("/api/identity/check", json={"name": "ALICE"}, headers=headers)

        assert response.json()["status"] == "existing"
        assert response.json()["closest_match"] == "Alice"

    def test_unconfirmed_name_is_rejected(self, client):
        response = client.post(
            "/api/identity/confirm",
            json={"name": "Alice", "confirmed": False},
            headers={"X-Device-ID": "dev-1"},
        )

        assert response.status_code == 400

    def test_markup_is_stripped_from_names(self, client):
        response = client.post(
            "/api/identity/confirm",
            json={"name": "<b>Bob</b>  Smith"},
            headers={"X-Device-ID": "dev-1"},
        )

        assert response.status_code == 200
        assert response.json()["user_name"] == "Bob Smith"

    def test_script_names_are_rejected(self, client):
        response = client.post(
            "/api/identity/check",
            json={"name": "<script>alert(1)</script>"},
            headers={"X-Device-ID": "dev-1"},
        )

        assert response.status_code == 422

    def test_device_id_from_cookie(self, client):
        response = client.get("/api/identity/me", headers={"Cookie": "device_id=cookie-device"})

        assert response.status_code == 200
        assert response.json()["device_id"] == "cookie-device"
